# commentsvc

`commentsvc` is a small Flask-based HTTP endpoint for the comments on posts.
It creates, updates and deletes comments, stores each change through a
database client you supply, and announces it as a domain event on an event
bus that forwards to an external bus you supply.

## Endpoints

All routes sit under `/<env>/commentservice`, where `<env>` is the
environment name given to `commentsvc.api.Api`:

| Method   | Path                            | Handler                                      |
|----------|---------------------------------|----------------------------------------------|
| `POST`   | `/comment`                      | `CreateCommentController.create_comment`     |
| `PUT`    | `/comment/<commentId>`          | `UpdateCommentController.update_comment`     |
| `DELETE` | `/comment/<postId>/<commentId>` | `DeleteCommentController.delete_comment`     |

Request bodies are JSON objects with the fields `id`, `username`, `postId`,
`content`, `createdAt` and `updatedAt` (timestamps in RFC 3339); absent or
`null` fields keep their empty value. Field names are matched exactly first
and then case-insensitively. When creating, the service sets `createdAt` to
the current UTC time and `id` to what the database client returns. When
updating, the id comes from the path and `updatedAt` is set to the current
UTC time.

`commentId` in a path must be a decimal number from 0 to 2^64 − 1.

Every response is the same JSON envelope, indented with four spaces:

```json
{
    "error": false,
    "message": "200 OK",
    "content": null
}
```

On failure `error` is `true` and `message` holds the reason:

- 400 `Invalid Json Request` for a body that is not a valid comment object;
- 400 `Missing postId parameter` / `Missing commentId parameter`;
- 400 when `commentId` cannot be parsed as a number;
- 500 with the text of the exception raised by the service.

The helpers that build these responses are `send_ok`, `send_ok_with_result`,
`send_failure`, `send_bad_request`, `send_not_found` and
`send_internal_server_error` in `commentsvc.api`.

### CORS

Requests whose `Origin` matches `http:/*` or `https:/*` are answered with
that origin in `Access-Control-Allow-Origin` and with credentials allowed;
an `OPTIONS` preflight gets 204 with the allowed methods
(`GET, POST, PUT, DELETE, OPTIONS`), headers
(`Accept, Authorization, Content-Type, X-CSRF-Token`) and a max age of 12
hours. A request carrying any other `Origin` is refused with 403. Requests
without an `Origin` header pass through untouched.

## Events

| Event name               | Payload fields                                            |
|--------------------------|-----------------------------------------------------------|
| `CommentWasCreatedEvent` | `commentId`, `username`, `postId`, `content`, `createdAt` |
| `CommentWasUpdatedEvent` | `commentId`, `content`, `updatedAt`                       |
| `CommentWasDeletedEvent` | `postId`, `commentId`                                     |

The event classes live in `commentsvc.model`. Timestamps in events are UTC
with exactly six fractional digits, for example
`2024-05-01T12:30:45.123456Z`; `commentsvc.model.format_time` writes this
form and `commentsvc.model.parse_time` reads it back (raising `ValueError`
for anything else).

`commentsvc.bus.EventBus.publish(name, data)` serialises `data` to compact
JSON, wraps it in an `Event(type, data)` and hands it to the external bus's
`publish` method. `EventBus.subscribe(subscription, stop)` registers an
`EventSubscription(event_type, handler)`; events passed to
`EventBus.publish_local` are then given to `handler.handle(data)` on a
background thread until the `threading.Event` `stop` is set.

## Wiring it together

```python
import threading

from commentsvc.api import Api
from commentsvc.bus import EventBus
from commentsvc.database import Database
from commentsvc.time_service import get_time_service_instance
from commentsvc.create_comment import (
    CreateCommentController, CreateCommentRepository, CreateCommentService,
)
from commentsvc.update_comment import (
    UpdateCommentController, UpdateCommentRepository, UpdateCommentService,
)
from commentsvc.delete_comment import (
    DeleteCommentController, DeleteCommentRepository, DeleteCommentService,
)


class PrintingBus:
    def publish(self, event):
        print(event.type, event.data)


client = ...  # your DatabaseClient implementation
database = Database(client)
bus = EventBus(PrintingBus())
clock = get_time_service_instance()

api = Api("development", [
    CreateCommentController(
        CreateCommentService(clock, CreateCommentRepository(database), bus)),
    UpdateCommentController(
        UpdateCommentService(clock, UpdateCommentRepository(database), bus)),
    DeleteCommentController(
        DeleteCommentService(DeleteCommentRepository(database), bus)),
])

stop = threading.Event()
api.run(stop)  # serves on 0.0.0.0:9999 until stop is set
```

`Api.routes()` returns the Flask application, which is handy with Flask's
test client.

## Storage

Storage is reached through the abstract class
`commentsvc.database.DatabaseClient`. Subclass it and implement `clean`,
`create_comment` (returning the new id), `get_comment_by_id`,
`update_comment` and `delete_comment`, then wrap the client in
`commentsvc.database.Database`.

## What the package does not do

- It ships no database client: there is no concrete `DatabaseClient` and no
  schema or migrations. You provide the storage.
- It ships no message-broker connection: the external bus given to
  `EventBus` is yours to supply, and nothing feeds incoming broker messages
  into `EventBus.publish_local` for you.
- It has no command-line entry point; start the server from your own code
  with `Api.run`.

## Running the tests

```
pip install -e ".[test]"
pytest
```