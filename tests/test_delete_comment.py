import dataclasses
import json
import logging
from datetime import datetime, timezone

import pytest

from commentsvc.api import Api
from commentsvc.bus import EventBus, create_event
from commentsvc.database import Database, DatabaseClient
from commentsvc.delete_comment import (
    DeleteCommentController,
    DeleteCommentRepository,
    DeleteCommentService,
)
from commentsvc.model import (
    COMMENT_WAS_DELETED_EVENT_NAME,
    Comment,
    CommentWasDeletedEvent,
)

NOW = datetime(2024, 5, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)
BASE = "/test/commentservice/comment"


def remove_space(text):
    return text.replace(" ", "").replace("\t", "").replace("\n", "")


def body_of(response):
    return remove_space(response.get_data(as_text=True))


class RecordingExternalBus:
    def __init__(self, error=None):
        self.events = []
        self.error = error

    def publish(self, event):
        self.events.append(event)
        if self.error:
            raise self.error


class RecordingService:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def delete_comment(self, post_id, comment_id):
        self.calls.append((post_id, comment_id))
        if self.error:
            raise self.error


class RecordingRepository:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def delete_comment(self, comment_id):
        self.calls.append(comment_id)
        if self.error:
            raise self.error


class MemoryClient(DatabaseClient):
    def __init__(self, delete_error=None):
        self.rows = {}
        self.next_id = 1
        self.delete_error = delete_error
        self.deleted = []

    def clean(self):
        self.rows.clear()

    def create_comment(self, data):
        comment_id = self.next_id
        self.next_id += 1
        self.rows[comment_id] = dataclasses.replace(data, id=comment_id)
        return comment_id

    def get_comment_by_id(self, comment_id):
        row = self.rows.get(comment_id)
        return dataclasses.replace(row) if row else None

    def update_comment(self, data):
        if data.id in self.rows:
            self.rows[data.id] = dataclasses.replace(
                self.rows[data.id], content=data.content, updated_at=data.updated_at
            )

    def delete_comment(self, comment_id):
        self.deleted.append(comment_id)
        if self.delete_error:
            raise self.delete_error
        self.rows.pop(comment_id, None)


def client_for(controller):
    return Api("test", [controller]).routes().test_client()


def test_delete_comment_controller_success():
    service = RecordingService()
    client = client_for(DeleteCommentController(service))

    response = client.delete(f"{BASE}/post1/1234")

    assert response.status_code == 200
    assert body_of(response) == remove_space('{"error": false, "message": "200 OK", "content": null}')
    assert service.calls == [("post1", 1234)]


def test_delete_comment_controller_missing_post_id():
    service = RecordingService()
    response = DeleteCommentController(service).delete_comment("", "")

    assert response.status_code == 400
    assert body_of(response) == remove_space(
        '{"error": true, "message": "Missing postId parameter", "content": null}'
    )
    assert service.calls == []


def test_delete_comment_controller_missing_comment_id():
    service = RecordingService()
    response = DeleteCommentController(service).delete_comment("post1", "")

    assert response.status_code == 400
    assert body_of(response) == remove_space(
        '{"error": true, "message": "Missing commentId parameter", "content": null}'
    )
    assert service.calls == []


def test_delete_comment_controller_comment_id_not_uint64(caplog):
    caplog.set_level(logging.INFO)
    service = RecordingService()
    client = client_for(DeleteCommentController(service))

    response = client.delete(f"{BASE}/post1/no uint64")

    assert response.status_code == 400
    assert body_of(response) == remove_space(
        '{"error": true, "message": "CommentId couldn\'t be parsed. '
        'CommentId should be a positive number", "content": null}'
    )
    assert "CommentId no uint64 couldn't be parsed" in caplog.text
    assert service.calls == []


@pytest.mark.parametrize("comment_id", ["-5", "+5", "18446744073709551616", "1.5"])
def test_delete_comment_controller_rejects_out_of_range_ids(comment_id):
    service = RecordingService()
    response = DeleteCommentController(service).delete_comment("post1", comment_id)

    assert response.status_code == 400
    assert service.calls == []


def test_delete_comment_controller_accepts_largest_id():
    service = RecordingService()
    response = DeleteCommentController(service).delete_comment("post1", "18446744073709551615")

    assert response.status_code == 200
    assert service.calls == [("post1", 2**64 - 1)]


def test_delete_comment_controller_internal_server_error():
    service = RecordingService(error=RuntimeError("some error"))
    client = client_for(DeleteCommentController(service))

    response = client.delete(f"{BASE}/post1/1234")

    assert response.status_code == 500
    assert body_of(response) == remove_space('{"error": true, "message": "some error", "content": null}')


def test_repository_deletes_through_client():
    client = MemoryClient()
    repository = DeleteCommentRepository(Database(client))

    repository.delete_comment(5)

    assert client.deleted == [5]


def test_repository_propagates_client_error():
    repository = DeleteCommentRepository(Database(MemoryClient(delete_error=RuntimeError("some error"))))

    with pytest.raises(RuntimeError, match="some error"):
        repository.delete_comment(5)


def test_service_success_publishes_event(caplog):
    caplog.set_level(logging.INFO)
    external = RecordingExternalBus()
    repository = RecordingRepository()
    service = DeleteCommentService(repository, EventBus(external))

    service.delete_comment("post1", 1000)

    expected = create_event(
        COMMENT_WAS_DELETED_EVENT_NAME, CommentWasDeletedEvent(post_id="post1", comment_id=1000)
    )
    assert external.events == [expected]
    assert repository.calls == [1000]
    assert "Comment was deleted, commentId: 1000" in caplog.text


def test_service_error_when_repository_fails(caplog):
    caplog.set_level(logging.INFO)
    external = RecordingExternalBus()
    service = DeleteCommentService(RecordingRepository(error=RuntimeError("some error")), EventBus(external))

    with pytest.raises(RuntimeError, match="some error"):
        service.delete_comment("post1", 1000)

    assert external.events == []
    assert "Error deleting comment, commentId: 1000" in caplog.text


def test_service_error_when_publishing_fails(caplog):
    caplog.set_level(logging.INFO)
    external = RecordingExternalBus(error=RuntimeError("some error"))
    service = DeleteCommentService(RecordingRepository(), EventBus(external))

    with pytest.raises(RuntimeError, match="some error"):
        service.delete_comment("post1", 1000)

    assert json.loads(external.events[0].data) == {"postId": "post1", "commentId": 1000}
    assert f"Publishing {COMMENT_WAS_DELETED_EVENT_NAME} failed, commentId: 1000" in caplog.text
    assert "Comment was deleted" not in caplog.text


def test_delete_comment_end_to_end_with_store():
    db_client = MemoryClient()
    database = Database(db_client)
    comment_id = db_client.create_comment(
        Comment(username="usernameA", post_id="post1", content="o meu comentario", created_at=NOW)
    )
    external = RecordingExternalBus()
    service = DeleteCommentService(DeleteCommentRepository(database), EventBus(external))
    client = client_for(DeleteCommentController(service))

    response = client.delete(f"{BASE}/post1/{comment_id}")

    assert response.status_code == 200
    assert body_of(response) == remove_space('{"error": false, "message": "200 OK", "content": null}')
    expected_event = create_event(
        COMMENT_WAS_DELETED_EVENT_NAME, CommentWasDeletedEvent(post_id="post1", comment_id=comment_id)
    )
    assert external.events == [expected_event]
    assert database.client.get_comment_by_id(comment_id) is None