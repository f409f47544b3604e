"""Creating comments: HTTP handler, repository and service."""

from __future__ import annotations

import json
import logging
from typing import Any

from flask import Blueprint, Response, request

from .api import Controller, send_bad_request, send_internal_server_error, send_ok
from .bus import EventBus
from .database import Database
from .model import COMMENT_WAS_CREATED_EVENT_NAME, Comment, CommentWasCreatedEvent, format_time

log = logging.getLogger(__name__)


class CreateCommentController(Controller):
    """Handles POST requests that create a comment."""

    def __init__(self, service: Any) -> None:
        self.service = service

    def routes(self, router_group: Blueprint) -> None:
        router_group.add_url_rule(
            "/comment", endpoint="create_comment", view_func=self.create_comment, methods=["POST"]
        )

    def create_comment(self) -> Response:
        log.info("Handling Request POST CreateComment")
        try:
            comment = Comment.from_dict(json.loads(request.get_data()))
        except ValueError:
            log.exception("Invalid Data")
            return send_bad_request("Invalid Json Request")

        try:
            self.service.create_comment(comment)
        except Exception as err:
            return send_internal_server_error(str(err))
        return send_ok()


class CreateCommentRepository:
    """Stores new comments in the database."""

    def __init__(self, data_repository: Database) -> None:
        self.data_repository = data_repository

    def create_comment(self, data: Comment) -> int:
        return self.data_repository.client.create_comment(data)


class CreateCommentService:
    """Stamps, stores and announces new comments."""

    def __init__(self, time_service: Any, repository: Any, bus: EventBus) -> None:
        self.time_service = time_service
        self.repository = repository
        self.bus = bus

    def create_comment(self, comment: Comment) -> None:
        """Store the comment, set its id and publish a created event."""
        who = (comment.username, comment.post_id)
        comment.created_at = self.time_service.get_time_now_utc()
        try:
            comment.id = self.repository.create_comment(comment)
        except Exception:
            log.exception("Error creating comment, username: %s -> postId: %s", *who)
            raise

        created = CommentWasCreatedEvent(
            comment_id=comment.id,
            username=comment.username,
            post_id=comment.post_id,
            content=comment.content,
            created_at=format_time(comment.created_at),
        )
        try:
            self.bus.publish(COMMENT_WAS_CREATED_EVENT_NAME, created)
        except Exception:
            log.exception(
                "Publishing %s failed, username: %s -> postId: %s", COMMENT_WAS_CREATED_EVENT_NAME, *who
            )
            raise

        log.info("Comment was created, username: %s -> postId: %s", *who)