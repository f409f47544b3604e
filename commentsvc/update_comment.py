"""Updating comments: HTTP handler, repository and service."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from typing import Protocol

from flask import Blueprint, Response, request

from .api import Controller, send_bad_request, send_internal_server_error, send_ok
from .bus import EventBus
from .database import Database
from .model import (
    COMMENT_WAS_UPDATED_EVENT_NAME,
    Comment,
    CommentWasUpdatedEvent,
    format_time,
)

log = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]+")
_MAX_ID = 2**64 - 1


class _Service(Protocol):
    def update_comment(self, comment: Comment) -> None:
        ...


class _Repository(Protocol):
    def update_comment(self, data: Comment) -> None:
        ...


class _TimeSource(Protocol):
    def get_time_now_utc(self) -> datetime:
        ...


def _parse_comment_id(text: str) -> int:
    if not _DIGITS.fullmatch(text):
        raise ValueError(f"invalid syntax: {text!r}")
    value = int(text)
    if value > _MAX_ID:
        raise ValueError(f"value out of range: {text!r}")
    return value


class UpdateCommentController(Controller):
    """Handles PUT requests that change a comment's content."""

    def __init__(self, service: _Service) -> None:
        self.service = service

    def routes(self, router_group: Blueprint) -> None:
        router_group.add_url_rule(
            "/comment/<comment_id>",
            endpoint="update_comment",
            view_func=self.update_comment,
            methods=["PUT"],
        )

    def update_comment(self, comment_id: str) -> Response:
        log.info("Handling Request PUT UpdateComment")

        if not comment_id:
            return send_bad_request("Missing commentId parameter")

        try:
            parsed_id = _parse_comment_id(comment_id)
        except ValueError:
            log.exception("CommentId %s couldn't be parsed", comment_id)
            return send_bad_request(
                "CommentId couldn't be parsed. CommentId hould be a positive number"
            )

        try:
            comment = Comment.from_dict(json.loads(request.get_data()))
        except ValueError:
            log.exception("Invalid Data")
            return send_bad_request("Invalid Json Request")
        comment.id = parsed_id

        try:
            self.service.update_comment(comment)
        except Exception as err:
            return send_internal_server_error(str(err))

        return send_ok()


class UpdateCommentRepository:
    """Writes comment changes to the database."""

    def __init__(self, data_repository: Database) -> None:
        self.data_repository = data_repository

    def update_comment(self, data: Comment) -> None:
        self.data_repository.client.update_comment(data)


class UpdateCommentService:
    """Stamps, stores and announces comment changes."""

    def __init__(self, time_service: _TimeSource, repository: _Repository, bus: EventBus) -> None:
        self.time_service = time_service
        self.repository = repository
        self.bus = bus

    def update_comment(self, comment: Comment) -> None:
        """Store the new content with the current time and publish an updated event."""
        comment.updated_at = self.time_service.get_time_now_utc()
        try:
            self.repository.update_comment(comment)
        except Exception:
            log.exception("Error updating comment, commentId: %d", comment.id)
            raise

        self._publish_comment_was_updated_event(comment)

        log.info("Comment was updated, commentId: %d", comment.id)

    def _publish_comment_was_updated_event(self, data: Comment) -> None:
        updated = CommentWasUpdatedEvent(
            comment_id=data.id,
            content=data.content,
            updated_at=format_time(data.updated_at),
        )
        try:
            self.bus.publish(COMMENT_WAS_UPDATED_EVENT_NAME, updated)
        except Exception:
            log.exception(
                "Publishing %s failed, commentId: %d",
                COMMENT_WAS_UPDATED_EVENT_NAME,
                updated.comment_id,
            )
            raise