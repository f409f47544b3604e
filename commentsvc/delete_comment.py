"""Deleting comments: HTTP handler, repository and service."""

from __future__ import annotations

import logging
import re
from typing import Protocol

from flask import Blueprint, Response

from .api import Controller, send_bad_request, send_internal_server_error, send_ok
from .bus import EventBus
from .database import Database
from .model import COMMENT_WAS_DELETED_EVENT_NAME, CommentWasDeletedEvent

log = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]+")
_MAX_ID = 2**64 - 1


class _Service(Protocol):
    def delete_comment(self, post_id: str, comment_id: int) -> None:
        ...


class _Repository(Protocol):
    def delete_comment(self, comment_id: int) -> None:
        ...


def _parse_comment_id(text: str) -> int:
    if not _DIGITS.fullmatch(text):
        raise ValueError(f"invalid syntax: {text!r}")
    value = int(text)
    if value > _MAX_ID:
        raise ValueError(f"value out of range: {text!r}")
    return value


class DeleteCommentController(Controller):
    """Handles DELETE requests for a comment of a post."""

    def __init__(self, service: _Service) -> None:
        self.service = service

    def routes(self, router_group: Blueprint) -> None:
        router_group.add_url_rule(
            "/comment/<post_id>/<comment_id>",
            endpoint="delete_comment",
            view_func=self.delete_comment,
            methods=["DELETE"],
        )

    def delete_comment(self, post_id: str, comment_id: str) -> Response:
        log.info("Handling Request DELETE DeleteComment")

        if not post_id:
            return send_bad_request("Missing postId parameter")
        if not comment_id:
            return send_bad_request("Missing commentId parameter")

        try:
            parsed_id = _parse_comment_id(comment_id)
        except ValueError:
            log.exception("CommentId %s couldn't be parsed", comment_id)
            return send_bad_request(
                "CommentId couldn't be parsed. CommentId should be a positive number"
            )

        try:
            self.service.delete_comment(post_id, parsed_id)
        except Exception as err:
            return send_internal_server_error(str(err))

        return send_ok()


class DeleteCommentRepository:
    """Removes comments from the database."""

    def __init__(self, data_repository: Database) -> None:
        self.data_repository = data_repository

    def delete_comment(self, comment_id: int) -> None:
        self.data_repository.client.delete_comment(comment_id)


class DeleteCommentService:
    """Removes comments and announces their removal."""

    def __init__(self, repository: _Repository, bus: EventBus) -> None:
        self.repository = repository
        self.bus = bus

    def delete_comment(self, post_id: str, comment_id: int) -> None:
        """Delete the comment and publish a deleted event."""
        try:
            self.repository.delete_comment(comment_id)
        except Exception:
            log.exception("Error deleting comment, commentId: %d", comment_id)
            raise

        self._publish_comment_was_deleted_event(post_id, comment_id)

        log.info("Comment was deleted, commentId: %d", comment_id)

    def _publish_comment_was_deleted_event(self, post_id: str, comment_id: int) -> None:
        deleted = CommentWasDeletedEvent(post_id=post_id, comment_id=comment_id)
        try:
            self.bus.publish(COMMENT_WAS_DELETED_EVENT_NAME, deleted)
        except Exception:
            log.exception(
                "Publishing %s failed, commentId: %d",
                COMMENT_WAS_DELETED_EVENT_NAME,
                comment_id,
            )
            raise