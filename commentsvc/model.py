"""Comment domain model, domain events and timestamp helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

COMMENT_WAS_CREATED_EVENT_NAME = "CommentWasCreatedEvent"
COMMENT_WAS_DELETED_EVENT_NAME = "CommentWasDeletedEvent"
COMMENT_WAS_UPDATED_EVENT_NAME = "CommentWasUpdatedEvent"

_MAX_ID = 2**64 - 1
_LAYOUT_RE = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{6}Z")
_RFC3339_RE = re.compile(
    r"(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})"
)


def format_time(moment: datetime) -> str:
    """Format a moment in UTC with exactly six fractional digits and a Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return utc.isoformat(timespec="microseconds") + "Z"


def parse_time(text: str) -> datetime:
    """Parse a timestamp written by format_time into an aware UTC datetime."""
    if _LAYOUT_RE.fullmatch(text) is None:
        raise ValueError(f"cannot parse {text!r} as a timestamp")
    return datetime.fromisoformat(text[:-1] + "+00:00")


def _format_rfc3339(moment: datetime) -> str:
    text = moment.replace(microsecond=0, tzinfo=None).isoformat()
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset()
    if not offset:
        return text + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "-" if minutes < 0 else "+"
    return f"{text}{sign}{abs(minutes) // 60:02d}:{abs(minutes) % 60:02d}"


def _parse_rfc3339(text: str) -> datetime:
    match = _RFC3339_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"cannot parse {text!r} as an RFC 3339 timestamp")
    date, clock, fraction, zone = match.groups()
    zone = "+00:00" if zone in ("Z", "z") else zone
    return datetime.fromisoformat(f"{date}T{clock}.{(fraction or '')[:6].ljust(6, '0')}{zone}")


def _lookup(data: Mapping[str, Any], key: str) -> Any:
    """Find a field the way JSON decoding does: exact name first, then any case."""
    if key in data:
        return data[key]
    lowered = key.lower()
    return next(
        (value for name, value in data.items() if isinstance(name, str) and name.lower() == lowered),
        None,
    )


@dataclass
class Comment:
    """A comment left by a user on a post."""

    id: int = 0
    username: str = ""
    post_id: str = ""
    content: str = ""
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "postId": self.post_id,
            "content": self.content,
            "createdAt": _format_rfc3339(self.created_at),
            "updatedAt": _format_rfc3339(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Comment":
        """Build a comment from decoded JSON; absent or null fields keep their zero value."""
        if not isinstance(data, Mapping):
            raise ValueError("comment must be a JSON object")
        comment = cls()

        value = _lookup(data, "id")
        if value is not None:
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _MAX_ID:
                raise ValueError(f"invalid comment id: {value!r}")
            comment.id = value

        for key, attribute in (
            ("username", "username"),
            ("postId", "post_id"),
            ("content", "content"),
            ("createdAt", "created_at"),
            ("updatedAt", "updated_at"),
        ):
            value = _lookup(data, key)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValueError(f"field {key} must be a string")
            setattr(comment, attribute, _parse_rfc3339(value) if attribute.endswith("_at") else value)

        return comment


@dataclass
class CommentWasCreatedEvent:
    """Published after a comment has been stored."""

    comment_id: int
    username: str
    post_id: str
    content: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "commentId": self.comment_id,
            "username": self.username,
            "postId": self.post_id,
            "content": self.content,
            "createdAt": self.created_at,
        }


@dataclass
class CommentWasDeletedEvent:
    """Published after a comment has been removed."""

    post_id: str
    comment_id: int

    def to_dict(self) -> dict[str, Any]:
        return {"postId": self.post_id, "commentId": self.comment_id}


@dataclass
class CommentWasUpdatedEvent:
    """Published after a comment's content has changed."""

    comment_id: int
    content: str
    updated_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "commentId": self.comment_id,
            "content": self.content,
            "updatedAt": self.updated_at,
        }