"""Storage interface for comments."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from .model import Comment


class DatabaseClient(ABC):
    """Operations a comment store provides."""

    @abstractmethod
    def clean(self) -> None: ...

    @abstractmethod
    def create_comment(self, data: Comment) -> int: ...

    @abstractmethod
    def get_comment_by_id(self, comment_id: int) -> Optional[Comment]: ...

    @abstractmethod
    def update_comment(self, data: Comment) -> None: ...

    @abstractmethod
    def delete_comment(self, comment_id: int) -> None: ...


@dataclass
class Database:
    """Holds the client the repositories talk to."""

    client: DatabaseClient