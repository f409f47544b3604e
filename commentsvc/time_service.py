"""Source of the current time."""

from __future__ import annotations

from datetime import datetime, timezone


class TimeService:
    """Gives the current UTC time at microsecond precision."""

    def get_time_now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


_INSTANCE = TimeService()


def get_time_service_instance() -> TimeService:
    """Return the shared time service."""
    return _INSTANCE