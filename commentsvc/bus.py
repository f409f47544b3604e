"""In-process event bus that also forwards events to an external broker."""

from __future__ import annotations

import json
import queue
import threading
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional, Protocol


@dataclass(frozen=True)
class Event:
    """A named event carrying a JSON payload."""

    type: str
    data: bytes = b""


class ExternalBus(Protocol):
    def publish(self, event: Event) -> None: ...


class EventHandler(Protocol):
    def handle(self, event: bytes) -> None: ...


@dataclass
class EventSubscription:
    """Binds a handler to an event type."""

    event_type: str
    handler: EventHandler


def _dispatch(subscription: EventSubscription, inbox: "queue.Queue[Event]", stop: threading.Event) -> None:
    while not stop.is_set():
        try:
            event = inbox.get(timeout=0.1)
        except queue.Empty:
            continue
        threading.Thread(target=subscription.handler.handle, args=(event.data,), daemon=True).start()


class EventBus:
    """Delivers events to local subscribers and publishes them externally."""

    def __init__(self, external_bus: ExternalBus) -> None:
        self._subscribers: defaultdict[str, list[queue.Queue[Event]]] = defaultdict(list)
        self._external_bus = external_bus

    def publish_local(self, event: Event) -> None:
        for inbox in list(self._subscribers.get(event.type, ())):
            inbox.put(event)

    def subscribe(self, subscription: EventSubscription, stop: threading.Event) -> None:
        """Start delivering events of the subscription's type until stop is set."""
        inbox: queue.Queue[Event] = queue.Queue()
        self._subscribers[subscription.event_type].append(inbox)
        threading.Thread(target=_dispatch, args=(subscription, inbox, stop), daemon=True).start()

    def publish(self, event_name: str, event_data: Any) -> None:
        self._external_bus.publish(create_event(event_name, event_data))


def create_event(event_name: str, event_data: Any) -> Event:
    return Event(type=event_name, data=serialize(event_data))


def _jsonable(value: Any) -> Any:
    if callable(getattr(value, "to_dict", None)):
        return {key: _jsonable(item) for key, item in value.to_dict().items()}
    if isinstance(value, Mapping):
        return {str(key): _jsonable(value[key]) for key in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def _to_json(data: Any, indent: Optional[int] = None) -> str:
    """Encode data as JSON with HTML-sensitive characters escaped."""
    text = json.dumps(
        _jsonable(data),
        indent=indent,
        separators=None if indent else (",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    for char in "<>&\u2028\u2029":
        text = text.replace(char, f"\\u{ord(char):04x}")
    return text


def serialize(data: Any) -> bytes:
    """Encode data as compact JSON with HTML-sensitive characters escaped."""
    return _to_json(data).encode("utf-8")