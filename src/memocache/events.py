"""Structured cache events and the listener channel they travel on."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

CACHE_HIT = "cache_hit"
CACHE_MISS = "cache_miss"
REGISTERED = "registered"
STORE_FAILED = "store_failed"

MEMORY_LOCATION = "memory"


@dataclass(frozen=True)
class CacheEvent:
    kind: str
    identifier: str
    location: Optional[str] = None
    fingerprint: Optional[int] = None
    error: Optional[BaseException] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "identifier": self.identifier,
            "location": self.location,
            "fingerprint": self.fingerprint,
            "error": repr(self.error) if self.error is not None else None,
            "timestamp": self.timestamp,
        }


Listener = Callable[[CacheEvent], None]


class EventEmitter:
    """Fan-out of cache events to subscribed listeners, in subscription order."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event: CacheEvent) -> None:
        for listener in list(self._listeners):
            listener(event)


class LoggingListener:
    """Forward events to a logger; failures at ERROR, everything else at INFO."""

    def __init__(self, target: Optional[logging.Logger] = None) -> None:
        self._logger = target or logger

    def __call__(self, event: CacheEvent) -> None:
        if event.kind == STORE_FAILED:
            self._logger.error(f"{event.kind} {event.identifier} at {event.location}: {event.error}")
        else:
            self._logger.info(f"{event.kind} {event.identifier} ({event.location})")
