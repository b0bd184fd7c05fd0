"""
Self-reference registry for recursively memoized functions.

A function that memoizes calls to itself cannot be handed its own wrapper
before that wrapper exists. The registry remembers which (identifier, store)
pair a function was first wrapped with, so the function body can say::

    registry.call_memoized(fib, n - 1)

instead of threading a store through its signature.

Usage
-----
    registry = Registry()

    def mfib(n):
        if n < 2:
            return n
        return registry.call_memoized(mfib, n - 1) + registry.call_memoized(mfib, n - 2)

    wrapped = registry.register_or_get(VolatileStore(), "mfib", mfib)
    wrapped(12)  # 144, each n computed once

Registrations are keyed by the function object unless an explicit string key
is given. Function identity is only reliable for module-level functions;
closures and lambdas rebuilt per call get a new identity each time, so pass
``key=`` for them and use ``call_memoized_as``.

The first registration for a key wins for the life of the registry. Later
register_or_get calls with another store or identifier still return a wrapper
bound to what they were given, but the registry keeps the first pair. The
store is borrowed: keep it alive (and, for a DurableStore, keep its root in
place) for as long as its registrations are used.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional

from .cache import ValueStore
from .errors import NotRegisteredError
from .events import REGISTERED, CacheEvent
from .memoize import Memoized

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Registration:
    identifier: str
    store: ValueStore


class Registry:
    def __init__(self) -> None:
        self._table: Dict[Hashable, Registration] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._table)

    def register_or_get(self, store: ValueStore, identifier: str, fn: Callable[..., Any],
                        key: Optional[str] = None) -> Memoized:
        reg_key = key if key is not None else fn
        with self._lock:
            existing = self._table.get(reg_key)
            if existing is None:
                self._table[reg_key] = Registration(identifier, store)

        if existing is None:
            logger.info(f"registering {identifier} in registry")
            store.events.emit(CacheEvent(REGISTERED, identifier, store.backing()))
        elif existing.identifier != identifier or existing.store is not store:
            logger.debug(
                f"{identifier} already registered as {existing.identifier}; "
                f"keeping the first registration"
            )

        return Memoized(store, identifier, fn)

    def is_registered(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._table

    def lookup(self, key: Hashable) -> Registration:
        with self._lock:
            registration = self._table.get(key)
        if registration is None:
            name = key if isinstance(key, str) else getattr(key, "__qualname__", repr(key))
            raise NotRegisteredError(f"memoized function {name} is not registered with a cache")
        return registration

    def call_memoized(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        return self.call_memoized_as(fn, fn, *args, **kwargs)

    def call_memoized_as(self, key: Hashable, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Like call_memoized, for functions registered under an explicit key."""
        registration = self.lookup(key)
        return Memoized(registration.store, registration.identifier, fn)(*args, **kwargs)

    def clear(self) -> None:
        with self._lock:
            self._table.clear()


default_registry = Registry()


def register_or_get(store: ValueStore, identifier: str, fn: Callable[..., Any],
                    key: Optional[str] = None) -> Memoized:
    return default_registry.register_or_get(store, identifier, fn, key)


def call_memoized(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    return default_registry.call_memoized(fn, *args, **kwargs)


def call_memoized_as(key: Hashable, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    return default_registry.call_memoized_as(key, fn, *args, **kwargs)
