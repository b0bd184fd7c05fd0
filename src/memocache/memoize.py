"""Memoizing wrapper and composable callable→callable decorators."""

from __future__ import annotations

import functools
import logging
import time
from typing import Any, Callable, Optional

from .cache import ValueStore

logger = logging.getLogger(__name__)

Decorator = Callable[[Callable[..., Any]], Callable[..., Any]]


class Memoized:
    """
    A function bound to a store and an identifier.

    Calling it derives the fingerprint from (identifier, arguments) and hands
    the call to store.get_or_compute. The store is shared, not copied, so
    every wrapper over one store sees the others' writes. Cheap to build per
    call site.
    """

    def __init__(self, store: ValueStore, identifier: str, fn: Callable[..., Any],
                 result_type: Optional[type] = None) -> None:
        functools.update_wrapper(self, fn)
        self.store = store
        self.identifier = identifier
        self.fn = fn
        self.result_type = result_type

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        fingerprint = self.store.deriver.derive(self.identifier, args, kwargs)
        return self.call_with_fingerprint(fingerprint, *args, **kwargs)

    def call_with_fingerprint(self, fingerprint: int, *args: Any, **kwargs: Any) -> Any:
        return self.store.get_or_compute(
            self.identifier, fingerprint, self.fn, args, kwargs, self.result_type,
        )

    def call_with_seed(self, seed: int, *args: Any, **kwargs: Any) -> Any:
        """Use a caller-chosen seed as the key; arguments are not hashed."""
        fingerprint = self.store.seeded_fingerprint(self.identifier, seed)
        return self.call_with_fingerprint(fingerprint, *args, **kwargs)

    def __repr__(self) -> str:
        return f"Memoized({self.identifier!r}, store={type(self.store).__name__})"


def memoize(store: ValueStore, identifier: Optional[str] = None,
            result_type: Optional[type] = None) -> Decorator:
    """Decorator form of Memoized; the identifier defaults to the function name."""

    def decorator(fn: Callable[..., Any]) -> Memoized:
        return Memoized(store, identifier or fn.__name__, fn, result_type)

    return decorator


def log_start_stop(fn: Callable[..., Any], target: Optional[logging.Logger] = None) -> Callable[..., Any]:
    log = target or logger
    name = getattr(fn, "__name__", repr(fn))

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        log.info(f"Start {name}")
        started = time.perf_counter()
        try:
            return fn(*args, **kwargs)
        finally:
            log.info(f"Stop {name} ({time.perf_counter() - started:.3f}s)")

    return wrapper


def compose(*decorators: Decorator) -> Decorator:
    """compose(a, b)(fn) == a(b(fn))."""

    def apply(fn: Callable[..., Any]) -> Callable[..., Any]:
        for decorator in reversed(decorators):
            fn = decorator(fn)
        return fn

    return apply
