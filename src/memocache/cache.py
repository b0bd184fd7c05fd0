#!/usr/bin/env python3
"""
Memocache Value Stores
Durable (pickle files on disk) and Volatile (type-tagged in-process table)

Implements:
- lookup(fingerprint) → Lookup(hit, value)
- store(fingerprint, result)
- get_or_compute(identifier, fingerprint, fn, args) → result
- cached(fn, *args) / cached_as(identifier, fn, *args) call-site helpers
- get_stats() → {hits, misses, writes, write_failures, hit_rate_percent}
"""

import logging
import os
import pickle
import re
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional

from .errors import DeserializationError, SerializationError, StorageIOError, TypeMismatchError
from .events import (
    CACHE_HIT, CACHE_MISS, MEMORY_LOCATION, STORE_FAILED,
    CacheEvent, EventEmitter, Listener,
)
from .key_generator import KeyDeriver, default_deriver

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_MAX_NAME_CHARS = 200
_TMP_PREFIX = ".tmp-"


class Lookup(NamedTuple):
    hit: bool
    value: Any = None


MISS = Lookup(False)


class ValueStore:
    """
    Common contract of every cache backend.

    Subclasses provide lookup(), store() and location(); the hit/miss
    protocol, events and stats live here.

    Design principles:
    - lookup never calls the wrapped function
    - wrapped-function errors pass through and nothing is written
    - a failed write after a successful compute still returns the value
    """

    def __init__(self, deriver: Optional[KeyDeriver] = None):
        self.deriver = deriver or default_deriver
        self.events = EventEmitter()
        self.stats = {
            "hits": 0,
            "misses": 0,
            "writes": 0,
            "write_failures": 0,
            "start_time": time.time(),
        }

    def lookup(self, fingerprint: int, identifier: str = "anonymous",
               expected_type: Optional[type] = None) -> Lookup:
        raise NotImplementedError

    def store(self, fingerprint: int, result: Any, identifier: str = "anonymous") -> None:
        raise NotImplementedError

    def location(self, identifier: str, fingerprint: int) -> str:
        raise NotImplementedError

    def backing(self) -> str:
        """Where this store keeps its entries (a directory, or "memory")."""
        raise NotImplementedError

    def seeded_fingerprint(self, identifier: str, seed: int) -> int:
        """Fingerprint for an explicit seed; the identifier is folded in."""
        return self.deriver.derive_seeded(seed, identifier)

    def subscribe(self, listener: Listener) -> None:
        self.events.subscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self.events.unsubscribe(listener)

    def get_or_compute(self, identifier: str, fingerprint: int, fn: Callable[..., Any],
                       args: Iterable[Any] = (), kwargs: Optional[Mapping[str, Any]] = None,
                       expected_type: Optional[type] = None) -> Any:
        where = self.location(identifier, fingerprint)
        found = self.lookup(fingerprint, identifier, expected_type)
        if found.hit:
            self.stats["hits"] += 1
            logger.info(f"Cached access to {identifier} from {where}")
            self.events.emit(CacheEvent(CACHE_HIT, identifier, where, fingerprint))
            return found.value

        result = fn(*args, **(kwargs or {}))
        self.stats["misses"] += 1
        logger.info(f"Non-cached access to {identifier}, {where}")

        try:
            self.store(fingerprint, result, identifier)
            self.stats["writes"] += 1
        except (SerializationError, StorageIOError) as e:
            self.stats["write_failures"] += 1
            logger.error(f"Cache write error for {identifier} at {where}: {e}")
            self.events.emit(CacheEvent(STORE_FAILED, identifier, where, fingerprint, error=e))

        self.events.emit(CacheEvent(CACHE_MISS, identifier, where, fingerprint))
        return result

    def cached(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """Call fn through the cache, using its __name__ as the identifier."""
        return self.cached_as(getattr(fn, "__name__", "anonymous"), fn, *args, **kwargs)

    def cached_as(self, identifier: str, fn: Callable[..., Any], *args, **kwargs) -> Any:
        fingerprint = self.deriver.derive(identifier, args, kwargs)
        return self.get_or_compute(identifier, fingerprint, fn, args, kwargs)

    def cached_seeded(self, identifier: str, seed: int, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """Unhashable arguments: the caller picks the key and cleans up after it."""
        fingerprint = self.seeded_fingerprint(identifier, seed)
        return self.get_or_compute(identifier, fingerprint, fn, args, kwargs)

    def get_stats(self) -> Dict[str, Any]:
        total_requests = self.stats["hits"] + self.stats["misses"]
        hit_rate = (self.stats["hits"] / total_requests * 100) if total_requests > 0 else 0

        return {
            "hits": self.stats["hits"],
            "misses": self.stats["misses"],
            "hit_rate_percent": round(hit_rate, 1),
            "total_requests": total_requests,
            "writes": self.stats["writes"],
            "write_failures": self.stats["write_failures"],
            "uptime_seconds": int(time.time() - self.stats["start_time"]),
        }


class DurableStore(ValueStore):
    """
    One pickle file per entry, named <identifier>-<fingerprint>, in a flat root.

    Entries are never removed here; delete a file to force recomputation.
    """

    def __init__(self, root: Optional[os.PathLike] = None, deriver: Optional[KeyDeriver] = None):
        super().__init__(deriver)
        if root is None:
            root = Path.cwd() / "cache"

        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"cannot create cache directory {self.root}: {e}") from e

        logger.info(f"DurableStore initialized at {self.root}")

    def path_for(self, identifier: str, fingerprint: int) -> Path:
        name = _UNSAFE_FILENAME_CHARS.sub("_", identifier)[:_MAX_NAME_CHARS] or "anonymous"
        return self.root / f"{name}-{fingerprint}"

    def location(self, identifier: str, fingerprint: int) -> str:
        return str(self.path_for(identifier, fingerprint))

    def seeded_fingerprint(self, identifier: str, seed: int) -> int:
        """The raw seed; the identifier already prefixes the file name."""
        return self.deriver.derive_seeded(seed)

    def backing(self) -> str:
        return str(self.root)

    def lookup(self, fingerprint: int, identifier: str = "anonymous",
               expected_type: Optional[type] = None) -> Lookup:
        path = self.path_for(identifier, fingerprint)
        try:
            if not path.exists():
                return MISS
        except OSError as e:
            raise StorageIOError(f"cannot check cache record {path}: {e}") from e

        try:
            with open(path, "rb") as f:
                value = pickle.load(f)
        except (OSError, EOFError, pickle.UnpicklingError, AttributeError, ImportError,
                IndexError, TypeError, ValueError) as e:
            raise DeserializationError(f"cannot read cache record {path}: {e}") from e

        if expected_type is not None and not isinstance(value, expected_type):
            raise DeserializationError(
                f"cache record {path} holds {type(value).__name__}, "
                f"expected {getattr(expected_type, '__name__', expected_type)}"
            )
        return Lookup(True, value)

    def store(self, fingerprint: int, result: Any, identifier: str = "anonymous") -> None:
        path = self.path_for(identifier, fingerprint)
        try:
            payload = pickle.dumps(result, protocol=pickle.HIGHEST_PROTOCOL)
        except Exception as e:  # noqa: BLE001
            raise SerializationError(f"cannot serialize result for {path.name}: {e}") from e

        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=_TMP_PREFIX, dir=self.root)
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageIOError(f"cannot write cache record {path}: {e}") from e

        logger.debug(f"Stored {path.name} ({len(payload)} bytes)")

    def entries(self) -> List[Path]:
        """All committed records in the root, sorted by name."""
        return sorted(
            p for p in self.root.iterdir()
            if p.is_file() and not p.name.startswith(_TMP_PREFIX)
        )


class TaggedValue(NamedTuple):
    type_tag: type
    value: Any


class VolatileStore(ValueStore):
    """
    In-process table of fingerprint → TaggedValue, guarded by a lock.

    Hits return the stored object itself, not a copy: mutating a returned
    list or dict changes what later hits see.
    """

    def __init__(self, deriver: Optional[KeyDeriver] = None):
        super().__init__(deriver)
        self._data: Dict[int, TaggedValue] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def location(self, identifier: str, fingerprint: int) -> str:
        return MEMORY_LOCATION

    def backing(self) -> str:
        return MEMORY_LOCATION

    def lookup(self, fingerprint: int, identifier: str = "anonymous",
               expected_type: Optional[type] = None) -> Lookup:
        with self._lock:
            entry = self._data.get(fingerprint)
        if entry is None:
            return MISS

        if expected_type is not None and not issubclass(entry.type_tag, expected_type):
            raise TypeMismatchError(
                f"entry {fingerprint} holds {entry.type_tag.__name__}, "
                f"expected {getattr(expected_type, '__name__', expected_type)}"
            )
        return Lookup(True, entry.value)

    def store(self, fingerprint: int, result: Any, identifier: str = "anonymous") -> None:
        with self._lock:
            self._data[fingerprint] = TaggedValue(type(result), result)
