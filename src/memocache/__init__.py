"""
Memocache
Memoize pure functions to disk or memory under deterministic fingerprints

- DurableStore / VolatileStore: the two cache backends
- Memoized / memoize: turn a function into a self-caching callable
- Registry: let recursive functions memoize calls to themselves
"""

from .cache import DurableStore, Lookup, MISS, TaggedValue, ValueStore, VolatileStore
from .config import MemoConfig, load_config, make_store
from .errors import (
    DeserializationError, KeyDerivationError, MemoizationError, NotRegisteredError,
    SerializationError, StorageIOError, TypeMismatchError,
)
from .events import CacheEvent, EventEmitter, LoggingListener
from .key_generator import KeyDeriver, derive, hash_combine, structural_hash
from .memoize import Memoized, compose, log_start_stop, memoize
from .registry import (
    Registration, Registry, call_memoized, call_memoized_as, default_registry, register_or_get,
)

__all__ = [
    'DurableStore', 'Lookup', 'MISS', 'TaggedValue', 'ValueStore', 'VolatileStore',
    'MemoConfig', 'load_config', 'make_store',
    'DeserializationError', 'KeyDerivationError', 'MemoizationError', 'NotRegisteredError',
    'SerializationError', 'StorageIOError', 'TypeMismatchError',
    'CacheEvent', 'EventEmitter', 'LoggingListener',
    'KeyDeriver', 'derive', 'hash_combine', 'structural_hash',
    'Memoized', 'compose', 'log_start_stop', 'memoize',
    'Registration', 'Registry', 'call_memoized', 'call_memoized_as', 'default_registry',
    'register_or_get',
]
