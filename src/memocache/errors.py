"""Error taxonomy for the memoization layer."""

from __future__ import annotations


class MemoizationError(Exception):
    """Base class for every error raised by memocache."""


class KeyDerivationError(MemoizationError, TypeError):
    """An argument has no structural hash (list, dict, set, ...)."""


class SerializationError(MemoizationError):
    """A result could not be serialized for the durable store."""


class DeserializationError(MemoizationError):
    """A durable record could not be read back as the requested type."""


class TypeMismatchError(MemoizationError, TypeError):
    """A volatile entry holds a different type than the one requested."""


class NotRegisteredError(MemoizationError, LookupError):
    """call_memoized() was reached before register_or_get() for that function."""


class StorageIOError(MemoizationError, OSError):
    """Directory creation or another file-system operation failed."""
