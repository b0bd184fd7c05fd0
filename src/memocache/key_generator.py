#!/usr/bin/env python3
"""
Fingerprint derivation for memoized calls.

Implements:
- derive(identifier, args, kwargs) → deterministic 64-bit fingerprint
- derive_seeded(seed) → explicit, caller-owned fingerprint
- Same identifier + same arguments = same fingerprint (cache hit)
- Swapped arguments or another identifier = different fingerprint (cache miss)
"""

import hashlib
import logging
import secrets
from typing import Any, Iterable, Mapping, Optional

from .errors import KeyDerivationError

logger = logging.getLogger(__name__)

MASK_64 = (1 << 64) - 1
SEED = 0
GOLDEN_RATIO_64 = 0x9E3779B97F4A7C15


def hash_combine(seed: int, value_hash: int) -> int:
    """Order-sensitive combining step (boost::hash_combine widened to 64 bits)."""
    seed ^= (value_hash + GOLDEN_RATIO_64 + (seed << 6) + (seed >> 2)) & MASK_64
    return seed & MASK_64


def _digest(payload: bytes) -> int:
    return int.from_bytes(hashlib.blake2b(payload, digest_size=8).digest(), "big")


def structural_hash(value: Any) -> int:
    """
    Hash a single argument by structure.

    Builtin scalars are hashed from a type-tagged encoding so their hashes are
    the same in every process. Containers fold their members. Other hashable
    objects use hash(), which only holds within one process.
    """
    if value is None:
        return _digest(b"N")
    if isinstance(value, bool):
        return _digest(b"b1" if value else b"b0")
    if isinstance(value, int):
        return _digest(b"i" + str(value).encode())
    if isinstance(value, float):
        return _digest(b"f" + value.hex().encode())
    if isinstance(value, complex):
        return _digest(b"c" + value.real.hex().encode() + b"," + value.imag.hex().encode())
    if isinstance(value, str):
        return _digest(b"s" + value.encode("utf-8", "surrogatepass"))
    if isinstance(value, bytes):
        return _digest(b"y" + value)
    if isinstance(value, tuple):
        seed = _digest(b"t")
        for item in value:
            seed = hash_combine(seed, structural_hash(item))
        return seed
    if isinstance(value, frozenset):
        seed = _digest(b"z")
        for item_hash in sorted(structural_hash(item) for item in value):
            seed = hash_combine(seed, item_hash)
        return seed

    try:
        return hash(value) & MASK_64
    except TypeError as exc:
        raise KeyDerivationError(
            f"argument of type {type(value).__name__} is not hashable; "
            f"use an explicit seed for unhashable arguments"
        ) from exc


class KeyDeriver:
    """
    Fold an identifier and an ordered argument list into a fingerprint.

    Design:
    - fingerprint = fold(hash_combine, [identifier, *args, *sorted(kwargs)], SEED)
    - Positional order matters; keyword order does not
    - Fingerprints are not a stable on-disk format across versions of
      hash_combine or structural_hash
    """

    def __init__(self, seed: int = SEED):
        self.seed = seed & MASK_64

    def derive(self, identifier: str, args: Iterable[Any] = (),
               kwargs: Optional[Mapping[str, Any]] = None) -> int:
        seed = hash_combine(self.seed, structural_hash(identifier))
        for arg in args:
            seed = hash_combine(seed, structural_hash(arg))
        for name in sorted(kwargs or {}):
            seed = hash_combine(seed, structural_hash(name))
            seed = hash_combine(seed, structural_hash(kwargs[name]))

        logger.debug(f"Derived fingerprint {seed} for {identifier}")
        return seed

    def derive_seeded(self, seed: int, identifier: Optional[str] = None) -> int:
        """
        Explicit-seed escape hatch: the caller's seed stands in for the arguments.

        With an identifier, it is folded into the seed so two functions sharing
        a seed still get distinct fingerprints. Arguments are never hashed, so
        the caller owns the guarantee that the same seed always stands for the
        same result.
        """
        if isinstance(seed, bool) or not isinstance(seed, int):
            raise KeyDerivationError(f"explicit seed must be an int, got {type(seed).__name__}")
        seed &= MASK_64
        if identifier is None:
            return seed
        return hash_combine(seed, structural_hash(identifier))

    @staticmethod
    def random_seed() -> int:
        return secrets.randbits(64)


default_deriver = KeyDeriver()


def derive(identifier: str, args: Iterable[Any] = (),
           kwargs: Optional[Mapping[str, Any]] = None) -> int:
    return default_deriver.derive(identifier, args, kwargs)
