"""Deterministic pseudo-random number generators seeded from strings."""

from __future__ import annotations

import random

_FNV_OFFSET = 0xCBF29CE484222325
_FNV_PRIME = 0x100000001B3
_MASK64 = (1 << 64) - 1
_SIGN64 = 1 << 63


def fnv_hash(s: str) -> int:
    """Return the 64-bit FNV-1a hash of the UTF-8 bytes of s as a signed integer."""
    h = _FNV_OFFSET
    for byte in s.encode("utf-8"):
        h ^= byte
        h = (h * _FNV_PRIME) & _MASK64
    return h - (1 << 64) if h >= _SIGN64 else h


def new_rand(seed: str) -> random.Random:
    """Return a generator whose output depends only on the seed string."""
    return random.Random(fnv_hash(seed) & _MASK64)