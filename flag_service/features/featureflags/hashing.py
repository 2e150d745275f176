"""Deterministic identifier bucketing for percentage rollouts.

Identifiers are hashed with MurmurHash3 (x64, 128-bit, seed 0) and the first
64-bit half of the digest, read as a signed integer, is reduced to a bucket
in ``[0, 99]``. The hash is seed-free so every process and host assigns an
identifier to the same bucket.

Two admission checks exist and are intentionally kept apart:

* :func:`admitted_inclusive` compares the 1-indexed bucket (``bucket + 1 <= p``)
  and backs user and group targeting.
* :func:`admitted_exclusive` compares the 0-indexed bucket (``bucket < p``)
  and backs gradual rollouts and A/B tests.

Both admit nobody at 0 and everybody at 100, but they disagree for some
identifiers at fractional percentages.
"""

from __future__ import annotations

import mmh3

BUCKET_COUNT = 100


def signed_hash(identifier: str) -> int:
    """Return the signed lower 64 bits of the MurmurHash3 x64 128 digest."""
    return mmh3.hash64(identifier.encode("utf-8"), seed=0, x64arch=True, signed=True)[0]


def bucket(identifier: str) -> int:
    """Map an identifier to a stable bucket in ``[0, 99]``."""
    return abs(signed_hash(identifier)) % BUCKET_COUNT


def admitted_inclusive(identifier: str, percentage: float) -> bool:
    """Admission used by user and group targeting."""
    return bucket(identifier) + 1 <= percentage


def admitted_exclusive(identifier: str, percentage: float) -> bool:
    """Admission used by gradual rollouts and A/B tests."""
    return bucket(identifier) < percentage


__all__ = [
    "BUCKET_COUNT",
    "admitted_exclusive",
    "admitted_inclusive",
    "bucket",
    "signed_hash",
]
