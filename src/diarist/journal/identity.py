"""Identity derivation for journal entries.

An identity is the filename stem of an entry's record. It is derived from
the creation timestamp at one-second resolution; entries created within the
same second get a numeric suffix (``-2``, ``-3``, ...).

Everything here is pure so the collision policy can be tested without
touching storage.
"""

from __future__ import annotations

import re
from collections.abc import Collection
from datetime import datetime

from diarist.core.exceptions import IdentityExhaustedError

IDENTITY_FORMAT = "%Y-%m-%d_%H-%M-%S"
DEFAULT_MAX_ATTEMPTS = 1000

_IDENTITY_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2})(?:-(\d+))?$")


def base_identity(timestamp: datetime) -> str:
    """Return the suffix-free identity for a timestamp."""
    return timestamp.strftime(IDENTITY_FORMAT)


def derive_identity(
    timestamp: datetime,
    existing: Collection[str],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> str:
    """Return the first identity for ``timestamp`` not present in ``existing``.

    Args:
        timestamp: Creation time of the entry.
        existing: Identities already taken (persisted or reserved).
        max_attempts: Upper bound on candidates tried, base token included.

    Raises:
        IdentityExhaustedError: every candidate up to ``max_attempts`` is taken.
    """
    base = base_identity(timestamp)
    if base not in existing:
        return base
    for seq in range(2, max_attempts + 1):
        candidate = f"{base}-{seq}"
        if candidate not in existing:
            return candidate
    raise IdentityExhaustedError(f"No free identity for {base} after {max_attempts} attempts")


def is_valid_identity(identity: str | None) -> bool:
    return bool(identity) and _IDENTITY_RE.match(identity) is not None


def identity_sort_key(identity: str) -> tuple[str, int]:
    """Sort key that orders ``x-2`` before ``x-10``.

    Unrecognized identities sort by their raw text with sequence 0.
    """
    m = _IDENTITY_RE.match(identity)
    if not m:
        return (identity, 0)
    return (m.group(1), int(m.group(2) or 1))
