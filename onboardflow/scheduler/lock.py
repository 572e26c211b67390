"""Per-candidate processing locks.

Ticks may overlap, but within this process no two pipelines run for the
same candidate at once.  Ticks acquire without blocking: a tick that finds
a candidate locked skips it and the next tick picks it up.  Operator
writes wait briefly for the lock instead.
"""

from __future__ import annotations

import threading
import time
from uuid import UUID

_registry_lock = threading.Lock()
_held: dict[UUID, UUID] = {}


def acquire_candidate_lock(candidate_id: UUID, tick_id: UUID) -> bool:
    """Try to lock *candidate_id* for *tick_id*.

    Returns True if the lock was acquired, False if another tick holds it.
    """
    with _registry_lock:
        if candidate_id in _held:
            return False
        _held[candidate_id] = tick_id
        return True


def wait_for_candidate_lock(
    candidate_id: UUID,
    owner: UUID,
    timeout: float = 5.0,
    poll_interval: float = 0.05,
) -> bool:
    """Acquire the lock on *candidate_id*, waiting up to *timeout* seconds.

    Used by operator actions, which should not be dropped just because a
    tick is currently processing the candidate.
    """
    deadline = time.monotonic() + timeout
    while True:
        if acquire_candidate_lock(candidate_id, owner):
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(poll_interval)


def release_candidate_lock(candidate_id: UUID) -> None:
    """Release the lock on *candidate_id*.

    Safe to call even if the lock is not held.
    """
    with _registry_lock:
        _held.pop(candidate_id, None)


def get_lock_holder(candidate_id: UUID) -> UUID | None:
    """Return the tick currently processing *candidate_id*, or None."""
    with _registry_lock:
        return _held.get(candidate_id)


def locked_candidate_count() -> int:
    """Number of candidates being processed right now."""
    with _registry_lock:
        return len(_held)
