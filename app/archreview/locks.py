"""
Per-system serialization for lifecycle transitions.

Promote and revert write two documents plus the trail head of one system. Requests for the same
system code must not interleave; requests for different systems never wait on each other.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field

from sqlalchemy import text
from sqlalchemy.orm import Session

from app.archreview.errors import StorageError

logger = logging.getLogger(__name__)

_registry_lock = threading.Lock()


@dataclass
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0  # requests holding or waiting on ``lock``


_system_locks: dict[str, _Entry] = {}


def _checkout(system_code: str) -> threading.Lock:
    with _registry_lock:
        entry = _system_locks.get(system_code)
        if entry is None:
            entry = _system_locks[system_code] = _Entry()
        entry.users += 1
        return entry.lock


def _checkin(system_code: str) -> None:
    with _registry_lock:
        entry = _system_locks[system_code]
        entry.users -= 1
        if entry.users == 0:
            del _system_locks[system_code]


@contextmanager
def system_lock(s: Session, system_code: str, *, timeout: float = 10.0) -> Generator[None, None, None]:
    """
    Hold the lifecycle lock for ``system_code`` until the block exits.

    In-process waiters queue on a threading.Lock, dropped from the registry once nobody holds or
    waits on it. On PostgreSQL a transaction-scoped advisory lock is also taken so other worker
    processes serialize too; it is released when the session's transaction commits or rolls
    back, which must happen inside this block.
    """
    lock = _checkout(system_code)
    try:
        if not lock.acquire(timeout=timeout):
            logger.error("Timed out after %.1fs waiting for lifecycle lock systemCode=%s", timeout, system_code)
            raise StorageError(f"Timed out waiting for lifecycle lock on system {system_code}")
        try:
            if s.get_bind().dialect.name == "postgresql":
                s.execute(text("SELECT pg_advisory_xact_lock(hashtext(:key))"), {"key": f"lifecycle:{system_code}"})
            yield
        finally:
            lock.release()
    finally:
        _checkin(system_code)
