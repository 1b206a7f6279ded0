# Overview: Service-layer operations for concurrency; per-entity locking and storage retries.

from __future__ import annotations

import threading
import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import OperationalError

from ..errors import StorageFailure
from ..validation import clean_identifier


LockKey = tuple[str, str, str]


def product_lock_key(tenant_id: str, sku: str) -> LockKey:
    return (clean_identifier("tenant_id", tenant_id), "product", clean_identifier("sku", sku))


def invoice_lock_key(tenant_id: str, invoice_number: str) -> LockKey:
    return (clean_identifier("tenant_id", tenant_id), "invoice", clean_identifier("invoice_number", invoice_number))


def customer_registry_lock_key(tenant_id: str) -> LockKey:
    # Tax-id uniqueness is checked across the whole registry
    return (clean_identifier("tenant_id", tenant_id), "customers", "*")


class _LockEntry:
    __slots__ = ("lock", "refs")

    def __init__(self):
        self.lock = threading.RLock()
        self.refs = 0


class EntityLockRegistry:
    """
    One re-entrant lock per (tenant, entity kind, entity id).

    WHY: Every mutation is read-modify-write against a single stored
    document. Without a per-key lock two concurrent stock-outs can both read
    stock=5 and both write stock=0.

    DESIGN:
    - Locks are created on first use and dropped when nobody holds or
      waits on them, so the registry does not grow with the catalog.
    - hold() acquires multiple keys in sorted order to avoid lock-order
      deadlocks between invoice creation and cancellation.
    - Re-entrant: an invoice operation already holding a product lock may
      call stock_out() for that product.
    - Acquisition is bounded; expiry raises StorageFailure (retryable).

    NOTE: In-process only. Cross-process writers are caught by the
    document store's optimistic version check.
    """

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._entries: dict[LockKey, _LockEntry] = {}

    def _checkout(self, key: LockKey) -> _LockEntry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _LockEntry()
                self._entries[key] = entry
            entry.refs += 1
            return entry

    def _checkin(self, key: LockKey) -> None:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                return
            entry.refs -= 1
            if entry.refs <= 0:
                del self._entries[key]

    @contextmanager
    def hold(self, *keys: LockKey):
        ordered = sorted(set(keys))
        held: list[tuple[LockKey, _LockEntry]] = []
        try:
            for key in ordered:
                entry = self._checkout(key)
                if not entry.lock.acquire(timeout=self.timeout):
                    self._checkin(key)
                    raise StorageFailure(f"Timed out waiting for lock on {'/'.join(key)}")
                held.append((key, entry))
            yield
        finally:
            for key, entry in reversed(held):
                entry.lock.release()
                self._checkin(key)

    def active_keys(self) -> list[LockKey]:
        with self._guard:
            return sorted(self._entries.keys())


def get_entity_locks() -> EntityLockRegistry:
    return current_app.extensions["entity_locks"]


def run_with_retry(func, *, session, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a read-only storage operation with retry on transient failures.

    Retries on OperationalError (locked database, dropped connection).
    Only use for reads: a failed write may have partially applied.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
