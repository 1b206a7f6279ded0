# Overview: Keyed document store backed by a single SQL table; the engine's only persistence seam.

"""
Document Store

WHY: The ledger engine is written against a plain key-value contract
(exists / read / write / delete / list_by_prefix) so it never depends on
relational features it cannot count on, such as multi-row transactions.
This module implements that contract on SQLAlchemy.

DESIGN PRINCIPLES:
- Whole-object semantics: each write() commits on its own
- Reads bypass the session identity map so they always see committed state
- Read-only calls retry transient OperationalError; writes never retry
- Every SQLAlchemy failure surfaces as StorageFailure

KEY LAYOUT:
    tenants/{tenant_id}                          tenant master record
    tenant/{tenant_id}/products/{sku}
    tenant/{tenant_id}/movements/{sku}
    tenant/{tenant_id}/invoices/{invoice_number}
    tenant/{tenant_id}/customers/{customer_id}
"""

from __future__ import annotations

import json
from typing import Any

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import NotFoundError, StorageFailure, ValidationError
from ..models import StoredDocument
from ..validation import clean_identifier
from .concurrency import run_with_retry


# =============================================================================
# KEY HELPERS
# =============================================================================

def _segment(name: str, value: Any) -> str:
    return clean_identifier(name, value)


def tenant_key(tenant_id: str) -> str:
    return f"tenants/{_segment('tenant_id', tenant_id)}"


def tenants_prefix() -> str:
    return "tenants/"


def _tenant_scoped(tenant_id: str, collection: str, entity_name: str, entity_id: str | None) -> str:
    base = f"tenant/{_segment('tenant_id', tenant_id)}/{collection}/"
    if entity_id is None:
        return base
    return base + _segment(entity_name, entity_id)


def product_key(tenant_id: str, sku: str) -> str:
    return _tenant_scoped(tenant_id, "products", "sku", sku)


def products_prefix(tenant_id: str) -> str:
    return _tenant_scoped(tenant_id, "products", "sku", None)


def movements_key(tenant_id: str, sku: str) -> str:
    return _tenant_scoped(tenant_id, "movements", "sku", sku)


def movements_prefix(tenant_id: str) -> str:
    return _tenant_scoped(tenant_id, "movements", "sku", None)


def invoice_key(tenant_id: str, invoice_number: str) -> str:
    return _tenant_scoped(tenant_id, "invoices", "invoice_number", invoice_number)


def invoices_prefix(tenant_id: str) -> str:
    return _tenant_scoped(tenant_id, "invoices", "invoice_number", None)


def customer_key(tenant_id: str, customer_id: str) -> str:
    return _tenant_scoped(tenant_id, "customers", "customer_id", customer_id)


def customers_prefix(tenant_id: str) -> str:
    return _tenant_scoped(tenant_id, "customers", "customer_id", None)


# =============================================================================
# STORE
# =============================================================================

class DocumentStore:
    """
    SQL-backed implementation of the keyed document store contract.

    Constructed once by create_app() and held in app.extensions for the
    process lifetime; services fetch it with get_document_store().
    """

    def __init__(self, database, *, read_attempts: int = 3, backoff_base: float = 0.05):
        self._db = database
        self.read_attempts = max(1, read_attempts)
        self.backoff_base = backoff_base

    @property
    def session(self):
        return self._db.session

    def _read_op(self, func, description: str):
        try:
            return run_with_retry(
                func,
                session=self.session,
                attempts=self.read_attempts,
                backoff_base=self.backoff_base,
            )
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StorageFailure(f"Storage read failed ({description}): {exc.__class__.__name__}")

    def exists(self, key: str) -> bool:
        def _op():
            stmt = select(StoredDocument.key).where(StoredDocument.key == key)
            return self.session.execute(stmt).first() is not None
        return self._read_op(_op, key)

    def read(self, key: str) -> bytes:
        def _op():
            stmt = select(StoredDocument.body).where(StoredDocument.key == key)
            return self.session.execute(stmt).scalar_one_or_none()
        body = self._read_op(_op, key)
        if body is None:
            raise NotFoundError(f"Document {key} not found")
        return bytes(body)

    def list_by_prefix(self, prefix: str) -> list[str]:
        def _op():
            stmt = (
                select(StoredDocument.key)
                .where(StoredDocument.key.startswith(prefix, autoescape=True))
                .order_by(StoredDocument.key.asc())
            )
            return list(self.session.execute(stmt).scalars())
        return self._read_op(_op, f"prefix {prefix}")

    def write(self, key: str, body: bytes) -> None:
        """Create or replace a document. Never retried: the caller re-reads before retrying."""
        if not isinstance(body, (bytes, bytearray)):
            raise TypeError("document body must be bytes")
        try:
            doc = self.session.get(StoredDocument, key, populate_existing=True)
            if doc is None:
                self.session.add(StoredDocument(key=key, body=bytes(body)))
            else:
                doc.body = bytes(body)
            self.session.commit()
        except (IntegrityError, StaleDataError):
            self.session.rollback()
            raise StorageFailure(f"Concurrent write detected for {key}")
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StorageFailure(f"Storage write failed ({key}): {exc.__class__.__name__}")

    def delete(self, key: str) -> None:
        try:
            doc = self.session.get(StoredDocument, key, populate_existing=True)
            if doc is None:
                raise NotFoundError(f"Document {key} not found")
            self.session.delete(doc)
            self.session.commit()
        except StaleDataError:
            self.session.rollback()
            raise StorageFailure(f"Concurrent write detected for {key}")
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StorageFailure(f"Storage delete failed ({key}): {exc.__class__.__name__}")


def get_document_store() -> DocumentStore:
    """Return the store constructed for the running application."""
    return current_app.extensions["document_store"]


# =============================================================================
# JSON HELPERS
# =============================================================================

def decode_json(key: str, body: bytes) -> Any:
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise StorageFailure(f"Corrupt document at {key}")


def read_json(store: DocumentStore, key: str) -> Any | None:
    """Return the decoded document, or None when the key does not exist."""
    try:
        body = store.read(key)
    except NotFoundError:
        return None
    return decode_json(key, body)


def write_json(store: DocumentStore, key: str, data: Any) -> None:
    store.write(key, json.dumps(data, separators=(",", ":"), sort_keys=True).encode("utf-8"))
