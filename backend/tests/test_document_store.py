# Overview: Pytest coverage for the SQL-backed keyed document store.

from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError

from bizledger.errors import NotFoundError, StorageFailure, ValidationError
from bizledger.services.document_store import (
    get_document_store,
    movements_key,
    product_key,
    products_prefix,
    read_json,
    tenant_key,
    write_json,
)


class TestKeys:

    def test_layout(self):
        assert tenant_key("acme") == "tenants/acme"
        assert product_key("acme", "SKU1") == "tenant/acme/products/SKU1"
        assert movements_key("acme", "SKU1") == "tenant/acme/movements/SKU1"
        assert products_prefix("acme") == "tenant/acme/products/"

    @pytest.mark.parametrize("sku", ["", "  ", None, "a/b"])
    def test_bad_segments(self, sku):
        with pytest.raises(ValidationError):
            product_key("acme", sku)


class TestDocumentStore:

    def test_write_read_overwrite(self, db_session):
        store = get_document_store()
        store.write("tenant/acme/products/A", b"one")
        store.write("tenant/acme/products/A", b"two")

        assert store.exists("tenant/acme/products/A")
        assert store.read("tenant/acme/products/A") == b"two"

    def test_missing_document(self, db_session):
        store = get_document_store()
        assert not store.exists("tenant/acme/products/none")
        with pytest.raises(NotFoundError):
            store.read("tenant/acme/products/none")
        with pytest.raises(NotFoundError):
            store.delete("tenant/acme/products/none")
        assert read_json(store, "tenant/acme/products/none") is None

    def test_prefix_listing_is_literal(self, db_session):
        store = get_document_store()
        for key in ["tenant/acme/products/B", "tenant/acme/products/A", "tenant/acme_x/products/C",
                    "tenant/acme/movements/A"]:
            store.write(key, b"{}")

        assert store.list_by_prefix("tenant/acme/products/") == [
            "tenant/acme/products/A", "tenant/acme/products/B",
        ]
        # "_" must not act as a LIKE wildcard
        assert store.list_by_prefix("tenant/acme_") == ["tenant/acme_x/products/C"]

    def test_delete(self, db_session):
        store = get_document_store()
        write_json(store, "tenants/acme", {"tenant_id": "acme"})
        store.delete("tenants/acme")
        assert not store.exists("tenants/acme")

    def test_json_is_compact_and_sorted(self, db_session):
        store = get_document_store()
        write_json(store, "tenants/x", {"b": 1, "a": [1, 2]})
        assert store.read("tenants/x") == b'{"a":[1,2],"b":1}'

    def test_corrupt_json(self, db_session):
        store = get_document_store()
        store.write("tenants/x", b"{oops")
        with pytest.raises(StorageFailure):
            read_json(store, "tenants/x")

    def test_write_requires_bytes(self, db_session):
        with pytest.raises(TypeError):
            get_document_store().write("tenants/x", "text")

    def test_reads_retry_transient_errors(self, db_session, monkeypatch):
        store = get_document_store()
        store.write("tenants/x", b"{}")
        monkeypatch.setattr(store, "backoff_base", 0)
        real_execute = store.session.execute
        calls = {"n": 0}

        def flaky_execute(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                raise OperationalError("SELECT", {}, Exception("database is locked"))
            return real_execute(*args, **kwargs)

        with mock.patch.object(store.session, "execute", side_effect=flaky_execute):
            assert store.read("tenants/x") == b"{}"
        assert calls["n"] == 2

    def test_persistent_read_failure_is_storage_failure(self, db_session, monkeypatch):
        store = get_document_store()
        monkeypatch.setattr(store, "backoff_base", 0)
        error = OperationalError("SELECT", {}, Exception("disk I/O error"))

        with mock.patch.object(store.session, "execute", side_effect=error):
            with pytest.raises(StorageFailure) as exc_info:
                store.exists("tenants/x")
        assert exc_info.value.retryable
