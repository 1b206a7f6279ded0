# Overview: Pytest coverage for product catalog behavior.

import pytest

from bizledger.errors import ConflictError, NotFoundError, StorageFailure, ValidationError
from bizledger.services import inventory_service, products_service
from bizledger.services.document_store import get_document_store, product_key


class TestCreateProduct:

    def test_generated_sku(self, tenant_a):
        product = products_service.create_product(tenant_a.tenant_id, {"name": "Loose Item", "cost_price_cents": 250})

        assert product.sku.startswith("SKU")
        assert product.average_cost_cents == 250
        assert product.stock_on_hand == 0

    def test_duplicate_sku_conflict(self, tenant_a, widget):
        with pytest.raises(ConflictError):
            products_service.create_product(tenant_a.tenant_id, {"sku": "SKU1", "name": "Copy", "cost_price_cents": 1})

    def test_same_sku_in_other_tenant(self, tenant_a, tenant_b, widget):
        other = products_service.create_product(tenant_b.tenant_id, {"sku": "SKU1", "name": "Other", "cost_price_cents": 1})
        assert other.tenant_id == "beta"

    @pytest.mark.parametrize("payload", [
        {"cost_price_cents": 100},
        {"name": "No cost"},
        {"name": "Negative", "cost_price_cents": -1},
        {"name": "Float", "cost_price_cents": 10.5},
        {"name": "Tax", "cost_price_cents": 1, "tax_rate_bps": 10001},
        {"name": "Reorder", "cost_price_cents": 1, "reorder_level": -1},
        {"name": "Extra", "cost_price_cents": 1, "stock_on_hand": 50},
        {"name": "Bad/Sku", "cost_price_cents": 1, "sku": "A/B"},
    ])
    def test_invalid_payloads(self, tenant_a, payload):
        with pytest.raises(ValidationError):
            products_service.create_product(tenant_a.tenant_id, payload)


class TestReadProducts:

    def test_get_by_name_is_case_insensitive(self, tenant_a, widget):
        assert products_service.get_product_by_name(tenant_a.tenant_id, "  wIdGeT ").sku == "SKU1"

    def test_get_by_name_missing(self, tenant_a, widget):
        with pytest.raises(NotFoundError):
            products_service.get_product_by_name(tenant_a.tenant_id, "Sprocket")

    def test_corrupt_document(self, tenant_a, widget):
        get_document_store().write(product_key(tenant_a.tenant_id, "SKU1"), b"[1, 2")

        with pytest.raises(StorageFailure):
            products_service.get_product(tenant_a.tenant_id, "SKU1")
        assert products_service.list_products(tenant_a.tenant_id) == []

    def test_list_is_tenant_scoped(self, tenant_a, tenant_b, widget, gadget):
        assert {p.sku for p in products_service.list_products(tenant_a.tenant_id)} == {"SKU1", "SKU2"}
        assert products_service.list_products(tenant_b.tenant_id) == []


class TestUpdateProduct:

    def test_catalog_fields(self, tenant_a, stocked_widget):
        product = products_service.update_product(
            tenant_a.tenant_id, "SKU1", {"name": "Widget Pro", "selling_price_cents": 1800, "tax_rate_bps": 500}
        )

        assert product.name == "Widget Pro"
        assert product.selling_price_cents == 1800
        assert product.stock_on_hand == 10
        assert product.average_cost_cents == 1000

    @pytest.mark.parametrize("field", ["stock_on_hand", "average_cost_cents", "inventory_value_cents"])
    def test_valuation_fields_rejected(self, tenant_a, stocked_widget, field):
        with pytest.raises(ValidationError):
            products_service.update_product(tenant_a.tenant_id, "SKU1", {field: 1})

    def test_cost_price_edit_does_not_touch_average(self, tenant_a, stocked_widget):
        products_service.update_product(tenant_a.tenant_id, "SKU1", {"cost_price_cents": 4000})
        product = inventory_service.stock_in(tenant_a.tenant_id, "SKU1", quantity=10, cost_per_unit_cents=1000)
        assert product.average_cost_cents == 1000

    def test_missing_product(self, tenant_a):
        with pytest.raises(NotFoundError):
            products_service.update_product(tenant_a.tenant_id, "NOPE", {"name": "x"})


class TestDeleteProduct:

    def test_delete(self, tenant_a, widget):
        result = products_service.delete_product(tenant_a.tenant_id, "SKU1")

        assert result["sku"] == "SKU1"
        with pytest.raises(NotFoundError):
            products_service.get_product(tenant_a.tenant_id, "SKU1")

    def test_delete_missing(self, tenant_a):
        with pytest.raises(NotFoundError):
            products_service.delete_product(tenant_a.tenant_id, "SKU1")
