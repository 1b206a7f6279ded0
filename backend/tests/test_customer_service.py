# Overview: Pytest coverage for customer registry behavior.

import pytest

from bizledger.errors import ConflictError, ValidationError
from bizledger.services import customer_service


VALID_GSTIN = "27AAPFU0939F1ZV"


class TestCreateCustomer:

    def test_minimal_profile(self, tenant_a):
        customer = customer_service.create_customer(tenant_a.tenant_id, {"name": "Anita", "phone": "9876543210"})

        assert customer.customer_id.startswith("CUST-")
        assert customer.tax_id is None
        assert customer.status == "ENABLED"

    def test_gstin_is_upper_cased(self, tenant_a):
        customer = customer_service.create_customer(
            tenant_a.tenant_id, {"name": "Anita", "phone": "1", "tax_id": VALID_GSTIN.lower()}
        )
        assert customer.tax_id == VALID_GSTIN

    @pytest.mark.parametrize("tax_id", ["27AAPFU0939F1Z", "ABCDEFGHIJKLMNO", "27AAPFU0939F0ZV"])
    def test_malformed_gstin(self, tenant_a, tax_id):
        with pytest.raises(ValidationError):
            customer_service.create_customer(tenant_a.tenant_id, {"name": "Anita", "phone": "1", "tax_id": tax_id})

    @pytest.mark.parametrize("payload", [{"phone": "1"}, {"name": "Anita"}, {"name": "Anita", "phone": "1", "vip": True}])
    def test_required_and_unknown_fields(self, tenant_a, payload):
        with pytest.raises(ValidationError):
            customer_service.create_customer(tenant_a.tenant_id, payload)

    def test_duplicate_gstin_conflict(self, tenant_a):
        customer_service.create_customer(tenant_a.tenant_id, {"name": "First", "phone": "1", "gstin": VALID_GSTIN})

        with pytest.raises(ConflictError):
            customer_service.create_customer(tenant_a.tenant_id, {"name": "Second", "phone": "2", "tax_id": VALID_GSTIN})

    def test_same_gstin_in_other_tenant(self, tenant_a, tenant_b):
        customer_service.create_customer(tenant_a.tenant_id, {"name": "First", "phone": "1", "tax_id": VALID_GSTIN})
        other = customer_service.create_customer(tenant_b.tenant_id, {"name": "First", "phone": "1", "tax_id": VALID_GSTIN})
        assert other.tenant_id == "beta"


class TestListCustomers:

    def test_list(self, tenant_a, tenant_b):
        customer_service.create_customer(tenant_a.tenant_id, {"name": "One", "phone": "1"})
        customer_service.create_customer(tenant_a.tenant_id, {"name": "Two", "phone": "2"})

        assert {c.name for c in customer_service.list_customers(tenant_a.tenant_id)} == {"One", "Two"}
        assert customer_service.list_customers(tenant_b.tenant_id) == []
