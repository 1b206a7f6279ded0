from .storage import StoredDocument
from .tenancy import Tenant, TENANT_STATUS_ACTIVE, TENANT_STATUS_SUSPENDED
from .inventory import Product, MovementRecord, ReversalReason
from .invoicing import Invoice, InvoiceLine, InvoicePayment
from .customers import Customer

__all__ = [
    'StoredDocument',
    'Tenant', 'TENANT_STATUS_ACTIVE', 'TENANT_STATUS_SUSPENDED',
    'Product', 'MovementRecord', 'ReversalReason',
    'Invoice', 'InvoiceLine', 'InvoicePayment',
    'Customer',
]
