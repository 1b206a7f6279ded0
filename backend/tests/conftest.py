"""
Pytest fixtures for BizLedger backend tests.

Provides test database setup, tenant fixtures, and test client.
"""

import pytest
from bizledger import create_app
from bizledger.extensions import db
from bizledger.models import TENANT_STATUS_SUSPENDED
from bizledger.services import inventory_service, products_service, tenant_service


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'LOCK_TIMEOUT_SECONDS': 5,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(config_overrides=TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def file_app(tmp_path):
    """
    Application on a file-backed SQLite database.

    Threaded tests need one connection per thread, which the shared
    in-memory database cannot give them.
    """
    config = dict(TEST_CONFIG)
    config['SQLALCHEMY_DATABASE_URI'] = f"sqlite:///{tmp_path / 'ledger.sqlite3'}"
    app = create_app(config_overrides=config)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture(scope='function')
def tenant_a(db_session):
    """ACTIVE tenant A (first tenant)."""
    return tenant_service.create_tenant("acme", "Acme Traders")


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """ACTIVE tenant B (second tenant)."""
    return tenant_service.create_tenant("beta", "Beta Stores")


@pytest.fixture(scope='function')
def suspended_tenant(db_session):
    tenant_service.create_tenant("frozen", "Frozen Goods")
    return tenant_service.set_tenant_status("frozen", TENANT_STATUS_SUSPENDED)


@pytest.fixture(scope='function')
def widget(tenant_a):
    """Product SKU1 in tenant A: cost 10.00, sells at 15.00 with 18% tax."""
    return products_service.create_product(tenant_a.tenant_id, {
        "sku": "SKU1",
        "name": "Widget",
        "category": "Hardware",
        "cost_price_cents": 1000,
        "selling_price_cents": 1500,
        "tax_rate_bps": 1800,
        "reorder_level": 5,
    })


@pytest.fixture(scope='function')
def stocked_widget(tenant_a, widget):
    """SKU1 with 10 units on hand at 10.00."""
    return inventory_service.stock_in(
        tenant_a.tenant_id, widget.sku, quantity=10, cost_per_unit_cents=1000, note="Opening stock"
    )


@pytest.fixture(scope='function')
def gadget(tenant_a):
    """Product SKU2 in tenant A, 20 units at 5.00; no tax."""
    products_service.create_product(tenant_a.tenant_id, {
        "sku": "SKU2",
        "name": "Gadget",
        "cost_price_cents": 500,
        "selling_price_cents": 900,
        "reorder_level": 2,
    })
    return inventory_service.stock_in(tenant_a.tenant_id, "SKU2", quantity=20, cost_per_unit_cents=500)


@pytest.fixture(scope='function')
def tenant_headers(tenant_a):
    return {"X-Tenant-Id": tenant_a.tenant_id}
