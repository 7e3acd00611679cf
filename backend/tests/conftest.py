"""
Pytest fixtures for retail_pos tests.

Provides an in-memory app, a clean database per test, and a few stocked
products and users to build on.
"""

import pytest

from retail_pos import create_app
from retail_pos.extensions import db
from retail_pos.models.auth import ROLE_CASHIER
from retail_pos.repositories import (
    ProductRepository,
    SqlInventoryRepository,
    SqlNotificationRepository,
    SqlSaleRepository,
)
from retail_pos.services import auth_service
from retail_pos.services.inventory_service import InventoryService
from retail_pos.services.notifications_service import NotificationService
from retail_pos.services.products_service import ProductService
from retail_pos.services.sales_service import SaleService


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'SALE_LOCK_INVENTORY': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


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
        db.session.expunge_all()


@pytest.fixture(scope='function')
def notification_service(db_session):
    return NotificationService(SqlNotificationRepository())


@pytest.fixture(scope='function')
def inventory_service(db_session, notification_service):
    return InventoryService(SqlInventoryRepository(), notification_service)


@pytest.fixture(scope='function')
def product_service(db_session):
    return ProductService(ProductRepository(), SqlInventoryRepository(), default_reorder_threshold=5)


@pytest.fixture(scope='function')
def sale_service(db_session, notification_service):
    return SaleService(SqlSaleRepository(), SqlInventoryRepository(), notification_service)


def make_product(product_service, inventory_service, *, sku, price=100, opening_stock=10, threshold=5):
    """Create a product with its inventory row, then set opening stock and threshold."""
    product = product_service.create_product({
        "sku": sku,
        "name": f"Product {sku}",
        "category": "General",
        "unit": "pcs",
        "cost_price_cents": price // 2,
        "selling_price_cents": price,
    })
    inventory_service.update_reorder_threshold(product.id, threshold)
    if opening_stock:
        inventory_service.adjust_opening_stock(product.id, opening_stock)
    return product


@pytest.fixture(scope='function')
def product_a(product_service, inventory_service):
    """10 on hand, reorder at 5, sells for 100 cents."""
    return make_product(product_service, inventory_service, sku="PROD-A-001", price=100, opening_stock=10)


@pytest.fixture(scope='function')
def product_b(product_service, inventory_service):
    """50 on hand, reorder at 5, sells for 250 cents."""
    return make_product(product_service, inventory_service, sku="PROD-B-001", price=250, opening_stock=50)


@pytest.fixture(scope='function')
def cashier(db_session):
    return auth_service.create_user("cashier@shop.test", "Password123", "Front Counter", ROLE_CASHIER, "0700000001")
