"""
Pytest fixtures for the store backend tests.

Provides the application on an in-memory database, a per-test clean session,
product factories and the test client.
"""

from decimal import Decimal

import pytest

from rgstore import create_app
from rgstore.extensions import db
from rgstore.models import Product, Sale, SaleItem
from rgstore.services import products_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'RGSTORE_API_KEY': None,
        'RGSTORE_LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Empty every table before each test."""
    db.session.remove()
    # Core deletes bypass the append-only ORM listeners
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()
    db.session.remove()


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory creating products through the catalog service (initial stock is ledgered)."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        patch = {
            "sku": f"SKU-{counter['n']:03d}",
            "name": f"Product {counter['n']}",
            "category": "General",
            "price": Decimal("10.00"),
            "cost": Decimal("6.00"),
            "stock": 10,
        }
        patch.update(overrides)
        return products_service.create_product(patch=patch)

    return _make


@pytest.fixture(scope='function')
def record_sale(db_session):
    """
    Insert a finished sale directly, with an explicit timestamp.

    Reporting tests need sales at fixed hours and days; stock is not touched.
    """
    def _record(created_at, lines, payment_method="cash"):
        sale = Sale(
            total_amount=sum((Decimal(price) * qty for _, qty, price in lines), Decimal("0.00")),
            payment_method=payment_method,
            created_at=created_at,
        )
        for product, qty, price in lines:
            sale.items.append(
                SaleItem(
                    product_id=product.id,
                    quantity=qty,
                    unit_price=Decimal(price),
                    subtotal=Decimal(price) * qty,
                )
            )
        db.session.add(sale)
        db.session.commit()
        return sale

    return _record


@pytest.fixture(scope='function')
def reload_product(db_session):
    """Fresh read of a product, bypassing the identity map."""
    def _reload(product_id: int) -> Product:
        db.session.expire_all()
        return db.session.get(Product, product_id)

    return _reload
