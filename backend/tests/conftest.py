"""
Pytest fixtures for shopledger tests.

Provides an in-memory database, a clean session per test, shops, products and
a movement engine bound to the default unit of work.
"""

from decimal import Decimal

import pytest

from shopledger import create_app
from shopledger.engine import MovementEngine
from shopledger.extensions import db
from shopledger.models import Product, Shop
from shopledger.services import stock_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'DEBUG',
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


@pytest.fixture(scope='function')
def runner(app):
    return app.test_cli_runner()


@pytest.fixture(scope='function')
def engine(db_session):
    return MovementEngine()


@pytest.fixture(scope='function')
def shop(db_session):
    """Shop A."""
    shop = Shop(name="Shop A", location="Main Street")
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def other_shop(db_session):
    """Shop B."""
    shop = Shop(name="Shop B", location="Harbour Road")
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def product(db_session):
    product = Product(name="Rice 1kg", sku="RICE-1", default_min_stock_level=Decimal("5"))
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def other_product(db_session):
    product = Product(name="Cooking Oil 1L", sku="OIL-1")
    db_session.add(product)
    db_session.commit()
    return product


def stock_up(shop, product, quantity, **kwargs):
    """Helper to receive stock in its own transaction."""
    row, _ = stock_service.add_stock(
        shop_id=shop.id,
        product_id=product.id,
        quantity=quantity,
        buy_price=kwargs.pop("buy_price", "2.50"),
        sale_price=kwargs.pop("sale_price", "4.00"),
        **kwargs,
    )
    return row


def quantity_of(shop, product) -> Decimal:
    """Quantity on hand as seen by a fresh query."""
    db.session.expire_all()
    return stock_service.get_stock_quantity(shop.id, product.id)
