"""
Pytest fixtures for phonepos backend tests.

Provides the application on in-memory SQLite, a per-test clean database,
and small factories for catalog items, phones with IMEI units and sales.
"""

from datetime import datetime

import pytest

from phonepos import create_app
from phonepos.config import TestConfig
from phonepos.extensions import db
from phonepos.models import Sale, SaleLine
from phonepos.services.inventory_service import InventoryRepository


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
def inventory(db_session):
    return InventoryRepository(db_session)


@pytest.fixture(scope='function')
def charger(inventory):
    """General merchandise item with 10 units on hand."""
    return inventory.create({
        "category": "chargers",
        "name": "20W USB-C Charger",
        "brand": "Apple",
        "sku": "APL-20W",
        "price_cents": 1999,
        "cost_price_cents": 1200,
        "stock_quantity": 10,
        "min_stock_level": 2,
    })


@pytest.fixture(scope='function')
def phone(inventory):
    """Phone catalog entry stocked with two IMEI units."""
    return inventory.create(
        {
            "category": "phones",
            "name": "Galaxy S24",
            "brand": "Samsung",
            "sku": "SAM-S24",
            "price_cents": 79999,
            "cost_price_cents": 65000,
            "specifications": {"storage": "256GB", "color": "Black"},
            "has_warranty": True,
            "warranty_duration": 12,
            "warranty_unit": "months",
        },
        serials=["IMEI1", "IMEI2"],
    )


@pytest.fixture(scope='function')
def make_sale(db_session):
    """Factory: persist a sale with one line at an explicit timestamp."""
    def _make(item, when: datetime, quantity: int = 1, unit_price_cents=None,
              status: str = "completed", customer_name: str = "Walk-in"):
        price = item.price_cents if unit_price_cents is None else unit_price_cents
        total = quantity * price
        sale = Sale(
            customer_name=customer_name,
            subtotal_cents=total,
            total_cents=total,
            status=status,
            created_at=when,
        )
        db_session.add(sale)
        db_session.flush()
        db_session.add(SaleLine(
            sale_id=sale.id,
            catalog_item_id=item.id,
            item_name=item.name,
            item_sku=item.sku,
            quantity=quantity,
            unit_price_cents=price,
            line_total_cents=total,
            created_at=when,
        ))
        db_session.commit()
        return sale

    return _make
