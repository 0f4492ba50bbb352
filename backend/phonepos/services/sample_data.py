# Overview: Seed data for STORE_MODE="sample" (local, no remote database).

from __future__ import annotations

import logging

from ..extensions import db
from ..models import CatalogItem, Category
from .category_service import create_category
from .inventory_service import InventoryRepository

logger = logging.getLogger(__name__)

SAMPLE_CATEGORIES = [
    ("phones", "Phones"),
    ("featured_phones", "Featured Phones"),
    ("button_phones", "Button Phones"),
    ("accessories", "Accessories"),
    ("cases", "Cases"),
    ("chargers", "Chargers"),
    ("tablets", "Tablets"),
    ("smart_watches", "Smart Watches"),
]

SAMPLE_ITEMS = [
    (
        {
            "name": "iPhone 15 Pro", "brand": "Apple", "category": "phones", "sku": "APL-IP15P-128",
            "price_cents": 99999, "cost_price_cents": 85000, "min_stock_level": 1,
            "description": "A17 Pro chip, titanium design",
            "specifications": {"storage": "128GB", "color": "Natural Titanium", "display": "6.1 inch"},
            "has_warranty": True, "warranty_duration": 12, "warranty_unit": "months",
        },
        ["356789101234561", "356789101234562", "356789101234563"],
    ),
    (
        {
            "name": "Galaxy S24 Ultra", "brand": "Samsung", "category": "phones", "sku": "SAM-GS24U-256",
            "price_cents": 119999, "cost_price_cents": 100000, "min_stock_level": 1,
            "specifications": {"storage": "256GB", "color": "Titanium Black", "display": "6.8 inch"},
            "has_warranty": True, "warranty_duration": 1, "warranty_unit": "years",
        },
        ["352099001761481", "352099001761482"],
    ),
    (
        {
            "name": "Nokia 105", "brand": "Nokia", "category": "button_phones", "sku": "NOK-105-BLK",
            "price_cents": 1499, "cost_price_cents": 1100, "min_stock_level": 2,
            "specifications": {"color": "Charcoal"},
        },
        ["351234567890121", "351234567890122", "351234567890123", "351234567890124"],
    ),
    (
        {
            "name": "AirPods Pro (2nd Gen)", "brand": "Apple", "category": "accessories", "sku": "APL-APP-GEN2",
            "price_cents": 24999, "cost_price_cents": 18000, "stock_quantity": 25, "min_stock_level": 10,
            "specifications": {"battery": "30 hours", "features": "ANC, Spatial Audio"},
        },
        None,
    ),
    (
        {
            "name": "iPhone 15 Silicone Case", "brand": "Apple", "category": "cases", "sku": "APL-IP15-CASE-BLK",
            "price_cents": 4999, "cost_price_cents": 2500, "stock_quantity": 2, "min_stock_level": 20,
            "specifications": {"material": "Silicone", "color": "Black"},
        },
        None,
    ),
    (
        {
            "name": "20W USB-C Charger", "brand": "Apple", "category": "chargers", "sku": "APL-20W-USBC",
            "price_cents": 1999, "cost_price_cents": 1200, "stock_quantity": 40, "min_stock_level": 10,
            "specifications": {"output": "20W"},
        },
        None,
    ),
    (
        {
            "name": "iPad Air (5th Gen)", "brand": "Apple", "category": "tablets", "sku": "APL-IPAD-AIR5-64",
            "price_cents": 59999, "cost_price_cents": 48000, "stock_quantity": 0, "min_stock_level": 5,
            "specifications": {"storage": "64GB"},
        },
        None,
    ),
]


def seed_sample_data(session=None) -> int:
    """Idempotent: does nothing if the catalog already has items. Returns items created."""
    session = session or db.session
    if session.query(CatalogItem.id).first() is not None:
        return 0

    for name, display in SAMPLE_CATEGORIES:
        if session.query(Category.id).filter_by(name=name).first() is None:
            create_category(name, display, session=session)

    inventory = InventoryRepository(session)
    for payload, serials in SAMPLE_ITEMS:
        inventory.create(dict(payload), serials=serials)

    logger.info("Seeded %d sample catalog items", len(SAMPLE_ITEMS))
    return len(SAMPLE_ITEMS)
