# backend/phonepos/services/inventory_service.py
"""
Inventory Repository - catalog items for general merchandise and phones.

SOFT DELETE RULE: a catalog item referenced by any sale line or sold IMEI
unit is never physically removed. delete() re-routes to status="discontinued"
so historical sales keep a valid reference; unreferenced items are hard-deleted.

STATUS MAINTENANCE: whenever stock changes, an item that is not discontinued
is moved to out_of_stock at 0 and back to active when restocked.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import current_app, has_app_context
from sqlalchemy import or_

from ..extensions import db
from ..models import CatalogItem, SaleLine, SerialUnit, parse_specs
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_catalog_item,
    DuplicateError,
    NotFoundError,
    ValidationError,
)
from .concurrency import write_transaction

logger = logging.getLogger(__name__)

DEFAULT_SERIALIZED_CATEGORIES = ("phones", "featured_phones", "button_phones")

CATALOG_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={
        "category", "name", "brand", "sku", "description", "image_url",
        "price_cents", "cost_price_cents", "stock_quantity", "min_stock_level",
        "specifications", "status", "has_warranty", "warranty_duration", "warranty_unit",
    },
    required_on_create={"category", "name", "brand", "sku", "price_cents"},
)


def serialized_categories() -> tuple[str, ...]:
    if has_app_context():
        return tuple(current_app.config.get("SERIALIZED_CATEGORIES", DEFAULT_SERIALIZED_CATEGORIES))
    return DEFAULT_SERIALIZED_CATEGORIES


def is_serialized(item_or_category) -> bool:
    category = getattr(item_or_category, "category", item_or_category)
    return category in serialized_categories()


def sync_stock_status(item: CatalogItem) -> None:
    """Keep status in line with stock (informational, never blocks a write)."""
    if item.status == "discontinued":
        return
    if item.stock_quantity == 0:
        item.status = "out_of_stock"
    elif item.status == "out_of_stock":
        item.status = "active"


@dataclass(frozen=True)
class ItemFilter:
    category: str | None = None
    status: str | None = None
    search: str | None = None
    serialized_only: bool = False


@dataclass(frozen=True)
class DeleteOutcome:
    """Result of delete(): "deleted" (row removed) or "soft_deleted" (discontinued)."""
    outcome: str
    item_id: int
    item: CatalogItem | None = None

    @property
    def soft_deleted(self) -> bool:
        return self.outcome == "soft_deleted"

    def to_dict(self) -> dict:
        data = {"outcome": self.outcome, "item_id": self.item_id}
        if self.item is not None:
            data["item"] = self.item.to_dict()
        return data


class InventoryRepository:
    """Catalog reads and writes over an injected SQLAlchemy session."""

    def __init__(self, session=None):
        self.session = session or db.session

    # Reads

    def list(self, item_filter: ItemFilter | None = None) -> list[CatalogItem]:
        f = item_filter or ItemFilter()
        q = self.session.query(CatalogItem)

        if f.category:
            q = q.filter(CatalogItem.category == f.category)
        if f.serialized_only:
            q = q.filter(CatalogItem.category.in_(serialized_categories()))
        if f.status:
            q = q.filter(CatalogItem.status == f.status)
        if f.search:
            term = f"%{f.search.strip()}%"
            q = q.filter(or_(
                CatalogItem.name.ilike(term),
                CatalogItem.brand.ilike(term),
                CatalogItem.sku.ilike(term),
            ))

        return q.order_by(CatalogItem.created_at.desc(), CatalogItem.id.desc()).all()

    def get(self, item_id: int) -> CatalogItem:
        item = self.session.get(CatalogItem, item_id)
        if item is None:
            raise NotFoundError(f"Catalog item {item_id} not found")
        return item

    def is_referenced(self, item_id: int) -> bool:
        """True when a sale line or a sold unit points at the item."""
        if self.session.query(SaleLine.id).filter(SaleLine.catalog_item_id == item_id).first() is not None:
            return True
        sold = self.session.query(SerialUnit.id).filter(
            SerialUnit.catalog_item_id == item_id,
            SerialUnit.is_sold.is_(True),
        )
        return sold.first() is not None

    def low_stock_items(self) -> list[CatalogItem]:
        return (
            self.session.query(CatalogItem)
            .filter(
                CatalogItem.stock_quantity <= CatalogItem.min_stock_level,
                CatalogItem.status != "discontinued",
            )
            .order_by(CatalogItem.stock_quantity.asc(), CatalogItem.name.asc())
            .all()
        )

    def count(self) -> int:
        return self.session.query(CatalogItem).count()

    # Writes

    def _ensure_unique_sku(self, sku: str, exclude_id: int | None = None) -> None:
        q = self.session.query(CatalogItem.id).filter(CatalogItem.sku == sku)
        if exclude_id is not None:
            q = q.filter(CatalogItem.id != exclude_id)
        if q.first() is not None:
            raise DuplicateError(f"SKU {sku!r} already exists")

    def create(self, payload: dict, serials: list[str] | None = None) -> CatalogItem:
        """
        Validate and persist a new catalog item.

        For serialized (phone) categories an optional list of IMEIs is
        registered in the same transaction. If stock_quantity is omitted it
        defaults to the number of serials supplied.
        """
        patch = validate_payload(model=CatalogItem, payload=payload, policy=CATALOG_ITEM_POLICY, partial=False)
        enforce_rules_catalog_item(patch)

        serialized = is_serialized(patch["category"])
        if serials and not serialized:
            raise ValidationError(f"Category {patch['category']!r} does not track serial numbers")

        specs = parse_specs(patch.get("specifications"), serialized=serialized)
        patch["specifications"] = specs.to_dict()

        if "stock_quantity" not in patch or patch["stock_quantity"] is None:
            patch["stock_quantity"] = len(serials or [])

        self._ensure_unique_sku(patch["sku"])

        from .imei_service import ImeiRegistry

        with write_transaction(self.session, what="create catalog item"):
            item = CatalogItem(**patch)
            sync_stock_status(item)
            self.session.add(item)
            self.session.flush()

            registry = ImeiRegistry(self.session)
            for serial in serials or []:
                registry.register(item.id, serial, commit=False, count_stock=False)

        return item

    def create_phone(self, payload: dict, serials: list[str]) -> CatalogItem:
        """Stock a phone together with its IMEI list (one transaction)."""
        if not is_serialized(payload.get("category")):
            raise ValidationError("create_phone requires a serialized category")
        return self.create(payload, serials=serials)

    def update(self, item_id: int, payload: dict) -> CatalogItem:
        item = self.get(item_id)
        patch = validate_payload(model=CatalogItem, payload=payload, policy=CATALOG_ITEM_POLICY, partial=True)
        enforce_rules_catalog_item(patch, current=item)

        category = patch.get("category", item.category)
        if "specifications" in patch or "category" in patch:
            raw = patch.get("specifications", item.specifications)
            patch["specifications"] = parse_specs(raw, serialized=is_serialized(category)).to_dict()

        if "sku" in patch and patch["sku"] != item.sku:
            self._ensure_unique_sku(patch["sku"], exclude_id=item.id)

        with write_transaction(self.session, what="update catalog item"):
            for key, value in patch.items():
                setattr(item, key, value)
            if "stock_quantity" in patch and "status" not in patch:
                sync_stock_status(item)

        return item

    def delete(self, item_id: int) -> DeleteOutcome:
        item = self.get(item_id)

        if self.is_referenced(item_id):
            with write_transaction(self.session, what="discontinue catalog item"):
                item.status = "discontinued"
            logger.info("Catalog item %s has sales history; discontinued instead of deleted", item_id)
            return DeleteOutcome(outcome="soft_deleted", item_id=item_id, item=item)

        with write_transaction(self.session, what="delete catalog item"):
            self.session.query(SerialUnit).filter(SerialUnit.catalog_item_id == item_id).delete(
                synchronize_session=False
            )
            self.session.delete(item)

        return DeleteOutcome(outcome="deleted", item_id=item_id)

    def adjust_stock(self, item: CatalogItem, delta: int) -> None:
        """Apply a stock delta inside the caller's transaction (no commit)."""
        new_qty = item.stock_quantity + delta
        if new_qty < 0:
            raise ValidationError(
                f"Insufficient stock for {item.name}",
                issues=[f"{item.name}: requested {-delta}, on hand {item.stock_quantity}"],
            )
        item.stock_quantity = new_qty
        sync_stock_status(item)
