# Overview: IMEI Registry - per-unit serial tracking for phone catalog items.

"""
IMEI Registry

Each physical phone is a SerialUnit under its catalog item. A unit is either
available (is_sold=False) or sold; sold units are permanent history.

ALLOCATION: check-and-mark happens in one conditional UPDATE
(... WHERE id = :id AND is_sold = false). If the row count is 0 another
checkout won the race and the caller gets AlreadySoldError, never a silent
double sale.

ORDERING: available units are returned oldest-first (created_at, id) so the
front of the list is the FIFO pick.
"""
from __future__ import annotations

from ..extensions import db
from ..models import CatalogItem, SerialUnit
from ..validation import (
    AlreadySoldError,
    ConflictError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)
from phonepos.time_utils import utcnow
from .concurrency import write_transaction


MAX_SERIAL_LENGTH = 32


def normalize_serial(value: str) -> str:
    """Strip and remove inner whitespace (scanners often pad IMEIs)."""
    if value is None:
        raise ValidationError("serial is required")
    normalized = "".join(str(value).split())
    if not normalized:
        raise ValidationError("serial is required")
    if len(normalized) > MAX_SERIAL_LENGTH:
        raise ValidationError(f"serial exceeds max length {MAX_SERIAL_LENGTH}")
    return normalized


class ImeiRegistry:
    def __init__(self, session=None):
        self.session = session or db.session

    def _require_serialized_item(self, catalog_item_id: int) -> CatalogItem:
        from .inventory_service import is_serialized

        item = self.session.get(CatalogItem, catalog_item_id)
        if item is None:
            raise NotFoundError(f"Catalog item {catalog_item_id} not found")
        if not is_serialized(item):
            raise ValidationError(f"Catalog item {catalog_item_id} does not track serial numbers")
        return item

    def find(self, catalog_item_id: int, serial: str) -> SerialUnit | None:
        return (
            self.session.query(SerialUnit)
            .filter_by(catalog_item_id=catalog_item_id, serial=serial)
            .first()
        )

    def list_available(self, catalog_item_id: int) -> list[SerialUnit]:
        return (
            self.session.query(SerialUnit)
            .filter(
                SerialUnit.catalog_item_id == catalog_item_id,
                SerialUnit.is_sold.is_(False),
            )
            .order_by(SerialUnit.created_at.asc(), SerialUnit.id.asc())
            .all()
        )

    def list_units(self, catalog_item_id: int, include_sold: bool = True) -> list[SerialUnit]:
        q = self.session.query(SerialUnit).filter(SerialUnit.catalog_item_id == catalog_item_id)
        if not include_sold:
            q = q.filter(SerialUnit.is_sold.is_(False))
        return q.order_by(SerialUnit.created_at.asc(), SerialUnit.id.asc()).all()

    def lookup(self, serial: str) -> list[SerialUnit]:
        """All units carrying this serial, across catalog items."""
        normalized = normalize_serial(serial)
        return (
            self.session.query(SerialUnit)
            .filter(SerialUnit.serial == normalized)
            .order_by(SerialUnit.id.asc())
            .all()
        )

    def register(
        self,
        catalog_item_id: int,
        serial: str,
        *,
        commit: bool = True,
        count_stock: bool = True,
    ) -> SerialUnit:
        """
        Create an available unit and add it to the item's stock. Raises
        DuplicateError if the serial already exists for this item (backed by a
        unique constraint as well).

        count_stock=False is for callers that already set stock_quantity to
        cover the units they register.
        """
        from .inventory_service import InventoryRepository

        normalized = normalize_serial(serial)
        item = self._require_serialized_item(catalog_item_id)

        if self.find(catalog_item_id, normalized) is not None:
            raise DuplicateError(f"Serial {normalized} already registered for item {catalog_item_id}")

        unit = SerialUnit(catalog_item_id=catalog_item_id, serial=normalized, is_sold=False)

        def _add():
            self.session.add(unit)
            if count_stock:
                InventoryRepository(self.session).adjust_stock(item, +1)
            self.session.flush()

        if not commit:
            _add()
            return unit

        with write_transaction(self.session, what="register serial"):
            _add()
        return unit

    def allocate(
        self,
        catalog_item_id: int,
        serial: str,
        sale_line_id: int | None = None,
        *,
        commit: bool = True,
    ) -> SerialUnit:
        """
        Mark a unit sold and link it to the sale line that consumed it.

        Raises NotFoundError if the serial does not exist for the item and
        AlreadySoldError if it was already sold (including losing a race).
        """
        normalized = normalize_serial(serial)
        unit = self.find(catalog_item_id, normalized)
        if unit is None:
            raise NotFoundError(f"Serial {normalized} not found for item {catalog_item_id}")
        if unit.is_sold:
            raise AlreadySoldError(f"Serial {normalized} is already sold")

        def _mark():
            updated = (
                self.session.query(SerialUnit)
                .filter(SerialUnit.id == unit.id, SerialUnit.is_sold.is_(False))
                .update(
                    {"is_sold": True, "sale_line_id": sale_line_id, "sold_at": utcnow()},
                    synchronize_session=False,
                )
            )
            if updated != 1:
                raise AlreadySoldError(f"Serial {normalized} is already sold")
            self.session.refresh(unit)

        if not commit:
            _mark()
            return unit

        with write_transaction(self.session, what="allocate serial"):
            _mark()
        return unit

    def release(self, serial_id: int) -> None:
        """Remove a mistakenly registered, unsold unit and take it off stock."""
        from .inventory_service import InventoryRepository

        unit = self.session.get(SerialUnit, serial_id)
        if unit is None:
            raise NotFoundError(f"Serial unit {serial_id} not found")
        if unit.is_sold:
            raise ConflictError(f"Serial {unit.serial} is sold and cannot be removed")
        item = self.session.get(CatalogItem, unit.catalog_item_id)

        with write_transaction(self.session, what="release serial"):
            removed = (
                self.session.query(SerialUnit)
                .filter(SerialUnit.id == serial_id, SerialUnit.is_sold.is_(False))
                .delete(synchronize_session=False)
            )
            if removed != 1:
                raise ConflictError(f"Serial {unit.serial} is sold and cannot be removed")
            # stock edited by hand may already be below the unit count
            if item is not None and item.stock_quantity > 0:
                InventoryRepository(self.session).adjust_stock(item, -1)
        self.session.expunge(unit)
