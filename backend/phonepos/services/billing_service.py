# backend/phonepos/services/billing_service.py
"""
Billing Engine - turns a cart into a persisted Sale.

Both counter flows go through here: general merchandise (no serials) and
phone billing (one IMEI per line, quantity 1).

CHECKOUT ORDER:
1. validate cart + customer (no writes; itemized issues)
2. compute totals from the cart's price snapshots
3. one transaction: Sale + SaleLines + stock decrements + IMEI allocations

If any allocation loses a race, the whole transaction is rolled back and the
caller gets AllocationConflictError; no partial sale is ever committed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Iterable

from flask import current_app, has_app_context
from sqlalchemy import or_

from ..extensions import db
from ..models import CatalogItem, Sale, SaleLine, SALE_STATUSES, PAYMENT_METHODS
from ..money import clamp_percent, percent_of, to_decimal
from ..validation import (
    AllocationConflictError,
    AlreadySoldError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from phonepos.time_utils import end_of_day, start_of_day
from .concurrency import lock_for_update, write_transaction
from .imei_service import ImeiRegistry, normalize_serial
from .inventory_service import InventoryRepository, is_serialized

logger = logging.getLogger(__name__)

SALE_STATUS_TRANSITIONS = {
    "pending": {"completed", "cancelled"},
    "completed": {"cancelled"},
    "cancelled": set(),
}


# Cart (session state, never persisted)

@dataclass(frozen=True)
class CartLine:
    catalog_item_id: int
    quantity: int
    unit_price_cents: int
    serial: str | None = None

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents


@dataclass
class Cart:
    """
    Mutable cart owned by one billing session. Prices are snapshotted when a
    line is added, so a catalog price change mid-cart does not drift the bill.
    """
    lines: list[CartLine] = field(default_factory=list)

    def add_item(self, item: CatalogItem, quantity: int = 1, serial: str | None = None,
                 registry: ImeiRegistry | None = None) -> CartLine:
        if is_serialized(item):
            if serial is None:
                registry = registry or ImeiRegistry()
                taken = {line.serial for line in self.lines if line.catalog_item_id == item.id}
                available = [u.serial for u in registry.list_available(item.id) if u.serial not in taken]
                if not available:
                    raise ValidationError(f"No IMEI numbers available for {item.name}")
                serial = available[0]
            else:
                serial = normalize_serial(serial)
            if any(line.serial == serial and line.catalog_item_id == item.id for line in self.lines):
                raise ValidationError(f"IMEI {serial} is already in the bill")
            line = CartLine(catalog_item_id=item.id, quantity=1, unit_price_cents=item.price_cents, serial=serial)
            self.lines.append(line)
            return line

        for index, existing in enumerate(self.lines):
            if existing.catalog_item_id == item.id and existing.serial is None:
                merged = replace(existing, quantity=existing.quantity + quantity)
                self.lines[index] = merged
                return merged

        line = CartLine(catalog_item_id=item.id, quantity=quantity, unit_price_cents=item.price_cents)
        self.lines.append(line)
        return line

    def update_quantity(self, index: int, quantity: int) -> None:
        """Quantity <= 0 removes the line."""
        if quantity <= 0:
            self.remove_line(index)
            return
        self.lines[index] = replace(self.lines[index], quantity=quantity)

    def select_serial(self, index: int, serial: str) -> None:
        self.lines[index] = replace(self.lines[index], serial=normalize_serial(serial))

    def remove_line(self, index: int) -> None:
        del self.lines[index]

    def clear(self) -> None:
        self.lines.clear()

    @property
    def subtotal_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)


@dataclass(frozen=True)
class Customer:
    name: str
    phone: str | None = None


# Totals

@dataclass(frozen=True)
class TaxRule:
    name: str
    enabled: bool = False
    mode: str = "percent"  # "percent" of taxable base, or "fixed" cents
    value: Decimal = Decimal(0)

    def amount_cents(self, taxable_cents: int) -> int:
        if not self.enabled:
            return 0
        if self.mode == "fixed":
            return int(self.value)
        return percent_of(taxable_cents, self.value)


@dataclass(frozen=True)
class TaxConfig:
    gst: TaxRule = TaxRule("GST")
    cgst: TaxRule = TaxRule("CGST")

    @classmethod
    def from_config(cls, config) -> "TaxConfig":
        def rule(prefix: str) -> TaxRule:
            mode = config.get(f"{prefix}_MODE", "percent")
            if mode not in ("percent", "fixed"):
                raise ValueError(f"{prefix}_MODE must be 'percent' or 'fixed'")
            return TaxRule(
                name=prefix,
                enabled=bool(config.get(f"{prefix}_ENABLED", False)),
                mode=mode,
                value=to_decimal(config.get(f"{prefix}_VALUE", 0)),
            )
        return cls(gst=rule("GST"), cgst=rule("CGST"))

    @classmethod
    def current(cls) -> "TaxConfig":
        if has_app_context():
            return cls.from_config(current_app.config)
        return cls()


@dataclass(frozen=True)
class BillTotals:
    subtotal_cents: int
    discount_percent: Decimal
    discount_cents: int
    gst_cents: int
    cgst_cents: int
    total_cents: int
    clamped: bool = False

    @property
    def tax_cents(self) -> int:
        return self.gst_cents + self.cgst_cents

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "discount_percent": float(self.discount_percent),
            "discount_cents": self.discount_cents,
            "gst_cents": self.gst_cents,
            "cgst_cents": self.cgst_cents,
            "total_cents": self.total_cents,
            "clamped": self.clamped,
        }


def compute_totals(
    lines: Iterable[CartLine],
    discount_percent=0,
    taxes: TaxConfig | None = None,
) -> BillTotals:
    """
    subtotal = sum(qty * unit price snapshot)
    discount = subtotal * clamp(discount%, 0..100) / 100
    taxes    = each enabled tax on (subtotal - discount)
    total    = max(0, subtotal - discount + taxes)
    """
    taxes = taxes or TaxConfig()
    try:
        pct = clamp_percent(discount_percent or 0)
    except ValueError:
        raise ValidationError("discount_percent must be a number")

    subtotal = sum(line.line_total_cents for line in lines)
    discount = percent_of(subtotal, pct)

    taxable = subtotal - discount
    gst = taxes.gst.amount_cents(taxable)
    cgst = taxes.cgst.amount_cents(taxable)

    total = subtotal - discount + gst + cgst
    clamped = total < 0
    if clamped:
        total = 0

    return BillTotals(
        subtotal_cents=subtotal,
        discount_percent=pct,
        discount_cents=discount,
        gst_cents=gst,
        cgst_cents=cgst,
        total_cents=total,
        clamped=clamped,
    )


# Engine

class BillingEngine:
    def __init__(self, session=None, *, inventory: InventoryRepository | None = None,
                 registry: ImeiRegistry | None = None, taxes: TaxConfig | None = None):
        self.session = session or db.session
        self.inventory = inventory or InventoryRepository(self.session)
        self.registry = registry or ImeiRegistry(self.session)
        self.taxes = taxes

    def validate(self, cart: Iterable[CartLine], customer: Customer) -> dict[int, CatalogItem]:
        """
        Re-check the cart against current state. Returns the loaded catalog
        items by id. Raises ValidationError (input problems) or, when the only
        problem is that chosen serials were sold meanwhile,
        AllocationConflictError. Both carry line-numbered issues.
        """
        lines = list(cart)
        issues: list[str] = []
        sold_issues: list[str] = []

        if customer is None or not (customer.name or "").strip():
            issues.append("missing customer")
        if not lines:
            issues.append("empty cart")

        items: dict[int, CatalogItem] = {}
        requested: dict[int, int] = {}
        first_line: dict[int, int] = {}
        seen_serials: set[tuple[int, str]] = set()

        for n, line in enumerate(lines, start=1):
            item = items.get(line.catalog_item_id) or self.session.get(CatalogItem, line.catalog_item_id)
            if item is None:
                issues.append(f"unknown item for line {n}")
                continue
            items[item.id] = item

            if not isinstance(line.quantity, int) or isinstance(line.quantity, bool) or line.quantity <= 0:
                issues.append(f"invalid quantity for line {n}")
                continue
            if not isinstance(line.unit_price_cents, int) or isinstance(line.unit_price_cents, bool):
                issues.append(f"invalid unit price for line {n}")
                continue
            if item.status == "discontinued":
                issues.append(f"item discontinued for line {n}")

            requested[item.id] = requested.get(item.id, 0) + line.quantity
            first_line.setdefault(item.id, n)

            if is_serialized(item):
                if not line.serial:
                    issues.append(f"missing serial for line {n}")
                    continue
                if line.quantity != 1:
                    issues.append(f"quantity must be 1 for serialized line {n}")
                key = (item.id, line.serial)
                if key in seen_serials:
                    issues.append(f"duplicate serial for line {n}")
                    continue
                seen_serials.add(key)
                available = {u.serial for u in self.registry.list_available(item.id)}
                if line.serial not in available:
                    if self.registry.find(item.id, line.serial) is None:
                        issues.append(f"serial not found for line {n}")
                    else:
                        sold_issues.append(f"serial already sold for line {n}")
            elif line.serial:
                issues.append(f"serial not applicable for line {n}")

        for item_id, qty in requested.items():
            if qty > items[item_id].stock_quantity:
                issues.append(f"insufficient stock for line {first_line[item_id]}")

        if issues:
            raise ValidationError("Cart cannot be billed", issues=issues + sold_issues)
        if sold_issues:
            raise AllocationConflictError(
                "Selected IMEI was sold by another sale; refresh availability and reselect",
                issues=sold_issues,
            )
        return items

    def quote(self, cart: Iterable[CartLine], discount_percent=0) -> BillTotals:
        return compute_totals(cart, discount_percent, self.taxes or TaxConfig.current())

    def checkout(
        self,
        cart: Iterable[CartLine],
        customer: Customer,
        *,
        discount_percent=0,
        payment_method: str = "cash",
        notes: str | None = None,
        status: str = "completed",
    ) -> Sale:
        lines = list(cart)

        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
        if status not in ("pending", "completed"):
            raise ValidationError("New sales must be pending or completed")

        items = self.validate(lines, customer)
        totals = self.quote(lines, discount_percent)

        with write_transaction(self.session, what="create sale"):
            sale = Sale(
                customer_name=customer.name.strip(),
                customer_phone=(customer.phone or "").strip() or None,
                subtotal_cents=totals.subtotal_cents,
                discount_percent=totals.discount_percent,
                discount_cents=totals.discount_cents,
                gst_cents=totals.gst_cents,
                cgst_cents=totals.cgst_cents,
                total_cents=totals.total_cents,
                audit_flag=totals.clamped,
                payment_method=payment_method,
                status=status,
                notes=notes,
            )
            self.session.add(sale)
            self.session.flush()

            for n, line in enumerate(lines, start=1):
                item = items[line.catalog_item_id]
                sale_line = SaleLine(
                    sale_id=sale.id,
                    catalog_item_id=item.id,
                    item_name=item.name,
                    item_sku=line.serial or item.sku,
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    line_total_cents=line.quantity * line.unit_price_cents,
                )
                self.session.add(sale_line)
                self.session.flush()

                if line.serial:
                    try:
                        self.registry.allocate(item.id, line.serial, sale_line.id, commit=False)
                    except AlreadySoldError:
                        logger.warning("Sale for %s rolled back: serial on line %s sold concurrently",
                                       customer.name, n)
                        raise AllocationConflictError(
                            "Selected IMEI was sold by another sale; refresh availability and reselect",
                            issues=[f"serial already sold for line {n}"],
                        )

                self.inventory.adjust_stock(item, -line.quantity)

        if totals.clamped:
            logger.warning("Sale %s total was negative and clamped to 0; flagged for audit", sale.id)
        logger.info("Sale %s committed: %d lines, total_cents=%d", sale.id, len(lines), sale.total_cents)
        return sale


# Sale reads and status

def get_sale(sale_id: int, session=None) -> Sale:
    session = session or db.session
    sale = session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale


def list_sales(*, start=None, end=None, status: str | None = None,
               search: str | None = None, limit: int | None = None, session=None) -> list[Sale]:
    """start/end are dates (inclusive, whole days)."""
    session = session or db.session
    q = session.query(Sale)
    if start is not None:
        q = q.filter(Sale.created_at >= start_of_day(start))
    if end is not None:
        q = q.filter(Sale.created_at <= end_of_day(end))
    if status:
        q = q.filter(Sale.status == status)
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(or_(Sale.customer_name.ilike(term), Sale.customer_phone.ilike(term)))
    q = q.order_by(Sale.created_at.desc(), Sale.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def update_sale_status(sale_id: int, status: str, session=None) -> Sale:
    """
    Only status moves after checkout. Cancelling does not return stock or
    un-sell IMEIs: sold units are permanent history.
    """
    session = session or db.session
    if status not in SALE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(SALE_STATUSES)}")

    with write_transaction(session, what="update sale status"):
        sale = lock_for_update(session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise NotFoundError(f"Sale {sale_id} not found")
        if status == sale.status:
            return sale
        if status not in SALE_STATUS_TRANSITIONS[sale.status]:
            raise ConflictError(f"Cannot move sale from {sale.status} to {status}")
        sale.status = status
    return sale


def build_invoice(sale_id: int, session=None) -> dict:
    """Print-ready bill: header, lines with warranty text, totals."""
    sale = get_sale(sale_id, session=session)
    lines = []
    for line in sale.lines:
        item = line.catalog_item
        serialized = item is not None and is_serialized(item)
        lines.append({
            "item_name": line.item_name,
            "sku": None if serialized else line.item_sku,
            "imei": line.item_sku if serialized else None,
            "quantity": line.quantity,
            "unit_price_cents": line.unit_price_cents,
            "line_total_cents": line.line_total_cents,
            "warranty": item.warranty_text if item is not None else None,
        })
    return {
        "invoice_number": sale.invoice_number,
        "date": sale.to_dict()["created_at"],
        "customer_name": sale.customer_name,
        "customer_phone": sale.customer_phone,
        "payment_method": sale.payment_method,
        "status": sale.status,
        "lines": lines,
        "subtotal_cents": sale.subtotal_cents,
        "discount_percent": float(sale.discount_percent or 0),
        "discount_cents": sale.discount_cents,
        "gst_cents": sale.gst_cents,
        "cgst_cents": sale.cgst_cents,
        "total_cents": sale.total_cents,
    }


def cart_from_payload(items_payload, session=None) -> list[CartLine]:
    """
    Parse JSON cart lines: {catalog_item_id, quantity, unit_price_cents?, serial?}.
    A missing unit_price_cents is snapshotted from the current catalog price.
    """
    session = session or db.session
    if not isinstance(items_payload, list):
        raise ValidationError("items must be a list")

    lines = []
    issues = []
    for n, raw in enumerate(items_payload, start=1):
        if not isinstance(raw, dict):
            issues.append(f"line {n} must be an object")
            continue
        item_id = raw.get("catalog_item_id")
        quantity = raw.get("quantity", 1)
        if not isinstance(item_id, int) or isinstance(item_id, bool):
            issues.append(f"catalog_item_id must be an integer for line {n}")
            continue
        if not isinstance(quantity, int) or isinstance(quantity, bool):
            issues.append(f"invalid quantity for line {n}")
            continue
        price = raw.get("unit_price_cents")
        if price is None:
            item = session.get(CatalogItem, item_id)
            if item is None:
                issues.append(f"unknown item for line {n}")
                continue
            price = item.price_cents
        elif not isinstance(price, int) or isinstance(price, bool):
            issues.append(f"invalid unit price for line {n}")
            continue
        serial = raw.get("serial")
        lines.append(CartLine(
            catalog_item_id=item_id,
            quantity=quantity,
            unit_price_cents=price,
            serial=normalize_serial(serial) if serial else None,
        ))
    if issues:
        raise ValidationError("Cart cannot be billed", issues=issues)
    return lines
