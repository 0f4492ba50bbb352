# Overview: Reporting Aggregator - read-side sales series, rankings and dashboard figures.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func

from phonepos.extensions import db
from phonepos.models import CatalogItem, Sale, SaleLine
from phonepos.money import round_cents
from phonepos.time_utils import end_of_day, start_of_day, to_utc_z, utcnow
from phonepos.validation import ValidationError
from .inventory_service import InventoryRepository


GRANULARITIES = ("daily", "weekly", "monthly")

# Sales in these states count towards revenue
REPORTABLE_STATUSES = ("completed", "pending")


class ReportError(ValidationError):
    """Raised when report parameters are invalid."""


@dataclass(frozen=True)
class SaleRecord:
    id: int
    created_at: datetime
    total_cents: int
    customer_name: str = ""


@dataclass(frozen=True)
class LineRecord:
    sale_id: int
    created_at: datetime
    item_name: str
    quantity: int
    unit_price_cents: int
    line_total_cents: int


@dataclass(frozen=True)
class Bucket:
    label: str
    start: datetime
    end: datetime
    sales_cents: int = 0
    transactions: int = 0
    items: int = 0
    avg_order_value_cents: int = 0

    def to_dict(self) -> dict:
        return {
            "period": self.label,
            "start": to_utc_z(self.start),
            "end": to_utc_z(self.end),
            "sales_cents": self.sales_cents,
            "transactions": self.transactions,
            "items": self.items,
            "avg_order_value_cents": self.avg_order_value_cents,
        }


def _average(total_cents: int, count: int) -> int:
    if count == 0:
        return 0
    return round_cents(Decimal(total_cents) / Decimal(count))


def _next_month(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


def bucket_bounds(start: date, end: date, granularity: str) -> list[tuple[str, datetime, datetime]]:
    """
    Contiguous, non-overlapping periods covering [start, end] day-inclusive.

    Weeks start on Sunday and months on the 1st; the first and last bucket
    are clipped to the requested range so every sale in range lands in
    exactly one bucket.
    """
    if granularity not in GRANULARITIES:
        raise ReportError(f"granularity must be one of: {', '.join(GRANULARITIES)}")
    if start > end:
        raise ReportError("start must not be after end")

    bounds = []
    current = start
    while current <= end:
        if granularity == "daily":
            period_start = current
            next_start = current + timedelta(days=1)
            label = current.strftime("%b %d")
        elif granularity == "weekly":
            # date.weekday(): Monday=0 .. Sunday=6
            week_start = current - timedelta(days=(current.weekday() + 1) % 7)
            period_start = current
            next_start = week_start + timedelta(days=7)
            label = f"Week of {week_start.strftime('%b %d')}"
        else:
            month_start = current.replace(day=1)
            period_start = current
            next_start = _next_month(month_start)
            label = month_start.strftime("%b %Y")

        period_end = min(next_start - timedelta(days=1), end)
        bounds.append((label, start_of_day(period_start), end_of_day(period_end)))
        current = next_start

    return bounds


def bucket_sales(
    sales: Iterable[SaleRecord],
    lines: Iterable[LineRecord],
    start: date,
    end: date,
    granularity: str,
) -> list[Bucket]:
    """Every period in range appears, zero-filled when it had no activity."""
    bounds = bucket_bounds(start, end, granularity)
    sales = list(sales)
    lines = list(lines)

    buckets = []
    for label, period_start, period_end in bounds:
        period_sales = [s for s in sales if period_start <= s.created_at <= period_end]
        period_lines = [ln for ln in lines if period_start <= ln.created_at <= period_end]
        total = sum(s.total_cents for s in period_sales)
        count = len(period_sales)
        buckets.append(Bucket(
            label=label,
            start=period_start,
            end=period_end,
            sales_cents=total,
            transactions=count,
            items=sum(ln.quantity for ln in period_lines),
            avg_order_value_cents=_average(total, count),
        ))
    return buckets


def summarize(sales: Iterable[SaleRecord], lines: Iterable[LineRecord]) -> dict:
    sales = list(sales)
    total = sum(s.total_cents for s in sales)
    return {
        "total_sales_cents": total,
        "total_transactions": len(sales),
        "total_items_sold": sum(ln.quantity for ln in lines),
        "avg_order_value_cents": _average(total, len(sales)),
    }


def top_products(lines: Iterable[LineRecord], limit: int = 5) -> list[dict]:
    """
    Group by item name, rank by revenue descending. sorted() is stable, so
    ties keep first-seen order.
    """
    grouped: dict[str, dict] = {}
    for ln in lines:
        entry = grouped.setdefault(ln.item_name, {"name": ln.item_name, "quantity": 0, "revenue_cents": 0})
        entry["quantity"] += ln.quantity
        entry["revenue_cents"] += ln.line_total_cents

    ranked = sorted(grouped.values(), key=lambda e: e["revenue_cents"], reverse=True)
    return ranked[:limit]


def product_details(lines: Iterable[LineRecord]) -> list[dict]:
    rows = [
        {
            "item_name": ln.item_name,
            "date": to_utc_z(ln.created_at),
            "quantity": ln.quantity,
            "unit_price_cents": ln.unit_price_cents,
            "total_cents": ln.line_total_cents,
        }
        for ln in lines
    ]
    rows.sort(key=lambda r: r["date"], reverse=True)
    return rows


# DB loaders

def load_sales(start_dt: datetime, end_dt: datetime, session=None) -> list[SaleRecord]:
    session = session or db.session
    rows = (
        session.query(Sale.id, Sale.created_at, Sale.total_cents, Sale.customer_name)
        .filter(
            Sale.created_at >= start_dt,
            Sale.created_at <= end_dt,
            Sale.status.in_(REPORTABLE_STATUSES),
        )
        .order_by(Sale.created_at.asc(), Sale.id.asc())
        .all()
    )
    return [SaleRecord(id=r.id, created_at=r.created_at, total_cents=r.total_cents,
                       customer_name=r.customer_name) for r in rows]


def load_lines(start_dt: datetime, end_dt: datetime, session=None) -> list[LineRecord]:
    session = session or db.session
    rows = (
        session.query(
            SaleLine.sale_id,
            Sale.created_at,
            SaleLine.item_name,
            SaleLine.quantity,
            SaleLine.unit_price_cents,
            SaleLine.line_total_cents,
        )
        .join(Sale, SaleLine.sale_id == Sale.id)
        .filter(
            Sale.created_at >= start_dt,
            Sale.created_at <= end_dt,
            Sale.status.in_(REPORTABLE_STATUSES),
        )
        .order_by(Sale.created_at.asc(), SaleLine.id.asc())
        .all()
    )
    return [
        LineRecord(
            sale_id=r.sale_id,
            created_at=r.created_at,
            item_name=r.item_name,
            quantity=r.quantity,
            unit_price_cents=r.unit_price_cents,
            line_total_cents=r.line_total_cents,
        )
        for r in rows
    ]


def sales_report(
    *,
    start: date,
    end: date,
    granularity: str = "daily",
    top_limit: int = 5,
    session=None,
) -> dict:
    bounds = bucket_bounds(start, end, granularity)
    start_dt, end_dt = bounds[0][1], bounds[-1][2]

    sales = load_sales(start_dt, end_dt, session=session)
    lines = load_lines(start_dt, end_dt, session=session)

    return {
        "granularity": granularity,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "summary": summarize(sales, lines),
        "buckets": [b.to_dict() for b in bucket_sales(sales, lines, start, end, granularity)],
        "top_products": top_products(lines, limit=top_limit),
        "product_details": product_details(lines),
    }


def dashboard(
    *,
    today: date | None = None,
    recent_limit: int = 5,
    low_stock_limit: int = 10,
    session=None,
) -> dict:
    session = session or db.session
    today = today or utcnow().date()
    week_start = today - timedelta(days=6)

    sales = load_sales(start_of_day(week_start), end_of_day(today), session=session)
    today_sales = [s for s in sales if s.created_at.date() == today]

    distinct_customers = (
        session.query(func.count(func.distinct(Sale.customer_name)))
        .filter(Sale.status.in_(REPORTABLE_STATUSES))
        .scalar()
    ) or 0

    recent = (
        session.query(Sale)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(recent_limit)
        .all()
    )

    inventory = InventoryRepository(session)
    low_stock = inventory.low_stock_items()

    series = bucket_sales(sales, [], week_start, today, "daily")

    return {
        "today_sales_cents": sum(s.total_cents for s in today_sales),
        "total_products": session.query(CatalogItem).count(),
        "low_stock_count": len(low_stock),
        "total_customers": int(distinct_customers),
        "recent_sales": [
            {
                "id": s.id,
                "customer_name": s.customer_name,
                "total_cents": s.total_cents,
                "created_at": to_utc_z(s.created_at),
            }
            for s in recent
        ],
        "low_stock_items": [
            {
                "id": item.id,
                "name": item.name,
                "stock_quantity": item.stock_quantity,
                "min_stock_level": item.min_stock_level,
            }
            for item in low_stock[:low_stock_limit]
        ],
        "sales_last_7_days": [
            {"period": b.start.strftime("%a"), "sales_cents": b.sales_cents}
            for b in series
        ],
    }
