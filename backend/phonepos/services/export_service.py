# Overview: CSV renderings of report views.

"""
CSV export. Rows go through csv.writer, so names or comments containing
commas, quotes or newlines are quoted instead of corrupting the columns.
Amounts are plain decimals ("1999.98"); currency symbols are a display concern.
"""
from __future__ import annotations

import csv
import io
from typing import Iterable

from ..money import format_cents

OVERVIEW_HEADER = ["Period", "Sales", "Transactions", "Items Sold", "Avg Order Value"]
PRODUCT_DETAIL_HEADER = ["Item", "Date", "Quantity", "Unit Price", "Total"]
SERVICE_HEADER = [
    "S.No", "Mobile Model", "Problem", "Customer Name", "Phone Number",
    "Service Date", "Amount", "Material Cost", "Comments",
]

REPORT_TYPES = ("overview", "products", "services")


def _render(header: list[str], rows: Iterable[list]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buf.getvalue()


def overview_csv(buckets: Iterable[dict]) -> str:
    return _render(OVERVIEW_HEADER, (
        [
            b["period"],
            format_cents(b["sales_cents"]),
            b["transactions"],
            b["items"],
            format_cents(b["avg_order_value_cents"]),
        ]
        for b in buckets
    ))


def product_details_csv(details: Iterable[dict]) -> str:
    return _render(PRODUCT_DETAIL_HEADER, (
        [
            d["item_name"],
            (d["date"] or "")[:10],
            d["quantity"],
            format_cents(d["unit_price_cents"]),
            format_cents(d["total_cents"]),
        ]
        for d in details
    ))


def services_csv(tickets: Iterable[dict]) -> str:
    return _render(SERVICE_HEADER, (
        [
            n,
            t["model_name"],
            t["problem"],
            t["customer_name"],
            t.get("phone_number") or "",
            t["service_date"],
            format_cents(t["amount_cents"]),
            format_cents(t.get("material_cost_cents")),
            t.get("comments") or "-",
        ]
        for n, t in enumerate(tickets, start=1)
    ))


def export_filename(report_type: str, stamp: str, granularity: str | None = None) -> str:
    if report_type == "services":
        return f"service-report-{stamp}.csv"
    if report_type == "products":
        return f"product-report-{stamp}.csv"
    return f"sales-report-{granularity or 'daily'}-{stamp}.csv"
