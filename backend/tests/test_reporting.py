# Overview: Pytest coverage for report buckets, top products and dashboard figures.

from datetime import date, datetime

import pytest

from phonepos.services import reporting_service
from phonepos.services.reporting_service import (
    LineRecord,
    ReportError,
    bucket_bounds,
    top_products,
)
from phonepos.time_utils import utcnow


def _line(name, revenue, quantity=1):
    return LineRecord(
        sale_id=1,
        created_at=datetime(2026, 10, 1, 12, 0),
        item_name=name,
        quantity=quantity,
        unit_price_cents=revenue // quantity,
        line_total_cents=revenue,
    )


class TestBucketBounds:
    def test_daily_covers_every_day(self):
        bounds = bucket_bounds(date(2026, 10, 1), date(2026, 10, 7), "daily")

        assert len(bounds) == 7
        assert bounds[0][0] == "Oct 01"
        assert bounds[0][1] == datetime(2026, 10, 1, 0, 0)
        assert bounds[-1][2].date() == date(2026, 10, 7)

    def test_weekly_starts_on_sunday_and_is_clipped(self):
        # 2026-10-01 is a Thursday
        bounds = bucket_bounds(date(2026, 10, 1), date(2026, 10, 14), "weekly")

        assert [b[0] for b in bounds] == ["Week of Sep 27", "Week of Oct 04", "Week of Oct 11"]
        assert bounds[0][1].date() == date(2026, 10, 1)
        assert bounds[0][2].date() == date(2026, 10, 3)
        assert bounds[1][1].date() == date(2026, 10, 4)
        assert bounds[2][2].date() == date(2026, 10, 14)

    def test_monthly_handles_short_months(self):
        bounds = bucket_bounds(date(2026, 1, 15), date(2026, 3, 10), "monthly")

        assert [b[0] for b in bounds] == ["Jan 2026", "Feb 2026", "Mar 2026"]
        assert bounds[1][1].date() == date(2026, 2, 1)
        assert bounds[1][2].date() == date(2026, 2, 28)

    def test_monthly_rolls_over_year_end(self):
        bounds = bucket_bounds(date(2025, 12, 5), date(2026, 1, 5), "monthly")
        assert [b[0] for b in bounds] == ["Dec 2025", "Jan 2026"]

    def test_buckets_are_contiguous(self):
        bounds = bucket_bounds(date(2026, 2, 20), date(2026, 4, 2), "weekly")
        for (_, _, prev_end), (_, next_start, _) in zip(bounds, bounds[1:]):
            assert (next_start - prev_end).total_seconds() < 0.001

    def test_invalid_granularity(self):
        with pytest.raises(ReportError):
            bucket_bounds(date(2026, 10, 1), date(2026, 10, 7), "hourly")

    def test_inverted_range(self):
        with pytest.raises(ReportError):
            bucket_bounds(date(2026, 10, 7), date(2026, 10, 1), "daily")


class TestTopProducts:
    def test_ranked_by_revenue(self):
        lines = [_line("Case", 1500), _line("Phone", 79999), _line("Case", 1500, quantity=1)]
        ranked = top_products(lines)

        assert ranked[0] == {"name": "Phone", "quantity": 1, "revenue_cents": 79999}
        assert ranked[1] == {"name": "Case", "quantity": 2, "revenue_cents": 3000}

    def test_ties_keep_first_seen_order(self):
        lines = [_line("Cable", 500), _line("Charger", 900), _line("Adapter", 500)]
        assert [p["name"] for p in top_products(lines)] == ["Charger", "Cable", "Adapter"]

    def test_truncated_to_limit(self):
        lines = [_line(f"Item {n}", 100 * n) for n in range(1, 8)]
        ranked = top_products(lines)

        assert len(ranked) == 5
        assert ranked[0]["name"] == "Item 7"
        assert ranked[-1]["name"] == "Item 3"


class TestSalesReport:
    def test_week_with_sales_on_one_day(self, db_session, charger, make_sale):
        make_sale(charger, datetime(2026, 10, 3, 10, 30), quantity=2, unit_price_cents=2500)

        report = reporting_service.sales_report(start=date(2026, 10, 1), end=date(2026, 10, 7))
        buckets = report["buckets"]

        assert len(buckets) == 7
        active = buckets[2]
        assert active["period"] == "Oct 03"
        assert active["sales_cents"] == 5000
        assert active["transactions"] == 1
        assert active["items"] == 2
        assert active["avg_order_value_cents"] == 5000

        for empty in buckets[:2] + buckets[3:]:
            assert empty["sales_cents"] == 0
            assert empty["transactions"] == 0
            assert empty["items"] == 0
            assert empty["avg_order_value_cents"] == 0

    def test_summary_and_average(self, db_session, charger, make_sale):
        make_sale(charger, datetime(2026, 10, 2, 9, 0), unit_price_cents=1000)
        make_sale(charger, datetime(2026, 10, 2, 18, 0), unit_price_cents=2001)

        report = reporting_service.sales_report(start=date(2026, 10, 2), end=date(2026, 10, 2))

        assert report["summary"] == {
            "total_sales_cents": 3001,
            "total_transactions": 2,
            "total_items_sold": 2,
            "avg_order_value_cents": 1501,
        }
        assert report["top_products"] == [
            {"name": "20W USB-C Charger", "quantity": 2, "revenue_cents": 3001},
        ]

    def test_range_edges_are_inclusive(self, db_session, charger, make_sale):
        make_sale(charger, datetime(2026, 10, 1, 0, 0, 0))
        make_sale(charger, datetime(2026, 10, 7, 23, 59, 59))
        make_sale(charger, datetime(2026, 10, 8, 0, 0, 0))

        report = reporting_service.sales_report(start=date(2026, 10, 1), end=date(2026, 10, 7))
        assert report["summary"]["total_transactions"] == 2

    def test_cancelled_sales_are_excluded(self, db_session, charger, make_sale):
        make_sale(charger, datetime(2026, 10, 3, 10, 0), status="cancelled")
        make_sale(charger, datetime(2026, 10, 3, 11, 0), status="pending")

        report = reporting_service.sales_report(start=date(2026, 10, 3), end=date(2026, 10, 3))
        assert report["summary"]["total_transactions"] == 1

    def test_product_details_newest_first(self, db_session, charger, phone, make_sale):
        make_sale(charger, datetime(2026, 10, 2, 9, 0))
        make_sale(phone, datetime(2026, 10, 4, 9, 0))

        report = reporting_service.sales_report(start=date(2026, 10, 1), end=date(2026, 10, 7))
        assert [d["item_name"] for d in report["product_details"]] == ["Galaxy S24", "20W USB-C Charger"]

    def test_weekly_totals_match_daily_totals(self, db_session, charger, make_sale):
        for day in (1, 3, 4, 9, 14):
            make_sale(charger, datetime(2026, 10, day, 12, 0))

        daily = reporting_service.sales_report(start=date(2026, 10, 1), end=date(2026, 10, 14))
        weekly = reporting_service.sales_report(
            start=date(2026, 10, 1), end=date(2026, 10, 14), granularity="weekly"
        )

        assert sum(b["sales_cents"] for b in daily["buckets"]) == 5 * 1999
        assert [b["transactions"] for b in weekly["buckets"]] == [2, 2, 1]


class TestDashboard:
    def test_dashboard_figures(self, db_session, charger, phone, make_sale, inventory):
        now = utcnow()
        make_sale(charger, now, customer_name="Asha")
        make_sale(charger, now, customer_name="Asha")
        make_sale(phone, now, customer_name="Ravi", status="cancelled")
        inventory.create({
            "category": "cases", "name": "Clear Case", "brand": "Spigen",
            "sku": "SPG-CLR", "price_cents": 1500, "stock_quantity": 1, "min_stock_level": 5,
        })

        data = reporting_service.dashboard(today=now.date(), recent_limit=2)

        assert data["today_sales_cents"] == 2 * 1999
        assert data["total_products"] == 3
        assert data["low_stock_count"] == 1
        assert data["total_customers"] == 1
        assert len(data["recent_sales"]) == 2
        assert len(data["sales_last_7_days"]) == 7
        assert data["sales_last_7_days"][-1]["sales_cents"] == 2 * 1999
