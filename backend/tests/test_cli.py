# Overview: Pytest coverage for the Flask CLI command groups and sample seed data.

from datetime import timedelta

from phonepos.models import CatalogItem, Category, SerialUnit
from phonepos.services.sample_data import SAMPLE_ITEMS, seed_sample_data
from phonepos.time_utils import utcnow


class TestSampleData:
    def test_seed_is_idempotent(self, db_session):
        assert seed_sample_data() == len(SAMPLE_ITEMS)
        assert seed_sample_data() == 0

        assert db_session.query(CatalogItem).count() == len(SAMPLE_ITEMS)
        assert db_session.query(Category).filter_by(name="smart_watches").count() == 1
        assert db_session.query(SerialUnit).count() == 9

    def test_seeded_stock_matches_serials(self, db_session):
        seed_sample_data()
        iphone = db_session.query(CatalogItem).filter_by(sku="APL-IP15P-128").one()
        ipad = db_session.query(CatalogItem).filter_by(sku="APL-IPAD-AIR5-64").one()

        assert iphone.stock_quantity == 3
        assert ipad.status == "out_of_stock"


class TestCliCommands:
    def test_init_db(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["shop", "init-db"])
        assert result.exit_code == 0
        assert "Database tables created." in result.output

    def test_seed_then_low_stock(self, app, db_session):
        runner = app.test_cli_runner()

        seeded = runner.invoke(args=["shop", "seed-sample"])
        assert seeded.exit_code == 0
        assert f"Seeded {len(SAMPLE_ITEMS)} catalog items." in seeded.output

        again = runner.invoke(args=["shop", "seed-sample"])
        assert "nothing seeded" in again.output

        low = runner.invoke(args=["shop", "low-stock"])
        assert low.exit_code == 0
        assert "APL-IP15-CASE-BLK" in low.output
        assert "APL-20W-USBC" not in low.output

    def test_low_stock_empty(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["shop", "low-stock"])
        assert "No low-stock items." in result.output

    def test_sales_report_csv(self, app, db_session):
        end = utcnow().date()
        start = end - timedelta(days=2)
        result = app.test_cli_runner().invoke(args=[
            "reports", "sales",
            "--start", start.isoformat(),
            "--end", end.isoformat(),
            "--csv",
        ])

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0] == "Period,Sales,Transactions,Items Sold,Avg Order Value"
        assert len(lines) == 4

    def test_sales_report_table(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["reports", "sales", "--granularity", "weekly"])
        assert result.exit_code == 0
        assert "TOTAL sales=0.00 tx=0 items=0" in result.output

    def test_sales_report_inverted_range(self, app, db_session):
        result = app.test_cli_runner().invoke(args=[
            "reports", "sales", "--start", "2026-10-07", "--end", "2026-10-01",
        ])
        assert result.exit_code != 0
        assert "start must not be after end" in result.output
