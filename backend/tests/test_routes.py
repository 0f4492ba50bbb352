# Overview: Pytest coverage for the JSON API blueprints.

"""
API Tests

Exercise the blueprints through the Flask test client. Typed failures must
come back as JSON results with the right status code, never as a 500.
"""

from datetime import timedelta

from phonepos.time_utils import utcnow


def _create_charger(client, **overrides):
    payload = {
        "category": "chargers", "name": "20W USB-C Charger", "brand": "Apple",
        "sku": "APL-20W", "price_cents": 1999, "stock_quantity": 10,
    }
    payload.update(overrides)
    return client.post("/api/catalog", json=payload)


def _create_phone(client):
    return client.post("/api/catalog", json={
        "category": "phones", "name": "Galaxy S24", "brand": "Samsung",
        "sku": "SAM-S24", "price_cents": 79999,
        "specifications": {"storage": "256GB"},
        "serials": ["IMEI1", "IMEI2"],
    })


class TestSystemRoutes:
    def test_health(self, client, db_session):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json == {"status": "ok", "store_mode": "remote"}

    def test_cors_for_known_origin(self, client, db_session):
        allowed = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert allowed.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        other = client.get("/api/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in other.headers


class TestCatalogRoutes:
    def test_create_and_get(self, client, db_session):
        created = _create_charger(client)
        assert created.status_code == 201
        item_id = created.json["id"]

        fetched = client.get(f"/api/catalog/{item_id}")
        assert fetched.status_code == 200
        assert fetched.json["sku"] == "APL-20W"
        assert fetched.json["price"] == "19.99"

    def test_create_validation_error(self, client, db_session):
        response = _create_charger(client, price_cents=-5)
        assert response.status_code == 400
        assert "price_cents" in response.json["error"]

    def test_non_object_body_rejected(self, client, db_session):
        response = client.post("/api/catalog", json=["not", "an", "object"])
        assert response.status_code == 400

    def test_duplicate_sku_is_conflict(self, client, db_session):
        _create_charger(client)
        assert _create_charger(client).status_code == 409

    def test_missing_item(self, client, db_session):
        assert client.get("/api/catalog/999").status_code == 404

    def test_update(self, client, db_session):
        item_id = _create_charger(client).json["id"]
        response = client.put(f"/api/catalog/{item_id}", json={"stock_quantity": 0})

        assert response.status_code == 200
        assert response.json["status"] == "out_of_stock"

    def test_list_and_low_stock(self, client, db_session):
        _create_charger(client)
        _create_charger(client, sku="APL-20W-2", stock_quantity=1, min_stock_level=3)

        assert client.get("/api/catalog?search=apl-20w").json["count"] == 2
        low = client.get("/api/catalog/low-stock").json
        assert [i["sku"] for i in low["items"]] == ["APL-20W-2"]

    def test_phone_serials(self, client, db_session):
        phone_id = _create_phone(client).json["id"]

        available = client.get(f"/api/catalog/{phone_id}/serials?available=true").json
        assert [u["serial"] for u in available["items"]] == ["IMEI1", "IMEI2"]

        added = client.post(f"/api/catalog/{phone_id}/serials", json={"serial": "IMEI3"})
        assert added.status_code == 201
        assert client.post(f"/api/catalog/{phone_id}/serials", json={"serial": "IMEI3"}).status_code == 409

        lookup = client.get("/api/serials/lookup/IMEI3").json
        assert lookup["count"] == 1
        assert client.delete(f"/api/serials/{added.json['id']}").json == {"ok": True}

    def test_delete_referenced_item_soft_deletes(self, client, db_session):
        item_id = _create_charger(client).json["id"]
        client.post("/api/sales", json={
            "customer_name": "Ravi",
            "items": [{"catalog_item_id": item_id, "quantity": 1}],
        })

        response = client.delete(f"/api/catalog/{item_id}")
        assert response.status_code == 200
        assert response.json["outcome"] == "soft_deleted"
        assert response.json["item"]["status"] == "discontinued"
        assert client.get(f"/api/catalog/{item_id}").status_code == 200


class TestCategoryRoutes:
    def test_create_and_list(self, client, db_session):
        created = client.post("/api/categories", json={"name": "Smart Watches"})
        assert created.status_code == 201
        assert created.json["name"] == "smart_watches"
        assert created.json["display_name"] == "Smart Watches"

        assert client.post("/api/categories", json={"name": "smart watches"}).status_code == 409
        assert client.get("/api/categories").json["count"] == 1


class TestSalesRoutes:
    def test_quote(self, client, db_session):
        item_id = _create_charger(client).json["id"]
        response = client.post("/api/sales/quote", json={
            "discount_percent": 10,
            "items": [{"catalog_item_id": item_id, "quantity": 2, "unit_price_cents": 10000}],
        })

        assert response.status_code == 200
        assert response.json["subtotal_cents"] == 20000
        assert response.json["discount_cents"] == 2000
        assert response.json["total_cents"] == 18000

    def test_quote_non_finite_discount(self, client, db_session):
        item_id = _create_charger(client).json["id"]
        response = client.post("/api/sales/quote", json={
            "discount_percent": "NaN",
            "items": [{"catalog_item_id": item_id, "quantity": 1}],
        })
        assert response.status_code == 400

    def test_checkout_phone_and_read_back(self, client, db_session):
        phone_id = _create_phone(client).json["id"]
        response = client.post("/api/sales", json={
            "customer_name": "Asha",
            "customer_phone": "9876543210",
            "payment_method": "card",
            "items": [{"catalog_item_id": phone_id, "quantity": 1, "serial": "IMEI2"}],
        })

        assert response.status_code == 201
        sale = response.json["sale"]
        assert sale["total_cents"] == 79999
        assert sale["lines"][0]["item_sku"] == "IMEI2"

        fetched = client.get(f"/api/sales/{sale['id']}").json["sale"]
        assert len(fetched["lines"]) == 1

        invoice = client.get(f"/api/sales/{sale['id']}/invoice").json
        assert invoice["lines"][0]["imei"] == "IMEI2"

        remaining = client.get(f"/api/catalog/{phone_id}/serials?available=true").json
        assert [u["serial"] for u in remaining["items"]] == ["IMEI1"]

    def test_checkout_validation_issues(self, client, db_session):
        response = client.post("/api/sales", json={"customer_name": "", "items": []})

        assert response.status_code == 400
        assert response.json["issues"] == ["missing customer", "empty cart"]

    def test_checkout_sold_serial_is_conflict(self, client, db_session):
        phone_id = _create_phone(client).json["id"]
        body = {
            "customer_name": "Asha",
            "items": [{"catalog_item_id": phone_id, "quantity": 1, "serial": "IMEI1"}],
        }
        assert client.post("/api/sales", json=body).status_code == 201

        again = client.post("/api/sales", json=body)
        assert again.status_code == 409
        assert again.json["issues"] == ["serial already sold for line 1"]
        assert client.get("/api/sales").json["count"] == 1

    def test_status_transition(self, client, db_session):
        item_id = _create_charger(client).json["id"]
        sale_id = client.post("/api/sales", json={
            "customer_name": "Ravi",
            "status": "pending",
            "items": [{"catalog_item_id": item_id, "quantity": 1}],
        }).json["sale"]["id"]

        done = client.patch(f"/api/sales/{sale_id}/status", json={"status": "completed"})
        assert done.json["sale"]["status"] == "completed"
        assert client.patch(f"/api/sales/{sale_id}/status", json={"status": "pending"}).status_code == 409
        assert client.patch(f"/api/sales/{sale_id}/status", json=[1]).status_code == 400


class TestReportRoutes:
    def test_sales_report_default_week(self, client, db_session):
        item_id = _create_charger(client).json["id"]
        client.post("/api/sales", json={
            "customer_name": "Ravi",
            "items": [{"catalog_item_id": item_id, "quantity": 2}],
        })

        report = client.get("/api/reports/sales").json
        assert len(report["buckets"]) == 7
        assert report["buckets"][-1]["sales_cents"] == 3998
        assert report["summary"]["total_items_sold"] == 2

    def test_sales_report_bad_params(self, client, db_session):
        assert client.get("/api/reports/sales?granularity=hourly").status_code == 400
        assert client.get("/api/reports/sales?start=yesterday").status_code == 400

    def test_dashboard(self, client, db_session):
        _create_charger(client)
        data = client.get("/api/reports/dashboard").json
        assert data["total_products"] == 1
        assert data["today_sales_cents"] == 0

    def test_export_overview_csv(self, client, db_session):
        today = utcnow().date()
        start = (today - timedelta(days=2)).isoformat()
        response = client.get(f"/api/reports/export?type=overview&start={start}&end={today.isoformat()}")

        assert response.status_code == 200
        assert response.mimetype == "text/csv"
        assert "attachment; filename=sales-report-daily-" in response.headers["Content-Disposition"]
        lines = response.get_data(as_text=True).splitlines()
        assert lines[0] == "Period,Sales,Transactions,Items Sold,Avg Order Value"
        assert len(lines) == 4

    def test_export_unknown_type(self, client, db_session):
        assert client.get("/api/reports/export?type=pdf").status_code == 400


class TestServiceTicketRoutes:
    def test_ticket_lifecycle(self, client, db_session):
        created = client.post("/api/service-tickets", json={
            "model_name": "iPhone 11", "problem": "Battery", "customer_name": "Ravi",
            "amount_cents": 300000, "channel": "admin",
        })
        assert created.status_code == 201
        ticket_id = created.json["id"]

        updated = client.put(f"/api/service-tickets/{ticket_id}", json={
            "status": "delivered", "material_cost_cents": 100000,
        })
        assert updated.json["profit_cents"] == 200000

        report = client.get("/api/reports/services?channel=admin").json
        assert report["summary"]["count"] == 1
        assert report["summary"]["profit_cents"] == 200000

        assert client.get("/api/service-tickets/9999").status_code == 404
        assert client.get("/api/service-tickets?window=decade").status_code == 400
