# Overview: Flask API routes for billing and sales; parses input and returns JSON responses.

# backend/phonepos/routes/sales.py
"""
Billing routes.

POST /api/sales/quote  -> totals for a cart, no writes
POST /api/sales        -> checkout (sale + lines + stock + IMEI allocation, atomic)

Checkout failures come back as typed results:
- 400 ValidationError with "issues" (fix input, resubmit)
- 409 AllocationConflictError (IMEI sold meanwhile: refresh serials, reselect)
- 503 PersistenceError (store unavailable; nothing was saved, retry)
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import billing_service
from ..services.billing_service import BillingEngine, Customer, cart_from_payload
from ..validation import ShopError, ValidationError
from . import date_arg, error_response, json_payload

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _read_cart(payload: dict):
    return cart_from_payload(payload.get("items", []))


@sales_bp.post("/quote")
def quote_route():
    try:
        payload = json_payload()
        cart = _read_cart(payload)
        totals = BillingEngine().quote(cart, payload.get("discount_percent", 0))
    except ShopError as e:
        return error_response(e)
    return totals.to_dict()


@sales_bp.post("")
def checkout_route():
    """
    Body:
    {
      "customer_name": str, "customer_phone": str?,
      "discount_percent": number?, "payment_method": "cash"|"card"|"upi"|"bank_transfer",
      "notes": str?, "status": "completed"|"pending"?,
      "items": [{"catalog_item_id": int, "quantity": int, "unit_price_cents": int?, "serial": str?}]
    }
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return error_response(ValidationError("Invalid JSON payload"))

    try:
        cart = _read_cart(payload)
        customer = Customer(
            name=str(payload.get("customer_name") or ""),
            phone=payload.get("customer_phone"),
        )
        sale = BillingEngine().checkout(
            cart,
            customer,
            discount_percent=payload.get("discount_percent", 0),
            payment_method=payload.get("payment_method", "cash"),
            notes=payload.get("notes"),
            status=payload.get("status", "completed"),
        )
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"sale": sale.to_dict(include_lines=True)}), 201


@sales_bp.get("")
def list_sales_route():
    """Query params: start, end (YYYY-MM-DD), status, search, limit."""
    try:
        sales = billing_service.list_sales(
            start=date_arg("start"),
            end=date_arg("end"),
            status=request.args.get("status") or None,
            search=request.args.get("search") or None,
            limit=request.args.get("limit", type=int),
        )
    except ShopError as e:
        return error_response(e)
    return {"items": [s.to_dict() for s in sales], "count": len(sales)}


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = billing_service.get_sale(sale_id)
    except ShopError as e:
        return error_response(e)
    return {"sale": sale.to_dict(include_lines=True)}


@sales_bp.get("/<int:sale_id>/invoice")
def invoice_route(sale_id: int):
    try:
        return billing_service.build_invoice(sale_id)
    except ShopError as e:
        return error_response(e)


@sales_bp.patch("/<int:sale_id>/status")
def update_status_route(sale_id: int):
    try:
        payload = json_payload()
        sale = billing_service.update_sale_status(sale_id, payload.get("status"))
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update sale status")
        return jsonify({"error": "Internal server error"}), 500
    return {"sale": sale.to_dict()}
