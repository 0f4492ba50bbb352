# Overview: Flask API routes for catalog items and their IMEI units.

# backend/phonepos/routes/catalog.py
"""
Catalog administration routes (general merchandise and phones).

DELETE never removes an item that appears on a sale: the response reports
outcome="soft_deleted" and the item comes back with status="discontinued".
"""
from flask import Blueprint, request, jsonify, current_app

from ..services.inventory_service import InventoryRepository, ItemFilter
from ..services.imei_service import ImeiRegistry
from ..validation import ShopError, ValidationError
from . import error_response, json_payload

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


@catalog_bp.get("")
def list_items():
    """
    Query params:
    - category: str (optional)
    - status: active | discontinued | out_of_stock (optional)
    - search: str (optional) - name / brand / sku substring
    - serialized: "true" to list phones only
    """
    item_filter = ItemFilter(
        category=request.args.get("category") or None,
        status=request.args.get("status") or None,
        search=request.args.get("search") or None,
        serialized_only=request.args.get("serialized", "false").lower() == "true",
    )
    items = InventoryRepository().list(item_filter)
    return {"items": [i.to_dict() for i in items], "count": len(items)}


@catalog_bp.get("/low-stock")
def low_stock():
    items = InventoryRepository().low_stock_items()
    return {"items": [i.to_dict() for i in items], "count": len(items)}


@catalog_bp.post("")
def create_item():
    """
    Create a catalog item. Phones may include "serials": [...] to stock
    their IMEI units in the same request.
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return error_response(ValidationError("Invalid JSON payload"))
    serials = payload.pop("serials", None)
    if serials is not None and not isinstance(serials, list):
        return error_response(ValidationError("serials must be a list"))

    try:
        item = InventoryRepository().create(payload, serials=serials)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create catalog item")
        return jsonify({"error": "Internal server error"}), 500

    return item.to_dict(), 201


@catalog_bp.get("/<int:item_id>")
def get_item(item_id: int):
    try:
        item = InventoryRepository().get(item_id)
    except ShopError as e:
        return error_response(e)
    return item.to_dict()


@catalog_bp.put("/<int:item_id>")
def update_item(item_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        item = InventoryRepository().update(item_id, payload)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update catalog item")
        return jsonify({"error": "Internal server error"}), 500
    return item.to_dict()


@catalog_bp.delete("/<int:item_id>")
def delete_item(item_id: int):
    try:
        outcome = InventoryRepository().delete(item_id)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete catalog item")
        return jsonify({"error": "Internal server error"}), 500
    return outcome.to_dict()


@catalog_bp.get("/<int:item_id>/serials")
def list_serials(item_id: int):
    """?available=true returns only unsold units, oldest first."""
    registry = ImeiRegistry()
    try:
        InventoryRepository().get(item_id)
    except ShopError as e:
        return error_response(e)

    if request.args.get("available", "false").lower() == "true":
        units = registry.list_available(item_id)
    else:
        units = registry.list_units(item_id)
    return {"items": [u.to_dict() for u in units], "count": len(units)}


@catalog_bp.post("/<int:item_id>/serials")
def register_serial(item_id: int):
    try:
        payload = json_payload()
        unit = ImeiRegistry().register(item_id, payload.get("serial"))
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register serial")
        return jsonify({"error": "Internal server error"}), 500
    return unit.to_dict(), 201
