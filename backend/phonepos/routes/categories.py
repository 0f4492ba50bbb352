# Overview: Flask API routes for catalog categories.

from flask import Blueprint, jsonify, request, current_app

from ..services import category_service
from ..validation import ShopError, ValidationError
from . import error_response

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
def list_categories():
    categories = category_service.list_categories()
    return {"items": [c.to_dict() for c in categories], "count": len(categories)}


@categories_bp.post("")
def create_category():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return error_response(ValidationError("Invalid JSON payload"))
    try:
        category = category_service.create_category(payload.get("name"), payload.get("display_name"))
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500
    return category.to_dict(), 201
