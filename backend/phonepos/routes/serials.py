# Overview: Flask API routes for individual IMEI units.

from flask import Blueprint, jsonify, current_app

from ..services.imei_service import ImeiRegistry
from ..validation import ShopError
from . import error_response

serials_bp = Blueprint("serials", __name__, url_prefix="/api/serials")


@serials_bp.get("/lookup/<serial>")
def lookup_serial(serial: str):
    try:
        units = ImeiRegistry().lookup(serial)
    except ShopError as e:
        return error_response(e)
    return {"items": [u.to_dict() for u in units], "count": len(units)}


@serials_bp.delete("/<int:serial_id>")
def release_serial(serial_id: int):
    """Remove a mistakenly registered unit. Sold units are rejected with 409."""
    try:
        ImeiRegistry().release(serial_id)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to release serial")
        return jsonify({"error": "Internal server error"}), 500
    return {"ok": True}
