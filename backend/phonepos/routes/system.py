# Overview: Flask API routes for system status.

from flask import Blueprint, current_app

system_bp = Blueprint("system", __name__, url_prefix="/api")


@system_bp.get("/health")
def health():
    return {
        "status": "ok",
        "store_mode": current_app.config.get("STORE_MODE", "remote"),
    }
