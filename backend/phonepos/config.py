# backend/phonepos/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if not raw:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # "remote": use DATABASE_URL. "sample": in-memory SQLite seeded with sample catalog data.
    STORE_MODE = os.environ.get("STORE_MODE", "remote")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///phonepos.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Browser origins allowed to call the API (the POS front end dev server by default)
    CORS_ORIGINS = _env_list("CORS_ORIGINS", ("http://localhost:5173", "http://127.0.0.1:5173"))

    # Catalog categories tracked per physical unit (IMEI)
    SERIALIZED_CATEGORIES = _env_list(
        "SERIALIZED_CATEGORIES",
        ("phones", "featured_phones", "button_phones"),
    )

    # Taxes are applied to (subtotal - discount). MODE is "percent" or "fixed";
    # percent VALUE is a percentage (e.g. 9 for 9%), fixed VALUE is in cents.
    GST_ENABLED = _env_bool("GST_ENABLED", False)
    GST_MODE = os.environ.get("GST_MODE", "percent")
    GST_VALUE = float(os.environ.get("GST_VALUE", "9"))
    CGST_ENABLED = _env_bool("CGST_ENABLED", False)
    CGST_MODE = os.environ.get("CGST_MODE", "percent")
    CGST_VALUE = float(os.environ.get("CGST_VALUE", "9"))

    LOW_STOCK_ALERT_LIMIT = int(os.environ.get("LOW_STOCK_ALERT_LIMIT", "10"))
    TOP_PRODUCTS_LIMIT = int(os.environ.get("TOP_PRODUCTS_LIMIT", "5"))
    RECENT_SALES_LIMIT = int(os.environ.get("RECENT_SALES_LIMIT", "5"))


class TestConfig(Config):
    TESTING = True
    STORE_MODE = "remote"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "WARNING"
    GST_ENABLED = False
    CGST_ENABLED = False
