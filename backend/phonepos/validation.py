from __future__ import annotations
from datetime import datetime
from phonepos.time_utils import parse_iso_datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import JSON, Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: 99,999,999.99 (9,999,999,999 cents)
MAX_PRICE_CENTS = 9_999_999_999

ITEM_STATUSES = ("active", "discontinued", "out_of_stock")
WARRANTY_UNITS = ("days", "months", "years")


class ShopError(Exception):
    """Base for typed failures surfaced to API callers."""
    status_code = 500

    def __init__(self, message: str, issues: list[str] | None = None):
        super().__init__(message)
        self.issues = list(issues or [])

    def to_dict(self) -> dict:
        body: dict = {"error": str(self)}
        if self.issues:
            body["issues"] = self.issues
        return body


class ValidationError(ShopError, ValueError):
    """400-level input problem. Nothing was written."""
    status_code = 400


class NotFoundError(ShopError, LookupError):
    """404-level: referenced id does not exist."""
    status_code = 404


class ConflictError(ShopError, ValueError):
    """409-level business rule conflict (e.g., mutating a sold unit)."""
    status_code = 409


class DuplicateError(ConflictError):
    """409-level: unique key already taken (SKU, serial, category key)."""


class AlreadySoldError(ConflictError):
    """409-level: serial unit already allocated to a sale."""


class AllocationConflictError(ConflictError):
    """
    409-level: a serial chosen for the cart was sold by another sale between
    selection and confirmation. Caller must re-fetch availability.
    """


class PersistenceError(ShopError):
    """503-level: the store rejected or could not complete a write. Retryable."""
    status_code = 503


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which columns a client may write, and which must be present on create.
    Anything outside `writable_fields` is rejected, never silently dropped.
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def _as_int(key: str, value: Any) -> int:
    # JSON numbers arrive as int or float; form-ish clients send strings
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{key} must be a whole number of cents/units")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"{key} must be an integer")


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0"):
        return value.strip().lower() in ("true", "1")
    if isinstance(value, int):
        return bool(value)
    raise ValidationError(f"{key} must be true or false")


def _as_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        parsed = parse_iso_datetime(value) if isinstance(value, str) else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{key} must be an ISO-8601 datetime")
    return parsed


def _as_object(key: str, value: Any) -> dict:
    if not isinstance(value, dict):
        raise ValidationError(f"{key} must be an object")
    return value


def _as_text(column, value: Any) -> str:
    text = str(value).strip()
    if text == "" and not column.nullable:
        raise ValidationError(f"{column.key} cannot be blank")
    limit = getattr(column.type, "length", None)
    if limit and len(text) > limit:
        raise ValidationError(f"{column.key} exceeds max length {limit}")
    return text


def _coerce_value(column, value: Any):
    """Convert one raw JSON value to what the column stores."""
    coltype = column.type
    if isinstance(coltype, Integer):
        return _as_int(column.key, value)
    if isinstance(coltype, Boolean):
        return _as_bool(column.key, value)
    if isinstance(coltype, DateTime):
        return _as_datetime(column.key, value)
    if isinstance(coltype, JSON):
        return _as_object(column.key, value)
    if isinstance(coltype, (String, Text)):
        return _as_text(column, value)
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Turn a client JSON object into a clean patch for `model`.

    Keys are checked against the policy and the mapped columns, values are
    coerced by column type. With partial=False every required field must be
    present (create); with partial=True only the given keys are checked (PUT).
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    columns = {c.key: c for c in model.__mapper__.columns}

    rejected = sorted(k for k in payload if k not in policy.writable_fields or k not in columns)
    if rejected:
        raise ValidationError(f"Field not allowed: {', '.join(rejected)}")

    if not partial:
        missing = sorted(policy.required_on_create - set(payload))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    patch: dict = {}
    for key, raw in payload.items():
        column = columns[key]
        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
        else:
            patch[key] = _coerce_value(column, raw)
    return patch


def _check_cents(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        value = patch[key]
        if value < 0:
            raise ValidationError(f"{key} must be >= 0")
        if value > MAX_PRICE_CENTS:
            raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS}")


def enforce_rules_catalog_item(patch: dict, *, current=None) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    `current` is the stored item for partial updates (warranty is checked
    against the merged view).
    """
    _check_cents(patch, "price_cents")
    _check_cents(patch, "cost_price_cents")

    for key in ("stock_quantity", "min_stock_level"):
        if key in patch and patch[key] is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")

    if "status" in patch and patch["status"] not in ITEM_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ITEM_STATUSES)}")

    def merged(key):
        if key in patch:
            return patch[key]
        return getattr(current, key, None) if current is not None else None

    if merged("has_warranty"):
        duration = merged("warranty_duration")
        if not duration or duration <= 0:
            raise ValidationError("warranty_duration must be > 0 when has_warranty is set")
        if merged("warranty_unit") not in WARRANTY_UNITS:
            raise ValidationError(f"warranty_unit must be one of: {', '.join(WARRANTY_UNITS)}")
