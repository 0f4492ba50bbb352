from flask import jsonify, request

from ..validation import ShopError, ValidationError
from ..time_utils import parse_iso_date


def error_response(exc: ShopError):
    return jsonify(exc.to_dict()), exc.status_code


def date_arg(name: str, default=None):
    raw = request.args.get(name)
    if not raw:
        return default
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be YYYY-MM-DD")


def json_payload() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload
