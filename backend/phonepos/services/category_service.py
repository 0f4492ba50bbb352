# Overview: Service-layer operations for catalog categories.

from __future__ import annotations

import re

from ..extensions import db
from ..models import Category
from ..validation import DuplicateError, ValidationError
from .concurrency import write_transaction


def normalize_category_name(value: str) -> str:
    """"Smart Watches" -> "smart_watches"."""
    return re.sub(r"\s+", "_", (value or "").strip().lower())


def list_categories(session=None) -> list[Category]:
    session = session or db.session
    return session.query(Category).order_by(Category.display_name.asc()).all()


def create_category(name: str, display_name: str | None = None, session=None) -> Category:
    session = session or db.session
    key = normalize_category_name(name)
    if not key:
        raise ValidationError("name is required")
    display = (display_name or "").strip() or name.strip()
    if len(key) > 64:
        raise ValidationError("name exceeds max length 64")

    if session.query(Category.id).filter_by(name=key).first() is not None:
        raise DuplicateError(f"Category {key!r} already exists")

    category = Category(name=key, display_name=display)
    with write_transaction(session, what="create category"):
        session.add(category)
    return category
