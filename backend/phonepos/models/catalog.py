from __future__ import annotations

from ..extensions import db
from phonepos.time_utils import to_utc_z, utcnow
from phonepos.money import format_cents


class Category(db.Model):
    """Catalog category. `name` is the normalized key stored on items."""
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)
    display_name = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "display_name": self.display_name,
            "created_at": to_utc_z(self.created_at),
        }


class CatalogItem(db.Model):
    """
    Catalog entry for both general merchandise and phones.

    Phones (serialized categories) additionally own SerialUnit rows, one per
    physical device. stock_quantity is the count of sellable units.

    LIFECYCLE: active -> out_of_stock (stock hits 0) -> active (restocked);
    any -> discontinued (soft delete once referenced by a sale line).
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_inventory_items_sku"),
        db.Index("ix_inventory_items_category_status", "category", "status"),
        db.CheckConstraint("stock_quantity >= 0", name="ck_inventory_items_stock_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(128), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(512), nullable=True)

    price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=0)

    specifications = db.Column(db.JSON, nullable=False, default=dict)

    status = db.Column(db.String(16), nullable=False, default="active", index=True)

    has_warranty = db.Column(db.Boolean, nullable=False, default=False)
    warranty_duration = db.Column(db.Integer, nullable=True)
    warranty_unit = db.Column(db.String(8), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<CatalogItem id={self.id} sku={self.sku!r} name={self.name!r} category={self.category!r}>"

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.min_stock_level

    @property
    def warranty_text(self) -> str | None:
        if not self.has_warranty:
            return None
        return f"{self.warranty_duration} {self.warranty_unit} warranty"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "name": self.name,
            "brand": self.brand,
            "sku": self.sku,
            "description": self.description,
            "image_url": self.image_url,
            "price_cents": self.price_cents,
            "price": format_cents(self.price_cents),
            "cost_price_cents": self.cost_price_cents,
            "stock_quantity": self.stock_quantity,
            "min_stock_level": self.min_stock_level,
            "specifications": self.specifications or {},
            "status": self.status,
            "has_warranty": self.has_warranty,
            "warranty_duration": self.warranty_duration,
            "warranty_unit": self.warranty_unit,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
