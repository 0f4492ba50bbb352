from __future__ import annotations

from ..extensions import db
from phonepos.time_utils import to_utc_z, utcnow


class SerialUnit(db.Model):
    """
    One physical device (IMEI) of a serialized catalog item.

    INVARIANT: is_sold only ever goes False -> True. The flip is done with a
    conditional UPDATE (WHERE is_sold = false) so two checkouts cannot both
    claim the same unit.
    """
    __tablename__ = "phone_imei"
    __table_args__ = (
        db.UniqueConstraint("catalog_item_id", "serial", name="uq_phone_imei_item_serial"),
        db.Index("ix_phone_imei_item_sold", "catalog_item_id", "is_sold"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    catalog_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)
    serial = db.Column(db.String(32), nullable=False, index=True)

    is_sold = db.Column(db.Boolean, nullable=False, default=False)
    sale_line_id = db.Column(db.Integer, db.ForeignKey("sale_items.id"), nullable=True)
    sold_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    catalog_item = db.relationship("CatalogItem", backref=db.backref("serial_units", lazy=True))

    def __repr__(self) -> str:
        return f"<SerialUnit id={self.id} serial={self.serial!r} sold={self.is_sold}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "catalog_item_id": self.catalog_item_id,
            "serial": self.serial,
            "is_sold": self.is_sold,
            "sale_line_id": self.sale_line_id,
            "sold_at": to_utc_z(self.sold_at) if self.sold_at else None,
            "created_at": to_utc_z(self.created_at),
        }
