from __future__ import annotations

from ..extensions import db
from phonepos.time_utils import to_utc_z, utcnow


TICKET_CHANNELS = ("counter", "admin")
TICKET_STATUSES = ("pending", "in_progress", "completed", "delivered")


class ServiceTicket(db.Model):
    """
    Repair/service job. Independent of inventory: no link to catalog items.

    channel="counter" tickets are logged by shop staff; channel="admin"
    tickets also track material cost for profit reporting.
    """
    __tablename__ = "service_tickets"
    __table_args__ = (
        db.Index("ix_service_tickets_channel_date", "channel", "service_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    channel = db.Column(db.String(16), nullable=False, default="counter")

    model_name = db.Column(db.String(255), nullable=False)
    problem = db.Column(db.Text, nullable=False)
    customer_name = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(32), nullable=True)

    amount_cents = db.Column(db.Integer, nullable=False, default=0)
    material_cost_cents = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending")
    comments = db.Column(db.Text, nullable=True)
    service_date = db.Column(db.Date, nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def profit_cents(self) -> int:
        return (self.amount_cents or 0) - (self.material_cost_cents or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "channel": self.channel,
            "model_name": self.model_name,
            "problem": self.problem,
            "customer_name": self.customer_name,
            "phone_number": self.phone_number,
            "amount_cents": self.amount_cents,
            "material_cost_cents": self.material_cost_cents,
            "profit_cents": self.profit_cents,
            "status": self.status,
            "comments": self.comments,
            "service_date": self.service_date.isoformat() if self.service_date else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
