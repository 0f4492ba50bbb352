# backend/phonepos/services/service_ticket_service.py
"""
Service tickets (repairs). Two channels share one table:
- counter: logged by shop staff
- admin: back-office jobs that also carry material cost and status
"""
from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import or_

from ..extensions import db
from ..models import ServiceTicket, TICKET_CHANNELS, TICKET_STATUSES
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    validate_payload,
)
from phonepos.time_utils import parse_iso_date, utcnow
from .concurrency import write_transaction

TICKET_POLICY = ModelValidationPolicy(
    writable_fields={
        "channel", "model_name", "problem", "customer_name", "phone_number",
        "amount_cents", "material_cost_cents", "status", "comments",
    },
    required_on_create={"model_name", "problem", "customer_name", "amount_cents"},
)

WINDOWS = ("today", "week", "month", "all")


def _enforce_rules(patch: dict) -> None:
    if "channel" in patch and patch["channel"] not in TICKET_CHANNELS:
        raise ValidationError(f"channel must be one of: {', '.join(TICKET_CHANNELS)}")
    if "status" in patch and patch["status"] not in TICKET_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(TICKET_STATUSES)}")
    for key in ("amount_cents", "material_cost_cents"):
        if patch.get(key) is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")


def _pop_service_date(payload: dict) -> date | None:
    raw = payload.pop("service_date", None)
    if raw is None or isinstance(raw, date):
        return raw
    try:
        return parse_iso_date(str(raw))
    except ValueError:
        raise ValidationError("service_date must be YYYY-MM-DD")


def create_ticket(payload: dict, session=None) -> ServiceTicket:
    session = session or db.session
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    service_date = _pop_service_date(payload)

    patch = validate_payload(model=ServiceTicket, payload=payload, policy=TICKET_POLICY, partial=False)
    _enforce_rules(patch)

    ticket = ServiceTicket(**patch)
    ticket.service_date = service_date or utcnow().date()
    with write_transaction(session, what="create service ticket"):
        session.add(ticket)
    return ticket


def get_ticket(ticket_id: int, session=None) -> ServiceTicket:
    session = session or db.session
    ticket = session.get(ServiceTicket, ticket_id)
    if ticket is None:
        raise NotFoundError(f"Service ticket {ticket_id} not found")
    return ticket


def update_ticket(ticket_id: int, payload: dict, session=None) -> ServiceTicket:
    session = session or db.session
    ticket = get_ticket(ticket_id, session=session)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    service_date = _pop_service_date(payload)

    patch = validate_payload(model=ServiceTicket, payload=payload, policy=TICKET_POLICY, partial=True)
    _enforce_rules(patch)

    with write_transaction(session, what="update service ticket"):
        for key, value in patch.items():
            setattr(ticket, key, value)
        if service_date is not None:
            ticket.service_date = service_date
    return ticket


def window_start(window: str, today: date) -> date | None:
    if window not in WINDOWS:
        raise ValidationError(f"window must be one of: {', '.join(WINDOWS)}")
    if window == "today":
        return today
    if window == "week":
        return today - timedelta(days=7)
    if window == "month":
        return today - timedelta(days=30)
    return None


def list_tickets(
    *,
    channel: str | None = None,
    window: str = "all",
    search: str | None = None,
    today: date | None = None,
    session=None,
) -> list[ServiceTicket]:
    session = session or db.session
    today = today or utcnow().date()

    q = session.query(ServiceTicket)
    if channel:
        if channel not in TICKET_CHANNELS:
            raise ValidationError(f"channel must be one of: {', '.join(TICKET_CHANNELS)}")
        q = q.filter(ServiceTicket.channel == channel)

    since = window_start(window, today)
    if since is not None:
        q = q.filter(ServiceTicket.service_date >= since)

    if search:
        term = f"%{search.strip()}%"
        q = q.filter(or_(
            ServiceTicket.model_name.ilike(term),
            ServiceTicket.problem.ilike(term),
            ServiceTicket.customer_name.ilike(term),
            ServiceTicket.phone_number.ilike(term),
        ))

    return q.order_by(ServiceTicket.service_date.desc(), ServiceTicket.id.desc()).all()


def summarize_tickets(tickets: list[ServiceTicket]) -> dict:
    revenue = sum(t.amount_cents or 0 for t in tickets)
    material = sum(t.material_cost_cents or 0 for t in tickets)
    return {
        "count": len(tickets),
        "revenue_cents": revenue,
        "material_cost_cents": material,
        "profit_cents": revenue - material,
    }
