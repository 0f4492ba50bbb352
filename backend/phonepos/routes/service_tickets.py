# Overview: Flask API routes for repair/service tickets.

from flask import Blueprint, request, jsonify, current_app

from ..services import service_ticket_service
from ..validation import ShopError
from . import error_response

service_tickets_bp = Blueprint("service_tickets", __name__, url_prefix="/api/service-tickets")


@service_tickets_bp.get("")
def list_tickets():
    try:
        tickets = service_ticket_service.list_tickets(
            channel=request.args.get("channel") or None,
            window=request.args.get("window", "all"),
            search=request.args.get("search") or None,
        )
    except ShopError as e:
        return error_response(e)
    return {"items": [t.to_dict() for t in tickets], "count": len(tickets)}


@service_tickets_bp.post("")
def create_ticket():
    payload = request.get_json(silent=True) or {}
    try:
        ticket = service_ticket_service.create_ticket(payload)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create service ticket")
        return jsonify({"error": "Internal server error"}), 500
    return ticket.to_dict(), 201


@service_tickets_bp.get("/<int:ticket_id>")
def get_ticket(ticket_id: int):
    try:
        ticket = service_ticket_service.get_ticket(ticket_id)
    except ShopError as e:
        return error_response(e)
    return ticket.to_dict()


@service_tickets_bp.put("/<int:ticket_id>")
def update_ticket(ticket_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        ticket = service_ticket_service.update_ticket(ticket_id, payload)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update service ticket")
        return jsonify({"error": "Internal server error"}), 500
    return ticket.to_dict()
