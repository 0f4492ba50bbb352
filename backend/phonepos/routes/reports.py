from datetime import timedelta

from flask import Blueprint, Response, current_app, jsonify, request

from ..services import reporting_service, export_service, service_ticket_service
from ..time_utils import utcnow
from ..validation import ShopError, ValidationError
from . import date_arg, error_response


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _range_args():
    today = utcnow().date()
    end = date_arg("end", today)
    start = date_arg("start", end - timedelta(days=6))
    return start, end


@reports_bp.get("/sales")
def sales_report():
    """Query params: start, end (YYYY-MM-DD, default last 7 days), granularity."""
    try:
        start, end = _range_args()
        report = reporting_service.sales_report(
            start=start,
            end=end,
            granularity=request.args.get("granularity", "daily"),
            top_limit=current_app.config.get("TOP_PRODUCTS_LIMIT", 5),
        )
    except ShopError as e:
        return error_response(e)
    return jsonify(report), 200


@reports_bp.get("/dashboard")
def dashboard():
    report = reporting_service.dashboard(
        recent_limit=current_app.config.get("RECENT_SALES_LIMIT", 5),
        low_stock_limit=current_app.config.get("LOW_STOCK_ALERT_LIMIT", 10),
    )
    return jsonify(report), 200


@reports_bp.get("/services")
def services_report():
    """Query params: channel (counter|admin), window (today|week|month|all), search."""
    try:
        tickets = service_ticket_service.list_tickets(
            channel=request.args.get("channel") or None,
            window=request.args.get("window", "all"),
            search=request.args.get("search") or None,
        )
    except ShopError as e:
        return error_response(e)
    return jsonify({
        "summary": service_ticket_service.summarize_tickets(tickets),
        "items": [t.to_dict() for t in tickets],
    }), 200


@reports_bp.get("/export")
def export_report():
    """
    CSV download. type=overview|products (sales range params apply) or
    type=services (service report params apply).
    """
    report_type = request.args.get("type", "overview")
    stamp = utcnow().date().isoformat()
    try:
        if report_type not in export_service.REPORT_TYPES:
            raise ValidationError(f"type must be one of: {', '.join(export_service.REPORT_TYPES)}")

        granularity = request.args.get("granularity", "daily")
        if report_type == "services":
            tickets = service_ticket_service.list_tickets(
                channel=request.args.get("channel") or None,
                window=request.args.get("window", "all"),
                search=request.args.get("search") or None,
            )
            body = export_service.services_csv(t.to_dict() for t in tickets)
        else:
            start, end = _range_args()
            report = reporting_service.sales_report(start=start, end=end, granularity=granularity)
            if report_type == "products":
                body = export_service.product_details_csv(report["product_details"])
            else:
                body = export_service.overview_csv(report["buckets"])
    except ShopError as e:
        return error_response(e)

    filename = export_service.export_filename(report_type, stamp, granularity)
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
