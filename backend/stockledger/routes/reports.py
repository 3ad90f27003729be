# Overview: Flask API routes for stock reporting.

from flask import Blueprint, request, jsonify, current_app

from ..services import reporting_service
from ..time_utils import parse_iso_datetime

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/stock")
def stock_report_route():
    """
    Stock movement summary per transaction type plus low/out-of-stock counts.

    Query params: start_date, end_date (ISO-8601, optional, inclusive)
    """
    try:
        start_dt = parse_iso_datetime(request.args.get("start_date"))
        end_dt = parse_iso_datetime(request.args.get("end_date"))
    except ValueError:
        return jsonify({
            "error": "start_date and end_date must be ISO-8601 datetimes",
            "kind": "ValidationFailure",
        }), 400

    try:
        return jsonify(reporting_service.stock_report(start_dt, end_dt)), 200
    except Exception:
        current_app.logger.exception("Failed to build stock report")
        return jsonify({"error": "Internal server error"}), 500
