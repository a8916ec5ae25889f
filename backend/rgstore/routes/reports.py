from flask import Blueprint, current_app, jsonify, request

from rgstore.config import get_settings
from rgstore.decorators import require_api_key
from rgstore.services import reporting_service
from rgstore.time_utils import parse_iso_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/daily")
@require_api_key
def daily_report():
    try:
        day = parse_iso_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    try:
        report = reporting_service.daily_report(day=day, top_n=get_settings().top_products)
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to build sales report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/range")
@require_api_key
def range_report():
    raw_days = request.args.get("days", "7")
    try:
        days = int(raw_days)
    except ValueError:
        return jsonify({"error": "days must be an integer"}), 400

    try:
        report = reporting_service.range_report(days=days, max_days=get_settings().max_report_days)
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to build sales report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/inventory")
@require_api_key
def inventory_report():
    try:
        return jsonify(reporting_service.inventory_report()), 200
    except Exception:
        current_app.logger.exception("Failed to build inventory report")
        return jsonify({"error": "Internal server error"}), 500
