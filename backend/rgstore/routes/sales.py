# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/rgstore/routes/sales.py
"""Sales API routes: checkout plus read-only history."""

from flask import Blueprint, request, jsonify, current_app

from ..config import get_settings
from ..services import sales_service
from ..time_utils import parse_iso_date, parse_iso_datetime
from ..validation import ValidationError, NotFoundError, InsufficientStockError
from ..decorators import require_api_key


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_api_key
def create_sale_route():
    """
    Check out a sale.

    Body: {"items": [{"productId", "quantity", "unitPrice"}], "paymentMethod", "amountTendered"?}
    The unit prices are the ones captured at ring-up, not the current catalog prices.
    """
    try:
        sale_request = sales_service.parse_sale_request(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        sale = sales_service.create_sale(
            sale_request,
            allow_short_tender=get_settings().allow_short_tender,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except InsufficientStockError as e:
        current_app.logger.info("Rejected sale: %s", e)
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Created sale id=%s total=%s", sale.id, sale.total_amount)
    return jsonify(sale.to_dict()), 201


@sales_bp.get("")
@require_api_key
def list_sales_route():
    """
    Recent sales, newest first.

    Query params:
    - date: YYYY-MM-DD (one UTC day), or
    - startDate / endDate: ISO-8601 datetimes (inclusive)
    - limit: default from settings, max 500
    """
    try:
        day = parse_iso_date(request.args.get("date"))
        start = parse_iso_datetime(request.args.get("startDate"))
        end = parse_iso_datetime(request.args.get("endDate"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD; startDate/endDate must be ISO-8601"}), 400

    limit = request.args.get("limit", default=get_settings().sales_page_size, type=int)
    limit = max(1, min(limit, 500))

    try:
        sales = sales_service.list_sales(day=day, start=start, end=end, limit=limit)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify([s.to_dict(full_products=False) for s in sales]), 200


@sales_bp.get("/<int:sale_id>")
@require_api_key
def get_sale_route(sale_id: int):
    """Get sale with its items and product snapshots."""
    try:
        sale = sales_service.get_sale(sale_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to load sale %s", sale_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(sale.to_dict()), 200
