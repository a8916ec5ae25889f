# Overview: Flask API routes for the stock ledger audit.

from flask import Blueprint, request, current_app

from ..services.ledger_service import reconcile_stock
from ..validation import NotFoundError
from ..decorators import require_api_key

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("/reconcile")
@require_api_key
def reconcile_route():
    """
    Compare every product's stock counter with SUM(IN) - SUM(OUT) of its movements.

    Query params:
    - productId: int (optional) - check a single product
    - onlyDrift: "true" to list only products out of sync
    """
    product_id = request.args.get("productId", type=int)
    only_drift = request.args.get("onlyDrift", "false").lower() == "true"

    try:
        result = reconcile_stock(product_id=product_id, only_drift=only_drift)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    if result["drifted"]:
        current_app.logger.warning("Stock ledger drift on %s product(s)", result["drifted"])
    return result, 200
