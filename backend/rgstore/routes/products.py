# Overview: Flask API routes for the product catalog and stock adjustments; parses input and returns JSON responses.

# backend/rgstore/routes/products.py
"""
Product catalog routes.

Catalog fields are edited directly; stock only changes through
POST /<id>/adjust-stock (or a sale). Deletion is soft.
"""
from flask import Blueprint, request, current_app

from ..config import get_settings
from ..models import Product, MOVEMENT_TYPES
from ..services import products_service, inventory_service, ledger_service
from ..services.products_service import ProductPatch
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    coerce_quantity,
    ValidationError,
    ConflictError,
    NotFoundError,
    InsufficientStockError,
)
from ..decorators import require_api_key

_PRODUCT_ALIASES = {
    "imageUrl": "image_url",
    "lowStockThreshold": "low_stock_threshold",
    "isActive": "is_active",
}

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset(
        {"sku", "barcode", "name", "category", "imageUrl", "price", "cost", "stock", "lowStockThreshold"}
    ),
    required_on_create=frozenset({"sku", "name", "category", "price", "cost"}),
    aliases=_PRODUCT_ALIASES,
)

# stock is not writable here: it moves through adjust-stock and sales only
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset(
        {"sku", "barcode", "name", "category", "imageUrl", "price", "cost", "lowStockThreshold", "isActive"}
    ),
    aliases=_PRODUCT_ALIASES,
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _parse_active(raw: str | None) -> bool | None:
    if raw is None or raw == "" or raw.lower() == "true":
        return True
    if raw.lower() == "false":
        return False
    if raw.lower() == "all":
        return None
    raise ValidationError("active must be true, false or all")


@products_bp.get("")
@require_api_key
def list_products():
    """
    List products.

    Query params:
    - active: true (default) | false | all
    - search: substring of name, sku or barcode (case-insensitive)
    - category: exact category
    - lowStock: "true" to keep only stock <= lowStockThreshold
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - perPage: int (optional) - items per page (default 20, max 100)
    """
    try:
        active = _parse_active(request.args.get("active"))
    except ValidationError as e:
        return {"error": str(e)}, 400

    result = products_service.list_products(
        active=active,
        search=request.args.get("search"),
        category=request.args.get("category"),
        low_stock=request.args.get("lowStock", "false").lower() == "true",
        page=request.args.get("page", type=int),
        per_page=request.args.get("perPage", type=int),
    )
    return result, 200


@products_bp.get("/categories")
@require_api_key
def list_categories():
    return {"items": products_service.list_categories()}, 200


@products_bp.get("/barcode/<barcode>")
@require_api_key
def get_product_by_barcode(barcode: str):
    try:
        product = products_service.get_product_by_barcode(barcode)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return product.to_dict(), 200


@products_bp.get("/check-sku/<sku>")
@require_api_key
def check_sku_availability(sku: str):
    exclude_id = request.args.get("excludeId", type=int)
    return {"sku": sku, "available": products_service.is_sku_available(sku, exclude_id)}, 200


@products_bp.get("/<int:product_id>")
@require_api_key
def get_product(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return product.to_dict(), 200


@products_bp.post("")
@require_api_key
def create_product_route():
    """
    Create a new product.

    An optional "stock" > 0 is booked as an "Initial stock" IN movement.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(
            patch=patch,
            default_low_stock_threshold=get_settings().default_low_stock_threshold,
        )
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    current_app.logger.info("Created product id=%s sku=%s", created.id, created.sku)
    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_api_key
def update_product_route(product_id: int):
    """
    Partial update. Omitted fields are left alone; barcode / imageUrl may be
    cleared with null.
    """
    payload = request.get_json(silent=True) or {}

    try:
        fields = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(fields)
        patch = ProductPatch.from_fields(fields)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_api_key
def delete_product_route(product_id: int):
    """Soft-delete a product (isActive=false)."""
    try:
        products_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return {"error": "Internal server error"}, 500

    return {"ok": True, "message": "Product deleted successfully"}, 200


@products_bp.post("/<int:product_id>/adjust-stock")
@require_api_key
def adjust_stock_route(product_id: int):
    """
    Manual stock correction.

    Body: {"quantity": int > 0, "type": "IN" | "OUT", "reason": str?}
    """
    payload = request.get_json(silent=True) or {}

    try:
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")
        movement_type = payload.get("type")
        if movement_type not in MOVEMENT_TYPES:
            raise ValidationError("quantity and type (IN/OUT) are required")
        if payload.get("quantity") is None:
            raise ValidationError("quantity and type (IN/OUT) are required")
        quantity = coerce_quantity(payload.get("quantity"))
        reason = payload.get("reason")
        if reason is not None:
            if not isinstance(reason, str):
                raise ValidationError("reason must be a string")
            reason = reason.strip()[:255] or None
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        product = inventory_service.adjust_stock(
            product_id=product_id,
            quantity=quantity,
            movement_type=movement_type,
            reason=reason,
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InsufficientStockError as e:
        current_app.logger.info("Rejected stock adjustment for product %s: %s", product_id, e)
        return {"error": str(e), "details": e.details}, 400
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return {"error": "Internal server error"}, 500

    return product.to_dict(), 200


@products_bp.get("/<int:product_id>/stock-movements")
@require_api_key
def list_stock_movements_route(product_id: int):
    """Ledger rows for one product, newest first (limit default 200, max 1000)."""
    limit = request.args.get("limit", default=200, type=int)
    limit = max(1, min(limit, 1000))

    try:
        rows = ledger_service.list_stock_movements(product_id=product_id, limit=limit)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"items": [r.to_dict() for r in rows], "count": len(rows)}, 200
