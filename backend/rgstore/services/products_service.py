# backend/rgstore/services/products_service.py
"""
Product catalog service.

UNIQUENESS: sku (always) and barcode (when present) are unique across every
product, including soft-deleted ones. Checked up front for a clear 409 and
backed by unique constraints for the race between two writers.

DELETION: soft only. is_active flips to false; rows stay because sale items
and stock movements reference them.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, MOVEMENT_IN
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import begin_write_transaction, run_with_retry
from .inventory_service import apply_stock_change, INITIAL_STOCK_REASON


class _Unset:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

# Fields that may be cleared with an explicit null
NULLABLE_FIELDS = {"barcode", "image_url"}


@dataclass(frozen=True)
class ProductPatch:
    """
    Partial product update.

    A field left as UNSET is not touched; a field set to None is cleared
    (only allowed for NULLABLE_FIELDS). stock is deliberately absent: it only
    moves through stock adjustments and sales.
    """
    sku: Any = UNSET
    barcode: Any = UNSET
    name: Any = UNSET
    category: Any = UNSET
    image_url: Any = UNSET
    price: Any = UNSET
    cost: Any = UNSET
    low_stock_threshold: Any = UNSET
    is_active: Any = UNSET

    @classmethod
    def from_fields(cls, values: dict) -> "ProductPatch":
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
        for key, value in values.items():
            if value is None and key not in NULLABLE_FIELDS:
                raise ValidationError(f"{key} cannot be null")
        return cls(**values)

    def changed_fields(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) is not UNSET]

    def get(self, name: str, default: Any = None) -> Any:
        value = getattr(self, name)
        return default if value is UNSET else value

    def is_set(self, name: str) -> bool:
        return getattr(self, name) is not UNSET

    def apply_to(self, product: Product) -> None:
        for name in self.changed_fields():
            setattr(product, name, getattr(self, name))


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _ensure_sku_free(sku: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("SKU already exists")


def _ensure_barcode_free(barcode: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Product.id).filter(Product.barcode == barcode)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("Barcode already exists")


def _flush_or_conflict() -> None:
    try:
        db.session.flush()
    except IntegrityError as exc:
        message = str(exc.orig).lower()
        if "barcode" in message:
            raise ConflictError("Barcode already exists") from exc
        if "sku" in message:
            raise ConflictError("SKU already exists") from exc
        raise


def list_products(
    *,
    active: bool | None = True,
    search: str | None = None,
    category: str | None = None,
    low_stock: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Catalog listing with optional filters and pagination.

    Args:
        active: True (default) active only, False inactive only, None both
        search: case-insensitive substring of name, sku or barcode
        category: exact category match
        low_stock: only products with stock <= low_stock_threshold
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = db.session.query(Product)

    if active is not None:
        base_query = base_query.filter(Product.is_active.is_(active))

    if search:
        pattern = _like_pattern(search.strip())
        base_query = base_query.filter(
            or_(
                Product.name.ilike(pattern, escape="\\"),
                Product.sku.ilike(pattern, escape="\\"),
                Product.barcode.ilike(pattern, escape="\\"),
            )
        )

    if category:
        base_query = base_query.filter(Product.category == category)

    if low_stock:
        base_query = base_query.filter(Product.stock <= Product.low_stock_threshold)

    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    # If no pagination requested, return all items
    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    # Pagination logic
    per_page = min(per_page or 20, 100)  # Default 20, max 100
    per_page = max(per_page, 1)
    page = max(page, 1)  # Ensure page >= 1

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "perPage": per_page,
            "total": total,
            "totalPages": total_pages,
            "hasNext": page < total_pages,
            "hasPrev": page > 1,
        },
    }


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", product_id)
    return product


def get_product_by_barcode(barcode: str) -> Product:
    """Point lookup on the barcode unique index (active and inactive)."""
    product = db.session.query(Product).filter(Product.barcode == barcode.strip()).first()
    if product is None:
        raise NotFoundError("Product not found for this barcode", barcode)
    return product


def is_sku_available(sku: str, exclude_id: int | None = None) -> bool:
    """True when no product, other than exclude_id, already owns the sku."""
    existing = db.session.query(Product.id).filter(Product.sku == sku.strip()).first()
    if existing is None:
        return True
    return exclude_id is not None and existing.id == exclude_id


def list_categories() -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.is_active.is_(True))
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [row.category for row in rows]


def create_product(*, patch: dict, default_low_stock_threshold: int = 10) -> Product:
    """
    Create product using a validated patch dict.

    An initial stock > 0 is booked through the stock ledger as one IN movement
    ("Initial stock") in the same transaction as the insert.

    Raises:
        ConflictError: If sku or barcode already exists (active or not)
    """
    data = dict(patch)
    initial_stock = data.pop("stock", None) or 0
    if initial_stock < 0:
        raise ValidationError("stock must be >= 0")
    if data.get("low_stock_threshold") is None:
        data["low_stock_threshold"] = default_low_stock_threshold
    data.pop("is_active", None)

    sku = data.get("sku")
    if not sku:
        raise ValidationError("sku is required")

    def _op():
        begin_write_transaction()
        _ensure_sku_free(sku)
        if data.get("barcode"):
            _ensure_barcode_free(data["barcode"])

        product = Product(stock=0, is_active=True, **data)
        db.session.add(product)
        _flush_or_conflict()  # ensure product.id exists before the ledger append

        if initial_stock > 0:
            apply_stock_change(
                product,
                movement_type=MOVEMENT_IN,
                quantity=initial_stock,
                reason=INITIAL_STOCK_REASON,
            )

        db.session.commit()
        return product

    return run_with_retry(_op)


def update_product(*, product_id: int, patch: ProductPatch) -> Product:
    """
    Apply a partial update to catalog fields.

    Raises:
        NotFoundError: unknown product
        ConflictError: If the new sku / barcode is taken by another product
    """
    def _op():
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product not found", product_id)

        # Uniqueness enforcement only when the code actually changes
        if patch.is_set("sku") and patch.sku != product.sku:
            _ensure_sku_free(patch.sku, exclude_id=product.id)
        if patch.is_set("barcode") and patch.barcode and patch.barcode != product.barcode:
            _ensure_barcode_free(patch.barcode, exclude_id=product.id)

        patch.apply_to(product)
        _flush_or_conflict()
        db.session.commit()
        return product

    return run_with_retry(_op)


def delete_product(*, product_id: int) -> Product:
    """
    Soft-delete a product. Deleting an already inactive product is a no-op.
    """
    def _op():
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product not found", product_id)

        # Soft-delete only: preserve IDs and historical references.
        if product.is_active:
            product.is_active = False
            db.session.commit()
        return product

    return run_with_retry(_op)
