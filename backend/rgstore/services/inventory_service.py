# Overview: Stock adjustment processor; every stock change goes through here or the sale service.

# backend/rgstore/services/inventory_service.py

from __future__ import annotations

from ..extensions import db
from ..models import Product, MOVEMENT_IN, MOVEMENT_TYPES
from ..validation import NotFoundError, InsufficientStockError, ValidationError, MAX_ID, MAX_QUANTITY
from .ledger_service import append_stock_movement
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
"""
Stock Invariants (authoritative)

- Product.stock >= 0 at every commit.
- Every change to Product.stock appends exactly one StockMovement in the same
  transaction; the pair commits or rolls back together.
- The read-check-write sequence (read stock, check, write new stock) runs in
  one transaction with the product row locked:
    - SQLite: BEGIN IMMEDIATE serializes writers
    - others: SELECT ... FOR UPDATE
  and the products.version_id column turns any lost update into StaleDataError,
  which run_with_retry() retries from a fresh read.
"""

INITIAL_STOCK_REASON = "Initial stock"


def load_product_for_update(product_id: int, *, require_active: bool = False) -> Product:
    """Fetch a product with its row locked for the rest of the transaction."""
    if not 1 <= product_id <= MAX_ID:
        raise NotFoundError(f"Product {product_id} not found", product_id)
    query = lock_for_update(db.session.query(Product).filter(Product.id == product_id))
    product = query.populate_existing().first()
    if product is None:
        raise NotFoundError(f"Product {product_id} not found", product_id)
    if require_active and not product.is_active:
        raise NotFoundError(f"Product {product_id} not found", product_id)
    return product


def apply_stock_change(
    product: Product,
    *,
    movement_type: str,
    quantity: int,
    reason: str | None = None,
) -> Product:
    """
    Core stock mutation without locking, retry, or commit.

    Called by adjust_stock(), product creation (initial stock) and the sale
    service. The caller owns the transaction and must have locked the row.
    """
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError("type must be IN or OUT")
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")

    if movement_type == MOVEMENT_IN:
        new_stock = product.stock + quantity
    else:
        new_stock = product.stock - quantity

    if new_stock < 0:
        raise InsufficientStockError(
            product_id=product.id,
            requested=quantity,
            available=product.stock,
            name=product.name,
        )

    product.stock = new_stock
    append_stock_movement(
        product_id=product.id,
        movement_type=movement_type,
        quantity=quantity,
        reason=reason,
    )
    # flush now so a concurrent version bump surfaces inside this attempt
    db.session.flush()
    return product


def adjust_stock(
    *,
    product_id: int,
    quantity: int,
    movement_type: str,
    reason: str | None = None,
) -> Product:
    """
    Manually move stock IN or OUT of a product.

    newStock = stock + quantity (IN) or stock - quantity (OUT); rejected with
    InsufficientStockError when it would go below zero. Soft-deleted products
    can still be corrected.
    """
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError("type must be IN or OUT")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}")

    def _op():
        begin_write_transaction()
        product = load_product_for_update(product_id)
        apply_stock_change(
            product,
            movement_type=movement_type,
            quantity=quantity,
            reason=reason or None,
        )
        db.session.commit()
        return product

    return run_with_retry(_op)
