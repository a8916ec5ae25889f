# Overview: Stock ledger data access; append-only movement rows and reconciliation.

from __future__ import annotations

from sqlalchemy import case, func

from ..extensions import db
from ..models import Product, StockMovement, MOVEMENT_IN, MOVEMENT_TYPES
from ..validation import NotFoundError
"""
Stock Ledger Invariants (authoritative)

- One StockMovement row per stock mutation, written in the same DB transaction
  as the Product.stock change it records.
- Rows are append-only: no updates, no deletes.
- quantity is always > 0; direction comes from type (IN / OUT).
- For every product, SUM(IN) - SUM(OUT) == Product.stock. This is not checked
  online; reconcile_stock() audits it after the fact.
"""


def append_stock_movement(
    *,
    product_id: int,
    movement_type: str,
    quantity: int,
    reason: str | None = None,
) -> StockMovement:
    """
    Append one ledger row.

    - No stock math here; callers change Product.stock in the same transaction.
    - Flushes so the row gets its id without committing.
    """
    if movement_type not in MOVEMENT_TYPES:
        raise ValueError(f"invalid movement type {movement_type!r}")
    if quantity <= 0:
        raise ValueError("movement quantity must be > 0")

    movement = StockMovement(
        product_id=product_id,
        type=movement_type,
        quantity=quantity,
        reason=reason,
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def list_stock_movements(*, product_id: int, limit: int = 200) -> list[StockMovement]:
    """Newest first."""
    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Product not found", product_id)

    return (
        db.session.query(StockMovement)
        .filter(StockMovement.product_id == product_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )


def _signed_sum():
    return func.coalesce(
        func.sum(
            case(
                (StockMovement.type == MOVEMENT_IN, StockMovement.quantity),
                else_=-StockMovement.quantity,
            )
        ),
        0,
    )


def ledger_stock(product_id: int) -> int:
    """Stock level implied by the ledger alone."""
    total = (
        db.session.query(_signed_sum())
        .filter(StockMovement.product_id == product_id)
        .scalar()
    )
    return int(total or 0)


def reconcile_stock(*, product_id: int | None = None, only_drift: bool = False) -> dict:
    """
    Compare each product's running stock counter with its ledger.

    Returns {"checked": n, "drifted": m, "rows": [...]}; each row carries
    stock, ledgerStock, difference (stock - ledgerStock) and inSync.
    """
    ledger_q = (
        db.session.query(
            StockMovement.product_id.label("product_id"),
            _signed_sum().label("ledger_stock"),
        )
        .group_by(StockMovement.product_id)
    )
    if product_id is not None:
        ledger_q = ledger_q.filter(StockMovement.product_id == product_id)
    ledger_map = {row.product_id: int(row.ledger_stock or 0) for row in ledger_q.all()}

    products_q = db.session.query(Product).order_by(Product.id.asc())
    if product_id is not None:
        products_q = products_q.filter(Product.id == product_id)
    products = products_q.all()
    if product_id is not None and not products:
        raise NotFoundError("Product not found", product_id)

    rows = []
    drifted = 0
    for product in products:
        expected = ledger_map.get(product.id, 0)
        in_sync = expected == product.stock
        if not in_sync:
            drifted += 1
        if only_drift and in_sync:
            continue
        rows.append(
            {
                "productId": product.id,
                "sku": product.sku,
                "name": product.name,
                "stock": product.stock,
                "ledgerStock": expected,
                "difference": product.stock - expected,
                "inSync": in_sync,
            }
        )

    return {"checked": len(products), "drifted": drifted, "rows": rows}
