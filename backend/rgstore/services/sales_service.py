"""
Sales Service - checkout as one atomic unit of work.

A sale is created complete: the Sale row, its SaleItems, the stock decrement
of every product and one OUT StockMovement per line all commit together or
not at all. There is no draft state and no update/delete path.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Sale, SaleItem, MOVEMENT_OUT, PAYMENT_CASH, PAYMENT_METHODS
from ..validation import (
    ValidationError,
    NotFoundError,
    InsufficientStockError,
    coerce_id,
    coerce_money,
    coerce_quantity,
)
from rgstore.time_utils import day_bounds
from .inventory_service import apply_stock_change, load_product_for_update
from .concurrency import begin_write_transaction, run_with_retry

# Numeric(12, 2) ceiling
MAX_SALE_TOTAL = Decimal("9999999999.99")


@dataclass(frozen=True)
class SaleLineRequest:
    product_id: int
    quantity: int
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class SaleRequest:
    """A proposed sale, validated and independent of HTTP."""
    lines: tuple[SaleLineRequest, ...]
    payment_method: str = PAYMENT_CASH
    amount_tendered: Decimal | None = None

    @property
    def total_amount(self) -> Decimal:
        return sum((line.subtotal for line in self.lines), Decimal("0.00"))

    def quantities_by_product(self) -> dict[int, int]:
        totals: dict[int, int] = {}
        for line in self.lines:
            totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
        return totals


def parse_sale_request(payload: dict | None) -> SaleRequest:
    """
    Build a SaleRequest from the JSON body
    {items: [{productId, quantity, unitPrice}], paymentMethod?, amountTendered?}.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    allowed = {"items", "paymentMethod", "amountTendered"}
    for key in payload:
        if key not in allowed:
            raise ValidationError(f"Field not allowed: {key}")

    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("Sale items are required")

    lines = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{i}] must be an object")
        for key in ("productId", "quantity", "unitPrice"):
            if item.get(key) is None:
                raise ValidationError(f"items[{i}].{key} is required")
        lines.append(
            SaleLineRequest(
                product_id=coerce_id(item["productId"], f"items[{i}].productId"),
                quantity=coerce_quantity(item["quantity"], f"items[{i}].quantity"),
                unit_price=coerce_money(item["unitPrice"], f"items[{i}].unitPrice"),
            )
        )

    method = payload.get("paymentMethod") or PAYMENT_CASH
    if not isinstance(method, str) or method.strip().lower() not in PAYMENT_METHODS:
        raise ValidationError(f"paymentMethod must be one of: {', '.join(PAYMENT_METHODS)}")
    method = method.strip().lower()

    tendered = payload.get("amountTendered")
    if tendered is not None:
        tendered = coerce_money(tendered, "amountTendered")

    return SaleRequest(lines=tuple(lines), payment_method=method, amount_tendered=tendered)


def compute_change(request: SaleRequest, *, allow_short_tender: bool = False) -> Decimal | None:
    """
    change = tendered - total for cash sales with a tendered amount.

    A short cash tender is rejected unless allow_short_tender is set, in which
    case the negative change is returned for the caller to act on.
    """
    if request.amount_tendered is None:
        return None
    if request.payment_method != PAYMENT_CASH:
        raise ValidationError("amountTendered only applies to cash sales")

    change = request.amount_tendered - request.total_amount
    if change < 0 and not allow_short_tender:
        raise ValidationError(
            f"amountTendered {request.amount_tendered} is less than total {request.total_amount}"
        )
    return change


def create_sale(request: SaleRequest, *, allow_short_tender: bool = False) -> Sale:
    """
    Validate and book a sale.

    Steps, all inside one transaction:
    1. lock every referenced product (ascending id, so two checkouts over
       the same products always lock in the same order)
    2. check stock against the per-product requested total
    3. insert Sale + SaleItems
    4. decrement stock and append OUT movements ("Sale #<id>")

    Raises:
        ValidationError: empty sale, bad tender
        NotFoundError: unknown or soft-deleted product
        InsufficientStockError: stock < requested quantity
    """
    if not request.lines:
        raise ValidationError("Sale items are required")
    if request.total_amount > MAX_SALE_TOTAL:
        raise ValidationError(f"sale total cannot exceed {MAX_SALE_TOTAL}")

    change = compute_change(request, allow_short_tender=allow_short_tender)
    totals = request.quantities_by_product()

    def _op():
        begin_write_transaction()

        products = {}
        for product_id in sorted(totals):
            products[product_id] = load_product_for_update(product_id, require_active=True)

        for product_id, requested in totals.items():
            product = products[product_id]
            if product.stock < requested:
                raise InsufficientStockError(
                    product_id=product_id,
                    requested=requested,
                    available=product.stock,
                    name=product.name,
                )

        sale = Sale(
            total_amount=request.total_amount,
            payment_method=request.payment_method,
            amount_tendered=request.amount_tendered,
            change=change,
        )
        for line in request.lines:
            sale.items.append(
                SaleItem(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    subtotal=line.subtotal,
                )
            )
        db.session.add(sale)
        db.session.flush()  # sale.id is part of the movement reason

        for line in request.lines:
            apply_stock_change(
                products[line.product_id],
                movement_type=MOVEMENT_OUT,
                quantity=line.quantity,
                reason=f"Sale #{sale.id}",
            )

        db.session.commit()
        return sale

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = (
        db.session.query(Sale)
        .options(selectinload(Sale.items).joinedload(SaleItem.product))
        .filter(Sale.id == sale_id)
        .first()
    )
    if sale is None:
        raise NotFoundError("Sale not found", sale_id)
    return sale


def list_sales(
    *,
    day: date | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 50,
) -> list[Sale]:
    """
    Newest first. day selects one UTC calendar day; otherwise start/end are
    inclusive bounds (either may be omitted).
    """
    query = db.session.query(Sale).options(
        selectinload(Sale.items).joinedload(SaleItem.product)
    )

    if day is not None:
        day_start, day_end = day_bounds(day)
        query = query.filter(Sale.created_at >= day_start, Sale.created_at < day_end)
    else:
        if start is not None and end is not None and start > end:
            raise ValidationError("startDate must be before endDate")
        if start is not None:
            query = query.filter(Sale.created_at >= start)
        if end is not None:
            query = query.filter(Sale.created_at <= end)

    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()
