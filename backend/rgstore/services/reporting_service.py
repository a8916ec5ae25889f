# Overview: Read-only reporting over sales and the product catalog.

from __future__ import annotations

from collections import OrderedDict
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.orm import selectinload

from rgstore.extensions import db
from rgstore.models import Product, Sale, SaleItem
from rgstore.time_utils import day_bounds, utctoday

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def _sales_between(start, end, *, with_items: bool) -> list[Sale]:
    query = db.session.query(Sale).filter(Sale.created_at >= start, Sale.created_at < end)
    if with_items:
        query = query.options(selectinload(Sale.items).joinedload(SaleItem.product))
    return query.order_by(Sale.created_at.asc(), Sale.id.asc()).all()


def _average(total: Decimal, count: int) -> Decimal:
    if count == 0:
        return ZERO
    return (total / count).quantize(CENT, rounding=ROUND_HALF_UP)


def top_products(sales: list[Sale], limit: int) -> list[dict]:
    """
    Best sellers by quantity.

    Ties keep the order in which products were first seen (sales oldest first,
    items in line order); sorted() is stable.
    """
    totals: OrderedDict[int, dict] = OrderedDict()
    for sale in sales:
        for item in sale.items:
            entry = totals.get(item.product_id)
            if entry is None:
                entry = {
                    "productId": item.product_id,
                    "name": item.product.name,
                    "category": item.product.category,
                    "quantity": 0,
                    "revenue": ZERO,
                }
                totals[item.product_id] = entry
            entry["quantity"] += item.quantity
            entry["revenue"] += item.subtotal

    ranked = sorted(totals.values(), key=lambda e: e["quantity"], reverse=True)
    return ranked[:limit]


def daily_report(*, day: date | None = None, top_n: int = 5) -> dict:
    """
    Totals, best sellers and a 24-slot hourly breakdown for one UTC day.
    Hours without sales are present with zero values.
    """
    if top_n < 1:
        raise ReportError("top_n must be >= 1")
    day = day or utctoday()
    start, end = day_bounds(day)

    sales = _sales_between(start, end, with_items=True)

    total_revenue = sum((s.total_amount for s in sales), ZERO)
    total_transactions = len(sales)

    hourly = [
        {"hour": h, "label": f"{h:02d}:00", "transactions": 0, "revenue": ZERO}
        for h in range(24)
    ]
    for sale in sales:
        bucket = hourly[sale.created_at.hour]
        bucket["transactions"] += 1
        bucket["revenue"] += sale.total_amount

    return {
        "date": day.isoformat(),
        "summary": {
            "totalRevenue": total_revenue,
            "totalTransactions": total_transactions,
            "avgTransactionValue": _average(total_revenue, total_transactions),
        },
        "topProducts": top_products(sales, top_n),
        "hourlyBreakdown": hourly,
    }


def range_report(*, days: int = 7, today: date | None = None, max_days: int = 366) -> dict:
    """
    Per-day revenue and transaction counts for the last `days` UTC days,
    ending today (inclusive). Every day in the window is present.
    """
    if days < 1 or days > max_days:
        raise ReportError(f"days must be between 1 and {max_days}")

    today = today or utctoday()
    first_day = today - timedelta(days=days - 1)
    start, _ = day_bounds(first_day)
    _, end = day_bounds(today)

    buckets: OrderedDict[str, dict] = OrderedDict()
    for i in range(days):
        key = (first_day + timedelta(days=i)).isoformat()
        buckets[key] = {"date": key, "revenue": ZERO, "transactions": 0}

    for sale in _sales_between(start, end, with_items=False):
        bucket = buckets[sale.created_at.date().isoformat()]
        bucket["revenue"] += sale.total_amount
        bucket["transactions"] += 1

    data = list(buckets.values())
    total_revenue = sum((b["revenue"] for b in data), ZERO)
    total_transactions = sum(b["transactions"] for b in data)

    return {
        "days": days,
        "startDate": first_day.isoformat(),
        "endDate": today.isoformat(),
        "summary": {
            "totalRevenue": total_revenue,
            "totalTransactions": total_transactions,
            "avgTransactionValue": _average(total_revenue, total_transactions),
        },
        "data": data,
    }


def inventory_report() -> dict:
    """
    Stock valuation of the active catalog at cost and at retail, overall and
    per category, plus the low / out-of-stock lists.
    """
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.stock.asc(), Product.name.asc(), Product.id.asc())
        .all()
    )

    total_cost_value = ZERO
    total_retail_value = ZERO
    by_category: dict[str, dict] = {}
    low_stock = []
    out_of_stock = 0

    for product in products:
        cost_value = product.cost * product.stock
        retail_value = product.price * product.stock
        total_cost_value += cost_value
        total_retail_value += retail_value

        if product.is_low_stock:
            low_stock.append(product.to_dict())
        if product.stock == 0:
            out_of_stock += 1

        cat = by_category.setdefault(
            product.category,
            {"count": 0, "stock": 0, "value": ZERO, "retailValue": ZERO},
        )
        cat["count"] += 1
        cat["stock"] += product.stock
        cat["value"] += cost_value
        cat["retailValue"] += retail_value

    return {
        "summary": {
            "totalProducts": len(products),
            "lowStockCount": len(low_stock),
            "outOfStockCount": out_of_stock,
            "totalInventoryValue": total_cost_value,
            "totalRetailValue": total_retail_value,
        },
        "lowStockProducts": low_stock,
        "byCategory": dict(sorted(by_category.items())),
    }
