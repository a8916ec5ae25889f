from __future__ import annotations

from ..extensions import db
from .inventory import MONEY
from rgstore.time_utils import to_utc_z, utcnow

PAYMENT_CASH = "cash"
PAYMENT_CARD = "card"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CARD)


class Sale(db.Model):
    """
    Completed sale.

    Created in one transaction together with its items, the stock decrements
    and the OUT stock movements. There is no update or delete path.

    total_amount == SUM(items.subtotal)
    change == amount_tendered - total_amount when tendered, else NULL
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("total_amount >= 0", name="ck_sales_total_nonnegative"),
        db.Index("ix_sales_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    total_amount = db.Column(MONEY, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False, default=PAYMENT_CASH)
    amount_tendered = db.Column(MONEY, nullable=True)
    change = db.Column(MONEY, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} total={self.total_amount} method={self.payment_method!r}>"

    def to_dict(self, *, full_products: bool = True) -> dict:
        return {
            "id": self.id,
            "totalAmount": self.total_amount,
            "paymentMethod": self.payment_method,
            "amountTendered": self.amount_tendered,
            "change": self.change,
            "createdAt": to_utc_z(self.created_at),
            "saleItems": [item.to_dict(full_product=full_products) for item in self.items],
        }


class SaleItem(db.Model):
    """Line item of a sale. Owned by its Sale; subtotal == quantity * unit_price."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        db.CheckConstraint("unit_price >= 0", name="ck_sale_items_unit_price_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(MONEY, nullable=False)
    subtotal = db.Column(MONEY, nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product", lazy="joined")

    def to_dict(self, *, full_product: bool = True) -> dict:
        product = None
        if self.product is not None:
            product = self.product.to_dict() if full_product else self.product.to_summary_dict()
        return {
            "id": self.id,
            "saleId": self.sale_id,
            "productId": self.product_id,
            "quantity": self.quantity,
            "unitPrice": self.unit_price,
            "subtotal": self.subtotal,
            "product": product,
        }
