from __future__ import annotations

from ..extensions import db
from rgstore.time_utils import to_utc_z, utcnow

MOVEMENT_IN = "IN"
MOVEMENT_OUT = "OUT"
MOVEMENT_TYPES = (MOVEMENT_IN, MOVEMENT_OUT)

MONEY = db.Numeric(12, 2, asdecimal=True)


class Product(db.Model):
    """
    Product master data.

    SKU / BARCODE:
    - sku is required and unique across ALL products, active or not.
    - barcode is optional; when present it is unique across ALL products.
    Soft-deleted rows keep their codes, so a retired SKU can never be reused
    for a different item while sale lines and stock movements still point at it.

    STOCK:
    - stock is the running on-hand counter. It is only changed by the stock
      adjustment and sale services, always together with a StockMovement row.
    - version_id guards concurrent writers (optimistic locking); the CHECK
      constraint is the last line against negative stock.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.UniqueConstraint("barcode", name="uq_products_barcode"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_nonnegative"),
        db.CheckConstraint("price >= 0", name="ck_products_price_nonnegative"),
        db.CheckConstraint("cost >= 0", name="ck_products_cost_nonnegative"),
        db.CheckConstraint("low_stock_threshold >= 0", name="ck_products_threshold_nonnegative"),
        db.Index("ix_products_active_name", "is_active", "name"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False)
    barcode = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(100), nullable=False)
    image_url = db.Column(db.String(512), nullable=True)

    price = db.Column(MONEY, nullable=False)
    cost = db.Column(MONEY, nullable=False)

    stock = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.low_stock_threshold

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "barcode": self.barcode,
            "name": self.name,
            "category": self.category,
            "imageUrl": self.image_url,
            "price": self.price,
            "cost": self.cost,
            "stock": self.stock,
            "lowStockThreshold": self.low_stock_threshold,
            "isLowStock": self.is_low_stock,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }

    def to_summary_dict(self) -> dict:
        """Short form embedded in sale listings."""
        return {"id": self.id, "name": self.name, "sku": self.sku}


class StockMovement(db.Model):
    """
    Append-only stock ledger row.

    For every product: SUM(IN quantities) - SUM(OUT quantities) == Product.stock.
    Rows are never updated or deleted (see models/immutability.py).
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
        db.CheckConstraint("type IN ('IN', 'OUT')", name="ck_stock_movements_type"),
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    type = db.Column(db.String(8), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    product = db.relationship("Product", backref=db.backref("stock_movements", lazy="dynamic"))

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.type == MOVEMENT_IN else -self.quantity

    def __repr__(self) -> str:
        return f"<StockMovement id={self.id} product_id={self.product_id} {self.type} {self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "reason": self.reason,
            "createdAt": to_utc_z(self.created_at),
        }
