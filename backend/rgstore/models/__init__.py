from .inventory import Product, StockMovement, MOVEMENT_IN, MOVEMENT_OUT, MOVEMENT_TYPES
from .sales import Sale, SaleItem, PAYMENT_CASH, PAYMENT_CARD, PAYMENT_METHODS
from .immutability import ImmutableRecordError

__all__ = [
    'Product', 'StockMovement', 'MOVEMENT_IN', 'MOVEMENT_OUT', 'MOVEMENT_TYPES',
    'Sale', 'SaleItem', 'PAYMENT_CASH', 'PAYMENT_CARD', 'PAYMENT_METHODS',
    'ImmutableRecordError',
]
