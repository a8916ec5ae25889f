"""
ORM-level immutability for ledger and sale records.

Stock movements, sales and sale items are written once and never changed.
Products are never physically removed (soft delete flips is_active).
The listeners fire before the SQL reaches the database, so an offending
flush aborts the surrounding transaction.
"""
from __future__ import annotations

from sqlalchemy import event

from .inventory import Product, StockMovement
from .sales import Sale, SaleItem


class ImmutableRecordError(RuntimeError):
    """An append-only record was about to be updated or deleted."""


def _forbid_update(mapper, connection, target):
    raise ImmutableRecordError(f"{type(target).__name__} rows are append-only (id={target.id})")


def _forbid_delete(mapper, connection, target):
    raise ImmutableRecordError(f"{type(target).__name__} rows cannot be deleted (id={target.id})")


for _model in (StockMovement, Sale, SaleItem):
    event.listen(_model, "before_update", _forbid_update)
    event.listen(_model, "before_delete", _forbid_delete)

event.listen(Product, "before_delete", _forbid_delete)
