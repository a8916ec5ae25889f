from __future__ import annotations
from datetime import datetime
from decimal import Decimal, InvalidOperation
from rgstore.time_utils import parse_iso_datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum money value: 9,999,999.99 (fits Numeric(12, 2) with headroom for totals)
MAX_MONEY = Decimal("9999999.99")
CENT = Decimal("0.01")

# Per-line and per-adjustment quantity ceiling
MAX_QUANTITY = 1_000_000

# Largest row id a 64-bit INTEGER column can hold
MAX_ID = 2**63 - 1


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


class NotFoundError(LookupError):
    """404-level: a referenced entity does not exist."""

    def __init__(self, message: str, entity_id: Any = None):
        super().__init__(message)
        self.entity_id = entity_id


class InsufficientStockError(ValueError):
    """Business-rule rejection: not enough stock on hand."""

    def __init__(self, product_id: int, requested: int, available: int, name: str | None = None):
        label = name or f"product {product_id}"
        super().__init__(f"Insufficient stock for {label}")
        self.product_id = product_id
        self.requested = requested
        self.available = available

    @property
    def details(self) -> dict:
        return {
            "productId": self.product_id,
            "requested": self.requested,
            "available": self.available,
        }


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - aliases: external (JSON) name -> model column key
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()
    aliases: dict[str, str] = field(default_factory=dict)

    def column_key(self, name: str) -> str:
        return self.aliases.get(name, name)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_money(value: Any, name: str) -> Decimal:
    """
    Normalize a monetary input to a 2-place Decimal.

    JSON numbers arrive as Decimal (see DecimalJSONProvider) or int; strings
    are accepted too. Floats are taken by their shortest repr, never by their
    binary expansion.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{name} must be a number")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    elif isinstance(value, str):
        stripped = value.strip()
        try:
            amount = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{name} must be a number")
    else:
        raise ValidationError(f"{name} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{name} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{name} must be >= 0")
    if amount > MAX_MONEY:
        raise ValidationError(f"{name} cannot exceed {MAX_MONEY}")
    if amount != amount.quantize(CENT):
        raise ValidationError(f"{name} must have at most 2 decimal places")
    return amount.quantize(CENT)


def coerce_int(value: Any, name: str) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    # Reject floats / decimals explicitly
    if isinstance(value, (float, Decimal)):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    raise ValidationError(f"{name} must be an integer")


def coerce_quantity(value: Any, name: str = "quantity") -> int:
    qty = coerce_int(value, name)
    if qty <= 0:
        raise ValidationError(f"{name} must be > 0")
    if qty > MAX_QUANTITY:
        raise ValidationError(f"{name} cannot exceed {MAX_QUANTITY}")
    return qty


def coerce_id(value: Any, name: str) -> int:
    entity_id = coerce_int(value, name)
    if entity_id < 1 or entity_id > MAX_ID:
        raise ValidationError(f"{name} must be between 1 and {MAX_ID}")
    return entity_id


def _coerce_value(col, value: Any, name: str):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, name)

    if isinstance(coltype, Numeric):
        return coerce_money(value, name)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
            return value.strip().lower() == "true"
        raise ValidationError(f"{name} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{name} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{name} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{name} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            raise ValidationError(f"{name} must be a string")
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by model column keys, holding only
    the fields that were present in the payload.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if policy.column_key(k) not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        key = policy.column_key(k)
        col = cols[key]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[key] = None
            continue

        val = _coerce_value(col, raw, k)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[key] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for key in ("stock", "low_stock_threshold"):
        if key in patch and patch[key] is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")
        if key in patch and patch[key] is not None and patch[key] > MAX_QUANTITY:
            raise ValidationError(f"{key} cannot exceed {MAX_QUANTITY}")

    # An empty optional code means "no code", never an empty unique value
    for key in ("barcode", "image_url"):
        if key in patch and patch[key] == "":
            patch[key] = None
