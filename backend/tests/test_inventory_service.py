"""
Stock adjustment tests.

Every successful adjustment changes Product.stock and appends exactly one
movement; every rejected one changes nothing.
"""

import pytest

from rgstore.extensions import db
from rgstore.models import StockMovement, ImmutableRecordError
from rgstore.services.inventory_service import adjust_stock, INITIAL_STOCK_REASON
from rgstore.services.ledger_service import ledger_stock
from rgstore.validation import InsufficientStockError, NotFoundError, ValidationError


def _movements(product_id):
    return (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id)
        .order_by(StockMovement.id.asc())
        .all()
    )


def test_initial_stock_is_booked_as_in_movement(make_product):
    product = make_product(stock=10)

    rows = _movements(product.id)
    assert len(rows) == 1
    assert rows[0].type == "IN"
    assert rows[0].quantity == 10
    assert rows[0].reason == INITIAL_STOCK_REASON


def test_zero_initial_stock_has_no_movement(make_product):
    product = make_product(stock=0)

    assert product.stock == 0
    assert _movements(product.id) == []


def test_adjust_in_adds_stock_and_movement(make_product, reload_product):
    product = make_product(stock=10)

    adjust_stock(product_id=product.id, quantity=5, movement_type="IN", reason="Delivery")

    assert reload_product(product.id).stock == 15
    last = _movements(product.id)[-1]
    assert (last.type, last.quantity, last.reason) == ("IN", 5, "Delivery")


def test_adjust_out_removes_stock(make_product, reload_product):
    product = make_product(stock=10)

    adjust_stock(product_id=product.id, quantity=3, movement_type="OUT", reason="Damaged")

    assert reload_product(product.id).stock == 7
    assert ledger_stock(product.id) == 7


def test_adjust_out_to_exactly_zero_is_allowed(make_product, reload_product):
    product = make_product(stock=4)

    adjust_stock(product_id=product.id, quantity=4, movement_type="OUT")

    assert reload_product(product.id).stock == 0
    assert len(_movements(product.id)) == 2


def test_adjust_out_below_zero_is_rejected_without_effects(make_product, reload_product):
    product = make_product(stock=10)

    with pytest.raises(InsufficientStockError) as exc_info:
        adjust_stock(product_id=product.id, quantity=11, movement_type="OUT")

    assert exc_info.value.details == {"productId": product.id, "requested": 11, "available": 10}
    assert reload_product(product.id).stock == 10
    assert len(_movements(product.id)) == 1


@pytest.mark.parametrize("quantity", [0, -1, True, 1.5, "3"])
def test_adjust_rejects_bad_quantity(make_product, reload_product, quantity):
    product = make_product(stock=10)

    with pytest.raises(ValidationError):
        adjust_stock(product_id=product.id, quantity=quantity, movement_type="IN")

    assert reload_product(product.id).stock == 10
    assert len(_movements(product.id)) == 1


def test_adjust_rejects_unknown_type(make_product):
    product = make_product(stock=10)

    with pytest.raises(ValidationError):
        adjust_stock(product_id=product.id, quantity=1, movement_type="MOVE")


def test_adjust_unknown_product(db_session):
    with pytest.raises(NotFoundError):
        adjust_stock(product_id=999, quantity=1, movement_type="IN")


def test_adjust_inactive_product_is_allowed(make_product, reload_product):
    from rgstore.services.products_service import delete_product

    product = make_product(stock=2)
    delete_product(product_id=product.id)

    adjust_stock(product_id=product.id, quantity=2, movement_type="OUT", reason="Write-off")

    assert reload_product(product.id).stock == 0


def test_movements_are_append_only(make_product):
    product = make_product(stock=5)
    movement = _movements(product.id)[0]

    movement.quantity = 50
    with pytest.raises(ImmutableRecordError):
        db.session.flush()
    db.session.rollback()

    db.session.delete(_movements(product.id)[0])
    with pytest.raises(ImmutableRecordError):
        db.session.flush()
    db.session.rollback()

    assert [m.quantity for m in _movements(product.id)] == [5]


def test_out_of_range_product_id_is_not_found(db_session):
    with pytest.raises(NotFoundError):
        adjust_stock(product_id=10**20, quantity=1, movement_type="IN")
