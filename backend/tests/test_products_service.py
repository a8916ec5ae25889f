from decimal import Decimal

import pytest

from rgstore.extensions import db
from rgstore.models import Product, ImmutableRecordError
from rgstore.services import products_service
from rgstore.services.products_service import ProductPatch, UNSET
from rgstore.validation import ConflictError, NotFoundError, ValidationError


def test_create_product_defaults(make_product):
    product = make_product(sku="BEV-001", barcode="4902102072939")

    assert product.is_active is True
    assert product.low_stock_threshold == 10
    assert product.price == Decimal("10.00")
    assert product.barcode == "4902102072939"


def test_create_uses_configured_threshold(db_session):
    product = products_service.create_product(
        patch={"sku": "X-1", "name": "X", "category": "C", "price": Decimal("1"), "cost": Decimal("1")},
        default_low_stock_threshold=3,
    )
    assert product.low_stock_threshold == 3
    assert product.stock == 0


def test_duplicate_sku_conflicts_even_when_inactive(make_product):
    retired = make_product(sku="DUP-1")
    products_service.delete_product(product_id=retired.id)

    with pytest.raises(ConflictError, match="SKU already exists"):
        make_product(sku="DUP-1")

    assert db.session.query(Product).filter_by(sku="DUP-1").count() == 1


def test_duplicate_barcode_conflicts(make_product):
    make_product(barcode="123")

    with pytest.raises(ConflictError, match="Barcode already exists"):
        make_product(barcode="123")


def test_products_without_barcode_coexist(make_product):
    make_product(barcode=None)
    make_product(barcode=None)

    assert db.session.query(Product).filter(Product.barcode.is_(None)).count() == 2


def test_update_only_touches_given_fields(make_product, reload_product):
    product = make_product(name="Old", price=Decimal("5.00"), barcode="111")

    products_service.update_product(product_id=product.id, patch=ProductPatch(name="New"))

    fresh = reload_product(product.id)
    assert fresh.name == "New"
    assert fresh.price == Decimal("5.00")
    assert fresh.barcode == "111"
    assert fresh.stock == 10


def test_update_can_clear_nullable_fields(make_product, reload_product):
    product = make_product(barcode="111", image_url="http://img/1.png")

    products_service.update_product(
        product_id=product.id,
        patch=ProductPatch.from_fields({"barcode": None, "image_url": None}),
    )

    fresh = reload_product(product.id)
    assert fresh.barcode is None
    assert fresh.image_url is None


def test_update_sku_to_own_or_free_value(make_product, reload_product):
    product = make_product(sku="A-1")

    products_service.update_product(product_id=product.id, patch=ProductPatch(sku="A-1"))
    products_service.update_product(product_id=product.id, patch=ProductPatch(sku="A-2"))

    assert reload_product(product.id).sku == "A-2"


def test_update_sku_taken_by_other_product(make_product, reload_product):
    make_product(sku="A-1")
    other = make_product(sku="B-1")

    with pytest.raises(ConflictError):
        products_service.update_product(product_id=other.id, patch=ProductPatch(sku="A-1"))

    assert reload_product(other.id).sku == "B-1"


def test_update_unknown_product(db_session):
    with pytest.raises(NotFoundError):
        products_service.update_product(product_id=42, patch=ProductPatch(name="x"))


class TestProductPatch:
    def test_unset_fields_are_not_changed(self):
        patch = ProductPatch(name="n", barcode=None)
        assert patch.changed_fields() == ["barcode", "name"]
        assert patch.is_set("barcode")
        assert not patch.is_set("price")
        assert patch.get("price", "default") == "default"
        assert patch.sku is UNSET

    def test_stock_is_not_patchable(self):
        with pytest.raises(ValidationError):
            ProductPatch.from_fields({"stock": 5})

    def test_required_fields_cannot_be_nulled(self):
        with pytest.raises(ValidationError):
            ProductPatch.from_fields({"name": None})


def test_delete_is_soft_and_idempotent(make_product, reload_product):
    product = make_product()

    products_service.delete_product(product_id=product.id)
    products_service.delete_product(product_id=product.id)

    fresh = reload_product(product.id)
    assert fresh is not None
    assert fresh.is_active is False


def test_products_cannot_be_hard_deleted(make_product):
    product = make_product()

    db.session.delete(product)
    with pytest.raises(ImmutableRecordError):
        db.session.flush()
    db.session.rollback()


def test_delete_unknown_product(db_session):
    with pytest.raises(NotFoundError):
        products_service.delete_product(product_id=123)


def test_list_filters(make_product):
    make_product(name="Coca Cola", sku="BEV-001", category="Beverages", stock=50)
    make_product(name="Pepsi", sku="BEV-002", category="Beverages", stock=5, low_stock_threshold=10)
    make_product(name="Soap 100%", sku="SOA-001", category="Personal Care", barcode="690", stock=20)
    retired = make_product(name="Old Chips", sku="SNK-009", category="Snacks")
    products_service.delete_product(product_id=retired.id)

    def names(**kwargs):
        return [p["name"] for p in products_service.list_products(**kwargs)["items"]]

    assert names() == ["Coca Cola", "Pepsi", "Soap 100%"]
    assert names(active=False) == ["Old Chips"]
    assert names(active=None) == ["Coca Cola", "Old Chips", "Pepsi", "Soap 100%"]
    assert names(search="bev") == ["Coca Cola", "Pepsi"]
    assert names(search="690") == ["Soap 100%"]
    assert names(search="100%") == ["Soap 100%"]
    assert names(search="%") == ["Soap 100%"]
    assert names(category="Beverages") == ["Coca Cola", "Pepsi"]
    assert names(low_stock=True) == ["Pepsi"]


def test_list_pagination(make_product):
    for i in range(5):
        make_product(name=f"Item {i}")

    result = products_service.list_products(page=2, per_page=2)

    assert [p["name"] for p in result["items"]] == ["Item 2", "Item 3"]
    assert result["pagination"] == {
        "page": 2,
        "perPage": 2,
        "total": 5,
        "totalPages": 3,
        "hasNext": True,
        "hasPrev": True,
    }


def test_lookups(make_product):
    product = make_product(sku="LK-1", barcode="777", category="Snacks")
    make_product(category="Dairy")
    hidden = make_product(category="Tobacco")
    products_service.delete_product(product_id=hidden.id)

    assert products_service.get_product_by_barcode("777").id == product.id
    with pytest.raises(NotFoundError):
        products_service.get_product_by_barcode("000")

    assert products_service.is_sku_available("LK-1") is False
    assert products_service.is_sku_available("LK-1", exclude_id=product.id) is True
    assert products_service.is_sku_available("LK-2") is True

    assert products_service.list_categories() == ["Dairy", "Snacks"]
