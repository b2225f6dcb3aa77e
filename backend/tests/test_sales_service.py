from decimal import Decimal

import pytest

from heladeria.models import Sale
from heladeria.services import sales_service, settings_service, catalog_service
from heladeria.services.register_service import NoOpenRegisterError
from heladeria.services.sales_service import SaleError, build_payment_splits
from heladeria.validation import ValidationError

from conftest import USER_ID, BRANCH_ID, stock_of


def _sale(items, **kwargs):
    kwargs.setdefault("price_list_id", "1")
    return sales_service.record_sale(
        user_id=USER_ID,
        branch_id=BRANCH_ID,
        login_session_id="ls-1",
        items=items,
        **kwargs,
    )


def test_sale_requires_open_register(catalog):
    with pytest.raises(NoOpenRegisterError):
        _sale([{"product_id": "1", "quantity": 1}])


def test_empty_cart_is_validation_error(open_register):
    with pytest.raises(ValidationError):
        _sale([])


def test_sale_snapshots_and_totals(open_register):
    sale = _sale([
        {"product_id": "1", "quantity": 2},
        {"product_id": "10", "quantity": 1},
    ])

    assert sale.cash_register_id == open_register.id
    assert sale.login_session_id == "ls-1"
    assert sale.subtotal == Decimal("1300.00")
    assert sale.total == Decimal("1300.00")
    assert sale.synced is False
    assert sale.reversed is False
    assert sale.reversed_sale_id is None
    assert [(i.product_name, i.quantity, i.unit_price) for i in sale.items] == [
        ("Chocolate", 2, Decimal("400.00")),
        ("Sundae", 1, Decimal("500.00")),
    ]
    assert [(p.method, p.amount) for p in sale.payments] == [("cash", Decimal("1300.00"))]


def test_sale_deducts_stock(open_register):
    before = stock_of("1")

    _sale([{"product_id": "1", "quantity": 3}])

    assert stock_of("1") == before - 3


def test_repeated_products_are_merged(open_register):
    sale = _sale([
        {"product_id": "2", "quantity": 1},
        {"product_id": "2", "quantity": 2},
    ])

    assert len(sale.items) == 1
    assert sale.items[0].quantity == 3


def test_price_list_drives_unit_price(open_register):
    sale = _sale([{"product_id": "1", "quantity": 1}], price_list_id="3")

    assert sale.items[0].unit_price == Decimal("300.00")
    assert sale.price_list_id == "3"


def test_discount_is_floored_at_zero(open_register):
    sale = _sale([{"product_id": "1", "quantity": 1}], discount=1000)

    assert sale.discount == Decimal("1000.00")
    assert sale.total == Decimal("0.00")


def test_delivery_adds_configured_cost(open_register):
    settings_service.update_company_config({"deliveryCost": 150})

    sale = _sale([{"product_id": "1", "quantity": 1}], discount=50, is_delivery=True)

    assert sale.delivery_cost == Decimal("150.00")
    assert sale.total == Decimal("500.00")


def test_split_payment_must_add_up(open_register):
    with pytest.raises(ValidationError):
        _sale(
            [{"product_id": "1", "quantity": 1}],
            payments=[{"method": "cash", "amount": 100}, {"method": "card", "amount": 100}],
        )


def test_unknown_payment_method_is_rejected(open_register):
    with pytest.raises(ValidationError):
        _sale([{"product_id": "1", "quantity": 1}], payments=[{"method": "bitcoin", "amount": 400}])


def test_unknown_product_is_sale_error(open_register):
    with pytest.raises(SaleError) as exc:
        _sale([{"product_id": "999", "quantity": 1}])

    assert exc.value.details == {"product_id": "999"}


@pytest.mark.parametrize("quantity", [0, -1, 1.5, "abc", None, True])
def test_bad_quantity_is_rejected(open_register, quantity):
    with pytest.raises(ValidationError):
        _sale([{"product_id": "1", "quantity": quantity}])


def test_failed_sale_writes_nothing(open_register, db_session):
    before = stock_of("1")

    with pytest.raises(SaleError):
        _sale([{"product_id": "1", "quantity": 1}, {"product_id": "999", "quantity": 1}])

    assert db_session.query(Sale).count() == 0
    assert stock_of("1") == before


def test_stock_may_go_negative(open_register):
    catalog_service.update_stock("11", -catalog_service.get_product("11").stock)

    _sale([{"product_id": "11", "quantity": 2}])

    assert stock_of("11") == -2


def test_build_payment_splits_secondary_first():
    splits = build_payment_splits(Decimal("1000.00"), "cash", "card", 300)

    assert splits == [
        {"method": "card", "amount": Decimal("300.00")},
        {"method": "cash", "amount": Decimal("700.00")},
    ]


def test_build_payment_splits_single_method():
    assert build_payment_splits(Decimal("250.00"), "transfer") == [
        {"method": "transfer", "amount": Decimal("250.00")},
    ]
    # A zero secondary amount falls back to a single split
    assert build_payment_splits(Decimal("250.00"), "cash", "card", 0) == [
        {"method": "cash", "amount": Decimal("250.00")},
    ]


def test_build_payment_splits_secondary_cannot_exceed_total():
    with pytest.raises(ValidationError):
        build_payment_splits(Decimal("100.00"), "cash", "card", 150)


def test_sale_splits_from_primary_and_secondary_method(open_register):
    sale = _sale(
        [{"product_id": "10", "quantity": 2}],
        primary_method="cash",
        secondary_method="transfer",
        secondary_amount=250,
    )

    assert [(p.method, p.amount) for p in sale.payments] == [
        ("transfer", Decimal("250.00")),
        ("cash", Decimal("750.00")),
    ]


def test_sale_with_primary_method_only(open_register):
    sale = _sale([{"product_id": "10", "quantity": 1}], primary_method="card")

    assert [(p.method, p.amount) for p in sale.payments] == [("card", Decimal("500.00"))]


@pytest.mark.parametrize("items", [["1"], [None], "1", {"product_id": "1", "quantity": 1}])
def test_malformed_items_are_rejected(open_register, items):
    with pytest.raises(ValidationError):
        _sale(items)


@pytest.mark.parametrize("payments", [["cash"], [400], "cash", {"method": "cash", "amount": 400}])
def test_malformed_payments_are_rejected(open_register, payments):
    with pytest.raises(ValidationError):
        _sale([{"product_id": "1", "quantity": 1}], payments=payments)


def test_unknown_price_list_is_rejected(open_register, db_session):
    with pytest.raises(ValidationError):
        _sale([{"product_id": "1", "quantity": 1}], price_list_id="99")

    assert db_session.query(Sale).count() == 0
