"""
Checkout: turns a cart into a Sale on the user's open register.

WHY: The sale is the main input of the ledger. Prices and product names are
snapshotted here so history never moves when the catalog changes.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Sale, SaleItem, SalePayment
from ..models.sales import PAYMENT_CASH, PAYMENT_METHODS
from ..validation import ValidationError, parse_amount, parse_quantity, require_choice
from . import catalog_service, ledger_service, settings_service
from .catalog_service import CatalogError
from .register_service import require_open_register


ZERO = Decimal("0.00")


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def build_payment_splits(
    total: Decimal,
    primary_method: str = PAYMENT_CASH,
    secondary_method: str | None = None,
    secondary_amount=None,
) -> list[dict]:
    """
    Payment splits for a total.

    With a secondary method and a positive secondary amount, the secondary
    split is taken first and the primary method covers the remainder.
    """
    require_choice(primary_method, "primary_method", PAYMENT_METHODS)
    if secondary_method and secondary_amount is not None:
        require_choice(secondary_method, "secondary_method", PAYMENT_METHODS)
        second = parse_amount(secondary_amount, "secondary_amount")
        if second > 0:
            if second > total:
                raise ValidationError("secondary_amount cannot exceed the sale total")
            return [
                {"method": secondary_method, "amount": second},
                {"method": primary_method, "amount": total - second},
            ]
    return [{"method": primary_method, "amount": total}]


def _normalize_payments(payments: list[dict], total: Decimal) -> list[dict]:
    if not isinstance(payments, list):
        raise ValidationError("payments must be a list")
    if not payments:
        raise ValidationError("At least one payment is required")

    normalized = []
    for i, payment in enumerate(payments):
        if not isinstance(payment, dict):
            raise ValidationError(f"payments[{i}] must be an object")
        method = require_choice(payment.get("method"), f"payments[{i}].method", PAYMENT_METHODS)
        amount = parse_amount(payment.get("amount"), f"payments[{i}].amount")
        normalized.append({"method": method, "amount": amount})

    paid = sum((p["amount"] for p in normalized), ZERO)
    if paid != total:
        raise ValidationError(f"Payments add up to {paid} but the sale total is {total}")
    return normalized


def record_sale(
    *,
    user_id: str,
    branch_id: str,
    login_session_id: str | None,
    items: list[dict],
    price_list_id: str,
    discount=0,
    payments: list[dict] | None = None,
    is_delivery: bool = False,
    primary_method: str = PAYMENT_CASH,
    secondary_method: str | None = None,
    secondary_amount=None,
) -> Sale:
    """
    Record a completed sale and deduct stock.

    Args:
        items: [{"product_id": ..., "quantity": int}, ...]; repeated products
            are merged into one line
        payments: [{"method": ..., "amount": ...}]; when omitted the splits
            come from primary_method / secondary_method / secondary_amount
            (one cash split for the full total by default)

    Raises:
        NoOpenRegisterError: the user has no open register
        ValidationError: empty cart, malformed items or payments, bad
            quantity, negative discount, unknown price list, payments that
            do not add up to the total
        SaleError: unknown product
    """
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    if not items:
        raise ValidationError("Cart is empty")

    register = require_open_register(user_id)
    discount_amount = parse_amount(discount, "discount")
    try:
        catalog_service.get_price_list(price_list_id)
    except CatalogError as exc:
        raise ValidationError(str(exc))

    # Merge repeated products, keeping first-seen order
    quantities: dict[str, int] = {}
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{i}] must be an object")
        product_id = item.get("product_id")
        if not product_id:
            raise ValidationError(f"items[{i}].product_id is required")
        qty = parse_quantity(item.get("quantity"), f"items[{i}].quantity")
        quantities[product_id] = quantities.get(product_id, 0) + qty

    lines = []
    subtotal = ZERO
    for position, (product_id, qty) in enumerate(quantities.items()):
        try:
            product = catalog_service.get_product(product_id)
        except CatalogError as exc:
            raise SaleError(str(exc), details={"product_id": product_id})
        unit_price = catalog_service.get_price(product_id, price_list_id)
        line_subtotal = unit_price * qty
        subtotal += line_subtotal
        lines.append(SaleItem(
            position=position,
            product_id=product.id,
            product_name=product.name,
            quantity=qty,
            unit_price=unit_price,
            subtotal=line_subtotal,
        ))

    delivery_cost = settings_service.get_delivery_cost() if is_delivery else ZERO
    total = max(ZERO, subtotal - discount_amount) + delivery_cost

    if payments is None:
        payments = build_payment_splits(total, primary_method, secondary_method, secondary_amount)
    splits = _normalize_payments(payments, total)

    sale = Sale(
        branch_id=branch_id,
        user_id=user_id,
        cash_register_id=register.id,
        login_session_id=login_session_id,
        subtotal=subtotal,
        discount=discount_amount,
        delivery_cost=delivery_cost,
        is_delivery=bool(is_delivery),
        total=total,
        price_list_id=price_list_id,
        synced=False,
        reversed=False,
    )
    sale.items = lines
    sale.payments = [
        SalePayment(position=i, method=p["method"], amount=p["amount"])
        for i, p in enumerate(splits)
    ]

    ledger_service.add_sale(sale, commit=False)
    for line in lines:
        catalog_service.update_stock(line.product_id, -line.quantity)
    db.session.commit()

    current_app.logger.info(
        "Sale %s recorded on register %s: total %s (%d lines)",
        sale.id, register.id, total, len(lines),
    )
    return sale
