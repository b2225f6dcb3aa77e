from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import new_id, Money, money_out


PAYMENT_CASH = "cash"
PAYMENT_CARD = "card"
PAYMENT_TRANSFER = "transfer"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CARD, PAYMENT_TRANSFER)

PAYMENT_LABELS = {
    PAYMENT_CASH: "Efectivo",
    PAYMENT_CARD: "Tarjeta",
    PAYMENT_TRANSFER: "Transferencia",
}


class Sale(db.Model):
    """
    Completed sale.

    Items and payments are snapshots taken at checkout; later catalog or
    price changes never touch them.

    REVERSAL: a reversal is a second Sale with every numeric field negated and
    reversed_sale_id pointing at the original. The original keeps its numbers
    and only flips reversed=True. Neither of the two may be reversed again.

    INVARIANT: sum(payments.amount) == total.

    cash_register_id and reversed_sale_id are plain ids, not foreign keys;
    retention purge can drop a register or an original before its dependents.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_register_created", "cash_register_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    branch_id = db.Column(db.String(36), nullable=False, index=True)
    user_id = db.Column(db.String(36), nullable=False, index=True)
    cash_register_id = db.Column(db.String(36), nullable=False, index=True)
    login_session_id = db.Column(db.String(64), nullable=True)

    subtotal = Money(nullable=False, default=0)
    discount = Money(nullable=False, default=0)
    delivery_cost = Money(nullable=False, default=0)
    is_delivery = db.Column(db.Boolean, nullable=False, default=False)
    total = Money(nullable=False, default=0)

    price_list_id = db.Column(db.String(36), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    synced = db.Column(db.Boolean, nullable=False, default=False, index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    reversed = db.Column(db.Boolean, nullable=False, default=False)
    reversed_sale_id = db.Column(db.String(36), nullable=True, index=True)

    __mapper_args__ = {"version_id_col": version_id}

    items = db.relationship(
        "SaleItem",
        order_by="SaleItem.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    payments = db.relationship(
        "SalePayment",
        order_by="SalePayment.position",
        cascade="all, delete-orphan",
        lazy=True,
    )

    @property
    def is_reversal(self) -> bool:
        return bool(self.reversed_sale_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "user_id": self.user_id,
            "cash_register_id": self.cash_register_id,
            "login_session_id": self.login_session_id,
            "items": [item.to_dict() for item in self.items],
            "payments": [payment.to_dict() for payment in self.payments],
            "subtotal": money_out(self.subtotal),
            "discount": money_out(self.discount),
            "delivery_cost": money_out(self.delivery_cost),
            "is_delivery": self.is_delivery,
            "total": money_out(self.total),
            "price_list_id": self.price_list_id,
            "created_at": to_utc_z(self.created_at),
            "synced": self.synced,
            "version_id": self.version_id,
            "reversed": self.reversed,
            "reversed_sale_id": self.reversed_sale_id,
        }

    def to_sync_dict(self) -> dict:
        return {
            "id": self.id,
            "branchId": self.branch_id,
            "userId": self.user_id,
            "cashRegisterId": self.cash_register_id,
            "loginSessionId": self.login_session_id,
            "items": [item.to_sync_dict() for item in self.items],
            "payments": [payment.to_dict() for payment in self.payments],
            "subtotal": money_out(self.subtotal),
            "discount": money_out(self.discount),
            "deliveryCost": money_out(self.delivery_cost),
            "isDelivery": self.is_delivery,
            "total": money_out(self.total),
            "priceListId": self.price_list_id,
            "createdAt": to_utc_z(self.created_at),
            "synced": self.synced,
            "version_id": self.version_id,
            "reversed": self.reversed,
            "reversedSaleId": self.reversed_sale_id,
        }


class SaleItem(db.Model):
    """Line of a sale with product name and unit price snapshots."""
    __tablename__ = "sale_items"

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.String(36), nullable=False, index=True)
    product_name = db.Column(db.String(120), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = Money(nullable=False)
    subtotal = Money(nullable=False)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": money_out(self.unit_price),
            "subtotal": money_out(self.subtotal),
        }

    def to_sync_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "unitPrice": money_out(self.unit_price),
            "subtotal": money_out(self.subtotal),
        }


class SalePayment(db.Model):
    """One payment split of a sale (method + amount)."""
    __tablename__ = "sale_payments"

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    method = db.Column(db.String(16), nullable=False)
    amount = Money(nullable=False)

    def to_dict(self) -> dict:
        return {"method": self.method, "amount": money_out(self.amount)}
