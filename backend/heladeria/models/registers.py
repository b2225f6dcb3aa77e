from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import new_id, Money, money_out


REGISTER_OPEN = "open"
REGISTER_CLOSED = "closed"

MOVEMENT_INCOME = "income"
MOVEMENT_EXPENSE = "expense"
MOVEMENT_TYPES = (MOVEMENT_INCOME, MOVEMENT_EXPENSE)


class CashRegister(db.Model):
    """
    One cash-drawer session for one user at one branch.

    LIFECYCLE:
    - open: created by opening the register; sales and movements attach to it
    - closed: closing amount counted, closed_at set; never mutated again

    INVARIANT: at most one open register per user_id.
    """
    __tablename__ = "cash_registers"
    __table_args__ = (
        db.Index("ix_cash_registers_user_status", "user_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    branch_id = db.Column(db.String(36), nullable=False, index=True)
    user_id = db.Column(db.String(36), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=REGISTER_OPEN, index=True)

    opening_amount = Money(nullable=False, default=0)
    closing_amount = Money(nullable=True)  # Set when closing
    expected_amount = Money(nullable=True)  # Snapshot of expected cash at close

    opened_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    closed_at = db.Column(db.DateTime, nullable=True)

    synced = db.Column(db.Boolean, nullable=False, default=False, index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_open(self) -> bool:
        return self.status == REGISTER_OPEN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "user_id": self.user_id,
            "status": self.status,
            "opening_amount": money_out(self.opening_amount),
            "closing_amount": money_out(self.closing_amount),
            "expected_amount": money_out(self.expected_amount),
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at),
            "synced": self.synced,
            "version_id": self.version_id,
        }

    def to_sync_dict(self) -> dict:
        return {
            "id": self.id,
            "branchId": self.branch_id,
            "userId": self.user_id,
            "openedAt": to_utc_z(self.opened_at),
            "closedAt": to_utc_z(self.closed_at),
            "openingAmount": money_out(self.opening_amount),
            "closingAmount": money_out(self.closing_amount),
            "expectedAmount": money_out(self.expected_amount),
            "status": self.status,
            "synced": self.synced,
            "version_id": self.version_id,
        }


class CashMovement(db.Model):
    """
    Manual cash income or expense tied to a register.

    Amount is always stored positive; direction lives in `type`.
    A reversal is a new movement of the opposite type pointing at the
    original through reversed_movement_id; the original only gets reversed=True.
    """
    __tablename__ = "cash_movements"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    cash_register_id = db.Column(db.String(36), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False)
    amount = Money(nullable=False)
    description = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    login_session_id = db.Column(db.String(64), nullable=True)

    reversed = db.Column(db.Boolean, nullable=False, default=False)
    reversed_movement_id = db.Column(db.String(36), nullable=True, index=True)
    # Explains a difference against the suggested opening amount; already part of opening_amount
    opening_adjustment = db.Column(db.Boolean, nullable=False, default=False)

    synced = db.Column(db.Boolean, nullable=False, default=False, index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_reversal(self) -> bool:
        return bool(self.reversed_movement_id)

    @property
    def signed_amount(self):
        return self.amount if self.type == MOVEMENT_INCOME else -self.amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cash_register_id": self.cash_register_id,
            "type": self.type,
            "amount": money_out(self.amount),
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
            "login_session_id": self.login_session_id,
            "reversed": self.reversed,
            "reversed_movement_id": self.reversed_movement_id,
            "opening_adjustment": self.opening_adjustment,
            "synced": self.synced,
            "version_id": self.version_id,
        }

    def to_sync_dict(self) -> dict:
        return {
            "id": self.id,
            "cashRegisterId": self.cash_register_id,
            "type": self.type,
            "amount": money_out(self.amount),
            "description": self.description,
            "createdAt": to_utc_z(self.created_at),
            "loginSessionId": self.login_session_id,
            "reversed": self.reversed,
            "reversedMovementId": self.reversed_movement_id,
            "openingAdjustment": self.opening_adjustment,
            "synced": self.synced,
            "version_id": self.version_id,
        }
