"""
Register Session Manager

WHY: Each register is a period of cash accountability for one cashier.
Expected cash at any moment is derived from the ledger, so the cashier can
reconcile counted cash against it at shift close.

DESIGN PRINCIPLES:
- At most one open register per user
- Registers are immutable once closed
- Opening amount is never silently altered: a difference against the
  suggested amount is explained by an adjustment movement
- Expected cash is recomputed on every read, never cached
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import CashRegister, CashMovement
from ..models.registers import (
    REGISTER_OPEN,
    REGISTER_CLOSED,
    MOVEMENT_INCOME,
    MOVEMENT_EXPENSE,
    MOVEMENT_TYPES,
)
from ..models.sales import PAYMENT_CASH
from ..validation import parse_amount, require_text, require_choice
from . import ledger_service


OPENING_ADJUSTMENT_DESCRIPTION = "Ajuste de apertura"
ZERO = Decimal("0.00")


class RegisterError(Exception):
    """Raised for register operation errors."""
    pass


class NoOpenRegisterError(RegisterError):
    """The current user has no open register; checkout and movements are blocked."""
    pass


@dataclass(frozen=True)
class CashBreakdown:
    opening_amount: Decimal
    cash_sales: Decimal
    income: Decimal
    expense: Decimal

    @property
    def expected(self) -> Decimal:
        return self.opening_amount + self.cash_sales + self.income - self.expense


# =============================================================================
# LOOKUPS
# =============================================================================

def get_open_register(user_id: str) -> CashRegister | None:
    """The single open register of a user, if any."""
    return db.session.query(CashRegister).filter_by(
        user_id=user_id,
        status=REGISTER_OPEN,
    ).first()


def require_open_register(user_id: str) -> CashRegister:
    register = get_open_register(user_id)
    if register is None:
        raise NoOpenRegisterError("Debes abrir una caja antes de operar")
    return register


def suggested_opening_amount(user_id: str) -> Decimal:
    """Closing amount of the user's most recently closed register, or 0."""
    last_closed = db.session.query(CashRegister).filter_by(
        user_id=user_id,
        status=REGISTER_CLOSED,
    ).order_by(CashRegister.closed_at.desc()).first()

    if last_closed is None or last_closed.closing_amount is None:
        return ZERO
    return Decimal(last_closed.closing_amount)


# =============================================================================
# LIFECYCLE
# =============================================================================

def open_register(
    user_id: str,
    branch_id: str,
    opening_amount,
    login_session_id: str | None = None,
) -> tuple[CashRegister, CashMovement | None]:
    """
    Open a register for a user.

    If opening_amount differs from the suggested amount, an income (higher)
    or expense (lower) movement for the absolute difference is appended in
    the same transaction.

    Returns:
        (register, adjustment movement or None)

    Raises:
        RegisterError: if the user already has an open register
        ValidationError: if opening_amount is negative or not a number
    """
    amount = parse_amount(opening_amount, "opening_amount")

    existing = get_open_register(user_id)
    if existing:
        raise RegisterError(f"User already has an open register ({existing.id})")

    suggested = suggested_opening_amount(user_id)

    register = CashRegister(
        branch_id=branch_id,
        user_id=user_id,
        status=REGISTER_OPEN,
        opening_amount=amount,
    )
    ledger_service.add_cash_register(register, commit=False)

    adjustment = None
    difference = amount - suggested
    if difference != 0:
        adjustment = CashMovement(
            cash_register_id=register.id,
            type=MOVEMENT_INCOME if difference > 0 else MOVEMENT_EXPENSE,
            amount=abs(difference),
            description=OPENING_ADJUSTMENT_DESCRIPTION,
            login_session_id=login_session_id,
            opening_adjustment=True,
        )
        ledger_service.add_cash_movement(adjustment, commit=False)

    db.session.commit()

    current_app.logger.info(
        "Register %s opened by user %s with %s (suggested %s)",
        register.id, user_id, amount, suggested,
    )
    return register, adjustment


def close_cash_register(register_id: str, closing_amount) -> CashRegister | None:
    """
    Close a register with the counted cash.

    Unknown or already closed registers are a silent no-op (returns None);
    callers validate existence first. The expected amount at close time is
    stored alongside for the audit record.
    """
    amount = parse_amount(closing_amount, "closing_amount")

    register = ledger_service.get_register(register_id)
    if register is None or register.status != REGISTER_OPEN:
        return None

    expected = compute_expected_cash(register)
    closed = ledger_service.close_cash_register(
        register_id,
        amount,
        expected_amount=expected,
    )

    discrepancy = amount - expected
    if discrepancy != 0:
        current_app.logger.warning(
            "Register %s closed with discrepancy %s (expected %s, counted %s)",
            register_id, discrepancy, expected, amount,
        )
    else:
        current_app.logger.info("Register %s closed balanced at %s", register_id, amount)
    return closed


# =============================================================================
# EXPECTED CASH
# =============================================================================

def _counts_toward_cash(record) -> bool:
    # Only live originals count: reversed originals and their compensators
    # are both left out, which nets them to zero without double counting.
    # Opening adjustments are already inside opening_amount.
    if getattr(record, "opening_adjustment", False):
        return False
    return not record.reversed and not record.is_reversal


def cash_breakdown(register: CashRegister) -> CashBreakdown:
    cash_sales = ZERO
    for sale in ledger_service.sales_for_register(register.id):
        if not _counts_toward_cash(sale):
            continue
        for payment in sale.payments:
            if payment.method == PAYMENT_CASH:
                cash_sales += Decimal(payment.amount)

    income = ZERO
    expense = ZERO
    for movement in ledger_service.movements_for_register(register.id):
        if not _counts_toward_cash(movement):
            continue
        if movement.type == MOVEMENT_INCOME:
            income += Decimal(movement.amount)
        else:
            expense += Decimal(movement.amount)

    return CashBreakdown(
        opening_amount=Decimal(register.opening_amount),
        cash_sales=cash_sales,
        income=income,
        expense=expense,
    )


def compute_expected_cash(register: CashRegister) -> Decimal:
    """opening + cash sales + income - expense, all over live originals of this register."""
    return cash_breakdown(register).expected


# =============================================================================
# CASH MOVEMENTS
# =============================================================================

def record_movement(
    register_id: str,
    movement_type: str,
    amount,
    description,
    login_session_id: str | None = None,
) -> CashMovement:
    """
    Record a manual income or expense on an open register.

    Raises:
        ValidationError: non-positive amount, empty description, bad type
        RegisterError: unknown register
        NoOpenRegisterError: register is closed
    """
    require_choice(movement_type, "type", MOVEMENT_TYPES)
    value = parse_amount(amount, "amount", allow_zero=False)
    text = require_text(description, "description")

    register = ledger_service.get_register(register_id)
    if register is None:
        raise RegisterError("Register not found")
    if register.status != REGISTER_OPEN:
        raise NoOpenRegisterError("Register is closed")

    movement = CashMovement(
        cash_register_id=register_id,
        type=movement_type,
        amount=value,
        description=text,
        login_session_id=login_session_id,
    )
    return ledger_service.add_cash_movement(movement)


def get_register_detail(register_id: str) -> dict:
    register = ledger_service.get_register(register_id)
    if register is None:
        raise RegisterError("Register not found")
    return {
        "register": register.to_dict(),
        "sales": [s.to_dict() for s in ledger_service.sales_for_register(register_id)],
        "movements": [m.to_dict() for m in ledger_service.movements_for_register(register_id)],
        "expected_amount": float(compute_expected_cash(register)),
    }
