"""
Sale & Movement Reversal Engine

WHY: Cash history is append-only. A mistaken sale or movement is cancelled
by a compensating record, never by deleting or editing the original, so the
register can always be audited line by line.

DESIGN PRINCIPLES:
- A compensating sale negates every numeric field of the original
- A compensating movement has the opposite type and the same positive amount
- The original only gets reversed=True
- Neither an already reversed record nor a compensator can be reversed
- Only records of a register that is still open can be reversed
- Compensator, original flag and stock restore commit as one transaction
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.orm import aliased

from ..extensions import db
from ..models import Sale, SaleItem, SalePayment, CashMovement
from ..models.registers import MOVEMENT_INCOME, MOVEMENT_EXPENSE
from . import catalog_service, ledger_service
from .concurrency import lock_for_update, run_with_retry


REVERSAL_PREFIX = "[REVERSIÓN] "


class ReversalError(Exception):
    """Raised for reversal errors."""
    pass


class AlreadyReversedError(ReversalError):
    """The target is already reversed, or is itself a reversal."""
    pass


class ReversalTargetNotFound(ReversalError):
    pass


class RegisterClosedError(ReversalError):
    """The record belongs to a register that is no longer open."""
    pass


def _require_open_register(register_id: str) -> None:
    register = ledger_service.get_register(register_id)
    if register is None or not register.is_open:
        raise RegisterClosedError("La caja de este registro ya fue cerrada")


# =============================================================================
# SALES
# =============================================================================

def _compensating_sale(original: Sale, login_session_id: str | None) -> Sale:
    reversal = Sale(
        branch_id=original.branch_id,
        user_id=original.user_id,
        cash_register_id=original.cash_register_id,
        login_session_id=login_session_id,
        subtotal=-original.subtotal,
        discount=-original.discount,
        delivery_cost=-original.delivery_cost,
        is_delivery=original.is_delivery,
        total=-original.total,
        price_list_id=original.price_list_id,
        synced=False,
        reversed=False,
        reversed_sale_id=original.id,
    )
    reversal.items = [
        SaleItem(
            position=item.position,
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=-item.quantity,
            unit_price=item.unit_price,
            subtotal=-item.subtotal,
        )
        for item in original.items
    ]
    reversal.payments = [
        SalePayment(position=p.position, method=p.method, amount=-p.amount)
        for p in original.payments
    ]
    return reversal


def reverse_sale(sale_id: str, login_session_id: str | None = None) -> Sale:
    """
    Reverse a sale with a compensating sale and restore stock.

    Returns:
        The compensating sale.

    Raises:
        ReversalTargetNotFound: unknown sale
        AlreadyReversedError: sale already reversed or is itself a reversal
        RegisterClosedError: the sale's register is closed
    """
    def _op():
        original = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not original:
            raise ReversalTargetNotFound("Sale not found")

        # Re-checked inside the transaction: both flags are load-bearing
        if original.reversed or original.is_reversal:
            raise AlreadyReversedError("Venta ya fue revertida")

        # Compensator already on file (e.g. an interrupted earlier attempt)
        if db.session.query(Sale).filter_by(reversed_sale_id=original.id).first():
            raise AlreadyReversedError("Venta ya fue revertida")

        _require_open_register(original.cash_register_id)

        reversal = _compensating_sale(original, login_session_id)
        ledger_service.add_sale(reversal, commit=False)
        ledger_service.mark_sale_reversed(original.id, commit=False)
        for item in original.items:
            catalog_service.update_stock(item.product_id, item.quantity)

        db.session.commit()
        return reversal

    try:
        reversal = run_with_retry(_op)
    except ReversalError:
        db.session.rollback()
        raise

    current_app.logger.info("Sale %s reversed by %s", sale_id, reversal.id)
    return reversal


# =============================================================================
# CASH MOVEMENTS
# =============================================================================

def reverse_movement(movement_id: str, login_session_id: str | None = None) -> CashMovement:
    """
    Reverse a cash movement with one of the opposite type.

    No stock effect. Returns the compensating movement.
    """
    def _op():
        original = lock_for_update(db.session.query(CashMovement).filter_by(id=movement_id)).first()
        if not original:
            raise ReversalTargetNotFound("Movement not found")

        if original.reversed or original.is_reversal:
            raise AlreadyReversedError("Movimiento ya revertido")

        if original.opening_adjustment:
            raise ReversalError("Opening adjustments cannot be reversed")

        if db.session.query(CashMovement).filter_by(reversed_movement_id=original.id).first():
            raise AlreadyReversedError("Movimiento ya revertido")

        _require_open_register(original.cash_register_id)

        reversal = CashMovement(
            cash_register_id=original.cash_register_id,
            type=MOVEMENT_EXPENSE if original.type == MOVEMENT_INCOME else MOVEMENT_INCOME,
            amount=original.amount,
            description=f"{REVERSAL_PREFIX}{original.description}",
            login_session_id=login_session_id,
            reversed_movement_id=original.id,
        )
        ledger_service.add_cash_movement(reversal, commit=False)
        ledger_service.mark_movement_reversed(original.id, commit=False)

        db.session.commit()
        return reversal

    try:
        reversal = run_with_retry(_op)
    except ReversalError:
        db.session.rollback()
        raise

    current_app.logger.info("Movement %s reversed by %s", movement_id, reversal.id)
    return reversal


# =============================================================================
# RECOVERY
# =============================================================================

def recover_interrupted_reversals() -> dict[str, list[str]]:
    """
    Complete reversals whose compensator exists but whose original is unflagged.

    Reversals commit atomically, so this only finds work after data was
    imported or restored from a partial copy. For sales, stock is restored
    too: a missing flag means the stock effect of the same transaction is
    missing as well.
    """
    repaired = {"sales": [], "cashMovements": []}

    original_sale = aliased(Sale)
    pending_sales = db.session.query(original_sale).join(
        Sale, Sale.reversed_sale_id == original_sale.id
    ).filter(original_sale.reversed.is_(False)).distinct().all()

    for original in pending_sales:
        ledger_service.mark_sale_reversed(original.id, commit=False)
        for item in original.items:
            catalog_service.update_stock(item.product_id, item.quantity)
        repaired["sales"].append(original.id)

    original_movement = aliased(CashMovement)
    pending_movements = db.session.query(original_movement).join(
        CashMovement, CashMovement.reversed_movement_id == original_movement.id
    ).filter(original_movement.reversed.is_(False)).distinct().all()

    for original in pending_movements:
        ledger_service.mark_movement_reversed(original.id, commit=False)
        repaired["cashMovements"].append(original.id)

    db.session.commit()

    if repaired["sales"] or repaired["cashMovements"]:
        current_app.logger.warning(
            "Recovered interrupted reversals: %d sales, %d movements",
            len(repaired["sales"]), len(repaired["cashMovements"]),
        )
    return repaired
