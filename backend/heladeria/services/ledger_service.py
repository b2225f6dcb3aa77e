# Overview: Ledger store; canonical collections of registers, cash movements and sales.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from ..extensions import db
from ..models import CashRegister, CashMovement, Sale
from ..models.registers import REGISTER_OPEN, REGISTER_CLOSED
from ..time_utils import utcnow
"""
Ledger Invariants (authoritative)

- Append-only for money: sales and movements are only ever added. The only
  in-place changes are reversed=False -> True, the synced flag, and the
  single open -> closed transition of a register. Any of those changes except
  the sync ack itself sets synced back to False.
- Records are addressed by id (primary key lookup), never by scanning.
- Every mutation takes commit=True by default; compound workflows pass
  commit=False and commit once so the database sees one transaction.
- Derived figures (expected cash, totals) are never stored here except the
  expected_amount snapshot written at close for the audit record.
"""


def _finish(commit: bool) -> None:
    if commit:
        db.session.commit()
    else:
        db.session.flush()


# =============================================================================
# WRITES
# =============================================================================

def add_cash_register(register: CashRegister, *, commit: bool = True) -> CashRegister:
    db.session.add(register)
    _finish(commit)
    return register


def close_cash_register(
    register_id: str,
    closing_amount: Decimal,
    *,
    expected_amount: Decimal | None = None,
    commit: bool = True,
) -> CashRegister | None:
    """
    Close an open register.

    No-op (returns None) for an unknown id or an already closed register:
    a closed register is never mutated again.
    """
    register = db.session.get(CashRegister, register_id)
    if register is None or register.status != REGISTER_OPEN:
        return None

    register.status = REGISTER_CLOSED
    register.closed_at = utcnow()
    register.closing_amount = closing_amount
    register.expected_amount = expected_amount
    register.synced = False
    _finish(commit)
    return register


def add_cash_movement(movement: CashMovement, *, commit: bool = True) -> CashMovement:
    db.session.add(movement)
    _finish(commit)
    return movement


def add_sale(sale: Sale, *, commit: bool = True) -> Sale:
    db.session.add(sale)
    _finish(commit)
    return sale


def mark_sale_reversed(sale_id: str, *, commit: bool = True) -> Sale | None:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        return None
    sale.reversed = True
    sale.synced = False
    _finish(commit)
    return sale


def mark_movement_reversed(movement_id: str, *, commit: bool = True) -> CashMovement | None:
    movement = db.session.get(CashMovement, movement_id)
    if movement is None:
        return None
    movement.reversed = True
    movement.synced = False
    _finish(commit)
    return movement


# =============================================================================
# READS
# =============================================================================

def get_register(register_id: str) -> CashRegister | None:
    return db.session.get(CashRegister, register_id)


def get_sale(sale_id: str) -> Sale | None:
    return db.session.get(Sale, sale_id)


def get_movement(movement_id: str) -> CashMovement | None:
    return db.session.get(CashMovement, movement_id)


def registers_for_user(user_id: str, *, status: str | None = None) -> list[CashRegister]:
    query = db.session.query(CashRegister).filter_by(user_id=user_id)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(CashRegister.opened_at).all()


def sales_for_register(register_id: str) -> list[Sale]:
    """Sales of a register in creation order, reversals included."""
    return db.session.query(Sale).filter_by(
        cash_register_id=register_id
    ).order_by(Sale.created_at).all()


def movements_for_register(register_id: str) -> list[CashMovement]:
    """Movements of a register in creation order, reversals included."""
    return db.session.query(CashMovement).filter_by(
        cash_register_id=register_id
    ).order_by(CashMovement.created_at).all()


def sales_between(start: datetime | None, end: datetime | None) -> list[Sale]:
    query = db.session.query(Sale)
    if start:
        query = query.filter(Sale.created_at >= start)
    if end:
        query = query.filter(Sale.created_at < end)
    return query.order_by(Sale.created_at).all()


def movements_between(start: datetime | None, end: datetime | None) -> list[CashMovement]:
    query = db.session.query(CashMovement)
    if start:
        query = query.filter(CashMovement.created_at >= start)
    if end:
        query = query.filter(CashMovement.created_at < end)
    return query.order_by(CashMovement.created_at).all()


# =============================================================================
# SYNC AND RETENTION
# =============================================================================

def unsynced_records() -> dict[str, list]:
    """Every ledger record not yet acknowledged by the remote server."""
    return {
        "sales": db.session.query(Sale).filter_by(synced=False).order_by(Sale.created_at).all(),
        "cashRegisters": db.session.query(CashRegister).filter_by(synced=False).order_by(CashRegister.opened_at).all(),
        "cashMovements": db.session.query(CashMovement).filter_by(synced=False).order_by(CashMovement.created_at).all(),
    }


def mark_synced(
    *,
    sales: list[tuple[str, int]],
    registers: list[tuple[str, int]],
    movements: list[tuple[str, int]],
    commit: bool = True,
) -> dict[str, int]:
    """
    Flag acknowledged records as synced.

    Each record is given as (id, version_id) exactly as it was sent. A row is
    only flagged when it is still synced=False AND still at that version: a
    record mutated during the round trip (flagged reversed, register closed)
    has a newer version and stays pending for the next run.
    """
    counts = {"sales": 0, "cashRegisters": 0, "cashMovements": 0}
    for key, model, sent in (
        ("sales", Sale, sales),
        ("cashRegisters", CashRegister, registers),
        ("cashMovements", CashMovement, movements),
    ):
        for record_id, version_id in sent:
            # Bulk UPDATE bypasses the ORM version counter on purpose
            counts[key] += db.session.query(model).filter(
                model.id == record_id,
                model.version_id == version_id,
                model.synced.is_(False),
            ).update({model.synced: True}, synchronize_session=False)
    _finish(commit)
    db.session.expire_all()
    return counts


def purge_old_data(cutoff: datetime, *, commit: bool = True) -> dict[str, int]:
    """
    Delete local history older than cutoff.

    - Sales and movements with created_at strictly before cutoff.
    - Closed registers opened before cutoff. Open registers always stay.
    """
    counts = {"sales": 0, "cashMovements": 0, "cashRegisters": 0}

    # ORM deletes so sale items/payments cascade
    for sale in db.session.query(Sale).filter(Sale.created_at < cutoff).all():
        db.session.delete(sale)
        counts["sales"] += 1

    counts["cashMovements"] = db.session.query(CashMovement).filter(
        CashMovement.created_at < cutoff
    ).delete(synchronize_session=False)

    counts["cashRegisters"] = db.session.query(CashRegister).filter(
        CashRegister.status == REGISTER_CLOSED,
        CashRegister.opened_at < cutoff,
    ).delete(synchronize_session=False)

    _finish(commit)
    return counts
