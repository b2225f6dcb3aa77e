# Overview: Read-only reconciliation and period reporting over the ledger.

from __future__ import annotations

import csv
import io
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP

from ..models.sales import PAYMENT_METHODS, PAYMENT_LABELS
from ..time_utils import today, day_range
from . import ledger_service
from .register_service import cash_breakdown


CSV_HEADER = ["Fecha", "Total", "Descuento", "Items", "Medios de Pago"]
DEFAULT_PERIOD_DAYS = 7
ZERO = Decimal("0.00")


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _is_live_original(record) -> bool:
    return not record.reversed and not record.is_reversal


def _fmt_amount(value) -> str:
    """500 -> "500", 12.5 -> "12.50"."""
    amount = Decimal(value)
    if amount == amount.to_integral_value():
        return str(int(amount))
    return f"{amount:.2f}"


def _parse_day(value: str | None, field: str) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise ReportError(f"{field} must be a YYYY-MM-DD date")


def resolve_period(date_from: str | None, date_to: str | None) -> tuple[date, date]:
    """Inclusive day range; defaults to the last 7 days ending today."""
    end = _parse_day(date_to, "date_to") or today()
    start = _parse_day(date_from, "date_from") or (end - timedelta(days=DEFAULT_PERIOD_DAYS))
    if start > end:
        raise ReportError("date_from must not be after date_to")
    return start, end


# =============================================================================
# PER REGISTER
# =============================================================================

def register_breakdown(register_id: str) -> dict:
    """
    Totals by payment method and unit count over live sales of a register.

    Reversed originals and their compensators are excluded, not netted.
    receipt_count counts every sale document, reversals included.
    """
    register = ledger_service.get_register(register_id)
    if register is None:
        raise ReportError("Register not found")

    sales = ledger_service.sales_for_register(register_id)
    by_method = {method: ZERO for method in PAYMENT_METHODS}
    units = 0
    live_count = 0
    for sale in sales:
        if not _is_live_original(sale):
            continue
        live_count += 1
        for payment in sale.payments:
            by_method[payment.method] = by_method.get(payment.method, ZERO) + Decimal(payment.amount)
        units += sum(abs(item.quantity) for item in sale.items)

    return {
        "register_id": register_id,
        "by_payment_method": {method: float(amount) for method, amount in by_method.items()},
        "total_units": units,
        "sales_count": live_count,
        "receipt_count": len(sales),
    }


def session_summary(register_id: str, closing_amount=None) -> dict:
    """
    Reconciliation card for a register.

    discrepancy = closing - expected once a closing amount is known (given,
    or stored on a closed register). Non-zero is a warning, never an error.
    """
    register = ledger_service.get_register(register_id)
    if register is None:
        raise ReportError("Register not found")

    breakdown = cash_breakdown(register)
    expected = breakdown.expected

    if closing_amount is None and register.closing_amount is not None:
        closing_amount = register.closing_amount

    discrepancy = None
    if closing_amount is not None:
        discrepancy = Decimal(closing_amount) - expected

    return {
        "register": register.to_dict(),
        "opening_amount": float(breakdown.opening_amount),
        "cash_sales": float(breakdown.cash_sales),
        "income": float(breakdown.income),
        "expense": float(breakdown.expense),
        "expected_amount": float(expected),
        "closing_amount": float(closing_amount) if closing_amount is not None else None,
        "discrepancy": float(discrepancy) if discrepancy is not None else None,
        "balanced": discrepancy == 0 if discrepancy is not None else None,
    }


# =============================================================================
# PERIOD
# =============================================================================

def period_report(date_from: str | None = None, date_to: str | None = None) -> dict:
    """
    Aggregates over every sale created in [date_from, date_to] (by day).

    All sale documents count, so a reversed sale and its compensator net to
    zero in the totals.
    """
    start, end = resolve_period(date_from, date_to)
    lower, upper = day_range(start, end)
    sales = ledger_service.sales_between(lower, upper)
    movements = ledger_service.movements_between(lower, upper)

    total = sum((Decimal(s.total) for s in sales), ZERO)
    discounts = sum((Decimal(s.discount) for s in sales), ZERO)
    by_method = {method: ZERO for method in PAYMENT_METHODS}
    for sale in sales:
        for payment in sale.payments:
            by_method[payment.method] = by_method.get(payment.method, ZERO) + Decimal(payment.amount)

    count = len(sales)
    average = (total / count).quantize(Decimal("1"), rounding=ROUND_HALF_UP) if count else ZERO

    return {
        "date_from": start.isoformat(),
        "date_to": end.isoformat(),
        "sales_count": count,
        "total": float(total),
        "average": float(average),
        "discount_total": float(discounts),
        "by_payment_method": {
            method: {
                "label": PAYMENT_LABELS.get(method, method),
                "amount": float(amount),
                "share_percent": int((amount / total * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)) if total > 0 else 0,
            }
            for method, amount in by_method.items()
        },
        "sales": [s.to_dict() for s in sales],
        "movements": [m.to_dict() for m in movements],
    }


def export_sales_csv(date_from: str | None = None, date_to: str | None = None) -> tuple[str, str]:
    """
    CSV of the sales in a period, one row per sale.

    Returns:
        (filename, csv text)
    """
    start, end = resolve_period(date_from, date_to)
    lower, upper = day_range(start, end)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for sale in ledger_service.sales_between(lower, upper):
        writer.writerow([
            sale.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            _fmt_amount(sale.total),
            _fmt_amount(sale.discount),
            "; ".join(f"{item.product_name}x{item.quantity}" for item in sale.items),
            "; ".join(
                f"{PAYMENT_LABELS.get(p.method, p.method)}: ${_fmt_amount(p.amount)}"
                for p in sale.payments
            ),
        ])

    filename = f"ventas_{start.isoformat()}_{end.isoformat()}.csv"
    return filename, buffer.getvalue()
