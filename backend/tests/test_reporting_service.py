import csv
import io
from datetime import timedelta

import pytest

from heladeria.extensions import db
from heladeria.models import Sale
from heladeria.models.registers import MOVEMENT_INCOME, MOVEMENT_EXPENSE
from heladeria.services import reporting_service, register_service, reversal_service, sales_service
from heladeria.services.reporting_service import ReportError, CSV_HEADER, _fmt_amount
from heladeria.time_utils import utcnow

from conftest import USER_ID, BRANCH_ID


def _sale(items, **kwargs):
    kwargs.setdefault("price_list_id", "1")
    return sales_service.record_sale(
        user_id=USER_ID, branch_id=BRANCH_ID, login_session_id="ls-1", items=items, **kwargs,
    )


def _today():
    return utcnow().date().isoformat()


def test_register_breakdown_excludes_reversed_sales(open_register):
    _sale([{"product_id": "1", "quantity": 2}])  # 800 cash
    _sale([{"product_id": "10", "quantity": 1}], payments=[{"method": "card", "amount": 500}])
    mistaken = _sale([{"product_id": "6", "quantity": 5}], payments=[{"method": "transfer", "amount": 1500}])
    reversal_service.reverse_sale(mistaken.id)

    breakdown = reporting_service.register_breakdown(open_register.id)

    assert breakdown["by_payment_method"] == {"cash": 800.0, "card": 500.0, "transfer": 0.0}
    assert breakdown["total_units"] == 3
    assert breakdown["sales_count"] == 2
    assert breakdown["receipt_count"] == 4


def test_register_breakdown_unknown_register(db_session):
    with pytest.raises(ReportError):
        reporting_service.register_breakdown("missing")


def test_session_summary_without_closing(open_register):
    _sale([{"product_id": "10", "quantity": 1}])
    register_service.record_movement(open_register.id, MOVEMENT_INCOME, 100, "Cambio")
    register_service.record_movement(open_register.id, MOVEMENT_EXPENSE, 40, "Hielo")

    summary = reporting_service.session_summary(open_register.id)

    assert summary["opening_amount"] == 1000.0
    assert summary["cash_sales"] == 500.0
    assert summary["income"] == 100.0
    assert summary["expense"] == 40.0
    assert summary["expected_amount"] == 1560.0
    assert summary["closing_amount"] is None
    assert summary["discrepancy"] is None
    assert summary["balanced"] is None


def test_session_summary_with_discrepancy(open_register):
    _sale([{"product_id": "10", "quantity": 1}])

    summary = reporting_service.session_summary(open_register.id, closing_amount=1450)

    assert summary["discrepancy"] == -50.0
    assert summary["balanced"] is False


def test_session_summary_uses_stored_closing_amount(open_register):
    register_service.close_cash_register(open_register.id, 1000)

    summary = reporting_service.session_summary(open_register.id)

    assert summary["closing_amount"] == 1000.0
    assert summary["discrepancy"] == 0.0
    assert summary["balanced"] is True


def test_period_report_nets_reversals(open_register):
    _sale([{"product_id": "1", "quantity": 1}], discount=50)  # 350 cash
    _sale([{"product_id": "10", "quantity": 1}], payments=[{"method": "card", "amount": 500}])
    mistaken = _sale([{"product_id": "12", "quantity": 1}])  # 450
    reversal_service.reverse_sale(mistaken.id)

    report = reporting_service.period_report(_today(), _today())

    assert report["sales_count"] == 4
    assert report["total"] == 850.0
    assert report["average"] == 213.0  # 850 / 4 = 212.5, rounded half up
    assert report["discount_total"] == 50.0
    assert report["by_payment_method"]["cash"] == {"label": "Efectivo", "amount": 350.0, "share_percent": 41}
    assert report["by_payment_method"]["card"] == {"label": "Tarjeta", "amount": 500.0, "share_percent": 59}
    assert report["by_payment_method"]["transfer"]["amount"] == 0.0
    # Opening adjustment (1000 against a suggested 0) happened today too
    assert len(report["movements"]) == 1


def test_period_report_filters_by_day(open_register):
    old = _sale([{"product_id": "1", "quantity": 1}])
    _sale([{"product_id": "10", "quantity": 1}])
    db.session.get(Sale, old.id).created_at = utcnow() - timedelta(days=3)
    db.session.commit()

    today_only = reporting_service.period_report(_today(), _today())
    window = reporting_service.period_report((utcnow() - timedelta(days=3)).date().isoformat(), _today())

    assert today_only["sales_count"] == 1
    assert today_only["total"] == 500.0
    assert window["sales_count"] == 2


def test_period_defaults_to_last_week():
    start, end = reporting_service.resolve_period(None, None)

    assert end == utcnow().date()
    assert (end - start).days == 7


def test_period_rejects_bad_dates():
    with pytest.raises(ReportError):
        reporting_service.resolve_period("yesterday", None)
    with pytest.raises(ReportError):
        reporting_service.resolve_period("2026-02-10", "2026-02-01")


def test_empty_period_report(db_session):
    report = reporting_service.period_report("2020-01-01", "2020-01-02")

    assert report["sales_count"] == 0
    assert report["total"] == 0.0
    assert report["average"] == 0.0
    assert report["by_payment_method"]["cash"]["share_percent"] == 0


@pytest.mark.parametrize("value, expected", [
    (500, "500"),
    (12.5, "12.50"),
    (-300, "-300"),
    (0, "0"),
])
def test_fmt_amount(value, expected):
    assert _fmt_amount(value) == expected


def test_export_sales_csv(open_register):
    _sale([{"product_id": "1", "quantity": 2}], discount=100)
    _sale(
        [{"product_id": "10", "quantity": 1}, {"product_id": "6", "quantity": 1}],
        payments=[{"method": "card", "amount": 300}, {"method": "cash", "amount": 500}],
    )

    filename, body = reporting_service.export_sales_csv(_today(), _today())

    assert filename == f"ventas_{_today()}_{_today()}.csv"
    rows = list(csv.reader(io.StringIO(body)))
    assert rows[0] == CSV_HEADER
    assert len(rows) == 3
    assert rows[1][1:] == ["700", "100", "Chocolatex2", "Efectivo: $700"]
    assert rows[2][1:] == ["800", "0", "Sundaex1; Limónx1", "Tarjeta: $300; Efectivo: $500"]
    assert rows[1][0].startswith(_today())


def test_export_csv_header_only_when_empty(db_session):
    _filename, body = reporting_service.export_sales_csv("2020-01-01", "2020-01-01")

    assert body == "Fecha,Total,Descuento,Items,Medios de Pago\n"
