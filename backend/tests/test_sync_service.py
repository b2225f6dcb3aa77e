import threading
from datetime import timedelta
from unittest.mock import patch, MagicMock

import pytest
import requests

from heladeria.extensions import db
from heladeria.models import Sale, CashRegister, CashMovement
from heladeria.models.registers import MOVEMENT_EXPENSE
from heladeria.services import (
    sync_service,
    settings_service,
    register_service,
    reversal_service,
    sales_service,
    ledger_service,
)
from heladeria.time_utils import utcnow, to_utc_z, parse_iso_datetime

from conftest import USER_ID, BRANCH_ID


SERVER = "10.0.0.5:3000"


def _ok_response(status_code=200):
    response = MagicMock()
    response.status_code = status_code
    return response


def _sale():
    return sales_service.record_sale(
        user_id=USER_ID, branch_id=BRANCH_ID, login_session_id="ls-1",
        items=[{"product_id": "1", "quantity": 1}], price_list_id="1",
    )


def _synced_flags():
    db.session.expire_all()
    return {
        "sales": sorted((s.id, s.synced) for s in db.session.query(Sale).all()),
        "registers": sorted((r.id, r.synced) for r in db.session.query(CashRegister).all()),
        "movements": sorted((m.id, m.synced) for m in db.session.query(CashMovement).all()),
    }


@pytest.fixture
def ledger(open_register):
    """Open register (with opening adjustment), one sale, one expense."""
    settings_service.update_company_config({"serverIP": SERVER})
    sale = _sale()
    movement = register_service.record_movement(open_register.id, MOVEMENT_EXPENSE, 200, "Proveedor")
    return {"register": open_register, "sale": sale, "movement": movement}


def test_sync_url():
    assert sync_service.sync_url("10.0.0.5:3000") == "http://10.0.0.5:3000/api/sync"
    assert sync_service.sync_url("https://pos.example.com/") == "https://pos.example.com/api/sync"


def test_no_server_configured_is_noop(open_register):
    with patch("heladeria.services.sync_service.requests.post") as post:
        result = sync_service.attempt_sync()

    assert result.ok is False
    post.assert_not_called()
    assert ledger_service.get_register(open_register.id).synced is False


def test_successful_sync_marks_everything(ledger):
    with patch("heladeria.services.sync_service.requests.post", return_value=_ok_response()) as post:
        result = sync_service.attempt_sync()

    assert result.ok is True
    assert result.sent == {"sales": 1, "cashRegisters": 1, "cashMovements": 2}
    assert result.marked == result.sent

    args, kwargs = post.call_args
    assert args[0] == "http://10.0.0.5:3000/api/sync"
    assert kwargs["timeout"] == 10
    payload = kwargs["json"]
    assert set(payload) == {
        "sales", "cashRegisters", "cashMovements",
        "products", "categories", "priceLists", "productPrices",
    }
    assert payload["sales"][0]["id"] == ledger["sale"].id
    assert payload["sales"][0]["synced"] is False
    assert len(payload["products"]) == 12
    assert len(payload["priceLists"]) == 3

    flags = _synced_flags()
    assert all(synced for _id, synced in flags["sales"] + flags["registers"] + flags["movements"])
    assert parse_iso_datetime(settings_service.get_last_sync_date()) is not None


def test_second_sync_sends_only_new_records(ledger):
    with patch("heladeria.services.sync_service.requests.post", return_value=_ok_response()):
        sync_service.attempt_sync()
    _sale()

    with patch("heladeria.services.sync_service.requests.post", return_value=_ok_response()) as post:
        result = sync_service.attempt_sync()

    assert result.sent == {"sales": 1, "cashRegisters": 0, "cashMovements": 0}
    payload = post.call_args.kwargs["json"]
    # Catalog always travels in full
    assert len(payload["products"]) == 12


@pytest.mark.parametrize("failure", [
    requests.ConnectionError("unreachable"),
    requests.Timeout("slow"),
])
def test_network_failure_changes_nothing(ledger, failure):
    before = _synced_flags()

    with patch("heladeria.services.sync_service.requests.post", side_effect=failure):
        result = sync_service.attempt_sync()

    assert result.ok is False
    assert result.error
    assert _synced_flags() == before
    assert settings_service.get_last_sync_date() == ""


@pytest.mark.parametrize("status_code", [400, 500, 503])
def test_non_success_status_changes_nothing(ledger, status_code):
    before = _synced_flags()

    with patch("heladeria.services.sync_service.requests.post", return_value=_ok_response(status_code)):
        result = sync_service.attempt_sync()

    assert result.ok is False
    assert str(status_code) in result.error
    assert _synced_flags() == before


def test_any_2xx_is_success(ledger):
    with patch("heladeria.services.sync_service.requests.post", return_value=_ok_response(204)):
        assert sync_service.attempt_sync().ok is True


def test_records_changed_during_round_trip_stay_pending(ledger):
    sale_id = ledger["sale"].id
    holder = {}

    def reverse_while_in_flight(*args, **kwargs):
        holder["reversal"] = reversal_service.reverse_sale(sale_id)
        return _ok_response()

    with patch("heladeria.services.sync_service.requests.post", side_effect=reverse_while_in_flight):
        result = sync_service.attempt_sync()

    assert result.ok is True
    db.session.expire_all()
    # Original was sent unreversed; its new state must go out next time
    assert ledger_service.get_sale(sale_id).synced is False
    assert ledger_service.get_sale(holder["reversal"].id).synced is False
    assert ledger_service.get_register(ledger["register"].id).synced is True

    with patch("heladeria.services.sync_service.requests.post", return_value=_ok_response()) as post:
        result = sync_service.attempt_sync()

    sent_ids = {s["id"] for s in post.call_args.kwargs["json"]["sales"]}
    assert sent_ids == {sale_id, holder["reversal"].id}
    assert result.marked["sales"] == 2


def test_closing_a_synced_register_resyncs_it(ledger):
    register_id = ledger["register"].id
    with patch("heladeria.services.sync_service.requests.post", return_value=_ok_response()):
        sync_service.attempt_sync()

    register_service.close_cash_register(register_id, 500)
    assert ledger_service.get_register(register_id).synced is False

    with patch("heladeria.services.sync_service.requests.post", return_value=_ok_response()) as post:
        sync_service.attempt_sync()

    sent = post.call_args.kwargs["json"]["cashRegisters"]
    assert [r["status"] for r in sent] == ["closed"]
    assert ledger_service.get_register(register_id).synced is True


# =============================================================================
# PURGE
# =============================================================================

def _age(model, record_id, days, field="created_at"):
    row = db.session.get(model, record_id)
    setattr(row, field, utcnow() - timedelta(days=days))
    db.session.commit()


def test_purge_skipped_without_successful_sync(ledger):
    _age(Sale, ledger["sale"].id, 30)

    assert sync_service.purge_old_local_data() is None
    assert ledger_service.get_sale(ledger["sale"].id) is not None


def test_purge_removes_history_before_grace_window(ledger):
    old_register, _ = register_service.open_register("u2", BRANCH_ID, 0)
    old_register_id = old_register.id
    open_register_id = ledger["register"].id
    sale_id = ledger["sale"].id
    movement_id = ledger["movement"].id
    register_service.close_cash_register(old_register_id, 0)
    _age(CashRegister, old_register_id, 10, field="opened_at")
    _age(CashRegister, open_register_id, 10, field="opened_at")
    _age(Sale, sale_id, 5)
    _age(CashMovement, movement_id, 3)
    recent_id = _sale().id
    settings_service.set_last_sync_date(to_utc_z(utcnow()))

    counts = sync_service.purge_old_local_data()

    assert counts == {"sales": 1, "cashMovements": 1, "cashRegisters": 1}
    assert ledger_service.get_sale(sale_id) is None
    assert ledger_service.get_movement(movement_id) is None
    assert ledger_service.get_register(old_register_id) is None
    # Open registers stay regardless of age
    assert ledger_service.get_register(open_register_id) is not None
    assert ledger_service.get_sale(recent_id) is not None


def test_purge_keeps_records_inside_grace_window(ledger):
    _age(Sale, ledger["sale"].id, 1)
    settings_service.set_last_sync_date(to_utc_z(utcnow()))

    counts = sync_service.purge_old_local_data()

    assert counts["sales"] == 0
    assert ledger_service.get_sale(ledger["sale"].id) is not None


# =============================================================================
# SCHEDULER
# =============================================================================

def test_scheduler_tick_skips_while_offline(app):
    scheduler = sync_service.SyncScheduler(app, interval=60, is_online=lambda: False)

    with patch("heladeria.services.sync_service.attempt_sync") as attempt:
        assert scheduler.tick() is None

    attempt.assert_not_called()


def test_scheduler_tick_runs_sync_when_online(app):
    scheduler = sync_service.SyncScheduler(app, interval=60)
    outcome = sync_service.SyncResult(ok=True)

    with patch("heladeria.services.sync_service.attempt_sync", return_value=outcome) as attempt:
        assert scheduler.tick() is outcome

    attempt.assert_called_once_with()


def test_scheduler_interval_defaults_to_config(app):
    assert sync_service.SyncScheduler(app).interval == app.config["SYNC_INTERVAL_SECONDS"]


def test_scheduler_thread_start_stop(app):
    called = threading.Event()

    def fake_sync():
        called.set()
        return sync_service.SyncResult(ok=True)

    scheduler = sync_service.SyncScheduler(app, interval=0.01)
    with patch("heladeria.services.sync_service.attempt_sync", side_effect=fake_sync):
        scheduler.start()
        scheduler.start()  # second start is a no-op
        try:
            assert called.wait(2)
            assert scheduler.running
        finally:
            scheduler.stop()

    assert not scheduler.running
