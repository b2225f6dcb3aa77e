"""
Sync Gate

WHY: The POS is offline-first. Local records are the source of truth until
the remote server acknowledges them; this module is the only place where
they cross the process boundary.

DESIGN PRINCIPLES:
- One POST to http://<serverIP>/api/sync with every unsynced ledger record
  plus the full catalog
- Records are flagged synced only after a 2xx response; any failure leaves
  every flag as it was, so a retry is always safe
- Only the (id, version) pairs actually sent are flagged: records created or
  changed during the round trip go out on the next run
- Purge runs only after at least one successful sync
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable

import requests
from flask import Flask, current_app

from ..extensions import db
from ..time_utils import utcnow, to_utc_z, parse_iso_datetime
from . import catalog_service, ledger_service, settings_service


SYNC_PATH = "/api/sync"


class SyncFailure(Exception):
    """Remote push failed (not configured, network, timeout, non-2xx)."""
    pass


@dataclass
class SyncResult:
    ok: bool
    sent: dict[str, int] = field(default_factory=dict)
    marked: dict[str, int] = field(default_factory=dict)
    error: str | None = None
    synced_at: str | None = None

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "sent": self.sent,
            "marked": self.marked,
            "error": self.error,
            "synced_at": self.synced_at,
        }


def sync_url(server_address: str) -> str:
    """serverIP may be a bare host[:port] or a full base URL."""
    base = server_address.rstrip("/")
    if "://" not in base:
        base = f"http://{base}"
    return f"{base}{SYNC_PATH}"


def build_payload() -> tuple[dict, dict[str, list[tuple[str, int]]]]:
    """
    Sync body plus the (id, version_id) pairs it carries.

    The pairs are captured before the request goes out; they are what gets
    flagged on acknowledgment.
    """
    pending = ledger_service.unsynced_records()
    payload = {
        "sales": [s.to_sync_dict() for s in pending["sales"]],
        "cashRegisters": [r.to_sync_dict() for r in pending["cashRegisters"]],
        "cashMovements": [m.to_sync_dict() for m in pending["cashMovements"]],
    }
    payload.update(catalog_service.catalog_snapshot())

    sent = {key: [(r.id, r.version_id) for r in records] for key, records in pending.items()}
    return payload, sent


def _push(url: str, payload: dict, timeout: float) -> None:
    try:
        response = requests.post(url, json=payload, timeout=timeout)
    except requests.Timeout as exc:
        raise SyncFailure(f"Timed out after {timeout:g}s: {exc}")
    except requests.RequestException as exc:
        raise SyncFailure(f"Network error: {exc}")

    if not 200 <= response.status_code < 300:
        raise SyncFailure(f"Server responded with {response.status_code}")


def attempt_sync() -> SyncResult:
    """
    Push unsynced records once.

    Never raises for remote problems: failures are logged as warnings and
    returned as ok=False so the next scheduled tick can retry.
    """
    server = settings_service.get_server_address()
    if not server:
        current_app.logger.info("[Sync] No server address configured")
        return SyncResult(ok=False, error="No server address configured")

    payload, sent = build_payload()
    counts = {key: len(pairs) for key, pairs in sent.items()}
    timeout = current_app.config.get("SYNC_TIMEOUT_SECONDS", 10)

    try:
        _push(sync_url(server), payload, timeout)
    except SyncFailure as exc:
        current_app.logger.warning("[Sync] Failed: %s", exc)
        return SyncResult(ok=False, sent=counts, error=str(exc))

    marked = ledger_service.mark_synced(
        sales=sent["sales"],
        registers=sent["cashRegisters"],
        movements=sent["cashMovements"],
        commit=False,
    )
    synced_at = to_utc_z(utcnow())
    settings_service.set_last_sync_date(synced_at, commit=False)
    db.session.commit()

    current_app.logger.info("[Sync] Success at %s: %s", synced_at, marked)
    return SyncResult(ok=True, sent=counts, marked=marked, synced_at=synced_at)


def purge_old_local_data() -> dict[str, int] | None:
    """
    Drop local history older than lastSyncDate minus the grace period.

    Returns None (nothing done) until a first successful sync set lastSyncDate.
    """
    last_sync = parse_iso_datetime(settings_service.get_last_sync_date())
    if last_sync is None:
        current_app.logger.info("[Purge] Skipped: no successful sync yet")
        return None

    grace_days = current_app.config.get("PURGE_GRACE_DAYS", 2)
    cutoff = last_sync - timedelta(days=grace_days)
    counts = ledger_service.purge_old_data(cutoff)
    current_app.logger.info("[Purge] Removed data older than %s: %s", to_utc_z(cutoff), counts)
    return counts


# =============================================================================
# SCHEDULER
# =============================================================================

class SyncScheduler:
    """
    Background thread that calls attempt_sync every `interval` seconds.

    Connectivity is not probed here: `is_online` is supplied by the host
    environment and a tick is skipped while it reports False.
    """

    def __init__(self, app: Flask, *, interval: float | None = None, is_online: Callable[[], bool] | None = None):
        self.app = app
        self.interval = interval if interval is not None else app.config.get("SYNC_INTERVAL_SECONDS", 3600)
        self.is_online = is_online or (lambda: True)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="sync-scheduler", daemon=True)
        self._thread.start()
        self.app.logger.info("[Sync] Scheduled every %ss", self.interval)

    def stop(self, timeout: float | None = 5) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None

    def tick(self) -> SyncResult | None:
        """One scheduled run; None when skipped for lack of connectivity."""
        if not self.is_online():
            self.app.logger.info("[Sync] Offline, skipping scheduled run")
            return None
        with self.app.app_context():
            try:
                return attempt_sync()
            finally:
                db.session.remove()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except Exception:
                self.app.logger.exception("[Sync] Scheduled run crashed")
