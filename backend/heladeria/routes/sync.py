from flask import Blueprint, jsonify

from ..decorators import require_session
from ..services import sync_service, settings_service


sync_bp = Blueprint("sync", __name__, url_prefix="/api/sync")


@sync_bp.post("/run")
@require_session
def run_sync():
    """Push unsynced records now. 200 on success, 502 when the push failed."""
    result = sync_service.attempt_sync()
    return jsonify(result.to_dict()), 200 if result.ok else 502


@sync_bp.post("/purge")
@require_session
def run_purge():
    counts = sync_service.purge_old_local_data()
    return jsonify({"purged": counts, "skipped": counts is None}), 200


@sync_bp.get("/status")
@require_session
def sync_status():
    return jsonify({
        "server": settings_service.get_server_address() or None,
        "last_sync_date": settings_service.get_last_sync_date() or None,
    }), 200
