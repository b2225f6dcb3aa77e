from flask import Blueprint, jsonify, request

from ..decorators import require_session
from ..services import settings_service
from ..validation import ValidationError


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("/company")
@require_session
def get_company_config():
    return jsonify({"config": settings_service.get_company_config()}), 200


@settings_bp.put("/company")
@require_session
def update_company_config():
    data = request.get_json() or {}
    try:
        config = settings_service.update_company_config(data)
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify({"config": config}), 200
