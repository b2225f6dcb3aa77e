# Overview: Flask API routes for cash movement reversal.

from flask import Blueprint, jsonify, g, current_app

from ..services import reversal_service, ledger_service
from ..services.reversal_service import AlreadyReversedError, ReversalError, ReversalTargetNotFound
from ..decorators import require_session


movements_bp = Blueprint("movements", __name__, url_prefix="/api/movements")


@movements_bp.get("/<movement_id>")
@require_session
def get_movement_route(movement_id: str):
    movement = ledger_service.get_movement(movement_id)
    if movement is None:
        return jsonify({"error": "Movement not found"}), 404
    return jsonify({"movement": movement.to_dict()}), 200


@movements_bp.post("/<movement_id>/reverse")
@require_session
def reverse_movement_route(movement_id: str):
    """Reverse a cash movement; responds with the compensating movement."""
    try:
        reversal = reversal_service.reverse_movement(movement_id, login_session_id=g.login_session_id)
        return jsonify({"reversal": reversal.to_dict()}), 201

    except ReversalTargetNotFound as e:
        return jsonify({"error": str(e)}), 404
    except AlreadyReversedError as e:
        return jsonify({"error": str(e)}), 409
    except ReversalError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to reverse movement")
        return jsonify({"error": "Internal server error"}), 500
