# Overview: Flask API routes for register sessions and cash movements.

# backend/heladeria/routes/registers.py
"""
Register Session API Routes

DESIGN:
- Open -> close lifecycle per user (one open register at a time)
- Opening amount differences are explained by an adjustment movement
- Manual income/expense movements on the open register
- Read-only reconciliation views (summary, breakdown)
- Closing triggers a best-effort sync when SYNC_ON_CLOSE is enabled
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import register_service, reporting_service, sync_service, ledger_service
from ..services.register_service import RegisterError, NoOpenRegisterError
from ..validation import ValidationError, parse_amount
from ..decorators import require_session


registers_bp = Blueprint("registers", __name__, url_prefix="/api/registers")


@registers_bp.post("/open")
@require_session
def open_register_route():
    """
    Open a register for the current user.

    Request body:
    {
        "opening_amount": 1000
    }
    """
    try:
        data = request.get_json() or {}
        register, adjustment = register_service.open_register(
            user_id=g.user_id,
            branch_id=g.branch_id,
            opening_amount=data.get("opening_amount"),
            login_session_id=g.login_session_id,
        )
        return jsonify({
            "register": register.to_dict(),
            "adjustment": adjustment.to_dict() if adjustment else None,
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except RegisterError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to open register")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.get("/current")
@require_session
def current_register_route():
    """Open register of the current user with its expected cash, or null."""
    register = register_service.get_open_register(g.user_id)
    if register is None:
        return jsonify({"register": None}), 200

    return jsonify({
        "register": register.to_dict(),
        "expected_amount": float(register_service.compute_expected_cash(register)),
    }), 200


@registers_bp.get("/suggested-opening")
@require_session
def suggested_opening_route():
    amount = register_service.suggested_opening_amount(g.user_id)
    return jsonify({"suggested_opening_amount": float(amount)}), 200


@registers_bp.get("/<register_id>")
@require_session
def get_register_route(register_id: str):
    try:
        return jsonify(register_service.get_register_detail(register_id)), 200
    except RegisterError as e:
        return jsonify({"error": str(e)}), 404


@registers_bp.post("/<register_id>/close")
@require_session
def close_register_route(register_id: str):
    """
    Close a register with the counted cash.

    Request body:
    {
        "closing_amount": 1500
    }
    """
    register = ledger_service.get_register(register_id)
    if register is None:
        return jsonify({"error": "Register not found"}), 404
    if register.user_id != g.user_id:
        return jsonify({"error": "Only the register owner can close it"}), 403
    if not register.is_open:
        return jsonify({"error": "Register already closed"}), 409

    try:
        data = request.get_json() or {}
        closed = register_service.close_cash_register(register_id, data.get("closing_amount"))
        summary = reporting_service.session_summary(register_id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to close register")
        return jsonify({"error": "Internal server error"}), 500

    sync_result = None
    if current_app.config.get("SYNC_ON_CLOSE"):
        sync_result = sync_service.attempt_sync().to_dict()

    return jsonify({
        "register": closed.to_dict(),
        "summary": summary,
        "sync": sync_result,
    }), 200


@registers_bp.get("/<register_id>/summary")
@require_session
def register_summary_route(register_id: str):
    """
    Reconciliation summary.

    Query params:
        closing_amount: optional counted cash to preview the discrepancy
    """
    closing_amount = request.args.get("closing_amount")
    try:
        if closing_amount is not None:
            closing_amount = parse_amount(closing_amount, "closing_amount")
        return jsonify(reporting_service.session_summary(register_id, closing_amount)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except reporting_service.ReportError as e:
        return jsonify({"error": str(e)}), 404


@registers_bp.get("/<register_id>/breakdown")
@require_session
def register_breakdown_route(register_id: str):
    try:
        return jsonify(reporting_service.register_breakdown(register_id)), 200
    except reporting_service.ReportError as e:
        return jsonify({"error": str(e)}), 404


@registers_bp.post("/<register_id>/movements")
@require_session
def record_movement_route(register_id: str):
    """
    Record a manual cash movement.

    Request body:
    {
        "type": "income" | "expense",
        "amount": 200,
        "description": "Proveedor"
    }
    """
    try:
        data = request.get_json() or {}
        movement = register_service.record_movement(
            register_id=register_id,
            movement_type=data.get("type"),
            amount=data.get("amount"),
            description=data.get("description"),
            login_session_id=g.login_session_id,
        )
        return jsonify({"movement": movement.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NoOpenRegisterError as e:
        return jsonify({"error": str(e)}), 409
    except RegisterError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to record cash movement")
        return jsonify({"error": "Internal server error"}), 500
