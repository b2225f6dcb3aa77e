# Overview: Flask API routes for checkout and sale reversal.

# backend/heladeria/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..models.sales import PAYMENT_CASH
from ..services import sales_service, reversal_service, ledger_service
from ..services.sales_service import SaleError
from ..services.register_service import NoOpenRegisterError
from ..services.reversal_service import AlreadyReversedError, ReversalError, ReversalTargetNotFound
from ..validation import ValidationError
from ..decorators import require_session


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@sales_bp.post("/")
@require_session
def create_sale_route():
    """
    Complete a sale on the current user's open register.

    Request body:
    {
        "price_list_id": "1",
        "items": [{"product_id": "1", "quantity": 2}],
        "discount": 0,
        "is_delivery": false,
        "payments": [{"method": "cash", "amount": 800}]      (optional)
        "primary_method": "cash",                               (optional)
        "secondary_method": "card", "secondary_amount": 300     (optional)
    }
    """
    try:
        data = request.get_json() or {}

        sale = sales_service.record_sale(
            user_id=g.user_id,
            branch_id=g.branch_id,
            login_session_id=g.login_session_id,
            items=data.get("items") or [],
            price_list_id=data.get("price_list_id") or "1",
            discount=data.get("discount", 0),
            payments=data.get("payments"),
            is_delivery=bool(data.get("is_delivery", False)),
            primary_method=data.get("primary_method") or PAYMENT_CASH,
            secondary_method=data.get("secondary_method"),
            secondary_amount=data.get("secondary_amount"),
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NoOpenRegisterError as e:
        return jsonify({"error": str(e)}), 409
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<sale_id>")
@require_session
def get_sale_route(sale_id: str):
    sale = ledger_service.get_sale(sale_id)
    if sale is None:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"sale": sale.to_dict()}), 200


@sales_bp.post("/<sale_id>/reverse")
@require_session
def reverse_sale_route(sale_id: str):
    """Reverse a sale; responds with the compensating sale."""
    try:
        reversal = reversal_service.reverse_sale(sale_id, login_session_id=g.login_session_id)
        return jsonify({"reversal": reversal.to_dict()}), 201

    except ReversalTargetNotFound as e:
        return jsonify({"error": str(e)}), 404
    except AlreadyReversedError as e:
        return jsonify({"error": str(e)}), 409
    except ReversalError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to reverse sale")
        return jsonify({"error": "Internal server error"}), 500
