# Overview: Flask API routes for store staff accounts (owner/admin only).

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role, require_store_access
from ..models.auth import MANAGER_ROLES, ROLE_OWNER
from ..services import cashier_service
from ..services.cashier_service import CashierError, PasswordValidationError
from ..validation import ConflictError, ValidationError


cashiers_bp = Blueprint("cashiers", __name__, url_prefix="/api/stores")


@cashiers_bp.get("/<int:store_id>/cashiers")
@require_auth
@require_store_access
@require_role(*MANAGER_ROLES)
def list_cashiers_route(store_id: int):
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    cashiers = cashier_service.list_cashiers(store_id, include_inactive=include_inactive)
    return jsonify({"cashiers": [c.to_dict() for c in cashiers]}), 200


@cashiers_bp.post("/<int:store_id>/cashiers")
@require_auth
@require_store_access
@require_role(*MANAGER_ROLES)
def create_cashier_route(store_id: int):
    """
    Create a staff account.

    Request body:
    {
        "username": "budi",
        "password": "rahasia123",
        "name": "Budi",
        "role": "cashier"   (optional; only an owner may create another owner)
    }
    """
    data = request.get_json(silent=True) or {}
    role = data.get("role") or "cashier"

    if role == ROLE_OWNER and g.current_cashier.role != ROLE_OWNER:
        return jsonify({"error": "Only an owner can create another owner"}), 403

    try:
        cashier = cashier_service.create_cashier(
            store_id,
            username=data.get("username"),
            password=data.get("password"),
            name=data.get("name"),
            role=role,
        )
        return jsonify({"cashier": cashier.to_dict()}), 201
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CashierError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create cashier")
        return jsonify({"error": "Internal server error"}), 500


@cashiers_bp.patch("/<int:store_id>/cashiers/<int:cashier_id>")
@require_auth
@require_store_access
@require_role(*MANAGER_ROLES)
def update_cashier_route(store_id: int, cashier_id: int):
    """Update name, role, password or is_active. Password changes and deactivation end all sessions."""
    cashier = cashier_service.get_cashier(store_id, cashier_id)
    if not cashier:
        return jsonify({"error": "Cashier not found"}), 404

    data = request.get_json(silent=True) or {}
    if (data.get("role") == ROLE_OWNER or cashier.role == ROLE_OWNER) and g.current_cashier.role != ROLE_OWNER:
        return jsonify({"error": "Only an owner can change an owner account"}), 403
    if cashier.id == g.current_cashier.id and data.get("is_active") is False:
        return jsonify({"error": "You cannot deactivate your own account"}), 400

    try:
        cashier = cashier_service.update_cashier(
            cashier,
            name=data.get("name"),
            password=data.get("password"),
            role=data.get("role"),
            is_active=data.get("is_active"),
        )
        return jsonify({"cashier": cashier.to_dict()}), 200
    except (PasswordValidationError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update cashier")
        return jsonify({"error": "Internal server error"}), 500
