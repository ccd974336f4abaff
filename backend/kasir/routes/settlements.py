# Overview: Flask API routes for cash settlement; parses input and returns JSON responses.

"""
Settlement API Routes

WHY: The operator reviews the unsettled totals, counts the drawer, and files
a settlement. Filing closes the window; the next one starts at settled_at.

DESIGN:
- GET pending is read-only and always recomputed
- POST commit recomputes the window itself; client-side totals are ignored
- Validation problems are 400; storage problems are 503 and nothing is
  written (the operator retries by hand; no automatic retry)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_store_access
from ..errors import NotConfiguredError, StorageError, ValidationError
from ..repositories import get_repository
from ..services import settlement_service, store_service
from ..services.settlement_service import Operator


settlements_bp = Blueprint("settlements", __name__, url_prefix="/api/stores")


def _engine_options() -> dict:
    return {
        "tz_name": store_service.store_timezone(g.store),
        "carry_forward": bool(current_app.config.get("SETTLEMENT_CARRY_FORWARD")),
    }


@settlements_bp.get("/<int:store_id>/settlement/pending")
@require_auth
@require_store_access
def pending_settlement_route(store_id: int):
    """
    Unsettled sales since the last settlement (or start of day).

    Response:
    {
        "store_id": 1,
        "cutoff": "2026-10-19T03:00:00Z",
        "as_of": "...",
        "cash_sales_cents": 15000,
        "transfer_sales_cents": 0,
        "qris_sales_cents": 20000,
        "total_sales_cents": 35000,
        "transaction_count": 2,
        "last_settlement": {...} | null
    }
    """
    try:
        window = settlement_service.compute_unsettled_window(
            get_repository(),
            store_id,
            **_engine_options(),
        )
        return jsonify(window.to_dict()), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        current_app.logger.exception("Failed to read unsettled window for store %s", store_id)
        return jsonify({"error": "Failed to load settlement data, retry"}), 503
    except Exception:
        current_app.logger.exception("Failed to compute unsettled window")
        return jsonify({"error": "Internal server error"}), 500


@settlements_bp.post("/<int:store_id>/settlement")
@require_auth
@require_store_access
def commit_settlement_route(store_id: int):
    """
    File a settlement for the current window.

    Request body:
    {
        "actual_cash": 14500,
        "operator": {"id": "u1", "name": "Alice"},   (owner/admin only; otherwise the logged-in cashier)
        "notes": "..."                               (optional)
    }
    """
    data = request.get_json(silent=True) or {}

    actual_cash = data.get("actual_cash", data.get("actualCash"))
    cashier = g.current_cashier
    # Only owner/admin may file on behalf of someone else
    operator = data.get("operator") if cashier.is_manager else None
    if operator is None:
        operator = Operator(id=str(cashier.id), name=cashier.name)

    try:
        record = settlement_service.commit_settlement(
            get_repository(),
            store_id,
            operator,
            actual_cash,
            notes=data.get("notes"),
            **_engine_options(),
        )
        current_app.logger.info(
            "Settlement %s filed for store %s by %s: %s (difference %s)",
            record.id, store_id, record.operator_id, record.status, record.difference_cents,
        )
        return jsonify({"settlement": record.to_dict()}), 201

    except ValidationError as e:
        current_app.logger.warning("Settlement rejected for store %s: %s", store_id, e)
        return jsonify({"error": str(e)}), 400
    except NotConfiguredError as e:
        current_app.logger.warning("Settlement not saved for store %s: %s", store_id, e)
        return jsonify({"error": "Data backend is not configured"}), 503
    except StorageError:
        current_app.logger.exception("Failed to save settlement for store %s", store_id)
        return jsonify({"error": "Failed to save settlement, retry"}), 503
    except Exception:
        current_app.logger.exception("Failed to commit settlement")
        return jsonify({"error": "Internal server error"}), 500


@settlements_bp.get("/<int:store_id>/settlements")
@require_auth
@require_store_access
def list_settlements_route(store_id: int):
    """Settlement ledger, newest first. Optional ?limit=N (max 200)."""
    limit = request.args.get("limit", default=50, type=int)
    limit = max(1, min(limit or 50, 200))

    try:
        records = settlement_service.list_settlements(get_repository(), store_id, limit=limit)
        return jsonify({"settlements": [r.to_dict() for r in records]}), 200
    except StorageError:
        current_app.logger.exception("Failed to read settlements for store %s", store_id)
        return jsonify({"error": "Failed to load settlements, retry"}), 503
