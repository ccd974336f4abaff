# Overview: Flask API routes for sales transactions; checkout, listing and status changes.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role, require_store_access
from ..errors import NotConfiguredError, RecordNotFoundError, StorageError, ValidationError
from ..models.auth import MANAGER_ROLES
from ..repositories import get_repository
from ..services import checkout_service
from ..services.checkout_service import CheckoutError
from ..time_utils import parse_iso_datetime
from ..validation import PAYMENT_STATUSES


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/stores")


def _write_error_response(exc: Exception, action: str, store_id: int):
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, CheckoutError):
        return jsonify({"error": str(exc), "details": exc.details}), 400
    if isinstance(exc, RecordNotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, NotConfiguredError):
        return jsonify({"error": "Data backend is not configured"}), 503
    if isinstance(exc, StorageError):
        current_app.logger.exception("Failed to %s for store %s", action, store_id)
        return jsonify({"error": f"Failed to {action}, retry"}), 503
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/<int:store_id>/transactions")
@require_auth
@require_store_access
def checkout_route(store_id: int):
    """
    Check out a cart.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}],
        "payment_method": "cash" | "transfer" | "qris",
        "cash_received": 50000,        (cash only, defaults to exact total)
        "discount": 0,                 (optional)
        "reference": "...",            (transfer/QRIS reference, optional)
        "payment_status": "completed"  (or "pending" for unconfirmed transfers)
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        tx = checkout_service.checkout(
            get_repository(),
            store_id,
            items=data.get("items"),
            payment_method=data.get("payment_method"),
            cashier_id=g.current_cashier.id,
            cash_received=data.get("cash_received"),
            discount=data.get("discount"),
            tax_rate_bps=g.store.tax_rate_bps or 0,
            reference=data.get("reference"),
            notes=data.get("notes"),
            payment_status=data.get("payment_status") or "completed",
        )
        return jsonify({"transaction": tx.to_dict()}), 201
    except Exception as e:
        return _write_error_response(e, "save transaction", store_id)


@transactions_bp.get("/<int:store_id>/transactions")
@require_auth
@require_store_access
def list_transactions_route(store_id: int):
    """Newest first. Filters: ?status=, ?start=, ?end= (ISO-8601), ?limit= (max 500)."""
    status = request.args.get("status")
    if status and status not in PAYMENT_STATUSES:
        return jsonify({"error": f"status must be one of: {', '.join(PAYMENT_STATUSES)}"}), 400

    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601 datetimes"}), 400

    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit or 100, 500))

    try:
        rows = checkout_service.list_transactions(
            get_repository(),
            store_id,
            start=start,
            end=end,
            status=status,
            limit=limit,
        )
        return jsonify({"transactions": [tx.to_dict() for tx in rows]}), 200
    except StorageError:
        current_app.logger.exception("Failed to list transactions for store %s", store_id)
        return jsonify({"error": "Failed to load transactions, retry"}), 503


@transactions_bp.post("/<int:store_id>/transactions/<int:transaction_id>/complete")
@require_auth
@require_store_access
def complete_transaction_route(store_id: int, transaction_id: int):
    """Confirm a pending transfer/QRIS payment."""
    try:
        tx = checkout_service.complete_payment(get_repository(), store_id, transaction_id)
        return jsonify({"transaction": tx.to_dict()}), 200
    except Exception as e:
        return _write_error_response(e, "update transaction", store_id)


@transactions_bp.post("/<int:store_id>/transactions/<int:transaction_id>/fail")
@require_auth
@require_store_access
def fail_transaction_route(store_id: int, transaction_id: int):
    try:
        tx = checkout_service.fail_payment(get_repository(), store_id, transaction_id)
        return jsonify({"transaction": tx.to_dict()}), 200
    except Exception as e:
        return _write_error_response(e, "update transaction", store_id)


@transactions_bp.post("/<int:store_id>/transactions/<int:transaction_id>/refund")
@require_auth
@require_store_access
@require_role(*MANAGER_ROLES)
def refund_transaction_route(store_id: int, transaction_id: int):
    """Refund a completed sale (owner/admin only); items are restocked."""
    try:
        tx = checkout_service.refund_transaction(get_repository(), store_id, transaction_id)
        current_app.logger.info(
            "Transaction %s refunded in store %s by cashier %s",
            transaction_id, store_id, g.current_cashier.id,
        )
        return jsonify({"transaction": tx.to_dict()}), 200
    except Exception as e:
        return _write_error_response(e, "refund transaction", store_id)
