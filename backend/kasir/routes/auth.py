# Overview: Flask API routes for cashier login, logout and session info.

"""
Authentication API routes

- Cashiers log in with the store's join code plus username/password
- Sessions are bearer tokens bound to that store for their lifetime
- Staff accounts are created by an owner/admin, never self-registered
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import cashier_service, session_service
from ..time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate a cashier and create a session token.

    Request body:
    {
        "store_code": "DEMO001",
        "username": "owner",
        "password": "..."
    }

    The token must be sent as `Authorization: Bearer <token>` afterwards.
    """
    try:
        data = request.get_json(silent=True) or {}
        store_code = data.get("store_code")
        username = data.get("username")
        password = data.get("password")

        if not all([store_code, username, password]):
            return jsonify({"error": "store_code, username and password required"}), 400

        cashier = cashier_service.authenticate(store_code, username, password)
        if not cashier:
            current_app.logger.warning("Failed login for %r at store %r", username, store_code)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(cashier)
        current_app.logger.info("Cashier %s logged in to store %s", cashier.id, cashier.store_id)

        return jsonify({
            "cashier": cashier.to_dict(),
            "store": cashier.store.to_dict(),
            "token": token,
            "expires_at": to_utc_z(session.expires_at),
            "message": "Login successful",
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login cashier")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the bearer token. Expects `Authorization: Bearer <token>`."""
    try:
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authorization header required"}), 401

        token = auth_header.split(" ", 1)[1]
        if not session_service.revoke_session(token, reason="Cashier logout"):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout cashier")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    cashier = g.current_cashier
    return jsonify({
        "cashier": cashier.to_dict(),
        "store": cashier.store.to_dict(),
        "store_id": g.store_id,
    }), 200
