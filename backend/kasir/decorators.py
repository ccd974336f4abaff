# Overview: Request decorators for API routes (authentication, roles, store scope).

from functools import wraps
from flask import request, jsonify, g

from .services import session_service, store_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_cashier') and hasattr(g, 'store_id')


def require_auth(f):
    """
    Require a valid bearer session.

    Sets the following Flask g attributes:
    - g.current_cashier: The authenticated Cashier
    - g.store_id: The store captured in the session
    - g.session_context: The full SessionContext
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_cashier = context.cashier
        g.store_id = context.store_id
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Require the authenticated cashier to hold one of `roles`."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.current_cashier.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_store_access(f):
    """
    Resolve the `store_id` URL parameter and enforce tenant scope.

    A session may only touch the store it logged into. Sets g.store.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401

        store_id = kwargs.get("store_id")
        if store_id != g.store_id:
            return jsonify({"error": "Store access denied"}), 403

        store = store_service.get_store(store_id)
        if not store or not store.is_active:
            return jsonify({"error": "Store not found"}), 404

        g.store = store
        return f(*args, **kwargs)

    return decorated_function
