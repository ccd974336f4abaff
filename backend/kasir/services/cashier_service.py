# Overview: Service-layer operations for cashier accounts; bcrypt hashing and credential checks.

"""
Store staff accounts (owner, admin, cashier).

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12), never stored in clear
- Usernames are unique per store, not globally
- Deactivated accounts cannot log in and their sessions are revoked
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Cashier
from ..models.auth import ROLES, ROLE_CASHIER
from ..validation import ConflictError, ValidationError, require_text
from .store_service import get_store, get_store_by_code


class CashierError(Exception):
    """Raised for cashier account errors."""
    pass


class PasswordValidationError(ValueError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Za-z]', password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str, *, rounds: int = 12) -> str:
    """Hash password using bcrypt; validates strength first."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def _bcrypt_rounds() -> int:
    return int(current_app.config.get("BCRYPT_ROUNDS", 12))


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check. Malformed hashes never match."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_cashier(
    store_id: int,
    username: str,
    password: str,
    name: str,
    role: str = ROLE_CASHIER,
) -> Cashier:
    """
    Raises:
        CashierError: store missing or inactive
        ConflictError: username taken in this store
        PasswordValidationError: weak password
    """
    store = get_store(store_id)
    if not store or not store.is_active:
        raise CashierError("Store not found")

    username = require_text(username, "username", max_length=64).lower()
    name = require_text(name, "name", max_length=120)
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")

    existing = db.session.query(Cashier).filter_by(store_id=store_id, username=username).first()
    if existing:
        raise ConflictError("Username is already in use in this store")

    cashier = Cashier(
        store_id=store_id,
        username=username,
        name=name,
        role=role,
        password_hash=hash_password(password, rounds=_bcrypt_rounds()),
        is_active=True,
    )
    db.session.add(cashier)
    db.session.commit()
    return cashier


def update_cashier(
    cashier: Cashier,
    *,
    name: str | None = None,
    password: str | None = None,
    role: str | None = None,
    is_active: bool | None = None,
) -> Cashier:
    from .session_service import revoke_all_cashier_sessions

    if name is not None:
        cashier.name = require_text(name, "name", max_length=120)
    if role is not None:
        if role not in ROLES:
            raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
        cashier.role = role
    if password is not None:
        cashier.password_hash = hash_password(password, rounds=_bcrypt_rounds())
    if is_active is not None:
        cashier.is_active = bool(is_active)

    db.session.commit()

    if password is not None or is_active is False:
        revoke_all_cashier_sessions(cashier.id, reason="Credentials changed")
    return cashier


def list_cashiers(store_id: int, include_inactive: bool = False) -> list[Cashier]:
    query = db.session.query(Cashier).filter_by(store_id=store_id)
    if not include_inactive:
        query = query.filter(Cashier.is_active.is_(True))
    return query.order_by(Cashier.username).all()


def get_cashier(store_id: int, cashier_id: int) -> Cashier | None:
    return db.session.query(Cashier).filter_by(store_id=store_id, id=cashier_id).first()


def authenticate(store_code: str, username: str, password: str) -> Cashier | None:
    """
    Resolve the store by its join code and check the credentials.

    Returns None for unknown store, unknown user, inactive account or
    wrong password (callers cannot tell which).
    """
    store = get_store_by_code(store_code)
    if not store or not store.is_active or not username:
        return None

    cashier = db.session.query(Cashier).filter_by(
        store_id=store.id,
        username=username.strip().lower(),
    ).first()
    if not cashier or not cashier.is_active:
        return None
    if not verify_password(password or "", cashier.password_hash):
        return None
    return cashier
