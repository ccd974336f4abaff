# Overview: Service-layer operations for sessions; bearer tokens for cashier logins.

"""
Session Token Management

- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- 12-hour absolute timeout, 2-hour idle timeout
- store_id captured at login and immutable for the session lifetime
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from ..extensions import db
from ..models import Cashier, SessionToken
from ..time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=12)  # One long shift
SESSION_IDLE_TIMEOUT = timedelta(hours=2)


@dataclass
class SessionContext:
    cashier: Cashier
    session: SessionToken
    store_id: int


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(cashier: Cashier) -> tuple[SessionToken, str]:
    """Returns (session_record, plaintext_token); only the hash is stored."""
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        cashier_id=cashier.id,
        store_id=cashier.store_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Returns None if the token is unknown, expired, idle too long, revoked,
    or its cashier has been deactivated. Touches last_used_at otherwise.
    """
    if not token:
        return None
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        db.session.commit()
        return None

    cashier = session.cashier
    if not cashier or not cashier.is_active:
        _revoke(session, "Cashier deactivated")
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(cashier=cashier, session=session, store_id=session.store_id)


def revoke_session(token: str, reason: str = "Logout") -> bool:
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return False
    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_cashier_sessions(cashier_id: int, reason: str = "Revoke all sessions") -> int:
    sessions = db.session.query(SessionToken).filter_by(
        cashier_id=cashier_id,
        is_revoked=False,
    ).all()
    for session in sessions:
        _revoke(session, reason)
    db.session.commit()
    return len(sessions)
