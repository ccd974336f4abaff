# Overview: Service-layer operations for stores; tenant lookup and store-level settings.

from __future__ import annotations

import secrets
import string

from flask import current_app

from ..extensions import db
from ..models import Store
from ..validation import ConflictError, ValidationError, require_text


class StoreError(Exception):
    """Raised for store operation errors."""
    pass


def generate_store_code(length: int = 7) -> str:
    """Random join code, uppercase letters and digits."""
    alphabet = string.ascii_uppercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def create_store(
    name: str,
    code: str | None = None,
    *,
    timezone: str | None = None,
    tax_rate_bps: int = 0,
    address: str | None = None,
    phone: str | None = None,
) -> Store:
    name = require_text(name, "name", max_length=120)
    code = (code or generate_store_code()).strip().upper()
    if tax_rate_bps < 0 or tax_rate_bps > 10000:
        raise ValidationError("tax_rate_bps must be between 0 and 10000")

    if db.session.query(Store).filter_by(code=code).first():
        raise ConflictError(f"Store code '{code}' is already taken")

    store = Store(
        name=name,
        code=code,
        timezone=timezone,
        tax_rate_bps=tax_rate_bps,
        address=address,
        phone=phone,
        is_active=True,
    )
    db.session.add(store)
    db.session.commit()
    return store


def get_store(store_id: int) -> Store | None:
    return db.session.get(Store, store_id)


def get_store_by_code(code: str) -> Store | None:
    if not code:
        return None
    return db.session.query(Store).filter_by(code=code.strip().upper()).first()


def store_timezone(store: Store | None) -> str:
    """Store's IANA timezone, or the configured default."""
    if store is not None and store.timezone:
        return store.timezone
    return current_app.config.get("DEFAULT_TIMEZONE") or "UTC"
