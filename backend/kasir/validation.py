from __future__ import annotations

from typing import Any, Iterable

from .errors import ValidationError


# Upper bound for any single entered money value (smallest currency unit).
# Fits a 32-bit INTEGER; stored money columns are BIGINT so sums stay safe.
MAX_AMOUNT_CENTS = 999_999_999

PAYMENT_METHODS = ("cash", "transfer", "qris")
PAYMENT_STATUSES = ("pending", "completed", "failed", "refunded")


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate username)."""


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for JSON input.

    - ints pass through (bool is rejected even though it subclasses int)
    - strings must be plain digits with an optional leading minus
    - floats are accepted only when integral (JSON clients send 14500.0)
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be an integer (no decimals)")
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    raise ValidationError(f"{field} must be an integer")


def parse_amount(value: Any, field: str, *, required: bool = True) -> int | None:
    """Non-negative money amount in the smallest currency unit."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    amount = coerce_int(value, field)
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if amount > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    return amount


def parse_positive_int(value: Any, field: str) -> int:
    number = coerce_int(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be > 0")
    return number


def parse_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    choices = tuple(choices)
    if not isinstance(value, str) or value.strip().lower() not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
    return value.strip().lower()


def require_text(value: Any, field: str, max_length: int | None = None) -> str:
    if value is None:
        raise ValidationError(f"{field} is required")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} cannot be blank")
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def require_store_id(store_id: Any) -> Any:
    """Store ids are opaque to the services; only emptiness is rejected."""
    if store_id is None or (isinstance(store_id, str) and not store_id.strip()):
        raise ValidationError("store_id is required")
    return store_id
