# backend/kasir/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the instance folder by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///kasir.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sales/settlement data backend: "sql", "document" or "local".
    # Anything else leaves the app unconfigured (reads empty, writes fail).
    DATA_BACKEND = os.environ.get("DATA_BACKEND", "sql")
    LOCAL_STORE_PATH = os.environ.get("LOCAL_STORE_PATH") or None

    # Business-day boundaries are computed in the store's timezone; this is
    # the fallback for stores without one.
    DEFAULT_TIMEZONE = os.environ.get("DEFAULT_TIMEZONE", "Asia/Jakarta")

    # When true, a settlement filed on a previous day is still used as the
    # cutoff, so unsettled sales from before midnight roll into today's window.
    SETTLEMENT_CARRY_FORWARD = _env_flag("SETTLEMENT_CARRY_FORWARD", False)

    # bcrypt cost factor for cashier passwords (tests lower this)
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))

    CORS_ORIGINS = os.environ.get(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    )
