# Overview: Backend selection for the sales data-access interface.

from __future__ import annotations

from flask import current_app

from .base import (
    ProductRecord,
    SalesRepository,
    SettlementRecord,
    TransactionItemRecord,
    TransactionRecord,
    UnconfiguredRepository,
)
from .document import DocumentSalesRepository
from .local import LocalSalesRepository
from .sql import SqlSalesRepository


BACKENDS = ("sql", "document", "local")

_EXTENSION_KEY = "kasir.repository"


def build_repository(backend: str | None, *, local_path: str | None = None) -> SalesRepository:
    """Instantiate the repository for a configured backend name."""
    name = (backend or "").strip().lower()
    if name == "sql":
        return SqlSalesRepository()
    if name == "document":
        return DocumentSalesRepository()
    if name == "local":
        return LocalSalesRepository(path=local_path)
    if name:
        return UnconfiguredRepository(f"Unknown data backend {backend!r}")
    return UnconfiguredRepository()


def init_app(app) -> SalesRepository:
    """Build the app's repository once; the local backend keeps its state in it."""
    repo = build_repository(
        app.config.get("DATA_BACKEND"),
        local_path=app.config.get("LOCAL_STORE_PATH"),
    )
    if isinstance(repo, UnconfiguredRepository):
        app.logger.warning("Sales data backend unavailable: %s", repo.reason)
    app.extensions[_EXTENSION_KEY] = repo
    return repo


def get_repository() -> SalesRepository:
    """Repository for the current app (request or CLI context)."""
    repo = current_app.extensions.get(_EXTENSION_KEY)
    if repo is None:
        repo = init_app(current_app)
    return repo


__all__ = [
    "BACKENDS",
    "SalesRepository",
    "UnconfiguredRepository",
    "SqlSalesRepository",
    "DocumentSalesRepository",
    "LocalSalesRepository",
    "ProductRecord",
    "TransactionRecord",
    "TransactionItemRecord",
    "SettlementRecord",
    "build_repository",
    "init_app",
    "get_repository",
]
