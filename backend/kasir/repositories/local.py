# Overview: Local fallback backend; in-process collections, optionally persisted to a JSON file.

from __future__ import annotations

import copy
import json
import os
import tempfile
import threading
from typing import Optional

from ..errors import RecordNotFoundError, StorageError
from ..time_utils import utcnow
from .base import (
    ProductRecord,
    SalesRepository,
    SettlementRecord,
    TransactionRecord,
    check_status,
    check_stock,
    in_range,
    settlement_sort_key,
)


COLLECTIONS = ("transactions", "settlements", "products")


def _empty_state() -> dict:
    return {"next_id": 1, **{name: {} for name in COLLECTIONS}}


class LocalSalesRepository(SalesRepository):
    """
    Offline/local storage backend.

    State layout: {collection: {store_key: {doc_id: document}}}. Every write
    is applied to a copy of the state and, when a path is configured, written
    to disk with an atomic rename before the copy replaces the live state, so
    a failed write leaves nothing behind.

    Also serves as the in-memory fake store in tests (path=None).
    """

    name = "local"

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._lock = threading.RLock()
        self._state = self._load()

    # --- persistence --------------------------------------------------------

    def _load(self) -> dict:
        if not self.path or not os.path.exists(self.path):
            return _empty_state()
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                state = json.load(fh)
        except (OSError, ValueError) as exc:
            raise StorageError(f"Failed to load local store {self.path}") from exc
        for name in COLLECTIONS:
            state.setdefault(name, {})
        state.setdefault("next_id", 1)
        return state

    def _persist(self, state: dict) -> None:
        if not self.path:
            return
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(prefix=".kasir-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(state, fh)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _mutate(self, fn, message: str):
        with self._lock:
            draft = copy.deepcopy(self._state)
            result = fn(draft)
            try:
                self._persist(draft)
            except OSError as exc:
                raise StorageError(message) from exc
            self._state = draft
            return result

    def _docs(self, collection: str, store_id, state: Optional[dict] = None) -> dict:
        state = self._state if state is None else state
        return state[collection].get(str(store_id), {})

    @staticmethod
    def _insert(state: dict, collection: str, store_id, data: dict) -> tuple[int, dict]:
        doc_id = state["next_id"]
        state["next_id"] = doc_id + 1
        data = dict(data)
        data.pop("id", None)
        state[collection].setdefault(str(store_id), {})[str(doc_id)] = data
        return doc_id, data

    # --- transactions -------------------------------------------------------

    def list_transactions(self, store_id, *, start=None, end=None, status=None, limit=None, newest_first=False):
        with self._lock:
            docs = list(self._docs("transactions", store_id).items())
        records = [TransactionRecord.from_dict(data, id=int(doc_id)) for doc_id, data in docs]
        records = [
            r for r in records
            if (not status or r.payment_status == status) and in_range(r.created_at, start, end)
        ]
        records.sort(key=lambda r: (r.created_at, r.id), reverse=newest_first)
        if limit:
            records = records[:limit]
        return records

    def get_transaction(self, store_id, transaction_id):
        with self._lock:
            data = self._docs("transactions", store_id).get(str(transaction_id))
        return TransactionRecord.from_dict(data, id=int(transaction_id)) if data else None

    def create_transaction(self, store_id, transaction, items):
        def _op(state):
            data = transaction.to_dict()
            data["store_id"] = store_id
            data["items"] = [item.to_dict() for item in items]
            doc_id, stored = self._insert(state, "transactions", store_id, data)
            for item in items:
                self._adjust_stock(state, store_id, item.product_id, -item.quantity)
            return TransactionRecord.from_dict(stored, id=doc_id)

        return self._mutate(_op, "Failed to save transaction")

    def set_transaction_status(self, store_id, transaction_id, status, *, restock=False, expected_status=None):
        def _op(state):
            data = self._docs("transactions", store_id, state).get(str(transaction_id))
            if data is None:
                raise RecordNotFoundError("Transaction not found")
            check_status(data.get("payment_status"), expected_status)
            data["payment_status"] = status
            if restock:
                for item in data.get("items") or ():
                    self._adjust_stock(state, store_id, item.get("product_id"), int(item["quantity"]))
            return TransactionRecord.from_dict(data, id=int(transaction_id))

        return self._mutate(_op, "Failed to update transaction")

    def _adjust_stock(self, state: dict, store_id, product_id, delta: int) -> None:
        if product_id is None:
            return
        data = self._docs("products", store_id, state).get(str(product_id))
        if data is None:
            return
        if delta < 0:
            check_stock(product_id, -delta, int(data.get("stock", 0)))
        data["stock"] = int(data.get("stock", 0)) + delta

    # --- settlement ledger --------------------------------------------------

    def _settlements(self, store_id) -> list[SettlementRecord]:
        with self._lock:
            docs = list(self._docs("settlements", store_id).items())
        records = [SettlementRecord.from_dict(data, id=int(doc_id)) for doc_id, data in docs]
        records.sort(key=settlement_sort_key, reverse=True)
        return records

    def get_last_settlement(self, store_id):
        records = self._settlements(store_id)
        return records[0] if records else None

    def list_settlements(self, store_id, *, limit=None):
        records = self._settlements(store_id)
        return records[:limit] if limit else records

    def append_settlement(self, store_id, record):
        def _op(state):
            data = record.to_dict()
            data["store_id"] = store_id
            data["created_at"] = utcnow().isoformat()
            data.pop("status", None)
            doc_id, stored = self._insert(state, "settlements", store_id, data)
            return SettlementRecord.from_dict(stored, id=doc_id)

        return self._mutate(_op, "Failed to save settlement")

    # --- products -----------------------------------------------------------

    def list_products(self, store_id, *, active_only=True):
        with self._lock:
            docs = list(self._docs("products", store_id).items())
        records = [ProductRecord.from_dict(data, id=int(doc_id)) for doc_id, data in docs]
        if active_only:
            records = [r for r in records if r.is_active]
        return sorted(records, key=lambda r: r.name)

    def get_product(self, store_id, product_id):
        with self._lock:
            data = self._docs("products", store_id).get(str(product_id))
        return ProductRecord.from_dict(data, id=int(product_id)) if data else None

    def add_product(self, store_id, product):
        def _op(state):
            data = product.to_dict()
            data["store_id"] = store_id
            doc_id, stored = self._insert(state, "products", store_id, data)
            return ProductRecord.from_dict(stored, id=doc_id)

        return self._mutate(_op, "Failed to save product")
