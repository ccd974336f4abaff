# Overview: Document-store backend; each record is a schemaless JSON document in a named collection.

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from ..errors import RecordNotFoundError, StorageError
from ..extensions import db
from ..models import Document
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


TRANSACTIONS = "transactions"
SETTLEMENTS = "settlements"
PRODUCTS = "products"


class DocumentSalesRepository(SalesRepository):
    """
    Document-store flavoured backend.

    Queries fetch a whole store's collection and filter/sort in Python, the
    way a document-store client does; documents carry their own shape and are
    decoded through the record classes' from_dict.
    """

    name = "document"

    def _collection(self, collection: str, store_id):
        try:
            return (
                db.session.query(Document)
                .filter(Document.collection == collection, Document.store_id == str(store_id))
                .order_by(Document.id.asc())
                .all()
            )
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError(f"Failed to read {collection}") from exc

    def _get(self, collection: str, store_id, doc_id, *, for_update: bool = False):
        try:
            doc_id = int(doc_id)
        except (TypeError, ValueError):
            return None
        query = db.session.query(Document).filter(
            Document.collection == collection,
            Document.store_id == str(store_id),
            Document.id == doc_id,
        )
        if for_update:
            query = query.with_for_update()
        try:
            return query.first()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError(f"Failed to read {collection}") from exc

    def _write(self, fn, message: str):
        try:
            result = fn()
            db.session.commit()
            return result
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError(message) from exc
        except Exception:
            db.session.rollback()
            raise

    def _insert(self, collection: str, store_id, data: dict) -> Document:
        data = dict(data)
        data.pop("id", None)
        doc = Document(collection=collection, store_id=str(store_id), data=data)
        db.session.add(doc)
        db.session.flush()
        return doc

    # --- transactions -------------------------------------------------------

    def list_transactions(self, store_id, *, start=None, end=None, status=None, limit=None, newest_first=False):
        records = [
            TransactionRecord.from_dict(doc.data, id=doc.id)
            for doc in self._collection(TRANSACTIONS, store_id)
        ]
        records = [
            r for r in records
            if (not status or r.payment_status == status) and in_range(r.created_at, start, end)
        ]
        records.sort(key=lambda r: (r.created_at, r.id), reverse=newest_first)
        if limit:
            records = records[:limit]
        return records

    def get_transaction(self, store_id, transaction_id):
        doc = self._get(TRANSACTIONS, store_id, transaction_id)
        return TransactionRecord.from_dict(doc.data, id=doc.id) if doc else None

    def create_transaction(self, store_id, transaction, items):
        def _op():
            data = transaction.to_dict()
            data["store_id"] = store_id
            data["items"] = [item.to_dict() for item in items]
            doc = self._insert(TRANSACTIONS, store_id, data)
            for item in items:
                self._adjust_stock(store_id, item.product_id, -item.quantity)
            return TransactionRecord.from_dict(doc.data, id=doc.id)

        return self._write(_op, "Failed to save transaction")

    def set_transaction_status(self, store_id, transaction_id, status, *, restock=False, expected_status=None):
        def _op():
            doc = self._get(TRANSACTIONS, store_id, transaction_id, for_update=True)
            if doc is None:
                raise RecordNotFoundError("Transaction not found")
            check_status(doc.data.get("payment_status"), expected_status)
            # Reassign so the JSON column registers the change
            doc.data = {**doc.data, "payment_status": status}
            doc.updated_at = utcnow()
            if restock:
                for item in doc.data.get("items") or ():
                    self._adjust_stock(store_id, item.get("product_id"), int(item["quantity"]))
            db.session.flush()
            return TransactionRecord.from_dict(doc.data, id=doc.id)

        return self._write(_op, "Failed to update transaction")

    def _adjust_stock(self, store_id, product_id, delta: int) -> None:
        if product_id is None:
            return
        doc = self._get(PRODUCTS, store_id, product_id, for_update=True)
        if doc is None:
            return
        if delta < 0:
            check_stock(product_id, -delta, int(doc.data.get("stock", 0)))
        doc.data = {**doc.data, "stock": int(doc.data.get("stock", 0)) + delta}
        doc.updated_at = utcnow()

    # --- settlement ledger --------------------------------------------------

    def _settlements(self, store_id) -> list[SettlementRecord]:
        records = [
            SettlementRecord.from_dict(doc.data, id=doc.id)
            for doc in self._collection(SETTLEMENTS, store_id)
        ]
        records.sort(key=settlement_sort_key, reverse=True)
        return records

    def get_last_settlement(self, store_id):
        records = self._settlements(store_id)
        return records[0] if records else None

    def list_settlements(self, store_id, *, limit=None):
        records = self._settlements(store_id)
        return records[:limit] if limit else records

    def append_settlement(self, store_id, record):
        def _op():
            data = record.to_dict()
            data["store_id"] = store_id
            data["created_at"] = utcnow().isoformat()
            data.pop("status", None)
            doc = self._insert(SETTLEMENTS, store_id, data)
            return SettlementRecord.from_dict(doc.data, id=doc.id)

        return self._write(_op, "Failed to save settlement")

    # --- products -----------------------------------------------------------

    def list_products(self, store_id, *, active_only=True):
        records = [
            ProductRecord.from_dict(doc.data, id=doc.id)
            for doc in self._collection(PRODUCTS, store_id)
        ]
        if active_only:
            records = [r for r in records if r.is_active]
        return sorted(records, key=lambda r: r.name)

    def get_product(self, store_id, product_id):
        doc = self._get(PRODUCTS, store_id, product_id)
        return ProductRecord.from_dict(doc.data, id=doc.id) if doc else None

    def add_product(self, store_id, product):
        def _op():
            data = product.to_dict()
            data["store_id"] = store_id
            doc = self._insert(PRODUCTS, store_id, data)
            return ProductRecord.from_dict(doc.data, id=doc.id)

        return self._write(_op, "Failed to save product")
