# Overview: Relational backend for sales data (Flask-SQLAlchemy ORM tables).

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from ..errors import RecordNotFoundError, StorageError
from ..extensions import db
from ..models import Product, Settlement, Transaction, TransactionItem
from ..time_utils import utcnow
from .base import (
    ProductRecord,
    SalesRepository,
    SettlementRecord,
    TransactionItemRecord,
    TransactionRecord,
    check_status,
    check_stock,
)


def lock_for_update(query):
    """
    Apply row-level locking for stock changes.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def _transaction_record(row: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        store_id=row.store_id,
        invoice_number=row.invoice_number,
        subtotal_cents=row.subtotal_cents,
        discount_cents=row.discount_cents,
        tax_cents=row.tax_cents,
        total_cents=row.total_cents,
        payment_method=row.payment_method,
        payment_status=row.payment_status,
        cash_received_cents=row.cash_received_cents,
        change_cents=row.change_cents,
        reference=row.reference,
        notes=row.notes,
        cashier_id=row.cashier_id,
        created_at=row.created_at,
        items=tuple(
            TransactionItemRecord(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
                unit_cost_cents=item.unit_cost_cents,
                line_total_cents=item.line_total_cents,
            )
            for item in row.items
        ),
    )


def _settlement_record(row: Settlement) -> SettlementRecord:
    return SettlementRecord(
        id=row.id,
        store_id=row.store_id,
        settled_at=row.settled_at,
        window_start=row.window_start,
        cash_sales_cents=row.cash_sales_cents,
        transfer_sales_cents=row.transfer_sales_cents,
        qris_sales_cents=row.qris_sales_cents,
        total_sales_cents=row.total_sales_cents,
        transaction_count=row.transaction_count,
        actual_cash_cents=row.actual_cash_cents,
        difference_cents=row.difference_cents,
        operator_id=row.operator_id,
        operator_name=row.operator_name,
        notes=row.notes,
        created_at=row.created_at,
    )


def _product_record(row: Product) -> ProductRecord:
    return ProductRecord(
        id=row.id,
        store_id=row.store_id,
        name=row.name,
        sku=row.sku,
        price_cents=row.price_cents,
        cost_price_cents=row.cost_price_cents,
        stock=row.stock,
        min_stock=row.min_stock,
        is_active=row.is_active,
    )


class SqlSalesRepository(SalesRepository):
    """Sales data in the application's relational database."""

    name = "sql"

    def _read(self, fn):
        try:
            return fn()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError("Failed to read from the database") from exc

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

    # --- transactions -------------------------------------------------------

    def list_transactions(self, store_id, *, start=None, end=None, status=None, limit=None, newest_first=False):
        def _op():
            query = db.session.query(Transaction).filter(Transaction.store_id == store_id)
            if status:
                query = query.filter(Transaction.payment_status == status)
            if start is not None:
                query = query.filter(Transaction.created_at >= start)
            if end is not None:
                query = query.filter(Transaction.created_at <= end)
            if newest_first:
                query = query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
            else:
                query = query.order_by(Transaction.created_at.asc(), Transaction.id.asc())
            if limit:
                query = query.limit(limit)
            return [_transaction_record(row) for row in query.all()]

        return self._read(_op)

    def get_transaction(self, store_id, transaction_id):
        def _op():
            row = db.session.query(Transaction).filter_by(store_id=store_id, id=transaction_id).first()
            return _transaction_record(row) if row else None

        return self._read(_op)

    def create_transaction(self, store_id, transaction, items):
        def _op():
            row = Transaction(
                store_id=store_id,
                invoice_number=transaction.invoice_number,
                subtotal_cents=transaction.subtotal_cents,
                discount_cents=transaction.discount_cents,
                tax_cents=transaction.tax_cents,
                total_cents=transaction.total_cents,
                payment_method=transaction.payment_method,
                payment_status=transaction.payment_status,
                cash_received_cents=transaction.cash_received_cents,
                change_cents=transaction.change_cents,
                reference=transaction.reference,
                notes=transaction.notes,
                cashier_id=transaction.cashier_id,
                created_at=transaction.created_at,
            )
            db.session.add(row)
            db.session.flush()

            for item in items:
                db.session.add(TransactionItem(
                    transaction_id=row.id,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    unit_price_cents=item.unit_price_cents,
                    unit_cost_cents=item.unit_cost_cents,
                    line_total_cents=item.line_total_cents,
                ))
                self._adjust_stock(store_id, item.product_id, -item.quantity)

            db.session.flush()
            db.session.refresh(row)
            return _transaction_record(row)

        return self._write(_op, "Failed to save transaction")

    def set_transaction_status(self, store_id, transaction_id, status, *, restock=False, expected_status=None):
        def _op():
            row = lock_for_update(
                db.session.query(Transaction).filter_by(store_id=store_id, id=transaction_id)
            ).first()
            if not row:
                raise RecordNotFoundError("Transaction not found")
            check_status(row.payment_status, expected_status)
            row.payment_status = status
            if restock:
                for item in row.items:
                    self._adjust_stock(store_id, item.product_id, item.quantity)
            db.session.flush()
            return _transaction_record(row)

        return self._write(_op, "Failed to update transaction")

    def _adjust_stock(self, store_id, product_id, delta: int) -> None:
        if product_id is None:
            return
        product = lock_for_update(
            db.session.query(Product).filter_by(store_id=store_id, id=product_id)
        ).first()
        if product is None:
            # Product deleted since the sale; the item snapshot is still valid.
            return
        if delta < 0:
            check_stock(product_id, -delta, product.stock or 0)
        product.stock = (product.stock or 0) + delta
        product.updated_at = utcnow()

    # --- settlement ledger --------------------------------------------------

    def get_last_settlement(self, store_id):
        def _op():
            row = (
                db.session.query(Settlement)
                .filter(Settlement.store_id == store_id)
                .order_by(Settlement.settled_at.desc(), Settlement.id.desc())
                .first()
            )
            return _settlement_record(row) if row else None

        return self._read(_op)

    def list_settlements(self, store_id, *, limit=None):
        def _op():
            query = (
                db.session.query(Settlement)
                .filter(Settlement.store_id == store_id)
                .order_by(Settlement.settled_at.desc(), Settlement.id.desc())
            )
            if limit:
                query = query.limit(limit)
            return [_settlement_record(row) for row in query.all()]

        return self._read(_op)

    def append_settlement(self, store_id, record):
        def _op():
            row = Settlement(
                store_id=store_id,
                settled_at=record.settled_at,
                window_start=record.window_start,
                cash_sales_cents=record.cash_sales_cents,
                transfer_sales_cents=record.transfer_sales_cents,
                qris_sales_cents=record.qris_sales_cents,
                total_sales_cents=record.total_sales_cents,
                transaction_count=record.transaction_count,
                actual_cash_cents=record.actual_cash_cents,
                difference_cents=record.difference_cents,
                operator_id=str(record.operator_id),
                operator_name=record.operator_name,
                notes=record.notes,
                created_at=utcnow(),
            )
            db.session.add(row)
            db.session.flush()
            return _settlement_record(row)

        return self._write(_op, "Failed to save settlement")

    # --- products -----------------------------------------------------------

    def list_products(self, store_id, *, active_only=True):
        def _op():
            query = db.session.query(Product).filter(Product.store_id == store_id)
            if active_only:
                query = query.filter(Product.is_active.is_(True))
            return [_product_record(row) for row in query.order_by(Product.name.asc()).all()]

        return self._read(_op)

    def get_product(self, store_id, product_id):
        def _op():
            row = db.session.query(Product).filter_by(store_id=store_id, id=product_id).first()
            return _product_record(row) if row else None

        return self._read(_op)

    def add_product(self, store_id, product):
        def _op():
            row = Product(
                store_id=store_id,
                name=product.name,
                sku=product.sku,
                price_cents=product.price_cents,
                cost_price_cents=product.cost_price_cents,
                stock=product.stock,
                min_stock=product.min_stock,
                is_active=product.is_active,
            )
            db.session.add(row)
            db.session.flush()
            return _product_record(row)

        return self._write(_op, "Failed to save product")
