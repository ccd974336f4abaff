from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow


class Transaction(db.Model):
    """
    Completed (or pending) sale.

    IMMUTABLE: amounts, method and created_at never change after insert.
    Only payment_status transitions (pending -> completed/failed,
    completed -> refunded).
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_store_status_created", "store_id", "payment_status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)
    invoice_number = db.Column(db.String(32), nullable=False, index=True)

    # Amounts in the smallest currency unit
    subtotal_cents = db.Column(db.BigInteger, nullable=False)
    discount_cents = db.Column(db.BigInteger, nullable=False, default=0)
    tax_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_cents = db.Column(db.BigInteger, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)  # cash, transfer, qris
    payment_status = db.Column(db.String(16), nullable=False, default="completed", index=True)
    cash_received_cents = db.Column(db.BigInteger, nullable=True)
    change_cents = db.Column(db.BigInteger, nullable=True)
    reference = db.Column(db.String(128), nullable=True)  # transfer / QRIS reference
    notes = db.Column(db.Text, nullable=True)

    cashier_id = db.Column(db.Integer, nullable=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    items = db.relationship(
        "TransactionItem",
        backref="transaction",
        lazy="selectin",
        order_by="TransactionItem.id",
    )


class TransactionItem(db.Model):
    __tablename__ = "transaction_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=True, index=True)

    # Snapshot at time of sale
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.BigInteger, nullable=False)
    unit_cost_cents = db.Column(db.BigInteger, nullable=False, default=0)
    line_total_cents = db.Column(db.BigInteger, nullable=False)
