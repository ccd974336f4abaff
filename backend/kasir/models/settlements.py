from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow


class Settlement(db.Model):
    """
    Cash reconciliation record (append-only ledger).

    Each row closes the window (previous settled_at, settled_at] for its store.
    Rows are never updated or deleted.
    """
    __tablename__ = "settlements"
    __table_args__ = (
        db.Index("ix_settlements_store_settled", "store_id", "settled_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)

    settled_at = db.Column(db.DateTime, nullable=False)
    window_start = db.Column(db.DateTime, nullable=True)  # cutoff the window was computed from

    cash_sales_cents = db.Column(db.BigInteger, nullable=False, default=0)
    transfer_sales_cents = db.Column(db.BigInteger, nullable=False, default=0)
    qris_sales_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_sales_cents = db.Column(db.BigInteger, nullable=False, default=0)
    transaction_count = db.Column(db.Integer, nullable=False, default=0)

    actual_cash_cents = db.Column(db.BigInteger, nullable=False)
    difference_cents = db.Column(db.BigInteger, nullable=False)  # actual - expected cash

    operator_id = db.Column(db.String(64), nullable=False)
    operator_name = db.Column(db.String(120), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    # System time of the write
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
