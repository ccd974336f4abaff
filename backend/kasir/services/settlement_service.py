"""
Settlement Engine: cash reconciliation against the append-only settlement ledger.

WHY: At shift or day end the operator counts the drawer and compares it with
the cash the system recorded since the last settlement. Each settlement closes
a window of sales so that no sale is ever reconciled twice.

INVARIANTS:
- Windows are (cutoff, settled_at]; the lower bound is strict, so a sale
  stamped exactly at a cutoff was counted by the settlement that ended there
  and is never counted again.
- The cutoff is the latest settlement's settled_at, or the start of the
  store's current calendar day when there is no settlement today.
- Every commit re-reads the ledger and the transactions; nothing is cached
  and no caller-supplied totals are trusted.
- The ledger is append-only. Transactions are never touched here.

CONCURRENCY: single writer per store. Two operators committing at the same
moment can both read the same cutoff and double count; this matches the
one-cashier-at-a-time operating model and is not locked against.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional

from ..errors import ValidationError
from ..repositories import SalesRepository, SettlementRecord, TransactionRecord
from ..time_utils import start_of_local_day, to_utc_z, utcnow
from ..validation import parse_amount, require_store_id, require_text


@dataclass(frozen=True)
class Operator:
    """Person performing the settlement."""
    id: str
    name: str


@dataclass(frozen=True)
class SettlementWindow:
    store_id: Any
    cutoff: datetime
    now: datetime
    cash_sales_cents: int
    transfer_sales_cents: int
    qris_sales_cents: int
    total_sales_cents: int
    transaction_count: int
    last_settlement: Optional[SettlementRecord]

    def to_dict(self) -> dict:
        return {
            "store_id": self.store_id,
            "cutoff": to_utc_z(self.cutoff),
            "as_of": to_utc_z(self.now),
            "cash_sales_cents": self.cash_sales_cents,
            "transfer_sales_cents": self.transfer_sales_cents,
            "qris_sales_cents": self.qris_sales_cents,
            "total_sales_cents": self.total_sales_cents,
            "transaction_count": self.transaction_count,
            "last_settlement": self.last_settlement.to_dict() if self.last_settlement else None,
        }


def parse_operator(value: Any) -> Operator:
    """Accepts an Operator, or a mapping with id and name."""
    if isinstance(value, Operator):
        return value
    if not isinstance(value, dict):
        raise ValidationError("operator must include id and name")
    operator_id = require_text(value.get("id"), "operator.id", max_length=64)
    name = require_text(value.get("name"), "operator.name", max_length=120)
    return Operator(id=operator_id, name=name)


def resolve_cutoff(
    last_settlement: Optional[SettlementRecord],
    now: datetime,
    tz_name: Optional[str],
    *,
    carry_forward: bool = False,
) -> datetime:
    """
    Start (exclusive) of the unsettled window.

    Day rollover: a settlement from before today's local midnight does not
    suppress today's totals; the window starts at midnight instead. With
    carry_forward the prior settlement is kept as the cutoff so sales made
    after it but before midnight are settled today rather than skipped.
    """
    day_start = start_of_local_day(now, tz_name)
    if last_settlement is None:
        return day_start
    if last_settlement.settled_at < day_start and not carry_forward:
        return day_start
    return last_settlement.settled_at


def summarize_window(
    transactions: Iterable[TransactionRecord],
    cutoff: datetime,
    now: datetime,
) -> dict:
    """
    Sum completed sales with cutoff < created_at <= now, per payment method.

    Sales with an unrecognized method still count toward the total and the
    transaction count.
    """
    sums = {"cash": 0, "transfer": 0, "qris": 0}
    total = 0
    count = 0
    for tx in transactions:
        if tx.payment_status != "completed":
            continue
        if not (cutoff < tx.created_at <= now):
            continue
        if tx.payment_method in sums:
            sums[tx.payment_method] += tx.total_cents
        total += tx.total_cents
        count += 1

    return {
        "cash_sales_cents": sums["cash"],
        "transfer_sales_cents": sums["transfer"],
        "qris_sales_cents": sums["qris"],
        "total_sales_cents": total,
        "transaction_count": count,
    }


def compute_unsettled_window(
    repo: SalesRepository,
    store_id,
    *,
    now: Optional[datetime] = None,
    tz_name: Optional[str] = None,
    carry_forward: bool = False,
) -> SettlementWindow:
    """
    Aggregate the store's completed sales since the current cutoff.

    Read-only and deterministic for a given ledger and transaction store.
    Storage failures propagate to the caller; there is no retry here.
    """
    require_store_id(store_id)
    now = now or utcnow()

    last = repo.get_last_settlement(store_id)
    cutoff = resolve_cutoff(last, now, tz_name, carry_forward=carry_forward)
    totals = summarize_window(repo.list_completed_transactions(store_id), cutoff, now)

    return SettlementWindow(
        store_id=store_id,
        cutoff=cutoff,
        now=now,
        last_settlement=last,
        **totals,
    )


def commit_settlement(
    repo: SalesRepository,
    store_id,
    operator: Any,
    actual_cash: Any,
    *,
    now: Optional[datetime] = None,
    tz_name: Optional[str] = None,
    carry_forward: bool = False,
    notes: Optional[str] = None,
) -> SettlementRecord:
    """
    Reconcile counted cash and append a settlement to the ledger.

    Args:
        store_id: Store being settled
        operator: Operator or {"id", "name"}
        actual_cash: Counted drawer cash (smallest currency unit, >= 0)
        now: Settlement instant; becomes the next window's cutoff

    Raises:
        ValidationError: bad input, rejected before any read or write
        NotConfiguredError / StorageError: the append did not happen
    """
    require_store_id(store_id)
    op = parse_operator(operator)
    actual_cash_cents = parse_amount(actual_cash, "actual_cash")
    if notes is not None:
        notes = str(notes).strip() or None

    now = now or utcnow()
    window = compute_unsettled_window(
        repo,
        store_id,
        now=now,
        tz_name=tz_name,
        carry_forward=carry_forward,
    )
    if window.last_settlement and now < window.last_settlement.settled_at:
        raise ValidationError("Settlement time precedes the last recorded settlement")

    record = SettlementRecord(
        store_id=store_id,
        settled_at=now,
        window_start=window.cutoff,
        cash_sales_cents=window.cash_sales_cents,
        transfer_sales_cents=window.transfer_sales_cents,
        qris_sales_cents=window.qris_sales_cents,
        total_sales_cents=window.total_sales_cents,
        transaction_count=window.transaction_count,
        actual_cash_cents=actual_cash_cents,
        difference_cents=actual_cash_cents - window.cash_sales_cents,
        operator_id=op.id,
        operator_name=op.name,
        notes=notes,
    )
    return repo.append_settlement(store_id, record)


def list_settlements(repo: SalesRepository, store_id, *, limit: Optional[int] = None) -> list[SettlementRecord]:
    """Ledger history, newest first."""
    require_store_id(store_id)
    return repo.list_settlements(store_id, limit=limit)
