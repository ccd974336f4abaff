# Overview: Data-access contract shared by every sales backend, plus the plain records it exchanges.

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Optional, Sequence

from ..errors import NotConfiguredError, WriteConflictError
from ..time_utils import parse_iso_datetime, to_utc_z


"""
Sales data-access invariants (authoritative)

- Transactions are immutable once created; only payment_status changes.
- Settlements are append-only: no updates, no deletes.
- append_settlement and create_transaction are atomic: either everything
  is written or nothing is.
- Backends assign ids (and settlement created_at); callers never do.
- Reads never cache across calls.
"""


@dataclass(frozen=True)
class ProductRecord:
    store_id: Any
    name: str
    price_cents: int
    cost_price_cents: int = 0
    stock: int = 0
    min_stock: int = 0
    sku: Optional[str] = None
    is_active: bool = True
    id: Any = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "sku": self.sku,
            "price_cents": self.price_cents,
            "cost_price_cents": self.cost_price_cents,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: dict, *, id: Any = None) -> "ProductRecord":
        return cls(
            id=id if id is not None else data.get("id"),
            store_id=data["store_id"],
            name=data["name"],
            sku=data.get("sku"),
            price_cents=int(data.get("price_cents", 0)),
            cost_price_cents=int(data.get("cost_price_cents", 0)),
            stock=int(data.get("stock", 0)),
            min_stock=int(data.get("min_stock", 0)),
            is_active=bool(data.get("is_active", True)),
        )


@dataclass(frozen=True)
class TransactionItemRecord:
    product_id: Any
    product_name: str
    quantity: int
    unit_price_cents: int
    line_total_cents: int
    unit_cost_cents: int = 0

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.line_total_cents,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TransactionItemRecord":
        return cls(
            product_id=data.get("product_id"),
            product_name=data["product_name"],
            quantity=int(data["quantity"]),
            unit_price_cents=int(data["unit_price_cents"]),
            unit_cost_cents=int(data.get("unit_cost_cents", 0)),
            line_total_cents=int(data["line_total_cents"]),
        )


@dataclass(frozen=True)
class TransactionRecord:
    store_id: Any
    invoice_number: str
    subtotal_cents: int
    total_cents: int
    payment_method: str
    payment_status: str
    created_at: datetime
    discount_cents: int = 0
    tax_cents: int = 0
    cash_received_cents: Optional[int] = None
    change_cents: Optional[int] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    cashier_id: Any = None
    items: tuple[TransactionItemRecord, ...] = field(default_factory=tuple)
    id: Any = None

    def with_status(self, status: str) -> "TransactionRecord":
        return replace(self, payment_status=status)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "invoice_number": self.invoice_number,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "cash_received_cents": self.cash_received_cents,
            "change_cents": self.change_cents,
            "reference": self.reference,
            "notes": self.notes,
            "cashier_id": self.cashier_id,
            "created_at": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict, *, id: Any = None) -> "TransactionRecord":
        return cls(
            id=id if id is not None else data.get("id"),
            store_id=data["store_id"],
            invoice_number=data["invoice_number"],
            subtotal_cents=int(data["subtotal_cents"]),
            discount_cents=int(data.get("discount_cents", 0)),
            tax_cents=int(data.get("tax_cents", 0)),
            total_cents=int(data["total_cents"]),
            payment_method=data["payment_method"],
            payment_status=data["payment_status"],
            cash_received_cents=data.get("cash_received_cents"),
            change_cents=data.get("change_cents"),
            reference=data.get("reference"),
            notes=data.get("notes"),
            cashier_id=data.get("cashier_id"),
            created_at=parse_iso_datetime(data["created_at"]),
            items=tuple(TransactionItemRecord.from_dict(i) for i in data.get("items") or ()),
        )


@dataclass(frozen=True)
class SettlementRecord:
    store_id: Any
    settled_at: datetime
    cash_sales_cents: int
    transfer_sales_cents: int
    qris_sales_cents: int
    total_sales_cents: int
    transaction_count: int
    actual_cash_cents: int
    difference_cents: int
    operator_id: str
    operator_name: str
    window_start: Optional[datetime] = None
    notes: Optional[str] = None
    id: Any = None
    created_at: Optional[datetime] = None

    @property
    def status(self) -> str:
        """match / overage / shortage, from the operator's point of view."""
        if self.difference_cents > 0:
            return "overage"
        if self.difference_cents < 0:
            return "shortage"
        return "match"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "settled_at": to_utc_z(self.settled_at),
            "window_start": to_utc_z(self.window_start),
            "cash_sales_cents": self.cash_sales_cents,
            "transfer_sales_cents": self.transfer_sales_cents,
            "qris_sales_cents": self.qris_sales_cents,
            "total_sales_cents": self.total_sales_cents,
            "transaction_count": self.transaction_count,
            "actual_cash_cents": self.actual_cash_cents,
            "difference_cents": self.difference_cents,
            "status": self.status,
            "operator_id": self.operator_id,
            "operator_name": self.operator_name,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict, *, id: Any = None) -> "SettlementRecord":
        return cls(
            id=id if id is not None else data.get("id"),
            store_id=data["store_id"],
            settled_at=parse_iso_datetime(data["settled_at"]),
            window_start=parse_iso_datetime(data.get("window_start")),
            cash_sales_cents=int(data["cash_sales_cents"]),
            transfer_sales_cents=int(data["transfer_sales_cents"]),
            qris_sales_cents=int(data["qris_sales_cents"]),
            total_sales_cents=int(data["total_sales_cents"]),
            transaction_count=int(data["transaction_count"]),
            actual_cash_cents=int(data["actual_cash_cents"]),
            difference_cents=int(data["difference_cents"]),
            operator_id=str(data["operator_id"]),
            operator_name=data["operator_name"],
            notes=data.get("notes"),
            created_at=parse_iso_datetime(data.get("created_at")),
        )


def settlement_sort_key(record: SettlementRecord):
    """Ledger order: settled_at, then id for records sharing an instant."""
    return (record.settled_at, record.id or 0)


def in_range(created_at: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    """Inclusive range check used by the in-Python backends."""
    if start is not None and created_at < start:
        return False
    if end is not None and created_at > end:
        return False
    return True


def check_status(current: str, expected: Optional[str]) -> None:
    """Raise when a transaction left the status the caller validated against."""
    if expected is not None and current != expected:
        raise WriteConflictError(
            f"Transaction is {current}, not {expected}",
            details={"payment_status": current},
        )


def check_stock(product_id, requested: int, on_hand: int) -> None:
    """Raise when a sale would take a product below zero on hand."""
    if on_hand < requested:
        raise WriteConflictError(
            "Insufficient stock",
            details={"items": [{
                "product_id": product_id,
                "requested_quantity": requested,
                "on_hand": on_hand,
            }]},
        )


class SalesRepository(ABC):
    """
    Polymorphic data-access interface for transactions, products and the
    settlement ledger. The settlement engine and the reporting aggregator are
    written once against this class.
    """

    name = "abstract"

    # --- transactions -------------------------------------------------------

    def list_completed_transactions(self, store_id) -> list[TransactionRecord]:
        return self.list_transactions(store_id, status="completed")

    @abstractmethod
    def list_transactions(
        self,
        store_id,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        newest_first: bool = False,
    ) -> list[TransactionRecord]:
        ...

    @abstractmethod
    def get_transaction(self, store_id, transaction_id) -> Optional[TransactionRecord]:
        ...

    @abstractmethod
    def create_transaction(
        self,
        store_id,
        transaction: TransactionRecord,
        items: Sequence[TransactionItemRecord],
    ) -> TransactionRecord:
        """
        Insert the transaction with its items and decrement stock, atomically.

        Stock is re-checked inside the write; a line that would take a
        product below zero raises WriteConflictError and nothing is stored.
        """

    @abstractmethod
    def set_transaction_status(
        self,
        store_id,
        transaction_id,
        status: str,
        *,
        restock: bool = False,
        expected_status: Optional[str] = None,
    ) -> TransactionRecord:
        """
        Change payment_status; optionally put item quantities back on the shelf.

        With expected_status, the current status is compared inside the write
        and a mismatch raises WriteConflictError without touching stock.
        """

    # --- settlement ledger --------------------------------------------------

    @abstractmethod
    def get_last_settlement(self, store_id) -> Optional[SettlementRecord]:
        ...

    @abstractmethod
    def list_settlements(self, store_id, *, limit: Optional[int] = None) -> list[SettlementRecord]:
        """Newest first."""

    @abstractmethod
    def append_settlement(self, store_id, record: SettlementRecord) -> SettlementRecord:
        """Atomic create; the backend assigns id and created_at."""

    # --- products -----------------------------------------------------------

    @abstractmethod
    def list_products(self, store_id, *, active_only: bool = True) -> list[ProductRecord]:
        ...

    @abstractmethod
    def get_product(self, store_id, product_id) -> Optional[ProductRecord]:
        ...

    @abstractmethod
    def add_product(self, store_id, product: ProductRecord) -> ProductRecord:
        ...


class UnconfiguredRepository(SalesRepository):
    """
    Stand-in used when no data backend is configured.

    Reads degrade to "no data" so screens render empty; writes raise, since
    silently dropping a sale or a settlement would corrupt the audit trail.
    """

    name = "unconfigured"

    def __init__(self, reason: str = "Data backend is not configured"):
        self.reason = reason

    def list_transactions(self, store_id, *, start=None, end=None, status=None, limit=None, newest_first=False):
        return []

    def get_transaction(self, store_id, transaction_id):
        return None

    def create_transaction(self, store_id, transaction, items):
        raise NotConfiguredError(self.reason)

    def set_transaction_status(self, store_id, transaction_id, status, *, restock=False, expected_status=None):
        raise NotConfiguredError(self.reason)

    def get_last_settlement(self, store_id):
        return None

    def list_settlements(self, store_id, *, limit=None):
        return []

    def append_settlement(self, store_id, record):
        raise NotConfiguredError(self.reason)

    def list_products(self, store_id, *, active_only=True):
        return []

    def get_product(self, store_id, product_id):
        return None

    def add_product(self, store_id, product):
        raise NotConfiguredError(self.reason)
