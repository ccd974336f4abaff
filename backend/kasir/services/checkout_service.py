"""
Checkout Service: cart -> completed transaction with stock decrement.

WHY: A sale and its stock movement must land together; the repository writes
the transaction, its items and the stock changes in one atomic step.

Amounts are integers in the smallest currency unit. Tax is a flat per-store
rate in basis points applied after the order discount.
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import Any, Optional

from ..errors import RecordNotFoundError, ValidationError, WriteConflictError
from ..repositories import SalesRepository, TransactionItemRecord, TransactionRecord
from ..time_utils import utcnow
from ..validation import (
    PAYMENT_METHODS,
    parse_amount,
    parse_choice,
    parse_positive_int,
    require_store_id,
)


# Allowed payment_status transitions after checkout
TRANSITIONS = {
    ("pending", "completed"),
    ("pending", "failed"),
    ("completed", "refunded"),
}


class CheckoutError(Exception):
    """Raised for checkout business-rule failures."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def generate_invoice_number(now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> str:
    """INV + yymmdd + four random digits (e.g. INV2610190042)."""
    now = now or utcnow()
    rng = rng or random
    return f"INV{now:%y%m%d}{rng.randint(0, 9999):04d}"


def compute_tax(taxable_cents: int, tax_rate_bps: int) -> int:
    """Flat-rate tax, rounded half up to the smallest unit."""
    if tax_rate_bps <= 0 or taxable_cents <= 0:
        return 0
    return (taxable_cents * tax_rate_bps + 5000) // 10000


def _parse_cart(cart: Any) -> list[tuple[Any, int]]:
    if not isinstance(cart, list) or not cart:
        raise ValidationError("items must be a non-empty list")

    quantities: dict[Any, int] = {}
    for index, line in enumerate(cart):
        if not isinstance(line, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = line.get("product_id")
        if product_id is None:
            raise ValidationError(f"items[{index}].product_id is required")
        qty = parse_positive_int(line.get("quantity"), f"items[{index}].quantity")
        quantities[product_id] = quantities.get(product_id, 0) + qty
    return list(quantities.items())


def checkout(
    repo: SalesRepository,
    store_id,
    *,
    items: Any,
    payment_method: Any,
    cashier_id: Any = None,
    cash_received: Any = None,
    discount: Any = None,
    tax_rate_bps: int = 0,
    reference: Optional[str] = None,
    notes: Optional[str] = None,
    payment_status: str = "completed",
    now: Optional[datetime] = None,
) -> TransactionRecord:
    """
    Price the cart, validate stock and payment, and persist the sale.

    Lines for the same product are merged. Prices and costs are snapshotted
    from the catalog at checkout time.

    Raises:
        ValidationError: malformed input
        CheckoutError: unknown/inactive product, insufficient stock,
            discount above subtotal, cash received below total
    """
    require_store_id(store_id)
    method = parse_choice(payment_method, "payment_method", PAYMENT_METHODS)
    status = parse_choice(payment_status, "payment_status", ("pending", "completed"))
    lines = _parse_cart(items)
    discount_cents = parse_amount(discount, "discount", required=False) or 0

    priced: list[TransactionItemRecord] = []
    insufficient = []
    for product_id, qty in lines:
        product = repo.get_product(store_id, product_id)
        if product is None or not product.is_active:
            raise CheckoutError(f"Product {product_id} not found", details={"product_id": product_id})
        if product.stock < qty:
            insufficient.append({
                "product_id": product_id,
                "requested_quantity": qty,
                "on_hand": product.stock,
            })
            continue
        priced.append(TransactionItemRecord(
            product_id=product.id,
            product_name=product.name,
            quantity=qty,
            unit_price_cents=product.price_cents,
            unit_cost_cents=product.cost_price_cents,
            line_total_cents=product.price_cents * qty,
        ))

    if insufficient:
        raise CheckoutError("Insufficient stock", details={"items": insufficient})

    subtotal = sum(item.line_total_cents for item in priced)
    if discount_cents > subtotal:
        raise CheckoutError("Discount cannot exceed subtotal")
    tax = compute_tax(subtotal - discount_cents, tax_rate_bps)
    total = subtotal - discount_cents + tax

    cash_received_cents = None
    change_cents = None
    if method == "cash":
        cash_received_cents = parse_amount(cash_received, "cash_received", required=False)
        if cash_received_cents is None:
            cash_received_cents = total
        if status == "completed" and cash_received_cents < total:
            raise CheckoutError(
                "Cash received is less than the total",
                details={"total_cents": total, "cash_received_cents": cash_received_cents},
            )
        change_cents = max(cash_received_cents - total, 0)

    now = now or utcnow()
    transaction = TransactionRecord(
        store_id=store_id,
        invoice_number=generate_invoice_number(now),
        subtotal_cents=subtotal,
        discount_cents=discount_cents,
        tax_cents=tax,
        total_cents=total,
        payment_method=method,
        payment_status=status,
        cash_received_cents=cash_received_cents,
        change_cents=change_cents,
        reference=(reference or None) if method != "cash" else None,
        notes=notes or None,
        cashier_id=cashier_id,
        created_at=now,
    )
    try:
        return repo.create_transaction(store_id, transaction, priced)
    except WriteConflictError as exc:
        # Stock sold out between the check above and the write
        raise CheckoutError(str(exc), details=exc.details) from exc


def _transition(repo: SalesRepository, store_id, transaction_id, target: str, *, restock: bool = False) -> TransactionRecord:
    require_store_id(store_id)
    current = repo.get_transaction(store_id, transaction_id)
    if current is None:
        raise RecordNotFoundError("Transaction not found")
    if (current.payment_status, target) not in TRANSITIONS:
        raise CheckoutError(f"Cannot change a {current.payment_status} transaction to {target}")
    try:
        return repo.set_transaction_status(
            store_id, transaction_id, target, restock=restock, expected_status=current.payment_status,
        )
    except WriteConflictError as exc:
        actual = exc.details.get("payment_status")
        raise CheckoutError(f"Cannot change a {actual} transaction to {target}") from exc


def complete_payment(repo: SalesRepository, store_id, transaction_id) -> TransactionRecord:
    """Confirm a pending transfer/QRIS payment."""
    return _transition(repo, store_id, transaction_id, "completed")


def fail_payment(repo: SalesRepository, store_id, transaction_id) -> TransactionRecord:
    """Mark a pending payment failed and put its items back on the shelf."""
    return _transition(repo, store_id, transaction_id, "failed", restock=True)


def refund_transaction(repo: SalesRepository, store_id, transaction_id) -> TransactionRecord:
    """
    Refund a completed sale and restock its items.

    Settlements already filed keep their totals (the ledger is immutable);
    an unsettled refunded sale simply drops out of the next window.
    """
    return _transition(repo, store_id, transaction_id, "refunded", restock=True)


def list_transactions(
    repo: SalesRepository,
    store_id,
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    status: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[TransactionRecord]:
    require_store_id(store_id)
    return repo.list_transactions(store_id, start=start, end=end, status=status, limit=limit, newest_first=True)
