# Overview: Service-layer operations for reporting; read-only rollups over completed sales.

from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import Optional

from flask import current_app, has_app_context

from ..errors import StorageError
from ..repositories import SalesRepository, TransactionRecord
from ..time_utils import (
    parse_iso_datetime,
    shift_local_days,
    start_of_local_day,
    start_of_local_month,
    start_of_same_day_last_month,
    to_utc_z,
    utcnow,
)
from ..validation import PAYMENT_METHODS, require_store_id


"""
Reporting periods are independent of settlement windows: a report covers a
fixed, caller-chosen range and never reads or writes the settlement ledger.
Ranges are inclusive on both ends (start <= created_at <= end).
"""

PERIODS = ("today", "week", "month")
TOP_PRODUCTS_LIMIT = 5
RECENT_TRANSACTIONS_LIMIT = 5


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def _warn(message: str, *args) -> None:
    if has_app_context():
        current_app.logger.warning(message, *args)


def resolve_period(period: str, now: Optional[datetime] = None, tz_name: Optional[str] = None) -> tuple[datetime, datetime]:
    """
    Range for a named period, ending at `now`.

    - today: local midnight
    - week: local midnight seven days ago
    - month: local midnight on the same day last month
    """
    now = now or utcnow()
    day_start = start_of_local_day(now, tz_name)
    if period == "today":
        return day_start, now
    if period == "week":
        return shift_local_days(day_start, tz_name, -7), now
    if period == "month":
        return start_of_same_day_last_month(now, tz_name), now
    raise ReportError(f"period must be one of: {', '.join(PERIODS)}")


def parse_range(
    *,
    period: Optional[str],
    start: Optional[str],
    end: Optional[str],
    now: Optional[datetime] = None,
    tz_name: Optional[str] = None,
) -> tuple[datetime, datetime]:
    """Explicit start/end take precedence over a named period."""
    now = now or utcnow()
    if start or end:
        try:
            start_dt = parse_iso_datetime(start) if start else start_of_local_day(now, tz_name)
            end_dt = parse_iso_datetime(end) if end else now
        except ValueError:
            raise ReportError("start and end must be ISO-8601 datetimes")
        if start_dt > end_dt:
            raise ReportError("start must be before end")
        return start_dt, end_dt
    return resolve_period(period or "today", now, tz_name)


def summarize_sales(transactions: list[TransactionRecord]) -> dict:
    """
    Totals, per-method breakdown, gross profit and top products for a list
    of completed transactions.
    """
    total_sales = sum(tx.total_cents for tx in transactions)
    count = len(transactions)

    by_method = {method: {"total_cents": 0, "count": 0} for method in PAYMENT_METHODS}
    products: dict[str, dict] = {}
    gross_profit = 0

    for tx in transactions:
        bucket = by_method.setdefault(tx.payment_method, {"total_cents": 0, "count": 0})
        bucket["total_cents"] += tx.total_cents
        bucket["count"] += 1

        for item in tx.items:
            gross_profit += item.line_total_cents - item.unit_cost_cents * item.quantity
            entry = products.setdefault(item.product_name, {"quantity": 0, "revenue_cents": 0})
            entry["quantity"] += item.quantity
            entry["revenue_cents"] += item.line_total_cents

    # Order-level discount is not allocated to lines; take it off the profit here
    gross_profit -= sum(tx.discount_cents for tx in transactions)

    top_products = sorted(
        ({"name": name, **values} for name, values in products.items()),
        key=lambda row: (-row["revenue_cents"], row["name"]),
    )[:TOP_PRODUCTS_LIMIT]

    return {
        "total_sales_cents": total_sales,
        "transaction_count": count,
        "average_transaction_cents": total_sales // count if count else 0,
        "gross_profit_cents": gross_profit,
        "sales_by_method": [
            {"method": method, **values} for method, values in by_method.items()
        ],
        "top_products": top_products,
    }


def aggregate_sales(repo: SalesRepository, store_id, start: datetime, end: datetime) -> dict:
    """
    Sum completed sales in [start, end].

    Read failures degrade to an empty report (logged), never an error page.
    """
    require_store_id(store_id)
    degraded = False
    try:
        transactions = repo.list_transactions(store_id, start=start, end=end, status="completed")
    except StorageError:
        _warn("Sales report for store %s degraded to empty: storage read failed", store_id)
        transactions = []
        degraded = True

    report = summarize_sales(transactions)
    report.update({
        "store_id": store_id,
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "degraded": degraded,
    })
    return report


def _sum_completed(repo: SalesRepository, store_id, start: datetime, end: Optional[datetime]) -> tuple[int, int]:
    rows = repo.list_transactions(store_id, start=start, end=end, status="completed")
    return sum(tx.total_cents for tx in rows), len(rows)


def dashboard_summary(
    repo: SalesRepository,
    store_id,
    *,
    now: Optional[datetime] = None,
    tz_name: Optional[str] = None,
    low_stock_threshold: int = 10,
) -> dict:
    """
    Today / this month / last month sales, catalog health and recent activity.

    A product is low on stock when stock < min_stock, or when it has no
    min_stock and stock < low_stock_threshold.
    """
    require_store_id(store_id)
    now = now or utcnow()
    day_start = start_of_local_day(now, tz_name)
    month_start = start_of_local_month(now, tz_name)
    last_month_start = start_of_local_month(now, tz_name, months_back=1)

    try:
        today_sales, today_count = _sum_completed(repo, store_id, day_start, now)
        month_sales, _ = _sum_completed(repo, store_id, month_start, now)
        last_month_sales, _ = _sum_completed(repo, store_id, last_month_start, None)
        # Last month ends where this month begins (exclusive)
        last_month_sales -= _sum_completed(repo, store_id, month_start, None)[0]
        products = repo.list_products(store_id)
        recent = repo.list_transactions(store_id, limit=RECENT_TRANSACTIONS_LIMIT, newest_first=True)
        degraded = False
    except StorageError:
        _warn("Dashboard for store %s degraded to empty: storage read failed", store_id)
        today_sales = today_count = month_sales = last_month_sales = 0
        products, recent = [], []
        degraded = True

    def _is_low(product) -> bool:
        floor = product.min_stock if product.min_stock > 0 else low_stock_threshold
        return product.stock < floor

    return {
        "store_id": store_id,
        "as_of": to_utc_z(now),
        "today_sales_cents": today_sales,
        "today_transactions": today_count,
        "monthly_sales_cents": month_sales,
        "last_month_sales_cents": last_month_sales,
        "total_products": len(products),
        "low_stock_products": sum(1 for p in products if _is_low(p)),
        "recent_transactions": [
            {
                "id": tx.id,
                "invoice_number": tx.invoice_number,
                "total_cents": tx.total_cents,
                "payment_method": tx.payment_method,
                "payment_status": tx.payment_status,
                "created_at": to_utc_z(tx.created_at),
            }
            for tx in recent
        ],
        "degraded": degraded,
    }


CSV_HEADERS = ["invoice_number", "created_at", "payment_method", "payment_status", "total_cents"]


def export_sales_csv(repo: SalesRepository, store_id, start: datetime, end: datetime) -> str:
    """
    Completed sales in [start, end] as CSV, oldest first, followed by a
    blank row and a total row. Storage errors propagate; an export is never
    silently empty.
    """
    require_store_id(store_id)
    transactions = repo.list_transactions(store_id, start=start, end=end, status="completed")

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for tx in transactions:
        writer.writerow([
            tx.invoice_number,
            to_utc_z(tx.created_at),
            tx.payment_method,
            tx.payment_status,
            tx.total_cents,
        ])
    writer.writerow([])
    writer.writerow(["", "", "", "total", sum(tx.total_cents for tx in transactions)])
    return buffer.getvalue()
