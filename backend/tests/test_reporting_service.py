# Overview: Pytest coverage for sales reports and the dashboard summary.

from datetime import datetime

import pytest

from kasir.errors import StorageError
from kasir.repositories import LocalSalesRepository, ProductRecord
from kasir.services import checkout_service, reporting_service, settlement_service
from kasir.services.reporting_service import ReportError


TZ = "Asia/Jakarta"
STORE = 1
NOW = datetime(2026, 10, 19, 5, 0)  # 12:00 local


class FailingReadRepository(LocalSalesRepository):
    def list_transactions(self, store_id, **kwargs):
        raise StorageError("Failed to read transactions")


class TestPeriods:
    def test_today(self):
        assert reporting_service.resolve_period("today", NOW, TZ) == (datetime(2026, 10, 18, 17, 0), NOW)

    def test_week(self):
        assert reporting_service.resolve_period("week", NOW, TZ) == (datetime(2026, 10, 11, 17, 0), NOW)

    def test_month(self):
        assert reporting_service.resolve_period("month", NOW, TZ) == (datetime(2026, 9, 18, 17, 0), NOW)

    def test_month_clamps_to_shorter_month(self):
        now = datetime(2026, 3, 31, 5, 0)
        start, _ = reporting_service.resolve_period("month", now, "UTC")
        assert start == datetime(2026, 2, 28)

    def test_unknown_period(self):
        with pytest.raises(ReportError):
            reporting_service.resolve_period("year", NOW, TZ)

    def test_explicit_range_wins(self):
        start, end = reporting_service.parse_range(
            period="month", start="2026-10-01T00:00:00+07:00", end="2026-10-02T00:00:00Z", now=NOW, tz_name=TZ,
        )
        assert start == datetime(2026, 9, 30, 17, 0)
        assert end == datetime(2026, 10, 2)

    def test_default_period_is_today(self):
        assert reporting_service.parse_range(period=None, start=None, end=None, now=NOW, tz_name=TZ)[0] == datetime(2026, 10, 18, 17, 0)

    @pytest.mark.parametrize("start, end", [("yesterday", None), ("2026-10-19T00:00:00Z", "2026-10-18T00:00:00Z")])
    def test_bad_range(self, start, end):
        with pytest.raises(ReportError):
            reporting_service.parse_range(period=None, start=start, end=end, now=NOW, tz_name=TZ)


@pytest.fixture
def shop(local_repo):
    nasi = local_repo.add_product(STORE, ProductRecord(
        store_id=STORE, name="Nasi Goreng", price_cents=15000, cost_price_cents=10000, stock=50, min_stock=10,
    ))
    teh = local_repo.add_product(STORE, ProductRecord(
        store_id=STORE, name="Es Teh Manis", price_cents=5000, cost_price_cents=2000, stock=20,
    ))
    return local_repo, nasi, teh


class TestAggregateSales:
    def test_summary(self, shop):
        repo, nasi, teh = shop
        checkout_service.checkout(
            repo, STORE, payment_method="cash", now=datetime(2026, 10, 19, 1, 0),
            items=[{"product_id": nasi.id, "quantity": 2}, {"product_id": teh.id, "quantity": 1}],
        )
        checkout_service.checkout(
            repo, STORE, payment_method="qris", discount=1000, now=datetime(2026, 10, 19, 2, 0),
            items=[{"product_id": nasi.id, "quantity": 1}],
        )
        checkout_service.checkout(
            repo, STORE, payment_method="transfer", payment_status="pending", now=datetime(2026, 10, 19, 3, 0),
            items=[{"product_id": teh.id, "quantity": 4}],
        )

        start, end = reporting_service.resolve_period("today", NOW, TZ)
        report = reporting_service.aggregate_sales(repo, STORE, start, end)

        assert report["total_sales_cents"] == 49000
        assert report["transaction_count"] == 2
        assert report["average_transaction_cents"] == 24500
        assert report["gross_profit_cents"] == 17000
        assert report["sales_by_method"] == [
            {"method": "cash", "total_cents": 35000, "count": 1},
            {"method": "transfer", "total_cents": 0, "count": 0},
            {"method": "qris", "total_cents": 14000, "count": 1},
        ]
        assert report["top_products"] == [
            {"name": "Nasi Goreng", "quantity": 3, "revenue_cents": 45000},
            {"name": "Es Teh Manis", "quantity": 1, "revenue_cents": 5000},
        ]
        assert report["start"] == "2026-10-18T17:00:00Z"
        assert report["degraded"] is False

    def test_range_is_inclusive(self, local_repo, record_sale):
        record_sale(local_repo, STORE, 1000, "cash", datetime(2026, 10, 19, 0, 0))
        record_sale(local_repo, STORE, 2000, "cash", datetime(2026, 10, 19, 1, 0))
        record_sale(local_repo, STORE, 4000, "cash", datetime(2026, 10, 19, 1, 0, 1))

        report = reporting_service.aggregate_sales(
            local_repo, STORE, datetime(2026, 10, 19, 0, 0), datetime(2026, 10, 19, 1, 0),
        )
        assert report["total_sales_cents"] == 3000

    def test_empty_range(self, local_repo):
        report = reporting_service.aggregate_sales(local_repo, STORE, NOW, NOW)
        assert report["transaction_count"] == 0
        assert report["average_transaction_cents"] == 0
        assert report["top_products"] == []

    def test_read_failure_degrades_to_empty(self, app):
        report = reporting_service.aggregate_sales(FailingReadRepository(), STORE, NOW, NOW)
        assert report["total_sales_cents"] == 0
        assert report["degraded"] is True

    def test_reports_ignore_settlements(self, local_repo, record_sale):
        """Settling a window does not change what the sales report shows."""
        record_sale(local_repo, STORE, 8000, "cash", datetime(2026, 10, 19, 1, 0))
        settlement_service.commit_settlement(local_repo, STORE, {"id": "u1", "name": "Alice"}, 8000, now=datetime(2026, 10, 19, 2, 0), tz_name=TZ)

        start, end = reporting_service.resolve_period("today", NOW, TZ)
        assert reporting_service.aggregate_sales(local_repo, STORE, start, end)["total_sales_cents"] == 8000


class TestDashboard:
    def test_summary(self, shop, record_sale):
        repo, _, _ = shop
        repo.add_product(STORE, ProductRecord(store_id=STORE, name="Kerupuk", price_cents=2000, stock=5, min_stock=3))
        repo.add_product(STORE, ProductRecord(store_id=STORE, name="Bakso", price_cents=2000, stock=0, is_active=False))
        repo.add_product(STORE, ProductRecord(store_id=STORE, name="Kopi", price_cents=4000, stock=4))

        record_sale(repo, STORE, 10000, "cash", datetime(2026, 10, 19, 1, 0))      # today
        record_sale(repo, STORE, 20000, "qris", datetime(2026, 10, 5, 3, 0))       # this month
        record_sale(repo, STORE, 3000, "cash", datetime(2026, 9, 30, 17, 30))      # 1 Oct 00:30 local
        record_sale(repo, STORE, 7000, "cash", datetime(2026, 9, 30, 16, 0))       # 30 Sep 23:00 local
        record_sale(repo, STORE, 9000, "cash", datetime(2026, 10, 19, 2, 0), status="refunded")

        summary = reporting_service.dashboard_summary(repo, STORE, now=NOW, tz_name=TZ, low_stock_threshold=10)

        assert summary["today_sales_cents"] == 10000
        assert summary["today_transactions"] == 1
        assert summary["monthly_sales_cents"] == 33000
        assert summary["last_month_sales_cents"] == 7000
        assert summary["total_products"] == 4
        # Kopi: below the default threshold; Kerupuk is above its own min_stock
        assert summary["low_stock_products"] == 1
        assert len(summary["recent_transactions"]) == 5
        assert summary["recent_transactions"][0]["payment_status"] == "refunded"
        assert summary["degraded"] is False

    def test_read_failure_degrades(self, app):
        summary = reporting_service.dashboard_summary(FailingReadRepository(), STORE, now=NOW, tz_name=TZ)
        assert summary["today_sales_cents"] == 0
        assert summary["recent_transactions"] == []
        assert summary["degraded"] is True


class TestCsvExport:
    def test_rows_and_total(self, local_repo, record_sale):
        record_sale(local_repo, STORE, 15000, "cash", datetime(2026, 10, 19, 1, 0))
        record_sale(local_repo, STORE, 20000, "qris", datetime(2026, 10, 19, 2, 0, 0, 500))
        record_sale(local_repo, STORE, 5000, "cash", datetime(2026, 10, 19, 3, 0), status="pending")

        start, end = reporting_service.resolve_period("today", NOW, TZ)
        lines = reporting_service.export_sales_csv(local_repo, STORE, start, end).splitlines()

        assert lines[0] == "invoice_number,created_at,payment_method,payment_status,total_cents"
        assert lines[1].endswith(",2026-10-19T01:00:00Z,cash,completed,15000")
        assert lines[2].endswith(",2026-10-19T02:00:00.000500Z,qris,completed,20000")
        assert lines[3] == ""
        assert lines[4] == ",,,total,35000"

    def test_read_failure_propagates(self):
        with pytest.raises(StorageError):
            reporting_service.export_sales_csv(FailingReadRepository(), STORE, NOW, NOW)
