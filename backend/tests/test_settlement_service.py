# Overview: Pytest coverage for the settlement engine against the in-memory repository.

"""
Settlement Engine Tests

The store runs on Asia/Jakarta time (UTC+7). All instants below are UTC-naive;
local midnight of 2026-10-19 is 2026-10-18 17:00 UTC and local noon is 05:00 UTC.
"""

from datetime import datetime, timedelta

import pytest

from kasir.errors import NotConfiguredError, StorageError, ValidationError
from kasir.repositories import LocalSalesRepository, UnconfiguredRepository
from kasir.services import settlement_service
from kasir.services.settlement_service import Operator


TZ = "Asia/Jakarta"
STORE = 1
DAY_START = datetime(2026, 10, 18, 17, 0)   # 2026-10-19 00:00 local
NOW = datetime(2026, 10, 19, 5, 0)          # 12:00 local
ALICE = {"id": "u1", "name": "Alice"}


def local(hour, minute=0, second=0, microsecond=0):
    """UTC instant for a local time on 2026-10-19."""
    return DAY_START + timedelta(hours=hour, minutes=minute, seconds=second, microseconds=microsecond)


def pending(repo, now=NOW, **kwargs):
    return settlement_service.compute_unsettled_window(repo, STORE, now=now, tz_name=TZ, **kwargs)


def commit(repo, actual_cash, now, operator=ALICE, **kwargs):
    return settlement_service.commit_settlement(repo, STORE, operator, actual_cash, now=now, tz_name=TZ, **kwargs)


class TestUnsettledWindow:
    def test_sums_completed_sales_per_method(self, local_repo, record_sale):
        """Pending sales are excluded; per-method and overall totals add up."""
        record_sale(local_repo, STORE, 15000, "cash", local(8))
        record_sale(local_repo, STORE, 20000, "qris", local(9))
        record_sale(local_repo, STORE, 5000, "cash", local(10), status="pending")

        window = pending(local_repo)

        assert window.cash_sales_cents == 15000
        assert window.transfer_sales_cents == 0
        assert window.qris_sales_cents == 20000
        assert window.total_sales_cents == 35000
        assert window.transaction_count == 2
        assert window.cutoff == DAY_START
        assert window.last_settlement is None

    def test_only_sales_after_todays_settlement(self, local_repo, record_sale):
        record_sale(local_repo, STORE, 10000, "cash", local(9))
        first = commit(local_repo, 10000, now=local(10))
        assert first.cash_sales_cents == 10000

        record_sale(local_repo, STORE, 5000, "cash", local(10, microsecond=1000))

        window = pending(local_repo)
        assert window.cutoff == local(10)
        assert window.cash_sales_cents == 5000
        assert window.transaction_count == 1
        assert window.last_settlement.id == first.id

    def test_sale_at_cutoff_belongs_to_closed_window(self, local_repo, record_sale):
        """A sale stamped exactly at settled_at was counted by that settlement, not the next window."""
        record_sale(local_repo, STORE, 7000, "cash", local(10))
        closed = commit(local_repo, 7000, now=local(10))
        record_sale(local_repo, STORE, 3000, "cash", local(10, microsecond=1))

        window = pending(local_repo)

        assert closed.transaction_count == 1
        assert window.transaction_count == 1
        assert window.cash_sales_cents == 3000

    def test_sale_exactly_at_midnight_is_excluded(self, local_repo, record_sale):
        record_sale(local_repo, STORE, 4000, "cash", DAY_START)
        record_sale(local_repo, STORE, 6000, "cash", DAY_START + timedelta(microseconds=1))

        window = pending(local_repo)
        assert window.cash_sales_cents == 6000

    def test_sales_after_now_are_not_counted(self, local_repo, record_sale):
        record_sale(local_repo, STORE, 1000, "transfer", local(11))
        record_sale(local_repo, STORE, 2000, "transfer", local(13))

        window = pending(local_repo)
        assert window.transfer_sales_cents == 1000

    def test_unknown_method_counts_toward_total_only(self, local_repo, record_sale):
        record_sale(local_repo, STORE, 2500, "voucher", local(9))
        record_sale(local_repo, STORE, 1500, "cash", local(9))

        window = pending(local_repo)
        assert window.cash_sales_cents == 1500
        assert window.total_sales_cents == 4000
        assert window.transaction_count == 2

    def test_other_stores_are_ignored(self, local_repo, record_sale):
        record_sale(local_repo, STORE, 1000, "cash", local(9))
        record_sale(local_repo, 2, 9000, "cash", local(9))

        assert pending(local_repo).cash_sales_cents == 1000

    def test_every_call_rereads_the_store(self, local_repo, record_sale):
        assert pending(local_repo).transaction_count == 0
        record_sale(local_repo, STORE, 1000, "cash", local(9))
        assert pending(local_repo).transaction_count == 1

    def test_store_id_required(self, local_repo):
        with pytest.raises(ValidationError):
            settlement_service.compute_unsettled_window(local_repo, None, now=NOW, tz_name=TZ)
        with pytest.raises(ValidationError):
            settlement_service.compute_unsettled_window(local_repo, "  ", now=NOW, tz_name=TZ)

    def test_to_dict_serializes_cutoff(self, local_repo):
        data = pending(local_repo).to_dict()
        assert data["cutoff"] == "2026-10-18T17:00:00Z"
        assert data["as_of"] == "2026-10-19T05:00:00Z"
        assert data["last_settlement"] is None


class TestDayRollover:
    def _yesterday_setup(self, repo, record_sale):
        record_sale(repo, STORE, 8000, "cash", local(-2))           # 22:00 yesterday
        commit(repo, 8000, now=local(-1))                            # settled 23:00 yesterday
        record_sale(repo, STORE, 3000, "cash", local(-1, 30))        # 23:30 yesterday, unsettled
        record_sale(repo, STORE, 2000, "cash", local(8))             # today

    def test_prior_day_settlement_does_not_suppress_today(self, local_repo, record_sale):
        self._yesterday_setup(local_repo, record_sale)

        window = pending(local_repo)

        assert window.cutoff == DAY_START
        assert window.cash_sales_cents == 2000
        assert window.last_settlement is not None

    def test_carry_forward_rolls_pre_midnight_sales_into_today(self, local_repo, record_sale):
        self._yesterday_setup(local_repo, record_sale)

        window = pending(local_repo, carry_forward=True)

        assert window.cutoff == local(-1)
        assert window.cash_sales_cents == 5000
        assert window.transaction_count == 2

    def test_carry_forward_without_ledger_starts_at_midnight(self, local_repo, record_sale):
        record_sale(local_repo, STORE, 3000, "cash", local(-1))
        window = pending(local_repo, carry_forward=True)
        assert window.cutoff == DAY_START
        assert window.transaction_count == 0


class TestCommitSettlement:
    def test_shortage(self, local_repo, record_sale):
        record_sale(local_repo, STORE, 15000, "cash", local(9))

        record = commit(local_repo, 14500, now=NOW)

        assert record.difference_cents == -500
        assert record.status == "shortage"
        assert record.actual_cash_cents == 14500
        assert record.cash_sales_cents == 15000
        assert record.operator_id == "u1"
        assert record.operator_name == "Alice"
        assert record.settled_at == NOW
        assert record.window_start == DAY_START
        assert record.id is not None
        assert record.created_at is not None

    def test_overage_and_match(self, local_repo, record_sale):
        record_sale(local_repo, STORE, 10000, "cash", local(9))
        over = commit(local_repo, 10200, now=local(10))
        assert over.difference_cents == 200
        assert over.status == "overage"

        record_sale(local_repo, STORE, 5000, "cash", local(11))
        even = commit(local_repo, 5000, now=NOW)
        assert even.difference_cents == 0
        assert even.status == "match"

    def test_non_cash_sales_do_not_affect_difference(self, local_repo, record_sale):
        record_sale(local_repo, STORE, 12000, "transfer", local(9))
        record_sale(local_repo, STORE, 8000, "qris", local(9))

        record = commit(local_repo, 0, now=NOW)

        assert record.total_sales_cents == 20000
        assert record.difference_cents == 0

    def test_empty_commit(self, local_repo):
        record = commit(local_repo, 2500, now=NOW)

        assert record.transaction_count == 0
        assert record.cash_sales_cents == 0
        assert record.transfer_sales_cents == 0
        assert record.qris_sales_cents == 0
        assert record.total_sales_cents == 0
        assert record.difference_cents == 2500

    def test_sequential_commits_never_double_count(self, local_repo, record_sale):
        record_sale(local_repo, STORE, 10000, "cash", local(8))
        first = commit(local_repo, 10000, now=local(9))

        record_sale(local_repo, STORE, 4000, "cash", local(10))
        second = commit(local_repo, 4000, now=local(11))

        assert first.transaction_count == 1
        assert second.transaction_count == 1
        assert second.cash_sales_cents == 4000
        assert second.window_start == first.settled_at
        assert settlement_service.list_settlements(local_repo, STORE) == [second, first]

    def test_windows_partition_the_day(self, local_repo, record_sale):
        """Every completed sale of the day lands in exactly one settlement."""
        sale_times = [local(1), local(2, 30), local(4), local(4), local(6, 15), local(9), local(11, 59)]
        commit_times = [local(3), local(4), local(8), NOW]
        for i, when in enumerate(sale_times):
            record_sale(local_repo, STORE, 1000 * (i + 1), "cash" if i % 2 else "qris", when)
        record_sale(local_repo, STORE, 99999, "cash", local(5), status="failed")

        records = [commit(local_repo, 0, now=when) for when in commit_times]

        assert sum(r.transaction_count for r in records) == len(sale_times)
        assert sum(r.total_sales_cents for r in records) == sum(1000 * (i + 1) for i in range(len(sale_times)))
        for earlier, later in zip(records, records[1:]):
            assert later.window_start == earlier.settled_at
        assert pending(local_repo).transaction_count == 0

    def test_ignores_stale_client_totals(self, local_repo, record_sale):
        """The window shown to the operator is recomputed at commit time."""
        record_sale(local_repo, STORE, 10000, "cash", local(8))
        shown = pending(local_repo, now=local(9))
        record_sale(local_repo, STORE, 2000, "cash", local(10))

        record = commit(local_repo, 12000, now=local(11))

        assert shown.cash_sales_cents == 10000
        assert record.cash_sales_cents == 12000
        assert record.difference_cents == 0

    def test_accepts_digit_string_and_operator_object(self, local_repo):
        record = commit(local_repo, "14500", now=NOW, operator=Operator(id="7", name="Budi"))
        assert record.actual_cash_cents == 14500
        assert record.operator_id == "7"

    def test_notes_are_trimmed(self, local_repo):
        record = commit(local_repo, 0, now=NOW, notes="  laci 1  ")
        assert record.notes == "laci 1"
        assert commit(local_repo, 0, now=NOW + timedelta(minutes=1), notes="   ").notes is None

    @pytest.mark.parametrize("actual_cash", [None, "", -1, "-5", True, 1.5, "12.5", "abc", "1e5", [100], 1_000_000_000])
    def test_rejects_bad_actual_cash_before_writing(self, local_repo, actual_cash):
        with pytest.raises(ValidationError):
            commit(local_repo, actual_cash, now=NOW)
        assert local_repo.list_settlements(STORE) == []

    @pytest.mark.parametrize("operator", [None, {}, {"id": "u1"}, {"name": "Alice"}, {"id": " ", "name": "A"}, "Alice"])
    def test_rejects_bad_operator(self, local_repo, operator):
        with pytest.raises(ValidationError):
            commit(local_repo, 100, now=NOW, operator=operator)
        assert local_repo.list_settlements(STORE) == []

    def test_rejects_missing_store(self, local_repo):
        with pytest.raises(ValidationError):
            settlement_service.commit_settlement(local_repo, None, ALICE, 100, now=NOW, tz_name=TZ)

    def test_rejects_commit_before_last_settlement(self, local_repo):
        commit(local_repo, 0, now=local(11))
        with pytest.raises(ValidationError):
            commit(local_repo, 0, now=local(10))
        assert len(local_repo.list_settlements(STORE)) == 1

    def test_does_not_touch_transactions(self, local_repo, record_sale):
        sale = record_sale(local_repo, STORE, 5000, "cash", local(9))
        commit(local_repo, 5000, now=NOW)
        assert local_repo.get_transaction(STORE, sale.id) == sale


class TestBackendFailures:
    def test_unconfigured_reads_degrade_and_commit_fails(self):
        repo = UnconfiguredRepository()

        window = pending(repo)
        assert window.total_sales_cents == 0
        assert window.transaction_count == 0
        assert window.last_settlement is None

        with pytest.raises(NotConfiguredError):
            commit(repo, 1000, now=NOW)

    def test_failed_append_leaves_ledger_unchanged(self, tmp_path, record_sale):
        repo = LocalSalesRepository(path=str(tmp_path / "store.json"))
        record_sale(repo, STORE, 5000, "cash", local(9))
        # Point persistence at a directory that does not exist
        repo.path = str(tmp_path / "missing" / "store.json")

        with pytest.raises(StorageError):
            commit(repo, 5000, now=NOW)

        assert repo.get_last_settlement(STORE) is None
        assert pending(repo).cash_sales_cents == 5000
