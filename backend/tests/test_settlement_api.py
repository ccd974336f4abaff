# Overview: Pytest coverage for the settlement HTTP endpoints.

import pytest

from kasir.errors import StorageError
from kasir.repositories import UnconfiguredRepository, get_repository


def _sell(client, headers, store_id, product_id, quantity=1, method="cash"):
    response = client.post(f"/api/stores/{store_id}/transactions", headers=headers, json={
        "items": [{"product_id": product_id, "quantity": quantity}],
        "payment_method": method,
    })
    assert response.status_code == 201, response.get_json()
    return response.get_json()["transaction"]


class TestPendingSettlement:
    def test_requires_auth(self, client, store):
        response = client.get(f"/api/stores/{store.id}/settlement/pending")
        assert response.status_code == 401

    def test_other_store_is_denied(self, client, store, other_owner, auth_headers):
        response = client.get(f"/api/stores/{store.id}/settlement/pending", headers=auth_headers(other_owner))
        assert response.status_code == 403

    def test_shows_unsettled_sales(self, client, store, cashier, products, auth_headers):
        headers = auth_headers(cashier)
        nasi, teh = products
        _sell(client, headers, store.id, nasi.id, quantity=2)
        _sell(client, headers, store.id, teh.id, method="qris")

        response = client.get(f"/api/stores/{store.id}/settlement/pending", headers=headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data["cash_sales_cents"] == 30000
        assert data["qris_sales_cents"] == 5000
        assert data["total_sales_cents"] == 35000
        assert data["transaction_count"] == 2
        assert data["last_settlement"] is None
        assert data["cutoff"].endswith("Z")


class TestCommitSettlement:
    def test_commit_closes_the_window(self, client, store, cashier, products, auth_headers):
        headers = auth_headers(cashier)
        nasi, _ = products
        _sell(client, headers, store.id, nasi.id)

        response = client.post(f"/api/stores/{store.id}/settlement", headers=headers, json={"actual_cash": 14500})

        assert response.status_code == 201
        record = response.get_json()["settlement"]
        assert record["cash_sales_cents"] == 15000
        assert record["difference_cents"] == -500
        assert record["status"] == "shortage"
        assert record["operator_id"] == str(cashier.id)
        assert record["operator_name"] == "Sari"

        pending = client.get(f"/api/stores/{store.id}/settlement/pending", headers=headers).get_json()
        assert pending["transaction_count"] == 0
        assert pending["cutoff"] == record["settled_at"]
        assert pending["last_settlement"]["id"] == record["id"]

    def test_explicit_operator_and_camel_case_amount(self, client, store, owner, auth_headers):
        response = client.post(f"/api/stores/{store.id}/settlement", headers=auth_headers(owner), json={
            "actualCash": "2000",
            "operator": {"id": "u1", "name": "Alice"},
            "notes": "shift pagi",
        })

        assert response.status_code == 201
        record = response.get_json()["settlement"]
        assert record["operator_id"] == "u1"
        assert record["difference_cents"] == 2000
        assert record["status"] == "overage"
        assert record["notes"] == "shift pagi"

    def test_manager_operator_must_be_complete(self, client, store, owner, auth_headers):
        response = client.post(f"/api/stores/{store.id}/settlement", headers=auth_headers(owner), json={
            "actual_cash": 100, "operator": {"id": "u1"},
        })
        assert response.status_code == 400

    def test_cashier_cannot_file_as_someone_else(self, client, store, cashier, auth_headers):
        response = client.post(f"/api/stores/{store.id}/settlement", headers=auth_headers(cashier), json={
            "actual_cash": 0, "operator": {"id": "u1", "name": "Alice"},
        })

        assert response.status_code == 201
        record = response.get_json()["settlement"]
        assert record["operator_id"] == str(cashier.id)
        assert record["operator_name"] == "Sari"

    @pytest.mark.parametrize("body", [{}, {"actual_cash": -1}, {"actual_cash": "abc"}, {"actual_cash": 10.5}])
    def test_validation_errors(self, client, store, cashier, auth_headers, body):
        headers = auth_headers(cashier)
        response = client.post(f"/api/stores/{store.id}/settlement", headers=headers, json=body)

        assert response.status_code == 400
        assert "error" in response.get_json()
        history = client.get(f"/api/stores/{store.id}/settlements", headers=headers).get_json()
        assert history["settlements"] == []

    def test_unconfigured_backend(self, app, client, store, cashier, auth_headers, monkeypatch):
        monkeypatch.setitem(app.extensions, "kasir.repository", UnconfiguredRepository())
        headers = auth_headers(cashier)

        pending = client.get(f"/api/stores/{store.id}/settlement/pending", headers=headers)
        assert pending.status_code == 200
        assert pending.get_json()["total_sales_cents"] == 0

        response = client.post(f"/api/stores/{store.id}/settlement", headers=headers, json={"actual_cash": 0})
        assert response.status_code == 503

    def test_storage_failure(self, app, client, store, cashier, auth_headers, monkeypatch):
        repo = get_repository()

        def _fail(store_id, record):
            raise StorageError("Failed to save settlement")

        monkeypatch.setattr(repo, "append_settlement", _fail)
        response = client.post(f"/api/stores/{store.id}/settlement", headers=auth_headers(cashier), json={"actual_cash": 0})

        assert response.status_code == 503
        assert "retry" in response.get_json()["error"]


class TestSettlementHistory:
    def test_newest_first_with_limit(self, client, store, owner, auth_headers):
        headers = auth_headers(owner)
        for amount in (100, 200, 300):
            assert client.post(f"/api/stores/{store.id}/settlement", headers=headers, json={"actual_cash": amount}).status_code == 201

        data = client.get(f"/api/stores/{store.id}/settlements?limit=2", headers=headers).get_json()

        assert [s["actual_cash_cents"] for s in data["settlements"]] == [300, 200]
