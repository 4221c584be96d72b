"""
Tests for GET /balance, POST /reset and GET /health.

These tests verify:
  - Balances come back as plain text
  - An unknown account reads as "0" with a 404
  - A missing account_id is a 400 that names the parameter
  - Reset removes every account
  - Wrong HTTP methods answer 405
"""

from unittest.mock import AsyncMock, patch

from ledger.exceptions import StoreError


class TestBalance:

    async def test_balance_of_existing_account(self, client):
        await client.post(
            "/event", json={"type": "deposit", "destination": "alice", "amount": 100}
        )

        response = await client.get("/balance", params={"account_id": "alice"})
        assert response.status_code == 200
        assert response.text == "100"
        assert response.headers["content-type"].startswith("text/plain")

    async def test_balance_of_missing_account(self, client):
        response = await client.get("/balance", params={"account_id": "1234"})
        assert response.status_code == 404
        assert response.text == "0"

    async def test_missing_account_id(self, client):
        response = await client.get("/balance")
        assert response.status_code == 400
        assert "account_id" in response.json()["detail"]

    async def test_empty_account_id(self, client):
        response = await client.get("/balance", params={"account_id": ""})
        assert response.status_code == 400

    async def test_wrong_method(self, client):
        response = await client.post("/balance", params={"account_id": "alice"})
        assert response.status_code == 405


class TestReset:

    async def test_reset_on_empty_ledger(self, client):
        response = await client.post("/reset")
        assert response.status_code == 200
        assert response.text == "OK"

    async def test_reset_zeroes_every_account(self, client):
        for account_id, amount in (("alice", 100), ("bob", 20), ("carol", 3)):
            await client.post(
                "/event",
                json={"type": "deposit", "destination": account_id, "amount": amount},
            )

        response = await client.post("/reset")
        assert response.status_code == 200

        for account_id in ("alice", "bob", "carol"):
            balance = await client.get("/balance", params={"account_id": account_id})
            assert balance.status_code == 404
            assert balance.text == "0"

    async def test_deposit_after_reset_starts_from_zero(self, client):
        await client.post(
            "/event", json={"type": "deposit", "destination": "alice", "amount": 100}
        )
        await client.post("/reset")

        response = await client.post(
            "/event", json={"type": "deposit", "destination": "alice", "amount": 5}
        )
        assert response.json() == {"destination": {"id": "alice", "balance": 5}}

    async def test_store_failure_returns_500(self, client, store):
        with patch.object(store, "delete_all", AsyncMock(side_effect=StoreError("boom"))):
            response = await client.post("/reset")

        assert response.status_code == 500
        assert "boom" not in response.text

    async def test_wrong_method(self, client):
        response = await client.get("/reset")
        assert response.status_code == 405


class TestHealth:

    async def test_health_check(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
