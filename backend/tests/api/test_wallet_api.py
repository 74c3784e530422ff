"""
API Tests for the wallet
"""
import pytest
from httpx import AsyncClient

WALLET = "/api/v1/wallet"


@pytest.mark.asyncio
async def test_wallet_created_on_first_access(client: AsyncClient, test_user, auth_headers):
    response = await client.get(WALLET, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == test_user.id
    assert data["balance"] == 0
    assert data["currency"] == "usd"


@pytest.mark.asyncio
async def test_wallet_requires_auth(client: AsyncClient):
    response = await client.get(WALLET)
    assert response.status_code in (401, 403)


class TestDeposit:

    @pytest.mark.asyncio
    async def test_deposit(self, client: AsyncClient, auth_headers):
        response = await client.post(f"{WALLET}/deposit", json={"amount": 5000}, headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["transaction_type"] == "deposit"
        assert data["status"] == "completed"
        assert data["amount"] == 5000
        assert data["amount_usd"] == 50.0
        assert data["balance_after"] == 5000

        wallet = (await client.get(WALLET, headers=auth_headers)).json()
        assert wallet["balance"] == 5000
        assert wallet["total_deposited"] == 5000

    @pytest.mark.asyncio
    async def test_idempotent_deposit(self, client: AsyncClient, auth_headers):
        payload = {"amount": 2000, "idempotency_key": "dep-123"}

        first = await client.post(f"{WALLET}/deposit", json=payload, headers=auth_headers)
        second = await client.post(f"{WALLET}/deposit", json=payload, headers=auth_headers)

        assert first.json()["id"] == second.json()["id"]
        assert (await client.get(WALLET, headers=auth_headers)).json()["balance"] == 2000

    @pytest.mark.asyncio
    async def test_idempotency_key_of_another_user(self, client: AsyncClient, auth_headers, hunter_headers):
        payload = {"amount": 2000, "idempotency_key": "shared-key"}
        await client.post(f"{WALLET}/deposit", json=payload, headers=auth_headers)

        response = await client.post(f"{WALLET}/deposit", json=payload, headers=hunter_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "IDEMPOTENCY_CONFLICT"

    @pytest.mark.asyncio
    async def test_deposit_over_limit(self, client: AsyncClient, auth_headers):
        response = await client.post(f"{WALLET}/deposit", json={"amount": 1_000_001}, headers=auth_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_non_positive_deposit(self, client: AsyncClient, auth_headers):
        response = await client.post(f"{WALLET}/deposit", json={"amount": 0}, headers=auth_headers)

        assert response.status_code == 422


class TestWithdraw:

    @pytest.mark.asyncio
    async def test_withdraw(self, client: AsyncClient, auth_headers):
        await client.post(f"{WALLET}/deposit", json={"amount": 5000}, headers=auth_headers)

        response = await client.post(
            f"{WALLET}/withdraw",
            json={"amount": 1500, "destination": "acct_000123456789"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["amount"] == -1500
        assert data["balance_after"] == 3500
        assert data["description"] == "Withdrawal to account ending in 6789"

    @pytest.mark.asyncio
    async def test_insufficient_funds(self, client: AsyncClient, auth_headers):
        await client.post(f"{WALLET}/deposit", json={"amount": 1000}, headers=auth_headers)

        response = await client.post(
            f"{WALLET}/withdraw", json={"amount": 5000, "destination": "acct_1234"}, headers=auth_headers
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "INSUFFICIENT_FUNDS"
        assert error["details"] == {"required": 5000, "available": 1000}

    @pytest.mark.asyncio
    async def test_below_minimum(self, client: AsyncClient, auth_headers):
        await client.post(f"{WALLET}/deposit", json={"amount": 1000}, headers=auth_headers)

        response = await client.post(
            f"{WALLET}/withdraw", json={"amount": 50, "destination": "acct_1234"}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"field": "amount"}


@pytest.mark.asyncio
async def test_transaction_history(client: AsyncClient, auth_headers):
    await client.post(f"{WALLET}/deposit", json={"amount": 4000}, headers=auth_headers)
    await client.post(f"{WALLET}/deposit", json={"amount": 1000}, headers=auth_headers)
    await client.post(f"{WALLET}/withdraw", json={"amount": 500, "destination": "acct_1234"}, headers=auth_headers)

    response = await client.get(f"{WALLET}/transactions", headers=auth_headers)
    data = response.json()
    assert data["total"] == 3
    assert data["current_balance"] == 4500

    response = await client.get(f"{WALLET}/transactions", params={"type": "deposit"}, headers=auth_headers)
    data = response.json()
    assert data["total"] == 2
    assert all(t["transaction_type"] == "deposit" for t in data["transactions"])


@pytest.mark.asyncio
async def test_wallet_responses_not_cached(client: AsyncClient, auth_headers):
    response = await client.get(WALLET, headers=auth_headers)

    assert response.headers["Cache-Control"] == "no-store"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
