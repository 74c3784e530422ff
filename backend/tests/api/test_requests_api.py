"""
API Tests for applications, acceptance and escrow
"""
import pytest
from httpx import AsyncClient

API = "/api/v1"


async def fund(client: AsyncClient, headers: dict, amount: int) -> None:
    response = await client.post(f"{API}/wallet/deposit", json={"amount": amount}, headers=headers)
    assert response.status_code == 201, response.text


async def post_bounty(client: AsyncClient, headers: dict, **fields) -> dict:
    payload = {
        "title": "Assemble a bookshelf",
        "description": "IKEA Billy, tools provided",
        "amount": 2500,
        "work_type": "in_person",
        **fields,
    }
    response = await client.post(f"{API}/bounties", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def apply(client: AsyncClient, bounty_id: str, headers: dict, message: str = "I can help") -> dict:
    response = await client.post(
        f"{API}/bounties/{bounty_id}/requests", json={"message": message}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


async def balance(client: AsyncClient, headers: dict) -> int:
    response = await client.get(f"{API}/wallet", headers=headers)
    return response.json()["balance"]


class TestApply:

    @pytest.mark.asyncio
    async def test_apply(self, client: AsyncClient, auth_headers, hunter_user, hunter_headers):
        bounty = await post_bounty(client, auth_headers)

        request = await apply(client, bounty["id"], hunter_headers, message="  Done this before  ")

        assert request["status"] == "pending"
        assert request["hunter_id"] == hunter_user.id
        assert request["message"] == "Done this before"

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, client: AsyncClient, auth_headers, hunter_headers):
        bounty = await post_bounty(client, auth_headers)
        await apply(client, bounty["id"], hunter_headers)

        response = await client.post(f"{API}/bounties/{bounty['id']}/requests", json={}, headers=hunter_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_REQUEST"

    @pytest.mark.asyncio
    async def test_cannot_apply_to_own_bounty(self, client: AsyncClient, auth_headers):
        bounty = await post_bounty(client, auth_headers)

        response = await client.post(f"{API}/bounties/{bounty['id']}/requests", json={}, headers=auth_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_list_requests_owner_only(self, client: AsyncClient, auth_headers, hunter_headers):
        bounty = await post_bounty(client, auth_headers)
        await apply(client, bounty["id"], hunter_headers)

        response = await client.get(f"{API}/bounties/{bounty['id']}/requests", headers=auth_headers)
        assert response.json()["total"] == 1

        response = await client.get(f"{API}/bounties/{bounty['id']}/requests", headers=hunter_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_my_requests(self, client: AsyncClient, auth_headers, hunter_headers):
        first = await post_bounty(client, auth_headers)
        second = await post_bounty(client, auth_headers)
        await apply(client, first["id"], hunter_headers)
        await apply(client, second["id"], hunter_headers)

        response = await client.get(f"{API}/requests/mine", params={"status": "pending"}, headers=hunter_headers)

        assert response.json()["total"] == 2

    @pytest.mark.asyncio
    async def test_withdraw_pending(self, client: AsyncClient, auth_headers, hunter_headers):
        bounty = await post_bounty(client, auth_headers)
        request = await apply(client, bounty["id"], hunter_headers)

        response = await client.delete(f"{API}/requests/{request['id']}", headers=hunter_headers)
        assert response.status_code == 204

        response = await client.get(f"{API}/requests/mine", headers=hunter_headers)
        assert response.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_reject(self, client: AsyncClient, auth_headers, hunter_headers):
        bounty = await post_bounty(client, auth_headers)
        request = await apply(client, bounty["id"], hunter_headers)

        response = await client.post(f"{API}/requests/{request['id']}/reject", headers=auth_headers)
        assert response.json()["status"] == "rejected"

        # Only pending requests can be withdrawn
        response = await client.delete(f"{API}/requests/{request['id']}", headers=hunter_headers)
        assert response.status_code == 409


class TestAcceptAndEscrow:
    """Accepting holds escrow; completing releases it; archiving refunds it"""

    @pytest.mark.asyncio
    async def test_accept_holds_escrow(
        self, client: AsyncClient, make_user, make_headers, auth_headers, hunter_user, hunter_headers
    ):
        other_headers = make_headers(await make_user())
        await fund(client, auth_headers, 10000)
        bounty = await post_bounty(client, auth_headers, amount=2500)
        chosen = await apply(client, bounty["id"], hunter_headers)
        other = await apply(client, bounty["id"], other_headers)

        response = await client.post(f"{API}/requests/{chosen['id']}/accept", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["request"]["status"] == "accepted"
        assert data["bounty"]["status"] == "in_progress"
        assert data["bounty"]["accepted_by"] == hunter_user.id
        assert data["escrow_transaction_id"] is not None
        assert data["rejected_request_ids"] == [other["id"]]

        assert await balance(client, auth_headers) == 7500

        escrow = await client.get(f"{API}/bounties/{bounty['id']}/escrow", headers=auth_headers)
        assert escrow.json() == {"bounty_id": bounty["id"], "status": "held", "amount": 2500, "amount_usd": 25.0}

    @pytest.mark.asyncio
    async def test_reward_locked_after_accept(self, client: AsyncClient, auth_headers, hunter_headers):
        await fund(client, auth_headers, 10000)
        bounty = await post_bounty(client, auth_headers, amount=1000)
        request = await apply(client, bounty["id"], hunter_headers)
        await client.post(f"{API}/requests/{request['id']}/accept", headers=auth_headers)
        url = f"{API}/bounties/{bounty['id']}"

        for patch in ({"amount": 5000}, {"is_for_honor": True}):
            response = await client.patch(url, json=patch, headers=auth_headers)
            assert response.status_code == 409
            assert response.json()["error"]["code"] == "BOUNTY_LOCKED"
            assert response.json()["error"]["message"] == "Cannot change reward of bounty with status: in_progress"

        # Other fields stay editable, and resending the same amount is fine
        response = await client.patch(url, json={"title": "Assemble two bookshelves", "amount": 1000}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["amount"] == 1000

        await client.post(f"{url}/complete", headers=hunter_headers)
        assert await balance(client, hunter_headers) == 1000

        escrow = await client.get(f"{url}/escrow", headers=auth_headers)
        assert escrow.json()["status"] == "released"
        assert escrow.json()["amount"] == 1000

    @pytest.mark.asyncio
    async def test_accept_without_funds_rolls_back(self, client: AsyncClient, auth_headers, hunter_headers):
        bounty = await post_bounty(client, auth_headers, amount=2500)
        request = await apply(client, bounty["id"], hunter_headers)

        response = await client.post(f"{API}/requests/{request['id']}/accept", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INSUFFICIENT_FUNDS"

        bounty_now = await client.get(f"{API}/bounties/{bounty['id']}")
        assert bounty_now.json()["status"] == "open"
        assert bounty_now.json()["accepted_by"] is None

    @pytest.mark.asyncio
    async def test_honor_bounty_needs_no_escrow(self, client: AsyncClient, auth_headers, hunter_headers):
        bounty = await post_bounty(client, auth_headers, amount=0, is_for_honor=True)
        request = await apply(client, bounty["id"], hunter_headers)

        response = await client.post(f"{API}/requests/{request['id']}/accept", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["escrow_transaction_id"] is None

        escrow = await client.get(f"{API}/bounties/{bounty['id']}/escrow", headers=auth_headers)
        assert escrow.json()["status"] == "none"

    @pytest.mark.asyncio
    async def test_hunter_cannot_accept(self, client: AsyncClient, auth_headers, hunter_headers):
        bounty = await post_bounty(client, auth_headers)
        request = await apply(client, bounty["id"], hunter_headers)

        response = await client.post(f"{API}/requests/{request['id']}/accept", headers=hunter_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_apply_after_accept_rejected(
        self, client: AsyncClient, make_user, make_headers, auth_headers, hunter_headers
    ):
        await fund(client, auth_headers, 5000)
        bounty = await post_bounty(client, auth_headers)
        request = await apply(client, bounty["id"], hunter_headers)
        await client.post(f"{API}/requests/{request['id']}/accept", headers=auth_headers)

        late_headers = make_headers(await make_user())
        response = await client.post(f"{API}/bounties/{bounty['id']}/requests", json={}, headers=late_headers)

        assert response.status_code == 409
        assert response.json()["error"]["message"] == "Cannot apply to bounty with status: in_progress"

    @pytest.mark.asyncio
    async def test_complete_releases_to_hunter(self, client: AsyncClient, auth_headers, hunter_headers):
        await fund(client, auth_headers, 10000)
        bounty = await post_bounty(client, auth_headers, amount=2500)
        request = await apply(client, bounty["id"], hunter_headers)
        await client.post(f"{API}/requests/{request['id']}/accept", headers=auth_headers)

        response = await client.post(f"{API}/bounties/{bounty['id']}/complete", headers=hunter_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert await balance(client, hunter_headers) == 2500
        assert await balance(client, auth_headers) == 7500

        escrow = await client.get(f"{API}/bounties/{bounty['id']}/escrow", headers=auth_headers)
        assert escrow.json()["status"] == "released"

        # Completed is terminal
        response = await client.post(f"{API}/bounties/{bounty['id']}/archive", headers=auth_headers)
        assert response.status_code == 409
        assert response.json()["error"]["message"] == "Cannot archive bounty with status: completed"

    @pytest.mark.asyncio
    async def test_stranger_cannot_complete(
        self, client: AsyncClient, make_user, make_headers, auth_headers, hunter_headers
    ):
        await fund(client, auth_headers, 5000)
        bounty = await post_bounty(client, auth_headers)
        request = await apply(client, bounty["id"], hunter_headers)
        await client.post(f"{API}/requests/{request['id']}/accept", headers=auth_headers)

        stranger = make_headers(await make_user())
        response = await client.post(f"{API}/bounties/{bounty['id']}/complete", headers=stranger)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_archive_in_progress_refunds(self, client: AsyncClient, auth_headers, hunter_headers):
        await fund(client, auth_headers, 10000)
        bounty = await post_bounty(client, auth_headers, amount=2500)
        request = await apply(client, bounty["id"], hunter_headers)
        await client.post(f"{API}/requests/{request['id']}/accept", headers=auth_headers)

        response = await client.post(f"{API}/bounties/{bounty['id']}/archive", headers=auth_headers)

        assert response.status_code == 200
        assert await balance(client, auth_headers) == 10000

        escrow = await client.get(f"{API}/bounties/{bounty['id']}/escrow", headers=auth_headers)
        assert escrow.json()["status"] == "refunded"

        transactions = await client.get(f"{API}/wallet/transactions", headers=auth_headers)
        types = [t["transaction_type"] for t in transactions.json()["transactions"]]
        assert sorted(types) == ["deposit", "escrow", "refund"]
