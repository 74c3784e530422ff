"""
API Tests for conversations and messages
"""
import pytest
from httpx import AsyncClient

CONVERSATIONS = "/api/v1/conversations"


async def start(client: AsyncClient, headers: dict, *participant_ids: str, **fields) -> dict:
    response = await client.post(
        CONVERSATIONS, json={"participant_ids": list(participant_ids), **fields}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


async def send(client: AsyncClient, conversation_id: str, headers: dict, content: str) -> dict:
    response = await client.post(
        f"{CONVERSATIONS}/{conversation_id}/messages", json={"content": content}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


async def view_for(client: AsyncClient, headers: dict, conversation_id: str) -> dict:
    response = await client.get(CONVERSATIONS, headers=headers)
    return next(c for c in response.json()["conversations"] if c["id"] == conversation_id)


class TestConversations:

    @pytest.mark.asyncio
    async def test_direct_conversation_reused(
        self, client: AsyncClient, test_user, hunter_user, auth_headers, hunter_headers
    ):
        first = await start(client, auth_headers, hunter_user.id)
        assert first["existing"] is False
        assert first["is_group"] is False
        assert first["name"] == hunter_user.display_name
        assert sorted(first["participant_ids"]) == sorted([test_user.id, hunter_user.id])

        # Either side starting the same 1:1 thread gets the existing one back
        second = await start(client, hunter_headers, test_user.id)
        assert second["id"] == first["id"]
        assert second["existing"] is True
        assert second["name"] == test_user.display_name

    @pytest.mark.asyncio
    async def test_group_conversation(self, client: AsyncClient, make_user, auth_headers, hunter_user):
        third = await make_user()

        conversation = await start(client, auth_headers, hunter_user.id, third.id, name="Move crew")

        assert conversation["is_group"] is True
        assert conversation["name"] == "Move crew"
        assert len(conversation["participant_ids"]) == 3

    @pytest.mark.asyncio
    async def test_unknown_participant(self, client: AsyncClient, auth_headers):
        response = await client.post(
            CONVERSATIONS,
            json={"participant_ids": ["00000000-0000-0000-0000-000000000000"]},
            headers=auth_headers,
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_outsider_forbidden(self, client: AsyncClient, make_user, make_headers, auth_headers, hunter_user):
        conversation = await start(client, auth_headers, hunter_user.id)
        outsider = make_headers(await make_user())

        response = await client.get(f"{CONVERSATIONS}/{conversation['id']}/messages", headers=outsider)
        assert response.status_code == 403

        response = await client.post(
            f"{CONVERSATIONS}/{conversation['id']}/messages", json={"content": "hi"}, headers=outsider
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_conversation(self, client: AsyncClient, auth_headers):
        response = await client.get(
            f"{CONVERSATIONS}/00000000-0000-0000-0000-000000000000/messages", headers=auth_headers
        )

        assert response.status_code == 404


class TestMessages:

    @pytest.mark.asyncio
    async def test_send_updates_preview_and_unread(
        self, client: AsyncClient, hunter_user, auth_headers, hunter_headers
    ):
        conversation = await start(client, auth_headers, hunter_user.id)

        message = await send(client, conversation["id"], auth_headers, "  Are you free Saturday?  ")
        assert message["content"] == "Are you free Saturday?"

        mine = await view_for(client, auth_headers, conversation["id"])
        theirs = await view_for(client, hunter_headers, conversation["id"])
        assert mine["last_message"] == "Are you free Saturday?"
        assert mine["unread_count"] == 0
        assert theirs["unread_count"] == 1

        response = await client.post(f"{CONVERSATIONS}/{conversation['id']}/read", headers=hunter_headers)
        assert response.status_code == 204

        theirs = await view_for(client, hunter_headers, conversation["id"])
        assert theirs["unread_count"] == 0

    @pytest.mark.asyncio
    async def test_blank_message_rejected(self, client: AsyncClient, hunter_user, auth_headers):
        conversation = await start(client, auth_headers, hunter_user.id)

        response = await client.post(
            f"{CONVERSATIONS}/{conversation['id']}/messages", json={"content": "   "}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Message cannot be empty"

        response = await client.post(
            f"{CONVERSATIONS}/{conversation['id']}/messages", json={"content": ""}, headers=auth_headers
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_message_pages(self, client: AsyncClient, hunter_user, auth_headers, hunter_headers):
        conversation = await start(client, auth_headers, hunter_user.id)
        for text in ("one", "two", "three"):
            await send(client, conversation["id"], auth_headers, text)

        response = await client.get(
            f"{CONVERSATIONS}/{conversation['id']}/messages", params={"limit": 2}, headers=hunter_headers
        )

        data = response.json()
        assert data["has_more"] is True
        assert [m["content"] for m in data["messages"]] == ["two", "three"]

        response = await client.get(f"{CONVERSATIONS}/{conversation['id']}/messages", headers=hunter_headers)
        assert response.json()["has_more"] is False
        assert len(response.json()["messages"]) == 3

    @pytest.mark.asyncio
    async def test_typing_seen_by_other_side(self, client: AsyncClient, hunter_user, auth_headers, hunter_headers):
        conversation = await start(client, auth_headers, hunter_user.id)

        response = await client.post(
            f"{CONVERSATIONS}/{conversation['id']}/typing", json={"is_typing": True}, headers=hunter_headers
        )
        assert response.status_code == 204

        assert (await view_for(client, auth_headers, conversation["id"]))["is_typing"] is True
        assert (await view_for(client, hunter_headers, conversation["id"]))["is_typing"] is False

        # Sending a message clears the sender's typing flag
        await send(client, conversation["id"], hunter_headers, "On my way")
        assert (await view_for(client, auth_headers, conversation["id"]))["is_typing"] is False
