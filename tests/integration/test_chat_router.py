"""Integration tests for chat lifecycle endpoints."""

from httpx import AsyncClient

from supportchat.services.token_service import TokenService
from tests.conftest import make_chat_headers, seed_chat, seed_chat_config


class TestCreateChat:
    async def test_create_returns_token_for_new_chat(
        self, async_client: AsyncClient
    ) -> None:
        await seed_chat_config()

        resp = await async_client.post(
            "/api/v1/chats",
            json={"name": "Order question", "company_id": "acme", "user_id": "user-9"},
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == 201
        chat = body["data"]["chat"]
        assert chat["name"] == "Order question"
        assert chat["company_id"] == "acme"
        assert chat["user_id"] == "user-9"

        payload = TokenService().decode_chat_access_token(body["data"]["access_token"])
        assert payload.chat_id == chat["id"]
        assert payload.sub == "user-9"

    async def test_anonymous_user_gets_generated_id(
        self, async_client: AsyncClient
    ) -> None:
        await seed_chat_config()

        resp = await async_client.post(
            "/api/v1/chats", json={"name": "Hi", "company_id": "acme"}
        )

        assert resp.status_code == 201
        assert resp.json()["data"]["chat"]["user_id"]

    async def test_unknown_company(self, async_client: AsyncClient) -> None:
        resp = await async_client.post(
            "/api/v1/chats", json={"name": "Hi", "company_id": "nobody"}
        )

        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_COMPANY"

    async def test_validation_error(self, async_client: AsyncClient) -> None:
        resp = await async_client.post("/api/v1/chats", json={"name": ""})

        assert resp.status_code == 422
        assert resp.json()["code"] == "INVALID_REQUEST"


class TestChatAccess:
    async def test_get_chat_with_messages(self, async_client: AsyncClient) -> None:
        await seed_chat_config()
        await seed_chat()

        resp = await async_client.get(
            "/api/v1/chats/chat-1", headers=make_chat_headers("chat-1")
        )

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["chat"]["id"] == "chat-1"
        assert data["messages"] == []

    async def test_token_for_other_chat_is_forbidden(
        self, async_client: AsyncClient
    ) -> None:
        await seed_chat()
        await seed_chat(chat_id="chat-2")

        resp = await async_client.get(
            "/api/v1/chats/chat-2", headers=make_chat_headers("chat-1")
        )

        assert resp.status_code == 403

    async def test_missing_chat(self, async_client: AsyncClient) -> None:
        resp = await async_client.get(
            "/api/v1/chats/ghost", headers=make_chat_headers("ghost")
        )

        assert resp.status_code == 404
        assert resp.json()["code"] == "NOT_FOUND"

    async def test_rename(self, async_client: AsyncClient) -> None:
        await seed_chat()
        headers = make_chat_headers("chat-1")

        resp = await async_client.put(
            "/api/v1/chats/chat-1", json={"name": "Refund"}, headers=headers
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["name"] == "Refund"

        resp = await async_client.get("/api/v1/chats/chat-1", headers=headers)
        assert resp.json()["data"]["chat"]["name"] == "Refund"

    async def test_delete(self, async_client: AsyncClient) -> None:
        await seed_chat()
        headers = make_chat_headers("chat-1")

        resp = await async_client.delete("/api/v1/chats/chat-1", headers=headers)
        assert resp.status_code == 200

        resp = await async_client.get("/api/v1/chats/chat-1", headers=headers)
        assert resp.status_code == 404


class TestListChats:
    async def test_user_chats(self, async_client: AsyncClient) -> None:
        await seed_chat(chat_id="chat-1")
        await seed_chat(chat_id="chat-2")
        await seed_chat(chat_id="chat-3", user_id="user-2")

        resp = await async_client.get(
            "/api/v1/chats/user/user-1", headers=make_chat_headers("chat-1")
        )

        assert resp.status_code == 200
        ids = {c["id"] for c in resp.json()["data"]["chats"]}
        assert ids == {"chat-1", "chat-2"}

    async def test_other_users_chats_are_forbidden(
        self, async_client: AsyncClient
    ) -> None:
        resp = await async_client.get(
            "/api/v1/chats/user/user-2", headers=make_chat_headers("chat-1")
        )

        assert resp.status_code == 403

    async def test_company_chats_are_public(self, async_client: AsyncClient) -> None:
        await seed_chat(chat_id="chat-1")
        await seed_chat(chat_id="chat-2", company_id="globex")

        resp = await async_client.get("/api/v1/chats/company/acme")

        assert resp.status_code == 200
        assert [c["id"] for c in resp.json()["data"]["chats"]] == ["chat-1"]
