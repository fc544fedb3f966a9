"""Integration tests for the HTTP API."""

from collections.abc import AsyncGenerator
from unittest.mock import MagicMock
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sitechat.api.dependencies import (
    get_browser_pool,
    get_db,
    get_scan_coordinator,
    get_scan_service,
)
from sitechat.core.chat.answer_engine import NO_INFORMATION_RESPONSE
from sitechat.core.ingestion.scan_service import ScanCoordinator, ScanService
from sitechat.main import app

OWNER_HEADERS = {"X-User-Id": "user-1"}
SEED = "https://example.com"
LONG_TEXT = "Example Domain is reserved for illustrative examples in documents and tests."


@pytest.fixture
def site_pages(make_page) -> dict:
    """Pages the fake website serves; tests may add to it."""
    return {
        SEED: make_page("Example Domain", LONG_TEXT, ["/pricing", "/faq"]),
        f"{SEED}/pricing": make_page("Pricing", "Our pricing plans start at nine dollars per month."),
        f"{SEED}/faq": make_page("Frequently Asked Questions", "You can cancel your subscription at any time."),
    }


@pytest_asyncio.fixture
async def client(
    session_factory, scan_options, fetcher_factory, site_pages
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """API client backed by the in-memory database and the fake website."""
    coordinator = ScanCoordinator()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    def override_get_scan_service(
        db: AsyncSession = Depends(get_db),  # noqa: B008
    ) -> ScanService:
        return ScanService(
            db,
            coordinator,
            options=scan_options,
            fetcher_factory=fetcher_factory(site_pages),
        )

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_scan_service] = override_get_scan_service
    app.dependency_overrides[get_scan_coordinator] = lambda: coordinator

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    await coordinator.shutdown()


async def scan(client: httpx.AsyncClient, url: str = SEED) -> httpx.Response:
    return await client.post("/api/v1/websites", json={"url": url}, headers=OWNER_HEADERS)


class TestHealthEndpoint:
    """Test health check endpoint functionality."""

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert data["browser"] == "disabled"
        assert data["background_scans"] == 0

    @pytest.mark.asyncio
    async def test_health_reports_idle_browser_pool(self, client):
        app.dependency_overrides[get_browser_pool] = lambda: MagicMock(is_running=False)

        response = await client.get("/health")

        assert response.json()["browser"] == "idle"

    @pytest.mark.asyncio
    async def test_request_id_header(self, client):
        response = await client.get("/health")
        assert "x-request-id" in response.headers

    @pytest.mark.asyncio
    async def test_caller_request_id_is_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "widget-42"})
        assert response.headers["x-request-id"] == "widget-42"


class TestWebsiteEndpoints:
    """Test scanning and website management."""

    @pytest.mark.asyncio
    async def test_scan_website(self, client):
        response = await scan(client)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "completed"
        assert data["url"] == SEED
        assert data["pagesScanned"] == [SEED, f"{SEED}/pricing", f"{SEED}/faq"]
        assert [page["title"] for page in data["content"]] == [
            "Example Domain",
            "Pricing",
            "Frequently Asked Questions",
        ]

    @pytest.mark.asyncio
    async def test_scan_requires_user(self, client):
        response = await client.post("/api/v1/websites", json={"url": SEED})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_scan_rejects_malformed_url(self, client):
        response = await scan(client, "not-a-url")

        assert response.status_code == 422
        list_response = await client.get("/api/v1/websites", headers=OWNER_HEADERS)
        assert list_response.json() == []

    @pytest.mark.asyncio
    async def test_scan_missing_url_is_validation_error(self, client):
        response = await client.post("/api/v1/websites", json={}, headers=OWNER_HEADERS)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_scan_unreachable_site_fails(self, client, site_pages):
        site_pages.clear()
        site_pages[SEED] = httpx.ConnectTimeout("timed out")

        response = await scan(client)

        assert response.status_code == 201
        assert response.json()["status"] == "failed"
        assert response.json()["content"] == []

    @pytest.mark.asyncio
    async def test_rescan_reuses_website(self, client):
        first = (await scan(client)).json()
        second = (await scan(client)).json()

        assert first["id"] == second["id"]
        websites = (await client.get("/api/v1/websites", headers=OWNER_HEADERS)).json()
        assert len(websites) == 1

    @pytest.mark.asyncio
    async def test_get_website_is_owner_scoped(self, client):
        website_id = (await scan(client)).json()["id"]

        mine = await client.get(f"/api/v1/websites/{website_id}", headers=OWNER_HEADERS)
        theirs = await client.get(
            f"/api/v1/websites/{website_id}", headers={"X-User-Id": "user-2"}
        )

        assert mine.status_code == 200
        assert mine.json()["id"] == website_id
        assert theirs.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_website(self, client):
        website_id = (await scan(client)).json()["id"]

        response = await client.delete(f"/api/v1/websites/{website_id}", headers=OWNER_HEADERS)
        assert response.status_code == 204

        response = await client.get(f"/api/v1/websites/{website_id}", headers=OWNER_HEADERS)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_cancel_idle_website(self, client):
        website_id = (await scan(client)).json()["id"]

        response = await client.post(
            f"/api/v1/websites/{website_id}/cancel", headers=OWNER_HEADERS
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"

    @pytest.mark.asyncio
    async def test_unknown_website(self, client):
        response = await client.get(f"/api/v1/websites/{uuid4()}", headers=OWNER_HEADERS)
        assert response.status_code == 404


class TestChatbotEndpoints:
    """Test chatbot management."""

    @pytest.mark.asyncio
    async def test_create_chatbot_from_website(self, client):
        website = (await scan(client)).json()

        response = await client.post(
            "/api/v1/chatbots",
            json={
                "name": "Example Bot",
                "websiteId": website["id"],
                "greetingType": "custom",
                "greetingMessages": ["Hi there!"],
            },
            headers=OWNER_HEADERS,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["knowledgeBase"] == website["content"]
        assert data["greetingMessages"] == ["Hi there!"]
        assert data["isActive"] is False
        assert data["testUrl"] == f"/chat/test/{data['id']}"
        assert data["embedCode"].endswith(f"/embed/{data['id']}.js\"></script>")

    @pytest.mark.asyncio
    async def test_create_chatbot_accepts_snake_case(self, client):
        response = await client.post(
            "/api/v1/chatbots",
            json={"name": "Bot", "greeting_messages": ["Howdy"]},
            headers=OWNER_HEADERS,
        )

        assert response.status_code == 201
        assert response.json()["greetingMessages"] == ["Howdy"]

    @pytest.mark.asyncio
    async def test_create_chatbot_with_unknown_website(self, client):
        response = await client.post(
            "/api/v1/chatbots",
            json={"name": "Bot", "websiteId": str(uuid4())},
            headers=OWNER_HEADERS,
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_and_list_chatbots(self, client):
        chatbot_id = (
            await client.post("/api/v1/chatbots", json={"name": "Bot"}, headers=OWNER_HEADERS)
        ).json()["id"]

        response = await client.patch(
            f"/api/v1/chatbots/{chatbot_id}",
            json={"isActive": True, "name": "Live Bot"},
            headers=OWNER_HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["isActive"] is True

        listed = (await client.get("/api/v1/chatbots", headers=OWNER_HEADERS)).json()
        assert [(c["id"], c["name"]) for c in listed] == [(chatbot_id, "Live Bot")]

    @pytest.mark.asyncio
    async def test_attach_knowledge(self, client):
        website = (await scan(client)).json()
        chatbot_id = (
            await client.post("/api/v1/chatbots", json={"name": "Bot"}, headers=OWNER_HEADERS)
        ).json()["id"]

        response = await client.post(
            f"/api/v1/chatbots/{chatbot_id}/knowledge",
            json={"websiteId": website["id"]},
            headers=OWNER_HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["knowledgeBase"] == website["content"]

    @pytest.mark.asyncio
    async def test_delete_chatbot(self, client):
        chatbot_id = (
            await client.post("/api/v1/chatbots", json={"name": "Bot"}, headers=OWNER_HEADERS)
        ).json()["id"]

        response = await client.delete(f"/api/v1/chatbots/{chatbot_id}", headers=OWNER_HEADERS)
        assert response.status_code == 204

        response = await client.get(f"/api/v1/chatbots/{chatbot_id}", headers=OWNER_HEADERS)
        assert response.status_code == 404


class TestChatEndpoints:
    """Test the public chat endpoints."""

    async def create_chatbot(self, client, **body) -> str:
        response = await client.post(
            "/api/v1/chatbots", json={"name": "Bot", **body}, headers=OWNER_HEADERS
        )
        return response.json()["id"]

    @pytest.mark.asyncio
    async def test_chatbot_info(self, client):
        chatbot_id = await self.create_chatbot(client, greetingMessages=["Hi there!"])

        response = await client.get(f"/api/v1/chat/{chatbot_id}/info")

        assert response.status_code == 200
        assert response.json() == {
            "id": chatbot_id,
            "name": "Bot",
            "greetingMessages": ["Hi there!"],
            "isActive": False,
        }

    @pytest.mark.asyncio
    async def test_greeting(self, client):
        chatbot_id = await self.create_chatbot(client, greetingMessages=["Hi there!"])

        response = await client.post(
            f"/api/v1/chat/{chatbot_id}/message",
            json={"message": "hello", "sessionId": "abc"},
        )

        assert response.status_code == 200
        assert response.json()["response"] == "Hi there!"
        assert "messageId" in response.json()

    @pytest.mark.asyncio
    async def test_answer_from_scanned_site(self, client):
        website = (await scan(client)).json()
        chatbot_id = await self.create_chatbot(client, websiteId=website["id"])

        response = await client.post(
            f"/api/v1/chat/{chatbot_id}/message",
            json={"message": "pricing", "sessionId": "abc"},
        )

        assert response.json()["response"].startswith("Based on information from **Pricing**:")

    @pytest.mark.asyncio
    async def test_empty_knowledge_base(self, client):
        chatbot_id = await self.create_chatbot(client)

        response = await client.post(
            f"/api/v1/chat/{chatbot_id}/message",
            json={"message": "what do you sell", "sessionId": "abc"},
        )

        assert response.json()["response"] == NO_INFORMATION_RESPONSE

    @pytest.mark.asyncio
    async def test_message_requires_session(self, client):
        chatbot_id = await self.create_chatbot(client)

        response = await client.post(
            f"/api/v1/chat/{chatbot_id}/message", json={"message": "hello"}
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_chatbot(self, client):
        response = await client.post(
            f"/api/v1/chat/{uuid4()}/message",
            json={"message": "hello", "sessionId": "abc"},
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_history(self, client):
        chatbot_id = await self.create_chatbot(client, greetingMessages=["Hi there!"])
        await client.post(
            f"/api/v1/chat/{chatbot_id}/message",
            json={"message": "hello", "sessionId": "abc"},
        )

        response = await client.get(
            f"/api/v1/chat/{chatbot_id}/messages", params={"session_id": "abc"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["sessionId"] == "abc"
        assert [(m["role"], m["content"]) for m in data["messages"]] == [
            ("user", "hello"),
            ("assistant", "Hi there!"),
        ]
