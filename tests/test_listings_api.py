"""Tests for the /api/listings endpoints."""

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from listing_tracker.core.deps import get_db
from listing_tracker.main import app
from listing_tracker.services import listing as listing_svc

ITEM_URL = "https://www.facebook.com/marketplace/item/123/"


async def _create(client: AsyncClient, link: str = ITEM_URL, **extra) -> dict:
    response = await client.post("/api/listings", json={"link": link, **extra})
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def failing_db():
    """Session whose every query fails like an unreachable database."""
    db = AsyncMock()
    db.execute = AsyncMock(
        side_effect=OperationalError("SELECT", {}, Exception("connection refused"))
    )

    async def _get_db() -> AsyncGenerator[AsyncMock, None]:
        yield db

    app.dependency_overrides[get_db] = _get_db
    yield db
    app.dependency_overrides.clear()


class TestCollection:
    @pytest.mark.asyncio
    async def test_empty_list(self, client):
        response = await client.get("/api/listings")
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": [], "count": 0}

    @pytest.mark.asyncio
    async def test_create_returns_new_listing(self, client):
        response = await client.post("/api/listings", json={"link": ITEM_URL, "product": "Bike"})
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert uuid.UUID(data["id"]).version == 4
        assert data["link"] == ITEM_URL
        assert data["product"] == "Bike"
        assert data["status"] == 0
        assert data["created_at"] and data["updated_at"]

    @pytest.mark.asyncio
    async def test_list_newest_first_with_count(self, client):
        first = await _create(client, "https://www.facebook.com/marketplace/item/1/")
        second = await _create(client, "https://www.facebook.com/marketplace/item/2/")

        body = (await client.get("/api/listings")).json()
        assert body["count"] == 2
        assert [item["id"] for item in body["data"]] == [second["id"], first["id"]]

        limited = (await client.get("/api/listings", params={"limit": 1})).json()
        assert [item["id"] for item in limited["data"]] == [second["id"]]

    @pytest.mark.asyncio
    async def test_duplicate_link_is_conflict(self, client):
        await _create(client)
        response = await client.post("/api/listings", json={"link": ITEM_URL})
        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "Listing already exists"
        assert ITEM_URL in body["details"]

    @pytest.mark.asyncio
    async def test_non_facebook_link_rejected(self, client):
        response = await client.post(
            "/api/listings", json={"link": "https://google.com/marketplace/item/1/"}
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["details"][0]["field"] == "link"

    @pytest.mark.asyncio
    async def test_missing_link_rejected(self, client):
        response = await client.post("/api/listings", json={"product": "Bike"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_malformed_json_rejected(self, client):
        response = await client.post(
            "/api/listings",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    @pytest.mark.asyncio
    async def test_invalid_limit_rejected(self, client):
        response = await client.get("/api/listings", params={"limit": 0})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_today_stats(self, client):
        await _create(client, "https://www.facebook.com/marketplace/item/1/")
        await _create(client, "https://www.facebook.com/marketplace/item/2/")

        response = await client.get("/api/listings/stats/today")
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {"date": datetime.now(timezone.utc).date().isoformat(), "count": 2},
        }


class TestById:
    @pytest.mark.asyncio
    async def test_get_returns_created_record(self, client):
        created = await _create(client)
        response = await client.get(f"/api/listings/{created['id']}")
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": created}

    @pytest.mark.asyncio
    async def test_get_invalid_id(self, client):
        response = await client.get("/api/listings/not-a-uuid")
        assert response.status_code == 400
        assert response.json() == {
            "error": "Invalid listing ID",
            "details": "ID must be a valid UUID format",
        }

    @pytest.mark.asyncio
    async def test_get_missing(self, client):
        response = await client.get(f"/api/listings/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json() == {"error": "Listing not found"}

    @pytest.mark.asyncio
    async def test_put_status_string_and_updated_at(self, client):
        created = await _create(client)

        response = await client.put(f"/api/listings/{created['id']}", json={"status": "1"})
        assert response.status_code == 200
        updated = response.json()["data"]
        assert updated["status"] == 1
        assert updated["link"] == created["link"]

        fetched = (await client.get(f"/api/listings/{created['id']}")).json()["data"]
        assert fetched["status"] == 1
        assert datetime.fromisoformat(fetched["updated_at"]) > datetime.fromisoformat(
            created["updated_at"]
        )

    @pytest.mark.asyncio
    async def test_put_empty_body_only_stamps(self, client):
        created = await _create(client, product="Lamp")
        response = await client.put(f"/api/listings/{created['id']}", json={})
        assert response.status_code == 200
        data = response.json()["data"]
        assert (data["link"], data["product"], data["status"]) == (ITEM_URL, "Lamp", 0)

    @pytest.mark.asyncio
    async def test_put_non_numeric_status_rejected(self, client):
        created = await _create(client)
        response = await client.put(f"/api/listings/{created['id']}", json={"status": "abc"})
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "status"

        fetched = (await client.get(f"/api/listings/{created['id']}")).json()["data"]
        assert fetched["status"] == 0

    @pytest.mark.asyncio
    async def test_put_non_numeric_status_never_reaches_store(self, failing_db):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
            response = await ac.put(f"/api/listings/{uuid.uuid4()}", json={"status": "abc"})
        assert response.status_code == 400
        failing_db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_put_null_status_rejected(self, client):
        created = await _create(client)
        response = await client.put(f"/api/listings/{created['id']}", json={"status": None})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_put_invalid_link_rejected(self, client):
        created = await _create(client)
        response = await client.put(
            f"/api/listings/{created['id']}", json={"link": "https://example.com/item"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_put_invalid_id(self, client):
        response = await client.put("/api/listings/123", json={"status": 1})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid listing ID"

    @pytest.mark.asyncio
    async def test_put_missing(self, client):
        response = await client.put(f"/api/listings/{uuid.uuid4()}", json={"status": 1})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_put_link_collision_is_conflict(self, client):
        await _create(client)
        other = await _create(client, "https://www.facebook.com/marketplace/item/456/")
        response = await client.put(f"/api/listings/{other['id']}", json={"link": ITEM_URL})
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_delete_then_get_is_404(self, client):
        created = await _create(client)
        response = await client.delete(f"/api/listings/{created['id']}")
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Listing deleted successfully"}

        response = await client.get(f"/api/listings/{created['id']}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_unknown_id_succeeds(self, client):
        response = await client.delete(f"/api/listings/{uuid.uuid4()}")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_delete_invalid_id(self, client):
        response = await client.delete("/api/listings/nope")
        assert response.status_code == 400


class TestByStatus:
    @pytest.mark.asyncio
    async def test_filters_by_status_newest_first(self, client):
        a = await _create(client, "https://www.facebook.com/marketplace/item/a/", status=1)
        await _create(client, "https://www.facebook.com/marketplace/item/b/")
        c = await _create(client, "https://www.facebook.com/marketplace/item/c/", status="1")

        response = await client.get("/api/listings/status/1")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == 1
        assert body["count"] == 2
        assert [item["id"] for item in body["data"]] == [c["id"], a["id"]]
        assert all(item["status"] == 1 for item in body["data"])

    @pytest.mark.asyncio
    async def test_unknown_status_value_is_empty(self, client):
        body = (await client.get("/api/listings/status/42")).json()
        assert body == {"success": True, "data": [], "count": 0, "status": 42}

    @pytest.mark.asyncio
    async def test_non_numeric_status(self, client):
        response = await client.get("/api/listings/status/abc")
        assert response.status_code == 400
        assert response.json() == {"error": "Status must be a valid number"}


class TestProtocol:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "path", ["/api/listings", f"/api/listings/{uuid.uuid4()}", "/api/listings/status/0"]
    )
    async def test_options_is_empty_200(self, client, path):
        response = await client.options(path, headers={"Origin": "http://example.com"})
        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_preflight_is_empty_200(self, client):
        response = await client.options(
            "/api/listings",
            headers={"Origin": "http://example.com", "Access-Control-Request-Method": "PUT"},
        )
        assert response.status_code == 200
        assert response.content == b""
        assert "PUT" in response.headers["Access-Control-Allow-Methods"]

    @pytest.mark.asyncio
    async def test_cors_header_on_responses(self, client):
        response = await client.get("/api/listings", headers={"Origin": "http://example.com"})
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_unsupported_method_on_id_route(self, client):
        response = await client.patch(f"/api/listings/{uuid.uuid4()}", json={})
        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}
        assert response.headers["Allow"] == "GET, PUT, DELETE"

    @pytest.mark.asyncio
    async def test_unsupported_method_on_status_route(self, client):
        response = await client.post("/api/listings/status/1")
        assert response.status_code == 405
        assert response.headers["Allow"] == "GET"

    @pytest.mark.asyncio
    async def test_unsupported_method_on_collection(self, client):
        response = await client.delete("/api/listings")
        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}
        assert response.headers["Allow"] == "GET, POST"

    @pytest.mark.asyncio
    async def test_unsupported_method_on_stats_route(self, client):
        response = await client.put("/api/listings/stats/today", json={})
        assert response.status_code == 405
        assert response.headers["Allow"] == "GET"

    @pytest.mark.asyncio
    async def test_unknown_path(self, client):
        response = await client.get("/api/unknown")
        assert response.status_code == 404
        assert response.json() == {"error": "Not found"}


class TestFailures:
    @pytest.mark.asyncio
    async def test_store_error_is_500_with_details(self, failing_db):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
            response = await ac.get("/api/listings")
        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to fetch listings",
            "details": "connection refused",
        }

    @pytest.mark.asyncio
    async def test_unexpected_error_is_generic_500(self, client, monkeypatch):
        async def boom(*args, **kwargs):
            raise RuntimeError("kaput")

        monkeypatch.setattr(listing_svc, "list_listings", boom)
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
            response = await ac.get("/api/listings", headers={"Origin": "http://example.com"})
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert response.headers["Access-Control-Allow-Origin"] == "*"
