"""Tests for authentication boundaries.

Verifies that user-scoped endpoints require X-User-Id and that users cannot
read or change another user's presets and articles.
"""
import pytest
from httpx import AsyncClient

from app.services.run_manager import run_manager
from tests.conftest import AUTH_HEADERS, AUTH_HEADERS_USER2


@pytest.mark.asyncio
async def test_presets_requires_auth_header(client: AsyncClient):
    """GET /api/presets without X-User-Id should return 422 (missing required header)."""
    resp = await client.get("/api/presets")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_generate_requires_auth_header(client: AsyncClient, fake_generator):
    resp = await client.post(
        "/api/articles/generate",
        json={"title": "Unauthed", "sections": [{"title": "One"}]},
    )
    assert resp.status_code == 422
    assert fake_generator.calls == []


@pytest.mark.asyncio
async def test_wrong_user_cannot_read_update_or_delete_preset(client: AsyncClient):
    resp = await client.post("/api/presets", json={"name": "Private"}, headers=AUTH_HEADERS)
    assert resp.status_code == 201
    preset_id = resp.json()["id"]

    assert (await client.get(f"/api/presets/{preset_id}", headers=AUTH_HEADERS_USER2)).status_code == 404
    assert (
        await client.put(f"/api/presets/{preset_id}", json={"name": "Stolen"}, headers=AUTH_HEADERS_USER2)
    ).status_code == 404
    assert (await client.delete(f"/api/presets/{preset_id}", headers=AUTH_HEADERS_USER2)).status_code == 404

    # Still intact for the owner
    resp = await client.get(f"/api/presets/{preset_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Private"


@pytest.mark.asyncio
async def test_cannot_generate_with_someone_elses_preset(client: AsyncClient, fake_generator):
    resp = await client.post("/api/presets", json={"name": "Mine"}, headers=AUTH_HEADERS)
    preset_id = resp.json()["id"]

    resp = await client.post(
        "/api/articles/generate",
        json={"title": "Borrowed", "sections": [{"title": "One"}], "preset_id": preset_id},
        headers=AUTH_HEADERS_USER2,
    )
    assert resp.status_code == 404
    assert fake_generator.calls == []


@pytest.mark.asyncio
async def test_wrong_user_cannot_read_article(client: AsyncClient):
    resp = await client.post(
        "/api/articles/generate",
        json={"title": "Private article", "sections": [{"title": "One"}]},
        headers=AUTH_HEADERS,
    )
    article_id = resp.json()["article_id"]
    await run_manager.wait(resp.json()["run_id"], timeout=10)

    resp = await client.get(f"/api/articles/{article_id}", headers=AUTH_HEADERS_USER2)
    assert resp.status_code == 404
