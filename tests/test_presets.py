"""Tests for preset CRUD.

A preset is a row plus four sub-records; these tests check that they are
created, replaced and deleted together.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from app.models.database_models import PresetFormat, PresetLength, PresetOptions, PresetStyle
from tests.conftest import AUTH_HEADERS, AUTH_HEADERS_USER2

FULL_PRESET = {
    "name": "Listicle",
    "format": {"subheadings": True, "bullet_points": True, "numbered_list": False},
    "length": {"short": False, "medium": False, "long": True, "super_long": False},
    "style": {"content_tone": "formal", "writing_style": "persuasive"},
    "options": {"faq_sections": True, "summary": False},
}


@pytest.mark.asyncio
async def test_create_preset_with_defaults(client: AsyncClient):
    resp = await client.post("/api/presets", json={"name": "Plain"}, headers=AUTH_HEADERS)
    assert resp.status_code == 201
    data = resp.json()
    assert data["name"] == "Plain"
    assert data["format"] == {"subheadings": False, "bullet_points": False, "numbered_list": False}
    assert data["length"]["medium"] is True
    assert data["style"] == {"content_tone": "casual", "writing_style": "narrative"}
    assert data["options"] == {"faq_sections": False, "summary": False}


@pytest.mark.asyncio
async def test_create_preset_with_all_values(client: AsyncClient):
    resp = await client.post("/api/presets", json=FULL_PRESET, headers=AUTH_HEADERS)
    assert resp.status_code == 201
    data = resp.json()
    assert data["format"]["bullet_points"] is True
    assert data["length"]["long"] is True
    assert data["style"]["writing_style"] == "persuasive"
    assert data["options"]["faq_sections"] is True


@pytest.mark.asyncio
async def test_create_preset_rejects_unknown_tone(client: AsyncClient):
    body = dict(FULL_PRESET, style={"content_tone": "sarcastic", "writing_style": "narrative"})
    resp = await client.post("/api/presets", json=body, headers=AUTH_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_create_preset_requires_name(client: AsyncClient):
    resp = await client.post("/api/presets", json={"name": ""}, headers=AUTH_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_presets_returns_only_own(client: AsyncClient):
    await client.post("/api/presets", json={"name": "A"}, headers=AUTH_HEADERS)
    await client.post("/api/presets", json={"name": "B"}, headers=AUTH_HEADERS)
    await client.post("/api/presets", json={"name": "C"}, headers=AUTH_HEADERS_USER2)

    resp = await client.get("/api/presets", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert {p["name"] for p in resp.json()} == {"A", "B"}

    resp2 = await client.get("/api/presets", headers=AUTH_HEADERS_USER2)
    assert {p["name"] for p in resp2.json()} == {"C"}


@pytest.mark.asyncio
async def test_get_preset_detail(client: AsyncClient):
    resp = await client.post("/api/presets", json=FULL_PRESET, headers=AUTH_HEADERS)
    preset_id = resp.json()["id"]

    resp = await client.get(f"/api/presets/{preset_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["style"]["content_tone"] == "formal"


@pytest.mark.asyncio
async def test_get_unknown_preset_404(client: AsyncClient):
    resp = await client.get("/api/presets/does-not-exist", headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_update_replaces_every_sub_record(client: AsyncClient):
    """Fields left out of the update body go back to their defaults."""
    resp = await client.post("/api/presets", json=FULL_PRESET, headers=AUTH_HEADERS)
    preset_id = resp.json()["id"]

    resp = await client.put(
        f"/api/presets/{preset_id}",
        json={"name": "Renamed", "style": {"content_tone": "technical", "writing_style": "narrative"}},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Renamed"
    assert data["style"]["content_tone"] == "technical"
    assert data["format"]["bullet_points"] is False
    assert data["length"] == {"short": False, "medium": True, "long": False, "super_long": False}
    assert data["options"]["faq_sections"] is False

    # Persisted, not just echoed
    resp = await client.get(f"/api/presets/{preset_id}", headers=AUTH_HEADERS)
    assert resp.json()["name"] == "Renamed"
    assert resp.json()["format"]["subheadings"] is False


@pytest.mark.asyncio
async def test_delete_preset_removes_sub_records(client: AsyncClient, db_session):
    resp = await client.post("/api/presets", json=FULL_PRESET, headers=AUTH_HEADERS)
    preset_id = resp.json()["id"]

    resp = await client.delete(f"/api/presets/{preset_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 204

    resp = await client.get(f"/api/presets/{preset_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 404

    for model in (PresetFormat, PresetLength, PresetStyle, PresetOptions):
        count = await db_session.scalar(
            select(func.count()).select_from(model).where(model.preset_id == preset_id)
        )
        assert count == 0, model.__tablename__
