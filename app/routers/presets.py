"""
Preset management endpoints.

A preset is a named, user-owned bundle of generation parameters stored as a
preset row plus four sub-records (format, length, style, options).

Route summary
-------------
POST   /api/presets              — create preset
GET    /api/presets              — list user's presets
GET    /api/presets/{preset_id}  — preset detail
PUT    /api/presets/{preset_id}  — replace preset (all sub-records)
DELETE /api/presets/{preset_id}  — delete preset (cascades to sub-records)
"""
import logging
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import (
    PRESET_LOAD_OPTIONS,
    get_authorized_preset,
    get_current_user_id,
    get_or_create_user,
)
from app.models.database_models import Preset, User
from app.models.schemas import PresetCreate, PresetResponse
from app.services.parameters import apply_preset_data

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=PresetResponse, status_code=status.HTTP_201_CREATED)
async def create_preset(
    body: PresetCreate,
    user: User = Depends(get_or_create_user),
    db: AsyncSession = Depends(get_db),
) -> PresetResponse:
    """Create a preset and its four sub-records for the authenticated user."""
    preset = apply_preset_data(Preset(user_id=user.id), body)
    db.add(preset)
    await db.flush()

    logger.info("Created preset id=%s name=%r for user=%s", preset.id, preset.name, user.id)
    return PresetResponse.model_validate(preset)


@router.get("", response_model=List[PresetResponse])
async def list_presets(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[PresetResponse]:
    """List all presets belonging to the authenticated user, newest first."""
    result = await db.execute(
        select(Preset)
        .where(Preset.user_id == user_id)
        .options(*PRESET_LOAD_OPTIONS)
        .order_by(Preset.created_at.desc())
    )
    return [PresetResponse.model_validate(p) for p in result.scalars().all()]


@router.get("/{preset_id}", response_model=PresetResponse)
async def get_preset(
    preset: Preset = Depends(get_authorized_preset),
) -> PresetResponse:
    """Get preset details."""
    return PresetResponse.model_validate(preset)


@router.put("/{preset_id}", response_model=PresetResponse)
async def update_preset(
    body: PresetCreate,
    preset: Preset = Depends(get_authorized_preset),
    db: AsyncSession = Depends(get_db),
) -> PresetResponse:
    """Replace the preset's name and every sub-record value."""
    apply_preset_data(preset, body)
    preset.updated_at = datetime.now(timezone.utc)
    await db.flush()

    logger.info("Updated preset id=%s name=%r", preset.id, preset.name)
    return PresetResponse.model_validate(preset)


@router.delete(
    "/{preset_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_model=None,
)
async def delete_preset(
    preset: Preset = Depends(get_authorized_preset),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a preset together with its format, length, style and options rows."""
    await db.delete(preset)
    await db.flush()
    logger.info("Deleted preset id=%s name=%r", preset.id, preset.name)
