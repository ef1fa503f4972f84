"""
Authentication dependencies for FastAPI routes.

Extracts user identity from the X-User-Id header (set by the Next.js frontend)
and enforces ownership of presets and articles at access time.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.models.database_models import Article, Preset, User

logger = logging.getLogger(__name__)

PRESET_LOAD_OPTIONS = (
    selectinload(Preset.format),
    selectinload(Preset.length),
    selectinload(Preset.style),
    selectinload(Preset.options),
)


async def get_current_user_id(
    x_user_id: str = Header(..., alias="X-User-Id"),
) -> str:
    """Extract the authenticated user ID from the request header. Raises 401 if missing."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header.",
        )
    return x_user_id


async def get_or_create_user(
    user_id: str = Depends(get_current_user_id),
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Ensure the user exists in the local users table. Creates if needed."""
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(
            id=user_id,
            email=x_user_email or f"{user_id}@copypanda.local",
            name=x_user_name,
        )
        db.add(user)
        await db.flush()
        logger.info("Created new user: id=%s email=%s", user_id, user.email)

    return user


async def load_owned_preset(db: AsyncSession, preset_id: str, user_id: str) -> Optional[Preset]:
    """Return the preset with its sub-records if *user_id* owns it, else None."""
    result = await db.execute(
        select(Preset)
        .where(Preset.id == preset_id, Preset.user_id == user_id)
        .options(*PRESET_LOAD_OPTIONS)
    )
    return result.scalar_one_or_none()


async def get_authorized_preset(
    preset_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Preset:
    """
    Verify that the given preset belongs to the current user.
    Returns the Preset ORM object (sub-records loaded) or raises 404.
    """
    preset = await load_owned_preset(db, preset_id, user_id)
    if preset is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Preset {preset_id} not found.",
        )
    return preset


async def get_authorized_article(
    article_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Article:
    """
    Verify that the given article belongs to the current user.
    Returns the Article ORM object (task loaded) or raises 404.
    """
    result = await db.execute(
        select(Article)
        .where(Article.id == article_id, Article.user_id == user_id)
        .options(selectinload(Article.task))
    )
    article = result.scalar_one_or_none()

    if article is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Article {article_id} not found.",
        )

    return article
