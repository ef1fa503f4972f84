"""
Article endpoints.

Route summary
-------------
POST /api/articles/generate           — submit a generation run
POST /api/articles/sections/suggest   — model-suggested section titles
GET  /api/articles                    — list user's articles
GET  /api/articles/{article_id}       — article detail (+ run handle while running)
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import get_db, get_session_factory
from app.dependencies.auth import (
    get_authorized_article,
    get_current_user_id,
    get_or_create_user,
    load_owned_preset,
)
from app.models.database_models import Article, ArticleStatus, GenerationTask, User
from app.models.schemas import (
    ArticleGenerateRequest,
    ArticleGenerateResponse,
    ArticleListItem,
    ArticleResponse,
    SectionSuggestRequest,
    SectionSuggestResponse,
    TaskHandle,
)
from app.services.llm_client import GenerationError, TextGenerator, get_text_generator
from app.services.parameters import resolve_parameters
from app.services.pipeline import ArticlePipeline, GenerationRequest
from app.services.run_manager import run_manager
from app.services.sections import suggest_sections

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/generate",
    response_model=ArticleGenerateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def generate_article(
    body: ArticleGenerateRequest,
    user: User = Depends(get_or_create_user),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    generator: TextGenerator = Depends(get_text_generator),
) -> ArticleGenerateResponse:
    """
    Create a ``running`` article and launch its generation run.

    Returns immediately with the article id and the run handle.  Poll
    ``GET /api/runs/{run_id}`` (or stream ``/api/runs/{run_id}/stream``)
    with the public token for progress.
    """
    preset = None
    if body.preset_id:
        preset = await load_owned_preset(db, body.preset_id, user.id)
        if preset is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Preset {body.preset_id} not found.",
            )
    parameters = resolve_parameters(preset)
    section_titles = [section.title for section in body.sections]

    article = Article(title=body.title, user_id=user.id, status=ArticleStatus.RUNNING)
    db.add(article)
    await db.flush()

    run_status = run_manager.create(article.id, body.title, section_titles)
    db.add(
        GenerationTask(
            article_id=article.id,
            run_id=run_status.run_id,
            public_token=run_status.public_token,
        )
    )
    # The run opens its own sessions, so the article must be visible first
    try:
        await db.commit()
    except Exception:
        run_manager.discard(run_status.run_id)
        raise

    request = GenerationRequest(
        article_id=article.id,
        title=body.title,
        sections=tuple(section_titles),
        parameters=parameters,
        context=body.context or None,
    )
    pipeline = ArticlePipeline(generator, session_factory)
    run_manager.start(run_status, pipeline.run(request, run_status))

    logger.info(
        "Article %s: generation run %s started (%d sections, preset=%s)",
        article.id,
        run_status.run_id,
        len(section_titles),
        body.preset_id or "default",
    )

    return ArticleGenerateResponse(
        article_id=article.id,
        run_id=run_status.run_id,
        public_token=run_status.public_token,
    )


@router.post("/sections/suggest", response_model=SectionSuggestResponse)
async def suggest_article_sections(
    body: SectionSuggestRequest,
    user_id: str = Depends(get_current_user_id),
    generator: TextGenerator = Depends(get_text_generator),
) -> SectionSuggestResponse:
    """Ask the model for *count* section titles matching the article title."""
    try:
        sections = await suggest_sections(generator, body.title, body.context, body.count)
    except GenerationError as exc:
        logger.error("Section suggestion failed for user=%s: %s", user_id, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Section suggestion failed: {exc}",
        )

    if not sections:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="The model did not return usable section titles.",
        )
    return SectionSuggestResponse(sections=sections)


@router.get("", response_model=List[ArticleListItem])
async def list_articles(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[ArticleListItem]:
    """List the authenticated user's articles, newest first."""
    result = await db.execute(
        select(Article)
        .where(Article.user_id == user_id)
        .order_by(Article.created_at.desc())
    )
    return [ArticleListItem.model_validate(a) for a in result.scalars().all()]


@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(
    article: Article = Depends(get_authorized_article),
) -> ArticleResponse:
    """
    Get an article.  While it is still running, the response carries the run
    handle needed to attach to its progress channel.
    """
    task = None
    if article.status == ArticleStatus.RUNNING and article.task is not None:
        task = TaskHandle.model_validate(article.task)

    return ArticleResponse(
        id=article.id,
        title=article.title,
        content=article.content,
        status=article.status,
        created_at=article.created_at,
        updated_at=article.updated_at,
        task=task,
    )
