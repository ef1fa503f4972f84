"""
Health check endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from datetime import datetime, timezone
import logging

from app.database import get_db
from app.models.schemas import HealthCheckResponse
from app.services.llm_client import TextGenerator, get_text_generator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    generator: TextGenerator = Depends(get_text_generator),
):
    """
    Health check endpoint to verify system status.

    Returns:
        HealthCheckResponse with status of database and the language model
    """
    # Check database connection
    db_status = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "error"

    # Check language model connection
    llm_status = "ok" if await generator.check_health() else "error"

    # Overall status
    overall_status = "healthy" if db_status == "ok" and llm_status == "ok" else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        database=db_status,
        llm=llm_status,
        timestamp=datetime.now(timezone.utc),
    )
