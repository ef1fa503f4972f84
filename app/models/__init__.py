"""Database and schema models for Copypanda."""
from app.models.database_models import (
    User,
    Preset,
    PresetFormat,
    PresetLength,
    PresetStyle,
    PresetOptions,
    Article,
    GenerationTask,
    ArticleStatus,
    ContentTone,
    WritingStyle,
)
from app.models.schemas import (
    ParameterSet,
    PresetCreate,
    PresetResponse,
    ArticleGenerateRequest,
    ArticleGenerateResponse,
    ArticleResponse,
    RunStatusResponse,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "User",
    "Preset",
    "PresetFormat",
    "PresetLength",
    "PresetStyle",
    "PresetOptions",
    "Article",
    "GenerationTask",
    "ArticleStatus",
    "ContentTone",
    "WritingStyle",
    # Pydantic schemas
    "ParameterSet",
    "PresetCreate",
    "PresetResponse",
    "ArticleGenerateRequest",
    "ArticleGenerateResponse",
    "ArticleResponse",
    "RunStatusResponse",
    "HealthCheckResponse",
]
