"""
Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime

from app.models.database_models import ArticleStatus, ContentTone, WritingStyle


TITLE_MAX_LENGTH = 190
MAX_SECTIONS = 10


# ---------------------------------------------------------------------------
# Generation parameters (shared by presets and the pipeline)
# ---------------------------------------------------------------------------

class FormatOptions(BaseModel):
    """Formatting toggles; each one is independent."""

    subheadings: bool = False
    bullet_points: bool = False
    numbered_list: bool = False

    model_config = ConfigDict(from_attributes=True)


class LengthOptions(BaseModel):
    """Length bucket flags. The word-budget calculator picks the first true one."""

    short: bool = False
    medium: bool = True
    long: bool = False
    super_long: bool = False

    model_config = ConfigDict(from_attributes=True)


class StyleOptions(BaseModel):
    """Tone and writing style."""

    content_tone: ContentTone = ContentTone.CASUAL
    writing_style: WritingStyle = WritingStyle.NARRATIVE

    model_config = ConfigDict(from_attributes=True)


class AdditionalOptions(BaseModel):
    """Optional trailing sections."""

    faq_sections: bool = False
    summary: bool = False

    model_config = ConfigDict(from_attributes=True)


class ParameterSet(BaseModel):
    """Fully resolved parameters a generation run is executed with."""

    format: FormatOptions = Field(default_factory=FormatOptions)
    length: LengthOptions = Field(default_factory=LengthOptions)
    style: StyleOptions = Field(default_factory=StyleOptions)
    options: AdditionalOptions = Field(default_factory=AdditionalOptions)

    model_config = ConfigDict(from_attributes=True, frozen=True)


# ---------------------------------------------------------------------------
# Preset Schemas
# ---------------------------------------------------------------------------

class PresetCreate(BaseModel):
    """Schema for creating or fully replacing a preset."""

    name: str = Field(..., min_length=1, max_length=255)
    format: FormatOptions = Field(default_factory=FormatOptions)
    length: LengthOptions = Field(default_factory=LengthOptions)
    style: StyleOptions = Field(default_factory=StyleOptions)
    options: AdditionalOptions = Field(default_factory=AdditionalOptions)


class PresetResponse(BaseModel):
    """Schema for preset responses."""

    id: str
    name: str
    format: FormatOptions
    length: LengthOptions
    style: StyleOptions
    options: AdditionalOptions
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Article Schemas
# ---------------------------------------------------------------------------

class SectionInput(BaseModel):
    """One body section requested by the user."""

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)


class ArticleGenerateRequest(BaseModel):
    """Submission of a new article generation."""

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    context: Optional[str] = None
    sections: List[SectionInput] = Field(..., min_length=1, max_length=MAX_SECTIONS)
    preset_id: Optional[str] = None


class ArticleGenerateResponse(BaseModel):
    """Handles returned once the background run has been started."""

    article_id: str
    run_id: str
    public_token: str


class TaskHandle(BaseModel):
    """What a client needs to attach to a run's progress channel."""

    run_id: str
    public_token: str

    model_config = ConfigDict(from_attributes=True)


class ArticleResponse(BaseModel):
    """Schema for article details."""

    id: str
    title: str
    content: Optional[str] = None
    status: ArticleStatus
    created_at: datetime
    updated_at: datetime
    task: Optional[TaskHandle] = None

    model_config = ConfigDict(from_attributes=True)


class ArticleListItem(BaseModel):
    """Dashboard row for an article."""

    id: str
    title: str
    status: ArticleStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SectionSuggestRequest(BaseModel):
    """Ask the model for section titles for an article."""

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    context: Optional[str] = None
    count: int = Field(5, ge=1, le=MAX_SECTIONS)


class SectionSuggestResponse(BaseModel):
    """Suggested section titles, in reading order."""

    sections: List[str]


# ---------------------------------------------------------------------------
# Run status
# ---------------------------------------------------------------------------

class RunStatusResponse(BaseModel):
    """Snapshot of a generation run's progress channel."""

    run_id: str
    article_id: str
    state: str
    metadata: Dict[str, Any] = {}
    error: Optional[str] = None
    elapsed_seconds: float


class HealthCheckResponse(BaseModel):
    """Schema for health check endpoint."""

    status: str
    database: str
    llm: str
    timestamp: datetime
    version: str = "0.1.0"
