"""
SQLAlchemy ORM models for the Copypanda database.
"""
from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    ForeignKey,
    Boolean,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime, timezone
import enum
import uuid

from app.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Enums
class ArticleStatus(str, enum.Enum):
    """Lifecycle of a generated article."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ContentTone(str, enum.Enum):
    """Tone the model is asked to write in."""

    CASUAL = "casual"
    FORMAL = "formal"
    TECHNICAL = "technical"
    CREATIVE = "creative"
    EDUCATIONAL = "educational"
    JOURNALISTIC = "journalistic"


class WritingStyle(str, enum.Enum):
    """Writing style the model is asked to follow."""

    NARRATIVE = "narrative"
    DESCRIPTIVE = "descriptive"
    EXPOSITORY = "expository"
    PERSUASIVE = "persuasive"
    CONVERSATIONAL = "conversational"
    ANALYTICAL = "analytical"


# Models
class User(Base):
    """User account (synced from NextAuth)."""

    __tablename__ = "users"

    id = Column(String(255), primary_key=True)  # matches NextAuth UUID
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    # Relationships
    presets = relationship("Preset", back_populates="user", cascade="all, delete-orphan")
    articles = relationship("Article", back_populates="user", cascade="all, delete-orphan")


class Preset(Base):
    """Named, user-owned bundle of generation parameters."""

    __tablename__ = "presets"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    # Relationships (one row of each sub-record per preset)
    user = relationship("User", back_populates="presets")
    format = relationship("PresetFormat", back_populates="preset", uselist=False, cascade="all, delete-orphan")
    length = relationship("PresetLength", back_populates="preset", uselist=False, cascade="all, delete-orphan")
    style = relationship("PresetStyle", back_populates="preset", uselist=False, cascade="all, delete-orphan")
    options = relationship("PresetOptions", back_populates="preset", uselist=False, cascade="all, delete-orphan")


class PresetFormat(Base):
    """Formatting toggles of a preset."""

    __tablename__ = "preset_formats"

    id = Column(String(36), primary_key=True, default=_uuid)
    preset_id = Column(String(36), ForeignKey("presets.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    subheadings = Column(Boolean, default=False, nullable=False)
    bullet_points = Column(Boolean, default=False, nullable=False)
    numbered_list = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=True)

    preset = relationship("Preset", back_populates="format")


class PresetLength(Base):
    """Length bucket flags of a preset. Storage does not enforce a single true flag."""

    __tablename__ = "preset_lengths"

    id = Column(String(36), primary_key=True, default=_uuid)
    preset_id = Column(String(36), ForeignKey("presets.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    short = Column(Boolean, default=False, nullable=False)
    medium = Column(Boolean, default=True, nullable=False)
    long = Column(Boolean, default=False, nullable=False)
    super_long = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=True)

    preset = relationship("Preset", back_populates="length")


class PresetStyle(Base):
    """Tone and writing style of a preset."""

    __tablename__ = "preset_styles"

    id = Column(String(36), primary_key=True, default=_uuid)
    preset_id = Column(String(36), ForeignKey("presets.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    content_tone = Column(SQLEnum(ContentTone), default=ContentTone.CASUAL, nullable=False)
    writing_style = Column(SQLEnum(WritingStyle), default=WritingStyle.NARRATIVE, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=True)

    preset = relationship("Preset", back_populates="style")


class PresetOptions(Base):
    """Optional trailing sections of a preset."""

    __tablename__ = "preset_options"

    id = Column(String(36), primary_key=True, default=_uuid)
    preset_id = Column(String(36), ForeignKey("presets.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    faq_sections = Column(Boolean, default=False, nullable=False)
    summary = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=True)

    preset = relationship("Preset", back_populates="options")


class Article(Base):
    """Generated article. Content stays NULL until the run finishes."""

    __tablename__ = "articles"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=False, default="Draft")
    content = Column(Text, nullable=True)
    status = Column(SQLEnum(ArticleStatus), default=ArticleStatus.RUNNING, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    # Relationships
    user = relationship("User", back_populates="articles")
    task = relationship("GenerationTask", back_populates="article", uselist=False, cascade="all, delete-orphan")


class GenerationTask(Base):
    """Handle of the background run that produces an article."""

    __tablename__ = "generation_tasks"

    id = Column(String(36), primary_key=True, default=_uuid)
    article_id = Column(String(36), ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    run_id = Column(Text, nullable=False, index=True)
    public_token = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    article = relationship("Article", back_populates="task")
