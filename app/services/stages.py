"""
Stage generators for the article pipeline.

Each stage builds a natural-language instruction prompt from the article
title, optional context, style parameters and word target, and hands it to
the text generator.  Every stage returns a ``StageResult``; none of them
decides on its own whether a failure is fatal.  That policy lives in the
pipeline coordinator.

Prompt templates are module-level constants so they can be tuned without
touching logic code.
"""
from __future__ import annotations

import dataclasses
import enum
import logging
from typing import List, Optional

from app.models.schemas import FormatOptions, StyleOptions
from app.services.llm_client import GenerationError, TextGenerator

logger = logging.getLogger(__name__)


INTRODUCTION_WORDS = 100
CONCLUSION_WORDS = 150
SUMMARY_WORDS = 150
FAQ_QUESTIONS = 5
FAQ_WORDS = 300

INTRODUCTION_HEADING = "# {title}"
SECTION_HEADING = "## {section}"
CONCLUSION_HEADING = "## Conclusion"
FAQ_HEADING = "## Frequently Asked Questions"
SUMMARY_HEADING = "## Summary"


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

CONTENT_WRITER_SYSTEM = (
    "You are a professional content writer. Generate high-quality, engaging "
    "content following the instructions provided. Always write in the same "
    "language as the article title."
)

_PLAIN_TEXT_SUFFIX = (
    "\n\nRespond with plain text content only, without any additional "
    "formatting or metadata. Return the content in markdown format. Write in "
    "the same language as the article title."
)

_INTRODUCTION_PROMPT = (
    'Write an engaging introduction for an article titled "{title}"{context}.'
    "{style} The introduction should be approximately {word_count} words."
)

_SECTION_PROMPT = (
    'Write content for the section "{section}" of an article titled "{title}"'
    "{context}.{style}{format} This section should be approximately "
    "{word_count} words."
)

_CONCLUSION_PROMPT = (
    'Write a strong conclusion for an article titled "{title}"{context}.'
    "{style} The conclusion should be approximately {word_count} words."
)

_FAQ_PROMPT = (
    "Generate {questions} frequently asked questions and answers for an "
    'article titled "{title}" covering these sections: {sections}{context}.'
    "{tone} Format as a Q&A section with bold questions followed by detailed "
    "answers. All answers together should be approximately {word_count} words."
)

_SUMMARY_PROMPT = (
    'Write a concise summary for an article titled "{title}" that covers '
    "these sections: {sections}{context}.{tone} The summary should be "
    "approximately {word_count} words."
)


class Stage(str, enum.Enum):
    INTRODUCTION = "introduction"
    SECTION = "section"
    CONCLUSION = "conclusion"
    FAQ = "faq"
    SUMMARY = "summary"
    EDITOR = "editor"


@dataclasses.dataclass(frozen=True)
class StageResult:
    """Outcome of one stage: either generated text or the error that stopped it."""

    stage: Stage
    heading: str
    ok: bool
    text: str = ""
    error: Optional[str] = None
    label: str = ""

    def placeholder(self) -> str:
        """Degraded output used when the pipeline continues past a failure."""
        body = f"[Error generating content: {self.error}]"
        return f"{self.heading}\n\n{body}" if self.heading else body


# ---------------------------------------------------------------------------
# Prompt fragments
# ---------------------------------------------------------------------------

def style_directive(style: StyleOptions) -> str:
    return (
        f" The tone should be {style.content_tone.value} and the writing style "
        f"should be {style.writing_style.value}."
    )


def tone_directive(style: StyleOptions) -> str:
    return f" The tone should be {style.content_tone.value}."


def format_directive(fmt: FormatOptions) -> str:
    instructions = ""
    if fmt.subheadings:
        instructions += " Include relevant subheadings."
    if fmt.bullet_points:
        instructions += " Use bullet points for listing items."
    if fmt.numbered_list:
        instructions += " Use numbered lists for sequential information."
    return instructions


def _context(context: Optional[str], lead: str) -> str:
    return f" {lead} {context}" if context else ""


# ---------------------------------------------------------------------------
# Stage runner
# ---------------------------------------------------------------------------

async def _run_stage(
    generator: TextGenerator,
    stage: Stage,
    heading: str,
    prompt: str,
    label: str = "",
) -> StageResult:
    try:
        generated = await generator.generate(prompt + _PLAIN_TEXT_SUFFIX, system=CONTENT_WRITER_SYSTEM)
    except GenerationError as exc:
        logger.warning("stage %s%s failed: %s", stage.value, f" ({label})" if label else "", exc)
        return StageResult(stage=stage, heading=heading, ok=False, error=str(exc), label=label)
    return StageResult(
        stage=stage,
        heading=heading,
        ok=True,
        text=f"{heading}\n\n{generated}",
        label=label,
    )


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

async def generate_introduction(
    generator: TextGenerator,
    title: str,
    context: Optional[str],
    style: StyleOptions,
    word_count: int = INTRODUCTION_WORDS,
) -> StageResult:
    prompt = _INTRODUCTION_PROMPT.format(
        title=title,
        context=_context(context, "with the following context:"),
        style=style_directive(style),
        word_count=word_count,
    )
    return await _run_stage(generator, Stage.INTRODUCTION, INTRODUCTION_HEADING.format(title=title), prompt)


async def generate_body_section(
    generator: TextGenerator,
    section: str,
    title: str,
    context: Optional[str],
    style: StyleOptions,
    fmt: FormatOptions,
    word_count: int,
) -> StageResult:
    prompt = _SECTION_PROMPT.format(
        section=section,
        title=title,
        context=_context(context, "taking into account this context:"),
        style=style_directive(style),
        format=format_directive(fmt),
        word_count=word_count,
    )
    return await _run_stage(
        generator, Stage.SECTION, SECTION_HEADING.format(section=section), prompt, label=section
    )


async def generate_conclusion(
    generator: TextGenerator,
    title: str,
    context: Optional[str],
    style: StyleOptions,
    word_count: int = CONCLUSION_WORDS,
) -> StageResult:
    prompt = _CONCLUSION_PROMPT.format(
        title=title,
        context=_context(context, "with the following context:"),
        style=style_directive(style),
        word_count=word_count,
    )
    return await _run_stage(generator, Stage.CONCLUSION, CONCLUSION_HEADING, prompt)


async def generate_faq(
    generator: TextGenerator,
    title: str,
    sections: List[str],
    context: Optional[str],
    style: StyleOptions,
    questions: int = FAQ_QUESTIONS,
    word_count: int = FAQ_WORDS,
) -> StageResult:
    prompt = _FAQ_PROMPT.format(
        questions=questions,
        title=title,
        sections=", ".join(sections),
        context=_context(context, "with this additional context:"),
        tone=tone_directive(style),
        word_count=word_count,
    )
    return await _run_stage(generator, Stage.FAQ, FAQ_HEADING, prompt)


async def generate_summary(
    generator: TextGenerator,
    title: str,
    sections: List[str],
    context: Optional[str],
    style: StyleOptions,
    word_count: int = SUMMARY_WORDS,
) -> StageResult:
    prompt = _SUMMARY_PROMPT.format(
        title=title,
        sections=", ".join(sections),
        context=_context(context, "with this additional context:"),
        tone=tone_directive(style),
        word_count=word_count,
    )
    return await _run_stage(generator, Stage.SUMMARY, SUMMARY_HEADING, prompt)
