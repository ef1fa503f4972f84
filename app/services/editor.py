"""
Editor stage: a final pass that rewrites the concatenated draft.

The edited document replaces the draft; nothing is appended.
"""
from __future__ import annotations

import logging
from typing import Optional

from app.models.schemas import LengthOptions, ParameterSet
from app.services.llm_client import GenerationError, TextGenerator
from app.services.stages import Stage, StageResult, format_directive, style_directive

logger = logging.getLogger(__name__)


_EDITOR_SYSTEM_PROMPT = """\
You are acting as a professional editor. You'll be provided with an article \
and specific editing guidelines. Your task is to carefully edit the provided \
text according to all given instructions. Ensure the text remains clear, \
readable, natural-sounding, and closely resembles human-written content. Keep \
every existing heading and the order of the sections. Write in the same \
language as the article title. Return the final text formatted neatly in \
high-quality Markdown, including appropriate headings, subheadings, bullet \
points, numbered lists, bold and italic formatting, and block quotes where \
suitable.
Guidelines:
Title: {title}
- Context:{context}
- Style:{style}
- Format:{format}
- Length: The article should be approximately {word_count} words.
"""

_EDITOR_USER_PROMPT = """\
You are given a draft of a content. Please edit it to make it better.
Draft:
{draft}"""


def target_length(length: LengthOptions) -> int:
    """Approximate word count the editor aims for; falls back to the short target."""
    if length.medium:
        return 1200
    if length.long:
        return 2000
    if length.super_long:
        return 3000
    return 800


async def edit_article(
    generator: TextGenerator,
    title: str,
    context: Optional[str],
    parameters: ParameterSet,
    draft: str,
) -> StageResult:
    system = _EDITOR_SYSTEM_PROMPT.format(
        title=title,
        context=f" taking into account this context: {context}" if context else "",
        style=style_directive(parameters.style),
        format=format_directive(parameters.format),
        word_count=target_length(parameters.length),
    )
    try:
        edited = await generator.generate(_EDITOR_USER_PROMPT.format(draft=draft), system=system)
    except GenerationError as exc:
        logger.warning("editor stage failed for %r: %s", title, exc)
        return StageResult(stage=Stage.EDITOR, heading="", ok=False, error=str(exc))
    return StageResult(stage=Stage.EDITOR, heading="", ok=True, text=edited)
