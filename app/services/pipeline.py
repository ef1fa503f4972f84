"""
Article generation pipeline coordinator.

Public API
----------
ArticlePipeline.run(request, status) -> str
    start → introduction → body sections (request order) → conclusion →
    (FAQ) → (summary) → editor → persist → done

Progress is published on the run's ``RunStatus`` after every stage and
never decreases.  The article row is written exactly once per run: either
the edited content with status ``completed`` or status ``failed`` with no
content.

Failure policy
--------------
``fail``    the first failed stage aborts the run (default).
``degrade`` a failed stage contributes an error placeholder and the run
            continues; a failed editor pass keeps the unedited draft.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import random
import time
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config import settings
from app.models.database_models import Article, ArticleStatus
from app.models.schemas import ParameterSet
from app.services.editor import edit_article
from app.services.llm_client import TextGenerator
from app.services.run_manager import RunState, RunStatus
from app.services.stages import (
    StageResult,
    generate_body_section,
    generate_conclusion,
    generate_faq,
    generate_introduction,
    generate_summary,
)
from app.services.word_budget import WordBudget, compute_word_budget

logger = logging.getLogger(__name__)

FAILURE_POLICIES = ("fail", "degrade")

# Progress checkpoints
PROGRESS_START = 0.1
PROGRESS_INTRODUCTION = 0.2
PROGRESS_SECTIONS_SPAN = 0.5
PROGRESS_CONCLUSION = 0.7
PROGRESS_FAQ = 0.8
PROGRESS_SUMMARY = 0.9
PROGRESS_EDITING = 0.95
PROGRESS_DONE = 1.0


# ---------------------------------------------------------------------------
# Request / errors
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class GenerationRequest:
    """Everything a run needs. Built once per submission and never mutated."""

    article_id: str
    title: str
    sections: Tuple[str, ...]
    parameters: ParameterSet
    context: Optional[str] = None


class StageFailedError(RuntimeError):
    """A stage failed under the ``fail`` policy."""

    def __init__(self, result: StageResult) -> None:
        self.result = result
        where = result.stage.value
        if result.label:
            where += f" '{result.label}'"
        super().__init__(f"Failed to generate {where}: {result.error}")


# ---------------------------------------------------------------------------
# ArticlePipeline
# ---------------------------------------------------------------------------

class ArticlePipeline:
    """
    Coordinates the stage generators for one article.

    The storage handle is injected: every persistence call opens its own
    short-lived session from *session_factory*.
    """

    def __init__(
        self,
        generator: TextGenerator,
        session_factory: async_sessionmaker,
        section_concurrency: Optional[int] = None,
        failure_policy: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._generator = generator
        self._session_factory = session_factory
        self._section_concurrency = max(
            1, section_concurrency if section_concurrency is not None else settings.SECTION_CONCURRENCY
        )
        self._failure_policy = failure_policy or settings.STAGE_FAILURE_POLICY
        if self._failure_policy not in FAILURE_POLICIES:
            raise ValueError(
                f"Unknown failure policy {self._failure_policy!r}; expected one of {FAILURE_POLICIES}"
            )
        self._rng = rng

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self, request: GenerationRequest, status: RunStatus) -> str:
        """
        Generate, edit and persist the article.  Returns the final content.

        Raises:
            StageFailedError: a stage failed under the ``fail`` policy; the
                article has already been marked failed.
            Exception: anything else that broke the run is re-raised after
                the article has been marked failed.
        """
        t0 = time.monotonic()
        status.set_status("Starting content generation agent")
        status.set("article_title", request.title)
        status.set("sections", list(request.sections))

        budget = compute_word_budget(request.parameters.length, len(request.sections), self._rng)
        status.set("length", budget.length_label)
        status.set("total_word_count", budget.total)
        status.set("section_word_count", budget.per_section)

        logger.info(
            "Pipeline.run: article=%s title=%r sections=%d length=%s total_words=%d per_section=%d",
            request.article_id,
            request.title,
            len(request.sections),
            budget.length_label,
            budget.total,
            budget.per_section,
        )

        try:
            content = await self._generate(request, budget, status)
        except StageFailedError as exc:
            logger.error("Pipeline.run: article=%s aborted — %s", request.article_id, exc)
            status.set_status("Article generation failed")
            await self._persist(request.article_id, None, ArticleStatus.FAILED)
            status.mark(RunState.FAILED, error=str(exc))
            raise
        except Exception as exc:
            logger.error(
                "Pipeline.run: article=%s crashed — %s", request.article_id, exc, exc_info=True
            )
            status.set_status("Article generation failed")
            try:
                await self._persist(request.article_id, None, ArticleStatus.FAILED)
            except Exception as persist_exc:
                logger.error(
                    "Pipeline.run: could not mark article=%s failed: %s",
                    request.article_id,
                    persist_exc,
                )
            status.mark(RunState.FAILED, error=str(exc))
            raise

        await self._persist(request.article_id, content, ArticleStatus.COMPLETED)
        status.set_status("Article generation completed")
        status.mark(RunState.COMPLETED)

        logger.info(
            "Pipeline.run: article=%s completed in %.2fs (%d chars)",
            request.article_id,
            time.monotonic() - t0,
            len(content),
        )
        return content

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _generate(self, request: GenerationRequest, budget: WordBudget, status: RunStatus) -> str:
        params = request.parameters
        style = params.style

        # 1. Introduction
        status.set_progress(PROGRESS_START)
        status.set_status("Generating introduction")
        intro = await generate_introduction(self._generator, request.title, request.context, style)
        parts: List[str] = [self._accept(intro)]
        status.set_status("Introduction generated")
        status.set_progress(PROGRESS_INTRODUCTION)

        # 2. Body sections
        parts.extend(await self._generate_sections(request, budget, status))

        # 3. Conclusion
        status.set_status("Generating conclusion")
        conclusion = await generate_conclusion(self._generator, request.title, request.context, style)
        parts.append(self._accept(conclusion))
        status.set_status("Conclusion generated")
        status.set_progress(PROGRESS_CONCLUSION)

        # 4. FAQ
        if params.options.faq_sections:
            status.set("generating", "FAQ section")
            status.set_status("Generating FAQ section")
            faq = await generate_faq(
                self._generator, request.title, list(request.sections), request.context, style
            )
            parts.append(self._accept(faq))
            status.set_status("FAQ section generated")
        status.set_progress(PROGRESS_FAQ)

        # 5. Summary
        if params.options.summary:
            status.set("generating", "Summary")
            status.set_status("Generating summary")
            summary = await generate_summary(
                self._generator, request.title, list(request.sections), request.context, style
            )
            parts.append(self._accept(summary))
            status.set_status("Summary generated")
        status.set_progress(PROGRESS_SUMMARY)

        draft = "\n\n".join(parts)

        # 6. Editor pass replaces the draft
        status.set_progress(PROGRESS_EDITING)
        status.set_status("Editing article")
        edited = await edit_article(self._generator, request.title, request.context, params, draft)
        if edited.ok:
            content = edited.text
        elif self._failure_policy == "degrade":
            logger.warning(
                "Pipeline: editor failed for article=%s, keeping unedited draft: %s",
                request.article_id,
                edited.error,
            )
            content = draft
        else:
            raise StageFailedError(edited)
        status.set_progress(PROGRESS_DONE)
        return content

    async def _generate_sections(
        self, request: GenerationRequest, budget: WordBudget, status: RunStatus
    ) -> List[str]:
        sections = list(request.sections)
        total = len(sections)
        params = request.parameters

        def _section_progress(done: int) -> float:
            return PROGRESS_INTRODUCTION + PROGRESS_SECTIONS_SPAN * (done / total)

        async def _one(section: str) -> StageResult:
            return await generate_body_section(
                self._generator,
                section,
                request.title,
                request.context,
                params.style,
                params.format,
                budget.per_section,
            )

        if self._section_concurrency == 1:
            texts: List[str] = []
            for index, section in enumerate(sections, start=1):
                status.set_status(f"Generating section: {section}")
                result = await _one(section)
                texts.append(self._accept(result))
                status.set_status(f"Section generated: {section}")
                status.set_progress(_section_progress(index))
            return texts

        # Bounded fan-out; results are reassembled by index
        semaphore = asyncio.Semaphore(self._section_concurrency)
        results: List[Optional[StageResult]] = [None] * total
        done = 0

        async def _slot(index: int, section: str) -> None:
            nonlocal done
            async with semaphore:
                results[index] = await _one(section)
            done += 1
            status.set_status(f"Section generated: {section}")
            status.set_progress(_section_progress(done))

        status.set_status(f"Generating {total} sections")
        await asyncio.gather(*(_slot(i, s) for i, s in enumerate(sections)))
        return [self._accept(result) for result in results]

    def _accept(self, result: StageResult) -> str:
        if result.ok:
            return result.text
        if self._failure_policy == "degrade":
            return result.placeholder()
        raise StageFailedError(result)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _persist(self, article_id: str, content: Optional[str], article_status: ArticleStatus) -> None:
        async with self._session_factory() as session:
            result = await session.execute(
                update(Article)
                .where(Article.id == article_id)
                .values(content=content, status=article_status)
            )
            await session.commit()

        if result.rowcount == 0:
            logger.warning("Pipeline: article %s no longer exists; result discarded", article_id)
        else:
            logger.info("Pipeline: article %s marked %s", article_id, article_status.value)
