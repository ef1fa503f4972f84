"""
In-memory registry of generation runs and their progress channel.

Each submitted article gets one run: an ``asyncio.Task`` executing the
pipeline plus a ``RunStatus`` record the pipeline mutates as it goes.  Clients
read the record (polling or SSE) with the run id and its public token; only
the pipeline writes to it.

Usage
-----
    from app.services.run_manager import run_manager

    status = run_manager.create(article_id, title, sections)
    run_manager.start(status, pipeline.run(request, status))
    # ... later ...
    current = run_manager.get_status(status.run_id)
"""
from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
import secrets
import time
import uuid
from typing import Any, Coroutine, Dict, List, Optional

from app.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Run state enum
# ---------------------------------------------------------------------------

class RunState(str, enum.Enum):
    QUEUED = "queued"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({RunState.COMPLETED, RunState.FAILED})


# ---------------------------------------------------------------------------
# Run status (mutable dataclass shared between task and readers)
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class RunStatus:
    article_id: str
    run_id: str = dataclasses.field(default_factory=lambda: f"run_{uuid.uuid4().hex}")
    public_token: str = dataclasses.field(default_factory=lambda: secrets.token_urlsafe(32))
    state: RunState = RunState.QUEUED
    metadata: Dict[str, Any] = dataclasses.field(default_factory=dict)
    error: Optional[str] = None
    started_at: float = dataclasses.field(default_factory=time.monotonic)
    completed_at: Optional[float] = None
    # Bumped on every change so stream readers can skip identical snapshots
    version: int = 0
    progress_history: List[float] = dataclasses.field(default_factory=list)

    @property
    def elapsed_seconds(self) -> float:
        end = self.completed_at if self.completed_at else time.monotonic()
        return round(end - self.started_at, 2)

    @property
    def progress(self) -> float:
        return float(self.metadata.get("progress", 0.0))

    @property
    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def set(self, key: str, value: Any) -> None:
        """Publish one metadata field."""
        self.metadata[key] = value
        self.version += 1

    def set_status(self, label: str) -> None:
        self.set("status", label)

    def set_progress(self, value: float) -> None:
        """Publish progress, clamped to [0, 1] and never lower than before."""
        value = max(self.progress, min(1.0, max(0.0, float(value))))
        self.progress_history.append(value)
        self.set("progress", round(value, 4))

    def mark(self, state: RunState, error: Optional[str] = None) -> None:
        self.state = state
        if error is not None:
            self.error = error
        if state in TERMINAL_STATES:
            self.completed_at = time.monotonic()
        self.version += 1

    def snapshot(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "article_id": self.article_id,
            "state": self.state.value,
            "metadata": dict(self.metadata),
            "error": self.error,
            "elapsed_seconds": self.elapsed_seconds,
        }


# ---------------------------------------------------------------------------
# Run manager (class-level state, acts as a singleton)
# ---------------------------------------------------------------------------

class RunManager:
    """Manages background generation tasks per run id."""

    _tasks: Dict[str, asyncio.Task] = {}
    _status: Dict[str, RunStatus] = {}

    @classmethod
    def create(
        cls,
        article_id: str,
        title: str = "",
        sections: Optional[List[str]] = None,
    ) -> RunStatus:
        """Register a queued run for *article_id* and return its status record."""
        cls._purge_expired()
        status = RunStatus(article_id=article_id)
        status.set("status", "Queued")
        status.set("progress", 0.0)
        status.set("article_title", title)
        status.set("sections", list(sections or []))
        cls._status[status.run_id] = status
        return status

    @classmethod
    def is_running(cls, run_id: str) -> bool:
        task = cls._tasks.get(run_id)
        return task is not None and not task.done()

    @classmethod
    def get_status(cls, run_id: str) -> Optional[RunStatus]:
        return cls._status.get(run_id)

    @classmethod
    def authorize(cls, run_id: str, token: Optional[str]) -> Optional[RunStatus]:
        """
        Return the status for *run_id* if *token* matches its public token.

        Raises:
            PermissionError: the run exists but the token is missing or wrong.
        """
        status = cls._status.get(run_id)
        if status is None:
            return None
        if not token or not secrets.compare_digest(token, status.public_token):
            raise PermissionError(f"Invalid access token for run {run_id}")
        return status

    @classmethod
    def start(cls, status: RunStatus, coro: Coroutine[Any, Any, Any]) -> RunStatus:
        """
        Launch the background task for an already-created run.

        Returns the RunStatus object (shared with the running task so fields
        update in real time).
        """
        if cls.is_running(status.run_id):
            raise RuntimeError(f"Run {status.run_id} is already executing")
        cls._status[status.run_id] = status

        async def _wrapper() -> None:
            status.mark(RunState.EXECUTING)
            try:
                await coro
            except Exception as exc:
                logger.error(
                    "Generation run %s failed for article %s: %s",
                    status.run_id,
                    status.article_id,
                    exc,
                    exc_info=True,
                )
                status.mark(RunState.FAILED, error=str(exc)[:500])
            else:
                if not status.is_finished:
                    status.mark(RunState.COMPLETED)
            finally:
                if not status.is_finished:
                    status.mark(RunState.FAILED, error=status.error or "run ended unexpectedly")

        task = asyncio.create_task(_wrapper())
        cls._tasks[status.run_id] = task

        # Cleanup reference when done
        task.add_done_callback(lambda _t: cls._cleanup(status.run_id))

        logger.info("Generation run %s started for article %s", status.run_id, status.article_id)
        return status

    @classmethod
    async def wait(cls, run_id: str, timeout: Optional[float] = None) -> Optional[RunStatus]:
        """Wait for a run's task to finish and return its final status."""
        task = cls._tasks.get(run_id)
        if task is not None:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        return cls._status.get(run_id)

    @classmethod
    async def shutdown(cls) -> None:
        """Cancel every in-flight run (used on application shutdown)."""
        tasks = [t for t in cls._tasks.values() if not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d in-flight generation run(s)", len(tasks))

    @classmethod
    def discard(cls, run_id: str) -> None:
        """Forget a run that was registered but will never be started."""
        if cls.is_running(run_id):
            raise RuntimeError(f"Run {run_id} is executing and cannot be discarded")
        cls._status.pop(run_id, None)
        cls._tasks.pop(run_id, None)

    @classmethod
    def reset(cls) -> None:
        """Forget every run. Intended for tests."""
        cls._tasks.clear()
        cls._status.clear()

    @classmethod
    def _cleanup(cls, run_id: str) -> None:
        """Remove the task reference (status is kept for polling)."""
        cls._tasks.pop(run_id, None)

    @classmethod
    def _purge_expired(cls) -> None:
        """Drop finished runs, and queued runs that were never started, after the TTL."""
        now = time.monotonic()
        ttl = settings.RUN_STATUS_TTL_SECONDS
        expired = [
            run_id
            for run_id, st in cls._status.items()
            if (st.completed_at is not None and now - st.completed_at > ttl)
            or (
                st.state == RunState.QUEUED
                and run_id not in cls._tasks
                and now - st.started_at > ttl
            )
        ]
        for run_id in expired:
            cls._status.pop(run_id, None)


# Module-level singleton instance
run_manager = RunManager
