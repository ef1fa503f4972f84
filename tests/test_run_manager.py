"""Tests for the in-memory run registry and its status records."""
import asyncio

import pytest

from app.config import settings
from app.services.run_manager import RunState, RunStatus, run_manager


def test_create_publishes_queued_snapshot():
    status = run_manager.create("article-1", "Title", ["A", "B"])
    snap = status.snapshot()
    assert snap["state"] == "queued"
    assert snap["metadata"] == {
        "status": "Queued",
        "progress": 0.0,
        "article_title": "Title",
        "sections": ["A", "B"],
    }
    assert run_manager.get_status(status.run_id) is status


def test_authorize():
    status = run_manager.create("article-1")
    assert run_manager.authorize(status.run_id, status.public_token) is status
    assert run_manager.authorize("run_unknown", status.public_token) is None
    with pytest.raises(PermissionError):
        run_manager.authorize(status.run_id, "wrong")
    with pytest.raises(PermissionError):
        run_manager.authorize(status.run_id, None)


def test_tokens_are_unique_per_run():
    a = run_manager.create("article-1")
    b = run_manager.create("article-1")
    assert a.run_id != b.run_id
    assert a.public_token != b.public_token


def test_progress_never_decreases_and_is_clamped():
    status = RunStatus(article_id="a")
    status.set_progress(0.4)
    status.set_progress(0.2)
    assert status.progress == 0.4
    status.set_progress(1.7)
    assert status.progress == 1.0
    status.set_progress(-1)
    assert status.progress == 1.0
    assert status.progress_history == [0.4, 0.4, 1.0, 1.0]


def test_version_bumps_on_every_change():
    status = RunStatus(article_id="a")
    v0 = status.version
    status.set_status("Working")
    status.mark(RunState.EXECUTING)
    assert status.version == v0 + 2


@pytest.mark.asyncio
async def test_start_marks_completed():
    status = run_manager.create("article-1")
    seen = []

    async def work():
        seen.append(status.state)

    run_manager.start(status, work())
    final = await run_manager.wait(status.run_id, timeout=5)

    assert seen == [RunState.EXECUTING]
    assert final.state == RunState.COMPLETED
    assert final.completed_at is not None
    assert not run_manager.is_running(status.run_id)


@pytest.mark.asyncio
async def test_start_marks_failed_on_exception():
    status = run_manager.create("article-1")

    async def boom():
        raise RuntimeError("model exploded")

    run_manager.start(status, boom())
    final = await run_manager.wait(status.run_id, timeout=5)

    assert final.state == RunState.FAILED
    assert final.error == "model exploded"


@pytest.mark.asyncio
async def test_start_keeps_failed_state_set_by_the_run():
    status = run_manager.create("article-1")

    async def fails_quietly():
        status.mark(RunState.FAILED, error="section failed")

    run_manager.start(status, fails_quietly())
    final = await run_manager.wait(status.run_id, timeout=5)
    assert final.state == RunState.FAILED
    assert final.error == "section failed"


@pytest.mark.asyncio
async def test_shutdown_cancels_and_marks_failed():
    status = run_manager.create("article-1")
    release = asyncio.Event()

    async def blocked():
        await release.wait()

    run_manager.start(status, blocked())
    await asyncio.sleep(0)
    assert run_manager.is_running(status.run_id)

    await run_manager.shutdown()
    assert status.state == RunState.FAILED
    assert status.is_finished


@pytest.mark.asyncio
async def test_cannot_start_same_run_twice():
    status = run_manager.create("article-1")
    release = asyncio.Event()

    async def blocked():
        await release.wait()

    run_manager.start(status, blocked())
    second = blocked()
    with pytest.raises(RuntimeError):
        run_manager.start(status, second)
    second.close()
    release.set()
    await run_manager.wait(status.run_id, timeout=5)


def test_discard_forgets_unstarted_run():
    status = run_manager.create("article-1")
    run_manager.discard(status.run_id)
    assert run_manager.get_status(status.run_id) is None
    # Unknown ids are ignored
    run_manager.discard(status.run_id)


@pytest.mark.asyncio
async def test_discard_refuses_executing_run():
    status = run_manager.create("article-1")
    gate = asyncio.Event()

    async def blocked():
        await gate.wait()

    run_manager.start(status, blocked())
    await asyncio.sleep(0)
    with pytest.raises(RuntimeError):
        run_manager.discard(status.run_id)
    gate.set()
    await run_manager.wait(status.run_id, timeout=5)
    assert status.state == RunState.COMPLETED


def test_never_started_run_expires_after_ttl():
    stale = run_manager.create("article-1")
    stale.started_at -= settings.RUN_STATUS_TTL_SECONDS + 1
    fresh = run_manager.create("article-2")

    run_manager.create("article-3")

    assert run_manager.get_status(stale.run_id) is None
    assert run_manager.get_status(fresh.run_id) is fresh


def test_finished_run_expires_after_ttl():
    done = run_manager.create("article-1")
    done.mark(RunState.COMPLETED)
    done.completed_at -= settings.RUN_STATUS_TTL_SECONDS + 1

    run_manager.create("article-2")

    assert run_manager.get_status(done.run_id) is None
