from __future__ import annotations

import asyncio
import logging

import pytest

from infodoc.services.background import BackgroundTasks


@pytest.mark.unit
def test_drain_waits_for_spawned_tasks() -> None:
    background = BackgroundTasks()
    finished: list[str] = []

    async def _work(name: str) -> None:
        await asyncio.sleep(0)
        finished.append(name)

    async def _run() -> None:
        background.spawn(_work("a"), label="a")
        background.spawn(_work("b"), label="b")
        await background.drain()

    asyncio.run(_run())

    assert sorted(finished) == ["a", "b"]
    assert background.tasks == set()


@pytest.mark.unit
def test_failed_task_is_logged_and_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    background = BackgroundTasks()

    async def _boom() -> None:
        raise RuntimeError("legacy store unavailable")

    async def _run() -> None:
        background.spawn(_boom(), label="retire-legacy-info-docs:1")
        await background.drain()

    with caplog.at_level(logging.WARNING, logger="infodoc"):
        asyncio.run(_run())

    failures = [record for record in caplog.records if record.getMessage() == "background task failed"]
    assert len(failures) == 1
    assert getattr(failures[0], "task") == "retire-legacy-info-docs:1"
    assert background.tasks == set()
