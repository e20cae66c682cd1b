from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass, field
import logging
from typing import Any

logger = logging.getLogger("infodoc")


@dataclass
class BackgroundTasks:
    """Detached tasks nobody awaits on the hot path.

    Failures are logged and dropped. Strong references are kept until each task
    finishes so the event loop cannot garbage-collect it mid-flight.
    """

    tasks: set[asyncio.Task[Any]] = field(default_factory=set)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, label: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=label)
        self.tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    async def drain(self) -> None:
        while self.tasks:
            await asyncio.gather(*list(self.tasks), return_exceptions=True)

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self.tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "background task failed",
                extra={"task": task.get_name()},
                exc_info=exc,
            )
