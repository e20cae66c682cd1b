from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Bounds optimistic-concurrency retry loops.

    `max_attempts` counts write attempts, so 1 means "never retry".
    """

    max_attempts: int = 10
    backoff_ms: int = 25
    max_backoff_ms: int = 500

    def delay_seconds(self, attempt: int) -> float:
        delay_ms = min(self.backoff_ms * (2 ** max(attempt - 1, 0)), self.max_backoff_ms)
        return max(delay_ms, 0) / 1000

    async def backoff(self, attempt: int) -> None:
        await asyncio.sleep(self.delay_seconds(attempt))


def retry_policy_from_env() -> RetryPolicy:
    return RetryPolicy(
        max_attempts=_env_int("INFODOC_MAX_CONFLICT_RETRIES", 10),
        backoff_ms=_env_int("INFODOC_RETRY_BACKOFF_MS", 25),
        max_backoff_ms=_env_int("INFODOC_RETRY_MAX_BACKOFF_MS", 500),
    )


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default

    try:
        parsed = int(value)
    except ValueError:
        return default

    return parsed if parsed > 0 else default
