"""Bounded retry with backoff, independent of what is being retried."""

import asyncio
import logging
from dataclasses import dataclass

from anchorsync.constants import TTS_MAX_ATTEMPTS, TTS_RETRY_BASE_DELAY, TTS_RATE_LIMIT_DELAY
from anchorsync.errors import COOLDOWN_ERROR_KINDS, ERROR_KIND_UNKNOWN, classify_exception

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackoffPolicy:
    max_attempts: int = TTS_MAX_ATTEMPTS
    base_delay: float = TTS_RETRY_BASE_DELAY
    rate_limit_delay: float = TTS_RATE_LIMIT_DELAY

    def delay_for(self, attempt: int, kind: str) -> float:
        """Seconds to wait after a failed attempt (0-based), growing linearly."""
        base = self.rate_limit_delay if kind in COOLDOWN_ERROR_KINDS else self.base_delay
        return base * (attempt + 1)


class RetryExhausted(Exception):
    def __init__(self, attempts: int, last_error: BaseException | None, last_kind: str):
        super().__init__(f"gave up after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error
        self.last_kind = last_kind


async def retry_with_backoff(
    attempt_fn,
    policy: BackoffPolicy | None = None,
    *,
    classify=classify_exception,
    on_failure=None,
    sleep=asyncio.sleep,
):
    """Await attempt_fn(n) until it returns, up to policy.max_attempts times.

    on_failure(exc, kind, n) is called after each failed attempt. No wait
    follows the final attempt. Raises RetryExhausted when every attempt fails.
    """
    policy = policy or BackoffPolicy()
    last_error = None
    last_kind = ERROR_KIND_UNKNOWN

    for n in range(policy.max_attempts):
        try:
            return await attempt_fn(n)
        except Exception as e:
            last_error = e
            last_kind = classify(e)
            logger.warning("Attempt %d/%d failed [%s]: %s", n + 1, policy.max_attempts, last_kind, e)
            if on_failure is not None:
                on_failure(e, last_kind, n)

        if n < policy.max_attempts - 1:
            await sleep(policy.delay_for(n, last_kind))

    raise RetryExhausted(policy.max_attempts, last_error, last_kind)
