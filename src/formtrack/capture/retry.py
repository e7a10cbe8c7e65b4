"""Bounded retry of extraction passes on the timer queue."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

from ..core.models import FieldMapping
from ..runtime.scheduler import TimerHandle, TimerQueue

logger = logging.getLogger(__name__)

Extractor = Callable[[], FieldMapping]
ResultHandler = Callable[[FieldMapping], None]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Maximum attempts, the delay before each retry and the salvage switch."""

    max_attempts: int = 3
    delays: Tuple[float, ...] = (0.3, 0.6)
    salvage: bool = True

    def delay_after(self, attempt: int) -> float:
        """Delay before the attempt following ``attempt`` (1-based)."""

        if not self.delays:
            return 0.0
        return self.delays[min(max(attempt, 1), len(self.delays)) - 1]


DEFAULT_RETRY_POLICY = RetryPolicy()


@dataclass
class RetryChain:
    """In-flight retry state for one extraction chain."""

    label: str
    attempts: int = 0
    finished: bool = False
    delivered: bool = False
    pending: Optional[TimerHandle] = field(default=None, repr=False)

    def cancel(self) -> None:
        self.finished = True
        if self.pending is not None:
            self.pending.cancel()
            self.pending = None


class RetryScheduler:
    """Re-invokes an extractor until it yields data or attempts run out."""

    def __init__(self, timers: TimerQueue, policy: RetryPolicy = DEFAULT_RETRY_POLICY) -> None:
        self.timers = timers
        self.policy = policy

    def run(
        self,
        extract: Extractor,
        on_result: ResultHandler,
        *,
        salvage: Optional[Extractor] = None,
        label: str = "extraction",
    ) -> RetryChain:
        """Starts a chain; the first attempt runs synchronously."""

        chain = RetryChain(label=label)
        self._attempt(chain, extract, on_result, salvage)
        return chain

    def _attempt(
        self,
        chain: RetryChain,
        extract: Extractor,
        on_result: ResultHandler,
        salvage: Optional[Extractor],
    ) -> None:
        chain.pending = None
        if chain.finished:
            return

        chain.attempts += 1
        fields = self._safe_call(extract, chain)
        if fields:
            self._finish(chain, fields, on_result)
            return

        if chain.attempts < self.policy.max_attempts:
            delay = self.policy.delay_after(chain.attempts)
            logger.debug("%s: attempt %d empty, retrying in %.2fs", chain.label, chain.attempts, delay)
            chain.pending = self.timers.call_later(
                delay, self._attempt, chain, extract, on_result, salvage
            )
            return

        if self.policy.salvage and salvage is not None:
            fields = self._safe_call(salvage, chain)
            if fields:
                logger.debug("%s: salvage pass recovered %d field(s)", chain.label, len(fields))
                self._finish(chain, fields, on_result)
                return

        chain.finished = True
        logger.debug("%s: no data after %d attempt(s); giving up", chain.label, chain.attempts)

    @staticmethod
    def _safe_call(extract: Extractor, chain: RetryChain) -> FieldMapping:
        try:
            return extract() or {}
        except Exception:
            logger.debug("%s: extraction attempt failed", chain.label, exc_info=True)
            return {}

    @staticmethod
    def _finish(chain: RetryChain, fields: FieldMapping, on_result: ResultHandler) -> None:
        chain.finished = True
        chain.delivered = True
        on_result(fields)
