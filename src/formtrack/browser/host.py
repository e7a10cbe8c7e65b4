"""``HostPage`` implementation backed by a Playwright frame."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from playwright.sync_api import Frame

from ..capture.snapshot import PageSnapshot
from ..core.models import PageLocation
from .shim import INSTRUMENT_EXPRESSION, SNAPSHOT_EXPRESSION

logger = logging.getLogger(__name__)


class PlaywrightHost:
    """Reads and instruments one frame through the injected page shim."""

    def __init__(self, frame: Frame) -> None:
        self.frame = frame

    def location(self) -> PageLocation:
        return PageLocation.from_url(self.frame.url)

    def snapshot(
        self,
        *,
        token_selectors: Sequence[str] = (),
        state_paths: Sequence[str] = (),
    ) -> PageSnapshot:
        payload = self._safe_evaluate(SNAPSHOT_EXPRESSION, [list(token_selectors), list(state_paths)])
        if isinstance(payload, dict):
            return PageSnapshot.from_payload(payload)

        # Shim missing (frame loaded before the context was instrumented).
        return PageSnapshot.from_html(
            self._safe_content(),
            self.frame.url,
            title=self._safe_title(),
        )

    def instrument_control(self, token: str) -> bool:
        return bool(self._safe_evaluate(INSTRUMENT_EXPRESSION, token))

    def title(self) -> str:
        return self._safe_title()

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------
    def _safe_evaluate(self, expression: str, argument: Any = None) -> Any:
        try:
            if argument is None:
                return self.frame.evaluate(expression)
            return self.frame.evaluate(expression, argument)
        except Exception:
            logger.debug("Frame evaluation failed on %s", self.frame.url, exc_info=True)
            return None

    def _safe_content(self) -> str:
        try:
            return self.frame.content()
        except Exception:
            return ""

    def _safe_title(self) -> str:
        try:
            return self.frame.title()
        except Exception:
            return ""

