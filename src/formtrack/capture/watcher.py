"""Discovery and instrumentation of submit-like controls.

Hosted form products render their submit controls asynchronously, so a single
discovery routine is fed by two notification sources: mutation notifications
forwarded by the page shim and a periodic rescan. Every control found is
claimed in the watched-control registry before listeners are attached, which
keeps instrumentation idempotent no matter how often discovery runs.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from bs4 import Tag

from ..core.models import PageLocation, ProviderKind
from ..runtime.scheduler import TimerHandle, TimerQueue
from .context import ProviderContext
from .dom import TOKEN_ATTRIBUTE, attribute, select_all, text_of
from .host import HostPage
from .providers import classify_location
from .snapshot import PageSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TextRule:
    """Matches controls whose visible text contains one of ``words``."""

    selector: str
    words: Tuple[str, ...]

    def matches(self, element: Tag) -> bool:
        text = text_of(element).lower()
        if not text:
            return False
        return any(re.search(rf"\b{re.escape(word)}\b", text) for word in self.words)


BUTTON_TEXT_RULE = TextRule(selector='button, [role="button"]', words=("submit", "send"))


@dataclass(frozen=True, slots=True)
class SubmitRuleSet:
    """Ordered selector patterns identifying submit intent for one provider."""

    selectors: Tuple[str, ...]
    text_rules: Tuple[TextRule, ...] = field(default=(BUTTON_TEXT_RULE,))

    def token_selectors(self) -> Tuple[str, ...]:
        return self.selectors + tuple(rule.selector for rule in self.text_rules)

    def match(self, document: Tag) -> List[Tag]:
        found = select_all(document, self.selectors)
        seen = {id(element) for element in found}
        for rule in self.text_rules:
            for element in select_all(document, (rule.selector,)):
                if id(element) in seen or not rule.matches(element):
                    continue
                seen.add(id(element))
                found.append(element)
        return found


SUBMIT_RULES: Dict[ProviderKind, SubmitRuleSet] = {
    ProviderKind.GOOGLE_FORMS: SubmitRuleSet(
        selectors=(
            '[jsname="M2UYVd"]',
            '[jsname*="Submit"]',
            ".freebirdFormviewerViewNavigationSubmitButton",
            '[class*="SubmitButton"]',
            '[class*="submitButton"]',
            'button[type="submit"]',
            '[role="button"][aria-label*="submit" i]',
            '[role="button"][aria-label*="send" i]',
        )
    ),
    ProviderKind.MICROSOFT_FORMS: SubmitRuleSet(
        selectors=(
            'button[type="submit"]',
            '[data-automation-id*="submit" i]',
            '[aria-label*="submit" i]',
            '[class*="submitButton"]',
            '[class*="SubmitButton"]',
            'button[class*="ms-Button"]',
            '[role="button"][aria-label*="send" i]',
        )
    ),
    ProviderKind.CLICKUP_FORMS: SubmitRuleSet(
        selectors=(
            'button[type="submit"]',
            '[data-test*="submit" i]',
            '[aria-label*="submit" i]',
            '[aria-label*="send" i]',
            '[class*="submit" i]',
        )
    ),
}

DEFAULT_RESCAN_INTERVAL = 1.0


class SubmitTriggerWatcher:
    """Finds submit controls and instruments each one exactly once."""

    def __init__(
        self,
        host: HostPage,
        timers: TimerQueue,
        context: ProviderContext,
        *,
        rules: Optional[Mapping[ProviderKind, SubmitRuleSet]] = None,
        rescan_interval: float = DEFAULT_RESCAN_INTERVAL,
        classify: Callable[[PageLocation], ProviderKind] = classify_location,
    ) -> None:
        self.host = host
        self.timers = timers
        self.context = context
        self.rules = dict(rules if rules is not None else SUBMIT_RULES)
        self.rescan_interval = rescan_interval
        self._classify = classify
        self._periodic: Optional[TimerHandle] = None
        self._pending: Optional[TimerHandle] = None

    @property
    def running(self) -> bool:
        return self._periodic is not None

    def start(self) -> None:
        if self._periodic is None:
            self._periodic = self.timers.call_every(self.rescan_interval, self._periodic_rescan)
        self.rescan()

    def stop(self) -> None:
        for handle in (self._periodic, self._pending):
            if handle is not None:
                handle.cancel()
        self._periodic = None
        self._pending = None

    # ------------------------------------------------------------------
    # Notification sources
    # ------------------------------------------------------------------
    def notify_mutation(self) -> None:
        """Coalesces bursts of mutations into one pending rescan."""

        if self._pending is not None:
            return
        self._pending = self.timers.call_soon(self._run_pending_rescan)

    def _run_pending_rescan(self) -> None:
        self._pending = None
        self.rescan()

    def _periodic_rescan(self) -> None:
        if self._current_provider().is_hosted:
            self.rescan()

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    def rescan(self) -> List[str]:
        provider = self._current_provider()
        rules = self.rules.get(provider)
        if rules is None:
            return []

        try:
            snapshot = self.host.snapshot(token_selectors=rules.token_selectors())
        except Exception:
            logger.debug("Control discovery could not read the page", exc_info=True)
            return []
        return self.scan(snapshot, rules)

    def scan(self, snapshot: PageSnapshot, rules: SubmitRuleSet) -> List[str]:
        """Instruments every unclaimed control matched by ``rules``."""

        instrumented: List[str] = []
        for element in rules.match(snapshot.document):
            token = attribute(element, TOKEN_ATTRIBUTE)
            if not token or not self.context.registry.claim(token):
                continue
            try:
                attached = self.host.instrument_control(token)
            except Exception:
                logger.debug("Could not instrument control %s", token, exc_info=True)
                continue
            if attached:
                logger.debug("Watching submit control %s", token)
                instrumented.append(token)
        return instrumented

    def _current_provider(self) -> ProviderKind:
        try:
            provider = self._classify(self.host.location())
        except Exception:
            logger.debug("Could not read page location", exc_info=True)
            return self.context.provider
        self.context.provider = provider
        return provider
