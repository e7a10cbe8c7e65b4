"""Per-document capture engine.

One ``CaptureEngine`` exists for every document lifetime. It owns the
``ProviderContext`` and receives every signal for its document: shim events
(native submits, clicks and presses on watched controls, mutations) and
classified network calls. Extraction results funnel into :meth:`_deliver`,
where the ignore policy is applied before a record reaches the dispatcher.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..core.models import (
    FieldMapping,
    NetworkRequestClassification,
    ProviderKind,
    Submission,
    SubmissionSource,
)
from ..runtime.scheduler import TimerQueue
from .context import ProviderContext
from .dispatch import UNTITLED_PAGE, Dispatcher, SubmissionBuilder
from .extractors import ProviderExtractor, default_extractors
from .generic import GenericExtractor, find_form
from .host import HostPage
from .ignore import IgnorePolicy
from .network import XHR
from .providers import classify_location
from .retry import DEFAULT_RETRY_POLICY, RetryChain, RetryPolicy, RetryScheduler
from .salvage import salvage_fields
from .snapshot import PageSnapshot
from .watcher import DEFAULT_RESCAN_INTERVAL, SubmitTriggerWatcher

logger = logging.getLogger(__name__)

CLICK_DELAYS: Dict[ProviderKind, Tuple[float, ...]] = {
    ProviderKind.GOOGLE_FORMS: (0.1, 0.8, 1.5),
    ProviderKind.MICROSOFT_FORMS: (0.5,),
    ProviderKind.CLICKUP_FORMS: (0.3, 1.0),
}
PRESS_DELAYS: Tuple[float, ...] = (0.5,)
NETWORK_CHECK_DELAYS: Dict[ProviderKind, Tuple[float, ...]] = {
    ProviderKind.GOOGLE_FORMS: (0.2, 0.8, 1.5),
    ProviderKind.MICROSOFT_FORMS: (0.3,),
    ProviderKind.CLICKUP_FORMS: (0.3,),
}
XHR_DELIVERY_DELAY = 0.2
# Triggers on the same key within this window share one burst until it settles.
BURST_WINDOW = 2.0


@dataclass
class TriggerBurst:
    """Extraction passes scheduled for one interaction."""

    key: str
    provider: ProviderKind
    started: float
    settled: bool = False
    passes: int = 0
    chains: List[RetryChain] = field(default_factory=list, repr=False)


class CaptureEngine:
    def __init__(
        self,
        host: HostPage,
        dispatcher: Dispatcher,
        timers: TimerQueue,
        *,
        document_id: Optional[str] = None,
        ignore_policy: Optional[IgnorePolicy] = None,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        rescan_interval: float = DEFAULT_RESCAN_INTERVAL,
        extractors: Optional[Mapping[ProviderKind, ProviderExtractor]] = None,
        builder: Optional[SubmissionBuilder] = None,
    ) -> None:
        self.host = host
        self.dispatcher = dispatcher
        self.timers = timers
        self.document_id = document_id
        self.ignore_policy = ignore_policy or IgnorePolicy()
        self.extractors = dict(extractors if extractors is not None else default_extractors())
        self.builder = builder or SubmissionBuilder()
        self.context = ProviderContext()
        self.retry = RetryScheduler(timers, retry_policy)
        self.generic = GenericExtractor()
        self.watcher = SubmitTriggerWatcher(
            host, timers, self.context, rescan_interval=rescan_interval
        )
        self.delivered = 0
        self._bursts: Dict[str, TriggerBurst] = {}
        self._last_snapshot: Optional[PageSnapshot] = None
        self._installed = False
        self._retired = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def alive(self) -> bool:
        return not self._retired

    def install(self) -> None:
        """Starts control discovery; repeated calls only rescan."""

        if self._retired:
            return
        if self._installed:
            self.watcher.rescan()
            return
        self._installed = True
        self._refresh_provider()
        logger.debug("Engine installed for document %s (%s)", self.document_id, self.context.provider.value)
        self.watcher.start()

    def retire(self) -> None:
        if self._retired:
            return
        self._retired = True
        self.watcher.stop()
        self.context.cancel_all()
        logger.debug("Engine retired for document %s", self.document_id)

    # ------------------------------------------------------------------
    # Shim events
    # ------------------------------------------------------------------
    def handle_event(self, kind: str, payload: Optional[Dict[str, Any]] = None) -> None:
        if self._retired:
            return
        payload = payload or {}
        try:
            if kind == "ready":
                self.install()
            elif kind == "submit":
                self.handle_submit(payload)
            elif kind in ("click", "press"):
                self.handle_trigger(kind, payload.get("token"))
            elif kind == "mutation":
                self.watcher.notify_mutation()
            else:
                logger.debug("Ignoring unknown page event %r", kind)
        except Exception:
            logger.debug("Page event %r failed", kind, exc_info=True)

    def handle_submit(self, payload: Mapping[str, Any]) -> Optional[Submission]:
        """Native form submission: one synchronous extraction of the form snapshot."""

        url = payload.get("url") or self._page_url()
        action = payload.get("action") or url
        if self.ignore_policy.should_ignore(url, action):
            logger.debug("Ignoring native submission on %s", url)
            return None

        form = find_form(payload.get("html") or "")
        if form is None:
            return None
        fields = self.generic.extract(form)
        if not fields:
            return None
        return self._deliver(
            fields,
            SubmissionSource.NATIVE,
            url=url,
            action=action,
            title=payload.get("title") or UNTITLED_PAGE,
        )

    def handle_trigger(self, kind: str, token: Optional[str]) -> None:
        """Click or press on a watched submit control."""

        if not token or token not in self.context.registry:
            return
        provider = self._refresh_provider()
        if not provider.is_hosted:
            return
        delays = PRESS_DELAYS if kind == "press" else CLICK_DELAYS.get(provider, PRESS_DELAYS)
        self._schedule_burst(f"control:{token}", provider, delays)

    # ------------------------------------------------------------------
    # Network path
    # ------------------------------------------------------------------
    def handle_network(self, classification: NetworkRequestClassification, fields: FieldMapping) -> None:
        if self._retired:
            return

        provider = classification.provider
        if provider is not None:
            delays = NETWORK_CHECK_DELAYS.get(provider, (0.3,))
            self._schedule_burst(f"network:{provider.value}", provider, delays, require_provider=True)

        if not fields:
            return
        if classification.primitive == XHR and provider is None:
            return

        delay = XHR_DELIVERY_DELAY if classification.primitive == XHR else 0.0
        title = self.extractors[provider].default_title if provider in self.extractors else UNTITLED_PAGE
        if delay:
            self.timers.call_later(delay, self._deliver_network, classification, dict(fields), title)
        else:
            self._deliver_network(classification, fields, title)

    def _deliver_network(
        self,
        classification: NetworkRequestClassification,
        fields: FieldMapping,
        fallback_title: str,
    ) -> Optional[Submission]:
        if self._retired:
            return None
        return self._deliver(
            fields,
            classification.source,
            action=classification.url,
            title=self._page_title() or fallback_title,
        )

    # ------------------------------------------------------------------
    # Provider extraction
    # ------------------------------------------------------------------
    def _schedule_burst(
        self,
        key: str,
        provider: ProviderKind,
        delays: Tuple[float, ...],
        *,
        require_provider: bool = False,
    ) -> TriggerBurst:
        now = self.timers.clock.now()
        burst = self._bursts.get(key)
        if burst is None or burst.settled or now - burst.started > BURST_WINDOW:
            burst = TriggerBurst(key=key, provider=provider, started=now)
            self._bursts[key] = burst
        for delay in delays:
            self.timers.call_later(delay, self._extraction_pass, burst, require_provider)
        return burst

    def _extraction_pass(self, burst: TriggerBurst, require_provider: bool) -> None:
        if self._retired or burst.settled:
            return
        current = self._refresh_provider()
        if require_provider and current is not burst.provider:
            return

        burst.passes += 1
        label = f"{burst.key}#{burst.passes}"
        chain = self.retry.run(
            lambda: self.capture_provider(burst.provider),
            lambda fields: self._complete_burst(burst, fields),
            salvage=lambda: self._salvage(burst.provider),
            label=label,
        )
        burst.chains.append(self.context.track(chain))

    def capture_provider(self, provider: ProviderKind) -> FieldMapping:
        """One extraction attempt for ``provider`` against a fresh snapshot."""

        if self._retired:
            return {}
        location = self.host.location()
        if self.ignore_policy.should_ignore(location.href, location.href):
            return {}
        if self._refresh_provider() is not provider:
            return {}
        extractor = self.extractors.get(provider)
        if extractor is None:
            return {}
        snapshot = self.host.snapshot(state_paths=extractor.state_paths)
        self._last_snapshot = snapshot
        return extractor.extract(snapshot)

    def _salvage(self, provider: ProviderKind) -> FieldMapping:
        if self._retired or self._refresh_provider() is not provider:
            return {}
        return salvage_fields(self.host.snapshot())

    def _complete_burst(self, burst: TriggerBurst, fields: FieldMapping) -> None:
        if burst.settled or self._retired:
            return
        burst.settled = True
        for chain in burst.chains:
            chain.cancel()
        extractor = self.extractors.get(burst.provider)
        title = None
        if extractor is not None:
            title = (
                extractor.title_for(self._last_snapshot)
                if self._last_snapshot is not None
                else extractor.default_title
            )
        self._deliver(fields, burst.provider.source, title=title)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------
    def _deliver(
        self,
        fields: FieldMapping,
        source: SubmissionSource,
        *,
        url: Optional[str] = None,
        action: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Optional[Submission]:
        if not fields:
            return None
        page_url = url or self._page_url()
        target = action or page_url
        pattern = self.ignore_policy.matching_pattern(page_url, target)
        if pattern is not None:
            logger.debug("Dropping %s submission on %s (matched %r)", source.value, page_url, pattern)
            return None

        submission = self.builder.build(
            url=page_url,
            action=target,
            title=title,
            fields=fields,
            source=source,
        )
        self.dispatcher.dispatch(submission)
        self.delivered += 1
        return submission

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _refresh_provider(self) -> ProviderKind:
        try:
            self.context.provider = classify_location(self.host.location())
        except Exception:
            logger.debug("Could not classify page", exc_info=True)
        return self.context.provider

    def _page_url(self) -> str:
        try:
            return self.host.location().href
        except Exception:
            return ""

    def _page_title(self) -> str:
        try:
            title = self.host.title()
        except Exception:
            logger.debug("Could not read page title", exc_info=True)
            title = ""
        if not title and self._last_snapshot is not None:
            return self._last_snapshot.title
        return title or ""
