"""Live capture session driving Chromium through Playwright."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from playwright.sync_api import BrowserContext, Frame, Page, Request, Route, sync_playwright
from playwright.sync_api import Error as PlaywrightError

from ..capture.dispatch import DeliveryChannel, Dispatcher
from ..capture.engine import CaptureEngine
from ..capture.network import INTERCEPTED_PRIMITIVES, InterceptedCall, NetworkInterceptor
from ..core.config import CaptureConfig
from ..core.models import FieldMapping, NetworkRequestClassification
from ..runtime.scheduler import TimerQueue
from .host import PlaywrightHost
from .shim import BINDING_NAME, INIT_SCRIPT

logger = logging.getLogger(__name__)


def call_from_request(request: Request) -> Optional[InterceptedCall]:
    """Builds an ``InterceptedCall`` for fetch/XHR requests only."""

    if request.resource_type not in INTERCEPTED_PRIMITIVES:
        return None
    try:
        frame: Optional[Frame] = request.frame
    except Exception:
        frame = None
    return InterceptedCall(
        primitive=request.resource_type,
        method=request.method,
        url=request.url,
        body=request.post_data_buffer,
        content_type=request.headers.get("content-type", ""),
        origin=frame,
    )


@dataclass
class CaptureSession:
    """Keeps one capture engine per frame document and pumps their timers."""

    config: CaptureConfig
    channel: DeliveryChannel
    timers: TimerQueue = field(default_factory=TimerQueue)

    def __post_init__(self) -> None:
        self.dispatcher = Dispatcher(self.channel)
        self.interceptor = NetworkInterceptor(self._on_classified_call)
        self._forward = self.interceptor.wrap(self._fallback)
        self._engines: Dict[Frame, CaptureEngine] = {}
        self._stopped = False

    @property
    def engines(self) -> Dict[Frame, CaptureEngine]:
        return dict(self._engines)

    def stop(self) -> None:
        self._stopped = True

    # ------------------------------------------------------------------
    # Core workflow
    # ------------------------------------------------------------------
    def run(self, *, duration: Optional[float] = None) -> None:
        deadline = time.monotonic() + duration if duration else None
        with sync_playwright() as playwright:
            browser = playwright.chromium.launch(headless=self.config.headless)
            context = browser.new_context()
            try:
                self.attach(context)
                page = context.new_page()
                if self.config.start_url:
                    self._open(page, self.config.start_url)
                self._pump(context, deadline)
            finally:
                self._retire_all()
                browser.close()

    def attach(self, context: BrowserContext) -> None:
        """Installs the binding, page shim and request interceptor once per context."""

        context.expose_binding(BINDING_NAME, self._on_binding)
        context.add_init_script(INIT_SCRIPT)
        context.route("**/*", self._on_route)
        context.on("page", self._watch_page)
        for page in context.pages:
            self._watch_page(page)

    def _open(self, page: Page, url: str) -> None:
        try:
            page.goto(url)
        except PlaywrightError as exc:
            logger.warning("Could not open %s: %s", url, exc)

    def _pump(self, context: BrowserContext, deadline: Optional[float]) -> None:
        tick = self.config.tick_ms
        while not self._stopped:
            pages = [page for page in context.pages if not page.is_closed()]
            if not pages:
                print("[*] Todas as abas foram fechadas; encerrando captura.")
                break
            try:
                pages[-1].wait_for_timeout(tick)
            except PlaywrightError:
                time.sleep(tick / 1000)
            self.timers.run_pending()
            if deadline is not None and time.monotonic() >= deadline:
                break

    # ------------------------------------------------------------------
    # Engine bookkeeping
    # ------------------------------------------------------------------
    def engine_for(self, frame: Frame, document_id: Optional[str]) -> CaptureEngine:
        engine = self._engines.get(frame)
        if engine is not None and engine.alive:
            if document_id is None or engine.document_id == document_id:
                return engine
            if engine.document_id is None:
                engine.document_id = document_id
                return engine
            engine.retire()

        engine = CaptureEngine(
            PlaywrightHost(frame),
            self.dispatcher,
            self.timers,
            document_id=document_id,
            rescan_interval=self.config.rescan_interval,
        )
        self._engines[frame] = engine
        logger.debug("New capture engine for %s (document %s)", frame.url, document_id)
        return engine

    def _watch_page(self, page: Page) -> None:
        page.on("framedetached", self._retire_frame)
        page.on("close", self._on_page_closed)

    def _on_page_closed(self, page: Page) -> None:
        for frame in list(self._engines):
            if frame.page is page:
                self._retire_frame(frame)

    def _retire_frame(self, frame: Frame) -> None:
        engine = self._engines.pop(frame, None)
        if engine is not None:
            engine.retire()

    def _retire_all(self) -> None:
        for engine in self._engines.values():
            engine.retire()
        self._engines.clear()

    # ------------------------------------------------------------------
    # Playwright callbacks (enqueue only)
    # ------------------------------------------------------------------
    def _on_binding(self, source: Dict[str, Any], kind: str, payload: Any = None) -> None:
        try:
            frame = source.get("frame")
            if frame is None:
                return
            data = payload if isinstance(payload, dict) else {}
            engine = self.engine_for(frame, data.get("doc"))
            self.timers.call_soon(engine.handle_event, kind, data)
        except Exception:
            logger.debug("Page event %r could not be queued", kind, exc_info=True)

    def _on_route(self, route: Route, request: Request) -> None:
        try:
            call = call_from_request(request)
        except Exception:
            logger.debug("Could not inspect request %s", request.url, exc_info=True)
            call = None
        try:
            if call is None:
                route.fallback()
            else:
                self._forward(call, route)
        except Exception:
            logger.debug("Request hand-off failed for %s", request.url, exc_info=True)

    @staticmethod
    def _fallback(call: InterceptedCall, route: Route) -> None:
        route.fallback()

    def _on_classified_call(
        self,
        call: InterceptedCall,
        classification: NetworkRequestClassification,
        fields: FieldMapping,
    ) -> None:
        frame = call.origin
        if frame is None:
            return
        engine = self.engine_for(frame, None)
        self.timers.call_soon(engine.handle_network, classification, fields)
