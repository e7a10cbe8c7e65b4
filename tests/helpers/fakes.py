"""In-memory stand-ins for the browser side of the capture engine."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup

from formtrack.capture.dom import TOKEN_ATTRIBUTE  # type: ignore[import]
from formtrack.capture.snapshot import PageSnapshot  # type: ignore[import]
from formtrack.core.models import PageLocation  # type: ignore[import]


def stamp_tokens(html: str, selectors: Sequence[str]) -> str:
    """Marks matching elements with a token derived from their id or position."""

    soup = BeautifulSoup(html, "html.parser")
    elements = soup.find_all(True)
    positions = {id(element): index for index, element in enumerate(elements)}
    for selector in selectors:
        try:
            matches = soup.select(selector)
        except Exception:
            continue
        for element in matches:
            token = element.get("id") or f"el{positions[id(element)]}"
            element[TOKEN_ATTRIBUTE] = f"tok-{token}"
    return str(soup)


class FakeHost:
    """Serves static live-state HTML as if it came from a browser frame."""

    def __init__(
        self,
        url: str,
        html: str = "",
        *,
        title: str = "",
        state: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.url = url
        self.html = html
        self.page_title = title
        self.state = dict(state or {})
        self.instrumented: List[str] = []
        self.snapshots = 0

    def location(self) -> PageLocation:
        return PageLocation.from_url(self.url)

    def snapshot(self, *, token_selectors: Sequence[str] = (), state_paths: Sequence[str] = ()) -> PageSnapshot:
        self.snapshots += 1
        state = {path: self.state[path] for path in state_paths if path in self.state}
        return PageSnapshot.from_html(
            stamp_tokens(self.html, token_selectors),
            self.url,
            title=self.page_title,
            page_state=state,
        )

    def instrument_control(self, token: str) -> bool:
        self.instrumented.append(token)
        return True

    def title(self) -> str:
        return self.page_title


class RecordingChannel:
    """Delivery channel that keeps every message it receives."""

    def __init__(self, *, fail: bool = False) -> None:
        self.messages: List[Dict[str, Any]] = []
        self.fail = fail

    def send(self, message: Dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("channel offline")
        self.messages.append(message)

    @property
    def submissions(self) -> List[Dict[str, Any]]:
        return [message["data"] for message in self.messages]


def fixed_timestamp() -> str:
    return "2024-01-01T00:00:00Z"
