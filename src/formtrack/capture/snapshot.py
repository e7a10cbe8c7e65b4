"""Point-in-time view of a page handed to the extractors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from bs4 import BeautifulSoup

from ..core.models import PageLocation
from .dom import parse_html


@dataclass
class PageSnapshot:
    """Live-state HTML of a document plus probed in-page state objects."""

    location: PageLocation
    title: str
    document: BeautifulSoup
    page_state: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_html(
        cls,
        html: str,
        url: str,
        *,
        title: str = "",
        page_state: Optional[Dict[str, Any]] = None,
    ) -> "PageSnapshot":
        return cls(
            location=PageLocation.from_url(url),
            title=title or "",
            document=parse_html(html),
            page_state=dict(page_state or {}),
        )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PageSnapshot":
        """Builds a snapshot from the dictionary returned by the page script."""

        state = payload.get("state")
        return cls.from_html(
            payload.get("html") or "",
            payload.get("url") or "",
            title=payload.get("title") or "",
            page_state=state if isinstance(state, dict) else None,
        )

    def state(self, path: str) -> Any:
        return self.page_state.get(path)
