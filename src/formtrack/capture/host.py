"""Boundary between the capture engine and the page it observes."""

from __future__ import annotations

from typing import Protocol, Sequence

from ..core.models import PageLocation
from .snapshot import PageSnapshot


class HostPage(Protocol):
    """What the engine needs from a live document.

    ``snapshot`` returns the document with live control state written back as
    attributes; elements matched by ``token_selectors`` carry their control
    token, and each dotted path of ``state_paths`` is resolved against
    ``window``. ``instrument_control`` attaches the click and press listeners
    to the node behind a token and reports whether the node still exists.
    """

    def location(self) -> PageLocation: ...

    def snapshot(
        self,
        *,
        token_selectors: Sequence[str] = (),
        state_paths: Sequence[str] = (),
    ) -> PageSnapshot: ...

    def instrument_control(self, token: str) -> bool: ...

    def title(self) -> str: ...
