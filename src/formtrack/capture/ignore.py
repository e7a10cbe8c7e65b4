"""Veto capture on sensitive pages and form targets."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Pattern, Tuple

DEFAULT_IGNORE_KEYWORDS: Tuple[str, ...] = (
    "login",
    "signin",
    "password",
    "auth",
    "bank",
    "credit",
    "payment",
)

DEFAULT_IGNORE_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(keyword, re.IGNORECASE) for keyword in DEFAULT_IGNORE_KEYWORDS
)


@dataclass(frozen=True, slots=True)
class IgnorePolicy:
    """Fixed, ordered pattern set evaluated against page and action URLs."""

    patterns: Tuple[Pattern[str], ...] = field(default=DEFAULT_IGNORE_PATTERNS)

    def should_ignore(self, page_url: Optional[str], action_url: Optional[str]) -> bool:
        return self.matching_pattern(page_url, action_url) is not None

    def matching_pattern(self, page_url: Optional[str], action_url: Optional[str]) -> Optional[str]:
        """Returns the first pattern that vetoes either URL."""

        page_value = (page_url or "").lower()
        action_value = (action_url or "").lower()

        for pattern in self.patterns:
            if pattern.search(page_value) or pattern.search(action_value):
                return pattern.pattern
        return None


def should_ignore(page_url: Optional[str], action_url: Optional[str]) -> bool:
    return IgnorePolicy().should_ignore(page_url, action_url)
