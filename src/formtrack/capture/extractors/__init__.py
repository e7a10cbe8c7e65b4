"""Extractors for hosted form providers."""

from __future__ import annotations

from typing import Dict

from ...core.models import ProviderKind
from .base import ProviderExtractor
from .clickup import ClickUpFormsExtractor
from .google import GoogleFormsExtractor
from .microsoft import MicrosoftFormsExtractor


def default_extractors() -> Dict[ProviderKind, ProviderExtractor]:
    return {
        ProviderKind.GOOGLE_FORMS: GoogleFormsExtractor(),
        ProviderKind.MICROSOFT_FORMS: MicrosoftFormsExtractor(),
        ProviderKind.CLICKUP_FORMS: ClickUpFormsExtractor(),
    }


__all__ = [
    "ClickUpFormsExtractor",
    "GoogleFormsExtractor",
    "MicrosoftFormsExtractor",
    "ProviderExtractor",
    "default_extractors",
]
