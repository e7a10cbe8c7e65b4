"""Google Forms extractor."""

from __future__ import annotations

from typing import Optional

from bs4 import Tag

from ...core.models import ProviderKind
from ..dom import attribute, closest
from .base import ProviderExtractor

QUESTION_ITEM_SELECTOR = "[data-item-id]"


class GoogleFormsExtractor(ProviderExtractor):
    """Reads answers from the Google Forms viewer.

    Choice questions render as ARIA radios and checkboxes rather than native
    inputs, so those roles are scanned too. Answers recovered from the viewer's
    ``_gfp.response`` object (when the page exposes it) win over the DOM.
    """

    provider = ProviderKind.GOOGLE_FORMS
    default_title = "Google Form"
    placeholder_prefix = "Question"
    extra_control_selectors = ('[role="radio"]', '[role="checkbox"]')
    container_selector = (
        '[data-item-id], [role="listitem"], .freebirdFormviewerViewItemsItemItem, .Qr7Oae'
    )
    heading_selector = (
        '[role="heading"], .freebirdFormviewerViewItemsItemItemTitle, .M7eMe, '
        "label, .mdc-text-field__label"
    )
    state_paths = ("_gfp.response",)

    def identifier(self, element: Tag) -> Optional[str]:
        item = closest(element, QUESTION_ITEM_SELECTOR)
        if item is None:
            return None
        item_id = attribute(item, "data-item-id")
        return f"question_{item_id}" if item_id else None
