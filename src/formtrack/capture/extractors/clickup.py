"""ClickUp Forms extractor."""

from __future__ import annotations

from typing import Optional

from bs4 import Tag

from ...core.models import ProviderKind
from ..dom import attribute, closest
from .base import ProviderExtractor

FIELD_ID_ATTRIBUTE = "data-field-id"


class ClickUpFormsExtractor(ProviderExtractor):
    provider = ProviderKind.CLICKUP_FORMS
    default_title = "ClickUp Form"
    placeholder_prefix = "Field"
    container_selector = (
        '[data-field-id], [class*="form-field"], [class*="FormField"], [class*="cu-form__field"]'
    )
    heading_selector = 'label, [class*="label"], [class*="title"], [role="heading"]'
    label_attributes = ("data-label",)
    state_paths = ("__CU_FORM_STATE__.answers",)

    def identifier(self, element: Tag) -> Optional[str]:
        # The field id sits on the input or on its wrapper depending on the widget.
        own = attribute(element, FIELD_ID_ATTRIBUTE)
        if own:
            return own
        wrapper = closest(element, f"[{FIELD_ID_ATTRIBUTE}]")
        return attribute(wrapper, FIELD_ID_ATTRIBUTE) if wrapper is not None else None
