"""Microsoft Forms extractor."""

from __future__ import annotations

from ...core.models import ProviderKind
from .base import ProviderExtractor


class MicrosoftFormsExtractor(ProviderExtractor):
    provider = ProviderKind.MICROSOFT_FORMS
    default_title = "Microsoft Form"
    placeholder_prefix = "Question"
    container_selector = (
        '[data-automation-id="questionItem"], .office-form-question-element, '
        '[class*="QuestionContainer"], [class*="question-item"]'
    )
    heading_selector = (
        '[data-automation-id="questionTitle"], label, [role="heading"], '
        '[class*="QuestionTitle"], [class*="questionTitle"]'
    )
    label_attributes = ("title",)
    identifier_attribute = "data-automation-id"
    state_paths = ("__MSF_DATACONTEXT.responseData",)
