"""Field extraction for native ``<form>`` elements."""

from __future__ import annotations

import logging
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from ..core.models import FieldMapping
from .dom import (
    CHOICE_INPUT_TYPES,
    attribute,
    control_type,
    file_count,
    input_value,
    is_button_like,
    is_checked,
    is_disabled,
    parse_html,
    selected_values,
)
from .fields import FieldAccumulator

logger = logging.getLogger(__name__)

FORM_CONTROL_TAGS = ("input", "select", "textarea", "button")


def form_controls(form: Tag) -> List[Tag]:
    """Listed controls of ``form`` in document order (``form.elements``)."""

    return form.find_all(FORM_CONTROL_TAGS)


def _collect_control(element: Tag, fields: FieldAccumulator) -> None:
    name = attribute(element, "name")
    if not name:
        return

    kind = control_type(element)
    if kind == "password" or is_disabled(element) or is_button_like(element):
        return

    if kind in CHOICE_INPUT_TYPES:
        if is_checked(element):
            fields.add(name, attribute(element, "value") or "checked")
        return

    if kind == "file":
        count = file_count(element)
        if count > 0:
            fields.add(name, f"{count} file(s) selected")
        return

    if kind.startswith("select"):
        for value in selected_values(element):
            fields.add(name, value)
        return

    fields.add(name, input_value(element))


def extract_form_fields(form: Tag) -> FieldMapping:
    """Reads a form's controls into a field mapping, possibly empty."""

    fields = FieldAccumulator()
    for element in form_controls(form):
        try:
            _collect_control(element, fields)
        except Exception:
            logger.debug("Skipping unreadable control %s", element.name, exc_info=True)
    return fields.as_mapping()


def find_form(html: str) -> Optional[Tag]:
    """First ``<form>`` in a serialized form snapshot."""

    soup: BeautifulSoup = parse_html(html)
    return soup.find("form")


class GenericExtractor:
    """Native form extractor; stateless and safe to call repeatedly."""

    def extract(self, form: Tag) -> FieldMapping:
        return extract_form_fields(form)

    def extract_html(self, html: str) -> FieldMapping:
        form = find_form(html)
        if form is None:
            return {}
        return extract_form_fields(form)
