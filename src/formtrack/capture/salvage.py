"""Last-resort field recovery once every extraction attempt came back empty."""

from __future__ import annotations

import logging

from bs4 import Tag

from ..core.models import FieldMapping
from .dom import (
    CHOICE_INPUT_TYPES,
    attribute,
    closest,
    control_type,
    is_button_like,
    is_checked,
    option_value,
    select_all,
    tag_name,
    text_of,
)
from .fields import FieldAccumulator
from .snapshot import PageSnapshot

logger = logging.getLogger(__name__)

SALVAGE_SELECTORS = (
    "input[value]",
    "textarea",
    "select option[selected]",
)


def _heading_for(element: Tag) -> str:
    container = closest(element, "[data-item-id]")
    if container is None:
        return ""
    return text_of(container.select_one('[role="heading"]'))


def _salvage_key(element: Tag, position: int) -> str:
    return (
        attribute(element, "name")
        or attribute(element, "aria-label")
        or _heading_for(element)
        or f"Field_{position}"
    )


def salvage_fields(snapshot: PageSnapshot) -> FieldMapping:
    """Reads every control that carries a value, keyed by the best name found."""

    fields = FieldAccumulator()
    for element in select_all(snapshot.document, SALVAGE_SELECTORS):
        try:
            name = tag_name(element)
            if name == "option":
                select = element.find_parent("select")
                if select is None:
                    continue
                value = option_value(element)
                key_source = select
            elif name == "textarea":
                value = element.get_text()
                key_source = element
            else:
                kind = control_type(element)
                if kind == "password" or kind == "file" or is_button_like(element):
                    continue
                if kind in CHOICE_INPUT_TYPES and not is_checked(element):
                    continue
                value = attribute(element, "value") or ""
                key_source = element

            if not value.strip():
                continue
            fields.add(_salvage_key(key_source, len(fields) + 1), value)
        except Exception:
            logger.debug("Salvage skipped an element", exc_info=True)
    return fields.as_mapping()
