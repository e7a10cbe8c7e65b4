"""Common scan algorithm shared by the hosted form provider extractors.

Hosted form products do not expose a native form boundary, so each extractor
scans the whole document, resolves a question label for every control through
an ordered chain of resolvers and stores values under a stable key. Subclasses
only describe the provider's DOM vocabulary.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, ClassVar, Mapping, Optional, Sequence, Tuple

from bs4 import Tag

from ...core.models import FieldMapping, ProviderKind
from ..dom import (
    CHOICE_INPUT_TYPES,
    TEXT_INPUT_TYPES,
    attribute,
    closest,
    control_type,
    explicit_label,
    input_value,
    is_checked,
    labelledby_text,
    role,
    select_all,
    selected_values,
    tag_name,
    text_of,
)
from ..fields import FieldAccumulator, first_non_empty
from ..snapshot import PageSnapshot

logger = logging.getLogger(__name__)

CONTROL_SELECTORS: Tuple[str, ...] = (
    "input",
    "textarea",
    "select",
    '[role="textbox"]',
    '[role="combobox"]',
)

REQUIRED_MARKER = re.compile(r"\s*\*\s*$")

LabelResolver = Callable[[Tag, int], Optional[str]]


class ProviderExtractor:
    """Scrapes a hosted form document into a field mapping."""

    provider: ClassVar[ProviderKind]
    default_title: ClassVar[str] = "Untitled Page"
    placeholder_prefix: ClassVar[str] = "Question"
    extra_control_selectors: ClassVar[Tuple[str, ...]] = ()
    container_selector: ClassVar[str] = ""
    heading_selector: ClassVar[str] = 'label, [role="heading"]'
    label_attributes: ClassVar[Tuple[str, ...]] = ()
    identifier_attribute: ClassVar[Optional[str]] = None
    state_paths: ClassVar[Tuple[str, ...]] = ()

    def __init__(self) -> None:
        self.label_resolvers: Sequence[LabelResolver] = (
            self._container_heading,
            lambda element, _index: explicit_label(element),
            lambda element, _index: attribute(element, "aria-label"),
            lambda element, _index: labelledby_text(element),
            lambda element, _index: attribute(element, "placeholder"),
            self._provider_label_attribute,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def extract(self, snapshot: PageSnapshot) -> FieldMapping:
        fields = FieldAccumulator()
        for index, element in enumerate(self.controls(snapshot)):
            try:
                self._collect(element, index, fields)
            except Exception:
                logger.debug("%s: skipping control #%d", self.provider.value, index, exc_info=True)

        self._merge_page_state(snapshot, fields)
        return fields.as_mapping()

    def controls(self, snapshot: PageSnapshot) -> list[Tag]:
        return select_all(snapshot.document, CONTROL_SELECTORS + self.extra_control_selectors)

    def title_for(self, snapshot: PageSnapshot) -> str:
        return snapshot.title or self.default_title

    def positional_label(self, index: int) -> str:
        return f"{self.placeholder_prefix} {index + 1}"

    def question_label(self, element: Tag, index: int) -> str:
        label = first_non_empty(self.label_resolvers, element, index)
        label = REQUIRED_MARKER.sub("", label or "").strip()
        return label or self.positional_label(index)

    def identifier(self, element: Tag) -> Optional[str]:
        if not self.identifier_attribute:
            return None
        return attribute(element, self.identifier_attribute)

    def field_key(self, element: Tag, label: str) -> str:
        return attribute(element, "name") or self.identifier(element) or label

    def choice_key(self, element: Tag, label: str, positional: bool) -> str:
        """Key for checkbox and radio groups; distinct questions never share one."""

        name = attribute(element, "name")
        if name:
            return name
        if not positional:
            return label
        return self.identifier(element) or label

    # ------------------------------------------------------------------
    # Label resolvers
    # ------------------------------------------------------------------
    def _container_heading(self, element: Tag, _index: int) -> Optional[str]:
        if not self.container_selector:
            return None
        container = closest(element, self.container_selector)
        if container is None:
            return None
        try:
            heading = container.select_one(self.heading_selector)
        except Exception:
            return None
        return text_of(heading) or None

    def _provider_label_attribute(self, element: Tag, _index: int) -> Optional[str]:
        for name in self.label_attributes:
            value = attribute(element, name)
            if value and value.strip():
                return value
        return None

    # ------------------------------------------------------------------
    # Value collection
    # ------------------------------------------------------------------
    def _collect(self, element: Tag, index: int, fields: FieldAccumulator) -> None:
        kind = control_type(element)
        if kind == "password":
            return

        label = self.question_label(element, index)
        positional = label == self.positional_label(index)

        if kind in CHOICE_INPUT_TYPES or role(element) in CHOICE_INPUT_TYPES:
            if is_checked(element):
                fields.append(self.choice_key(element, label, positional), self.choice_value(element))
            return

        value = self.control_value(element, kind)
        if value is None or value == "":
            return

        key = self.field_key(element, label) if positional else label
        fields.add(key, value)

    def choice_value(self, element: Tag) -> str:
        return (
            attribute(element, "value")
            or attribute(element, "data-value")
            or attribute(element, "aria-label")
            or "selected"
        )

    def control_value(self, element: Tag, kind: str) -> Optional[str]:
        name = tag_name(element)
        element_role = role(element)

        if name == "input":
            if kind in TEXT_INPUT_TYPES:
                return attribute(element, "value")
            return None
        if name == "textarea" or element_role == "textbox":
            return input_value(element)
        if name == "select":
            values = selected_values(element)
            return values[0] if values else None
        if element_role == "combobox":
            return attribute(element, "value") or attribute(element, "aria-valuetext")
        return None

    # ------------------------------------------------------------------
    # Provider state objects
    # ------------------------------------------------------------------
    def _merge_page_state(self, snapshot: PageSnapshot, fields: FieldAccumulator) -> None:
        for path in self.state_paths:
            try:
                recovered = snapshot.state(path)
                if isinstance(recovered, Mapping):
                    fields.update(recovered)
            except Exception:
                logger.debug("%s: ignoring state object %s", self.provider.value, path, exc_info=True)

