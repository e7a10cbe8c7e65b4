"""Read helpers over live-state HTML snapshots.

Snapshots carry the live state of every control as plain attributes (see
``browser/shim.py``), so the helpers below only read standard HTML:
``value``, ``checked``, ``selected``, ``disabled`` plus the file count
attribute written for ``<input type="file">``.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from bs4 import BeautifulSoup, Tag

TOKEN_ATTRIBUTE = "data-formtrack-token"
FILE_COUNT_ATTRIBUTE = "data-formtrack-files"

BUTTON_INPUT_TYPES = frozenset({"submit", "reset", "button", "image"})
CHOICE_INPUT_TYPES = frozenset({"checkbox", "radio"})
TEXT_INPUT_TYPES = frozenset(
    {
        "text",
        "email",
        "number",
        "date",
        "time",
        "tel",
        "url",
        "search",
        "datetime-local",
        "month",
        "week",
    }
)


def attribute(element: Tag, name: str) -> Optional[str]:
    value = element.get(name)
    if value is None:
        return None
    if isinstance(value, list):
        value = " ".join(value)
    return str(value)


def tag_name(element: Tag) -> str:
    return (element.name or "").lower()


def control_type(element: Tag) -> str:
    """Mirrors ``element.type``: inputs default to ``text``."""

    name = tag_name(element)
    if name == "input":
        return (attribute(element, "type") or "text").strip().lower() or "text"
    if name == "select":
        return "select-multiple" if element.has_attr("multiple") else "select-one"
    if name == "button":
        return (attribute(element, "type") or "submit").strip().lower()
    return name


def role(element: Tag) -> str:
    return (attribute(element, "role") or "").strip().lower()


def is_checked(element: Tag) -> bool:
    if element.has_attr("checked"):
        return True
    return (attribute(element, "aria-checked") or "").lower() == "true"


def is_disabled(element: Tag) -> bool:
    return element.has_attr("disabled")


def is_button_like(element: Tag) -> bool:
    name = tag_name(element)
    if name == "button":
        return True
    return name == "input" and control_type(element) in BUTTON_INPUT_TYPES


def clean_text(value: Optional[str]) -> str:
    return " ".join((value or "").split())


def text_of(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return clean_text(element.get_text(" ", strip=True))


def input_value(element: Tag) -> Optional[str]:
    """Current value of an input, textarea or ARIA textbox."""

    name = tag_name(element)
    if name == "textarea":
        return element.get_text()
    if name == "input":
        return attribute(element, "value")
    value = attribute(element, "value")
    if value is not None:
        return value
    return text_of(element) or None


def option_value(option: Tag) -> str:
    if option.has_attr("value"):
        return attribute(option, "value") or ""
    return clean_text(option.get_text())


def selected_values(select: Tag) -> List[str]:
    options = select.find_all("option")
    chosen = [option for option in options if option.has_attr("selected")]
    if not chosen and options and not select.has_attr("multiple"):
        chosen = [options[0]]
    if not select.has_attr("multiple"):
        chosen = chosen[:1]
    return [option_value(option) for option in chosen]


def file_count(element: Tag) -> int:
    raw = attribute(element, FILE_COUNT_ATTRIBUTE)
    try:
        return max(int(raw or 0), 0)
    except ValueError:
        return 0


def closest(element: Tag, selector: str) -> Optional[Tag]:
    """Nearest ancestor-or-self matching ``selector``."""

    try:
        return element.css.closest(selector)
    except Exception:
        return None


def document_of(element: Tag) -> Optional[Tag]:
    parent = element
    while parent.parent is not None:
        parent = parent.parent
    return parent


def explicit_label(element: Tag) -> Optional[str]:
    element_id = attribute(element, "id")
    root = document_of(element)
    if element_id and root is not None:
        label = root.find("label", attrs={"for": element_id})
        if label is not None:
            text = text_of(label)
            if text:
                return text
    wrapper = element.find_parent("label")
    if wrapper is not None:
        return text_of(wrapper) or None
    return None


def labelledby_text(element: Tag) -> Optional[str]:
    references = (attribute(element, "aria-labelledby") or "").split()
    root = document_of(element)
    if not references or root is None:
        return None
    pieces = [text_of(root.find(id=reference)) for reference in references]
    return clean_text(" ".join(piece for piece in pieces if piece)) or None


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def select_all(root: Tag, selectors: Iterable[str]) -> List[Tag]:
    """Document-order union of several selectors; invalid ones are skipped."""

    found: List[Tag] = []
    seen: set[int] = set()
    for selector in selectors:
        try:
            matches = root.select(selector)
        except Exception:
            continue
        for element in matches:
            if id(element) in seen:
                continue
            seen.add(id(element))
            found.append(element)
    return found
