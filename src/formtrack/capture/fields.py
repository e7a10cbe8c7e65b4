"""Field mapping accumulation shared by every extractor."""

from __future__ import annotations

import json
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence, TypeVar

from ..core.models import FieldMapping, FieldValue

T = TypeVar("T")

SENSITIVE_KEY_MARKER = "password"


def is_sensitive_key(key: str) -> bool:
    return SENSITIVE_KEY_MARKER in (key or "").lower()


def _scalar_text(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, (int, float)):
        return str(raw)
    if isinstance(raw, str):
        return raw if raw != "" else None
    try:
        return json.dumps(raw, ensure_ascii=False, sort_keys=True)
    except (TypeError, ValueError):
        return str(raw) or None


def normalize_value(raw: Any) -> Optional[FieldValue]:
    """Coerces arbitrary values into ``str`` or a list of ``str``.

    Empty strings, ``None`` and empty sequences yield ``None`` so callers can
    drop the entry altogether.
    """

    if isinstance(raw, (list, tuple)):
        items = [text for text in (_scalar_text(item) for item in raw) if text is not None]
        return items or None
    return _scalar_text(raw)


def first_non_empty(resolvers: Sequence[Callable[..., Optional[T]]], *args: Any) -> Optional[T]:
    """Runs resolvers in order and returns the first truthy result.

    A resolver that raises is treated as having found nothing.
    """

    for resolver in resolvers:
        try:
            value = resolver(*args)
        except Exception:
            continue
        if value:
            return value
    return None


class FieldAccumulator:
    """Insertion-ordered mapping that merges repeated keys into lists."""

    def __init__(self) -> None:
        self._fields: FieldMapping = {}

    def __len__(self) -> int:
        return len(self._fields)

    def __bool__(self) -> bool:
        return bool(self._fields)

    def __contains__(self, key: object) -> bool:
        return key in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def add(self, key: Optional[str], value: Any) -> bool:
        """Stores ``value``; a repeated key turns the entry into a list."""

        text = _scalar_text(value)
        if not key or text is None:
            return False

        current = self._fields.get(key)
        if current is None:
            self._fields[key] = text
        elif isinstance(current, list):
            current.append(text)
        else:
            self._fields[key] = [current, text]
        return True

    def append(self, key: Optional[str], value: Any) -> bool:
        """Stores ``value`` in a list entry even for the first occurrence."""

        text = _scalar_text(value)
        if not key or text is None:
            return False

        current = self._fields.get(key)
        if current is None:
            self._fields[key] = [text]
        elif isinstance(current, list):
            current.append(text)
        else:
            self._fields[key] = [current, text]
        return True

    def update(self, mapping: Mapping[str, Any]) -> int:
        """Overwrites entries from ``mapping``; sensitive keys are skipped."""

        merged = 0
        for key, raw in mapping.items():
            if not isinstance(key, str) or not key or is_sensitive_key(key):
                continue
            value = normalize_value(raw)
            if value is None:
                continue
            self._fields[key] = value
            merged += 1
        return merged

    def as_mapping(self) -> FieldMapping:
        return {
            key: list(value) if isinstance(value, list) else value
            for key, value in self._fields.items()
        }
