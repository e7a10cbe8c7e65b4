"""Shared data structures used across the capture engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse

FieldValue = Union[str, List[str]]
FieldMapping = Dict[str, FieldValue]


class SubmissionSource(str, Enum):
    """Where a submission record was produced."""

    NATIVE = "native"
    GOOGLE_FORMS = "google-forms"
    MICROSOFT_FORMS = "microsoft-forms"
    CLICKUP_FORMS = "clickup-forms"
    FETCH_GENERIC = "fetch-generic"


class ProviderKind(str, Enum):
    """Form product governing the current page."""

    NATIVE = "native"
    GOOGLE_FORMS = "google-forms"
    MICROSOFT_FORMS = "microsoft-forms"
    CLICKUP_FORMS = "clickup-forms"

    @property
    def source(self) -> SubmissionSource:
        return SubmissionSource(self.value)

    @property
    def is_hosted(self) -> bool:
        return self is not ProviderKind.NATIVE


@dataclass(frozen=True, slots=True)
class PageLocation:
    """The parts of ``window.location`` the engine cares about."""

    href: str
    hostname: str
    pathname: str

    @classmethod
    def from_url(cls, url: str) -> "PageLocation":
        try:
            parsed = urlparse(url or "")
        except ValueError:
            return cls(href=url or "", hostname="", pathname="")
        return cls(
            href=url or "",
            hostname=(parsed.hostname or "").lower(),
            pathname=parsed.path or "/",
        )


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    current = moment or datetime.now(timezone.utc)
    return current.isoformat().replace("+00:00", "Z")


@dataclass
class Submission:
    """Canonical record describing one captured form event."""

    url: str
    action: str
    timestamp: str
    title: str
    fields: FieldMapping = field(default_factory=dict)
    source: SubmissionSource = SubmissionSource.NATIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "action": self.action,
            "timestamp": self.timestamp,
            "title": self.title,
            "fields": {
                key: list(value) if isinstance(value, list) else value
                for key, value in self.fields.items()
            },
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Submission":
        url = raw.get("url", "")
        return cls(
            url=url,
            action=raw.get("action") or url,
            timestamp=raw.get("timestamp", ""),
            title=raw.get("title", ""),
            fields=dict(raw.get("fields") or {}),
            source=SubmissionSource(raw.get("source", SubmissionSource.NATIVE.value)),
        )


@dataclass(frozen=True, slots=True)
class NetworkRequestClassification:
    """Per-call view of an intercepted request; computed and discarded."""

    primitive: str
    method: str
    url: str
    body: Union[bytes, str, None]
    content_type: str = ""
    provider: Optional[ProviderKind] = None

    @property
    def is_provider_endpoint(self) -> bool:
        return self.provider is not None

    @property
    def source(self) -> SubmissionSource:
        if self.provider is None:
            return SubmissionSource.FETCH_GENERIC
        return self.provider.source
