"""Observation of the page's outgoing fetch and XHR calls.

The interceptor is a decorator over the page's request primitive: the wrapped
callable always delegates to the original and hands back its result
untouched. Observation happens before delegation and can never prevent it.
"""

from __future__ import annotations

import functools
import json
import logging
import re
from dataclasses import dataclass, field
from email.parser import BytesParser
from email.policy import HTTP
from typing import Any, Callable, Iterable, List, Optional, Tuple, TypeVar, Union
from urllib.parse import parse_qsl

from ..core.models import FieldMapping, NetworkRequestClassification
from .fields import FieldAccumulator, is_sensitive_key
from .providers import classify_request_url

logger = logging.getLogger(__name__)

FETCH = "fetch"
XHR = "xhr"
INTERCEPTED_PRIMITIVES = frozenset({FETCH, XHR})
INTERCEPTED_METHODS = frozenset({"POST", "PUT"})
ENTRY_PREFIX = re.compile(r"^entry[._]")

Body = Union[bytes, str, None]
Pairs = List[Tuple[str, Any]]
T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class InterceptedCall:
    """One call made through a wrapped request primitive."""

    primitive: str
    method: str
    url: str
    body: Body = None
    content_type: str = ""
    origin: Any = field(default=None, compare=False, repr=False)


def _body_bytes(body: Body) -> bytes:
    if body is None:
        return b""
    if isinstance(body, bytes):
        return body
    return body.encode("utf-8")


def _body_text(body: Body) -> str:
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    return body.decode("utf-8", errors="replace")


def classify_call(call: InterceptedCall) -> Optional[NetworkRequestClassification]:
    """Classifies POST/PUT calls carrying a body; ``None`` for anything else."""

    method = (call.method or "").upper()
    if method not in INTERCEPTED_METHODS or not call.body:
        return None
    return NetworkRequestClassification(
        primitive=call.primitive,
        method=method,
        url=call.url or "",
        body=call.body,
        content_type=call.content_type or "",
        provider=classify_request_url(call.url or ""),
    )


# ----------------------------------------------------------------------
# Body parsers, tried in order
# ----------------------------------------------------------------------
def _multipart_content_type(raw: bytes, content_type: str) -> Optional[str]:
    if "multipart/" in content_type.lower() and "boundary=" in content_type.lower():
        return content_type
    if raw.startswith(b"--"):
        first_line = raw.split(b"\r\n", 1)[0].split(b"\n", 1)[0]
        boundary = first_line[2:].strip().decode("latin-1")
        if boundary:
            return f'multipart/form-data; boundary="{boundary}"'
    return None


def parse_multipart(body: Body, content_type: str = "") -> Optional[Pairs]:
    raw = _body_bytes(body)
    header = _multipart_content_type(raw, content_type or "")
    if header is None:
        return None

    message = BytesParser(policy=HTTP).parsebytes(
        b"Content-Type: " + header.encode("latin-1") + b"\r\n\r\n" + raw
    )
    if not message.is_multipart():
        return None

    pairs: Pairs = []
    for part in message.iter_parts():
        name = part.get_param("name", header="content-disposition")
        if not name:
            continue
        filename = part.get_filename()
        if filename:
            pairs.append((str(name), f"{filename} (file)"))
            continue
        payload = part.get_payload(decode=True) or b""
        charset = part.get_content_charset() or "utf-8"
        pairs.append((str(name), payload.decode(charset, errors="replace")))
    return pairs


def parse_json(body: Body, content_type: str = "") -> Optional[Pairs]:
    try:
        parsed = json.loads(_body_text(body))
    except (TypeError, ValueError):
        return None
    if not isinstance(parsed, dict):
        return []
    return list(parsed.items())


def parse_urlencoded(body: Body, content_type: str = "") -> Optional[Pairs]:
    text = _body_text(body).strip()
    if "=" not in text:
        return None
    return parse_qsl(text, keep_blank_values=False)


BODY_PARSERS: Tuple[Callable[[Body, str], Optional[Pairs]], ...] = (
    parse_multipart,
    parse_json,
    parse_urlencoded,
)


def normalize_key(key: Any) -> Optional[str]:
    """Drops password keys and reduces ``entry.<id>`` to ``<id>``."""

    if not isinstance(key, str) or not key or is_sensitive_key(key):
        return None
    return ENTRY_PREFIX.sub("", key) or None


def _fields_from_pairs(pairs: Iterable[Tuple[str, Any]]) -> FieldMapping:
    fields = FieldAccumulator()
    for key, value in pairs:
        normalized = normalize_key(key)
        if normalized is None:
            continue
        if isinstance(value, (list, tuple)):
            for item in value:
                fields.add(normalized, item)
        else:
            fields.add(normalized, value)
    return fields.as_mapping()


def parse_request_body(body: Body, content_type: str = "") -> FieldMapping:
    """Parses a request body as multipart, JSON, then URL-encoded data."""

    if not body:
        return {}
    for parser in BODY_PARSERS:
        try:
            pairs = parser(body, content_type)
        except Exception:
            logger.debug("%s could not read the body", parser.__name__, exc_info=True)
            continue
        if pairs is not None:
            return _fields_from_pairs(pairs)
    return {}


# ----------------------------------------------------------------------
# Interceptor
# ----------------------------------------------------------------------
CallObserver = Callable[[InterceptedCall, NetworkRequestClassification, FieldMapping], None]


class NetworkInterceptor:
    """Classifies intercepted calls and reports them to ``on_classified``."""

    def __init__(self, on_classified: CallObserver) -> None:
        self.on_classified = on_classified

    def observe(self, call: InterceptedCall) -> Optional[NetworkRequestClassification]:
        if call.primitive not in INTERCEPTED_PRIMITIVES:
            return None

        classification = classify_call(call)
        if classification is None:
            return None

        fields: FieldMapping = {}
        if classification.is_provider_endpoint or call.primitive == FETCH:
            fields = parse_request_body(call.body, call.content_type)

        self.on_classified(call, classification, fields)
        return classification

    def wrap(self, original: Callable[..., T]) -> Callable[..., T]:
        """Returns ``original`` decorated with observation of its first argument."""

        @functools.wraps(original)
        def intercepted(call: InterceptedCall, *args: Any, **kwargs: Any) -> T:
            try:
                self.observe(call)
            except Exception:
                logger.debug("Request observation failed for %s", getattr(call, "url", "?"), exc_info=True)
            return original(call, *args, **kwargs)

        return intercepted
