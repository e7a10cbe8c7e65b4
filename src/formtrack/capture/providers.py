"""Provider classification for pages and outgoing requests."""

from __future__ import annotations

from typing import Callable, Optional, Sequence, Tuple

from ..core.models import PageLocation, ProviderKind

GOOGLE_FORMS_HOST = "docs.google.com"
MICROSOFT_FORMS_HOSTS = (
    "forms.office.com",
    "forms.microsoft.com",
    "forms.office365.com",
)
CLICKUP_FORMS_HOSTS = ("forms.clickup.com",)

ProviderRule = Callable[[str, str], Optional[ProviderKind]]

# URL fragments that identify a provider's submission endpoint. Matching is a
# plain, case-sensitive substring test.
REQUEST_URL_RULES: Tuple[Tuple[ProviderKind, Tuple[str, ...]], ...] = (
    (
        ProviderKind.GOOGLE_FORMS,
        ("forms/d/e/", "forms/u/0/d/e/", "/formResponse"),
    ),
    (
        ProviderKind.MICROSOFT_FORMS,
        MICROSOFT_FORMS_HOSTS + ("/api/form/", "/api/Response", "/SubmitForm"),
    ),
    (
        ProviderKind.CLICKUP_FORMS,
        CLICKUP_FORMS_HOSTS + ("/v1/form/", "/form/submit"),
    ),
)


def _host_matches(hostname: str, candidates: Sequence[str]) -> bool:
    host = (hostname or "").lower().rstrip(".")
    return any(host == candidate or host.endswith(f".{candidate}") for candidate in candidates)


def _google_forms_rule(hostname: str, pathname: str) -> Optional[ProviderKind]:
    if _host_matches(hostname, (GOOGLE_FORMS_HOST,)) and "/forms/" in (pathname or ""):
        return ProviderKind.GOOGLE_FORMS
    return None


def _microsoft_forms_rule(hostname: str, pathname: str) -> Optional[ProviderKind]:
    if _host_matches(hostname, MICROSOFT_FORMS_HOSTS):
        return ProviderKind.MICROSOFT_FORMS
    return None


def _clickup_forms_rule(hostname: str, pathname: str) -> Optional[ProviderKind]:
    if _host_matches(hostname, CLICKUP_FORMS_HOSTS):
        return ProviderKind.CLICKUP_FORMS
    return None


PROVIDER_RULES: Tuple[ProviderRule, ...] = (
    _google_forms_rule,
    _microsoft_forms_rule,
    _clickup_forms_rule,
)


def classify(hostname: str, pathname: str) -> ProviderKind:
    """Returns the provider governing a page, defaulting to ``NATIVE``."""

    for rule in PROVIDER_RULES:
        provider = rule(hostname, pathname)
        if provider is not None:
            return provider
    return ProviderKind.NATIVE


def classify_location(location: PageLocation) -> ProviderKind:
    return classify(location.hostname, location.pathname)


def classify_request_url(url: str) -> Optional[ProviderKind]:
    """Maps a request URL to the provider whose endpoint it targets."""

    if not url:
        return None
    for provider, fragments in REQUEST_URL_RULES:
        if any(fragment in url for fragment in fragments):
            return provider
    return None
