"""Centralized imports for the formtrack package used in tests."""

from formtrack.capture.context import ProviderContext, WatchedControlRegistry  # type: ignore[import]
from formtrack.capture.dispatch import (  # type: ignore[import]
    MESSAGE_TYPE,
    Dispatcher,
    SubmissionBuilder,
)
from formtrack.capture.engine import CaptureEngine  # type: ignore[import]
from formtrack.capture.extractors import (  # type: ignore[import]
    ClickUpFormsExtractor,
    GoogleFormsExtractor,
    MicrosoftFormsExtractor,
)
from formtrack.capture.generic import GenericExtractor, find_form  # type: ignore[import]
from formtrack.capture.ignore import IgnorePolicy, should_ignore  # type: ignore[import]
from formtrack.capture.network import (  # type: ignore[import]
    InterceptedCall,
    NetworkInterceptor,
    classify_call,
    parse_request_body,
)
from formtrack.capture.providers import classify, classify_request_url  # type: ignore[import]
from formtrack.capture.retry import RetryPolicy, RetryScheduler  # type: ignore[import]
from formtrack.capture.salvage import salvage_fields  # type: ignore[import]
from formtrack.capture.snapshot import PageSnapshot  # type: ignore[import]
from formtrack.capture.watcher import SubmitTriggerWatcher  # type: ignore[import]
from formtrack.core.config import CaptureConfig, load_configuration  # type: ignore[import]
from formtrack.core.models import (  # type: ignore[import]
    PageLocation,
    ProviderKind,
    Submission,
    SubmissionSource,
)
from formtrack.core.report import CaptureReport  # type: ignore[import]
from formtrack.runtime.channels import (  # type: ignore[import]
    ConsoleChannel,
    FanoutChannel,
    ReportChannel,
    WebhookChannel,
)
from formtrack.runtime.scheduler import ManualClock, TimerQueue  # type: ignore[import]

__all__ = [
    "CaptureConfig",
    "CaptureEngine",
    "CaptureReport",
    "ClickUpFormsExtractor",
    "ConsoleChannel",
    "Dispatcher",
    "FanoutChannel",
    "GenericExtractor",
    "GoogleFormsExtractor",
    "IgnorePolicy",
    "InterceptedCall",
    "MESSAGE_TYPE",
    "ManualClock",
    "MicrosoftFormsExtractor",
    "NetworkInterceptor",
    "PageLocation",
    "PageSnapshot",
    "ProviderContext",
    "ProviderKind",
    "ReportChannel",
    "RetryPolicy",
    "RetryScheduler",
    "Submission",
    "SubmissionBuilder",
    "SubmissionSource",
    "SubmitTriggerWatcher",
    "TimerQueue",
    "WatchedControlRegistry",
    "WebhookChannel",
    "classify",
    "classify_call",
    "classify_request_url",
    "find_form",
    "load_configuration",
    "parse_request_body",
    "salvage_fields",
    "should_ignore",
]
