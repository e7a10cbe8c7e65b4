"""Construction and hand-off of submission records."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Protocol

from ..core.models import FieldMapping, Submission, SubmissionSource, utc_timestamp

logger = logging.getLogger(__name__)

MESSAGE_TYPE = "FORM_SUBMISSION"
UNTITLED_PAGE = "Untitled Page"


class DeliveryChannel(Protocol):
    """Receives ``{"type": MESSAGE_TYPE, "data": <submission dict>}`` messages."""

    def send(self, message: Dict[str, Any]) -> None: ...


class SubmissionBuilder:
    """Stamps captured fields with page context and a UTC timestamp."""

    def __init__(self, timestamp: Callable[[], str] = utc_timestamp) -> None:
        self._timestamp = timestamp

    def build(
        self,
        *,
        url: str,
        action: Optional[str],
        title: Optional[str],
        fields: FieldMapping,
        source: SubmissionSource,
    ) -> Submission:
        return Submission(
            url=url,
            action=action or url,
            timestamp=self._timestamp(),
            title=title or UNTITLED_PAGE,
            fields=dict(fields),
            source=source,
        )


class Dispatcher:
    """Sends each submission to the delivery channel exactly once.

    Delivery is fire-and-forget: a failing channel is logged and otherwise
    ignored so that capture never disturbs the page.
    """

    def __init__(self, channel: DeliveryChannel) -> None:
        self.channel = channel
        self.dispatched = 0

    @staticmethod
    def message_for(submission: Submission) -> Dict[str, Any]:
        return {"type": MESSAGE_TYPE, "data": submission.to_dict()}

    def dispatch(self, submission: Submission) -> bool:
        try:
            self.channel.send(self.message_for(submission))
        except Exception:
            logger.debug("Delivery channel rejected submission for %s", submission.url, exc_info=True)
            return False
        self.dispatched += 1
        logger.info(
            "Captured %s submission from %s (%d field(s))",
            submission.source.value,
            submission.url,
            len(submission.fields),
        )
        return True
