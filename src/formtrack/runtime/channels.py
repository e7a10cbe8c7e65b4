"""Delivery channels consuming ``FORM_SUBMISSION`` messages."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence

import requests

from ..capture.dispatch import MESSAGE_TYPE, DeliveryChannel
from ..core.models import Submission
from ..core.report import CaptureReport

logger = logging.getLogger(__name__)

Message = Dict[str, Any]


def submission_from_message(message: Message) -> Optional[Submission]:
    if not isinstance(message, dict) or message.get("type") != MESSAGE_TYPE:
        return None
    data = message.get("data")
    if not isinstance(data, dict):
        return None
    return Submission.from_dict(data)


@dataclass
class ReportChannel:
    """Collects submissions into a report, saving it after every arrival."""

    report: CaptureReport
    path: Optional[Path] = None

    def send(self, message: Message) -> None:
        submission = submission_from_message(message)
        if submission is None:
            return
        self.report.add(submission)
        if self.path is not None:
            self.report.save(self.path)


@dataclass
class ConsoleChannel:
    """Prints a one-line summary per submission."""

    printer: Callable[[str], None] = print

    def send(self, message: Message) -> None:
        submission = submission_from_message(message)
        if submission is None:
            return
        self.printer(
            f"[+] {submission.source.value}: {len(submission.fields)} field(s) "
            f"from {submission.url} -> {submission.action}"
        )


@dataclass
class FanoutChannel:
    """Forwards each message to every channel; one failure does not stop the rest."""

    channels: Sequence[DeliveryChannel] = field(default_factory=list)

    def send(self, message: Message) -> None:
        for channel in self.channels:
            try:
                channel.send(message)
            except Exception:
                logger.warning("Channel %s failed to deliver a submission", type(channel).__name__, exc_info=True)


@dataclass
class WebhookChannel:
    """POSTs messages as JSON from a background worker thread.

    ``send`` only enqueues, so the capture loop never waits on the network.
    """

    url: str
    timeout: float = 10.0
    session: requests.Session = field(default_factory=requests.Session)
    _queue: "queue.Queue[Optional[Message]]" = field(default_factory=queue.Queue, repr=False)
    _thread: threading.Thread | None = field(default=None, repr=False)
    delivered: int = 0
    failed: int = 0

    def start(self) -> None:
        if self._thread:
            return
        self._thread = threading.Thread(target=self._work, name="formtrack-webhook", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        if not self._thread:
            return
        self._queue.put(None)
        self._thread.join(timeout=timeout)
        self._thread = None

    def send(self, message: Message) -> None:
        if not self._thread:
            self.start()
        self._queue.put(message)

    def post(self, message: Message) -> bool:
        try:
            response = self.session.post(self.url, json=message, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            self.failed += 1
            logger.warning("Webhook delivery to %s failed: %s", self.url, exc)
            return False
        self.delivered += 1
        return True

    def _work(self) -> None:
        while True:
            message = self._queue.get()
            try:
                if message is None:
                    return
                self.post(message)
            finally:
                self._queue.task_done()

    def flush(self) -> None:
        """Blocks until every queued message has been attempted."""

        self._queue.join()

