from tests.helpers.fakes import FakeHost
from tests.helpers.formtrack_imports import (
    ManualClock,
    ProviderContext,
    SubmitTriggerWatcher,
    TimerQueue,
)

GOOGLE_URL = "https://docs.google.com/forms/d/e/abc/viewform"

GOOGLE_PAGE = """
<div role="list"><div data-item-id="1"><input type="text" value="x"></div></div>
<div role="button" jsname="M2UYVd" id="submit-btn"><span>Submit</span></div>
<div role="button" id="clear"><span>Clear form</span></div>
<button id="send-btn">Send it</button>
"""


def _watcher(url=GOOGLE_URL, html=GOOGLE_PAGE):
    timers = TimerQueue(ManualClock())
    host = FakeHost(url, html)
    context = ProviderContext()
    watcher = SubmitTriggerWatcher(host, timers, context, rescan_interval=1.0)
    return watcher, host, timers, context


def test_rescan_instruments_selector_and_text_matches():
    watcher, host, _, context = _watcher()

    instrumented = watcher.rescan()

    assert instrumented == ["tok-submit-btn", "tok-send-btn"]
    assert host.instrumented == ["tok-submit-btn", "tok-send-btn"]
    assert "tok-submit-btn" in context.registry
    assert "tok-clear" not in context.registry


def test_controls_are_instrumented_once():
    watcher, host, _, context = _watcher()

    watcher.rescan()
    watcher.rescan()
    watcher.rescan()

    assert host.instrumented == ["tok-submit-btn", "tok-send-btn"]
    assert len(context.registry) == 2


def test_mutation_notifications_are_coalesced():
    watcher, host, timers, _ = _watcher()

    watcher.notify_mutation()
    watcher.notify_mutation()
    watcher.notify_mutation()
    timers.run_pending()

    assert host.snapshots == 1


def test_late_rendered_controls_are_found_after_mutation():
    watcher, host, timers, _ = _watcher(html='<div role="list"></div>')
    watcher.start()
    assert host.instrumented == []

    host.html = '<div role="list"></div><div role="button" aria-label="Submit form" id="late"></div>'
    watcher.notify_mutation()
    timers.run_pending()

    assert host.instrumented == ["tok-late"]


def test_periodic_rescan_runs_until_stopped():
    watcher, host, timers, _ = _watcher()

    watcher.start()
    timers.advance(3.0)
    assert host.snapshots == 4

    watcher.stop()
    timers.advance(3.0)
    assert host.snapshots == 4
    assert watcher.running is False


def test_native_pages_are_not_scanned():
    watcher, host, timers, context = _watcher(url="https://example.com/contact", html="<button>Submit</button>")

    watcher.start()
    timers.advance(3.0)

    assert host.snapshots == 0
    assert host.instrumented == []
    assert context.provider.value == "native"
