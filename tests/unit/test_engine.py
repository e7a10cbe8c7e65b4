from tests.helpers.fakes import FakeHost, RecordingChannel, fixed_timestamp
from tests.helpers.formtrack_imports import (
    MESSAGE_TYPE,
    CaptureEngine,
    Dispatcher,
    GoogleFormsExtractor,
    InterceptedCall,
    ManualClock,
    MicrosoftFormsExtractor,
    NetworkInterceptor,
    ProviderKind,
    SubmissionBuilder,
    TimerQueue,
)

GOOGLE_URL = "https://docs.google.com/forms/d/e/abc/viewform"
GOOGLE_PAGE = """
<div role="list">
  <div data-item-id="111">
    <div role="heading">Your name</div>
    <input type="text" value="Ada">
  </div>
</div>
<div role="button" jsname="M2UYVd" id="submit-btn"><span>Submit</span></div>
"""

SIGNUP_FORM = """
<form action="https://example.com/subscribe">
  <input type="email" name="email" value="a@b.com">
  <input type="password" name="password" value="x">
  <button type="submit">Join</button>
</form>
"""


def _engine(url, html="", *, title="", extractors=None):
    timers = TimerQueue(ManualClock())
    host = FakeHost(url, html, title=title)
    channel = RecordingChannel()
    engine = CaptureEngine(
        host,
        Dispatcher(channel),
        timers,
        document_id="doc-1",
        builder=SubmissionBuilder(fixed_timestamp),
        extractors=extractors,
    )
    return engine, host, channel, timers


def _interceptor(engine):
    return NetworkInterceptor(lambda call, classification, fields: engine.handle_network(classification, fields))


def test_native_submit_dispatches_one_message_without_passwords():
    engine, _, channel, _ = _engine("https://example.com/news")

    engine.handle_event(
        "submit",
        {
            "html": SIGNUP_FORM,
            "action": "https://example.com/subscribe",
            "url": "https://example.com/news",
            "title": "Newsletter",
        },
    )

    assert len(channel.messages) == 1
    message = channel.messages[0]
    assert message["type"] == MESSAGE_TYPE
    assert message["data"] == {
        "url": "https://example.com/news",
        "action": "https://example.com/subscribe",
        "timestamp": "2024-01-01T00:00:00Z",
        "title": "Newsletter",
        "fields": {"email": "a@b.com"},
        "source": "native",
    }


def test_ignored_page_never_dispatches():
    engine, _, channel, _ = _engine("https://example.com/login")

    engine.handle_event("submit", {"html": SIGNUP_FORM, "url": "https://example.com/login"})

    assert channel.messages == []


def test_ignore_policy_applies_to_network_path():
    engine, _, channel, timers = _engine("https://example.com/account/login")

    _interceptor(engine).observe(
        InterceptedCall("fetch", "POST", "https://example.com/api/session", b'{"user": "ada"}')
    )
    timers.advance(5.0)

    assert channel.messages == []


def test_submit_without_fields_is_dropped():
    engine, _, channel, _ = _engine("https://example.com/search")

    engine.handle_event("submit", {"html": "<form><input name='q' value=''></form>"})

    assert channel.messages == []


def test_google_form_response_fetch_is_dispatched_immediately():
    engine, _, channel, timers = _engine(GOOGLE_URL, "<div></div>")

    _interceptor(engine).observe(
        InterceptedCall(
            "fetch",
            "POST",
            "https://docs.google.com/forms/d/e/abc/formResponse",
            b"entry.111=Foo",
            "application/x-www-form-urlencoded",
        )
    )

    assert channel.submissions == [
        {
            "url": GOOGLE_URL,
            "action": "https://docs.google.com/forms/d/e/abc/formResponse",
            "timestamp": "2024-01-01T00:00:00Z",
            "title": "Google Form",
            "fields": {"111": "Foo"},
            "source": "google-forms",
        }
    ]

    # The DOM cross-check finds nothing on an empty page.
    timers.advance(5.0)
    assert len(channel.submissions) == 1


def test_dom_and_network_paths_are_not_deduplicated():
    engine, _, channel, timers = _engine(GOOGLE_URL, GOOGLE_PAGE, title="Team lunch")

    _interceptor(engine).observe(
        InterceptedCall("fetch", "POST", "https://docs.google.com/forms/d/e/abc/formResponse", b"entry.111=Ada")
    )
    timers.advance(5.0)

    assert [item["fields"] for item in channel.submissions] == [{"111": "Ada"}, {"Your name": "Ada"}]
    assert {item["source"] for item in channel.submissions} == {"google-forms"}


def test_network_cross_check_requires_matching_page():
    engine, host, channel, timers = _engine("https://example.com/embed", GOOGLE_PAGE)

    _interceptor(engine).observe(
        InterceptedCall("xhr", "POST", "https://docs.google.com/forms/d/e/abc/formResponse", b"entry.1=x")
    )
    timers.advance(5.0)

    assert host.snapshots == 0
    assert [item["fields"] for item in channel.submissions] == [{"1": "x"}]


def test_xhr_provider_calls_are_delayed():
    engine, _, channel, timers = _engine("https://forms.clickup.com/1/f/abc")

    _interceptor(engine).observe(
        InterceptedCall("xhr", "POST", "https://forms.clickup.com/v1/form/abc", b'{"name": "Ada"}')
    )
    assert channel.messages == []

    timers.advance(0.2)
    assert channel.submissions[0]["source"] == "clickup-forms"
    assert channel.submissions[0]["fields"] == {"name": "Ada"}


def test_generic_xhr_is_not_dispatched_but_fetch_is():
    engine, _, channel, timers = _engine("https://example.com/contact")
    interceptor = _interceptor(engine)

    interceptor.observe(InterceptedCall("xhr", "POST", "https://example.com/api/contact", b"q=1"))
    interceptor.observe(InterceptedCall("fetch", "POST", "https://example.com/api/contact", b"q=2"))
    timers.advance(1.0)

    assert len(channel.submissions) == 1
    assert channel.submissions[0]["source"] == "fetch-generic"
    assert channel.submissions[0]["fields"] == {"q": "2"}
    assert channel.submissions[0]["title"] == "Untitled Page"


def test_network_submission_takes_the_live_page_title():
    engine, _, channel, _ = _engine("https://example.com/contact", title="Contact us")

    _interceptor(engine).observe(InterceptedCall("fetch", "POST", "https://example.com/api/contact", b"q=2"))

    assert channel.submissions[0]["source"] == "fetch-generic"
    assert channel.submissions[0]["title"] == "Contact us"


def test_provider_network_submission_prefers_page_title_over_fallback():
    engine, _, channel, _ = _engine(GOOGLE_URL, "<div></div>", title="Team lunch")

    _interceptor(engine).observe(
        InterceptedCall("fetch", "POST", "https://docs.google.com/forms/d/e/abc/formResponse", b"entry.111=Ada")
    )

    assert channel.submissions[0]["title"] == "Team lunch"


def test_click_on_watched_control_dispatches_once_per_burst():
    engine, host, channel, timers = _engine(GOOGLE_URL, GOOGLE_PAGE, title="Team lunch")
    engine.install()
    assert host.instrumented == ["tok-submit-btn"]

    engine.handle_event("press", {"token": "tok-submit-btn"})
    engine.handle_event("click", {"token": "tok-submit-btn"})
    timers.advance(3.0)

    assert channel.submissions == [
        {
            "url": GOOGLE_URL,
            "action": GOOGLE_URL,
            "timestamp": "2024-01-01T00:00:00Z",
            "title": "Team lunch",
            "fields": {"Your name": "Ada"},
            "source": "google-forms",
        }
    ]


def test_click_after_settled_burst_captures_again():
    engine, _, channel, timers = _engine(GOOGLE_URL, GOOGLE_PAGE, title="Team lunch")
    engine.install()

    engine.handle_event("click", {"token": "tok-submit-btn"})
    timers.advance(0.5)
    assert len(channel.submissions) == 1

    engine.handle_event("click", {"token": "tok-submit-btn"})
    timers.advance(3.0)

    assert len(channel.submissions) == 2
    assert engine.delivered == 2


def test_click_on_unknown_control_is_ignored():
    engine, _, channel, timers = _engine(GOOGLE_URL, GOOGLE_PAGE)
    engine.install()

    engine.handle_event("click", {"token": "tok-someone-else"})
    timers.advance(3.0)

    assert channel.messages == []


class FlakyMicrosoftExtractor(MicrosoftFormsExtractor):
    def __init__(self, responses):
        super().__init__()
        self.responses = list(responses)
        self.calls = 0

    def extract(self, snapshot):
        self.calls += 1
        return self.responses.pop(0) if self.responses else {}


def test_delayed_rendering_dispatches_the_first_non_empty_attempt():
    extractor = FlakyMicrosoftExtractor([{}, {}, {"Department": "Finance"}])
    engine, _, channel, timers = _engine(
        "https://forms.office.com/r/abc",
        '<button type="submit" id="submit">Submit</button>',
        extractors={ProviderKind.MICROSOFT_FORMS: extractor},
    )
    engine.install()

    engine.handle_event("click", {"token": "tok-submit"})
    timers.advance(5.0)

    assert extractor.calls == 3
    assert [item["fields"] for item in channel.submissions] == [{"Department": "Finance"}]
    assert channel.submissions[0]["title"] == "Microsoft Form"


def test_mutation_event_discovers_new_controls():
    engine, host, _, timers = _engine(GOOGLE_URL, "<div role='list'></div>")
    engine.install()
    assert host.instrumented == []

    host.html = GOOGLE_PAGE
    engine.handle_event("mutation", {})
    timers.run_pending()

    assert host.instrumented == ["tok-submit-btn"]


def test_retired_engine_ignores_pending_work_and_new_events():
    engine, host, channel, timers = _engine(GOOGLE_URL, GOOGLE_PAGE)
    engine.install()
    engine.handle_event("click", {"token": "tok-submit-btn"})

    engine.retire()
    snapshots = host.snapshots
    engine.handle_event("submit", {"html": SIGNUP_FORM})
    timers.advance(5.0)

    assert channel.messages == []
    assert host.snapshots == snapshots
    assert engine.alive is False


def test_failing_channel_does_not_break_capture():
    timers = TimerQueue(ManualClock())
    channel = RecordingChannel(fail=True)
    dispatcher = Dispatcher(channel)
    engine = CaptureEngine(FakeHost("https://example.com/news"), dispatcher, timers)

    engine.handle_event("submit", {"html": SIGNUP_FORM})

    assert dispatcher.dispatched == 0
    assert engine.delivered == 1


def test_google_extractor_is_used_by_default():
    engine, _, _, _ = _engine(GOOGLE_URL)

    assert isinstance(engine.extractors[ProviderKind.GOOGLE_FORMS], GoogleFormsExtractor)
