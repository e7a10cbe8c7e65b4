import json

from tests.helpers.formtrack_imports import CaptureReport, Submission, SubmissionSource


def _submission(source=SubmissionSource.NATIVE, **fields):
    return Submission(
        url="https://example.com/contact",
        action="https://example.com/send",
        timestamp="2024-01-01T00:00:00Z",
        title="Contact",
        fields=fields or {"email": "a@b.com"},
        source=source,
    )


def test_report_to_json_keeps_arrival_order():
    report = CaptureReport(seed_url="https://example.com")
    report.add(_submission())
    report.add(_submission(SubmissionSource.GOOGLE_FORMS, tags=["a", "b"]))

    data = json.loads(report.to_json())

    assert data["seed_url"] == "https://example.com"
    assert [item["source"] for item in data["submissions"]] == ["native", "google-forms"]
    assert data["submissions"][1]["fields"] == {"tags": ["a", "b"]}


def test_report_save_and_load(tmp_path):
    report = CaptureReport(seed_url="https://example.com")
    report.add(_submission(SubmissionSource.CLICKUP_FORMS, name="Ada"))
    path = tmp_path / "report.json"

    report.save(path)
    loaded = CaptureReport.load(path)

    assert loaded == report
    assert not path.with_suffix(".json.tmp").exists()


def test_by_source_filters_submissions():
    report = CaptureReport()
    report.add(_submission())
    report.add(_submission(SubmissionSource.FETCH_GENERIC))

    assert len(report.by_source(SubmissionSource.FETCH_GENERIC)) == 1
    assert report.by_source(SubmissionSource.MICROSOFT_FORMS) == []


def test_submission_from_dict_defaults_action_to_url():
    submission = Submission.from_dict({"url": "https://example.com", "fields": {"q": "1"}})

    assert submission.action == "https://example.com"
    assert submission.source is SubmissionSource.NATIVE
