"""
Unit tests for the Record Aggregator and its normalizers.
"""
import http.client
import json
from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from booklet.aggregator import RecordAggregator, normalize_attachment, normalize_profile, normalize_record
from booklet.api_client import ApiClient
from booklet.errors import AggregationError, ApiError
from booklet.models import BookletMode, EntryStatus

from conftest import FakeClient, log_row


def _aggregator(responses):
    client = FakeClient(responses)
    return RecordAggregator(client=client, today=lambda: date(2024, 4, 2)), client


STUDENT_PATHS = {
    "logs": "/staff/t1/student-logs",
    "profile": "/staff/t1/student/s1/profile",
    "students": "/staff/t1/students",
    "me": "/staff/me",
}


class TestNormalizers:
    """Mapping upstream rows to model objects"""

    def test_record_escapes_text_fields(self):
        record = normalize_record(log_row("1", title="<i>x</i>", facultyRemark="good & fine"))
        assert str(record.title) == "&lt;i&gt;x&lt;/i&gt;"
        assert str(record.faculty_remark) == "good &amp; fine"

    def test_record_prefers_detailed_description(self):
        record = normalize_record(log_row("1", detailedDescription="long"))
        assert record.description.raw == "long"

    def test_unknown_status_keeps_raw_label(self):
        record = normalize_record(log_row("1", status="archived"))
        assert record.status is EntryStatus.UNKNOWN
        assert record.status_label.raw == "archived"

    def test_missing_status(self):
        record = normalize_record(log_row("1", status=None))
        assert record.status is EntryStatus.UNKNOWN
        assert record.status_label.raw == "unknown"

    def test_attachment_without_url_is_dropped(self):
        assert normalize_attachment({"size": 10}) is None
        record = normalize_record(log_row("1", attachments=[{"size": 10}, {"url": "a.pdf", "size": "12"}]))
        assert len(record.attachments) == 1
        assert record.attachments[0].size == 12

    def test_profile_fields(self):
        profile = normalize_profile({"name": "A", "dob": "2000-02-03T00:00:00Z"}, fallback_id="s1")
        assert profile.id == "s1"
        assert profile.dob == date(2000, 2, 3)
        assert not profile.hod_name


class TestStudentBooklet:
    """Single-subject aggregation"""

    def _responses(self, **overrides):
        responses = {
            STUDENT_PATHS["logs"]: [log_row("l1", activity_date="2024-01-10"), log_row("l2", activity_date="2024-01-05")],
            STUDENT_PATHS["profile"]: {"id": "s1", "name": "Asha Rao", "hodName": "Dr. Menon"},
            STUDENT_PATHS["students"]: [{"id": "s1", "name": "Asha (roster)"}],
            STUDENT_PATHS["me"]: {
                "name": "Dr. Kumar",
                "departmentName": "Medicine",
                "organizationName": "City Medical College",
                "organizationAvatarUrl": "https://cdn.example.org/logo.png",
            },
        }
        responses.update({STUDENT_PATHS[k]: v for k, v in overrides.items()})
        return responses

    def test_builds_document(self):
        aggregator, client = _aggregator(self._responses())
        doc = aggregator.student_booklet("t1", "s1", overall_remarks="Good")

        assert doc.mode is BookletMode.SINGLE_SUBJECT
        assert doc.subject.name.raw == "Asha Rao"
        assert doc.issuer.name.raw == "Dr. Kumar"
        assert doc.department.name.raw == "Medicine"
        assert doc.organization.logo_url == "https://cdn.example.org/logo.png"
        assert doc.overall_remarks.raw == "Good"
        assert doc.generated_on == date(2024, 4, 2)
        assert (STUDENT_PATHS["logs"], {"studentId": "s1"}) in client.calls

    def test_keeps_upstream_order(self):
        aggregator, _ = _aggregator(self._responses())
        doc = aggregator.student_booklet("t1", "s1")
        assert [e.id for e in doc.entries] == ["l1", "l2"]

    def test_primary_failure_aborts(self):
        aggregator, _ = _aggregator(self._responses(logs=ApiError("boom", status=500)))
        with pytest.raises(AggregationError):
            aggregator.student_booklet("t1", "s1")

    def test_logs_with_wrong_shape_abort(self):
        aggregator, _ = _aggregator(self._responses(logs={"not": "a list"}))
        with pytest.raises(AggregationError):
            aggregator.student_booklet("t1", "s1")

    def test_profile_failure_falls_back_to_roster_row(self, caplog):
        aggregator, _ = _aggregator(self._responses(profile=ApiError("nope", status=404)))
        doc = aggregator.student_booklet("t1", "s1")
        assert doc.subject.name.raw == "Asha (roster)"
        assert "Secondary read" in caplog.text

    def test_all_secondary_failures_leave_empty_values(self):
        aggregator, _ = _aggregator(
            self._responses(
                profile=ApiError("x"),
                students=ApiError("x"),
                me=ApiError("x"),
            )
        )
        doc = aggregator.student_booklet("t1", "s1")
        assert doc.subject.id == "s1"
        assert not doc.subject.name
        assert not doc.organization.name
        assert len(doc.entries) == 2

    def test_empty_logs(self):
        aggregator, _ = _aggregator(self._responses(logs=[]))
        doc = aggregator.student_booklet("t1", "s1")
        assert doc.entries == ()


class TestStaffRosterBooklet:
    """Roster aggregation"""

    REPORT = "/departments/d1/staff/t1/report"

    def _report(self):
        return {
            "staff": {"id": "t1", "name": "Dr. Kumar", "email": "k@example.org"},
            "students": [{"id": "s1", "name": "Asha"}, {"id": "s2", "name": "Ben"}],
            "logs": [log_row("l1", student_id="s2"), log_row("l2", student_id="s1")],
            "attachments": [
                {"logId": "l2", "url": "files/a.pdf", "size": 1024},
                {"logId": "l2", "url": "files/b.pdf"},
                {"logId": "zz", "url": "files/orphan.pdf"},
            ],
        }

    def test_joins_attachments_by_log(self):
        aggregator, _ = _aggregator({self.REPORT: self._report(), "/departments/me": {"name": "Medicine"}})
        doc = aggregator.staff_roster_booklet("d1", "t1")

        assert doc.mode is BookletMode.ROSTER
        by_id = {e.id: e for e in doc.entries}
        assert [a.url for a in by_id["l2"].attachments] == ["files/a.pdf", "files/b.pdf"]
        assert by_id["l1"].attachments == ()

    def test_subject_roster_and_branding(self):
        aggregator, _ = _aggregator(
            {
                self.REPORT: self._report(),
                "/departments/me": {"name": "Medicine", "avatarUrl": "https://x.org/d.png", "organizationName": "CMC"},
            }
        )
        doc = aggregator.staff_roster_booklet("d1", "t1")
        assert doc.subject.name.raw == "Dr. Kumar"
        assert [s.id for s in doc.roster] == ["s1", "s2"]
        assert doc.department.logo_url == "https://x.org/d.png"
        assert doc.organization.name.raw == "CMC"
        assert doc.issuer.id == "d1"

    def test_staff_name_hint_used_when_missing(self):
        report = self._report()
        del report["staff"]
        aggregator, _ = _aggregator({self.REPORT: report, "/departments/me": {}})
        doc = aggregator.staff_roster_booklet("d1", "t1", staff_name="Dr. Hint")
        assert doc.subject.id == "t1"
        assert doc.subject.name.raw == "Dr. Hint"

    def test_report_failure_aborts(self):
        aggregator, _ = _aggregator({"/departments/me": {}})
        with pytest.raises(AggregationError):
            aggregator.staff_roster_booklet("d1", "t1")


class TestListSubjects:
    def test_lists_students(self):
        aggregator, _ = _aggregator({"/staff/t1/students": [{"id": 7, "name": "Asha"}]})
        subjects = aggregator.list_subjects("t1")
        assert subjects[0].id == "7"

    def test_failure_is_aggregation_error(self):
        aggregator, _ = _aggregator({})
        with pytest.raises(AggregationError):
            aggregator.list_subjects("t1")


class TestTransportFailures:
    """Non-HTTP read failures on secondary reads still leave placeholders"""

    @staticmethod
    def _urlopen(routes):
        def fake_urlopen(req, **kwargs):
            path = req.full_url.split("http://api.test", 1)[1].split("?", 1)[0]
            outcome = routes[path]
            if isinstance(outcome, Exception):
                raise outcome
            resp = MagicMock()
            resp.read.return_value = outcome
            resp.__enter__.return_value = resp
            return resp

        return fake_urlopen

    def _run(self, me_outcome):
        routes = {
            STUDENT_PATHS["logs"]: json.dumps([log_row("l1")]).encode("utf-8"),
            STUDENT_PATHS["profile"]: ConnectionResetError("reset by peer"),
            STUDENT_PATHS["students"]: http.client.IncompleteRead(b"[{"),
            STUDENT_PATHS["me"]: me_outcome,
        }
        aggregator = RecordAggregator(client=ApiClient(base_url="http://api.test", token="t"))
        with patch("booklet.api_client.urllib.request.urlopen", side_effect=self._urlopen(routes)):
            return aggregator.student_booklet("t1", "s1")

    def test_undecodable_body_on_secondary_read(self):
        doc = self._run(b'{"name": "\xff\xfe bad"}')
        assert [e.id for e in doc.entries] == ["l1"]
        assert doc.subject.id == "s1"
        assert not doc.issuer.name
        assert not doc.organization.name

    def test_timeout_on_secondary_read(self):
        doc = self._run(TimeoutError("timed out"))
        assert len(doc.entries) == 1
        assert not doc.department.name

    def test_transport_failure_on_primary_read_is_aggregation_error(self):
        routes = {path: TimeoutError("timed out") for path in STUDENT_PATHS.values()}
        aggregator = RecordAggregator(client=ApiClient(base_url="http://api.test", token="t"))
        with patch("booklet.api_client.urllib.request.urlopen", side_effect=self._urlopen(routes)):
            with pytest.raises(AggregationError):
                aggregator.student_booklet("t1", "s1")
