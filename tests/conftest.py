"""
Shared fixtures for the booklet tests.

Nothing here touches the network or a browser: the API client is replaced by
FakeClient, which answers from a path -> payload map.
"""
from datetime import date

import pytest

from booklet.aggregator import normalize_profile, normalize_record
from booklet.errors import ApiError
from booklet.models import BookletMode, Branding, DocumentInput, Issuer, SubjectProfile
from booklet.safe_text import SafeText


class FakeClient:
    """Stands in for ApiClient; an Exception value is raised instead of returned."""

    def __init__(self, responses):
        self.responses = dict(responses)
        self.calls = []

    def get_json(self, path, params=None):
        self.calls.append((path, params))
        if path not in self.responses:
            raise ApiError(f"Not found: {path}", status=404, path=path)
        value = self.responses[path]
        if isinstance(value, Exception):
            raise value
        return value


def log_row(id, student_id="s1", activity_date="2024-01-10T00:00:00.000Z", **extra):
    row = {
        "id": id,
        "studentId": student_id,
        "activityDate": activity_date,
        "activityType": "Case Presentation",
        "title": f"Entry {id}",
        "description": "Presented a case.",
        "status": "approved",
    }
    row.update(extra)
    return row


@pytest.fixture
def student_profile():
    return normalize_profile(
        {
            "id": "s1",
            "name": "Asha Rao",
            "email": "asha@example.org",
            "registrationNo": "REG-1",
            "programName": "MD General Medicine",
            "academicYear": "2023-24",
            "rotationName": "Cardiology",
            "rotationStartDate": "2024-01-01",
            "rotationEndDate": "2024-03-31",
            "hodName": "Dr. Menon",
            "principalName": "Dr. Iyer",
        }
    )


@pytest.fixture
def single_input(student_profile):
    entries = (
        normalize_record(
            log_row(
                "l1",
                activity_date="2024-01-10",
                attachments=[{"url": "reports/Case%20Study.pdf", "size": 2048, "contentType": "application/pdf"}],
            )
        ),
        normalize_record(log_row("l2", activity_date="2024-01-05", status="pending")),
    )
    return DocumentInput(
        mode=BookletMode.SINGLE_SUBJECT,
        subject=student_profile,
        issuer=Issuer(id="t1", name=SafeText.from_raw("Dr. Kumar")),
        organization=Branding(SafeText.from_raw("City Medical College"), "https://cdn.example.org/logo.png"),
        department=Branding(SafeText.from_raw("Medicine")),
        entries=entries,
        overall_remarks=SafeText.from_raw("<b>ok</b>"),
        generated_on=date(2024, 4, 2),
    )


@pytest.fixture
def roster_input():
    roster = (
        SubjectProfile(id="s1", name=SafeText.from_raw("Asha Rao")),
        SubjectProfile(id="s2", name=SafeText.from_raw("Ben Das")),
    )
    entries = (
        normalize_record(log_row("l1", student_id="s2")),
        normalize_record(log_row("l2", student_id="s9")),
        normalize_record(log_row("l3", student_id="s1")),
        normalize_record(log_row("l4", student_id="s2")),
    )
    return DocumentInput(
        mode=BookletMode.ROSTER,
        subject=SubjectProfile(id="t1", name=SafeText.from_raw("Dr. Kumar")),
        issuer=Issuer(id="d1", name=SafeText.from_raw("Medicine")),
        organization=Branding(SafeText.from_raw("City Medical College")),
        department=Branding(SafeText.from_raw("Medicine")),
        entries=entries,
        roster=roster,
        generated_on=date(2024, 4, 2),
    )
