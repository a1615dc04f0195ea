"""
Record Aggregator: reads activity records and profile metadata from the
activity-log API and assembles one immutable ``DocumentInput``.

Reads of one cycle are issued in parallel and always awaited together. The
activity-record read is primary: if it fails the whole cycle fails with
``AggregationError``. Profile and branding reads are secondary: a failure is
logged and the affected slice falls back to empty values.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .api_client import ApiClient
from .config import FETCH_WORKERS
from .errors import AggregationError, ApiError
from .formatting import parse_calendar_date
from .models import (
    ActivityRecord,
    Attachment,
    BookletMode,
    Branding,
    DocumentInput,
    EntryStatus,
    Issuer,
    SubjectProfile,
)
from .safe_text import SafeText

logger = logging.getLogger(__name__)

# camelCase API field -> SubjectProfile text attribute
_PROFILE_TEXT_FIELDS = {
    "name": "name",
    "email": "email",
    "registrationNo": "registration_no",
    "universityRegNo": "university_reg_no",
    "rollNo": "roll_no",
    "programName": "program_name",
    "academicYear": "academic_year",
    "batchYear": "batch_year",
    "semester": "semester",
    "rotationName": "rotation_name",
    "gender": "gender",
    "bloodGroup": "blood_group",
    "phone": "phone",
    "address": "address",
    "guardianName": "guardian_name",
    "guardianPhone": "guardian_phone",
    "emergencyContactName": "emergency_contact_name",
    "emergencyContactPhone": "emergency_contact_phone",
    "adviserName": "adviser_name",
    "hodName": "hod_name",
    "principalName": "principal_name",
    "remarks": "remarks",
}
_PROFILE_DATE_FIELDS = {
    "rotationStartDate": "rotation_start",
    "rotationEndDate": "rotation_end",
    "dob": "dob",
}


@dataclass(frozen=True)
class Read:
    path: str
    params: Optional[Dict[str, Any]] = None
    primary: bool = False


@dataclass
class ReadResult:
    value: Any = None
    error: Optional[ApiError] = None


def _text(value: Any) -> SafeText:
    return SafeText.from_raw(value)


def _str_id(value: Any) -> str:
    return "" if value is None else str(value).strip()


def normalize_attachment(raw: Mapping[str, Any]) -> Optional[Attachment]:
    url = str(raw.get("url") or "").strip()
    if not url:
        return None
    size = raw.get("size")
    try:
        size = int(size) if size is not None else None
    except (TypeError, ValueError):
        size = None
    content_type = raw.get("contentType") or None
    return Attachment(url=url, content_type=content_type, size=size)


def normalize_attachments(items: Optional[Iterable[Mapping[str, Any]]]) -> Tuple[Attachment, ...]:
    out = []
    for item in items or ():
        att = normalize_attachment(item)
        if att is not None:
            out.append(att)
    return tuple(out)


def normalize_record(
    raw: Mapping[str, Any],
    attachments: Optional[Sequence[Mapping[str, Any]]] = None,
) -> ActivityRecord:
    """Map one upstream log row to an ActivityRecord, escaping every text field."""
    status_raw = raw.get("status")
    return ActivityRecord(
        id=_str_id(raw.get("id")),
        subject_id=_str_id(raw.get("studentId")),
        activity_date=parse_calendar_date(raw.get("activityDate")),
        activity_type=_text(raw.get("activityType")),
        title=_text(raw.get("title")),
        description=_text(raw.get("detailedDescription") or raw.get("description")),
        status=EntryStatus.parse(status_raw),
        status_label=_text(status_raw or EntryStatus.UNKNOWN.value),
        faculty_remark=_text(raw.get("facultyRemark")),
        attachments=normalize_attachments(raw.get("attachments") if attachments is None else attachments),
    )


def normalize_profile(raw: Mapping[str, Any], fallback_id: str = "") -> SubjectProfile:
    kwargs: Dict[str, Any] = {
        "id": _str_id(raw.get("id")) or fallback_id,
        "avatar_url": str(raw.get("avatarUrl") or ""),
    }
    for key, attr in _PROFILE_TEXT_FIELDS.items():
        kwargs[attr] = _text(raw.get(key))
    for key, attr in _PROFILE_DATE_FIELDS.items():
        kwargs[attr] = parse_calendar_date(raw.get(key))
    return SubjectProfile(**kwargs)


def _branding(name: Any, logo_url: Any) -> Branding:
    return Branding(name=_text(name), logo_url=str(logo_url or ""))


class RecordAggregator:
    """
    Builds a DocumentInput per "Generate Report" action. Holds no state between
    calls, so concurrent cycles for different subjects never share data.
    """

    def __init__(
        self,
        client: Optional[ApiClient] = None,
        max_workers: int = FETCH_WORKERS,
        today: Callable[[], date] = date.today,
    ):
        self.client = client or ApiClient()
        self.max_workers = max_workers
        self.today = today

    def _fan_out(self, reads: Dict[str, Read]) -> Dict[str, ReadResult]:
        """Issue every read in parallel and wait for all of them."""
        results: Dict[str, ReadResult] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="booklet-read") as pool:
            futures = {
                name: pool.submit(self.client.get_json, read.path, read.params)
                for name, read in reads.items()
            }
            for name, future in futures.items():
                try:
                    results[name] = ReadResult(value=future.result())
                except ApiError as exc:
                    results[name] = ReadResult(error=exc)

        for name, read in reads.items():
            error = results[name].error
            if error is None:
                continue
            if read.primary:
                logger.error("Primary read %s failed: %s", read.path, error)
                raise AggregationError(f"Failed to load activity records: {error}") from error
            logger.warning("Secondary read %s failed, using placeholders: %s", read.path, error)
        return results

    def list_subjects(self, staff_id: str) -> Tuple[SubjectProfile, ...]:
        """Students assigned to a staff member, for choosing whom to report on."""
        try:
            rows = self.client.get_json(f"/staff/{staff_id}/students")
        except ApiError as exc:
            raise AggregationError(f"Failed to load students: {exc}") from exc
        if not isinstance(rows, list):
            raise AggregationError("Student list has an unexpected shape")
        return tuple(normalize_profile(row) for row in rows if isinstance(row, Mapping))

    def student_booklet(self, staff_id: str, student_id: str, overall_remarks: str = "") -> DocumentInput:
        """Single-subject booklet a staff member compiles for one of their students."""
        staff_id, student_id = _str_id(staff_id), _str_id(student_id)
        results = self._fan_out(
            {
                "logs": Read(f"/staff/{staff_id}/student-logs", {"studentId": student_id}, primary=True),
                "profile": Read(f"/staff/{staff_id}/student/{student_id}/profile"),
                "students": Read(f"/staff/{staff_id}/students"),
                "me": Read("/staff/me"),
            }
        )

        logs = results["logs"].value
        if not isinstance(logs, list):
            raise AggregationError("Activity records have an unexpected shape")
        entries = tuple(normalize_record(row) for row in logs if isinstance(row, Mapping))

        subject = self._student_profile(student_id, results["profile"].value, results["students"].value)
        me = results["me"].value if isinstance(results["me"].value, Mapping) else {}

        return DocumentInput(
            mode=BookletMode.SINGLE_SUBJECT,
            subject=subject,
            issuer=Issuer(id=staff_id, name=_text(me.get("name"))),
            organization=_branding(me.get("organizationName"), me.get("organizationAvatarUrl")),
            department=_branding(me.get("departmentName"), None),
            entries=entries,
            overall_remarks=_text(overall_remarks),
            generated_on=self.today(),
        )

    @staticmethod
    def _student_profile(student_id: str, profile: Any, students: Any) -> SubjectProfile:
        if isinstance(profile, Mapping):
            return normalize_profile(profile, fallback_id=student_id)
        # Profile lookup failed: fall back to the basic roster row, then to the id alone.
        for row in students if isinstance(students, list) else ():
            if isinstance(row, Mapping) and _str_id(row.get("id")) == student_id:
                return normalize_profile(row, fallback_id=student_id)
        return SubjectProfile(id=student_id)

    def staff_roster_booklet(
        self,
        department_id: str,
        staff_id: str,
        staff_name: str = "",
        overall_remarks: str = "",
    ) -> DocumentInput:
        """Roster booklet a department admin compiles for one staff member's students."""
        department_id, staff_id = _str_id(department_id), _str_id(staff_id)
        results = self._fan_out(
            {
                "report": Read(f"/departments/{department_id}/staff/{staff_id}/report", primary=True),
                "me": Read("/departments/me"),
            }
        )

        report = results["report"].value
        if not isinstance(report, Mapping) or not isinstance(report.get("logs"), list):
            raise AggregationError("Staff report data has an unexpected shape")

        attachments_by_log: Dict[str, List[Mapping[str, Any]]] = {}
        for att in report.get("attachments") or []:
            if isinstance(att, Mapping):
                attachments_by_log.setdefault(_str_id(att.get("logId")), []).append(att)

        entries = tuple(
            normalize_record(row, attachments_by_log.get(_str_id(row.get("id")), []))
            for row in report["logs"]
            if isinstance(row, Mapping)
        )
        roster = tuple(
            normalize_profile(row) for row in report.get("students") or [] if isinstance(row, Mapping)
        )

        staff = report.get("staff") if isinstance(report.get("staff"), Mapping) else {}
        subject = SubjectProfile(
            id=_str_id(staff.get("id")) or staff_id,
            name=_text(staff.get("name") or staff_name),
            email=_text(staff.get("email")),
        )
        me = results["me"].value if isinstance(results["me"].value, Mapping) else {}

        return DocumentInput(
            mode=BookletMode.ROSTER,
            subject=subject,
            issuer=Issuer(id=department_id, name=_text(me.get("name"))),
            organization=_branding(me.get("organizationName"), me.get("organizationAvatarUrl")),
            department=_branding(me.get("name"), me.get("avatarUrl")),
            entries=entries,
            roster=roster,
            overall_remarks=_text(overall_remarks),
            generated_on=self.today(),
        )
