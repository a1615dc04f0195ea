"""
Simple tabular reports for the raster path.

Rows are plain dicts; the columns come from the first row's keys. Cells are
escaped by pandas and missing cells print as ``N/A``.
"""

from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd
from markupsafe import Markup

from .config import DEFAULT_LOCALE
from .formatting import format_date, parse_calendar_date
from .models import ActivityRecord, BookletMode, DocumentInput, EntryStatus
from .rendering import TemplateRenderer, default_renderer
from .safe_text import SafeText
from .sections import UNTITLED, group_entries

NA = "N/A"
NO_DATA = "No data available for this report type."

TABULAR_REPORTS: Dict[str, str] = {
    "staff-activity": "Staff Activity Report",
    "student-logs": "Student Logs Report",
    "staff": "Staff Report",
    "students": "Student Report",
    "activity": "Activity Log Report",
    "departments": "Departments Report",
}


def report_title(report_type: str) -> str:
    return TABULAR_REPORTS.get(report_type, report_type)


def rows_to_table(rows: Sequence[Mapping[str, Any]]) -> Optional[Markup]:
    if not rows:
        return None
    columns = list(rows[0].keys())
    frame = pd.DataFrame(list(rows), columns=columns, dtype=object)
    # to_html prints None as "None" even with na_rep set
    frame = frame.where(frame.notna(), NA)
    html = frame.to_html(escape=True, index=False, na_rep=NA, border=0, classes="report-table")
    return Markup(html)


def build_tabular_html(
    report_type: str,
    rows: Sequence[Mapping[str, Any]],
    generated_at: Optional[date] = None,
    locale: str = DEFAULT_LOCALE,
    renderer: Optional[TemplateRenderer] = None,
) -> str:
    renderer = renderer or default_renderer()
    generated = parse_calendar_date(generated_at) or date.today()
    payload = {
        "lang": locale,
        "report_type": report_type,
        "title": report_title(report_type),
        "generated_on": format_date(generated, locale),
        "table": rows_to_table(rows),
        "empty_message": NO_DATA,
    }
    return str(renderer.render("tabular.html.j2", payload))


def _cell(text: SafeText, default: Optional[str] = None) -> Optional[str]:
    return text.raw.strip() if text else default


def _status_count(entries: Sequence[ActivityRecord], status: EntryStatus) -> int:
    return sum(1 for e in entries if e.status is status)


def _staff(doc: DocumentInput) -> Tuple[str, SafeText, SafeText]:
    """The staff member a booklet belongs to: the subject of a roster booklet, else the issuer."""
    if doc.mode is BookletMode.ROSTER:
        return doc.subject.id, doc.subject.name, doc.subject.email
    return doc.issuer.id, doc.issuer.name, SafeText.empty()


def _student_count(doc: DocumentInput) -> int:
    if doc.mode is BookletMode.ROSTER:
        return len(group_entries(doc))
    return 1


def _hod_name(doc: DocumentInput) -> SafeText:
    for profile in (doc.subject,) + tuple(doc.roster):
        if profile.hod_name:
            return profile.hod_name
    return SafeText.empty()


def activity_rows(doc: DocumentInput, locale: str = DEFAULT_LOCALE) -> List[Dict[str, Any]]:
    """One row per entry, grouped the same way as the booklet's activity section."""
    rows = []
    for group in group_entries(doc):
        student = _cell(group.subject.name, group.subject.id) if group.subject else None
        for entry in group.entries:
            rows.append(
                {
                    "Date": format_date(entry.activity_date, locale, placeholder="") or None,
                    "Student": student or entry.subject_id,
                    "Title": _cell(entry.title, UNTITLED),
                    "Type": _cell(entry.activity_type),
                    "Status": _cell(entry.status_label, entry.status.value),
                    "Attachments": len(entry.attachments),
                }
            )
    return rows


def student_rows(doc: DocumentInput) -> List[Dict[str, Any]]:
    """Entry counts per student; a single-subject booklet yields one row."""
    rows = []
    for group in group_entries(doc):
        subject = group.subject
        rows.append(
            {
                "ID": subject.id if subject else None,
                "Student": _cell(subject.name) if subject else None,
                "Email": _cell(subject.email) if subject else None,
                "Logs": len(group.entries),
                "Pending": _status_count(group.entries, EntryStatus.PENDING),
            }
        )
    return rows


def staff_rows(doc: DocumentInput) -> List[Dict[str, Any]]:
    staff_id, name, email = _staff(doc)
    return [
        {
            "ID": staff_id or None,
            "Staff": _cell(name),
            "Email": _cell(email),
            "Department": _cell(doc.department.name),
            "Students": _student_count(doc),
            "Logs": len(doc.entries),
        }
    ]


def staff_activity_rows(doc: DocumentInput, locale: str = DEFAULT_LOCALE) -> List[Dict[str, Any]]:
    """Review totals of the staff member's entries."""
    _, name, _ = _staff(doc)
    dates = [e.activity_date for e in doc.entries if e.activity_date is not None]
    return [
        {
            "Staff": _cell(name),
            "Activities": len(doc.entries),
            "Approved": _status_count(doc.entries, EntryStatus.APPROVED),
            "Pending": _status_count(doc.entries, EntryStatus.PENDING),
            "Rejected": _status_count(doc.entries, EntryStatus.REJECTED),
            "Latest activity": format_date(max(dates), locale) if dates else None,
        }
    ]


def department_rows(doc: DocumentInput) -> List[Dict[str, Any]]:
    _, staff_name, _ = _staff(doc)
    return [
        {
            "Department": _cell(doc.department.name),
            "Organization": _cell(doc.organization.name),
            "Head of Department": _cell(_hod_name(doc)),
            "Staff": _cell(staff_name),
            "Students": _student_count(doc),
            "Logs": len(doc.entries),
        }
    ]


def rows_for(report_type: str, doc: DocumentInput, locale: str = DEFAULT_LOCALE) -> List[Dict[str, Any]]:
    """Rows for one of the TABULAR_REPORTS types; unknown types have no data."""
    if report_type == "activity":
        return activity_rows(doc, locale)
    if report_type in ("students", "student-logs"):
        return student_rows(doc)
    if report_type == "staff":
        return staff_rows(doc)
    if report_type == "staff-activity":
        return staff_activity_rows(doc, locale)
    if report_type == "departments":
        return department_rows(doc)
    return []
