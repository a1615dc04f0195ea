from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from markupsafe import Markup, escape

from . import presets as P
from .formatting import (
    BLANK,
    DASH,
    SHORT_BLANK,
    attachment_label,
    format_date,
    is_absolute_url,
    status_class,
)
from .models import ActivityRecord, BookletMode, DocumentInput, SubjectProfile
from .rendering import TemplateRenderer, default_renderer
from .safe_text import SafeText

UNTITLED = "(untitled)"
NO_ENTRIES = "No entries recorded."


@dataclass(frozen=True)
class SectionFragment:
    section_id: str
    title: str
    body: Markup


@dataclass(frozen=True)
class RenderState:
    """What earlier builders and the composer already know about this render."""

    preset: P.BookletPreset
    locale: str
    order: Tuple[str, ...]
    titles: Tuple[Tuple[str, str], ...]
    built: Tuple[str, ...] = ()
    renderer: TemplateRenderer = field(default_factory=default_renderer, compare=False, repr=False)

    def title_of(self, section_id: str) -> str:
        return dict(self.titles).get(section_id, section_id)

    def advance(self, fragment: SectionFragment) -> "RenderState":
        return RenderState(
            preset=self.preset,
            locale=self.locale,
            order=self.order,
            titles=self.titles,
            built=self.built + (fragment.section_id,),
            renderer=self.renderer,
        )


@dataclass(frozen=True)
class EntryGroup:
    subject: Optional[SubjectProfile]
    entries: Tuple[ActivityRecord, ...]


def _value(text: SafeText, placeholder: str = BLANK) -> Markup:
    return text.or_placeholder(placeholder)


def _with_contact(name: SafeText, phone: SafeText) -> Markup:
    if name and phone:
        return Markup("{} ({})").format(name, phone)
    if name or phone:
        return Markup(name or phone)
    return escape(BLANK)


def _link_href(url: str) -> Optional[str]:
    # Only plain web links are clickable; other schemes render as text.
    try:
        scheme = urlsplit(url).scheme.lower()
    except ValueError:
        return None
    return url if scheme in ("", "http", "https") else None


def _signatory(doc: DocumentInput, role: str) -> SafeText:
    roster = doc.mode is BookletMode.ROSTER
    if role == P.ROLE_CANDIDATE:
        return doc.subject.name
    if role == P.ROLE_STAFF:
        return doc.subject.name if roster else doc.issuer.name
    if role == P.ROLE_HOD:
        return doc.subject.hod_name
    if role == P.ROLE_PRINCIPAL:
        return doc.subject.principal_name
    if role == P.ROLE_ORGANIZATION:
        return doc.organization.name
    return SafeText.empty()


def _require_entries(doc: DocumentInput) -> Tuple[ActivityRecord, ...]:
    if doc.entries is None:
        raise ValueError("DocumentInput.entries is required; the aggregator must always provide it")
    return doc.entries


def group_entries(doc: DocumentInput) -> List[EntryGroup]:
    """
    Split entries into display groups without re-sorting.

    Single-subject booklets have one implicit group. Roster booklets get one
    group per roster member in roster order, then groups for entries whose
    subject is not on the roster, in order of first appearance.
    """
    entries = _require_entries(doc)
    if doc.mode is BookletMode.SINGLE_SUBJECT:
        return [EntryGroup(subject=doc.subject, entries=entries)]

    buckets: Dict[str, List[ActivityRecord]] = {}
    for entry in entries:
        buckets.setdefault(entry.subject_id, []).append(entry)

    groups = []
    seen = set()
    for member in doc.roster:
        seen.add(member.id)
        groups.append(EntryGroup(subject=member, entries=tuple(buckets.get(member.id, ()))))
    for subject_id, items in buckets.items():
        if subject_id not in seen:
            groups.append(EntryGroup(subject=SubjectProfile(id=subject_id), entries=tuple(items)))
    return groups


def _entry_view(entry: ActivityRecord, locale: str) -> Dict[str, object]:
    return {
        "id": entry.id,
        "date": format_date(entry.activity_date, locale, placeholder=DASH),
        "title": _value(entry.title, UNTITLED),
        "type": entry.activity_type,
        "status_class": status_class(entry.status),
        "status_label": _value(entry.status_label, entry.status.value),
        "description": _value(entry.description, DASH),
        "remark": entry.faculty_remark,
        "attachments": [
            {"label": attachment_label(att), "href": _link_href(att.url)} for att in entry.attachments
        ],
    }


def build_cover(doc: DocumentInput, state: RenderState) -> SectionFragment:
    subject = doc.subject
    rotation_window = ""
    if subject.rotation_start:
        rotation_window = "{} - {}".format(
            format_date(subject.rotation_start, state.locale),
            format_date(subject.rotation_end, state.locale, placeholder=DASH),
        )
    logo = doc.organization.logo_url or doc.department.logo_url
    payload = {
        "preset": state.preset,
        "roster_mode": doc.mode is BookletMode.ROSTER,
        "logo_url": logo if is_absolute_url(logo) else "",
        "organization": _value(doc.organization.name),
        "department": _value(doc.department.name),
        "subject": subject,
        "subject_name": _value(subject.name),
        "issuer_name": _value(doc.issuer.name if doc.mode is BookletMode.SINGLE_SUBJECT else subject.name),
        "rotation": _value(subject.rotation_name),
        "rotation_window": rotation_window,
        "roster_size": len(doc.roster),
        "blank": BLANK,
    }
    body = state.renderer.render("sections/cover.html.j2", payload)
    return SectionFragment(P.COVER, state.title_of(P.COVER), body)


def build_acknowledgement(doc: DocumentInput, state: RenderState) -> SectionFragment:
    generated = format_date(doc.generated_on, state.locale, placeholder="") if doc.generated_on else ""
    payload = {
        "paragraphs": state.preset.acknowledgement,
        "generated_on": generated,
        "short_blank": SHORT_BLANK,
    }
    body = state.renderer.render("sections/acknowledgement.html.j2", payload)
    return SectionFragment(P.ACKNOWLEDGEMENT, state.title_of(P.ACKNOWLEDGEMENT), body)


def build_contents(doc: DocumentInput, state: RenderState) -> SectionFragment:
    items = [
        {"target": sid, "title": state.title_of(sid)}
        for sid in state.order
        if sid not in (P.COVER, P.CONTENTS)
    ]
    body = state.renderer.render("sections/contents.html.j2", {"items": items})
    return SectionFragment(P.CONTENTS, state.title_of(P.CONTENTS), body)


def build_profile(doc: DocumentInput, state: RenderState) -> SectionFragment:
    s = doc.subject
    rows = [
        ("Name", _value(s.name)),
        ("DOB", format_date(s.dob, state.locale)),
        ("Gender", _value(s.gender)),
        ("Blood Group", _value(s.blood_group)),
        ("Email", _value(s.email)),
        ("Phone", _value(s.phone)),
        ("Registration No.", _value(s.registration_no)),
        ("University Reg. No.", _value(s.university_reg_no)),
        ("Roll No.", _value(s.roll_no)),
        ("Program", _value(s.program_name)),
        ("Academic Year", _value(s.academic_year)),
        ("Semester", _value(s.semester)),
        ("Batch Year", _value(s.batch_year)),
        ("Guardian", _with_contact(s.guardian_name, s.guardian_phone)),
        ("Emergency Contact", _with_contact(s.emergency_contact_name, s.emergency_contact_phone)),
    ]
    payload = {
        "rows": rows,
        "address": _value(s.address),
        "qualification_columns": ("Degree", "Year", "College", "University"),
        "qualification_rows": 4,
        "supervisor": _value(s.adviser_name, "____________________"),
        "blank": BLANK,
    }
    body = state.renderer.render("sections/profile.html.j2", payload)
    return SectionFragment(P.PROFILE, state.title_of(P.PROFILE), body)


def build_activities(doc: DocumentInput, state: RenderState) -> SectionFragment:
    groups = group_entries(doc)
    roster_mode = doc.mode is BookletMode.ROSTER
    views = []
    for group in groups:
        subject = group.subject or SubjectProfile(id="")
        views.append(
            {
                "subject_id": subject.id,
                "name": _value(subject.name, SHORT_BLANK),
                "email": subject.email,
                "entries": [_entry_view(e, state.locale) for e in group.entries],
            }
        )
    payload = {
        "count": len(doc.entries),
        "remarks": doc.overall_remarks,
        "roster_mode": roster_mode,
        "groups": views,
        "empty_message": NO_ENTRIES,
    }
    body = state.renderer.render("sections/activities.html.j2", payload)
    return SectionFragment(P.ACTIVITIES, state.title_of(P.ACTIVITIES), body)


def build_certificate(doc: DocumentInput, state: RenderState) -> SectionFragment:
    strong = Markup("<strong>{}</strong>")
    attestation = escape(state.preset.attestation).format(
        subject=strong.format(_value(doc.subject.name, SHORT_BLANK)),
        department=strong.format(_value(doc.department.name, SHORT_BLANK)),
        organization=strong.format(_value(doc.organization.name, SHORT_BLANK)),
    )
    boxes = [
        Markup("{} ({})").format(label, _value(_signatory(doc, role), SHORT_BLANK))
        for role, label in state.preset.signatures
    ]
    payload = {
        "attestation": attestation,
        "note": state.preset.certificate_note,
        "boxes": boxes,
    }
    body = state.renderer.render("sections/certificate.html.j2", payload)
    return SectionFragment(P.CERTIFICATE, state.title_of(P.CERTIFICATE), body)


@dataclass(frozen=True)
class SectionSpec:
    id: str
    title: str
    builder: Callable[[DocumentInput, RenderState], SectionFragment]


SECTION_REGISTRY: List[SectionSpec] = [
    SectionSpec(P.COVER, "Cover Page", build_cover),
    SectionSpec(P.CONTENTS, "Table of Contents", build_contents),
    SectionSpec(P.PROFILE, "CV of the Resident", build_profile),
    SectionSpec(P.ACKNOWLEDGEMENT, "Acknowledgement", build_acknowledgement),
    SectionSpec(P.ACTIVITIES, "Activities", build_activities),
    SectionSpec(P.CERTIFICATE, "Final Certificate", build_certificate),
]

SECTION_MAP: Dict[str, SectionSpec] = {spec.id: spec for spec in SECTION_REGISTRY}


def initial_state(preset: P.BookletPreset, locale: str, renderer: Optional[TemplateRenderer] = None) -> RenderState:
    titles = tuple((spec.id, spec.title) for spec in SECTION_REGISTRY)
    return RenderState(
        preset=preset,
        locale=locale,
        order=preset.sections,
        titles=titles,
        renderer=renderer or default_renderer(),
    )


def build_sections(
    doc: DocumentInput,
    preset: P.BookletPreset,
    locale: str,
    renderer: Optional[TemplateRenderer] = None,
) -> List[SectionFragment]:
    """Run every builder of the preset in canonical order."""
    state = initial_state(preset, locale, renderer)
    fragments = []
    for section_id in preset.sections:
        fragment = SECTION_MAP[section_id].builder(doc, state)
        fragments.append(fragment)
        state = state.advance(fragment)
    return fragments
