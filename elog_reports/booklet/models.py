import hashlib
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Tuple

from .safe_text import SafeText


class BookletMode(str, Enum):
    """Whether the booklet covers one subject or a staff member's whole roster."""

    SINGLE_SUBJECT = "single_subject"
    ROSTER = "roster"


class EntryStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "EntryStatus":
        key = str(value or "").strip().lower()
        for member in cls:
            if member.value == key:
                return member
        return cls.UNKNOWN


@dataclass(frozen=True)
class Attachment:
    url: str
    content_type: Optional[str] = None
    size: Optional[int] = None


@dataclass(frozen=True)
class ActivityRecord:
    id: str
    subject_id: str
    activity_date: Optional[date]
    activity_type: SafeText
    title: SafeText
    description: SafeText
    status: EntryStatus
    status_label: SafeText
    faculty_remark: SafeText = field(default_factory=SafeText.empty)
    attachments: Tuple[Attachment, ...] = ()


@dataclass(frozen=True)
class SubjectProfile:
    """
    The person a booklet (or a roster group) is about. Every attribute is
    optional; missing values stay empty and the builders pick a placeholder.
    """

    id: str
    name: SafeText = field(default_factory=SafeText.empty)
    email: SafeText = field(default_factory=SafeText.empty)
    avatar_url: str = ""
    registration_no: SafeText = field(default_factory=SafeText.empty)
    university_reg_no: SafeText = field(default_factory=SafeText.empty)
    roll_no: SafeText = field(default_factory=SafeText.empty)
    program_name: SafeText = field(default_factory=SafeText.empty)
    academic_year: SafeText = field(default_factory=SafeText.empty)
    batch_year: SafeText = field(default_factory=SafeText.empty)
    semester: SafeText = field(default_factory=SafeText.empty)
    rotation_name: SafeText = field(default_factory=SafeText.empty)
    rotation_start: Optional[date] = None
    rotation_end: Optional[date] = None
    dob: Optional[date] = None
    gender: SafeText = field(default_factory=SafeText.empty)
    blood_group: SafeText = field(default_factory=SafeText.empty)
    phone: SafeText = field(default_factory=SafeText.empty)
    address: SafeText = field(default_factory=SafeText.empty)
    guardian_name: SafeText = field(default_factory=SafeText.empty)
    guardian_phone: SafeText = field(default_factory=SafeText.empty)
    emergency_contact_name: SafeText = field(default_factory=SafeText.empty)
    emergency_contact_phone: SafeText = field(default_factory=SafeText.empty)
    adviser_name: SafeText = field(default_factory=SafeText.empty)
    hod_name: SafeText = field(default_factory=SafeText.empty)
    principal_name: SafeText = field(default_factory=SafeText.empty)
    remarks: SafeText = field(default_factory=SafeText.empty)


@dataclass(frozen=True)
class Issuer:
    id: str = ""
    name: SafeText = field(default_factory=SafeText.empty)


@dataclass(frozen=True)
class Branding:
    """Display name and optional logo of an organization or department."""

    name: SafeText = field(default_factory=SafeText.empty)
    logo_url: str = ""


@dataclass(frozen=True)
class DocumentInput:
    """
    Read-only input of one generation cycle. Built once by the aggregator and
    passed unchanged through every section builder and the composer.
    ``entries`` keeps upstream order; grouping and sorting produce new views.
    """

    mode: BookletMode
    subject: SubjectProfile
    issuer: Issuer
    organization: Branding
    department: Branding
    entries: Tuple[ActivityRecord, ...]
    roster: Tuple[SubjectProfile, ...] = ()
    overall_remarks: SafeText = field(default_factory=SafeText.empty)
    generated_on: Optional[date] = None

    def fingerprint(self) -> str:
        """Stable identifier of this input; identical inputs give identical ids."""
        return hashlib.sha256(repr(self).encode("utf-8")).hexdigest()[:16]
