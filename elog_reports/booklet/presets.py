from dataclasses import dataclass
from typing import Dict, Tuple

from .models import BookletMode

COVER = "cover"
CONTENTS = "contents"
PROFILE = "profile"
ACKNOWLEDGEMENT = "acknowledgement"
ACTIVITIES = "activities"
CERTIFICATE = "certificate"

# Signature roles that can be labelled with a name from the input.
ROLE_CANDIDATE = "candidate"
ROLE_STAFF = "staff"
ROLE_HOD = "hod"
ROLE_PRINCIPAL = "principal"
ROLE_ORGANIZATION = "organization"


@dataclass(frozen=True)
class BookletPreset:
    label: str
    mode: BookletMode
    sections: Tuple[str, ...]
    document_title: str
    cover_title: str
    cover_subtitle: str
    header_id_label: str
    acknowledgement: Tuple[str, ...]
    attestation: str
    signatures: Tuple[Tuple[str, str], ...]
    certificate_note: str = ""
    cover_signatures: Tuple[str, ...] = (
        "Student Signature",
        "Staff Signature",
        "Department Signature",
        "Organization Signature",
    )


BOOKLET_PRESETS: Dict[str, BookletPreset] = {
    "student": BookletPreset(
        label="Student Log Book",
        mode=BookletMode.SINGLE_SUBJECT,
        sections=(COVER, CONTENTS, PROFILE, ACKNOWLEDGEMENT, ACTIVITIES, CERTIFICATE),
        document_title="Student Report",
        cover_title="LOG BOOK",
        cover_subtitle="Resident Training Programme",
        header_id_label="Student ID",
        acknowledgement=(
            "I acknowledge the guidance and constant support provided by my teachers, the department, "
            "and the institute in the successful completion of this Log Book. Their mentorship has been "
            "instrumental in shaping my academic growth and clinical competence.",
            "I also express my sincere gratitude to all patients and their families for their cooperation "
            "during my residency training.",
        ),
        attestation=(
            "This is to certify that {subject} has pursued the Postgraduate Residency in the {department} "
            "at {organization}, and has maintained the required Log Book of academic and clinical activities "
            "under the guidance of the department."
        ),
        signatures=(
            (ROLE_CANDIDATE, "Candidate"),
            (ROLE_STAFF, "Staff/Teacher"),
            (ROLE_HOD, "Head of Department"),
            (ROLE_PRINCIPAL, "Principal"),
        ),
        certificate_note=(
            "The entries recorded are, to the best of our knowledge, true and reflect the resident's "
            "academic and clinical exposure during the training period."
        ),
    ),
    "staff-roster": BookletPreset(
        label="Staff Roster Report",
        mode=BookletMode.ROSTER,
        sections=(COVER, ACKNOWLEDGEMENT, CONTENTS, ACTIVITIES, CERTIFICATE),
        document_title="Staff Report",
        cover_title="Staff Report",
        cover_subtitle="Activities by Students",
        header_id_label="Staff",
        acknowledgement=(
            "We acknowledge the efforts and guidance contributing to the completion of the activities "
            "summarized in this booklet.",
        ),
        attestation=(
            "This is to certify that the activities under {subject} in the {department} at {organization} "
            "have been reviewed by the department."
        ),
        signatures=(
            (ROLE_STAFF, "Staff/Teacher"),
            (ROLE_HOD, "Head of Department"),
            (ROLE_PRINCIPAL, "Principal"),
            (ROLE_ORGANIZATION, "Organization"),
        ),
    ),
}


def get_preset(name: str) -> BookletPreset:
    """Look up a preset by name. Unknown names are a caller bug and raise KeyError."""
    return BOOKLET_PRESETS[name]
