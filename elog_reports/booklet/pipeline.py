import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from .aggregator import RecordAggregator
from .composer import ComposedDocument, compose_document
from .config import DEFAULT_LOCALE
from .models import BookletMode, DocumentInput
from .presets import get_preset

logger = logging.getLogger(__name__)


class DocumentRenderer(Protocol):
    """Anything that can take a composed booklet to paper or to a file."""

    def render(self, document: ComposedDocument) -> Optional[Path]: ...


@dataclass(frozen=True)
class BookletRequest:
    """
    One "Generate Report" action.

    ``subject_id`` is the student for the ``student`` preset and the staff
    member for ``staff-roster``; ``issuer_id`` is the staff member or the
    department compiling the booklet.
    """

    preset: str
    subject_id: str
    issuer_id: str
    overall_remarks: str = ""
    locale: str = DEFAULT_LOCALE
    subject_name: str = ""


def load_input(aggregator: RecordAggregator, request: BookletRequest) -> DocumentInput:
    preset = get_preset(request.preset)
    if preset.mode is BookletMode.ROSTER:
        return aggregator.staff_roster_booklet(
            request.issuer_id,
            request.subject_id,
            staff_name=request.subject_name,
            overall_remarks=request.overall_remarks,
        )
    return aggregator.student_booklet(
        request.issuer_id,
        request.subject_id,
        overall_remarks=request.overall_remarks,
    )


def generate_booklet(aggregator: RecordAggregator, request: BookletRequest) -> ComposedDocument:
    """Aggregate then compose. Nothing is cached between cycles."""
    logger.info("Generating %s booklet for %s", request.preset, request.subject_id)
    doc = load_input(aggregator, request)
    document = compose_document(doc, preset_name=request.preset, locale=request.locale)
    logger.info(
        "Composed booklet %s: %d entries, %d pages",
        document.fingerprint,
        len(doc.entries),
        document.page_count,
    )
    return document


def dispatch_booklet(document: ComposedDocument, renderer: DocumentRenderer) -> Optional[Path]:
    logger.info("Dispatching booklet %s via %s", document.fingerprint, type(renderer).__name__)
    return renderer.render(document)
