from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup
from markupsafe import Markup, escape

from .config import DEFAULT_LOCALE
from .formatting import SHORT_BLANK
from .models import BookletMode, DocumentInput
from .presets import BookletPreset, get_preset
from .rendering import TemplateRenderer, default_renderer
from .sections import SectionFragment, build_sections

PAGE_SELECTOR = "body > section.page"
PAGE_NUMBER_SELECTOR = "footer .page-number"
TOC_REF_SELECTOR = ".toc-page[data-target]"


@dataclass(frozen=True)
class ComposedDocument:
    """A complete, self-contained booklet ready for any dispatcher."""

    html: str
    title: str
    page_ids: Tuple[str, ...]
    fingerprint: str

    @property
    def page_count(self) -> int:
        return len(self.page_ids)


def running_header(doc: DocumentInput, preset: BookletPreset) -> Tuple[Markup, Markup]:
    """Left: organization and department names. Right: subject id or staff name."""
    names = [b.name for b in (doc.organization, doc.department) if b.name]
    left = Markup(" &mdash; ").join(names)
    if doc.mode is BookletMode.ROSTER:
        identifier = doc.subject.name.or_placeholder(SHORT_BLANK)
    else:
        identifier = doc.subject.id or SHORT_BLANK
    right = Markup("{}: {}").format(preset.header_id_label, identifier)
    return left, right


def number_pages(markup: str) -> Tuple[str, Tuple[str, ...]]:
    """
    Page-numbering pass over a fully assembled document.

    Numbers the top-level page containers 1..N in document order, writes the
    number into each container's footer slot and resolves table-of-contents
    references to the number of the page they point at.
    """
    soup = BeautifulSoup(markup, "html.parser")
    page_numbers: Dict[str, int] = {}
    page_ids: List[str] = []
    for number, page in enumerate(soup.select(PAGE_SELECTOR), start=1):
        slot = page.select_one(PAGE_NUMBER_SELECTOR)
        if slot is not None:
            slot.string = str(number)
        page_id = page.get("id") or ""
        page_ids.append(page_id)
        if page_id and page_id not in page_numbers:
            page_numbers[page_id] = number

    for ref in soup.select(TOC_REF_SELECTOR):
        number = page_numbers.get(ref["data-target"])
        ref.string = str(number) if number is not None else ""

    return str(soup), tuple(page_ids)


def assemble(
    doc: DocumentInput,
    preset: BookletPreset,
    fragments: List[SectionFragment],
    locale: str,
    renderer: TemplateRenderer,
) -> str:
    header_left, header_right = running_header(doc, preset)
    payload = {
        "lang": escape(locale),
        "title": preset.document_title,
        "fingerprint": doc.fingerprint(),
        "header_left": header_left,
        "header_right": header_right,
        "footer_left": doc.subject.name.or_placeholder(SHORT_BLANK),
        "pages": fragments,
    }
    return str(renderer.render("document.html.j2", payload))


def compose_document(
    doc: DocumentInput,
    preset_name: str = "student",
    locale: str = DEFAULT_LOCALE,
    renderer: Optional[TemplateRenderer] = None,
) -> ComposedDocument:
    """
    Build every section of the preset, assemble them into one document and
    number its pages. Output depends only on the arguments.
    """
    preset = get_preset(preset_name)
    if preset.mode is not doc.mode:
        raise ValueError(f"Preset {preset_name!r} expects a {preset.mode.value} input, got {doc.mode.value}")
    renderer = renderer or default_renderer()
    fragments = build_sections(doc, preset, locale, renderer)
    markup = assemble(doc, preset, fragments, locale, renderer)
    html, page_ids = number_pages(markup)
    return ComposedDocument(
        html=html,
        title=preset.document_title,
        page_ids=page_ids,
        fingerprint=doc.fingerprint(),
    )
