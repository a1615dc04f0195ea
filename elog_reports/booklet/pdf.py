import logging
import os
from pathlib import Path
from typing import Optional

from .composer import ComposedDocument
from .config import resolve_report_dir
from .errors import DispatchError
from .formatting import slugify

logger = logging.getLogger(__name__)


def _inject_windows_gtk() -> None:
    """
    On Windows, WeasyPrint needs GTK/Pango/Cairo DLLs. If the GTK runtime
    is installed in the common path, add it to the DLL search path.
    """
    if os.name != "nt":
        return
    candidates = [
        Path(r"C:\Program Files\GTK3-Runtime Win64\bin"),
        Path(r"C:\Program Files\GTK3-Runtime Win64\lib"),
    ]
    for c in candidates:
        if c.exists():
            try:
                os.add_dll_directory(str(c))
            except OSError:
                logger.debug("Could not add %s to the DLL search path", c)
            os.environ["PATH"] = f"{c};{os.environ.get('PATH', '')}"


def html_to_pdf_bytes(html: str) -> bytes:
    """
    Lay out composed markup as a paginated PDF with WeasyPrint.
    Page breaks and running headers come from the document's own stylesheet.
    """
    _inject_windows_gtk()
    try:
        from weasyprint import HTML
    except (ImportError, OSError) as exc:  # pragma: no cover - native libs missing
        raise DispatchError(f"WeasyPrint is not available: {exc}") from exc

    return HTML(string=html).write_pdf()


def save_pdf(pdf_bytes: bytes, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(pdf_bytes)
    return path


def booklet_filename(document: ComposedDocument, subject_slug: str = "") -> str:
    stem = slugify(document.title, default="booklet")
    if subject_slug:
        stem = f"{stem}-{slugify(subject_slug)}"
    return f"{stem}.pdf"


class NativePdfRenderer:
    """
    Headless ``DocumentRenderer``: writes the composed booklet to a PDF file
    instead of handing it to a host print dialog.
    """

    def __init__(self, output_dir: Optional[Path] = None, subject_slug: str = ""):
        self.output_dir = output_dir or resolve_report_dir()
        self.subject_slug = subject_slug

    def render(self, document: ComposedDocument) -> Path:
        pdf_bytes = html_to_pdf_bytes(document.html)
        path = save_pdf(pdf_bytes, self.output_dir / booklet_filename(document, self.subject_slug))
        logger.info("Saved booklet %s (%d pages) to %s", document.fingerprint, document.page_count, path)
        return path
