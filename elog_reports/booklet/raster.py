"""
Raster Dispatcher: screenshot a rendered report region and place it on one
A4 page of a PDF.

States run Idle -> Captured -> Encoded -> Saved -> Idle. The image is scaled
to the page width with its aspect ratio kept and is clipped at the bottom of
the page if it is taller than A4.
"""

import logging
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Protocol, Tuple

from fpdf import FPDF
from PIL import Image, UnidentifiedImageError

from .config import (
    RASTER_CAPTURE_WIDTH_PX,
    RASTER_PAGE_WIDTH_MM,
    RASTER_REGION_SELECTOR,
    resolve_report_dir,
)
from .errors import RasterCaptureError
from .formatting import slugify
from .pdf import save_pdf

logger = logging.getLogger(__name__)


class RasterState(str, Enum):
    IDLE = "idle"
    CAPTURED = "captured"
    ENCODED = "encoded"
    SAVED = "saved"


class RegionCapturer(Protocol):
    def capture(self, html: str, selector: str) -> bytes: ...


class PlaywrightCapturer:
    """Renders markup in headless Chromium and screenshots one element as PNG."""

    def __init__(self, width_px: int = RASTER_CAPTURE_WIDTH_PX, timeout_ms: int = 30000):
        self.width_px = width_px
        self.timeout_ms = timeout_ms

    def capture(self, html: str, selector: str) -> bytes:
        try:
            from playwright.sync_api import Error as PlaywrightError
            from playwright.sync_api import sync_playwright
        except ImportError as exc:  # pragma: no cover - optional browser stack
            raise RasterCaptureError(f"Playwright is not available: {exc}") from exc

        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(headless=True)
                try:
                    page = browser.new_page(viewport={"width": self.width_px, "height": 1000})
                    page.set_content(html, wait_until="load", timeout=self.timeout_ms)
                    region = page.locator(selector)
                    if region.count() == 0:
                        raise RasterCaptureError(f"No element matches {selector!r}")
                    return region.first.screenshot(type="png", timeout=self.timeout_ms)
                finally:
                    browser.close()
        except PlaywrightError as exc:
            raise RasterCaptureError(f"Capture failed: {exc}") from exc


def image_size(png: bytes) -> Tuple[int, int]:
    try:
        with Image.open(BytesIO(png)) as img:
            return img.size
    except (UnidentifiedImageError, OSError) as exc:
        raise RasterCaptureError(f"Captured image could not be read: {exc}") from exc


def png_to_pdf_bytes(png: bytes, page_width_mm: float = RASTER_PAGE_WIDTH_MM) -> bytes:
    """One A4 portrait page with the image at the top-left, full page width."""
    width_px, height_px = image_size(png)
    if width_px <= 0 or height_px <= 0:
        raise RasterCaptureError("Captured image is empty")
    img_h = page_width_mm * (height_px / width_px)

    pdf = FPDF("P", "mm", "A4")
    pdf.set_auto_page_break(False)
    pdf.add_page()
    pdf.image(BytesIO(png), x=0, y=0, w=page_width_mm, h=img_h)
    output = pdf.output()
    return bytes(output) if isinstance(output, (bytes, bytearray)) else output.encode("latin-1")


def raster_filename(report_type: str, subject: str = "") -> str:
    parts = [slugify(report_type)]
    if subject:
        parts.append(slugify(subject))
    parts.append("report")
    return "-".join(parts) + ".pdf"


class RasterDispatcher:
    def __init__(
        self,
        capturer: RegionCapturer,
        output_dir: Optional[Path] = None,
        page_width_mm: float = RASTER_PAGE_WIDTH_MM,
        selector: str = RASTER_REGION_SELECTOR,
    ):
        self.capturer = capturer
        self.output_dir = output_dir or resolve_report_dir()
        self.page_width_mm = page_width_mm
        self.selector = selector
        self.state = RasterState.IDLE
        self.history: List[RasterState] = [RasterState.IDLE]

    def _move(self, state: RasterState) -> None:
        logger.debug("Raster dispatcher %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def dispatch(self, html: str, report_type: str, subject: str = "") -> Path:
        if self.state is not RasterState.IDLE:
            raise RuntimeError("A capture is already in progress on this dispatcher")
        try:
            png = self.capturer.capture(html, self.selector)
            self._move(RasterState.CAPTURED)
            pdf_bytes = png_to_pdf_bytes(png, self.page_width_mm)
            self._move(RasterState.ENCODED)
            path = save_pdf(pdf_bytes, self.output_dir / raster_filename(report_type, subject))
            self._move(RasterState.SAVED)
        finally:
            self._move(RasterState.IDLE)
        logger.info("Saved %s report snapshot to %s", report_type, path)
        return path
