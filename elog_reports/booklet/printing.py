"""
Print Dispatcher: hands a composed booklet to a host print surface.

States run Idle -> Opened -> Written -> PrintTriggered -> Idle. A surface that
cannot be opened is reported straight away with ``SurfaceUnavailableError``;
it is usually a pop-up blocker or a missing browser, so nothing is retried.
"""

import json
import logging
import tempfile
import webbrowser
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Protocol

from .composer import ComposedDocument
from .errors import SurfaceUnavailableError

logger = logging.getLogger(__name__)

AUTO_PRINT_SCRIPT = (
    "<script>window.addEventListener('load', function () { window.focus(); window.print(); });</script>"
)
BLOCKED_MESSAGE = "The print window could not be opened. Allow pop-ups for this site and try again."


class PrintState(str, Enum):
    IDLE = "idle"
    OPENED = "opened"
    WRITTEN = "written"
    PRINT_TRIGGERED = "print_triggered"


class PrintSurface(Protocol):
    def open(self) -> bool: ...

    def write(self, html: str) -> None: ...

    def trigger_print(self) -> None: ...


def with_auto_print(html: str) -> str:
    """Append a print-on-load script just before ``</body>``."""
    idx = html.lower().rfind("</body>")
    if idx == -1:
        return html + AUTO_PRINT_SCRIPT
    return html[:idx] + AUTO_PRINT_SCRIPT + html[idx:]


def print_window_script(html: str) -> str:
    """
    Script for web hosts: open a new window, write the document and print it.
    A blocked pop-up shows an alert instead of failing silently.
    """
    payload = json.dumps(html).replace("</", "<\\/")
    message = json.dumps(BLOCKED_MESSAGE)
    return (
        "<script>(function () {"
        f"var doc = {payload};"
        "var w = window.open('', '_blank');"
        f"if (!w) {{ alert({message}); return; }}"
        "w.document.open(); w.document.write(doc); w.document.close();"
        "w.focus(); setTimeout(function () { w.print(); }, 250);"
        "})();</script>"
    )


class BrowserPrintSurface:
    """Opens the booklet in the local web browser, which prints it on load."""

    def __init__(self, output_dir: Optional[Path] = None, browser: Optional[str] = None):
        self.output_dir = output_dir
        self.browser = browser
        self.path: Optional[Path] = None
        self._controller = None

    def open(self) -> bool:
        try:
            self._controller = webbrowser.get(self.browser)
        except webbrowser.Error:
            logger.warning("No web browser available for printing")
            return False
        if self.output_dir is not None:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        handle = tempfile.NamedTemporaryFile(
            prefix="booklet-", suffix=".html", dir=self.output_dir, delete=False
        )
        handle.close()
        self.path = Path(handle.name)
        return True

    def write(self, html: str) -> None:
        self.path.write_text(with_auto_print(html), encoding="utf-8")

    def trigger_print(self) -> None:
        if not self._controller.open(self.path.resolve().as_uri(), new=2):
            raise SurfaceUnavailableError(BLOCKED_MESSAGE)


class EmbeddedPrintSurface:
    """Print surface for web hosts; ``emit`` injects the generated script into the page."""

    def __init__(self, emit: Callable[[str], None]):
        self.emit = emit
        self._html = ""

    def open(self) -> bool:
        return True

    def write(self, html: str) -> None:
        self._html = html

    def trigger_print(self) -> None:
        self.emit(print_window_script(self._html))


class PrintDispatcher:
    def __init__(self, surface: PrintSurface):
        self.surface = surface
        self.state = PrintState.IDLE
        self.history: List[PrintState] = [PrintState.IDLE]

    def _move(self, state: PrintState) -> None:
        logger.debug("Print dispatcher %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def dispatch(self, document: ComposedDocument) -> None:
        if self.state is not PrintState.IDLE:
            raise RuntimeError("A print is already in progress on this dispatcher")
        try:
            if not self.surface.open():
                raise SurfaceUnavailableError(BLOCKED_MESSAGE)
            self._move(PrintState.OPENED)
            self.surface.write(document.html)
            self._move(PrintState.WRITTEN)
            self.surface.trigger_print()
            self._move(PrintState.PRINT_TRIGGERED)
        finally:
            self._move(PrintState.IDLE)


class HostPrintRenderer:
    """``DocumentRenderer`` that prints through a fresh dispatcher per document."""

    def __init__(self, surface_factory: Callable[[], PrintSurface]):
        self.surface_factory = surface_factory
        self.last_dispatcher: Optional[PrintDispatcher] = None

    def render(self, document: ComposedDocument) -> None:
        dispatcher = PrintDispatcher(self.surface_factory())
        self.last_dispatcher = dispatcher
        dispatcher.dispatch(document)
        return None
