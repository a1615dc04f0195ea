from typing import Optional


class BookletError(Exception):
    """Base class for failures that are reported to the person generating a booklet."""


class ApiError(BookletError):
    """A single upstream read failed, either at the HTTP or the transport level."""

    def __init__(self, message: str, status: Optional[int] = None, path: str = ""):
        super().__init__(message)
        self.status = status
        self.path = path


class AggregationError(BookletError):
    """The primary activity-record read failed, so no document can be produced."""


class DispatchError(BookletError):
    pass


class SurfaceUnavailableError(DispatchError):
    """The print surface could not be opened (pop-up blocked, no browser)."""


class RasterCaptureError(DispatchError):
    """Capturing or encoding the on-screen region failed."""
