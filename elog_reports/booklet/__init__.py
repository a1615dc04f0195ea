"""
Booklet compiler for the activity-log platform.

Aggregates activity records and profile data into one immutable input,
composes a self-contained paginated document from it and hands that to a
print, PDF or raster back-end.
"""

from .aggregator import RecordAggregator
from .composer import ComposedDocument, compose_document
from .config import DEFAULT_LOCALE, DEFAULT_REPORT_DIR
from .errors import (
    AggregationError,
    ApiError,
    BookletError,
    DispatchError,
    RasterCaptureError,
    SurfaceUnavailableError,
)
from .models import BookletMode, DocumentInput
from .pipeline import BookletRequest, DocumentRenderer, dispatch_booklet, generate_booklet
from .presets import BOOKLET_PRESETS, get_preset

__all__ = [
    "AggregationError",
    "ApiError",
    "BOOKLET_PRESETS",
    "BookletError",
    "BookletMode",
    "BookletRequest",
    "ComposedDocument",
    "DEFAULT_LOCALE",
    "DEFAULT_REPORT_DIR",
    "DispatchError",
    "DocumentInput",
    "DocumentRenderer",
    "RasterCaptureError",
    "RecordAggregator",
    "SurfaceUnavailableError",
    "compose_document",
    "dispatch_booklet",
    "generate_booklet",
    "get_preset",
]
