import re
from datetime import date, datetime
from typing import Any, Optional
from urllib.parse import unquote, urlsplit

from .models import Attachment, EntryStatus

# Placeholders printed where optional data is missing.
BLANK = "___________________________"
SHORT_BLANK = "_____________"
DASH = "-"

# Numeric calendar-date patterns per viewer locale.
_LOCALE_DATE_PATTERNS = {
    "en-US": "{month}/{day}/{year}",
    "en-GB": "{day:02d}/{month:02d}/{year}",
    "en-IN": "{day}/{month}/{year}",
    "en-AU": "{day:02d}/{month:02d}/{year}",
    "de-DE": "{day}.{month}.{year}",
    "fr-FR": "{day:02d}/{month:02d}/{year}",
    "es-ES": "{day}/{month}/{year}",
    "ja-JP": "{year}/{month}/{day}",
}
_LANGUAGE_DEFAULTS = {
    "en": "en-US",
    "de": "de-DE",
    "fr": "fr-FR",
    "es": "es-ES",
    "ja": "ja-JP",
}
_ISO_PATTERN = "{year:04d}-{month:02d}-{day:02d}"
# A "%" not followed by two hex digits cannot be percent-decoded.
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

_STATUS_CLASSES = {
    EntryStatus.APPROVED: "status-approved",
    EntryStatus.PENDING: "status-pending",
    EntryStatus.REJECTED: "status-rejected",
    EntryStatus.UNKNOWN: "status-unknown",
}


def parse_calendar_date(value: Any) -> Optional[date]:
    """
    Keep only the calendar date of an upstream value. Accepts date/datetime
    objects and ISO strings such as ``2024-01-10`` or ``2024-01-10T00:00:00.000Z``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _date_pattern(locale: str) -> str:
    key = str(locale or "").replace("_", "-").strip()
    if key in _LOCALE_DATE_PATTERNS:
        return _LOCALE_DATE_PATTERNS[key]
    language = key.split("-", 1)[0].lower()
    fallback = _LANGUAGE_DEFAULTS.get(language)
    if fallback:
        return _LOCALE_DATE_PATTERNS[fallback]
    return _ISO_PATTERN


def format_date(value: Optional[date], locale: str, placeholder: str = BLANK) -> str:
    if value is None:
        return placeholder
    return _date_pattern(locale).format(day=value.day, month=value.month, year=value.year)


def attachment_filename(url: str) -> str:
    """
    Last path segment of the attachment URL, percent-decoded.
    Falls back to the raw URL when there is no segment, an escape is
    malformed or the bytes are not UTF-8.
    """
    raw = str(url or "")
    try:
        path = urlsplit(raw).path
    except ValueError:
        return raw
    segment = path.rstrip("/").rsplit("/", 1)[-1] if path else ""
    if not segment or _BAD_ESCAPE.search(segment):
        return raw
    try:
        return unquote(segment, encoding="utf-8", errors="strict")
    except UnicodeDecodeError:
        return raw


def format_size_kb(size: Optional[int]) -> str:
    if not size:
        return ""
    return f"{size / 1024:.1f} KB"


def attachment_label(attachment: Attachment) -> str:
    name = attachment_filename(attachment.url)
    size = format_size_kb(attachment.size)
    return f"{name} ({size})" if size else name


def status_class(status: EntryStatus) -> str:
    return _STATUS_CLASSES.get(status, "status-unknown")


def slugify(value: str, default: str = "report") -> str:
    s = re.sub(r"[^A-Za-z0-9]+", "-", str(value or "")).strip("-").lower()
    return s or default


def is_absolute_url(url: str) -> bool:
    """Only fully qualified images may be embedded in a self-contained document."""
    s = str(url or "").strip().lower()
    return s.startswith(("http://", "https://", "data:image/"))
