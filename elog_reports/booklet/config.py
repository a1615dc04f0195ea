import os
from pathlib import Path

# Activity-log API the aggregator reads from.
DEFAULT_API_BASE = "http://localhost:4000"
ENV_API_BASE = "ELOG_API_URL"
ENV_API_TOKEN = "ELOG_TOKEN"

# Viewer locale used for calendar dates.
DEFAULT_LOCALE = "en-US"
ENV_LOCALE = "BOOKLET_LOCALE"

# Output locations for PDFs and the Jinja2 templates shipped with the package.
ENV_REPORT_DIR = "BOOKLET_REPORT_DIR"
DEFAULT_REPORT_DIR = Path(__file__).resolve().parent.parent / "reports"
DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

# Raster path: fixed A4 page width and the viewport used for capture.
RASTER_PAGE_WIDTH_MM = 210
RASTER_CAPTURE_WIDTH_PX = 800
RASTER_REGION_SELECTOR = "#report-region"

# Parallel fan-out for the aggregation reads.
FETCH_WORKERS = 4


def resolve_api_base() -> str:
    """API base URL from env, without a trailing slash."""
    value = os.getenv(ENV_API_BASE, "").strip() or DEFAULT_API_BASE
    return value.rstrip("/")


def resolve_api_token() -> str:
    """
    Bearer credential handed over by the session context.
    The engine never refreshes or stores it.
    """
    return os.getenv(ENV_API_TOKEN, "").strip()


def resolve_locale() -> str:
    return os.getenv(ENV_LOCALE, "").strip() or DEFAULT_LOCALE


def resolve_report_dir() -> Path:
    env_dir = os.getenv(ENV_REPORT_DIR, "").strip()
    if env_dir:
        return Path(env_dir)
    return DEFAULT_REPORT_DIR
