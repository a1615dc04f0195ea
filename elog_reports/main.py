import os
from pathlib import Path

import streamlit as st
import streamlit.components.v1 as components

from booklet import BOOKLET_PRESETS, BookletError, RecordAggregator, dispatch_booklet, generate_booklet
from booklet.api_client import ApiClient
from booklet.config import resolve_report_dir
from booklet.logging_utils import get_logger, setup_logging
from booklet.pdf import NativePdfRenderer
from booklet.pipeline import load_input
from booklet.printing import EmbeddedPrintSurface, HostPrintRenderer
from booklet.raster import PlaywrightCapturer, RasterDispatcher
from booklet.tabular import TABULAR_REPORTS, build_tabular_html, rows_for
from booklet.layout import render_request_form

setup_logging(log_file=os.getenv("BOOKLET_LOG_FILE") or None)
logger = get_logger(__name__)

st.set_page_config(page_title="Activity Log Reports", layout="wide")

DOC_KEY = "booklet_document"
REQUEST_KEY = "booklet_request"
PDF_KEY = "booklet_pdf"
PDF_NAME_KEY = "booklet_pdf_name"
RASTER_KEY = "booklet_raster"
RASTER_NAME_KEY = "booklet_raster_name"


def _aggregator() -> RecordAggregator:
    # Token comes from the session; the engine never stores or refreshes it.
    token = st.session_state.get("api_token") or None
    return RecordAggregator(client=ApiClient(token=token))


def _reset_outputs() -> None:
    for key in (PDF_KEY, PDF_NAME_KEY, RASTER_KEY, RASTER_NAME_KEY):
        st.session_state.pop(key, None)


st.title("Activity Log Reports")

with st.sidebar:
    st.header("Session")
    st.text_input("API token", type="password", key="api_token")
    st.caption(f"PDFs are saved to {resolve_report_dir()}")

request = render_request_form(BOOKLET_PRESETS)
if request is not None:
    _reset_outputs()
    try:
        with st.status("Generating report...", expanded=False):
            st.session_state[DOC_KEY] = generate_booklet(_aggregator(), request)
            st.session_state[REQUEST_KEY] = request
        st.success("Report generated")
    except BookletError as exc:
        logger.error("Booklet generation failed: %s", exc)
        st.session_state.pop(DOC_KEY, None)
        st.error(f"Report generation failed: {exc}")

document = st.session_state.get(DOC_KEY)
current = st.session_state.get(REQUEST_KEY)

if document is not None:
    st.subheader(document.title)
    st.caption(f"{document.page_count} pages")

    col_print, col_pdf = st.columns(2)
    with col_print:
        if st.button("Print", key="booklet_print", width="stretch"):
            scripts = []
            try:
                dispatch_booklet(document, HostPrintRenderer(lambda: EmbeddedPrintSurface(scripts.append)))
            except BookletError as exc:
                st.error(str(exc))
            for script in scripts:
                components.html(script, height=0)
    with col_pdf:
        if st.button("Save PDF", key="booklet_save_pdf", width="stretch"):
            try:
                path = dispatch_booklet(document, NativePdfRenderer(subject_slug=current.subject_id))
                st.session_state[PDF_KEY] = Path(path).read_bytes()
                st.session_state[PDF_NAME_KEY] = Path(path).name
            except BookletError as exc:
                st.error(f"PDF export failed: {exc}")
        if isinstance(st.session_state.get(PDF_KEY), bytes):
            st.download_button(
                "Download PDF",
                st.session_state[PDF_KEY],
                st.session_state.get(PDF_NAME_KEY, "booklet.pdf"),
                "application/pdf",
                key="booklet_pdf_dl",
                width="stretch",
            )

    components.html(document.html, height=900, scrolling=True)

    st.divider()
    st.subheader("Tabular reports")
    report_type = st.selectbox(
        "Report type",
        list(TABULAR_REPORTS),
        format_func=lambda name: TABULAR_REPORTS[name],
        key="tabular_type",
    )
    if st.button("Download raster PDF", key="tabular_build"):
        try:
            doc = load_input(_aggregator(), current)
            html = build_tabular_html(report_type, rows_for(report_type, doc, current.locale), doc.generated_on, current.locale)
            path = RasterDispatcher(PlaywrightCapturer()).dispatch(html, report_type, current.subject_id)
            st.session_state[RASTER_KEY] = path.read_bytes()
            st.session_state[RASTER_NAME_KEY] = path.name
        except BookletError as exc:
            st.error(f"Raster export failed: {exc}")
    if isinstance(st.session_state.get(RASTER_KEY), bytes):
        st.download_button(
            "Save raster PDF",
            st.session_state[RASTER_KEY],
            st.session_state.get(RASTER_NAME_KEY, "report.pdf"),
            "application/pdf",
            key="tabular_dl",
        )
