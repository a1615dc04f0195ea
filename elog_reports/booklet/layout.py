from typing import Dict, Optional

import streamlit as st

from .config import resolve_locale
from .models import BookletMode
from .pipeline import BookletRequest
from .presets import BookletPreset


def render_request_form(presets: Dict[str, BookletPreset], key_prefix: str = "booklet") -> Optional[BookletRequest]:
    """
    Shared form for the booklet builder. Keeps control labels consistent and
    returns a BookletRequest when "Generate Report" is clicked.
    """
    preset_name = st.selectbox(
        "Report",
        list(presets),
        format_func=lambda name: presets[name].label,
        key=f"{key_prefix}_preset",
    )
    roster = presets[preset_name].mode is BookletMode.ROSTER
    issuer_id = st.text_input("Department ID" if roster else "Staff ID", key=f"{key_prefix}_issuer")
    subject_id = st.text_input("Staff ID" if roster else "Student ID", key=f"{key_prefix}_subject")
    subject_name = st.text_input("Staff name", key=f"{key_prefix}_subject_name") if roster else ""
    remarks = st.text_area("Overall remarks", key=f"{key_prefix}_remarks")
    locale = st.text_input("Date locale", value=resolve_locale(), key=f"{key_prefix}_locale")

    clicked = st.button("Generate Report", key=f"{key_prefix}_generate", width="stretch")
    if not clicked:
        return None
    if not issuer_id.strip() or not subject_id.strip():
        st.warning("Both IDs are required.")
        return None
    return BookletRequest(
        preset=preset_name,
        subject_id=subject_id.strip(),
        issuer_id=issuer_id.strip(),
        overall_remarks=remarks,
        locale=locale.strip() or resolve_locale(),
        subject_name=subject_name.strip(),
    )
