"""
Tests for the Streamlit request form. Streamlit itself is mocked; no app runs.
"""
import re
from pathlib import Path
from unittest.mock import MagicMock, patch

from booklet.layout import render_request_form
from booklet.presets import BOOKLET_PRESETS

PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"

# First Streamlit release whose buttons accept width="stretch".
STRETCH_WIDTH_RELEASE = (1, 46)


def _streamlit(preset, inputs, clicked=True):
    st = MagicMock()
    st.selectbox.return_value = preset
    st.text_input.side_effect = lambda label, value="", **kwargs: inputs.get(label, value)
    st.text_area.return_value = inputs.get("Overall remarks", "")
    st.button.return_value = clicked
    return st


class TestRequestForm:
    def test_student_request(self):
        inputs = {"Staff ID": " t1 ", "Student ID": "s1", "Overall remarks": "Well done\n", "Date locale": "en-GB"}
        with patch("booklet.layout.st", _streamlit("student", inputs)):
            request = render_request_form(BOOKLET_PRESETS)
        assert request.preset == "student"
        assert request.issuer_id == "t1"
        assert request.subject_id == "s1"
        assert request.overall_remarks == "Well done\n"
        assert request.locale == "en-GB"

    def test_roster_request_asks_for_department_and_staff(self):
        inputs = {"Department ID": "d1", "Staff ID": "t1", "Staff name": "Dr. K"}
        st = _streamlit("staff-roster", inputs)
        with patch("booklet.layout.st", st):
            request = render_request_form(BOOKLET_PRESETS)
        assert (request.issuer_id, request.subject_id, request.subject_name) == ("d1", "t1", "Dr. K")
        labels = [c.args[0] for c in st.text_input.call_args_list]
        assert "Department ID" in labels

    def test_missing_ids_warn(self):
        st = _streamlit("student", {"Staff ID": "t1"})
        with patch("booklet.layout.st", st):
            assert render_request_form(BOOKLET_PRESETS) is None
        st.warning.assert_called_once()

    def test_not_clicked(self):
        with patch("booklet.layout.st", _streamlit("student", {}, clicked=False)):
            assert render_request_form(BOOKLET_PRESETS) is None

    def test_generate_button_stretches(self):
        st = _streamlit("student", {"Staff ID": "t1", "Student ID": "s1"})
        with patch("booklet.layout.st", st):
            render_request_form(BOOKLET_PRESETS)
        assert st.button.call_args.kwargs["width"] == "stretch"


class TestDeclaredStreamlit:
    def test_floor_supports_stretch_width(self):
        match = re.search(r'"streamlit>=(\d+)\.(\d+)', PYPROJECT.read_text(encoding="utf-8"))
        assert match is not None
        assert (int(match.group(1)), int(match.group(2))) >= STRETCH_WIDTH_RELEASE
