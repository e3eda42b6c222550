"""
Intake form — paste transcripts, one per line.
"""

import streamlit as st

from speakcasually.core.utils import split_transcript_lines
from speakcasually.session.runtime import SessionRuntime


def render_intake_form(runtime: SessionRuntime) -> None:
    """Render the transcript textarea and submit button."""
    controller = runtime.controller
    tasks_before = controller.state.total_count > 0

    with st.container(border=True):
        st.subheader("Add More Transcripts" if tasks_before else "Paste Initial Transcripts")
        st.caption("Paste your transcripts below, one per line. Each line becomes a recording task.")

        text = st.text_area(
            "Transcripts",
            key="intake_text",
            height=240,
            label_visibility="collapsed",
            placeholder="Enter transcripts here...",
        )
        line_count = len(split_transcript_lines(text or ""))
        plural = "" if line_count == 1 else "s"
        verb = "Add" if tasks_before else "Submit"
        label = f"{verb} {line_count}{' More' if tasks_before else ''} Transcript{plural}"

        if controller.state.intake_error:
            st.error(controller.state.intake_error)

        col_submit, col_back = st.columns([3, 1])
        with col_submit:
            if st.button(label, type="primary", use_container_width=True):
                with st.spinner("Submitting..."):
                    ok = runtime.run(controller.submit_transcripts(text))
                if ok:
                    st.session_state.pop("intake_text", None)
                st.rerun()
        with col_back:
            if tasks_before and st.button("Back", use_container_width=True):
                runtime.run(controller.hide_intake())
                st.rerun()
