"""
Review list — completed recordings with playback and re-record buttons.
"""

import streamlit as st

from speakcasually.core.models import TaskResponse
from speakcasually.session.runtime import SessionRuntime


def render_review_item(runtime: SessionRuntime, task: TaskResponse) -> None:
    with st.container(border=True):
        st.markdown(f"`{task.transcript}`")
        col_audio, col_btn = st.columns([4, 1])
        with col_audio:
            if task.audio_url:
                st.audio(task.audio_url)
            else:
                st.caption("Audio not found")
        with col_btn:
            if st.button(
                "Re-record",
                key=f"rerecord_{task.id}",
                disabled=runtime.controller.is_uploading,
                use_container_width=True,
            ):
                runtime.run(runtime.controller.start_rerecord(task))
                st.rerun()


def render_review_list(runtime: SessionRuntime) -> None:
    """Render all completed tasks, newest first."""
    state = runtime.controller.state
    st.subheader(f"Review Completed Recordings ({len(state.review_list)})")

    if state.is_fetching_review:
        st.info("Loading review list...")
    elif not state.review_list:
        st.caption("No recordings completed yet.")
    else:
        for task in state.review_list:
            render_review_item(runtime, task)

    if st.button("Add More Transcripts", key="review_add_more"):
        runtime.run(runtime.controller.show_intake())
        st.rerun()
