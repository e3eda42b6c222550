"""
Tasks page — intake form, recording view and review list.

The body runs as a fragment on a timer so counts and the next pending task
picked up by the change feed appear without user interaction.
"""

# Ensure project root is on sys.path (Streamlit page files need this).
import sys as _sys; from pathlib import Path as _Path; _r = str(_Path(__file__).resolve().parents[3]); _r in _sys.path or _sys.path.insert(0, _r)  # noqa: E702,I001

import streamlit as st  # noqa: E402

from speakcasually.session.controller import Mode, View  # noqa: E402
from speakcasually.ui.components.intake_form import render_intake_form  # noqa: E402
from speakcasually.ui.components.recorder import render_recorder  # noqa: E402
from speakcasually.ui.components.review_list import render_review_list  # noqa: E402
from speakcasually.ui.runtime import get_runtime, reset_runtime  # noqa: E402

_REFRESH_SECONDS = 2

runtime = get_runtime()
controller = runtime.controller


def _render_mode_switch() -> None:
    state = controller.state
    col_rec, col_review = st.columns(2)
    with col_rec:
        if st.button(
            "Record Pending",
            use_container_width=True,
            disabled=state.mode == Mode.record and state.rerecord_target is None,
        ):
            runtime.run(controller.switch_to_record())
            st.rerun()
    with col_review:
        if st.button(
            f"Review Completed ({state.completed_count})",
            use_container_width=True,
            disabled=state.mode == Mode.review or state.rerecord_target is not None,
        ):
            runtime.run(controller.switch_to_review())
            st.rerun()


def _render_error() -> None:
    st.error("Oops! Something went wrong.")
    st.write(controller.display_error)
    if controller.state.connection_error:
        st.caption("The realtime connection was lost. Reload the page to reconnect.")
        if st.button("Refresh Page"):
            reset_runtime()
            st.rerun()
    elif st.button("Dismiss"):
        controller.dismiss_error()
        st.rerun()


def _render_record() -> None:
    task = controller.state.active_task
    st.caption(controller.progress_label())
    st.markdown(f"### `{task.transcript}`")
    render_recorder(runtime, controller.recorder)
    if controller.state.rerecord_target is not None:
        if st.button("Cancel Re-record", disabled=controller.is_uploading):
            runtime.run(controller.cancel_rerecord())
            st.rerun()


def _render_all_done() -> None:
    st.success(f"All pending done! You have completed recording all {controller.state.total_count} transcripts.")
    st.caption("You can now review completed recordings or add more transcripts.")
    if st.button("Add More Transcripts"):
        runtime.run(controller.show_intake())
        st.rerun()


@st.fragment(run_every=_REFRESH_SECONDS)
def _render_body() -> None:
    view = controller.view()

    if view == View.loading:
        st.info("Loading...")
        return
    if view == View.error:
        _render_error()
        return

    if controller.state.tasks_exist:
        _render_mode_switch()

    if view == View.intake:
        render_intake_form(runtime)
    elif view == View.record:
        _render_record()
    elif view == View.all_done:
        _render_all_done()
    elif view == View.review:
        render_review_list(runtime)
    else:
        st.caption("Loading or state issue...")


st.header("Speak Casually")
_render_body()
