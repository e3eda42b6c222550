"""
Recorder component — renders the recorder state machine.

States: idle-no-permission -> checking-permission -> permission-denied |
ready-to-record -> recording -> recorded-pending-confirm -> uploading
"""

import streamlit as st

from speakcasually.session.recorder import RecorderState, RecordingSession
from speakcasually.session.runtime import SessionRuntime


def render_recorder(
    runtime: SessionRuntime,
    recorder: RecordingSession,
    confirm_label: str = "Confirm & Next",
    key: str = "rec",
) -> None:
    """Render controls for *recorder* according to its current state."""
    state = recorder.state

    if state == RecorderState.permission_denied:
        st.warning(
            recorder.error
            or "Please grant microphone access to record audio."
        )
        if st.button("Retry microphone", key=f"{key}_retry"):
            runtime.run(recorder.check_permission())
            st.rerun()
        return

    if state in (RecorderState.idle_no_permission, RecorderState.checking_permission):
        st.info("Checking microphone access...")
        return

    if recorder.error:
        st.error(recorder.error)

    if state == RecorderState.ready_to_record:
        if st.button("Start Recording", key=f"{key}_start", type="primary", use_container_width=True):
            runtime.run(recorder.start())
            st.rerun()

    elif state == RecorderState.recording:
        st.markdown(":red[**Recording...**]")
        if st.button("Stop", key=f"{key}_stop", type="primary", use_container_width=True):
            runtime.run(recorder.stop())
            st.rerun()

    elif state == RecorderState.recorded_pending_confirm:
        audio = recorder.preview_audio
        if audio:
            st.audio(audio, format="audio/wav")
        col_redo, col_confirm = st.columns(2)
        with col_redo:
            if st.button("Redo", key=f"{key}_redo", use_container_width=True):
                runtime.run(recorder.redo())
                st.rerun()
        with col_confirm:
            if st.button(confirm_label, key=f"{key}_confirm", type="primary", use_container_width=True):
                with st.spinner("Uploading Recording..."):
                    runtime.run(recorder.confirm())
                st.rerun()

    elif state == RecorderState.uploading:
        st.info("Uploading Recording...")
