"""
Transcription demo — record a clip and send it to the configured
speech-to-text endpoint.
"""

# Ensure project root is on sys.path (Streamlit page files need this).
import sys as _sys; from pathlib import Path as _Path; _r = str(_Path(__file__).resolve().parents[3]); _r in _sys.path or _sys.path.insert(0, _r)  # noqa: E702,I001

from datetime import UTC, datetime  # noqa: E402

import streamlit as st  # noqa: E402

from speakcasually.core.exceptions import SpeakCasuallyError  # noqa: E402
from speakcasually.core.models import TaskResponse, TaskStatus  # noqa: E402
from speakcasually.session.recorder import RecordingSession  # noqa: E402
from speakcasually.session.runtime import SessionRuntime  # noqa: E402
from speakcasually.session.transcription import TranscriptionClient  # noqa: E402
from speakcasually.ui.components.recorder import render_recorder  # noqa: E402
from speakcasually.ui.runtime import get_runtime  # noqa: E402

_DEMO_TARGET = TaskResponse(
    id="transcription-demo",
    transcript="",
    status=TaskStatus.pending,
    created_at=datetime(2024, 1, 1, tzinfo=UTC),
)


async def _build_demo_recorder(
    runtime: SessionRuntime, client: TranscriptionClient, results: dict
) -> RecordingSession:
    """Create a recorder whose confirm step transcribes instead of uploading."""

    async def _transcribe(audio: bytes, _task_id: str) -> bool:
        try:
            results["text"] = await client.transcribe(audio)
            results["error"] = None
        except SpeakCasuallyError as exc:
            results["error"] = exc.detail
            return False
        return True

    recorder = RecordingSession(
        runtime.controller.recorder.device,
        runtime.controller.previews,
        on_confirm=_transcribe,
    )
    await recorder.set_target(_DEMO_TARGET)
    return recorder


st.header("Transcription Demo")
runtime = get_runtime()
client = TranscriptionClient()

if not client.configured:
    st.error("Transcription API URL is not configured. Set TRANSCRIPTION_API_URL.")
    st.stop()

if "demo_recorder" not in st.session_state:
    st.session_state.demo_results = {}
    st.session_state.demo_recorder = runtime.run(
        _build_demo_recorder(runtime, client, st.session_state.demo_results)
    )
recorder: RecordingSession = st.session_state.demo_recorder

render_recorder(runtime, recorder, confirm_label="Transcribe", key="demo")

results = st.session_state.get("demo_results", {})
if results.get("error"):
    st.error(results["error"])
elif results.get("text"):
    st.subheader("Transcription")
    st.write(results["text"])
    if st.button("Record again"):
        results.clear()
        runtime.run(recorder.set_target(None))
        runtime.run(recorder.set_target(_DEMO_TARGET))
        st.rerun()
