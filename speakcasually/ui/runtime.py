"""Per-browser-session runtime for the Streamlit UI."""

import streamlit as st

from speakcasually.core.logging_setup import configure_logging
from speakcasually.session.runtime import SessionLoop, SessionRuntime

_RUNTIME_KEY = "session_runtime"
_DEMO_RECORDER_KEY = "demo_recorder"
_DEMO_RESULTS_KEY = "demo_results"


@st.cache_resource
def get_session_loop() -> SessionLoop:
    """Return the process-wide loop that hosts every user's session.

    Uses Streamlit's ``cache_resource`` so the loop and the backend handle
    bound to it survive script reruns and are shared across users.
    """
    configure_logging()
    return SessionLoop()


def get_runtime() -> SessionRuntime:
    """Return this browser session's runtime, loading it on first access."""
    runtime = st.session_state.get(_RUNTIME_KEY)
    if runtime is None:
        runtime = SessionRuntime(get_session_loop())
        st.session_state[_RUNTIME_KEY] = runtime
    return runtime


def reset_runtime() -> None:
    """Close this browser session's runtime; the next access builds a new one."""
    runtime = st.session_state.pop(_RUNTIME_KEY, None)
    demo_recorder = st.session_state.pop(_DEMO_RECORDER_KEY, None)
    st.session_state.pop(_DEMO_RESULTS_KEY, None)
    if runtime is None:
        return
    if demo_recorder is not None:
        runtime.run(demo_recorder.close())
    runtime.shutdown()
