"""
Speak Casually Streamlit UI — main entry point.

Run with: ``streamlit run speakcasually/ui/app.py``
(the backend must be running: ``uvicorn speakcasually.api.app:app``).
"""

# ---------------------------------------------------------------------------
# Ensure project root is on sys.path so ``from speakcasually.xxx`` imports work.
# Streamlit replaces sys.path[0] with the script directory.
# ---------------------------------------------------------------------------
import sys  # noqa: E402
from pathlib import Path  # noqa: E402

_project_root = str(Path(__file__).resolve().parent.parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

import streamlit as st  # noqa: E402

from speakcasually.core.config import get_settings  # noqa: E402

# ---------------------------------------------------------------------------
# Page config (must be first Streamlit call)
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Speak Casually",
    page_icon="\U0001f399\ufe0f",
    layout="centered",
)

# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
with st.sidebar:
    st.title("\U0001f399\ufe0f Speak Casually")
    st.caption("Paste transcripts, record each one")
    st.divider()

    from speakcasually.ui.runtime import get_runtime  # noqa: E402

    _settings = get_settings()
    _runtime = get_runtime()
    st.caption(f"Backend: {_settings.api_base_url}")
    if _runtime.controller.state.connection_error:
        st.error("Realtime: disconnected")
    elif _runtime.controller.is_subscribed:
        st.success("Realtime: connected")
    else:
        st.info("Realtime: idle")

# ---------------------------------------------------------------------------
# Navigation (multipage)
# ---------------------------------------------------------------------------
tasks_page = st.Page(
    "pages/01_tasks.py",
    title="Record",
    icon="\U0001f3a4",
    default=True,
)
demo_page = st.Page(
    "pages/02_transcription_demo.py",
    title="Transcription Demo",
    icon="\U0001f4dd",
)

nav = st.navigation([tasks_page, demo_page])
nav.run()
