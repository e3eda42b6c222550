"""
Session module - Client-side coordination of intake, recording and review.
"""

from speakcasually.session.backend import BackendClient, TaskBackend, get_backend, init_backend
from speakcasually.session.capture import MicrophoneDevice, PreviewStore
from speakcasually.session.controller import Mode, SessionController, SessionState, View
from speakcasually.session.intake import IntakeCoordinator
from speakcasually.session.recorder import RecorderState, RecordingSession
from speakcasually.session.upload import UploadCoordinator

__all__ = [
    "BackendClient",
    "IntakeCoordinator",
    "MicrophoneDevice",
    "Mode",
    "PreviewStore",
    "RecorderState",
    "RecordingSession",
    "SessionController",
    "SessionState",
    "TaskBackend",
    "UploadCoordinator",
    "View",
    "get_backend",
    "init_backend",
]
