"""Shared text helpers."""


def split_transcript_lines(text: str) -> list[str]:
    """Split pasted text into trimmed, non-empty transcript lines."""
    return [line.strip() for line in text.split("\n") if line.strip()]


def audio_object_path(task_id: str, folder: str = "audio", extension: str = "wav") -> str:
    """Return the object path for a task's audio. Re-records reuse the same path."""
    return f"{folder}/{task_id}.{extension}"
