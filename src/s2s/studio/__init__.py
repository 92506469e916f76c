"""Production orchestration: session store, state machine and playback helpers."""

from .production import Production, SESSION_EXPIRED_MESSAGE, check_upload
from .progress import ProgressChannel
from .store import SessionStore
from .subtitles import active_subtitle, to_srt, to_webvtt, write_subtitles

__all__ = [
    "Production",
    "SESSION_EXPIRED_MESSAGE",
    "check_upload",
    "ProgressChannel",
    "SessionStore",
    "active_subtitle",
    "to_srt",
    "to_webvtt",
    "write_subtitles",
]
