from hint_engine.session.memory import MemoryEntry, SessionMemory
from hint_engine.session.models import (
    HintRequest,
    InterviewMeta,
    PausedState,
    Screenshot,
    Session,
    SessionContext,
)
from hint_engine.session.platform import detect_platform, is_restricted_url

__all__ = [
    "HintRequest",
    "InterviewMeta",
    "MemoryEntry",
    "PausedState",
    "Screenshot",
    "Session",
    "SessionContext",
    "SessionMemory",
    "detect_platform",
    "is_restricted_url",
]
