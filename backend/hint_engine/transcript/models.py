from dataclasses import dataclass, field
from enum import Enum

from hint_engine.clock import now_ms


class Speaker(str, Enum):
    SELF = "self"
    OTHER = "other"


SPEAKER_LABELS = {
    Speaker.SELF: "You",
    Speaker.OTHER: "Interviewer",
}


def parse_speaker(value) -> Speaker:
    raw = str(getattr(value, "value", value) or "").strip().lower()
    if raw in {"self", "mic", "me", "candidate"}:
        return Speaker.SELF
    return Speaker.OTHER


@dataclass(frozen=True)
class TranscriptEvent:
    """
    One speech-to-text result as delivered by the speech source.
    Immutable once emitted.
    """
    text: str
    is_final: bool
    confidence: float = 0.9
    speaker: Speaker = Speaker.OTHER
    timestamp: float = field(default_factory=now_ms)


@dataclass(frozen=True)
class TranscriptionState:
    finalized_text: str = ""
    interim_text: str = ""

    @property
    def display_text(self) -> str:
        if self.finalized_text and self.interim_text:
            return f"{self.finalized_text}\n{self.interim_text}"
        return self.finalized_text + self.interim_text

    @property
    def has_interim(self) -> bool:
        return bool(self.interim_text)

    def to_dict(self) -> dict:
        return {
            "finalizedText": self.finalized_text,
            "interimText": self.interim_text,
            "displayText": self.display_text,
            "hasInterim": self.has_interim,
        }
