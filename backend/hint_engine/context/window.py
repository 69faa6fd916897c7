from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from hint_engine.clock import Clock, now_ms

logger = logging.getLogger("hint_engine.context.window")

QUESTION_PATTERNS = [
    re.compile(r"^(can you|could you|would you|how would you|how do you|how did you)", re.IGNORECASE),
    re.compile(r"^(tell me about|describe|explain|walk me through)", re.IGNORECASE),
    re.compile(r"^(what is|what are|what was|what were|what's)", re.IGNORECASE),
    re.compile(r"^(why do you|why did you|why would you)", re.IGNORECASE),
    re.compile(r"^(have you ever|did you|do you)", re.IGNORECASE),
    re.compile(r"\?$"),
]


def is_question(text: str) -> bool:
    clean = str(text or "").strip()
    return any(pattern.search(clean) for pattern in QUESTION_PATTERNS)


@dataclass(frozen=True)
class ContextWindowEntry:
    text: str
    timestamp: float


class RollingContextWindow:
    def __init__(
        self,
        window_duration_ms: float = 90_000,
        question_ttl_ms: float = 120_000,
        clock: Clock = now_ms,
    ):
        self.window_duration_ms = float(window_duration_ms)
        self.question_ttl_ms = float(question_ttl_ms)
        self._clock = clock
        self.entries: list[ContextWindowEntry] = []
        self._latest_question: str | None = None
        self._question_ts: float = 0.0

    def add_transcript(self, text: str, timestamp: float | None = None, is_final: bool = True) -> None:
        clean = str(text or "").strip()
        if not clean or not is_final:
            return

        ts = float(timestamp) if timestamp is not None else self._clock()
        self.entries.append(ContextWindowEntry(text=clean, timestamp=ts))
        self._prune()

        if is_question(clean):
            self._latest_question = clean
            self._question_ts = ts
            logger.debug("question detected | length=%s", len(clean))

    def _prune(self) -> None:
        cutoff = self._clock() - self.window_duration_ms
        self.entries = [entry for entry in self.entries if entry.timestamp > cutoff]

    def get_rolling_text(self) -> str:
        self._prune()
        return " ".join(entry.text for entry in self.entries)

    def get_latest_question(self) -> str | None:
        if self._latest_question and (self._clock() - self._question_ts) < self.question_ttl_ms:
            return self._latest_question
        return None

    def snapshot(self) -> dict:
        self._prune()
        return {
            "recentTranscript": " ".join(entry.text for entry in self.entries),
            "transcriptCount": len(self.entries),
            "latestQuestion": self.get_latest_question(),
            "oldestTranscript": self.entries[0].timestamp if self.entries else None,
            "newestTranscript": self.entries[-1].timestamp if self.entries else None,
        }

    def clear(self) -> None:
        self.entries = []
        self._latest_question = None
        self._question_ts = 0.0
