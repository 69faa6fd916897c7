from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass
class MemoryEntry:
    question: str
    response: str
    mode: str
    timestamp: float = field(default_factory=lambda: time.time() * 1000.0)

    def to_dict(self) -> dict:
        return {
            "question": self.question,
            "response": self.response,
            "mode": self.mode,
            "timestamp": self.timestamp,
        }


class SessionMemory:
    def __init__(self, max_entries: int = 5):
        self.max_entries = max(1, int(max_entries))
        self.history: list[MemoryEntry] = []
        self.last_mode: str | None = None
        self.detected_language: str | None = None
        self.code_written: str | None = None

    def add(self, question: str, response: str, mode: str, timestamp: float | None = None) -> None:
        entry = MemoryEntry(question=str(question or ""), response=str(response or ""), mode=str(mode))
        if timestamp is not None:
            entry.timestamp = float(timestamp)
        self.history.append(entry)
        self.history = self.history[-self.max_entries:]
        self.last_mode = entry.mode
        if entry.mode in {"code", "sql"}:
            self.code_written = entry.response

    def last(self) -> MemoryEntry | None:
        return self.history[-1] if self.history else None

    def to_dict(self) -> dict:
        return {
            "history": [entry.to_dict() for entry in self.history],
            "lastMode": self.last_mode,
            "detectedLanguage": self.detected_language,
            "codeWritten": self.code_written,
        }

    def clear(self) -> None:
        self.history = []
        self.last_mode = None
        self.detected_language = None
        self.code_written = None
