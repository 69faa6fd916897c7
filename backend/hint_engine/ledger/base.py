from __future__ import annotations

import asyncio
from typing import Protocol


class LedgerService(Protocol):
    """Persistence/credit backend reached through RPC-style calls."""

    async def get_credit_balance(self) -> int:
        ...

    async def create_session(self, session_id: str, record: dict) -> None:
        ...

    async def pause_session(self, session_id: str, paused_state: dict) -> None:
        ...

    async def resume_session(self, session_id: str) -> dict | None:
        ...

    async def complete_session(self, session_id: str) -> dict:
        ...

    async def cancel_session(self, session_id: str) -> None:
        ...


class LocalLedger:
    """In-process ledger used when no remote backend is configured."""

    def __init__(self, credits: int = 10):
        self._balance = max(0, int(credits))
        self._lock = asyncio.Lock()
        self.sessions: dict[str, dict] = {}
        self.paused: dict[str, dict] = {}

    async def get_credit_balance(self) -> int:
        return self._balance

    async def create_session(self, session_id: str, record: dict) -> None:
        self.sessions[session_id] = {**dict(record or {}), "status": "active"}

    async def pause_session(self, session_id: str, paused_state: dict) -> None:
        self.paused[session_id] = dict(paused_state or {})
        if session_id in self.sessions:
            self.sessions[session_id]["status"] = "paused"

    async def resume_session(self, session_id: str) -> dict | None:
        state = self.paused.pop(session_id, None)
        if state is not None and session_id in self.sessions:
            self.sessions[session_id]["status"] = "active"
        return state

    async def complete_session(self, session_id: str) -> dict:
        async with self._lock:
            self._balance = max(0, self._balance - 1)
            if session_id in self.sessions:
                self.sessions[session_id]["status"] = "completed"
            return {"new_balance": self._balance}

    async def cancel_session(self, session_id: str) -> None:
        self.paused.pop(session_id, None)
        if session_id in self.sessions:
            self.sessions[session_id]["status"] = "cancelled"
