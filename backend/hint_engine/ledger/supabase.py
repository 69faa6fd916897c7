from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from hint_engine.errors import PersistenceError

logger = logging.getLogger("hint_engine.ledger.supabase")

SESSIONS_TABLE = "interview_sessions"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SupabaseLedger:
    """
    Ledger backed by Supabase PostgREST.

    Credit deduction happens inside the `complete_session` RPC so the
    balance change is atomic on the database side.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: str | None = None,
        timeout_sec: float = 6.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        token = str(access_token or api_key or "").strip()
        self._client = httpx.AsyncClient(
            base_url=str(base_url or "").rstrip("/"),
            timeout=timeout_sec,
            transport=transport,
            headers={
                "apikey": str(api_key or ""),
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs):
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise PersistenceError(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 400:
            raise PersistenceError(f"{method} {path} returned {response.status_code}: {response.text[:200]}")

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise PersistenceError(f"{method} {path} returned invalid JSON") from exc

    async def rpc(self, function_name: str, params: dict | None = None):
        return await self._request("POST", f"/rest/v1/rpc/{function_name}", json=dict(params or {}))

    async def _update_session(self, session_id: str, fields: dict) -> None:
        await self._request(
            "PATCH",
            f"/rest/v1/{SESSIONS_TABLE}",
            params={"id": f"eq.{session_id}"},
            json=fields,
        )

    async def get_credit_balance(self) -> int:
        result = await self.rpc("get_my_credit_balance")
        if not isinstance(result, dict) or not result.get("success"):
            raise PersistenceError("credit balance lookup failed")
        return int(result.get("balance") or 0)

    async def create_session(self, session_id: str, record: dict) -> None:
        record = dict(record or {})
        context = record.get("interviewContext") or {}
        await self._request(
            "POST",
            f"/rest/v1/{SESSIONS_TABLE}",
            json={
                "id": session_id,
                "role": context.get("role") or "Software Engineer",
                "type": str(context.get("interviewType") or "technical").lower(),
                "difficulty": "medium",
                "status": "active",
                "console_token": record.get("consoleToken"),
                "started_at": _utc_now_iso(),
                "context": context,
            },
        )

    async def pause_session(self, session_id: str, paused_state: dict) -> None:
        result = await self.rpc("pause_session", {"p_session_id": session_id, "p_state": paused_state})
        if isinstance(result, dict) and result.get("success"):
            return
        logger.warning("pause_session rpc unsuccessful, falling back to row update | session=%s", session_id)
        await self._update_session(
            session_id,
            {"status": "paused", "paused_at": _utc_now_iso(), "paused_state": paused_state},
        )

    async def resume_session(self, session_id: str) -> dict | None:
        result = await self.rpc("resume_session", {"p_session_id": session_id})
        if not isinstance(result, dict) or not result.get("success"):
            return None
        state = result.get("paused_state")
        if not isinstance(state, dict):
            return None
        state = dict(state)
        if result.get("console_token") and not state.get("console_token"):
            state["console_token"] = result["console_token"]
        return state

    async def complete_session(self, session_id: str) -> dict:
        result = await self.rpc("complete_session", {"p_session_id": session_id})
        if not isinstance(result, dict) or not result.get("success"):
            raise PersistenceError(f"complete_session failed for {session_id}")
        return {"new_balance": int(result.get("new_balance") or 0)}

    async def cancel_session(self, session_id: str) -> None:
        await self._update_session(session_id, {"status": "cancelled", "ended_at": _utc_now_iso()})
