from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import Lock

from hint_engine.errors import PersistenceError

logger = logging.getLogger("hint_engine.ledger.paused_store")


class PausedSessionStore:
    """Local fallback copy of paused-session snapshots, keyed by session id."""

    def __init__(self, path: Path | str):
        self._path = Path(path)
        self._lock = Lock()

    def _load(self) -> dict[str, dict]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("paused session store unreadable | path=%s err=%s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            return {}
        return {str(key): value for key, value in payload.items() if isinstance(value, dict)}

    def _persist(self, records: dict[str, dict]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self._path.with_suffix(".tmp")
            temp_path.write_text(json.dumps(records, ensure_ascii=False), encoding="utf-8")
            temp_path.replace(self._path)
        except OSError as exc:
            raise PersistenceError(f"could not write {self._path}: {exc}") from exc

    def save(self, session_id: str, state: dict) -> None:
        sid = str(session_id or "").strip()
        if not sid:
            return
        with self._lock:
            records = self._load()
            records[sid] = dict(state or {})
            self._persist(records)

    def get(self, session_id: str) -> dict | None:
        sid = str(session_id or "").strip()
        if not sid:
            return None
        with self._lock:
            record = self._load().get(sid)
            return dict(record) if record else None

    def remove(self, session_id: str) -> None:
        sid = str(session_id or "").strip()
        with self._lock:
            records = self._load()
            if records.pop(sid, None) is not None:
                self._persist(records)
