from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from core.logger import log_error, log_event
from core.state import SessionStatus, can_transition
from hint_engine.capture import CaptureController
from hint_engine.clock import Clock, now_ms
from hint_engine.context.window import RollingContextWindow
from hint_engine.errors import (
    InsufficientCredits,
    InvalidTransition,
    NoActiveSession,
    SessionNotFound,
)
from hint_engine.ledger.base import LedgerService
from hint_engine.ledger.paused_store import PausedSessionStore
from hint_engine.metrics import increment_metric
from hint_engine.relay.mirror import ConsoleMirror
from hint_engine.session.memory import SessionMemory
from hint_engine.session.models import (
    InterviewMeta,
    PausedState,
    Screenshot,
    Session,
    SessionContext,
    new_console_token,
    new_session_id,
)
from hint_engine.session.platform import detect_platform, is_restricted_url
from hint_engine.transcript.merger import TranscriptionMerger
from hint_engine.transcript.models import TranscriptEvent, TranscriptionState, parse_speaker

logger = logging.getLogger("hint_engine.session.controller")

DisplaySink = Callable[[dict], Awaitable[None]]

TRANSCRIPTION_STATE = "TRANSCRIPTION_STATE"
SESSION_ACTIVE = "SESSION_ACTIVE"
SESSION_PAUSED = "SESSION_PAUSED"
SESSION_STOPPED = "SESSION_STOPPED"


async def _discard_display(payload: dict) -> None:
    return


class SessionController:
    """
    Owns the session lifecycle and is the only writer of session state.

    Remote persistence is best-effort: ledger, capture and relay failures are
    logged and absorbed so the in-memory session stays authoritative. A failed
    teardown still forces the session into a terminal state.
    """

    def __init__(
        self,
        ledger: LedgerService,
        capture: CaptureController,
        mirror: ConsoleMirror,
        paused_store: PausedSessionStore | None = None,
        display: DisplaySink | None = None,
        clock: Clock = now_ms,
        window_duration_ms: int = 90_000,
        question_ttl_ms: int = 120_000,
        memory_size: int = 5,
        history_limit: int = 10,
        cancel_hints_on_stop: bool = False,
    ):
        self.ledger = ledger
        self.capture = capture
        self.mirror = mirror
        self.paused_store = paused_store
        self.display = display or _discard_display
        self.clock = clock
        self.history_limit = max(1, int(history_limit))
        self.cancel_hints_on_stop = bool(cancel_hints_on_stop)
        self.context = SessionContext(
            merger=TranscriptionMerger(),
            window=RollingContextWindow(
                window_duration_ms=window_duration_ms,
                question_ttl_ms=question_ttl_ms,
                clock=clock,
            ),
            memory=SessionMemory(max_entries=memory_size),
        )
        self._tasks: dict[str, list[asyncio.Task]] = {}

    # -------------------------
    # STATE
    # -------------------------

    @property
    def session(self) -> Session | None:
        return self.context.session

    @property
    def status(self) -> SessionStatus | None:
        if self.context.session is not None:
            return self.context.session.status
        return self.context.last_status

    @property
    def is_active(self) -> bool:
        return self.session is not None and self.session.status == SessionStatus.ACTIVE

    def require_active(self) -> Session:
        if not self.is_active:
            raise NoActiveSession()
        return self.session

    def elapsed_ms(self) -> float:
        if self.session is None:
            return 0.0
        if self.session.status == SessionStatus.PAUSED and self.session.paused_state is not None:
            return self.session.paused_state.elapsed_time
        return max(0.0, self.clock() - self.session.start_time)

    def _transition(self, target: SessionStatus) -> None:
        session = self.session
        current = session.status if session is not None else None
        if current is None or not can_transition(current, target):
            raise InvalidTransition(
                f"Cannot move session from {current.value if current else 'none'} to {target.value}"
            )
        session.status = target
        self.context.last_status = target
        log_event("session", "transition", session.id, from_status=current.value, to_status=target.value)

    def _force_terminal(self, target: SessionStatus, stage: str, error: BaseException) -> None:
        session = self.session
        if session is None:
            return
        log_error("session", f"{stage}_failed", session.id, error, forced_status=target.value)
        session.status = target
        self.context.last_status = target
        increment_metric("sessions_failed" if target == SessionStatus.FAILED else "sessions_cancelled")
        self.mirror.cancel_pending()
        self._archive(session)
        self.context.clear_session_scope()
        self.context.session = None

    def _archive(self, session: Session) -> None:
        record = session.to_dict()
        record.update({
            "endTime": self.clock(),
            "duration": max(0.0, self.clock() - session.start_time),
            "transcript": self.context.merger.get_text(),
            "screenshotCount": len(self.context.screenshots),
        })
        self.context.history.append(record)
        self.context.history = self.context.history[-self.history_limit:]

    # -------------------------
    # DISPLAY
    # -------------------------

    def set_display(self, display: DisplaySink | None) -> None:
        self.display = display or _discard_display

    async def emit_display(self, event_type: str, data: dict | None = None) -> None:
        try:
            await self.display({"type": event_type, "data": dict(data or {})})
        except Exception as exc:
            logger.warning("display update failed | type=%s err=%s", event_type, exc)

    async def _capture_error(self, message: str) -> None:
        # capture failures are shown to the user, never papered over
        await self.emit_display(TRANSCRIPTION_STATE, {
            **self.context.merger.get_state().to_dict(),
            "error": message,
        })

    # -------------------------
    # TASKS
    # -------------------------

    def create_task(self, session_id: str, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        bucket = self._tasks.setdefault(session_id, [])
        bucket.append(task)
        task.add_done_callback(lambda done, sid=session_id: self._forget_task(sid, done))
        return task

    def _forget_task(self, session_id: str, task: asyncio.Task) -> None:
        bucket = self._tasks.get(session_id)
        if not bucket:
            return
        if task in bucket:
            bucket.remove(task)
        if not bucket:
            self._tasks.pop(session_id, None)

    def pending_tasks(self, session_id: str) -> list[asyncio.Task]:
        return list(self._tasks.get(session_id, []))

    def _cancel_tasks(self, session_id: str) -> None:
        if not self.cancel_hints_on_stop:
            return
        for task in self._tasks.pop(session_id, []):
            if not task.done():
                task.cancel()
                increment_metric("hints_cancelled")

    # -------------------------
    # CREDITS
    # -------------------------

    async def refresh_credits(self) -> int:
        try:
            self.context.credits = int(await self.ledger.get_credit_balance())
        except Exception as exc:
            increment_metric("persistence_failures")
            logger.warning("credit refresh failed, using cached balance %s | err=%s", self.context.credits, exc)
        return self.context.credits

    # -------------------------
    # LIFECYCLE
    # -------------------------

    async def start(
        self,
        meeting_url: str = "",
        interview_meta: InterviewMeta | dict | None = None,
        tab_id: int | None = None,
    ) -> dict:
        if self.is_active:
            raise InvalidTransition("A session is already active. Stop it before starting another.")

        credits = await self.refresh_credits()
        if credits <= 0:
            log_event("session", "start_rejected", None, reason="insufficient_credits")
            raise InsufficientCredits()

        if not isinstance(interview_meta, InterviewMeta):
            interview_meta = InterviewMeta.from_dict(interview_meta)

        # a paused session being replaced stays resumable through the stores
        self.mirror.cancel_pending()
        self.context.clear_session_scope()

        session = Session(
            id=new_session_id(),
            status=SessionStatus.CREATED,
            tab_id=tab_id,
            start_time=self.clock(),
            interview_meta=interview_meta,
            console_token=new_console_token(),
            meeting_url=str(meeting_url or ""),
            platform=detect_platform(meeting_url),
        )
        self.context.session = session

        try:
            self._transition(SessionStatus.ACTIVE)
            increment_metric("sessions_started")

            try:
                await self.capture.start(session.id, tab_id)
            except Exception as exc:
                logger.warning("capture start failed | session=%s err=%s", session.id, exc)
                await self._capture_error(f"Audio capture failed to start: {exc}")

            try:
                await self.ledger.create_session(session.id, {
                    "interviewContext": interview_meta.to_dict(),
                    "consoleToken": session.console_token,
                    "url": session.meeting_url,
                    "platform": session.platform,
                })
            except Exception as exc:
                increment_metric("persistence_failures")
                logger.warning("session persistence failed, continuing locally | session=%s err=%s", session.id, exc)

            await self.mirror.publish_event(session.id, SESSION_ACTIVE, session.to_dict())
        except Exception as exc:
            self._force_terminal(SessionStatus.FAILED, "start", exc)
            raise

        log_event("session", "started", session.id, platform=session.platform, tab_id=tab_id)
        return {
            "success": True,
            "sessionId": session.id,
            "consoleToken": session.console_token,
        }

    async def pause(self) -> dict:
        session = self.session
        if session is None:
            raise NoActiveSession()
        if not can_transition(session.status, SessionStatus.PAUSED):
            raise InvalidTransition(f"Cannot pause a {session.status.value} session")

        # snapshot before any teardown so a failed persist cannot strand us
        now = self.clock()
        elapsed = max(0.0, now - session.start_time)
        paused_state = PausedState(
            session_id=session.id,
            elapsed_time=elapsed,
            interview_meta=session.interview_meta,
            transcription_text=self.context.merger.get_text(),
            meeting_url=session.meeting_url,
            platform=session.platform,
            tab_id=session.tab_id,
            console_token=session.console_token,
            paused_at=now,
        )
        session.paused_state = paused_state

        try:
            self._transition(SessionStatus.PAUSED)
            increment_metric("sessions_paused")
            self.mirror.cancel_pending()
            self._cancel_tasks(session.id)

            try:
                await self.capture.stop(session.id)
            except Exception as exc:
                logger.warning("capture stop failed during pause | session=%s err=%s", session.id, exc)

            state_dict = paused_state.to_dict()
            try:
                await self.ledger.pause_session(session.id, state_dict)
            except Exception as exc:
                increment_metric("persistence_failures")
                logger.warning("remote pause persistence failed | session=%s err=%s", session.id, exc)

            if self.paused_store is not None:
                try:
                    self.paused_store.save(session.id, state_dict)
                except Exception as exc:
                    increment_metric("persistence_failures")
                    logger.warning("local pause persistence failed | session=%s err=%s", session.id, exc)

            self.context.merger.clear()
            self.context.window.clear()
            self.context.transcript_buffer = []
            self.context.screenshots = []

            await self.mirror.publish_event(session.id, SESSION_PAUSED, {"elapsedTime": elapsed})
        except Exception as exc:
            self._force_terminal(SessionStatus.FAILED, "pause", exc)
            raise

        log_event("session", "paused", session.id, elapsed_ms=elapsed)
        return {"success": True, "paused": True, "sessionId": session.id, "elapsedTime": elapsed}

    async def _load_paused_state(self, session_id: str) -> PausedState | None:
        in_memory = None
        if self.session is not None and self.session.id == session_id and self.session.status == SessionStatus.PAUSED:
            in_memory = self.session.paused_state

        remote = None
        try:
            remote = await self.ledger.resume_session(session_id)
        except Exception as exc:
            increment_metric("persistence_failures")
            logger.warning("remote resume lookup failed | session=%s err=%s", session_id, exc)

        if in_memory is not None:
            return in_memory
        if remote:
            return PausedState.from_dict(remote, session_id=session_id)

        if self.paused_store is not None:
            try:
                local = self.paused_store.get(session_id)
            except Exception as exc:
                logger.warning("local resume lookup failed | session=%s err=%s", session_id, exc)
                local = None
            if local:
                return PausedState.from_dict(local, session_id=session_id)
        return None

    async def resume(self, session_id: str | None = None) -> dict:
        if self.is_active:
            raise InvalidTransition("A session is already active.")

        sid = str(session_id or "").strip()
        if not sid and self.session is not None and self.session.status == SessionStatus.PAUSED:
            sid = self.session.id
        if not sid:
            raise SessionNotFound("No session ID provided.")

        paused_state = await self._load_paused_state(sid)
        if paused_state is None:
            raise SessionNotFound()

        session = self.session
        if session is None or session.id != sid:
            session = Session(
                id=sid,
                status=SessionStatus.PAUSED,
                tab_id=paused_state.tab_id,
                start_time=paused_state.paused_at - paused_state.elapsed_time,
                interview_meta=paused_state.interview_meta,
                console_token=paused_state.console_token or new_console_token(),
                meeting_url=paused_state.meeting_url,
                platform=paused_state.platform or detect_platform(paused_state.meeting_url),
                paused_state=paused_state,
            )
            self.mirror.cancel_pending()
            self.context.clear_session_scope()
            self.context.session = session
            self.context.last_status = SessionStatus.PAUSED

        now = self.clock()
        adjusted_start = now - paused_state.elapsed_time

        self.context.merger.restore(paused_state.transcription_text)
        self.context.window.clear()
        self.context.transcript_buffer = []

        if is_restricted_url(paused_state.meeting_url):
            logger.info("skipping capture restart on restricted surface | session=%s", sid)
        else:
            try:
                await self.capture.start(sid, paused_state.tab_id)
            except Exception as exc:
                logger.warning("capture restart failed | session=%s err=%s", sid, exc)
                await self._capture_error(f"Audio capture failed to restart: {exc}")

        # activation last: anything above failing leaves the session paused
        session.start_time = adjusted_start
        self._transition(SessionStatus.ACTIVE)
        session.paused_state = None
        session.resumed = True
        increment_metric("sessions_resumed")

        if self.paused_store is not None:
            try:
                self.paused_store.remove(sid)
            except Exception as exc:
                logger.warning("local paused state cleanup failed | session=%s err=%s", sid, exc)

        await self.mirror.publish_event(sid, SESSION_ACTIVE, session.to_dict())
        log_event("session", "resumed", sid, elapsed_ms=paused_state.elapsed_time)
        return {
            "success": True,
            "resumed": True,
            "sessionId": sid,
            "elapsedTime": paused_state.elapsed_time,
            "adjustedStartTime": adjusted_start,
        }

    async def stop(self) -> dict:
        session = self.session
        if session is None:
            raise NoActiveSession()
        if session.status != SessionStatus.ACTIVE:
            raise InvalidTransition(f"Cannot stop a {session.status.value} session")

        try:
            self.mirror.cancel_pending()
            self._cancel_tasks(session.id)

            try:
                await self.capture.stop(session.id)
            except Exception as exc:
                logger.warning("capture stop failed | session=%s err=%s", session.id, exc)

            try:
                result = await self.ledger.complete_session(session.id)
                self.context.credits = int(result.get("new_balance", self.context.credits))
            except Exception as exc:
                increment_metric("persistence_failures")
                logger.warning("session completion failed on ledger | session=%s err=%s", session.id, exc)

            self._transition(SessionStatus.COMPLETED)
            increment_metric("sessions_completed")
            await self.mirror.publish_event(session.id, SESSION_STOPPED, {"status": SessionStatus.COMPLETED.value})
            self._archive(session)
            self.context.clear_session_scope()
            self.context.session = None
        except Exception as exc:
            self._force_terminal(SessionStatus.FAILED, "stop", exc)
            raise

        log_event("session", "stopped", session.id, credits=self.context.credits)
        return {"success": True, "credits": self.context.credits}

    async def cancel(self) -> dict:
        session = self.session
        if session is None:
            raise NoActiveSession()
        if not can_transition(session.status, SessionStatus.CANCELLED):
            raise InvalidTransition(f"Cannot cancel a {session.status.value} session")

        try:
            self.mirror.cancel_pending()
            self._cancel_tasks(session.id)

            if session.status == SessionStatus.ACTIVE:
                try:
                    await self.capture.stop(session.id)
                except Exception as exc:
                    logger.warning("capture stop failed | session=%s err=%s", session.id, exc)

            # no charge
            try:
                await self.ledger.cancel_session(session.id)
            except Exception as exc:
                increment_metric("persistence_failures")
                logger.warning("session cancel failed on ledger | session=%s err=%s", session.id, exc)

            if self.paused_store is not None:
                try:
                    self.paused_store.remove(session.id)
                except Exception as exc:
                    logger.warning("local paused state cleanup failed | session=%s err=%s", session.id, exc)

            self._transition(SessionStatus.CANCELLED)
            increment_metric("sessions_cancelled")
            await self.mirror.publish_event(session.id, SESSION_STOPPED, {"status": SessionStatus.CANCELLED.value})
            self._archive(session)
            self.context.clear_session_scope()
            self.context.session = None
        except Exception as exc:
            self._force_terminal(SessionStatus.CANCELLED, "cancel", exc)
            raise

        log_event("session", "cancelled", session.id)
        return {"success": True}

    # -------------------------
    # INGESTION
    # -------------------------

    async def on_transcription(self, event: TranscriptEvent) -> TranscriptionState | None:
        session = self.session
        if session is None or session.status != SessionStatus.ACTIVE:
            logger.debug("transcript event dropped, no active session")
            return None

        increment_metric("transcript_events")
        state = self.context.merger.process_event(event)

        if event.is_final and event.text.strip():
            self.context.window.add_transcript(event.text)
            self.context.buffer_transcript({
                "text": event.text.strip(),
                "speaker": parse_speaker(event.speaker).value,
                "confidence": event.confidence,
                "timestamp": event.timestamp,
            })

        payload = state.to_dict()
        payload["latestQuestion"] = self.context.window.get_latest_question()

        # display first, relay copy is debounced behind it
        await self.emit_display(TRANSCRIPTION_STATE, payload)
        self.mirror.publish_transcript(session.id, payload)
        return state

    # -------------------------
    # SESSION-SCOPED DATA
    # -------------------------

    def update_context(self, interview_meta: dict | None) -> InterviewMeta:
        session = self.session
        if session is None:
            raise NoActiveSession()
        merged = {**session.interview_meta.to_dict(), **dict(interview_meta or {})}
        session.interview_meta = InterviewMeta.from_dict(merged)
        log_event("session", "context_updated", session.id)
        return session.interview_meta

    def add_screenshot(self, screenshot_id: str, data: Any, ocr_text: str = "") -> int:
        self.require_active()
        self.context.screenshots.append(Screenshot(
            id=str(screenshot_id),
            data=data,
            timestamp=self.clock(),
            ocr_text=str(ocr_text or ""),
        ))
        return len(self.context.screenshots)

    def delete_screenshot(self, screenshot_id: str) -> int:
        self.context.screenshots = [
            item for item in self.context.screenshots if item.id != str(screenshot_id)
        ]
        return len(self.context.screenshots)

    def clear_screenshots(self) -> int:
        self.context.screenshots = []
        return 0

    def select_screenshots(self, screenshot_ids: list[str] | None) -> list[Screenshot]:
        if screenshot_ids is None:
            return list(self.context.screenshots)
        wanted = set(screenshot_ids)
        return [item for item in self.context.screenshots if item.id in wanted]

    def get_status(self) -> dict:
        session = self.session
        return {
            "success": True,
            "isActive": self.is_active,
            "status": self.status.value if self.status else None,
            "session": session.to_dict() if session else None,
            "credits": self.context.credits,
            "elapsedTime": self.elapsed_ms(),
            "transcription": self.context.merger.get_state().to_dict(),
            "screenshotCount": len(self.context.screenshots),
            "history": list(self.context.history),
        }
