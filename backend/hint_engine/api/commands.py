from __future__ import annotations

import logging
import uuid
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from hint_engine.errors import HintEngineError
from hint_engine.hints.pipeline import HintPipeline
from hint_engine.session.controller import SessionController
from hint_engine.transcript.models import TranscriptEvent, parse_speaker
from hint_engine.api.schemas import (
    Command,
    ResumeSessionData,
    ScreenshotData,
    ScreenshotRef,
    StartSessionData,
    TranscriptionResultData,
    UpdateContextData,
)

logger = logging.getLogger("hint_engine.api.commands")

Handler = Callable[[dict], Awaitable[dict | None]]


class CommandDispatcher:
    """
    Routes `{type, data}` command messages to the controller and pipeline.

    Every command resolves to a `{success, ...}` dict, except
    TRANSCRIPTION_RESULT which is fire-and-forget and returns None.
    """

    def __init__(self, controller: SessionController, pipeline: HintPipeline):
        self.controller = controller
        self.pipeline = pipeline
        self._handlers: dict[str, Handler] = {
            "START_SESSION": self._start_session,
            "PAUSE_SESSION": self._pause_session,
            "RESUME_SESSION": self._resume_session,
            "STOP_SESSION": self._stop_session,
            "CANCEL_SESSION": self._cancel_session,
            "REQUEST_HINT": self._request_hint,
            "TRANSCRIPTION_RESULT": self._transcription_result,
            "GET_SESSION_STATUS": self._session_status,
            "GET_CREDITS": self._credits,
            "UPDATE_CONTEXT": self._update_context,
            "SCREENSHOT_CAPTURED": self._screenshot_captured,
            "DELETE_SCREENSHOT": self._delete_screenshot,
            "CLEAR_SCREENSHOTS": self._clear_screenshots,
        }

    @property
    def command_types(self) -> list[str]:
        return sorted(self._handlers)

    async def dispatch(self, message: Any) -> dict | None:
        try:
            command = Command.model_validate(message)
        except ValidationError:
            return {"success": False, "error": "Malformed command", "code": "invalid_command"}

        handler = self._handlers.get(command.type)
        if handler is None:
            return {"success": False, "error": f"Unknown message type: {command.type}", "code": "unknown_type"}

        try:
            return await handler(command.data)
        except HintEngineError as exc:
            return exc.to_response()
        except ValidationError as exc:
            logger.info("invalid %s payload: %s", command.type, exc)
            return {"success": False, "error": f"Invalid payload for {command.type}", "code": "invalid_payload"}
        except Exception as exc:
            logger.exception("command %s failed", command.type)
            return {"success": False, "error": str(exc) or "Unexpected error", "code": "error"}

    # -------------------------
    # SESSION
    # -------------------------

    async def _start_session(self, data: dict) -> dict:
        payload = StartSessionData.model_validate(data)
        return await self.controller.start(
            meeting_url=payload.meetingUrl,
            interview_meta=payload.interviewContext,
            tab_id=payload.tabId,
        )

    async def _pause_session(self, data: dict) -> dict:
        return await self.controller.pause()

    async def _resume_session(self, data: dict) -> dict:
        payload = ResumeSessionData.model_validate(data)
        return await self.controller.resume(payload.sessionId)

    async def _stop_session(self, data: dict) -> dict:
        return await self.controller.stop()

    async def _cancel_session(self, data: dict) -> dict:
        return await self.controller.cancel()

    async def _session_status(self, data: dict) -> dict:
        return self.controller.get_status()

    async def _credits(self, data: dict) -> dict:
        credits = await self.controller.refresh_credits()
        return {"success": True, "credits": credits}

    async def _update_context(self, data: dict) -> dict:
        payload = UpdateContextData.model_validate(data)
        meta = self.controller.update_context(payload.interviewContext)
        return {"success": True, "interviewContext": meta.to_dict()}

    # -------------------------
    # HINTS / TRANSCRIPTS
    # -------------------------

    async def _request_hint(self, data: dict) -> dict:
        return await self.pipeline.request_hint(data)

    async def _transcription_result(self, data: dict) -> None:
        payload = TranscriptionResultData.model_validate(data)
        await self.controller.on_transcription(TranscriptEvent(
            text=payload.text,
            is_final=payload.isFinal,
            confidence=payload.confidence,
            speaker=parse_speaker(payload.speaker),
        ))
        return None

    # -------------------------
    # SCREENSHOTS
    # -------------------------

    async def _screenshot_captured(self, data: dict) -> dict:
        payload = ScreenshotData.model_validate(data)
        screenshot_id = payload.id or str(uuid.uuid4())
        count = self.controller.add_screenshot(screenshot_id, payload.data, ocr_text=payload.ocrText)
        return {"success": True, "screenshotId": screenshot_id, "count": count}

    async def _delete_screenshot(self, data: dict) -> dict:
        payload = ScreenshotRef.model_validate(data)
        return {"success": True, "count": self.controller.delete_screenshot(payload.id)}

    async def _clear_screenshots(self, data: dict) -> dict:
        return {"success": True, "count": self.controller.clear_screenshots()}
