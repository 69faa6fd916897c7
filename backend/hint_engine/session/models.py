from __future__ import annotations

import secrets
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from core.state import SessionStatus
from hint_engine.context.window import RollingContextWindow
from hint_engine.session.memory import SessionMemory
from hint_engine.transcript.merger import TranscriptionMerger

TRANSCRIPT_BUFFER_LIMIT = 200


@dataclass
class InterviewMeta:
    role: str = "Software Engineer"
    experience_level: str = "mid"
    interview_type: str = "technical"
    tech_stack: str = "general"
    company_type: str = "startup"
    response_style: str = "balanced"
    weak_areas: str = ""
    is_live_coding: bool = False
    scenario: str = ""

    @classmethod
    def from_dict(cls, data: dict | None) -> "InterviewMeta":
        data = dict(data or {})
        return cls(
            role=str(data.get("role") or "Software Engineer"),
            experience_level=str(data.get("experienceLevel") or data.get("level") or "mid").lower(),
            interview_type=str(data.get("interviewType") or data.get("type") or "technical").lower(),
            tech_stack=str(data.get("techStack") or "general"),
            company_type=str(data.get("companyType") or "startup").lower(),
            response_style=str(data.get("responseStyle") or "balanced").lower(),
            weak_areas=str(data.get("weakAreas") or ""),
            is_live_coding=bool(data.get("isLiveCoding", False)),
            scenario=str(data.get("scenario") or ""),
        )

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "experienceLevel": self.experience_level,
            "interviewType": self.interview_type,
            "techStack": self.tech_stack,
            "companyType": self.company_type,
            "responseStyle": self.response_style,
            "weakAreas": self.weak_areas,
            "isLiveCoding": self.is_live_coding,
            "scenario": self.scenario,
        }


@dataclass
class PausedState:
    session_id: str
    elapsed_time: float
    interview_meta: InterviewMeta
    transcription_text: str = ""
    meeting_url: str = ""
    platform: str = "Web"
    tab_id: int | None = None
    console_token: str | None = None
    paused_at: float = 0.0

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "elapsed_time": self.elapsed_time,
            "interview_context": self.interview_meta.to_dict(),
            "transcription_text": self.transcription_text,
            "meeting_data": {
                "url": self.meeting_url,
                "platform": self.platform,
                "tabId": self.tab_id,
            },
            "console_token": self.console_token,
            "paused_at": self.paused_at,
        }

    @classmethod
    def from_dict(cls, data: dict, session_id: str | None = None) -> "PausedState":
        meeting = data.get("meeting_data") if isinstance(data.get("meeting_data"), dict) else {}
        return cls(
            session_id=str(data.get("session_id") or session_id or ""),
            elapsed_time=float(data.get("elapsed_time") or 0.0),
            interview_meta=InterviewMeta.from_dict(data.get("interview_context")),
            transcription_text=str(data.get("transcription_text") or ""),
            meeting_url=str(meeting.get("url") or ""),
            platform=str(meeting.get("platform") or "Web"),
            tab_id=meeting.get("tabId"),
            console_token=data.get("console_token"),
            paused_at=float(data.get("paused_at") or 0.0),
        )


@dataclass
class Session:
    id: str
    status: SessionStatus
    tab_id: int | None
    start_time: float
    interview_meta: InterviewMeta
    console_token: str
    meeting_url: str = ""
    platform: str = "Web"
    paused_state: PausedState | None = None
    resumed: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status.value,
            "tabId": self.tab_id,
            "startTime": self.start_time,
            "url": self.meeting_url,
            "platform": self.platform,
            "interviewContext": self.interview_meta.to_dict(),
            "resumed": self.resumed,
        }


@dataclass
class HintRequest:
    request_type: str = "hint"
    custom_prompt: str | None = None
    selected_screenshot_ids: list[str] | None = None
    trigger: str = "manual"
    timestamp: float = field(default_factory=lambda: time.time() * 1000.0)

    @classmethod
    def from_dict(cls, data: dict | None) -> "HintRequest":
        data = dict(data or {})
        selected = data.get("selectedScreenshotIds")
        return cls(
            request_type=str(data.get("requestType") or "hint"),
            custom_prompt=(str(data["customPrompt"]) if data.get("customPrompt") else None),
            selected_screenshot_ids=[str(item) for item in selected] if isinstance(selected, list) else None,
            trigger=str(data.get("trigger") or "manual"),
        )


@dataclass
class Screenshot:
    id: str
    data: Any
    timestamp: float
    ocr_text: str = ""


@dataclass
class SessionContext:
    """
    Everything scoped to the current session. Owned by SessionController;
    other components receive it (or pieces of it) by parameter.
    """
    merger: TranscriptionMerger
    window: RollingContextWindow
    memory: SessionMemory
    session: Session | None = None
    transcript_buffer: list[dict] = field(default_factory=list)
    screenshots: list[Screenshot] = field(default_factory=list)
    credits: int = 0
    last_status: SessionStatus | None = None
    history: list[dict] = field(default_factory=list)

    def buffer_transcript(self, entry: dict) -> None:
        self.transcript_buffer.append(entry)
        if len(self.transcript_buffer) > TRANSCRIPT_BUFFER_LIMIT:
            self.transcript_buffer = self.transcript_buffer[-TRANSCRIPT_BUFFER_LIMIT:]

    def clear_session_scope(self) -> None:
        self.merger.clear()
        self.window.clear()
        self.memory.clear()
        self.transcript_buffer = []
        self.screenshots = []


def new_session_id() -> str:
    return str(uuid.uuid4())


def new_console_token() -> str:
    return f"token_{int(time.time() * 1000)}_{secrets.token_hex(8)}"
