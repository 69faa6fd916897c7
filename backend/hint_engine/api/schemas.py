from typing import Any

from pydantic import BaseModel, Field


class Command(BaseModel):
    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    id: str | None = None


class StartSessionData(BaseModel):
    tabId: int | None = None
    meetingUrl: str = ""
    interviewContext: dict[str, Any] | None = None


class ResumeSessionData(BaseModel):
    sessionId: str | None = None


class TranscriptionResultData(BaseModel):
    text: str = ""
    isFinal: bool = False
    confidence: float = 0.9
    speaker: str = "other"


class UpdateContextData(BaseModel):
    interviewContext: dict[str, Any] = Field(default_factory=dict)


class ScreenshotData(BaseModel):
    id: str | None = None
    data: Any = None
    ocrText: str = ""


class ScreenshotRef(BaseModel):
    id: str
