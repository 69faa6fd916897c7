from __future__ import annotations

import asyncio
import logging

from core.logger import log_error, log_event
from hint_engine.clock import Clock, now_ms
from hint_engine.errors import (
    Debounced,
    HintCancelled,
    HintEngineError,
    NoCredits,
    ProviderError,
    ProviderUnconfigured,
    RequestInProgress,
    fallback_message,
)
from hint_engine.hints.guard import RequestGuard
from hint_engine.metrics import HintLogEntry, HintMetricsLog, increment_metric
from hint_engine.prompts.builder import build_prompt
from hint_engine.prompts.modes import resolve_mode
from hint_engine.providers.base import LLMProvider
from hint_engine.session.controller import SessionController
from hint_engine.session.models import HintRequest, Session
from hint_engine.signals import intent as intent_classifier
from hint_engine.signals import language as language_resolver
from hint_engine.validation.validator import CODE_MODES, validate
from hint_engine.vision import VisionPreprocessor, VisualContext, clean_ocr_text, preprocess_images

logger = logging.getLogger("hint_engine.hints.pipeline")

HINT_LOADING = "HINT_LOADING"
HINT_RECEIVED = "HINT_RECEIVED"
HINT_ERROR = "HINT_ERROR"

CONTEXT_TRANSCRIPT_ENTRIES = 10


class HintPipeline:
    """
    One end-to-end hint request: guard, debounce, credits, context, LLM,
    validation, bookkeeping. Provider failures resolve to a fallback hint.
    """

    def __init__(
        self,
        controller: SessionController,
        provider: LLMProvider | None,
        preprocessor: VisionPreprocessor | None = None,
        clock: Clock = now_ms,
        debounce_ms: int = 2_000,
        metrics_log: HintMetricsLog | None = None,
        user_language: str | None = None,
    ):
        self.controller = controller
        self.provider = provider
        self.preprocessor = preprocessor
        self.clock = clock
        self.debounce_ms = float(debounce_ms)
        self.metrics_log = metrics_log or HintMetricsLog()
        self.user_language = user_language
        self.guard = RequestGuard()
        self.last_request_time: float | None = None

    async def request_hint(self, data: HintRequest | dict | None = None) -> dict:
        request = data if isinstance(data, HintRequest) else HintRequest.from_dict(data)

        try:
            session = self.controller.require_active()
        except HintEngineError as exc:
            increment_metric("hints_rejected")
            return exc.to_response()

        if not self.guard.try_acquire():
            increment_metric("hints_rejected")
            return RequestInProgress().to_response()

        try:
            now = self.clock()
            if self.last_request_time is not None and now - self.last_request_time < self.debounce_ms:
                increment_metric("hints_rejected")
                return Debounced().to_response()
            self.last_request_time = now
            increment_metric("hints_requested")

            credits = await self.controller.refresh_credits()
            if credits <= 0:
                increment_metric("hints_rejected")
                return NoCredits().to_response()

            return await self._run(session, request)
        finally:
            self.guard.release()

    # -------------------------
    # CONTEXT
    # -------------------------

    def _transcript_context(self) -> dict:
        ctx = self.controller.context
        snapshot = ctx.window.snapshot()
        if not snapshot.get("recentTranscript"):
            recent = ctx.transcript_buffer[-CONTEXT_TRANSCRIPT_ENTRIES:]
            snapshot["recentTranscript"] = " ".join(entry["text"] for entry in recent)
        return snapshot

    async def _visual_context(self, request: HintRequest) -> tuple[VisualContext | None, str, object]:
        screenshots = self.controller.select_screenshots(request.selected_screenshot_ids)
        if not screenshots:
            return None, "", None

        visual = await preprocess_images(self.preprocessor, [item.data for item in screenshots])
        if visual is not None and not visual.is_empty():
            return visual, visual.ocr_text, None

        ocr_text = "\n".join(clean_ocr_text(item.ocr_text) for item in screenshots if item.ocr_text)
        visual = VisualContext(extracted_texts=[ocr_text]) if ocr_text else None
        # nothing was extracted, let the provider look at the latest frame itself
        return visual, ocr_text, screenshots[-1].data

    # -------------------------
    # RUN
    # -------------------------

    async def _run(self, session: Session, request: HintRequest) -> dict:
        ctx = self.controller.context
        mode = resolve_mode(request.request_type)
        started = self.clock()
        language = None

        await self.controller.emit_display(HINT_LOADING, {"requestType": request.request_type, "mode": mode})
        await self.controller.mirror.publish_event(session.id, HINT_LOADING, {"mode": mode})

        try:
            if self.provider is None:
                raise ProviderUnconfigured()

            visual, ocr_text, image = await self._visual_context(request)
            context = self._transcript_context()

            language = language_resolver.resolve(language_resolver.LanguageSignals(
                code=visual.code if visual else None,
                ocr_text=ocr_text or None,
                session_language=ctx.memory.detected_language,
                user_preference=self.user_language,
            ))

            intent = None
            if request.custom_prompt:
                intent = intent_classifier.classify(
                    request.custom_prompt,
                    [entry.to_dict() for entry in ctx.memory.history],
                )

            bundle = build_prompt(
                mode,
                session.interview_meta,
                context=context,
                memory=ctx.memory,
                custom_prompt=request.custom_prompt,
                visual_context=visual,
                language=language,
                intent=intent,
            )

            task = self.controller.create_task(
                session.id,
                self.provider.generate(
                    bundle.system_message,
                    bundle.user_prompt,
                    bundle.temperature,
                    bundle.max_tokens,
                    image,
                ),
            )
            try:
                raw = await task
            except asyncio.CancelledError:
                if self.controller.session is session and self.controller.is_active:
                    raise
                raise HintCancelled()

            validated = validate(raw, mode, source={"ocrText": ocr_text, "language": language})
            if not validated.text:
                raise ProviderError("The AI provider returned an empty response")

        except Exception as exc:
            return await self._fail(session, mode, started, exc)

        latency = max(0.0, self.clock() - started)

        # the session ended while the provider was working; its state is gone
        if self.controller.session is session:
            ctx.credits = max(0, ctx.credits - 1)

            question = request.custom_prompt or context.get("latestQuestion") or request.request_type
            ctx.memory.add(question, validated.text, mode)
            if mode in CODE_MODES:
                ctx.memory.detected_language = language

            payload = {
                "hint": validated.text,
                "mode": mode,
                "requestType": request.request_type,
                "issues": list(validated.issues),
            }
            await self.controller.emit_display(HINT_RECEIVED, payload)
            await self.controller.mirror.publish_event(session.id, HINT_RECEIVED, payload)
        else:
            increment_metric("hints_detached")
            log_event("hint", "detached", session.id, mode=mode)

        increment_metric("hints_succeeded")
        self.metrics_log.log(HintLogEntry(
            timestamp=self.clock(),
            mode=mode,
            provider=getattr(self.provider, "name", "unknown"),
            response_time_ms=latency,
            success=True,
            banned_phrase_hits=int(validated.metrics.get("bannedPhraseHits", 0)),
            language_match=(
                language_resolver.confidence(validated.text, language) >= 0.5 if mode in CODE_MODES else None
            ),
        ))
        log_event(
            "hint",
            "completed",
            session.id,
            mode=mode,
            latency_ms=round(latency, 2),
            issues=len(validated.issues),
            hint=validated.text,
        )

        return {
            "success": True,
            "hint": validated.text,
            "credits": ctx.credits,
            "mode": mode,
            "issues": list(validated.issues),
        }

    async def _fail(self, session: Session, mode: str, started: float, exc: Exception) -> dict:
        if isinstance(exc, HintEngineError):
            logger.warning("hint request failed | session=%s code=%s err=%s", session.id, exc.code, exc)
            code = exc.code
        else:
            code = ProviderError.code
            log_error("hint", "unexpected_failure", session.id, exc, mode=mode)

        message = fallback_message(exc)
        increment_metric("hints_failed")
        self.metrics_log.log(HintLogEntry(
            timestamp=self.clock(),
            mode=mode,
            provider=getattr(self.provider, "name", "none"),
            response_time_ms=max(0.0, self.clock() - started),
            success=False,
            error=code,
        ))

        payload = {"error": message, "code": code, "mode": mode}
        await self.controller.emit_display(HINT_ERROR, payload)
        await self.controller.mirror.publish_event(session.id, HINT_ERROR, payload)
        log_event("hint", "failed", session.id, mode=mode, code=code)

        return {
            "success": False,
            "error": message,
            "code": code,
            "hint": message,
            "credits": self.controller.context.credits,
        }
