from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from core import config
from hint_engine.api.commands import CommandDispatcher
from hint_engine.capture import CaptureController, RelayCaptureController
from hint_engine.clock import Clock, now_ms
from hint_engine.hints.pipeline import HintPipeline
from hint_engine.ledger.base import LedgerService, LocalLedger
from hint_engine.ledger.paused_store import PausedSessionStore
from hint_engine.ledger.supabase import SupabaseLedger
from hint_engine.metrics import HintMetricsLog
from hint_engine.providers.base import LLMProvider
from hint_engine.providers.registry import build_provider
from hint_engine.relay.bus import RelayBus, build_relay_bus
from hint_engine.relay.mirror import ConsoleMirror
from hint_engine.session.controller import SessionController
from hint_engine.vision import VisionPreprocessor

logger = logging.getLogger("hint_engine.factory")


@dataclass
class HintEngine:
    bus: RelayBus
    mirror: ConsoleMirror
    ledger: LedgerService
    controller: SessionController
    pipeline: HintPipeline
    dispatcher: CommandDispatcher
    metrics_log: HintMetricsLog


def build_ledger() -> LedgerService:
    if config.SUPABASE_URL and config.SUPABASE_KEY:
        return SupabaseLedger(base_url=config.SUPABASE_URL, api_key=config.SUPABASE_KEY)
    logger.info("SUPABASE_URL not set, using local ledger with %s credits", config.LOCAL_CREDITS)
    return LocalLedger(credits=config.LOCAL_CREDITS)


def build_engine(
    provider: LLMProvider | None = None,
    ledger: LedgerService | None = None,
    bus: RelayBus | None = None,
    capture: CaptureController | None = None,
    preprocessor: VisionPreprocessor | None = None,
    paused_store: PausedSessionStore | None = None,
    clock: Clock = now_ms,
    instance_id: str | None = None,
) -> HintEngine:
    """Wire configuration values into one engine; pass collaborators to override."""
    instance_id = instance_id or f"hint-engine-{uuid.uuid4().hex[:8]}"
    bus = bus or build_relay_bus(
        instance_id,
        enabled=config.RELAY_BUS_ENABLED,
        redis_url=config.REDIS_URL,
    )
    mirror = ConsoleMirror(bus, debounce_ms=config.CONSOLE_DEBOUNCE_MS)
    ledger = ledger or build_ledger()

    controller = SessionController(
        ledger=ledger,
        capture=capture or RelayCaptureController(bus),
        mirror=mirror,
        paused_store=paused_store or PausedSessionStore(config.PAUSED_SESSION_STORE_PATH),
        clock=clock,
        window_duration_ms=config.CONTEXT_WINDOW_MS,
        question_ttl_ms=config.QUESTION_TTL_MS,
        memory_size=config.SESSION_MEMORY_SIZE,
        history_limit=config.SESSION_HISTORY_LIMIT,
        cancel_hints_on_stop=config.CANCEL_HINTS_ON_STOP,
    )

    metrics_log = HintMetricsLog()
    pipeline = HintPipeline(
        controller=controller,
        provider=provider if provider is not None else build_provider(),
        preprocessor=preprocessor,
        clock=clock,
        debounce_ms=config.HINT_DEBOUNCE_MS,
        metrics_log=metrics_log,
    )

    return HintEngine(
        bus=bus,
        mirror=mirror,
        ledger=ledger,
        controller=controller,
        pipeline=pipeline,
        dispatcher=CommandDispatcher(controller, pipeline),
        metrics_log=metrics_log,
    )
