import asyncio
import json
import logging

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import CORS_ALLOW_ORIGINS, LLM_PROVIDER, LOG_LEVEL, QA_MODE
from core.logger import configure_logging
from hint_engine.capture import CAPTURE_START, CAPTURE_STOP
from hint_engine.factory import build_engine
from hint_engine.metrics import get_metrics_snapshot

configure_logging(LOG_LEVEL)

app = FastAPI(title="Interview Hint Engine")
logger = logging.getLogger("hint_engine.main")

# handled off the receive loop so transcripts and stop commands keep flowing
BACKGROUND_COMMANDS = frozenset({"REQUEST_HINT"})


def _get_allowed_origins() -> list[str]:
    if not CORS_ALLOW_ORIGINS:
        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    return list(CORS_ALLOW_ORIGINS)


_allowed_origins = _get_allowed_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

engine = build_engine()


@app.on_event("startup")
async def startup_banner():
    if QA_MODE:
        logger.info("[SYSTEM] QA_MODE ENABLED")
    logger.info("[SYSTEM] CORS allow_origins=%s", _allowed_origins)
    logger.info(
        "[SYSTEM] provider=%s configured=%s",
        LLM_PROVIDER,
        engine.pipeline.provider is not None,
    )


@app.on_event("shutdown")
async def shutdown_handler():
    engine.mirror.cancel_pending()
    close = getattr(engine.ledger, "aclose", None)
    if close is not None:
        await close()


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "session_status": engine.controller.status.value if engine.controller.status else None,
        "provider_configured": engine.pipeline.provider is not None,
    }


@app.get("/metrics")
async def metrics():
    return get_metrics_snapshot({
        "hints": engine.metrics_log.summary(),
        "recent_errors": engine.metrics_log.recent_errors(),
    })


@app.post("/commands")
async def commands(request: Request):
    try:
        message = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"success": False, "error": "Body must be JSON"})

    result = await engine.dispatcher.dispatch(message)
    if result is None:
        return JSONResponse(status_code=202, content={"success": True, "accepted": True})
    return result


@app.websocket("/ws/session")
async def session_ws(websocket: WebSocket):
    await websocket.accept()
    logger.info("session websocket connected")
    send_lock = asyncio.Lock()

    async def send(payload: dict) -> None:
        async with send_lock:
            await websocket.send_text(json.dumps(payload, ensure_ascii=False, default=str))

    async def forward_capture(session_id: str, payload: dict, source_instance: str) -> None:
        current = engine.controller.session
        if current is None or current.id != session_id:
            return
        if payload.get("type") in {CAPTURE_START, CAPTURE_STOP}:
            await send({**payload, "sessionId": session_id})

    async def respond(message) -> None:
        result = await engine.dispatcher.dispatch(message)
        if result is None:
            return
        await send({
            "type": "RESPONSE",
            "id": message.get("id") if isinstance(message, dict) else None,
            "requestType": message.get("type") if isinstance(message, dict) else None,
            "data": result,
        })

    async def respond_in_background(message: dict) -> None:
        try:
            await respond(message)
        except Exception as exc:
            logger.warning("background command failed | type=%s err=%s", message.get("type"), exc)

    engine.controller.set_display(send)
    relay_task = asyncio.create_task(engine.bus.listen(forward_capture))
    background: set[asyncio.Task] = set()

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                await send({"type": "RESPONSE", "data": {"success": False, "error": "Message must be JSON"}})
                continue

            if isinstance(message, dict) and message.get("type") in BACKGROUND_COMMANDS:
                task = asyncio.create_task(respond_in_background(message))
                background.add(task)
                task.add_done_callback(background.discard)
                continue

            await respond(message)
    except WebSocketDisconnect:
        logger.info("session websocket disconnected")
    finally:
        engine.controller.set_display(None)
        pending = [relay_task, *background]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
