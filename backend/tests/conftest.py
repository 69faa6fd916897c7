import asyncio
import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hint_engine.errors import PersistenceError  # noqa: E402
from hint_engine.hints.pipeline import HintPipeline  # noqa: E402
from hint_engine.ledger.base import LocalLedger  # noqa: E402
from hint_engine.ledger.paused_store import PausedSessionStore  # noqa: E402
from hint_engine.metrics import reset_metrics  # noqa: E402
from hint_engine.providers.base import LLMProvider  # noqa: E402
from hint_engine.relay.mirror import ConsoleMirror  # noqa: E402
from hint_engine.session.controller import SessionController  # noqa: E402


START_MS = 1_700_000_000_000.0


class FakeClock:
    def __init__(self, start: float = START_MS):
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += float(ms)


class FakeLedger(LocalLedger):
    """LocalLedger that records calls and can be told to fail per method."""

    def __init__(self, credits: int = 10):
        super().__init__(credits=credits)
        self.calls: list[str] = []
        self.fail: set[str] = set()

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail:
            raise PersistenceError(f"{name} unavailable")

    async def get_credit_balance(self) -> int:
        self._check("get_credit_balance")
        return await super().get_credit_balance()

    async def create_session(self, session_id, record):
        self._check("create_session")
        return await super().create_session(session_id, record)

    async def pause_session(self, session_id, paused_state):
        self._check("pause_session")
        return await super().pause_session(session_id, paused_state)

    async def resume_session(self, session_id):
        self._check("resume_session")
        return await super().resume_session(session_id)

    async def complete_session(self, session_id):
        self._check("complete_session")
        return await super().complete_session(session_id)

    async def cancel_session(self, session_id):
        self._check("cancel_session")
        return await super().cancel_session(session_id)


class FakeCapture:
    def __init__(self):
        self.starts: list[tuple[str, object]] = []
        self.stops: list[str] = []
        self.fail_start = False
        self.fail_stop = False

    async def start(self, session_id, tab_id):
        if self.fail_start:
            raise RuntimeError("microphone permission denied")
        self.starts.append((session_id, tab_id))

    async def stop(self, session_id):
        if self.fail_stop:
            raise RuntimeError("capture already gone")
        self.stops.append(session_id)


class FakeProvider(LLMProvider):
    name = "fake"

    def __init__(self, response: str = "Think about which keys are read most often."):
        super().__init__(api_key="fake-key", model="fake-model")
        self.response = response
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[dict] = []

    async def generate(self, system_prompt, user_prompt, temperature, max_tokens, image=None) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "image": image,
        })
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.response


class RecordingBus:
    def __init__(self):
        self.published: list[tuple[str, dict]] = []
        self.fail = False

    async def publish(self, session_id, payload):
        if self.fail:
            raise ConnectionError("relay down")
        self.published.append((session_id, dict(payload)))

    async def listen(self, handler):
        while True:
            await asyncio.sleep(3600)

    def types(self) -> list[str]:
        return [payload.get("type") for _, payload in self.published]


class DisplayRecorder:
    def __init__(self):
        self.events: list[dict] = []

    async def __call__(self, payload: dict) -> None:
        self.events.append(payload)

    def of_type(self, event_type: str) -> list[dict]:
        return [event for event in self.events if event.get("type") == event_type]


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ENV", "development")
    monkeypatch.setenv("QA_MODE", "true")
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    reset_metrics()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger(credits=10)


@pytest.fixture
def capture() -> FakeCapture:
    return FakeCapture()


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


@pytest.fixture
def display() -> DisplayRecorder:
    return DisplayRecorder()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def paused_store(tmp_path) -> PausedSessionStore:
    return PausedSessionStore(tmp_path / "paused_sessions.json")


@pytest.fixture
def make_controller(ledger, capture, bus, display, paused_store, clock):
    def _make(**overrides) -> SessionController:
        params = dict(
            ledger=ledger,
            capture=capture,
            mirror=ConsoleMirror(bus, debounce_ms=0),
            paused_store=paused_store,
            display=display,
            clock=clock,
        )
        params.update(overrides)
        return SessionController(**params)

    return _make


@pytest.fixture
def controller(make_controller) -> SessionController:
    return make_controller()


@pytest.fixture
def pipeline(controller, provider, clock) -> HintPipeline:
    return HintPipeline(controller=controller, provider=provider, clock=clock, debounce_ms=2000)
