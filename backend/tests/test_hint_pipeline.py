import asyncio

import pytest

from hint_engine.errors import (
    GENERIC_FALLBACK_HINT,
    ProviderError,
    ProviderRateLimited,
    ProviderUnauthorized,
    fallback_message,
)
from hint_engine.hints.pipeline import HintPipeline
from hint_engine.metrics import get_metrics_snapshot
from hint_engine.transcript.models import TranscriptEvent
from hint_engine.vision import VisualContext


async def _active(controller):
    await controller.start("https://zoom.us/j/123", {"role": "Data Engineer"}, 3)
    await controller.on_transcription(TranscriptEvent("How would you design a rate limiter?", True))


@pytest.mark.asyncio
async def test_rejected_without_active_session(pipeline, provider):
    result = await pipeline.request_hint({"requestType": "hint"})

    assert result["success"] is False
    assert result["code"] == "no_active_session"
    assert provider.calls == []


@pytest.mark.asyncio
async def test_successful_hint_updates_credits_and_memory(controller, pipeline, provider, display, bus):
    await _active(controller)

    result = await pipeline.request_hint({"requestType": "hint"})

    assert result == {
        "success": True,
        "hint": "Think about which keys are read most often.",
        "credits": 9,
        "mode": "help",
        "issues": [],
    }
    assert len(provider.calls) == 1
    assert "How would you design a rate limiter?" in provider.calls[0]["user_prompt"]
    assert provider.calls[0]["image"] is None

    history = controller.context.memory.history
    assert len(history) == 1
    assert history[0].question == "How would you design a rate limiter?"
    assert history[0].mode == "help"

    assert [event["type"] for event in display.events if event["type"].startswith("HINT")] == [
        "HINT_LOADING",
        "HINT_RECEIVED",
    ]
    assert "HINT_RECEIVED" in bus.types()
    assert get_metrics_snapshot()["hints_succeeded"] == 1


@pytest.mark.asyncio
async def test_requests_inside_debounce_window_are_rejected(controller, pipeline, provider, clock):
    await _active(controller)

    first = await pipeline.request_hint({"requestType": "hint"})
    clock.advance(500)
    second = await pipeline.request_hint({"requestType": "hint"})
    clock.advance(1_600)
    third = await pipeline.request_hint({"requestType": "hint"})

    assert first["success"] is True
    assert second["code"] == "debounced"
    assert third["success"] is True
    assert len(provider.calls) == 2


@pytest.mark.asyncio
async def test_only_one_request_in_flight(controller, pipeline, provider):
    await _active(controller)
    provider.gate = asyncio.Event()

    first = asyncio.create_task(pipeline.request_hint({"requestType": "hint"}))
    second = asyncio.create_task(pipeline.request_hint({"requestType": "hint"}))
    await asyncio.sleep(0.01)

    assert len(provider.calls) == 1
    assert pipeline.guard.busy

    provider.gate.set()
    results = await asyncio.gather(first, second)

    assert sorted(str(result.get("code")) for result in results) == ["None", "request_in_progress"]
    assert len(provider.calls) == 1
    assert not pipeline.guard.busy


@pytest.mark.asyncio
async def test_no_credits_blocks_the_provider(controller, pipeline, provider, ledger):
    await _active(controller)
    ledger._balance = 0

    result = await pipeline.request_hint({"requestType": "hint"})

    assert result["code"] == "no_credits"
    assert provider.calls == []


@pytest.mark.asyncio
async def test_credit_refresh_failure_keeps_cached_balance(controller, pipeline, ledger):
    await _active(controller)
    ledger.fail.add("get_credit_balance")

    result = await pipeline.request_hint({"requestType": "hint"})

    assert result["success"] is True
    assert result["credits"] == 9


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error,code",
    [
        (ProviderUnauthorized(), "provider_unauthorized"),
        (ProviderRateLimited(), "provider_rate_limited"),
        (ProviderError("upstream 502"), "provider_error"),
        (RuntimeError("socket closed"), "provider_error"),
    ],
)
async def test_provider_failures_resolve_to_fallback_hint(controller, pipeline, provider, display, error, code):
    await _active(controller)
    provider.error = error

    result = await pipeline.request_hint({"requestType": "hint"})

    assert result["success"] is False
    assert result["code"] == code
    assert result["hint"] == fallback_message(error)
    assert result["error"] == result["hint"]
    assert result["credits"] == 10
    assert controller.context.memory.history == []
    assert display.of_type("HINT_ERROR")[-1]["data"]["code"] == code
    assert not pipeline.guard.busy


@pytest.mark.asyncio
async def test_unconfigured_provider_has_its_own_message(controller, clock):
    await _active(controller)
    pipeline = HintPipeline(controller=controller, provider=None, clock=clock)

    result = await pipeline.request_hint({"requestType": "code"})

    assert result["code"] == "provider_unconfigured"
    assert result["hint"] != GENERIC_FALLBACK_HINT
    assert "not configured" in result["hint"]


@pytest.mark.asyncio
async def test_empty_provider_response_is_a_failure(controller, pipeline, provider):
    await _active(controller)
    provider.response = "   "

    result = await pipeline.request_hint({"requestType": "hint"})

    assert result["success"] is False
    assert result["hint"] == GENERIC_FALLBACK_HINT


@pytest.mark.asyncio
async def test_code_mode_records_session_language(controller, pipeline, provider):
    await _active(controller)
    provider.response = "```python\ndef solve(nums):\n    return sorted(nums)\n```"

    result = await pipeline.request_hint({"requestType": "code"})

    assert result["success"] is True
    assert result["hint"] == "def solve(nums):\n    return sorted(nums)"
    assert controller.context.memory.detected_language == "python"
    assert provider.calls[0]["max_tokens"] == 800


@pytest.mark.asyncio
async def test_follow_up_prompt_carries_previous_answer(controller, pipeline, provider, clock):
    await _active(controller)
    await pipeline.request_hint({"requestType": "hint"})
    clock.advance(2_100)

    result = await pipeline.request_hint({"requestType": "custom", "customPrompt": "make it faster"})

    assert result["success"] is True
    follow_up = provider.calls[1]
    assert "more efficient solution" in follow_up["system_prompt"]
    assert "Think about which keys are read most often." in follow_up["user_prompt"]
    assert follow_up["user_prompt"].endswith("make it faster")


@pytest.mark.asyncio
async def test_selected_screenshot_is_sent_when_nothing_was_extracted(controller, pipeline, provider):
    await _active(controller)
    controller.add_screenshot("s1", "data:image/png;base64,AAAA", ocr_text="def two_sum(nums, target):")
    controller.add_screenshot("s2", "data:image/png;base64,BBBB")

    await pipeline.request_hint({"requestType": "hint", "selectedScreenshotIds": ["s1"]})

    call = provider.calls[0]
    assert call["image"] == "data:image/png;base64,AAAA"
    assert "two_sum" in call["user_prompt"]


@pytest.mark.asyncio
async def test_empty_selection_attaches_no_screenshots(controller, pipeline, provider):
    await _active(controller)
    controller.add_screenshot("s1", "data:image/png;base64,AAAA")

    await pipeline.request_hint({"requestType": "hint", "selectedScreenshotIds": []})

    assert provider.calls[0]["image"] is None


class StaticPreprocessor:
    def __init__(self):
        self.images = []

    async def extract(self, image):
        self.images.append(image)
        return VisualContext(code="def two_sum(nums, target):\n    pass")


@pytest.mark.asyncio
async def test_preprocessed_screen_replaces_raw_image(controller, provider, clock):
    await _active(controller)
    controller.add_screenshot("s1", "data:image/png;base64,AAAA")
    preprocessor = StaticPreprocessor()
    pipeline = HintPipeline(controller=controller, provider=provider, preprocessor=preprocessor, clock=clock)

    await pipeline.request_hint({"requestType": "hint"})

    assert preprocessor.images == ["data:image/png;base64,AAAA"]
    call = provider.calls[0]
    assert call["image"] is None
    assert "Code Editor State" in call["user_prompt"]


@pytest.mark.asyncio
async def test_stop_cancels_in_flight_hint_when_configured(make_controller, provider, clock):
    controller = make_controller(cancel_hints_on_stop=True)
    pipeline = HintPipeline(controller=controller, provider=provider, clock=clock)
    await _active(controller)
    provider.gate = asyncio.Event()

    request = asyncio.create_task(pipeline.request_hint({"requestType": "hint"}))
    await asyncio.sleep(0.01)
    await controller.stop()
    result = await request

    assert result["success"] is False
    assert result["code"] == "hint_cancelled"
    assert get_metrics_snapshot()["hints_cancelled"] == 1


@pytest.mark.asyncio
async def test_in_flight_hint_survives_stop_by_default(controller, pipeline, provider, display):
    await _active(controller)
    provider.gate = asyncio.Event()

    request = asyncio.create_task(pipeline.request_hint({"requestType": "hint"}))
    await asyncio.sleep(0.01)
    await controller.stop()
    provider.gate.set()
    result = await request

    assert result["success"] is True
    assert controller.context.credits == 9
    assert display.of_type("HINT_RECEIVED") == []


@pytest.mark.asyncio
async def test_late_hint_does_not_leak_into_next_session(controller, pipeline, provider, display, bus):
    await _active(controller)
    first_id = controller.session.id
    provider.gate = asyncio.Event()

    request = asyncio.create_task(pipeline.request_hint({"requestType": "hint"}))
    await asyncio.sleep(0.01)
    await controller.stop()
    await _active(controller)
    assert controller.session.id != first_id
    credits_before = controller.context.credits

    provider.gate.set()
    result = await request

    assert result["success"] is True
    assert result["hint"] == "Think about which keys are read most often."
    assert controller.context.memory.history == []
    assert controller.context.credits == credits_before
    assert display.of_type("HINT_RECEIVED") == []
    assert "HINT_RECEIVED" not in bus.types()
    assert get_metrics_snapshot()["hints_detached"] == 1


@pytest.mark.asyncio
async def test_metrics_log_tracks_outcomes(controller, pipeline, provider, clock):
    await _active(controller)
    await pipeline.request_hint({"requestType": "hint"})
    clock.advance(2_100)
    provider.error = ProviderRateLimited()
    await pipeline.request_hint({"requestType": "hint"})

    summary = pipeline.metrics_log.summary()
    assert summary["total_requests"] == 2
    assert summary["success_rate"] == 0.5
    errors = pipeline.metrics_log.recent_errors()
    assert len(errors) == 1
    assert errors[0]["error"] == "provider_rate_limited"
