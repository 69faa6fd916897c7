from hint_engine.hints.guard import RequestGuard
from hint_engine.hints.pipeline import HintPipeline

__all__ = ["HintPipeline", "RequestGuard"]
