from hint_engine.providers.base import ImagePayload, LLMProvider, parse_image

__all__ = ["ImagePayload", "LLMProvider", "parse_image"]
