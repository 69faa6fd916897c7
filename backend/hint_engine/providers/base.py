from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass

from hint_engine.errors import ProviderUnconfigured


@dataclass(frozen=True)
class ImagePayload:
    media_type: str
    data: str  # base64, no data-URL prefix

    @property
    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.data}"

    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data)


def parse_image(image) -> ImagePayload | None:
    """Accept a `data:<type>;base64,<data>` URL or bare base64 (assumed PNG)."""
    if not image:
        return None
    if isinstance(image, ImagePayload):
        return image
    raw = str(image)
    if raw.startswith("data:") and "," in raw:
        header, data = raw.split(",", 1)
        media_type = header[5:].split(";", 1)[0] or "image/png"
        return ImagePayload(media_type=media_type, data=data)
    return ImagePayload(media_type="image/png", data=raw)


class LLMProvider(ABC):
    """One implementation per vendor; selected by configuration lookup."""

    name: str = "base"

    def __init__(self, api_key: str, model: str):
        self.api_key = str(api_key or "").strip()
        self.model = model

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _require_configured(self) -> None:
        if not self.configured:
            raise ProviderUnconfigured(f"{self.name} API key is not set")

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
        image=None,
    ) -> str:
        """Return raw completion text or raise a ProviderError subclass."""
