import logging

import anthropic
from anthropic import AsyncAnthropic

from hint_engine.errors import ProviderError, ProviderRateLimited, ProviderUnauthorized
from hint_engine.providers.base import LLMProvider, parse_image

logger = logging.getLogger("hint_engine.providers.anthropic")


class AnthropicProvider(LLMProvider):
    name = "anthropic"

    def __init__(self, api_key: str, model: str = "claude-3-5-sonnet-20240620", timeout_sec: float = 30.0):
        super().__init__(api_key, model)
        self.client = AsyncAnthropic(api_key=self.api_key, timeout=timeout_sec, max_retries=1) if self.api_key else None

    async def generate(self, system_prompt, user_prompt, temperature, max_tokens, image=None) -> str:
        self._require_configured()

        content = [{"type": "text", "text": user_prompt}]
        payload = parse_image(image)
        if payload is not None:
            content.insert(0, {
                "type": "image",
                "source": {"type": "base64", "media_type": payload.media_type, "data": payload.data},
            })

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": content}],
            )
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as exc:
            raise ProviderUnauthorized(str(exc)) from exc
        except anthropic.RateLimitError as exc:
            raise ProviderRateLimited(str(exc)) from exc
        except anthropic.AnthropicError as exc:
            logger.warning("anthropic generate failure | err=%s", exc)
            raise ProviderError(str(exc)) from exc

        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        ).strip()
