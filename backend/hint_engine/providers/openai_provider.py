import logging

import openai
from openai import AsyncOpenAI

from hint_engine.errors import ProviderError, ProviderRateLimited, ProviderUnauthorized
from hint_engine.providers.base import LLMProvider, parse_image

logger = logging.getLogger("hint_engine.providers.openai")


class OpenAIProvider(LLMProvider):
    name = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout_sec: float = 30.0):
        super().__init__(api_key, model)
        self.client = AsyncOpenAI(api_key=self.api_key, timeout=timeout_sec, max_retries=1) if self.api_key else None

    async def generate(self, system_prompt, user_prompt, temperature, max_tokens, image=None) -> str:
        self._require_configured()

        payload = parse_image(image)
        if payload is not None:
            user_content = [
                {"type": "text", "text": user_prompt},
                {"type": "image_url", "image_url": {"url": payload.data_url}},
            ]
        else:
            user_content = user_prompt

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise ProviderUnauthorized(str(exc)) from exc
        except openai.RateLimitError as exc:
            raise ProviderRateLimited(str(exc)) from exc
        except openai.OpenAIError as exc:
            logger.warning("openai generate failure | err=%s", exc)
            raise ProviderError(str(exc)) from exc

        message = response.choices[0].message.content
        return str(message or "").strip()
