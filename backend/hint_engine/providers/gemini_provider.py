import logging

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from hint_engine.errors import ProviderError, ProviderRateLimited, ProviderUnauthorized
from hint_engine.providers.base import LLMProvider, parse_image

logger = logging.getLogger("hint_engine.providers.gemini")


class GeminiProvider(LLMProvider):
    name = "gemini"

    def __init__(self, api_key: str, model: str = "gemini-1.5-pro"):
        super().__init__(api_key, model)
        if self.api_key:
            genai.configure(api_key=self.api_key)

    def _model(self, system_prompt: str):
        return genai.GenerativeModel(self.model, system_instruction=system_prompt)

    async def generate(self, system_prompt, user_prompt, temperature, max_tokens, image=None) -> str:
        self._require_configured()

        parts: list = [user_prompt]
        payload = parse_image(image)
        if payload is not None:
            parts.append({"mime_type": payload.media_type, "data": payload.raw_bytes()})

        try:
            response = await self._model(system_prompt).generate_content_async(
                parts,
                generation_config=genai.GenerationConfig(
                    temperature=temperature,
                    max_output_tokens=max_tokens,
                ),
            )
        except (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied) as exc:
            raise ProviderUnauthorized(str(exc)) from exc
        except google_exceptions.ResourceExhausted as exc:
            raise ProviderRateLimited(str(exc)) from exc
        except google_exceptions.GoogleAPIError as exc:
            logger.warning("gemini generate failure | err=%s", exc)
            raise ProviderError(str(exc)) from exc

        try:
            return str(response.text or "").strip()
        except ValueError as exc:
            # blocked or empty candidates
            raise ProviderError(str(exc)) from exc
