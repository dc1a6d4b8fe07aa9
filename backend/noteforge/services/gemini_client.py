"""
NoteForge Backend — Google Gemini Provider Client
===================================================

What:  Concrete ProviderClient backed by the Google Gen AI SDK.
How:   Each instance owns its own genai.Client constructed with one API key,
       so two clients with different keys never share authentication state.
Who:   Built by CredentialManager on bind, and ad hoc by
       AIService.test_credential() for validation-only calls.
"""

import logging
from typing import Optional

from google import genai
from google.genai import types

from noteforge.config import Settings
from noteforge.services.provider_base import ClientFactory, ProviderClient

logger = logging.getLogger(__name__)


class GeminiClient(ProviderClient):
    """
    Gemini text generation bound to a single API key.

    Attributes:
        model:  Gemini model name, e.g. "gemini-2.5-pro"
    """

    def __init__(
        self,
        credential: str,
        model: str,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ):
        self.model = model
        self._client = genai.Client(api_key=credential)
        self._config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )
        self._closed = False

    async def generate(self, prompt: str) -> str:
        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
            config=self._config,
        )
        text = response.text or ""
        return text.strip()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._client.aio.aclose()
        except AttributeError:
            # SDK releases without explicit close hooks
            logger.debug("genai client has no aclose(); dropping reference")


def gemini_client_factory(settings: Settings) -> ClientFactory:
    """Returns a factory producing generation clients with the configured model."""

    def build(credential: str) -> ProviderClient:
        return GeminiClient(
            credential,
            model=settings.gemini_model,
            temperature=settings.generation_temperature,
        )

    return build


def build_test_client(credential: str, settings: Settings) -> ProviderClient:
    """Minimal, low-temperature client for credential validation calls."""
    return GeminiClient(
        credential,
        model=settings.gemini_test_model,
        temperature=0.1,
        max_output_tokens=50,
    )
