"""
NoteForge Backend — AI Generation Service (Facade)
====================================================

What:  The inbound surface of the AI layer: credential management, note
       generation, content-from-title generation and tag generation.
Why:   Callers (routes, other services) need one object that owns the
       credential lifecycle and applies the fail-loudly / degrade-silently
       policy per operation.
How:   Composes CredentialManager, RequestDispatcher, the response parser,
       the fallback generator and the normalizer.

Failure policy per operation:
    ┌──────────────────────────────┬──────────────┬─────────────────────────┐
    │ Operation                    │ No credential│ Provider call fails     │
    ├──────────────────────────────┼──────────────┼─────────────────────────┤
    │ generate_note                │ raise        │ raise ProviderError     │
    │ generate_content_from_title  │ template     │ raise ProviderError     │
    │ generate_tags_for_note       │ fallback     │ fallback (never raises) │
    └──────────────────────────────┴──────────────┴─────────────────────────┘
    Credential-related failures (invalid key, quota, rate limit) invalidate
    the binding before the error is raised or the fallback is used.

Concurrency:
    Each operation leases the bound client once (request-scoped capture)
    and uses that reference for the whole call. A rebind during the call
    does not redirect it, and a failure of the old client does not tear
    down the new binding (see CredentialManager.invalidate_if_current).
    The old client is closed when the call releases its lease.
"""

import asyncio
import logging
from typing import List, Optional

from noteforge.config import Settings
from noteforge.exceptions import (
    EmptyCredentialError,
    ErrorKind,
    ProviderError,
    ServiceNotConfiguredError,
    ValidationError,
)
from noteforge.schemas.generation import GenerationOptions, GenerationResult
from noteforge.services import prompts
from noteforge.services.credentials import CredentialManager, CredentialStore, SettingsCredentialStore
from noteforge.services.dispatcher import RequestDispatcher
from noteforge.services.error_classifier import classify_error
from noteforge.services.fallback import generate_smart_tags, generate_template_content
from noteforge.services.gemini_client import build_test_client, gemini_client_factory
from noteforge.services.normalizer import normalize_result, normalize_tag_list
from noteforge.services.provider_base import ClientFactory, ProviderClient
from noteforge.services.response_parser import (
    Parsed,
    parse_content_reply,
    parse_note_reply,
    parse_tags_reply,
)

logger = logging.getLogger(__name__)

# Errors test_credential() reports as exceptions rather than False
_REPORTED_TEST_KINDS = frozenset({
    ErrorKind.INVALID_CREDENTIAL,
    ErrorKind.QUOTA_EXCEEDED,
    ErrorKind.PERMISSION_DENIED,
})

_TEST_MESSAGES = {
    ErrorKind.INVALID_CREDENTIAL: "Invalid API key. Please check your Google Gemini API key.",
    ErrorKind.QUOTA_EXCEEDED: (
        "API quota exceeded. Please check your usage limits or try a different API key."
    ),
    ErrorKind.PERMISSION_DENIED: (
        "Permission denied. Please ensure your API key has the necessary permissions."
    ),
}


class AIService:
    """
    Constructible AI generation service with an owned credential lifecycle.

    One instance per caller context (the FastAPI app creates one in its
    lifespan; tests build their own).
    """

    def __init__(
        self,
        settings: Settings,
        store: Optional[CredentialStore] = None,
        client_factory: Optional[ClientFactory] = None,
        test_client_factory: Optional[ClientFactory] = None,
    ):
        self._settings = settings
        self.credentials = CredentialManager(
            store=store or SettingsCredentialStore(settings),
            client_factory=client_factory or gemini_client_factory(settings),
            settle_delay=settings.rebind_settle_delay,
        )
        self._test_client_factory = test_client_factory or (
            lambda credential: build_test_client(credential, settings)
        )
        self._dispatcher = RequestDispatcher(settings)

    # ══════════════════════════════════════════════════════════════════════
    # Credential management
    # ══════════════════════════════════════════════════════════════════════

    async def bind(self, credential: Optional[str]) -> None:
        await self.credentials.bind(credential)

    async def ensure_bound(self) -> bool:
        return await self.credentials.ensure_bound()

    async def invalidate(self) -> None:
        await self.credentials.invalidate()

    async def refresh(self) -> bool:
        return await self.credentials.refresh()

    async def close(self) -> None:
        """Release every provider client. Called on application shutdown."""
        await self.credentials.close()

    @property
    def is_bound(self) -> bool:
        return self.credentials.is_bound

    async def test_credential(self, credential: Optional[str]) -> bool:
        """
        Validate a credential with a minimal generation call.

        Uses a throw-away client; the bound client is never touched.

        Returns:
            True on success, False on failures that say nothing definite
            about the key (network, timeout, unknown).

        Raises:
            EmptyCredentialError: blank credential
            ProviderError:        invalid key, exhausted quota, missing permission
        """
        if credential is None or not credential.strip():
            raise EmptyCredentialError()

        client: Optional[ProviderClient] = None
        try:
            client = self._test_client_factory(credential.strip())
            await asyncio.wait_for(client.generate("Test"), timeout=self._settings.request_timeout)
            return True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            classification = classify_error(e, operation="test API key")
            logger.info("Credential test failed: %s", classification.kind.value)
            if classification.kind in _REPORTED_TEST_KINDS:
                raise ProviderError(
                    kind=classification.kind,
                    message=_TEST_MESSAGES[classification.kind],
                    requires_invalidation=False,
                ) from e
            return False
        finally:
            if client is not None:
                await client.close()

    async def validate_credential(self, credential: Optional[str]) -> bool:
        """test_credential() that reports every failure as False."""
        try:
            return await self.test_credential(credential)
        except (EmptyCredentialError, ProviderError):
            return False

    # ══════════════════════════════════════════════════════════════════════
    # Generation
    # ══════════════════════════════════════════════════════════════════════

    async def generate_note(
        self,
        prompt: str,
        options: Optional[GenerationOptions] = None,
    ) -> GenerationResult:
        """
        Generate a complete note (title, markdown content, tags, emoji).

        Raises:
            ValidationError:            blank prompt
            ServiceNotConfiguredError:  no credential bound or stored
            ProviderError:              the provider call failed (never
                                        replaced by fallback output)
        """
        if not prompt or not prompt.strip():
            raise ValidationError("A prompt is required to generate a note.", field="prompt")
        options = options or GenerationOptions()

        if not await self.ensure_bound():
            raise ServiceNotConfiguredError()
        async with self.credentials.lease() as client:
            if client is None:
                raise ServiceNotConfiguredError()
            text = await self._call(client, prompts.build_note_prompt(prompt, options), "generate note")
        return normalize_result(parse_note_reply(text, prompt))

    async def generate_content_from_title(
        self,
        title: str,
        options: Optional[GenerationOptions] = None,
    ) -> str:
        """
        Generate a markdown body for an existing title.

        Falls back to a category template only when no credential is
        configured, or when the provider's reply is empty or too short.
        Provider failures are raised.
        """
        if not title or not title.strip():
            raise ValidationError("Title is required for content generation", field="title")
        options = options or GenerationOptions()

        if not await self.ensure_bound():
            logger.info("No API key configured; using %s template", options.note_type or "general")
            return self.generate_content_fallback(title, options)
        async with self.credentials.lease() as client:
            if client is None:
                return self.generate_content_fallback(title, options)
            text = await self._call(
                client,
                prompts.build_content_prompt(title, options),
                "generate content from title",
            )
        outcome = parse_content_reply(text, title)
        if isinstance(outcome, Parsed):
            return outcome.value

        logger.info("Provider reply unusable for content; using template")
        return self.generate_content_fallback(title, options)

    async def generate_tags_for_note(self, title: str, content: str) -> List[str]:
        """
        Generate 1-5 tags. Never raises (other than caller cancellation) and
        never returns an empty list.
        """
        title = title or ""
        content = content or ""

        if not await self.ensure_bound():
            return self.generate_smart_tags_fallback(title, content)
        prompt = prompts.build_tags_prompt(title, content, self._settings.tag_excerpt_chars)
        try:
            async with self.credentials.lease() as client:
                if client is None:
                    return self.generate_smart_tags_fallback(title, content)
                text = await self._call(client, prompt, "generate tags for note")
            outcome = parse_tags_reply(text)
            if isinstance(outcome, Parsed):
                return normalize_tag_list(outcome.value)
        except ProviderError as e:
            logger.warning("AI tag generation failed (%s); using fallback tags", e.kind.value)
        except Exception as e:
            logger.warning("AI tag reply unusable (%s); using fallback tags", type(e).__name__)
        return self.generate_smart_tags_fallback(title, content)

    # ══════════════════════════════════════════════════════════════════════
    # Deterministic fallbacks
    # ══════════════════════════════════════════════════════════════════════

    def generate_content_fallback(
        self,
        title: str,
        options: Optional[GenerationOptions] = None,
    ) -> str:
        options = options or GenerationOptions()
        return generate_template_content(title, options.note_type)

    def generate_smart_tags_fallback(self, title: str, content: str) -> List[str]:
        return normalize_tag_list(generate_smart_tags(title, content))

    # ══════════════════════════════════════════════════════════════════════
    # Internals
    # ══════════════════════════════════════════════════════════════════════

    async def _call(self, client: ProviderClient, prompt: str, operation: str) -> str:
        """
        Dispatch through the captured client and translate failures.

        Raises:
            ProviderError with the classified kind. Credential-related kinds
            invalidate the binding first, but only if `client` is still the
            bound client.
        """
        try:
            return await self._dispatcher.dispatch(client, prompt, operation=operation)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            classification = classify_error(e, operation=operation)
            invalidated = False
            if classification.requires_invalidation:
                invalidated = await self.credentials.invalidate_if_current(client)
            logger.error(
                "%s failed: kind=%s invalidated=%s",
                operation,
                classification.kind.value,
                invalidated,
            )
            raise classification.to_exception(
                context={"operation": operation, "error_type": type(e).__name__},
            ) from e
