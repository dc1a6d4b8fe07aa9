"""
NoteForge Backend — Request Dispatcher
========================================

What:  Issues one prompt through a captured ProviderClient and returns the
       raw reply text.
How:   Every call is bounded by asyncio.wait_for and, for transient failures
       only, retried with tenacity (exponential backoff with jitter).

Retry policy:
    network_error, timeout  → retried up to retry_max_attempts
    everything else         → raised on the first failure, so credential
                              errors reach the classifier untouched
    asyncio.CancelledError  → never retried, never swallowed

Request-scoped capture:
    dispatch() receives the client reference the caller took at the start of
    its operation. A rebind that happens mid-call does not change which
    client this call (or its retries) uses.
"""

import asyncio
import logging
import time
import uuid
from typing import Optional

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from noteforge.config import Settings
from noteforge.exceptions import ErrorKind
from noteforge.services.error_classifier import classify_error
from noteforge.services.provider_base import ProviderClient

logger = logging.getLogger(__name__)

TRANSIENT_KINDS = frozenset({ErrorKind.NETWORK_ERROR, ErrorKind.TIMEOUT})


def is_transient(exc: BaseException) -> bool:
    """True for failures worth retrying against the same client."""
    if isinstance(exc, asyncio.CancelledError):
        return False
    return classify_error(exc).kind in TRANSIENT_KINDS


class RequestDispatcher:
    """Sends prompts with timeout and transient-failure retries."""

    def __init__(self, settings: Settings):
        self._settings = settings

    async def dispatch(
        self,
        client: ProviderClient,
        prompt: str,
        operation: str,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Send `prompt` through `client` and return the reply text.

        Args:
            client:     Client captured by the caller at operation start.
            prompt:     Fully built prompt.
            operation:  Short label for logs, e.g. "generate note".
            timeout:    Per-attempt timeout in seconds; defaults to settings.

        Raises:
            The last provider exception (or TimeoutError) once retries are
            exhausted or a non-transient failure occurs.
        """
        request_id = str(uuid.uuid4())[:8]
        per_attempt_timeout = timeout if timeout is not None else self._settings.request_timeout

        retrying = AsyncRetrying(
            retry=retry_if_exception(is_transient),
            stop=stop_after_attempt(self._settings.retry_max_attempts),
            wait=wait_exponential_jitter(
                initial=self._settings.retry_min_wait,
                max=self._settings.retry_max_wait,
                jitter=min(1.0, self._settings.retry_max_wait),
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        text = ""
        async for attempt in retrying:
            with attempt:
                text = await self._call_once(
                    client,
                    prompt,
                    operation,
                    request_id,
                    per_attempt_timeout,
                    attempt.retry_state.attempt_number,
                )
        return text

    async def _call_once(
        self,
        client: ProviderClient,
        prompt: str,
        operation: str,
        request_id: str,
        timeout: float,
        attempt_number: int,
    ) -> str:
        start_time = time.perf_counter()
        logger.debug(
            "[%s] %s: attempt %d (model=%s, prompt=%d chars)",
            request_id,
            operation,
            attempt_number,
            getattr(client, "model", "?"),
            len(prompt),
        )
        try:
            text = await asyncio.wait_for(client.generate(prompt), timeout=timeout)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "[%s] %s failed after %.0fms: %s",
                request_id,
                operation,
                duration_ms,
                type(e).__name__,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "[%s] %s completed in %.0fms, received %d chars",
            request_id,
            operation,
            duration_ms,
            len(text or ""),
        )
        return text or ""
