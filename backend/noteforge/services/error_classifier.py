"""
NoteForge Backend — Provider Error Classifier
===============================================

What:  Maps a raw provider failure onto an ErrorKind, decides whether the
       bound credential must be invalidated, and picks a user-facing message.
How:   Case-insensitive substring matching over the failure text, checked in
       a fixed precedence order (first matching rule wins).

Invalidation policy:
    Only failures caused by the credential itself (invalid key, exhausted
    quota, rate limiting) force a fresh credential lifecycle. Permission,
    network, timeout and unknown failures leave the bound client usable.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Tuple

from noteforge.exceptions import ErrorKind, ProviderError


# Seconds suggested to clients in the Retry-After header
RATE_LIMIT_RETRY_AFTER = 60

TIMEOUT_MESSAGE = "The AI service did not respond in time. Please try again."


@dataclass(frozen=True)
class ErrorClassification:
    kind: ErrorKind
    requires_invalidation: bool
    user_message: str
    retry_after: Optional[int] = None

    def to_exception(self, context: Optional[dict] = None) -> ProviderError:
        return ProviderError(
            kind=self.kind,
            message=self.user_message,
            requires_invalidation=self.requires_invalidation,
            retry_after=self.retry_after,
            context=context,
        )


@dataclass(frozen=True)
class _Rule:
    kind: ErrorKind
    needles: Tuple[str, ...]
    requires_invalidation: bool
    user_message: str
    retry_after: Optional[int] = None


# Precedence order matters: a 429 body usually mentions both "quota" and
# "too many requests", and must classify as QUOTA_EXCEEDED.
_RULES: Tuple[_Rule, ...] = (
    _Rule(
        kind=ErrorKind.INVALID_CREDENTIAL,
        needles=(
            "api_key_invalid",
            "invalid_api_key",
            "invalid api key",
            "api key not valid",
            "api key expired",
            "unauthenticated",
            "unauthorized",
        ),
        requires_invalidation=True,
        user_message=(
            "Invalid API key detected. Please update your Google Gemini API key "
            "in settings and try again."
        ),
    ),
    _Rule(
        kind=ErrorKind.QUOTA_EXCEEDED,
        needles=("quota",),
        requires_invalidation=True,
        user_message=(
            "API quota exceeded. Please wait, check your usage limits, "
            "or try a different API key."
        ),
    ),
    _Rule(
        kind=ErrorKind.RATE_LIMITED,
        needles=("rate_limit_exceeded", "rate limit", "too many requests"),
        requires_invalidation=True,
        user_message=(
            "Rate limit exceeded. Please wait a few minutes, then try changing "
            "your API key if the issue persists."
        ),
        retry_after=RATE_LIMIT_RETRY_AFTER,
    ),
    _Rule(
        kind=ErrorKind.PERMISSION_DENIED,
        needles=("permission_denied", "permission denied"),
        requires_invalidation=False,
        user_message=(
            "Permission denied. Please check your API key permissions and ensure "
            "it has access to the Gemini API."
        ),
    ),
    _Rule(
        kind=ErrorKind.TIMEOUT,
        needles=("timeout", "timed out", "deadline_exceeded"),
        requires_invalidation=False,
        user_message=TIMEOUT_MESSAGE,
    ),
    _Rule(
        kind=ErrorKind.NETWORK_ERROR,
        needles=("network", "fetch", "connect", "unreachable"),
        requires_invalidation=False,
        user_message="Network error. Please check your internet connection and try again.",
    ),
)


def describe_failure(exc: BaseException) -> str:
    """Text the rules are matched against: class name plus message."""
    return f"{type(exc).__name__}: {exc}"


def classify_error(exc: BaseException, operation: str = "complete the request") -> ErrorClassification:
    """
    Classify a raw provider failure.

    Args:
        exc:        Exception raised by the provider call (or by wait_for).
        operation:  Human phrase used in the UNKNOWN message, e.g. "generate note".

    Returns:
        ErrorClassification with kind, invalidation decision and user message.
    """
    if isinstance(exc, ProviderError):
        # Already classified further down the stack
        return ErrorClassification(
            exc.kind, exc.requires_invalidation, exc.message, exc.retry_after
        )

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return ErrorClassification(ErrorKind.TIMEOUT, False, TIMEOUT_MESSAGE)

    text = describe_failure(exc).lower()
    for rule in _RULES:
        if any(needle in text for needle in rule.needles):
            return ErrorClassification(
                rule.kind,
                rule.requires_invalidation,
                rule.user_message,
                rule.retry_after,
            )

    detail = str(exc) or type(exc).__name__
    return ErrorClassification(
        ErrorKind.UNKNOWN,
        False,
        f"Failed to {operation}: {detail}",
    )
