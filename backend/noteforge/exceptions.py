"""
NoteForge Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for the AI generation layer.
Why:   Callers need to tell "fix your input", "configure a key" and
       "the provider failed, here is why" apart, each with its own recovery.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers in main.py turn them into JSON error responses.
Who:   Raised by services; caught by route-level global handlers.

Exception Hierarchy:
    NoteForgeError (base)
    ├── ValidationError            → 400 Bad Request
    │   └── EmptyCredentialError   → 400 Bad Request
    ├── ServiceNotConfiguredError  → 409 Conflict (no credential bound)
    ├── ProviderInitError          → 500 Internal Server Error
    └── ProviderError              → status depends on ErrorKind
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Closed classification of provider failure causes."""

    INVALID_CREDENTIAL = "invalid_credential"
    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMITED = "rate_limited"
    PERMISSION_DENIED = "permission_denied"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"


class NoteForgeError(Exception):
    """
    Base exception for all NoteForge application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned verbatim)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NoteForgeError):
    """
    Raised when caller input fails validation.

    When:    Blank prompt, blank title for content generation.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class EmptyCredentialError(ValidationError):
    """Raised by bind() and test_credential() when the credential is missing or blank."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="A Google Gemini API key is required.",
            field="credential",
            context=context,
        )


class ServiceNotConfiguredError(NoteForgeError):
    """
    Raised by generate_note() when no credential is bound and none is stored.

    Why not a ProviderError: nothing was sent to the provider. The caller's
    fix is to configure a key, not to retry.
    HTTP:    409 Conflict
    """

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=(
                "AI service not initialized. "
                "Please set your Google Gemini API key in settings."
            ),
            context=context,
        )


class ProviderInitError(NoteForgeError):
    """Raised when a provider client cannot be constructed for a credential."""

    def __init__(
        self,
        message: str = "Failed to initialize AI service",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ProviderError(NoteForgeError):
    """
    Typed failure of a call to the generative provider.

    Attributes:
        kind:                   ErrorKind assigned by the error classifier
        requires_invalidation:  Whether the bound client was discarded
        retry_after:            Suggested seconds before retrying, if known
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        requires_invalidation: bool = False,
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["kind"] = kind.value
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.kind = kind
        self.requires_invalidation = requires_invalidation
        self.retry_after = retry_after

