"""
NoteForge Backend — Pydantic Generation Schemas
=================================================

What:  Data shapes for generation options, results and the HTTP API contract.
Why:   Strict input validation, automatic serialization, and OpenAPI docs.
How:   Services exchange GenerationOptions/GenerationResult; routes wrap them
       in request/response models.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from noteforge.services.templates import NOTE_TYPES

NOTE_LENGTHS = ("short", "medium", "long")


# ══════════════════════════════════════════════════════════════════════════
# Service-level models
# ══════════════════════════════════════════════════════════════════════════


class GenerationOptions(BaseModel):
    """
    Per-call generation options. Stateless; built fresh for every request.

    Unknown note types and lengths are kept as given: prompt builders and
    template selection fall back to the general/medium variants.
    """
    note_type: str = Field(
        default="general",
        description=f"Note category, one of: {', '.join(NOTE_TYPES)}",
    )
    tone: str = Field(default="professional", max_length=50)
    language: str = Field(default="English", max_length=50)
    length: str = Field(
        default="medium",
        description=f"Target length, one of: {', '.join(NOTE_LENGTHS)}",
    )

    @field_validator("note_type", "length")
    @classmethod
    def normalize_keyword(cls, v: str) -> str:
        return (v or "").strip().lower()


class GenerationResult(BaseModel):
    """
    What:  A generated note after normalization.
    Invariant: all four fields are present; title ≤ 100 chars, at most 5
    lowercase [a-z0-9-] tags, non-empty emoji.
    """
    title: str = Field(description="Note title (max 100 characters)")
    content: str = Field(description="Note body in markdown")
    tags: List[str] = Field(description="Up to 5 lowercase tags")
    emoji: str = Field(description="Emoji representing the note")


# ══════════════════════════════════════════════════════════════════════════
# Request Models — What the client sends
# ══════════════════════════════════════════════════════════════════════════


class CredentialRequest(BaseModel):
    credential: Optional[str] = Field(
        default=None,
        description="Google Gemini API key. Never stored or logged by this service.",
    )


class GenerateNoteRequest(BaseModel):
    prompt: str = Field(description="What the note should be about", max_length=10_000)
    options: GenerationOptions = Field(default_factory=GenerationOptions)


class GenerateContentRequest(BaseModel):
    title: str = Field(description="Existing note title", max_length=500)
    options: GenerationOptions = Field(default_factory=GenerationOptions)


class GenerateTagsRequest(BaseModel):
    title: str = Field(default="", max_length=500)
    content: str = Field(default="")


# ══════════════════════════════════════════════════════════════════════════
# Response Models — What the API returns
# ══════════════════════════════════════════════════════════════════════════


class ContentResponse(BaseModel):
    content: str = Field(description="Generated markdown body")


class TagsResponse(BaseModel):
    tags: List[str] = Field(description="1-5 normalized tags; never empty")


class BindingStatusResponse(BaseModel):
    bound: bool = Field(description="Whether a provider client is currently bound")


class CredentialTestResponse(BaseModel):
    valid: bool = Field(description="Whether a minimal call with the credential succeeded")


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "rate_limited",
            "message": "Rate limit exceeded. Please wait a few minutes, ...",
            "details": {"kind": "rate_limited"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded")
    version: str = Field(description="Application version")
    provider: str = Field(description="Provider binding: bound, unbound")
    uptime_seconds: float = Field(description="Seconds since service started")
