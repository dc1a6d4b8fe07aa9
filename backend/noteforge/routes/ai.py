"""
NoteForge Backend — AI Generation Routes
==========================================

What:  HTTP surface over AIService for the note editor UI and settings flows.
Who:   Called by the frontend's generator modal, tag manager and API key
       settings dialog.

Error responses (handled by global exception handlers):
    HTTP 400: blank prompt/title/credential (ValidationError)
    HTTP 409: no API key configured for note generation
    HTTP 401/403/429/502/504: provider failure, by ErrorKind
"""

import logging

from fastapi import APIRouter, Depends, Response

from noteforge.dependencies import get_ai_service
from noteforge.schemas.generation import (
    BindingStatusResponse,
    ContentResponse,
    CredentialRequest,
    CredentialTestResponse,
    ErrorResponse,
    GenerateContentRequest,
    GenerateNoteRequest,
    GenerateTagsRequest,
    GenerationResult,
    TagsResponse,
)
from noteforge.services.ai_service import AIService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI"])

_PROVIDER_ERRORS = {
    401: {"description": "Invalid API key", "model": ErrorResponse},
    403: {"description": "API key lacks permission", "model": ErrorResponse},
    429: {"description": "Quota or rate limit exceeded", "model": ErrorResponse},
    502: {"description": "Provider or network failure", "model": ErrorResponse},
    504: {"description": "Provider timed out", "model": ErrorResponse},
}


# ── Credential lifecycle ──────────────────────────────────────────────────

@router.put(
    "/credential",
    status_code=204,
    responses={400: {"description": "Blank API key", "model": ErrorResponse}},
    summary="Bind a Gemini API key",
)
async def bind_credential(
    body: CredentialRequest,
    service: AIService = Depends(get_ai_service),
) -> Response:
    await service.bind(body.credential)
    return Response(status_code=204)


@router.delete("/credential", status_code=204, summary="Discard the bound API key")
async def invalidate_credential(service: AIService = Depends(get_ai_service)) -> Response:
    await service.invalidate()
    return Response(status_code=204)


@router.post(
    "/credential/refresh",
    response_model=BindingStatusResponse,
    summary="Rebind the API key saved in settings",
)
async def refresh_credential(
    service: AIService = Depends(get_ai_service),
) -> BindingStatusResponse:
    return BindingStatusResponse(bound=await service.refresh())


@router.post(
    "/credential/test",
    response_model=CredentialTestResponse,
    responses={400: {"description": "Blank API key", "model": ErrorResponse}, **_PROVIDER_ERRORS},
    summary="Validate an API key without binding it",
)
async def test_credential(
    body: CredentialRequest,
    service: AIService = Depends(get_ai_service),
) -> CredentialTestResponse:
    return CredentialTestResponse(valid=await service.test_credential(body.credential))


@router.get("/status", response_model=BindingStatusResponse, summary="AI availability")
async def binding_status(service: AIService = Depends(get_ai_service)) -> BindingStatusResponse:
    return BindingStatusResponse(bound=await service.ensure_bound())


# ── Generation ────────────────────────────────────────────────────────────

@router.post(
    "/notes",
    response_model=GenerationResult,
    responses={
        400: {"description": "Blank prompt", "model": ErrorResponse},
        409: {"description": "No API key configured", "model": ErrorResponse},
        **_PROVIDER_ERRORS,
    },
    summary="Generate a complete note from a prompt",
)
async def generate_note(
    body: GenerateNoteRequest,
    service: AIService = Depends(get_ai_service),
) -> GenerationResult:
    return await service.generate_note(body.prompt, body.options)


@router.post(
    "/content",
    response_model=ContentResponse,
    responses={400: {"description": "Blank title", "model": ErrorResponse}, **_PROVIDER_ERRORS},
    summary="Generate note content for a title",
    description="Returns a category template when no API key is configured.",
)
async def generate_content(
    body: GenerateContentRequest,
    service: AIService = Depends(get_ai_service),
) -> ContentResponse:
    content = await service.generate_content_from_title(body.title, body.options)
    return ContentResponse(content=content)


@router.post(
    "/tags",
    response_model=TagsResponse,
    summary="Generate tags for a note",
    description="Always succeeds; uses the rule-based classifier when the provider is unavailable.",
)
async def generate_tags(
    body: GenerateTagsRequest,
    service: AIService = Depends(get_ai_service),
) -> TagsResponse:
    return TagsResponse(tags=await service.generate_tags_for_note(body.title, body.content))
