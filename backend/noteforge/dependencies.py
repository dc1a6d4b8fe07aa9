"""
NoteForge Backend — FastAPI Dependencies
==========================================

What:  Resolves the per-app AIService for route handlers.
How:   The lifespan in main.py stores one AIService on app.state; tests can
       override get_ai_service with app.dependency_overrides.
"""

from fastapi import Request

from noteforge.services.ai_service import AIService


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service
