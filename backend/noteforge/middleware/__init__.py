"""
NoteForge Backend — Middleware Package
========================================

Middleware Chain:
    Request → [Request ID] → [Access Logging] → [CORS] → Route Handler

    Request ID runs first so every log line of the request, including the
    access line and any provider call logs, can carry the same correlation ID.
"""
