"""
NoteForge Backend — API Routes Package
========================================

Route Inventory:
    - ai.py:      PUT/DELETE /api/ai/credential     (bind / invalidate)
                  POST /api/ai/credential/refresh   (rebind stored key)
                  POST /api/ai/credential/test      (validate a key)
                  GET  /api/ai/status               (is a key bound?)
                  POST /api/ai/notes                (full note generation)
                  POST /api/ai/content              (content from title)
                  POST /api/ai/tags                 (tag generation)
    - health.py:  GET  /health

Routes stay thin: they unpack the body, call AIService, and let the global
exception handlers in main.py format failures.
"""
