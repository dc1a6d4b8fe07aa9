"""
NoteForge Backend — Services Package
======================================

Service Inventory:
    - ai_service.py:        AIService facade (the only entry point routes use)
    - credentials.py:       Credential lifecycle manager and credential stores
    - error_classifier.py:  Provider failure → ErrorKind + invalidation decision
    - dispatcher.py:        Timeout + retry of transient provider failures
    - response_parser.py:   Structure recovery from free-form replies
    - fallback.py:          Keyword tag classifier, templates, emoji
    - normalizer.py:        Result validation and sanitization
    - prompts.py:           Prompt builders
    - gemini_client.py:     Google Gemini implementation of ProviderClient
    - provider_base.py:     ProviderClient interface
"""
