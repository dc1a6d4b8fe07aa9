"""
NoteForge Backend
==================

AI-assisted note generation with a resilient credential lifecycle and a
deterministic, network-free fallback generator.
"""

__version__ = "1.0.0"
