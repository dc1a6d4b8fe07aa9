"""Pydantic schemas for the NoteForge API."""
