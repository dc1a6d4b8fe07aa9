"""NoteForge Backend — Prompt Builder and Settings Tests"""

import pytest

from noteforge.config import Settings
from noteforge.schemas.generation import GenerationOptions
from noteforge.services.prompts import (
    CONTENT_STYLES,
    LENGTH_GUIDANCE,
    build_content_prompt,
    build_note_prompt,
    build_tags_prompt,
    truncate_excerpt,
)


def test_note_prompt_carries_options():
    """The note prompt carries every generation option."""
    options = GenerationOptions(note_type="Research", tone="casual", language="French")
    prompt = build_note_prompt("Ocean currents", options)

    assert prompt.endswith("USER REQUEST: Ocean currents")
    assert "Note type: research" in prompt
    assert "Tone: casual" in prompt
    assert "Language: French" in prompt


def test_content_prompt_style_and_length():
    """The content prompt uses the category style and length."""
    prompt = build_content_prompt("Sprint review", GenerationOptions(note_type="meeting", length="long"))
    assert CONTENT_STYLES["meeting"] in prompt
    assert LENGTH_GUIDANCE["long"] in prompt


def test_content_prompt_unknown_values_use_defaults():
    """Unknown categories and lengths use the defaults."""
    prompt = build_content_prompt("Sprint review", GenerationOptions(note_type="poem", length="huge"))
    assert CONTENT_STYLES["general"] in prompt
    assert LENGTH_GUIDANCE["medium"] in prompt


def test_tags_prompt_truncates_content():
    """Long content is truncated in the tags prompt."""
    prompt = build_tags_prompt("Title", "x" * 600, excerpt_chars=500)
    assert f'Content: "{"x" * 500}..."' in prompt


def test_truncate_excerpt_short_content_untouched():
    """Short content is left as is."""
    assert truncate_excerpt("short", 500) == "short"


class TestSettings:
    """Tests for Settings validation."""

    def test_log_level_normalized(self):
        """Log levels are upper-cased."""
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        """Unknown log levels are rejected."""
        with pytest.raises(ValueError):
            Settings(log_level="chatty")

    def test_cors_origins_list(self):
        """CORS origins are split and trimmed."""
        config = Settings(cors_origins="http://a.test, http://b.test,")
        assert config.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_missing_key_reported(self):
        """The placeholder key is reported as missing."""
        config = Settings(gemini_api_key="your_gemini_api_key_here")
        assert config.has_default_credential is False
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            config.validate_required_for_production()

    def test_valid_configuration(self):
        """A real key passes the production check."""
        Settings(gemini_api_key="  real-key  ").validate_required_for_production()
