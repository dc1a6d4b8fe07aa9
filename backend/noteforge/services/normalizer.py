"""
NoteForge Backend — Result Validator / Normalizer
===================================================

What:  The single normalization choke point for every result shape.
Why:   Provider JSON, line-recovered replies and fallback output all arrive
       with different guarantees; callers only ever see normalized data.
How:   Clamp, default and sanitize. Normalization is idempotent: running it on
       an already normalized result returns an equal result.

Rules:
    title    stripped, "Untitled Note" when empty, max 100 chars
    content  "No content generated." when blank
    tags     lowercase, whitespace → "-", only [a-z0-9-], deduped, max 5;
             a non-list value becomes ["ai-generated"]
    emoji    📝 when absent
"""

import re
from typing import Any, Iterable, List, Mapping, Union

from noteforge.schemas.generation import GenerationResult
from noteforge.services.fallback_rules import DEFAULT_EMOJI, DEFAULT_TAGS, MAX_TAGS

MAX_TITLE_CHARS = 100
DEFAULT_TITLE = "Untitled Note"
DEFAULT_CONTENT = "No content generated."
NON_LIST_TAGS = ("ai-generated",)

_SEPARATORS = re.compile(r"[\s_]+")
_DISALLOWED = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUNS = re.compile(r"-{2,}")


def normalize_tag(tag: Any) -> str:
    """One tag in canonical form; may return "" for tags with nothing usable."""
    value = _SEPARATORS.sub("-", str(tag).strip().lower())
    value = _DISALLOWED.sub("", value)
    value = _HYPHEN_RUNS.sub("-", value)
    return value.strip("-")


def normalize_tags(tags: Iterable[Any]) -> List[str]:
    """Sanitize, dedupe (keeping first occurrence) and cap a tag sequence."""
    seen: List[str] = []
    for tag in tags:
        if tag is None:
            continue
        value = normalize_tag(tag)
        if value and value not in seen:
            seen.append(value)
        if len(seen) == MAX_TAGS:
            break
    return seen


def normalize_tag_list(tags: Iterable[Any]) -> List[str]:
    """normalize_tags() that never returns an empty list (tag generation path)."""
    return normalize_tags(tags) or list(DEFAULT_TAGS)


def _field(raw: Union[Mapping[str, Any], GenerationResult], name: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(name)
    return getattr(raw, name, None)


def normalize_title(title: Any) -> str:
    text = str(title).strip() if title is not None else ""
    if not text:
        return DEFAULT_TITLE
    return text[:MAX_TITLE_CHARS].strip()


def normalize_result(raw: Union[Mapping[str, Any], GenerationResult, None]) -> GenerationResult:
    """Turn any raw note-shaped value into a valid GenerationResult."""
    raw = raw if raw is not None else {}

    content = _field(raw, "content")
    content = str(content) if content is not None else ""
    if not content.strip():
        content = DEFAULT_CONTENT

    raw_tags = _field(raw, "tags")
    if isinstance(raw_tags, (list, tuple)):
        tags = normalize_tags(raw_tags)
    else:
        tags = list(NON_LIST_TAGS)

    emoji = _field(raw, "emoji")
    emoji = str(emoji).strip() if emoji is not None else ""

    return GenerationResult(
        title=normalize_title(_field(raw, "title")),
        content=content,
        tags=tags,
        emoji=emoji or DEFAULT_EMOJI,
    )
