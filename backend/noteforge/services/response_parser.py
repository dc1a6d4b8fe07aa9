"""
NoteForge Backend — Provider Response Parser
==============================================

What:  Recovers structured data from the provider's free-form text replies.
How:   Each reply type has an ordered list of parse strategies. A strategy
       returns Parsed(value) or NOT_PARSED; the first Parsed wins. Strategies
       are plain functions so each one can be tested on its own.

Strategy chains:
    note     JSON object → line-by-line recovery (always succeeds)
    content  unwrap/clean → NOT_PARSED when too short (caller uses a template)
    tags     array literal → quoted strings → bullets → comma segments
             → NOT_PARSED (caller uses the fallback classifier)
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, TypeVar, Union

from noteforge.services.fallback import generate_smart_tags, pick_emoji


T = TypeVar("T")


@dataclass(frozen=True)
class Parsed(Generic[T]):
    value: T


class _NotParsed:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_PARSED"


NOT_PARSED = _NotParsed()

ParseOutcome = Union[Parsed[T], _NotParsed]


def first_parsed(strategies: Sequence[Callable[[], ParseOutcome]]) -> ParseOutcome:
    for strategy in strategies:
        outcome = strategy()
        if isinstance(outcome, Parsed):
            return outcome
    return NOT_PARSED


# ══════════════════════════════════════════════════════════════════════════
# Shared helpers
# ══════════════════════════════════════════════════════════════════════════

_JSON_FENCE = re.compile(r"```json[\s\S]*?```", re.IGNORECASE)
_OPEN_FENCE = re.compile(r"^```[a-zA-Z]*[ \t]*\n?")
_CLOSE_FENCE = re.compile(r"\n?```\s*$")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def iter_balanced_objects(text: str):
    """Yield every balanced {...} substring, left to right, string-aware."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        end = None
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    end = i
                    break
        if end is None:
            return
        yield text[start:end + 1]
        start = text.find("{", start + 1)


def strip_code_fence(text: str) -> str:
    """Remove a ```lang ... ``` wrapper around the whole reply."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = _OPEN_FENCE.sub("", stripped, count=1)
        stripped = _CLOSE_FENCE.sub("", stripped, count=1)
    return stripped


# ══════════════════════════════════════════════════════════════════════════
# Full note replies
# ══════════════════════════════════════════════════════════════════════════

NOTE_KEYS = ("title", "content", "tags", "emoji")
DEFAULT_RECOVERED_TITLE = "AI Generated Note"


def parse_json_object(text: str) -> ParseOutcome:
    """First balanced object that decodes to a dict with note fields."""
    for candidate in iter_balanced_objects(text or ""):
        try:
            payload = json.loads(candidate)
        except RecursionError:
            # Too deep to decode; line recovery takes over
            return NOT_PARSED
        except ValueError:
            continue
        if isinstance(payload, dict) and any(key in payload for key in NOTE_KEYS):
            return Parsed(payload)
    return NOT_PARSED


def extract_title_line(text: str) -> Optional[str]:
    for line in (text or "").splitlines():
        trimmed = line.strip()
        if trimmed and len(trimmed) <= 100 and not trimmed.startswith("{"):
            title = re.sub(r"^#+\s*", "", trimmed)
            title = re.sub(r"[*\"`]", "", title).strip()
            if title:
                return title
    return None


def recover_note_from_lines(text: str, prompt: str = "") -> ParseOutcome:
    """Build a note dict from raw text when no JSON object can be decoded."""
    text = text or ""
    content = _JSON_FENCE.sub("", text).strip() or text
    return Parsed({
        "title": extract_title_line(text) or DEFAULT_RECOVERED_TITLE,
        "content": content,
        "tags": generate_smart_tags(prompt, text),
        "emoji": pick_emoji(prompt, text),
    })


def parse_note_reply(text: str, prompt: str = "") -> Dict[str, Any]:
    """Raw (un-normalized) note fields extracted from a generate-note reply."""
    outcome = first_parsed([
        lambda: parse_json_object(text),
        lambda: recover_note_from_lines(text, prompt),
    ])
    if isinstance(outcome, Parsed) and isinstance(outcome.value, dict):
        return outcome.value
    return {}


# ══════════════════════════════════════════════════════════════════════════
# Content-from-title replies
# ══════════════════════════════════════════════════════════════════════════

MIN_CONTENT_CHARS = 50
TITLE_ECHO_WORDS = 3


def clean_content(text: str) -> str:
    content = _JSON_FENCE.sub("", text or "")
    content = strip_code_fence(content).strip()
    if len(content) >= 2 and content.startswith('"') and content.endswith('"'):
        content = content[1:-1].strip()
    return _EXCESS_NEWLINES.sub("\n\n", content)


def drop_title_echo(content: str, title: str) -> str:
    """Drop the first line when it just repeats the title's first few words."""
    title_words = " ".join((title or "").lower().split()[:TITLE_ECHO_WORDS])
    if not title_words:
        return content
    lines = content.split("\n")
    first = re.sub(r"^#+\s*", "", lines[0]).lower()
    if first.startswith(title_words):
        return "\n".join(lines[1:]).strip()
    return content


def parse_content_reply(text: str, title: str) -> ParseOutcome:
    content = drop_title_echo(clean_content(text), title)
    if len(content.strip()) < MIN_CONTENT_CHARS:
        return NOT_PARSED
    return Parsed(content)


# ══════════════════════════════════════════════════════════════════════════
# Tag replies
# ══════════════════════════════════════════════════════════════════════════

GENERIC_TAGS = frozenset({"note", "text", "content", "document"})
MAX_PARSED_TAGS = 5

_ARRAY = re.compile(r"\[[\s\S]*?\]")
_QUOTED = re.compile(r'"([^"]+)"')
_BULLET = re.compile(r"^\s*[-•*]\s*(.+)$", re.MULTILINE)
_SEGMENT = re.compile(r"^[A-Za-z][A-Za-z\s-]*$")


def clean_tags(candidates: Sequence[Any]) -> List[str]:
    cleaned: List[str] = []
    for candidate in candidates:
        tag = re.sub(r"[^\w\s-]", "", str(candidate).lower())
        tag = re.sub(r"\s+", "-", tag.strip())
        if not 1 < len(tag) < 25 or tag in GENERIC_TAGS or tag in cleaned:
            continue
        cleaned.append(tag)
        if len(cleaned) == MAX_PARSED_TAGS:
            break
    return cleaned


def _as_tags(candidates: Sequence[Any]) -> ParseOutcome:
    tags = clean_tags(candidates)
    return Parsed(tags) if tags else NOT_PARSED


def tags_from_array(text: str) -> ParseOutcome:
    for match in _ARRAY.findall(text):
        try:
            payload = json.loads(match)
        except (ValueError, RecursionError):
            continue
        if isinstance(payload, list):
            outcome = _as_tags([item for item in payload if isinstance(item, (str, int, float))])
            if outcome:
                return outcome
    return NOT_PARSED


def tags_from_quotes(text: str) -> ParseOutcome:
    return _as_tags(_QUOTED.findall(text))


def tags_from_bullets(text: str) -> ParseOutcome:
    return _as_tags([item.strip() for item in _BULLET.findall(text)])


def tags_from_segments(text: str) -> ParseOutcome:
    segments = [s.strip() for s in re.split(r"[,\n]", text)]
    return _as_tags([s for s in segments if 2 < len(s) < 20 and _SEGMENT.match(s)])


def parse_tags_reply(text: str) -> ParseOutcome:
    text = (text or "").strip()
    if not text:
        return NOT_PARSED
    return first_parsed([
        lambda: tags_from_array(text),
        lambda: tags_from_quotes(text),
        lambda: tags_from_bullets(text),
        lambda: tags_from_segments(text),
    ])
