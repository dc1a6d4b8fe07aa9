"""
NoteForge Backend — Deterministic Fallback Generator
======================================================

What:  Network-free substitutes for provider output:
       - generate_smart_tags():        keyword + pattern + title tag classifier
       - generate_template_content():  category markdown skeletons
       - pick_emoji():                 keyword → emoji
How:   Pure functions over the rule tables in fallback_rules.py and the
       skeletons in templates.py. Same input, same output, no side effects.

Tag classifier stages (tags accumulate in first-seen order, no duplicates):
    1. Domain keywords found anywhere in title + content (non-exclusive)
    2. Content patterns (?, bullets, code, URLs, emails, dates, numbers)
    3. Title words (how/why/what/... → tag group)
    4. Length: > 2000 chars → "detailed", < 200 chars → "quick-note"
    5. Cap at 5; if still empty, up to 3 meaningful title words;
       if still empty, ["general", "notes"]
"""

from typing import Dict, List

from noteforge.services import fallback_rules as rules
from noteforge.services.templates import render_template


def _add(tags: Dict[str, None], new_tags) -> None:
    for tag in new_tags:
        tags.setdefault(tag, None)


def keyword_tags(text: str) -> List[str]:
    """Stage 1: union of tags of every domain keyword contained in `text`."""
    lowered = (text or "").lower()
    tags: Dict[str, None] = {}
    for rule in rules.KEYWORD_RULES:
        if rule.keyword in lowered:
            _add(tags, rule.tags)
    return list(tags)


def pattern_tags(text: str) -> List[str]:
    """Stage 2: one tag per content pattern present in `text`."""
    return [rule.tag for rule in rules.PATTERN_RULES if rule.pattern.search(text or "")]


def title_word_tags(title: str) -> List[str]:
    """Stage 3: tag groups for title words such as "how", "review", "tips"."""
    tags: Dict[str, None] = {}
    for word in (title or "").lower().split():
        _add(tags, rules.TITLE_RULES.get(word, ()))
    return list(tags)


def length_tags(content: str) -> List[str]:
    length = len(content or "")
    if length > rules.DETAILED_CONTENT_CHARS:
        return ["detailed"]
    if length < rules.QUICK_NOTE_CHARS:
        return ["quick-note"]
    return []


def meaningful_title_words(title: str) -> List[str]:
    words = [
        word
        for word in (title or "").lower().split()
        if len(word) > 3 and word not in rules.TITLE_STOP_WORDS
    ]
    return words[:rules.MAX_TITLE_WORD_TAGS]


def generate_smart_tags(title: str, content: str) -> List[str]:
    """
    Classify a note into at most five tags without calling the provider.

    Never returns an empty list. The result is not yet sanitized: callers pass
    it through normalizer.normalize_tags() like any other tag source.
    """
    title = title or ""
    content = content or ""
    text = f"{title} {content}".lower()

    tags: Dict[str, None] = {}
    _add(tags, keyword_tags(text))
    _add(tags, pattern_tags(text))
    _add(tags, title_word_tags(title))
    _add(tags, length_tags(content))

    final_tags = list(tags)[:rules.MAX_TAGS]
    if final_tags:
        return final_tags

    words = meaningful_title_words(title)
    if words:
        return words

    return list(rules.DEFAULT_TAGS)


def generate_template_content(title: str, note_type: str = "general") -> str:
    """Markdown skeleton for the category; unknown categories use "general"."""
    return render_template(title, note_type)


def pick_emoji(*texts: str) -> str:
    """First emoji whose keyword appears in any of `texts`, else 📝."""
    haystack = " ".join(t or "" for t in texts).lower()
    for keyword, emoji in rules.EMOJI_RULES:
        if keyword in haystack:
            return emoji
    return rules.DEFAULT_EMOJI
