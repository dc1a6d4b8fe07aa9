"""
NoteForge Backend — Fallback Classification Rules
===================================================

What:  Static rule tables for the network-free tag classifier and the emoji
       picker.
Why:   Kept as data so the ruleset can be extended (and tested row by row)
       without touching the classifier's control flow in fallback.py.

Tables:
    KEYWORD_RULES   substring → tags, grouped by domain
    PATTERN_RULES   regex over the text → one tag each
    TITLE_RULES     exact title word → tag group
    EMOJI_RULES     substring → emoji (first match wins)
"""

import re
from dataclasses import dataclass
from typing import Dict, Pattern, Tuple


@dataclass(frozen=True)
class KeywordRule:
    keyword: str
    tags: Tuple[str, ...]
    domain: str


@dataclass(frozen=True)
class PatternRule:
    tag: str
    pattern: Pattern[str]


def _rules(domain: str, table: Dict[str, Tuple[str, ...]]) -> Tuple[KeywordRule, ...]:
    return tuple(KeywordRule(keyword, tags, domain) for keyword, tags in table.items())


# ── Domain keywords ──────────────────────────────────────────────────────
# Matching is plain substring containment on lowercased title + content, so
# short keywords ("art", "tax") also fire inside longer words.

KEYWORD_RULES: Tuple[KeywordRule, ...] = (
    _rules("technical", {
        "javascript": ("programming", "javascript", "web-development"),
        "python": ("programming", "python", "coding"),
        "react": ("programming", "react", "frontend"),
        "api": ("programming", "api", "development"),
        "database": ("programming", "database", "backend"),
        "code": ("programming", "coding", "development"),
        "software": ("programming", "software", "technology"),
        "algorithm": ("programming", "algorithms", "computer-science"),
    })
    + _rules("business", {
        "meeting": ("business", "meetings", "work"),
        "project": ("business", "projects", "planning"),
        "strategy": ("business", "strategy", "planning"),
        "marketing": ("business", "marketing", "strategy"),
        "sales": ("business", "sales", "revenue"),
    })
    # Budget is a finance rule, but ranks with the business rules
    + _rules("finance", {
        "budget": ("finance", "budgeting", "money"),
    })
    + _rules("business", {
        "deadline": ("business", "project-management", "work"),
        "client": ("business", "clients", "work"),
        "proposal": ("business", "proposals", "work"),
    })
    + _rules("education", {
        "study": ("education", "learning", "study"),
        "research": ("education", "research", "analysis"),
        "course": ("education", "courses", "learning"),
        "tutorial": ("education", "tutorials", "learning"),
        "book": ("education", "books", "reading"),
        "lecture": ("education", "lectures", "learning"),
        "assignment": ("education", "assignments", "study"),
        "exam": ("education", "exams", "study"),
    })
    + _rules("health", {
        "workout": ("health", "fitness", "exercise"),
        "diet": ("health", "nutrition", "diet"),
        "exercise": ("health", "fitness", "exercise"),
        "nutrition": ("health", "nutrition", "wellness"),
        "medical": ("health", "medical", "wellness"),
    })
    + _rules("personal", {
        "recipe": ("cooking", "recipes", "food"),
        "travel": ("travel", "vacation", "adventure"),
        "goal": ("personal", "goals", "planning"),
        "habit": ("personal", "habits", "self-improvement"),
        "journal": ("personal", "journaling", "reflection"),
        "family": ("personal", "family", "relationships"),
    })
    + _rules("creative", {
        "design": ("creative", "design", "arts"),
        "music": ("creative", "music", "arts"),
        "writing": ("creative", "writing", "content"),
        "art": ("creative", "arts", "visual"),
        "photography": ("creative", "photography", "visual"),
    })
    + _rules("finance", {
        "investment": ("finance", "investments", "money"),
        "expense": ("finance", "expenses", "money"),
        "income": ("finance", "income", "money"),
        "tax": ("finance", "taxes", "money"),
    })
    + _rules("task-management", {
        "todo": ("productivity", "tasks", "planning"),
        "task": ("productivity", "tasks", "work"),
        "reminder": ("productivity", "reminders", "planning"),
        "checklist": ("productivity", "checklists", "organization"),
        "plan": ("productivity", "planning", "organization"),
    })
)


# ── Content patterns ─────────────────────────────────────────────────────

PATTERN_RULES: Tuple[PatternRule, ...] = (
    PatternRule("questions", re.compile(r"\?")),
    PatternRule("lists", re.compile(r"[-•*]\s")),
    PatternRule("programming", re.compile(r"```|`[^`]+`")),
    PatternRule("resources", re.compile(r"https?://|www\.")),
    PatternRule("contacts", re.compile(r"@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")),
    PatternRule("scheduled", re.compile(r"\d{1,2}/\d{1,2}/\d{2,4}|\d{4}-\d{2}-\d{2}")),
    PatternRule("data", re.compile(r"\$\d+|\d+%|\d+\.\d+")),
)


# ── Title words ──────────────────────────────────────────────────────────

TITLE_RULES: Dict[str, Tuple[str, ...]] = {
    "how": ("tutorial", "guides", "how-to"),
    "why": ("analysis", "explanation", "reasoning"),
    "what": ("definition", "explanation", "reference"),
    "when": ("scheduling", "timeline", "planning"),
    "where": ("location", "reference", "travel"),
    "review": ("reviews", "analysis", "feedback"),
    "summary": ("summaries", "notes", "reference"),
    "guide": ("guides", "tutorial", "reference"),
    "tips": ("tips", "advice", "suggestions"),
    "ideas": ("ideas", "brainstorming", "creative"),
}

DETAILED_CONTENT_CHARS = 2000
QUICK_NOTE_CHARS = 200
MAX_TAGS = 5
MAX_TITLE_WORD_TAGS = 3

TITLE_STOP_WORDS = frozenset({
    "with", "that", "this", "from", "they", "have", "will", "been", "were",
})

DEFAULT_TAGS: Tuple[str, ...] = ("general", "notes")


# ── Emoji ────────────────────────────────────────────────────────────────

EMOJI_RULES: Tuple[Tuple[str, str], ...] = (
    ("meeting", "🤝"),
    ("idea", "💡"),
    ("todo", "✅"),
    ("task", "📋"),
    ("project", "🎯"),
    ("research", "🔍"),
    ("study", "📚"),
    ("learning", "🎓"),
    ("business", "💼"),
    ("analysis", "📊"),
    ("creative", "🎨"),
    ("planning", "📅"),
    ("strategy", "🧠"),
    ("note", "📝"),
    ("documentation", "📄"),
)

DEFAULT_EMOJI = "📝"
