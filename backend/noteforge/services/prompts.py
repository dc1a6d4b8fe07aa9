"""
NoteForge Backend — Prompt Construction
=========================================

What:  Builds the provider prompts for the three generation operations.
How:   Pure functions of their inputs. Category styles and length targets are
       data tables so new note types only need a table entry.

Operations:
    build_note_prompt     → JSON object with title, content, tags, emoji
    build_content_prompt  → markdown body for an existing title
    build_tags_prompt     → JSON array of 3-5 lowercase tags
"""

from noteforge.schemas.generation import GenerationOptions

# ── Category writing styles (content-from-title) ─────────────────────────
CONTENT_STYLES = {
    "meeting": "Create meeting notes with agenda, discussion points, and action items",
    "project": "Write about project overview, objectives, timeline, and milestones",
    "research": "Structure with background, methodology, findings, and conclusions",
    "tutorial": "Write step-by-step instructions with examples",
    "idea": "Present the concept, benefits, and implementation steps",
    "personal": "Write personal thoughts and reflections",
    "business": "Create professional content with objectives and action points",
    "creative": "Write creatively while maintaining structure",
    "general": "Write informative content about the topic",
}

LENGTH_GUIDANCE = {
    "short": "Write 2-3 paragraphs (200-300 words)",
    "medium": "Write 4-6 paragraphs (400-600 words)",
    "long": "Write 6+ paragraphs (600-1000 words)",
}

TAG_EXCERPT_CHARS = 500


def build_note_prompt(prompt: str, options: GenerationOptions) -> str:
    """Prompt asking for a complete note as a single JSON object."""
    return f"""You are an intelligent note-taking assistant. Generate a well-structured note based on the user's request.

IMPORTANT FORMATTING REQUIREMENTS:
- Return ONLY a valid JSON object with the following structure:
{{
  "title": "Note title",
  "content": "Note content in markdown format",
  "tags": ["tag1", "tag2", "tag3"],
  "emoji": "📝"
}}

CONTENT GUIDELINES:
- Title should be concise and descriptive (max 100 characters)
- Content should be well-formatted using markdown syntax
- Use headers (##), bullet points (-), bold (**text**), italic (*text*) appropriately
- Include relevant information, examples, and structure
- Content should be comprehensive but not overly long
- Language: {options.language}
- Tone: {options.tone}
- Note type: {options.note_type}

TAGS GUIDELINES:
- Generate 3-5 relevant tags that categorize the note
- Tags should be lowercase, single words or short phrases
- Tags should help with organization and searchability

EMOJI GUIDELINES:
- Choose an appropriate emoji that represents the note content
- Use relevant emojis like 📝, 📚, 💡, 🎯, 📊, 🔍, etc.

USER REQUEST: {prompt}"""


def build_content_prompt(title: str, options: GenerationOptions) -> str:
    """Prompt asking for a markdown body matching the note type and length."""
    style = CONTENT_STYLES.get(options.note_type, CONTENT_STYLES["general"])
    length = LENGTH_GUIDANCE.get(options.length, LENGTH_GUIDANCE["medium"])

    return f"""Write detailed content about: {title}

Requirements:
- Topic: {title}
- Style: {style}
- Length: {length}
- Tone: {options.tone}
- Language: {options.language}

Please write well-structured content using markdown formatting:
- Use ## for main headings
- Use ### for subheadings
- Use - for bullet points
- Use **bold** for emphasis
- Include practical examples and details

Start writing now:"""


def truncate_excerpt(content: str, limit: int = TAG_EXCERPT_CHARS) -> str:
    if len(content) <= limit:
        return content
    return content[:limit] + "..."


def build_tags_prompt(title: str, content: str, excerpt_chars: int = TAG_EXCERPT_CHARS) -> str:
    """Prompt asking for 3-5 tags as a literal JSON array."""
    excerpt = truncate_excerpt(content or "", excerpt_chars)

    return f"""Create 3-5 relevant tags for this note:

Title: "{title}"
Content: "{excerpt}"

Rules:
- Tags should be lowercase
- Use single words or short phrases
- Focus on main topics and themes
- Make tags useful for organizing notes

Examples:
- Meeting notes → ["meeting", "discussion", "planning"]
- Recipe → ["cooking", "food", "recipes"]
- Project plan → ["project", "planning", "business"]

Return only the tags as a JSON array: ["tag1", "tag2", "tag3"]"""
