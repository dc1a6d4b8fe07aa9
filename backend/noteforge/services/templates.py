"""
NoteForge Backend — Note Content Templates
============================================

What:  Markdown skeletons per note category, used when no provider is bound.
How:   Each skeleton is a str.format() template. Available fields:
           {title}     the note title as given
           {keywords}  comma-separated title keywords
           {topic}     first two keywords joined with "and"
       Blank "- " lines are intentional fill-in placeholders.
"""

import re
from typing import Dict, List, Tuple

KEYWORD_STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "is", "are", "was", "were", "be", "been", "have", "has",
    "had", "will", "would", "could", "should",
})

MAX_KEYWORDS = 5

_NON_WORD = re.compile(r"[^\w\s]")


def extract_keywords(title: str) -> List[str]:
    """Up to five lowercase title words longer than two chars, minus stop words."""
    words = _NON_WORD.sub("", (title or "").lower()).split()
    return [w for w in words if len(w) > 2 and w not in KEYWORD_STOP_WORDS][:MAX_KEYWORDS]


TEMPLATES: Dict[str, str] = {
    "meeting": """## Meeting Overview

**Purpose:** {keywords}

## Agenda
- Opening remarks
- Discussion points
- Action items review
- Next steps

## Discussion Points
-

## Action Items
- [ ]
- [ ]
- [ ]

## Next Meeting
**Date:**
**Time:**
**Location:**

## Notes
""",
    "project": """## Project Overview

**Project Name:** {title}

## Objectives
-

## Scope
-

## Timeline
- **Start Date:**
- **End Date:**
- **Key Milestones:**

## Resources Needed
-

## Success Criteria
-

## Next Steps
1.
2.
3.

## Notes
""",
    "research": """## Research Topic: {title}

## Background
Provide context and background information about the research topic.

## Research Questions
-
-
-

## Methodology
Describe the approach and methods used for this research.

## Key Findings
-
-
-

## Sources
-
-
-

## Conclusions
Summarize the main conclusions and insights from the research.

## Further Reading
-
""",
    "tutorial": """## {title}

## Overview
Brief description of what this tutorial covers and what you'll learn.

## Prerequisites
-
-

## Step-by-Step Instructions

### Step 1:
Description and instructions for the first step.

### Step 2:
Description and instructions for the second step.

### Step 3:
Description and instructions for the third step.

## Tips and Best Practices
-
-
-

## Troubleshooting
Common issues and solutions:
- **Issue:**
  **Solution:**

## Conclusion
Summary of what was accomplished and next steps.
""",
    "idea": """## Idea: {title}

## Core Concept
Describe the main idea or concept in detail.

## Problem It Solves
-
-

## Potential Benefits
-
-
-

## Implementation Ideas
1.
2.
3.

## Challenges and Considerations
-
-

## Next Steps
- [ ]
- [ ]
- [ ]

## Additional Thoughts
""",
    "personal": """## {title}

## Thoughts and Reflections
Write your personal thoughts and reflections about this topic.

## Key Insights
-
-
-

## Personal Goals
-
-

## Action Items
- [ ]
- [ ]

## Additional Notes
""",
    "business": """## {title}

## Executive Summary
Brief overview of the main points and recommendations.

## Current Situation
Description of the current business context and challenges.

## Opportunities
-
-
-

## Recommendations
1.
2.
3.

## Implementation Plan
- **Phase 1:**
- **Phase 2:**
- **Phase 3:**

## Success Metrics
-
-

## Next Steps
- [ ]
- [ ]
""",
    "creative": """## {title}

## Inspiration
What inspired this creative idea or project?

## Concept Development
Describe how the concept evolved and key creative decisions.

## Creative Elements
- **Style:**
- **Theme:**
- **Key Features:**

## Creative Process
1.
2.
3.

## Variations and Ideas
-
-
-

## Next Creative Steps
- [ ]
- [ ]

## Notes and Sketches
""",
    "general": """## {title}

## Overview
This note covers important information about {topic}.

## Key Points
-
-
-

## Details
Provide more detailed information and context here.

## Important Considerations
-
-

## Action Items
- [ ]
- [ ]

## References and Resources
-
-

## Additional Notes
""",
}

NOTE_TYPES: Tuple[str, ...] = tuple(TEMPLATES)


def render_template(title: str, note_type: str = "general") -> str:
    """Fill the skeleton for `note_type` (general when unknown) with title data."""
    template = TEMPLATES.get((note_type or "").lower(), TEMPLATES["general"])
    keywords = extract_keywords(title)
    return template.format(
        title=(title or "").strip() or "Untitled Note",
        keywords=", ".join(keywords),
        topic=" and ".join(keywords[:2]) or "this topic",
    )
