"""Audit King constants shared across the SDK.

These values are referenced by the normalizer, reconciler, scoring engine
and report renderer.  They mirror the persisted JSON conventions of the
``definition`` and ``items`` columns.

Several constants can be overridden via environment variables so that
deployments can adjust limits and layout without code changes.
"""

import os

# Canonical question type identifiers, in editor display order.
QUESTION_TYPES: list[str] = ["yes_no_na", "good_fair_poor", "multiple_choice", "text"]

# Type used whenever a persisted value carries no recognisable type.
DEFAULT_QUESTION_TYPE = "yes_no_na"

# Older and looser type spellings seen in persisted templates and AI output.
QUESTION_TYPE_ALIASES: dict[str, str] = {
    "yes_no_na": "yes_no_na",
    "yesno": "yes_no_na",
    "yes_no": "yes_no_na",
    "boolean": "yes_no_na",
    "good_fair_poor": "good_fair_poor",
    "rating": "good_fair_poor",
    "quality": "good_fair_poor",
    "multiple_choice": "multiple_choice",
    "multi": "multiple_choice",
    "select": "multiple_choice",
    "single_select": "multiple_choice",
    "choice": "multiple_choice",
    "text": "text",
    "free_text": "text",
    "freetext": "text",
}

# Fixed choice sets: ordered (key, label) pairs.
YES_NO_NA_CHOICES: list[tuple[str, str]] = [("yes", "Yes"), ("no", "No"), ("na", "N/A")]
GOOD_FAIR_POOR_CHOICES: list[tuple[str, str]] = [("good", "Good"), ("fair", "Fair"), ("poor", "Poor")]

# Score weights.  A yes/no/na row is worth 1, a good/fair/poor row 2.
YES_NO_NA_WEIGHT = 1
GOOD_FAIR_POOR_WEIGHT = 2
GOOD_FAIR_POOR_CREDIT: dict[str, int] = {"good": 2, "fair": 1, "poor": 0}

# Fallback display strings used by the normalizer.
FALLBACK_SECTION_TITLE = "Section"
FALLBACK_QUESTION_LABEL = "Question"
FALLBACK_TEMPLATE_NAME = "Untitled"

# Capability flag defaults for questions that do not state them.
DEFAULT_ALLOW_NOTES = True
DEFAULT_ALLOW_PHOTO = True
DEFAULT_REQUIRED = False

# Roles allowed to create and edit templates.
AUTHOR_ROLES: set[str] = {"admin", "manager"}

# AI template extraction limits and upstream settings.
# Overridable via AI_MAX_SECTIONS / AI_MAX_QUESTIONS_PER_SECTION env vars.
AI_MAX_SECTIONS = int(os.getenv("AI_MAX_SECTIONS", "12"))
AI_MAX_QUESTIONS_PER_SECTION = int(os.getenv("AI_MAX_QUESTIONS_PER_SECTION", "30"))
AI_MAX_TEXT_CHARS = int(os.getenv("AI_MAX_TEXT_CHARS", "20000"))
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")

# Report layout.  The wrap budget is a character count, not a point width.
REPORT_WRAP_WIDTH = int(os.getenv("REPORT_WRAP_WIDTH", "95"))
REPORT_MARGIN = float(os.getenv("REPORT_MARGIN", "40"))
