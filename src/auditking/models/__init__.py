"""Public model re-exports for auditking.

Consumers should import from ``auditking.models`` rather than reaching
into sub-modules directly.
"""

# --- Definition ---
from auditking.models.question import (
    BaseQuestion,
    Definition,
    GoodFairPoorQuestion,
    MultipleChoiceQuestion,
    Question,
    Section,
    TextQuestion,
    YesNoNaQuestion,
    question_mapper,
)

# --- Answers / identity ---
from auditking.models.answer import Actor, AnswerRow, AnswerUpdate

# --- Public views ---
from auditking.models.views import (
    InspectionInfo,
    SiteInfo,
    TemplateDraft,
    TemplateInfo,
)

__all__ = [
    # Definition
    "BaseQuestion",
    "Definition",
    "GoodFairPoorQuestion",
    "MultipleChoiceQuestion",
    "Question",
    "Section",
    "TextQuestion",
    "YesNoNaQuestion",
    "question_mapper",
    # Answers
    "Actor",
    "AnswerRow",
    "AnswerUpdate",
    # Views
    "InspectionInfo",
    "SiteInfo",
    "TemplateDraft",
    "TemplateInfo",
]
