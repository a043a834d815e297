"""auditking — inspection checklist SDK.

Public API:
    InspectionService      — templates, inspections and sites over the DB
    normalize_definition   — untrusted persisted shape → canonical Definition
    reconcile              — stored answers merged against a Definition
    score_answers          — percentage score for an answer set
    ReportRenderer         — inspections as paginated PDF documents
    TemplateLibrary        — bundled YAML starter templates
    LocalWorkspace         — templates/inspections in a key-value store

AI template import:
    TemplateExtractor        — ABC for document-text → template extraction
    OpenAITemplateExtractor  — chat-completions implementation
    draft_template_from_text — extract, normalize and limit into a draft
"""

from auditking.extraction import ExtractionError, OpenAITemplateExtractor, draft_template_from_text
from auditking.interfaces import TemplateExtractor
from auditking.library import TemplateLibrary
from auditking.models import (
    Actor,
    AnswerRow,
    AnswerUpdate,
    Definition,
    InspectionInfo,
    Question,
    Section,
    SiteInfo,
    TemplateDraft,
    TemplateInfo,
)
from auditking.normalizer import limit_definition, normalize_definition, normalize_template
from auditking.prompt import PromptManager
from auditking.reconciler import apply_answer, blank_answers, missing_required, reconcile
from auditking.report import RenderedReport, ReportError, ReportRenderer
from auditking.scoring import ScoreBreakdown, score_answers, score_breakdown
from auditking.service import InspectionIncompleteError, InspectionService
from auditking.storage import JsonFileStore, KeyValueStore, LocalWorkspace, MemoryStore

__all__ = [
    # Service
    "InspectionService",
    "InspectionIncompleteError",
    # Core
    "normalize_definition",
    "normalize_template",
    "limit_definition",
    "reconcile",
    "blank_answers",
    "apply_answer",
    "missing_required",
    "score_answers",
    "score_breakdown",
    "ScoreBreakdown",
    # Reports
    "ReportRenderer",
    "RenderedReport",
    "ReportError",
    # Models
    "Actor",
    "AnswerRow",
    "AnswerUpdate",
    "Definition",
    "Question",
    "Section",
    "TemplateInfo",
    "TemplateDraft",
    "InspectionInfo",
    "SiteInfo",
    # AI import
    "TemplateExtractor",
    "OpenAITemplateExtractor",
    "ExtractionError",
    "draft_template_from_text",
    "PromptManager",
    # Starter templates & offline storage
    "TemplateLibrary",
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "LocalWorkspace",
]
