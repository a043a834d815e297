"""Schema normalizer — untrusted persisted shapes to a canonical Definition.

``normalize_definition`` is a total function: it accepts any JSON-compatible
value that claims to be a template definition and always returns a
structurally valid :class:`Definition`.  It never raises.  Every fallback
branch is spelled out below:

  Definition level:
    - dict with a ``sections`` list     → those sections
    - dict with a ``questions`` list    → one synthesized section (legacy
                                          templates kept questions at the top)
    - bare list                         → treated as the section list
    - JSON string                       → decoded, then handled as above
    - anything else                     → no sections

  Section level:
    - non-dict entry                    → dropped (strings become a titled
                                          empty section)
    - missing/duplicate ``id``          → positional ``sec_<n>`` id
    - missing ``title``                 → ``name``, else "Section"
    - missing question list             → empty list

  Question level:
    - plain string entry (legacy)       → yes_no_na question, positional id
    - missing/duplicate ``id``          → positional ``q_<section>_<n>`` id
    - missing ``label``                 → ``text``/``question``, else "Question"
    - unknown ``type``                  → yes_no_na
    - ``options``                       → kept only for multiple_choice,
                                          trimmed, blanks dropped
    - non-boolean capability flags      → defaults (notes/photo on,
                                          required off)

Data loss is accepted as the cost of forward compatibility: anything that
cannot be mapped onto the canonical shape is silently dropped (logged at
DEBUG).
"""

from __future__ import annotations

import json
import logging
import random
import string
from typing import Any, Iterable, Optional

from auditking.constants import (
    DEFAULT_ALLOW_NOTES,
    DEFAULT_ALLOW_PHOTO,
    DEFAULT_QUESTION_TYPE,
    DEFAULT_REQUIRED,
    FALLBACK_QUESTION_LABEL,
    FALLBACK_SECTION_TITLE,
    FALLBACK_TEMPLATE_NAME,
    QUESTION_TYPE_ALIASES,
)
from auditking.models.question import Definition, Question, Section, question_mapper
from auditking.models.views import TemplateDraft

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_id(prefix: str) -> str:
    """Return a fresh ``<prefix>_<8 base36 chars>`` identifier."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=8))
    return f"{prefix}_{suffix}"


def _explicit_id(value: Any) -> Optional[str]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if isinstance(value, str) and value.strip():
        return value
    return None


class _IdRegistry:
    """Hands out identifiers that are unique within one Definition.

    Entries without a usable id get a positional one (``sec_2``,
    ``q_2_3``), so normalizing the same stored value twice yields the same
    ids.  Positional ids never take an id spelled out elsewhere in the
    input.
    """

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._used: set[str] = set()
        self._reserved = set(reserved)

    def claim(self, candidate: Any, fallback: str) -> str:
        explicit = _explicit_id(candidate)
        if explicit is not None and explicit not in self._used:
            self._used.add(explicit)
            return explicit
        if explicit is not None:
            logger.debug("Re-issuing duplicate id %r as %s", explicit, fallback)
        issued, n = fallback, 1
        while issued in self._used or issued in self._reserved:
            n += 1
            issued = f"{fallback}_{n}"
        self._used.add(issued)
        return issued


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _first_text(raw: dict, keys: Iterable[str]) -> Optional[str]:
    """First value under ``keys`` that is a non-blank string."""
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _flag(raw: dict, keys: Iterable[str], default: bool) -> bool:
    """First boolean value under ``keys``, else ``default``."""
    for key in keys:
        value = raw.get(key)
        if isinstance(value, bool):
            return value
    return default


def _question_type(raw: dict) -> str:
    value = raw.get("type", raw.get("question_type"))
    if isinstance(value, str):
        mapped = QUESTION_TYPE_ALIASES.get(value.strip().lower())
        if mapped is not None:
            return mapped
    if value is not None:
        logger.debug("Unknown question type %r, using %s", value, DEFAULT_QUESTION_TYPE)
    return DEFAULT_QUESTION_TYPE


def _options(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    options: list[str] = []
    for entry in raw:
        if isinstance(entry, dict):
            entry = entry.get("label", entry.get("value"))
        if isinstance(entry, (int, float)) and not isinstance(entry, bool):
            entry = str(entry)
        if isinstance(entry, str) and entry.strip():
            options.append(entry.strip())
    return options


def _decode(raw: Any) -> Any:
    if isinstance(raw, (str, bytes)):
        try:
            return json.loads(raw)
        except ValueError:
            logger.debug("Definition is not valid JSON; treating as empty")
            return None
    return raw


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def _normalize_question(raw: Any, ids: _IdRegistry, position: str) -> Optional[Question]:
    # Legacy shape: the question list is a list of plain labels
    if isinstance(raw, str) or (isinstance(raw, (int, float)) and not isinstance(raw, bool)):
        label = str(raw)
        return question_mapper[DEFAULT_QUESTION_TYPE](
            id=ids.claim(None, f"q_{position}"),
            label=label if label.strip() else FALLBACK_QUESTION_LABEL,
            allow_notes=DEFAULT_ALLOW_NOTES,
            allow_photo=DEFAULT_ALLOW_PHOTO,
            required=DEFAULT_REQUIRED,
        )
    if not isinstance(raw, dict):
        logger.debug("Dropping question entry of type %s", type(raw).__name__)
        return None

    qtype = _question_type(raw)
    return question_mapper[qtype](
        id=ids.claim(raw.get("id"), f"q_{position}"),
        label=_first_text(raw, ("label", "text", "question", "title")) or FALLBACK_QUESTION_LABEL,
        options=_options(raw.get("options")) if qtype == "multiple_choice" else [],
        allow_notes=_flag(raw, ("allowNotes", "allow_notes"), DEFAULT_ALLOW_NOTES),
        allow_photo=_flag(raw, ("allowPhoto", "allow_photo"), DEFAULT_ALLOW_PHOTO),
        required=_flag(raw, ("required",), DEFAULT_REQUIRED),
    )


def _normalize_section(
    raw: Any, section_ids: _IdRegistry, question_ids: _IdRegistry, position: int
) -> Optional[Section]:
    if isinstance(raw, str):
        raw = {"title": raw}
    if not isinstance(raw, dict):
        logger.debug("Dropping section entry of type %s", type(raw).__name__)
        return None

    questions = []
    for index, entry in enumerate(_section_questions(raw), start=1):
        question = _normalize_question(entry, question_ids, f"{position}_{index}")
        if question is not None:
            questions.append(question)

    return Section(
        id=section_ids.claim(raw.get("id"), f"sec_{position}"),
        title=_first_text(raw, ("title", "name")) or FALLBACK_SECTION_TITLE,
        image_data_url=_first_text(raw, ("image_data_url", "imageDataUrl", "image")),
        questions=questions,
    )


def _raw_sections(raw: Any) -> list:
    raw = _decode(raw)
    if isinstance(raw, list):
        return raw
    if not isinstance(raw, dict):
        return []
    sections = raw.get("sections")
    if isinstance(sections, list):
        return sections
    # Legacy template: questions stored directly on the template
    questions = raw.get("questions")
    if isinstance(questions, list):
        return [{"title": FALLBACK_SECTION_TITLE, "questions": questions}]
    return []


def _section_questions(raw: dict) -> list:
    questions = raw.get("questions", raw.get("items"))
    return questions if isinstance(questions, list) else []


def _spelled_out_ids(raw_sections: list) -> tuple[set[str], set[str]]:
    """Section and question ids present in the input, valid or duplicate."""
    section_ids: set[str] = set()
    question_ids: set[str] = set()
    for section in raw_sections:
        if not isinstance(section, dict):
            continue
        section_id = _explicit_id(section.get("id"))
        if section_id is not None:
            section_ids.add(section_id)
        for question in _section_questions(section):
            question_id = _explicit_id(question.get("id")) if isinstance(question, dict) else None
            if question_id is not None:
                question_ids.add(question_id)
    return section_ids, question_ids


def normalize_definition(raw: Any) -> Definition:
    """Convert an arbitrary persisted value into a canonical Definition.

    Normalizing a well-formed Definition dump (``Definition.to_json()``) is
    the identity transformation, and normalizing the same value twice
    yields the same ids.
    """
    raw_sections = _raw_sections(raw)
    reserved_sections, reserved_questions = _spelled_out_ids(raw_sections)
    section_ids = _IdRegistry(reserved_sections)
    question_ids = _IdRegistry(reserved_questions)
    sections = []
    for position, entry in enumerate(raw_sections, start=1):
        section = _normalize_section(entry, section_ids, question_ids, position)
        if section is not None:
            sections.append(section)
    return Definition(sections=sections)


def normalize_template(raw: Any) -> TemplateDraft:
    """Normalize a whole template payload (name, description, definition).

    Accepts both ``{"name", "definition": {...}}`` rows and legacy
    templates that carry ``sections``/``questions`` at the top level.
    """
    raw = _decode(raw)
    if not isinstance(raw, dict):
        return TemplateDraft(name=FALLBACK_TEMPLATE_NAME, definition=normalize_definition(raw))

    name = _first_text(raw, ("name", "title"))
    description = _first_text(raw, ("description",))
    definition_raw = raw.get("definition", raw)
    return TemplateDraft(
        name=name.strip() if name else FALLBACK_TEMPLATE_NAME,
        description=description.strip() if description else None,
        definition=normalize_definition(definition_raw),
    )


def limit_definition(
    definition: Definition, *, max_sections: int, max_questions_per_section: int
) -> Definition:
    """Truncate a definition to at most ``max_sections`` sections and
    ``max_questions_per_section`` questions in each."""
    sections = [
        section.model_copy(update={"questions": section.questions[:max_questions_per_section]})
        for section in definition.sections[:max_sections]
    ]
    return Definition(sections=sections)
