"""Answer reconciler — merge stored answers against the current Definition.

Templates keep changing after inspections start: questions are added,
removed, re-ordered, and capability flags are toggled.  ``reconcile``
produces exactly one :class:`AnswerRow` per question currently in the
Definition, in the Definition's order:

  - a prior row with the same ``(section_id, question_id)`` key is carried
    forward (value, label, notes, photos, provenance) with ``required``
    refreshed from the current question
  - rows written before answers carried a section id are matched on the
    bare question id, but only when that id appears in a single section
  - questions without a prior row get a blank row
  - prior rows whose question is gone are dropped

The function is pure and idempotent:
``reconcile(d, reconcile(d, a)) == reconcile(d, a)``.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from auditking.models.answer import Actor, AnswerRow, AnswerUpdate
from auditking.models.question import Definition, Question, Section

logger = logging.getLogger(__name__)


def blank_row(section: Section, question: Question) -> AnswerRow:
    """An unanswered row for ``question``."""
    return AnswerRow(
        section_id=section.id,
        question_id=question.id,
        required=question.required,
    )


def blank_answers(definition: Definition) -> list[AnswerRow]:
    """The answer skeleton an inspection starts from."""
    return [blank_row(s, q) for s, q in definition.iter_questions()]


def coerce_row(raw: Any) -> Optional[AnswerRow]:
    """Parse one stored row leniently; malformed entries yield None."""
    if isinstance(raw, AnswerRow):
        return raw
    if not isinstance(raw, dict):
        return None
    try:
        return AnswerRow.model_validate(raw)
    except ValidationError:
        logger.debug("Dropping malformed answer row: %r", raw)
        return None


def reconcile(definition: Definition, answers: Iterable[Any] | None) -> list[AnswerRow]:
    """Return one answer row per current question, reusing prior answers.

    Args:
        definition: the canonical (normalized) definition
        answers: previously stored rows, as ``AnswerRow`` instances or raw
            dicts from the ``items`` column; may be empty, partial or stale

    Returns:
        A new list; the input is never mutated.
    """
    by_key: dict[tuple[str, str], AnswerRow] = {}
    by_question: dict[str, AnswerRow] = {}
    for raw in answers or []:
        row = coerce_row(raw)
        if row is None:
            continue
        if row.section_id is None:
            by_question.setdefault(row.question_id, row)
        else:
            by_key.setdefault((row.section_id, row.question_id), row)

    # Bare question ids are only trusted when they are unambiguous
    id_counts = Counter(q.id for _, q in definition.iter_questions())

    result: list[AnswerRow] = []
    for section, question in definition.iter_questions():
        prior = by_key.get((section.id, question.id))
        if prior is None and id_counts[question.id] == 1:
            prior = by_question.get(question.id)

        if prior is None:
            result.append(blank_row(section, question))
        else:
            result.append(
                prior.model_copy(
                    update={"section_id": section.id, "required": question.required}
                )
            )
    return result


def apply_answer(
    definition: Definition,
    rows: list[AnswerRow],
    update: AnswerUpdate,
    actor: Actor,
    *,
    now: datetime | None = None,
) -> list[AnswerRow]:
    """Apply a single answer patch and stamp provenance.

    Only the fields present in ``update.model_fields_set`` are changed.
    Choice values may be sent as key or label and are stored as the key,
    with the matching ``choice_label``.

    Raises:
        ValueError: if the question does not exist, the choice is not
            valid for the question type, or notes/photos are sent for a
            question that does not allow them
    """
    question = definition.find_question(update.section_id, update.question_id)
    if question is None:
        raise ValueError(
            f"Question not found: section_id={update.section_id}, "
            f"question_id={update.question_id}"
        )

    key = (update.section_id, update.question_id)
    index = next((i for i, row in enumerate(rows) if row.key == key), None)
    if index is None:
        raise ValueError(f"Answer row not found: {key}")

    sent = update.model_fields_set
    changes: dict[str, Any] = {}

    if "value" in sent:
        value = update.value
        if value is None or not value.strip():
            changes["value"] = None
            changes["choice_label"] = None
        elif question.type == "text":
            changes["value"] = value
            changes["choice_label"] = None
        else:
            resolved = question.resolve_choice(value)
            if resolved is None:
                raise ValueError(
                    f"Invalid choice {value!r} for {question.type} question {question.id}"
                )
            changes["value"], changes["choice_label"] = resolved

    if "notes" in sent:
        notes = update.notes or None
        if notes and not question.allow_notes:
            raise ValueError(f"Notes are not allowed on question {question.id}")
        changes["notes"] = notes

    if "photos" in sent:
        photos = [p for p in (update.photos or []) if p]
        if photos and not question.allow_photo:
            raise ValueError(f"Photos are not allowed on question {question.id}")
        changes["photos"] = photos

    changes["answered_by_user_id"] = actor.user_id
    changes["answered_by_name"] = actor.display_name
    changes["answered_at"] = now or datetime.now(timezone.utc)

    updated = list(rows)
    updated[index] = rows[index].model_copy(update=changes)
    return updated


def missing_required(
    definition: Definition, rows: Iterable[Any]
) -> list[tuple[Section, Question]]:
    """Required questions whose answer is empty, in display order."""
    reconciled = reconcile(definition, rows)
    missing = []
    for (section, question), row in zip(definition.iter_questions(), reconciled):
        if row.required and not row.is_answered:
            missing.append((section, question))
    return missing
