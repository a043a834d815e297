"""Answer rows and the actor identity that stamps them.

An ``AnswerRow`` is the per-question response record stored inside an
inspection's ``items`` JSON column.  Rows are persisted with camelCase keys
(``sectionId``, ``questionId``, ``choiceLabel``...) and read back leniently:
older blobs used ``choiceKey`` or ``answer`` for the value and ``note`` for
the notes field.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from auditking.constants import AUTHOR_ROLES


class AnswerRow(BaseModel):
    """One response per question, keyed by ``(section_id, question_id)``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    section_id: Optional[str] = None
    question_id: str
    # Selected choice key or typed text; None means unanswered.
    value: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("value", "choiceKey", "choice_key", "answer"),
    )
    choice_label: Optional[str] = None
    notes: Optional[str] = Field(
        None, validation_alias=AliasChoices("notes", "note"),
    )
    photos: List[str] = []
    required: bool = False
    # Provenance, set on every mutation.
    answered_by_user_id: Optional[str] = None
    answered_by_name: Optional[str] = None
    answered_at: Optional[datetime] = None

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v or None
        if isinstance(v, bool):
            return "yes" if v else "no"
        if isinstance(v, (int, float)):
            return str(v)
        return None

    @field_validator("notes", mode="before")
    @classmethod
    def _coerce_notes(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v or None
        return None

    @field_validator("photos", mode="before")
    @classmethod
    def _coerce_photos(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return []
        return [p for p in v if isinstance(p, str) and p]

    @property
    def key(self) -> tuple[str | None, str]:
        return self.section_id, self.question_id

    @property
    def is_answered(self) -> bool:
        return self.value is not None and self.value.strip() != ""

    def to_json(self) -> dict:
        """Dump to the persisted ``items`` entry shape."""
        return self.model_dump(mode="json", by_alias=True)


class AnswerUpdate(BaseModel):
    """A patch for a single answer row.

    Only the fields the caller actually sent are applied, so clearing a
    value means sending ``"value": null`` explicitly.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    section_id: str
    question_id: str
    value: Optional[str] = None
    notes: Optional[str] = None
    photos: Optional[List[str]] = None


class Actor(BaseModel):
    """The user performing an operation.

    Passed explicitly to every mutating call so answer provenance and
    authoring checks never depend on ambient state.
    """

    user_id: str
    name: Optional[str] = None
    role: str = "inspector"

    @property
    def can_author(self) -> bool:
        """True for roles allowed to create and edit templates."""
        return self.role in AUTHOR_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def display_name(self) -> str:
        return self.name or self.user_id
