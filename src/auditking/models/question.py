"""Definition models: the canonical shape of an inspection template.

A Definition is an ordered list of sections, each an ordered list of typed
questions.  Each question type maps to a specific answer widget and to a
scoring rule:

    - yes_no_na: Yes / No / N/A buttons (scorable, weight 1)
    - good_fair_poor: Good / Fair / Poor buttons (scorable, weight 2)
    - multiple_choice: pick one of the question's ``options`` (not scored)
    - text: free-text answer (not scored)

The discriminated ``Question`` union uses ``type`` as its discriminator.
The ``question_mapper`` dict maps type strings to their Pydantic classes.

Capability flags are persisted in camelCase (``allowNotes``,
``allowPhoto``) to stay compatible with existing ``definition`` blobs;
dump with ``by_alias=True`` when writing them back.
"""

from __future__ import annotations

from typing import Annotated, Iterator, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from auditking.constants import GOOD_FAIR_POOR_CHOICES, YES_NO_NA_CHOICES


# --- Base question type ---

class BaseQuestion(BaseModel):
    """Fields shared by all question types."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    label: str
    options: List[str] = []
    allow_notes: bool = Field(True, alias="allowNotes")
    allow_photo: bool = Field(True, alias="allowPhoto")
    required: bool = False

    @property
    def is_scorable(self) -> bool:
        """True if answers to this question contribute to the score."""
        return False

    def choices(self) -> list[tuple[str, str]]:
        """Ordered ``(key, label)`` pairs the inspector may pick from.

        Empty for free-text questions.
        """
        return []

    def resolve_choice(self, value: str) -> Optional[tuple[str, str]]:
        """Match a stored value against this question's choices.

        Keys and labels are both accepted, case-insensitively, so legacy
        rows that stored the label (``"N/A"``) resolve to the key (``"na"``).
        """
        wanted = value.strip().lower()
        for key, label in self.choices():
            if wanted in (key.lower(), label.lower()):
                return key, label
        return None


# --- Question types ---

class YesNoNaQuestion(BaseQuestion):
    """Binary tri-state question: Yes / No / N/A."""

    type: Literal["yes_no_na"] = "yes_no_na"

    @property
    def is_scorable(self) -> bool:
        return True

    def choices(self) -> list[tuple[str, str]]:
        return list(YES_NO_NA_CHOICES)


class GoodFairPoorQuestion(BaseQuestion):
    """Tri-level quality question: Good / Fair / Poor."""

    type: Literal["good_fair_poor"] = "good_fair_poor"

    @property
    def is_scorable(self) -> bool:
        return True

    def choices(self) -> list[tuple[str, str]]:
        return list(GOOD_FAIR_POOR_CHOICES)


class MultipleChoiceQuestion(BaseQuestion):
    """Pick exactly one entry from ``options``; the option text is its own key."""

    type: Literal["multiple_choice"] = "multiple_choice"

    def choices(self) -> list[tuple[str, str]]:
        return [(opt, opt) for opt in self.options]


class TextQuestion(BaseQuestion):
    """Free-text answer."""

    type: Literal["text"] = "text"


# --- Discriminated union of all question types ---

Question = Annotated[
    Union[
        YesNoNaQuestion,
        GoodFairPoorQuestion,
        MultipleChoiceQuestion,
        TextQuestion,
    ],
    Field(discriminator="type"),
]

# Maps type string → Pydantic class for building questions from normalized dicts.
question_mapper = {
    "yes_no_na": YesNoNaQuestion,
    "good_fair_poor": GoodFairPoorQuestion,
    "multiple_choice": MultipleChoiceQuestion,
    "text": TextQuestion,
}


# --- Sections and the definition ---

class Section(BaseModel):
    """An ordered group of questions with an optional header image."""

    id: str
    title: str
    # Base64 data URL; rendered above the section title in single exports.
    image_data_url: Optional[str] = None
    questions: List[Question] = []


class Definition(BaseModel):
    """The canonical template structure (sections → questions).

    Section order and question order are meaningful: they drive display,
    answer-row order and report order.
    """

    sections: List[Section] = []

    def iter_questions(self) -> Iterator[tuple[Section, Question]]:
        """Yield ``(section, question)`` pairs in display order."""
        for section in self.sections:
            for question in section.questions:
                yield section, question

    @property
    def question_count(self) -> int:
        return sum(len(s.questions) for s in self.sections)

    def find_question(self, section_id: str | None, question_id: str) -> Optional[Question]:
        """Look up a question by its composite key.

        A ``None`` section id matches the question in any section.
        """
        for section, question in self.iter_questions():
            if question.id != question_id:
                continue
            if section_id is None or section.id == section_id:
                return question
        return None

    def to_json(self) -> dict:
        """Dump to the persisted ``definition`` JSON shape."""
        return self.model_dump(mode="json", by_alias=True)
