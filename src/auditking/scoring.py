"""Scoring engine — derive a percentage score from an answer set.

Only yes_no_na and good_fair_poor questions are scored:

    yes_no_na       weight 1; "yes" earns 1, "no" earns 0,
                    "na" removes the row from the denominator
    good_fair_poor  weight 2; "good" earns 2, "fair" 1, "poor" 0

An unanswered scorable row still adds its weight to the denominator, so a
blank question scores the same as its worst answer.  When no row
contributes any weight the score is ``None`` rather than a number.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from auditking.constants import (
    GOOD_FAIR_POOR_CREDIT,
    GOOD_FAIR_POOR_WEIGHT,
    YES_NO_NA_WEIGHT,
)
from auditking.models.question import Definition
from auditking.reconciler import reconcile


@dataclass(frozen=True)
class ScoreBreakdown:
    """Numerator/denominator behind a score, for reporting."""

    earned: int
    possible: int

    @property
    def percent(self) -> Optional[int]:
        if self.possible <= 0:
            return None
        # Half-up rounding, matching the score shown in the browser app
        return int(100 * self.earned / self.possible + 0.5)


def score_breakdown(definition: Definition, answers: Iterable[Any]) -> ScoreBreakdown:
    """Accumulate earned/possible points over the answer set.

    Rows are typed by their question in ``definition``; stored rows whose
    question no longer exists do not count.
    """
    earned = 0
    possible = 0
    rows = reconcile(definition, answers)
    for (_, question), row in zip(definition.iter_questions(), rows):
        if not question.is_scorable:
            continue

        key = None
        if row.is_answered:
            resolved = question.resolve_choice(row.value)
            key = resolved[0] if resolved else None

        if question.type == "yes_no_na":
            if key == "na":
                continue
            possible += YES_NO_NA_WEIGHT
            if key == "yes":
                earned += YES_NO_NA_WEIGHT
        else:
            possible += GOOD_FAIR_POOR_WEIGHT
            earned += GOOD_FAIR_POOR_CREDIT.get(key, 0)

    return ScoreBreakdown(earned=earned, possible=possible)


def score_answers(definition: Definition, answers: Iterable[Any]) -> Optional[int]:
    """Percentage score (0-100) for the answer set, or None if nothing is scorable."""
    return score_breakdown(definition, answers).percent
