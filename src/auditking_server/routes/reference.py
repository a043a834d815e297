"""Reference data endpoints — question types, roles, starter templates.

Read-only and unauthenticated: the data ships with the SDK.
"""

from fastapi import APIRouter, Depends

from auditking.constants import (
    AUTHOR_ROLES,
    GOOD_FAIR_POOR_WEIGHT,
    QUESTION_TYPES,
    YES_NO_NA_WEIGHT,
)
from auditking.library import TemplateLibrary
from auditking.models.question import question_mapper
from auditking.models.views import TemplateDraft

from auditking_server.dependencies import KNOWN_ROLES, get_library

router = APIRouter(prefix="/reference", tags=["reference"])

_TYPE_LABELS = {
    "yes_no_na": "Yes / No / N/A",
    "good_fair_poor": "Good / Fair / Poor",
    "multiple_choice": "Multiple choice",
    "text": "Text",
}
_TYPE_WEIGHTS = {"yes_no_na": YES_NO_NA_WEIGHT, "good_fair_poor": GOOD_FAIR_POOR_WEIGHT}


@router.get("/question-types")
def list_question_types() -> list[dict]:
    """Question types in editor order, with their fixed choices and weight."""
    result = []
    for qtype in QUESTION_TYPES:
        sample = question_mapper[qtype](id="sample", label="sample")
        result.append(
            {
                "type": qtype,
                "label": _TYPE_LABELS[qtype],
                "scorable": sample.is_scorable,
                "weight": _TYPE_WEIGHTS.get(qtype, 0),
                "choices": [{"key": k, "label": v} for k, v in sample.choices()],
            }
        )
    return result


@router.get("/roles")
def list_roles() -> list[dict]:
    return [{"role": r, "can_author": r in AUTHOR_ROLES} for r in KNOWN_ROLES]


@router.get("/starter-templates")
def list_starter_templates(
    library: TemplateLibrary = Depends(get_library),
) -> list[dict]:
    """Bundled starter templates; ids are positional per copy."""
    return [
        {"key": key, **draft.model_dump(mode="json", by_alias=True)}
        for key, draft in library.items()
    ]


@router.get("/starter-templates/{key}")
def get_starter_template(
    key: str,
    library: TemplateLibrary = Depends(get_library),
) -> TemplateDraft:
    return library.get(key)
