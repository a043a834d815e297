import pytest

from auditking.models.answer import Actor
from auditking.normalizer import normalize_definition

# Canonical definition used across the suite: two sections, one question
# of each type, stable ids.
RAW_DEFINITION = {
    "sections": [
        {
            "id": "s_storage",
            "title": "Storage",
            "questions": [
                {"id": "q_cooler", "label": "Cooler at temperature", "type": "yes_no_na", "required": True},
                {"id": "q_clean", "label": "Shelf cleanliness", "type": "good_fair_poor"},
            ],
        },
        {
            "id": "s_prep",
            "title": "Preparation",
            "questions": [
                {
                    "id": "q_sanitiser",
                    "label": "Sanitiser level",
                    "type": "multiple_choice",
                    "options": ["Low", "OK", "High"],
                },
                {
                    "id": "q_comment",
                    "label": "Comments",
                    "type": "text",
                    "allowNotes": False,
                    "allowPhoto": False,
                    "required": True,
                },
            ],
        },
    ]
}


@pytest.fixture
def raw_definition():
    return RAW_DEFINITION


@pytest.fixture
def definition():
    return normalize_definition(RAW_DEFINITION)


@pytest.fixture
def admin():
    return Actor(user_id="u-admin", name="Ada Admin", role="admin")


@pytest.fixture
def manager():
    return Actor(user_id="u-manager", name="Max Manager", role="manager")


@pytest.fixture
def inspector():
    return Actor(user_id="u-insp", name="Ivy Inspector", role="inspector")
