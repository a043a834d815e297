"""Tests for the schema normalizer: legacy shapes, fallbacks, id handling."""

import json

import pytest

from auditking.models.question import Definition
from auditking.normalizer import (
    limit_definition,
    new_id,
    normalize_definition,
    normalize_template,
)


# =====================================================================
# Well-formed input
# =====================================================================


class TestIdentity:
    def test_canonical_definition_is_unchanged(self, definition):
        again = normalize_definition(definition.to_json())
        assert again == definition

    def test_preserves_order(self, definition):
        ids = [(s.id, q.id) for s, q in definition.iter_questions()]
        assert ids == [
            ("s_storage", "q_cooler"),
            ("s_storage", "q_clean"),
            ("s_prep", "q_sanitiser"),
            ("s_prep", "q_comment"),
        ]

    def test_flags_are_read(self, definition):
        comment = definition.find_question("s_prep", "q_comment")
        assert comment.allow_notes is False
        assert comment.allow_photo is False
        assert comment.required is True

    def test_dump_uses_camel_case_flags(self, definition):
        question = definition.to_json()["sections"][0]["questions"][0]
        assert "allowNotes" in question and "allowPhoto" in question
        assert question["type"] == "yes_no_na"

    def test_json_string_is_decoded(self, raw_definition):
        assert normalize_definition(json.dumps(raw_definition)) == normalize_definition(raw_definition)


# =====================================================================
# Legacy shapes
# =====================================================================


class TestLegacyShapes:
    def test_string_question_list(self):
        d = normalize_definition({"sections": [{"title": "Old", "questions": ["A", "B", "C"]}]})
        questions = d.sections[0].questions
        assert [q.label for q in questions] == ["A", "B", "C"]
        assert all(q.type == "yes_no_na" for q in questions)
        ids = [q.id for q in questions]
        assert len(set(ids)) == 3
        assert all(i.startswith("q_") for i in ids)

    def test_top_level_questions_wrapped_in_one_section(self):
        d = normalize_definition({"questions": ["Floor dry", {"label": "Lights", "type": "rating"}]})
        assert len(d.sections) == 1
        assert d.sections[0].title == "Section"
        assert [q.type for q in d.sections[0].questions] == ["yes_no_na", "good_fair_poor"]

    def test_bare_list_is_section_list(self):
        d = normalize_definition([{"title": "One"}, "Two"])
        assert [s.title for s in d.sections] == ["One", "Two"]

    def test_items_key_and_alternate_names(self):
        d = normalize_definition(
            {"sections": [{"name": "Kitchen", "image": "data:image/png;base64,AAAA",
                           "items": [{"text": "Hands washed"}, {"question": "Gloves"}]}]}
        )
        section = d.sections[0]
        assert section.title == "Kitchen"
        assert section.image_data_url == "data:image/png;base64,AAAA"
        assert [q.label for q in section.questions] == ["Hands washed", "Gloves"]

    @pytest.mark.parametrize(
        "raw_type, expected",
        [
            ("yesno", "yes_no_na"),
            ("boolean", "yes_no_na"),
            ("rating", "good_fair_poor"),
            ("multi", "multiple_choice"),
            ("select", "multiple_choice"),
            ("free_text", "text"),
            ("TEXT", "text"),
            ("mystery", "yes_no_na"),
            (7, "yes_no_na"),
        ],
    )
    def test_type_aliases(self, raw_type, expected):
        d = normalize_definition({"sections": [{"questions": [{"label": "x", "type": raw_type}]}]})
        assert d.sections[0].questions[0].type == expected


# =====================================================================
# Fallbacks and degradation
# =====================================================================


class TestFallbacks:
    @pytest.mark.parametrize("raw", [None, 42, "not json", [1, 2], {"sections": "nope"}, {}])
    def test_garbage_yields_empty_definition(self, raw):
        assert normalize_definition(raw) == Definition(sections=[])

    def test_missing_strings_get_fallback_labels(self):
        d = normalize_definition({"sections": [{"questions": [{}]}]})
        assert d.sections[0].title == "Section"
        assert d.sections[0].questions[0].label == "Question"

    def test_flag_defaults_and_non_boolean_values(self):
        d = normalize_definition(
            {"sections": [{"questions": [
                {"label": "a"},
                {"label": "b", "allowNotes": "no", "required": 1},
                {"label": "c", "allow_notes": False, "allow_photo": False},
            ]}]}
        )
        a, b, c = d.sections[0].questions
        assert (a.allow_notes, a.allow_photo, a.required) == (True, True, False)
        assert (b.allow_notes, b.required) == (True, False)
        assert (c.allow_notes, c.allow_photo) == (False, False)

    def test_options_only_kept_for_multiple_choice(self):
        d = normalize_definition(
            {"sections": [{"questions": [
                {"label": "mc", "type": "multiple_choice", "options": [" A ", "", "B", None, 3]},
                {"label": "yn", "type": "yes_no_na", "options": ["x"]},
            ]}]}
        )
        mc, yn = d.sections[0].questions
        assert mc.options == ["A", "B", "3"]
        assert yn.options == []

    def test_non_dict_questions_dropped(self):
        d = normalize_definition({"sections": [{"questions": [None, True, {"label": "kept"}]}]})
        assert [q.label for q in d.sections[0].questions] == ["kept"]


# =====================================================================
# Identifiers
# =====================================================================


class TestIdentifiers:
    def test_new_id_format(self):
        value = new_id("sec")
        prefix, suffix = value.split("_")
        assert prefix == "sec"
        assert len(suffix) == 8
        assert suffix.isalnum() and suffix.lower() == suffix

    def test_duplicate_ids_are_reissued(self):
        d = normalize_definition(
            {"sections": [
                {"id": "s", "questions": [{"id": "q", "label": "1"}, {"id": "q", "label": "2"}]},
                {"id": "s", "questions": [{"id": "q", "label": "3"}]},
            ]}
        )
        assert d.sections[0].id == "s"
        assert d.sections[1].id != "s"
        question_ids = [q.id for _, q in d.iter_questions()]
        assert question_ids[0] == "q"
        assert len(set(question_ids)) == 3, "question ids must be unique across the definition"

    def test_numeric_ids_become_strings(self):
        d = normalize_definition({"sections": [{"id": 1, "questions": [{"id": 2, "label": "x"}]}]})
        assert d.sections[0].id == "1"
        assert d.sections[0].questions[0].id == "2"

    def test_issued_ids_are_positional(self):
        d = normalize_definition({"sections": [{"questions": ["A", "B"]}, {"title": "Two", "questions": ["C"]}]})
        assert [(s.id, q.id) for s, q in d.iter_questions()] == [
            ("sec_1", "q_1_1"), ("sec_1", "q_1_2"), ("sec_2", "q_2_1"),
        ]

    def test_renormalizing_stored_value_keeps_ids(self):
        raw = {"questions": ["Door locked?", {"label": "Lights"}, {"id": "q_kept", "label": "Alarm"}]}
        first, second = normalize_definition(raw), normalize_definition(raw)
        assert first == second
        assert normalize_definition(first.to_json()) == first

    def test_issued_id_never_takes_a_stored_one(self):
        d = normalize_definition({"sections": [
            {"questions": ["Unlabelled", {"id": "q_1_1", "label": "Stored"}]},
            {"id": "sec_1", "title": "Stored section"},
        ]})
        first, stored = d.sections[0].questions
        assert stored.id == "q_1_1"
        assert first.id == "q_1_1_2"
        assert [s.id for s in d.sections] == ["sec_1_2", "sec_1"]


# =====================================================================
# Templates and limits
# =====================================================================


class TestTemplate:
    def test_name_and_description(self, raw_definition):
        draft = normalize_template({"name": "  Daily  ", "description": "d", "definition": raw_definition})
        assert draft.name == "Daily"
        assert draft.description == "d"
        assert draft.definition.question_count == 4

    def test_legacy_template_with_sections_at_top(self):
        draft = normalize_template({"title": "Old", "sections": [{"title": "S", "questions": ["a"]}]})
        assert draft.name == "Old"
        assert draft.definition.question_count == 1

    def test_fallback_name(self):
        assert normalize_template(None).name == "Untitled"
        assert normalize_template({"name": "   "}).name == "Untitled"


class TestLimit:
    def test_truncates_sections_and_questions(self):
        d = normalize_definition(
            {"sections": [{"questions": ["a", "b", "c"]}, {"questions": ["d"]}, {"questions": ["e"]}]}
        )
        limited = limit_definition(d, max_sections=2, max_questions_per_section=2)
        assert len(limited.sections) == 2
        assert [q.label for q in limited.sections[0].questions] == ["a", "b"]
        assert d.question_count == 5, "input must not be mutated"
