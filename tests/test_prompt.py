"""Tests for the extraction prompt templates."""

import json

from auditking.constants import QUESTION_TYPES
from auditking.prompt import PromptManager


class TestPromptManager:
    def test_system_prompt_lists_types_and_limits(self):
        prompt = PromptManager().render_extraction_system(max_sections=5, max_questions_per_section=7)
        for qtype in QUESTION_TYPES:
            assert f'"{qtype}"' in prompt
        assert "at most 5 sections" in prompt
        assert "at most 7 questions per section" in prompt
        assert '"yes_no_na" | "good_fair_poor"' in prompt

    def test_user_prompt_is_json(self):
        content = PromptManager.render_extraction_user("Café check", max_sections=1, max_questions_per_section=2)
        assert json.loads(content) == {"text": "Café check", "maxSections": 1, "maxQuestionsPerSection": 2}
        assert "Café" in content

    def test_custom_template_dir(self, tmp_path):
        (tmp_path / "hello.jinja2").write_text("Hello {{ who }}", encoding="utf-8")
        assert PromptManager(tmp_path).render("hello.jinja2", who="auditor") == "Hello auditor"
