"""PromptManager — Jinja2-based prompt renderer for template extraction.

Loads templates from the ``template/`` directory and renders the system
and user messages sent to the language model when a checklist document is
turned into a template definition.
"""

from __future__ import annotations

import json
from pathlib import Path

import jinja2

from auditking.constants import QUESTION_TYPES

_EXTRACTION_TEMPLATE = "extract_template.jinja2"


class PromptManager:
    """Jinja2-based prompt renderer.

    Args:
        template_dir: optional override for the template directory.
            Defaults to ``template/`` sibling of this module.
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        if template_dir is None:
            template_dir = Path(__file__).parent / "template"
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            # Block tags do not leave blank lines behind
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render_extraction_system(
        self, *, max_sections: int, max_questions_per_section: int
    ) -> str:
        """System message describing the JSON shape and the limits."""
        template = self._env.get_template(_EXTRACTION_TEMPLATE)
        return template.render(
            question_types=QUESTION_TYPES,
            max_sections=max_sections,
            max_questions_per_section=max_questions_per_section,
        ).strip()

    @staticmethod
    def render_extraction_user(
        text: str, *, max_sections: int, max_questions_per_section: int
    ) -> str:
        """User message: the raw document text plus limits, as JSON."""
        return json.dumps(
            {
                "text": text,
                "maxSections": max_sections,
                "maxQuestionsPerSection": max_questions_per_section,
            },
            ensure_ascii=False,
        )

    def render(self, template_name: str, **context) -> str:
        """Render a named template with arbitrary context."""
        template = self._env.get_template(template_name)
        return template.render(**context)
