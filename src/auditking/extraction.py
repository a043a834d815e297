"""AI template extraction over the OpenAI chat-completions HTTP API.

``OpenAITemplateExtractor`` posts the document text to the model with a
JSON-object response format and returns the parsed object.  Any upstream
failure (HTTP error, transport error, non-JSON content, missing
``sections`` list) surfaces as a generic :class:`ExtractionError`; there is
no retry and no partial recovery.

``draft_template_from_text`` is the full import path: extract, then
normalize, then enforce the size limits.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from auditking.constants import (
    AI_MAX_QUESTIONS_PER_SECTION,
    AI_MAX_SECTIONS,
    AI_MAX_TEXT_CHARS,
    OPENAI_BASE_URL,
    OPENAI_MODEL,
)
from auditking.interfaces import TemplateExtractor
from auditking.models.views import TemplateDraft
from auditking.normalizer import limit_definition, normalize_template
from auditking.prompt import PromptManager

logger = logging.getLogger(__name__)

IMPORTED_TEMPLATE_NAME = "Imported template"
IMPORTED_TEMPLATE_DESCRIPTION = "Template imported from PDF using AI."


class ExtractionError(RuntimeError):
    """The AI extraction service failed or returned an unusable payload."""


class OpenAITemplateExtractor(TemplateExtractor):
    """Template extractor backed by the OpenAI chat-completions endpoint.

    Args:
        api_key: OpenAI API key; required
        model: chat model name
        base_url: API root, e.g. ``https://api.openai.com/v1``
        timeout: request timeout in seconds
        client: optional pre-built ``httpx.AsyncClient`` (tests inject one
            with a mock transport); when omitted a client is opened per call
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = OPENAI_MODEL,
        base_url: str = OPENAI_BASE_URL,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
        prompts: PromptManager | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("OPENAI_API_KEY is not set; AI template import is unavailable")
        self._api_key = api_key
        self._model = model
        self._url = base_url.rstrip("/") + "/chat/completions"
        self._timeout = timeout
        self._client = client
        self._prompts = prompts or PromptManager()

    async def extract(
        self,
        text: str,
        *,
        max_sections: int = AI_MAX_SECTIONS,
        max_questions_per_section: int = AI_MAX_QUESTIONS_PER_SECTION,
    ) -> dict[str, Any]:
        if not isinstance(text, str) or not text.strip():
            raise ValueError("Missing 'text': extract the document text first")
        text = text[:AI_MAX_TEXT_CHARS]

        payload = {
            "model": self._model,
            "messages": [
                {
                    "role": "system",
                    "content": self._prompts.render_extraction_system(
                        max_sections=max_sections,
                        max_questions_per_section=max_questions_per_section,
                    ),
                },
                {
                    "role": "user",
                    "content": self._prompts.render_extraction_user(
                        text,
                        max_sections=max_sections,
                        max_questions_per_section=max_questions_per_section,
                    ),
                },
            ],
            "response_format": {"type": "json_object"},
            "temperature": 0.2,
        }
        data = await self._post(payload)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            logger.error("Unexpected completion payload: %r", data)
            raise ExtractionError("AI service returned an unexpected response") from exc

        try:
            parsed = json.loads(content or "")
        except ValueError as exc:
            logger.error("Model returned invalid JSON: %r", content)
            raise ExtractionError("Model returned invalid JSON") from exc

        if not isinstance(parsed, dict) or not isinstance(parsed.get("sections"), list):
            logger.error("Model response has no 'sections' array: %r", parsed)
            raise ExtractionError("Model response did not contain a valid 'sections' array")
        return parsed

    async def _post(self, payload: dict[str, Any]) -> Any:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            if self._client is not None:
                resp = await self._client.post(self._url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.post(self._url, json=payload, headers=headers)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "AI service error %d: %s", exc.response.status_code, exc.response.text[:500],
            )
            raise ExtractionError("AI service returned an error") from exc
        except httpx.HTTPError as exc:
            logger.error("AI service unreachable: %s", exc)
            raise ExtractionError("AI service is unreachable") from exc
        except ValueError as exc:
            logger.error("AI service returned a non-JSON body")
            raise ExtractionError("AI service returned an unexpected response") from exc


def _prepare_ai_sections(sections: list) -> list:
    """Drop model-invented ids and default ``required`` to true.

    Imported questions are required unless the model says otherwise, and
    ids are issued by the normalizer by position.
    """
    prepared = []
    for section in sections:
        if not isinstance(section, dict):
            prepared.append(section)
            continue
        questions = section.get("questions")
        if isinstance(questions, list):
            questions = [
                {"required": True, **{k: v for k, v in q.items() if k != "id"}}
                if isinstance(q, dict) else q
                for q in questions
            ]
        prepared.append(
            {**{k: v for k, v in section.items() if k != "id"}, "questions": questions}
        )
    return prepared


async def draft_template_from_text(
    extractor: TemplateExtractor,
    text: str,
    *,
    max_sections: int = AI_MAX_SECTIONS,
    max_questions_per_section: int = AI_MAX_QUESTIONS_PER_SECTION,
) -> TemplateDraft:
    """Extract a template from document text and normalize it into a draft.

    The draft is not saved; the author reviews it first.
    """
    raw = await extractor.extract(
        text,
        max_sections=max_sections,
        max_questions_per_section=max_questions_per_section,
    )
    draft = normalize_template(
        {
            "name": raw.get("name"),
            "description": raw.get("description"),
            "sections": _prepare_ai_sections(raw.get("sections") or []),
        }
    )
    definition = limit_definition(
        draft.definition,
        max_sections=max_sections,
        max_questions_per_section=max_questions_per_section,
    )
    raw_name = raw.get("name")
    name = draft.name if isinstance(raw_name, str) and raw_name.strip() else IMPORTED_TEMPLATE_NAME
    logger.info(
        "AI draft '%s': %d sections, %d questions",
        name, len(definition.sections), definition.question_count,
    )
    return TemplateDraft(
        name=name,
        description=draft.description or IMPORTED_TEMPLATE_DESCRIPTION,
        definition=definition,
    )
