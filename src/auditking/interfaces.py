"""Abstract interfaces for external collaborators.

The SDK ships one concrete extractor (``OpenAITemplateExtractor`` in
``auditking.extraction``); deployments and tests can plug in their own.

Typical integration flow::

    extractor: TemplateExtractor = OpenAITemplateExtractor(api_key=...)
    draft = await draft_template_from_text(extractor, pdf_text)
    # ... the author reviews draft.definition, then saves it ...
"""

from abc import ABC, abstractmethod
from typing import Any


class TemplateExtractor(ABC):
    """Interface for AI-assisted template generation.

    Implementations receive raw text extracted from a checklist document
    and return a candidate template as parsed JSON.  Nothing about the
    returned structure is guaranteed beyond "best effort JSON matching the
    requested shape"; callers must pass it through the normalizer.
    """

    @abstractmethod
    async def extract(
        self,
        text: str,
        *,
        max_sections: int,
        max_questions_per_section: int,
    ) -> dict[str, Any]:
        """Turn document text into a template-shaped JSON object.

        Parameters
        ----------
        text:
            Raw text extracted from the source document.
        max_sections, max_questions_per_section:
            Size limits requested from the model.

        Returns
        -------
        dict
            ``{name?, description?, sections: [...]}``; ``sections`` is
            always a list.

        Raises
        ------
        ExtractionError
            If the upstream service fails or returns something that is
            not a JSON object with a ``sections`` list.
        """
        ...
