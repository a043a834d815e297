"""Prompt rendering for the template extraction model.

Provides ``PromptManager``, a Jinja2-based template engine that renders
the extraction instructions sent to the language model.
"""

from auditking.prompt.manager import PromptManager

__all__ = ["PromptManager"]
