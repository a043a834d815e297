"""TemplateLibrary — bundled starter templates.

Starter templates are YAML files under ``templates/`` in this package, one
template per file, keyed by file stem.  They are written in the same loose
shape that persisted definitions use (ids omitted) and go through the
normalizer on every :meth:`TemplateLibrary.get`, so each copy handed out
is a new object with positional section and question ids.

Usage::

    library = TemplateLibrary()
    library.load()
    draft = library.get("food_safety")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from auditking.models.views import TemplateDraft
from auditking.normalizer import normalize_template

logger = logging.getLogger(__name__)

DEFAULT_STARTER = "blank"
_TEMPLATE_DIR = Path(__file__).parent / "templates"


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


class TemplateLibrary:
    """Loads starter templates from a directory of YAML files."""

    def __init__(self, library_dir: str | Path | None = None) -> None:
        self._base = Path(library_dir) if library_dir is not None else _TEMPLATE_DIR
        # key -> raw parsed YAML; populated by load()
        self._raw: dict[str, dict[str, Any]] = {}

    def load(self) -> None:
        """Parse every ``*.yaml`` file in the library directory.

        Files that do not hold a mapping are skipped with a warning.
        """
        self._raw.clear()
        for path in sorted(self._base.glob("*.yaml")):
            data = load_yaml(path)
            if not isinstance(data, dict):
                logger.warning("Skipping starter template %s: not a mapping", path.name)
                continue
            self._raw[path.stem] = data
        logger.info("TemplateLibrary loaded %d starter templates from %s", len(self._raw), self._base)

    @property
    def keys(self) -> list[str]:
        return list(self._raw)

    def get(self, key: str) -> TemplateDraft:
        """A freshly normalized copy of the starter template ``key``.

        Raises:
            ValueError: if no starter template has that key
        """
        raw = self._raw.get(key)
        if raw is None:
            raise ValueError(f"Starter template not found: {key}")
        return normalize_template(raw)

    def default(self) -> TemplateDraft:
        """The seed used when a template is created without a definition."""
        return self.get(DEFAULT_STARTER)

    def items(self) -> list[tuple[str, TemplateDraft]]:
        return [(key, self.get(key)) for key in self._raw]
