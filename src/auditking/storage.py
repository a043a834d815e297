"""Key-value persistence for offline use.

The first versions of the app kept templates and inspections in browser
local storage.  ``KeyValueStore`` abstracts that substrate behind two
calls, ``load(key)`` and ``save(key, value)``, so the normalizer, reconciler
and scorer never depend on where the JSON lives.

Concrete stores:
    MemoryStore    — dict-backed, for tests and scratch work
    JsonFileStore  — one ``<key>.json`` file per key under a directory

``LocalWorkspace`` reproduces the prototype screens on top of any store:
templates live under ``ak_templates`` and inspections under
``ak_inspections``.
"""

from __future__ import annotations

import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from auditking.models.views import InspectionInfo, TemplateInfo
from auditking.normalizer import new_id, normalize_template

logger = logging.getLogger(__name__)

TEMPLATES_KEY = "ak_templates"
INSPECTIONS_KEY = "ak_inspections"


class KeyValueStore(ABC):
    """Minimal JSON key-value capability."""

    @abstractmethod
    def load(self, key: str) -> Any | None:
        """Return the value stored under ``key``, or None if absent."""
        ...

    @abstractmethod
    def save(self, key: str, value: Any) -> None:
        """Store a JSON-compatible ``value`` under ``key``."""
        ...


class MemoryStore(KeyValueStore):
    """In-process store; values are deep-copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def load(self, key: str) -> Any | None:
        return copy.deepcopy(self._data.get(key))

    def save(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)


class JsonFileStore(KeyValueStore):
    """Stores each key as ``<directory>/<key>.json``.

    Unreadable or corrupt files load as None, the same way a browser
    treats a missing local-storage entry.
    """

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def load(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read %s: %s", path, exc)
            return None

    def save(self, key: str, value: Any) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        with self._path(key).open("w", encoding="utf-8") as f:
            json.dump(value, f, ensure_ascii=False, indent=2)


class LocalWorkspace:
    """Templates and inspections kept in a :class:`KeyValueStore`."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load_templates(self) -> list[TemplateInfo]:
        """Load and normalize every stored template.

        A value that is not a list loads as no templates.  Templates stored
        without an id are given one, and the normalized list is written
        back so the id survives the next load.
        """
        raw = self._store.load(TEMPLATES_KEY)
        if not isinstance(raw, list):
            return []
        templates = []
        issued = False
        for entry in raw:
            draft = normalize_template(entry)
            entry = entry if isinstance(entry, dict) else {}
            template_id = entry.get("id")
            if not template_id:
                template_id = new_id("tpl")
                issued = True
            templates.append(
                TemplateInfo(
                    id=str(template_id),
                    name=draft.name,
                    description=draft.description,
                    site_id=entry.get("site_id") or entry.get("site") or None,
                    logo_data_url=entry.get("logo_data_url") or None,
                    definition=draft.definition,
                )
            )
        if issued:
            logger.info("Issued ids for stored templates; saving normalized list")
            self.save_templates(templates)
        return templates

    def save_templates(self, templates: list[TemplateInfo]) -> None:
        self._store.save(
            TEMPLATES_KEY,
            [
                {**t.model_dump(mode="json", exclude={"definition"}), "definition": t.definition.to_json()}
                for t in templates
            ],
        )

    def get_template(self, template_id: str) -> TemplateInfo:
        for template in self.load_templates():
            if template.id == template_id:
                return template
        raise ValueError(f"Template not found: template_id={template_id}")

    def load_inspections(self) -> list[InspectionInfo]:
        """Load stored inspections; entries that do not parse are skipped."""
        raw = self._store.load(INSPECTIONS_KEY)
        if not isinstance(raw, list):
            return []
        inspections = []
        for entry in raw:
            try:
                inspections.append(InspectionInfo.model_validate(entry))
            except ValidationError:
                logger.warning("Skipping unreadable stored inspection: %r", entry)
        return inspections

    def save_inspections(self, inspections: list[InspectionInfo]) -> None:
        self._store.save(
            INSPECTIONS_KEY,
            [
                {**i.model_dump(mode="json", exclude={"items"}), "items": [r.to_json() for r in i.items]}
                for i in inspections
            ],
        )
