"""InspectionService — orchestrates templates, inspections and sites.

Stateless service pattern: each call loads rows through the repositories,
runs the pure core (normalizer, reconciler, scorer, renderer), flushes the
changes and returns public views.  No in-memory state is kept between
calls.  The caller owns the ``AsyncSession`` and commits.

Lifecycle of an inspection:

    start_inspection      in_progress, blank answer skeleton
    save_answers          any number of times while in_progress
    complete_inspection   in_progress -> submitted, once, only when every
                          required question has an answer

Every mutating call takes the acting :class:`Actor` explicitly; answer
provenance and authoring checks come from it alone.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from auditking_db.models.enums import InspectionStatus
from auditking_db.models.inspection import Inspection
from auditking_db.models.site import Site
from auditking_db.models.template import Template
from auditking_db.repository import InspectionRepository, SiteRepository, TemplateRepository

from auditking.constants import AI_MAX_QUESTIONS_PER_SECTION, AI_MAX_SECTIONS
from auditking.extraction import draft_template_from_text
from auditking.interfaces import TemplateExtractor
from auditking.library import TemplateLibrary
from auditking.models.answer import Actor, AnswerRow, AnswerUpdate
from auditking.models.question import Definition
from auditking.models.views import InspectionInfo, SiteInfo, TemplateDraft, TemplateInfo
from auditking.normalizer import normalize_definition
from auditking.reconciler import (
    apply_answer,
    blank_answers,
    coerce_row,
    missing_required,
    reconcile,
)
from auditking.report import RenderedReport, ReportError, ReportRenderer
from auditking.scoring import score_answers

logger = logging.getLogger(__name__)

_TEMPLATE_FIELDS = {"name", "description", "site_id", "is_published", "logo_data_url", "definition"}
_SITE_FIELDS = {"name", "code", "description"}


class InspectionIncompleteError(ValueError):
    """Raised when submitting an inspection with unanswered required questions.

    ``missing_labels`` lists the labels of those questions in display order.
    """

    def __init__(self, missing_labels: list[str]) -> None:
        self.missing_labels = missing_labels
        super().__init__(
            "Please answer all required questions before submitting "
            f"({len(missing_labels)} unanswered)"
        )


def _parse_uuid(value: Any, kind: str) -> uuid.UUID:
    """Parse an external id; malformed ids are reported as not found."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValueError(f"{kind} not found: {value}") from None


def _optional_uuid(value: Any, kind: str) -> Optional[uuid.UUID]:
    if value is None or value == "":
        return None
    return _parse_uuid(value, kind)


def _require_name(name: Any, kind: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"{kind} name is required")
    return name.strip()


class InspectionService:
    """Application service over the three repositories.

    Args:
        library: starter templates; ``library.default()`` seeds templates
            created without a definition
        extractor: AI extractor used by :meth:`import_template`; when None,
            AI import is unavailable
        renderer: PDF renderer for the export operations
    """

    def __init__(
        self,
        *,
        library: TemplateLibrary | None = None,
        extractor: TemplateExtractor | None = None,
        renderer: ReportRenderer | None = None,
    ) -> None:
        self._templates = TemplateRepository()
        self._inspections = InspectionRepository()
        self._sites = SiteRepository()
        self._library = library
        self._extractor = extractor
        self._renderer = renderer or ReportRenderer()

    @property
    def ai_import_enabled(self) -> bool:
        return self._extractor is not None

    # ==================================================================
    # Templates
    # ==================================================================

    async def create_template(
        self,
        db: AsyncSession,
        actor: Actor,
        *,
        name: str,
        description: str | None = None,
        site_id: str | None = None,
        is_published: bool = False,
        logo_data_url: str | None = None,
        definition: Any = None,
    ) -> TemplateInfo:
        """Create a template.  The definition is normalized before it is stored.

        Without a definition the template is seeded from the default
        starter template (one section with one example question).

        Raises:
            PermissionError: if the actor may not author templates
            ValueError: if the name is blank or the site does not exist
        """
        self._require_author(actor, "create templates")
        name = _require_name(name, "Template")
        site = await self._load_site_optional(db, site_id)

        if definition is None and self._library is not None:
            canonical = self._library.default().definition
        else:
            canonical = self._normalize(definition)

        row = await self._templates.create(
            db,
            name=name,
            description=description or None,
            site_id=site.id if site else None,
            is_published=is_published,
            logo_data_url=logo_data_url or None,
            definition=canonical.to_json(),
            created_by=actor.user_id,
        )
        logger.info(
            "Template %s created by %s (%d questions)",
            row.id, actor.user_id, canonical.question_count,
        )
        return self._to_template_info(row)

    async def update_template(
        self, db: AsyncSession, actor: Actor, template_id: str, **changes: Any
    ) -> TemplateInfo:
        """Apply a partial update; only the given fields change.

        Accepted fields: name, description, site_id, is_published,
        logo_data_url, definition.  A new definition is normalized and
        replaces the stored one wholesale.

        Raises:
            PermissionError: if the actor may not author templates
            ValueError: on unknown fields, a blank name, or a missing
                template or site
        """
        self._require_author(actor, "edit templates")
        unknown = set(changes) - _TEMPLATE_FIELDS
        if unknown:
            raise ValueError(f"Unknown template fields: {sorted(unknown)}")

        row = await self._load_template(db, template_id)
        fields: dict[str, Any] = {}
        if "name" in changes:
            fields["name"] = _require_name(changes["name"], "Template")
        if "description" in changes:
            fields["description"] = changes["description"] or None
        if "site_id" in changes:
            site = await self._load_site_optional(db, changes["site_id"])
            fields["site_id"] = site.id if site else None
        if "is_published" in changes:
            fields["is_published"] = bool(changes["is_published"])
        if "logo_data_url" in changes:
            fields["logo_data_url"] = changes["logo_data_url"] or None
        if "definition" in changes:
            fields["definition"] = self._normalize(changes["definition"]).to_json()

        row = await self._templates.update(db, row, **fields)
        logger.info("Template %s updated by %s: %s", row.id, actor.user_id, sorted(fields))
        return self._to_template_info(row)

    async def get_template(self, db: AsyncSession, template_id: str) -> TemplateInfo:
        row = await self._load_template(db, template_id)
        return self._to_template_info(row)

    async def list_templates(
        self,
        db: AsyncSession,
        *,
        site_id: str | None = None,
        published_only: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[TemplateInfo]:
        rows = await self._templates.list_all(
            db,
            site_id=_optional_uuid(site_id, "Site"),
            published_only=published_only,
            limit=limit,
            offset=offset,
        )
        return [self._to_template_info(r) for r in rows]

    async def delete_template(self, db: AsyncSession, actor: Actor, template_id: str) -> None:
        """Delete a template.  Existing inspections keep their denormalized name.

        Raises:
            PermissionError: unless the actor is an admin
        """
        if not actor.is_admin:
            raise PermissionError("Only admins can delete templates")
        row = await self._load_template(db, template_id)
        await self._templates.delete(db, row)
        logger.info("Template %s deleted by %s", template_id, actor.user_id)

    async def import_template(
        self,
        actor: Actor,
        text: str,
        *,
        max_sections: int = AI_MAX_SECTIONS,
        max_questions_per_section: int = AI_MAX_QUESTIONS_PER_SECTION,
    ) -> TemplateDraft:
        """Draft a template from document text with the AI extractor.

        The draft is returned for review and is not saved.

        Raises:
            PermissionError: if the actor may not author templates
            ValueError: if AI import is not configured
            ExtractionError: if the upstream AI call fails
        """
        self._require_author(actor, "import templates")
        if self._extractor is None:
            raise ValueError("AI template import is not configured")
        if max_sections < 1 or max_questions_per_section < 1:
            raise ValueError("Section and question limits must be positive")
        return await draft_template_from_text(
            self._extractor,
            text,
            max_sections=min(max_sections, AI_MAX_SECTIONS),
            max_questions_per_section=min(max_questions_per_section, AI_MAX_QUESTIONS_PER_SECTION),
        )

    # ==================================================================
    # Inspections
    # ==================================================================

    async def start_inspection(
        self,
        db: AsyncSession,
        actor: Actor,
        template_id: str,
        *,
        site_id: str | None = None,
    ) -> InspectionInfo:
        """Start an inspection from a template.

        The answer skeleton has one blank row per current question.  The
        site defaults to the template's site; template and site names are
        copied onto the inspection.
        """
        template = await self._load_template(db, template_id)
        definition = normalize_definition(template.definition)

        site = await self._load_site_optional(db, site_id) if site_id else None
        if site is None and template.site_id is not None:
            site = await self._sites.get_by_id(db, template.site_id)

        rows = blank_answers(definition)
        score = score_answers(definition, rows)
        row = await self._inspections.create(
            db,
            template_id=template.id,
            template_name=template.name,
            site_id=site.id if site else None,
            site_name=site.name if site else None,
            items=[r.to_json() for r in rows],
            owner_user_id=actor.user_id,
            owner_name=actor.display_name,
            score=score,
        )
        logger.info(
            "Inspection %s started by %s from template %s (%d questions)",
            row.id, actor.user_id, template.id, len(rows),
        )
        return self._to_inspection_info(row, rows, score)

    async def get_inspection(self, db: AsyncSession, inspection_id: str) -> InspectionInfo:
        """Return the inspection with its working answer set.

        In-progress inspections are reconciled against the current template
        and rescored.  Submitted inspections keep their stored score.
        """
        row = await self._load_inspection(db, inspection_id)
        definition = await self._definition_for(db, row)
        if definition is None:
            return self._to_inspection_info(row, self._stored_rows(row), row.score)

        return self._working_view(row, definition)

    async def list_inspections(
        self,
        db: AsyncSession,
        *,
        status: str | None = None,
        site_id: str | None = None,
        template_id: str | None = None,
        owner_user_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[InspectionInfo]:
        """List inspections, most recent first, with their stored answers."""
        try:
            status_filter = InspectionStatus(status) if status else None
        except ValueError:
            raise ValueError(f"Invalid status: {status}") from None
        rows = await self._inspections.list_all(
            db,
            status=status_filter,
            site_id=_optional_uuid(site_id, "Site"),
            template_id=_optional_uuid(template_id, "Template"),
            owner_user_id=owner_user_id,
            limit=limit,
            offset=offset,
        )
        return [self._to_inspection_info(r, self._stored_rows(r), r.score) for r in rows]

    async def save_answers(
        self,
        db: AsyncSession,
        actor: Actor,
        inspection_id: str,
        updates: Iterable[AnswerUpdate],
    ) -> InspectionInfo:
        """Apply answer patches, rescore and persist the whole answer list.

        Raises:
            ValueError: if the inspection is already submitted, its
                template is gone, or an update is invalid
        """
        row = await self._load_inspection(db, inspection_id)
        self._require_in_progress(row)
        definition = await self._require_definition(db, row)

        rows = self._apply_updates(definition, reconcile(definition, row.items), updates, actor)
        score = score_answers(definition, rows)
        row = await self._inspections.save_items(db, row, [r.to_json() for r in rows], score)
        logger.debug("Inspection %s saved by %s (score=%s)", row.id, actor.user_id, score)
        return self._to_inspection_info(row, rows, score)

    async def complete_inspection(
        self,
        db: AsyncSession,
        actor: Actor,
        inspection_id: str,
        updates: Iterable[AnswerUpdate] = (),
    ) -> InspectionInfo:
        """Submit an inspection, optionally applying final answer patches first.

        Nothing is persisted when the submission is rejected.

        Raises:
            InspectionIncompleteError: if a required question is unanswered
            ValueError: if the inspection is already submitted
        """
        row = await self._load_inspection(db, inspection_id)
        self._require_in_progress(row)
        definition = await self._require_definition(db, row)

        rows = self._apply_updates(definition, reconcile(definition, row.items), updates, actor)
        missing = missing_required(definition, rows)
        if missing:
            logger.info(
                "Inspection %s not submitted: %d required questions unanswered",
                row.id, len(missing),
            )
            raise InspectionIncompleteError([q.label for _, q in missing])

        score = score_answers(definition, rows)
        row = await self._inspections.submit(db, row, [r.to_json() for r in rows], score)
        logger.info("Inspection %s submitted by %s (score=%s)", row.id, actor.user_id, score)
        return self._to_inspection_info(row, rows, score)

    async def delete_inspection(self, db: AsyncSession, actor: Actor, inspection_id: str) -> None:
        """Delete an inspection.  Owners may delete their own; authors any.

        Raises:
            PermissionError: if the actor is neither the owner nor an author
        """
        row = await self._load_inspection(db, inspection_id)
        if row.owner_user_id != actor.user_id and not actor.can_author:
            raise PermissionError("Only the inspection owner or a manager can delete it")
        await self._inspections.delete(db, row)
        logger.info("Inspection %s deleted by %s", inspection_id, actor.user_id)

    # ==================================================================
    # Reports
    # ==================================================================

    async def export_report(self, db: AsyncSession, inspection_id: str) -> RenderedReport:
        """Render one inspection, with the template logo and section images.

        Raises:
            ReportError: if the template is gone or has no questions
        """
        row = await self._load_inspection(db, inspection_id)
        template = await self._template_for(db, row)
        if template is None:
            raise ReportError(f"Nothing to export for inspection {row.id}: template no longer exists")
        definition = normalize_definition(template.definition)
        return self._renderer.render_inspection(
            definition,
            self._working_view(row, definition),
            logo_data_url=template.logo_data_url,
        )

    async def export_reports(
        self, db: AsyncSession, inspection_ids: Iterable[str]
    ) -> list[RenderedReport]:
        """Render several inspections, text only, one document each.

        Unknown ids and inspections whose template is gone are skipped.
        """
        ids = []
        for value in inspection_ids:
            try:
                ids.append(_parse_uuid(value, "Inspection"))
            except ValueError:
                logger.warning("Skipping malformed inspection id in export: %r", value)
        rows = await self._inspections.get_many(db, ids)

        definitions: dict[uuid.UUID, Optional[Definition]] = {}
        pairs = []
        for row in rows:
            if row.template_id not in definitions:
                template = await self._template_for(db, row)
                definitions[row.template_id] = (
                    normalize_definition(template.definition) if template else None
                )
            definition = definitions[row.template_id]
            if definition is None:
                logger.warning("Skipping inspection %s in export: template no longer exists", row.id)
                continue
            answers = reconcile(definition, row.items)
            pairs.append((definition, self._to_inspection_info(row, answers, row.score)))
        return self._renderer.render_batch(pairs)

    # ==================================================================
    # Sites
    # ==================================================================

    async def create_site(
        self,
        db: AsyncSession,
        actor: Actor,
        *,
        name: str,
        code: str | None = None,
        description: str | None = None,
    ) -> SiteInfo:
        self._require_author(actor, "manage sites")
        row = await self._sites.create(
            db,
            name=_require_name(name, "Site"),
            code=code or None,
            description=description or None,
        )
        logger.info("Site %s created by %s", row.id, actor.user_id)
        return self._to_site_info(row)

    async def update_site(
        self, db: AsyncSession, actor: Actor, site_id: str, **changes: Any
    ) -> SiteInfo:
        self._require_author(actor, "manage sites")
        unknown = set(changes) - _SITE_FIELDS
        if unknown:
            raise ValueError(f"Unknown site fields: {sorted(unknown)}")
        row = await self._load_site(db, site_id)
        fields = {k: (v or None) for k, v in changes.items()}
        if "name" in changes:
            fields["name"] = _require_name(changes["name"], "Site")
        row = await self._sites.update(db, row, **fields)
        return self._to_site_info(row)

    async def get_site(self, db: AsyncSession, site_id: str) -> SiteInfo:
        return self._to_site_info(await self._load_site(db, site_id))

    async def list_sites(self, db: AsyncSession) -> list[SiteInfo]:
        return [self._to_site_info(r) for r in await self._sites.list_all(db)]

    async def delete_site(self, db: AsyncSession, actor: Actor, site_id: str) -> None:
        """Delete a site.  Templates and inspections keep working without it."""
        self._require_author(actor, "manage sites")
        row = await self._load_site(db, site_id)
        await self._sites.delete(db, row)
        logger.info("Site %s deleted by %s", site_id, actor.user_id)

    # ==================================================================
    # Internal helpers
    # ==================================================================

    @staticmethod
    def _require_author(actor: Actor, action: str) -> None:
        if not actor.can_author:
            raise PermissionError(f"Only admins or managers can {action}")

    @staticmethod
    def _status(row: Inspection) -> InspectionStatus:
        return InspectionStatus(row.status)

    def _require_in_progress(self, row: Inspection) -> None:
        if self._status(row) != InspectionStatus.IN_PROGRESS:
            raise ValueError(f"Inspection already submitted: {row.id}")

    @staticmethod
    def _normalize(definition: Any) -> Definition:
        if isinstance(definition, Definition):
            definition = definition.to_json()
        return normalize_definition(definition)

    @staticmethod
    def _apply_updates(
        definition: Definition,
        rows: list[AnswerRow],
        updates: Iterable[AnswerUpdate],
        actor: Actor,
    ) -> list[AnswerRow]:
        for update in updates:
            rows = apply_answer(definition, rows, update, actor)
        return rows

    def _working_view(self, row: Inspection, definition: Definition) -> InspectionInfo:
        rows = reconcile(definition, row.items)
        if self._status(row) == InspectionStatus.SUBMITTED:
            return self._to_inspection_info(row, rows, row.score)
        return self._to_inspection_info(row, rows, score_answers(definition, rows))

    @staticmethod
    def _stored_rows(row: Inspection) -> list[AnswerRow]:
        """Stored items parsed as-is, for lists and orphaned inspections."""
        rows = (coerce_row(raw) for raw in row.items or [])
        return [r for r in rows if r is not None]

    async def _load_template(self, db: AsyncSession, template_id: Any) -> Template:
        row = await self._templates.get_by_id(db, _parse_uuid(template_id, "Template"))
        if row is None:
            raise ValueError(f"Template not found: {template_id}")
        return row

    async def _load_inspection(self, db: AsyncSession, inspection_id: Any) -> Inspection:
        row = await self._inspections.get_by_id(db, _parse_uuid(inspection_id, "Inspection"))
        if row is None:
            raise ValueError(f"Inspection not found: {inspection_id}")
        return row

    async def _load_site(self, db: AsyncSession, site_id: Any) -> Site:
        row = await self._sites.get_by_id(db, _parse_uuid(site_id, "Site"))
        if row is None:
            raise ValueError(f"Site not found: {site_id}")
        return row

    async def _load_site_optional(self, db: AsyncSession, site_id: Any) -> Optional[Site]:
        if site_id is None or site_id == "":
            return None
        return await self._load_site(db, site_id)

    async def _template_for(self, db: AsyncSession, row: Inspection) -> Optional[Template]:
        if row.template_id is None:
            return None
        return await self._templates.get_by_id(db, row.template_id)

    async def _definition_for(self, db: AsyncSession, row: Inspection) -> Optional[Definition]:
        template = await self._template_for(db, row)
        return normalize_definition(template.definition) if template else None

    async def _require_definition(self, db: AsyncSession, row: Inspection) -> Definition:
        definition = await self._definition_for(db, row)
        if definition is None:
            raise ValueError(f"Template not found for inspection {row.id}")
        return definition

    @staticmethod
    def _to_template_info(row: Template) -> TemplateInfo:
        return TemplateInfo(
            id=str(row.id),
            name=row.name,
            description=row.description,
            site_id=str(row.site_id) if row.site_id else None,
            is_published=bool(row.is_published),
            logo_data_url=row.logo_data_url,
            definition=normalize_definition(row.definition),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _to_inspection_info(
        self, row: Inspection, rows: list[AnswerRow], score: Optional[int]
    ) -> InspectionInfo:
        return InspectionInfo(
            id=str(row.id),
            template_id=str(row.template_id) if row.template_id else None,
            template_name=row.template_name,
            site_id=str(row.site_id) if row.site_id else None,
            site_name=row.site_name,
            status=self._status(row).value,
            started_at=row.started_at,
            submitted_at=row.submitted_at,
            score=score,
            items=rows,
            owner_user_id=row.owner_user_id,
            owner_name=row.owner_name,
        )

    @staticmethod
    def _to_site_info(row: Site) -> SiteInfo:
        return SiteInfo(
            id=str(row.id),
            name=row.name,
            code=row.code,
            description=row.description,
            created_at=row.created_at,
        )
