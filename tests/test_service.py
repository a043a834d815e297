"""Tests for InspectionService with in-memory repositories.

Covers the template, inspection, report and site operations end to end:
authoring permissions, the inspection lifecycle, template edits after an
inspection started, and exports.
"""

import uuid
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from auditking.library import TemplateLibrary
from auditking.models.answer import AnswerUpdate
from auditking.report import ReportError
from auditking.service import InspectionIncompleteError, InspectionService
from auditking_db.models.enums import InspectionStatus
from conftest import RAW_DEFINITION
from helpers.mock_repository import MockTemplateRow, install
from test_extraction import FakeExtractor


# =====================================================================
# Fixtures
# =====================================================================

@pytest.fixture(scope="module")
def library():
    lib = TemplateLibrary()
    lib.load()
    return lib


@pytest.fixture
def service(library):
    svc = InspectionService(library=library)
    install(svc)
    return svc


@pytest.fixture
def mock_db():
    """AsyncMock standing in for AsyncSession; flush/commit are no-ops."""
    return AsyncMock()


@pytest_asyncio.fixture
async def template(service, mock_db, manager):
    return await service.create_template(
        mock_db, manager, name="Food safety", definition=RAW_DEFINITION,
    )


def _update(section_id, question_id, **fields):
    return AnswerUpdate(section_id=section_id, question_id=question_id, **fields)


REQUIRED_ANSWERS = [
    _update("s_storage", "q_cooler", value="yes"),
    _update("s_prep", "q_comment", value="All good"),
]


# =====================================================================
# Templates
# =====================================================================


class TestTemplates:
    @pytest.mark.asyncio
    async def test_create_seeds_from_starter(self, service, mock_db, admin):
        info = await service.create_template(mock_db, admin, name="  Blank  ")
        assert info.name == "Blank"
        (section,) = info.definition.sections
        assert section.title == "Section 1"
        assert section.questions[0].required is True

    @pytest.mark.asyncio
    async def test_create_normalizes_definition(self, service, mock_db, manager):
        info = await service.create_template(
            mock_db, manager, name="Legacy", definition='{"questions": ["Door locked?"]}',
        )
        (section,) = info.definition.sections
        assert section.questions[0].label == "Door locked?"
        assert section.questions[0].type == "yes_no_na"

    @pytest.mark.asyncio
    async def test_inspector_cannot_author(self, service, mock_db, inspector):
        with pytest.raises(PermissionError, match="admins or managers"):
            await service.create_template(mock_db, inspector, name="X")

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, service, mock_db, admin):
        with pytest.raises(ValueError, match="Template name is required"):
            await service.create_template(mock_db, admin, name="   ")

    @pytest.mark.asyncio
    async def test_unknown_site_rejected(self, service, mock_db, admin):
        with pytest.raises(ValueError, match="Site not found"):
            await service.create_template(mock_db, admin, name="X", site_id=str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_update_partial(self, service, mock_db, manager, template):
        info = await service.update_template(
            mock_db, manager, template.id, is_published=True, description="Daily",
        )
        assert info.is_published is True
        assert info.description == "Daily"
        assert info.name == "Food safety"
        assert info.definition == template.definition

    @pytest.mark.asyncio
    async def test_update_unknown_field(self, service, mock_db, manager, template):
        with pytest.raises(ValueError, match="Unknown template fields"):
            await service.update_template(mock_db, manager, template.id, colour="red")

    @pytest.mark.asyncio
    async def test_get_and_list(self, service, mock_db, admin, template):
        site = await service.create_site(mock_db, admin, name="Downtown")
        await service.create_template(mock_db, admin, name="Other", site_id=site.id, is_published=True)

        assert (await service.get_template(mock_db, template.id)).name == "Food safety"
        assert len(await service.list_templates(mock_db)) == 2
        assert [t.name for t in await service.list_templates(mock_db, site_id=site.id)] == ["Other"]
        assert [t.name for t in await service.list_templates(mock_db, published_only=True)] == ["Other"]

    @pytest.mark.asyncio
    async def test_malformed_id_is_not_found(self, service, mock_db):
        with pytest.raises(ValueError, match="Template not found"):
            await service.get_template(mock_db, "not-a-uuid")

    @pytest.mark.asyncio
    async def test_delete_is_admin_only(self, service, mock_db, admin, manager, template):
        with pytest.raises(PermissionError, match="Only admins"):
            await service.delete_template(mock_db, manager, template.id)
        await service.delete_template(mock_db, admin, template.id)
        with pytest.raises(ValueError, match="not found"):
            await service.get_template(mock_db, template.id)

    @pytest.mark.asyncio
    async def test_import_requires_extractor(self, service, manager):
        with pytest.raises(ValueError, match="not configured"):
            await service.import_template(manager, "text")

    @pytest.mark.asyncio
    async def test_import_clamps_limits(self, library, manager, inspector):
        extractor = FakeExtractor({"name": "Doc", "sections": [{"title": "A", "questions": ["Q1", "Q2"]}]})
        service = InspectionService(library=library, extractor=extractor)
        assert service.ai_import_enabled

        draft = await service.import_template(manager, "doc text", max_sections=500, max_questions_per_section=1)
        assert extractor.calls == [("doc text", 12, 1)]
        assert [q.label for _, q in draft.definition.iter_questions()] == ["Q1"]

        with pytest.raises(PermissionError):
            await service.import_template(inspector, "doc text")
        with pytest.raises(ValueError, match="must be positive"):
            await service.import_template(manager, "doc text", max_sections=0)


# =====================================================================
# Inspection lifecycle
# =====================================================================


class TestInspectionLifecycle:
    @pytest.mark.asyncio
    async def test_start_builds_blank_skeleton(self, service, mock_db, inspector, template):
        info = await service.start_inspection(mock_db, inspector, template.id)
        assert info.status == "in_progress"
        assert info.template_name == "Food safety"
        assert info.owner_name == "Ivy Inspector"
        assert [r.question_id for r in info.items] == ["q_cooler", "q_clean", "q_sanitiser", "q_comment"]
        assert not any(r.is_answered for r in info.items)
        # Unanswered scorable rows still count towards the denominator
        assert info.score == 0

    @pytest.mark.asyncio
    async def test_start_inherits_template_site(self, service, mock_db, admin, inspector):
        site = await service.create_site(mock_db, admin, name="Harbour")
        tpl = await service.create_template(mock_db, admin, name="T", site_id=site.id)
        info = await service.start_inspection(mock_db, inspector, tpl.id)
        assert (info.site_id, info.site_name) == (site.id, "Harbour")

    @pytest.mark.asyncio
    async def test_save_answers_rescores_and_stamps(self, service, mock_db, inspector, template):
        started = await service.start_inspection(mock_db, inspector, template.id)
        info = await service.save_answers(mock_db, inspector, started.id, [
            _update("s_storage", "q_cooler", value="Yes", notes="3C"),
            _update("s_storage", "q_clean", value="fair"),
        ])
        assert info.score == 67
        cooler = info.items[0]
        assert (cooler.value, cooler.choice_label, cooler.notes) == ("yes", "Yes", "3C")
        assert cooler.answered_by_user_id == "u-insp"

        reloaded = await service.get_inspection(mock_db, started.id)
        assert reloaded.items == info.items
        assert reloaded.score == 67

    @pytest.mark.asyncio
    async def test_invalid_update_persists_nothing(self, service, mock_db, inspector, template):
        started = await service.start_inspection(mock_db, inspector, template.id)
        with pytest.raises(ValueError, match="Invalid choice"):
            await service.save_answers(mock_db, inspector, started.id, [
                _update("s_storage", "q_cooler", value="yes"),
                _update("s_storage", "q_clean", value="excellent"),
            ])
        reloaded = await service.get_inspection(mock_db, started.id)
        assert not reloaded.items[0].is_answered

    @pytest.mark.asyncio
    async def test_complete_requires_answers(self, service, mock_db, inspector, template):
        started = await service.start_inspection(mock_db, inspector, template.id)
        with pytest.raises(InspectionIncompleteError) as exc_info:
            await service.complete_inspection(mock_db, inspector, started.id)
        assert exc_info.value.missing_labels == ["Cooler at temperature", "Comments"]
        assert "2 unanswered" in str(exc_info.value)

        reloaded = await service.get_inspection(mock_db, started.id)
        assert reloaded.status == "in_progress"

    @pytest.mark.asyncio
    async def test_complete_with_final_answers(self, service, mock_db, inspector, template):
        started = await service.start_inspection(mock_db, inspector, template.id)
        info = await service.complete_inspection(mock_db, inspector, started.id, REQUIRED_ANSWERS)
        assert info.status == "submitted"
        assert info.submitted_at is not None
        # yes (1/1) + unanswered good_fair_poor (0/2)
        assert info.score == 33

    @pytest.mark.asyncio
    async def test_submitted_is_read_only(self, service, mock_db, inspector, template):
        started = await service.start_inspection(mock_db, inspector, template.id)
        await service.complete_inspection(mock_db, inspector, started.id, REQUIRED_ANSWERS)

        with pytest.raises(ValueError, match="already submitted"):
            await service.save_answers(mock_db, inspector, started.id, [])
        with pytest.raises(ValueError, match="already submitted"):
            await service.complete_inspection(mock_db, inspector, started.id)

    @pytest.mark.asyncio
    async def test_list_filters(self, service, mock_db, inspector, manager, template):
        first = await service.start_inspection(mock_db, inspector, template.id)
        second = await service.start_inspection(mock_db, manager, template.id)
        await service.complete_inspection(mock_db, inspector, first.id, REQUIRED_ANSWERS)

        all_ids = [i.id for i in await service.list_inspections(mock_db)]
        assert all_ids == [second.id, first.id], "most recent first"
        submitted = await service.list_inspections(mock_db, status="submitted")
        assert [i.id for i in submitted] == [first.id]
        mine = await service.list_inspections(mock_db, owner_user_id="u-manager")
        assert [i.id for i in mine] == [second.id]

        with pytest.raises(ValueError, match="Invalid status"):
            await service.list_inspections(mock_db, status="archived")

    @pytest.mark.asyncio
    async def test_delete_permissions(self, service, mock_db, inspector, manager, template):
        owned = await service.start_inspection(mock_db, manager, template.id)
        with pytest.raises(PermissionError):
            await service.delete_inspection(mock_db, inspector, owned.id)

        mine = await service.start_inspection(mock_db, inspector, template.id)
        await service.delete_inspection(mock_db, inspector, mine.id)
        await service.delete_inspection(mock_db, manager, owned.id)
        assert await service.list_inspections(mock_db) == []


# =====================================================================
# Template edits after an inspection started
# =====================================================================


class TestTemplateDrift:
    @pytest.mark.asyncio
    async def test_added_and_removed_questions(self, service, mock_db, manager, inspector, template):
        started = await service.start_inspection(mock_db, inspector, template.id)
        await service.save_answers(mock_db, inspector, started.id, [
            _update("s_storage", "q_cooler", value="yes"),
            _update("s_storage", "q_clean", value="good"),
        ])

        definition = template.definition.to_json()
        storage = definition["sections"][0]["questions"]
        definition["sections"][0]["questions"] = [
            storage[0],
            {"id": "q_labels", "label": "Labels dated", "type": "yes_no_na", "required": True},
        ]
        await service.update_template(mock_db, manager, template.id, definition=definition)

        info = await service.get_inspection(mock_db, started.id)
        assert [r.question_id for r in info.items] == ["q_cooler", "q_labels", "q_sanitiser", "q_comment"]
        assert info.items[0].value == "yes"
        assert not info.items[1].is_answered
        assert info.items[1].required is True
        # 1 of 2 yes/no points once q_clean is gone
        assert info.score == 50

    @pytest.mark.asyncio
    async def test_legacy_row_without_ids(self, service, mock_db, inspector):
        # Rows written before ids existed are re-normalized on every read
        row = MockTemplateRow(
            name="Closing", definition={"sections": [{"questions": ["Door locked?", "Lights off?"]}]},
        )
        service._templates.rows[row.id] = row

        started = await service.start_inspection(mock_db, inspector, str(row.id))
        keys = [r.key for r in started.items]
        assert keys == [("sec_1", "q_1_1"), ("sec_1", "q_1_2")]

        reloaded = await service.get_inspection(mock_db, started.id)
        assert [r.key for r in reloaded.items] == keys

        saved = await service.save_answers(mock_db, inspector, started.id, [_update(*keys[0], value="yes")])
        assert saved.items[0].value == "yes"

        done = await service.complete_inspection(mock_db, inspector, started.id, [_update(*keys[1], value="no")])
        assert done.status == "submitted"
        assert [r.value for r in done.items] == ["yes", "no"]
        assert done.score == 50

    @pytest.mark.asyncio
    async def test_submitted_score_is_kept(self, service, mock_db, manager, inspector, template):
        started = await service.start_inspection(mock_db, inspector, template.id)
        submitted = await service.complete_inspection(mock_db, inspector, started.id, REQUIRED_ANSWERS)

        definition = template.definition.to_json()
        definition["sections"][0]["questions"] = definition["sections"][0]["questions"][:1]
        await service.update_template(mock_db, manager, template.id, definition=definition)

        info = await service.get_inspection(mock_db, started.id)
        assert info.score == submitted.score == 33

    @pytest.mark.asyncio
    async def test_orphaned_inspection_keeps_stored_rows(self, service, mock_db, admin, inspector, template):
        started = await service.start_inspection(mock_db, inspector, template.id)
        await service.save_answers(mock_db, inspector, started.id, [
            _update("s_storage", "q_cooler", value="no"),
        ])
        await service.delete_template(mock_db, admin, template.id)

        info = await service.get_inspection(mock_db, started.id)
        assert info.template_name == "Food safety"
        assert info.items[0].value == "no"
        with pytest.raises(ValueError, match="Template not found"):
            await service.save_answers(mock_db, inspector, started.id, [])


# =====================================================================
# Reports
# =====================================================================


class TestReports:
    @pytest.mark.asyncio
    async def test_export_single(self, service, mock_db, inspector, template):
        started = await service.start_inspection(mock_db, inspector, template.id)
        report = await service.export_report(mock_db, started.id)
        assert report.content.startswith(b"%PDF")
        assert report.filename.startswith("food-safety-")

    @pytest.mark.asyncio
    async def test_export_single_orphaned(self, service, mock_db, admin, inspector, template):
        started = await service.start_inspection(mock_db, inspector, template.id)
        await service.delete_template(mock_db, admin, template.id)
        with pytest.raises(ReportError, match="template no longer exists"):
            await service.export_report(mock_db, started.id)

    @pytest.mark.asyncio
    async def test_export_batch_skips_unusable(self, service, mock_db, admin, inspector, template):
        kept = await service.start_inspection(mock_db, inspector, template.id)
        other_tpl = await service.create_template(mock_db, admin, name="Gone")
        orphan = await service.start_inspection(mock_db, inspector, other_tpl.id)
        await service.delete_template(mock_db, admin, other_tpl.id)

        reports = await service.export_reports(
            mock_db, [kept.id, orphan.id, "garbage", str(uuid.uuid4())],
        )
        assert len(reports) == 1
        assert kept.id in reports[0].filename


# =====================================================================
# Sites
# =====================================================================


class TestSites:
    @pytest.mark.asyncio
    async def test_crud(self, service, mock_db, admin):
        site = await service.create_site(mock_db, admin, name="Zeta", code="Z1")
        await service.create_site(mock_db, admin, name="Alpha")
        assert [s.name for s in await service.list_sites(mock_db)] == ["Alpha", "Zeta"]

        updated = await service.update_site(mock_db, admin, site.id, code="", description="North")
        assert (updated.code, updated.description) == (None, "North")
        assert (await service.get_site(mock_db, site.id)).name == "Zeta"

        await service.delete_site(mock_db, admin, site.id)
        with pytest.raises(ValueError, match="Site not found"):
            await service.get_site(mock_db, site.id)

    @pytest.mark.asyncio
    async def test_inspector_cannot_manage(self, service, mock_db, inspector):
        with pytest.raises(PermissionError):
            await service.create_site(mock_db, inspector, name="X")

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, service, mock_db, admin):
        site = await service.create_site(mock_db, admin, name="X")
        with pytest.raises(ValueError, match="Unknown site fields"):
            await service.update_site(mock_db, admin, site.id, region="north")
