"""Tests for exporting inspections from a local JSON store directory."""

from auditking.storage import INSPECTIONS_KEY, TEMPLATES_KEY, JsonFileStore
from auditking_server.export import export_from_store
from conftest import RAW_DEFINITION


def _inspection(inspection_id, status, template_id="t1"):
    return {
        "id": inspection_id,
        "template_id": template_id,
        "template_name": "Food safety",
        "status": status,
        "started_at": "2026-10-01T08:00:00+00:00",
        "items": [{"sectionId": "s_storage", "questionId": "q_cooler", "value": "yes"}],
    }


def _seed(store_dir):
    store = JsonFileStore(store_dir)
    store.save(TEMPLATES_KEY, [{"id": "t1", "name": "Food safety", "definition": RAW_DEFINITION}])
    store.save(INSPECTIONS_KEY, [
        _inspection("a", "submitted"),
        _inspection("b", "in_progress"),
        _inspection("c", "submitted", template_id="gone"),
    ])


class TestExportFromStore:
    def test_submitted_only_by_default(self, tmp_path):
        _seed(tmp_path / "store")
        reports = export_from_store(tmp_path / "store", tmp_path / "out")
        assert [r.filename for r in reports] == ["food-safety-a.pdf"]
        assert (tmp_path / "out" / "food-safety-a.pdf").read_bytes().startswith(b"%PDF")

    def test_explicit_ids_ignore_status(self, tmp_path):
        _seed(tmp_path / "store")
        reports = export_from_store(
            tmp_path / "store", tmp_path / "out", inspection_ids=["b", "c"], with_images=True,
        )
        assert [r.filename for r in reports] == ["food-safety-b.pdf"]

    def test_all_statuses(self, tmp_path):
        _seed(tmp_path / "store")
        reports = export_from_store(tmp_path / "store", tmp_path / "out", status=None)
        assert len(reports) == 2
