"""
tests/test_storage.py
---------------------
Unit tests for the in-memory storage facade (services/api/metadata/storage.py).
Run with: python -m pytest tests/
"""
from __future__ import annotations

from datetime import timedelta

import pytest

from services.api.metadata.storage import InMemoryStorage, merge_updates
from shared.errors import NotFoundError, ValidationError
from shared.models import (
    AssessmentResult,
    ComplexityTier,
    IssueSeverity,
    IssueStatus,
    IssueType,
    MigrationIssue,
    MigrationProject,
    ProjectStatus,
    SyncState,
    SyncStatus,
    SyncType,
)


@pytest.fixture
def issue(storage: InMemoryStorage, project: MigrationProject) -> MigrationIssue:
    return storage.create_issue(MigrationIssue(
        project_id=project.id,
        object_id="obj-1",
        issue_type=IssueType.UNSUPPORTED_FUNCTION,
        severity=IssueSeverity.HIGH,
        description="Unsupported transformation: xml_in (XML_PARSER)",
    ))


class TestMergeUpdates:
    def test_partial_update(self, rest_connection) -> None:
        updated = merge_updates(rest_connection, {"host": "pc-new.example.com"})
        assert updated.host == "pc-new.example.com"
        assert updated.id == rest_connection.id

    def test_unknown_field_rejected(self, rest_connection) -> None:
        with pytest.raises(ValidationError, match="Unknown field"):
            merge_updates(rest_connection, {"colour": "blue"})

    def test_id_cannot_change(self, rest_connection) -> None:
        with pytest.raises(ValidationError, match="cannot be updated"):
            merge_updates(rest_connection, {"id": "other"})

    def test_invalid_value_rejected(self, rest_connection) -> None:
        with pytest.raises(ValidationError):
            merge_updates(rest_connection, {"port": 70000})


class TestConnections:
    def test_create_get_list(self, storage, rest_connection) -> None:
        storage.create_connection(rest_connection)
        assert storage.get_connection(rest_connection.id) == rest_connection
        assert len(storage.list_connections()) == 1

    def test_unknown_get_returns_none(self, storage) -> None:
        assert storage.get_connection("missing") is None

    def test_unknown_update_raises(self, storage) -> None:
        with pytest.raises(NotFoundError):
            storage.update_connection("missing", {"host": "x"})

    def test_unknown_delete_raises(self, storage) -> None:
        with pytest.raises(NotFoundError, match="missing"):
            storage.delete_connection("missing")

    def test_returned_entities_are_copies(self, storage, rest_connection) -> None:
        stored = storage.create_connection(rest_connection)
        stored.host = "mutated"
        assert storage.get_connection(rest_connection.id).host == "pc-dev.example.com"


class TestProjects:
    def test_update_bumps_updated_at(self, storage, project) -> None:
        updated = storage.update_project(project.id, {"status": ProjectStatus.ASSESSMENT})
        assert updated.status == ProjectStatus.ASSESSMENT
        assert updated.updated_at >= project.updated_at

    def test_delete_cascades(self, storage, project, make_object) -> None:
        storage.bulk_create_objects(project.id, [make_object(project_id=project.id)])
        storage.upsert_sync_status(SyncStatus(project_id=project.id))
        storage.delete_project(project.id)
        assert storage.get_project(project.id) is None
        assert storage.list_objects(project.id) == []
        assert storage.get_sync_status(project.id) is None


class TestObjects:
    def test_bulk_create_supersedes_previous_run(self, storage, project, make_object) -> None:
        storage.bulk_create_objects(project.id, [
            make_object(name="m_a", project_id=project.id),
            make_object(name="m_b", project_id=project.id),
        ])
        storage.bulk_create_objects(project.id, [make_object(name="m_c", project_id=project.id)])
        assert [o.name for o in storage.list_objects(project.id)] == ["m_c"]

    def test_bulk_create_leaves_other_projects_alone(self, storage, project, make_object) -> None:
        storage.create_object(make_object(name="other", project_id="p-other"))
        storage.bulk_create_objects(project.id, [])
        assert len(storage.list_objects("p-other")) == 1

    def test_bulk_create_rejects_foreign_objects(self, storage, project, make_object) -> None:
        with pytest.raises(ValidationError):
            storage.bulk_create_objects(project.id, [make_object(project_id="p-other")])

    def test_get_object(self, storage, make_object) -> None:
        obj = storage.create_object(make_object())
        assert storage.get_object(obj.id).name == "m_orders"
        assert storage.get_object("missing") is None


class TestAssessments:
    def test_history_is_oldest_first(self, storage, project) -> None:
        first = AssessmentResult(
            project_id=project.id, result=ComplexityTier.MEDIUM, confidence=85,
            automation_coverage=67, estimated_effort=6,
        )
        second = AssessmentResult(
            project_id=project.id, result=ComplexityTier.SIMPLE, confidence=85,
            automation_coverage=100, estimated_effort=6,
            created_at=first.created_at + timedelta(seconds=1),
        )
        storage.create_assessment(second)
        storage.create_assessment(first)
        assert [a.id for a in storage.list_assessments(project.id)] == [first.id, second.id]
        assert storage.get_assessment(first.id) == first


class TestIssues:
    def test_fixing_sets_resolved_at(self, storage, issue) -> None:
        updated = storage.update_issue(issue.id, {"status": IssueStatus.FIXED})
        assert updated.status == IssueStatus.FIXED
        assert updated.resolved_at is not None

    def test_ignoring_leaves_resolved_at_empty(self, storage, issue) -> None:
        updated = storage.update_issue(issue.id, {"status": IssueStatus.IGNORED})
        assert updated.resolved_at is None

    def test_unknown_issue_raises(self, storage) -> None:
        with pytest.raises(NotFoundError):
            storage.update_issue("missing", {"status": IssueStatus.FIXED})

    def test_list_by_project(self, storage, issue, project) -> None:
        assert [i.id for i in storage.list_issues(project.id)] == [issue.id]


class TestFunctionMappings:
    def test_catalog_is_served(self, storage) -> None:
        names = [m.legacy_function for m in storage.list_function_mappings()]
        assert names == ["DECODE", "SUBSTR", "INSTR"]

    def test_lookup_is_case_insensitive(self, storage) -> None:
        assert storage.get_function_mapping("decode").target_equivalent == "IIF"
        assert storage.get_function_mapping("NVL") is None


class TestSyncStatus:
    def test_upsert_keeps_record_id(self, storage, project) -> None:
        first = storage.upsert_sync_status(SyncStatus(project_id=project.id, status=SyncState.SYNCING))
        second = storage.upsert_sync_status(SyncStatus(
            project_id=project.id, status=SyncState.COMPLETED, sync_type=SyncType.FULL, items_processed=4,
        ))
        assert second.id == first.id
        stored = storage.get_sync_status(project.id)
        assert stored.status == SyncState.COMPLETED
        assert stored.items_processed == 4

    def test_never_synced_is_none(self, storage, project) -> None:
        assert storage.get_sync_status(project.id) is None
