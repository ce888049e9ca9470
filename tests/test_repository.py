"""
tests/test_repository.py
------------------------
Unit tests for services/api/metadata/repository.py using a mock MetadataDB.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from services.api.metadata.repository import PostgresStorage, to_row
from shared.errors import NotFoundError
from shared.models import (
    IssueSeverity,
    IssueStatus,
    IssueType,
    MigrationIssue,
    SyncState,
    SyncStatus,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def conn() -> MagicMock:
    return MagicMock()


@pytest.fixture
def cursor(conn: MagicMock) -> MagicMock:
    return conn.cursor.return_value


@pytest.fixture
def mock_db(conn: MagicMock) -> MagicMock:
    db = MagicMock()
    db.get_connection.return_value = conn
    return db


@pytest.fixture
def repo(mock_db: MagicMock) -> PostgresStorage:
    return PostgresStorage(mock_db)


# ---------------------------------------------------------------------------
# Row conversion
# ---------------------------------------------------------------------------

class TestToRow:
    def test_enums_become_values(self, rest_connection) -> None:
        assert to_row(rest_connection)["protocol"] == "REST"

    def test_json_columns_are_serialized(self, make_object) -> None:
        row = to_row(make_object(dependencies=["m_orders"], metadata={"type": "Expression"}))
        assert json.loads(row["dependencies"]) == ["m_orders"]
        assert json.loads(row["metadata"]) == {"type": "Expression"}
        assert row["kind"] == "MAPPING"


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

class TestTransactions:
    def test_insert_commits_and_returns_connection(self, repo, mock_db, conn, cursor, rest_connection) -> None:
        repo.create_connection(rest_connection)
        query, params = cursor.execute.call_args.args
        assert query.startswith("INSERT INTO repository_connections")
        assert rest_connection.id in params
        conn.commit.assert_called_once()
        mock_db.return_connection.assert_called_once_with(conn)

    def test_failure_rolls_back_and_raises(self, repo, mock_db, conn, cursor, rest_connection) -> None:
        cursor.execute.side_effect = RuntimeError("db down")
        with pytest.raises(RuntimeError):
            repo.create_connection(rest_connection)
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        mock_db.return_connection.assert_called_once_with(conn)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

class TestLookups:
    def test_unknown_connection_is_none(self, repo, cursor) -> None:
        cursor.fetchone.return_value = None
        assert repo.get_connection("missing") is None
        cursor.execute.assert_called_once_with(
            "SELECT * FROM repository_connections WHERE id = %s", ("missing",)
        )

    def test_row_is_validated_into_model(self, repo, cursor, rest_connection) -> None:
        cursor.fetchone.return_value = rest_connection.model_dump()
        assert repo.get_connection(rest_connection.id) == rest_connection

    def test_delete_unknown_raises(self, repo, cursor) -> None:
        cursor.rowcount = 0
        with pytest.raises(NotFoundError):
            repo.delete_project("missing")

    def test_update_unknown_raises(self, repo, cursor) -> None:
        cursor.fetchone.return_value = None
        with pytest.raises(NotFoundError):
            repo.update_connection("missing", {"host": "x"})

    def test_sync_status_by_project(self, repo, cursor) -> None:
        status = SyncStatus(project_id="p1", status=SyncState.COMPLETED, items_processed=3)
        cursor.fetchone.return_value = status.model_dump()
        assert repo.get_sync_status("p1") == status


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

class TestWrites:
    def test_bulk_create_replaces_in_one_transaction(self, repo, conn, cursor, make_object) -> None:
        objects = [make_object(name="m_a"), make_object(name="m_b")]
        with patch("services.api.metadata.repository.execute_values") as execute_values:
            repo.bulk_create_objects("p1", objects)

        cursor.execute.assert_called_once_with(
            "DELETE FROM discovered_objects WHERE project_id = %s", ("p1",)
        )
        _, query, rows = execute_values.call_args.args
        assert query.startswith("INSERT INTO discovered_objects")
        assert len(rows) == 2
        conn.commit.assert_called_once()

    def test_bulk_create_empty_run_only_deletes(self, repo, cursor) -> None:
        with patch("services.api.metadata.repository.execute_values") as execute_values:
            assert repo.bulk_create_objects("p1", []) == []
        execute_values.assert_not_called()
        cursor.execute.assert_called_once()

    def test_fixing_issue_writes_resolved_at(self, repo, cursor) -> None:
        issue = MigrationIssue(
            project_id="p1", object_id="o1", issue_type=IssueType.UNSUPPORTED_FUNCTION,
            severity=IssueSeverity.HIGH, description="Unsupported transformation: x (XML_PARSER)",
        )
        cursor.fetchone.return_value = issue.model_dump()
        updated = repo.update_issue(issue.id, {"status": IssueStatus.FIXED})

        assert updated.resolved_at is not None
        query, params = cursor.execute.call_args.args
        assert query.startswith("UPDATE migration_issues SET")
        assert params[-1] == issue.id
        assert "FIXED" in params

    def test_upsert_sync_status_conflicts_on_project(self, repo, cursor) -> None:
        status = SyncStatus(project_id="p1", status=SyncState.SYNCING)
        cursor.fetchone.return_value = status.model_dump()
        assert repo.upsert_sync_status(status).status == SyncState.SYNCING
        query = cursor.execute.call_args.args[0]
        assert "ON CONFLICT (project_id) DO UPDATE" in query
        assert "RETURNING *" in query
