"""
PostgreSQL implementation of the storage facade.
"""
import json
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from psycopg2.extras import execute_values
from pydantic import BaseModel

from core.function_catalog import FUNCTION_MAPPINGS
from services.api.metadata.db import MetadataDB
from services.api.metadata.storage import StorageFacade, merge_updates
from shared.errors import NotFoundError
from shared.models import (
    AssessmentResult,
    DiscoveredObject,
    FunctionMapping,
    MigrationIssue,
    MigrationProject,
    RepositoryConnection,
    SyncStatus,
    utcnow,
)
from shared.utils import setup_logger

logger = setup_logger(__name__)

# Model fields stored as JSONB
_JSON_COLUMNS = {"dependencies", "metadata", "recommendations", "issues", "errors", "examples"}


def to_row(model: BaseModel) -> Dict[str, Any]:
    """
    Convert a model into column values.

    Args:
        model: Entity to persist

    Returns:
        Column name to DB-adaptable value
    """
    row = {}
    for key, value in model.model_dump().items():
        if key in _JSON_COLUMNS:
            value = json.dumps(value, default=str)
        elif isinstance(value, Enum):
            value = value.value
        row[key] = value
    return row


class PostgresStorage(StorageFacade):
    """Storage facade backed by the metadata database."""

    def __init__(self, db: MetadataDB):
        """
        Initialize repository.

        Args:
            db: MetadataDB instance
        """
        self.db = db

    # ===== SQL HELPERS =====

    def _execute(self, query: str, params=None, fetch: Optional[str] = None):
        """
        Run one statement in its own transaction.

        Args:
            query: SQL with %s placeholders
            params: Query parameters
            fetch: "one", "all" or None for the row count

        Returns:
            Fetched row(s) or affected row count
        """
        conn = self.db.get_connection()

        try:
            cursor = conn.cursor()
            cursor.execute(query, params)
            if fetch == "one":
                result = cursor.fetchone()
            elif fetch == "all":
                result = cursor.fetchall()
            else:
                result = cursor.rowcount
            conn.commit()
            return result
        except Exception as e:
            conn.rollback()
            logger.error(f"Metadata query failed: {e}")
            raise
        finally:
            self.db.return_connection(conn)

    def _insert(self, table: str, model: BaseModel):
        row = to_row(model)
        self._execute(
            f"INSERT INTO {table} ({', '.join(row)}) VALUES ({', '.join(['%s'] * len(row))})",
            list(row.values())
        )
        return model

    def _get(self, table: str, cls: Type[BaseModel], entity_id: str):
        row = self._execute(f"SELECT * FROM {table} WHERE id = %s", (entity_id,), fetch="one")
        return cls.model_validate(dict(row)) if row else None

    def _list(self, table: str, cls: Type[BaseModel], where: str = "", params=None, order: str = "created_at"):
        query = f"SELECT * FROM {table}"
        if where:
            query += f" WHERE {where}"
        rows = self._execute(f"{query} ORDER BY {order}", params, fetch="all")
        return [cls.model_validate(dict(row)) for row in rows]

    def _replace(self, table: str, model: BaseModel):
        row = to_row(model)
        entity_id = row.pop("id")
        assignments = ", ".join(f"{column} = %s" for column in row)
        self._execute(
            f"UPDATE {table} SET {assignments} WHERE id = %s",
            list(row.values()) + [entity_id]
        )
        return model

    def _delete(self, table: str, entity: str, entity_id: str):
        if self._execute(f"DELETE FROM {table} WHERE id = %s", (entity_id,)) == 0:
            raise NotFoundError(entity, entity_id)

    # ===== CONNECTIONS =====

    def create_connection(self, connection: RepositoryConnection) -> RepositoryConnection:
        self._insert("repository_connections", connection)
        logger.info(f"Created repository connection: {connection.name} ({connection.protocol.value})")
        return connection

    def list_connections(self) -> List[RepositoryConnection]:
        return self._list("repository_connections", RepositoryConnection)

    def get_connection(self, connection_id: str) -> Optional[RepositoryConnection]:
        return self._get("repository_connections", RepositoryConnection, connection_id)

    def update_connection(self, connection_id: str, updates: Dict[str, Any]) -> RepositoryConnection:
        existing = self.get_connection(connection_id)
        if existing is None:
            raise NotFoundError("Repository connection", connection_id)
        return self._replace("repository_connections", merge_updates(existing, updates))

    def delete_connection(self, connection_id: str) -> None:
        self._delete("repository_connections", "Repository connection", connection_id)
        logger.info(f"Deleted repository connection: {connection_id}")

    # ===== PROJECTS =====

    def create_project(self, project: MigrationProject) -> MigrationProject:
        self._insert("migration_projects", project)
        logger.info(f"Created migration project: {project.name}")
        return project

    def list_projects(self) -> List[MigrationProject]:
        return self._list("migration_projects", MigrationProject)

    def get_project(self, project_id: str) -> Optional[MigrationProject]:
        return self._get("migration_projects", MigrationProject, project_id)

    def update_project(self, project_id: str, updates: Dict[str, Any]) -> MigrationProject:
        existing = self.get_project(project_id)
        if existing is None:
            raise NotFoundError("Migration project", project_id)
        updated = merge_updates(existing, {**updates, "updated_at": utcnow()})
        return self._replace("migration_projects", updated)

    def delete_project(self, project_id: str) -> None:
        # Objects, assessments, issues and sync status cascade
        self._delete("migration_projects", "Migration project", project_id)
        logger.info(f"Deleted migration project: {project_id}")

    # ===== DISCOVERED OBJECTS =====

    def create_object(self, obj: DiscoveredObject) -> DiscoveredObject:
        return self._insert("discovered_objects", obj)

    def list_objects(self, project_id: str) -> List[DiscoveredObject]:
        return self._list(
            "discovered_objects", DiscoveredObject, "project_id = %s", (project_id,), order="last_scanned, name"
        )

    def get_object(self, object_id: str) -> Optional[DiscoveredObject]:
        return self._get("discovered_objects", DiscoveredObject, object_id)

    def bulk_create_objects(
        self, project_id: str, objects: List[DiscoveredObject]
    ) -> List[DiscoveredObject]:
        """
        Replace a project's objects in a single transaction.

        Args:
            project_id: Owning project
            objects: Objects from one discovery run

        Returns:
            The stored objects
        """
        conn = self.db.get_connection()

        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM discovered_objects WHERE project_id = %s", (project_id,))

            if objects:
                rows = [to_row(obj) for obj in objects]
                columns = list(rows[0])
                execute_values(
                    cursor,
                    f"INSERT INTO discovered_objects ({', '.join(columns)}) VALUES %s",
                    [tuple(row[c] for c in columns) for row in rows]
                )

            conn.commit()
            logger.info(f"Stored {len(objects)} discovered objects for project {project_id}")
            return list(objects)
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to store discovered objects: {e}")
            raise
        finally:
            self.db.return_connection(conn)

    # ===== ASSESSMENTS =====

    def create_assessment(self, result: AssessmentResult) -> AssessmentResult:
        return self._insert("assessment_results", result)

    def list_assessments(self, project_id: str) -> List[AssessmentResult]:
        return self._list("assessment_results", AssessmentResult, "project_id = %s", (project_id,))

    def get_assessment(self, assessment_id: str) -> Optional[AssessmentResult]:
        return self._get("assessment_results", AssessmentResult, assessment_id)

    # ===== ISSUES =====

    def create_issue(self, issue: MigrationIssue) -> MigrationIssue:
        return self._insert("migration_issues", issue)

    def list_issues(self, project_id: str) -> List[MigrationIssue]:
        return self._list("migration_issues", MigrationIssue, "project_id = %s", (project_id,))

    def update_issue(self, issue_id: str, updates: Dict[str, Any]) -> MigrationIssue:
        existing = self._get("migration_issues", MigrationIssue, issue_id)
        if existing is None:
            raise NotFoundError("Migration issue", issue_id)
        return self._replace("migration_issues", self.apply_issue_updates(existing, updates))

    # ===== FUNCTION MAPPINGS =====

    def seed_function_mappings(self):
        """Insert the built-in function catalog, keeping rows that already exist."""
        rows = [to_row(mapping) for mapping in FUNCTION_MAPPINGS]
        columns = list(rows[0])
        conn = self.db.get_connection()

        try:
            cursor = conn.cursor()
            execute_values(
                cursor,
                f"INSERT INTO function_mappings ({', '.join(columns)}) VALUES %s "
                "ON CONFLICT (legacy_function) DO NOTHING",
                [tuple(row[c] for c in columns) for row in rows]
            )
            conn.commit()
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to seed function mappings: {e}")
            raise
        finally:
            self.db.return_connection(conn)

    def list_function_mappings(self) -> List[FunctionMapping]:
        return self._list("function_mappings", FunctionMapping, order="id")

    def get_function_mapping(self, legacy_function: str) -> Optional[FunctionMapping]:
        row = self._execute(
            "SELECT * FROM function_mappings WHERE UPPER(legacy_function) = UPPER(%s)",
            (legacy_function.strip(),),
            fetch="one"
        )
        return FunctionMapping.model_validate(dict(row)) if row else None

    # ===== SYNC STATUS =====

    def get_sync_status(self, project_id: str) -> Optional[SyncStatus]:
        row = self._execute(
            "SELECT * FROM sync_status WHERE project_id = %s", (project_id,), fetch="one"
        )
        return SyncStatus.model_validate(dict(row)) if row else None

    def upsert_sync_status(self, status: SyncStatus) -> SyncStatus:
        row = to_row(status)
        columns = list(row)
        assignments = ", ".join(
            f"{column} = EXCLUDED.{column}" for column in columns if column not in ("id", "project_id")
        )
        stored = self._execute(
            f"""
            INSERT INTO sync_status ({', '.join(columns)})
            VALUES ({', '.join(['%s'] * len(columns))})
            ON CONFLICT (project_id) DO UPDATE SET {assignments}
            RETURNING *
            """,
            list(row.values()),
            fetch="one"
        )
        return SyncStatus.model_validate(dict(stored))

    # ===== LIFECYCLE =====

    def close(self) -> None:
        self.db.close()

    def health_check(self) -> bool:
        return self.db.health_check()
