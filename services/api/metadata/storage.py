"""
Storage facade contract and the in-memory implementation.

The engine depends on persistence only through :class:`StorageFacade`.
Unknown ids on ``get_*`` return None; ``update_*`` / ``delete_*`` of an
unknown id raise :class:`NotFoundError`.
"""
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from core.function_catalog import get_function_mapping, list_function_mappings
from shared.errors import NotFoundError, ValidationError
from shared.models import (
    AssessmentResult,
    DiscoveredObject,
    FunctionMapping,
    IssueStatus,
    MigrationIssue,
    MigrationProject,
    RepositoryConnection,
    SyncStatus,
    utcnow,
)
from shared.utils import setup_logger

logger = setup_logger(__name__)

M = TypeVar("M", bound=BaseModel)

# Fields that callers may never overwrite through update_*
_IMMUTABLE_FIELDS = {"id", "created_at"}


def merge_updates(model: M, updates: Dict[str, Any]) -> M:
    """
    Apply a partial update to a model and re-validate the result.

    Args:
        model: Current entity
        updates: Field values to change

    Returns:
        New validated entity

    Raises:
        ValidationError: If a field is unknown, immutable or invalid
    """
    cls: Type[M] = type(model)
    unknown = set(updates) - set(cls.model_fields)
    if unknown:
        raise ValidationError(f"Unknown field(s) for {cls.__name__}: {', '.join(sorted(unknown))}")
    frozen = set(updates) & _IMMUTABLE_FIELDS
    if frozen:
        raise ValidationError(f"Field(s) cannot be updated: {', '.join(sorted(frozen))}")
    try:
        return cls.model_validate({**model.model_dump(), **updates})
    except PydanticValidationError as e:
        raise ValidationError(str(e)) from e


class StorageFacade(ABC):
    """Narrow persistence contract consumed by the migration engine."""

    # ===== CONNECTIONS =====

    @abstractmethod
    def create_connection(self, connection: RepositoryConnection) -> RepositoryConnection: ...

    @abstractmethod
    def list_connections(self) -> List[RepositoryConnection]: ...

    @abstractmethod
    def get_connection(self, connection_id: str) -> Optional[RepositoryConnection]: ...

    @abstractmethod
    def update_connection(self, connection_id: str, updates: Dict[str, Any]) -> RepositoryConnection: ...

    @abstractmethod
    def delete_connection(self, connection_id: str) -> None: ...

    # ===== PROJECTS =====

    @abstractmethod
    def create_project(self, project: MigrationProject) -> MigrationProject: ...

    @abstractmethod
    def list_projects(self) -> List[MigrationProject]: ...

    @abstractmethod
    def get_project(self, project_id: str) -> Optional[MigrationProject]: ...

    @abstractmethod
    def update_project(self, project_id: str, updates: Dict[str, Any]) -> MigrationProject: ...

    @abstractmethod
    def delete_project(self, project_id: str) -> None: ...

    # ===== DISCOVERED OBJECTS =====

    @abstractmethod
    def create_object(self, obj: DiscoveredObject) -> DiscoveredObject: ...

    @abstractmethod
    def list_objects(self, project_id: str) -> List[DiscoveredObject]: ...

    @abstractmethod
    def get_object(self, object_id: str) -> Optional[DiscoveredObject]: ...

    @abstractmethod
    def bulk_create_objects(
        self, project_id: str, objects: List[DiscoveredObject]
    ) -> List[DiscoveredObject]:
        """Persist one discovery run, superseding the project's previous objects."""

    # ===== ASSESSMENTS =====

    @abstractmethod
    def create_assessment(self, result: AssessmentResult) -> AssessmentResult: ...

    @abstractmethod
    def list_assessments(self, project_id: str) -> List[AssessmentResult]: ...

    @abstractmethod
    def get_assessment(self, assessment_id: str) -> Optional[AssessmentResult]: ...

    # ===== ISSUES =====

    @abstractmethod
    def create_issue(self, issue: MigrationIssue) -> MigrationIssue: ...

    @abstractmethod
    def list_issues(self, project_id: str) -> List[MigrationIssue]: ...

    @abstractmethod
    def update_issue(self, issue_id: str, updates: Dict[str, Any]) -> MigrationIssue: ...

    # ===== FUNCTION MAPPINGS =====

    @abstractmethod
    def list_function_mappings(self) -> List[FunctionMapping]: ...

    @abstractmethod
    def get_function_mapping(self, legacy_function: str) -> Optional[FunctionMapping]: ...

    # ===== SYNC STATUS =====

    @abstractmethod
    def get_sync_status(self, project_id: str) -> Optional[SyncStatus]: ...

    @abstractmethod
    def upsert_sync_status(self, status: SyncStatus) -> SyncStatus:
        """Replace the project's sync record as a whole (last write wins)."""

    # ===== SHARED RULES =====

    @staticmethod
    def apply_issue_updates(issue: MigrationIssue, updates: Dict[str, Any]) -> MigrationIssue:
        """Merge issue updates, stamping ``resolved_at`` when an issue becomes FIXED."""
        updated = merge_updates(issue, updates)
        if updated.status == IssueStatus.FIXED and updated.resolved_at is None:
            updated = updated.model_copy(update={"resolved_at": utcnow()})
        return updated

    def close(self) -> None:
        """Release backend resources."""

    def health_check(self) -> bool:
        return True


class InMemoryStorage(StorageFacade):
    """
    Thread-safe, process-local storage.

    Used for local runs and tests. Entities are copied on the way in and
    out so callers can never mutate stored state by reference.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._connections: Dict[str, RepositoryConnection] = {}
        self._projects: Dict[str, MigrationProject] = {}
        self._objects: Dict[str, DiscoveredObject] = {}
        self._assessments: Dict[str, AssessmentResult] = {}
        self._issues: Dict[str, MigrationIssue] = {}
        self._sync: Dict[str, SyncStatus] = {}

    @staticmethod
    def _copy(model: M) -> M:
        return model.model_copy(deep=True)

    def _require(self, table: Dict[str, M], entity: str, entity_id: str) -> M:
        if entity_id not in table:
            raise NotFoundError(entity, entity_id)
        return table[entity_id]

    # ===== CONNECTIONS =====

    def create_connection(self, connection: RepositoryConnection) -> RepositoryConnection:
        with self._lock:
            self._connections[connection.id] = self._copy(connection)
        logger.info(f"Created repository connection: {connection.name} ({connection.protocol.value})")
        return self._copy(connection)

    def list_connections(self) -> List[RepositoryConnection]:
        with self._lock:
            return [self._copy(c) for c in self._connections.values()]

    def get_connection(self, connection_id: str) -> Optional[RepositoryConnection]:
        with self._lock:
            conn = self._connections.get(connection_id)
            return self._copy(conn) if conn else None

    def update_connection(self, connection_id: str, updates: Dict[str, Any]) -> RepositoryConnection:
        with self._lock:
            existing = self._require(self._connections, "Repository connection", connection_id)
            updated = merge_updates(existing, updates)
            self._connections[connection_id] = updated
            return self._copy(updated)

    def delete_connection(self, connection_id: str) -> None:
        with self._lock:
            self._require(self._connections, "Repository connection", connection_id)
            del self._connections[connection_id]
        logger.info(f"Deleted repository connection: {connection_id}")

    # ===== PROJECTS =====

    def create_project(self, project: MigrationProject) -> MigrationProject:
        with self._lock:
            self._projects[project.id] = self._copy(project)
        logger.info(f"Created migration project: {project.name}")
        return self._copy(project)

    def list_projects(self) -> List[MigrationProject]:
        with self._lock:
            return [self._copy(p) for p in self._projects.values()]

    def get_project(self, project_id: str) -> Optional[MigrationProject]:
        with self._lock:
            project = self._projects.get(project_id)
            return self._copy(project) if project else None

    def update_project(self, project_id: str, updates: Dict[str, Any]) -> MigrationProject:
        with self._lock:
            existing = self._require(self._projects, "Migration project", project_id)
            updated = merge_updates(existing, {**updates, "updated_at": utcnow()})
            self._projects[project_id] = updated
            return self._copy(updated)

    def delete_project(self, project_id: str) -> None:
        with self._lock:
            self._require(self._projects, "Migration project", project_id)
            del self._projects[project_id]
            for table in (self._objects, self._assessments, self._issues):
                for key in [k for k, v in table.items() if v.project_id == project_id]:
                    del table[key]
            self._sync.pop(project_id, None)
        logger.info(f"Deleted migration project: {project_id}")

    # ===== DISCOVERED OBJECTS =====

    def create_object(self, obj: DiscoveredObject) -> DiscoveredObject:
        with self._lock:
            self._objects[obj.id] = self._copy(obj)
        return self._copy(obj)

    def list_objects(self, project_id: str) -> List[DiscoveredObject]:
        with self._lock:
            return [self._copy(o) for o in self._objects.values() if o.project_id == project_id]

    def get_object(self, object_id: str) -> Optional[DiscoveredObject]:
        with self._lock:
            obj = self._objects.get(object_id)
            return self._copy(obj) if obj else None

    def bulk_create_objects(
        self, project_id: str, objects: List[DiscoveredObject]
    ) -> List[DiscoveredObject]:
        foreign = [o.name for o in objects if o.project_id != project_id]
        if foreign:
            raise ValidationError(f"Objects belong to another project: {', '.join(foreign[:5])}")
        with self._lock:
            for key in [k for k, v in self._objects.items() if v.project_id == project_id]:
                del self._objects[key]
            for obj in objects:
                self._objects[obj.id] = self._copy(obj)
        logger.info(f"Stored {len(objects)} discovered objects for project {project_id}")
        return [self._copy(o) for o in objects]

    # ===== ASSESSMENTS =====

    def create_assessment(self, result: AssessmentResult) -> AssessmentResult:
        with self._lock:
            self._assessments[result.id] = result
        return result

    def list_assessments(self, project_id: str) -> List[AssessmentResult]:
        with self._lock:
            results = [a for a in self._assessments.values() if a.project_id == project_id]
        return sorted(results, key=lambda a: a.created_at)

    def get_assessment(self, assessment_id: str) -> Optional[AssessmentResult]:
        with self._lock:
            return self._assessments.get(assessment_id)

    # ===== ISSUES =====

    def create_issue(self, issue: MigrationIssue) -> MigrationIssue:
        with self._lock:
            self._issues[issue.id] = self._copy(issue)
        return self._copy(issue)

    def list_issues(self, project_id: str) -> List[MigrationIssue]:
        with self._lock:
            return [self._copy(i) for i in self._issues.values() if i.project_id == project_id]

    def update_issue(self, issue_id: str, updates: Dict[str, Any]) -> MigrationIssue:
        with self._lock:
            existing = self._require(self._issues, "Migration issue", issue_id)
            updated = self.apply_issue_updates(existing, updates)
            self._issues[issue_id] = updated
            return self._copy(updated)

    # ===== FUNCTION MAPPINGS =====

    def list_function_mappings(self) -> List[FunctionMapping]:
        return list_function_mappings()

    def get_function_mapping(self, legacy_function: str) -> Optional[FunctionMapping]:
        return get_function_mapping(legacy_function)

    # ===== SYNC STATUS =====

    def get_sync_status(self, project_id: str) -> Optional[SyncStatus]:
        with self._lock:
            status = self._sync.get(project_id)
            return self._copy(status) if status else None

    def upsert_sync_status(self, status: SyncStatus) -> SyncStatus:
        with self._lock:
            existing = self._sync.get(status.project_id)
            if existing is not None:
                status = status.model_copy(update={"id": existing.id})
            self._sync[status.project_id] = self._copy(status)
            return self._copy(status)
