"""
Discovery service: pulls a project's repository metadata and persists it.
"""
from typing import Callable, Optional

from core.adapters import get_adapter
from core.adapters.base import RepositoryAdapter
from core.normalizer import ObjectNormalizer
from shared.errors import NotFoundError
from shared.models import (
    ConnectionTestResult,
    DashboardStats,
    DiscoveryResult,
    MigrationProject,
    MigrationStatus,
    ProjectStatus,
    RepositoryConnection,
    utcnow,
)
from shared.utils import calculate_percentage, setup_logger

logger = setup_logger(__name__)


class DiscoveryService:
    """Runs connection probes and discovery runs against legacy repositories."""

    def __init__(
        self,
        storage,
        sync_monitor=None,
        adapter_factory: Callable[[RepositoryConnection], RepositoryAdapter] = get_adapter,
        normalizer: Optional[ObjectNormalizer] = None
    ):
        """
        Initialize discovery service.

        Args:
            storage: Storage facade
            sync_monitor: Sync monitor notified of completed runs
            adapter_factory: Builds the repository adapter for a connection
            normalizer: Raw record normalizer
        """
        self.storage = storage
        self.sync_monitor = sync_monitor
        self.adapter_factory = adapter_factory
        self.normalizer = normalizer or ObjectNormalizer()

    def _require_connection(self, connection_id: str) -> RepositoryConnection:
        connection = self.storage.get_connection(connection_id)
        if connection is None:
            raise NotFoundError("Repository connection", connection_id)
        return connection

    def _require_project(self, project_id: str) -> MigrationProject:
        project = self.storage.get_project(project_id)
        if project is None:
            raise NotFoundError("Migration project", project_id)
        return project

    def test_connection(self, connection_id: str) -> ConnectionTestResult:
        """
        Probe a repository connection and record the outcome.

        Args:
            connection_id: Connection to probe

        Returns:
            Probe result
        """
        connection = self._require_connection(connection_id)
        connected = self.adapter_factory(connection).test_connection(connection)

        updates = {"is_active": connected}
        if connected:
            updates["last_connected"] = utcnow()
        self.storage.update_connection(connection_id, updates)

        logger.info(f"Connection test for {connection.name}: {'ok' if connected else 'failed'}")
        return ConnectionTestResult(connection_id=connection_id, connected=connected)

    def discover(self, project_id: str) -> DiscoveryResult:
        """
        Run a full discovery for a project.

        This will:
        1. Move the project to DISCOVERY
        2. Pull raw metadata through the connection's adapter
        3. Normalize and classify every record
        4. Replace the project's objects and update its statistics
        5. Record the run as a FULL sync

        A connection-level failure persists nothing; the project is left in
        DISCOVERY and the error propagates.

        Args:
            project_id: Project to discover

        Returns:
            Discovery summary
        """
        project = self._require_project(project_id)
        connection = self._require_connection(project.connection_id)

        self.storage.update_project(project_id, {"status": ProjectStatus.DISCOVERY})
        logger.info(f"Starting discovery for project {project.name} via {connection.protocol.value}")

        try:
            payload = self.adapter_factory(connection).discover(connection)
        except Exception as e:
            logger.error(f"Discovery failed for project {project_id}: {e}")
            raise

        objects = self.normalizer.normalize(payload, project_id)
        self.storage.bulk_create_objects(project_id, objects)

        fully_auto = sum(1 for obj in objects if obj.migration_status == MigrationStatus.FULLY_AUTO)
        percentage = calculate_percentage(fully_auto, len(objects))

        self.storage.update_project(project_id, {
            "status": ProjectStatus.ASSESSMENT,
            "total_objects": len(objects),
            "auto_migration_percentage": percentage
        })

        if self.sync_monitor is not None:
            self.sync_monitor.record_discovery(project_id, objects)

        logger.info(
            f"Discovery completed for project {project.name}: "
            f"{len(objects)} objects, {percentage}% fully automatic"
        )
        return DiscoveryResult(
            project_id=project_id,
            total_objects=len(objects),
            auto_migration_percentage=percentage,
            object_counts=payload.counts()
        )

    def dashboard_stats(self) -> DashboardStats:
        """Aggregate statistics across all projects and connections."""
        projects = self.storage.list_projects()
        connections = self.storage.list_connections()

        by_status = {status.value: 0 for status in ProjectStatus}
        for project in projects:
            by_status[project.status.value] += 1

        average = 0
        if projects:
            average = calculate_percentage(
                sum(p.auto_migration_percentage for p in projects), len(projects) * 100
            )

        return DashboardStats(
            total_projects=len(projects),
            active_connections=sum(1 for c in connections if c.is_active),
            total_connections=len(connections),
            projects_by_status=by_status,
            avg_automation_coverage=average
        )
