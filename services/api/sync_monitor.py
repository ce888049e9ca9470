"""
Repository Sync Monitor
Polls a project's legacy repository on a fixed interval and records sync health.
"""
import asyncio
import json
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from core.adapters import get_adapter
from core.adapters.base import RepositoryAdapter
from core.normalizer import ObjectNormalizer
from config import CONFIG
from shared.errors import NotFoundError, SyncCycleError
from shared.models import (
    DiscoveredObject,
    RepositoryConnection,
    SyncState,
    SyncStatus,
    SyncType,
    utcnow,
)
from services.api.metadata import get_storage
from shared.utils import compute_checksum, setup_logger

logger = setup_logger(__name__)

# object key -> metadata checksum
Snapshot = Dict[str, str]


def fingerprint(objects: List[DiscoveredObject]) -> Snapshot:
    """
    Build a change-detection snapshot of a project's objects.

    Objects are keyed by kind, folder and name; the value is a checksum of
    everything a repository edit can change.
    """
    snapshot = {}
    for obj in objects:
        key = f"{obj.kind.value}:{obj.folder}/{obj.name}"
        snapshot[key] = compute_checksum({
            "subtype": obj.subtype,
            "dependencies": obj.dependencies,
            "metadata": obj.metadata,
        })
    return snapshot


def count_changes(previous: Snapshot, current: Snapshot) -> int:
    """Number of objects added, removed or modified between two snapshots."""
    added = current.keys() - previous.keys()
    removed = previous.keys() - current.keys()
    modified = [k for k in current.keys() & previous.keys() if current[k] != previous[k]]
    return len(added) + len(removed) + len(modified)


class SyncMonitor:
    """Runs one bounded polling task per project."""

    def __init__(
        self,
        storage,
        interval_seconds: Optional[float] = None,
        lifetime_seconds: Optional[float] = None,
        adapter_factory: Callable[[RepositoryConnection], RepositoryAdapter] = get_adapter,
        normalizer: Optional[ObjectNormalizer] = None
    ):
        """
        Initialize the sync monitor.

        Args:
            storage: Storage facade holding projects, objects and sync status
            interval_seconds: Seconds between polling cycles
            lifetime_seconds: Seconds after which a project's polling stops
            adapter_factory: Builds the repository adapter for a connection
            normalizer: Normalizer used to build change-detection snapshots
        """
        self.storage = storage
        self.interval = interval_seconds if interval_seconds is not None else CONFIG.sync.interval_seconds
        self.lifetime = lifetime_seconds if lifetime_seconds is not None else CONFIG.sync.lifetime_seconds
        self.adapter_factory = adapter_factory
        self.normalizer = normalizer or ObjectNormalizer()

        self.tasks: Dict[str, asyncio.Task] = {}
        self.deadlines: Dict[str, float] = {}
        self._snapshots: Dict[str, Snapshot] = {}
        self._status_locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _log_structured(self, level: str, message: str, **kwargs):
        """Emit structured JSON log."""
        log_data = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": level.upper(),
            "service": "sync_monitor",
            "message": message,
            **kwargs
        }

        log_line = json.dumps(log_data, default=str)

        if level == "error":
            logger.error(log_line)
        elif level == "warning":
            logger.warning(log_line)
        else:
            logger.info(log_line)

    # ===== STATUS =====

    def _lock_for(self, project_id: str) -> threading.Lock:
        with self._registry_lock:
            if project_id not in self._status_locks:
                self._status_locks[project_id] = threading.Lock()
            return self._status_locks[project_id]

    def _write_status(self, project_id: str, **fields) -> SyncStatus:
        """Read-modify-write the project's sync record under its lock."""
        with self._lock_for(project_id):
            current = self.storage.get_sync_status(project_id) or SyncStatus(project_id=project_id)
            return self.storage.upsert_sync_status(current.model_copy(update=fields))

    def record_discovery(self, project_id: str, objects: List[DiscoveredObject]) -> SyncStatus:
        """
        Record a completed discovery run as a FULL sync.

        Also seeds the change-detection snapshot so the next polling cycle
        only reports what changed since this run.
        """
        self._snapshots[project_id] = fingerprint(objects)
        status = self._write_status(
            project_id,
            sync_type=SyncType.FULL,
            status=SyncState.COMPLETED,
            items_processed=len(objects),
            last_sync_time=utcnow(),
            errors=[]
        )
        self._log_structured(
            "info",
            "Discovery recorded as full sync",
            project_id=project_id,
            items_processed=len(objects)
        )
        return status

    # ===== POLLING =====

    def _probe(self, project_id: str, connection: RepositoryConnection) -> Tuple[Snapshot, Optional[Snapshot]]:
        """
        Re-discover the repository and fingerprint the result.

        Runs in a worker thread. Nothing is committed here; a probe that
        outlives its cycle's timeout must not touch the snapshot or the
        connection.

        Returns:
            (current snapshot, baseline snapshot or None when there is none)
        """
        adapter = self.adapter_factory(connection)
        payload = adapter.discover(connection)
        current = fingerprint(self.normalizer.normalize(payload, project_id))

        previous = self._snapshots.get(project_id)
        if previous is None:
            stored = self.storage.list_objects(project_id)
            previous = fingerprint(stored) if stored else None
        return current, previous

    def _mark_connected(self, connection: RepositoryConnection):
        try:
            self.storage.update_connection(
                connection.id, {"is_active": True, "last_connected": utcnow()}
            )
        except NotFoundError:
            logger.warning(f"Connection {connection.id} no longer exists; sync continues")

    async def _run_cycle(self, project_id: str, connection: RepositoryConnection) -> SyncStatus:
        """
        Run one polling cycle.

        Raises:
            SyncCycleError: If the probe fails or times out
        """
        await asyncio.to_thread(self._write_status, project_id, status=SyncState.SYNCING)

        try:
            current, previous = await asyncio.wait_for(
                asyncio.to_thread(self._probe, project_id, connection),
                timeout=self.interval
            )
        except asyncio.TimeoutError:
            raise SyncCycleError(f"Sync cycle timed out after {self.interval}s") from None
        except Exception as e:
            raise SyncCycleError(str(e)) from e

        full = previous is None
        changed = len(current) if full else count_changes(previous, current)

        # A stopped project keeps no snapshot
        if self.tasks.get(project_id) is asyncio.current_task():
            self._snapshots[project_id] = current
        await asyncio.to_thread(self._mark_connected, connection)

        status = await asyncio.to_thread(
            self._write_status,
            project_id,
            status=SyncState.COMPLETED,
            sync_type=SyncType.FULL if full else SyncType.INCREMENTAL,
            items_processed=changed,
            last_sync_time=utcnow(),
            errors=[]
        )
        self._log_structured(
            "info",
            "Sync cycle completed",
            project_id=project_id,
            items_processed=changed
        )
        return status

    async def _record_failure(self, project_id: str, error: Exception):
        """Log a failed cycle and record it as FAILED; a storage error here is logged only."""
        if not isinstance(error, SyncCycleError):
            error = SyncCycleError(str(error))

        self._log_structured(
            "error",
            "Sync cycle failed",
            project_id=project_id,
            error=str(error)
        )
        try:
            await asyncio.to_thread(
                self._write_status, project_id, status=SyncState.FAILED, errors=[str(error)]
            )
        except Exception as e:
            self._log_structured(
                "error",
                "Could not record sync failure",
                project_id=project_id,
                error=str(e)
            )

    async def _sync_loop(self, project_id: str, connection: RepositoryConnection, deadline: float):
        """Poll until the deadline passes or the task is cancelled."""
        loop = asyncio.get_running_loop()
        self._log_structured("info", "Sync polling started", project_id=project_id)

        try:
            while loop.time() < deadline:
                await asyncio.sleep(min(self.interval, max(0.0, deadline - loop.time())))
                if loop.time() >= deadline:
                    break
                try:
                    await self._run_cycle(project_id, connection)
                except Exception as e:
                    await self._record_failure(project_id, e)

            self._log_structured("info", "Sync lifetime expired", project_id=project_id)
        except asyncio.CancelledError:
            self._log_structured("info", "Sync polling cancelled", project_id=project_id)
            raise
        finally:
            with self._registry_lock:
                if self.tasks.get(project_id) is asyncio.current_task():
                    del self.tasks[project_id]
                    self.deadlines.pop(project_id, None)

    # ===== CONTROL =====

    def is_running(self, project_id: str) -> bool:
        task = self.tasks.get(project_id)
        return task is not None and not task.done()

    def _mark_started(self, project_id: str) -> SyncStatus:
        never_synced = self.storage.get_sync_status(project_id) is None
        return self._write_status(
            project_id,
            status=SyncState.SYNCING,
            sync_type=SyncType.FULL if never_synced else SyncType.INCREMENTAL,
            items_processed=0
        )

    def _current_status(self, project_id: str) -> SyncStatus:
        return self.storage.get_sync_status(project_id) or self._write_status(project_id)

    async def start_sync(self, project_id: str, connection: RepositoryConnection) -> SyncStatus:
        """
        Start polling a project.

        A second call while polling is active does not start another task;
        it returns the current status. The task is registered before the
        status write so concurrent calls cannot both schedule one.

        Args:
            project_id: Project to poll
            connection: The project's repository connection

        Returns:
            Sync status at the time polling was scheduled
        """
        if self.is_running(project_id):
            return await asyncio.to_thread(self._current_status, project_id)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.lifetime
        with self._registry_lock:
            self.deadlines[project_id] = deadline
            task = loop.create_task(self._sync_loop(project_id, connection, deadline))
            self.tasks[project_id] = task

        try:
            status = await asyncio.to_thread(self._mark_started, project_id)
        except Exception:
            self.stop_sync(project_id)
            raise

        self._log_structured(
            "info",
            "Sync start requested",
            project_id=project_id,
            sync_type=status.sync_type.value,
            interval_seconds=self.interval,
            lifetime_seconds=self.lifetime
        )
        return status

    def stop_sync(self, project_id: str) -> bool:
        """
        Cancel a project's polling task without waiting for an in-flight probe.

        Returns:
            True if a running task was cancelled
        """
        with self._registry_lock:
            task = self.tasks.pop(project_id, None)
            self.deadlines.pop(project_id, None)
        self._snapshots.pop(project_id, None)

        if task is None or task.done():
            return False
        task.cancel()
        self._log_structured("info", "Sync stop requested", project_id=project_id)
        return True

    async def shutdown(self):
        """Cancel every polling task."""
        with self._registry_lock:
            tasks = list(self.tasks.values())
            self.tasks.clear()
            self.deadlines.clear()

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._log_structured("info", "Sync monitor stopped", cancelled=len(tasks))


# Global sync monitor instance
_sync_monitor: Optional[SyncMonitor] = None


def get_sync_monitor() -> SyncMonitor:
    """Get global sync monitor instance."""
    global _sync_monitor
    if _sync_monitor is None:
        _sync_monitor = SyncMonitor(get_storage())
    return _sync_monitor


def reset_sync_monitor(monitor: Optional[SyncMonitor] = None):
    """Replace the global instance (used by the app lifespan and tests)."""
    global _sync_monitor
    _sync_monitor = monitor
