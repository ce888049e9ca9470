"""
Migration project routes for the API.
"""
from typing import List

from fastapi import APIRouter, Depends, Response
from fastapi.concurrency import run_in_threadpool

from services.api.assessment import AssessmentService
from services.api.dependencies import (
    get_assessment_service,
    get_discovery_service,
    get_monitor,
    get_storage_facade
)
from services.api.discovery import DiscoveryService
from services.api.metadata import StorageFacade
from services.api.schemas import (
    AssessmentResult,
    DiscoveredObject,
    DiscoveryResult,
    MigrationIssue,
    MigrationProject,
    ProjectCreate,
    ProjectUpdate,
    StopSyncResponse,
    SyncStatus,
    partial
)
from services.api.sync_monitor import SyncMonitor
from shared.errors import NotFoundError

router = APIRouter(prefix="/api/migration-projects", tags=["projects"])


def require_project(storage: StorageFacade, project_id: str) -> MigrationProject:
    project = storage.get_project(project_id)
    if project is None:
        raise NotFoundError("Migration project", project_id)
    return project


@router.get("", response_model=List[MigrationProject])
def list_projects(storage: StorageFacade = Depends(get_storage_facade)):
    """List all migration projects."""
    return storage.list_projects()


@router.post("", response_model=MigrationProject, status_code=201)
def create_project(request: ProjectCreate, storage: StorageFacade = Depends(get_storage_facade)):
    """Create a migration project bound to an existing connection."""
    if storage.get_connection(request.connection_id) is None:
        raise NotFoundError("Repository connection", request.connection_id)
    return storage.create_project(MigrationProject(**request.model_dump()))


@router.get("/{project_id}", response_model=MigrationProject)
def get_project(project_id: str, storage: StorageFacade = Depends(get_storage_facade)):
    return require_project(storage, project_id)


@router.put("/{project_id}", response_model=MigrationProject)
def update_project(
    project_id: str,
    request: ProjectUpdate,
    storage: StorageFacade = Depends(get_storage_facade)
):
    """Partial update; a new connection_id must name an existing connection."""
    updates = partial(request)
    connection_id = updates.get("connection_id")
    if connection_id is not None and storage.get_connection(connection_id) is None:
        raise NotFoundError("Repository connection", connection_id)
    return storage.update_project(project_id, updates)


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: str,
    storage: StorageFacade = Depends(get_storage_facade),
    monitor: SyncMonitor = Depends(get_monitor)
):
    """Delete a project, stopping its sync first."""
    await run_in_threadpool(require_project, storage, project_id)
    monitor.stop_sync(project_id)
    await run_in_threadpool(storage.delete_project, project_id)
    return Response(status_code=204)


# ===== DISCOVERY =====

@router.post("/{project_id}/discover", response_model=DiscoveryResult)
def discover_project(
    project_id: str,
    service: DiscoveryService = Depends(get_discovery_service)
):
    """
    Run a full discovery against the project's repository.

    Replaces the project's objects and moves it to ASSESSMENT.
    """
    return service.discover(project_id)


@router.get("/{project_id}/objects", response_model=List[DiscoveredObject])
def list_objects(project_id: str, storage: StorageFacade = Depends(get_storage_facade)):
    require_project(storage, project_id)
    return storage.list_objects(project_id)


# ===== ASSESSMENT =====

@router.post("/{project_id}/assess", response_model=AssessmentResult)
def assess_project(
    project_id: str,
    service: AssessmentService = Depends(get_assessment_service)
):
    """Run a complexity assessment over the project's current objects."""
    return service.run_assessment(project_id)


@router.get("/{project_id}/assessment", response_model=List[AssessmentResult])
def list_assessments(
    project_id: str,
    service: AssessmentService = Depends(get_assessment_service)
):
    """Assessment history, oldest first."""
    return service.list_assessments(project_id)


@router.get("/{project_id}/issues", response_model=List[MigrationIssue])
def list_issues(project_id: str, storage: StorageFacade = Depends(get_storage_facade)):
    require_project(storage, project_id)
    return storage.list_issues(project_id)


# ===== SYNC =====

@router.get("/{project_id}/sync-status", response_model=SyncStatus)
def get_sync_status(project_id: str, storage: StorageFacade = Depends(get_storage_facade)):
    """Latest sync record; IDLE when the project was never synced."""
    require_project(storage, project_id)
    return storage.get_sync_status(project_id) or SyncStatus(project_id=project_id)


@router.post("/{project_id}/start-sync", response_model=SyncStatus)
async def start_sync(
    project_id: str,
    storage: StorageFacade = Depends(get_storage_facade),
    monitor: SyncMonitor = Depends(get_monitor)
):
    """
    Start periodic polling of the project's repository.

    Calling again while polling is active returns the current status.
    """
    project = await run_in_threadpool(require_project, storage, project_id)
    connection = await run_in_threadpool(storage.get_connection, project.connection_id)
    if connection is None:
        raise NotFoundError("Repository connection", project.connection_id)
    return await monitor.start_sync(project_id, connection)


@router.post("/{project_id}/stop-sync", response_model=StopSyncResponse)
async def stop_sync(
    project_id: str,
    storage: StorageFacade = Depends(get_storage_facade),
    monitor: SyncMonitor = Depends(get_monitor)
):
    await run_in_threadpool(require_project, storage, project_id)
    return StopSyncResponse(project_id=project_id, stopped=monitor.stop_sync(project_id))
