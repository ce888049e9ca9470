"""
Migration issue routes for the API.
"""
from fastapi import APIRouter, Depends

from services.api.dependencies import get_storage_facade
from services.api.metadata import StorageFacade
from services.api.schemas import IssueCreate, IssueUpdate, MigrationIssue, partial
from shared.errors import NotFoundError

router = APIRouter(prefix="/api/migration-issues", tags=["issues"])


@router.post("", response_model=MigrationIssue, status_code=201)
def create_issue(request: IssueCreate, storage: StorageFacade = Depends(get_storage_facade)):
    if storage.get_project(request.project_id) is None:
        raise NotFoundError("Migration project", request.project_id)
    return storage.create_issue(MigrationIssue(**request.model_dump()))


@router.put("/{issue_id}", response_model=MigrationIssue)
def update_issue(
    issue_id: str,
    request: IssueUpdate,
    storage: StorageFacade = Depends(get_storage_facade)
):
    """Update an issue; marking it FIXED stamps its resolution time."""
    return storage.update_issue(issue_id, partial(request))
