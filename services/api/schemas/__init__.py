"""Pydantic schemas for API request/response models."""
from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, Field

# Re-export shared models for API use
from shared.models import (
    RepositoryConnection,
    MigrationProject,
    DiscoveredObject,
    DiscoveryResult,
    ConnectionTestResult,
    AssessmentResult,
    MigrationIssue,
    FunctionMapping,
    SyncStatus,
    DashboardStats,
    ProtocolKind,
    ProjectStatus,
    IssueType,
    IssueSeverity,
    IssueStatus
)

__all__ = [
    'RepositoryConnection',
    'MigrationProject',
    'DiscoveredObject',
    'DiscoveryResult',
    'ConnectionTestResult',
    'AssessmentResult',
    'MigrationIssue',
    'FunctionMapping',
    'SyncStatus',
    'DashboardStats',
    'ConnectionCreate',
    'ConnectionUpdate',
    'ProjectCreate',
    'ProjectUpdate',
    'IssueCreate',
    'IssueUpdate',
    'StopSyncResponse',
    'HealthResponse',
    'partial'
]


def partial(request: BaseModel) -> Dict[str, Any]:
    """Fields the client actually sent, for partial updates."""
    return request.model_dump(exclude_unset=True)


class ConnectionCreate(BaseModel):
    """Request to register a repository connection."""
    name: str = Field(min_length=1)
    host: str = Field(min_length=1)
    port: int = Field(ge=1, le=65535)
    repository_name: str = Field(min_length=1)
    username: str = Field(min_length=1)
    protocol: ProtocolKind
    credentials_ref: Optional[str] = None
    api_version: Optional[str] = None


class ConnectionUpdate(BaseModel):
    """Partial update of a repository connection."""
    name: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    repository_name: Optional[str] = None
    username: Optional[str] = None
    protocol: Optional[ProtocolKind] = None
    credentials_ref: Optional[str] = None
    api_version: Optional[str] = None


class ProjectCreate(BaseModel):
    """Request to create a migration project."""
    name: str = Field(min_length=1)
    description: Optional[str] = None
    connection_id: str


class ProjectUpdate(BaseModel):
    """Partial update of a migration project."""
    name: Optional[str] = None
    description: Optional[str] = None
    connection_id: Optional[str] = None
    status: Optional[ProjectStatus] = None
    migrated_objects: Optional[int] = Field(default=None, ge=0)


class IssueCreate(BaseModel):
    """Request to track a migration issue by hand."""
    project_id: str
    object_id: str
    issue_type: IssueType
    severity: IssueSeverity
    description: str = Field(min_length=1)
    suggested_fix: Optional[str] = None
    is_auto_fixable: bool = False


class IssueUpdate(BaseModel):
    """Partial update of a migration issue."""
    status: Optional[IssueStatus] = None
    severity: Optional[IssueSeverity] = None
    description: Optional[str] = None
    suggested_fix: Optional[str] = None


class StopSyncResponse(BaseModel):
    """Response after stopping a project's sync."""
    project_id: str
    stopped: bool


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: datetime
    storage: bool
    active_syncs: int
