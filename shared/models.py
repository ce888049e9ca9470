"""
Shared data models for the ETL migration platform.
These models are used across the engine, the storage facades and the API.
"""
from enum import Enum
from typing import Optional, Dict, Any, List
from datetime import datetime
from uuid import uuid4
from pydantic import BaseModel, Field, model_validator


def new_id() -> str:
    """Generate a new entity identifier."""
    return str(uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the metadata DB stores."""
    return datetime.utcnow()


class ProtocolKind(str, Enum):
    """Repository access protocol."""
    REST = "REST"
    CLI = "CLI"


class ObjectKind(str, Enum):
    """Canonical repository object kinds."""
    WORKFLOW = "WORKFLOW"
    MAPPING = "MAPPING"
    SESSION = "SESSION"
    TRANSFORMATION = "TRANSFORMATION"
    SOURCE = "SOURCE"
    TARGET = "TARGET"

    @property
    def plural(self) -> str:
        """Collection name used by adapters and raw payloads."""
        return f"{self.value.lower()}s"


class ComplexityTier(str, Enum):
    """Structural complexity tier."""
    SIMPLE = "SIMPLE"
    MEDIUM = "MEDIUM"
    COMPLEX = "COMPLEX"


class MigrationStatus(str, Enum):
    """Migration automation feasibility."""
    FULLY_AUTO = "FULLY_AUTO"
    PARTIAL = "PARTIAL"
    MANUAL_REDESIGN = "MANUAL_REDESIGN"


class ProjectStatus(str, Enum):
    """Migration project lifecycle status."""
    DISCOVERY = "DISCOVERY"
    ASSESSMENT = "ASSESSMENT"
    MIGRATION = "MIGRATION"
    COMPLETED = "COMPLETED"


class AssessmentType(str, Enum):
    """Assessment kind."""
    COMPLEXITY = "COMPLEXITY"
    COMPATIBILITY = "COMPATIBILITY"
    DEPENDENCY = "DEPENDENCY"


class IssueType(str, Enum):
    UNSUPPORTED_FUNCTION = "UNSUPPORTED_FUNCTION"
    MISSING_CONNECTION = "MISSING_CONNECTION"
    PARAMETER_MISMATCH = "PARAMETER_MISMATCH"


class IssueSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class IssueStatus(str, Enum):
    OPEN = "OPEN"
    FIXED = "FIXED"
    IGNORED = "IGNORED"


class FunctionComplexity(str, Enum):
    """How hard a legacy function is to convert."""
    DIRECT = "DIRECT"
    MODIFIED = "MODIFIED"
    COMPLEX = "COMPLEX"


class SyncType(str, Enum):
    FULL = "FULL"
    INCREMENTAL = "INCREMENTAL"


class SyncState(str, Enum):
    """Sync monitor state for one project."""
    IDLE = "IDLE"
    SYNCING = "SYNCING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# Coverage bands every classification must respect
FULLY_AUTO_MIN_COVERAGE = 80
MANUAL_REDESIGN_MAX_COVERAGE = 30


def coverage_consistent(status: MigrationStatus, coverage: int) -> bool:
    """
    Check that an automation coverage value agrees with its status.

    Args:
        status: Migration status
        coverage: Automation coverage percentage

    Returns:
        True when the pair is inside the allowed band
    """
    if not 0 <= coverage <= 100:
        return False
    if status == MigrationStatus.FULLY_AUTO:
        return coverage >= FULLY_AUTO_MIN_COVERAGE
    if status == MigrationStatus.MANUAL_REDESIGN:
        return coverage <= MANUAL_REDESIGN_MAX_COVERAGE
    return True


# ===== Repository Connection Models =====

class RepositoryConnection(BaseModel):
    """Legacy repository connection configuration."""
    id: str = Field(default_factory=new_id)
    name: str
    host: str
    port: int = Field(ge=1, le=65535)
    repository_name: str
    username: str
    protocol: ProtocolKind
    credentials_ref: Optional[str] = None
    api_version: Optional[str] = None
    is_active: bool = False
    last_connected: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)


class MigrationProject(BaseModel):
    """A migration project bound to one repository connection."""
    id: str = Field(default_factory=new_id)
    name: str
    description: Optional[str] = None
    connection_id: str
    status: ProjectStatus = ProjectStatus.DISCOVERY
    auto_migration_percentage: int = Field(default=0, ge=0, le=100)
    total_objects: int = Field(default=0, ge=0)
    migrated_objects: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# ===== Discovery Models =====

class RawDiscoveryPayload(BaseModel):
    """
    Adapter output: six loosely typed record lists, one per object kind.

    Record schemas differ by adapter (REST JSON vs tokenized CLI output);
    the normalizer is the only consumer that interprets them.
    """
    workflows: List[Dict[str, Any]] = Field(default_factory=list)
    mappings: List[Dict[str, Any]] = Field(default_factory=list)
    sessions: List[Dict[str, Any]] = Field(default_factory=list)
    transformations: List[Dict[str, Any]] = Field(default_factory=list)
    sources: List[Dict[str, Any]] = Field(default_factory=list)
    targets: List[Dict[str, Any]] = Field(default_factory=list)

    def records_for(self, kind: ObjectKind) -> List[Dict[str, Any]]:
        return getattr(self, kind.plural)

    def counts(self) -> Dict[str, int]:
        return {kind.plural: len(self.records_for(kind)) for kind in ObjectKind}

    @property
    def total(self) -> int:
        return sum(self.counts().values())


class DiscoveredObject(BaseModel):
    """Canonical repository object produced by one discovery run."""
    id: str = Field(default_factory=new_id)
    project_id: str
    name: str
    folder: str = ""
    kind: ObjectKind
    subtype: Optional[str] = None
    complexity: ComplexityTier
    migration_status: MigrationStatus
    automation_coverage: int = Field(ge=0, le=100)
    dependencies: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    low_confidence: bool = False
    last_scanned: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _check_coverage_band(self) -> "DiscoveredObject":
        if not coverage_consistent(self.migration_status, self.automation_coverage):
            raise ValueError(
                f"automation_coverage {self.automation_coverage} is inconsistent "
                f"with migration_status {self.migration_status.value}"
            )
        return self


class DiscoveryResult(BaseModel):
    """Outcome of one discovery run."""
    project_id: str
    total_objects: int
    auto_migration_percentage: int
    object_counts: Dict[str, int]


class ConnectionTestResult(BaseModel):
    """Outcome of a connection liveness probe."""
    connection_id: str
    connected: bool
    tested_at: datetime = Field(default_factory=utcnow)


# ===== Assessment Models =====

class AssessmentResult(BaseModel):
    """Project-level assessment; immutable once created."""
    id: str = Field(default_factory=new_id)
    project_id: str
    object_id: str = "project-level"
    assessment_type: AssessmentType = AssessmentType.COMPLEXITY
    result: ComplexityTier
    confidence: int = Field(ge=0, le=100)
    automation_coverage: int = Field(ge=0, le=100)
    recommendations: List[str] = Field(default_factory=list)
    issues: List[str] = Field(default_factory=list)
    estimated_effort: int = Field(ge=0)
    created_at: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True}


class MigrationIssue(BaseModel):
    """A tracked migration issue for one object."""
    id: str = Field(default_factory=new_id)
    project_id: str
    object_id: str
    issue_type: IssueType
    severity: IssueSeverity
    description: str
    suggested_fix: Optional[str] = None
    is_auto_fixable: bool = False
    status: IssueStatus = IssueStatus.OPEN
    created_at: datetime = Field(default_factory=utcnow)
    resolved_at: Optional[datetime] = None


class FunctionMapping(BaseModel):
    """Legacy expression function and its target-platform equivalent."""
    id: str
    legacy_function: str
    target_equivalent: str
    syntax: str
    examples: List[Dict[str, str]] = Field(default_factory=list)
    complexity: FunctionComplexity
    notes: Optional[str] = None


# ===== Sync Models =====

class SyncStatus(BaseModel):
    """Latest sync health for one project (last-write-wins)."""
    id: str = Field(default_factory=new_id)
    project_id: str
    last_sync_time: Optional[datetime] = None
    sync_type: SyncType = SyncType.INCREMENTAL
    status: SyncState = SyncState.IDLE
    items_processed: int = Field(default=0, ge=0)
    errors: List[str] = Field(default_factory=list)


class DashboardStats(BaseModel):
    """Cross-project statistics."""
    total_projects: int
    active_connections: int
    total_connections: int
    projects_by_status: Dict[str, int]
    avg_automation_coverage: int
