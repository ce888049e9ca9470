"""
FastAPI dependencies shared by the routers.
"""
from services.api.assessment import AssessmentService
from services.api.discovery import DiscoveryService
from services.api.metadata import StorageFacade, get_storage
from services.api.sync_monitor import SyncMonitor, get_sync_monitor


def get_storage_facade() -> StorageFacade:
    """Dependency: Get storage facade."""
    return get_storage()


def get_monitor() -> SyncMonitor:
    """Dependency: Get sync monitor."""
    return get_sync_monitor()


def get_discovery_service() -> DiscoveryService:
    """Dependency: Get discovery service."""
    return DiscoveryService(get_storage(), get_sync_monitor())


def get_assessment_service() -> AssessmentService:
    """Dependency: Get assessment service."""
    return AssessmentService(get_storage())
