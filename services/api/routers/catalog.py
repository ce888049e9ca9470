"""
Function mapping and dashboard routes for the API.
"""
from typing import List

from fastapi import APIRouter, Depends

from services.api.dependencies import get_discovery_service, get_storage_facade
from services.api.discovery import DiscoveryService
from services.api.metadata import StorageFacade
from services.api.schemas import DashboardStats, FunctionMapping
from shared.errors import NotFoundError

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/function-mappings", response_model=List[FunctionMapping])
def list_function_mappings(storage: StorageFacade = Depends(get_storage_facade)):
    """Legacy expression functions and their target equivalents."""
    return storage.list_function_mappings()


@router.get("/function-mappings/{function}", response_model=FunctionMapping)
def get_function_mapping(function: str, storage: StorageFacade = Depends(get_storage_facade)):
    mapping = storage.get_function_mapping(function)
    if mapping is None:
        raise NotFoundError("Function mapping", function)
    return mapping


@router.get("/dashboard/stats", response_model=DashboardStats)
def dashboard_stats(service: DiscoveryService = Depends(get_discovery_service)):
    return service.dashboard_stats()
