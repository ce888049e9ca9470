"""
Repository connection routes for the API.
"""
from typing import List

from fastapi import APIRouter, Depends, Response

from services.api.dependencies import get_discovery_service, get_storage_facade
from services.api.discovery import DiscoveryService
from services.api.metadata import StorageFacade
from services.api.schemas import (
    ConnectionCreate,
    ConnectionTestResult,
    ConnectionUpdate,
    RepositoryConnection,
    partial
)
from shared.errors import NotFoundError

router = APIRouter(prefix="/api/repository-connections", tags=["connections"])


@router.get("", response_model=List[RepositoryConnection])
def list_connections(storage: StorageFacade = Depends(get_storage_facade)):
    """List all repository connections."""
    return storage.list_connections()


@router.post("", response_model=RepositoryConnection, status_code=201)
def create_connection(
    request: ConnectionCreate,
    storage: StorageFacade = Depends(get_storage_facade)
):
    """Register a legacy repository connection."""
    return storage.create_connection(RepositoryConnection(**request.model_dump()))


@router.get("/{connection_id}", response_model=RepositoryConnection)
def get_connection(connection_id: str, storage: StorageFacade = Depends(get_storage_facade)):
    connection = storage.get_connection(connection_id)
    if connection is None:
        raise NotFoundError("Repository connection", connection_id)
    return connection


@router.put("/{connection_id}", response_model=RepositoryConnection)
def update_connection(
    connection_id: str,
    request: ConnectionUpdate,
    storage: StorageFacade = Depends(get_storage_facade)
):
    return storage.update_connection(connection_id, partial(request))


@router.delete("/{connection_id}", status_code=204)
def delete_connection(connection_id: str, storage: StorageFacade = Depends(get_storage_facade)):
    storage.delete_connection(connection_id)
    return Response(status_code=204)


@router.post("/{connection_id}/test", response_model=ConnectionTestResult)
def test_connection(
    connection_id: str,
    service: DiscoveryService = Depends(get_discovery_service)
):
    """
    Probe a repository connection.

    Updates the connection's active flag and last-connected time.
    """
    return service.test_connection(connection_id)
