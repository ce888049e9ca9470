"""
tests/conftest.py
-----------------
Shared fixtures: connections, an in-memory storage and an object factory.
"""
from __future__ import annotations

from typing import Callable

import pytest

from services.api.metadata.storage import InMemoryStorage
from shared.models import (
    ComplexityTier,
    DiscoveredObject,
    MigrationProject,
    MigrationStatus,
    ObjectKind,
    ProtocolKind,
    RawDiscoveryPayload,
    RepositoryConnection,
)


@pytest.fixture
def rest_connection() -> RepositoryConnection:
    return RepositoryConnection(
        name="PowerCenter DEV",
        host="pc-dev.example.com",
        port=7333,
        repository_name="DEV_REPO",
        username="admin",
        protocol=ProtocolKind.REST,
        credentials_ref="PC_DEV_PASSWORD",
    )


@pytest.fixture
def cli_connection() -> RepositoryConnection:
    return RepositoryConnection(
        name="PowerCenter PROD",
        host="pc-prod.example.com",
        port=6005,
        repository_name="PROD_REPO",
        username="etl_reader",
        protocol=ProtocolKind.CLI,
        credentials_ref="PC_PROD_PASSWORD",
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def project(storage: InMemoryStorage, rest_connection: RepositoryConnection) -> MigrationProject:
    """A stored project bound to a stored REST connection."""
    storage.create_connection(rest_connection)
    return storage.create_project(
        MigrationProject(name="Sales DW", connection_id=rest_connection.id)
    )


@pytest.fixture
def make_object() -> Callable[..., DiscoveredObject]:
    """Factory for discovered objects with sensible, band-consistent defaults."""
    def _make(
        kind: ObjectKind = ObjectKind.MAPPING,
        name: str = "m_orders",
        project_id: str = "p1",
        subtype: str | None = None,
        status: MigrationStatus = MigrationStatus.FULLY_AUTO,
        coverage: int = 90,
        **kwargs,
    ) -> DiscoveredObject:
        return DiscoveredObject(
            project_id=project_id,
            name=name,
            folder=kwargs.pop("folder", "SALES"),
            kind=kind,
            subtype=subtype,
            complexity=kwargs.pop("complexity", ComplexityTier.SIMPLE),
            migration_status=status,
            automation_coverage=coverage,
            **kwargs,
        )
    return _make


@pytest.fixture
def sample_payload() -> RawDiscoveryPayload:
    """One workflow, two mappings and one unsupported transformation."""
    return RawDiscoveryPayload(
        workflows=[{
            "name": "wf_daily_sales",
            "folder": "SALES",
            "sessions": ["s_m_orders"],
            "dependencies": ["m_orders"],
        }],
        mappings=[
            {"name": "m_orders", "folder": "SALES", "transformations": ["exp_calc"]},
            {"name": "m_customers", "folder": "SALES"},
        ],
        transformations=[
            {"name": "xml_feed", "folder": "SALES", "type": "XML_PARSER", "mappingName": "m_orders"},
        ],
    )
