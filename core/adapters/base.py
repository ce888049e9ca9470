"""
core/adapters/base.py
---------------------
The ``RepositoryAdapter`` capability shared by both repository protocols.

Design Decision:
    Discovery code depends only on this interface. Protocol kind is
    inspected exactly once, in :func:`core.adapters.get_adapter`.
"""
from __future__ import annotations

import os
from abc import ABC, abstractmethod

from config import CONFIG
from shared.models import RawDiscoveryPayload, RepositoryConnection


class RepositoryAdapter(ABC):
    """
    Protocol-specific access to a legacy repository.

    Implementations must bound every remote call by ``timeout`` and raise
    :class:`shared.errors.RepositoryConnectionError` (or its timeout
    subclass) when the repository cannot be reached as a whole.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout if timeout is not None else CONFIG.adapter.timeout_seconds

    @abstractmethod
    def discover(self, connection: RepositoryConnection) -> RawDiscoveryPayload:
        """Pull raw metadata for all six object kinds."""

    @abstractmethod
    def test_connection(self, connection: RepositoryConnection) -> bool:
        """Cheap, read-only liveness probe. Never raises for connectivity problems."""

    @staticmethod
    def resolve_password(connection: RepositoryConnection) -> str | None:
        """Look up the password named by ``connection.credentials_ref``."""
        if not connection.credentials_ref:
            return None
        return os.getenv(connection.credentials_ref)
