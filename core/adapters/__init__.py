"""Repository adapters: one implementation per access protocol."""
from core.adapters.base import RepositoryAdapter
from core.adapters.cli_adapter import CliRepositoryAdapter
from core.adapters.rest_adapter import RestRepositoryAdapter
from shared.models import ProtocolKind, RepositoryConnection

_ADAPTERS = {
    ProtocolKind.REST: RestRepositoryAdapter,
    ProtocolKind.CLI: CliRepositoryAdapter,
}


def get_adapter(connection: RepositoryConnection) -> RepositoryAdapter:
    """Select the adapter for a connection's protocol."""
    return _ADAPTERS[connection.protocol]()


__all__ = ['RepositoryAdapter', 'RestRepositoryAdapter', 'CliRepositoryAdapter', 'get_adapter']
