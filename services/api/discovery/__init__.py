"""Repository discovery service."""
from services.api.discovery.discovery_service import DiscoveryService

__all__ = ['DiscoveryService']
