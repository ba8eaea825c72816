"""
Gateway package initialization.

Exports:
- Gateway: protocol the collector consumes.
- D21SClient: HTTP implementation against the Disruptive Technologies API.
- UnavailableGateway: degraded-mode stand-in when the client cannot be built.
- Domain snapshots: Project, DataConnector, ConnectorMetrics.
"""

from .client import (
    ConfigurationError,
    D21SClient,
    Gateway,
    GatewayError,
    UnavailableGateway,
)
from .models import ConnectorMetrics, DataConnector, Project

__all__ = [
    "Gateway",
    "GatewayError",
    "ConfigurationError",
    "D21SClient",
    "UnavailableGateway",
    "Project",
    "DataConnector",
    "ConnectorMetrics",
]
