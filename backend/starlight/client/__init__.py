"""Clients for the topology backend."""

from starlight.client.api import StarlightApiClient
from starlight.client.persistence import TopologyPersistence

__all__ = ["StarlightApiClient", "TopologyPersistence"]
