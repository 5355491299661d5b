"""
Foundation client package.

Async client for the Foundation appliance VM HTTP API, used to discover,
image and cluster bare-metal nodes.

Usage:
    from foundation_client import FoundationClient

    async with FoundationClient("10.38.43.50") as fvm:
        blocks = await fvm.discover_nodes()
"""

from foundation_client.client import UNKNOWN_VERSION, FoundationClient
from foundation_client.discovery import DiscoveryFilter, filter_discovered_blocks, merge_network_details
from foundation_client.exceptions import (
    FoundationError,
    InvalidInputError,
    InvalidOptionCombination,
    TransportError,
)
from foundation_client.payload import PayloadBuilder, build_image_payload
from foundation_client.schemas import (
    AdvancedOptions,
    ClusterDescriptor,
    DiscoveryFilters,
    FetchExtraOptions,
    HypervisorSelection,
    LogContents,
    NodeSpec,
    Operation,
    OperationFlags,
    UcsCredentials,
)
from foundation_client.transport import FoundationHttpClient, fixture_transport

__version__ = "1.0.0"

__all__ = [
    # Client
    "FoundationClient",
    "UNKNOWN_VERSION",
    # Core logic
    "PayloadBuilder",
    "build_image_payload",
    "DiscoveryFilter",
    "filter_discovered_blocks",
    "merge_network_details",
    # Transport
    "FoundationHttpClient",
    "fixture_transport",
    # Schemas
    "AdvancedOptions",
    "ClusterDescriptor",
    "DiscoveryFilters",
    "FetchExtraOptions",
    "HypervisorSelection",
    "LogContents",
    "NodeSpec",
    "Operation",
    "OperationFlags",
    "UcsCredentials",
    # Errors
    "FoundationError",
    "InvalidInputError",
    "InvalidOptionCombination",
    "TransportError",
]
