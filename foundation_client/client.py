"""
Foundation API Client.

Async client for the Foundation appliance VM, which discovers, images and
clusters bare-metal nodes. Imaging, IPMI configuration and cluster
formation run on the appliance; this client shapes the requests and
reshapes the responses.

Usage:
    async with FoundationClient("10.38.43.50") as fvm:
        blocks = await fvm.discover_nodes(fetch_extra={"fetch_network_info": True})
        await fvm.image_nodes(cluster, nodes, None, "nutanix_installer.tar.gz", advanced)
"""

from typing import Any, Dict, List, Optional, Sequence, Union

import httpx
import structlog

from foundation_client.core.config import get_settings
from foundation_client.core.logging import redact
from foundation_client.discovery import DiscoveryFilter
from foundation_client.payload import build_image_payload
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
)
from foundation_client.transport import FoundationHttpClient, fixture_transport

logger = structlog.get_logger(__name__)

UNKNOWN_VERSION = "unknown"

ClusterInput = Union[ClusterDescriptor, Dict[str, Any]]
NodesInput = Sequence[Union[NodeSpec, Dict[str, Any]]]
HypervisorInput = Union[HypervisorSelection, Dict[str, Any], None]
AdvancedInput = Union[AdvancedOptions, Dict[str, Any], None]
OperationsInput = Union[Operation, OperationFlags, Dict[str, Any], None]


class FoundationClient:
    """
    Client for one Foundation appliance VM.

    Features:
    - Imaging payload construction for image_nodes / ipmi_config
    - Node discovery with filtering and network detail enrichment
    - Progress, node/cluster logs, network provisioning, version
    """

    def __init__(
        self,
        ip: str,
        timeout: Optional[float] = None,
        mock: Optional[bool] = None,
        logger: Optional[Any] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        http_client: Optional[Any] = None,
    ):
        """
        Initialize the Foundation client.

        Args:
            ip: IP of the Foundation VM
            timeout: Request timeout in seconds (default from settings, 55)
            mock: Answer discovery calls from packaged fixtures. Testing only.
            logger: Optional structlog-style logger for debug logging
            transport: Optional httpx transport for the default HTTP client
            http_client: Optional object with async get(path, params) and
                post(path, body); replaces the default HTTP client
        """
        settings = get_settings()
        self.ip = ip
        self.settings = settings.foundation
        self.redact_secrets = settings.log.redact_secrets
        self.logger = logger or structlog.get_logger(__name__).bind(foundation_ip=ip)
        self.timeout = timeout if timeout is not None else self.settings.timeout_seconds
        self.mock = self.settings.mock if mock is None else mock

        if http_client is None:
            if transport is None and self.mock:
                transport = fixture_transport()
            http_client = FoundationHttpClient(
                base_url=self.settings.base_url(ip),
                timeout_seconds=self.timeout,
                transport=transport,
            )
        self._client = http_client
        self._version: Optional[str] = None

    async def __aenter__(self) -> "FoundationClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        close = getattr(self._client, "close", None)
        if close is not None:
            await close()

    def _debug(self, event: str, data: Any, **kwargs) -> None:
        if self.redact_secrets:
            data = redact(data)
        self.logger.debug(event, data=data, **kwargs)

    # =========================================================================
    # Version
    # =========================================================================

    async def get_version(self) -> str:
        """
        Get the Foundation version.

        The version is advisory: any failure is logged and reported as
        "unknown". The first result is cached for the life of the client.
        """
        if self._version is None:
            try:
                version = await self._client.get("version")
            except Exception as e:
                self.logger.warning("foundation_version_unavailable", error=str(e))
                version = None
            self._version = UNKNOWN_VERSION if version is None else str(version)
        return self._version

    # =========================================================================
    # Imaging
    # =========================================================================

    def build_image_payload(
        self,
        cluster: ClusterInput,
        nodes: NodesInput,
        hypervisor: HypervisorInput,
        aos: Optional[str],
        advanced: AdvancedInput = None,
        operations: OperationsInput = None,
    ) -> Dict[str, Any]:
        """
        Build the imaging payload.

        See foundation_client.payload.build_image_payload for the rules.
        """
        return build_image_payload(cluster, nodes, hypervisor, aos, advanced, operations)

    async def image_nodes(
        self,
        cluster: ClusterInput,
        nodes: NodesInput,
        hypervisor: HypervisorInput,
        aos: Optional[str],
        advanced: AdvancedInput = None,
        operations: OperationsInput = None,
    ) -> Any:
        """
        Image a set of nodes.

        When advanced.configure_ipmi is set, the IPMI interfaces are
        configured first with the same payload.
        """
        payload = self.build_image_payload(cluster, nodes, hypervisor, aos, advanced, operations)

        if payload["ipmi_configure_now"]:
            await self._client.post("ipmi_config", payload)

        self._debug("image_nodes_request", payload)
        result = await self._client.post("image_nodes", payload)
        self.logger.info(
            "image_nodes_started",
            cluster=payload["clusters"][0]["cluster_name"],
            nodes=sum(len(block["nodes"]) for block in payload["blocks"]),
        )
        return result

    async def ipmi_config(
        self,
        cluster: ClusterInput,
        nodes: NodesInput,
        hypervisor: HypervisorInput,
        aos: Optional[str],
        advanced: AdvancedInput = None,
        operations: OperationsInput = None,
    ) -> Any:
        """Configure the IPMI interfaces on the requested nodes."""
        payload = self.build_image_payload(cluster, nodes, hypervisor, aos, advanced, operations)
        self._debug("ipmi_config_request", payload)
        return await self._client.post("ipmi_config", payload)

    async def progress(self) -> Any:
        """Get the imaging progress of the Foundation server."""
        return await self._client.get("progress")

    async def get_node_log(self, node_ip: str, session_id: Optional[str] = None) -> LogContents:
        """Get the imaging log of a node."""
        contents = await self._client.get(
            "node_log", {"hypervisor_ip": node_ip, "session_id": session_id}
        )
        return LogContents(ip=node_ip, log_contents=contents, type="node")

    async def get_cluster_log(self, cluster_ip: str, session_id: Optional[str] = None) -> LogContents:
        """Get the cluster formation log."""
        contents = await self._client.get(
            "cluster_log", {"cvm_ip": cluster_ip, "session_id": session_id}
        )
        return LogContents(ip=cluster_ip, log_contents=contents, type="cluster")

    # =========================================================================
    # Discovery and networking
    # =========================================================================

    async def discover_nodes(
        self,
        filters: Union[DiscoveryFilters, Dict[str, Any], None] = None,
        fetch_extra: Union[FetchExtraOptions, Dict[str, Any], None] = None,
    ) -> List[Dict[str, Any]]:
        """
        Discover nodes running AOS.

        Args:
            filters: include_configured, block_sn, ipv6_address, ipmi_ip
            fetch_extra: fetch_network_info (implied by an ipmi_ip filter)

        Returns:
            Discovered blocks, filtered and optionally enriched with
            network details

        Raises:
            InvalidOptionCombination: include_configured with fetch_network_info
            TransportError: If a request fails
        """
        # Validated before any request is sent
        discovery_filter = DiscoveryFilter(filters, fetch_extra, self.settings.network_details_timeout)

        raw_blocks = await self._client.get("discover_nodes")
        blocks = await discovery_filter.apply(raw_blocks or [], self.node_network_details_array)

        self._debug("discovered_blocks", blocks, count=len(blocks))
        return blocks

    async def node_network_details(self, ipv6_address: str, timeout: Optional[int] = None) -> List[Dict[str, Any]]:
        """Get network details of a single node by its ipv6 link-local address."""
        return await self.node_network_details_array([{"ipv6_address": ipv6_address}], timeout)

    async def node_network_details_array(
        self,
        nodes: Sequence[Dict[str, Any]],
        timeout: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Get network details of several nodes.

        Args:
            nodes: Entries of the form {"ipv6_address": ...}
            timeout: Seconds the appliance waits for the nodes (default 45)
        """
        if timeout is None:
            timeout = self.settings.network_details_timeout
        data = await self._client.post(
            "node_network_details",
            {"nodes": list(nodes), "timeout": str(timeout)},
        )
        self._debug("node_network_details", data)
        return (data or {}).get("nodes", [])

    async def provision_network(self, nodes: Sequence[Union[NodeSpec, Dict[str, Any]]]) -> Any:
        """Provision the network of the given nodes."""
        body = {
            "nodes": [
                node.model_dump(exclude_none=True) if isinstance(node, NodeSpec) else node
                for node in nodes
            ]
        }
        data = await self._client.post("provision_network", body)
        self._debug("provision_network", data)
        return data
