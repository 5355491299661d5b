"""
Discovered Node Filtering.

Filters the block list returned by the Foundation ``discover_nodes``
endpoint and optionally enriches the remaining nodes with the records
returned by ``node_network_details``.

The IPMI IP of a node is only known after enrichment, so filtering by
IPMI IP implies fetching network details.
"""

import copy
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

import structlog

from foundation_client.exceptions import InvalidOptionCombination
from foundation_client.schemas import DiscoveryFilters, FetchExtraOptions, parse_model

logger = structlog.get_logger(__name__)

DEFAULT_NETWORK_DETAILS_TIMEOUT = 45

NetworkDetailsFetcher = Callable[[List[Dict[str, str]], int], Awaitable[List[Dict[str, Any]]]]


def resolve_discovery_options(
    filters: Union[DiscoveryFilters, Dict[str, Any], None] = None,
    fetch_extra: Union[FetchExtraOptions, Dict[str, Any], None] = None,
) -> Tuple[DiscoveryFilters, bool]:
    """
    Validate discovery options.

    Returns:
        Tuple of (filters, fetch_network_info)

    Raises:
        InvalidOptionCombination: If configured nodes are included while
            network details are requested
    """
    filters = parse_model(DiscoveryFilters, filters)
    extra = parse_model(FetchExtraOptions, fetch_extra)

    fetch_network_info = extra.fetch_network_info
    if fetch_network_info is None:
        fetch_network_info = bool(filters.ipmi_ip)

    if filters.include_configured and fetch_network_info:
        raise InvalidOptionCombination(
            "includeConfigured and fetchNetworkInfo cannot be used together"
        )

    return filters, fetch_network_info


def address_matches(address: Any, wanted: str) -> bool:
    """Check whether a node's ipv6 address (string or list) contains wanted."""
    if address is None:
        return False
    if isinstance(address, str):
        return wanted in address
    return wanted in list(address)


def deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge source into target in place.

    Nested dicts are merged key by key and lists element by element;
    any other source value replaces the target value.
    """
    for key, value in source.items():
        existing = target.get(key)
        if isinstance(value, dict) and isinstance(existing, dict):
            deep_merge(existing, value)
        elif isinstance(value, list) and isinstance(existing, list):
            _merge_lists(existing, value)
        else:
            target[key] = copy.deepcopy(value)
    return target


def _merge_lists(target: List[Any], source: List[Any]) -> None:
    for index, value in enumerate(source):
        if index >= len(target):
            target.append(copy.deepcopy(value))
        elif isinstance(value, dict) and isinstance(target[index], dict):
            deep_merge(target[index], value)
        elif isinstance(value, list) and isinstance(target[index], list):
            _merge_lists(target[index], value)
        else:
            target[index] = copy.deepcopy(value)


def merge_network_details(
    blocks: List[Dict[str, Any]],
    details: Sequence[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Merge network detail records into nodes with the same ipv6 address."""
    for block in blocks:
        for node in block.get("nodes", []):
            for record in details:
                if node.get("ipv6_address") == record.get("ipv6_address"):
                    deep_merge(node, record)
    return blocks


class DiscoveryFilter:
    """Applies discovery filters and network detail enrichment."""

    def __init__(
        self,
        filters: Union[DiscoveryFilters, Dict[str, Any], None] = None,
        fetch_extra: Union[FetchExtraOptions, Dict[str, Any], None] = None,
        network_details_timeout: int = DEFAULT_NETWORK_DETAILS_TIMEOUT,
    ):
        self.filters, self.fetch_network_info = resolve_discovery_options(filters, fetch_extra)
        self.network_details_timeout = network_details_timeout

    async def apply(
        self,
        raw_blocks: Sequence[Dict[str, Any]],
        fetch_network_details: Optional[NetworkDetailsFetcher] = None,
    ) -> List[Dict[str, Any]]:
        """
        Filter discovered blocks.

        Args:
            raw_blocks: Blocks as returned by discover_nodes (not modified)
            fetch_network_details: Async callable returning network detail
                records for a list of {"ipv6_address": ...} entries and the
                seconds the appliance should wait for the nodes

        Returns:
            Filtered blocks, enriched with network details when requested
        """
        filters = self.filters
        blocks = copy.deepcopy(list(raw_blocks))

        if filters.block_sn:
            blocks = [block for block in blocks if block.get("block_id") == filters.block_sn]
        if not blocks:
            return []

        for block in blocks:
            nodes = block.get("nodes") or []
            if not filters.include_configured:
                nodes = [node for node in nodes if not node.get("configured")]
            if filters.ipv6_address:
                nodes = [
                    node for node in nodes
                    if address_matches(node.get("ipv6_address"), filters.ipv6_address)
                ]
            block["nodes"] = nodes

        if self.fetch_network_info:
            await self._enrich(blocks, fetch_network_details)

        if filters.ipmi_ip:
            blocks = self._filter_by_ipmi_ip(blocks, filters.ipmi_ip)

        return blocks

    async def _enrich(
        self,
        blocks: List[Dict[str, Any]],
        fetch_network_details: Optional[NetworkDetailsFetcher],
    ) -> None:
        if fetch_network_details is None:
            raise ValueError("fetch_network_details is required to fetch network info")

        request = [
            {"ipv6_address": node.get("ipv6_address")}
            for block in blocks
            for node in block["nodes"]
            if not self.filters.ipv6_address
            or address_matches(node.get("ipv6_address"), self.filters.ipv6_address)
        ]
        if not request:
            logger.debug("network_details_skipped", reason="no nodes left after filtering")
            return

        details = await fetch_network_details(request, self.network_details_timeout)
        merge_network_details(blocks, details or [])

    @staticmethod
    def _filter_by_ipmi_ip(blocks: List[Dict[str, Any]], ipmi_ip: str) -> List[Dict[str, Any]]:
        # Only the first matching block is narrowed to the matching nodes
        blocks = [
            block for block in blocks
            if any(node.get("ipmi_ip") == ipmi_ip for node in block["nodes"])
        ]
        if blocks:
            blocks[0]["nodes"] = [node for node in blocks[0]["nodes"] if node.get("ipmi_ip") == ipmi_ip]
        return blocks


async def filter_discovered_blocks(
    raw_blocks: Sequence[Dict[str, Any]],
    filters: Union[DiscoveryFilters, Dict[str, Any], None] = None,
    fetch_extra: Union[FetchExtraOptions, Dict[str, Any], None] = None,
    fetch_network_details: Optional[NetworkDetailsFetcher] = None,
    network_details_timeout: int = DEFAULT_NETWORK_DETAILS_TIMEOUT,
) -> List[Dict[str, Any]]:
    """Filter and enrich discovered blocks. See DiscoveryFilter.apply."""
    discovery_filter = DiscoveryFilter(filters, fetch_extra, network_details_timeout)
    return await discovery_filter.apply(raw_blocks, fetch_network_details)
