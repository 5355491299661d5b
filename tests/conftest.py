"""Pytest configuration and shared fixtures for foundation_client tests."""

import copy
from typing import Any, Dict, List

import pytest

from foundation_client.core.config import get_settings
from foundation_client.transport import load_fixture
from helpers import RecordingFetcher

FOUNDATION_IP = "10.38.43.50"

CLUSTER_INFO: Dict[str, Any] = {
    "name": "poc-cluster",
    "externalIP": "10.38.43.80",
    "gateway": "10.38.43.1",
    "subnet": "255.255.255.0",
    "ntpServer": ["0.pool.ntp.org", "1.pool.ntp.org"],
    "nameserver": ["10.38.43.10"],
    "rdmaEnabled": False,
}

NODES: List[Dict[str, Any]] = [
    {
        "ipmiIP": "10.38.43.33",
        "ipmiMac": "0c:c4:7a:00:00:01",
        "ipmiSubnet": "255.255.255.0",
        "ipmiGateway": "10.38.43.1",
        "hypervisorIP": "10.38.43.61",
        "svmIP": "10.38.43.71",
        "position": "A",
        "serial": "ZM18S0A0001",
        "blockID": "18SM6F500070",
        "model": "NX-1065-G6",
    },
    {
        "ipmiIP": "10.38.43.34",
        "ipmiUsername": "root",
        "ipmiPassword": "calvin",
        "ipmiSubnet": "255.255.0.0",
        "ipmiGateway": "10.38.0.1",
        "hypervisorIP": "10.38.43.62",
        "svmIP": "10.38.43.72",
        "position": "B",
        "serial": "ZM18S0A0002",
        "blockID": "18SM6F500070",
        "model": "NX-1065-G6",
    },
    {
        "ipmiIP": "10.38.43.35",
        "hypervisorIP": "10.38.43.63",
        "svmIP": "10.38.43.73",
        "position": "A",
        "serial": "ZM18S0B0001",
        "blockID": "18SM6F500112",
        "model": "NX-3060-G6",
    },
]


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Settings are cached; rebuild them from a clean environment for every test."""
    for name in (
        "FOUNDATION_MOCK",
        "FOUNDATION_IP",
        "FOUNDATION_PORT",
        "FOUNDATION_TIMEOUT_SECONDS",
        "FOUNDATION_NETWORK_DETAILS_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def cluster_info() -> Dict[str, Any]:
    return copy.deepcopy(CLUSTER_INFO)


@pytest.fixture
def nodes() -> List[Dict[str, Any]]:
    return copy.deepcopy(NODES)


@pytest.fixture
def raw_blocks() -> List[Dict[str, Any]]:
    return load_fixture("discover_nodes_raw.json")


@pytest.fixture
def network_details() -> List[Dict[str, Any]]:
    return load_fixture("node_network_details.json")["nodes"]


@pytest.fixture
def fetcher(network_details) -> RecordingFetcher:
    return RecordingFetcher(network_details)
