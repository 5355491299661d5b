"""
Imaging Payload Builder.

Builds the JSON body posted to the Foundation ``image_nodes`` and
``ipmi_config`` endpoints from a cluster descriptor, an ordered node list,
a hypervisor selection, the AOS bundle name, advanced options and the
operation flags.

Node order matters: contiguous runs of nodes sharing a block ID form one
block, and hostnames are numbered by position in the list.
"""

from typing import Any, Dict, List, Optional, Sequence, Union

import structlog

from foundation_client.exceptions import InvalidInputError
from foundation_client.schemas import (
    AdvancedOptions,
    ClusterDescriptor,
    HypervisorSelection,
    NodeSpec,
    Operation,
    OperationFlags,
    parse_model,
    parse_optional_model,
)

logger = structlog.get_logger(__name__)

# A missing hypervisor selection means the AHV bundled with AOS
BUNDLED_HYPERVISOR = "kvm"

DEFAULT_IPMI_USER = "ADMIN"
DEFAULT_IPMI_PASSWORD = "ADMIN"
DEFAULT_XS_MASTER_USERNAME = "root"
DEFAULT_XS_MASTER_PASSWORD = "nutanix/4u"


def resolve_operation(operations: Union[Operation, OperationFlags, Dict[str, Any], None]) -> Operation:
    """Resolve caller operation flags into an Operation."""
    if isinstance(operations, Operation):
        return operations
    flags = parse_model(OperationFlags, operations)
    operation = flags.resolve()
    if flags.form_cluster and operation is Operation.IMAGE_ONLY:
        logger.info(
            "cluster_formation_deferred",
            reason="nodes are imaged first, form the cluster with a second call",
        )
    return operation


class PayloadBuilder:
    """
    Builds Foundation imaging payloads.

    The builder holds validated inputs only; build() is a pure function
    of them and may be called repeatedly.
    """

    def __init__(
        self,
        cluster: Union[ClusterDescriptor, Dict[str, Any]],
        nodes: Sequence[Union[NodeSpec, Dict[str, Any]]],
        hypervisor: Union[HypervisorSelection, Dict[str, Any], None],
        aos: Optional[str],
        advanced: Union[AdvancedOptions, Dict[str, Any], None] = None,
        operations: Union[Operation, OperationFlags, Dict[str, Any], None] = None,
    ):
        if not nodes:
            raise InvalidInputError("At least one node is required to build an imaging payload")

        self.cluster = parse_model(ClusterDescriptor, cluster)
        self.nodes: List[NodeSpec] = [parse_model(NodeSpec, node) for node in nodes]
        self.hypervisor = parse_optional_model(HypervisorSelection, hypervisor)
        self.aos = aos
        self.advanced = parse_model(AdvancedOptions, advanced)
        self.operation = resolve_operation(operations)

    @property
    def is_xen(self) -> bool:
        return self.hypervisor is not None and self.hypervisor.type == "xen"

    @property
    def hypervisor_id(self) -> str:
        if self.hypervisor is None:
            return BUNDLED_HYPERVISOR
        return self.hypervisor.os

    def cluster_members(self) -> List[Optional[str]]:
        """CVM IPs of the nodes that form the cluster, in input order."""
        count = self.advanced.number_of_nodes_to_build_cluster_with or len(self.nodes)
        return [node.svm_ip for node in self.nodes[:count]]

    def build(self) -> Dict[str, Any]:
        """Build the imaging payload."""
        first_node = self.nodes[0]
        members = self.cluster_members()
        ntp_servers = self._ntp_servers()

        payload: Dict[str, Any] = {
            "hypervisor_netmask": self.cluster.subnet,
            "hypervisor_gateway": self.cluster.gateway,
            "hypervisor_nameserver": self.cluster.nameservers,
            "rdma_passthrough": bool(self.cluster.rdma_enabled),
            "ipmi_configure_now": self.advanced.configure_ipmi,
            "ipmi_netmask": first_node.ipmi_subnet,
            "ipmi_gateway": first_node.ipmi_gateway,
            "nos_package": self.aos,
            "hypervisor_iso": self._hypervisor_iso(),
            "skip_hypervisor": False,
            "cvm_netmask": self.cluster.subnet,
            "cvm_gateway": self.cluster.gateway,
            "use_foundation_ips": False,
            "clusters": [{
                "cluster_init_now": self.operation.cluster_init_now,
                "cluster_name": self.cluster.name,
                "cluster_external_ip": self.cluster.external_ip,
                "cluster_members": members,
                "single_node_cluster": len(members) == 1,
                "redundancy_factor": self.advanced.rf or self.cluster.redundancy_factor,
                "cvm_dns_servers": self.cluster.nameservers,
                "cvm_ntp_servers": ntp_servers,
                "hypervisor_ntp_servers": ntp_servers,
            }],
            "blocks": self._build_blocks(),
            "tests": {
                "run_diagnostics": False,
                "run_ncc": False,
            },
        }

        if self.hypervisor is None:
            payload["hypervisor"] = BUNDLED_HYPERVISOR
        elif self.hypervisor.os == "hyperv":
            payload["hyperv_sku"] = self.hypervisor.sku

        ucs = self.advanced.ucs
        if ucs is not None:
            payload["ucsm_ip"] = ucs.ucsm_ip
            payload["ucsm_user"] = ucs.ucsm_user
            payload["ucsm_password"] = ucs.ucsm_password

        if self.is_xen:
            payload["xs_master_ip"] = first_node.hypervisor_ip
            payload["xs_master_username"] = self.cluster.xs_master_username or DEFAULT_XS_MASTER_USERNAME
            payload["xs_master_password"] = self.cluster.xs_master_password or DEFAULT_XS_MASTER_PASSWORD

        logger.debug(
            "image_payload_built",
            cluster=self.cluster.name,
            operation=self.operation.value,
            blocks=len(payload["blocks"]),
            nodes=len(self.nodes),
            cluster_members=len(members),
        )
        return payload

    def _ntp_servers(self) -> Optional[List[str]]:
        # NTP falls back to the nameservers when no NTP list is given
        if self.cluster.ntp_servers is not None:
            return self.cluster.ntp_servers
        return self.cluster.nameservers

    def _hypervisor_iso(self) -> Dict[str, Optional[str]]:
        if self.hypervisor is None:
            return {}
        return {self.hypervisor.os: self.hypervisor.filename}

    def _build_blocks(self) -> List[Dict[str, Any]]:
        """Group nodes into blocks by contiguous runs of block ID."""
        blocks: List[Dict[str, Any]] = []
        current: Optional[Dict[str, Any]] = None

        for index, node in enumerate(self.nodes):
            if current is None or node.block_id != current["block_id"]:
                current = {
                    "block_id": node.block_id,
                    "model": node.model,
                    "nodes": [],
                }
                blocks.append(current)
            current["nodes"].append(self._build_node(index, node))

        return blocks

    def _build_node(self, index: int, node: NodeSpec) -> Dict[str, Any]:
        image_now = self.operation.image_now
        record: Dict[str, Any] = {
            "ipmi_ip": node.ipmi_ip,
            "ipmi_mac": node.ipmi_mac or None,
            "ipmi_user": node.ipmi_username or DEFAULT_IPMI_USER,
            "ipmi_password": node.ipmi_password or DEFAULT_IPMI_PASSWORD,
            "ipmi_configure_now": self.advanced.configure_ipmi,
            "hypervisor": self.hypervisor_id,
            "hypervisor_ip": node.hypervisor_ip,
            "hypervisor_hostname": f"{self.cluster.name}-{index + 1}" if image_now else None,
            "ipmi_configure_successful": True,
            "node_position": node.position,
            "ucsm_managed_mode": True if self.advanced.ucs is not None else None,
            "ucsm_node_serial": node.serial or None,
            "xen_config_type": True if self.is_xen else None,
            "image_successful": False,
            "image_now": image_now,
            "cvm_ip": node.svm_ip,
            "node_serial": node.serial,
        }
        if self.advanced.cvm_ram_in_gb:
            record["cvm_gb_ram"] = self.advanced.cvm_ram_in_gb
        return record


def build_image_payload(
    cluster: Union[ClusterDescriptor, Dict[str, Any]],
    nodes: Sequence[Union[NodeSpec, Dict[str, Any]]],
    hypervisor: Union[HypervisorSelection, Dict[str, Any], None],
    aos: Optional[str],
    advanced: Union[AdvancedOptions, Dict[str, Any], None] = None,
    operations: Union[Operation, OperationFlags, Dict[str, Any], None] = None,
) -> Dict[str, Any]:
    """
    Build the Foundation imaging payload.

    Args:
        cluster: Cluster descriptor
        nodes: Ordered nodes to image
        hypervisor: Hypervisor selection, None for the bundled AHV
        aos: Filename of the AOS bundle
        advanced: Advanced Foundation parameters
        operations: Operation flags or a resolved Operation

    Returns:
        Request body for the image_nodes and ipmi_config endpoints

    Raises:
        InvalidInputError: If nodes is empty or the input does not validate
    """
    return PayloadBuilder(cluster, nodes, hypervisor, aos, advanced, operations).build()
