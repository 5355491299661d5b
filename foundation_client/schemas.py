"""
Foundation Client Schemas.

Pydantic models for the requests accepted by the Foundation client.
Every field accepts both its Python name and the camelCase name used by
Foundation request documents (e.g. ``svm_ip`` or ``svmIP``), so callers
may pass plain dicts as well as model instances.
"""

from enum import Enum
from typing import Any, List, Literal, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from foundation_client.exceptions import InvalidInputError

ModelT = TypeVar("ModelT", bound=BaseModel)


class RequestModel(BaseModel):
    """Base class for request models."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# =============================================================================
# Imaging Request Models
# =============================================================================

class ClusterDescriptor(RequestModel):
    """Cluster to form from the imaged nodes."""

    name: str = Field(..., min_length=1, description="Cluster name, also the hostname prefix")
    external_ip: Optional[str] = Field(None, alias="externalIP")
    gateway: Optional[str] = None
    subnet: Optional[str] = None
    ntp_servers: Optional[List[str]] = Field(None, alias="ntpServer")
    nameservers: Optional[List[str]] = Field(None, alias="nameserver")
    rdma_enabled: bool = Field(False, alias="rdmaEnabled")
    redundancy_factor: Optional[int] = Field(None, alias="redundancyFactor")

    # XenServer pool master credentials
    xs_master_username: Optional[str] = None
    xs_master_password: Optional[str] = None

    @field_validator("ntp_servers", "nameservers", mode="before")
    @classmethod
    def split_server_list(cls, v):
        if isinstance(v, str):
            return [server.strip() for server in v.split(",") if server.strip()]
        return v


class NodeSpec(RequestModel):
    """A bare-metal node to image."""

    ipmi_ip: Optional[str] = Field(None, alias="ipmiIP")
    ipmi_mac: Optional[str] = Field(None, alias="ipmiMac")
    ipmi_username: Optional[str] = Field(None, alias="ipmiUsername")
    ipmi_password: Optional[str] = Field(None, alias="ipmiPassword")
    ipmi_subnet: Optional[str] = Field(None, alias="ipmiSubnet")
    ipmi_gateway: Optional[str] = Field(None, alias="ipmiGateway")
    hypervisor_ip: Optional[str] = Field(None, alias="hypervisorIP")
    svm_ip: Optional[str] = Field(None, alias="svmIP", description="CVM IP of the node")
    position: Optional[str] = None
    serial: Optional[str] = None
    block_id: Optional[str] = Field(None, alias="blockID")
    model: Optional[str] = None


class HypervisorSelection(RequestModel):
    """Hypervisor installer to use instead of the bundled AHV."""

    os: str = Field(..., min_length=1)
    type: Optional[str] = None
    sku: Optional[str] = None  # hyperv only
    filename: Optional[str] = None


class UcsCredentials(RequestModel):
    """Cisco UCS Manager access."""

    ucsm_ip: Optional[str] = Field(None, alias="ucsmIP")
    ucsm_user: Optional[str] = Field(None, alias="ucsmUser")
    ucsm_password: Optional[str] = Field(None, alias="ucsmPassword")


class AdvancedOptions(RequestModel):
    """Advanced Foundation parameters."""

    number_of_nodes_to_build_cluster_with: Optional[int] = Field(
        None, ge=0, alias="numberOfNodesToBuildClusterWith"
    )
    configure_ipmi: bool = Field(False, alias="configureIPMI")
    ucs: Optional[UcsCredentials] = None
    cvm_ram_in_gb: Optional[Union[int, float]] = Field(None, alias="cvmRamInGB")
    rf: Optional[int] = None


class Operation(str, Enum):
    """What a single imaging request asks Foundation to do."""

    IMAGE_ONLY = "image_only"
    FORM_CLUSTER_ONLY = "form_cluster_only"

    @property
    def image_now(self) -> bool:
        return self is Operation.IMAGE_ONLY

    @property
    def cluster_init_now(self) -> bool:
        return self is Operation.FORM_CLUSTER_ONLY


class OperationFlags(RequestModel):
    """
    Caller-facing operation flags.

    Imaging and cluster formation are two separate calls. A request with
    form_cluster=True images the nodes first; the cluster is then formed by
    a second call with form_cluster=True and image_nodes=False.
    """

    image_nodes: Optional[bool] = Field(None, alias="imageNodes")
    form_cluster: Optional[bool] = Field(None, alias="formCluster")

    def resolve(self) -> Operation:
        """Resolve the flags into a single Operation."""
        if self.form_cluster:
            if self.image_nodes is False:
                return Operation.FORM_CLUSTER_ONLY
            return Operation.IMAGE_ONLY
        if self.image_nodes is False:
            raise InvalidInputError(
                "Operations request neither node imaging nor cluster formation"
            )
        return Operation.IMAGE_ONLY


# =============================================================================
# Discovery Models
# =============================================================================

class DiscoveryFilters(RequestModel):
    """Filters applied to discovered nodes."""

    include_configured: bool = Field(False, alias="includeConfigured")
    block_sn: Optional[str] = Field(None, alias="blockSN")
    ipv6_address: Optional[str] = Field(None, alias="ipv6Address")
    ipmi_ip: Optional[str] = Field(None, alias="ipmiIP")


class FetchExtraOptions(RequestModel):
    """Extra details to fetch for discovered nodes."""

    fetch_network_info: Optional[bool] = Field(None, alias="fetchNetworkInfo")


class LogContents(BaseModel):
    """Imaging or cluster formation log of one node or cluster."""

    ip: str
    log_contents: Any = None
    type: Literal["node", "cluster"]


# =============================================================================
# Helpers
# =============================================================================

def parse_model(model_cls: Type[ModelT], value: Any) -> ModelT:
    """
    Coerce a model instance, mapping or None into model_cls.

    Raises:
        InvalidInputError: If the value does not validate
    """
    if isinstance(value, model_cls):
        return value
    if value is None:
        value = {}
    try:
        return model_cls.model_validate(value)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid {model_cls.__name__}: {e}") from e


def parse_optional_model(model_cls: Type[ModelT], value: Any) -> Optional[ModelT]:
    """Like parse_model, but None stays None."""
    if value is None:
        return None
    return parse_model(model_cls, value)
