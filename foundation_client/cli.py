"""
Foundation command line client.

Usage:
    foundation-client --ip 10.38.43.50 discover [--network-info]
    foundation-client --ip 10.38.43.50 image request.yaml
    foundation-client payload request.yaml

Request files are YAML (or JSON) documents with the keys
cluster, nodes, hypervisor, aos, advanced and operations.
Results are printed to stdout as JSON.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
import yaml

from foundation_client.client import FoundationClient
from foundation_client.core.config import get_settings
from foundation_client.core.logging import configure_logging
from foundation_client.exceptions import InvalidInputError, TransportError
from foundation_client.payload import build_image_payload

logger = structlog.get_logger(__name__)

EXIT_TRANSPORT_ERROR = 1
EXIT_INVALID_INPUT = 2

REQUEST_KEYS = ("cluster", "nodes", "hypervisor", "aos", "advanced", "operations")


def load_request(path: str) -> Dict[str, Any]:
    """Load an imaging request document."""
    try:
        with Path(path).open(encoding="utf-8") as fh:
            document = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as e:
        raise InvalidInputError(f"Cannot read request file {path}: {e}") from e

    if not isinstance(document, dict):
        raise InvalidInputError(f"Request file {path} must contain a mapping")
    unknown = set(document) - set(REQUEST_KEYS)
    if unknown:
        raise InvalidInputError(f"Unknown request keys: {', '.join(sorted(unknown))}")
    return {key: document.get(key) for key in REQUEST_KEYS}


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="foundation-client",
        description="Discover, image and cluster nodes through a Foundation VM",
    )
    parser.add_argument(
        "--ip",
        default=settings.foundation.ip,
        help="IP of the Foundation VM (env: FOUNDATION_IP)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Request timeout in seconds",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Answer from packaged fixtures instead of a Foundation VM",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: LOG_LEVEL or INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("version", help="Show the Foundation version")
    subparsers.add_parser("progress", help="Show imaging progress")

    discover = subparsers.add_parser("discover", help="Discover nodes")
    discover.add_argument("--include-configured", action="store_true", help="Include configured nodes")
    discover.add_argument("--block-sn", help="Filter by block serial number")
    discover.add_argument("--ipv6-address", help="Filter by CVM ipv6 link-local address")
    discover.add_argument("--ipmi-ip", help="Filter by IPMI IP (fetches network details)")
    discover.add_argument("--network-info", action="store_true", default=None, help="Fetch network details")

    details = subparsers.add_parser("network-details", help="Fetch node network details")
    details.add_argument("ipv6_addresses", nargs="+", metavar="IPV6")
    details.add_argument("--wait", type=int, default=None, help="Seconds the appliance waits for nodes")

    for name, help_text in (("node-log", "Show a node imaging log"), ("cluster-log", "Show a cluster log")):
        log_parser = subparsers.add_parser(name, help=help_text)
        log_parser.add_argument("ip_address", metavar="IP")
        log_parser.add_argument("--session-id", help="Foundation session ID")

    for name, help_text in (
        ("payload", "Print the imaging payload for a request file"),
        ("image", "Image nodes from a request file"),
        ("ipmi-config", "Configure IPMI from a request file"),
    ):
        request_parser = subparsers.add_parser(name, help=help_text)
        request_parser.add_argument("request_file", metavar="REQUEST_FILE")

    return parser


async def run_command(args: argparse.Namespace) -> Any:
    """Run a parsed command and return its JSON-serializable result."""
    if args.command == "payload":
        return build_image_payload(**load_request(args.request_file))

    if not args.ip and not args.mock:
        raise InvalidInputError("--ip (or FOUNDATION_IP) is required")

    async with FoundationClient(args.ip or "0.0.0.0", timeout=args.timeout, mock=args.mock or None) as client:
        if args.command == "version":
            return await client.get_version()
        if args.command == "progress":
            return await client.progress()
        if args.command == "discover":
            filters = {
                "include_configured": args.include_configured,
                "block_sn": args.block_sn,
                "ipv6_address": args.ipv6_address,
                "ipmi_ip": args.ipmi_ip,
            }
            return await client.discover_nodes(filters, {"fetch_network_info": args.network_info})
        if args.command == "network-details":
            nodes = [{"ipv6_address": address} for address in args.ipv6_addresses]
            return await client.node_network_details_array(nodes, args.wait)
        if args.command == "node-log":
            return (await client.get_node_log(args.ip_address, args.session_id)).model_dump()
        if args.command == "cluster-log":
            return (await client.get_cluster_log(args.ip_address, args.session_id)).model_dump()
        if args.command == "image":
            return await client.image_nodes(**load_request(args.request_file))
        if args.command == "ipmi-config":
            return await client.ipmi_config(**load_request(args.request_file))

    raise InvalidInputError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    log_settings = get_settings().log
    if args.log_level:
        log_settings = log_settings.model_copy(update={"level": args.log_level})
    configure_logging(log_settings)

    try:
        result = asyncio.run(run_command(args))
    except InvalidInputError as e:
        logger.error("invalid_input", error=e.message)
        return EXIT_INVALID_INPUT
    except TransportError as e:
        logger.error("transport_error", error=str(e), path=e.path, status_code=e.status_code)
        return EXIT_TRANSPORT_ERROR

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
