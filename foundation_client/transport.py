"""
HTTP transport for the Foundation API.

FoundationHttpClient wraps an httpx.AsyncClient and exposes the two calls
the Foundation client needs, ``get(path, params)`` and ``post(path, body)``,
returning the decoded response body or raising TransportError.

The transport strategy is chosen at construction: the default network
transport, or fixture_transport() which answers from JSON fixtures shipped
with the package.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import structlog

from foundation_client.exceptions import TransportError

logger = structlog.get_logger(__name__)

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept-Encoding": "chunked",
    "Accept": "application/json",
}


class FoundationHttpClient:
    """
    Async HTTP client bound to one Foundation appliance.

    No retries are attempted; every failure surfaces as TransportError.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 55.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the HTTP client.

        Args:
            base_url: API base URL, e.g. http://10.0.0.5:8000/foundation/
            timeout_seconds: Request timeout
            transport: Optional httpx transport (fixtures, tests)
        """
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=DEFAULT_HEADERS,
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self.transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a Foundation endpoint."""
        if params:
            params = {key: value for key, value in params.items() if value is not None}
        return await self._request("GET", path, params=params or None)

    async def post(self, path: str, body: Any = None) -> Any:
        """POST a JSON body to a Foundation endpoint."""
        return await self._request("POST", path, json_data=body)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Any = None,
    ) -> Any:
        endpoint = path.lstrip("/")
        client = self._get_client()

        try:
            if method == "GET":
                response = await client.get(endpoint, params=params)
            elif method == "POST":
                response = await client.post(endpoint, json=json_data)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")
            response.raise_for_status()

        except httpx.HTTPStatusError as e:
            logger.warning(
                "foundation_http_error",
                method=method,
                path=endpoint,
                status_code=e.response.status_code,
            )
            raise TransportError(
                f"Foundation {method} {endpoint} failed",
                method=method,
                path=endpoint,
                status_code=e.response.status_code,
            ) from e

        except httpx.TimeoutException as e:
            logger.warning("foundation_timeout", method=method, path=endpoint, timeout=self.timeout_seconds)
            raise TransportError(
                f"Foundation {method} {endpoint} timed out after {self.timeout_seconds}s",
                method=method,
                path=endpoint,
            ) from e

        except httpx.RequestError as e:
            logger.warning("foundation_request_error", method=method, path=endpoint, error=str(e))
            raise TransportError(
                f"Foundation {method} {endpoint} failed: {e}",
                method=method,
                path=endpoint,
            ) from e

        return self._decode(method, endpoint, response)

    @staticmethod
    def _decode(method: str, endpoint: str, response: httpx.Response) -> Any:
        """Decode a JSON body; other content types are returned as text."""
        content_type = response.headers.get("content-type", "")
        if not response.content:
            return None
        if "json" not in content_type:
            return response.text
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"Foundation {method} {endpoint} returned invalid JSON",
                method=method,
                path=endpoint,
                status_code=response.status_code,
            ) from e


# =============================================================================
# Fixture transport
# =============================================================================

def load_fixture(name: str) -> Any:
    """Load a JSON fixture shipped with the package."""
    with (FIXTURES_DIR / name).open(encoding="utf-8") as fh:
        return json.load(fh)


FIXTURE_ROUTES: Dict[tuple, str] = {
    ("GET", "discover_nodes"): "discover_nodes_raw.json",
    ("POST", "node_network_details"): "node_network_details.json",
}


def fixture_transport(routes: Optional[Dict[tuple, str]] = None) -> httpx.MockTransport:
    """
    Build a transport that answers Foundation calls from fixtures.

    Unknown routes answer 404.
    """
    routes = routes if routes is not None else FIXTURE_ROUTES

    def handler(request: httpx.Request) -> httpx.Response:
        endpoint = request.url.path.rstrip("/").rsplit("/", 1)[-1]
        fixture = routes.get((request.method, endpoint))
        if fixture is None:
            return httpx.Response(404, json={"error": f"no fixture for {request.method} {endpoint}"})
        return httpx.Response(200, json=load_fixture(fixture))

    return httpx.MockTransport(handler)
