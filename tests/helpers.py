"""Mock transport and fetcher helpers shared by the tests."""

import copy
import json
from typing import Any, Callable, Dict, List

import httpx


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    """Build a mock httpx.Response with JSON body."""
    return httpx.Response(
        status_code=status_code,
        content=json.dumps(data).encode(),
        headers={"content-type": "application/json"},
    )


def text_response(text: str, status_code: int = 200) -> httpx.Response:
    """Build a mock httpx.Response with text body."""
    return httpx.Response(
        status_code=status_code,
        content=text.encode(),
        headers={"content-type": "text/plain"},
    )


class RecordingFetcher:
    """Network details fetcher stub that records its calls."""

    def __init__(self, details: List[Dict[str, Any]]):
        self.details = details
        self.calls: List[List[Dict[str, Any]]] = []
        self.timeouts: List[int] = []

    async def __call__(self, nodes: List[Dict[str, Any]], timeout: int) -> List[Dict[str, Any]]:
        self.calls.append(nodes)
        self.timeouts.append(timeout)
        return copy.deepcopy(self.details)


class RecordingHandler:
    """MockTransport handler that records requests and answers by route."""

    def __init__(self, routes: Dict[tuple, Callable[[httpx.Request], httpx.Response]]):
        self.routes = routes
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = request.url.path.rsplit("/", 1)[-1]
        route = self.routes.get((request.method, endpoint))
        if route is None:
            return json_response({"error": "not found"}, status_code=404)
        return route(request)

    @property
    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)
