"""
Pytest configuration for partner-billing tests.

This file adds the parent directory to the Python path so that tests
can import from the domain, repositories, services and api modules, and
provides a fake billing store for repository and service tests.
"""

import sys
from pathlib import Path

import pytest

# Add the partner-billing directory to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import httpx  # noqa: E402

from repositories.client import set_client  # noqa: E402


class FakeStore:
    """
    Routes requests by (method, path) to canned JSON responses.

    Unrouted requests answer 404 with a store-style message.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def on(self, method, path, json=None, status_code=200, content=None, handler=None):
        self.routes[(method, path)] = (status_code, json, content, handler)

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": f"Not found: {request.url.path}"})
        status_code, json, content, handler = route
        if handler is not None:
            return handler(request)
        if content is not None:
            return httpx.Response(status_code, content=content)
        return httpx.Response(status_code, json=json)


@pytest.fixture
def store():
    fake = FakeStore()
    set_client(httpx.Client(base_url="http://store.test", transport=httpx.MockTransport(fake.handle)))
    yield fake
    set_client(None)
