"""
Pytest configuration and shared fixtures.

This module provides common fixtures for testing:
- A fake Strapi backend built on httpx.MockTransport
- Storage backends
- Client factories
"""

import json
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple

import pytest
import httpx

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from strapi_sdk import Config, CookieStore, LocalStorage, Strapi, StoreConfig


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture(scope="session")
def test_config():
    """Test configuration values."""
    return {
        "url": "http://strapi.test",
        "jwt": "header.payload.signature",
        "other_jwt": "other.header.signature",
        "user": {"id": 1, "username": "ana", "email": "ana@example.com"},
        "identifier": "ana@example.com",
        "password": "TestPassword123!",
    }


# =============================================================================
# Fake backend
# =============================================================================

Handler = Callable[[httpx.Request], httpx.Response]


class FakeStrapi:
    """
    Minimal Strapi stand-in.

    Routes are registered per (method, path); every request is recorded.
    Unknown routes answer 404 with a Strapi style error body.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[Tuple[str, str], Handler] = {}

    def add(self, method: str, path: str, status_code: int = 200, json: Any = None, text: Optional[str] = None):
        def handler(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status_code, text=text)
            if json is None:
                return httpx.Response(status_code)
            return httpx.Response(status_code, json=json)

        self.routes[(method.upper(), path)] = handler

    def add_handler(self, method: str, path: str, handler: Handler):
        self.routes[(method.upper(), path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"statusCode": 404, "error": "Not Found", "message": "Not Found"})
        return handler(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content)


@pytest.fixture
def backend() -> FakeStrapi:
    """Fresh fake backend."""
    return FakeStrapi()


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
def cookie_store() -> CookieStore:
    return CookieStore()


@pytest.fixture
def local_storage() -> LocalStorage:
    """In-memory local storage."""
    return LocalStorage()


@pytest.fixture
def temp_token_file() -> Generator[Path, None, None]:
    """Path of a token file that does not exist yet."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir) / "data" / "token.json"


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture
def make_client(backend, test_config):
    """Factory building a Strapi client wired to the fake backend."""
    def _make(
        cookies: Optional[CookieStore] = None,
        local_storage: Optional[LocalStorage] = None,
        store: Optional[StoreConfig] = None,
        request_defaults: Optional[Dict[str, Any]] = None,
    ) -> Strapi:
        config = Config(url=test_config["url"])
        if store is not None:
            config.store = store
        if request_defaults is not None:
            config.request_defaults = request_defaults
        return Strapi(
            config,
            cookies=cookies,
            local_storage=local_storage,
            transport=httpx.MockTransport(backend),
        )

    return _make


@pytest.fixture
def client(make_client) -> Strapi:
    """Client without any token storage."""
    return make_client()


@pytest.fixture
def stored_client(make_client, cookie_store, local_storage) -> Strapi:
    """Client persisting its token to both cookie and local storage."""
    return make_client(cookies=cookie_store, local_storage=local_storage)


@pytest.fixture
def auth_response(test_config) -> dict:
    """Body returned by the local auth endpoints."""
    return {"jwt": test_config["jwt"], "user": test_config["user"]}


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
