"""Pytest shared fixtures for provisioning tests."""
import json
import pathlib
import sys
from types import SimpleNamespace

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from app.config.settings import ProvisioningConfig


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_live_http(monkeypatch):
    """Prevent unit tests from hitting a live Keycloak."""
    def _stub_request(method, url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")

    monkeypatch.setattr(requests, "request", _stub_request)


class StubResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, payload=None, status_code: int = 200, url: str = "http://kc", text: str | None = None):
        self.status_code = status_code
        self.url = url
        if text is not None:
            self.text = text
        elif payload is None:
            self.text = ""
        else:
            self.text = json.dumps(payload)
        self.content = self.text.encode("utf-8")
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


# ─────────────────────────────────────────────────────────────────────────────
# Fake Keycloak
# ─────────────────────────────────────────────────────────────────────────────
class FakeKeycloak:
    """Stands in for KeycloakClient: records calls and answers from a route table.

    Routes are keyed by method and path suffix. A route holding several
    responses returns them in order and then keeps repeating the last one.
    A callable response is called with the request params and body; an
    exception instance is raised instead of returned.
    """

    def __init__(self):
        self.calls = []
        self._routes = {}

    def on(self, method, path_suffix, *responses):
        self._routes[(method, path_suffix)] = list(responses) or [None]
        return self

    def invoke(self, method, path, params=None, json=None):
        self.calls.append(SimpleNamespace(method=method, path=path, params=params, json=json))
        for (route_method, suffix), queue in self._routes.items():
            if route_method == method and path.endswith(suffix):
                response = queue.pop(0) if len(queue) > 1 else queue[0]
                if callable(response):
                    response = response(params=params, json=json)
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError(f"Unexpected call {method} {path}")

    @property
    def requests(self):
        """(method, path) pairs in call order."""
        return [(call.method, call.path) for call in self.calls]

    def calls_to(self, method, path_suffix):
        return [call for call in self.calls if call.method == method and call.path.endswith(path_suffix)]


@pytest.fixture
def config():
    return ProvisioningConfig(keycloak_url="http://kc", realm="demo", token="test-token")


@pytest.fixture
def keycloak():
    """Fake Keycloak answering the happy path for codUser U12345."""
    fake = FakeKeycloak()
    fake.on("POST", "/admin/realms/demo/users", None)
    fake.on("GET", "/ui-ext/brute-force-user", [
        {"id": "uid-2", "username": "u123456@"},
        {"id": "uid-1", "username": "u12345@"},
    ])
    fake.on("GET", "/admin/realms/demo/groups", [
        {"id": "gid-0", "name": "UTP Docentes"},
        {"id": "gid-1", "name": "UTP Estudiantes"},
    ])
    fake.on("PUT", "/users/uid-1/groups/gid-1", None)
    fake.on("PUT", "/users/uid-1/reset-password", None)
    fake.on("DELETE", "/admin/realms/demo/users/uid-1", None)
    return fake


@pytest.fixture
def stub_response():
    return StubResponse
