"""Unit tests for app/core/keycloak/client.py."""
import pytest
import requests

from app.core.keycloak import client as client_module
from app.core.keycloak.client import KeycloakClient, REQUEST_TIMEOUT, create_client_with_token
from app.core.keycloak.exceptions import ApiError, RequestError, TransportError


@pytest.fixture
def recorded(monkeypatch, stub_response):
    """Capture requests.request calls and answer with a queued StubResponse."""
    calls = []
    responses = []

    def fake_request(method, url, **kwargs):
        calls.append({"method": method, "url": url, **kwargs})
        response = responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(client_module.requests, "request", fake_request)
    return calls, responses, stub_response


def test_invoke_sends_bearer_token_and_timeout(recorded):
    calls, responses, StubResponse = recorded
    responses.append(StubResponse([{"id": "gid-1"}]))

    kc = KeycloakClient("http://kc/auth/", "tok-123")
    body = kc.invoke("GET", "/admin/realms/demo/groups", params={"first": 0})

    assert body == [{"id": "gid-1"}]
    assert calls[0]["method"] == "GET"
    assert calls[0]["url"] == "http://kc/auth/admin/realms/demo/groups"
    assert calls[0]["headers"] == {"Authorization": "Bearer tok-123"}
    assert calls[0]["params"] == {"first": 0}
    assert calls[0]["timeout"] == REQUEST_TIMEOUT


def test_invoke_posts_json_body(recorded):
    calls, responses, StubResponse = recorded
    responses.append(StubResponse(None, status_code=201))

    result = KeycloakClient("http://kc", "tok").invoke("POST", "/admin/realms/demo/users", json={"username": "a@"})

    assert result is None
    assert calls[0]["json"] == {"username": "a@"}


def test_non_json_body_returned_as_text(recorded):
    _, responses, StubResponse = recorded
    responses.append(StubResponse(None, text="plain"))
    assert KeycloakClient("http://kc", "tok").invoke("GET", "/x") == "plain"


@pytest.mark.parametrize("status", [301, 400, 401, 404, 409, 500])
def test_non_2xx_raises_api_error(recorded, status):
    _, responses, StubResponse = recorded
    responses.append(StubResponse({"errorMessage": "nope"}, status_code=status, url="http://kc/auth/x"))

    with pytest.raises(ApiError) as excinfo:
        KeycloakClient("http://kc/auth", "tok").invoke("PUT", "/x")

    err = excinfo.value
    assert isinstance(err, RequestError)
    assert err.status_code == status
    assert err.method == "PUT"
    assert err.url == "http://kc/auth/x"
    assert "nope" in err.message


@pytest.mark.parametrize("exc", [requests.ConnectionError("refused"), requests.Timeout("slow")])
def test_transport_failure_raises_transport_error(recorded, exc):
    _, responses, StubResponse = recorded
    responses.append(exc)

    with pytest.raises(TransportError) as excinfo:
        KeycloakClient("http://kc", "tok").invoke("DELETE", "/admin/realms/demo/users/uid-1")

    assert excinfo.value.cause is exc
    assert excinfo.value.method == "DELETE"
    assert excinfo.value.url == "http://kc/admin/realms/demo/users/uid-1"


def test_create_client_with_token_sets_timeout():
    kc = create_client_with_token("http://kc/auth", "tok", timeout=12)
    assert kc.base_url == "http://kc/auth"
    assert kc.timeout == 12
