# frontend/test_api_client.py
# Unit tests for the authenticated API client

import json
import pytest
import sys
import threading
from pathlib import Path
from unittest.mock import MagicMock

import requests

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from frontend.api_client import ApiClient, is_public_endpoint
from frontend.dev_observability import event_names
from frontend.errors import ApiError, AuthError, NetworkError, NotFoundError, ServerError, ValidationError
from frontend.session import AuthSession, SessionState

BASE_URL = "http://api.test/api"


def make_response(status_code, body=None):
    resp = requests.Response()
    resp.status_code = status_code
    resp._content = json.dumps(body).encode("utf-8") if body is not None else b""
    resp.headers["Content-Type"] = "application/json"
    return resp


def make_client(token="token-1", provider=None, responses=None, on_session_expired=None):
    state = {}
    session = AuthSession(state=state)
    session.sign_in(provider or MagicMock(return_value="token-2"), token=token)
    http = MagicMock()
    if responses is not None:
        http.request.side_effect = responses
    client = ApiClient(session, base_url=BASE_URL, http=http, on_session_expired=on_session_expired)
    return client, http, state


def sent_headers(http, call=0):
    return http.request.call_args_list[call].kwargs["headers"]


def test_public_endpoints():
    assert is_public_endpoint("/auth/login")
    assert is_public_endpoint("/auth/refresh")
    assert is_public_endpoint("/auth/register?invite=1")
    assert not is_public_endpoint("/assets")
    assert not is_public_endpoint("/auth/me")


def test_attaches_bearer_token():
    client, http, _ = make_client(responses=[make_response(200, {"data": []})])
    assert client.get("/assets") == {"data": []}
    assert sent_headers(http)["Authorization"] == "Bearer token-1"
    method, url = http.request.call_args.args
    assert (method, url) == ("GET", f"{BASE_URL}/assets")


def test_public_endpoint_has_no_bearer():
    client, http, _ = make_client(responses=[make_response(200, {"ok": True})])
    client.post("/auth/login", json={"email": "a@b.c", "password": "x"})
    assert "Authorization" not in sent_headers(http)


def test_unsupported_method():
    client, _, _ = make_client()
    with pytest.raises(ValueError):
        client.request("TRACE", "/assets")


def test_401_refreshes_once_and_retries():
    provider = MagicMock(return_value="token-2")
    client, http, state = make_client(
        provider=provider,
        responses=[make_response(401, {"detail": "expired"}), make_response(200, {"id": "a1"})],
    )

    assert client.get("/assets/a1") == {"id": "a1"}
    provider.assert_called_once()
    assert sent_headers(http, 0)["Authorization"] == "Bearer token-1"
    assert sent_headers(http, 1)["Authorization"] == "Bearer token-2"
    assert "token_refreshed" in event_names(state)


def test_401_after_retry_expires_session():
    expired = MagicMock()
    client, http, state = make_client(
        responses=[make_response(401), make_response(401)],
        on_session_expired=expired,
    )

    with pytest.raises(AuthError):
        client.get("/assets")
    assert http.request.call_count == 2
    expired.assert_called_once()
    assert client.session.status == SessionState.NO_TOKEN
    assert "session_expired" in event_names(state)


def test_refresh_failure_expires_session():
    expired = MagicMock()
    provider = MagicMock(side_effect=AuthError("Token refresh failed: HTTP 401", status_code=401))
    client, http, _ = make_client(provider=provider, responses=[make_response(401)], on_session_expired=expired)

    with pytest.raises(AuthError):
        client.get("/assets")
    assert http.request.call_count == 1
    expired.assert_called_once()
    assert not client.session.is_authenticated


def test_request_without_session_triggers_expiry_hook():
    expired = MagicMock()
    http = MagicMock()
    client = ApiClient(AuthSession(), base_url=BASE_URL, http=http, on_session_expired=expired)
    with pytest.raises(AuthError):
        client.get("/assets")
    http.request.assert_not_called()
    expired.assert_called_once()


def test_concurrent_requests_share_one_refresh():
    gate = threading.Event()
    calls = []

    def provider():
        calls.append(1)
        assert gate.wait(5)
        return "token-2"

    client, http, _ = make_client(provider=provider)
    http.request.return_value = make_response(200, {"ok": True})
    client.session.invalidate("token-1")

    errors = []

    def worker():
        try:
            client.get("/assets")
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    gate.set()
    for t in threads:
        t.join(5)

    assert errors == []
    assert len(calls) == 1
    assert http.request.call_count == 10
    assert all(c.kwargs["headers"]["Authorization"] == "Bearer token-2" for c in http.request.call_args_list)


def test_403_is_forbidden_and_keeps_session():
    client, _, _ = make_client(responses=[make_response(403, {"detail": "Owner role required"})])
    with pytest.raises(AuthError) as exc_info:
        client.delete("/assets/a1")
    assert exc_info.value.is_forbidden
    assert exc_info.value.message == "Owner role required"
    assert client.session.is_authenticated


@pytest.mark.parametrize("status,error_type", [
    (404, NotFoundError),
    (422, ValidationError),
    (500, ServerError),
    (503, ServerError),
    (409, ApiError),
])
def test_status_codes_map_to_error_types(status, error_type):
    client, _, _ = make_client(responses=[make_response(status, {"message": "nope"})])
    with pytest.raises(error_type) as exc_info:
        client.get("/assets")
    assert exc_info.value.message == "nope"


def test_server_error_is_retryable_and_hides_token():
    client, _, _ = make_client(responses=[make_response(500)])
    with pytest.raises(ServerError) as exc_info:
        client.get("/assets")
    assert exc_info.value.retryable
    assert "token-1" not in str(exc_info.value)


def test_timeout_maps_to_network_error():
    client, http, state = make_client(responses=requests.exceptions.Timeout())
    with pytest.raises(NetworkError) as exc_info:
        client.get("/assets")
    assert exc_info.value.retryable
    assert state["_backend_status"] == "timeout"
    assert state["_backend_was_down"] is True


def test_connection_error_maps_to_network_error():
    client, _, state = make_client(responses=requests.exceptions.ConnectionError())
    with pytest.raises(NetworkError, match=BASE_URL):
        client.get("/assets")
    assert state["_backend_status"] == "connection_error"


def test_success_marks_backend_ok():
    client, _, state = make_client(responses=[make_response(200, {})])
    client.get("/assets")
    assert state["_backend_status"] == "ok"


def test_empty_body_returns_none():
    client, _, _ = make_client(responses=[make_response(204)])
    assert client.delete("/assets/a1") is None


def test_non_json_body_raises_api_error():
    resp = make_response(200)
    resp._content = b"<html>gateway</html>"
    client, _, _ = make_client(responses=[resp])
    with pytest.raises(ApiError, match="non-JSON"):
        client.get("/assets")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
