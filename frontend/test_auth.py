# frontend/test_auth.py
# Unit tests for the Streamlit auth binding (plain dicts stand in for st.session_state)

import pytest
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from frontend import auth
from frontend.dev_observability import event_names
from frontend.errors import AuthError


def signed_in_state():
    ss = {}
    auth.init_auth_state(ss)
    auth.get_session(ss).sign_in(MagicMock(return_value="t2"), token="t1", current_user={"id": 1, "email": "ada@example.com"})
    auth.set_auth(ss)
    return ss


def test_init_auth_state_is_idempotent():
    ss = {}
    auth.init_auth_state(ss)
    session = ss[auth.SESSION_KEY]
    auth.init_auth_state(ss)
    assert ss[auth.SESSION_KEY] is session
    assert ss["is_authenticated"] is False
    assert session.state is ss


def test_client_is_cached_and_bound_to_session():
    ss = {}
    client = auth.get_client(ss)
    assert auth.get_client(ss) is client
    assert client.session is auth.get_session(ss)


def test_login_sets_auth():
    ss = {}

    def fake_sign_in(email, password, session):
        session.sign_in(MagicMock(), token="t1", current_user={"email": email})
        return session

    with patch.object(auth, "sign_in_with_password", side_effect=fake_sign_in):
        user = auth.login("ada@example.com", "pw", ss)

    assert user == {"email": "ada@example.com"}
    assert ss["is_authenticated"] is True
    assert auth.get_current_user(ss) == {"email": "ada@example.com"}


def test_login_failure_leaves_state_signed_out():
    ss = {}
    with patch.object(auth, "sign_in_with_password", side_effect=AuthError("Invalid email or password", status_code=401)):
        with pytest.raises(AuthError):
            auth.login("ada@example.com", "wrong", ss)
    assert not auth.is_authenticated(ss)


def test_clear_auth_signs_out_and_drops_reports():
    ss = signed_in_state()
    ss["report_runner"] = object()
    auth.clear_auth(ss)
    assert not auth.is_authenticated(ss)
    assert ss["current_user"] is None
    assert "report_runner" not in ss
    # Safe to repeat
    auth.clear_auth(ss)


def test_session_expiry_redirects_to_login():
    ss = signed_in_state()
    auth.handle_session_expired(ss)
    assert ss["nav_page"] == "Login"
    assert ss["_session_expired"] is True
    assert ss["is_authenticated"] is False
    assert "redirect_to_login" in event_names(ss)


def test_failed_refresh_through_client_redirects_to_login():
    ss = {}
    auth.init_auth_state(ss)
    session = auth.get_session(ss)
    session.sign_in(MagicMock(side_effect=AuthError("Token refresh failed: HTTP 401", status_code=401)), token="t1")
    client = auth.get_client(ss)
    client._base_url = "http://api.test/api"
    client.http = MagicMock()
    client.http.request.return_value = MagicMock(status_code=401)

    with pytest.raises(AuthError):
        client.get("/assets")
    assert ss["nav_page"] == "Login"
    assert not auth.is_authenticated(ss)


def test_init_syncs_flag_after_session_ends():
    ss = signed_in_state()
    auth.get_session(ss).sign_out()
    auth.init_auth_state(ss)
    assert ss["is_authenticated"] is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
