"""
Tests for account authorization.
"""

import threading

import pytest

from b2storage_sdk import AuthenticationError, Credentials, ServiceError, TransportError
from b2storage_sdk.auth import AuthSession

from fake_b2 import ACCOUNT_ID, API_HOST, APPLICATION_KEY, DOWNLOAD_HOST


@pytest.fixture
def auth_session(fake_b2):
    return AuthSession(Credentials(ACCOUNT_ID, APPLICATION_KEY), fake_b2.session(), API_HOST)


class TestAuthorize:
    """Test b2_authorize_account."""

    def test_authorize(self, fake_b2, auth_session):
        state = auth_session.authorize()
        assert state.account_id == ACCOUNT_ID
        assert state.api_url == API_HOST
        assert state.download_url == DOWNLOAD_HOST
        assert state.valid
        assert auth_session.is_authorized
        assert fake_b2.authorize_count == 1

    def test_bad_credentials(self, fake_b2):
        session = AuthSession(Credentials(ACCOUNT_ID, "wrong"), fake_b2.session(), API_HOST)
        with pytest.raises(AuthenticationError) as exc_info:
            session.authorize()
        assert exc_info.value.status == 401
        assert not session.is_authorized

    def test_server_error_is_not_authentication_error(self, fake_b2, auth_session):
        """A 503 during authorization stays a retryable service error."""
        fake_b2.inject_error("b2_authorize_account", 503, "service_unavailable", "busy")
        with pytest.raises(ServiceError) as exc_info:
            auth_session.authorize()
        assert not isinstance(exc_info.value, AuthenticationError)
        assert exc_info.value.status == 503

    def test_connection_failure(self, fake_b2, auth_session):
        fake_b2.inject_connection_error("b2_authorize_account")
        with pytest.raises(TransportError):
            auth_session.authorize()

    def test_malformed_response(self, fake_b2, auth_session):
        fake_b2.inject_error("b2_authorize_account", 200, raw_body=b'{"accountId": "x"}')
        with pytest.raises(AuthenticationError):
            auth_session.authorize()


class TestSessionState:
    """Test lazy authorization and invalidation."""

    def test_current_state_authorizes_once(self, fake_b2, auth_session):
        first = auth_session.current_state()
        second = auth_session.current_state()
        assert first is second
        assert fake_b2.authorize_count == 1

    def test_invalidate_forces_reauthorization(self, fake_b2, auth_session):
        token = auth_session.current_token()
        auth_session.invalidate(token)
        assert not auth_session.is_authorized
        assert auth_session.current_token() != token
        assert fake_b2.authorize_count == 2

    def test_invalidate_stale_token_is_ignored(self, fake_b2, auth_session):
        """Invalidating with a token that was already replaced keeps the newer state."""
        old = auth_session.current_token()
        auth_session.invalidate(old)
        new = auth_session.current_token()

        auth_session.invalidate(old)
        assert auth_session.is_authorized
        assert auth_session.current_token() == new

    def test_invalidate_without_state(self, auth_session):
        auth_session.invalidate()
        assert auth_session.state is None

    def test_concurrent_callers_share_one_authorization(self, fake_b2, auth_session):
        fake_b2.authorize_delay = 0.05
        tokens = []
        lock = threading.Lock()

        def fetch():
            token = auth_session.current_token()
            with lock:
                tokens.append(token)

        threads = [threading.Thread(target=fetch) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert fake_b2.authorize_count == 1
        assert len(set(tokens)) == 1
