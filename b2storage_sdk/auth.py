"""
Account authorization for the B2 storage SDK.

AuthSession owns the account credentials and the SessionState obtained from
b2_authorize_account, and re-authorizes on demand once the state has been
invalidated.
"""

import logging
import threading
from typing import Optional

import requests

from .exceptions import AuthenticationError, ServiceError, TransportError, error_from_response
from .models import Credentials, SessionState

logger = logging.getLogger(__name__)

API_VERSION_PATH = "/b2api/v1/"

REJECTED_CREDENTIALS_STATUSES = (400, 401, 403)


class AuthSession:
    """
    Manages the authorization state of one B2 account.

    All reads and writes of the session state happen under a single lock, so
    threads asking for a token while an authorization is in flight wait for it
    and then share its result.
    """

    def __init__(
        self,
        credentials: Credentials,
        http: requests.Session,
        host: str,
        timeout: float = 30,
    ):
        """
        Initialize the session.

        Args:
            credentials: Account ID and application key
            http: Shared HTTP session used for the authorization call
            host: Base URL of the authorization endpoint
            timeout: Request timeout in seconds
        """
        self.credentials = credentials
        self.host = host.rstrip("/")
        self.timeout = timeout
        self._http = http
        self._lock = threading.RLock()
        self._state: Optional[SessionState] = None

    def authorize(self) -> SessionState:
        """Exchange the credentials for a new SessionState and install it."""
        url = f"{self.host}{API_VERSION_PATH}b2_authorize_account"

        with self._lock:
            logger.debug("Authorizing account %s", self.credentials.account_id)
            try:
                response = self._http.get(
                    url,
                    auth=(self.credentials.account_id, self.credentials.application_key),
                    timeout=self.timeout,
                )
            except requests.exceptions.RequestException as e:
                raise TransportError(f"Authorization request failed: {e}")

            if response.status_code != 200:
                error = error_from_response(response)
                if isinstance(error, ServiceError) and error.status in REJECTED_CREDENTIALS_STATUSES:
                    raise AuthenticationError(error.message or "Authorization failed", error.code, error.status)
                raise error

            try:
                state = SessionState.from_dict(response.json())
            except (ValueError, KeyError) as e:
                raise AuthenticationError(f"Malformed authorization response: {e}", "malformed_response", 200)

            self._state = state
            return state

    def current_state(self) -> SessionState:
        """Return the held SessionState, authorizing first if there is no valid one."""
        with self._lock:
            if self._state is None or not self._state.valid:
                if self._state is not None:
                    logger.debug("No valid authorization token, re-authorizing client")
                return self.authorize()
            return self._state

    def current_token(self) -> str:
        return self.current_state().authorization_token

    def invalidate(self, token: Optional[str] = None):
        """
        Mark the session as needing re-authorization.

        When ``token`` is given the state is only invalidated if it still holds that
        token; a newer authorization made by another thread is left alone.
        """
        with self._lock:
            if self._state is None or not self._state.valid:
                return
            if token is not None and token != self._state.authorization_token:
                return
            self._state = self._state.invalidated()

    @property
    def state(self) -> Optional[SessionState]:
        with self._lock:
            return self._state

    @property
    def is_authorized(self) -> bool:
        state = self.state
        return state is not None and state.valid

    @property
    def account_id(self) -> str:
        return self.current_state().account_id

    @property
    def api_url(self) -> str:
        return self.current_state().api_url

    @property
    def download_url(self) -> str:
        return self.current_state().download_url
