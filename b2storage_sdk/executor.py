"""
Authenticated JSON API calls with the retry policy applied.
"""

import json
import logging
from typing import Any, Callable, Dict, Optional, TypeVar, Union

import requests

from .auth import API_VERSION_PATH, AuthSession
from .exceptions import B2Error, ServiceError, TransportError, error_from_response
from .models import SessionState
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestExecutor:
    """
    Issues B2 API calls on behalf of an AuthSession.

    Every operation runs through ``run``: on an error the RetryPolicy accepts,
    the session token is invalidated (for service errors) and the operation is
    repeated with a freshly authorized session.
    """

    def __init__(
        self,
        session: AuthSession,
        http: requests.Session,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 30,
    ):
        self.session = session
        self.http = http
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout

    def run(self, operation: Callable[[SessionState], T]) -> T:
        """Run ``operation`` against the current session state, retrying per policy."""
        attempt = 0
        while True:
            state = self.session.current_state()
            try:
                return operation(state)
            except (ServiceError, TransportError) as e:
                if not self.retry_policy.should_retry(e, attempt):
                    raise
                logger.debug("Retrying after %s (attempt %d)", e, attempt + 1)
                if isinstance(e, ServiceError):
                    self.session.invalidate(state.authorization_token)
                attempt += 1

    def call(self, api_method: str, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST ``request`` to ``api_method`` and return the decoded JSON response.

        Args:
            api_method: B2 API method name, e.g. ``b2_list_buckets``
            request: JSON-serializable request body

        Returns:
            Decoded response document
        """
        body = json.dumps(request)
        logger.debug("apiRequest: %s %s", api_method, body)

        def post(state: SessionState) -> Dict[str, Any]:
            url = f"{state.api_url}{API_VERSION_PATH}{api_method}"
            try:
                response = self.http.post(
                    url,
                    data=body,
                    headers={
                        "Authorization": state.authorization_token,
                        "Content-Type": "application/json",
                    },
                    timeout=self.timeout,
                )
            except requests.exceptions.RequestException as e:
                raise TransportError(f"Request to {api_method} failed: {e}")

            return parse_response(response)

        return self.run(post)

    def get(
        self,
        url: Union[str, Callable[[SessionState], str]],
        headers: Optional[Dict[str, str]] = None,
        **kwargs,
    ) -> requests.Response:
        """
        Authenticated streaming GET returning the still-open response.

        ``url`` may be a callable building the URL from the session state, for
        URLs under the download endpoint. Responses other than 200/206 are
        closed and converted to errors.
        """

        def send(state: SessionState) -> requests.Response:
            target = url(state) if callable(url) else url
            request_headers = {"Authorization": state.authorization_token}
            request_headers.update(headers or {})
            logger.debug("authRequest: GET %s", target)
            try:
                response = self.http.get(
                    target, headers=request_headers, stream=True, timeout=self.timeout, **kwargs
                )
            except requests.exceptions.RequestException as e:
                raise TransportError(f"GET {target} failed: {e}")

            if response.status_code not in (200, 206):
                try:
                    raise error_from_response(response)
                finally:
                    response.close()
            return response

        return self.run(send)


def parse_response(response: requests.Response) -> Dict[str, Any]:
    """Decode a 200 JSON response or raise the matching B2Error."""
    try:
        if response.status_code != 200:
            raise error_from_response(response)

        try:
            return response.json()
        except ValueError as e:
            raise B2Error(f"Malformed response from {response.url}: {e}", error_code="MALFORMED_RESPONSE")
    finally:
        response.close()
