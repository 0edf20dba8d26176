"""
Tests for error classification and retry policies.
"""

import pytest

from b2storage_sdk import (
    B2Error,
    ErrorClassifier,
    IntegrityError,
    NoRetryPolicy,
    RetryPolicy,
    ServiceError,
    TransportError,
)


class TestErrorClassifier:
    """Test which service errors are fatal."""

    @pytest.mark.parametrize(
        "status, code, fatal",
        [
            (401, "expired_auth_token", False),
            (401, "missing_auth_token", True),
            (401, "bad_auth_token", True),
            (401, "unauthorized", True),
            (401, "", True),
            (408, "request_timeout", False),
            (408, "", False),
            (500, "internal_error", False),
            (503, "service_unavailable", False),
            (599, "", False),
            (400, "bad_request", True),
            (403, "cap_exceeded", True),
            (404, "not_found", True),
            (429, "too_many_requests", True),
        ],
    )
    def test_is_fatal(self, status, code, fatal):
        assert ErrorClassifier().is_fatal(status, code) is fatal


class TestRetryPolicy:
    """Test retry decisions."""

    def test_retries_transient_service_error_once(self):
        """A 503 is retried on the first attempt only."""
        policy = RetryPolicy()
        error = ServiceError("service_unavailable", "busy", 503)
        assert policy.should_retry(error, 0)
        assert not policy.should_retry(error, 1)

    def test_retries_expired_token(self):
        error = ServiceError("expired_auth_token", "expired", 401)
        assert RetryPolicy().should_retry(error, 0)

    def test_does_not_retry_fatal_error(self):
        error = ServiceError("bad_request", "nope", 400)
        assert not RetryPolicy().should_retry(error, 0)

    def test_retries_transport_error(self):
        assert RetryPolicy().should_retry(TransportError("connection reset"), 0)

    def test_does_not_retry_other_errors(self):
        """Integrity failures and generic errors are never retried."""
        policy = RetryPolicy()
        assert not policy.should_retry(IntegrityError(), 0)
        assert not policy.should_retry(B2Error("malformed"), 0)

    def test_max_retries(self):
        policy = RetryPolicy(max_retries=3)
        error = TransportError()
        assert [policy.should_retry(error, attempt) for attempt in range(4)] == [True, True, True, False]

    def test_custom_classifier(self):
        """A classifier can make otherwise fatal errors retryable."""

        class Lenient(ErrorClassifier):
            def is_fatal(self, status, code):
                return False

        policy = RetryPolicy(classifier=Lenient())
        assert policy.should_retry(ServiceError("bad_request", "nope", 400), 0)


class TestNoRetryPolicy:
    """Test the policy that surfaces the first error."""

    def test_never_retries(self):
        policy = NoRetryPolicy()
        assert policy.max_retries == 0
        assert not policy.should_retry(ServiceError("expired_auth_token", "expired", 401), 0)
        assert not policy.should_retry(TransportError(), 0)

    def test_repr(self):
        assert repr(NoRetryPolicy()) == "NoRetryPolicy(max_retries=0)"
