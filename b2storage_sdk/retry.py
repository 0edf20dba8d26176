"""
Error classification and retry policy.

The request path asks a RetryPolicy whether a failed attempt may be repeated;
the default policy allows exactly one extra attempt and only for errors that
ErrorClassifier considers transient.
"""

from .exceptions import B2Error, ServiceError, TransportError


class ErrorClassifier:
    """Decides whether a B2 service error can be recovered from by retrying."""

    RETRYABLE_AUTH_CODES = frozenset({"expired_auth_token"})

    def is_fatal(self, status: int, code: str) -> bool:
        if status == 401:
            # missing_auth_token, bad_auth_token and anything unknown need new credentials
            return code not in self.RETRYABLE_AUTH_CODES
        if status == 408:
            return False
        if 500 <= status < 600:
            return False
        return True


class RetryPolicy:
    """
    Retry non-fatal service errors and transport errors a bounded number of times.

    Args:
        max_retries: Extra attempts allowed after the first one
        classifier: ErrorClassifier used to judge service errors
    """

    def __init__(self, max_retries: int = 1, classifier: ErrorClassifier = None):
        self.max_retries = max_retries
        self.classifier = classifier or ErrorClassifier()

    def should_retry(self, error: B2Error, attempt: int) -> bool:
        """Return True if the operation that failed on ``attempt`` (0-based) may run again."""
        if attempt >= self.max_retries:
            return False
        if isinstance(error, ServiceError):
            return not self.classifier.is_fatal(error.status, error.code)
        return isinstance(error, TransportError)

    def __repr__(self):
        return f"{type(self).__name__}(max_retries={self.max_retries})"


class NoRetryPolicy(RetryPolicy):
    """Surface the first error without retrying."""

    def __init__(self, classifier: ErrorClassifier = None):
        super().__init__(max_retries=0, classifier=classifier)
