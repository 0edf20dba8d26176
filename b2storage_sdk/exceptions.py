"""
Custom exceptions for the B2 storage SDK.

Every error raised by the SDK derives from B2Error and carries an ErrorKind tag,
so callers can switch on ``error.kind`` instead of probing exception types.
"""

import json
from enum import Enum


class ErrorKind(Enum):
    """Tag identifying which variant of B2Error was raised."""
    TRANSPORT = "transport"
    SERVICE = "service"
    INTEGRITY = "integrity"
    NOT_FOUND = "not_found"
    CONFIGURATION = "configuration"


class B2Error(Exception):
    """Base exception for all B2 storage SDK errors."""

    kind: ErrorKind = None

    def __init__(self, message: str, error_code: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self):
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class TransportError(B2Error):
    """Raised when the service could not be reached (network, DNS, TLS, timeout)."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str = "Network operation failed", **kwargs):
        super().__init__(message, error_code="NETWORK_ERROR", **kwargs)


class ServiceError(B2Error):
    """
    Raised when the B2 API answers with an error document.

    The ``code`` and ``status`` fields are what ErrorClassifier uses to decide
    whether a retry is worthwhile.
    """

    kind = ErrorKind.SERVICE

    def __init__(self, code: str, message: str, status: int, **kwargs):
        super().__init__(message, error_code=code, **kwargs)
        self.code = code
        self.status = status

    def __str__(self):
        return f"{self.code}: {self.message} (HTTP {self.status})"


class AuthenticationError(ServiceError):
    """Raised when account authorization is rejected."""

    def __init__(
        self,
        message: str = "The account ID or application key is not valid",
        code: str = "unauthorized",
        status: int = 401,
        **kwargs,
    ):
        super().__init__(code, message, status, **kwargs)


class IntegrityError(B2Error):
    """Raised when a local SHA1 digest does not match the one reported by B2."""

    kind = ErrorKind.INTEGRITY

    def __init__(
        self,
        message: str = "SHA1 integrity check failed",
        expected_sha1: str = None,
        actual_sha1: str = None,
        **kwargs,
    ):
        super().__init__(message, error_code="INTEGRITY_ERROR", **kwargs)
        self.expected_sha1 = expected_sha1
        self.actual_sha1 = actual_sha1


class NotFoundError(B2Error):
    """Raised when a bucket or file does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "Not found", resource: str = None, status: int = None, **kwargs):
        super().__init__(message, error_code="NOT_FOUND", **kwargs)
        self.resource = resource
        self.status = status


class ConfigurationError(B2Error):
    """Raised when SDK configuration is missing or invalid."""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, message: str = "Invalid configuration", config_key: str = None, **kwargs):
        super().__init__(message, error_code="CONFIG_ERROR", **kwargs)
        self.config_key = config_key


def error_from_response(response) -> B2Error:
    """
    Build the error variant matching a failed HTTP response.

    B2 reports failures as ``{"status": ..., "code": ..., "message": ...}``. When
    the body is not such a document a synthetic "unknown" ServiceError is produced
    so the status is never lost.
    """
    status = response.status_code
    try:
        document = json.loads(response.content)
    except ValueError:
        document = None

    if isinstance(document, dict) and "code" in document:
        code = document.get("code") or "unknown"
        message = document.get("message") or ""
        status = document.get("status") or status
    else:
        code = "unknown"
        message = "Unrecognised status code"

    if status == 404:
        return NotFoundError(message or "Not found", resource=response.url, status=status)
    return ServiceError(code, message, status)
