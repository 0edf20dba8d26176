"""
b2storage-sdk - Python client for the Backblaze B2 cloud storage API.

This package provides:
- Account authorization with transparent re-authorization on expired tokens
- Bucket management (create, list, update, delete)
- SHA1-verified uploads and downloads, including byte-range downloads
- Cursor-based pagination of file names and file versions
- A bounded worker pool for concurrent transfers
- The ``b2storage`` command line tool
"""

__version__ = "1.0.0"

from .client import B2Client
from .bucket import Bucket
from .config import ClientConfig
from .models import (
    BucketType,
    Credentials,
    FileAction,
    FileInfo,
    FileRange,
    ListCursor,
    ListFilesPage,
    SessionState,
    TransferResult,
    UploadAuthorization,
)
from .exceptions import (
    B2Error,
    ErrorKind,
    TransportError,
    ServiceError,
    AuthenticationError,
    IntegrityError,
    NotFoundError,
    ConfigurationError,
)
from .retry import ErrorClassifier, RetryPolicy, NoRetryPolicy
from .pagination import FileNamePaginator, FileVersionPaginator
from .orchestrator import OrchestratorState, TransferOrchestrator

__all__ = [
    # Main client
    "B2Client",
    "Bucket",
    "ClientConfig",

    # Data models
    "BucketType",
    "Credentials",
    "FileAction",
    "FileInfo",
    "FileRange",
    "ListCursor",
    "ListFilesPage",
    "SessionState",
    "TransferResult",
    "UploadAuthorization",

    # Exceptions
    "B2Error",
    "ErrorKind",
    "TransportError",
    "ServiceError",
    "AuthenticationError",
    "IntegrityError",
    "NotFoundError",
    "ConfigurationError",

    # Retry and concurrency
    "ErrorClassifier",
    "RetryPolicy",
    "NoRetryPolicy",
    "FileNamePaginator",
    "FileVersionPaginator",
    "OrchestratorState",
    "TransferOrchestrator",
]
