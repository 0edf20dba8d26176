"""
Synchronous B2 client implementation.

This module provides the main client for the B2 API: account authorization,
bucket management and file access by ID. Per-bucket operations live on the
Bucket objects it returns.
"""

import logging
from typing import Optional, List, Dict, Any, Tuple

import requests
from requests.adapters import HTTPAdapter

from . import __version__
from .auth import API_VERSION_PATH, AuthSession
from .bucket import Bucket
from .config import ClientConfig
from .exceptions import NotFoundError
from .executor import RequestExecutor
from .models import BucketType, FileInfo, FileRange, SessionState
from .retry import NoRetryPolicy, RetryPolicy
from .transfer import DownloadStream, open_download

logger = logging.getLogger(__name__)


class B2Client:
    """
    Client for one B2 account.

    The HTTP session is shared by every request the client makes, including
    those from worker threads; its connection pool is sized from
    ``config.max_connections``.
    """

    def __init__(
        self,
        config: ClientConfig,
        session: Optional[requests.Session] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Credentials and connection settings
            session: HTTP session to use instead of a new pooled one
            retry_policy: Overrides the policy derived from ``config.no_retry``
        """
        self.config = config
        credentials = config.credentials

        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=config.max_connections, pool_maxsize=config.max_connections)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.http = session
        self.http.headers.update({"User-Agent": f"b2storage-sdk/{__version__}"})

        if retry_policy is None:
            retry_policy = NoRetryPolicy() if config.no_retry else RetryPolicy()

        self.auth = AuthSession(credentials, self.http, config.host, config.timeout)
        self.executor = RequestExecutor(self.auth, self.http, retry_policy, config.timeout)

    @classmethod
    def from_credentials(cls, account_id: str, application_key: str, **kwargs) -> "B2Client":
        """Build a client from explicit credentials and default settings."""
        session = kwargs.pop("session", None)
        retry_policy = kwargs.pop("retry_policy", None)
        config = ClientConfig(account_id=account_id, application_key=application_key, **kwargs)
        return cls(config, session=session, retry_policy=retry_policy)

    def authorize_account(self) -> SessionState:
        """Log in to the B2 API, replacing any held authorization."""
        return self.auth.authorize()

    @property
    def account_id(self) -> str:
        return self.auth.account_id

    @property
    def download_url(self) -> str:
        return self.auth.download_url

    def call(self, api_method: str, request: Dict[str, Any]) -> Dict[str, Any]:
        """Perform a raw B2 API call with authorization and retry applied."""
        return self.executor.call(api_method, request)

    # Buckets

    def list_buckets(self) -> List[Bucket]:
        response = self.call("b2_list_buckets", {"accountId": self.account_id})
        return [Bucket.from_dict(self, data) for data in response.get("buckets", [])]

    def bucket(self, name: str) -> Optional[Bucket]:
        """Look up a bucket by name, returning None if the account has no such bucket."""
        for bucket in self.list_buckets():
            if bucket.name == name:
                return bucket
        return None

    def get_bucket(self, name: str) -> Bucket:
        """Look up a bucket by name, raising NotFoundError if it does not exist."""
        bucket = self.bucket(name)
        if bucket is None:
            raise NotFoundError(f"Bucket not found: {name}", resource=name)
        return bucket

    def create_bucket(self, name: str, bucket_type: BucketType = BucketType.ALL_PRIVATE) -> Bucket:
        """
        Create a new bucket.

        Bucket names are 6 to 50 characters of letters, digits and "-", must be
        globally unique and cannot start with "b2-".
        """
        response = self.call(
            "b2_create_bucket",
            {"accountId": self.account_id, "bucketName": name, "bucketType": bucket_type.value},
        )
        logger.debug("Created bucket %s", name)
        return Bucket.from_dict(self, response)

    def delete_bucket(self, bucket_id: str) -> Bucket:
        response = self.call("b2_delete_bucket", {"accountId": self.account_id, "bucketId": bucket_id})
        return Bucket.from_dict(self, response)

    def update_bucket(self, bucket_id: str, bucket_type: BucketType) -> Bucket:
        response = self.call(
            "b2_update_bucket",
            {"accountId": self.account_id, "bucketId": bucket_id, "bucketType": bucket_type.value},
        )
        return Bucket.from_dict(self, response)

    # Files

    def get_file_info(self, file_id: str) -> FileInfo:
        """Get information about one file version."""
        return FileInfo.from_dict(self.call("b2_get_file_info", {"fileId": file_id}))

    def download_file_by_id(
        self, file_id: str, file_range: Optional[FileRange] = None
    ) -> Tuple[FileInfo, DownloadStream]:
        """
        Download a file version by its ID.

        Full downloads are SHA1-verified when the returned stream is exhausted;
        range downloads are not.
        """
        headers = {"Range": file_range.to_header()} if file_range else None

        def url_for(state: SessionState) -> str:
            return f"{state.download_url}{API_VERSION_PATH}b2_download_file_by_id"

        response = self.executor.get(url_for, headers=headers, params={"fileId": file_id})
        return open_download(
            response,
            partial=file_range is not None,
            chunk_size=self.config.chunk_size,
            account_id=self.account_id,
        )

    def close(self):
        self.http.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
