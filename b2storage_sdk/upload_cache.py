"""
Per-bucket cache of the upload URL and token.
"""

import logging
import threading
from typing import Optional

from .executor import RequestExecutor
from .models import UploadAuthorization

logger = logging.getLogger(__name__)


class BucketUploadCache:
    """
    Holds the UploadAuthorization of one bucket.

    The authorization is fetched lazily with b2_get_upload_url and dropped as a
    whole when an upload using it fails, so the next upload asks for a new one.
    Fetch-or-reuse is serialized per bucket; different buckets do not contend.
    """

    def __init__(self, executor: RequestExecutor, bucket_id: str):
        self._executor = executor
        self.bucket_id = bucket_id
        self._lock = threading.Lock()
        self._authorization: Optional[UploadAuthorization] = None

    def get_upload_endpoint(self) -> UploadAuthorization:
        with self._lock:
            if self._authorization is None:
                response = self._executor.call("b2_get_upload_url", {"bucketId": self.bucket_id})
                self._authorization = UploadAuthorization.from_dict(response)
                logger.debug("Fetched upload URL for bucket %s", self.bucket_id)
            return self._authorization

    def invalidate(self, authorization: Optional[UploadAuthorization] = None):
        """
        Drop the cached authorization.

        If ``authorization`` is given, only drop it when it is still the cached
        value; an endpoint fetched since then by another upload is kept.
        """
        with self._lock:
            if authorization is None or authorization == self._authorization:
                if self._authorization is not None:
                    logger.debug("Invalidating upload URL for bucket %s", self.bucket_id)
                self._authorization = None

    @property
    def is_valid(self) -> bool:
        with self._lock:
            return self._authorization is not None
