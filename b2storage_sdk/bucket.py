"""
Bucket handle: file uploads, downloads, listings and version management.
"""

import logging
from typing import Optional, Dict, Any, BinaryIO, Iterator, Tuple, TYPE_CHECKING

from .exceptions import B2Error, IntegrityError
from .models import BucketType, FileInfo, FileRange, ListCursor, ListFilesPage
from .pagination import DEFAULT_PAGE_SIZE, FileNamePaginator, FileVersionPaginator
from .transfer import DownloadStream, HashedSource, download_path, hash_source, open_download, post_upload
from .upload_cache import BucketUploadCache

if TYPE_CHECKING:
    from .client import B2Client

logger = logging.getLogger(__name__)


class Bucket:
    """
    A B2 bucket bound to the client that looked it up.

    Each bucket carries its own BucketUploadCache, so upload endpoints are
    fetched and invalidated per bucket.
    """

    def __init__(
        self,
        client: "B2Client",
        bucket_id: str,
        name: str,
        bucket_type: BucketType,
        account_id: Optional[str] = None,
        bucket_info: Optional[Dict[str, Any]] = None,
        revision: int = 0,
    ):
        self.client = client
        self.bucket_id = bucket_id
        self.name = name
        self.bucket_type = bucket_type
        self.account_id = account_id
        self.bucket_info = bucket_info or {}
        self.revision = revision
        self.upload_cache = BucketUploadCache(client.executor, bucket_id)

    @classmethod
    def from_dict(cls, client: "B2Client", data: Dict[str, Any]) -> "Bucket":
        """Create a Bucket from a b2_list_buckets / b2_create_bucket entry."""
        try:
            bucket_type = BucketType(data["bucketType"])
        except ValueError:
            raise B2Error(f"Unrecognised bucket type: {data['bucketType']}", error_code="BAD_BUCKET_TYPE")

        return cls(
            client,
            bucket_id=data["bucketId"],
            name=data["bucketName"],
            bucket_type=bucket_type,
            account_id=data.get("accountId"),
            bucket_info=data.get("bucketInfo") or {},
            revision=data.get("revision") or 0,
        )

    def __repr__(self):
        return f"Bucket(name={self.name!r}, bucket_id={self.bucket_id!r}, type={self.bucket_type.value})"

    @property
    def is_public(self) -> bool:
        return self.bucket_type == BucketType.ALL_PUBLIC

    def update(self, bucket_type: BucketType) -> "Bucket":
        """Change the bucket type, refreshing this handle from the response."""
        updated = self.client.update_bucket(self.bucket_id, bucket_type)
        self.bucket_type = updated.bucket_type
        self.revision = updated.revision
        return self

    def delete(self):
        """Delete the bucket. It must contain no file versions."""
        self.client.delete_bucket(self.bucket_id)

    # Uploads

    def upload_file(
        self,
        name: str,
        source: BinaryIO,
        metadata: Optional[Dict[str, str]] = None,
        content_type: Optional[str] = None,
    ) -> FileInfo:
        """
        Upload the remaining bytes of ``source`` as ``name``.

        The SHA1 is computed before sending. Seekable sources are rewound after
        hashing; other streams are buffered in memory.

        Args:
            name: File name in the bucket
            source: Readable binary stream
            metadata: File info entries stored with the file
            content_type: MIME type; B2 guesses it from the name when omitted

        Returns:
            FileInfo reported by B2
        """
        hashed = hash_source(source, self.client.config.chunk_size)
        return self.upload_hashed_file(name, hashed.reader, hashed.sha1, hashed.length, metadata, content_type)

    def upload_hashed_file(
        self,
        name: str,
        source: BinaryIO,
        sha1: str,
        content_length: int,
        metadata: Optional[Dict[str, str]] = None,
        content_type: Optional[str] = None,
    ) -> FileInfo:
        """Upload ``content_length`` bytes from ``source`` whose SHA1 is already known."""
        authorization = self.upload_cache.get_upload_endpoint()
        logger.debug("Upload: %s/%s sha1=%s length=%d", self.name, name, sha1, content_length)

        try:
            result = post_upload(
                self.client.http,
                authorization,
                name,
                HashedSource(source, sha1, content_length),
                metadata,
                content_type,
                timeout=self.client.config.timeout,
            )
        except B2Error:
            self.upload_cache.invalidate(authorization)
            raise

        if result.content_sha1 != sha1:
            raise IntegrityError(
                f"SHA1 of uploaded file {name} does not match local hash",
                expected_sha1=sha1,
                actual_sha1=result.content_sha1,
            )

        return result

    # Downloads

    def file_url(self, name: str) -> str:
        """URL from which the latest version of ``name`` can be downloaded."""
        return f"{self.client.download_url}/file/{self.name}/{download_path(name)}"

    def download_file_by_name(self, name: str) -> Tuple[FileInfo, DownloadStream]:
        """
        Download the latest version of ``name``.

        The returned stream verifies the SHA1 once it has been read to the end.
        """
        return self._download(name, None)

    def download_file_range_by_name(self, name: str, file_range: FileRange) -> Tuple[FileInfo, DownloadStream]:
        """Download bytes ``file_range.start`` to ``file_range.end`` (inclusive) of ``name``."""
        return self._download(name, file_range)

    def _download(self, name: str, file_range: Optional[FileRange]) -> Tuple[FileInfo, DownloadStream]:
        headers = {"Range": file_range.to_header()} if file_range else None

        def url_for(state):
            return f"{state.download_url}/file/{self.name}/{download_path(name)}"

        response = self.client.executor.get(url_for, headers=headers)
        return open_download(
            response,
            partial=file_range is not None,
            chunk_size=self.client.config.chunk_size,
            bucket_id=self.bucket_id,
            account_id=self.account_id,
        )

    # Listings

    def get_file_info(self, file_id: str) -> FileInfo:
        return self.client.get_file_info(file_id)

    def list_file_names(self, start_file_name: str = "", max_file_count: int = DEFAULT_PAGE_SIZE) -> ListFilesPage:
        """List one page of file names, starting at ``start_file_name``."""
        cursor = ListCursor(start_file_name) if start_file_name else None
        return FileNamePaginator(self.client.executor, self.bucket_id).list_page(cursor, max_file_count)

    def list_file_names_with_prefix(
        self,
        start_file_name: str = "",
        max_file_count: int = DEFAULT_PAGE_SIZE,
        prefix: str = "",
        delimiter: str = "",
    ) -> ListFilesPage:
        """List one page of file names under ``prefix``, folding sub-folders at ``delimiter``."""
        cursor = ListCursor(start_file_name) if start_file_name else None
        paginator = FileNamePaginator(self.client.executor, self.bucket_id, prefix, delimiter)
        return paginator.list_page(cursor, max_file_count)

    def list_file_versions(
        self,
        start_file_name: str = "",
        start_file_id: str = "",
        max_file_count: int = DEFAULT_PAGE_SIZE,
    ) -> ListFilesPage:
        """
        List one page of file versions, in name order and newest first for
        versions sharing a name.
        """
        cursor = ListCursor(start_file_name, start_file_id or None) if start_file_name else None
        return FileVersionPaginator(self.client.executor, self.bucket_id).list_page(cursor, max_file_count)

    def iter_file_names(self, prefix: str = "", page_size: int = DEFAULT_PAGE_SIZE) -> Iterator[FileInfo]:
        return FileNamePaginator(self.client.executor, self.bucket_id, prefix).iter_files(page_size)

    def iter_file_versions(self, prefix: str = "", page_size: int = DEFAULT_PAGE_SIZE) -> Iterator[FileInfo]:
        return FileVersionPaginator(self.client.executor, self.bucket_id, prefix).iter_files(page_size)

    # Deletion

    def delete_file_version(self, file_name: str, file_id: str) -> FileInfo:
        """
        Delete one version of a file.

        If it was the latest version, the next most recent one becomes current.
        """
        response = self.client.call("b2_delete_file_version", {"fileName": file_name, "fileId": file_id})
        return FileInfo.from_dict(response)

    def hide_file(self, file_name: str) -> FileInfo:
        """Hide ``file_name`` from name listings and downloads, keeping its versions."""
        response = self.client.call("b2_hide_file", {"bucketId": self.bucket_id, "fileName": file_name})
        return FileInfo.from_dict(response)
