"""
Upload and download plumbing: hashing, B2 header encoding and verified download streams.
"""

import hashlib
import io
import logging
from dataclasses import dataclass
from typing import BinaryIO, Dict, Iterator, Optional
from urllib.parse import quote, quote_plus

import requests

from .exceptions import B2Error, IntegrityError, TransportError, error_from_response
from .models import FILE_INFO_HEADER_PREFIX, FileInfo, UploadAuthorization
from .utils import chunk_file

logger = logging.getLogger(__name__)

AUTO_CONTENT_TYPE = "b2/x-auto"
SHA1_HEX_LENGTH = 40


@dataclass
class HashedSource:
    """A readable positioned at the bytes to upload, with their digest and length."""

    reader: BinaryIO
    sha1: str
    length: int


def is_seekable(source) -> bool:
    seekable = getattr(source, "seekable", None)
    if seekable is None:
        return hasattr(source, "seek") and hasattr(source, "tell")
    try:
        return bool(seekable())
    except (OSError, ValueError):
        return False


def hash_source(source: BinaryIO, chunk_size: int = 1024 * 1024) -> HashedSource:
    """
    Compute the SHA1 of everything left in ``source``.

    Seekable sources are hashed in place and rewound to where they started.
    Anything else is copied into an in-memory buffer while hashing, and the
    buffer is uploaded instead.
    """
    hasher = hashlib.sha1()
    length = 0

    if is_seekable(source):
        start = source.tell()
        for chunk in chunk_file(source, chunk_size):
            hasher.update(chunk)
            length += len(chunk)
        source.seek(start)
        return HashedSource(source, hasher.hexdigest(), length)

    buffer = io.BytesIO()
    for chunk in chunk_file(source, chunk_size):
        hasher.update(chunk)
        buffer.write(chunk)
        length += len(chunk)
    buffer.seek(0)
    return HashedSource(buffer, hasher.hexdigest(), length)


def b2_quote(value: str, safe: str = "") -> str:
    """URL-escape a file name or file info entry for a B2 header."""
    return quote_plus(value, safe=safe)


def download_path(name: str) -> str:
    """Escape a file name for use in a download URL path."""
    return quote(name, safe="/")


def build_upload_headers(
    authorization: UploadAuthorization,
    name: str,
    sha1: str,
    length: int,
    metadata: Optional[Dict[str, str]] = None,
    content_type: Optional[str] = None,
) -> Dict[str, str]:
    headers = {
        "Authorization": authorization.authorization_token,
        "X-Bz-File-Name": b2_quote(name, safe="/"),
        "Content-Type": content_type or AUTO_CONTENT_TYPE,
        "Content-Length": str(length),
        "X-Bz-Content-Sha1": sha1,
    }

    for key, value in (metadata or {}).items():
        headers[FILE_INFO_HEADER_PREFIX + b2_quote(key)] = b2_quote(value)

    return headers


def post_upload(
    http: requests.Session,
    authorization: UploadAuthorization,
    name: str,
    source: HashedSource,
    metadata: Optional[Dict[str, str]] = None,
    content_type: Optional[str] = None,
    timeout: float = None,
) -> FileInfo:
    """
    Send file bytes to an upload URL and return the FileInfo B2 reports.

    Raises TransportError or the error variant of a non-200 response; the
    caller is responsible for dropping the upload authorization on failure.
    """
    headers = build_upload_headers(authorization, name, source.sha1, source.length, metadata, content_type)
    # requests falls back to chunked encoding for empty streams, which B2 rejects
    body = source.reader if source.length else b""

    try:
        response = http.post(authorization.upload_url, data=body, headers=headers, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise TransportError(f"Upload of {name} failed: {e}")

    try:
        if response.status_code != 200:
            raise error_from_response(response)

        try:
            return FileInfo.from_dict(response.json())
        except (ValueError, KeyError) as e:
            raise B2Error(f"Malformed upload response for {name}: {e}", error_code="MALFORMED_RESPONSE")
    finally:
        response.close()


def expected_digest(content_sha1: Optional[str]) -> Optional[str]:
    """
    Return the digest a full download can be checked against, if any.

    Large files report ``none``; files uploaded with a trailing hash may be
    prefixed with ``unverified:``.
    """
    if not content_sha1:
        return None
    if content_sha1.startswith("unverified:"):
        content_sha1 = content_sha1[len("unverified:"):]
    if len(content_sha1) != SHA1_HEX_LENGTH:
        return None
    return content_sha1.lower()


class DownloadStream:
    """
    Lazily-read body of a download response.

    When constructed with an ``expected_sha1`` the bytes are hashed as they are
    read, and exhausting the stream raises IntegrityError if the digest does not
    match; every later read raises it again. Range downloads are created without
    one.
    """

    def __init__(self, response: requests.Response, expected_sha1: Optional[str] = None, chunk_size: int = 64 * 1024):
        self._response = response
        self._chunks = response.iter_content(chunk_size)
        self._buffer = bytearray()
        self._hasher = hashlib.sha1() if expected_sha1 else None
        self.expected_sha1 = expected_sha1
        self.bytes_read = 0
        self.verified = False
        self._exhausted = False
        self._failure: Optional[IntegrityError] = None
        self.closed = False

    @property
    def verifies(self) -> bool:
        return self._hasher is not None

    def _next_chunk(self) -> bytes:
        if self._exhausted:
            return b""
        try:
            while True:
                chunk = next(self._chunks)
                if chunk:
                    break
        except StopIteration:
            self._exhausted = True
            self._verify()
            return b""
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Download interrupted after {self.bytes_read} bytes: {e}")

        self.bytes_read += len(chunk)
        if self._hasher is not None:
            self._hasher.update(chunk)
        return chunk

    def _verify(self):
        if self._hasher is None:
            return
        actual = self._hasher.hexdigest()
        if actual != self.expected_sha1:
            logger.warning("SHA1 mismatch: expected %s, got %s", self.expected_sha1, actual)
            # unverified bytes are never handed out
            self._buffer.clear()
            self._failure = IntegrityError(
                "Downloaded data does not match SHA1 hash",
                expected_sha1=self.expected_sha1,
                actual_sha1=actual,
            )
            raise self._failure
        self.verified = True

    def read(self, size: int = -1) -> bytes:
        if self.closed:
            raise ValueError("I/O operation on closed download stream")
        if self._failure is not None:
            raise self._failure

        if size is None or size < 0:
            while True:
                chunk = self._next_chunk()
                if not chunk:
                    break
                self._buffer.extend(chunk)
        else:
            while len(self._buffer) < size:
                chunk = self._next_chunk()
                if not chunk:
                    break
                self._buffer.extend(chunk)

        if size is None or size < 0:
            size = len(self._buffer)
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def iter_content(self, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        while True:
            data = self.read(chunk_size)
            if not data:
                break
            yield data

    def __iter__(self):
        return self.iter_content()

    def close(self):
        if not self.closed:
            self.closed = True
            self._response.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def open_download(
    response: requests.Response,
    partial: bool = False,
    chunk_size: int = 64 * 1024,
    bucket_id: Optional[str] = None,
    account_id: Optional[str] = None,
):
    """
    Turn an open download response into ``(FileInfo, DownloadStream)``.

    The response is closed if the headers cannot be parsed.
    """
    try:
        file_info = FileInfo.from_headers(response.headers, bucket_id, account_id)
    except ValueError:
        response.close()
        raise

    expected = None if partial else expected_digest(file_info.content_sha1)
    return file_info, DownloadStream(response, expected, chunk_size)
