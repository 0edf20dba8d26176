"""
Data models for the B2 storage SDK.

This module defines the value types exchanged with the B2 API. File
descriptors built from upload responses, listing responses and download
headers all share the FileInfo shape.
"""

from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field, replace
from enum import Enum
from urllib.parse import unquote_plus


FILE_INFO_HEADER_PREFIX = "X-Bz-Info-"


class BucketType(Enum):
    """Bucket visibility."""
    ALL_PUBLIC = "allPublic"
    ALL_PRIVATE = "allPrivate"
    SNAPSHOT = "snapshot"


class FileAction(Enum):
    """What a file version represents in a listing."""
    UPLOAD = "upload"
    HIDE = "hide"
    START = "start"
    FOLDER = "folder"


@dataclass(frozen=True)
class Credentials:
    """Account identifier and application key used to authorize an account."""

    account_id: str
    application_key: str

    def __repr__(self):
        return f"Credentials(account_id={self.account_id!r}, application_key='***')"


@dataclass(frozen=True)
class SessionState:
    """Result of one account authorization. Replaced wholesale, never edited."""

    account_id: str
    authorization_token: str
    api_url: str
    download_url: str
    valid: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionState":
        """Create SessionState from a b2_authorize_account response."""
        return cls(
            account_id=data["accountId"],
            authorization_token=data["authorizationToken"],
            api_url=data["apiUrl"].rstrip("/"),
            download_url=data["downloadUrl"].rstrip("/"),
        )

    def invalidated(self) -> "SessionState":
        return replace(self, valid=False)


@dataclass(frozen=True)
class UploadAuthorization:
    """A bucket-scoped upload URL and the token that goes with it."""

    upload_url: str
    authorization_token: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UploadAuthorization":
        """Create UploadAuthorization from a b2_get_upload_url response."""
        return cls(
            upload_url=data["uploadUrl"],
            authorization_token=data["authorizationToken"],
        )


@dataclass
class FileInfo:
    """Information about one version of a file stored in a bucket."""

    file_id: str
    name: str
    content_length: int = 0
    content_sha1: Optional[str] = None
    content_type: Optional[str] = None
    file_info: Dict[str, str] = field(default_factory=dict)
    action: FileAction = FileAction.UPLOAD
    upload_timestamp: int = 0
    account_id: Optional[str] = None
    bucket_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileInfo":
        """Create FileInfo from an upload, file-info or listing response entry."""
        content_length = data.get("contentLength")
        if content_length is None:
            content_length = data.get("size", 0)

        return cls(
            file_id=data.get("fileId"),
            name=data["fileName"],
            content_length=content_length or 0,
            content_sha1=data.get("contentSha1"),
            content_type=data.get("contentType"),
            file_info=dict(data.get("fileInfo") or {}),
            action=FileAction(data.get("action") or "upload"),
            upload_timestamp=data.get("uploadTimestamp") or 0,
            account_id=data.get("accountId"),
            bucket_id=data.get("bucketId"),
        )

    @classmethod
    def from_headers(
        cls, headers, bucket_id: Optional[str] = None, account_id: Optional[str] = None
    ) -> "FileInfo":
        """
        Rebuild FileInfo from the headers of a download response.

        File name, metadata keys and metadata values are sent URL-escaped and are
        unescaped here. The headers do not name the bucket or account, so the
        caller supplies them.
        """
        file_info = {}
        for key, value in headers.items():
            if key.lower().startswith(FILE_INFO_HEADER_PREFIX.lower()):
                info_key = unquote_plus(key[len(FILE_INFO_HEADER_PREFIX):])
                file_info[info_key] = unquote_plus(value)

        timestamp = headers.get("X-Bz-Upload-Timestamp")

        return cls(
            file_id=headers.get("X-Bz-File-Id"),
            name=unquote_plus(headers.get("X-Bz-File-Name", "")),
            content_length=int(headers.get("Content-Length", 0)),
            content_sha1=headers.get("X-Bz-Content-Sha1"),
            content_type=headers.get("Content-Type"),
            file_info=file_info,
            upload_timestamp=int(timestamp) if timestamp else 0,
            account_id=account_id,
            bucket_id=bucket_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert FileInfo to the B2 wire representation."""
        result = {
            "fileId": self.file_id,
            "fileName": self.name,
            "contentLength": self.content_length,
            "contentSha1": self.content_sha1,
            "contentType": self.content_type,
            "fileInfo": dict(self.file_info),
            "action": self.action.value,
            "uploadTimestamp": self.upload_timestamp,
        }

        if self.account_id:
            result["accountId"] = self.account_id
        if self.bucket_id:
            result["bucketId"] = self.bucket_id

        return result

    @property
    def uploaded_at(self) -> Optional[datetime]:
        """Upload time as an aware datetime."""
        if not self.upload_timestamp:
            return None
        return datetime.fromtimestamp(self.upload_timestamp / 1000, tz=timezone.utc)

    @property
    def is_hidden(self) -> bool:
        return self.action == FileAction.HIDE


@dataclass(frozen=True)
class ListCursor:
    """Opaque continuation marker for file listings."""

    file_name: str
    file_id: Optional[str] = None


@dataclass
class ListFilesPage:
    """One page of a file listing."""

    files: List[FileInfo] = field(default_factory=list)
    next_cursor: Optional[ListCursor] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ListFilesPage":
        """Create ListFilesPage from a b2_list_file_names/b2_list_file_versions response."""
        next_cursor = None
        if data.get("nextFileName"):
            next_cursor = ListCursor(data["nextFileName"], data.get("nextFileId") or None)

        return cls(
            files=[FileInfo.from_dict(entry) for entry in data.get("files", [])],
            next_cursor=next_cursor,
        )

    @property
    def is_last(self) -> bool:
        return self.next_cursor is None


@dataclass(frozen=True)
class FileRange:
    """Inclusive byte range of a file."""

    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid byte range: {self.start}-{self.end}")

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def to_header(self) -> str:
        return f"bytes={self.start}-{self.end}"


@dataclass
class TransferResult:
    """Outcome of one transfer driven by the TransferOrchestrator."""

    item: Any
    file: Optional[FileInfo] = None
    error: Optional[BaseException] = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped
