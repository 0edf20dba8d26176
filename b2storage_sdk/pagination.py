"""
Cursor-based iteration over file listings.

A listing is fetched one page at a time; each page carries the cursor of the
next one, and a page without a cursor is the last. Following the cursors
yields the same entries, in the same order, as one call with a page size large
enough to hold everything.
"""

from typing import Any, Dict, Iterator, Optional

from .executor import RequestExecutor
from .models import FileInfo, ListCursor, ListFilesPage

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 10000


class Paginator:
    """Base class for paginated B2 listing calls."""

    api_method: str = None

    def __init__(self, executor: RequestExecutor, bucket_id: str):
        self.executor = executor
        self.bucket_id = bucket_id

    def _build_request(self, cursor: Optional[ListCursor], page_size: int) -> Dict[str, Any]:
        raise NotImplementedError

    def list_page(self, cursor: Optional[ListCursor] = None, page_size: int = DEFAULT_PAGE_SIZE) -> ListFilesPage:
        """
        Fetch one page of the listing.

        Args:
            cursor: Cursor returned by the previous page, or None for the first page
            page_size: Maximum number of entries to return
        """
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {page_size}")
        response = self.executor.call(self.api_method, self._build_request(cursor, page_size))
        return ListFilesPage.from_dict(response)

    def pages(
        self, page_size: int = DEFAULT_PAGE_SIZE, cursor: Optional[ListCursor] = None
    ) -> Iterator[ListFilesPage]:
        while True:
            page = self.list_page(cursor, page_size)
            yield page
            if page.is_last:
                return
            cursor = page.next_cursor

    def iter_files(self, page_size: int = DEFAULT_PAGE_SIZE) -> Iterator[FileInfo]:
        for page in self.pages(page_size):
            yield from page.files


class FileNamePaginator(Paginator):
    """Pages through b2_list_file_names, optionally restricted to a prefix/delimiter."""

    api_method = "b2_list_file_names"

    def __init__(self, executor: RequestExecutor, bucket_id: str, prefix: str = "", delimiter: str = ""):
        super().__init__(executor, bucket_id)
        self.prefix = prefix
        self.delimiter = delimiter

    def _build_request(self, cursor, page_size):
        request = {
            "bucketId": self.bucket_id,
            "startFileName": cursor.file_name if cursor else "",
            "maxFileCount": page_size,
        }
        if self.prefix:
            request["prefix"] = self.prefix
        if self.delimiter:
            request["delimiter"] = self.delimiter
        return request


class FileVersionPaginator(Paginator):
    """Pages through b2_list_file_versions; cursors carry both file name and file ID."""

    api_method = "b2_list_file_versions"

    def __init__(self, executor: RequestExecutor, bucket_id: str, prefix: str = ""):
        super().__init__(executor, bucket_id)
        self.prefix = prefix

    def _build_request(self, cursor, page_size):
        request = {"bucketId": self.bucket_id, "maxFileCount": page_size}
        if cursor and cursor.file_name:
            request["startFileName"] = cursor.file_name
        if cursor and cursor.file_id:
            request["startFileId"] = cursor.file_id
        if self.prefix:
            request["prefix"] = self.prefix
        return request
