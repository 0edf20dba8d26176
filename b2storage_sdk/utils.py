"""
Utility functions for the B2 storage SDK.

This module provides helpers for hashing, reading files in chunks and
formatting values for display.
"""

import hashlib
import math
from datetime import datetime, timezone
from typing import Iterator, BinaryIO, Dict, Iterable


def chunk_file(file_obj: BinaryIO, chunk_size: int = 1024 * 1024) -> Iterator[bytes]:
    """
    Read file in chunks.

    Args:
        file_obj: File object to read from
        chunk_size: Size of each chunk in bytes

    Yields:
        File chunks as bytes
    """
    while True:
        chunk = file_obj.read(chunk_size)
        if not chunk:
            break
        yield chunk


def sha1_hexdigest(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB")
    """
    if size_bytes <= 0:
        return "0 B"

    size_names = ["B", "KB", "MB", "GB", "TB", "PB"]
    i = int(math.floor(math.log(size_bytes, 1024)))

    if i >= len(size_names):
        i = len(size_names) - 1

    p = math.pow(1024, i)
    size = round(size_bytes / p, 2)

    return f"{size} {size_names[i]}"


def format_timestamp(timestamp_ms: int) -> str:
    """Render a B2 millisecond timestamp as ``YYYY-MM-DD HH:MM:SS`` (UTC)."""
    if not timestamp_ms:
        return "Unknown"
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def parse_metadata(pairs: Iterable[str]) -> Dict[str, str]:
    """
    Parse ``key=value`` strings into a metadata mapping.

    Raises:
        ValueError: If a pair has no ``=`` or an empty key, or a key repeats
    """
    metadata = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Invalid metadata entry (expected key=value): {pair}")
        if key in metadata:
            raise ValueError(f"Duplicate metadata key: {key}")
        metadata[key] = value
    return metadata
