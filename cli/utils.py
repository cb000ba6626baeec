"""Utility functions for CLI operations."""

from pathlib import Path
from typing import Iterator, Tuple, Union


def iter_file_chunks(path: Union[str, Path], chunk_size: int) -> Iterator[Tuple[int, bytes]]:
    """
    Read a file in fixed-size chunks.

    Args:
        path: File to split
        chunk_size: Bytes per chunk (the last chunk may be shorter)

    Yields:
        (index, data) tuples starting at index 0
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    with open(path, 'rb') as f:
        index = 0
        while True:
            data = f.read(chunk_size)
            if not data:
                break
            yield index, data
            index += 1


def chunk_count(file_size: int, chunk_size: int) -> int:
    return (file_size + chunk_size - 1) // chunk_size


def make_chunk_key(index: int, file_hash: str) -> str:
    return f"{index}-{file_hash}"


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"
