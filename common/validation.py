"""Validation helpers for identifiers that become file system names."""

import re

from common.exceptions import ValidationError

CHUNK_INDEX_PATTERN = re.compile(r'^(\d+)(?:-|$)')


def validate_path_component(value: str, field_name: str) -> str:
    """
    Ensure a client-supplied identifier is a single safe path component.

    Args:
        value: Identifier supplied by the client (file hash, chunk key, file name)
        field_name: Field name used in the error message

    Returns:
        The identifier, stripped of surrounding whitespace

    Raises:
        ValidationError: If the identifier is empty or could escape its directory
    """
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing required field: {field_name}")

    value = str(value).strip()

    if '/' in value or '\\' in value or '\x00' in value:
        raise ValidationError(f"Invalid {field_name}: path separators are not allowed")
    if value.startswith('.'):
        raise ValidationError(f"Invalid {field_name}: must not start with '.'")

    return value


def parse_chunk_index(chunk_key: str) -> int:
    """
    Extract the ordering index from a chunk key.

    Keys look like ``"3"`` or ``"3-<suffix>"``; the leading numeric segment
    is the position of the chunk inside the final file.

    Args:
        chunk_key: Chunk key as sent by the client

    Returns:
        Integer index

    Raises:
        ValidationError: If the key has no leading numeric segment
    """
    match = CHUNK_INDEX_PATTERN.match(chunk_key or '')
    if not match:
        raise ValidationError(
            f"Invalid chunk key '{chunk_key}': expected '<index>' or '<index>-<suffix>'"
        )
    return int(match.group(1))
