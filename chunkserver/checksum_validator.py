"""Provides streaming content digests."""

import hashlib
from pathlib import Path
from typing import BinaryIO, Optional, Union

from common.constants import DEFAULT_HASH_ALGORITHM, DIGEST_PIECE_SIZE
from common.exceptions import IoError, ValidationError


def _new_hasher(algorithm: str):
    try:
        return hashlib.new(algorithm)
    except ValueError as e:
        raise ValidationError(f"Unsupported hash algorithm: {algorithm}") from e


class IncrementalChecksumCalculator:
    """
    Calculate a checksum incrementally for streaming data.

    Usage:
        calculator = IncrementalChecksumCalculator()
        calculator.update(piece1)
        calculator.update(piece2)
        final_checksum = calculator.finalize()
    """

    def __init__(self, algorithm: str = DEFAULT_HASH_ALGORITHM):
        """Initialize a new incremental checksum calculator."""
        self.algorithm = algorithm
        self._hasher = _new_hasher(algorithm)
        self._finalized = False
        self.bytes_processed = 0

    def update(self, data: bytes) -> None:
        """
        Update checksum with new data.

        Args:
            data: Bytes to add to checksum calculation
        """
        if self._finalized:
            raise ValueError("Cannot update after finalization")
        self._hasher.update(data)
        self.bytes_processed += len(data)

    def finalize(self) -> str:
        """
        Finalize checksum calculation and return result.

        Returns:
            Hexadecimal digest string
        """
        self._finalized = True
        return self._hasher.hexdigest()


def digest_stream(
    stream: BinaryIO,
    algorithm: str = DEFAULT_HASH_ALGORITHM,
    piece_size: int = DIGEST_PIECE_SIZE,
    expected_length: Optional[int] = None,
) -> str:
    """
    Digest a binary stream piece by piece.

    The stream is never loaded whole. Any read failure aborts the digest,
    and when ``expected_length`` is given a stream that ends short is
    treated as a failure too, so a truncated read never yields a digest.

    Args:
        stream: Readable binary stream
        algorithm: hashlib algorithm name
        piece_size: Bytes read per iteration
        expected_length: Total byte count the stream must deliver, if known

    Returns:
        Hexadecimal digest string

    Raises:
        IoError: If the stream cannot be read to completion
    """
    calculator = IncrementalChecksumCalculator(algorithm)

    while True:
        try:
            piece = stream.read(piece_size)
        except OSError as e:
            raise IoError(f"Failed to read stream after {calculator.bytes_processed} bytes: {e}") from e
        if not piece:
            break
        calculator.update(piece)

    if expected_length is not None and calculator.bytes_processed != expected_length:
        raise IoError(
            f"Stream ended after {calculator.bytes_processed} of {expected_length} bytes"
        )

    return calculator.finalize()


def digest_file(
    path: Union[str, Path],
    algorithm: str = DEFAULT_HASH_ALGORITHM,
    piece_size: int = DIGEST_PIECE_SIZE,
) -> str:
    """
    Digest a file on disk without loading it into memory.

    Args:
        path: File to digest
        algorithm: hashlib algorithm name
        piece_size: Bytes read per iteration

    Returns:
        Hexadecimal digest string

    Raises:
        IoError: If the file cannot be opened or read to completion
    """
    path = Path(path)
    try:
        with open(path, 'rb') as f:
            expected_length = path.stat().st_size
            return digest_stream(f, algorithm, piece_size, expected_length=expected_length)
    except OSError as e:
        raise IoError(f"Failed to read {path.name}: {e}") from e
