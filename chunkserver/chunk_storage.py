"""Manages staged chunk files on disk: one container directory per upload."""

import logging
import os
import shutil
import uuid
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Union

from common.constants import DEFAULT_CHUNK_STORAGE_PATH, DIGEST_PIECE_SIZE, TEMP_FILE_SUFFIX
from common.exceptions import NotFoundError, StorageError
from common.types import UploadSession
from common.validation import parse_chunk_index, validate_path_component

logger = logging.getLogger(__name__)


def sort_chunk_keys(chunk_keys: List[str]) -> List[str]:
    """
    Order chunk keys for reassembly.

    Keys are compared by the integer value of their leading numeric segment,
    never lexically ("10" comes after "2"). Two keys sharing an index are
    ordered by the full key string so the result is deterministic.

    Args:
        chunk_keys: Unordered chunk keys

    Returns:
        New list of keys in merge order
    """
    return sorted(chunk_keys, key=lambda key: (parse_chunk_index(key), key))


class ChunkStore:
    """
    Stores chunks keyed by (file hash, chunk key).

    Each upload owns a container directory named after its file hash; each
    chunk is one file in that directory named after its chunk key. Writes for
    distinct keys are independent, so no locking happens here.
    """

    def __init__(self, root: Union[str, Path] = DEFAULT_CHUNK_STORAGE_PATH):
        """
        Initialize the store.

        Args:
            root: Directory holding one container per upload
        """
        self.root = Path(root)

    def ensure_root(self) -> None:
        """Ensure the chunk root directory exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def get_container_path(self, file_hash: str) -> Path:
        """
        Get the container directory for an upload.

        Args:
            file_hash: Client-supplied upload identifier

        Returns:
            Path object for the container directory
        """
        return self.root / validate_path_component(file_hash, 'fileHash')

    def get_chunk_path(self, file_hash: str, chunk_key: str) -> Path:
        """
        Get the file path for a chunk slot.

        Args:
            file_hash: Client-supplied upload identifier
            chunk_key: Chunk key (``"<index>-<suffix>"``)

        Returns:
            Path object for the chunk file
        """
        return self.get_container_path(file_hash) / validate_path_component(chunk_key, 'hash')

    def container_exists(self, file_hash: str) -> bool:
        return self.get_container_path(file_hash).is_dir()

    def write_chunk(self, file_hash: str, chunk_key: str, data: bytes) -> Path:
        """
        Write chunk data to its slot, replacing any previous bytes.

        The data lands in a hidden temp file first and is then moved over the
        slot, so a failed write leaves the previous chunk (or no chunk) in
        place and never a torn one.

        Args:
            file_hash: Client-supplied upload identifier
            chunk_key: Chunk key; its leading numeric segment is the chunk index
            data: Raw chunk bytes

        Returns:
            Path of the written chunk

        Raises:
            ValidationError: If the file hash or chunk key is malformed
            StorageError: If the write fails (permissions, full disk)
        """
        parse_chunk_index(chunk_key)
        chunk_path = self.get_chunk_path(file_hash, chunk_key)
        temp_path = chunk_path.with_name(f".{chunk_path.name}.{uuid.uuid4().hex}{TEMP_FILE_SUFFIX}")

        try:
            chunk_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, 'wb') as f:
                f.write(data)
            os.replace(temp_path, chunk_path)
        except OSError as e:
            try:
                temp_path.unlink()
            except OSError:
                pass
            logger.error(f"Failed to write chunk {chunk_key} for upload {file_hash}: {e}")
            raise StorageError(f"Failed to write chunk {chunk_key}: {e}") from e

        logger.debug(f"Stored chunk {chunk_key} for upload {file_hash} ({len(data)} bytes)")
        return chunk_path

    def list_chunks(self, file_hash: str) -> List[str]:
        """
        List the chunk keys stored for an upload, in merge order.

        Args:
            file_hash: Client-supplied upload identifier

        Returns:
            Chunk keys sorted by numeric index

        Raises:
            NotFoundError: If no container exists for the upload
            StorageError: If the container cannot be listed
        """
        container = self.get_container_path(file_hash)
        if not container.is_dir():
            raise NotFoundError(f"No chunks found for upload {file_hash}")

        try:
            names = [
                entry.name for entry in container.iterdir()
                if entry.is_file() and not entry.name.startswith('.')
            ]
        except OSError as e:
            raise StorageError(f"Failed to list chunks for upload {file_hash}: {e}") from e

        return sort_chunk_keys(names)

    def open_chunk(self, file_hash: str, chunk_key: str) -> BinaryIO:
        """
        Open a chunk for binary reading.

        Raises:
            NotFoundError: If the chunk does not exist
            StorageError: If the chunk cannot be opened
        """
        chunk_path = self.get_chunk_path(file_hash, chunk_key)
        try:
            return open(chunk_path, 'rb')
        except FileNotFoundError as e:
            raise NotFoundError(f"Chunk {chunk_key} not found for upload {file_hash}") from e
        except OSError as e:
            raise StorageError(f"Failed to open chunk {chunk_key}: {e}") from e

    def read_chunk_streaming(
        self,
        file_hash: str,
        chunk_key: str,
        piece_size: int = DIGEST_PIECE_SIZE,
    ) -> Iterator[bytes]:
        """
        Stream chunk data in pieces.

        Args:
            file_hash: Client-supplied upload identifier
            chunk_key: Chunk key
            piece_size: Size of each piece in bytes (default 64KB)

        Yields:
            Chunk data pieces

        Raises:
            NotFoundError: If the chunk does not exist
            StorageError: If reading fails
        """
        with self.open_chunk(file_hash, chunk_key) as f:
            while True:
                try:
                    piece = f.read(piece_size)
                except OSError as e:
                    raise StorageError(f"Failed to read chunk {chunk_key}: {e}") from e
                if not piece:
                    break
                yield piece

    def delete_chunk(self, file_hash: str, chunk_key: str) -> bool:
        """
        Delete one chunk slot.

        Args:
            file_hash: Client-supplied upload identifier
            chunk_key: Chunk key

        Returns:
            True if the chunk was deleted, False if it was already gone

        Raises:
            StorageError: If the chunk exists but cannot be deleted
        """
        chunk_path = self.get_chunk_path(file_hash, chunk_key)
        try:
            chunk_path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete chunk {chunk_key}: {e}") from e

    def remove_container(self, file_hash: str) -> bool:
        """
        Remove the (empty) container directory of an upload.

        Best-effort: failures are logged and reported through the return
        value, never raised. A container that still holds late-arriving
        chunks is left for the stale upload sweeper.

        Args:
            file_hash: Client-supplied upload identifier

        Returns:
            True if the directory was removed, False otherwise
        """
        try:
            self.get_container_path(file_hash).rmdir()
            logger.info(f"Removed chunk container for upload {file_hash}")
            return True
        except FileNotFoundError:
            return False
        except Exception as e:
            logger.warning(f"Failed to remove chunk container for upload {file_hash}: {e}")
            return False

    def purge_container(self, file_hash: str) -> bool:
        """
        Remove a container directory and every chunk inside it.

        Returns:
            True if the directory was removed, False if it did not exist

        Raises:
            StorageError: If the directory cannot be removed
        """
        container = self.get_container_path(file_hash)
        if not container.exists():
            return False
        try:
            shutil.rmtree(container)
        except OSError as e:
            raise StorageError(f"Failed to purge chunks for upload {file_hash}: {e}") from e
        return True

    def list_containers(self) -> List[str]:
        """
        List the file hashes that currently have a chunk container.

        Returns:
            File hashes (container directory names)
        """
        if not self.root.exists():
            return []
        return [entry.name for entry in self.root.iterdir() if entry.is_dir()]

    def last_modified(self, file_hash: str) -> Optional[float]:
        """
        Get the most recent modification time inside a container.

        Returns:
            POSIX timestamp, or None if the container does not exist
        """
        container = self.get_container_path(file_hash)
        try:
            latest = container.stat().st_mtime
            for entry in container.iterdir():
                latest = max(latest, entry.stat().st_mtime)
        except FileNotFoundError:
            return None
        return latest

    def describe(self, file_hash: str) -> UploadSession:
        """
        Summarize the chunks staged for an upload.

        Args:
            file_hash: Client-supplied upload identifier

        Returns:
            UploadSession snapshot

        Raises:
            NotFoundError: If no container exists for the upload
        """
        chunk_keys = self.list_chunks(file_hash)
        container = self.get_container_path(file_hash)

        bytes_received = 0
        for key in chunk_keys:
            try:
                bytes_received += (container / key).stat().st_size
            except FileNotFoundError:
                continue

        try:
            created_at = datetime.fromtimestamp(container.stat().st_ctime)
        except FileNotFoundError as e:
            raise NotFoundError(f"No chunks found for upload {file_hash}") from e

        return UploadSession(
            file_hash=file_hash,
            created_at=created_at,
            chunk_keys=chunk_keys,
            bytes_received=bytes_received,
        )
