"""Merge coordination: assemble staged chunks into the final artifact."""

import asyncio
import logging
import os
import uuid
from collections import Counter
from pathlib import Path
from typing import List, Optional

from chunkserver.chunk_storage import ChunkStore
from common.constants import TEMP_FILE_SUFFIX
from common.exceptions import NoChunksError, NotFoundError, SizeMismatchError, StorageError
from common.types import MergeResult
from common.validation import parse_chunk_index, validate_path_component
from controller.cleanup_task import DelayedContainerCleaner
from controller.merge_lock import MergeLockRegistry
from controller.services.artifact_service import ArtifactStore

logger = logging.getLogger(__name__)


class MergeCoordinator:
    """
    Orchestrates one merge per upload.

    The artifact is written to a hidden temp file, checked against the
    declared size, and moved into place atomically. Chunks are deleted only
    after the artifact is in place, so a failed merge keeps every chunk and
    can be retried.
    """

    def __init__(
        self,
        chunk_store: ChunkStore,
        artifact_store: ArtifactStore,
        merge_locks: MergeLockRegistry,
        cleaner: DelayedContainerCleaner,
    ):
        self.chunk_store = chunk_store
        self.artifact_store = artifact_store
        self.merge_locks = merge_locks
        self.cleaner = cleaner

    async def merge(self, file_hash: str, file_name: str, size: Optional[int] = None) -> MergeResult:
        """
        Merge every stored chunk of an upload into an artifact.

        Args:
            file_hash: Upload identifier
            file_name: Name of the artifact to create
            size: Declared total size in bytes; checked when given

        Returns:
            MergeResult describing the artifact

        Raises:
            ValidationError: If an identifier is malformed
            MergeInProgressError: If a merge for the same upload is running
            NoChunksError: If the upload has no stored chunks
            SizeMismatchError: If the assembled size differs from the declared size
            StorageError: If the artifact cannot be written
        """
        file_hash = validate_path_component(file_hash, 'fileHash')
        file_name = validate_path_component(file_name, 'fileName')

        # Token is taken before the first await and released by the worker
        # thread, so it outlives a cancelled request.
        self.merge_locks.acquire(file_hash)
        logger.info(f"Merging upload {file_hash} into {file_name}")
        result = await asyncio.shield(
            asyncio.to_thread(self._merge_holding_token, file_hash, file_name, size)
        )

        self.cleaner.schedule(file_hash)
        logger.info(
            f"Merged upload {file_hash} into {file_name} "
            f"({result.chunk_count} chunks, {result.size} bytes)"
        )
        return result

    def _merge_holding_token(self, file_hash: str, file_name: str, size: Optional[int]) -> MergeResult:
        try:
            return self._merge_sync(file_hash, file_name, size)
        finally:
            self.merge_locks.release(file_hash)

    def _merge_sync(self, file_hash: str, file_name: str, size: Optional[int]) -> MergeResult:
        chunk_keys = self._resolve_chunks(file_hash)

        artifact_path = self.artifact_store.get_artifact_path(file_name)
        temp_path = artifact_path.with_name(f".{file_name}.{uuid.uuid4().hex}{TEMP_FILE_SUFFIX}")

        try:
            written = self._assemble(file_hash, chunk_keys, temp_path)

            if size is not None and written != size:
                raise SizeMismatchError(
                    f"Merged size {written} does not match declared size {size} for {file_name}"
                )

            try:
                os.replace(temp_path, artifact_path)
            except OSError as e:
                raise StorageError(f"Failed to publish {file_name}: {e}") from e
        except BaseException:
            self._discard(temp_path)
            raise

        self._delete_chunks(file_hash, chunk_keys)

        return MergeResult(
            name=file_name,
            url=self.artifact_store.get_artifact_url(file_name),
            size=written,
            chunk_count=len(chunk_keys),
        )

    def _resolve_chunks(self, file_hash: str) -> List[str]:
        try:
            chunk_keys = self.chunk_store.list_chunks(file_hash)
        except NotFoundError as e:
            raise NoChunksError(f"No chunks found for upload {file_hash}") from e

        if not chunk_keys:
            raise NoChunksError(f"No chunk files found for upload {file_hash}")

        duplicates = [
            index for index, count in Counter(parse_chunk_index(key) for key in chunk_keys).items()
            if count > 1
        ]
        if duplicates:
            logger.warning(
                f"Upload {file_hash} has several chunks for indexes {sorted(duplicates)}; "
                f"ordering them by key"
            )

        return chunk_keys

    def _assemble(self, file_hash: str, chunk_keys: List[str], temp_path: Path) -> int:
        """Stream chunks into ``temp_path`` strictly in order; returns bytes written."""
        written = 0
        try:
            with open(temp_path, 'wb') as out:
                for chunk_key in chunk_keys:
                    for piece in self.chunk_store.read_chunk_streaming(file_hash, chunk_key):
                        out.write(piece)
                        written += len(piece)
                out.flush()
                os.fsync(out.fileno())
        except NotFoundError as e:
            raise StorageError(f"Chunk vanished during merge of upload {file_hash}: {e}") from e
        except OSError as e:
            logger.error(f"Failed to write artifact for upload {file_hash}: {e}")
            raise StorageError(f"Failed to write artifact: {e}") from e
        return written

    def _delete_chunks(self, file_hash: str, chunk_keys: List[str]) -> None:
        for chunk_key in chunk_keys:
            try:
                self.chunk_store.delete_chunk(file_hash, chunk_key)
            except StorageError as e:
                logger.warning(f"Merged chunk {chunk_key} of upload {file_hash} could not be deleted: {e}")

    @staticmethod
    def _discard(temp_path: Path) -> None:
        try:
            temp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove partial artifact {temp_path.name}: {e}")
