"""Instant-upload lookup against the completed artifact directory."""

import logging
from typing import Optional

from common.exceptions import NotFoundError
from common.types import DedupResult
from controller.services.artifact_service import ArtifactStore

logger = logging.getLogger(__name__)


class DedupIndex:
    """
    Decides whether an upload can be skipped because the artifact exists.

    Only the name and byte size are compared; content is not re-hashed here.
    Callers that need a correctness guarantee still verify afterwards.
    """

    def __init__(self, artifact_store: ArtifactStore):
        self.artifact_store = artifact_store

    def exists(self, file_name: str, size: Optional[int]) -> DedupResult:
        """
        Look up an artifact by name and declared size.

        Args:
            file_name: Declared file name
            size: Declared size in bytes (None when the client did not send one)

        Returns:
            DedupResult with found=True only on an exact size match
        """
        try:
            info = self.artifact_store.stat(file_name)
        except NotFoundError:
            return DedupResult(found=False)

        if size is None or info.size != size:
            logger.info(
                f"Artifact {file_name} exists with size {info.size}, declared {size}: treating as new content"
            )
            return DedupResult(found=False)

        logger.info(f"Instant upload hit for {file_name} ({info.size} bytes)")
        return DedupResult(found=True, metadata=info)
