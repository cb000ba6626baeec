"""Per-file-hash mutual exclusion for merges."""

import logging
import threading
from typing import Set

from common.exceptions import MergeInProgressError

logger = logging.getLogger(__name__)


class MergeLockRegistry:
    """
    Tracks which uploads are currently being merged or purged.

    A single mutex guards the set of active file hashes; an entry lives only
    for the duration of one merge or one sweep purge. Different hashes never
    contend.
    """

    def __init__(self):
        self._mutex = threading.Lock()
        self._active: Set[str] = set()

    def try_acquire(self, file_hash: str) -> bool:
        """
        Mark an upload as busy.

        Args:
            file_hash: Upload identifier

        Returns:
            True if the token was taken, False if another holder has it
        """
        with self._mutex:
            if file_hash in self._active:
                return False
            self._active.add(file_hash)
            return True

    def acquire(self, file_hash: str) -> None:
        """
        Take the merge token or fail.

        Raises:
            MergeInProgressError: If another holder has the token
        """
        if not self.try_acquire(file_hash):
            logger.warning(f"Rejected concurrent merge for upload {file_hash}")
            raise MergeInProgressError(f"A merge is already in progress for upload {file_hash}")

    def release(self, file_hash: str) -> None:
        with self._mutex:
            self._active.discard(file_hash)

    def __len__(self) -> int:
        with self._mutex:
            return len(self._active)
