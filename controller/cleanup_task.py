"""Background tasks for cleaning up chunk containers."""

import asyncio
import logging
import time
from typing import Optional, Set

from chunkserver.chunk_storage import ChunkStore
from common.constants import CLEANUP_DELAY_SECONDS, STALE_UPLOAD_SECONDS, SWEEP_INTERVAL_SECONDS
from controller.merge_lock import MergeLockRegistry

logger = logging.getLogger(__name__)


class DelayedContainerCleaner:
    """
    Removes emptied chunk containers a short while after a merge.

    The delay lets any listing or unlink still touching the directory settle
    first. Removal is advisory: failures are logged and dropped.
    """

    def __init__(self, chunk_store: ChunkStore, delay_seconds: float = CLEANUP_DELAY_SECONDS):
        """
        Initialize cleaner.

        Args:
            chunk_store: Store owning the containers
            delay_seconds: Pause between merge completion and removal
        """
        self.chunk_store = chunk_store
        self.delay_seconds = delay_seconds
        self._tasks: Set[asyncio.Task] = set()

    def schedule(self, file_hash: str) -> asyncio.Task:
        """
        Schedule removal of an upload's container.

        Must be called from a running event loop.

        Args:
            file_hash: Upload identifier

        Returns:
            The detached task
        """
        task = asyncio.create_task(self._remove_later(file_hash))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _remove_later(self, file_hash: str) -> None:
        try:
            await asyncio.sleep(self.delay_seconds)
            removed = await asyncio.to_thread(self.chunk_store.remove_container, file_hash)
            if not removed:
                logger.debug(f"Chunk container for upload {file_hash} left in place")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Failed to clean up chunk container for upload {file_hash}: {e}", exc_info=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled removal to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop(self) -> None:
        """Cancel pending removals."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"Cancelled {len(tasks)} pending container cleanups")


class StaleUploadSweeper:
    """
    Background task that periodically purges abandoned chunk containers.

    A container is stale when nothing inside it changed for ``max_age_seconds``.
    This also collects chunks that arrived after their upload was merged.
    """

    def __init__(
        self,
        chunk_store: ChunkStore,
        merge_locks: MergeLockRegistry,
        max_age_seconds: int = STALE_UPLOAD_SECONDS,
        interval_seconds: int = SWEEP_INTERVAL_SECONDS,
    ):
        """
        Initialize sweeper.

        Args:
            chunk_store: Store owning the containers
            merge_locks: Registry used to skip uploads being merged
            max_age_seconds: Age after which an untouched container is purged
            interval_seconds: Time between sweeps
        """
        self.chunk_store = chunk_store
        self.merge_locks = merge_locks
        self.max_age_seconds = max_age_seconds
        self.interval_seconds = interval_seconds
        self._running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._running:
            logger.warning("Stale upload sweeper already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(
            f"Started stale upload sweeper (interval: {self.interval_seconds}s, "
            f"max age: {self.max_age_seconds}s)"
        )

    async def stop(self) -> None:
        """Stop the background sweep task."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Stopped stale upload sweeper")

    async def _run(self) -> None:
        """Main loop for the sweeper."""
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)

                if not self._running:
                    break

                await asyncio.to_thread(self.sweep_once)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in stale upload sweeper: {e}", exc_info=True)

    def sweep_once(self, now: Optional[float] = None) -> int:
        """
        Execute one sweep.

        Args:
            now: Reference POSIX time (defaults to the current time)

        Returns:
            Number of containers purged
        """
        now = time.time() if now is None else now
        purged = 0

        for file_hash in self.chunk_store.list_containers():
            # Holding the merge token keeps a merge from starting mid-purge.
            if not self.merge_locks.try_acquire(file_hash):
                continue

            try:
                modified = self.chunk_store.last_modified(file_hash)
                if modified is None or now - modified < self.max_age_seconds:
                    continue
                if self.chunk_store.purge_container(file_hash):
                    logger.info(f"Purged stale chunks for upload {file_hash}")
                    purged += 1
            except Exception as e:
                logger.warning(f"Error purging stale upload {file_hash}: {e}")
            finally:
                self.merge_locks.release(file_hash)

        if purged:
            logger.info(f"Sweep complete: {purged} stale uploads purged")
        return purged
