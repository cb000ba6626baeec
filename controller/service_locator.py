"""Service locator for the upload components."""

from typing import Optional

from chunkserver.chunk_storage import ChunkStore
from controller import config
from controller.cleanup_task import DelayedContainerCleaner, StaleUploadSweeper
from controller.merge_lock import MergeLockRegistry
from controller.services.artifact_service import ArtifactStore
from controller.services.dedup_service import DedupIndex
from controller.services.merge_service import MergeCoordinator


class UploadComponents:
    """
    Wires the chunk store, artifact store and the services built on them.
    """

    def __init__(
        self,
        chunk_dir: str,
        artifact_dir: str,
        hash_algorithm: str = config.HASH_ALGORITHM,
        max_chunk_size: int = config.MAX_CHUNK_SIZE,
        cleanup_delay: float = config.CLEANUP_DELAY,
        stale_upload_age: int = config.STALE_UPLOAD_AGE,
        sweep_interval: int = config.SWEEP_INTERVAL,
    ):
        self.max_chunk_size = max_chunk_size
        self.chunk_store = ChunkStore(chunk_dir)
        self.artifact_store = ArtifactStore(artifact_dir, hash_algorithm=hash_algorithm)
        self.merge_locks = MergeLockRegistry()
        self.cleaner = DelayedContainerCleaner(self.chunk_store, delay_seconds=cleanup_delay)
        self.sweeper = StaleUploadSweeper(
            self.chunk_store,
            self.merge_locks,
            max_age_seconds=stale_upload_age,
            interval_seconds=sweep_interval,
        )
        self.dedup_index = DedupIndex(self.artifact_store)
        self.merge_coordinator = MergeCoordinator(
            self.chunk_store,
            self.artifact_store,
            self.merge_locks,
            self.cleaner,
        )

    def ensure_directories(self) -> None:
        self.chunk_store.ensure_root()
        self.artifact_store.ensure_root()


_components: Optional[UploadComponents] = None


def set_components(components: Optional[UploadComponents]):
    """Set global upload components instance"""
    global _components
    _components = components


def get_components() -> UploadComponents:
    """Get global upload components, building them from config on first use"""
    global _components
    if _components is None:
        _components = UploadComponents(config.CHUNK_DIR, config.ARTIFACT_DIR)
    return _components
