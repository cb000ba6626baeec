"""Service layer for upload business logic."""

from controller.services.artifact_service import ArtifactStore
from controller.services.dedup_service import DedupIndex
from controller.services.merge_service import MergeCoordinator

__all__ = [
    "ArtifactStore",
    "DedupIndex",
    "MergeCoordinator",
]
