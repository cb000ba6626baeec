"""Shared data type definitions (UploadSession, ArtifactInfo, results)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class UploadSession:
    """
    Snapshot of the chunks staged for one upload.
    """
    file_hash: str
    created_at: datetime
    chunk_keys: List[str] = field(default_factory=list)
    bytes_received: int = 0

    @property
    def chunk_count(self) -> int:
        return len(self.chunk_keys)


@dataclass(frozen=True)
class ArtifactInfo:
    """
    Metadata for a completed artifact in the artifact directory.
    """
    name: str
    size: int
    created_at: datetime


@dataclass(frozen=True)
class MergeResult:
    """
    Outcome of a successful merge.
    """
    name: str
    url: str
    size: int
    chunk_count: int


@dataclass(frozen=True)
class DedupResult:
    found: bool
    metadata: Optional[ArtifactInfo] = None


@dataclass(frozen=True)
class VerificationResult:
    """
    Declared hash versus the digest computed from the artifact bytes.
    """
    verified: bool
    expected: str
    actual: str
