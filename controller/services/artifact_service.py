"""Completed artifact directory: lookup, listing and integrity verification."""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import List, Union

from chunkserver.checksum_validator import digest_file
from common.constants import ARTIFACT_URL_PREFIX, DEFAULT_ARTIFACT_PATH, DEFAULT_HASH_ALGORITHM
from common.exceptions import NotFoundError, StorageError, ValidationError
from common.types import ArtifactInfo, VerificationResult
from common.validation import validate_path_component

logger = logging.getLogger(__name__)

TEMP_HASH_PREFIX = re.compile(r'^temp-\d+-')


def _created_at(stat_result) -> datetime:
    timestamp = getattr(stat_result, 'st_birthtime', None) or stat_result.st_ctime
    return datetime.fromtimestamp(timestamp)


class ArtifactStore:
    """
    Flat directory of assembled files keyed by file name.

    Names beginning with '.' are reserved for in-flight merge output and are
    never reported as artifacts.
    """

    def __init__(
        self,
        root: Union[str, Path] = DEFAULT_ARTIFACT_PATH,
        hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
    ):
        self.root = Path(root)
        self.hash_algorithm = hash_algorithm

    def ensure_root(self) -> None:
        """Ensure the artifact directory exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def get_artifact_path(self, file_name: str) -> Path:
        return self.root / validate_path_component(file_name, 'fileName')

    def get_artifact_url(self, file_name: str) -> str:
        return f"{ARTIFACT_URL_PREFIX}/{file_name}"

    def stat(self, file_name: str) -> ArtifactInfo:
        """
        Get metadata for an artifact.

        Args:
            file_name: Artifact name

        Returns:
            ArtifactInfo with size and creation time

        Raises:
            NotFoundError: If no artifact has that name
        """
        path = self.get_artifact_path(file_name)
        try:
            stat_result = path.stat()
        except FileNotFoundError as e:
            raise NotFoundError(f"File {file_name} does not exist") from e
        except OSError as e:
            raise StorageError(f"Failed to stat {file_name}: {e}") from e

        if not path.is_file():
            raise NotFoundError(f"File {file_name} does not exist")

        return ArtifactInfo(
            name=path.name,
            size=stat_result.st_size,
            created_at=_created_at(stat_result),
        )

    def list_artifacts(self) -> List[ArtifactInfo]:
        """
        List every completed artifact.

        Returns:
            ArtifactInfo entries sorted by name
        """
        if not self.root.exists():
            return []

        artifacts = []
        try:
            entries = sorted(self.root.iterdir(), key=lambda entry: entry.name)
        except OSError as e:
            raise StorageError(f"Failed to list artifacts: {e}") from e

        for entry in entries:
            if entry.name.startswith('.'):
                continue
            try:
                stat_result = entry.stat()
            except FileNotFoundError:
                continue
            if not entry.is_file():
                continue
            artifacts.append(ArtifactInfo(
                name=entry.name,
                size=stat_result.st_size,
                created_at=_created_at(stat_result),
            ))

        return artifacts

    def verify(self, file_hash: str, file_name: str) -> VerificationResult:
        """
        Compare a declared hash with the digest of an artifact's bytes.

        A ``temp-<digits>-`` placeholder prefix on the declared hash is
        ignored; either the stripped or the raw value may match.

        Args:
            file_hash: Declared content hash
            file_name: Artifact name

        Returns:
            VerificationResult with both values

        Raises:
            ValidationError: If the declared hash is empty
            NotFoundError: If the artifact does not exist
            IoError: If the artifact cannot be read to completion
        """
        if not file_hash or not file_hash.strip():
            raise ValidationError("Missing required field: fileHash")
        path = self.get_artifact_path(file_name)
        if not path.is_file():
            raise NotFoundError(f"File {file_name} does not exist")

        actual = digest_file(path, self.hash_algorithm)
        expected = TEMP_HASH_PREFIX.sub('', file_hash)
        verified = actual == expected.lower() or actual == file_hash.lower()

        if verified:
            logger.info(f"Integrity check passed for {file_name}")
        else:
            logger.warning(f"Integrity check failed for {file_name}: expected {expected}, actual {actual}")

        return VerificationResult(verified=verified, expected=expected, actual=actual)
