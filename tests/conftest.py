"""Shared pytest fixtures for all tests."""

import pytest
from pathlib import Path

from chunkserver.chunk_storage import ChunkStore
from cli.config import Config
from controller.cleanup_task import DelayedContainerCleaner
from controller.merge_lock import MergeLockRegistry
from controller.service_locator import UploadComponents
from controller.services.artifact_service import ArtifactStore
from controller.services.merge_service import MergeCoordinator


@pytest.fixture
def chunk_store(tmp_path):
    """
    Create a chunk store rooted in a temporary directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        ChunkStore instance
    """
    store = ChunkStore(tmp_path / 'chunks')
    store.ensure_root()
    return store


@pytest.fixture
def artifact_store(tmp_path):
    """
    Create an artifact store rooted in a temporary directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        ArtifactStore instance
    """
    store = ArtifactStore(tmp_path / 'uploads')
    store.ensure_root()
    return store


@pytest.fixture
def merge_locks():
    return MergeLockRegistry()


@pytest.fixture
def coordinator(chunk_store, artifact_store, merge_locks):
    """MergeCoordinator with an immediate container cleanup."""
    cleaner = DelayedContainerCleaner(chunk_store, delay_seconds=0)
    return MergeCoordinator(chunk_store, artifact_store, merge_locks, cleaner)


@pytest.fixture
def components(tmp_path):
    """
    Create upload components bound to temporary directories.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        UploadComponents with a small chunk limit and no cleanup delay
    """
    return UploadComponents(
        chunk_dir=str(tmp_path / 'chunks'),
        artifact_dir=str(tmp_path / 'uploads'),
        max_chunk_size=1024,
        cleanup_delay=0,
    )


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .chunk-upload directory
    """
    config_dir = tmp_path / '.chunk-upload'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance.

    Args:
        temp_config_dir: Temporary config directory fixture

    Returns:
        Config instance with temp config file
    """
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing uploads.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to sample file
    """
    file_path = tmp_path / 'sample.bin'
    file_path.write_bytes(b'AABBCC')
    return file_path
