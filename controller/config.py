"""Configuration settings for the upload Controller server."""

import os
from common.constants import (
    CLEANUP_DELAY_SECONDS,
    DEFAULT_ARTIFACT_PATH,
    DEFAULT_CHUNK_STORAGE_PATH,
    DEFAULT_HASH_ALGORITHM,
    MAX_CHUNK_BYTES,
    STALE_UPLOAD_SECONDS,
    SWEEP_INTERVAL_SECONDS,
)


CHUNK_DIR = os.environ.get("UPLOAD_CHUNK_DIR", DEFAULT_CHUNK_STORAGE_PATH)

ARTIFACT_DIR = os.environ.get("UPLOAD_ARTIFACT_DIR", DEFAULT_ARTIFACT_PATH)

CONTROLLER_HOST = os.environ.get("UPLOAD_HOST", "0.0.0.0")

CONTROLLER_PORT = int(os.environ.get("UPLOAD_PORT", "3000"))

MAX_CHUNK_SIZE = int(os.environ.get("UPLOAD_MAX_CHUNK_BYTES", str(MAX_CHUNK_BYTES)))

CLEANUP_DELAY = float(os.environ.get("UPLOAD_CLEANUP_DELAY_SECONDS", str(CLEANUP_DELAY_SECONDS)))

STALE_UPLOAD_AGE = int(os.environ.get("UPLOAD_STALE_SECONDS", str(STALE_UPLOAD_SECONDS)))

SWEEP_INTERVAL = int(os.environ.get("UPLOAD_SWEEP_INTERVAL_SECONDS", str(SWEEP_INTERVAL_SECONDS)))

HASH_ALGORITHM = os.environ.get("UPLOAD_HASH_ALGORITHM", DEFAULT_HASH_ALGORITHM)
