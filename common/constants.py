"""Project-wide constants (chunk sizes, storage paths, timings)."""

CHUNK_SIZE_BYTES: int = 2 * 1024 * 1024  # 2 MiB default client chunk size
MAX_CHUNK_BYTES: int = 20 * 1024 * 1024  # 20 MiB hard limit per chunk

DEFAULT_CHUNK_STORAGE_PATH: str = "./data/chunks"
DEFAULT_ARTIFACT_PATH: str = "./data/uploads"

DIGEST_PIECE_SIZE: int = 64 * 1024
DEFAULT_HASH_ALGORITHM: str = "md5"

CLEANUP_DELAY_SECONDS: float = 1.0
STALE_UPLOAD_SECONDS: int = 24 * 3600
SWEEP_INTERVAL_SECONDS: int = 3600

ARTIFACT_URL_PREFIX: str = "/uploads"
TEMP_FILE_SUFFIX: str = ".part"
