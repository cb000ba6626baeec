"""Exception taxonomy shared by the chunk store, controller and CLI."""


class UploadError(Exception):
    """
    Base exception class for all upload-related errors.

    Every subclass carries a machine-readable ``kind`` that is surfaced to
    callers next to the human-readable message.
    """
    kind = "INTERNAL_ERROR"


class ValidationError(UploadError):
    """
    Raised when a required field is missing or malformed.
    """
    kind = "VALIDATION_ERROR"


class ChunkTooLargeError(ValidationError):
    """
    Raised when a chunk payload exceeds the configured size limit.
    """
    kind = "CHUNK_TOO_LARGE"


class NotFoundError(UploadError):
    """
    Raised when a referenced upload, chunk set or artifact does not exist.
    """
    kind = "NOT_FOUND"


class NoChunksError(UploadError):
    """
    Raised when a merge is requested for an upload with no stored chunks.
    """
    kind = "NO_CHUNKS"


class MergeInProgressError(UploadError):
    """
    Raised when a merge is already running for the same file hash.
    """
    kind = "MERGE_IN_PROGRESS"


class SizeMismatchError(UploadError):
    """
    Raised when an assembled artifact does not match the declared size.
    """
    kind = "SIZE_MISMATCH"


class StorageError(UploadError):
    """
    Raised on disk I/O failure while writing, reading or deleting.
    """
    kind = "STORAGE_ERROR"


class IoError(UploadError):
    """
    Raised when a stream cannot be read to completion while digesting.
    """
    kind = "IO_ERROR"


class IntegrityMismatchError(UploadError):
    """
    Raised client-side when the server reports a digest disagreement.

    The server itself reports mismatches as a ``verified=False`` result.
    """
    kind = "INTEGRITY_MISMATCH"

    def __init__(self, message: str, expected: str = "", actual: str = ""):
        super().__init__(message)
        self.expected = expected
        self.actual = actual
