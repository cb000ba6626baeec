"""Pydantic schemas for API requests and responses."""

from controller.schemas.uploads import (
    ArtifactResponse,
    CheckFileRequest,
    CheckFileResponse,
    UploadChunkResponse,
    UploadStatusResponse,
    MergeRequest,
    MergeResponse,
    VerifyRequest,
    VerifyDetails,
    VerifyResponse,
    ListArtifactsResponse,
)
from controller.schemas.common import ErrorResponse

__all__ = [
    "ArtifactResponse",
    "CheckFileRequest",
    "CheckFileResponse",
    "UploadChunkResponse",
    "UploadStatusResponse",
    "MergeRequest",
    "MergeResponse",
    "VerifyRequest",
    "VerifyDetails",
    "VerifyResponse",
    "ListArtifactsResponse",
    "ErrorResponse",
]
