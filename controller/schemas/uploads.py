"""Pydantic schemas for the chunked upload endpoints."""

from typing import List, Optional

from pydantic import Field

from controller.schemas.common import ApiModel


class ArtifactResponse(ApiModel):
    """Metadata of a completed artifact."""
    name: str
    size: int
    create_time: str = Field(alias="createTime")


class CheckFileRequest(ApiModel):
    """Request model for the instant-upload check."""
    file_hash: str = Field(alias="fileHash")
    file_name: str = Field(alias="fileName")
    size: Optional[int] = Field(default=None, ge=0)


class CheckFileResponse(ApiModel):
    """Response model for the instant-upload check."""
    code: int = 0
    exists: bool
    message: str
    file: Optional[ArtifactResponse] = None


class UploadChunkResponse(ApiModel):
    """Response model for a stored chunk."""
    code: int = 0
    message: str


class UploadStatusResponse(ApiModel):
    """Chunks received so far for an upload in progress."""
    code: int = 0
    file_hash: str = Field(alias="fileHash")
    chunks: List[str]
    chunk_count: int = Field(alias="chunkCount")
    bytes_received: int = Field(alias="bytesReceived")
    create_time: str = Field(alias="createTime")


class MergeRequest(ApiModel):
    """Request model for merging an upload."""
    file_hash: str = Field(alias="fileHash")
    file_name: str = Field(alias="fileName")
    size: Optional[int] = Field(default=None, ge=0)


class MergeResponse(ApiModel):
    """Response model for a completed merge."""
    code: int = 0
    message: str
    url: str
    size: int
    chunk_count: int = Field(alias="chunkCount")


class VerifyRequest(ApiModel):
    """Request model for integrity verification."""
    file_hash: str = Field(alias="fileHash")
    file_name: str = Field(alias="fileName")


class VerifyDetails(ApiModel):
    expected: str
    actual: str


class VerifyResponse(ApiModel):
    """Response model for integrity verification."""
    code: int = 0
    verified: bool
    message: str
    details: Optional[VerifyDetails] = None


class ListArtifactsResponse(ApiModel):
    """Response model for artifact listing."""
    code: int = 0
    data: List[ArtifactResponse]
