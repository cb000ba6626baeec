"""Chunked upload API routes."""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile

from common.exceptions import ChunkTooLargeError
from common.types import ArtifactInfo
from common.validation import validate_path_component
from controller.schemas.uploads import (
    ArtifactResponse,
    CheckFileRequest,
    CheckFileResponse,
    ListArtifactsResponse,
    MergeRequest,
    MergeResponse,
    UploadChunkResponse,
    UploadStatusResponse,
    VerifyDetails,
    VerifyRequest,
    VerifyResponse,
)
from controller.service_locator import get_components

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Uploads"])


def _artifact_response(info: ArtifactInfo) -> ArtifactResponse:
    return ArtifactResponse(
        name=info.name,
        size=info.size,
        create_time=info.created_at.isoformat(),
    )


@router.post("/check-file", response_model=CheckFileResponse, response_model_exclude_none=True)
async def check_file(request: CheckFileRequest):
    """
    Check whether an artifact with this name and size already exists.

    Parameters:
        - fileHash: Upload identifier
        - fileName: Declared file name
        - size: Declared size in bytes

    Returns:
        - exists: True only when name and size both match
        - file: Artifact metadata when it exists

    Raises:
        - 400: Missing or malformed fields
    """
    validate_path_component(request.file_hash, 'fileHash')
    file_name = validate_path_component(request.file_name, 'fileName')

    result = get_components().dedup_index.exists(file_name, request.size)

    if result.found:
        return CheckFileResponse(
            exists=True,
            message="File already exists",
            file=_artifact_response(result.metadata),
        )
    return CheckFileResponse(exists=False, message="File does not exist")


@router.post("/upload", response_model=UploadChunkResponse)
async def upload_chunk(
    chunk: UploadFile = File(...),
    chunk_key: str = Form(..., alias="hash"),
    file_hash: str = Form(..., alias="fileHash"),
    filename: Optional[str] = Form(None),
):
    """
    Store one chunk of an upload.

    Parameters:
        - chunk: Chunk bytes (multipart/form-data)
        - hash: Chunk key, "<index>-<suffix>"
        - fileHash: Upload identifier
        - filename: Declared file name (informational)

    Raises:
        - 400: Missing or malformed fields
        - 413: Chunk larger than the configured limit
        - 500: Disk write failure
    """
    components = get_components()
    file_hash = validate_path_component(file_hash, 'fileHash')
    chunk_key = validate_path_component(chunk_key, 'hash')

    limit = components.max_chunk_size
    if chunk.size is not None and chunk.size > limit:
        raise ChunkTooLargeError(f"Chunk {chunk_key} is {chunk.size} bytes, limit is {limit}")

    # Bounded read covers uploads whose size the parser did not record.
    data = await chunk.read(limit + 1)
    if len(data) > limit:
        raise ChunkTooLargeError(f"Chunk {chunk_key} exceeds the {limit} byte limit")

    await asyncio.to_thread(components.chunk_store.write_chunk, file_hash, chunk_key, data)
    logger.info(f"Received chunk {chunk_key} for upload {file_hash} ({filename or 'unnamed'})")

    return UploadChunkResponse(message="Chunk uploaded")


@router.get("/upload/{file_hash}", response_model=UploadStatusResponse)
async def upload_status(file_hash: str):
    """
    List the chunks already stored for an upload.

    Raises:
        - 404: No chunks stored for this upload
    """
    session = get_components().chunk_store.describe(file_hash)

    return UploadStatusResponse(
        file_hash=session.file_hash,
        chunks=session.chunk_keys,
        chunk_count=session.chunk_count,
        bytes_received=session.bytes_received,
        create_time=session.created_at.isoformat(),
    )


@router.post("/merge", response_model=MergeResponse)
async def merge_chunks(request: MergeRequest):
    """
    Assemble every stored chunk into the final artifact.

    Parameters:
        - fileHash: Upload identifier
        - fileName: Name of the artifact to create
        - size: Declared size in bytes (checked when given)

    Returns:
        - url: Artifact URL

    Raises:
        - 400: No chunks stored, or malformed fields
        - 409: Merge already running, or size mismatch
        - 500: Disk failure
    """
    result = await get_components().merge_coordinator.merge(
        request.file_hash,
        request.file_name,
        request.size,
    )

    return MergeResponse(
        message="File merged",
        url=result.url,
        size=result.size,
        chunk_count=result.chunk_count,
    )


@router.post("/verify", response_model=VerifyResponse, response_model_exclude_none=True)
async def verify_file(request: VerifyRequest):
    """
    Compare the declared hash with the digest of the stored artifact.

    Returns:
        - verified: True when the digests match
        - details: Expected and actual digests on mismatch

    Raises:
        - 404: Artifact does not exist
        - 500: Artifact could not be read
    """
    result = await asyncio.to_thread(
        get_components().artifact_store.verify,
        request.file_hash,
        request.file_name,
    )

    if result.verified:
        return VerifyResponse(verified=True, message="File integrity verified")

    return VerifyResponse(
        verified=False,
        message="File integrity verification failed",
        details=VerifyDetails(expected=result.expected, actual=result.actual),
    )


@router.get("/files", response_model=ListArtifactsResponse)
async def list_files():
    """List every completed artifact."""
    artifacts = get_components().artifact_store.list_artifacts()
    return ListArtifactsResponse(data=[_artifact_response(info) for info in artifacts])
