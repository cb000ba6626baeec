"""HTTP client driving the chunked upload protocol."""

import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Type, Union

import httpx

from chunkserver.checksum_validator import digest_file
from cli.config import Config
from cli.utils import chunk_count, iter_file_chunks, make_chunk_key
from common import exceptions
from common.exceptions import IntegrityMismatchError, NotFoundError, UploadError, ValidationError

logger = logging.getLogger(__name__)

ERROR_TYPES: Dict[str, Type[UploadError]] = {
    cls.kind: cls
    for cls in (
        exceptions.ValidationError,
        exceptions.ChunkTooLargeError,
        exceptions.NotFoundError,
        exceptions.NoChunksError,
        exceptions.MergeInProgressError,
        exceptions.SizeMismatchError,
        exceptions.StorageError,
        exceptions.IoError,
    )
}


@dataclass(frozen=True)
class UploadSummary:
    """
    Result of uploading one file.
    """
    name: str
    file_hash: str
    size: int
    url: str
    instant: bool
    chunks_sent: int
    chunks_skipped: int


class UploadClient:
    """HTTP client for the upload server with retry logic and error mapping."""

    def __init__(self, config: Config, transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize upload client.

        Args:
            config: Configuration instance
            transport: Optional httpx transport (used by tests)
        """
        self.config = config
        self.session = httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout(),
            transport=transport,
        )
        self.request_id = None
        logger.info(f"Initialized UploadClient [base_url={config.get_base_url()}]")

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> 'UploadClient':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _request_with_retry(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (GET, POST, ...)
            endpoint: API endpoint path
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            ConnectionError: If the server stays unreachable after all retries
        """
        retry_config = self.config.get_retry_config()
        max_retries = retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        self.request_id = str(uuid.uuid4())
        headers = kwargs.pop('headers', {})
        headers['X-Request-ID'] = self.request_id

        last_exception = None

        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, headers=headers, **kwargs)

                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                )

                if response.status_code >= 500 and attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue

                return response

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)

        logger.error(
            f"Network error (max retries exceeded): {method} {endpoint} error={last_exception} [request_id={self.request_id}]"
        )
        if isinstance(last_exception, httpx.TimeoutException):
            raise ConnectionError("Request timed out. Server may be overloaded.")
        raise ConnectionError("Cannot connect to upload server. Is it running?")

    def _parse(self, response: httpx.Response) -> dict:
        """
        Decode a response envelope, raising the matching error on failure.

        Raises:
            UploadError: Subclass matching the envelope's kind
        """
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_success and body.get('code', 0) == 0:
            return body

        kind = body.get('kind', 'INTERNAL_ERROR')
        message = body.get('message') or response.text or f"HTTP {response.status_code}"
        raise ERROR_TYPES.get(kind, UploadError)(message)

    def check_file(self, file_hash: str, file_name: str, size: int) -> dict:
        response = self._request_with_retry(
            'POST', '/check-file',
            json={'fileHash': file_hash, 'fileName': file_name, 'size': size},
        )
        return self._parse(response)

    def upload_status(self, file_hash: str) -> Set[str]:
        """
        Get chunk keys the server already holds for an upload.

        Returns:
            Set of stored chunk keys (empty when nothing is stored)
        """
        response = self._request_with_retry('GET', f'/upload/{file_hash}')
        try:
            return set(self._parse(response)['chunks'])
        except NotFoundError:
            return set()

    def upload_chunk(self, file_hash: str, chunk_key: str, data: bytes, file_name: str) -> dict:
        response = self._request_with_retry(
            'POST', '/upload',
            files={'chunk': (chunk_key, data, 'application/octet-stream')},
            data={'hash': chunk_key, 'fileHash': file_hash, 'filename': file_name},
        )
        return self._parse(response)

    def merge(self, file_hash: str, file_name: str, size: int) -> dict:
        response = self._request_with_retry(
            'POST', '/merge',
            json={'fileHash': file_hash, 'fileName': file_name, 'size': size},
        )
        return self._parse(response)

    def verify(self, file_hash: str, file_name: str) -> dict:
        response = self._request_with_retry(
            'POST', '/verify',
            json={'fileHash': file_hash, 'fileName': file_name},
        )
        return self._parse(response)

    def list_files(self) -> List[dict]:
        return self._parse(self._request_with_retry('GET', '/files'))['data']

    def upload_file(
        self,
        path: Union[str, Path],
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> UploadSummary:
        """
        Upload a file: dedup check, chunk transfer, merge and verification.

        Chunks the server already holds for this upload are skipped, so an
        interrupted upload can be resumed by running it again.

        Args:
            path: File to upload
            on_progress: Called with (chunks done, total chunks) after each chunk

        Returns:
            UploadSummary

        Raises:
            ValidationError: If the path is not a non-empty file
            IntegrityMismatchError: If the server digest disagrees after merge
            UploadError: For any error reported by the server
        """
        path = Path(path)
        if not path.is_file():
            raise ValidationError(f"Not a file: {path}")

        size = path.stat().st_size
        if size == 0:
            raise ValidationError(f"File is empty: {path}")

        file_name = path.name
        file_hash = digest_file(path, self.config.get_hash_algorithm())
        logger.info(f"Uploading {file_name} ({size} bytes, hash {file_hash})")

        existing = self.check_file(file_hash, file_name, size)
        if existing.get('exists'):
            logger.info(f"Instant upload: {file_name} already on server")
            return UploadSummary(
                name=file_name,
                file_hash=file_hash,
                size=size,
                url=f"/uploads/{file_name}",
                instant=True,
                chunks_sent=0,
                chunks_skipped=0,
            )

        chunk_size = self.config.get_chunk_size()
        total = chunk_count(size, chunk_size)
        stored = self.upload_status(file_hash)
        sent = skipped = 0

        for index, data in iter_file_chunks(path, chunk_size):
            chunk_key = make_chunk_key(index, file_hash)
            if chunk_key in stored:
                skipped += 1
            else:
                self.upload_chunk(file_hash, chunk_key, data, file_name)
                sent += 1
            if on_progress:
                on_progress(index + 1, total)

        merged = self.merge(file_hash, file_name, size)

        verification = self.verify(file_hash, file_name)
        if not verification.get('verified'):
            details = verification.get('details', {})
            raise IntegrityMismatchError(
                f"Integrity check failed for {file_name}",
                expected=details.get('expected', file_hash),
                actual=details.get('actual', ''),
            )

        logger.info(f"Uploaded {file_name}: {sent} chunks sent, {skipped} already stored")
        return UploadSummary(
            name=file_name,
            file_hash=file_hash,
            size=size,
            url=merged['url'],
            instant=False,
            chunks_sent=sent,
            chunks_skipped=skipped,
        )

    def verify_local_file(self, path: Union[str, Path]) -> dict:
        """Hash a local file and ask the server to verify its copy."""
        path = Path(path)
        file_hash = digest_file(path, self.config.get_hash_algorithm())
        return self.verify(file_hash, path.name)
