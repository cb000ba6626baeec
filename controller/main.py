"""Entry point for the upload Controller service."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from common.exceptions import UploadError
from common.logging_config import setup_logging
from controller.config import CONTROLLER_HOST, CONTROLLER_PORT
from controller.routes.upload_routes import router as upload_router
from controller.schemas.common import ErrorResponse
from controller.service_locator import get_components

logger = setup_logging('controller')

app = FastAPI(
    title="Chunked Upload Controller",
    description="Chunk staging, merge and integrity verification for large file uploads",
    version="1.0.0"
)

ERROR_STATUS = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "CHUNK_TOO_LARGE": status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "NO_CHUNKS": status.HTTP_400_BAD_REQUEST,
    "MERGE_IN_PROGRESS": status.HTTP_409_CONFLICT,
    "SIZE_MISMATCH": status.HTTP_409_CONFLICT,
    "STORAGE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "IO_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_body(kind: str, message: str) -> dict:
    return ErrorResponse(kind=kind, message=message).model_dump()


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Create storage directories and start background tasks.
    """
    logger.info("Controller service starting up...")

    components = get_components()
    components.ensure_directories()
    logger.info(
        f"Chunk directory: {components.chunk_store.root}, "
        f"artifact directory: {components.artifact_store.root}"
    )

    await components.sweeper.start()
    logger.info("Background sweeper started")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Stop background tasks on application shutdown.
    """
    logger.info("Controller service shutting down...")

    components = get_components()
    await components.cleaner.stop()
    await components.sweeper.stop()
    running = len(components.merge_locks)
    if running:
        logger.warning(f"Background tasks stopped with {running} merges still running")
    else:
        logger.info("Background tasks stopped")


@app.exception_handler(UploadError)
async def upload_error_handler(request: Request, exc: UploadError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    status_code = ERROR_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)

    if status_code >= 500:
        logger.error(
            f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}",
            exc_info=True
        )
    else:
        logger.warning(
            f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}"
        )

    return JSONResponse(status_code=status_code, content=error_body(exc.kind, str(exc)))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    fields = sorted({
        str(error["loc"][-1]) for error in exc.errors() if error.get("loc")
    })
    message = f"Missing or invalid fields: {', '.join(fields)}" if fields else "Invalid request"
    logger.warning(
        f"Request validation error: {message} [request_id={request_id}] path={request.url.path}"
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("VALIDATION_ERROR", message)
    )


app.include_router(upload_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "Chunked Upload Controller API", "status": "running"}


@app.get("/health")
async def health_check():
    """
    Health check endpoint for Docker healthcheck.
    Returns 200 if service is alive.
    """
    return {"status": "healthy", "service": "controller"}


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "controller.main:app",
        host=CONTROLLER_HOST,
        port=CONTROLLER_PORT,
    )


if __name__ == "__main__":
    main()
