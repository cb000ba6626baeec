"""Common schemas used across multiple endpoints."""

from pydantic import BaseModel, ConfigDict


class ApiModel(BaseModel):
    """Base model accepting both camelCase aliases and field names."""
    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(ApiModel):
    """Response model for errors."""
    code: int = 1
    kind: str
    message: str
