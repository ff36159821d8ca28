"""Response envelope shared by all endpoints."""
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope: every payload is wrapped with a success flag."""

    success: bool = True
    data: T | None = None
    message: str | None = None


class ErrorResponse(BaseModel):
    """Failure envelope rendered by the exception handlers."""

    success: bool = False
    error: str
