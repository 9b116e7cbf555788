import uuid
from typing import Any, Optional

from pydantic import BaseModel, Field


def new_request_id() -> str:
    return uuid.uuid4().hex


class SuccessResponse(BaseModel):
    """Envelope for every successful API answer."""
    success: bool = True
    request_id: str = Field(default_factory=new_request_id)
    message: Optional[str] = None
    data: Optional[Any] = None
    pagination: Optional[Any] = None


class ErrorDetail(BaseModel):
    code: str
    message: Any
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Envelope for failures; ``error.code`` is stable, ``error.message`` is for humans."""
    success: bool = False
    error: ErrorDetail
    request_id: str = Field(default_factory=new_request_id)
