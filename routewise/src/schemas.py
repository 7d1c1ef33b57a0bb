from datetime import datetime
from typing import Any, Generic, Optional, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class RequestInfo(BaseModel):
    method: str
    path: str
    app_id: int


class HealthStatus(BaseModel):
    status: str
    version: str
    timestamp: datetime


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class ResponseMeta(BaseModel):
    timestamp: datetime
    request_id: str
    pagination: Optional[Pagination] = None


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T
    message: Optional[str] = None
    meta: ResponseMeta
