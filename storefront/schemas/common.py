# storefront/schemas/common.py
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Every successful response is wrapped as {"success": true, "data": ...}
class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T


class ErrorBody(BaseModel):
    message: str
    status: int
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorBody


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class Message(BaseModel):
    message: str
