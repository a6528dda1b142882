"""Response envelope shared by every endpoint.

Learn: Success and failure bodies have a fixed shape so clients can parse
any response the same way:
    success → {"statusCode": 200, "data": {...}, "message": "..."}
    failure → {"statusCode": 401, "message": "...", "errorKind": "TokenExpired"}
The failure side is rendered from mediahub.errors by the handlers in main.py.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    statusCode: int = 200
    data: Optional[T] = None
    message: str = "Success"


class ErrorResponse(BaseModel):
    statusCode: int
    message: str
    errorKind: str
