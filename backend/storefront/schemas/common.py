"""
Response envelope shared by every endpoint: {status, message?, data?}.
"""
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """Standard JSON envelope."""

    status: Literal["success", "error"] = "success"
    message: Optional[str] = None
    data: Optional[DataT] = None


def error(message: str, data: Any = None) -> dict[str, Any]:
    """Build an error envelope body."""
    body: dict[str, Any] = {"status": "error", "message": message}
    if data is not None:
        body["data"] = data
    return body
