from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Success body: {"success": true, "data": ...}"""

    success: bool = True
    data: T


def ok(data) -> dict:
    return {"success": True, "data": data}
