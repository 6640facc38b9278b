"""
Shared schema base and the standard response envelope
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys while keeping snake_case attributes"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    """Envelope wrapped around every response body"""
    success: bool = True
    message: str
    data: Optional[T] = None


def envelope(message: str, data=None, success: bool = True) -> dict:
    """Plain-dict envelope for handlers that bypass response models"""
    return {"success": success, "message": message, "data": data}
