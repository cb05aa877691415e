"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from typing import Annotated, Any, Generic, Optional, TypeVar

from bson import ObjectId
from pydantic import BaseModel, Field, PlainSerializer, PlainValidator, WithJsonSchema


def _validate_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError("Invalid ObjectId")


# ObjectId that validates from str and serializes back to str in JSON.
PyObjectId = Annotated[
    ObjectId,
    PlainValidator(_validate_object_id),
    PlainSerializer(lambda value: str(value), return_type=str, when_used="json"),
    WithJsonSchema({"type": "string", "example": "65f1c0ffee0ddba11ad0beef"}),
]

ResultT = TypeVar("ResultT")


class SuccessResponse(BaseModel, Generic[ResultT]):
    """Success envelope: every 2xx body is {message, result}."""

    message: str
    result: Optional[ResultT] = None


class ErrorResponse(BaseModel):
    """Failure envelope returned with the error kind's HTTP status."""

    message: str
    code: str
    metadata: Optional[dict[str, Any]] = None
    request_id: str = Field(..., serialization_alias="requestId")
