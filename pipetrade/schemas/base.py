"""
Base Schema Classes for Pydantic Models

RULE: All response schemas that use `from_attributes=True` MUST inherit from BaseResponseSchema.
"""

from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, PlainSerializer


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    Usage:
        class VendorResponse(BaseResponseSchema):
            id: UUID
            name: str
            is_approved: bool
    """
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    Unknown fields are ignored so older clients keep working.
    """
    model_config = ConfigDict(
        extra='ignore',
    )


class BaseUpdateSchema(BaseModel):
    """
    Base class for update/patch schemas.

    All fields are optional; services apply only the fields that were sent
    (model_dump(exclude_unset=True)).
    """
    model_config = ConfigDict(
        extra='ignore',
    )


# Quantities and money go out as JSON numbers, not strings
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
OptionalAmount = Optional[Amount]

OptionalUUID = Optional[UUID]
