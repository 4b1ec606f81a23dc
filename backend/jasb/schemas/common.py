"""Common Pydantic schemas and base classes."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class TimestampSchema(BaseSchema):
    """Schema with timestamp fields."""

    created: datetime
    modified: datetime


class VersionedRequest(BaseSchema):
    """Body of any mutation guarded by an entity version."""

    version: int = Field(ge=0)


class ErrorResponse(BaseModel):
    """Error body returned for every ledger error."""

    error: str
    message: str
