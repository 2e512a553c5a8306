"""Shared schema configuration."""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Admin API schemas; read models are built straight from ORM rows."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)
