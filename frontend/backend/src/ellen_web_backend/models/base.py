"""Base model for API payloads."""

from pydantic import BaseModel, ConfigDict


class ApiModel(BaseModel):
    """Base API model accepting both field names and aliases."""

    model_config = ConfigDict(populate_by_name=True)
