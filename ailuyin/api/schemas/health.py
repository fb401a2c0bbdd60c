"""Salidas tipadas para health/ping."""
from pydantic import BaseModel, ConfigDict, Field


class PingOut(BaseModel):
    message: str


class HealthOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "ok"
    has_api_key: bool = Field(serialization_alias="hasApiKey")
    storage: str
