"""Base model configuration for records and configuration."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable base model that rejects unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid")
