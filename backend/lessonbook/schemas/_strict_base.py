"""Strict schema baselines with forbidden extras by default."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer

from ..domain.grid import format_utc


class StrictModel(BaseModel):
    """Neutral strict base for response DTOs."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, from_attributes=True)


class StrictRequestModel(BaseModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


# Instants leave the API as ISO-8601 with a Z suffix
UtcInstant = Annotated[datetime, PlainSerializer(format_utc, return_type=str, when_used="json")]
