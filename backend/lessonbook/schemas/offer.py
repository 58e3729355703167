# backend/lessonbook/schemas/offer.py
"""Lesson offer schemas."""

from typing import Literal, Optional, Union

from pydantic import Field, field_validator

from ..core.constants import DEFAULT_CURRENCY
from ..domain.slots import is_offer_active
from ._strict_base import StrictModel, StrictRequestModel, UtcInstant


class OfferUpsert(StrictRequestModel):
    duration_minutes: Literal[30, 45, 60]
    price_cents: int = Field(..., ge=0)
    currency: str = Field(default=DEFAULT_CURRENCY, min_length=3, max_length=3)
    is_active: Union[bool, int, str] = True

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()


class OfferResponse(StrictModel):
    id: str
    teacher_id: str
    duration_minutes: int
    price_cents: int
    currency: str
    is_active: bool
    updated_at: Optional[UtcInstant] = None

    @field_validator("is_active", mode="before")
    @classmethod
    def _coerce_active(cls, value: object) -> bool:
        return is_offer_active(value)
