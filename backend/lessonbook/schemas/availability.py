# backend/lessonbook/schemas/availability.py
"""
Availability schemas for Lessonbook.

Request timestamps must carry an explicit offset (``AwareDatetime``);
naive values are rejected at the boundary.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import AwareDatetime, Field, model_validator

from ..core.constants import DEFAULT_TIMEZONE, MINUTES_PER_DAY
from ._strict_base import StrictModel, StrictRequestModel, UtcInstant


class AvailabilityRuleCreate(StrictRequestModel):
    """Weekly rule in the teacher's local wall clock."""

    weekday: int = Field(..., ge=0, le=6, description="0=Sunday .. 6=Saturday")
    start_min: int = Field(..., ge=0, le=MINUTES_PER_DAY, description="Minutes after local midnight")
    end_min: int = Field(..., ge=0, le=MINUTES_PER_DAY, description="Minutes after local midnight")
    timezone: str = Field(default=DEFAULT_TIMEZONE, min_length=1, description="IANA timezone")

    @model_validator(mode="after")
    def _check_window(self) -> "AvailabilityRuleCreate":
        if self.end_min <= self.start_min:
            raise ValueError("end_min must be > start_min")
        return self


class AvailabilityRuleResponse(StrictModel):
    id: str
    teacher_id: str
    weekday: int
    start_min: int
    end_min: int
    timezone: str
    valid_from: UtcInstant
    valid_to: UtcInstant


class RuleCreatedResponse(StrictModel):
    rule: AvailabilityRuleResponse
    expanded: bool = True
    ranges_written: int
    blocks_inserted: int


class ManualRangeCreate(StrictRequestModel):
    start_utc: AwareDatetime
    end_utc: AwareDatetime


class AvailabilityRangeResponse(StrictModel):
    id: str
    teacher_id: str
    kind: str
    start_utc: UtcInstant
    end_utc: UtcInstant


class ManualRangeResponse(StrictModel):
    ok: bool = True
    requested: int
    inserted: int
    range: AvailabilityRangeResponse


class AvailabilityBlockResponse(StrictModel):
    id: str
    teacher_id: str
    start_utc: UtcInstant
    end_utc: UtcInstant
    source: str


class MergedEventResponse(StrictModel):
    id: str
    start: UtcInstant
    end: UtcInstant
    title: str
    display: str


class AvailabilityReadResponse(StrictModel):
    teacher_id: str
    mode: Literal["atomic", "merged"]
    count: int
    blocks: Optional[List[AvailabilityBlockResponse]] = None
    events: Optional[List[MergedEventResponse]] = None


class AvailabilityDeleteResponse(StrictModel):
    ok: bool = True
    deleted: int
    mode: Literal["atomic", "eventId", "range"]


class FreeSlotResponse(StrictModel):
    start_utc: UtcInstant
    end_utc: UtcInstant
    duration_minutes: int


class SlotListResponse(StrictModel):
    teacher_id: str
    from_utc: UtcInstant
    to_utc: UtcInstant
    count: int
    slots: List[FreeSlotResponse]


class WeeklyPreviewRange(StrictModel):
    from_local: str
    to_local_exclusive: str


class WeeklyPreviewResponse(StrictModel):
    timezone: str
    month_label: str
    day_numbers: List[int]
    grid: Dict[str, List[bool]]
    range: WeeklyPreviewRange

    @classmethod
    def from_preview(cls, preview: Dict[str, Any]) -> "WeeklyPreviewResponse":
        return cls.model_validate(preview)
