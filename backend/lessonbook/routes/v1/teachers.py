# backend/lessonbook/routes/v1/teachers.py
"""
Public teacher calendar routes - API v1

Endpoints:
    GET /{teacher_id}/free-slots            → Slots a reservation can take
    GET /{teacher_id}/candidate-slots       → Rule-based slots, including 45 minutes
    GET /{teacher_id}/availability-preview  → Weekly day-part grid
"""

import asyncio
from datetime import datetime
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies.params import parse_utc_boundary
from ...api.dependencies.services import get_availability_query_service
from ...core.exceptions import DomainException
from ...domain.slots import FreeSlot
from ...schemas.availability import FreeSlotResponse, SlotListResponse, WeeklyPreviewResponse
from ...services.availability_query_service import AvailabilityQueryService
from ..errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["teachers-v1"])


def _slot_list(
    teacher_id: str, start: datetime, end: datetime, slots: List[FreeSlot]
) -> SlotListResponse:
    return SlotListResponse(
        teacher_id=teacher_id,
        from_utc=start,
        to_utc=end,
        count=len(slots),
        slots=[FreeSlotResponse.model_validate(slot) for slot in slots],
    )


@router.get("/{teacher_id}/free-slots", response_model=SlotListResponse)
async def get_free_slots(
    teacher_id: str,
    from_: Optional[str] = Query(None, alias="from", description="ISO-8601 with Z or offset"),
    to: Optional[str] = Query(None, description="ISO-8601 with Z or offset"),
    service: AvailabilityQueryService = Depends(get_availability_query_service),
) -> SlotListResponse:
    """Bookable slots in ``[from, to)`` for the teacher's active offers."""
    try:
        start = parse_utc_boundary(from_, "from")
        end = parse_utc_boundary(to, "to")
        slots = await asyncio.to_thread(service.list_free_slots, teacher_id, start, end)
    except DomainException as e:
        handle_domain_exception(e)
    return _slot_list(teacher_id, start, end, slots)


@router.get("/{teacher_id}/candidate-slots", response_model=SlotListResponse)
async def get_candidate_slots(
    teacher_id: str,
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    service: AvailabilityQueryService = Depends(get_availability_query_service),
) -> SlotListResponse:
    try:
        start = parse_utc_boundary(from_, "from")
        end = parse_utc_boundary(to, "to")
        slots = await asyncio.to_thread(service.list_candidate_slots, teacher_id, start, end)
    except DomainException as e:
        handle_domain_exception(e)
    return _slot_list(teacher_id, start, end, slots)


@router.get("/{teacher_id}/availability-preview", response_model=WeeklyPreviewResponse)
async def get_availability_preview(
    teacher_id: str,
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    service: AvailabilityQueryService = Depends(get_availability_query_service),
) -> WeeklyPreviewResponse:
    """Seven-day day-part grid in the teacher's timezone."""
    try:
        start = parse_utc_boundary(from_, "from", required=False)
        end = parse_utc_boundary(to, "to", required=False)
        preview = await asyncio.to_thread(service.weekly_preview, teacher_id, start, end)
    except DomainException as e:
        handle_domain_exception(e)
    return WeeklyPreviewResponse.from_preview(preview)
