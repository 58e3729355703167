# backend/lessonbook/routes/v1/availability.py
"""
Teacher availability routes - API v1

Teacher-only management of the caller's own calendar:

Endpoints:
    POST   /{teacher_id}/availability-rules  → Create and expand a weekly rule
    GET    /{teacher_id}/availability-rules  → List stored rules
    GET    /{teacher_id}/availability        → Atomic or merged calendar read
    POST   /{teacher_id}/availability        → Add a manual UTC range
    DELETE /{teacher_id}/availability        → Delete by block id, event id or range
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies.auth import get_current_user, require_teacher_owner
from ...api.dependencies.params import parse_utc_boundary
from ...api.dependencies.services import get_availability_service
from ...core.enums import AvailabilityDisplayMode
from ...core.exceptions import DomainException
from ...principal import CurrentUser
from ...schemas.availability import (
    AvailabilityBlockResponse,
    AvailabilityDeleteResponse,
    AvailabilityRangeResponse,
    AvailabilityReadResponse,
    AvailabilityRuleCreate,
    AvailabilityRuleResponse,
    ManualRangeCreate,
    ManualRangeResponse,
    MergedEventResponse,
    RuleCreatedResponse,
)
from ...services.availability_service import AvailabilityService
from ..errors import handle_domain_exception

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["availability-v1"])


@router.post(
    "/{teacher_id}/availability-rules",
    response_model=RuleCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_availability_rule(
    teacher_id: str,
    payload: AvailabilityRuleCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
) -> RuleCreatedResponse:
    """
    Store a weekly rule and expand it into atomic blocks.

    The rule is valid from now for the configured horizon; expansion is
    idempotent with respect to blocks that already exist.
    """
    require_teacher_owner(teacher_id, current_user)
    try:
        result = await asyncio.to_thread(
            service.create_rule,
            teacher_id,
            payload.weekday,
            payload.start_min,
            payload.end_min,
            payload.timezone,
        )
    except DomainException as e:
        handle_domain_exception(e)

    return RuleCreatedResponse(
        rule=AvailabilityRuleResponse.model_validate(result.rule),
        ranges_written=result.ranges_written,
        blocks_inserted=result.blocks_inserted,
    )


@router.get("/{teacher_id}/availability-rules", response_model=List[AvailabilityRuleResponse])
async def list_availability_rules(
    teacher_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
) -> List[AvailabilityRuleResponse]:
    require_teacher_owner(teacher_id, current_user)
    rules = await asyncio.to_thread(service.list_rules, teacher_id)
    return [AvailabilityRuleResponse.model_validate(rule) for rule in rules]


@router.get(
    "/{teacher_id}/availability",
    response_model=AvailabilityReadResponse,
    response_model_exclude_none=True,
)
async def get_availability(
    teacher_id: str,
    from_: Optional[str] = Query(None, alias="from", description="ISO-8601 with Z or offset"),
    to: Optional[str] = Query(None, description="ISO-8601 with Z or offset"),
    mode: AvailabilityDisplayMode = Query(AvailabilityDisplayMode.MERGED),
    current_user: CurrentUser = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityReadResponse:
    """Availability intersecting ``[from, to)`` as atomic rows or merged events."""
    require_teacher_owner(teacher_id, current_user)
    try:
        start = parse_utc_boundary(from_, "from")
        end = parse_utc_boundary(to, "to")
        data = await asyncio.to_thread(service.get_availability, teacher_id, start, end, mode)
    except DomainException as e:
        handle_domain_exception(e)

    if mode == AvailabilityDisplayMode.ATOMIC:
        return AvailabilityReadResponse(
            teacher_id=teacher_id,
            mode=mode.value,
            count=data["count"],
            blocks=[AvailabilityBlockResponse.model_validate(row) for row in data["blocks"]],
        )
    return AvailabilityReadResponse(
        teacher_id=teacher_id,
        mode=mode.value,
        count=data["count"],
        events=[MergedEventResponse.model_validate(event) for event in data["events"]],
    )


@router.post("/{teacher_id}/availability", response_model=ManualRangeResponse)
async def add_manual_availability(
    teacher_id: str,
    payload: ManualRangeCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
) -> ManualRangeResponse:
    """Add a manual range; blocks that already exist are left untouched."""
    require_teacher_owner(teacher_id, current_user)
    try:
        result = await asyncio.to_thread(
            service.add_manual_range, teacher_id, payload.start_utc, payload.end_utc
        )
    except DomainException as e:
        handle_domain_exception(e)

    return ManualRangeResponse(
        requested=result.blocks_requested,
        inserted=result.blocks_inserted,
        range=AvailabilityRangeResponse.model_validate(result.range),
    )


@router.delete("/{teacher_id}/availability", response_model=AvailabilityDeleteResponse)
async def delete_availability(
    teacher_id: str,
    block_id: Optional[str] = Query(None, alias="id", description="Atomic block id"),
    event_id: Optional[str] = Query(None, description="Merged event id"),
    event_id_alias: Optional[str] = Query(None, alias="eventId", include_in_schema=False),
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityDeleteResponse:
    """
    Delete availability.

    Exactly one addressing mode applies, checked in order: ``id``,
    ``event_id``, then ``from``/``to``.
    """
    require_teacher_owner(teacher_id, current_user)
    try:
        start = parse_utc_boundary(from_, "from", required=False)
        end = parse_utc_boundary(to, "to", required=False)
        result = await asyncio.to_thread(
            lambda: service.delete_availability(
                teacher_id,
                block_id=block_id,
                event_id=event_id or event_id_alias,
                start=start,
                end=end,
            )
        )
    except DomainException as e:
        handle_domain_exception(e)

    return AvailabilityDeleteResponse(deleted=result["deleted"], mode=result["mode"])
