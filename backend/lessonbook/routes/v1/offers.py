# backend/lessonbook/routes/v1/offers.py
"""
Lesson offer routes - API v1

Endpoints:
    GET  /{teacher_id}/offers  → List offers (public)
    POST /{teacher_id}/offers  → Create or update the offer for a duration (teacher only)
"""

import asyncio
from typing import List

from fastapi import APIRouter, Depends, Query

from ...api.dependencies.auth import get_current_user, require_teacher_owner
from ...api.dependencies.services import get_offer_service
from ...core.exceptions import DomainException
from ...principal import CurrentUser
from ...schemas.offer import OfferResponse, OfferUpsert
from ...services.offer_service import OfferService
from ..errors import handle_domain_exception

router = APIRouter(tags=["offers-v1"])


@router.get("/{teacher_id}/offers", response_model=List[OfferResponse])
async def list_offers(
    teacher_id: str,
    active_only: bool = Query(False, description="Only offers students can book"),
    service: OfferService = Depends(get_offer_service),
) -> List[OfferResponse]:
    offers = await asyncio.to_thread(service.list_offers, teacher_id, active_only)
    return [OfferResponse.model_validate(offer) for offer in offers]


@router.post("/{teacher_id}/offers", response_model=OfferResponse)
async def upsert_offer(
    teacher_id: str,
    payload: OfferUpsert,
    current_user: CurrentUser = Depends(get_current_user),
    service: OfferService = Depends(get_offer_service),
) -> OfferResponse:
    require_teacher_owner(teacher_id, current_user)
    try:
        offer = await asyncio.to_thread(
            service.upsert_offer,
            teacher_id,
            payload.duration_minutes,
            payload.price_cents,
            payload.currency,
            payload.is_active,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return OfferResponse.model_validate(offer)
