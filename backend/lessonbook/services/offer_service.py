# backend/lessonbook/services/offer_service.py
"""
Offer Service for Lessonbook

Teachers keep at most one price per lesson duration. Upserting an offer
for an existing duration updates it in place.
"""

import logging
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_CURRENCY, SUPPORTED_DURATIONS
from ..core.exceptions import ValidationException
from ..domain.slots import is_offer_active
from ..models.offer import LessonOffer
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class OfferService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_offer_repository(db)

    def list_offers(self, teacher_id: str, active_only: bool = False) -> List[LessonOffer]:
        offers = self.repository.list_for_teacher(teacher_id)
        if active_only:
            return [offer for offer in offers if is_offer_active(offer.is_active)]
        return offers

    @BaseService.measure_operation("upsert_offer")
    def upsert_offer(
        self,
        teacher_id: str,
        duration_minutes: int,
        price_cents: int,
        currency: Optional[str] = None,
        is_active: Any = True,
    ) -> LessonOffer:
        if duration_minutes not in SUPPORTED_DURATIONS:
            raise ValidationException(
                "Unsupported duration",
                code="UNSUPPORTED_DURATION",
                details={"duration_minutes": duration_minutes, "allowed": list(SUPPORTED_DURATIONS)},
            )
        if price_cents < 0:
            raise ValidationException("price_cents must be >= 0", code="INVALID_PRICE")
        normalized_currency = (currency or DEFAULT_CURRENCY).strip().upper()
        if len(normalized_currency) != 3:
            raise ValidationException("currency must be a 3-letter code", code="INVALID_CURRENCY")
        active_flag = 1 if is_offer_active(is_active) else 0

        with self.transaction():
            offer = self.repository.get_for_duration(teacher_id, duration_minutes)
            if offer is None:
                offer = self.repository.create(
                    teacher_id=teacher_id,
                    duration_minutes=duration_minutes,
                    price_cents=price_cents,
                    currency=normalized_currency,
                    is_active=active_flag,
                )
            else:
                offer.price_cents = price_cents
                offer.currency = normalized_currency
                offer.is_active = active_flag
                self.db.flush()

        self.log_operation(
            "upsert_offer",
            teacher_id=teacher_id,
            duration_minutes=duration_minutes,
            price_cents=price_cents,
            active=bool(active_flag),
        )
        return offer
