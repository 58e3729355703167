# backend/lessonbook/repositories/offer_repository.py
"""Data access for lesson offers."""

import logging
from typing import List, Optional, cast

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..domain.slots import is_offer_active
from ..models.offer import LessonOffer
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class OfferRepository(BaseRepository[LessonOffer]):
    def __init__(self, db: Session):
        super().__init__(db, LessonOffer)

    def list_for_teacher(self, teacher_id: str) -> List[LessonOffer]:
        try:
            return cast(
                List[LessonOffer],
                self.db.query(LessonOffer)
                .filter(LessonOffer.teacher_id == teacher_id)
                .order_by(LessonOffer.duration_minutes)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing offers: {str(e)}")
            raise RepositoryException(f"Failed to list offers: {str(e)}")

    def get_for_duration(self, teacher_id: str, duration_minutes: int) -> Optional[LessonOffer]:
        try:
            return cast(
                Optional[LessonOffer],
                self.db.query(LessonOffer)
                .filter(
                    and_(
                        LessonOffer.teacher_id == teacher_id,
                        LessonOffer.duration_minutes == duration_minutes,
                    )
                )
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting offer: {str(e)}")
            raise RepositoryException(f"Failed to get offer: {str(e)}")

    def get_active_for_duration(
        self, teacher_id: str, duration_minutes: int
    ) -> Optional[LessonOffer]:
        """The offer for ``duration_minutes`` if its flag reads as active."""
        offer = self.get_for_duration(teacher_id, duration_minutes)
        if offer is None or not is_offer_active(offer.is_active):
            return None
        return offer
