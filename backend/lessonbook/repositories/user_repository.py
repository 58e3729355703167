# backend/lessonbook/repositories/user_repository.py
"""Read access to users; accounts are owned by the identity service."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.find_one_by(email=email)

    def get_timezone(self, user_id: str) -> Optional[str]:
        user = self.get_by_id(user_id)
        return user.timezone if user else None
