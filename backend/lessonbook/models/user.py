# backend/lessonbook/models/user.py
"""
User model for the Lessonbook platform.

Accounts themselves are managed by the upstream identity service; this
table exists as a foreign-key target and carries the display timezone
used for availability previews.
"""

import logging

from sqlalchemy import CheckConstraint, Column, String
import ulid

from ..core.constants import DEFAULT_TIMEZONE
from ..core.enums import RoleName
from ..database import Base
from .types import TimestampMixin

logger = logging.getLogger(__name__)


class User(TimestampMixin, Base):
    """Teacher or student known to the scheduling engine."""

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(120), nullable=True)
    role = Column(String(20), nullable=False, default=RoleName.STUDENT.value)
    timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)

    __table_args__ = (
        CheckConstraint("role IN ('teacher', 'student')", name="ck_users_role"),
    )

    @property
    def is_teacher(self) -> bool:
        return self.role == RoleName.TEACHER.value

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
