# backend/lessonbook/repositories/availability_repository.py
"""
AvailabilityRepository - rules, declared ranges and atomic blocks.

All queries are scoped to a single teacher. Nothing here commits; the
service layer decides transaction boundaries.
"""

from datetime import datetime
import logging
from typing import Iterable, List, Optional, Sequence, Set, Tuple, cast

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.availability import AvailabilityBlock, AvailabilityRange, AvailabilityRule
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityRepository(BaseRepository[AvailabilityBlock]):
    """Data access for the atomic block store and its inputs."""

    def __init__(self, db: Session):
        super().__init__(db, AvailabilityBlock)

    # Rules

    def create_rule(self, **fields) -> AvailabilityRule:
        try:
            rule = AvailabilityRule(**fields)
            self.db.add(rule)
            self.db.flush()
            return rule
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating availability rule: {str(e)}")
            raise RepositoryException(f"Failed to create availability rule: {str(e)}")

    def list_rules(self, teacher_id: str) -> List[AvailabilityRule]:
        try:
            return cast(
                List[AvailabilityRule],
                self.db.query(AvailabilityRule)
                .filter(AvailabilityRule.teacher_id == teacher_id)
                .order_by(AvailabilityRule.created_at, AvailabilityRule.id)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing availability rules: {str(e)}")
            raise RepositoryException(f"Failed to list availability rules: {str(e)}")

    def list_rules_overlapping(
        self, teacher_id: str, start: datetime, end: datetime
    ) -> List[AvailabilityRule]:
        """Rules whose validity window overlaps ``[start, end)``."""
        try:
            return cast(
                List[AvailabilityRule],
                self.db.query(AvailabilityRule)
                .filter(
                    and_(
                        AvailabilityRule.teacher_id == teacher_id,
                        AvailabilityRule.valid_from < end,
                        AvailabilityRule.valid_to > start,
                    )
                )
                .order_by(AvailabilityRule.created_at, AvailabilityRule.id)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing overlapping rules: {str(e)}")
            raise RepositoryException(f"Failed to list availability rules: {str(e)}")

    # Declared ranges

    def list_ranges(
        self,
        teacher_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[AvailabilityRange]:
        try:
            query = self.db.query(AvailabilityRange).filter(
                AvailabilityRange.teacher_id == teacher_id
            )
            if end is not None:
                query = query.filter(AvailabilityRange.start_utc < end)
            if start is not None:
                query = query.filter(AvailabilityRange.end_utc > start)
            return cast(
                List[AvailabilityRange], query.order_by(AvailabilityRange.start_utc).all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing availability ranges: {str(e)}")
            raise RepositoryException(f"Failed to list availability ranges: {str(e)}")

    def find_ranges_touching(
        self, teacher_id: str, start: datetime, end: datetime
    ) -> List[AvailabilityRange]:
        """Ranges that overlap or share an endpoint with ``[start, end)``."""
        try:
            return cast(
                List[AvailabilityRange],
                self.db.query(AvailabilityRange)
                .filter(
                    and_(
                        AvailabilityRange.teacher_id == teacher_id,
                        AvailabilityRange.start_utc <= end,
                        AvailabilityRange.end_utc >= start,
                    )
                )
                .order_by(AvailabilityRange.start_utc)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding touching ranges: {str(e)}")
            raise RepositoryException(f"Failed to find availability ranges: {str(e)}")

    def create_range(self, teacher_id: str, start: datetime, end: datetime) -> AvailabilityRange:
        try:
            row = AvailabilityRange(teacher_id=teacher_id, start_utc=start, end_utc=end)
            self.db.add(row)
            self.db.flush()
            return row
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating availability range: {str(e)}")
            raise RepositoryException(f"Failed to create availability range: {str(e)}")

    def delete_ranges(self, teacher_id: str, range_ids: Sequence[str]) -> int:
        if not range_ids:
            return 0
        try:
            return int(
                self.db.query(AvailabilityRange)
                .filter(
                    and_(
                        AvailabilityRange.teacher_id == teacher_id,
                        AvailabilityRange.id.in_(list(range_ids)),
                    )
                )
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting availability ranges: {str(e)}")
            raise RepositoryException(f"Failed to delete availability ranges: {str(e)}")

    # Atomic blocks

    def list_blocks(self, teacher_id: str, start: datetime, end: datetime) -> List[AvailabilityBlock]:
        """Blocks intersecting ``[start, end)``, ordered by start."""
        try:
            return cast(
                List[AvailabilityBlock],
                self.db.query(AvailabilityBlock)
                .filter(
                    and_(
                        AvailabilityBlock.teacher_id == teacher_id,
                        AvailabilityBlock.start_utc < end,
                        AvailabilityBlock.end_utc > start,
                    )
                )
                .order_by(AvailabilityBlock.start_utc)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing availability blocks: {str(e)}")
            raise RepositoryException(f"Failed to list availability blocks: {str(e)}")

    def existing_block_starts(self, teacher_id: str, starts: Iterable[datetime]) -> Set[datetime]:
        wanted = list(starts)
        if not wanted:
            return set()
        try:
            rows = (
                self.db.query(AvailabilityBlock.start_utc)
                .filter(
                    and_(
                        AvailabilityBlock.teacher_id == teacher_id,
                        AvailabilityBlock.start_utc.in_(wanted),
                    )
                )
                .all()
            )
            return {row[0] for row in rows}
        except SQLAlchemyError as e:
            self.logger.error(f"Error reading existing block starts: {str(e)}")
            raise RepositoryException(f"Failed to read availability blocks: {str(e)}")

    def insert_missing_blocks(
        self,
        teacher_id: str,
        blocks: Sequence[Tuple[datetime, datetime]],
        source: str,
    ) -> int:
        """
        Insert blocks whose start is not yet stored for the teacher.

        Returns the number of rows actually inserted.
        """
        if not blocks:
            return 0
        existing = self.existing_block_starts(teacher_id, (start for start, _ in blocks))
        new_rows = [
            AvailabilityBlock(teacher_id=teacher_id, start_utc=start, end_utc=end, source=source)
            for start, end in blocks
            if start not in existing
        ]
        if not new_rows:
            return 0
        try:
            self.db.add_all(new_rows)
            self.db.flush()
            return len(new_rows)
        except SQLAlchemyError as e:
            self.logger.error(f"Error inserting availability blocks: {str(e)}")
            raise RepositoryException(f"Failed to insert availability blocks: {str(e)}")

    def lock_blocks_at(self, teacher_id: str, starts: Sequence[datetime]) -> List[AvailabilityBlock]:
        """
        Fetch blocks starting at ``starts`` with a row lock.

        On PostgreSQL the lock holds concurrent reservations until this
        transaction ends; SQLite ignores FOR UPDATE and serializes writers.
        """
        try:
            return cast(
                List[AvailabilityBlock],
                self.db.query(AvailabilityBlock)
                .filter(
                    and_(
                        AvailabilityBlock.teacher_id == teacher_id,
                        AvailabilityBlock.start_utc.in_(list(starts)),
                    )
                )
                .order_by(AvailabilityBlock.start_utc)
                .with_for_update()
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking availability blocks: {str(e)}")
            raise RepositoryException(f"Failed to lock availability blocks: {str(e)}")

    def delete_blocks_by_ids(self, teacher_id: str, block_ids: Sequence[str]) -> int:
        if not block_ids:
            return 0
        try:
            return int(
                self.db.query(AvailabilityBlock)
                .filter(
                    and_(
                        AvailabilityBlock.teacher_id == teacher_id,
                        AvailabilityBlock.id.in_(list(block_ids)),
                    )
                )
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting availability blocks: {str(e)}")
            raise RepositoryException(f"Failed to delete availability blocks: {str(e)}")

    def delete_blocks_intersecting(self, teacher_id: str, start: datetime, end: datetime) -> int:
        try:
            return int(
                self.db.query(AvailabilityBlock)
                .filter(
                    and_(
                        AvailabilityBlock.teacher_id == teacher_id,
                        AvailabilityBlock.start_utc < end,
                        AvailabilityBlock.end_utc > start,
                    )
                )
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting availability window: {str(e)}")
            raise RepositoryException(f"Failed to delete availability blocks: {str(e)}")
