"""Free slots, rule candidates and the weekly preview."""

from datetime import timedelta

import pytest

from lessonbook.core.enums import BookingStatus
from lessonbook.core.exceptions import ValidationException
from tests.utils.builders import add_block_run, add_blocks, add_booking, add_offer, utc

WEDNESDAY = utc(2026, 1, 7)
THURSDAY = WEDNESDAY + timedelta(days=1)


def triples(slots):
    return [(s.start_utc.strftime("%H:%M"), s.duration_minutes) for s in slots]


class TestFreeSlots:
    @pytest.fixture(autouse=True)
    def _offers(self, db, teacher):
        add_offer(db, teacher.id, 30)
        add_offer(db, teacher.id, 45)
        add_offer(db, teacher.id, 60)

    def test_two_hours_of_blocks(self, query_service, teacher, db):
        add_block_run(db, teacher.id, utc(2026, 1, 7, 9), 4)

        slots = query_service.list_free_slots(teacher.id, WEDNESDAY, THURSDAY)

        assert triples(slots) == [
            ("09:00", 30),
            ("09:00", 60),
            ("09:30", 30),
            ("09:30", 60),
            ("10:00", 30),
            ("10:00", 60),
            ("10:30", 30),
        ]
        assert all(s.end_utc - s.start_utc == timedelta(minutes=s.duration_minutes) for s in slots)

    def test_held_bookings_are_subtracted(self, query_service, teacher, student, db):
        add_block_run(db, teacher.id, utc(2026, 1, 7, 9), 4)
        add_booking(db, teacher.id, student.id, utc(2026, 1, 7, 9, 30))
        add_booking(
            db, teacher.id, student.id, utc(2026, 1, 7, 10, 30), status=BookingStatus.CANCELED
        )

        slots = query_service.list_free_slots(teacher.id, WEDNESDAY, THURSDAY)

        assert triples(slots) == [("09:00", 30), ("10:00", 30), ("10:00", 60), ("10:30", 30)]

    def test_query_range_clips_windows(self, query_service, teacher, db):
        add_block_run(db, teacher.id, utc(2026, 1, 7, 9), 4)
        slots = query_service.list_free_slots(
            teacher.id, utc(2026, 1, 7, 10), utc(2026, 1, 7, 10, 45)
        )
        assert triples(slots) == [("10:00", 30)]

    def test_no_blocks(self, query_service, teacher):
        assert query_service.list_free_slots(teacher.id, WEDNESDAY, THURSDAY) == []

    def test_invalid_range(self, query_service, teacher):
        with pytest.raises(ValidationException):
            query_service.list_free_slots(teacher.id, THURSDAY, WEDNESDAY)


def test_free_slots_need_an_active_reservable_offer(query_service, teacher, db):
    add_offer(db, teacher.id, 45)
    add_offer(db, teacher.id, 30, is_active=0)
    add_blocks(db, teacher.id, utc(2026, 1, 7, 9))
    assert query_service.list_free_slots(teacher.id, WEDNESDAY, THURSDAY) == []


def test_candidate_slots_from_stored_rule(query_service, availability_service, teacher, db):
    for duration in (30, 45, 60):
        add_offer(db, teacher.id, duration)
    availability_service.create_rule(teacher.id, 3, 540, 600, "UTC", now=utc(2026, 1, 5))

    slots = query_service.list_candidate_slots(teacher.id, WEDNESDAY, THURSDAY)

    assert triples(slots) == [
        ("09:00", 30),
        ("09:00", 45),
        ("09:00", 60),
        ("09:15", 30),
        ("09:15", 45),
        ("09:30", 30),
    ]


class TestWeeklyPreview:
    def test_current_week_in_teacher_timezone(self, query_service, teacher, db):
        # 08:00Z is 09:00 in Berlin; 17:30Z on Friday is 18:30 local
        add_blocks(db, teacher.id, utc(2026, 1, 7, 8), utc(2026, 1, 9, 17, 30))

        preview = query_service.weekly_preview(teacher.id, now=utc(2026, 1, 7, 12))

        assert preview["timezone"] == "Europe/Berlin"
        assert preview["month_label"] == "January 2026"
        assert preview["day_numbers"] == [5, 6, 7, 8, 9, 10, 11]
        assert preview["grid"]["6-12"] == [False, False, True, False, False, False, False]
        assert preview["grid"]["18-00"] == [False, False, False, False, True, False, False]
        assert not any(preview["grid"]["13-18"])
        assert not any(preview["grid"]["00-06"])
        assert preview["range"]["from_local"].startswith("2026-01-05T00:00:00")

    def test_explicit_start(self, query_service, teacher):
        preview = query_service.weekly_preview(teacher.id, start=utc(2026, 1, 12, 12))
        assert preview["day_numbers"] == [12, 13, 14, 15, 16, 17, 18]
        assert set(preview["grid"]) == {"6-12", "13-18", "18-00", "00-06"}

    def test_unknown_teacher_falls_back_to_default_timezone(self, query_service):
        preview = query_service.weekly_preview("01UNKNOWNTEACHER", now=utc(2026, 1, 7, 12))
        assert preview["timezone"] == "Europe/Berlin"
