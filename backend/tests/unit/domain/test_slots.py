"""Candidate slot generation from weekly rules."""

from types import SimpleNamespace

import pytest

from lessonbook.domain.slots import (
    active_durations,
    generate_candidate_slots,
    is_offer_active,
    rule_windows,
)
from tests.utils.builders import utc


def make_rule(weekday, start_min, end_min, tz="UTC", valid_from=None, valid_to=None):
    return SimpleNamespace(
        weekday=weekday,
        start_min=start_min,
        end_min=end_min,
        timezone=tz,
        valid_from=valid_from or utc(2026, 1, 1),
        valid_to=valid_to or utc(2027, 1, 1),
    )


def make_offer(duration, is_active=True):
    return SimpleNamespace(duration_minutes=duration, is_active=is_active)


ALL_OFFERS = [make_offer(30), make_offer(45), make_offer(60)]

# 2026-01-07 is a Wednesday
WEDNESDAY = utc(2026, 1, 7)
THURSDAY = utc(2026, 1, 8)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, True),
        (True, True),
        (False, False),
        (1, True),
        (0, False),
        (2.5, True),
        (0.0, False),
        ("1", True),
        ("0", False),
        ("false", False),
        (" FALSE ", False),
        ("no", False),
        ("off", False),
        ("yes", True),
        ("", True),
    ],
)
def test_offer_active_predicate(value, expected):
    assert is_offer_active(value) is expected


def test_active_durations_filters_inactive_and_unsupported():
    offers = [make_offer(60), make_offer(30, "0"), make_offer(45), make_offer(90), make_offer(60)]
    assert active_durations(offers) == [45, 60]
    assert active_durations(offers, allowed=(30, 60)) == [60]


def test_wednesday_morning_rule_yields_all_durations_on_quarter_hours():
    rule = make_rule(weekday=3, start_min=9 * 60, end_min=12 * 60)
    slots = generate_candidate_slots(WEDNESDAY, THURSDAY, [rule], ALL_OFFERS)

    by_duration = {}
    for slot in slots:
        by_duration.setdefault(slot.duration_minutes, []).append(slot)
    assert sorted(by_duration) == [30, 45, 60]
    # 09:00..11:30, 09:00..11:15, 09:00..11:00 in 15-minute steps
    assert len(by_duration[30]) == 11
    assert len(by_duration[45]) == 10
    assert len(by_duration[60]) == 9
    for slot in slots:
        assert slot.start_utc.minute % 15 == 0
        assert slot.start_utc >= utc(2026, 1, 7, 9)
        assert slot.end_utc <= utc(2026, 1, 7, 12)
        assert (slot.end_utc - slot.start_utc).total_seconds() == slot.duration_minutes * 60


def test_slots_are_sorted_and_unique():
    rules = [make_rule(3, 540, 720), make_rule(3, 540, 720)]
    slots = generate_candidate_slots(WEDNESDAY, THURSDAY, rules, ALL_OFFERS)
    keys = [(s.start_utc, s.duration_minutes) for s in slots]
    assert keys == sorted(keys)
    assert len(set(keys)) == len(keys)


def test_other_weekday_yields_nothing():
    rule = make_rule(weekday=4, start_min=540, end_min=720)
    assert generate_candidate_slots(WEDNESDAY, THURSDAY, [rule], ALL_OFFERS) == []


@pytest.mark.parametrize(
    "rules, offers",
    [
        ([], ALL_OFFERS),
        ([make_rule(3, 540, 720)], []),
        ([make_rule(3, 540, 720)], [make_offer(30, 0), make_offer(60, "false")]),
        ([make_rule(3, 720, 540)], ALL_OFFERS),
    ],
)
def test_degenerate_inputs_yield_nothing(rules, offers):
    assert generate_candidate_slots(WEDNESDAY, THURSDAY, rules, offers) == []


def test_inverted_query_range_yields_nothing():
    assert generate_candidate_slots(THURSDAY, WEDNESDAY, [make_rule(3, 540, 720)], ALL_OFFERS) == []


def test_rule_validity_clips_windows():
    rule = make_rule(3, 540, 720, valid_from=utc(2026, 1, 7, 10, 0))
    slots = generate_candidate_slots(WEDNESDAY, THURSDAY, [rule], [make_offer(30)])
    assert slots[0].start_utc == utc(2026, 1, 7, 10, 0)


def test_query_range_clips_windows():
    rule = make_rule(3, 540, 720)
    slots = generate_candidate_slots(
        utc(2026, 1, 7, 11, 0), THURSDAY, [rule], [make_offer(60)]
    )
    assert [s.start_utc for s in slots] == [utc(2026, 1, 7, 11, 0)]


def test_window_to_end_of_day():
    rule = make_rule(3, 23 * 60, 24 * 60)
    slots = generate_candidate_slots(WEDNESDAY, THURSDAY, [rule], [make_offer(60)])
    assert [(s.start_utc, s.end_utc) for s in slots] == [(utc(2026, 1, 7, 23), THURSDAY)]


def test_local_rule_follows_daylight_saving():
    # Sundays 09:00-10:00 Berlin: 08:00Z in winter, 07:00Z after 2026-03-29
    rule = make_rule(0, 540, 600, tz="Europe/Berlin")
    windows = rule_windows(rule, utc(2026, 3, 21), utc(2026, 4, 1))
    assert [(w.start, w.end) for w in windows] == [
        (utc(2026, 3, 22, 8), utc(2026, 3, 22, 9)),
        (utc(2026, 3, 29, 7), utc(2026, 3, 29, 8)),
    ]


def test_negative_offset_rule_crossing_utc_midnight():
    # Tuesdays 20:00-22:00 New York are Wednesdays 01:00-03:00Z in winter
    rule = make_rule(2, 20 * 60, 22 * 60, tz="America/New_York")
    slots = generate_candidate_slots(WEDNESDAY, THURSDAY, [rule], [make_offer(60)])
    assert slots[0].start_utc == utc(2026, 1, 7, 1, 0)
    assert slots[-1].end_utc == utc(2026, 1, 7, 3, 0)
