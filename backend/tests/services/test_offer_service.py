"""Offer upsert and listing."""

import pytest

from lessonbook.core.exceptions import ValidationException


def test_upsert_creates_then_updates(offer_service, teacher):
    created = offer_service.upsert_offer(teacher.id, 30, 2500, "eur")
    assert (created.duration_minutes, created.price_cents, created.currency) == (30, 2500, "EUR")
    assert created.is_active == 1

    updated = offer_service.upsert_offer(teacher.id, 30, 2700, "EUR", is_active="false")
    assert updated.id == created.id
    assert updated.price_cents == 2700
    assert updated.is_active == 0
    assert len(offer_service.list_offers(teacher.id)) == 1


def test_active_only_listing(offer_service, teacher):
    offer_service.upsert_offer(teacher.id, 30, 2500)
    offer_service.upsert_offer(teacher.id, 60, 4500, is_active=0)

    assert [o.duration_minutes for o in offer_service.list_offers(teacher.id)] == [30, 60]
    assert [o.duration_minutes for o in offer_service.list_offers(teacher.id, True)] == [30]
    offers = offer_service.repository
    assert offers.get_active_for_duration(teacher.id, 60) is None
    assert offers.get_active_for_duration(teacher.id, 30).price_cents == 2500
    assert offers.get_active_for_duration(teacher.id, 45) is None


@pytest.mark.parametrize(
    "duration, price, currency",
    [(90, 1000, "EUR"), (30, -1, "EUR"), (30, 1000, "EURO")],
)
def test_invalid_offers(offer_service, teacher, duration, price, currency):
    with pytest.raises(ValidationException):
        offer_service.upsert_offer(teacher.id, duration, price, currency)
    assert offer_service.list_offers(teacher.id) == []
