"""Stripe webhook route."""

import json

from lessonbook.core.enums import BookingStatus
from lessonbook.models.booking import Booking
from tests.utils.builders import add_block_run, add_booking, block_starts, utc
from tests.utils.fakes import VALID_SIGNATURE, checkout_event, refund_event

URL = "/api/v1/webhooks/stripe"
FOUR = utc(2026, 1, 7, 4)


def post_event(client, event, signature=VALID_SIGNATURE):
    return client.post(
        URL,
        content=json.dumps(event).encode(),
        headers={"stripe-signature": signature, "content-type": "application/json"},
    )


def test_bad_signature_is_rejected(client, db, teacher, student):
    booking = add_booking(db, teacher.id, student.id, FOUR)

    r = post_event(client, checkout_event("checkout.session.completed", booking.id), "t=1,v1=bad")

    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_WEBHOOK_SIGNATURE"
    db.refresh(booking)
    assert booking.status == BookingStatus.PENDING.value


def test_completed_checkout_marks_paid(client, db, teacher, student):
    booking = add_booking(db, teacher.id, student.id, FOUR)

    r = post_event(
        client,
        checkout_event("checkout.session.completed", booking.id, payment_intent="pi_42"),
    )

    assert r.status_code == 200
    assert r.json() == {
        "received": True,
        "event_type": "checkout.session.completed",
        "handled": True,
        "applied": True,
    }
    db.refresh(booking)
    assert booking.status == BookingStatus.PAID.value
    assert booking.payment_reference == "pi_42"


def test_unknown_booking_is_acknowledged(client, db):
    r = post_event(
        client, checkout_event("checkout.session.completed", "01J0000000000000000000000Z")
    )
    assert r.status_code == 200
    assert r.json()["applied"] is False
    assert db.query(Booking).count() == 0


def test_unpaid_completion_waits_for_async_confirmation(client, db, teacher, student):
    booking = add_booking(db, teacher.id, student.id, FOUR)

    r = post_event(
        client,
        checkout_event("checkout.session.completed", booking.id, payment_status="unpaid"),
    )
    assert r.json()["handled"] is False
    db.refresh(booking)
    assert booking.status == BookingStatus.PENDING.value

    r = post_event(
        client, checkout_event("checkout.session.async_payment_succeeded", booking.id)
    )
    assert r.json()["applied"] is True
    db.refresh(booking)
    assert booking.status == BookingStatus.PAID.value


def test_expired_checkout_restores_blocks(client, db, teacher, student):
    add_block_run(db, teacher.id, utc(2026, 1, 7, 5), 1)
    booking = add_booking(db, teacher.id, student.id, FOUR, duration_minutes=60)

    r = post_event(client, checkout_event("checkout.session.expired", booking.id))

    assert r.json()["applied"] is True
    db.refresh(booking)
    assert booking.status == BookingStatus.CANCELED.value
    assert block_starts(db, teacher.id) == [FOUR, utc(2026, 1, 7, 4, 30), utc(2026, 1, 7, 5)]


def test_refund(client, db, teacher, student):
    booking = add_booking(
        db, teacher.id, student.id, FOUR, status=BookingStatus.PAID, payment_reference="pi_r"
    )
    r = post_event(client, refund_event("pi_r"))
    assert r.json()["applied"] is True
    db.refresh(booking)
    assert booking.status == BookingStatus.REFUNDED.value


def test_unrelated_event_is_ignored(client):
    r = post_event(client, {"id": "evt_1", "type": "customer.created", "data": {"object": {}}})
    assert r.status_code == 200
    assert r.json()["handled"] is False
