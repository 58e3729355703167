"""Checkout, cancellation and booking reads."""

import pytest

from lessonbook.api.dependencies.auth import get_settings
from lessonbook.main import app
from lessonbook.models.booking import Booking
from tests.utils.builders import add_block_run, add_offer, block_starts, utc

FOUR = "2026-01-07T04:00:00Z"


@pytest.fixture
def bookable(db, teacher):
    add_offer(db, teacher.id, 30, 2500)
    add_offer(db, teacher.id, 60, 4500)
    add_block_run(db, teacher.id, utc(2026, 1, 7, 4), 2)


def checkout(client, teacher, headers, duration=30, start=FOUR):
    return client.post(
        "/api/v1/bookings/checkout",
        json={"teacher_id": teacher.id, "start_utc": start, "duration_minutes": duration},
        headers=headers,
    )


class TestCheckout:
    def test_checkout_consumes_blocks(
        self, client, db, teacher, bookable, auth_headers_student, fake_gateway
    ):
        r = checkout(client, teacher, auth_headers_student)

        assert r.status_code == 201
        data = r.json()
        assert data["checkout_url"] == "https://checkout.stripe.test/cs_test_1"
        booking = data["booking"]
        assert booking["status"] == "pending"
        assert booking["start_utc"] == "2026-01-07T04:00:00.000Z"
        assert booking["end_utc"] == "2026-01-07T04:30:00.000Z"
        assert booking["price_cents"] == 2500
        assert fake_gateway.checkouts[0]["success_url"].endswith(f"bookingId={booking['id']}")
        assert block_starts(db, teacher.id) == [utc(2026, 1, 7, 4, 30)]

    def test_second_checkout_for_same_slot_conflicts(
        self, client, teacher, bookable, auth_headers_student, auth_headers_other_student
    ):
        assert checkout(client, teacher, auth_headers_student).status_code == 201

        r = checkout(client, teacher, auth_headers_other_student)

        assert r.status_code == 409
        assert r.json()["code"] == "SLOT_UNAVAILABLE"
        assert r.json()["detail"] == "Slot not available"

    def test_45_minutes_is_rejected(self, client, teacher, bookable, auth_headers_student):
        r = checkout(client, teacher, auth_headers_student, duration=45)
        assert r.status_code == 400
        assert r.json()["code"] == "UNSUPPORTED_DURATION"

    def test_missing_price(self, client, db, teacher, auth_headers_student):
        add_block_run(db, teacher.id, utc(2026, 1, 7, 4), 1)
        r = checkout(client, teacher, auth_headers_student)
        assert r.status_code == 422
        assert r.json()["code"] == "NO_ACTIVE_OFFER"

    def test_naive_start(self, client, teacher, bookable, auth_headers_student):
        r = checkout(client, teacher, auth_headers_student, start="2026-01-07T04:00:00")
        assert r.status_code == 400
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_anonymous_checkout(self, client, teacher, bookable):
        assert checkout(client, teacher, {}).status_code == 401

    def test_payment_disabled_returns_success_url(
        self, client, db, teacher, bookable, auth_headers_student, payment_disabled_settings
    ):
        app.dependency_overrides[get_settings] = lambda: payment_disabled_settings

        r = checkout(client, teacher, auth_headers_student, duration=60)

        assert r.status_code == 201
        data = r.json()
        assert data["booking"]["status"] == "paid"
        assert data["checkout_url"].startswith("http://frontend.test/booking/success?bookingId=")
        assert block_starts(db, teacher.id) == []


class TestCancelAndRead:
    def test_cancel_restores_blocks(self, client, db, teacher, bookable, auth_headers_student):
        r = checkout(client, teacher, auth_headers_student, duration=60)
        booking_id = r.json()["booking"]["id"]

        r = client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers_student)
        assert r.status_code == 200
        assert r.json()["restored"] == 2
        assert r.json()["booking"]["status"] == "canceled"
        assert r.json()["booking"]["cancelled_at"] is not None

        r = client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers_student)
        assert r.json()["restored"] == 0
        assert len(block_starts(db, teacher.id)) == 2

    def test_other_student_gets_404(
        self, client, teacher, bookable, auth_headers_student, auth_headers_other_student
    ):
        booking_id = checkout(client, teacher, auth_headers_student).json()["booking"]["id"]

        r = client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers_other_student)
        assert r.status_code == 404
        r = client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers_other_student)
        assert r.status_code == 404

    def test_paid_booking_cannot_be_cancelled(
        self, client, db, teacher, bookable, auth_headers_student
    ):
        booking_id = checkout(client, teacher, auth_headers_student).json()["booking"]["id"]
        db.get(Booking, booking_id).mark_paid("pi_1")
        db.commit()

        r = client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers_student)
        assert r.status_code == 409
        assert r.json()["code"] == "BOOKING_NOT_CANCELLABLE"

    def test_malformed_booking_id(self, client, auth_headers_student):
        r = client.post("/api/v1/bookings/not-a-ulid/cancel", headers=auth_headers_student)
        assert r.status_code == 400

    def test_list_and_detail(
        self, client, teacher, bookable, auth_headers_student, auth_headers_teacher
    ):
        booking_id = checkout(client, teacher, auth_headers_student).json()["booking"]["id"]

        r = client.get("/api/v1/bookings", headers=auth_headers_student)
        assert r.status_code == 200
        assert r.json()["count"] == 1
        assert r.json()["bookings"][0]["id"] == booking_id

        r = client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers_teacher)
        assert r.status_code == 200
        assert r.json()["teacher_id"] == teacher.id
