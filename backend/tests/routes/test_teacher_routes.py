"""Public calendar routes: free slots, candidates and the weekly preview."""

from tests.utils.builders import add_block_run, add_offer, utc

PARAMS = {"from": "2026-01-07T00:00:00Z", "to": "2026-01-08T00:00:00Z"}


def test_free_slots(client, db, teacher):
    add_offer(db, teacher.id, 30)
    add_offer(db, teacher.id, 60)
    add_block_run(db, teacher.id, utc(2026, 1, 7, 9), 2)

    r = client.get(f"/api/v1/teachers/{teacher.id}/free-slots", params=PARAMS)

    assert r.status_code == 200
    data = r.json()
    assert data["teacher_id"] == teacher.id
    assert data["from_utc"] == "2026-01-07T00:00:00.000Z"
    assert data["count"] == 3
    assert data["slots"][0] == {
        "start_utc": "2026-01-07T09:00:00.000Z",
        "end_utc": "2026-01-07T09:30:00.000Z",
        "duration_minutes": 30,
    }
    assert data["slots"][1]["duration_minutes"] == 60


def test_offset_timestamps_are_accepted(client, db, teacher):
    r = client.get(
        f"/api/v1/teachers/{teacher.id}/free-slots",
        params={"from": "2026-01-07T01:00:00+01:00", "to": "2026-01-08T01:00:00+01:00"},
    )
    assert r.status_code == 200
    assert r.json()["from_utc"] == "2026-01-07T00:00:00.000Z"


def test_naive_boundary_is_rejected(client, teacher):
    r = client.get(
        f"/api/v1/teachers/{teacher.id}/free-slots",
        params={"from": "2026-01-07T00:00:00", "to": "2026-01-08T00:00:00Z"},
    )
    assert r.status_code == 400
    assert r.json()["errors"]["parameter"] == "from"


def test_range_too_large(client, teacher):
    r = client.get(
        f"/api/v1/teachers/{teacher.id}/free-slots",
        params={"from": "2026-01-01T00:00:00Z", "to": "2026-12-01T00:00:00Z"},
    )
    assert r.status_code == 400
    assert r.json()["code"] == "RANGE_TOO_LARGE"


def test_candidate_slots_without_rules(client, db, teacher):
    add_offer(db, teacher.id, 45)
    r = client.get(f"/api/v1/teachers/{teacher.id}/candidate-slots", params=PARAMS)
    assert r.status_code == 200
    assert r.json()["slots"] == []


def test_weekly_preview(client, db, teacher):
    add_block_run(db, teacher.id, utc(2026, 1, 7, 8), 1)
    r = client.get(
        f"/api/v1/teachers/{teacher.id}/availability-preview",
        params={"from": "2026-01-05T00:00:00Z"},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["timezone"] == "Europe/Berlin"
    assert data["day_numbers"] == [5, 6, 7, 8, 9, 10, 11]
    assert data["grid"]["6-12"][2] is True
