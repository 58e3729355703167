"""Teacher-only availability routes."""

from lessonbook.domain.grid import MergedEventId
from tests.utils.builders import add_block_run, add_blocks, auth_headers_for, block_starts, utc

WEDNESDAY = "2026-01-07T00:00:00Z"
THURSDAY = "2026-01-08T00:00:00Z"


def base(teacher):
    return f"/api/v1/teachers/{teacher.id}"


class TestAccess:
    def test_requires_identity(self, client, teacher):
        r = client.get(f"{base(teacher)}/availability", params={"from": WEDNESDAY, "to": THURSDAY})
        assert r.status_code == 401
        body = r.json()
        assert body["code"] == "NOT_AUTHENTICATED"
        assert body["status"] == 401

    def test_other_users_calendar_is_forbidden(self, client, teacher, auth_headers_student):
        r = client.post(
            f"{base(teacher)}/availability",
            json={"start_utc": "2026-01-07T10:00:00Z", "end_utc": "2026-01-07T11:00:00Z"},
            headers=auth_headers_student,
        )
        assert r.status_code == 403
        assert r.json()["code"] == "TEACHER_OWNERSHIP_REQUIRED"


class TestRules:
    def test_create_and_list(self, client, db, teacher, auth_headers_teacher):
        r = client.post(
            f"{base(teacher)}/availability-rules",
            json={"weekday": 3, "start_min": 540, "end_min": 600, "timezone": "UTC"},
            headers=auth_headers_teacher,
        )
        assert r.status_code == 201
        data = r.json()
        assert data["expanded"] is True
        assert data["rule"]["weekday"] == 3
        assert data["rule"]["valid_from"].endswith("Z")
        assert data["ranges_written"] >= 13
        assert data["blocks_inserted"] >= 24
        assert len(block_starts(db, teacher.id)) == data["blocks_inserted"]

        r = client.get(f"{base(teacher)}/availability-rules", headers=auth_headers_teacher)
        assert r.status_code == 200
        assert [rule["id"] for rule in r.json()] == [data["rule"]["id"]]

    def test_inverted_window_is_a_400(self, client, teacher, auth_headers_teacher):
        r = client.post(
            f"{base(teacher)}/availability-rules",
            json={"weekday": 3, "start_min": 600, "end_min": 540},
            headers=auth_headers_teacher,
        )
        assert r.status_code == 400
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_unknown_timezone(self, client, teacher, auth_headers_teacher):
        r = client.post(
            f"{base(teacher)}/availability-rules",
            json={"weekday": 3, "start_min": 540, "end_min": 600, "timezone": "Nowhere/Land"},
            headers=auth_headers_teacher,
        )
        assert r.status_code == 400
        assert r.json()["code"] == "INVALID_TIMEZONE"


class TestManualAndReads:
    def test_manual_range_then_merged_read(self, client, db, teacher, auth_headers_teacher):
        r = client.post(
            f"{base(teacher)}/availability",
            json={"start_utc": "2026-01-07T10:10:00Z", "end_utc": "2026-01-07T11:50:00Z"},
            headers=auth_headers_teacher,
        )
        assert r.status_code == 200
        data = r.json()
        assert (data["requested"], data["inserted"]) == (3, 3)
        assert data["range"]["start_utc"] == "2026-01-07T10:00:00.000Z"
        assert data["range"]["end_utc"] == "2026-01-07T11:30:00.000Z"

        r = client.get(
            f"{base(teacher)}/availability",
            params={"from": WEDNESDAY, "to": THURSDAY},
            headers=auth_headers_teacher,
        )
        assert r.status_code == 200
        merged = r.json()
        assert merged["mode"] == "merged"
        assert "blocks" not in merged
        assert merged["count"] == 1
        event = merged["events"][0]
        assert (event["start"], event["end"]) == (
            "2026-01-07T10:00:00.000Z",
            "2026-01-07T11:30:00.000Z",
        )

    def test_atomic_read(self, client, db, teacher, auth_headers_teacher):
        add_block_run(db, teacher.id, utc(2026, 1, 7, 10), 2)
        r = client.get(
            f"{base(teacher)}/availability",
            params={"from": WEDNESDAY, "to": THURSDAY, "mode": "atomic"},
            headers=auth_headers_teacher,
        )
        assert r.status_code == 200
        data = r.json()
        assert data["count"] == 2
        assert [b["start_utc"] for b in data["blocks"]] == [
            "2026-01-07T10:00:00.000Z",
            "2026-01-07T10:30:00.000Z",
        ]

    def test_empty_selection(self, client, teacher, auth_headers_teacher):
        r = client.post(
            f"{base(teacher)}/availability",
            json={"start_utc": "2026-01-07T10:10:00Z", "end_utc": "2026-01-07T10:20:00Z"},
            headers=auth_headers_teacher,
        )
        assert r.status_code == 400
        assert r.json()["detail"] == "Empty selection"

    def test_naive_body_timestamp_is_rejected(self, client, teacher, auth_headers_teacher):
        r = client.post(
            f"{base(teacher)}/availability",
            json={"start_utc": "2026-01-07T10:00:00", "end_utc": "2026-01-07T11:00:00Z"},
            headers=auth_headers_teacher,
        )
        assert r.status_code == 400

    def test_missing_boundary(self, client, teacher, auth_headers_teacher):
        r = client.get(
            f"{base(teacher)}/availability",
            params={"from": WEDNESDAY},
            headers=auth_headers_teacher,
        )
        assert r.status_code == 400
        assert r.json()["code"] == "MISSING_PARAMETER"


class TestDelete:
    def test_delete_by_id(self, client, db, teacher, auth_headers_teacher):
        rows = add_block_run(db, teacher.id, utc(2026, 1, 7, 10), 2)
        r = client.delete(
            f"{base(teacher)}/availability",
            params={"id": rows[1].id},
            headers=auth_headers_teacher,
        )
        assert r.status_code == 200
        assert r.json() == {"ok": True, "deleted": 1, "mode": "atomic"}

    def test_delete_by_event_id_alias(self, client, db, teacher, auth_headers_teacher):
        add_block_run(db, teacher.id, utc(2026, 1, 7, 10), 2)
        event_id = MergedEventId(teacher.id, utc(2026, 1, 7, 10), utc(2026, 1, 7, 11)).encode()
        r = client.delete(
            f"{base(teacher)}/availability",
            params={"eventId": event_id},
            headers=auth_headers_teacher,
        )
        assert r.status_code == 200
        assert r.json()["deleted"] == 2
        assert r.json()["mode"] == "eventId"
        assert block_starts(db, teacher.id) == []

    def test_delete_by_range(self, client, db, teacher, auth_headers_teacher):
        add_blocks(db, teacher.id, utc(2026, 1, 7, 10), utc(2026, 1, 8, 10))
        r = client.delete(
            f"{base(teacher)}/availability",
            params={"from": WEDNESDAY, "to": THURSDAY},
            headers=auth_headers_teacher,
        )
        assert r.json() == {"ok": True, "deleted": 1, "mode": "range"}
        assert block_starts(db, teacher.id) == [utc(2026, 1, 8, 10)]

    def test_delete_without_target(self, client, teacher, auth_headers_teacher):
        r = client.delete(f"{base(teacher)}/availability", headers=auth_headers_teacher)
        assert r.status_code == 400
        assert r.json()["code"] == "MISSING_DELETE_TARGET"

    def test_teacher_cannot_delete_someone_elses_blocks(self, client, db, teacher, other_teacher):
        rows = add_blocks(db, teacher.id, utc(2026, 1, 7, 10))
        r = client.delete(
            f"{base(teacher)}/availability",
            params={"id": rows[0].id},
            headers=auth_headers_for(other_teacher),
        )
        assert r.status_code == 403
        assert len(block_starts(db, teacher.id)) == 1
