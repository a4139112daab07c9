"""HTTP tests for /cleaning-assignments."""

import asyncio
from datetime import timedelta

from facilityops.config import settings
from facilityops.main import app
from facilityops.models.models import CleaningAssignment
from facilityops.routes.files import get_storage
from facilityops.services import cleaning as cleaning_service
from facilityops.services.cleaning import local_today
from facilityops.storage.local_provider import LocalStorageProvider


def test_requires_bearer_token(client, facility):
    resp = client.get(f"/cleaning-assignments/facility/{facility.id}")
    assert resp.status_code == 401


def test_auto_assign_route_creates_window(client, facility, manager, cleaners, headers_for):
    resp = client.post(f"/cleaning-assignments/auto-assign/{facility.id}", headers=headers_for(manager))

    assert resp.status_code == 200
    body = resp.json()
    assert body["created"] == 7
    today = local_today()
    assert [a["scheduled_date"] for a in body["assignments"]] == [
        (today + timedelta(days=i)).isoformat() for i in range(7)
    ]
    assert [a["cleaner_name"] for a in body["assignments"]] == ["alice", "bob", "carol", "alice", "bob", "carol", "alice"]

    again = client.post(f"/cleaning-assignments/auto-assign/{facility.id}", headers=headers_for(manager))
    assert again.json() == {"created": 0, "assignments": []}


def test_auto_assign_requires_manager_or_admin(client, facility, cleaners, headers_for):
    resp = client.post(f"/cleaning-assignments/auto-assign/{facility.id}", headers=headers_for(cleaners[0]))
    assert resp.status_code == 403


def test_auto_assign_without_staff_is_user_facing_error(client, make_facility, admin, headers_for):
    facility = make_facility("Vacant")
    resp = client.post(f"/cleaning-assignments/auto-assign/{facility.id}", headers=headers_for(admin))
    assert resp.status_code == 400
    assert resp.json()["error"] == "no_eligible_staff"


def test_malformed_ids_are_invalid_input(client, admin, roles, headers_for):
    resp = client.post("/cleaning-assignments/auto-assign/abc", headers=headers_for(admin))
    assert resp.status_code == 400
    assert resp.json() == {"error": "invalid_input", "detail": "Invalid facility ID"}

    resp = client.get("/cleaning-assignments/facility/-3", headers=headers_for(admin))
    assert resp.status_code == 400


def test_create_then_override_assignment(client, facility, cleaners, admin, headers_for, today):
    payload = {"facilityId": facility.id, "assignedUserId": cleaners[0].id, "scheduledDate": today.isoformat()}
    created = client.post("/cleaning-assignments", json=payload, headers=headers_for(admin))

    assert created.status_code == 201
    body = created.json()
    assert body["total_items"] == 19
    assert body["completed_items"] == 0
    assert body["cleaner_name"] == "alice"
    assert body["overridden"] is False

    payload["assignedUserId"] = cleaners[2].id
    overridden = client.post("/cleaning-assignments", json=payload, headers=headers_for(admin))
    assert overridden.status_code == 200
    assert overridden.json()["id"] == body["id"]
    assert overridden.json()["cleaner_name"] == "carol"
    assert overridden.json()["overridden"] is True


def test_create_rejects_ineligible_assignee(client, db, facility, make_user, admin, headers_for, today):
    outsider = make_user("outsider")
    payload = {"facility_id": facility.id, "assigned_user_id": outsider.id, "scheduled_date": today.isoformat()}
    resp = client.post("/cleaning-assignments", json=payload, headers=headers_for(admin))

    assert resp.status_code == 400
    assert resp.json()["error"] == "ineligible_assignee"
    assert db.query(CleaningAssignment).count() == 0


def test_create_rejects_bad_date(client, facility, cleaners, admin, headers_for):
    payload = {"facility_id": facility.id, "assigned_user_id": cleaners[0].id, "scheduled_date": "31-12-2026"}
    resp = client.post("/cleaning-assignments", json=payload, headers=headers_for(admin))
    assert resp.status_code == 422


def test_list_assignments_with_counts_and_range(client, db, facility, cleaners, headers_for, today):
    cleaning_service.auto_assign(db, facility.id, today=today)
    first = db.query(CleaningAssignment).filter(CleaningAssignment.scheduled_date == today).one()
    for item in first.checklist_items[:10]:
        cleaning_service.toggle_checklist_item(db, item.id)

    resp = client.get(f"/cleaning-assignments/facility/{facility.id}", headers=headers_for(cleaners[0]))
    assert resp.status_code == 200
    rows = resp.json()
    assert len(rows) == 7
    assert rows[0]["scheduled_date"] == (today + timedelta(days=6)).isoformat()
    assert rows[-1]["completed_items"] == 10
    assert rows[-1]["total_items"] == 19
    assert rows[-1]["progress"] == 53
    assert rows[-1]["cleaner_email"] == "alice@example.com"

    ranged = client.get(
        f"/cleaning-assignments/facility/{facility.id}",
        params={"start_date": (today + timedelta(days=1)).isoformat(), "end_date": (today + timedelta(days=2)).isoformat()},
        headers=headers_for(cleaners[0]),
    )
    assert [r["scheduled_date"] for r in ranged.json()] == [
        (today + timedelta(days=2)).isoformat(),
        (today + timedelta(days=1)).isoformat(),
    ]


def test_list_rejects_inverted_range(client, facility, admin, headers_for):
    resp = client.get(
        f"/cleaning-assignments/facility/{facility.id}",
        params={"start_date": "2026-03-10", "end_date": "2026-03-01"},
        headers=headers_for(admin),
    )
    assert resp.status_code == 400


def test_assignment_detail_has_checklist_and_area_progress(client, db, facility, cleaners, headers_for, today):
    assignment, _ = cleaning_service.create_or_override_assignment(db, facility.id, cleaners[0].id, today)
    bathroom = [i for i in assignment.checklist_items if i.area == "bathroom"]
    for item in bathroom:
        cleaning_service.toggle_checklist_item(db, item.id)

    resp = client.get(f"/cleaning-assignments/{assignment.id}", headers=headers_for(cleaners[0]))

    assert resp.status_code == 200
    body = resp.json()
    assert len(body["checklist"]) == 19
    assert body["completed_items"] == 7
    assert body["progress"] == 37
    assert body["area_progress"]["bathroom"] == {"completed": 7, "total": 7, "percentage": 100}
    assert body["area_progress"]["bedroom"]["percentage"] == 0
    assert [i["area"] for i in body["checklist"]][:7] == ["bathroom"] * 7


def test_unknown_assignment_is_not_found(client, admin, headers_for):
    resp = client.get("/cleaning-assignments/9999", headers=headers_for(admin))
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


def test_status_update_by_assignee_and_forbidden_for_others(client, db, facility, cleaners, headers_for, today):
    assignment, _ = cleaning_service.create_or_override_assignment(db, facility.id, cleaners[0].id, today)
    url = f"/cleaning-assignments/{assignment.id}/status"

    started = client.patch(url, json={"status": "in_progress"}, headers=headers_for(cleaners[0]))
    assert started.status_code == 200
    assert started.json()["status"] == "in_progress"
    assert started.json()["started_at"] is not None

    denied = client.patch(url, json={"status": "completed"}, headers=headers_for(cleaners[1]))
    assert denied.status_code == 403
    assert denied.json()["error"] == "forbidden"

    bad = client.patch(url, json={"status": "archived"}, headers=headers_for(cleaners[0]))
    assert bad.status_code == 400
    assert bad.json()["error"] == "invalid_input"

    done = client.patch(url, json={"status": "completed"}, headers=headers_for(cleaners[0]))
    assert done.json()["completed_at"] is not None


def test_toggle_item_route(client, db, facility, cleaners, admin, headers_for, today):
    assignment, _ = cleaning_service.create_or_override_assignment(db, facility.id, cleaners[0].id, today)
    item_id = assignment.checklist_items[0].id
    url = f"/cleaning-assignments/checklist/{item_id}/toggle"

    on = client.patch(url, headers=headers_for(cleaners[0]))
    assert on.status_code == 200
    assert on.json()["is_completed"] is True
    assert on.json()["completed_at"] is not None

    off = client.patch(url, headers=headers_for(admin))
    assert off.json()["is_completed"] is False
    assert off.json()["completed_at"] is None

    assert client.patch(url, headers=headers_for(cleaners[1])).status_code == 403


def test_photo_upload_marks_item_complete(client, db, facility, cleaners, headers_for, today):
    assignment, _ = cleaning_service.create_or_override_assignment(db, facility.id, cleaners[0].id, today)
    item_id = assignment.checklist_items[3].id
    content = b"\xff\xd8\xff\xe0fake-jpeg-bytes"

    resp = client.post(
        f"/cleaning-assignments/checklist/{item_id}/photo",
        files={"photo": ("Bin Empty.JPG", content, "image/jpeg")},
        headers=headers_for(cleaners[0]),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["is_completed"] is True
    assert body["completed_at"] is not None
    assert body["photo_url"].startswith(f"{settings.public_base_url}/files/local/cleaning/")
    assert body["photo_url"].endswith(".jpg")

    served = client.get(body["photo_url"][len(settings.public_base_url):])
    assert served.status_code == 200
    assert served.content == content


def test_photo_upload_validation(client, db, facility, cleaners, headers_for, today, monkeypatch):
    assignment, _ = cleaning_service.create_or_override_assignment(db, facility.id, cleaners[0].id, today)
    url = f"/cleaning-assignments/checklist/{assignment.checklist_items[0].id}/photo"

    not_image = client.post(url, files={"photo": ("notes.txt", b"hello", "text/plain")}, headers=headers_for(cleaners[0]))
    assert not_image.status_code == 400
    assert not_image.json()["detail"] == "Only image files are allowed"

    missing = client.post(url, headers=headers_for(cleaners[0]))
    assert missing.status_code == 400

    monkeypatch.setattr(settings, "max_photo_bytes", 8)
    too_big = client.post(url, files={"photo": ("a.png", b"0123456789", "image/png")}, headers=headers_for(cleaners[0]))
    assert too_big.status_code == 400

    other = client.post(url, files={"photo": ("a.png", b"0123", "image/png")}, headers=headers_for(cleaners[1]))
    assert other.status_code == 403


def test_photo_extension_follows_content_type_not_filename(client, db, facility, cleaners, headers_for, today):
    assignment, _ = cleaning_service.create_or_override_assignment(db, facility.id, cleaners[0].id, today)
    url = f"/cleaning-assignments/checklist/{assignment.checklist_items[0].id}/photo"

    resp = client.post(
        url,
        files={"photo": ("evil.html", b"<script>alert(1)</script>", "image/png")},
        headers=headers_for(cleaners[0]),
    )

    assert resp.status_code == 200
    photo_url = resp.json()["photo_url"]
    assert photo_url.endswith(".png")
    assert ".html" not in photo_url
    served = client.get(photo_url[len(settings.public_base_url):])
    assert served.headers["content-type"].startswith("image/png")


def test_photo_at_exact_size_limit_is_accepted(client, db, facility, cleaners, headers_for, today, monkeypatch):
    assignment, _ = cleaning_service.create_or_override_assignment(db, facility.id, cleaners[0].id, today)
    url = f"/cleaning-assignments/checklist/{assignment.checklist_items[0].id}/photo"
    monkeypatch.setattr(settings, "max_photo_bytes", 8)

    ok = client.post(url, files={"photo": ("a.webp", b"01234567", "image/webp")}, headers=headers_for(cleaners[0]))
    assert ok.status_code == 200
    assert ok.json()["photo_url"].endswith(".webp")

    over = client.post(url, files={"photo": ("a.webp", b"012345678", "image/webp")}, headers=headers_for(cleaners[0]))
    assert over.status_code == 400


class _RecordingStorage(LocalStorageProvider):
    def __init__(self):
        super().__init__()
        self.on_event_loop = None

    def upload(self, key, data, content_type):
        try:
            asyncio.get_running_loop()
            self.on_event_loop = True
        except RuntimeError:
            self.on_event_loop = False
        super().upload(key, data, content_type)


def test_photo_upload_runs_storage_off_the_event_loop(client, db, facility, cleaners, headers_for, today):
    assignment, _ = cleaning_service.create_or_override_assignment(db, facility.id, cleaners[0].id, today)
    storage = _RecordingStorage()
    app.dependency_overrides[get_storage] = lambda: storage

    resp = client.post(
        f"/cleaning-assignments/checklist/{assignment.checklist_items[0].id}/photo",
        files={"photo": ("sink.jpg", b"\xff\xd8\xff", "image/jpeg")},
        headers=headers_for(cleaners[0]),
    )

    assert resp.status_code == 200
    assert storage.on_event_loop is False
