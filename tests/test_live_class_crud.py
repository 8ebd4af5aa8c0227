"""Admin management of live classes and their modules."""

from datetime import timedelta

from conftest import admin_headers, user_headers

from app.models import LiveClass, LiveClassModule, Payment, PaymentOrder, Registration
from app.utils.time import utcnow


def _payload(**overrides):
    start = (utcnow() + timedelta(days=3)).replace(microsecond=0)
    data = {
        "title": "Calculus Live",
        "description": "Limits and derivatives",
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(minutes=60)).isoformat(),
        "price": "299.00",
        "capacity": 30,
    }
    data.update(overrides)
    return data


def test_create_provisions_a_meeting_room(client, db, meetings, admin):
    resp = client.post("/live-classes/", json=_payload(), headers=admin_headers(admin))

    assert resp.status_code == 201
    body = resp.json()
    assert body["title"] == "Calculus Live"
    assert body["created_by"] == admin.id
    assert body["pricing_model"] == "FLAT"
    assert "zoom_link" not in body
    assert meetings.created[0][0] == "Calculus Live"

    db.expire_all()
    live_class = db.get(LiveClass, body["id"])
    assert live_class.zoom_link == "https://zoom.test/j/90001"
    assert live_class.zoom_meeting_id == "90001"
    assert live_class.zoom_password == "pw1"


def test_create_rejects_an_empty_time_window(client, db, meetings, admin):
    start = utcnow() + timedelta(days=1)
    payload = _payload(start_time=start.isoformat(), end_time=start.isoformat())

    resp = client.post("/live-classes/", json=payload, headers=admin_headers(admin))

    assert resp.status_code == 400
    assert resp.json()["type"] == "invalid_state"
    assert meetings.created == []
    assert db.query(LiveClass).count() == 0


def test_meeting_failure_creates_nothing(client, db, meetings, admin):
    meetings.fail = True

    resp = client.post("/live-classes/", json=_payload(), headers=admin_headers(admin))

    assert resp.status_code == 502
    assert resp.json()["type"] == "upstream_failure"
    assert db.query(LiveClass).count() == 0


def test_only_admins_manage_classes(client, make_user, make_live_class):
    user = make_user()
    live_class = make_live_class()

    assert client.post("/live-classes/", json=_payload()).status_code == 401
    resp = client.post("/live-classes/", json=_payload(), headers=user_headers(user))
    assert resp.status_code == 403
    resp = client.delete(f"/live-classes/{live_class.id}", headers=user_headers(user))
    assert resp.status_code == 403


def test_list_filters_and_paginates(client, make_live_class):
    make_live_class(title="Algebra Live")
    make_live_class(title="Biology Live")
    make_live_class(title="Hidden", is_active=False)

    body = client.get("/live-classes/", params={"size": 1}).json()
    assert body["total"] == 2
    assert body["total_pages"] == 2
    assert len(body["live_classes"]) == 1
    assert "zoom_password" not in body["live_classes"][0]

    found = client.get("/live-classes/", params={"search": "bio"}).json()
    assert [c["title"] for c in found["live_classes"]] == ["Biology Live"]

    everything = client.get("/live-classes/", params={"active_only": False}).json()
    assert everything["total"] == 3


def test_update_keeps_meeting_credentials(client, db, meetings, admin, make_live_class):
    live_class = make_live_class()

    resp = client.patch(
        f"/live-classes/{live_class.id}",
        json={"title": "Algebra II", "capacity": 10},
        headers=admin_headers(admin),
    )

    assert resp.status_code == 200
    assert resp.json()["title"] == "Algebra II"
    assert resp.json()["capacity"] == 10
    assert meetings.created == []
    db.expire_all()
    assert db.get(LiveClass, live_class.id).zoom_link == "https://zoom.test/j/1111"

    resp = client.patch(
        f"/live-classes/{live_class.id}",
        json={"end_time": (live_class.start_time - timedelta(minutes=5)).isoformat()},
        headers=admin_headers(admin),
    )
    assert resp.status_code == 400


def test_add_module_appends_with_its_own_meeting(client, meetings, admin, make_live_class):
    live_class = make_live_class()
    module_payload = {
        "title": "Week 1",
        "start_time": live_class.start_time.isoformat(),
        "end_time": (live_class.start_time + timedelta(minutes=45)).isoformat(),
    }

    first = client.post(
        f"/live-classes/{live_class.id}/modules",
        json=module_payload,
        headers=admin_headers(admin),
    )
    second = client.post(
        f"/live-classes/{live_class.id}/modules",
        json={**module_payload, "title": "Week 2", "is_free": True},
        headers=admin_headers(admin),
    )

    assert first.status_code == 201
    assert first.json()["position"] == 0
    assert second.json()["position"] == 1
    assert second.json()["is_free"] is True
    assert meetings.created[0][0] == "Algebra Live - Week 1"

    detail = client.get(f"/live-classes/{live_class.id}").json()
    assert detail["has_modules"] is True
    assert [m["title"] for m in detail["modules"]] == ["Week 1", "Week 2"]


def test_thumbnail_upload_replaces_the_previous_file(
    client, storage, admin, make_live_class
):
    live_class = make_live_class()
    url = f"/live-classes/{live_class.id}/upload-thumbnail"

    first = client.post(
        url,
        files={"image": ("cover.png", b"first-image", "image/png")},
        headers=admin_headers(admin),
    ).json()["thumbnail_url"]
    assert (storage.base_storage_path / first).read_bytes() == b"first-image"

    second = client.post(
        url,
        files={"image": ("cover.jpg", b"second-image", "image/jpeg")},
        headers=admin_headers(admin),
    ).json()["thumbnail_url"]

    assert second != first
    assert second.startswith("live_classes/")
    assert not (storage.base_storage_path / first).exists()
    assert (storage.base_storage_path / second).exists()

    resp = client.post(
        url,
        files={"image": ("notes.txt", b"text", "text/plain")},
        headers=admin_headers(admin),
    )
    assert resp.status_code == 400


def test_delete_removes_class_data_and_thumbnail(
    client, db, gateway, storage, admin, make_user, make_live_class, make_module
):
    user = make_user()
    live_class = make_live_class()
    make_module(live_class, position=0)
    order = client.post(
        f"/live-classes/{live_class.id}/register", headers=user_headers(user)
    ).json()["order"]
    client.post(
        f"/live-classes/{live_class.id}/verify-payment",
        json=gateway.proof(order["order_id"], "pay_1"),
        headers=user_headers(user),
    )
    thumbnail = client.post(
        f"/live-classes/{live_class.id}/upload-thumbnail",
        files={"image": ("cover.png", b"image", "image/png")},
        headers=admin_headers(admin),
    ).json()["thumbnail_url"]

    resp = client.delete(f"/live-classes/{live_class.id}", headers=admin_headers(admin))

    assert resp.status_code == 204
    db.expire_all()
    assert db.query(LiveClass).count() == 0
    assert db.query(LiveClassModule).count() == 0
    assert db.query(Registration).count() == 0
    assert db.query(Payment).count() == 0
    assert db.query(PaymentOrder).count() == 0
    assert not (storage.base_storage_path / thumbnail).exists()

    assert client.get(f"/live-classes/{live_class.id}").status_code == 404
