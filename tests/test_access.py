"""Access derivation and the read surfaces built on it."""

from datetime import timedelta
from decimal import Decimal

from conftest import admin_headers, user_headers

from app.models import Payment, Registration
from app.services.access import compute_access
from app.utils.time import utcnow


def _registration(db, user, live_class, **overrides):
    now = utcnow()
    data = {
        "user_id": user.id,
        "live_class_id": live_class.id,
        "status": "ACTIVE",
        "is_registered": True,
        "is_approved": True,
        "has_access_to_links": True,
        "start_date": now,
        "end_date": now + timedelta(days=30),
        "next_payment_date": now + timedelta(days=30),
    }
    data.update(overrides)
    registration = Registration(**data)
    db.add(registration)
    db.commit()
    db.refresh(registration)
    return registration


def test_no_registration_means_not_registered(make_live_class):
    live_class = make_live_class()

    result = compute_access(live_class, None)

    assert result.state == "NOT_REGISTERED"
    assert result.is_subscribed is False
    assert result.meeting_details is None


def test_provisional_and_closed_rows_are_not_registered(db, make_user, make_live_class):
    live_class = make_live_class()
    for status, registered in [
        ("REGISTERED", False),
        ("CANCELLED", True),
        ("EXPIRED", True),
        ("REJECTED", True),
    ]:
        user = make_user()
        registration = _registration(
            db, user, live_class, status=status, is_registered=registered,
            has_access_to_links=False,
        )
        result = compute_access(live_class, registration)
        assert result.state == "NOT_REGISTERED", status
        assert result.status == status
        assert result.meeting_details is None


def test_full_access_carries_meeting_details(db, make_user, make_live_class):
    user = make_user()
    live_class = make_live_class()
    registration = _registration(db, user, live_class)

    result = compute_access(live_class, registration)

    assert result.state == "FULL_ACCESS"
    assert result.is_subscribed is True
    assert result.meeting_details.join_link == "https://zoom.test/j/1111"
    assert result.meeting_details.meeting_id == "1111"
    assert result.meeting_details.password == "secret"


def test_pending_and_awaiting_fee_states(db, make_user, make_live_class):
    live_class = make_live_class(
        pricing_model="TWO_STAGE",
        registration_fee=Decimal("100"),
        course_fee=Decimal("500"),
        course_fee_enabled=True,
    )
    pending = _registration(
        db, make_user(), live_class, status="PENDING_APPROVAL",
        is_approved=False, has_access_to_links=False,
    )
    unapproved = _registration(
        db, make_user(), live_class, is_approved=False, has_access_to_links=False
    )
    awaiting_fee = _registration(db, make_user(), live_class, has_access_to_links=False)

    assert compute_access(live_class, pending).state == "PENDING_APPROVAL"
    assert compute_access(live_class, pending).is_pending is True
    assert compute_access(live_class, unapproved).state == "PENDING_APPROVAL"
    result = compute_access(live_class, awaiting_fee)
    assert result.state == "AWAITING_COURSE_FEE"
    assert result.meeting_details is None


def test_lapsed_flat_subscription_reads_as_not_registered(db, make_user, make_live_class):
    user = make_user()
    live_class = make_live_class()
    registration = _registration(
        db, user, live_class, end_date=utcnow() - timedelta(minutes=1)
    )

    result = compute_access(live_class, registration)

    assert result.state == "NOT_REGISTERED"
    assert result.meeting_details is None


def test_free_module_is_open_to_any_signed_in_user(
    client, db, make_user, make_live_class, make_module
):
    user = make_user()
    live_class = make_live_class(is_first_module_free=True)
    first = make_module(live_class, position=0)
    second = make_module(live_class, position=1)
    flagged = make_module(live_class, position=2, is_free=True)

    def access(module_id):
        return client.get(
            f"/live-classes/{live_class.id}/access",
            params={"module_id": module_id},
            headers=user_headers(user),
        ).json()

    result = access(first.id)
    assert result["state"] == "FULL_ACCESS"
    assert result["is_free_module"] is True
    assert result["meeting_details"]["join_link"] == "https://zoom.test/j/mod0"

    assert access(second.id)["state"] == "NOT_REGISTERED"
    assert access(second.id)["meeting_details"] is None
    assert access(flagged.id)["state"] == "FULL_ACCESS"


def test_module_scoped_registration_covers_only_its_module(
    client, db, make_user, make_live_class, make_module
):
    user = make_user()
    live_class = make_live_class()
    booked = make_module(live_class, position=0)
    other = make_module(live_class, position=1)
    _registration(db, user, live_class, module_id=booked.id)

    def access(module_id=None):
        params = {"module_id": module_id} if module_id else {}
        return client.get(
            f"/live-classes/{live_class.id}/access",
            params=params,
            headers=user_headers(user),
        ).json()

    booked_access = access(booked.id)
    assert booked_access["state"] == "FULL_ACCESS"
    assert booked_access["meeting_details"]["join_link"] == "https://zoom.test/j/mod0"

    assert access(other.id)["state"] == "NOT_REGISTERED"

    # class level answers with the booked module's room, never the class room
    class_access = access()
    assert class_access["meeting_details"]["join_link"] == "https://zoom.test/j/mod0"


def test_class_detail_never_leaks_credentials(
    client, db, make_user, make_live_class
):
    member, stranger = make_user(), make_user()
    live_class = make_live_class()
    _registration(db, member, live_class)

    anonymous = client.get(f"/live-classes/{live_class.id}").json()
    assert anonymous["access"] is None
    assert "zoom_link" not in anonymous
    assert "zoom_password" not in anonymous

    stranger_view = client.get(
        f"/live-classes/{live_class.id}", headers=user_headers(stranger)
    ).json()
    assert stranger_view["access"]["state"] == "NOT_REGISTERED"
    assert stranger_view["access"]["meeting_details"] is None
    assert "secret" not in str(stranger_view)

    member_view = client.get(
        f"/live-classes/{live_class.id}", headers=user_headers(member)
    ).json()
    assert member_view["access"]["state"] == "FULL_ACCESS"
    assert member_view["access"]["meeting_details"]["password"] == "secret"


def test_my_subscriptions_lists_display_fields_and_access(
    client, db, admin, make_user, make_live_class
):
    user = make_user()
    start = (utcnow() + timedelta(days=1)).replace(hour=10, minute=0, second=0, microsecond=0)
    paid = make_live_class(
        title="Physics Live",
        start_time=start,
        end_time=start + timedelta(minutes=75),
        created_by=admin.id,
    )
    pending = make_live_class(title="Chemistry Live", requires_approval=True)
    past_start = utcnow() - timedelta(days=5)
    finished = make_live_class(
        title="Old Class", start_time=past_start, end_time=past_start + timedelta(hours=1)
    )
    _registration(db, user, paid)
    _registration(
        db, user, pending, status="PENDING_APPROVAL", is_approved=False,
        has_access_to_links=False,
    )
    _registration(db, user, finished)

    items = client.get("/live-classes/subscriptions/me", headers=user_headers(user)).json()
    by_title = {item["title"]: item for item in items}

    assert set(by_title) == {"Physics Live", "Chemistry Live"}
    physics = by_title["Physics Live"]
    assert physics["teacher_name"] == "Asha Teacher"
    assert physics["duration_minutes"] == 75
    assert physics["time"] == "10:00 AM - 11:15 AM"
    assert physics["date"] == start.strftime("%d %b %Y")
    assert physics["access"]["state"] == "FULL_ACCESS"
    assert physics["access"]["meeting_details"]["join_link"] == "https://zoom.test/j/1111"

    chemistry = by_title["Chemistry Live"]
    assert chemistry["access"]["state"] == "PENDING_APPROVAL"
    assert chemistry["access"]["meeting_details"] is None

    everything = client.get(
        "/live-classes/subscriptions/me",
        params={"include_all": True},
        headers=user_headers(user),
    ).json()
    assert len(everything) == 3


def test_access_flag_matches_course_fee_payments(
    client, db, gateway, admin, make_user, make_live_class
):
    """Link access is only ever granted alongside the fee it depends on."""
    live_class = make_live_class(
        pricing_model="TWO_STAGE",
        registration_fee=Decimal("100"),
        course_fee=Decimal("500"),
        course_fee_enabled=True,
    )
    users = [make_user() for _ in range(3)]
    for i, user in enumerate(users):
        order = client.post(
            f"/live-classes/{live_class.id}/register", headers=user_headers(user)
        ).json()["order"]
        client.post(
            f"/live-classes/{live_class.id}/verify-payment",
            json=gateway.proof(order["order_id"], f"pay_reg_{i}"),
            headers=user_headers(user),
        )
    client.post(
        f"/admin/live-classes/{live_class.id}/approve-registrations",
        json={"user_ids": [u.id for u in users[:2]]},
        headers=admin_headers(admin),
    )
    order = client.post(
        f"/live-classes/{live_class.id}/course-access", headers=user_headers(users[0])
    ).json()["order"]
    client.post(
        f"/live-classes/{live_class.id}/verify-course-payment",
        json=gateway.proof(order["order_id"], "pay_course_0"),
        headers=user_headers(users[0]),
    )

    db.expire_all()
    for registration in db.query(Registration).all():
        paid_course_fee = (
            db.query(Payment)
            .filter_by(registration_id=registration.id, purpose="COURSE_FEE", status="COMPLETED")
            .count()
            > 0
        )
        assert registration.has_access_to_links == (paid_course_fee and registration.is_approved)
    assert db.query(Registration).filter_by(has_access_to_links=True).count() == 1
