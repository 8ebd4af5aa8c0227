"""Payment proof verification: signatures, replays and the insert race."""

import asyncio
from decimal import Decimal

import pytest
from conftest import user_headers
from sqlalchemy.exc import OperationalError

from app.core.exceptions import (
    InvalidSignatureError,
    InvalidStateError,
    PaymentProcessingError,
)
from app.models import Payment, PaymentOrder, Registration
from app.schemas.registration import PaymentProof
from app.services.entitlement import EntitlementService


def _start_registration(service, user, live_class):
    return asyncio.run(service.register(user, live_class.id))


def test_forged_signature_is_rejected_without_any_writes(
    client, db, gateway, make_user, make_live_class
):
    user = make_user()
    live_class = make_live_class()
    order = client.post(
        f"/live-classes/{live_class.id}/register", headers=user_headers(user)
    ).json()["order"]

    proof = gateway.proof(order["order_id"], "pay_1")
    forgeries = [
        {**proof, "signature": "0" * 64},
        {**proof, "payment_id": "pay_2"},
        {**proof, "order_id": "order_other"},
    ]
    for forged in forgeries:
        resp = client.post(
            f"/live-classes/{live_class.id}/verify-payment",
            json=forged,
            headers=user_headers(user),
        )
        assert resp.status_code == 400
        assert resp.json()["type"] == "invalid_signature"

    db.expire_all()
    assert db.query(Payment).count() == 0
    registration = db.query(Registration).one()
    assert registration.status == "REGISTERED"
    assert registration.is_registered is False
    assert db.query(PaymentOrder).one().status == "CREATED"


def test_replayed_proof_returns_the_recorded_payment(
    db, gateway, mailer, make_user, make_live_class
):
    user = make_user()
    live_class = make_live_class()
    service = EntitlementService(db, gateway=gateway, mailer=mailer)
    order = _start_registration(service, user, live_class)["order"]
    proof = PaymentProof(**gateway.proof(order["order_id"], "pay_1"))

    first_registration, first_payment = asyncio.run(
        service.verify_registration_payment(user, live_class.id, proof)
    )
    second_registration, second_payment = asyncio.run(
        service.verify_registration_payment(user, live_class.id, proof)
    )

    assert first_payment.id == second_payment.id
    assert first_registration.id == second_registration.id
    assert db.query(Payment).count() == 1
    assert mailer.kinds() == ["subscription_confirmed"]


def test_replayed_proof_from_another_user_is_refused(
    db, gateway, mailer, make_user, make_live_class
):
    owner, intruder = make_user(), make_user()
    live_class = make_live_class()
    service = EntitlementService(db, gateway=gateway, mailer=mailer)
    order = _start_registration(service, owner, live_class)["order"]
    proof = PaymentProof(**gateway.proof(order["order_id"], "pay_1"))
    asyncio.run(service.verify_registration_payment(owner, live_class.id, proof))

    with pytest.raises(InvalidStateError):
        asyncio.run(service.verify_registration_payment(intruder, live_class.id, proof))


def test_recorded_proof_is_not_replayed_under_another_purpose(
    db, gateway, mailer, make_user, make_live_class
):
    user = make_user()
    live_class = make_live_class(
        pricing_model="TWO_STAGE",
        registration_fee=Decimal("100"),
        course_fee=Decimal("500"),
        course_fee_enabled=True,
    )
    service = EntitlementService(db, gateway=gateway, mailer=mailer)
    order = _start_registration(service, user, live_class)["order"]
    registration_proof = PaymentProof(**gateway.proof(order["order_id"], "pay_reg"))
    asyncio.run(service.verify_registration_payment(user, live_class.id, registration_proof))
    service.approve_registrations(live_class.id, [user.id])

    with pytest.raises(InvalidStateError):
        asyncio.run(service.verify_course_payment(user, live_class.id, registration_proof))

    course_order = asyncio.run(service.pay_course_access(user, live_class.id))["order"]
    course_proof = PaymentProof(**gateway.proof(course_order["order_id"], "pay_course"))
    asyncio.run(service.verify_course_payment(user, live_class.id, course_proof))

    with pytest.raises(InvalidStateError):
        asyncio.run(service.verify_registration_payment(user, live_class.id, course_proof))

    db.expire_all()
    assert db.query(Payment).filter_by(purpose="COURSE_FEE").count() == 1
    assert db.query(Registration).one().has_access_to_links is True


def test_open_course_fee_order_is_handed_back_on_retry(
    db, gateway, mailer, make_user, make_live_class
):
    user = make_user()
    live_class = make_live_class(
        pricing_model="TWO_STAGE",
        registration_fee=Decimal("100"),
        course_fee=Decimal("500"),
        course_fee_enabled=True,
    )
    service = EntitlementService(db, gateway=gateway, mailer=mailer)
    order = _start_registration(service, user, live_class)["order"]
    asyncio.run(
        service.verify_registration_payment(
            user, live_class.id, PaymentProof(**gateway.proof(order["order_id"], "pay_reg"))
        )
    )
    service.approve_registrations(live_class.id, [user.id])

    first = asyncio.run(service.pay_course_access(user, live_class.id))["order"]
    second = asyncio.run(service.pay_course_access(user, live_class.id))["order"]

    assert first["order_id"] == second["order_id"]
    assert second["amount"] == 50000
    assert len(gateway.orders) == 2
    assert db.query(PaymentOrder).filter_by(purpose="COURSE_FEE").count() == 1


def test_proof_must_match_an_order_issued_to_the_caller(
    db, gateway, mailer, make_user, make_live_class
):
    owner, other = make_user(), make_user()
    live_class = make_live_class()
    service = EntitlementService(db, gateway=gateway, mailer=mailer)
    order = _start_registration(service, owner, live_class)["order"]

    proof = PaymentProof(**gateway.proof(order["order_id"], "pay_1"))
    with pytest.raises(InvalidStateError):
        asyncio.run(service.verify_registration_payment(other, live_class.id, proof))

    unknown = PaymentProof(**gateway.proof("order_unknown", "pay_2"))
    with pytest.raises(InvalidStateError):
        asyncio.run(service.verify_registration_payment(owner, live_class.id, unknown))

    assert db.query(Payment).count() == 0


def test_registration_proof_cannot_unlock_course_access(
    db, gateway, mailer, make_user, make_live_class
):
    user = make_user()
    live_class = make_live_class(
        pricing_model="TWO_STAGE",
        registration_fee=Decimal("100"),
        course_fee=Decimal("500"),
        course_fee_enabled=True,
    )
    service = EntitlementService(db, gateway=gateway, mailer=mailer)
    order = _start_registration(service, user, live_class)["order"]
    proof = PaymentProof(**gateway.proof(order["order_id"], "pay_1"))

    with pytest.raises(InvalidStateError):
        asyncio.run(service.verify_course_payment(user, live_class.id, proof))

    with pytest.raises(InvalidSignatureError):
        asyncio.run(
            service.verify_course_payment(
                user,
                live_class.id,
                PaymentProof(order_id=order["order_id"], payment_id="pay_1", signature="bad"),
            )
        )


def test_concurrent_insert_is_recovered_as_an_update(
    db, gateway, mailer, make_user, make_live_class, monkeypatch
):
    user = make_user()
    live_class = make_live_class()
    service = EntitlementService(db, gateway=gateway, mailer=mailer)
    started = _start_registration(service, user, live_class)

    # The first lookup misses the row another request has just inserted,
    # so the insert hits the unique constraint.
    real_lookup = EntitlementService._get_registration
    calls = {"n": 0}

    def racing_lookup(self, user_id, live_class_id):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_lookup(self, user_id, live_class_id)

    monkeypatch.setattr(EntitlementService, "_get_registration", racing_lookup)

    proof = PaymentProof(**gateway.proof(started["order"]["order_id"], "pay_race"))
    registration, payment = asyncio.run(
        service.verify_registration_payment(user, live_class.id, proof)
    )

    assert calls["n"] == 2
    assert registration.id == started["registration_id"]
    assert registration.status == "ACTIVE"
    assert registration.has_access_to_links is True
    assert payment.registration_id == registration.id
    assert db.query(Registration).count() == 1
    assert db.query(Payment).count() == 1
    assert db.query(PaymentOrder).one().status == "PAID"


def test_failed_fallback_surfaces_payment_processing_error(
    db, gateway, mailer, make_user, make_live_class, monkeypatch
):
    user = make_user()
    live_class = make_live_class()
    service = EntitlementService(db, gateway=gateway, mailer=mailer)
    started = _start_registration(service, user, live_class)

    real_lookup = EntitlementService._get_registration
    calls = {"n": 0}

    def racing_lookup(self, user_id, live_class_id):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(EntitlementService, "_get_registration", racing_lookup)

    proof = PaymentProof(**gateway.proof(started["order"]["order_id"], "pay_x"))
    with pytest.raises(PaymentProcessingError):
        asyncio.run(service.verify_registration_payment(user, live_class.id, proof))

    monkeypatch.setattr(EntitlementService, "_get_registration", real_lookup)
    assert db.query(Payment).count() == 0
    assert db.query(Registration).one().is_registered is False


def test_mail_failure_does_not_fail_verification(
    client, db, gateway, mailer, make_user, make_live_class
):
    mailer.fail = True
    user = make_user()
    live_class = make_live_class()
    order = client.post(
        f"/live-classes/{live_class.id}/register", headers=user_headers(user)
    ).json()["order"]

    resp = client.post(
        f"/live-classes/{live_class.id}/verify-payment",
        json=gateway.proof(order["order_id"], "pay_1"),
        headers=user_headers(user),
    )

    assert resp.status_code == 200
    assert resp.json()["registration"]["status"] == "ACTIVE"
    db.expire_all()
    assert db.query(Payment).count() == 1
