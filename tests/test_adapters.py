"""Tests for the payment, meeting and mail adapters."""

import asyncio
import base64
import json
from datetime import datetime
from decimal import Decimal

import httpx
import pytest

from app.core.exceptions import UpstreamError
from app.utils import mail_service as mail_module
from app.utils.mail_service import MailService, render
from app.utils.payment_gateway import RazorpayGateway, to_minor_units
from app.utils.zoom_service import ZoomMeetingService


def test_to_minor_units_rounds_half_up() -> None:
    assert to_minor_units(Decimal("200")) == 20000
    assert to_minor_units(Decimal("99.995")) == 10000
    assert to_minor_units(Decimal("0.01")) == 1


def test_signature_verification() -> None:
    gateway = RazorpayGateway(key_id="key", key_secret="secret")
    signature = gateway.generate_signature("order_1", "pay_1")

    assert gateway.verify_signature("order_1", "pay_1", signature)
    assert not gateway.verify_signature("order_1", "pay_2", signature)
    assert not gateway.verify_signature("order_1", "pay_1", signature.upper())
    assert not gateway.verify_signature("order_1", "pay_1", "")
    assert not gateway.verify_signature("", "pay_1", signature)


def test_create_order_request_shape() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        payload = json.loads(request.content.decode())
        return httpx.Response(
            200,
            json={"id": "order_abc", "amount": payload["amount"], "currency": payload["currency"]},
        )

    gateway = RazorpayGateway(
        key_id="key",
        key_secret="secret",
        base_url="https://pay.test/v1/",
        transport=httpx.MockTransport(handler),
    )

    order = asyncio.run(
        gateway.create_order(
            25000,
            "INR",
            "lc_" + "x" * 60,
            notes={"user_id": 7, "module_id": None},
        )
    )

    assert order["id"] == "order_abc"
    request = seen[0]
    assert str(request.url) == "https://pay.test/v1/orders"
    expected_auth = base64.b64encode(b"key:secret").decode()
    assert request.headers["Authorization"] == f"Basic {expected_auth}"
    payload = json.loads(request.content.decode())
    assert payload["amount"] == 25000
    assert len(payload["receipt"]) == 40
    assert payload["notes"] == {"user_id": "7", "module_id": ""}


def test_create_order_failure_raises_upstream_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": {}}))
    gateway = RazorpayGateway(key_id="key", key_secret="secret", transport=transport)

    with pytest.raises(UpstreamError):
        asyncio.run(gateway.create_order(100, "INR", "receipt"))


def _zoom(handler) -> ZoomMeetingService:
    return ZoomMeetingService(
        account_id="acct",
        client_id="client",
        client_secret="secret",
        oauth_url="https://zoom.test/oauth/token",
        api_url="https://zoom.test/v2",
        transport=httpx.MockTransport(handler),
    )


def test_zoom_meeting_is_created_with_an_account_token() -> None:
    seen_paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_paths.append(request.url.path)
        if request.url.path == "/oauth/token":
            assert b"grant_type=account_credentials" in request.content
            assert b"account_id=acct" in request.content
            return httpx.Response(200, json={"access_token": "tok"})
        assert request.headers["Authorization"] == "Bearer tok"
        payload = json.loads(request.content.decode())
        assert payload["topic"] == "Algebra Live"
        assert payload["type"] == 2
        assert payload["duration"] == 90
        assert payload["start_time"] == "2026-03-01T10:00:00Z"
        return httpx.Response(
            201,
            json={"id": 123456789, "join_url": "https://zoom.test/j/123", "password": "pw"},
        )

    meeting = asyncio.run(
        _zoom(handler).create_meeting(
            "Algebra Live", datetime(2026, 3, 1, 10, 0), datetime(2026, 3, 1, 11, 30)
        )
    )

    assert seen_paths == ["/oauth/token", "/v2/users/me/meetings"]
    assert meeting == {
        "meeting_id": "123456789",
        "join_link": "https://zoom.test/j/123",
        "password": "pw",
    }


def test_zoom_failures_raise_upstream_error() -> None:
    def missing_token(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={})

    def rejected(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/token":
            return httpx.Response(200, json={"access_token": "tok"})
        return httpx.Response(400, json={"message": "bad request"})

    for handler in (missing_token, rejected):
        with pytest.raises(UpstreamError):
            asyncio.run(
                _zoom(handler).create_meeting(
                    "Algebra Live", datetime(2026, 3, 1, 10), datetime(2026, 3, 1, 11)
                )
            )


def test_render_includes_only_provided_fields() -> None:
    subject, body = render(
        mail_module.SUBSCRIPTION_CONFIRMED,
        {"name": "Ravi", "title": "Algebra Live", "receipt_number": "LC-ABC123"},
    )

    assert subject == "Live Class Registration Confirmed"
    assert "Hi Ravi" in body
    assert "Receipt: LC-ABC123" in body
    assert "Meeting link" not in body

    subject, _ = render(mail_module.REMINDER, {"title": "Algebra Live"})
    assert subject == "Reminder: Algebra Live starts soon"

    with pytest.raises(ValueError):
        render("newsletter", {})


def test_disabled_mail_service_skips_smtp(monkeypatch) -> None:
    def fail(*args, **kwargs):
        raise AssertionError("SMTP must not be used when mail is disabled")

    monkeypatch.setattr(mail_module.smtplib, "SMTP", fail)
    service = MailService(host="smtp.test", port=587, enabled=False)

    asyncio.run(service.send("a@example.com", mail_module.EXPIRED, {"title": "Algebra Live"}))


def test_mail_service_sends_over_starttls(monkeypatch) -> None:
    calls: list[tuple] = []

    class FakeSMTP:
        def __init__(self, host, port, timeout):
            calls.append(("connect", host, port))

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            calls.append(("starttls",))

        def login(self, username, password):
            calls.append(("login", username))

        def sendmail(self, from_address, to_addresses, message):
            calls.append(("sendmail", from_address, tuple(to_addresses)))

    monkeypatch.setattr(mail_module.smtplib, "SMTP", FakeSMTP)
    service = MailService(
        host="smtp.test",
        port=587,
        username="mailer",
        password="pw",
        from_address="classes@example.com",
    )

    asyncio.run(service.send("a@example.com", mail_module.CANCELLED, {"title": "Algebra Live"}))

    assert calls == [
        ("connect", "smtp.test", 587),
        ("starttls",),
        ("login", "mailer"),
        ("sendmail", "classes@example.com", ("a@example.com",)),
    ]
