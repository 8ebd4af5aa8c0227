"""Shared test fixtures."""

import os
import tempfile
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal

# Settings are read at import time, so the environment goes first.
os.environ["DATABASE_URL"] = "sqlite:///./test_live_classes.db"
os.environ["REDIS_URL"] = "memory://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["PAYMENT_KEY_ID"] = "rzp_test_key"
os.environ["PAYMENT_KEY_SECRET"] = "rzp_test_secret"
os.environ["MAIL_ENABLED"] = "false"
os.environ["RENEWAL_SCHEDULER_ENABLED"] = "false"
os.environ["DEBUG"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="live-class-storage-")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.database import Base, SessionLocal, engine  # noqa: E402
from app.core.dependencies import (  # noqa: E402
    get_file_upload_service,
    get_mail_service,
    get_meeting_service,
    get_payment_gateway,
)
from app.core.exceptions import UpstreamError  # noqa: E402
from app.core.security import jwt_manager  # noqa: E402
from app.models import Admin, LiveClass, LiveClassModule, User  # noqa: E402
from app.utils.file_upload import FileUploadService  # noqa: E402
from app.utils.payment_gateway import RazorpayGateway  # noqa: E402
from app.utils.time import utcnow  # noqa: E402
from main import app  # noqa: E402


class FakeGateway(RazorpayGateway):
    """Gateway that issues orders locally but signs with the real HMAC."""

    def __init__(self) -> None:
        super().__init__(key_id="rzp_test_key", key_secret="rzp_test_secret")
        self.orders: list[dict] = []
        self.fail = False

    async def create_order(self, amount_minor_units, currency, receipt, notes=None):
        if self.fail:
            raise UpstreamError("Failed to create payment order")
        order = {
            "id": f"order_test_{len(self.orders) + 1}",
            "amount": amount_minor_units,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        self.orders.append(order)
        return order

    def proof(self, order_id: str, payment_id: str) -> dict:
        return {
            "order_id": order_id,
            "payment_id": payment_id,
            "signature": self.generate_signature(order_id, payment_id),
        }


@dataclass
class FakeMeetingService:
    """Meeting provider returning predictable credentials."""

    created: list[tuple] = field(default_factory=list)
    fail: bool = False

    async def create_meeting(self, title, start_time, end_time):
        if self.fail:
            raise UpstreamError("Failed to create Zoom meeting")
        self.created.append((title, start_time, end_time))
        n = len(self.created)
        return {
            "meeting_id": f"9000{n}",
            "join_link": f"https://zoom.test/j/9000{n}",
            "password": f"pw{n}",
        }


@dataclass
class FakeMailer:
    """Mail collaborator that records every send."""

    outbox: list[tuple[str, str, dict]] = field(default_factory=list)
    fail: bool = False

    async def send(self, to_address, kind, data):
        if self.fail:
            raise ConnectionError("SMTP server unavailable")
        self.outbox.append((to_address, kind, data))

    def kinds(self) -> list[str]:
        return [kind for _, kind, _ in self.outbox]


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def meetings() -> FakeMeetingService:
    return FakeMeetingService()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def storage(tmp_path) -> FileUploadService:
    return FileUploadService(str(tmp_path))


@pytest.fixture
def client(gateway, meetings, mailer, storage):
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_meeting_service] = lambda: meetings
    app.dependency_overrides[get_mail_service] = lambda: mailer
    app.dependency_overrides[get_file_upload_service] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------
@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(**overrides) -> User:
        counter["n"] += 1
        data = {
            "full_name": f"Student {counter['n']}",
            "email": f"student{counter['n']}@example.com",
        }
        data.update(overrides)
        user = User(**data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def admin(db) -> Admin:
    admin = Admin(name="Asha Teacher", email="admin@example.com", is_verified=True)
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


@pytest.fixture
def make_live_class(db):
    def _make(**overrides) -> LiveClass:
        start = utcnow() + timedelta(days=2)
        data = {
            "title": "Algebra Live",
            "description": "Weekly algebra session",
            "start_time": start,
            "end_time": start + timedelta(minutes=90),
            "pricing_model": "FLAT",
            "price": Decimal("200"),
            "registration_fee": Decimal("0"),
            "course_fee": Decimal("0"),
            "zoom_link": "https://zoom.test/j/1111",
            "zoom_meeting_id": "1111",
            "zoom_password": "secret",
        }
        data.update(overrides)
        live_class = LiveClass(**data)
        db.add(live_class)
        db.commit()
        db.refresh(live_class)
        return live_class

    return _make


@pytest.fixture
def make_module(db):
    def _make(live_class: LiveClass, position: int, **overrides) -> LiveClassModule:
        data = {
            "live_class_id": live_class.id,
            "title": f"Module {position}",
            "start_time": live_class.start_time,
            "end_time": live_class.end_time,
            "position": position,
            "zoom_link": f"https://zoom.test/j/mod{position}",
            "zoom_meeting_id": f"mod{position}",
            "zoom_password": f"modpw{position}",
        }
        data.update(overrides)
        module = LiveClassModule(**data)
        live_class.has_modules = True
        db.add(module)
        db.commit()
        db.refresh(module)
        return module

    return _make


def user_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {jwt_manager.create_access_token(user)}"}


def admin_headers(admin: Admin) -> dict:
    return {"Authorization": f"Bearer {jwt_manager.create_admin_token(admin)}"}
