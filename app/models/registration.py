# app/models/registration.py
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from app.core.database import Base

ACTIVE = "ACTIVE"
CANCELLED = "CANCELLED"
EXPIRED = "EXPIRED"
PENDING_APPROVAL = "PENDING_APPROVAL"
REGISTERED = "REGISTERED"  # provisional: row exists, fee not confirmed yet
REJECTED = "REJECTED"

REGISTRATION_STATUSES = (ACTIVE, CANCELLED, EXPIRED, PENDING_APPROVAL, REGISTERED, REJECTED)
RENEWABLE_STATUSES = (CANCELLED, EXPIRED)


class Registration(Base):
    """
    One user's registration/subscription to one live class.
    At most one row exists per (user, live class).
    """

    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("user_id", "live_class_id", name="uq_registrations_user_class"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    live_class_id = Column(
        Integer,
        ForeignKey("live_classes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    module_id = Column(
        Integer,
        ForeignKey("live_class_modules.id", ondelete="SET NULL"),
        nullable=True,
    )

    status = Column(String(20), nullable=False, default=REGISTERED, index=True)
    is_registered = Column(Boolean, default=False, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    has_access_to_links = Column(Boolean, default=False, nullable=False)

    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    next_payment_date = Column(DateTime, nullable=True, index=True)
    registration_payment_id = Column(String(100), nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self):
        return f"<Registration(id={self.id}, user_id={self.user_id}, live_class_id={self.live_class_id}, status={self.status})>"
