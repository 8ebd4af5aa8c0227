# app/models/live_class.py
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.sql import func

from app.core.database import Base

FLAT = "FLAT"  # single monthly price, renewed through the sweep
TWO_STAGE = "TWO_STAGE"  # registration fee + optional course fee
PRICING_MODELS = (FLAT, TWO_STAGE)


class LiveClass(Base):
    __tablename__ = "live_classes"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_live_classes_time_window"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Basic Info
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    thumbnail_url = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    capacity = Column(Integer, nullable=True)
    recurring_class = Column(Boolean, nullable=True)

    # Pricing
    pricing_model = Column(String(20), nullable=False, default=FLAT)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    registration_fee = Column(Numeric(10, 2), nullable=False, default=0)
    course_fee = Column(Numeric(10, 2), nullable=False, default=0)
    course_fee_enabled = Column(Boolean, default=False, nullable=False)
    requires_approval = Column(Boolean, default=False, nullable=False)

    # Flags
    is_active = Column(Boolean, default=True, nullable=False)
    has_modules = Column(Boolean, default=False, nullable=False)
    is_first_module_free = Column(Boolean, default=False, nullable=False)

    # Meeting credentials, provisioned once at creation
    zoom_link = Column(Text, nullable=True)
    zoom_meeting_id = Column(String(64), nullable=True)
    zoom_password = Column(String(64), nullable=True)

    created_by = Column(Integer, ForeignKey("admins.id"), nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @property
    def is_two_stage(self) -> bool:
        return self.pricing_model == TWO_STAGE

    @property
    def requires_course_fee(self) -> bool:
        return self.is_two_stage and bool(self.course_fee_enabled)

    def __repr__(self):
        return f"<LiveClass(id={self.id}, title='{self.title}', model={self.pricing_model})>"
