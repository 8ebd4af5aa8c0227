# app/models/payment.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.sql import func

from app.core.database import Base

REGISTRATION = "REGISTRATION"
COURSE_FEE = "COURSE_FEE"
SUBSCRIPTION = "SUBSCRIPTION"
PAYMENT_PURPOSES = (REGISTRATION, COURSE_FEE, SUBSCRIPTION)

COMPLETED = "COMPLETED"


class Payment(Base):
    """Append-only ledger row written after a verified gateway confirmation."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    registration_id = Column(
        Integer,
        ForeignKey("registrations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    purpose = Column(String(20), nullable=False)

    gateway_order_id = Column(String(100), nullable=False, index=True)
    gateway_payment_id = Column(String(100), nullable=False, unique=True)
    gateway_signature = Column(String(255), nullable=False)
    receipt_number = Column(String(20), nullable=False, unique=True)

    status = Column(String(20), nullable=False, default=COMPLETED)
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<Payment(id={self.id}, receipt={self.receipt_number}, amount={self.amount}, purpose={self.purpose})>"
