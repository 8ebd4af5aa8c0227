# app/models/payment_order.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.sql import func

from app.core.database import Base

CREATED = "CREATED"
PAID = "PAID"


class PaymentOrder(Base):
    """Gateway order issued to a user; a payment proof must match one of these."""

    __tablename__ = "payment_orders"

    id = Column(Integer, primary_key=True, index=True)
    gateway_order_id = Column(String(100), nullable=False, unique=True)
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

    purpose = Column(String(20), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    receipt = Column(String(40), nullable=False)
    status = Column(String(20), nullable=False, default=CREATED)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
