# app/schemas/payment.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    registration_id: int
    user_id: int
    amount: Decimal
    currency: str
    purpose: str
    gateway_order_id: str
    gateway_payment_id: str
    receipt_number: str
    status: str
    created_at: datetime


class PaymentListItem(PaymentResponse):
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    live_class_id: int
    live_class_title: str


class PaymentListResponse(BaseModel):
    payments: List[PaymentListItem]
    total: int
    page: int
    size: int
    total_pages: int


class ReceiptResponse(BaseModel):
    receipt_number: str
    payment_id: str
    order_id: str
    amount: Decimal
    currency: str
    purpose: str
    status: str
    paid_at: datetime
    user_name: str
    user_email: Optional[str] = None
    live_class_title: str
    live_class_start_time: datetime
