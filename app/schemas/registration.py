# app/schemas/registration.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.access import AccessResult
from app.schemas.payment import PaymentResponse


# --- Requests ---
class RegisterRequest(BaseModel):
    module_id: Optional[int] = None


class PaymentProof(BaseModel):
    """Signed confirmation returned by the gateway checkout."""

    payment_id: str = Field(..., min_length=1, max_length=100)
    order_id: str = Field(..., min_length=1, max_length=100)
    signature: str = Field(..., min_length=1, max_length=255)


class BulkUserIdsRequest(BaseModel):
    user_ids: List[int] = Field(..., min_length=1)


# --- Responses ---
class RegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    live_class_id: int
    module_id: Optional[int] = None
    status: str
    is_registered: bool
    is_approved: bool
    has_access_to_links: bool
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    next_payment_date: Optional[datetime] = None
    registration_payment_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PaymentOrderResponse(BaseModel):
    order_id: str
    amount: int  # minor units, as the checkout expects
    currency: str
    key_id: str


class RegisterResponse(BaseModel):
    live_class_id: int
    registration_id: Optional[int] = None
    is_renewal: bool = False
    previous_registration_id: Optional[int] = None
    requires_payment: bool
    order: Optional[PaymentOrderResponse] = None
    registration: Optional[RegistrationResponse] = None


class VerifyPaymentResponse(BaseModel):
    message: str
    registration: RegistrationResponse
    payment: PaymentResponse
    access: AccessResult


class CourseAccessResponse(BaseModel):
    live_class_id: int
    already_has_access: bool = False
    order: Optional[PaymentOrderResponse] = None


class BulkUpdateResponse(BaseModel):
    updated: List[int]
    skipped: List[int]


class CancelSubscriptionResponse(BaseModel):
    message: str
    registration: RegistrationResponse


class RenewalDetail(BaseModel):
    registration_id: int
    user_id: int
    live_class_id: int
    status: str
    error: Optional[str] = None


class ProcessRenewalsResponse(BaseModel):
    processed: int
    failed: int
    details: List[RenewalDetail]


class ReminderResponse(BaseModel):
    sent: int
    failed: int


# --- Admin listings ---
class UserInRegistration(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: Optional[str] = None


class AdminRegistrationResponse(RegistrationResponse):
    user: UserInRegistration


class AttendeeResponse(BaseModel):
    registration_id: int
    user: UserInRegistration
    status: str
    start_date: Optional[datetime] = None
    next_payment_date: Optional[datetime] = None
    last_payment_amount: Optional[Decimal] = None
    last_payment_at: Optional[datetime] = None


class LiveClassInSubscription(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    pricing_model: str


class SubscriptionListItem(RegistrationResponse):
    user: UserInRegistration
    live_class: LiveClassInSubscription


class SubscriptionListResponse(BaseModel):
    subscriptions: List[SubscriptionListItem]
    total: int
    page: int
    size: int
    total_pages: int


# --- My subscriptions ---
class MySubscriptionItem(BaseModel):
    registration_id: int
    live_class_id: int
    module_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    module_title: Optional[str] = None
    teacher_name: Optional[str] = None
    date: str
    time: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    status: str
    next_payment_date: Optional[datetime] = None
    access: AccessResult
