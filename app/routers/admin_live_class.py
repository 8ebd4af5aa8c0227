# app/routers/admin_live_class.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import get_current_admin, get_mail_service
from app.models.admin import Admin
from app.schemas.analytics import LiveClassAnalytics
from app.schemas.payment import PaymentListResponse
from app.schemas.registration import (
    AdminRegistrationResponse,
    AttendeeResponse,
    BulkUpdateResponse,
    BulkUserIdsRequest,
    CancelSubscriptionResponse,
    ProcessRenewalsResponse,
    ReminderResponse,
    SubscriptionListResponse,
)
from app.services.analytics import AnalyticsService
from app.services.entitlement import EntitlementService
from app.services.payment import PaymentService
from app.services.registration_admin import RegistrationAdminService
from app.utils.mail_service import MailService

router = APIRouter(
    prefix="/admin/live-classes",
    tags=["Admin Live Classes"],
    responses={404: {"description": "Not found"}},
)


# ==================== Attendance & Approval ====================


@router.get("/{live_class_id}/attendees", response_model=List[AttendeeResponse])
def get_attendees(
    live_class_id: int,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
):
    """Active attendees with their last payment and next due date."""
    return RegistrationAdminService(db).get_attendees(live_class_id)


@router.get(
    "/{live_class_id}/registrations", response_model=List[AdminRegistrationResponse]
)
def get_registrations(
    live_class_id: int,
    status: Optional[str] = Query(None, description="Filter by registration status"),
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
):
    return RegistrationAdminService(db).get_registrations(live_class_id, status)


@router.post(
    "/{live_class_id}/approve-registrations", response_model=BulkUpdateResponse
)
def approve_registrations(
    live_class_id: int,
    body: BulkUserIdsRequest,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
):
    """
    Approve registered users. When the class charges a course fee, approval
    only unlocks the course fee step.
    """
    return EntitlementService(db).approve_registrations(live_class_id, body.user_ids)


@router.post(
    "/{live_class_id}/reject-registrations", response_model=BulkUpdateResponse
)
def reject_registrations(
    live_class_id: int,
    body: BulkUserIdsRequest,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
):
    return EntitlementService(db).reject_registrations(live_class_id, body.user_ids)


@router.post("/{live_class_id}/remove-access", response_model=BulkUpdateResponse)
def remove_access(
    live_class_id: int,
    body: BulkUserIdsRequest,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
):
    """Revoke approval and link access for the given users."""
    return EntitlementService(db).remove_access(live_class_id, body.user_ids)


@router.post("/{live_class_id}/send-reminders", response_model=ReminderResponse)
async def send_reminders(
    live_class_id: int,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
    mailer: MailService = Depends(get_mail_service),
):
    """Email a reminder to every active registrant of the class."""
    service = RegistrationAdminService(db, mailer=mailer)
    return await service.send_reminders(live_class_id)


# ==================== Renewals ====================


@router.post("/process-renewals", response_model=ProcessRenewalsResponse)
async def process_renewals(
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
    mailer: MailService = Depends(get_mail_service),
):
    """
    Expire flat-price subscriptions whose payment date has passed.
    Safe to call repeatedly.
    """
    return await EntitlementService(db, mailer=mailer).process_renewals()


# ==================== Payments & Subscriptions ====================


@router.get("/payments", response_model=PaymentListResponse)
def list_payments(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    live_class_id: Optional[int] = Query(None, description="Filter by live class"),
    purpose: Optional[str] = Query(None, description="REGISTRATION, COURSE_FEE or SUBSCRIPTION"),
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
):
    payments, pagination = PaymentService(db).get_payments(
        page=page, size=size, live_class_id=live_class_id, purpose=purpose
    )
    return {"payments": payments, **pagination}


@router.get("/subscriptions", response_model=SubscriptionListResponse)
def list_subscriptions(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None, description="Filter by status"),
    live_class_id: Optional[int] = Query(None, description="Filter by live class"),
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
):
    subscriptions, pagination = RegistrationAdminService(db).get_subscriptions(
        page=page, size=size, status=status, live_class_id=live_class_id
    )
    return {"subscriptions": subscriptions, **pagination}


@router.post(
    "/subscriptions/{registration_id}/cancel",
    response_model=CancelSubscriptionResponse,
)
async def cancel_subscription(
    registration_id: int,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
    mailer: MailService = Depends(get_mail_service),
):
    """Cancel any subscription; the user is notified by email."""
    service = EntitlementService(db, mailer=mailer)
    registration = await service.cancel_subscription(registration_id, admin=current_admin)
    return {"message": "Subscription cancelled", "registration": registration}


# ==================== Analytics ====================


@router.get("/analytics", response_model=LiveClassAnalytics)
def get_analytics(
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
):
    """Revenue totals, monthly breakdown and class popularity."""
    return AnalyticsService(db).get_live_class_analytics()
