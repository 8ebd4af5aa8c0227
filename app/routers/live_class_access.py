# app/routers/live_class_access.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import (
    get_current_user,
    get_mail_service,
    get_optional_admin,
    get_optional_user,
    get_payment_gateway,
)
from app.core.limiter import limiter
from app.models.admin import Admin
from app.models.user import User
from app.schemas.access import AccessResult
from app.schemas.payment import ReceiptResponse
from app.schemas.registration import (
    CancelSubscriptionResponse,
    CourseAccessResponse,
    MySubscriptionItem,
    PaymentProof,
    RegisterRequest,
    RegisterResponse,
    VerifyPaymentResponse,
)
from app.services.access import AccessService
from app.services.entitlement import EntitlementService
from app.services.payment import PaymentService
from app.utils.mail_service import MailService
from app.utils.payment_gateway import RazorpayGateway

router = APIRouter(
    prefix="/live-classes",
    tags=["Live Class Access"],
    responses={404: {"description": "Not found"}},
)


# ==================== My Subscriptions ====================


@router.get("/subscriptions/me", response_model=List[MySubscriptionItem])
def my_subscriptions(
    include_all: bool = Query(False, description="Include past and inactive classes"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List the caller's registrations with class display fields and access state.
    """
    return AccessService(db).get_my_subscriptions(current_user, include_all=include_all)


@router.post(
    "/subscriptions/{registration_id}/cancel",
    response_model=CancelSubscriptionResponse,
)
async def cancel_my_subscription(
    registration_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Cancel one of the caller's subscriptions. It can be renewed later.
    """
    service = EntitlementService(db)
    registration = await service.cancel_subscription(registration_id, user=current_user)
    return {"message": "Subscription cancelled", "registration": registration}


@router.get("/payments/{payment_id}/receipt", response_model=ReceiptResponse)
def get_receipt(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
    current_admin: Optional[Admin] = Depends(get_optional_admin),
):
    """
    Receipt data for a payment. Owners and admins only.
    """
    if current_user is None and current_admin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return PaymentService(db).get_receipt(payment_id, user=current_user, admin=current_admin)


# ==================== Registration & Payment ====================


@router.post("/{live_class_id}/register", response_model=RegisterResponse)
@limiter.limit(settings.payment_rate_limit)
async def register_for_live_class(
    request: Request,
    live_class_id: int,
    body: Optional[RegisterRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    mailer: MailService = Depends(get_mail_service),
):
    """
    Register (or renew) and receive a payment order for the applicable fee.

    Free classes complete immediately and return the registration instead.
    """
    service = EntitlementService(db, gateway=gateway, mailer=mailer)
    return await service.register(
        current_user, live_class_id, module_id=body.module_id if body else None
    )


@router.post("/{live_class_id}/verify-payment", response_model=VerifyPaymentResponse)
@limiter.limit(settings.payment_rate_limit)
async def verify_registration_payment(
    request: Request,
    live_class_id: int,
    proof: PaymentProof,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    mailer: MailService = Depends(get_mail_service),
):
    """
    Verify the gateway's signed confirmation and activate the registration.
    Submitting the same confirmation twice returns the recorded result.
    """
    service = EntitlementService(db, gateway=gateway, mailer=mailer)
    registration, payment = await service.verify_registration_payment(
        current_user, live_class_id, proof
    )
    return {
        "message": "Payment verified",
        "registration": registration,
        "payment": payment,
        "access": AccessService(db).check_access(current_user, live_class_id),
    }


@router.post("/{live_class_id}/course-access", response_model=CourseAccessResponse)
@limiter.limit(settings.payment_rate_limit)
async def pay_course_access(
    request: Request,
    live_class_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    """
    Issue a payment order for the course fee once the registration is approved.
    Returns `already_has_access` instead of charging twice.
    """
    service = EntitlementService(db, gateway=gateway)
    return await service.pay_course_access(current_user, live_class_id)


@router.post(
    "/{live_class_id}/verify-course-payment", response_model=VerifyPaymentResponse
)
@limiter.limit(settings.payment_rate_limit)
async def verify_course_payment(
    request: Request,
    live_class_id: int,
    proof: PaymentProof,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    mailer: MailService = Depends(get_mail_service),
):
    """
    Verify the course fee confirmation and unlock the meeting links.
    """
    service = EntitlementService(db, gateway=gateway, mailer=mailer)
    registration, payment = await service.verify_course_payment(
        current_user, live_class_id, proof
    )
    return {
        "message": "Course fee verified",
        "registration": registration,
        "payment": payment,
        "access": AccessService(db).check_access(current_user, live_class_id),
    }


@router.get("/{live_class_id}/access", response_model=AccessResult)
def check_access(
    live_class_id: int,
    module_id: Optional[int] = Query(None, description="Check a single module"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    The caller's entitlement for a class or module. Meeting details are only
    included with FULL_ACCESS.
    """
    return AccessService(db).check_access(current_user, live_class_id, module_id)
