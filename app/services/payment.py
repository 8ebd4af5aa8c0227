# app/services/payment.py
import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import ForbiddenError, NotFoundError
from app.models.admin import Admin
from app.models.payment import Payment
from app.models.registration import Registration
from app.models.user import User


class PaymentService:
    def __init__(self, db: Session):
        self.db = db

    def get_payments(
        self,
        page: int = 1,
        size: int = 20,
        live_class_id: Optional[int] = None,
        purpose: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], dict]:
        """Get completed payments, newest first, with user and class names"""
        query = (
            self.db.query(Payment)
            .join(Registration, Payment.registration_id == Registration.id)
            .options(
                joinedload(Payment.user),
                joinedload(Payment.registration).joinedload(Registration.live_class),
            )
        )

        if live_class_id is not None:
            query = query.filter(Registration.live_class_id == live_class_id)

        if purpose:
            query = query.filter(Payment.purpose == purpose)

        total = query.count()

        offset = (page - 1) * size
        payments = (
            query.order_by(Payment.created_at.desc(), Payment.id.desc())
            .offset(offset)
            .limit(size)
            .all()
        )

        items = []
        for payment in payments:
            live_class = payment.registration.live_class
            items.append(
                {
                    **{c.name: getattr(payment, c.name) for c in Payment.__table__.columns},
                    "user_name": payment.user.full_name,
                    "user_email": payment.user.email,
                    "live_class_id": live_class.id,
                    "live_class_title": live_class.title,
                }
            )

        total_pages = math.ceil(total / size) if size > 0 else 0
        pagination = {
            "total": total,
            "page": page,
            "size": size,
            "total_pages": total_pages,
        }

        return items, pagination

    def get_receipt(
        self,
        payment_id: int,
        user: Optional[User] = None,
        admin: Optional[Admin] = None,
    ) -> Dict[str, Any]:
        """Receipt data for one payment; only its owner or an admin may read it."""
        payment = (
            self.db.query(Payment)
            .options(
                joinedload(Payment.user),
                joinedload(Payment.registration).joinedload(Registration.live_class),
            )
            .filter(Payment.id == payment_id)
            .first()
        )
        if not payment:
            raise NotFoundError("Payment not found")
        if admin is None and (user is None or payment.user_id != user.id):
            raise ForbiddenError("You can only view your own receipts")

        live_class = payment.registration.live_class
        return {
            "receipt_number": payment.receipt_number,
            "payment_id": payment.gateway_payment_id,
            "order_id": payment.gateway_order_id,
            "amount": payment.amount,
            "currency": payment.currency,
            "purpose": payment.purpose,
            "status": payment.status,
            "paid_at": payment.created_at,
            "user_name": payment.user.full_name,
            "user_email": payment.user.email,
            "live_class_title": live_class.title,
            "live_class_start_time": live_class.start_time,
        }
