# app/services/registration_admin.py
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import NotFoundError
from app.models import registration as reg_status
from app.models.live_class import LiveClass
from app.models.payment import Payment
from app.models.registration import Registration
from app.services.notification import NotificationService
from app.utils.mail_service import MailService

logger = logging.getLogger(__name__)


class RegistrationAdminService:
    """Attendee lists, approval queues, reminders and subscription listings."""

    def __init__(self, db: Session, mailer: Optional[MailService] = None):
        self.db = db
        self.notifications = NotificationService(mailer)

    def _get_live_class(self, live_class_id: int) -> LiveClass:
        live_class = self.db.query(LiveClass).filter(LiveClass.id == live_class_id).first()
        if not live_class:
            raise NotFoundError("Live class not found")
        return live_class

    def _active_registrations(self, live_class_id: int) -> List[Registration]:
        return (
            self.db.query(Registration)
            .options(joinedload(Registration.user))
            .filter(
                Registration.live_class_id == live_class_id,
                Registration.status == reg_status.ACTIVE,
                Registration.is_registered == True,
            )
            .order_by(Registration.start_date.asc())
            .all()
        )

    def get_attendees(self, live_class_id: int) -> List[Dict[str, Any]]:
        """Active registrations with their latest payment and next due date."""
        self._get_live_class(live_class_id)

        attendees = []
        for registration in self._active_registrations(live_class_id):
            last_payment = (
                self.db.query(Payment)
                .filter(Payment.registration_id == registration.id)
                .order_by(Payment.created_at.desc(), Payment.id.desc())
                .first()
            )
            attendees.append(
                {
                    "registration_id": registration.id,
                    "user": registration.user,
                    "status": registration.status,
                    "start_date": registration.start_date,
                    "next_payment_date": registration.next_payment_date,
                    "last_payment_amount": last_payment.amount if last_payment else None,
                    "last_payment_at": last_payment.created_at if last_payment else None,
                }
            )
        return attendees

    def get_registrations(
        self, live_class_id: int, status: Optional[str] = None
    ) -> List[Registration]:
        """Every registration of a class, for the approval screens."""
        self._get_live_class(live_class_id)

        query = (
            self.db.query(Registration)
            .options(joinedload(Registration.user))
            .filter(Registration.live_class_id == live_class_id)
        )
        if status:
            query = query.filter(Registration.status == status)
        return query.order_by(Registration.created_at.asc(), Registration.id.asc()).all()

    async def send_reminders(self, live_class_id: int) -> Dict[str, int]:
        """
        Email every active registrant. Meeting details go only to those who
        have link access; individual failures are counted, never raised.
        """
        live_class = self._get_live_class(live_class_id)

        sent, failed = 0, 0
        for registration in self._active_registrations(live_class_id):
            ok = await self.notifications.reminder(
                registration.user,
                live_class,
                include_meeting=registration.has_access_to_links,
            )
            if ok:
                sent += 1
            else:
                failed += 1

        logger.info(f"Reminders for live class {live_class_id}: {sent} sent, {failed} failed")
        return {"sent": sent, "failed": failed}

    def get_subscriptions(
        self,
        page: int = 1,
        size: int = 20,
        status: Optional[str] = None,
        live_class_id: Optional[int] = None,
    ) -> Tuple[List[Registration], dict]:
        """Get subscriptions across all classes with pagination and filters"""
        query = self.db.query(Registration).options(
            joinedload(Registration.user), joinedload(Registration.live_class)
        )

        if status:
            query = query.filter(Registration.status == status)

        if live_class_id is not None:
            query = query.filter(Registration.live_class_id == live_class_id)

        total = query.count()

        offset = (page - 1) * size
        subscriptions = (
            query.order_by(Registration.created_at.desc(), Registration.id.desc())
            .offset(offset)
            .limit(size)
            .all()
        )

        total_pages = math.ceil(total / size) if size > 0 else 0
        pagination = {
            "total": total,
            "page": page,
            "size": size,
            "total_pages": total_pages,
        }

        return subscriptions, pagination
