# app/services/notification.py
import logging
from typing import Any, Dict, Optional

from app.models.live_class import LiveClass
from app.models.live_class_module import LiveClassModule
from app.models.payment import Payment
from app.models.user import User
from app.utils import mail_service as templates
from app.utils.mail_service import MailService

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Fire-and-forget email trigger.

    Every public method returns True/False and never raises: a failed email
    must not undo an already committed state change.
    """

    def __init__(self, mailer: Optional[MailService] = None):
        self.mailer = mailer

    async def _send(self, user: User, kind: str, data: Dict[str, Any]) -> bool:
        if self.mailer is None:
            return False
        if not user.email:
            logger.warning(f"User {user.id} has no email address, skipping '{kind}'")
            return False
        try:
            await self.mailer.send(user.email, kind, {"name": user.full_name, **data})
            return True
        except Exception as e:
            logger.error(f"Failed to send '{kind}' email to user {user.id}: {e}")
            return False

    @staticmethod
    def _meeting_data(
        live_class: LiveClass, module: Optional[LiveClassModule] = None
    ) -> Dict[str, Any]:
        source = module if module is not None and module.zoom_link else live_class
        return {"meeting_link": source.zoom_link, "password": source.zoom_password}

    async def subscription_confirmed(
        self,
        user: User,
        live_class: LiveClass,
        payment: Optional[Payment] = None,
        include_meeting: bool = False,
    ) -> bool:
        data = {
            "title": live_class.title,
            "start_time": live_class.start_time.strftime("%d %b %Y, %I:%M %p"),
        }
        if payment is not None:
            data.update(
                amount=f"{payment.amount} {payment.currency}",
                receipt_number=payment.receipt_number,
                payment_id=payment.gateway_payment_id,
            )
        if include_meeting:
            data.update(self._meeting_data(live_class))
        return await self._send(user, templates.SUBSCRIPTION_CONFIRMED, data)

    async def course_access_confirmed(
        self, user: User, live_class: LiveClass, payment: Payment
    ) -> bool:
        data = {
            "title": live_class.title,
            "amount": f"{payment.amount} {payment.currency}",
            "receipt_number": payment.receipt_number,
            **self._meeting_data(live_class),
        }
        return await self._send(user, templates.COURSE_ACCESS_CONFIRMED, data)

    async def reminder(
        self, user: User, live_class: LiveClass, include_meeting: bool
    ) -> bool:
        data = {
            "title": live_class.title,
            "start_time": live_class.start_time.strftime("%d %b %Y, %I:%M %p"),
        }
        if include_meeting:
            data.update(self._meeting_data(live_class))
        return await self._send(user, templates.REMINDER, data)

    async def subscription_expired(self, user: User, live_class: LiveClass) -> bool:
        return await self._send(user, templates.EXPIRED, {"title": live_class.title})

    async def subscription_cancelled(self, user: User, live_class: LiveClass) -> bool:
        return await self._send(user, templates.CANCELLED, {"title": live_class.title})
