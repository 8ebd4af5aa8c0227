# app/services/entitlement.py
import logging
import secrets
import string
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidSignatureError,
    InvalidStateError,
    NotFoundError,
    PaymentProcessingError,
)
from app.models import payment as payment_consts
from app.models import registration as reg_status
from app.models.admin import Admin
from app.models.live_class import FLAT, LiveClass
from app.models.live_class_module import LiveClassModule
from app.models.payment import Payment
from app.models.payment_order import CREATED, PAID, PaymentOrder
from app.models.registration import Registration
from app.models.user import User
from app.schemas.registration import PaymentProof
from app.services.notification import NotificationService
from app.utils.mail_service import MailService
from app.utils.payment_gateway import RazorpayGateway, to_minor_units
from app.utils.time import add_months, utcnow

logger = logging.getLogger(__name__)

RECEIPT_ALPHABET = string.ascii_uppercase + string.digits
REGISTRATION_PURPOSES = (payment_consts.REGISTRATION, payment_consts.SUBSCRIPTION)
COURSE_FEE_PURPOSES = (payment_consts.COURSE_FEE,)


def generate_receipt_number() -> str:
    return "LC-" + "".join(secrets.choice(RECEIPT_ALPHABET) for _ in range(6))


def has_paid_course_fee(db: Session, registration_id: Optional[int]) -> bool:
    if registration_id is None:
        return False
    return (
        db.query(Payment.id)
        .filter(
            Payment.registration_id == registration_id,
            Payment.purpose == payment_consts.COURSE_FEE,
            Payment.status == payment_consts.COMPLETED,
        )
        .first()
        is not None
    )


def derive_link_access(
    live_class: LiveClass, registration: Registration, course_fee_paid: bool
) -> bool:
    """
    Whether a registration may see the meeting credentials.

    Approval alone is enough unless the class charges a course fee, in which
    case a completed course-fee payment is also required.
    """
    if not registration.is_registered or not registration.is_approved:
        return False
    if registration.status != reg_status.ACTIVE:
        return False
    if live_class.requires_course_fee:
        return course_fee_paid
    return True


class EntitlementService:
    """Registration, payment verification, approval and renewal rules."""

    def __init__(
        self,
        db: Session,
        gateway: Optional[RazorpayGateway] = None,
        mailer: Optional[MailService] = None,
    ):
        self.db = db
        self.gateway = gateway
        self.notifications = NotificationService(mailer)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def _get_live_class(self, live_class_id: int) -> LiveClass:
        live_class = self.db.query(LiveClass).filter(LiveClass.id == live_class_id).first()
        if not live_class:
            raise NotFoundError("Live class not found")
        return live_class

    def _get_registration(
        self, user_id: int, live_class_id: int
    ) -> Optional[Registration]:
        return (
            self.db.query(Registration)
            .filter(
                Registration.user_id == user_id,
                Registration.live_class_id == live_class_id,
            )
            .first()
        )

    def _get_payment(self, gateway_payment_id: str) -> Optional[Payment]:
        return (
            self.db.query(Payment)
            .filter(Payment.gateway_payment_id == gateway_payment_id)
            .first()
        )

    def _get_order(
        self, proof: PaymentProof, user_id: int, live_class_id: int, purposes: tuple
    ) -> PaymentOrder:
        order = (
            self.db.query(PaymentOrder)
            .filter(PaymentOrder.gateway_order_id == proof.order_id)
            .first()
        )
        if (
            not order
            or order.user_id != user_id
            or order.live_class_id != live_class_id
            or order.purpose not in purposes
        ):
            raise InvalidStateError("Payment order does not match this registration")
        if order.status != CREATED:
            raise InvalidStateError("Payment order has already been paid")
        return order

    def _unique_receipt_number(self) -> str:
        for _ in range(5):
            receipt_number = generate_receipt_number()
            taken = (
                self.db.query(Payment.id)
                .filter(Payment.receipt_number == receipt_number)
                .first()
            )
            if not taken:
                return receipt_number
        raise PaymentProcessingError("Could not allocate a receipt number")

    def _check_capacity(self, live_class: LiveClass, user_id: int) -> None:
        if not live_class.capacity:
            return
        taken = (
            self.db.query(Registration)
            .filter(
                Registration.live_class_id == live_class.id,
                Registration.is_registered == True,
                Registration.status.in_([reg_status.ACTIVE, reg_status.PENDING_APPROVAL]),
                Registration.user_id != user_id,
            )
            .count()
        )
        if taken >= live_class.capacity:
            raise InvalidStateError("This live class is full")

    def _find_open_order(
        self,
        user_id: int,
        live_class_id: int,
        purpose: str,
        amount: Decimal,
        module_id: Optional[int],
    ) -> Optional[PaymentOrder]:
        orders = (
            self.db.query(PaymentOrder)
            .filter(
                PaymentOrder.user_id == user_id,
                PaymentOrder.live_class_id == live_class_id,
                PaymentOrder.purpose == purpose,
                PaymentOrder.status == CREATED,
            )
            .order_by(PaymentOrder.id.desc())
            .all()
        )
        for order in orders:
            if (
                order.module_id == module_id
                and Decimal(order.amount) == amount
                and order.currency == settings.payment_currency
            ):
                return order
        return None

    def _order_response(self, order: PaymentOrder) -> Dict[str, Any]:
        return {
            "order_id": order.gateway_order_id,
            "amount": to_minor_units(Decimal(order.amount)),
            "currency": order.currency,
            "key_id": self.gateway.key_id,
        }

    async def _create_order(
        self,
        user: User,
        live_class: LiveClass,
        purpose: str,
        amount: Decimal,
        module_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Issue a gateway order for a fee, or hand back the caller's unpaid
        order for the same fee so a retry never opens a second charge.
        """
        open_order = self._find_open_order(user.id, live_class.id, purpose, amount, module_id)
        if open_order is not None:
            logger.info(
                f"Reusing open order {open_order.gateway_order_id} ({purpose}) "
                f"for user {user.id} on live class {live_class.id}"
            )
            return self._order_response(open_order)

        receipt = f"lc_{live_class.id}_{user.id}_{int(time.time())}"
        order = await self.gateway.create_order(
            to_minor_units(amount),
            settings.payment_currency,
            receipt,
            notes={
                "user_id": user.id,
                "live_class_id": live_class.id,
                "module_id": module_id,
                "subscription_type": purpose,
            },
        )
        self.db.add(
            PaymentOrder(
                gateway_order_id=order["id"],
                user_id=user.id,
                live_class_id=live_class.id,
                module_id=module_id,
                purpose=purpose,
                amount=amount,
                currency=settings.payment_currency,
                receipt=receipt[:40],
            )
        )
        self.db.commit()

        logger.info(
            f"Order {order['id']} ({purpose}, {amount} {settings.payment_currency}) "
            f"issued to user {user.id} for live class {live_class.id}"
        )
        return {
            "order_id": order["id"],
            "amount": order.get("amount", to_minor_units(amount)),
            "currency": order.get("currency", settings.payment_currency),
            "key_id": self.gateway.key_id,
        }

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def _create_provisional_registration(
        self, user_id: int, live_class_id: int, module_id: Optional[int]
    ) -> Registration:
        registration = Registration(
            user_id=user_id,
            live_class_id=live_class_id,
            module_id=module_id,
            status=reg_status.REGISTERED,
            is_registered=False,
        )
        self.db.add(registration)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent request created the row first; use theirs.
            self.db.rollback()
            logger.warning(
                f"Registration for user {user_id} / live class {live_class_id} "
                f"was created concurrently, reusing it"
            )
            registration = self._get_registration(user_id, live_class_id)
            if registration is None:
                raise ConflictError("Registration could not be created, please retry")
        return registration

    def _apply_registration(
        self,
        registration: Registration,
        live_class: LiveClass,
        module_id: Optional[int],
        payment_id: Optional[str],
    ) -> None:
        now = utcnow()

        if live_class.requires_approval:
            registration.status = reg_status.PENDING_APPROVAL
            registration.is_approved = False
        else:
            registration.status = reg_status.ACTIVE
            registration.is_approved = not live_class.requires_course_fee

        registration.is_registered = True
        registration.module_id = module_id
        registration.start_date = now
        registration.registration_payment_id = payment_id
        if payment_id:
            period_end = add_months(now, settings.subscription_period_months)
            registration.end_date = period_end
            registration.next_payment_date = period_end
        else:
            # free registrations never come up for renewal
            registration.end_date = None
            registration.next_payment_date = None

        registration.has_access_to_links = derive_link_access(
            live_class, registration, has_paid_course_fee(self.db, registration.id)
        )

    async def register(
        self, user: User, live_class_id: int, module_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Start a registration (or renewal) and issue a gateway order for the
        applicable fee. Nothing is marked paid here.
        """
        live_class = self._get_live_class(live_class_id)
        if module_id is not None:
            module = (
                self.db.query(LiveClassModule)
                .filter(
                    LiveClassModule.id == module_id,
                    LiveClassModule.live_class_id == live_class_id,
                )
                .first()
            )
            if not module:
                raise NotFoundError("Module not found")

        if not live_class.is_active or live_class.end_time <= utcnow():
            raise InvalidStateError("This live class is not open for registration")

        registration = self._get_registration(user.id, live_class_id)
        previous_registration_id = None
        if registration is not None:
            if registration.status == reg_status.REJECTED:
                raise ForbiddenError("Your registration for this class was rejected")
            if registration.is_registered and registration.status in (
                reg_status.ACTIVE,
                reg_status.PENDING_APPROVAL,
            ):
                raise ConflictError("You are already registered for this class")
            if registration.status in reg_status.RENEWABLE_STATUSES:
                previous_registration_id = registration.id

        self._check_capacity(live_class, user.id)

        if registration is None:
            registration = self._create_provisional_registration(
                user.id, live_class_id, module_id
            )

        fee = live_class.registration_fee if live_class.is_two_stage else live_class.price
        response = {
            "live_class_id": live_class_id,
            "registration_id": registration.id,
            "is_renewal": previous_registration_id is not None,
            "previous_registration_id": previous_registration_id,
        }

        if not fee or Decimal(fee) <= 0:
            self._apply_registration(registration, live_class, module_id, None)
            self.db.commit()
            self.db.refresh(registration)
            logger.info(
                f"User {user.id} registered for free live class {live_class_id} "
                f"(status {registration.status})"
            )
            await self.notifications.subscription_confirmed(
                user, live_class, include_meeting=registration.has_access_to_links
            )
            return {**response, "requires_payment": False, "registration": registration}

        purpose = (
            payment_consts.REGISTRATION
            if live_class.is_two_stage
            else payment_consts.SUBSCRIPTION
        )
        order = await self._create_order(user, live_class, purpose, Decimal(fee), module_id)
        return {**response, "requires_payment": True, "order": order}

    def _record_registration_payment(
        self, user: User, live_class: LiveClass, order: PaymentOrder, proof: PaymentProof
    ) -> Tuple[Registration, Payment]:
        registration = self._get_registration(user.id, live_class.id)
        if registration is None:
            registration = Registration(user_id=user.id, live_class_id=live_class.id)
            self.db.add(registration)
        elif registration.status == reg_status.REJECTED:
            raise ForbiddenError("Your registration for this class was rejected")
        elif registration.is_registered and registration.status in (
            reg_status.ACTIVE,
            reg_status.PENDING_APPROVAL,
        ):
            # a stale order must not reset approval or dates on a live registration
            raise ConflictError("You are already registered for this class")

        self._apply_registration(registration, live_class, order.module_id, proof.payment_id)

        payment = Payment(
            registration=registration,
            user_id=user.id,
            amount=order.amount,
            currency=order.currency,
            purpose=order.purpose,
            gateway_order_id=proof.order_id,
            gateway_payment_id=proof.payment_id,
            gateway_signature=proof.signature,
            receipt_number=self._unique_receipt_number(),
            status=payment_consts.COMPLETED,
        )
        self.db.add(payment)
        order.status = PAID
        self.db.flush()
        return registration, payment

    def _replayed_payment(
        self, proof: PaymentProof, user: User, live_class_id: int, purposes: tuple
    ) -> Optional[Tuple[Registration, Payment]]:
        payment = self._get_payment(proof.payment_id)
        if payment is None:
            return None
        registration = payment.registration
        if registration.user_id != user.id or registration.live_class_id != live_class_id:
            raise InvalidStateError("Payment belongs to a different registration")
        if payment.purpose not in purposes:
            raise InvalidStateError(f"Payment was recorded as a {payment.purpose} payment")
        logger.info(f"Payment {proof.payment_id} already recorded, returning existing state")
        return registration, payment

    async def verify_registration_payment(
        self, user: User, live_class_id: int, proof: PaymentProof
    ) -> Tuple[Registration, Payment]:
        """
        Verify a gateway proof and, in one transaction, upsert the registration,
        append the payment and close the order.
        """
        if not self.gateway.verify_signature(proof.order_id, proof.payment_id, proof.signature):
            logger.warning(
                f"Rejected payment proof {proof.payment_id} from user {user.id}: bad signature"
            )
            raise InvalidSignatureError("Payment signature verification failed")

        live_class = self._get_live_class(live_class_id)

        replay = self._replayed_payment(proof, user, live_class_id, REGISTRATION_PURPOSES)
        if replay:
            return replay

        order = self._get_order(proof, user.id, live_class_id, REGISTRATION_PURPOSES)

        try:
            registration, payment = self._record_registration_payment(
                user, live_class, order, proof
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(
                f"Concurrent verification for user {user.id} / live class {live_class_id}, "
                f"retrying as update: {e.orig}"
            )
            try:
                replay = self._replayed_payment(proof, user, live_class_id, REGISTRATION_PURPOSES)
                if replay:
                    return replay
                order = self._get_order(proof, user.id, live_class_id, REGISTRATION_PURPOSES)
                registration, payment = self._record_registration_payment(
                    user, live_class, order, proof
                )
                self.db.commit()
            except SQLAlchemyError as retry_error:
                self.db.rollback()
                logger.error(
                    f"Payment {proof.payment_id} could not be recorded after retry: {retry_error}"
                )
                raise PaymentProcessingError("Payment verification failed, please contact support")

        self.db.refresh(registration)
        self.db.refresh(payment)
        logger.info(
            f"✅ Payment {proof.payment_id} verified: user {user.id} -> live class "
            f"{live_class_id} ({registration.status}, receipt {payment.receipt_number})"
        )

        await self.notifications.subscription_confirmed(
            user, live_class, payment, include_meeting=registration.has_access_to_links
        )
        return registration, payment

    # ------------------------------------------------------------------
    # Course fee
    # ------------------------------------------------------------------
    def _require_course_fee_registration(
        self, user: User, live_class: LiveClass
    ) -> Registration:
        if not live_class.requires_course_fee:
            raise InvalidStateError("This class has no course fee")

        registration = self._get_registration(user.id, live_class.id)
        if (
            registration is None
            or not registration.is_registered
            or registration.status != reg_status.ACTIVE
        ):
            raise InvalidStateError("Complete your registration before paying the course fee")
        if not registration.is_approved:
            raise InvalidStateError("Your registration is awaiting admin approval")
        return registration

    async def pay_course_access(self, user: User, live_class_id: int) -> Dict[str, Any]:
        live_class = self._get_live_class(live_class_id)
        registration = self._require_course_fee_registration(user, live_class)

        if registration.has_access_to_links:
            return {"live_class_id": live_class_id, "already_has_access": True}

        if not live_class.course_fee or Decimal(live_class.course_fee) <= 0:
            raise InvalidStateError("Course fee amount is not configured")

        order = await self._create_order(
            user,
            live_class,
            payment_consts.COURSE_FEE,
            Decimal(live_class.course_fee),
            registration.module_id,
        )
        return {"live_class_id": live_class_id, "already_has_access": False, "order": order}

    async def verify_course_payment(
        self, user: User, live_class_id: int, proof: PaymentProof
    ) -> Tuple[Registration, Payment]:
        if not self.gateway.verify_signature(proof.order_id, proof.payment_id, proof.signature):
            logger.warning(
                f"Rejected course fee proof {proof.payment_id} from user {user.id}: bad signature"
            )
            raise InvalidSignatureError("Payment signature verification failed")

        live_class = self._get_live_class(live_class_id)

        replay = self._replayed_payment(proof, user, live_class_id, COURSE_FEE_PURPOSES)
        if replay:
            return replay

        order = self._get_order(proof, user.id, live_class_id, COURSE_FEE_PURPOSES)
        registration = self._get_registration(user.id, live_class_id)
        if registration is None or not registration.is_registered:
            raise InvalidStateError("Complete your registration before paying the course fee")

        payment = Payment(
            registration_id=registration.id,
            user_id=user.id,
            amount=order.amount,
            currency=order.currency,
            purpose=payment_consts.COURSE_FEE,
            gateway_order_id=proof.order_id,
            gateway_payment_id=proof.payment_id,
            gateway_signature=proof.signature,
            receipt_number=self._unique_receipt_number(),
            status=payment_consts.COMPLETED,
        )
        try:
            self.db.add(payment)
            order.status = PAID
            self.db.flush()
            registration.has_access_to_links = derive_link_access(
                live_class, registration, True
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            replay = self._replayed_payment(proof, user, live_class_id, COURSE_FEE_PURPOSES)
            if replay:
                return replay
            logger.error(f"Course fee payment {proof.payment_id} could not be recorded: {e.orig}")
            raise PaymentProcessingError("Payment verification failed, please contact support")

        self.db.refresh(registration)
        self.db.refresh(payment)
        logger.info(
            f"✅ Course fee {proof.payment_id} verified for user {user.id} on live class "
            f"{live_class_id} (access: {registration.has_access_to_links})"
        )

        await self.notifications.course_access_confirmed(user, live_class, payment)
        return registration, payment

    # ------------------------------------------------------------------
    # Admin actions
    # ------------------------------------------------------------------
    def _registrations_by_user(
        self, live_class_id: int, user_ids: List[int]
    ) -> Dict[int, Registration]:
        rows = (
            self.db.query(Registration)
            .filter(
                Registration.live_class_id == live_class_id,
                Registration.user_id.in_(user_ids),
            )
            .all()
        )
        return {row.user_id: row for row in rows}

    def approve_registrations(
        self, live_class_id: int, user_ids: List[int]
    ) -> Dict[str, List[int]]:
        """Approve registered users; a course-fee class still needs its fee paid."""
        live_class = self._get_live_class(live_class_id)
        registrations = self._registrations_by_user(live_class_id, user_ids)

        updated, skipped = [], []
        for user_id in dict.fromkeys(user_ids):
            registration = registrations.get(user_id)
            if (
                registration is None
                or not registration.is_registered
                or registration.status
                not in (reg_status.PENDING_APPROVAL, reg_status.ACTIVE)
            ):
                skipped.append(user_id)
                continue

            registration.status = reg_status.ACTIVE
            registration.is_approved = True
            registration.has_access_to_links = derive_link_access(
                live_class, registration, has_paid_course_fee(self.db, registration.id)
            )
            updated.append(user_id)

        self.db.commit()
        logger.info(f"Live class {live_class_id}: approved {updated}, skipped {skipped}")
        return {"updated": updated, "skipped": skipped}

    def reject_registrations(
        self, live_class_id: int, user_ids: List[int]
    ) -> Dict[str, List[int]]:
        self._get_live_class(live_class_id)
        registrations = self._registrations_by_user(live_class_id, user_ids)

        updated, skipped = [], []
        for user_id in dict.fromkeys(user_ids):
            registration = registrations.get(user_id)
            if registration is None or registration.status != reg_status.PENDING_APPROVAL:
                skipped.append(user_id)
                continue

            registration.status = reg_status.REJECTED
            registration.is_approved = False
            registration.has_access_to_links = False
            updated.append(user_id)

        self.db.commit()
        logger.info(f"Live class {live_class_id}: rejected {updated}, skipped {skipped}")
        return {"updated": updated, "skipped": skipped}

    def remove_access(
        self, live_class_id: int, user_ids: List[int]
    ) -> Dict[str, List[int]]:
        self._get_live_class(live_class_id)
        registrations = self._registrations_by_user(live_class_id, user_ids)

        updated, skipped = [], []
        for user_id in dict.fromkeys(user_ids):
            registration = registrations.get(user_id)
            if registration is None:
                skipped.append(user_id)
                continue

            registration.is_approved = False
            registration.has_access_to_links = False
            updated.append(user_id)

        self.db.commit()
        logger.info(f"Live class {live_class_id}: access removed for {updated}, skipped {skipped}")
        return {"updated": updated, "skipped": skipped}

    def toggle_course_fee(self, live_class_id: int, enabled: bool) -> Dict[str, Any]:
        """Flip the course fee and re-derive link access for every registration."""
        live_class = self._get_live_class(live_class_id)
        if not live_class.is_two_stage:
            raise InvalidStateError("Course fees only apply to two-stage classes")

        live_class.course_fee_enabled = enabled

        changed = 0
        for registration in live_class.registrations:
            access = derive_link_access(
                live_class, registration, has_paid_course_fee(self.db, registration.id)
            )
            if access != registration.has_access_to_links:
                registration.has_access_to_links = access
                changed += 1

        self.db.commit()
        logger.info(
            f"Live class {live_class_id}: course fee {'enabled' if enabled else 'disabled'}, "
            f"{changed} registration(s) reconciled"
        )
        return {
            "live_class_id": live_class_id,
            "course_fee_enabled": enabled,
            "registrations_updated": changed,
        }

    async def cancel_subscription(
        self,
        registration_id: int,
        user: Optional[User] = None,
        admin: Optional[Admin] = None,
    ) -> Registration:
        """Cancel a registration. The row is kept so it can be renewed later."""
        registration = (
            self.db.query(Registration)
            .options(joinedload(Registration.user), joinedload(Registration.live_class))
            .filter(Registration.id == registration_id)
            .first()
        )
        if not registration:
            raise NotFoundError("Subscription not found")
        if admin is None and (user is None or registration.user_id != user.id):
            raise ForbiddenError("You can only cancel your own subscription")

        if registration.status == reg_status.CANCELLED:
            return registration
        if registration.status == reg_status.REJECTED:
            # cancelling would reopen registration for a rejected user
            raise InvalidStateError("A rejected registration cannot be cancelled")

        registration.status = reg_status.CANCELLED
        registration.is_approved = False
        registration.has_access_to_links = False
        registration.end_date = utcnow()
        registration.next_payment_date = None
        self.db.commit()
        self.db.refresh(registration)

        actor = f"admin {admin.id}" if admin else f"user {registration.user_id}"
        logger.info(f"Registration {registration_id} cancelled by {actor}")

        if admin is not None:
            await self.notifications.subscription_cancelled(
                registration.user, registration.live_class
            )
        return registration

    # ------------------------------------------------------------------
    # Renewal sweep
    # ------------------------------------------------------------------
    async def process_renewals(self, now=None) -> Dict[str, Any]:
        """
        Expire flat-price subscriptions whose next payment date has passed.

        Each row is claimed with a conditional update, so overlapping sweeps
        expire a row exactly once.
        """
        now = now or utcnow()
        due = (
            self.db.query(Registration)
            .join(LiveClass, Registration.live_class_id == LiveClass.id)
            .options(joinedload(Registration.user), joinedload(Registration.live_class))
            .filter(
                Registration.status == reg_status.ACTIVE,
                LiveClass.pricing_model == FLAT,
                Registration.next_payment_date.isnot(None),
                Registration.next_payment_date <= now,
            )
            .all()
        )

        processed, failed, details = 0, 0, []
        for registration in due:
            detail = {
                "registration_id": registration.id,
                "user_id": registration.user_id,
                "live_class_id": registration.live_class_id,
            }
            try:
                claimed = (
                    self.db.query(Registration)
                    .filter(
                        Registration.id == registration.id,
                        Registration.status == reg_status.ACTIVE,
                    )
                    .update(
                        {
                            Registration.status: reg_status.EXPIRED,
                            Registration.end_date: now,
                            Registration.has_access_to_links: False,
                        },
                        synchronize_session=False,
                    )
                )
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                failed += 1
                details.append({**detail, "status": "FAILED", "error": str(e)})
                logger.error(f"Failed to expire registration {registration.id}: {e}")
                continue

            if not claimed:
                continue

            processed += 1
            details.append({**detail, "status": reg_status.EXPIRED})
            logger.info(f"Registration {registration.id} expired (user {registration.user_id})")

            self.db.refresh(registration)
            await self.notifications.subscription_expired(
                registration.user, registration.live_class
            )

        logger.info(f"Renewal sweep finished: {processed} expired, {failed} failed")
        return {"processed": processed, "failed": failed, "details": details}
