# app/services/access.py
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.exceptions import NotFoundError
from app.models import registration as reg_status
from app.models.live_class import LiveClass
from app.models.live_class_module import LiveClassModule
from app.models.registration import Registration
from app.models.user import User
from app.schemas.access import AccessResult, MeetingDetails
from app.schemas.live_class import LiveClassResponse
from app.utils.time import duration_minutes, utcnow

logger = logging.getLogger(__name__)

NOT_REGISTERED = "NOT_REGISTERED"
PENDING_APPROVAL = "PENDING_APPROVAL"
AWAITING_COURSE_FEE = "AWAITING_COURSE_FEE"
FULL_ACCESS = "FULL_ACCESS"


def is_free_module(live_class: LiveClass, module: LiveClassModule) -> bool:
    if module.is_free:
        return True
    if not live_class.is_first_module_free or not live_class.modules:
        return False
    first = min(live_class.modules, key=lambda m: (m.position, m.id))
    return first.id == module.id


def meeting_details(
    live_class: LiveClass, module: Optional[LiveClassModule] = None
) -> MeetingDetails:
    source = module if module is not None and module.zoom_link else live_class
    return MeetingDetails(
        join_link=source.zoom_link,
        meeting_id=source.zoom_meeting_id,
        password=source.zoom_password,
    )


def compute_access(
    live_class: LiveClass,
    registration: Optional[Registration],
    module: Optional[LiveClassModule] = None,
    now=None,
) -> AccessResult:
    """
    Derive the caller's entitlement for a class (or one of its modules).

    Meeting details are attached only to FULL_ACCESS results.
    """
    now = now or utcnow()
    base = {
        "live_class_id": live_class.id,
        "module_id": module.id if module is not None else None,
    }
    if registration is not None:
        base.update(
            registration_id=registration.id,
            status=registration.status,
            is_registered=registration.is_registered,
            is_approved=registration.is_approved,
        )

    if module is not None and is_free_module(live_class, module):
        return AccessResult(
            **base,
            state=FULL_ACCESS,
            is_free_module=True,
            has_access_to_links=True,
            meeting_details=meeting_details(live_class, module),
        )

    if (
        registration is None
        or not registration.is_registered
        or registration.status not in (reg_status.ACTIVE, reg_status.PENDING_APPROVAL)
    ):
        return AccessResult(**base, state=NOT_REGISTERED)

    # a module-scoped registration covers that module only
    if (
        module is not None
        and registration.module_id is not None
        and registration.module_id != module.id
    ):
        return AccessResult(**base, state=NOT_REGISTERED)

    if (
        not live_class.is_two_stage
        and registration.end_date is not None
        and registration.end_date < now
    ):
        return AccessResult(**base, state=NOT_REGISTERED)

    if registration.status == reg_status.ACTIVE and registration.has_access_to_links:
        scoped_module = module if module is not None else registration.module
        return AccessResult(
            **base,
            state=FULL_ACCESS,
            is_subscribed=True,
            has_access_to_links=True,
            meeting_details=meeting_details(live_class, scoped_module),
        )

    if (
        registration.status == reg_status.ACTIVE
        and registration.is_approved
        and live_class.requires_course_fee
    ):
        return AccessResult(**base, state=AWAITING_COURSE_FEE, is_subscribed=True)

    return AccessResult(
        **base,
        state=PENDING_APPROVAL,
        is_subscribed=registration.status == reg_status.ACTIVE,
        is_pending=True,
    )


class AccessService:
    """Read-only entitlement queries used by the join flow and class pages."""

    def __init__(self, db: Session):
        self.db = db

    def _get_live_class(self, live_class_id: int) -> LiveClass:
        live_class = (
            self.db.query(LiveClass)
            .options(selectinload(LiveClass.modules))
            .filter(LiveClass.id == live_class_id)
            .first()
        )
        if not live_class:
            raise NotFoundError("Live class not found")
        return live_class

    def _get_registration(self, user_id: int, live_class_id: int) -> Optional[Registration]:
        return (
            self.db.query(Registration)
            .filter(
                Registration.user_id == user_id,
                Registration.live_class_id == live_class_id,
            )
            .first()
        )

    def check_access(
        self, user: User, live_class_id: int, module_id: Optional[int] = None
    ) -> AccessResult:
        live_class = self._get_live_class(live_class_id)

        module = None
        if module_id is not None:
            module = next((m for m in live_class.modules if m.id == module_id), None)
            if module is None:
                raise NotFoundError("Module not found")

        registration = self._get_registration(user.id, live_class_id)
        return compute_access(live_class, registration, module)

    def get_live_class_detail(
        self, live_class_id: int, user: Optional[User] = None
    ) -> Dict[str, Any]:
        """Class metadata merged with the caller's access (None for anonymous)."""
        live_class = self._get_live_class(live_class_id)

        detail = LiveClassResponse.model_validate(live_class).model_dump()
        detail["access"] = None
        if user is not None:
            registration = self._get_registration(user.id, live_class_id)
            detail["access"] = compute_access(live_class, registration)
        return detail

    def get_my_subscriptions(
        self, user: User, include_all: bool = False
    ) -> List[Dict[str, Any]]:
        """
        The caller's registrations with display fields denormalized.

        By default only upcoming classes that are still active are listed.
        """
        now = utcnow()
        query = (
            self.db.query(Registration)
            .join(LiveClass, Registration.live_class_id == LiveClass.id)
            .options(
                joinedload(Registration.live_class).selectinload(LiveClass.modules),
                joinedload(Registration.live_class).joinedload(LiveClass.creator),
                joinedload(Registration.module),
            )
            .filter(
                Registration.user_id == user.id,
                Registration.status != reg_status.REGISTERED,
            )
        )
        if not include_all:
            query = query.filter(LiveClass.is_active == True, LiveClass.end_time >= now)

        items = []
        for registration in query.order_by(LiveClass.start_time.asc()).all():
            live_class = registration.live_class
            module = registration.module
            start_time = module.start_time if module else live_class.start_time
            end_time = module.end_time if module else live_class.end_time

            items.append(
                {
                    "registration_id": registration.id,
                    "live_class_id": live_class.id,
                    "module_id": registration.module_id,
                    "title": live_class.title,
                    "description": live_class.description,
                    "thumbnail_url": live_class.thumbnail_url,
                    "module_title": module.title if module else None,
                    "teacher_name": live_class.creator.name if live_class.creator else None,
                    "date": start_time.strftime("%d %b %Y"),
                    "time": f"{start_time.strftime('%I:%M %p')} - {end_time.strftime('%I:%M %p')}",
                    "start_time": start_time,
                    "end_time": end_time,
                    "duration_minutes": duration_minutes(start_time, end_time),
                    "status": registration.status,
                    "next_payment_date": registration.next_payment_date,
                    "access": compute_access(live_class, registration, module, now),
                }
            )
        return items
