# app/services/live_class.py
import logging
import math
from typing import List, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.decorator import db_exception
from app.core.exceptions import InvalidStateError, NotFoundError
from app.models.live_class import LiveClass
from app.models.live_class_module import LiveClassModule
from app.models.payment_order import PaymentOrder
from app.schemas.live_class import (
    LiveClassCreate,
    LiveClassModuleCreate,
    LiveClassUpdate,
)
from app.utils.file_upload import FileUploadService
from app.utils.time import to_naive_utc, utcnow
from app.utils.zoom_service import ZoomMeetingService

logger = logging.getLogger(__name__)


def _validate_window(start_time, end_time):
    if end_time <= start_time:
        raise InvalidStateError("End time must be after start time")


class LiveClassService:
    def __init__(
        self,
        db: Session,
        meetings: Optional[ZoomMeetingService] = None,
        files: Optional[FileUploadService] = None,
    ):
        self.db = db
        self.meetings = meetings
        self.files = files

    def get_live_class(self, live_class_id: int) -> LiveClass:
        live_class = (
            self.db.query(LiveClass)
            .options(selectinload(LiveClass.modules))
            .filter(LiveClass.id == live_class_id)
            .first()
        )
        if not live_class:
            raise NotFoundError("Live class not found")
        return live_class

    def get_module(self, live_class_id: int, module_id: int) -> LiveClassModule:
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
        return module

    async def create_live_class(
        self, class_in: LiveClassCreate, admin_id: int
    ) -> LiveClass:
        """
        Create a live class and provision its meeting room.

        The meeting is created before anything is written, so a provider
        failure leaves no half-created class behind.
        """
        data = class_in.model_dump()
        data["start_time"] = to_naive_utc(data["start_time"])
        data["end_time"] = to_naive_utc(data["end_time"])
        _validate_window(data["start_time"], data["end_time"])

        meeting = await self.meetings.create_meeting(
            data["title"], data["start_time"], data["end_time"]
        )

        live_class = LiveClass(
            **data,
            zoom_link=meeting["join_link"],
            zoom_meeting_id=meeting["meeting_id"],
            zoom_password=meeting["password"],
            created_by=admin_id,
        )
        self.db.add(live_class)
        self.db.commit()
        self.db.refresh(live_class)

        logger.info(f"Live class {live_class.id} '{live_class.title}' created by admin {admin_id}")
        return live_class

    def get_live_classes(
        self,
        page: int = 1,
        size: int = 20,
        active_only: bool = True,
        upcoming_only: bool = False,
        search: Optional[str] = None,
    ) -> Tuple[List[LiveClass], dict]:
        """Get list of live classes with pagination and filters"""
        query = self.db.query(LiveClass).options(selectinload(LiveClass.modules))

        if active_only:
            query = query.filter(LiveClass.is_active == True)

        if upcoming_only:
            query = query.filter(LiveClass.end_time > utcnow())

        if search:
            search_pattern = f"%{search}%"
            query = query.filter(
                (LiveClass.title.ilike(search_pattern))
                | (LiveClass.description.ilike(search_pattern))
            )

        total = query.count()

        offset = (page - 1) * size
        live_classes = (
            query.order_by(LiveClass.start_time.asc()).offset(offset).limit(size).all()
        )

        total_pages = math.ceil(total / size) if size > 0 else 0
        pagination = {
            "total": total,
            "page": page,
            "size": size,
            "total_pages": total_pages,
        }

        return live_classes, pagination

    @db_exception
    def update_live_class(
        self, live_class_id: int, class_in: LiveClassUpdate
    ) -> LiveClass:
        """Update class details. Meeting credentials are never re-provisioned."""
        live_class = self.get_live_class(live_class_id)
        changes = class_in.model_dump(exclude_unset=True)

        for field in ("start_time", "end_time"):
            if changes.get(field) is not None:
                changes[field] = to_naive_utc(changes[field])

        _validate_window(
            changes.get("start_time") or live_class.start_time,
            changes.get("end_time") or live_class.end_time,
        )

        for field, value in changes.items():
            if value is None and field not in ("description", "capacity", "recurring_class"):
                continue
            setattr(live_class, field, value)

        self.db.commit()
        self.db.refresh(live_class)

        logger.info(f"Live class {live_class_id} updated: {sorted(changes)}")
        return live_class

    @db_exception
    def delete_live_class(self, live_class_id: int) -> bool:
        """Delete a class with its modules, registrations, orders and payments."""
        live_class = self.get_live_class(live_class_id)
        thumbnail = live_class.thumbnail_url

        self.db.query(PaymentOrder).filter(
            PaymentOrder.live_class_id == live_class_id
        ).delete(synchronize_session=False)
        self.db.delete(live_class)
        self.db.commit()

        if thumbnail and self.files:
            self.files.delete_image(thumbnail)

        logger.info(f"Live class {live_class_id} deleted")
        return True

    async def upload_thumbnail(
        self, live_class_id: int, image_file: UploadFile
    ) -> LiveClass:
        live_class = self.get_live_class(live_class_id)
        previous = live_class.thumbnail_url

        _, relative_path = await self.files.save_image(image_file, folder="live_classes")

        live_class.thumbnail_url = relative_path
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            self.files.delete_image(relative_path)
            raise

        if previous:
            self.files.delete_image(previous)

        self.db.refresh(live_class)
        return live_class

    async def add_module(
        self, live_class_id: int, module_in: LiveClassModuleCreate
    ) -> LiveClassModule:
        """Append a module to a class; each module gets its own meeting room."""
        live_class = self.get_live_class(live_class_id)

        start_time = to_naive_utc(module_in.start_time)
        end_time = to_naive_utc(module_in.end_time)
        _validate_window(start_time, end_time)

        position = module_in.position
        if position is None:
            last = (
                self.db.query(func.max(LiveClassModule.position))
                .filter(LiveClassModule.live_class_id == live_class_id)
                .scalar()
            )
            position = 0 if last is None else last + 1

        meeting = await self.meetings.create_meeting(
            f"{live_class.title} - {module_in.title}", start_time, end_time
        )

        module = LiveClassModule(
            live_class_id=live_class_id,
            title=module_in.title,
            description=module_in.description,
            start_time=start_time,
            end_time=end_time,
            position=position,
            is_free=module_in.is_free,
            zoom_link=meeting["join_link"],
            zoom_meeting_id=meeting["meeting_id"],
            zoom_password=meeting["password"],
        )
        live_class.has_modules = True
        self.db.add(module)
        self.db.commit()
        self.db.refresh(module)

        logger.info(f"Module {module.id} added to live class {live_class_id} at position {position}")
        return module
