# app/routers/live_class.py
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import (
    get_current_admin,
    get_file_upload_service,
    get_meeting_service,
    get_optional_user,
)
from app.models.admin import Admin
from app.models.user import User
from app.schemas.access import LiveClassDetailResponse
from app.schemas.live_class import (
    LiveClassCreate,
    LiveClassListResponse,
    LiveClassModuleCreate,
    LiveClassModuleResponse,
    LiveClassResponse,
    LiveClassUpdate,
    ToggleCourseFeeRequest,
    ToggleCourseFeeResponse,
)
from app.services.access import AccessService
from app.services.entitlement import EntitlementService
from app.services.live_class import LiveClassService
from app.utils.file_upload import FileUploadService
from app.utils.zoom_service import ZoomMeetingService

router = APIRouter(
    prefix="/live-classes",
    tags=["Live Classes"],
    responses={404: {"description": "Not found"}},
)


# ==================== Live Class Endpoints ====================


@router.post("/", response_model=LiveClassResponse, status_code=201)
async def create_live_class(
    class_in: LiveClassCreate,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
    meetings: ZoomMeetingService = Depends(get_meeting_service),
):
    """
    Create a new live class and provision its meeting room.
    Only admins can create live classes.
    """
    service = LiveClassService(db, meetings=meetings)
    return await service.create_live_class(class_in, current_admin.id)


@router.get("/", response_model=LiveClassListResponse)
def list_live_classes(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    active_only: bool = Query(True, description="Only classes open for registration"),
    upcoming_only: bool = Query(False, description="Only classes that have not ended"),
    search: Optional[str] = Query(None, description="Search by title or description"),
    db: Session = Depends(get_db),
):
    """
    Get list of live classes with pagination and filters.
    Available to all users (authenticated or not).
    """
    service = LiveClassService(db)
    live_classes, pagination = service.get_live_classes(
        page=page,
        size=size,
        active_only=active_only,
        upcoming_only=upcoming_only,
        search=search,
    )
    return {"live_classes": live_classes, **pagination}


@router.get("/{live_class_id}", response_model=LiveClassDetailResponse)
def get_live_class(
    live_class_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """
    Get a live class by ID, merged with the caller's access state.
    Anonymous callers get `access: null`.
    """
    return AccessService(db).get_live_class_detail(live_class_id, current_user)


@router.patch("/{live_class_id}", response_model=LiveClassResponse)
def update_live_class(
    live_class_id: int,
    class_in: LiveClassUpdate,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
):
    """
    Update a live class. Meeting credentials are left untouched.
    Only admins can update live classes.
    """
    return LiveClassService(db).update_live_class(live_class_id, class_in)


@router.delete("/{live_class_id}", status_code=204)
def delete_live_class(
    live_class_id: int,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
    files: FileUploadService = Depends(get_file_upload_service),
):
    """
    Delete a live class with its modules, registrations and payments.
    Only admins can delete live classes.
    """
    LiveClassService(db, files=files).delete_live_class(live_class_id)
    return None


@router.post("/{live_class_id}/upload-thumbnail", response_model=LiveClassResponse)
async def upload_thumbnail(
    live_class_id: int,
    image: UploadFile = File(..., description="Thumbnail image"),
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
    files: FileUploadService = Depends(get_file_upload_service),
):
    """
    Upload or replace the class thumbnail. The previous file is removed.
    """
    service = LiveClassService(db, files=files)
    return await service.upload_thumbnail(live_class_id, image)


@router.post(
    "/{live_class_id}/modules", response_model=LiveClassModuleResponse, status_code=201
)
async def add_module(
    live_class_id: int,
    module_in: LiveClassModuleCreate,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
    meetings: ZoomMeetingService = Depends(get_meeting_service),
):
    """
    Add a module to a live class. Each module gets its own meeting room.
    """
    service = LiveClassService(db, meetings=meetings)
    return await service.add_module(live_class_id, module_in)


@router.post("/{live_class_id}/toggle-course-fee", response_model=ToggleCourseFeeResponse)
def toggle_course_fee(
    live_class_id: int,
    body: ToggleCourseFeeRequest,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
):
    """
    Enable or disable the course fee and reconcile link access for every
    registration of the class.
    """
    return EntitlementService(db).toggle_course_fee(live_class_id, body.enabled)
