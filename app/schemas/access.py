# app/schemas/access.py
from typing import Literal, Optional

from pydantic import BaseModel

from app.schemas.live_class import LiveClassResponse

AccessState = Literal[
    "NOT_REGISTERED", "PENDING_APPROVAL", "AWAITING_COURSE_FEE", "FULL_ACCESS"
]


class MeetingDetails(BaseModel):
    join_link: Optional[str] = None
    meeting_id: Optional[str] = None
    password: Optional[str] = None


class AccessResult(BaseModel):
    """The single answer to "can this user join, and with what credentials"."""

    live_class_id: int
    module_id: Optional[int] = None
    state: AccessState
    is_subscribed: bool = False
    is_pending: bool = False
    is_registered: bool = False
    is_approved: bool = False
    has_access_to_links: bool = False
    is_free_module: bool = False
    registration_id: Optional[int] = None
    status: Optional[str] = None
    meeting_details: Optional[MeetingDetails] = None


class LiveClassDetailResponse(LiveClassResponse):
    access: Optional[AccessResult] = None
