import logging
from typing import Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import jwt_manager
from app.models.admin import Admin
from app.models.user import User
from app.utils.file_upload import FileUploadService, file_upload_service
from app.utils.mail_service import MailService, mail_service
from app.utils.payment_gateway import RazorpayGateway, payment_gateway
from app.utils.zoom_service import ZoomMeetingService, zoom_service

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency that requires a valid Bearer token and returns the active user.
    Raises 401 Unauthorized if the token is missing, invalid, or the user is not found.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = jwt_manager.verify_token(credentials.credentials, "access")

    if "user_id" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: Not a valid user token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == payload.get("user_id")).first()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user"
        )

    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Returns a user if a valid user token is provided, or None otherwise.
    Admin tokens and invalid tokens are treated as anonymous.
    """
    if not credentials:
        return None

    try:
        payload = jwt_manager.verify_token(credentials.credentials, "access")
    except HTTPException:
        return None

    if "user_id" not in payload:
        return None

    user = db.query(User).filter(User.id == payload.get("user_id")).first()
    if not user or not user.is_active:
        return None

    return user


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Security(security),
    db: Session = Depends(get_db),
) -> Admin:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = jwt_manager.verify_token(credentials.credentials, "access")

    if payload.get("role") != "admin" or "admin_id" not in payload:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required"
        )

    admin = db.query(Admin).filter(Admin.id == payload.get("admin_id")).first()

    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin not found"
        )
    if not admin.is_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin account is not verified",
        )

    return admin


async def get_optional_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    db: Session = Depends(get_db),
) -> Optional[Admin]:
    """Returns the admin behind an admin token, or None for any other caller."""
    if not credentials:
        return None

    try:
        payload = jwt_manager.verify_token(credentials.credentials, "access")
    except HTTPException:
        return None

    if payload.get("role") != "admin" or "admin_id" not in payload:
        return None

    admin = db.query(Admin).filter(Admin.id == payload.get("admin_id")).first()
    if not admin or not admin.is_verified:
        return None

    return admin


# ---------------------------------------------------------------------------
# External collaborators (overridden in tests through app.dependency_overrides)
# ---------------------------------------------------------------------------
def get_payment_gateway() -> RazorpayGateway:
    return payment_gateway


def get_meeting_service() -> ZoomMeetingService:
    return zoom_service


def get_mail_service() -> MailService:
    return mail_service


def get_file_upload_service() -> FileUploadService:
    return file_upload_service
