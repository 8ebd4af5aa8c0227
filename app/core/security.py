# core/security.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from jose import JWTError, jwt

from app.core.config import settings
from app.models.admin import Admin
from app.models.user import User

logger = logging.getLogger(__name__)


class JWTManager:
    """JWT token management for authentication"""

    def __init__(self):
        self.secret_key = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.user_token_expire = timedelta(days=settings.jwt_user_expiration)
        self.admin_token_expire = timedelta(days=settings.jwt_admin_expiration)
        self.issuer = settings.jwt_issuer

    def _encode(self, payload: Dict[str, Any], expires_in: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **payload,
            "exp": int((now + expires_in).timestamp()),
            "iat": int(now.timestamp()),
            "iss": self.issuer,
            "type": "access",
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def create_access_token(
        self, user: User, custom_expiration: Optional[timedelta] = None
    ) -> str:
        """
        Create JWT access token for a user.

        The auth service owns login; this mirrors its token layout so that
        internal tools and tests can mint compatible tokens.
        """
        token = self._encode(
            {"sub": str(user.id), "user_id": user.id, "role": "user", "email": user.email},
            custom_expiration or self.user_token_expire,
        )
        logger.info(f"Access token created for user: {user.id}")
        return token

    def create_admin_token(
        self, admin: Admin, custom_expiration: Optional[timedelta] = None
    ) -> str:
        """Create JWT access token for an admin."""
        token = self._encode(
            {"sub": str(admin.id), "admin_id": admin.id, "role": "admin"},
            custom_expiration or self.admin_token_expire,
        )
        logger.info(f"Access token created for admin: {admin.id}")
        return token

    def verify_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Verify and decode JWT token
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": True},
            )
        except JWTError as e:
            logger.warning(f"JWT verification failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
                headers={"WWW-Authenticate": "Bearer"},
            )

        # Verify token type (check 'type' field, not 'role')
        if payload.get("type") != token_type:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid token type. Expected {token_type}",
            )

        if payload.get("iss") != self.issuer:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token issuer",
            )

        return payload


# Global instance
jwt_manager = JWTManager()
