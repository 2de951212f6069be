import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from jose import JWTError, jwt

from learnhub.core.config import Settings
from learnhub.models.user import User

logger = logging.getLogger(__name__)


def password_fingerprint(user: User) -> str:
    digest = hashlib.sha256((user.hashed_password or "").encode("utf-8"))
    return digest.hexdigest()[:16]


class JWTManager:
    """JWT token management for authentication"""

    def __init__(self, settings: Settings):
        self.secret_key = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.user_token_expire = timedelta(days=settings.jwt_user_expiration)
        self.reset_token_expire = timedelta(
            minutes=settings.password_reset_expiration_minutes
        )
        self.issuer = settings.jwt_issuer

    def create_access_token(
        self,
        user: User,
        custom_expiration: Optional[timedelta] = None,
    ) -> str:
        """
        Create JWT access token for user

        Args:
            user: User model instance
            custom_expiration: Override default expiration

        Returns:
            JWT access token string
        """
        now = datetime.now(timezone.utc)
        expire = now + (custom_expiration or self.user_token_expire)

        payload = {
            "sub": str(user.id),
            "user_id": user.id,
            "email": user.email,
            "admin": bool(user.is_admin),
            "exp": int(expire.timestamp()),
            "iat": int(now.timestamp()),
            "iss": self.issuer,
            "type": "access",
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.info(f"Access token created for user: {user.id}")
        return token

    def create_reset_token(self, user: User, purpose: str = "password_reset") -> str:
        """
        Create special purpose token (password reset).

        The token carries a fingerprint of the current password hash, so it
        stops working as soon as the password changes.
        """
        now = datetime.now(timezone.utc)
        expire = now + self.reset_token_expire

        payload = {
            "sub": str(user.id),
            "user_id": user.id,
            "purpose": purpose,
            "pwd": password_fingerprint(user),
            "exp": int(expire.timestamp()),
            "iat": int(now.timestamp()),
            "iss": self.issuer,
            "type": "special",
        }
        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.info(f"Special token created for user: {user.id}, purpose: {purpose}")
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

        # Verify token type (check 'type' field)
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

    def verify_reset_token(self, token: str, expected_purpose: str) -> Dict[str, Any]:
        """
        Verify special purpose token

        Args:
            token: JWT token string
            expected_purpose: Expected token purpose

        Returns:
            Decoded token payload
        """
        payload = self.verify_token(token, "special")

        if payload.get("purpose") != expected_purpose:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token purpose",
            )

        return payload
