# learnhub/services/auth.py
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from learnhub.core.exceptions import ConflictError, db_exception
from learnhub.core.hasher import PasswordHelper
from learnhub.core.security import JWTManager, password_fingerprint
from learnhub.models.user import User
from learnhub.schemas.auth import (
    AuthResponse,
    LoginRequest,
    ResetPasswordRequest,
    UserRegistrationRequest,
    UserResponse,
)

logger = logging.getLogger(__name__)

RESET_PURPOSE = "password_reset"


class AuthService:
    def __init__(self, db: Session, jwt_manager: JWTManager, hash_rounds: int = 12):
        self.db = db
        self.jwt_manager = jwt_manager
        self.hash_rounds = hash_rounds

    def get_user_by_email(self, email: str) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(func.lower(User.email) == email.strip().lower())
            .first()
        )

    @db_exception
    def register_user(self, request: UserRegistrationRequest) -> AuthResponse:
        if self.get_user_by_email(request.email):
            raise ConflictError("Email already registered")

        user = User(
            email=request.email.strip().lower(),
            full_name=request.full_name,
            hashed_password=PasswordHelper.hash_password(
                request.password, rounds=self.hash_rounds
            ),
            last_login=datetime.now(timezone.utc),
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User registered: {user.id}")
        return self._auth_response(user)

    def login(self, request: LoginRequest) -> AuthResponse:
        user = self.get_user_by_email(request.email)
        if not user or not PasswordHelper.check_password(
            request.password, user.hashed_password
        ):
            logger.warning(f"Failed login attempt for {request.email}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user"
            )

        user.last_login = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User logged in: {user.id}")
        return self._auth_response(user)

    def create_password_reset_token(self, email: str) -> Optional[tuple]:
        """(user, token) for an active account, None otherwise."""
        user = self.get_user_by_email(email)
        if not user or not user.is_active:
            logger.info(f"Password reset requested for unknown account {email}")
            return None
        return user, self.jwt_manager.create_reset_token(user, RESET_PURPOSE)

    @db_exception
    def reset_password(self, request: ResetPasswordRequest) -> None:
        payload = self.jwt_manager.verify_reset_token(request.token, RESET_PURPOSE)
        user = self.db.query(User).filter(User.id == payload.get("user_id")).first()

        # A token is single use: the fingerprint changes with the password
        if not user or payload.get("pwd") != password_fingerprint(user):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired reset token",
            )

        user.hashed_password = PasswordHelper.hash_password(
            request.new_password, rounds=self.hash_rounds
        )
        self.db.commit()
        logger.info(f"Password reset for user: {user.id}")

    def _auth_response(self, user: User) -> AuthResponse:
        return AuthResponse(
            access_token=self.jwt_manager.create_access_token(user),
            user=UserResponse.model_validate(user),
        )
