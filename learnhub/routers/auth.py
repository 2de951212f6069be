# learnhub/routers/auth.py
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends

from learnhub.core.dependencies import (
    get_auth_service,
    get_current_user,
    get_notification_service,
)
from learnhub.models.user import User
from learnhub.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    UserRegistrationRequest,
    UserResponse,
)
from learnhub.services.auth import AuthService
from learnhub.services.notification import NotificationService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=201)
def register_user(
    request: UserRegistrationRequest,
    background_tasks: BackgroundTasks,
    auth_service: AuthService = Depends(get_auth_service),
    notifier: NotificationService = Depends(get_notification_service),
) -> AuthResponse:
    """Create an account and send the welcome email (best-effort)."""
    response = auth_service.register_user(request)
    background_tasks.add_task(
        notifier.send_welcome, response.user.email, response.user.display_name
    )
    return response


@router.post("/login", response_model=AuthResponse)
def login(
    request: LoginRequest, auth_service: AuthService = Depends(get_auth_service)
) -> AuthResponse:
    return auth_service.login(request)


@router.get("/me", response_model=UserResponse)
def get_me(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    return current_user


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    request: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    auth_service: AuthService = Depends(get_auth_service),
    notifier: NotificationService = Depends(get_notification_service),
) -> MessageResponse:
    """Email a reset link. The answer is the same whether or not the account exists."""
    issued = auth_service.create_password_reset_token(request.email)
    if issued:
        user, token = issued
        background_tasks.add_task(
            notifier.send_password_reset, user.email, user.display_name, token
        )
    return MessageResponse(
        message="If an account exists for this email, a reset link has been sent."
    )


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    request: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    auth_service.reset_password(request)
    return MessageResponse(message="Password has been reset. You can now log in.")
