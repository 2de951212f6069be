import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from learnhub.clients import ServiceClients
from learnhub.core.cache import CatalogCache
from learnhub.core.config import Settings
from learnhub.core.database import get_db
from learnhub.core.security import JWTManager
from learnhub.models.user import User
from learnhub.services.access import AccessAuthorization
from learnhub.services.auth import AuthService
from learnhub.services.checkout import CheckoutService
from learnhub.services.course import CourseService
from learnhub.services.notification import NotificationService
from learnhub.services.progress_tracker import ProgressTracker
from learnhub.services.purchase_ledger import PurchaseLedger

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


# -----------------------
# Process-wide objects built in create_app
# -----------------------
def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_clients(request: Request) -> ServiceClients:
    return request.app.state.clients


def get_jwt_manager(request: Request) -> JWTManager:
    return request.app.state.jwt_manager


def get_catalog_cache(request: Request) -> CatalogCache:
    return request.app.state.catalog_cache


# -----------------------
# Authentication
# -----------------------
def _user_from_token(token: str, db: Session, jwt_manager: JWTManager) -> User:
    payload = jwt_manager.verify_token(token, "access")

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


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    db: Session = Depends(get_db),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
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
    return _user_from_token(credentials.credentials, db, jwt_manager)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    db: Session = Depends(get_db),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
) -> Optional[User]:
    """
    Dependency that returns a user if a valid user token is provided, or None otherwise.
    """
    if not credentials:
        return None
    try:
        return _user_from_token(credentials.credentials, db, jwt_manager)
    except HTTPException:
        # Invalid, expired or foreign tokens are treated as anonymous
        return None


def get_current_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required"
        )
    return current_user


# -----------------------
# Services
# -----------------------
def get_purchase_ledger(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> PurchaseLedger:
    return PurchaseLedger(db, read_failure_policy=settings.access_read_failure_policy)


def get_progress_tracker(db: Session = Depends(get_db)) -> ProgressTracker:
    return ProgressTracker(db)


def get_access_authorization(
    ledger: PurchaseLedger = Depends(get_purchase_ledger),
) -> AccessAuthorization:
    return AccessAuthorization(ledger)


def get_course_service(
    db: Session = Depends(get_db),
    cache: CatalogCache = Depends(get_catalog_cache),
) -> CourseService:
    return CourseService(db, cache)


def get_notification_service(
    clients: ServiceClients = Depends(get_clients),
    settings: Settings = Depends(get_settings),
) -> NotificationService:
    return NotificationService(clients.email, settings)


def get_checkout_service(
    db: Session = Depends(get_db),
    clients: ServiceClients = Depends(get_clients),
    ledger: PurchaseLedger = Depends(get_purchase_ledger),
    settings: Settings = Depends(get_settings),
) -> CheckoutService:
    return CheckoutService(db, clients.payments, ledger, settings)


def get_auth_service(
    db: Session = Depends(get_db),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(db, jwt_manager, hash_rounds=settings.password_hash_rounds)
