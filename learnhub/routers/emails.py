# learnhub/routers/emails.py
from fastapi import APIRouter, Depends

from learnhub.core.dependencies import get_current_user, get_notification_service
from learnhub.models.user import User
from learnhub.schemas.email import (
    EmailSentResponse,
    PurchaseEmailRequest,
    WelcomeEmailRequest,
)
from learnhub.services.notification import NotificationService

router = APIRouter(prefix="/emails", tags=["Emails"])


@router.post("/welcome", response_model=EmailSentResponse)
def send_welcome_email(
    request: WelcomeEmailRequest,
    current_user: User = Depends(get_current_user),
    notifier: NotificationService = Depends(get_notification_service),
):
    """Send the welcome email now; a provider failure is returned as 502."""
    notifier.send_welcome(request.email, request.name, best_effort=False)
    return EmailSentResponse()


@router.post("/purchase", response_model=EmailSentResponse)
def send_purchase_email(
    request: PurchaseEmailRequest,
    current_user: User = Depends(get_current_user),
    notifier: NotificationService = Depends(get_notification_service),
):
    """Send a purchase receipt now; a provider failure is returned as 502."""
    notifier.send_purchase_confirmation(
        request.email,
        request.name,
        request.course_title,
        request.amount,
        best_effort=False,
    )
    return EmailSentResponse()
