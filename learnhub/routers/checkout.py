# learnhub/routers/checkout.py
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from learnhub.core.config import settings
from learnhub.core.dependencies import (
    get_checkout_service,
    get_notification_service,
    get_optional_user,
)
from learnhub.core.limiter import limiter
from learnhub.models.user import User
from learnhub.schemas.checkout import (
    CheckoutRequest,
    CheckoutResponse,
    CheckoutResultResponse,
)
from learnhub.services.checkout import CheckoutService
from learnhub.services.notification import NotificationService

router = APIRouter(
    prefix="/checkout",
    tags=["Checkout"],
)


@router.post("", response_model=CheckoutResponse)
@limiter.limit(settings.checkout_rate_limit)
def create_checkout_session(
    request: Request,
    checkout_in: CheckoutRequest,
    checkout_service: CheckoutService = Depends(get_checkout_service),
):
    """
    Create a hosted checkout session for one course.
    Returns the session id and the URL to redirect the buyer to.
    """
    session = checkout_service.create_checkout(checkout_in)
    return CheckoutResponse(session_id=session.id, url=session.url)


@router.post("/success", response_model=CheckoutResultResponse)
def complete_checkout(
    background_tasks: BackgroundTasks,
    session_id: Optional[str] = Query(None),
    course_id: Optional[str] = Query(None),
    current_user: Optional[User] = Depends(get_optional_user),
    checkout_service: CheckoutService = Depends(get_checkout_service),
    notifier: NotificationService = Depends(get_notification_service),
):
    """
    Called when the buyer comes back from the payment page.
    Records the purchase, then sends the receipt without waiting for it.
    """
    result = checkout_service.complete_checkout(session_id, course_id, current_user)

    background_tasks.add_task(
        notifier.send_purchase_confirmation,
        current_user.email,
        current_user.display_name,
        result.course.title,
        result.amount,
        result.session_id,
    )

    return CheckoutResultResponse(
        purchase_recorded=True,
        session_id=result.session_id,
        course_id=result.course.id,
        course_title=result.course.title,
        amount_paid=result.amount,
        purchase_date=result.purchase.purchase_date,
    )
