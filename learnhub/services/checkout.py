# learnhub/services/checkout.py
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from learnhub.clients.payments import CheckoutItem, CheckoutSession, PaymentSessionCreator
from learnhub.core.config import Settings
from learnhub.core.exceptions import (
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from learnhub.models.course import Course
from learnhub.models.purchase import Purchase
from learnhub.models.user import User
from learnhub.schemas.checkout import CheckoutRequest
from learnhub.services.purchase_ledger import PurchaseLedger

logger = logging.getLogger(__name__)


@dataclass
class CheckoutResult:
    purchase: Purchase
    course: Course
    session_id: str

    @property
    def amount(self) -> int:
        if self.purchase.amount_paid is not None:
            return self.purchase.amount_paid
        return self.course.price or 0


class CheckoutService:
    """
    Glue between the hosted payment page and the purchase ledger.

    The ledger write is the durability boundary: anything after it (the
    confirmation email) is best-effort and can never undo an enrollment.
    """

    def __init__(
        self,
        db: Session,
        payments: PaymentSessionCreator,
        ledger: PurchaseLedger,
        settings: Settings,
    ):
        self.db = db
        self.payments = payments
        self.ledger = ledger
        self.frontend_url = settings.frontend_url.rstrip("/")
        self.verify_sessions = settings.verify_checkout_sessions

    def create_checkout(self, checkout_in: CheckoutRequest) -> CheckoutSession:
        course = checkout_in.course
        logger.info(f"Checkout requested for course: {course}")

        if course is None:
            raise ValidationError("Course is required")

        if not course.id or not course.title or course.price is None:
            raise ValidationError("Course ID, title, and price are required")

        if course.price <= 0:
            raise ValidationError("Invalid course price")

        item = CheckoutItem(
            course_id=course.id,
            title=course.title,
            description=course.description,
            price=course.price,
        )
        # {CHECKOUT_SESSION_ID} is substituted by the payment provider
        success_url = (
            f"{self.frontend_url}/success"
            f"?session_id={{CHECKOUT_SESSION_ID}}&course_id={course.id}"
        )
        cancel_url = f"{self.frontend_url}/courses"

        session = self.payments.create_session(item, success_url, cancel_url)
        if not session.url:
            logger.error(f"Payment session {session.id} has no redirect URL")
            raise UpstreamServiceError("No URL returned from payment provider")

        logger.info(f"Checkout session created: id={session.id}")
        return session

    def complete_checkout(
        self,
        session_id: Optional[str],
        course_id: Optional[str],
        user: Optional[User],
    ) -> CheckoutResult:
        """
        Record the purchase for a user returning from the hosted checkout.

        Raises 401 without a user, ValidationError for a missing or unpaid
        session, NotFoundError when the course is gone (nothing is
        recorded) and PersistenceError when the ledger write fails.
        """
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Please log in to complete your purchase.",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if not session_id or not course_id:
            raise ValidationError(
                "Invalid payment session. Please contact support.",
                reference_id=session_id,
            )

        amount_paid = None
        if self.verify_sessions:
            session = self.payments.retrieve_session(session_id)
            if not session.is_paid:
                logger.warning(
                    f"Checkout session {session_id} is not paid ({session.payment_status})"
                )
                raise ValidationError(
                    "Payment has not been completed for this session.",
                    reference_id=session_id,
                )
            if session.course_id and session.course_id != course_id:
                logger.warning(
                    f"Checkout session {session_id} belongs to course {session.course_id}, not {course_id}"
                )
                raise ValidationError(
                    "Invalid payment session. Please contact support.",
                    reference_id=session_id,
                )
            amount_paid = session.amount_total

        course = self.db.query(Course).filter(Course.id == course_id).first()
        if course is None:
            logger.error(
                f"Paid checkout {session_id} references missing course {course_id}"
            )
            raise NotFoundError(
                f"Course not found. Please contact support with session ID {session_id}.",
                reference_id=session_id,
            )

        if amount_paid is None:
            amount_paid = course.price

        purchase = self.ledger.record_purchase(
            user_id=user.id,
            course_id=course.id,
            session_id=session_id,
            amount_paid=amount_paid,
        )
        logger.info(
            f"Checkout completed: session={session_id} user={user.id} course={course.id}"
        )
        return CheckoutResult(purchase=purchase, course=course, session_id=session_id)
