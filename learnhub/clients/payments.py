# learnhub/clients/payments.py
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional

import stripe

from learnhub.core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


@dataclass
class CheckoutItem:
    """What is being sold in one hosted checkout session."""

    course_id: str
    title: str
    description: Optional[str]
    price: int  # minor units


@dataclass
class CheckoutSession:
    id: str
    url: Optional[str]
    payment_status: str = "unpaid"
    course_id: Optional[str] = None
    amount_total: Optional[int] = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status in ("paid", "no_payment_required")


class PaymentSessionCreator(ABC):
    """Creates and looks up hosted checkout sessions."""

    @abstractmethod
    def create_session(
        self, item: CheckoutItem, success_url: str, cancel_url: str
    ) -> CheckoutSession: ...

    @abstractmethod
    def retrieve_session(self, session_id: str) -> CheckoutSession: ...


class StripePaymentSessionCreator(PaymentSessionCreator):
    def __init__(self, api_key: str, currency: str = "usd"):
        self.api_key = api_key
        self.currency = currency

    def create_session(
        self, item: CheckoutItem, success_url: str, cancel_url: str
    ) -> CheckoutSession:
        if not self.api_key:
            raise UpstreamServiceError("Payment provider is not configured")

        logger.info(f"Creating Stripe session for course: {item.course_id}")
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": self.currency,
                            "product_data": {
                                "name": item.title,
                                "description": item.description or "Course enrollment",
                                "metadata": {"courseId": item.course_id},
                            },
                            "unit_amount": item.price,
                        },
                        "quantity": 1,
                    }
                ],
                mode="payment",
                success_url=success_url,
                cancel_url=cancel_url,
                metadata={"courseId": item.course_id},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe session creation failed: {e}")
            raise UpstreamServiceError(
                getattr(e, "user_message", None) or "Payment session could not be created"
            )

        logger.info(
            f"Stripe session created: id={session.id}, amount={session.amount_total}"
        )
        return self._to_checkout_session(session)

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        if not self.api_key:
            raise UpstreamServiceError("Payment provider is not configured")
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.InvalidRequestError as e:
            logger.warning(f"Unknown Stripe session {session_id}: {e}")
            raise UpstreamServiceError(
                "Payment session not found", reference_id=session_id
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe session lookup failed for {session_id}: {e}")
            raise UpstreamServiceError(
                "Payment session could not be verified", reference_id=session_id
            )
        return self._to_checkout_session(session)

    @staticmethod
    def _to_checkout_session(session) -> CheckoutSession:
        # StripeObject exposes missing keys as AttributeError
        metadata = getattr(session, "metadata", None)
        return CheckoutSession(
            id=session.id,
            url=getattr(session, "url", None),
            payment_status=getattr(session, "payment_status", None) or "unpaid",
            course_id=getattr(metadata, "courseId", None),
            amount_total=getattr(session, "amount_total", None),
        )


@dataclass
class InMemoryPaymentSessionCreator(PaymentSessionCreator):
    """Fake checkout provider; sessions are paid as soon as they exist."""

    base_url: str = "https://checkout.test/pay"
    fail: bool = False
    sessions: Dict[str, CheckoutSession] = field(default_factory=dict)

    def create_session(
        self, item: CheckoutItem, success_url: str, cancel_url: str
    ) -> CheckoutSession:
        if self.fail:
            raise UpstreamServiceError("Payment session could not be created")
        session_id = f"cs_test_{uuid.uuid4().hex}"
        session = CheckoutSession(
            id=session_id,
            url=f"{self.base_url}/{session_id}",
            payment_status="paid",
            course_id=item.course_id,
            amount_total=item.price,
        )
        self.sessions[session_id] = session
        return session

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        if self.fail:
            raise UpstreamServiceError(
                "Payment session could not be verified", reference_id=session_id
            )
        session = self.sessions.get(session_id)
        if session is None:
            raise UpstreamServiceError(
                "Payment session not found", reference_id=session_id
            )
        return session

    def add_session(
        self,
        session_id: str,
        course_id: str,
        amount_total: int = 0,
        payment_status: str = "paid",
    ) -> CheckoutSession:
        session = CheckoutSession(
            id=session_id,
            url=f"{self.base_url}/{session_id}",
            payment_status=payment_status,
            course_id=course_id,
            amount_total=amount_total,
        )
        self.sessions[session_id] = session
        return session
