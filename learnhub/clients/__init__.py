"""
External service clients.

Each integration is a narrow capability with one production implementation
and one in-memory implementation. Clients are built once at process start
by ``build_service_clients`` and injected into request handlers.
"""

from dataclasses import dataclass

from learnhub.clients.email import (
    EmailMessage,
    EmailSender,
    InMemoryEmailSender,
    ResendEmailSender,
)
from learnhub.clients.payments import (
    CheckoutItem,
    CheckoutSession,
    InMemoryPaymentSessionCreator,
    PaymentSessionCreator,
    StripePaymentSessionCreator,
)
from learnhub.clients.video import (
    InMemoryPlaybackProvider,
    MuxPlaybackProvider,
    PlaybackInfo,
    VideoPlaybackProvider,
)
from learnhub.core.config import Settings


@dataclass
class ServiceClients:
    payments: PaymentSessionCreator
    email: EmailSender
    video: VideoPlaybackProvider


def build_service_clients(settings: Settings) -> ServiceClients:
    return ServiceClients(
        payments=StripePaymentSessionCreator(
            api_key=settings.stripe_secret_key,
            currency=settings.payment_currency,
        ),
        email=ResendEmailSender(
            api_key=settings.resend_api_key,
            from_address=settings.mail_from_address,
            from_name=settings.mail_from_name,
            timeout=settings.mail_timeout_seconds,
        ),
        video=MuxPlaybackProvider(
            stream_base_url=settings.mux_stream_base_url,
            image_base_url=settings.mux_image_base_url,
        ),
    )


__all__ = [
    "CheckoutItem",
    "CheckoutSession",
    "EmailMessage",
    "EmailSender",
    "InMemoryEmailSender",
    "InMemoryPaymentSessionCreator",
    "InMemoryPlaybackProvider",
    "MuxPlaybackProvider",
    "PaymentSessionCreator",
    "PlaybackInfo",
    "ResendEmailSender",
    "ServiceClients",
    "StripePaymentSessionCreator",
    "VideoPlaybackProvider",
    "build_service_clients",
]
