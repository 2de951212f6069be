# learnhub/services/notification.py
import hashlib
import html
import logging
from datetime import datetime, timezone

from learnhub.clients.email import EmailMessage, EmailSender
from learnhub.core.config import Settings
from learnhub.core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


def format_amount(amount_minor_units: int) -> str:
    return f"${amount_minor_units / 100:.2f}"


def _idempotency_key(purpose: str, *parts) -> str:
    material = ":".join(str(part) for part in (purpose, *parts))
    return f"{purpose}/{hashlib.sha256(material.encode('utf-8')).hexdigest()[:24]}"


class NotificationService:
    """
    Transactional emails.

    With ``best_effort=True`` (the default) a failed send is logged and
    reported as ``False``; it never propagates. Enrollment and signup must
    not depend on email delivery.
    """

    def __init__(self, sender: EmailSender, settings: Settings):
        self.sender = sender
        self.site_url = settings.frontend_url.rstrip("/")
        self.brand = settings.mail_from_name or settings.app_name

    def send_welcome(self, email: str, name: str, best_effort: bool = True) -> bool:
        body = f"""
<h2>Hello {html.escape(name)},</h2>
<p>Welcome to {self.brand}! We're thrilled to have you join our community of learners.</p>
<p><a href="{self.site_url}">Start Learning Now</a></p>
"""
        message = EmailMessage(
            to=email,
            subject=f"Welcome to {self.brand}!",
            html=self._layout(f"Welcome to {self.brand}!", body),
            idempotency_key=_idempotency_key("welcome", email),
        )
        return self._deliver(message, "welcome", best_effort)

    def send_purchase_confirmation(
        self,
        email: str,
        name: str,
        course_title: str,
        amount: int,
        reference: str = "",
        best_effort: bool = True,
    ) -> bool:
        today = datetime.now(timezone.utc).date().isoformat()
        title = html.escape(course_title)
        body = f"""
<h2>Hello {html.escape(name)},</h2>
<p>Thank you for enrolling in <strong>{title}</strong>! Your payment has been
processed successfully and you now have full access to the course content.</p>
<ul>
  <li><strong>Course:</strong> {title}</li>
  <li><strong>Amount Paid:</strong> {format_amount(amount)}</li>
  <li><strong>Access:</strong> Immediate &amp; Lifetime</li>
  <li><strong>Enrollment Date:</strong> {today}</li>
</ul>
<p><a href="{self.site_url}/my-courses">Go to My Courses</a></p>
"""
        message = EmailMessage(
            to=email,
            subject=f"Enrollment Confirmed: {course_title}",
            html=self._layout("Course Enrollment Confirmed!", body),
            idempotency_key=_idempotency_key(
                "purchase", email, course_title, reference
            ),
        )
        return self._deliver(message, "purchase", best_effort)

    def send_course_completed(
        self, email: str, name: str, course_title: str, best_effort: bool = True
    ) -> bool:
        body = f"""
<h2>Congratulations {html.escape(name)}!</h2>
<p>You have completed <strong>{html.escape(course_title)}</strong>.</p>
<p><a href="{self.site_url}/my-courses">Find your next course</a></p>
"""
        message = EmailMessage(
            to=email,
            subject=f"You completed {course_title}",
            html=self._layout("Course completed", body),
            idempotency_key=_idempotency_key("completed", email, course_title),
        )
        return self._deliver(message, "completion", best_effort)

    def send_password_reset(
        self, email: str, name: str, token: str, best_effort: bool = True
    ) -> bool:
        link = f"{self.site_url}/reset-password?token={token}"
        body = f"""
<h2>Hello {html.escape(name)},</h2>
<p>We received a request to reset your password.</p>
<p><a href="{html.escape(link)}">Reset password</a></p>
<p>If you didn't request this email, you can safely ignore it.</p>
"""
        message = EmailMessage(
            to=email,
            subject=f"Reset your {self.brand} password",
            html=self._layout("Reset your password", body),
            idempotency_key=_idempotency_key("reset", email, token),
        )
        return self._deliver(message, "password reset", best_effort)

    def _deliver(self, message: EmailMessage, kind: str, best_effort: bool) -> bool:
        try:
            self.sender.send(message)
        except UpstreamServiceError as e:
            if not best_effort:
                raise
            logger.error(f"Failed to send {kind} email to {message.to}: {e.message}")
            return False
        logger.info(f"{kind.capitalize()} email sent to {message.to}")
        return True

    def _layout(self, title: str, body: str) -> str:
        year = datetime.now(timezone.utc).year
        return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(title)}</title></head>
<body style="font-family: Arial, sans-serif; color: #333;">
  <h1>{html.escape(title)}</h1>
  {body}
  <p>Happy learning!<br><strong>The {self.brand} Team</strong></p>
  <p style="color: #6c757d; font-size: 12px;">&copy; {year} {self.brand}. All rights reserved.</p>
</body>
</html>
"""
