import logging
import smtplib
import uuid
from dataclasses import dataclass
from email.message import EmailMessage

import requests

from skytour.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class OutgoingEmail:
    to: str
    subject: str
    body: str


@dataclass
class EmailResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


class Mailer:
    """Hands rendered messages to the configured provider and never raises."""

    def __init__(self, backend: str | None = None, timeout: int | None = None):
        self.backend = (backend or settings.EMAIL_BACKEND or "console").lower()
        self.timeout = timeout or settings.EMAIL_TIMEOUT_SECONDS

    def send(self, message: OutgoingEmail) -> EmailResult:
        try:
            if self.backend == "sendgrid":
                message_id = self._send_via_sendgrid(message)
            elif self.backend == "smtp":
                message_id = self._send_via_smtp(message)
            else:
                message_id = f"console-{uuid.uuid4()}"
                logger.info("[console email] to=%s subject=%s\n%s", message.to, message.subject, message.body)
            return EmailResult(success=True, message_id=message_id)
        except requests.Timeout:
            return EmailResult(success=False, error=f"Email provider timed out after {self.timeout}s")
        except (requests.RequestException, smtplib.SMTPException, OSError, RuntimeError) as e:
            return EmailResult(success=False, error=str(e) or e.__class__.__name__)
        except Exception as e:
            # e.g. ValueError from a header value with a line break
            logger.warning("Email to %r could not be built or sent: %s", message.to, e)
            return EmailResult(success=False, error=f"{e.__class__.__name__}: {e}")

    def _send_via_smtp(self, message: OutgoingEmail) -> str:
        msg = EmailMessage()
        msg["From"] = settings.SMTP_FROM
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg.set_content(message.body)
        message_id = f"<{uuid.uuid4()}@skytour>"
        msg["Message-ID"] = message_id

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=self.timeout) as smtp:
            if settings.SMTP_USERNAME:
                smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            smtp.send_message(msg)
        return message_id

    def _send_via_sendgrid(self, message: OutgoingEmail) -> str:
        if not settings.SENDGRID_API_KEY:
            raise RuntimeError("SENDGRID_API_KEY is not set")
        from_email = settings.SENDGRID_FROM_EMAIL or settings.SMTP_FROM
        payload = {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": from_email},
            "subject": message.subject,
            "content": [{"type": "text/plain", "value": message.body}],
        }
        r = requests.post(
            "https://api.sendgrid.com/v3/mail/send",
            json=payload,
            headers={"Authorization": f"Bearer {settings.SENDGRID_API_KEY}"},
            timeout=self.timeout,
        )
        if r.status_code >= 400:
            raise RuntimeError(f"SendGrid error {r.status_code}: {r.text}")
        return r.headers.get("X-Message-Id", "")
