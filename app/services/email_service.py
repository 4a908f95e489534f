import logging
import re
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, formatdate, make_msgid
from typing import List, Optional, Tuple

from app.config import settings
from app.utils.template import render_template

logger = logging.getLogger(__name__)


def is_valid_email(email):
    if isinstance(email, list):
        return all(is_valid_email(e) for e in email)

    if not email:
        return False

    return re.match(r"[^@]+@[^@]+\.[^@]+", email) is not None


def _build_message(
    recipients: List[str],
    subject: str,
    html: str,
    attachments: Optional[List[Tuple[str, bytes, str]]],
) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = formataddr((settings.STORE_NAME, settings.SMTP_FROM))
    msg["To"] = ", ".join(recipients)
    msg["Subject"] = subject
    msg["Date"] = formatdate(localtime=False)
    msg["Message-ID"] = make_msgid(domain=settings.SMTP_FROM.split("@")[-1])

    msg.set_content("This message requires an HTML capable mail client.")
    msg.add_alternative(html, subtype="html")

    for filename, file_bytes, mime_type in attachments or []:
        maintype, _, subtype = mime_type.partition("/")
        msg.add_attachment(
            file_bytes,
            maintype=maintype,
            subtype=subtype or "octet-stream",
            filename=filename,
        )
    return msg


def send_email(
    to: str,
    subject: str,
    html: str,
    attachments: Optional[List[Tuple[str, bytes, str]]] = None,
) -> bool:
    """
    Send email over SMTP (MailHog on localhost:1025 in development).

    attachments: List of tuples
        (filename, file_bytes, mime_type)
    """

    if isinstance(to, list):
        valid_emails = [e for e in to if is_valid_email(e)]
    else:
        valid_emails = [to] if is_valid_email(to) else []

    if not valid_emails:
        logger.warning("No valid emails found: %s", to)
        return False

    msg = _build_message(valid_emails, subject, html, attachments)

    try:
        with smtplib.SMTP(
            settings.SMTP_HOST,
            settings.SMTP_PORT,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        ) as server:
            if settings.SMTP_USER and settings.SMTP_PASS:
                server.starttls()
                server.login(settings.SMTP_USER, settings.SMTP_PASS)
            refused = server.send_message(msg)

        if refused:
            logger.error("SMTP refused recipients: %s", refused)
            return False

        logger.info("Email sent to %s: %s", valid_emails, subject)
        return True

    except (smtplib.SMTPException, OSError):
        logger.exception("SMTP email failed for %s", valid_emails)
        return False


def send_otp_email(email: str, code: str) -> bool:
    html = render_template("emails/otp.html", code=code)
    return send_email(email, "Your Login OTP Code", html)


def send_password_reset_email(email: str, token: str) -> bool:
    reset_url = f"{settings.APP_BASE_URL}/reset-password?token={token}"
    html = render_template("emails/password_reset.html", reset_url=reset_url)
    return send_email(email, "Password Reset Request", html)
