"""
Email service: delivers verification codes and account mails via SMTP.

In development (no SMTP configured), emails are logged to the console
so you can see what *would* be sent without configuring a mail server.

Delivery failures are reported through ``DeliveryResult`` rather than
raised: the caller decides what to tell the user. Nothing is retried.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid

import aiosmtplib

from app.config import (
    APP_NAME,
    OTP_TTL_SECONDS,
    SMTP_FROM_EMAIL,
    SMTP_FROM_NAME,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USE_TLS,
    SMTP_USERNAME,
    smtp_enabled,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    error: str | None = None
    message_id: str | None = None


# ── Templates ─────────────────────────────────────────────────────────────


def _code_block(code: str) -> str:
    return (
        '<div style="background:#667eea;color:#fff;padding:24px;text-align:center;'
        'border-radius:10px;margin:24px 0;font-size:32px;font-weight:bold;'
        f'letter-spacing:8px">{code}</div>'
    )


def _wrap_html(heading: str, body: str) -> str:
    return f"""
    <html>
    <body style="font-family:Arial,sans-serif;background:#f5f5f5;color:#333;padding:20px">
      <div style="max-width:600px;margin:0 auto;background:#fff;border-radius:10px">
        <div style="background:#764ba2;padding:30px;text-align:center;color:#fff">
          <h1>{APP_NAME}</h1>
          <p>{heading}</p>
        </div>
        <div style="padding:40px">{body}
        </div>
        <div style="background:#f8f9fa;padding:20px;text-align:center;color:#666;font-size:12px">
          You're receiving this because of activity on your {APP_NAME} account.
        </div>
      </div>
    </body>
    </html>
    """


def _expiry_notice() -> str:
    minutes = max(1, OTP_TTL_SECONDS // 60)
    return f"This code will expire in {minutes} minutes. Do not share it with anyone."


# ── Transport ─────────────────────────────────────────────────────────────


async def _deliver(
    to_email: str,
    subject: str,
    plain: str,
    html_body: str,
) -> DeliveryResult:
    """Send one multipart message, or log it when SMTP is disabled."""

    # ── Console fallback (dev mode) ───────────────────────────────────
    if not smtp_enabled():
        logger.info(
            "📧 [DEV] Would send email to %s:\n  Subject: %s\n%s",
            to_email,
            subject,
            plain,
        )
        return DeliveryResult(success=True)

    # ── Real SMTP send ────────────────────────────────────────────────
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = formataddr((SMTP_FROM_NAME, SMTP_FROM_EMAIL))
    msg["To"] = to_email
    msg["Message-ID"] = make_msgid(domain=SMTP_FROM_EMAIL.rpartition("@")[2])
    msg.attach(MIMEText(plain, "plain"))
    msg.attach(MIMEText(html_body, "html"))

    try:
        await aiosmtplib.send(
            msg,
            hostname=SMTP_HOST,
            port=SMTP_PORT,
            username=SMTP_USERNAME,
            password=SMTP_PASSWORD,
            start_tls=SMTP_USE_TLS,
        )
    except (aiosmtplib.SMTPException, OSError) as exc:
        logger.exception("Failed to send %r to %s", subject, to_email)
        return DeliveryResult(success=False, error=str(exc))

    logger.info("Email %r sent to %s (%s)", subject, to_email, msg["Message-ID"])
    return DeliveryResult(success=True, message_id=msg["Message-ID"])


# ── Public senders ────────────────────────────────────────────────────────


async def send_otp_email(
    to_email: str,
    code: str,
    display_name: str = "User",
) -> DeliveryResult:
    """Send a verification code for registration or login."""
    name = html.escape(display_name)
    subject = f"Your {APP_NAME} Verification Code"
    plain = (
        f"Hello {display_name},\n\n"
        f"Your verification code is: {code}\n\n"
        f"{_expiry_notice()}\n"
        "If you didn't request this code, please ignore this email."
    )
    body = f"""
          <h2>Hello {name},</h2>
          <p>Use the verification code below to continue:</p>
          {_code_block(code)}
          <p><strong>{_expiry_notice()}</strong></p>
          <p>If you didn't request this code, please ignore this email.</p>"""
    return await _deliver(to_email, subject, plain, _wrap_html("Email Verification", body))


async def send_welcome_email(to_email: str, display_name: str = "User") -> DeliveryResult:
    """Send the post-registration welcome mail."""
    name = html.escape(display_name)
    subject = f"Welcome to {APP_NAME} - Email Verified Successfully!"
    plain = (
        f"Welcome to {APP_NAME}, {display_name}!\n\n"
        "Your email address has been verified and your account is now active."
    )
    body = f"""
          <h2>Welcome to {APP_NAME}, {name}!</h2>
          <p style="background:#d4edda;color:#155724;padding:20px;border-radius:10px">
            <strong>Email Verified Successfully!</strong><br>
            Your email address has been verified and your account is now active.
          </p>"""
    return await _deliver(to_email, subject, plain, _wrap_html("Welcome", body))


async def send_password_reset_email(
    to_email: str,
    code: str,
    display_name: str = "User",
) -> DeliveryResult:
    """Send a password reset code."""
    name = html.escape(display_name)
    subject = f"Reset Your {APP_NAME} Password"
    plain = (
        f"Hello {display_name},\n\n"
        f"Your password reset code is: {code}\n\n"
        f"{_expiry_notice()}\n"
        "If you didn't request a password reset, your password will remain unchanged."
    )
    body = f"""
          <h2>Hello {name},</h2>
          <p>We received a request to reset your password. Use the reset code below:</p>
          {_code_block(code)}
          <p><strong>{_expiry_notice()}</strong></p>
          <p>If you didn't request a password reset, please ignore this email and
             your password will remain unchanged.</p>"""
    return await _deliver(to_email, subject, plain, _wrap_html("Password Reset Request", body))
