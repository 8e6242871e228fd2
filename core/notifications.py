# core/notifications.py
import requests
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import List, Optional
from core.config import settings
from core.logging_config import logger


# -----------------------------------------------------
# 📨 Send webhook (Discord, Slack, etc.)
# -----------------------------------------------------
def send_webhook_message(message: str, webhook_url: Optional[str] = None) -> bool:
    webhook_url = webhook_url or settings.BILLING_WEBHOOK_URL
    if not webhook_url:
        logger.debug("Webhook URL not configured, skipping.")
        return False

    try:
        payload = {"content": message, "text": message}
        response = requests.post(webhook_url, json=payload, timeout=10)
        logger.info(f"Webhook sent (status {response.status_code})")
        return response.ok
    except Exception as e:
        logger.warning(f"Webhook failed: {e}")
        return False


# -----------------------------------------------------
# 📧 Send email (SMTP)
# -----------------------------------------------------
def send_email(
    subject: str,
    body: str,
    recipients: List[str],
    html_body: Optional[str] = None,
) -> bool:
    """
    Send email via SMTP.

    Best effort: returns False (and logs) instead of raising, so invite and
    share flows never fail because mail is down.

    Args:
        subject: Email subject
        body: Plain text email body
        recipients: List of recipient email addresses
        html_body: Optional HTML email body
    """
    smtp_host = settings.SMTP_HOST
    smtp_port = settings.SMTP_PORT
    smtp_user = settings.SMTP_USER
    smtp_pass = settings.SMTP_PASS

    if not recipients:
        logger.warning("No recipients specified, skipping email.")
        return False

    if not all([smtp_host, smtp_port, smtp_user, smtp_pass]):
        logger.warning("Email credentials missing, skipping email.")
        return False

    try:
        msg = MIMEMultipart("alternative")
        msg["From"] = smtp_user
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = subject

        msg.attach(MIMEText(body, "plain"))
        if html_body:
            msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP_SSL(smtp_host, smtp_port) as server:
            server.login(smtp_user, smtp_pass)
            server.send_message(msg)

        logger.info(f"Email sent to {', '.join(recipients)}")
        return True

    except Exception as e:
        logger.error(f"Email failed: {e}")
        return False


# -----------------------------------------------------
# Product emails
# -----------------------------------------------------
def send_invite_email(email: str, workspace_name: str, role: str, token: str) -> bool:
    link = f"{settings.APP_URL.rstrip('/')}/invites/accept?token={token}"
    body = (
        f"You've been invited to join {workspace_name} as {role}.\n\n"
        f"Accept the invite: {link}\n\n"
        f"This link expires in {settings.INVITE_EXPIRY_DAYS} days."
    )
    return send_email(
        subject=f"[Parcel Intel] Invitation to {workspace_name}",
        body=body,
        recipients=[email],
    )


def send_share_email(email: str, report_name: str, token: str, message: Optional[str] = None) -> bool:
    link = f"{settings.APP_URL.rstrip('/')}/share/{token}"
    body = f"A report has been shared with you: {report_name}\n\n{link}\n"
    if message:
        body += f"\nMessage from the sender:\n{message}\n"
    return send_email(
        subject=f"[Parcel Intel] Shared report: {report_name}",
        body=body,
        recipients=[email],
    )
