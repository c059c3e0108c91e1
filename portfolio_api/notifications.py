"""notifications.py — SES email notification for new contact messages.

Delivery is best-effort: callers catch failures and report them as a
warning, so nothing here decides whether a request succeeds.
"""
from __future__ import annotations

import datetime as dt
import html
from typing import Any, Dict, Optional

from .config import logger

__all__ = ["NotificationMailer", "NotificationNotConfigured"]


class NotificationNotConfigured(RuntimeError):
    pass


def _display_time(timestamp: str) -> str:
    try:
        parsed = dt.datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return str(timestamp)
    return parsed.strftime("%B %d, %Y %H:%M UTC")


def render_html(message: Dict[str, Any]) -> str:
    name = html.escape(str(message.get("name", "")))
    email = html.escape(str(message.get("email", "")))
    body = html.escape(str(message.get("message", ""))).replace("\n", "<br>")
    received = html.escape(_display_time(message.get("timestamp", "")))
    ip = message.get("ip")
    ip_row = f"<p><strong>IP Address:</strong> {html.escape(ip)}</p>" if ip else ""
    return (
        "<!DOCTYPE html>\n"
        "<html><head><meta charset=\"UTF-8\"><title>New Contact Form Message</title></head>\n"
        "<body style=\"font-family: sans-serif; line-height: 1.6; color: #333;\">\n"
        "<h1>New Contact Form Message</h1>\n"
        f"<p><strong>Name:</strong> {name}</p>\n"
        f"<p><strong>Email:</strong> <a href=\"mailto:{email}\">{email}</a></p>\n"
        f"<p><strong>Received:</strong> {received}</p>\n"
        f"{ip_row}\n"
        f"<div style=\"background: #f8f9fa; padding: 16px;\">{body}</div>\n"
        f"<p style=\"color: #6c757d; font-size: 12px;\">Message ID: {html.escape(str(message.get('id', '')))}</p>\n"
        "</body></html>\n"
    )


def render_text(message: Dict[str, Any]) -> str:
    lines = [
        "New Contact Form Message",
        "",
        f"Name: {message.get('name', '')}",
        f"Email: {message.get('email', '')}",
        f"Received: {_display_time(message.get('timestamp', ''))}",
    ]
    if message.get("ip"):
        lines.append(f"IP Address: {message['ip']}")
    lines += ["", "Message:", str(message.get("message", "")), "", f"Message ID: {message.get('id', '')}"]
    return "\n".join(lines)


class NotificationMailer:
    def __init__(
        self,
        client: Any,
        *,
        from_email: str,
        notification_email: str,
        configuration_set: Optional[str] = None,
    ) -> None:
        self._ses = client
        self.from_email = from_email
        self.notification_email = notification_email
        self.configuration_set = configuration_set

    def is_configured(self) -> bool:
        return bool(self.from_email and self.notification_email)

    def send_contact_notification(self, message: Dict[str, Any]) -> str:
        """Send the notification and return the SES MessageId."""
        if not self.is_configured():
            raise NotificationNotConfigured(
                "Email configuration missing: FROM_EMAIL and NOTIFICATION_EMAIL are required"
            )
        params: Dict[str, Any] = {
            "Source": self.from_email,
            "Destination": {"ToAddresses": [self.notification_email]},
            "ReplyToAddresses": [message["email"]],
            "Message": {
                "Subject": {"Data": f"New Contact Form Message from {message['name']}", "Charset": "UTF-8"},
                "Body": {
                    "Html": {"Data": render_html(message), "Charset": "UTF-8"},
                    "Text": {"Data": render_text(message), "Charset": "UTF-8"},
                },
            },
        }
        if self.configuration_set:
            params["ConfigurationSetName"] = self.configuration_set

        resp = self._ses.send_email(**params)
        message_id = resp.get("MessageId")
        logger.info("contact notification sent: id=%s ses_message_id=%s", message.get("id"), message_id)
        return message_id
