"""contact.py — Public contact-form submission."""
from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .aws_clients import Services
from .config import logger
from .errors import ValidationError
from .http_utils import _json_body, _origin, _source_ip, _success
from .schemas import CONTACT_SCHEMA, validate_payload
from .serialization import _emit_structured_log, _now_iso

__all__ = ["handle_contact_submit"]


def handle_contact_submit(
    event: Dict[str, Any],
    services: Services,
    claims: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Public route; ``claims`` is always None."""
    try:
        body = _json_body(event)
    except ValueError as exc:
        raise ValidationError(str(exc), [{"field": "body", "message": str(exc)}]) from exc

    payload, errors = validate_payload(CONTACT_SCHEMA, body)
    if errors:
        raise ValidationError("Validation Error", errors)

    message = {
        "id": str(uuid.uuid4()),
        "timestamp": _now_iso(),
        "ip": _source_ip(event),
        "name": payload["name"],
        "email": payload["email"],
        "message": payload["message"],
    }
    services.messages.put(message)

    email_sent = False
    warning = None
    mailer = services.mailer
    if not mailer.is_configured():
        logger.warning("contact notification skipped: FROM_EMAIL or NOTIFICATION_EMAIL not set")
        warning = "Message saved but email notification is not configured"
    else:
        try:
            mailer.send_contact_notification(message)
            email_sent = True
        except (BotoCoreError, ClientError) as exc:
            logger.error("contact notification failed: id=%s error=%s", message["id"], exc)
            warning = "Message saved but email notification failed"

    _emit_structured_log(event="contact_submitted", status_code=201, message_id=message["id"], email_sent=email_sent)

    data = {
        "id": message["id"],
        "createdAt": message["timestamp"],
        "emailSent": email_sent,
        "message": "Contact message received successfully",
    }
    if warning:
        data["warning"] = warning
    return _success(data, 201, _origin(event))
