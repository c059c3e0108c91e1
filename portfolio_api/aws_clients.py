"""aws_clients.py — Lazy AWS clients and the injectable service container.

Clients are created on first use and cached for warm invocations. Handlers
never reach for them directly: they receive a ``Services`` instance, which
``default_services()`` assembles from these clients and tests replace with
fakes.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.config import Config

from . import config

__all__ = [
    "Services",
    "_get_ddb",
    "_get_s3",
    "_get_ses",
    "default_services",
]

# ---------------------------------------------------------------------------
# Client singletons
# ---------------------------------------------------------------------------

_s3 = None
_ddb = None
_ses = None
_services: Optional["Services"] = None


def _get_s3(region: Optional[str] = None):
    """Get (or create) the S3 client singleton."""
    global _s3
    if _s3 is None:
        _s3 = boto3.client(
            "s3",
            region_name=region or config.AWS_REGION,
            config=Config(retries={"max_attempts": 3, "mode": "standard"}, signature_version="s3v4"),
        )
    return _s3


def _get_ddb(region: Optional[str] = None):
    """Get (or create) the DynamoDB client singleton."""
    global _ddb
    if _ddb is None:
        _ddb = boto3.client(
            "dynamodb",
            region_name=region or config.AWS_REGION,
            config=Config(retries={"max_attempts": 3, "mode": "standard"}),
        )
    return _ddb


def _get_ses(region: Optional[str] = None):
    """Get (or create) the SES client singleton."""
    global _ses
    if _ses is None:
        _ses = boto3.client(
            "ses",
            region_name=region or config.AWS_REGION,
            config=Config(retries={"max_attempts": 2, "mode": "standard"}),
        )
    return _ses


# ---------------------------------------------------------------------------
# Service container
# ---------------------------------------------------------------------------


@dataclass
class Services:
    store: "ObjectStore"
    messages: "ContactMessageStore"
    mailer: "NotificationMailer"


def default_services() -> Services:
    """Build (once per container) the production service wiring."""
    global _services
    if _services is None:
        from .messages import ContactMessageStore
        from .notifications import NotificationMailer
        from .storage import ObjectStore

        if not config.CONTENT_BUCKET:
            raise RuntimeError("CONTENT_BUCKET or SITE_BUCKET environment variable is required")
        _services = Services(
            store=ObjectStore(_get_s3(), config.CONTENT_BUCKET),
            messages=ContactMessageStore(_get_ddb(), config.CONTACT_TABLE),
            mailer=NotificationMailer(
                _get_ses(),
                from_email=config.FROM_EMAIL,
                notification_email=config.NOTIFICATION_EMAIL,
                configuration_set=config.SES_CONFIGURATION_SET,
            ),
        )
    return _services
