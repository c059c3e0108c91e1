"""config.py — Environment configuration, limits, and logging setup.

Environment variables:
    CONTENT_BUCKET             S3 bucket holding content/ (fallback: SITE_BUCKET)
    CONTACT_TABLE              DynamoDB table for contact messages (fallback: TABLE_NAME)
    AWS_REGION                 default: us-east-1
    COGNITO_USER_POOL_ID       e.g. us-east-1_AbCdEfGhI
    COGNITO_CLIENT_ID          Cognito app client id (access-token client_id claim)
    ALLOWED_ORIGIN             comma-separated CORS origins (empty: echo request origin or *)
    FROM_EMAIL                 SES sender for contact notifications
    NOTIFICATION_EMAIL         SES recipient for contact notifications
    SES_CONFIGURATION_SET      optional SES configuration set
    STAGE                      default: production
    AUTH_UNCONFIGURED_POLICY   allow | deny (default: allow on dev/local/test, else deny)
    ADMIN_EMPTY_GROUPS_POLICY  allow | deny (default: deny)
    ADMIN_GROUPS               comma-separated admin group names (default: admin)
    UPLOAD_SECTIONS            comma-separated upload sections (default: exp,job)
    LOG_LEVEL                  default: INFO
"""
from __future__ import annotations

import logging
import os


def _csv_env(name: str, default: str = "") -> tuple[str, ...]:
    """Return deduplicated, non-empty values from a comma-separated env var."""
    values: list[str] = []
    for part in os.environ.get(name, default).split(","):
        value = part.strip()
        if value and value not in values:
            values.append(value)
    return tuple(values)


def _policy_env(name: str, default: str) -> str:
    value = os.environ.get(name, "").strip().lower()
    if value not in ("allow", "deny"):
        return default
    return value


__all__ = [
    "ADMIN_EMPTY_GROUPS_POLICY",
    "ADMIN_GROUPS",
    "ALLOWED_ORIGINS",
    "AUTH_UNCONFIGURED_POLICY",
    "AWS_REGION",
    "COGNITO_CLIENT_ID",
    "COGNITO_USER_POOL_ID",
    "CONTACT_TABLE",
    "CONTENT_BUCKET",
    "CONTENT_SECTIONS",
    "FROM_EMAIL",
    "NOTIFICATION_EMAIL",
    "PRESIGNED_URL_TTL_SECONDS",
    "SCHEMA_VERSION",
    "SES_CONFIGURATION_SET",
    "SLUG_MAX_LENGTH",
    "SLUG_PATTERN",
    "STAGE",
    "UPLOAD_SECTIONS",
    "logger",
]

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

CONTENT_BUCKET = os.environ.get("CONTENT_BUCKET", os.environ.get("SITE_BUCKET", ""))
CONTACT_TABLE = os.environ.get("CONTACT_TABLE", os.environ.get("TABLE_NAME", "contact_messages"))
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")
COGNITO_USER_POOL_ID = os.environ.get("COGNITO_USER_POOL_ID", "")
COGNITO_CLIENT_ID = os.environ.get("COGNITO_CLIENT_ID", "")
ALLOWED_ORIGINS = _csv_env("ALLOWED_ORIGIN")
FROM_EMAIL = os.environ.get("FROM_EMAIL", "")
NOTIFICATION_EMAIL = os.environ.get("NOTIFICATION_EMAIL", "")
SES_CONFIGURATION_SET = os.environ.get("SES_CONFIGURATION_SET", "")
STAGE = os.environ.get("STAGE", "production").strip().lower()

# Unconfigured Cognito only authenticates everyone on development stages.
AUTH_UNCONFIGURED_POLICY = _policy_env(
    "AUTH_UNCONFIGURED_POLICY",
    "allow" if STAGE in ("dev", "local", "test") else "deny",
)
ADMIN_EMPTY_GROUPS_POLICY = _policy_env("ADMIN_EMPTY_GROUPS_POLICY", "deny")
ADMIN_GROUPS = _csv_env("ADMIN_GROUPS", "admin")

CONTENT_SECTIONS = ("experience", "projects", "education")
UPLOAD_SECTIONS = _csv_env("UPLOAD_SECTIONS", "exp,job")

SLUG_PATTERN = r"^[a-z0-9]+(-[a-z0-9]+)*$"
SLUG_MAX_LENGTH = 50
SCHEMA_VERSION = 1
PRESIGNED_URL_TTL_SECONDS = 3600

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
