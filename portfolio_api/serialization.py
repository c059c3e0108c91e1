"""serialization.py — JSON blob formatting, DynamoDB serialization, timestamps, structured logs."""
from __future__ import annotations

import datetime as dt
import json
from decimal import Decimal
from typing import Any, Dict, Optional

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer

from .config import logger

__all__ = [
    "_deserialize",
    "_emit_structured_log",
    "_now_iso",
    "_now_z",
    "_serialize",
    "format_json_for_storage",
    "parse_json_blob",
]

# ---------------------------------------------------------------------------
# Stored JSON blobs
# ---------------------------------------------------------------------------


def format_json_for_storage(obj: Any) -> str:
    """Pretty-print a document the way content blobs are kept on S3."""
    return json.dumps(obj, indent=2, ensure_ascii=False)


def parse_json_blob(raw: Optional[str]) -> Optional[Any]:
    """Parse a stored blob. Empty input yields None; malformed JSON raises ValueError."""
    if raw is None or not raw.strip():
        return None
    return json.loads(raw)


# ---------------------------------------------------------------------------
# DynamoDB
# ---------------------------------------------------------------------------

_deserializer = TypeDeserializer()
_serializer = TypeSerializer()


def _serialize(value: Any) -> Dict[str, Any]:
    if isinstance(value, float):
        value = Decimal(str(value))
    return _serializer.serialize(value)


def _deserialize(raw: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in raw.items():
        val = _deserializer.deserialize(v)
        if isinstance(val, Decimal):
            val = int(val) if val == int(val) else float(val)
        out[k] = val
    return out


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def _now_z() -> str:
    return dt.datetime.now(dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _now_iso() -> str:
    """Millisecond-precision UTC timestamp, used for record and index stamps."""
    now = dt.datetime.now(dt.timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


# ---------------------------------------------------------------------------
# Structured logging
# ---------------------------------------------------------------------------


def _emit_structured_log(*, event: str, status_code: Optional[int] = None, **fields: Any) -> None:
    payload: Dict[str, Any] = {
        "timestamp": _now_z(),
        "component": "portfolio_api",
        "event": event,
    }
    if status_code is not None:
        payload["status_code"] = int(status_code)
    payload.update({k: v for k, v in fields.items() if v is not None})
    logger.info("[OBSERVABILITY] %s", json.dumps(payload, sort_keys=True, default=str))
