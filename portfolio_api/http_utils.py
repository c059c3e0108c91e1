"""http_utils.py — HTTP response building, CORS, body parsing, path/method extraction."""
from __future__ import annotations

import base64
import json
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from . import config

__all__ = [
    "_cors_headers",
    "_error",
    "_json_body",
    "_origin",
    "_path_method",
    "_preflight",
    "_response",
    "_source_ip",
    "_success",
]

# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def _origin(event: Dict[str, Any]) -> Optional[str]:
    headers = event.get("headers") or {}
    return headers.get("origin") or headers.get("Origin")


def _allowed_origin(origin: Optional[str]) -> str:
    allowed = config.ALLOWED_ORIGINS
    if not allowed:
        return origin or "*"
    if origin and origin in allowed:
        return origin
    return allowed[0]


def _cors_headers(origin: Optional[str] = None) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": _allowed_origin(origin),
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
        "Access-Control-Allow-Methods": "GET,POST,PATCH,DELETE,OPTIONS",
        "Access-Control-Max-Age": "300",
    }


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _response(status_code: int, payload: Any, origin: Optional[str] = None) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {**_cors_headers(origin), "Content-Type": "application/json"},
        "body": json.dumps(payload, default=_json_default),
    }


def _success(data: Any, status_code: int = 200, origin: Optional[str] = None) -> Dict[str, Any]:
    return _response(status_code, {"success": True, "data": data}, origin)


def _error(
    status_code: int,
    message: str,
    details: Any = None,
    origin: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    code = str(extra.pop("code", "") or "").strip().upper()
    if not code:
        if status_code == 400:
            code = "INVALID_INPUT"
        elif status_code == 401:
            code = "PERMISSION_DENIED"
        elif status_code == 403:
            code = "FORBIDDEN"
        elif status_code == 404:
            code = "NOT_FOUND"
        elif status_code == 405:
            code = "METHOD_NOT_ALLOWED"
        elif status_code == 409:
            code = "CONFLICT"
        else:
            code = "INTERNAL_ERROR"
    retryable = bool(extra.pop("retryable", status_code >= 500 and code != "PARTIAL_WRITE"))
    body: Dict[str, Any] = {
        "success": False,
        "error": message,
        "error_envelope": {
            "code": code,
            "message": message,
            "retryable": retryable,
            "details": dict(extra),
        },
    }
    if details is not None:
        body["details"] = details
    return _response(status_code, body, origin)


def _preflight(origin: Optional[str] = None) -> Dict[str, Any]:
    return {"statusCode": 204, "headers": _cors_headers(origin), "body": ""}


# ---------------------------------------------------------------------------
# Request parsing
# ---------------------------------------------------------------------------


def _json_body(event: Dict[str, Any]) -> Any:
    """Decode the request body. Raises ValueError on a missing or malformed body."""
    raw = event.get("body")
    if raw in (None, ""):
        raise ValueError("Request body is required")
    if event.get("isBase64Encoded"):
        raw = base64.b64decode(raw).decode("utf-8")
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ValueError("Invalid JSON in request body") from exc


def _path_method(event: Dict[str, Any]) -> Tuple[str, str]:
    rc = event.get("requestContext") or {}
    http = rc.get("http") or {}
    method = (http.get("method") or event.get("httpMethod") or "GET").upper()
    path = http.get("path") or event.get("rawPath") or event.get("path") or "/"
    return method, path


def _source_ip(event: Dict[str, Any]) -> Optional[str]:
    rc = event.get("requestContext") or {}
    return (rc.get("http") or {}).get("sourceIp") or (rc.get("identity") or {}).get("sourceIp")
