"""lambda_function.py — Portfolio API Lambda entry point.

Routes (API Gateway HTTP API, payload v2):
    OPTIONS *                               CORS preflight
    POST  /contact                          contact form (public)
    POST  /admin/uploads                    presigned media upload URL (admin)
    GET   /admin/{section}                  list index entries (admin)
    GET   /admin/{section}/{slug}           full content record (admin)
    POST  /admin/{section}/{slug}           create content record (admin)
    PATCH /admin/{section}/{slug}           edit content record (admin)
    GET   /public/{section}                 list index entries (public fields)
    GET   /public/{section}/{slug}          public view of a content record

Handlers raise ``ApiError`` subclasses; they are turned into error responses
here. Any other exception is logged and returned as a generic 500.
"""
from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from .auth import require_admin
from .aws_clients import Services, default_services
from .config import logger
from .contact import handle_contact_submit
from .content_handlers import handle_create, handle_edit, handle_get, handle_list
from .errors import ApiError, MethodNotAllowed, RouteNotFound
from .http_utils import _error, _origin, _path_method, _preflight
from .serialization import _emit_structured_log
from .uploads import handle_upload_url

__all__ = ["lambda_handler"]

_SEGMENT = r"[^/]+"

Handler = Callable[..., Dict[str, Any]]

# (path pattern, {method: (admin_only, handler)}). First matching pattern wins.
_ROUTES: List[Tuple[re.Pattern, Dict[str, Tuple[bool, Handler]]]] = [
    (re.compile(r"/contact/?"), {"POST": (False, handle_contact_submit)}),
    (re.compile(r"/admin/uploads/?"), {"POST": (True, handle_upload_url)}),
    (
        re.compile(rf"/admin/(?P<section>{_SEGMENT})/(?P<slug>{_SEGMENT})/?"),
        {
            "GET": (True, handle_get),
            "POST": (True, handle_create),
            "PATCH": (True, handle_edit),
        },
    ),
    (re.compile(rf"/admin/(?P<section>{_SEGMENT})/?"), {"GET": (True, handle_list)}),
    (re.compile(rf"/public/(?P<section>{_SEGMENT})/(?P<slug>{_SEGMENT})/?"), {"GET": (False, handle_get)}),
    (re.compile(rf"/public/(?P<section>{_SEGMENT})/?"), {"GET": (False, handle_list)}),
]


def _route_path(event: Dict[str, Any], path: str) -> str:
    """Drop a named-stage prefix (``/prod/admin/...``) from the request path."""
    stage = (event.get("requestContext") or {}).get("stage") or ""
    if stage and stage != "$default" and path.startswith(f"/{stage}/"):
        return path[len(stage) + 1:]
    return path


def _match_route(method: str, path: str) -> Tuple[bool, Handler, Dict[str, str]]:
    for pattern, methods in _ROUTES:
        match = pattern.fullmatch(path)
        if not match:
            continue
        if method not in methods:
            raise MethodNotAllowed(f"Method {method} not allowed for {path}", allowed=sorted(methods))
        admin_only, handler = methods[method]
        return admin_only, handler, match.groupdict()
    raise RouteNotFound(f"Unsupported route: {method} {path}")


def lambda_handler(event: Dict[str, Any], context: Any, services: Optional[Services] = None) -> Dict[str, Any]:
    method, raw_path = _path_method(event)
    origin = _origin(event)

    if method == "OPTIONS":
        return _preflight(origin)

    path = _route_path(event, raw_path)
    logger.info("route method=%s path=%s", method, path)

    try:
        admin_only, handler, params = _match_route(method, path)
        claims = require_admin(event) if admin_only else None
        return handler(event, services or default_services(), claims, **params)
    except ApiError as exc:
        if exc.status_code >= 500:
            logger.error("request failed: %s %s code=%s message=%s", method, path, exc.code, exc.message)
        else:
            logger.info("request rejected: %s %s status=%d code=%s", method, path, exc.status_code, exc.code)
        _emit_structured_log(event="request_failed", status_code=exc.status_code, method=method, path=path, code=exc.code)
        return _error(exc.status_code, exc.message, exc.details, origin, code=exc.code, **exc.extra)
    except Exception:
        logger.exception("unhandled error: %s %s", method, path)
        _emit_structured_log(event="request_failed", status_code=500, method=method, path=path, code="INTERNAL_ERROR")
        return _error(500, "Internal Server Error", "An error occurred processing the request", origin)
