"""In-memory stand-ins for the S3, DynamoDB and SES clients used by the tests."""
from __future__ import annotations

import base64
import io
import json
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from ..aws_clients import Services
from ..messages import ContactMessageStore
from ..notifications import NotificationMailer
from ..storage import ObjectStore

BUCKET = "portfolio-test-bucket"

ADMIN_CLAIMS = {
    "sub": "user-123",
    "email": "admin@example.com",
    "cognito:username": "admin-user",
    "cognito:groups": ["admin"],
    "token_use": "access",
}


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class _FakePaginator:
    def __init__(self, s3: "FakeS3", page_size: int) -> None:
        self._s3 = s3
        self._page_size = page_size

    def paginate(self, Bucket, Prefix=""):  # noqa: N803
        keys = sorted(k for k in self._s3.objects if k.startswith(Prefix))
        if not keys:
            yield {"KeyCount": 0}
            return
        for start in range(0, len(keys), self._page_size):
            yield {"Contents": [{"Key": k} for k in keys[start:start + self._page_size]]}


class FakeS3:
    """Dict-backed S3 client covering the calls ``ObjectStore`` makes."""

    def __init__(self, page_size: int = 1000) -> None:
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.put_calls: List[str] = []
        self.fail_put_keys: set = set()
        self.page_size = page_size

    # -- seeding / inspection helpers ---------------------------------------

    def seed_json(self, key: str, doc: Any) -> None:
        self.objects[key] = {"Body": json.dumps(doc).encode("utf-8"), "ContentType": "application/json"}

    def load_json(self, key: str) -> Any:
        return json.loads(self.objects[key]["Body"].decode("utf-8"))

    # -- boto3 surface -------------------------------------------------------

    def head_object(self, Bucket, Key):  # noqa: N803
        if Key not in self.objects:
            raise _client_error("404", "HeadObject")
        return {"ContentLength": len(self.objects[Key]["Body"])}

    def get_object(self, Bucket, Key):  # noqa: N803
        if Key not in self.objects:
            raise _client_error("NoSuchKey", "GetObject")
        return {"Body": io.BytesIO(self.objects[Key]["Body"])}

    def put_object(self, Bucket, Key, Body, ContentType=None, CacheControl=None):  # noqa: N803
        if Key in self.fail_put_keys:
            raise _client_error("InternalError", "PutObject")
        self.put_calls.append(Key)
        self.objects[Key] = {"Body": Body, "ContentType": ContentType, "CacheControl": CacheControl}
        return {"ETag": '"fake"'}

    def get_paginator(self, name):
        assert name == "list_objects_v2"
        return _FakePaginator(self, self.page_size)

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):  # noqa: N803
        return f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}?X-Amz-Expires={ExpiresIn}"


class FakeDdb:
    def __init__(self) -> None:
        self.put_requests: List[Dict[str, Any]] = []

    def put_item(self, **kwargs):
        self.put_requests.append(kwargs)
        return {}


class FakeSes:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.sent: List[Dict[str, Any]] = []
        self.error = error

    def send_email(self, **kwargs):
        if self.error is not None:
            raise self.error
        self.sent.append(kwargs)
        return {"MessageId": f"ses-{len(self.sent)}"}


def make_services(
    s3: Optional[FakeS3] = None,
    ddb: Optional[FakeDdb] = None,
    ses: Optional[FakeSes] = None,
    *,
    from_email: str = "noreply@example.com",
    notification_email: str = "owner@example.com",
) -> Services:
    return Services(
        store=ObjectStore(s3 if s3 is not None else FakeS3(), BUCKET),
        messages=ContactMessageStore(ddb if ddb is not None else FakeDdb(), "contact_messages"),
        mailer=NotificationMailer(
            ses if ses is not None else FakeSes(),
            from_email=from_email,
            notification_email=notification_email,
        ),
    )


def make_event(
    method: str,
    path: str,
    body: Any = None,
    *,
    headers: Optional[Dict[str, str]] = None,
    source_ip: str = "203.0.113.7",
    base64_body: bool = False,
) -> Dict[str, Any]:
    """Build an API Gateway HTTP API (payload v2) event."""
    event: Dict[str, Any] = {
        "rawPath": path,
        "headers": dict(headers or {}),
        "requestContext": {
            "stage": "$default",
            "http": {"method": method, "path": path, "sourceIp": source_ip},
        },
    }
    if body is not None:
        raw = body if isinstance(body, str) else json.dumps(body)
        if base64_body:
            raw = base64.b64encode(raw.encode("utf-8")).decode("ascii")
            event["isBase64Encoded"] = True
        event["body"] = raw
    return event


def response_json(response: Dict[str, Any]) -> Dict[str, Any]:
    return json.loads(response["body"])


# ---------------------------------------------------------------------------
# Valid payloads per section
# ---------------------------------------------------------------------------


def experience_payload(slug: str = "acme-backend", **overrides: Any) -> Dict[str, Any]:
    payload = {
        "slug": slug,
        "title": "Backend Engineer at Acme",
        "summary": "Built the order pipeline.",
        "description": "Owned the order pipeline end to end.",
        "tech": ["Python", "AWS Lambda", "DynamoDB"],
        "start_date": "2022-03-01",
        "end_date": "present",
        "media": [{"type": "image", "src": "cover.png", "alt": "Dashboard"}],
        "urls": {"linkedin": "https://www.linkedin.com/company/acme"},
        "company": "Acme",
        "role": "Backend Engineer",
        "employment_type": "full-time",
        "location": "Remote",
        "team": "Orders",
        "responsibilities": ["Design APIs", "Run on-call"],
        "achievements": ["Cut p99 latency by 40%"],
    }
    payload.update(overrides)
    return payload


def project_payload(slug: str = "portfolio-site", **overrides: Any) -> Dict[str, Any]:
    payload = {
        "slug": slug,
        "title": "Portfolio Site",
        "summary": "Static site with an admin API.",
        "tech": ["Next.js", "Python"],
        "start_date": "2023-01-15",
        "end_date": "2023-06-30",
        "media": [],
        "features": ["Admin editor", "Contact form"],
        "achievements": ["Lighthouse 100"],
        "deployment": {"platform": "AWS", "ci_cd": "GitHub Actions"},
    }
    payload.update(overrides)
    return payload


def education_payload(slug: str = "state-university", **overrides: Any) -> Dict[str, Any]:
    payload = {
        "slug": slug,
        "title": "BSc Computer Science",
        "summary": "Four-year degree.",
        "tech": [],
        "start_date": "2015-09-01",
        "end_date": "2019-06-01",
        "institution": "State University",
        "degree": "BSc Computer Science",
        "location": "Springfield",
        "coursework": ["Algorithms", "Operating Systems"],
    }
    payload.update(overrides)
    return payload
