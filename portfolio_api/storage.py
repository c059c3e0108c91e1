"""storage.py — S3 object store gateway for content blobs.

Wraps an injected boto3 S3 client bound to one bucket. Reads of missing keys
return None; every other S3 failure propagates to the caller.
"""
from __future__ import annotations

from typing import Any, Iterator, Optional

from botocore.exceptions import ClientError

from .config import PRESIGNED_URL_TTL_SECONDS, logger
from .content_keys import record_prefix, section_prefix
from .serialization import format_json_for_storage, parse_json_blob

__all__ = ["ObjectStore"]

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}

JSON_CONTENT_TYPE = "application/json"
DIRECTORY_CONTENT_TYPE = "application/x-directory"
RECORD_CACHE_CONTROL = "no-cache"
INDEX_CACHE_CONTROL = "max-age=300"


def _is_missing(exc: ClientError) -> bool:
    return str(exc.response.get("Error", {}).get("Code", "")) in _MISSING_CODES


class ObjectStore:
    def __init__(self, client: Any, bucket: str) -> None:
        self._s3 = client
        self.bucket = bucket

    # -- reads -------------------------------------------------------------

    def exists(self, key: str) -> bool:
        try:
            self._s3.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if _is_missing(exc):
                return False
            raise
        return True

    def get_text(self, key: str) -> Optional[str]:
        try:
            resp = self._s3.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if _is_missing(exc):
                return None
            raise
        return resp["Body"].read().decode("utf-8")

    def get_json(self, key: str) -> Optional[Any]:
        """Fetch and decode a JSON blob; None when the key is absent or empty."""
        return parse_json_blob(self.get_text(key))

    def iter_keys(self, prefix: str) -> Iterator[str]:
        paginator = self._s3.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            for obj in page.get("Contents") or []:
                yield obj["Key"]

    # -- writes ------------------------------------------------------------

    def put_text(
        self,
        key: str,
        body: str,
        *,
        content_type: str,
        cache_control: Optional[str] = None,
    ) -> None:
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": body.encode("utf-8"),
            "ContentType": content_type,
        }
        if cache_control:
            params["CacheControl"] = cache_control
        self._s3.put_object(**params)

    def put_json(self, key: str, document: Any, *, cache_control: Optional[str] = RECORD_CACHE_CONTROL) -> None:
        self.put_text(
            key,
            format_json_for_storage(document),
            content_type=JSON_CONTENT_TYPE,
            cache_control=cache_control,
        )

    def copy(self, source_key: str, dest_key: str) -> bool:
        """Copy a blob within the bucket. Returns False when the source is absent."""
        body = self.get_text(source_key)
        if body is None:
            return False
        self.put_text(dest_key, body, content_type=JSON_CONTENT_TYPE, cache_control=RECORD_CACHE_CONTROL)
        return True

    def ensure_record_directory(self, section: str, slug: str) -> None:
        """Write the zero-byte directory markers for a section and a record."""
        section_dir = section_prefix(section)
        if not self.exists(section_dir):
            self.put_text(section_dir, "", content_type=DIRECTORY_CONTENT_TYPE)
        self.put_text(record_prefix(section, slug), "", content_type=DIRECTORY_CONTENT_TYPE)
        logger.info("content directory ready: %s", record_prefix(section, slug))

    # -- presigning --------------------------------------------------------

    def presign_put(self, key: str, content_type: str, expires_in: int = PRESIGNED_URL_TTL_SECONDS) -> str:
        return self._s3.generate_presigned_url(
            "put_object",
            Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=expires_in,
        )
