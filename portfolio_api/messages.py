"""messages.py — DynamoDB row store for contact-form messages."""
from __future__ import annotations

from typing import Any, Dict

from .config import logger
from .serialization import _serialize

__all__ = ["ContactMessageStore"]


class ContactMessageStore:
    def __init__(self, client: Any, table: str) -> None:
        self._ddb = client
        self.table = table

    def put(self, message: Dict[str, Any]) -> None:
        """Write one message row. Each row carries a fresh uuid, so writes never collide."""
        self._ddb.put_item(
            TableName=self.table,
            Item={k: _serialize(v) for k, v in message.items() if v is not None},
        )
        logger.info("contact message stored: id=%s table=%s", message.get("id"), self.table)
