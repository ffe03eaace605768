"""Shared utilities."""

from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone
from typing import Any

import orjson


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def json_dumps(obj: Any, indent: bool = False) -> str:
    option = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(obj, option=option).decode()


def json_loads(data: str | bytes) -> Any:
    return orjson.loads(data)


def content_hash(data: bytes | str) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def preview_words(text: str, max_words: int = 12) -> str:
    return " ".join(text.split()[:max_words])


_WORD_RE = re.compile(r"[a-z0-9_]+")


def tokenize(text: str | None) -> list[str]:
    """Lower-cased alphanumeric word tokens."""
    return _WORD_RE.findall((text or "").lower())
