"""
app/validators/record_sanitizer.py

Display-safety scrubbing for string values before they are persisted.

Uploaded values end up rendered on public pages, so script blocks, inline
event handlers and ``javascript:`` schemes are removed and HTML
metacharacters escaped. Non-string values pass through untouched.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+\s*=", re.IGNORECASE)
_JAVASCRIPT_SCHEME = re.compile(r"javascript:", re.IGNORECASE)


def sanitize_value(value: str) -> str:
    cleaned = _SCRIPT_BLOCK.sub("", value)
    cleaned = _EVENT_HANDLER.sub("", cleaned)
    cleaned = _JAVASCRIPT_SCHEME.sub("", cleaned)
    return cleaned.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def sanitize_record(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        key: sanitize_value(value) if isinstance(value, str) else value
        for key, value in record.items()
    }
