"""Sanitisation helpers for Lounge log output."""

from __future__ import annotations

import re

_BEARER_RE = re.compile(r"Bearer\s+[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)
_SECRET_QUERY_RE = re.compile(
    r"(?i)\b(loungeIdToken|loungeToken|SID|gsessionid|id|pairing_code)=([^&\s]+)"
)
_SECRET_JSON_RE = re.compile(r'(?i)"(loungeToken|screenId)"\s*:\s*"[^"]*"')


def redact_text(value: str | None) -> str:
    """Return ``value`` with lounge tokens, channel ids and bearer tokens removed."""

    if not value:
        return ""
    text = str(value)
    redacted = _BEARER_RE.sub("Bearer ***", text)
    redacted = _SECRET_QUERY_RE.sub(lambda match: f"{match.group(1)}=***", redacted)
    return _SECRET_JSON_RE.sub(lambda match: f'"{match.group(1)}":"***"', redacted)


def mask_identifier(value: str | None) -> str:
    """Return a masked identifier suitable for log output."""

    if value is None:
        return ""
    trimmed = str(value).strip()
    if not trimmed:
        return ""
    if len(trimmed) <= 4:
        return "***"
    if len(trimmed) <= 8:
        return f"{trimmed[:2]}...{trimmed[-2:]}"
    prefix = trimmed[:6]
    suffix = trimmed[-4:]
    return f"{prefix}...{suffix}"


__all__ = ["mask_identifier", "redact_text"]
