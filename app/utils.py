"""Utility helpers for the StreamHub service."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Iterable


HTTP_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
APP_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)


def clamp_int(value: Any, *, default: int, lower: int, upper: int) -> int:
    """Coerce ``value`` to an int inside ``[lower, upper]``.

    Unparsable values fall back to ``default`` before clamping; out-of-range
    values are clamped rather than rejected.
    """

    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        number = default
    return max(lower, min(number, upper))


def is_http_url(value: Any) -> bool:
    return isinstance(value, str) and bool(HTTP_URL_RE.match(value))


def is_app_scheme(value: Any) -> bool:
    return isinstance(value, str) and bool(APP_SCHEME_RE.match(value))


def release_timestamp(value: Any) -> float:
    """Return a sortable timestamp for a ``YYYY-MM-DD`` date, ``0`` when unusable."""

    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp()
    if not isinstance(value, str) or not value.strip():
        return 0.0
    try:
        parsed = datetime.strptime(value.strip()[:10], "%Y-%m-%d")
    except ValueError:
        return 0.0
    return parsed.replace(tzinfo=timezone.utc).timestamp()


def split_csv(value: str | Iterable[str] | None) -> list[str]:
    """Split a comma separated parameter into unique, non-empty entries."""

    if value is None:
        return []
    if isinstance(value, str):
        raw = value.split(",")
    else:
        raw = list(value)
    cleaned: list[str] = []
    for entry in raw:
        text = str(entry).strip()
        if text and text not in cleaned:
            cleaned.append(text)
    return cleaned
