from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

_SIZE_SEGMENT_RE = re.compile(r"/t_[A-Za-z0-9_]+/")


def as_str(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def as_int(value: object) -> int | None:
    """
    Strict numeric conversion.

    - Accepts: int, integral float
    - Rejects: bool, strings (even if numeric)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    return None


def year_from_epoch_seconds(value: object) -> int | None:
    """
    Extract a year (UTC) from a unix epoch timestamp in seconds.

    Accepts only numeric types (int/integral float). Rejects strings.
    """
    ts = as_int(value)
    if ts is None:
        return None
    if ts <= 0:
        return None
    try:
        return int(datetime.fromtimestamp(ts, tz=timezone.utc).year)
    except (OverflowError, OSError, ValueError):
        return None


def unique_names(values: object) -> list[str]:
    """
    Trim a list of names and drop blanks and exact duplicates, keeping first-seen order.

    Case is preserved and significant: "SEGA" and "Sega" are distinct names.
    """
    if not isinstance(values, list):
        return []
    out: list[str] = []
    seen: set[str] = set()
    for v in values:
        s = as_str(v)
        if not s or s in seen:
            continue
        seen.add(s)
        out.append(s)
    return out


def get_list_of_dicts(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def get_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def normalize_url(url: object) -> str | None:
    s = as_str(url)
    if not s:
        return None
    if s.startswith("//"):
        return f"https:{s}"
    return s


def normalize_image_url(url: object, size: str) -> str | None:
    """
    Upgrade a protocol-relative IGDB image URL and swap its `/t_<size>/` segment.

    `//images.igdb.com/igdb/image/upload/t_thumb/abc.jpg` with size `t_cover_big` becomes
    `https://images.igdb.com/igdb/image/upload/t_cover_big/abc.jpg`.
    """
    normalized = normalize_url(url)
    if not normalized:
        return None
    return _SIZE_SEGMENT_RE.sub(f"/{size}/", normalized, count=1)
