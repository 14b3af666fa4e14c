from __future__ import annotations

import re
from typing import Iterable, List, Optional, Union
from urllib.parse import urlparse


def split_list(value: Union[str, Iterable[str], None]) -> List[str]:
    """Accept "a, b" or ["a", "b"]; trims, drops blanks, keeps first occurrence order."""
    if value is None:
        return []
    items = value.split(",") if isinstance(value, str) else list(value)
    out: List[str] = []
    seen = set()
    for item in items:
        cleaned = re.sub(r"\s+", " ", str(item)).strip()
        key = cleaned.lower()
        if cleaned and key not in seen:
            seen.add(key)
            out.append(cleaned)
    return out


def is_valid_url(url: Optional[str]) -> bool:
    """Only http/https; rejects javascript: and data: links."""
    if not url:
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def clean_text(value: Optional[str], max_len: Optional[int] = None) -> str:
    cleaned = (value or "").strip()
    if max_len is not None:
        cleaned = cleaned[:max_len]
    return cleaned
