from __future__ import annotations

import hashlib


def md5_hex(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()  # noqa: S324


def request_key(url: str) -> str:
    """
    Cache key for a scanned URL, as used by callers that memoize serialized documents.
    """
    return f"OpenGraph:{md5_hex(url)}"
