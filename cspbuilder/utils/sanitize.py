"""Character filters applied to values before they reach the header."""

from __future__ import annotations

import re

# Everything outside the URL-safe set: letters, digits and
# $-_.+!*'(),{}|\^~[]`<>#%";/?:@&=
_URL_UNSAFE_RE = re.compile(r"[^A-Za-z0-9$\-_.+!*'(),{}|\\^~\[\]`<>#%\";/?:@&=]")

_ALGORITHM_UNSAFE_RE = re.compile(r"[^A-Za-z0-9]")

# Base64 alphabet plus padding.
_DIGEST_UNSAFE_RE = re.compile(r"[^A-Za-z0-9+/=]")


def sanitize_url(value: object) -> str | None:
    """Strip characters that are not legal in a URL.

    Returns None when nothing usable is left (non-string input, or a value
    made up entirely of illegal characters).
    """
    if not isinstance(value, str):
        return None
    cleaned = _URL_UNSAFE_RE.sub("", value)
    if not cleaned:
        return None
    return cleaned


def sanitize_algorithm(value: str) -> str:
    return _ALGORITHM_UNSAFE_RE.sub("", value)


def sanitize_digest(value: str) -> str:
    """Filter a hash digest or nonce down to the base64 alphabet."""
    return _DIGEST_UNSAFE_RE.sub("", value)
