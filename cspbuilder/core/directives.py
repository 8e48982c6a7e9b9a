"""Canonical CSP directive names and the friendly alias table."""

from __future__ import annotations

# Output order of compiled fragments. Directives outside this tuple are
# stored but never emitted.
DIRECTIVES: tuple[str, ...] = (
    "base-uri",
    "default-src",
    "child-src",
    "connect-src",
    "font-src",
    "form-action",
    "frame-ancestors",
    "frame-src",
    "img-src",
    "media-src",
    "object-src",
    "plugin-types",
    "script-src",
    "style-src",
)

# Top-level keys that hold policy flags rather than directive clauses.
REPORT_ONLY = "report-only"
REPORT_URI = "report-uri"
UPGRADE_INSECURE_REQUESTS = "upgrade-insecure-requests"
FLAG_KEYS = frozenset({REPORT_ONLY, REPORT_URI, UPGRADE_INSECURE_REQUESTS})

PLUGIN_TYPES = "plugin-types"

_ALIASES: dict[str, str] = {
    "child": "child-src",
    "frame": "child-src",
    "frame-src": "child-src",
    "connect": "connect-src",
    "socket": "connect-src",
    "websocket": "connect-src",
    "font": "font-src",
    "fonts": "font-src",
    "form": "form-action",
    "forms": "form-action",
    "ancestor": "frame-ancestors",
    "parent": "frame-ancestors",
    "img": "img-src",
    "image": "img-src",
    "image-src": "img-src",
    "media": "media-src",
    "object": "object-src",
    "js": "script-src",
    "javascript": "script-src",
    "script": "script-src",
    "scripts": "script-src",
    "style": "style-src",
    "css": "style-src",
    "css-src": "style-src",
}


def resolve_directive(name: str) -> str:
    """Map an alias like ``js`` or ``image`` to its canonical directive.

    Unknown names come back unchanged.
    """
    return _ALIASES.get(name, name)
