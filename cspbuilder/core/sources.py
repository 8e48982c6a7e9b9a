"""Allow-list URL normalization: sanitize, then optionally upgrade to HTTPS."""

from __future__ import annotations

import structlog

from cspbuilder.models.policy import ConnectionContext
from cspbuilder.utils.sanitize import sanitize_url

logger = structlog.get_logger()

_INSECURE_PREFIX = "http://"
_SECURE_PREFIX = "https://"


def should_upgrade(
    context: ConnectionContext,
    https_transform: bool,
    upgrade_insecure_requests: bool,
) -> bool:
    """Decide whether ``http://`` sources are rewritten to ``https://``.

    upgrade-insecure-requests forces the rewrite even when the per-builder
    transform has been switched off.
    """
    if upgrade_insecure_requests:
        return True
    return context.is_secure and https_transform


def normalize_source(url: object, upgrade: bool) -> str | None:
    """Return the header token for one allow-listed URL, or None to drop it."""
    cleaned = sanitize_url(url)
    if cleaned is None:
        logger.debug("source_dropped", reason="sanitization_failed")
        return None
    if upgrade and cleaned.startswith(_INSECURE_PREFIX):
        return _SECURE_PREFIX + cleaned[len(_INSECURE_PREFIX):]
    return cleaned
