"""Compile a policy store into a Content-Security-Policy header."""

from __future__ import annotations

import secrets
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from cspbuilder.config.loader import BuilderSettings, get_settings, load_policy_file
from cspbuilder.core.directives import DIRECTIVES
from cspbuilder.core.formatter import format_directive
from cspbuilder.core.sources import should_upgrade
from cspbuilder.core.store import (
    DEFAULT_HASH_ALGORITHM,
    DEFAULT_NONCE_BYTES,
    Digest,
    PolicyStore,
    RandomBytes,
    hashlib_digest,
)
from cspbuilder.models.policy import ConnectionContext

logger = structlog.get_logger()

HEADER_NAME = "Content-Security-Policy"
REPORT_ONLY_HEADER_NAME = "Content-Security-Policy-Report-Only"

_SNIPPET_TEMPLATES: dict[str, str] = {
    "nginx": 'add_header {name} "{value}";',
    "apache": 'Header set {name} "{value}"',
}


class CSPBuilder:
    """Build a CSP header from a nested directive -> clause policy.

    The compiled string is cached until the next mutation. Connection state
    is passed in explicitly on each read; a read with a different
    ConnectionContext than the cached one forces a recompile.

    Example:
        >>> csp = CSPBuilder({"script-src": {"self": True}})
        >>> csp.get_header_array()
        {"Content-Security-Policy": "script-src 'self'; "}
    """

    def __init__(
        self,
        policy: Mapping[str, Any] | None = None,
        *,
        https_transform_on_https_connections: bool = True,
        random_bytes: RandomBytes = secrets.token_bytes,
        digest: Digest = hashlib_digest,
        nonce_bytes: int = DEFAULT_NONCE_BYTES,
        default_hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
    ) -> None:
        self._store = PolicyStore(
            policy, random_bytes=random_bytes, digest=digest, nonce_bytes=nonce_bytes
        )
        self._https_transform = https_transform_on_https_connections
        self._default_hash_algorithm = default_hash_algorithm
        self._compiled = ""
        self._compiled_context: ConnectionContext | None = None
        self._report_only = False

    @classmethod
    def from_file(cls, path: str | Path, **kwargs: Any) -> CSPBuilder:
        """Build from a YAML or JSON policy document."""
        return cls(load_policy_file(path), **kwargs)

    @classmethod
    def from_settings(cls, settings: BuilderSettings | None = None) -> CSPBuilder:
        """Build from ``BuilderSettings`` (process settings when omitted)."""
        settings = settings or get_settings()
        policy = load_policy_file(settings.policy_file) if settings.policy_file else None
        return cls(
            policy,
            https_transform_on_https_connections=settings.https_transform_on_https_connections,
            nonce_bytes=settings.nonce_bytes,
            default_hash_algorithm=settings.default_hash_algorithm,
        )

    @property
    def store(self) -> PolicyStore:
        return self._store

    @property
    def needs_compile(self) -> bool:
        return self._store.dirty

    # ── Compilation ─────────────────────────────────────────────────────

    def compile(self, context: ConnectionContext | None = None) -> str:
        """Rebuild the header value from the store and cache it."""
        context = context or ConnectionContext()
        store = self._store

        self._report_only = store.report_only
        upgrade = should_upgrade(context, self._https_transform, store.upgrade_insecure_requests)

        fragments: list[str] = []
        for directive in DIRECTIVES:
            clause = store.get_clause(directive)
            if clause is None:
                continue
            fragments.append(format_directive(directive, clause, upgrade))

        if store.report_uri:
            fragments.append(f"report-uri {store.report_uri}; ")

        if store.upgrade_insecure_requests:
            # No trailing "; " here, unlike every other fragment.
            fragments.append("upgrade-insecure-requests")

        self._compiled = "".join(fragments)
        self._compiled_context = context
        store.dirty = False
        logger.debug(
            "policy_compiled",
            report_only=self._report_only,
            secure=context.is_secure,
            length=len(self._compiled),
        )
        return self._compiled

    def _ensure_compiled(self, context: ConnectionContext | None) -> None:
        context = context or ConnectionContext()
        if self._store.dirty or context != self._compiled_context:
            self.compile(context)

    def get_compiled_header(self, context: ConnectionContext | None = None) -> str:
        self._ensure_compiled(context)
        return self._compiled

    def get_header_name(self, context: ConnectionContext | None = None) -> str:
        self._ensure_compiled(context)
        return REPORT_ONLY_HEADER_NAME if self._report_only else HEADER_NAME

    def get_header_array(self, context: ConnectionContext | None = None) -> dict[str, str]:
        """Single-entry ``{header name: header value}`` mapping."""
        self._ensure_compiled(context)
        return {self.get_header_name(context): self._compiled}

    def get_snippet(self, server_type: str, context: ConnectionContext | None = None) -> str:
        """Render the header as an nginx or apache configuration line."""
        try:
            template = _SNIPPET_TEMPLATES[server_type]
        except KeyError:
            raise ValueError(
                f"Unsupported server type {server_type!r}; expected one of "
                f"{', '.join(sorted(_SNIPPET_TEMPLATES))}"
            ) from None
        value = self.get_compiled_header(context).replace('"', '\\"')
        return template.format(name=self.get_header_name(context), value=value)

    def export_policy(self) -> dict[str, Any]:
        return self._store.export()

    # ── Policy mutators ─────────────────────────────────────────────────

    def add_source(self, directive: str, url: str) -> CSPBuilder:
        self._store.add_source(directive, url)
        return self

    def set_directive(self, key: str, value: Any) -> CSPBuilder:
        self._store.set_directive(key, value)
        return self

    def add_directive(self, key: str, value: Any = None) -> CSPBuilder:
        self._store.add_directive(key, value)
        return self

    def allow_plugin_type(self, mime: str = "text/plain") -> CSPBuilder:
        self._store.allow_plugin_type(mime)
        return self

    def hash(
        self, directive: str, content: str | bytes, algorithm: str | None = None
    ) -> CSPBuilder:
        self._store.hash(directive, content, algorithm or self._default_hash_algorithm)
        return self

    def pre_hash(self, directive: str, digest: str, algorithm: str | None = None) -> CSPBuilder:
        self._store.pre_hash(directive, digest, algorithm or self._default_hash_algorithm)
        return self

    def nonce(self, directive: str = "script-src", value: str = "") -> str:
        return self._store.nonce(directive, value)

    def set_report_uri(self, uri: str) -> CSPBuilder:
        self._store.set_directive("report-uri", uri)
        return self

    def set_report_only(self, enabled: bool = True) -> CSPBuilder:
        self._store.set_directive("report-only", enabled)
        return self

    def enable_upgrade_insecure_requests(self) -> CSPBuilder:
        self._store.set_directive("upgrade-insecure-requests", True)
        return self

    def disable_upgrade_insecure_requests(self) -> CSPBuilder:
        self._store.set_directive("upgrade-insecure-requests", False)
        return self

    def set_self_allowed(self, directive: str, allow: bool = True) -> CSPBuilder:
        self._store.set_keyword(directive, "allow_self", allow)
        return self

    def set_allow_unsafe_inline(self, directive: str, allow: bool = True) -> CSPBuilder:
        self._store.set_keyword(directive, "unsafe_inline", allow)
        return self

    def set_allow_unsafe_eval(self, directive: str, allow: bool = True) -> CSPBuilder:
        self._store.set_keyword(directive, "unsafe_eval", allow)
        return self

    def set_data_allowed(self, directive: str, allow: bool = True) -> CSPBuilder:
        self._store.set_keyword(directive, "data", allow)
        return self

    # ── HTTPS transform ─────────────────────────────────────────────────

    def disable_https_transform_on_https_connections(self) -> CSPBuilder:
        """Keep ``http://`` sources as-is on HTTPS connections.

        upgrade-insecure-requests still rewrites them.
        """
        if self._https_transform:
            self._store.dirty = True
        self._https_transform = False
        return self

    def enable_https_transform_on_https_connections(self) -> CSPBuilder:
        if not self._https_transform:
            self._store.dirty = True
        self._https_transform = True
        return self
