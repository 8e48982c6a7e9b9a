"""Mutable policy state: directive clauses, policy flags and the dirty flag."""

from __future__ import annotations

import base64
import hashlib
import secrets
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from cspbuilder.core.directives import (
    FLAG_KEYS,
    PLUGIN_TYPES,
    REPORT_ONLY,
    REPORT_URI,
    UPGRADE_INSECURE_REQUESTS,
    resolve_directive,
)
from cspbuilder.models.policy import (
    DirectiveClause,
    Empty,
    StructuredClause,
    Wildcard,
    clause_to_raw,
    parse_clause,
)

logger = structlog.get_logger()

DEFAULT_NONCE_BYTES = 18
DEFAULT_HASH_ALGORITHM = "sha384"

RandomBytes = Callable[[int], bytes]
Digest = Callable[[str, bytes], bytes]


def hashlib_digest(algorithm: str, data: bytes) -> bytes:
    """Raw digest of ``data``. Unknown algorithm names raise ValueError."""
    return hashlib.new(algorithm, data).digest()


class PolicyStore:
    """Directive -> clause mapping plus report-only / report-uri / upgrade flags.

    Every mutation marks the store dirty; the compiler clears the flag once it
    has rebuilt the header.
    """

    def __init__(
        self,
        policy: Mapping[str, Any] | None = None,
        *,
        random_bytes: RandomBytes = secrets.token_bytes,
        digest: Digest = hashlib_digest,
        nonce_bytes: int = DEFAULT_NONCE_BYTES,
    ) -> None:
        self._clauses: dict[str, DirectiveClause] = {}
        self._flags: dict[str, Any] = {}
        self._random_bytes = random_bytes
        self._digest = digest
        self._nonce_bytes = nonce_bytes
        self.dirty = True
        for key, value in (policy or {}).items():
            self._put(key, value)

    # ── Read access ─────────────────────────────────────────────────────

    def __contains__(self, key: str) -> bool:
        return key in self._clauses or key in self._flags

    def get_clause(self, directive: str) -> DirectiveClause | None:
        return self._clauses.get(directive)

    @property
    def report_only(self) -> bool:
        return bool(self._flags.get(REPORT_ONLY, False))

    @property
    def report_uri(self) -> str | None:
        return self._flags.get(REPORT_URI) or None

    @property
    def upgrade_insecure_requests(self) -> bool:
        return bool(self._flags.get(UPGRADE_INSECURE_REQUESTS, False))

    def export(self) -> dict[str, Any]:
        """Raw mapping that rebuilds an equivalent store when passed back in."""
        raw: dict[str, Any] = {
            directive: clause_to_raw(clause) for directive, clause in self._clauses.items()
        }
        raw.update(self._flags)
        return raw

    # ── Mutators ────────────────────────────────────────────────────────

    def _put(self, key: str, value: Any) -> None:
        if key in FLAG_KEYS:
            self._flags[key] = value
        else:
            self._clauses[key] = parse_clause(key, value)
        self.dirty = True

    def _structured(self, directive: str) -> StructuredClause:
        """Clause for ``directive`` that can take sources, creating or replacing as needed."""
        clause = self._clauses.get(directive)
        if not isinstance(clause, StructuredClause):
            clause = StructuredClause()
            self._clauses[directive] = clause
        return clause

    def _is_unset(self, key: str) -> bool:
        if key in FLAG_KEYS:
            return not self._flags.get(key)
        return isinstance(self._clauses.get(key, Empty()), Empty)

    def set_directive(self, key: str, value: Any) -> None:
        self._put(key, value)

    def add_directive(self, key: str, value: Any = None) -> None:
        """Set ``key`` only when it is missing or empty.

        Without a value the directive is stored as ``True``.
        """
        if not self._is_unset(key):
            return
        self._put(key, True if value is None else value)

    def add_source(self, directive: str, url: str) -> None:
        """Append ``url`` to the directive's allow list.

        A ``"*"`` or empty clause is replaced by a structured clause holding
        only ``url``, so the directive stops allowing everything.
        """
        directive = resolve_directive(directive)
        self._structured(directive).allow.append(url)
        self.dirty = True

    def allow_plugin_type(self, mime: str) -> None:
        self._structured(PLUGIN_TYPES).types.append(mime)
        self.dirty = True

    def set_keyword(self, directive: str, field: str, allow: bool) -> None:
        """Toggle one of self / unsafe_inline / unsafe_eval / data on a clause."""
        directive = resolve_directive(directive)
        setattr(self._structured(directive), field, allow)
        self.dirty = True

    def hash(
        self,
        directive: str,
        content: str | bytes,
        algorithm: str = DEFAULT_HASH_ALGORITHM,
    ) -> None:
        """Add a hash source for inline ``content`` to an existing directive.

        Like :meth:`add_source`, this turns a ``"*"`` or empty clause into a
        structured clause that allows only the new hash.
        """
        if directive not in self._clauses:
            logger.debug("hash_skipped_missing_directive", directive=directive)
            return
        if isinstance(content, str):
            content = content.encode("utf-8")
        raw = self._digest(algorithm, content)
        self._append_hash(directive, algorithm, base64.b64encode(raw).decode("ascii"))

    def pre_hash(
        self,
        directive: str,
        digest: str,
        algorithm: str = DEFAULT_HASH_ALGORITHM,
    ) -> None:
        """Like :meth:`hash` but with an already base64-encoded digest."""
        if directive not in self._clauses:
            logger.debug("hash_skipped_missing_directive", directive=directive)
            return
        self._append_hash(directive, algorithm, digest)

    def _append_hash(self, directive: str, algorithm: str, digest: str) -> None:
        self._structured(directive).hashes.append((algorithm, digest))
        self.dirty = True

    def nonce(self, directive: str, value: str = "") -> str:
        """Attach a nonce to an existing directive and return it.

        A fresh random nonce is generated when ``value`` is empty. Returns an
        empty string, without touching the store, if ``directive`` is absent.
        A ``"*"`` or empty clause is replaced by one that allows only the nonce.
        """
        if directive not in self._clauses:
            logger.debug("nonce_skipped_missing_directive", directive=directive)
            return ""
        if not value:
            value = base64.b64encode(self._random_bytes(self._nonce_bytes)).decode("ascii")
        self._structured(directive).nonces.append(value)
        self.dirty = True
        return value
