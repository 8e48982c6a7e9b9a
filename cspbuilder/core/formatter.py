"""Render one directive clause into its header fragment."""

from __future__ import annotations

from cspbuilder.core.directives import PLUGIN_TYPES
from cspbuilder.core.sources import normalize_source
from cspbuilder.models.policy import DirectiveClause, Empty, Wildcard
from cspbuilder.utils.sanitize import sanitize_algorithm, sanitize_digest


def format_directive(directive: str, clause: DirectiveClause, upgrade: bool = False) -> str:
    """Build the ``"<directive> <tokens>; "`` fragment for a clause.

    Wildcard clauses and empty plugin-types produce an empty string so the
    directive is left out of the header entirely.
    """
    if isinstance(clause, Wildcard):
        return ""
    if isinstance(clause, Empty):
        if directive == PLUGIN_TYPES:
            return ""
        return f"{directive} 'none'; "

    if directive == PLUGIN_TYPES:
        # MIME types only, no source keywords
        if not clause.types:
            return ""
        return f"{directive} {' '.join(clause.types)}; "

    tokens: list[str] = []
    if clause.allow_self:
        tokens.append("'self'")
    for url in clause.allow:
        source = normalize_source(url, upgrade)
        if source is not None:
            tokens.append(source)
    for algorithm, digest in clause.hashes:
        tokens.append(f"'{sanitize_algorithm(algorithm)}-{sanitize_digest(digest)}'")
    for nonce in clause.nonces:
        tokens.append(f"'nonce-{sanitize_digest(nonce)}'")
    tokens.extend(clause.types)
    if clause.unsafe_inline:
        tokens.append("'unsafe-inline'")
    if clause.unsafe_eval:
        tokens.append("'unsafe-eval'")
    if clause.data:
        tokens.append("data:")

    return " ".join([directive, *tokens]).rstrip(" ") + "; "
