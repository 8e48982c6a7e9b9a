"""Tests for single-directive fragment rendering."""

from __future__ import annotations

import pytest

from cspbuilder.core.directives import DIRECTIVES
from cspbuilder.core.formatter import format_directive
from cspbuilder.models.policy import EMPTY, WILDCARD, StructuredClause, parse_clause


def _fmt(directive: str, raw, upgrade: bool = False) -> str:
    return format_directive(directive, parse_clause(directive, raw), upgrade)


class TestSpecialClauses:
    @pytest.mark.parametrize("directive", DIRECTIVES)
    def test_wildcard_omitted(self, directive):
        assert format_directive(directive, WILDCARD) == ""

    @pytest.mark.parametrize("directive", [d for d in DIRECTIVES if d != "plugin-types"])
    def test_empty_renders_none(self, directive):
        assert format_directive(directive, EMPTY) == f"{directive} 'none'; "

    def test_empty_plugin_types_omitted(self):
        assert format_directive("plugin-types", EMPTY) == ""

    @pytest.mark.parametrize("raw", [None, False, "", [], {}, 0])
    def test_falsy_values_are_empty(self, raw):
        assert _fmt("object-src", raw) == "object-src 'none'; "

    def test_bare_true_renders_directive_only(self):
        assert _fmt("script-src", True) == "script-src; "

    def test_all_false_mapping_renders_directive_only(self):
        assert _fmt("script-src", {"self": False, "unsafe-inline": False}) == "script-src; "


class TestPluginTypes:
    def test_types_joined(self):
        raw = {"types": ["application/pdf", "application/x-shockwave-flash"]}
        assert _fmt("plugin-types", raw) == (
            "plugin-types application/pdf application/x-shockwave-flash; "
        )

    def test_legacy_allow_key_read_as_types(self):
        assert _fmt("plugin-types", {"allow": ["application/pdf"]}) == "plugin-types application/pdf; "

    @pytest.mark.parametrize("raw", [True, {"self": True}, {"types": []}])
    def test_no_types_omitted(self, raw):
        assert _fmt("plugin-types", raw) == ""

    def test_ignores_source_keywords(self):
        raw = {"types": ["application/pdf"], "self": True, "unsafe-inline": True}
        assert _fmt("plugin-types", raw) == "plugin-types application/pdf; "


class TestStructuredTokenOrder:
    def test_full_token_order(self):
        clause = StructuredClause(
            allow_self=True,
            allow=["https://a.example", "http://b.example"],
            hashes=[("sha256", "abc=")],
            nonces=["n0nce"],
            types=["text/x-extra"],
            unsafe_inline=True,
            unsafe_eval=True,
            data=True,
        )
        assert format_directive("script-src", clause) == (
            "script-src 'self' https://a.example http://b.example 'sha256-abc=' "
            "'nonce-n0nce' text/x-extra 'unsafe-inline' 'unsafe-eval' data:; "
        )

    def test_self_only(self):
        assert _fmt("default-src", {"self": True}) == "default-src 'self'; "

    def test_data_only(self):
        assert _fmt("img-src", {"data": True}) == "img-src data:; "

    def test_hash_tokens_sanitized(self):
        raw = {"hashes": [{"sha-256": "ab c'+/="}]}
        assert _fmt("style-src", raw) == "style-src 'sha256-abc+/='; "

    def test_nonce_tokens_sanitized(self):
        raw = {"nonces": ["abc' 'unsafe-eval"]}
        assert _fmt("script-src", raw) == "script-src 'nonce-abcunsafeeval'; "

    def test_dropped_url_leaves_no_gap(self):
        raw = {"self": True, "allow": ["   ", "https://ok.example"]}
        assert _fmt("connect-src", raw) == "connect-src 'self' https://ok.example; "

    def test_upgrade_applies_to_allow_list(self):
        raw = {"allow": ["http://img.example", "https://cdn.example"]}
        assert _fmt("img-src", raw, upgrade=True) == "img-src https://img.example https://cdn.example; "
