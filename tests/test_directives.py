"""Tests for directive ordering and alias resolution."""

from __future__ import annotations

import pytest

from cspbuilder.core.directives import DIRECTIVES, resolve_directive


class TestCanonicalOrder:
    def test_fourteen_directives(self):
        assert len(DIRECTIVES) == 14
        assert len(set(DIRECTIVES)) == 14

    def test_order_is_fixed(self):
        assert DIRECTIVES[0] == "base-uri"
        assert DIRECTIVES[1] == "default-src"
        assert DIRECTIVES.index("plugin-types") < DIRECTIVES.index("script-src")
        assert DIRECTIVES[-1] == "style-src"

    def test_report_flags_are_not_directives(self):
        for key in ("report-only", "report-uri", "upgrade-insecure-requests"):
            assert key not in DIRECTIVES


class TestResolveDirective:
    @pytest.mark.parametrize(
        "alias, expected",
        [
            ("child", "child-src"),
            ("frame", "child-src"),
            ("frame-src", "child-src"),
            ("connect", "connect-src"),
            ("socket", "connect-src"),
            ("websocket", "connect-src"),
            ("font", "font-src"),
            ("fonts", "font-src"),
            ("form", "form-action"),
            ("forms", "form-action"),
            ("ancestor", "frame-ancestors"),
            ("parent", "frame-ancestors"),
            ("img", "img-src"),
            ("image", "img-src"),
            ("image-src", "img-src"),
            ("media", "media-src"),
            ("object", "object-src"),
            ("js", "script-src"),
            ("javascript", "script-src"),
            ("script", "script-src"),
            ("scripts", "script-src"),
            ("style", "style-src"),
            ("css", "style-src"),
            ("css-src", "style-src"),
        ],
    )
    def test_aliases(self, alias, expected):
        assert resolve_directive(alias) == expected

    def test_canonical_name_passes_through(self):
        assert resolve_directive("script-src") == "script-src"

    def test_unknown_name_passes_through(self):
        assert resolve_directive("worker-src") == "worker-src"
        assert resolve_directive("JS") == "JS"
