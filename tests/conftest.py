"""Shared test fixtures."""

from __future__ import annotations

import itertools

import pytest


@pytest.fixture(autouse=True)
def _mock_settings(monkeypatch):
    """Provide default settings for all tests."""
    monkeypatch.setenv("CSP_LOG_JSON", "false")
    monkeypatch.setenv("CSP_LOG_LEVEL", "debug")
    monkeypatch.delenv("CSP_POLICY_FILE", raising=False)
    monkeypatch.delenv("CSP_HTTPS_TRANSFORM_ON_HTTPS_CONNECTIONS", raising=False)

    # Reset cached settings
    import cspbuilder.config.loader as loader
    loader._settings = None
    yield
    loader._settings = None


@pytest.fixture
def counting_random_bytes():
    """Deterministic RNG stand-in: each call returns a different byte pattern."""
    counter = itertools.count(1)
    calls: list[int] = []

    def _random_bytes(n: int) -> bytes:
        calls.append(n)
        return bytes([next(counter) % 256]) * n

    _random_bytes.calls = calls
    return _random_bytes


@pytest.fixture
def basic_policy() -> dict:
    """A policy touching most clause features."""
    return {
        "report-uri": "/csp_violation_reporting_endpoint",
        "base-uri": [],
        "default-src": [],
        "child-src": {"allow": ["https://www.youtube.com", "https://www.youtube-nocookie.com"], "self": False},
        "connect-src": "*",
        "font-src": {"self": True},
        "form-action": {"allow": ["https://example.com"], "self": True},
        "frame-ancestors": [],
        "img-src": {"self": True, "data": True},
        "media-src": [],
        "object-src": [],
        "plugin-types": [],
        "script-src": {
            "allow": ["https://www.google-analytics.com"],
            "self": True,
            "unsafe-inline": False,
            "unsafe-eval": False,
        },
        "style-src": {"self": True, "unsafe-inline": True},
        "upgrade-insecure-requests": True,
    }
