"""Settings from env vars (pydantic-settings) and policy documents from YAML/JSON."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cspbuilder.models.policy import PolicyConfigError

logger = structlog.get_logger()

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class BuilderSettings(BaseSettings):
    """Builder defaults, overridable through ``CSP_*`` env vars or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="CSP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    policy_file: str = ""
    log_level: str = "info"
    log_json: bool = True

    # Rewrite http:// sources to https:// when the request came in over HTTPS
    https_transform_on_https_connections: bool = True

    # Browsers expect at least 128 bits of nonce entropy; 18 bytes gives 144
    nonce_bytes: int = Field(18, ge=18)
    default_hash_algorithm: str = "sha384"


_settings: BuilderSettings | None = None


def get_settings() -> BuilderSettings:
    """Get or create the singleton settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def load_settings() -> BuilderSettings:
    """Load settings from env vars (env vars override model defaults)."""
    global _settings
    _settings = BuilderSettings()
    logger.info("config_loaded", policy_file=_settings.policy_file or None)
    return _settings


def load_policy_file(path: str | Path) -> dict[str, Any]:
    """Read a raw policy mapping from a ``.yaml``/``.yml`` or JSON file."""
    path = Path(path)
    if not path.is_file():
        raise PolicyConfigError(f"Policy file not found or not a regular file: {path}")
    with open(path, encoding="utf-8") as f:
        text = f.read()
    try:
        if path.suffix.lower() in _YAML_SUFFIXES:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise PolicyConfigError(f"Policy file {path} could not be parsed: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise PolicyConfigError(
            f"Policy file {path} must contain a mapping, got {type(data).__name__}"
        )
    logger.debug("policy_file_loaded", path=str(path), keys=len(data))
    return data
