"""Typed clause models for the directive -> clause policy mapping."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cspbuilder.core.directives import PLUGIN_TYPES


class PolicyConfigError(ValueError):
    """A raw policy value could not be validated into a clause."""


@dataclass(frozen=True)
class ConnectionContext:
    """Transport facts the compiler needs about the current request."""

    is_secure: bool = False

    @classmethod
    def from_scheme(cls, scheme: str) -> ConnectionContext:
        return cls(is_secure=scheme.lower() in ("https", "wss"))


class Wildcard:
    """``"*"``: allow everything, so the directive is left out of the header."""

    _instance: Wildcard | None = None

    def __new__(cls) -> Wildcard:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "Wildcard()"


class Empty:
    """Falsy clause. Renders as ``'none'`` (nothing at all for plugin-types)."""

    _instance: Empty | None = None

    def __new__(cls) -> Empty:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "Empty()"


WILDCARD = Wildcard()
EMPTY = Empty()


class StructuredClause(BaseModel):
    """Sources and keywords allowed for one directive."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    allow_self: bool = Field(False, alias="self")
    allow: list[str] = Field(default_factory=list)
    hashes: list[tuple[str, str]] = Field(default_factory=list)
    nonces: list[str] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)
    unsafe_inline: bool = Field(False, alias="unsafe-inline")
    unsafe_eval: bool = Field(False, alias="unsafe-eval")
    data: bool = False

    @field_validator("hashes", mode="before")
    @classmethod
    def expand_hash_mappings(cls, v: Any) -> Any:
        """Accept ``{"sha256": "..."}`` entries as well as ``[algo, digest]`` pairs."""
        if not isinstance(v, list):
            return v
        expanded: list[Any] = []
        for entry in v:
            if isinstance(entry, dict):
                expanded.extend(entry.items())
            else:
                expanded.append(entry)
        return expanded

    def to_raw(self) -> dict[str, Any]:
        raw = self.model_dump(by_alias=True, exclude_defaults=True)
        if self.hashes:
            raw["hashes"] = [{algo: digest} for algo, digest in self.hashes]
        return raw


DirectiveClause = Union[Wildcard, Empty, StructuredClause]


def parse_clause(directive: str, raw: Any) -> DirectiveClause:
    """Validate a raw config value into a clause.

    ``True`` (what ``add_directive`` stores by default) becomes a clause with
    nothing allowed.
    """
    if isinstance(raw, (Wildcard, Empty)):
        return raw
    if isinstance(raw, StructuredClause):
        return raw.model_copy(deep=True)
    if raw == "*":
        return WILDCARD
    if not raw:
        return EMPTY
    if raw is True:
        return StructuredClause()
    if not isinstance(raw, dict):
        raise PolicyConfigError(
            f"{directive}: expected a mapping, '*' or a falsy value, got {type(raw).__name__}"
        )
    if directive == PLUGIN_TYPES and "types" not in raw and "allow" in raw:
        # Older configs list MIME types under "allow".
        raw = {**raw, "types": raw["allow"]}
        del raw["allow"]
    try:
        return StructuredClause.model_validate(raw)
    except ValidationError as exc:
        raise PolicyConfigError(f"{directive}: {exc}") from exc


def clause_to_raw(clause: DirectiveClause) -> Any:
    if clause is WILDCARD:
        return "*"
    if clause is EMPTY:
        return None
    return clause.to_raw() or True
