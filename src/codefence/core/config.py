"""Configuration models for language resolution.

The configuration file is TOML, usually ``codefence.toml`` next to the
documents being processed.

CodefenceSettings

`toolchain_dir` (`Path | None`)
: Root of an nvim-treesitter style installation. Grammars are looked up in
  ``<toolchain_dir>/parser/<name>.<ext>`` and queries in
  ``<toolchain_dir>/queries/<name>/``. Set to an empty string to disable this
  fallback.

`categories` (`str`)
: Category table profile, ``nvim-treesitter`` (default) or ``tree-sitter``.

`strict` (`bool`)
: Fail any document with a fenced block naming a language that cannot be
  resolved instead of leaving the block untouched.

`languages` (`dict[str, LanguageOptions]`)
: Explicit per-tag configuration, keyed by the fence info-string language.

LanguageOptions

`name` (`str | None`)
: Grammar name used for the default entry symbol and for builtin lookup.
  Defaults to the table key, which lets tag ``py`` reuse grammar ``python``.

`language` (`LanguageSource`)
: ``"builtin"`` or ``{ kind = "path", path = "...", symbol_name = "..." }``.

`highlights_query`, `injections_query`, `locals_query` (`QuerySource`)
: ``"builtin"``, ``{ kind = "path", path = "..." }`` or
  ``{ kind = "text", query = "..." }``.

`escape` (`bool`)
: Replace ``&``, ``<`` and ``>`` with HTML entities in highlighted output.
"""

from __future__ import annotations

from pathlib import Path
import tomllib
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .categories import DEFAULT_PROFILE, CategoryProfile
from .exceptions import ConfigError


DEFAULT_CONFIG_FILE = Path("codefence.toml")
DEFAULT_TOOLCHAIN_DIR = Path("~/.local/share/nvim/lazy/nvim-treesitter")


def _builtin_shorthand(value: Any) -> Any:
    if isinstance(value, str) and value.strip().lower() == "builtin":
        return {"kind": "builtin"}
    return value


class BuiltinLanguage(BaseModel):
    """Grammar provided by an installed tree-sitter language package."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["builtin"] = "builtin"


class LibraryLanguage(BaseModel):
    """Grammar compiled to a shared library and loaded at runtime."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["path"] = "path"
    path: Path
    symbol_name: str | None = None


LanguageSource = Annotated[BuiltinLanguage | LibraryLanguage, Field(discriminator="kind")]


class BuiltinQuery(BaseModel):
    """Query bundled with the builtin grammar package."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["builtin"] = "builtin"


class PathQuery(BaseModel):
    """Query read from a ``.scm`` file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["path"] = "path"
    path: Path


class TextQuery(BaseModel):
    """Query given inline."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["text"] = "text"
    query: str


QuerySource = Annotated[BuiltinQuery | PathQuery | TextQuery, Field(discriminator="kind")]


class LanguageOptions(BaseModel):
    """Explicit configuration for one fence language tag."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str | None = None
    language: LanguageSource = Field(default_factory=BuiltinLanguage)
    highlights_query: QuerySource = Field(default_factory=BuiltinQuery)
    injections_query: QuerySource | None = Field(default_factory=BuiltinQuery)
    locals_query: QuerySource | None = Field(default_factory=BuiltinQuery)
    escape: bool = True

    @field_validator(
        "language", "highlights_query", "injections_query", "locals_query", mode="before"
    )
    @classmethod
    def _accept_builtin_string(cls, value: Any) -> Any:
        return _builtin_shorthand(value)

    def grammar_name(self, tag: str) -> str:
        """Return the grammar name, defaulting to the fence tag."""
        return self.name or tag


class CodefenceSettings(BaseModel):
    """Top-level configuration for a highlighting run."""

    model_config = ConfigDict(extra="forbid")

    toolchain_dir: Path | None = DEFAULT_TOOLCHAIN_DIR
    categories: CategoryProfile = DEFAULT_PROFILE
    strict: bool = False
    languages: dict[str, LanguageOptions] = Field(default_factory=dict)
    base_dir: Path | None = Field(default=None, exclude=True)

    @field_validator("toolchain_dir", mode="before")
    @classmethod
    def _empty_disables_toolchain(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def with_base_dir(self, path: Path) -> CodefenceSettings:
        """Return a copy resolving relative paths against ``path``."""
        return self.model_copy(update={"base_dir": path})


def parse_settings(payload: str, *, source: str = "<string>") -> CodefenceSettings:
    """Validate TOML text into :class:`CodefenceSettings`."""
    try:
        data = tomllib.loads(payload)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid configuration {source}: {exc}") from exc
    data.pop("base_dir", None)
    try:
        return CodefenceSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration {source}: {exc}") from exc


def load_settings(path: Path | None = None, *, required: bool = False) -> CodefenceSettings:
    """Load settings from ``path``, anchoring relative paths on its directory.

    A missing file yields default settings unless ``required`` is set.
    """
    config_path = path or DEFAULT_CONFIG_FILE
    if not config_path.exists():
        if required:
            raise ConfigError(f"Configuration file {config_path} does not exist.")
        return CodefenceSettings(base_dir=Path.cwd())
    try:
        payload = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read configuration {config_path}: {exc}") from exc
    settings = parse_settings(payload, source=str(config_path))
    return settings.with_base_dir(config_path.resolve().parent)


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_TOOLCHAIN_DIR",
    "BuiltinLanguage",
    "BuiltinQuery",
    "CodefenceSettings",
    "LanguageOptions",
    "LanguageSource",
    "LibraryLanguage",
    "PathQuery",
    "QuerySource",
    "TextQuery",
    "load_settings",
    "parse_settings",
]
