"""Shell-style expansion of configured filesystem paths."""

from __future__ import annotations

from collections.abc import Mapping
import os
from pathlib import Path
import re
import sys

from .exceptions import ExpansionError


_VARIABLE = re.compile(
    r"\$(?:\{(?P<braced>[^}:]+)(?::-(?P<default>[^}]*))?\}|(?P<plain>[A-Za-z_]\w*))"
)


def expand_path(
    path: str | Path,
    *,
    base_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Expand ``~``, ``$VAR`` and ``${VAR:-default}`` in ``path``.

    Relative results are anchored on ``base_dir`` when one is given. An
    undefined variable without a default raises :class:`ExpansionError`.
    """
    env = os.environ if environ is None else environ
    raw = os.fspath(path)

    def _substitute(match: re.Match[str]) -> str:
        name = match.group("braced") or match.group("plain")
        if name in env:
            return env[name]
        default = match.group("default")
        if default is not None:
            return default
        raise ExpansionError(f"Environment variable '{name}' is not defined (in '{raw}').")

    expanded = _VARIABLE.sub(_substitute, raw)
    if expanded.startswith("~"):
        home_expanded = os.path.expanduser(expanded)
        if home_expanded.startswith("~"):
            raise ExpansionError(f"Unable to expand home directory in '{raw}'.")
        expanded = home_expanded

    result = Path(expanded)
    if base_dir is not None and not result.is_absolute():
        result = base_dir / result
    return result


def shared_library_suffix(platform: str | None = None) -> str:
    """Return the shared-library extension used on ``platform``."""
    current = platform or sys.platform
    if current.startswith("win") or current == "cygwin":
        return ".dll"
    if current == "darwin":
        return ".dylib"
    return ".so"


__all__ = ["expand_path", "shared_library_suffix"]
