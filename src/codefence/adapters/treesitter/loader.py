"""Dynamic loading of tree-sitter grammars compiled to shared libraries.

Loaded libraries are kept in a process-wide registry and never unloaded: the
``TSLanguage`` pointers handed to tree-sitter point into their data segment.
"""

from __future__ import annotations

import ctypes
import logging
from pathlib import Path
from threading import Lock

from tree_sitter import Language

from codefence.core.exceptions import GrammarLoadError


logger = logging.getLogger(__name__)

_CAPSULE_NAME = b"tree_sitter.Language"

_capsule_new = ctypes.pythonapi.PyCapsule_New
_capsule_new.restype = ctypes.py_object
_capsule_new.argtypes = (ctypes.c_void_p, ctypes.c_char_p, ctypes.c_void_p)

_LIBRARIES: dict[Path, ctypes.CDLL] = {}
_LOCK = Lock()


def open_library(path: Path) -> ctypes.CDLL:
    """Load ``path`` once for the lifetime of the process."""
    key = path.resolve()
    with _LOCK:
        library = _LIBRARIES.get(key)
        if library is None:
            library = ctypes.CDLL(str(key))
            _LIBRARIES[key] = library
            logger.debug("loaded grammar library %s", key)
        return library


def language_from_pointer(pointer: int) -> Language:
    """Wrap a raw ``TSLanguage *`` in a :class:`tree_sitter.Language`."""
    return Language(_capsule_new(pointer, _CAPSULE_NAME, None))


def load_language(path: Path, symbol_name: str, *, language: str | None = None) -> Language:
    """Load a grammar from ``path`` through its exported ``symbol_name`` function."""
    if not path.is_file():
        raise GrammarLoadError(
            f"Grammar library {path} does not exist.",
            language=language,
            symbol_name=symbol_name,
        )
    try:
        library = open_library(path)
    except OSError as exc:
        raise GrammarLoadError(
            f"Unable to load grammar library {path}: {exc}",
            language=language,
            symbol_name=symbol_name,
        ) from exc

    try:
        entry = getattr(library, symbol_name)
    except AttributeError as exc:
        raise GrammarLoadError(
            f"Symbol '{symbol_name}' not found in {path}.",
            language=language,
            symbol_name=symbol_name,
        ) from exc

    entry.restype = ctypes.c_void_p
    entry.argtypes = ()
    pointer = entry()
    if not pointer:
        raise GrammarLoadError(
            f"Symbol '{symbol_name}' in {path} returned a null language.",
            language=language,
            symbol_name=symbol_name,
        )
    try:
        return language_from_pointer(pointer)
    except (TypeError, ValueError) as exc:
        raise GrammarLoadError(
            f"Grammar in {path} is not usable: {exc}",
            language=language,
            symbol_name=symbol_name,
        ) from exc


__all__ = ["language_from_pointer", "load_language", "open_library"]
