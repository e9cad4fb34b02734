"""The host's own resolver and loader for path-like specifiers.

These are the ``next_resolve`` / ``next_load`` the loader hooks wrap. The
resolver only accepts a specifier that names an existing file exactly as
written; everything else is a SpecifierNotFoundError so the pipeline can try
its fallbacks.
"""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

from ..errors import SpecifierNotFoundError
from ..errors import UnsupportedSpecifierError
from ..loading.adapter import LoadContext
from ..loading.adapter import LoadResult
from ..resolution.specifiers import ModuleFormat
from ..resolution.specifiers import ResolutionContext
from ..resolution.specifiers import ResolutionResult
from ..resolution.specifiers import SpecifierKind
from ..resolution.specifiers import classify
from ..resolution.specifiers import split_scheme

# Schemes naming importable host modules (``python:json``)
HOST_MODULE_SCHEMES = frozenset({"python", "builtin"})

_COMMONJS_SUFFIXES = frozenset({".cjs", ".cts"})


def default_search_paths() -> tuple[Path, ...]:
    """``sys.path`` as directories, with "" meaning the working directory."""
    return tuple(Path(entry) if entry else Path.cwd() for entry in sys.path if isinstance(entry, str))


def format_for_path(path: Path) -> ModuleFormat:
    return ModuleFormat.COMMONJS if path.suffix in _COMMONJS_SUFFIXES else ModuleFormat.MODULE


def _resolve_host_module(specifier: str, context: ResolutionContext) -> ResolutionResult:
    scheme, name = split_scheme(specifier)
    if scheme not in HOST_MODULE_SCHEMES:
        raise UnsupportedSpecifierError(specifier, scheme)
    try:
        found = importlib.util.find_spec(name)
    except ModuleNotFoundError:
        found = None
    if found is None:
        raise SpecifierNotFoundError(specifier, context.requesting_file)
    return ResolutionResult(specifier=specifier, path=None, format=ModuleFormat.BUILTIN)


def _candidate_paths(specifier: str, kind: SpecifierKind, context: ResolutionContext) -> list[Path]:
    if kind is SpecifierKind.ABSOLUTE:
        if specifier.startswith("file:"):
            return [Path(url2pathname(urlparse(specifier).path))]
        return [Path(specifier)]

    if kind is SpecifierKind.RELATIVE:
        base = context.requesting_file.parent if context.requesting_file else Path.cwd()
        return [base / specifier]

    roots = context.search_paths or default_search_paths()
    return [root / specifier for root in roots]


def resolve_native(specifier: str, context: ResolutionContext) -> ResolutionResult:
    """Resolve a specifier to an existing file without any fallbacks.

    Raises:
        SpecifierNotFoundError: No file matches the specifier as written
        UnsupportedSpecifierError: The specifier uses an unknown scheme
    """
    kind = classify(specifier)
    if kind is SpecifierKind.BUILTIN:
        return _resolve_host_module(specifier, context)

    for candidate in _candidate_paths(specifier, kind, context):
        if candidate.is_file():
            path = candidate.resolve()
            return ResolutionResult(specifier=specifier, path=path, format=format_for_path(path))

    raise SpecifierNotFoundError(specifier, context.requesting_file)


def load_native(path: Path, context: LoadContext) -> LoadResult:
    """Read a file as-is."""
    return LoadResult(format=context.format or format_for_path(path), source=path.read_text(encoding="utf-8"))
