"""Specifier classification and the per-request resolution types."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from pathlib import Path

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")
_DRIVE_RE = re.compile(r"^[A-Za-z]:[\\/]")


class SpecifierKind(str, Enum):
    """How a specifier names its module."""

    RELATIVE = "relative"
    ABSOLUTE = "absolute"
    BARE = "bare"
    BUILTIN = "builtin"


class ModuleFormat(str, Enum):
    """Format tag attached to a resolved or loaded module."""

    MODULE = "module"
    COMMONJS = "commonjs"
    BUILTIN = "builtin"


def classify(specifier: str, *, windows: bool | None = None) -> SpecifierKind:
    """Classify a specifier purely from its prefix.

    Args:
        specifier: Import specifier as written by the importing code
        windows: Treat drive-letter paths (``C:\\x``) as absolute. Defaults to
            the current platform.

    Returns:
        The specifier kind
    """
    if windows is None:
        windows = os.name == "nt"

    if specifier.startswith("."):
        return SpecifierKind.RELATIVE
    if specifier.startswith("/"):
        return SpecifierKind.ABSOLUTE
    if windows and (_DRIVE_RE.match(specifier) or specifier.startswith("\\")):
        return SpecifierKind.ABSOLUTE
    if specifier.startswith("file:"):
        return SpecifierKind.ABSOLUTE
    if _SCHEME_RE.match(specifier):
        return SpecifierKind.BUILTIN
    return SpecifierKind.BARE


def is_bare(specifier: str) -> bool:
    return classify(specifier) is SpecifierKind.BARE


def split_scheme(specifier: str) -> tuple[str, str]:
    """Split ``scheme:rest`` into its parts. Returns ("", specifier) without a scheme."""
    match = _SCHEME_RE.match(specifier)
    if not match:
        return "", specifier
    return match.group(0)[:-1].lower(), specifier[match.end() :]


@dataclass(frozen=True)
class ResolutionContext:
    """Immutable context for one resolution attempt.

    Attributes:
        requesting_file: File containing the import, if known
        conditions: Condition tags supplied by the importer
        search_paths: Roots for bare specifiers (empty means ``sys.path``)
    """

    requesting_file: Path | None = None
    conditions: frozenset[str] = field(default_factory=frozenset)
    search_paths: tuple[Path, ...] = ()


@dataclass(frozen=True)
class ResolutionResult:
    """A successfully resolved module.

    ``path`` is None only for builtin results, which name a host module
    through ``specifier`` instead of a file.
    """

    specifier: str
    path: Path | None
    format: ModuleFormat = ModuleFormat.MODULE

    @property
    def url(self) -> str:
        if self.path is None:
            return self.specifier
        return self.path.as_uri()
