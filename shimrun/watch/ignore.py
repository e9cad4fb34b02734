"""Which filesystem changes should restart the child.

A path is ignored when any of its segments matches an excluded name (glob
patterns are allowed, e.g. ``build*``), or when its final segment is a hidden
file. Only files with a watched extension are relevant.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from fnmatch import fnmatch
from pathlib import Path
from pathlib import PurePath

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE: tuple[str, ...] = (
    "node_modules",
    "bower_components",
    "vendor",
    "dist",
    ".git",
    ".svn",
    ".hg",
    "__pycache__",
    ".venv",
    ".mypy_cache",
    ".pytest_cache",
)

WATCHED_EXTENSIONS: frozenset[str] = frozenset(
    {".ts", ".tsx", ".mts", ".cts", ".js", ".jsx", ".mjs", ".cjs", ".json", ".py"}
)


class IgnorePolicy:
    """Decides whether a changed path is worth a restart."""

    def __init__(
        self,
        exclude: Iterable[str] = (),
        extensions: Iterable[str] = WATCHED_EXTENSIONS,
    ) -> None:
        # Caller exclusions extend the defaults
        self.patterns: tuple[str, ...] = tuple(dict.fromkeys([*DEFAULT_EXCLUDE, *self._normalize(exclude)]))
        self.extensions = frozenset(ext.lower() for ext in extensions)

    @staticmethod
    def _normalize(patterns: Iterable[str]) -> list[str]:
        normalized = []
        for pattern in patterns:
            pattern = pattern.replace("\\", "/").strip("/")
            if pattern:
                normalized.append(pattern)
        return normalized

    def _segment_excluded(self, segment: str) -> bool:
        return any(segment == pattern or fnmatch(segment, pattern) for pattern in self.patterns)

    def is_ignored(self, path: str | PurePath, root: str | PurePath | None = None) -> bool:
        """True if the path sits under an excluded directory or is a hidden file.

        Segments of ``root`` itself are not checked, so watching a directory
        that happens to live under e.g. ``vendor`` still works.
        """
        path = PurePath(path)
        if root is not None:
            try:
                path = path.relative_to(root)
            except ValueError:
                pass

        parts = path.parts
        if not parts:
            return False
        if any(self._segment_excluded(part) for part in parts):
            return True

        name = parts[-1]
        return name.startswith(".") and name not in (".", "..")

    def is_relevant(self, path: str | PurePath, root: str | PurePath | None = None) -> bool:
        """True if a change to this path should trigger a restart."""
        if PurePath(path).suffix.lower() not in self.extensions:
            return False
        return not self.is_ignored(path, root)


def watch_roots(cwd: str | Path, include: Iterable[str | Path] = ()) -> list[Path]:
    """Directories to watch: the working directory plus any included paths.

    Included files contribute their parent directory; duplicates are dropped.
    """
    roots: list[Path] = []
    for candidate in (Path(cwd).resolve(), *(Path(p).resolve() for p in include)):
        directory = candidate if candidate.is_dir() else candidate.parent
        if not directory.exists():
            logger.warning(f"Not watching missing path: {candidate}")
            continue
        if directory not in roots:
            roots.append(directory)
    return roots
