"""Extension resolver.

Enumerates the candidate specifiers to try when a specifier does not
resolve as written. Pure: no filesystem access happens here, the pipeline
tries each candidate in order and stops at the first hit.
"""

from __future__ import annotations

import posixpath
from collections.abc import Iterator
from collections.abc import Mapping

SOURCE_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".mts", ".cts")
JSX_EXTENSIONS: tuple[str, ...] = (".jsx", ".tsx")

# Existing extension -> source extensions to try in its place.
# The extensionless row is served by ``appended_candidates``.
EXTENSION_ALTERNATES: Mapping[str, tuple[str, ...]] = {
    ".js": (".ts", ".tsx"),
    ".mjs": (".mts",),
    ".cjs": (".cts",),
    "": SOURCE_EXTENSIONS,
}

INDEX_NAME = "index"


def specifier_extension(specifier: str) -> str:
    """Extension of the last path segment, or "" when there is none."""
    last = specifier.replace("\\", "/").rsplit("/", 1)[-1]
    if last in (".", ".."):
        return ""
    return posixpath.splitext(last)[1]


def has_source_extension(path: str, source_extensions: tuple[str, ...] = SOURCE_EXTENSIONS) -> bool:
    return specifier_extension(str(path)) in source_extensions


class ExtensionResolver:
    """Candidate generator for a fixed extension policy.

    Args:
        alternates: Existing extension -> ordered replacement extensions
        source_extensions: Extensions appended to extensionless specifiers
            and tried for directory indexes
    """

    def __init__(
        self,
        alternates: Mapping[str, tuple[str, ...]] = EXTENSION_ALTERNATES,
        source_extensions: tuple[str, ...] = SOURCE_EXTENSIONS,
    ):
        self.alternates = dict(alternates)
        self.source_extensions = tuple(source_extensions)

    def mapped_candidates(self, specifier: str) -> Iterator[str]:
        """Swap a mapped extension for its source alternates (``a.js`` -> ``a.ts``)."""
        ext = specifier_extension(specifier)
        if not ext:
            return
        base = specifier[: -len(ext)]
        for alternate in self.alternates.get(ext, ()):
            yield base + alternate

    def appended_candidates(self, specifier: str) -> Iterator[str]:
        """The specifier unchanged with each source extension appended."""
        for ext in self.source_extensions:
            yield specifier + ext

    def index_candidates(self, specifier: str) -> Iterator[str]:
        """The specifier as a directory containing ``index`` + each source extension."""
        base = specifier.rstrip("/\\") or specifier
        separator = "" if base.endswith(("/", "\\")) else "/"
        for ext in self.source_extensions:
            yield f"{base}{separator}{INDEX_NAME}{ext}"

    def candidates(self, specifier: str) -> Iterator[str]:
        """Lazy, ordered and de-duplicated sequence of every fallback candidate."""
        seen = {specifier}
        for group in (
            self.mapped_candidates(specifier),
            self.appended_candidates(specifier),
            self.index_candidates(specifier),
        ):
            for candidate in group:
                if candidate not in seen:
                    seen.add(candidate)
                    yield candidate

    def candidates_for_alias(self, replacement: str) -> Iterator[str]:
        """Candidate order for one alias replacement: as-is, appended, index."""
        yield replacement
        yield from self.appended_candidates(replacement)
        yield from self.index_candidates(replacement)
