"""Load adapter: decides whether a resolved file goes through the transform."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

from ..resolution.extensions import SOURCE_EXTENSIONS
from ..resolution.specifiers import ModuleFormat
from .source_map import inline_source_map
from .transform import PassthroughTransform
from .transform import TransformService
from .transform import transform_code

logger = logging.getLogger(__name__)

# Extensions that pin the output format regardless of the caller's default
FORMAT_BY_EXTENSION: dict[str, ModuleFormat] = {
    ".cts": ModuleFormat.COMMONJS,
    ".mts": ModuleFormat.MODULE,
}


@dataclass(frozen=True)
class LoadContext:
    """Per-load context. ``format`` is the caller's default format tag."""

    format: ModuleFormat | None = None
    conditions: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class LoadResult:
    format: ModuleFormat
    source: str
    transformed: bool = False


NextLoad = Callable[[Path, LoadContext], LoadResult]


class LoadAdapter:
    """Transforms source-extension files and hands everything else to the host.

    Args:
        transform: Transform service for source files
        source_extensions: Extensions that need the transform
        cache: Whether the transform service may cache results
    """

    def __init__(
        self,
        transform: TransformService | None = None,
        source_extensions: tuple[str, ...] = SOURCE_EXTENSIONS,
        cache: bool = True,
    ):
        self.transform = transform or PassthroughTransform()
        self.source_extensions = frozenset(source_extensions)
        self.cache = cache

    def needs_transform(self, path: Path | str) -> bool:
        return Path(path).suffix in self.source_extensions

    def output_format(self, path: Path | str, default: ModuleFormat | None) -> ModuleFormat:
        return FORMAT_BY_EXTENSION.get(Path(path).suffix, default or ModuleFormat.MODULE)

    def load(self, path: Path, context: LoadContext, next_load: NextLoad) -> LoadResult:
        """Load a resolved file.

        Raises:
            TransformError: The transform service failed for this file
            OSError: The file could not be read
        """
        if not self.needs_transform(path):
            return next_load(path, context)

        source = path.read_text(encoding="utf-8")
        result = transform_code(self.transform, str(path), source, sourcemap=True, cache=self.cache)

        code = result.code
        if result.source_map:
            code = inline_source_map(code, result.source_map)

        logger.debug(f"[load] transformed {path}")
        return LoadResult(format=self.output_format(path, context.format), source=code, transformed=True)
