"""Import system integration.

``SourceFinder`` sits on ``sys.meta_path`` just ahead of Python's
``PathFinder``. For every import it asks ``PathFinder`` first and only runs
the resolution pipeline when Python finds nothing (or only a namespace
package). It claims a module only when the pipeline lands on a file that
needs the transform. Import names carry no extension, so a file matching
the bare name (``foo`` next to ``foo.ts``) does not stop the extension
search.
"""

from __future__ import annotations

import importlib.abc
import importlib.util
import logging
import sys
from importlib.machinery import ModuleSpec
from importlib.machinery import PathFinder
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING

from ..errors import ResolutionError
from ..errors import SpecifierNotFoundError
from ..resolution.extensions import INDEX_NAME
from ..resolution.specifiers import ResolutionContext
from ..resolution.specifiers import ResolutionResult
from .native import resolve_native

if TYPE_CHECKING:
    from .runtime import ModuleHost

logger = logging.getLogger(__name__)

FORMAT_ATTRIBUTE = "__module_format__"


class SourceLoader(importlib.abc.Loader):
    """Executes one resolved file through the loader hooks."""

    def __init__(self, host: ModuleHost, path: Path):
        self.host = host
        self.path = path

    def create_module(self, spec: ModuleSpec) -> ModuleType | None:
        return None

    def get_filename(self, fullname: str | None = None) -> str:
        return str(self.path)

    def exec_module(self, module: ModuleType) -> None:
        result = self.host.load_source(self.path)
        code = compile(result.source, str(self.path), "exec", dont_inherit=True)

        namespace = module.__dict__
        namespace.setdefault("__file__", str(self.path))
        namespace[FORMAT_ATTRIBUTE] = result.format.value
        namespace["require"] = self.host.require_from(self.path)
        exec(code, namespace)

    def __repr__(self) -> str:
        return f"SourceLoader({str(self.path)!r})"


class SourceFinder(importlib.abc.MetaPathFinder):
    """Finds modules written in source extensions for ``import`` statements."""

    def __init__(self, host: ModuleHost):
        self.host = host

    def find_spec(
        self, fullname: str, path: list[str] | None = None, target: ModuleType | None = None
    ) -> ModuleSpec | None:
        native = PathFinder.find_spec(fullname, path, target)
        if native is not None and native.origin is not None:
            return native

        try:
            result = self._resolve(fullname, path)
        except (ModuleNotFoundError, ResolutionError):
            return native

        if result.path is None or not self.host.hooks.adapter.needs_transform(result.path):
            return native

        tail = fullname.rpartition(".")[2]
        is_package = result.path.stem == INDEX_NAME and result.path.parent.name == tail
        spec = importlib.util.spec_from_file_location(
            fullname,
            result.path,
            loader=SourceLoader(self.host, result.path),
            submodule_search_locations=[str(result.path.parent)] if is_package else None,
        )
        logger.debug(f"[import] {fullname} -> {result.path}")
        return spec

    def _resolve(self, fullname: str, path: list[str] | None) -> ResolutionResult:
        parent_name, _, tail = fullname.rpartition(".")
        if not parent_name:
            return self.host.resolve(fullname, next_resolve=self._resolve_source)

        parent = sys.modules.get(parent_name)
        parent_file = getattr(parent, "__file__", None)
        if parent_file:
            return self.host.resolve(f"./{tail}", parent=parent_file, next_resolve=self._resolve_source)

        # Namespace parent: look inside each of its directories
        search_paths = [Path(entry) for entry in path or ()]
        return self.host.resolve(tail, search_paths=search_paths, next_resolve=self._resolve_source)

    def _resolve_source(self, specifier: str, context: ResolutionContext) -> ResolutionResult:
        """Native resolution that treats files outside the source extensions as misses."""
        result = resolve_native(specifier, context)
        if result.path is not None and not self.host.hooks.adapter.needs_transform(result.path):
            raise SpecifierNotFoundError(specifier, context.requesting_file)
        return result
