"""Module host: resolves, loads and executes modules for one process."""

from __future__ import annotations

import code as interactive
import importlib
import importlib.util
import logging
import runpy
import sys
import types
from collections.abc import Callable
from collections.abc import Iterable
from importlib.machinery import PathFinder
from pathlib import Path
from typing import Any

from ..hooks import LoaderHooks
from ..loading.adapter import LoadContext
from ..loading.adapter import LoadResult
from ..loading.transform import transform_code
from ..resolution.pipeline import NextResolve
from ..resolution.specifiers import ModuleFormat
from ..resolution.specifiers import ResolutionContext
from ..resolution.specifiers import ResolutionResult
from ..resolution.specifiers import SpecifierKind
from ..resolution.specifiers import classify
from ..resolution.specifiers import split_scheme
from .finder import SourceFinder
from .finder import SourceLoader
from .native import load_native
from .native import resolve_native

logger = logging.getLogger(__name__)

Require = Callable[[str], types.ModuleType]

EVAL_FILENAME = "[eval].ts"
REPL_FILENAME = "[repl]"


def required_module_name(path: Path) -> str:
    """``sys.modules`` key for a module loaded with ``require``."""
    return f"shimrun:{path}"


class ModuleHost:
    """Runs modules through the loader hooks.

    Args:
        hooks: Loader hooks for this process
    """

    def __init__(self, hooks: LoaderHooks):
        self.hooks = hooks
        self.finder = SourceFinder(self)
        self._required: dict[Path, types.ModuleType] = {}

    # ----- import system registration -----

    @property
    def installed(self) -> bool:
        return self.finder in sys.meta_path

    def install(self) -> None:
        """Register the finder just ahead of Python's PathFinder. Idempotent."""
        if self.installed:
            return
        try:
            index = sys.meta_path.index(PathFinder)
        except ValueError:
            index = len(sys.meta_path)
        sys.meta_path.insert(index, self.finder)
        logger.debug("Source finder installed")

    def uninstall(self) -> None:
        if self.installed:
            sys.meta_path.remove(self.finder)

    # ----- resolution and loading -----

    def resolve(
        self,
        specifier: str,
        parent: Path | str | None = None,
        search_paths: Iterable[Path] = (),
        next_resolve: NextResolve = resolve_native,
    ) -> ResolutionResult:
        """Resolve a specifier as imported from ``parent``.

        Raises:
            ResolutionError: No candidate matched
        """
        context = ResolutionContext(
            requesting_file=Path(parent) if parent else None,
            search_paths=tuple(search_paths),
        )
        return self.hooks.resolve(specifier, context, next_resolve)

    def load_source(self, path: Path, default_format: ModuleFormat | None = None) -> LoadResult:
        """Source code to execute for a resolved file.

        Raises:
            TransformError: The transform service failed
        """
        return self.hooks.load(path, LoadContext(format=default_format), load_native)

    # ----- execution -----

    def require(self, specifier: str, parent: Path | str | None = None) -> types.ModuleType:
        """Load a module by path-like specifier and return it.

        Modules are cached per resolved file, so requiring the same file twice
        returns the same module object.
        """
        result = self.resolve(specifier, parent)
        if result.path is None:
            return importlib.import_module(split_scheme(result.specifier)[1])

        path = result.path
        if path in self._required:
            return self._required[path]

        name = required_module_name(path)
        loader = SourceLoader(self, path)
        spec = importlib.util.spec_from_file_location(name, path, loader=loader)
        module = importlib.util.module_from_spec(spec)

        self._required[path] = module
        sys.modules[name] = module
        try:
            loader.exec_module(module)
        except BaseException:
            del self._required[path]
            sys.modules.pop(name, None)
            raise
        return module

    def require_from(self, parent: Path | str) -> Require:
        """A ``require`` function bound to the file it is injected into."""

        def require(specifier: str) -> types.ModuleType:
            return self.require(specifier, parent)

        return require

    def run_main(self, script: str) -> None:
        """Run a script as ``__main__``.

        Source files go through the loader hooks; any other file is run with
        runpy so plain Python scripts behave as they do under ``python``.
        """
        specifier = script if classify(script) is not SpecifierKind.BARE else f"./{script}"
        result = self.resolve(specifier)

        if result.path is None:
            runpy.run_module(split_scheme(result.specifier)[1], run_name="__main__", alter_sys=True)
            return

        path = result.path
        if sys.path and sys.path[0] in ("", str(Path.cwd())):
            sys.path[0] = str(path.parent)
        else:
            sys.path.insert(0, str(path.parent))

        if not self.hooks.adapter.needs_transform(path):
            runpy.run_path(str(path), run_name="__main__")
            return

        loader = SourceLoader(self, path)
        module = types.ModuleType("__main__")
        module.__file__ = str(path)
        module.__loader__ = loader
        module.__spec__ = None
        sys.modules["__main__"] = module
        loader.exec_module(module)

    def run_eval(self, source: str, *, print_result: bool = False) -> Any:
        """Transform and run a code string in ``__main__``."""
        filename = str(Path.cwd() / EVAL_FILENAME)
        adapter = self.hooks.adapter
        result = transform_code(adapter.transform, filename, source, sourcemap=False, cache=adapter.cache)

        module = types.ModuleType("__main__")
        module.__file__ = filename
        module.require = self.require_from(filename)
        sys.modules["__main__"] = module

        if print_result:
            value = eval(compile(result.code, filename, "eval"), module.__dict__)
            print(value)
            return value
        exec(compile(result.code, filename, "exec"), module.__dict__)
        return None

    def interact(self) -> None:
        """Interactive console with ``require`` bound to the working directory."""
        namespace = {"__name__": "__main__", "require": self.require_from(Path.cwd() / REPL_FILENAME)}
        interactive.interact(banner=f"shimrun (Python {sys.version.split()[0]})", local=namespace, exitmsg="")
