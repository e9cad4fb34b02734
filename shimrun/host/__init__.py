"""CPython host binding for the loader hooks.

``install()`` registers the source finder for the current process. A
supervised child gets it through the bootstrap: ``python -m shimrun.host``.
"""

from __future__ import annotations

import types
from pathlib import Path

from ..hooks import LoaderHooks
from ..settings import LoaderSettings
from .runtime import ModuleHost

# Process-wide host
_host: ModuleHost | None = None


def install(settings: LoaderSettings | None = None) -> ModuleHost:
    """Install the loader into this process and return its host.

    Args:
        settings: Loader settings, only used by the first call. Defaults to
            the ``SHIMRUN_*`` environment.
    """
    global _host
    if _host is None:
        _host = ModuleHost(LoaderHooks.from_settings(settings or LoaderSettings.from_env()))
    _host.install()
    return _host


def uninstall() -> None:
    if _host is not None:
        _host.uninstall()


def require(specifier: str, parent: Path | str | None = None) -> types.ModuleType:
    """Load a module by path-like specifier (``./util.js``, ``@app/config``)."""
    return install().require(specifier, parent)


__all__ = ["ModuleHost", "install", "require", "uninstall"]
