"""shimrun - a module loader and watch-mode runner for TypeScript-style sources.

    import shimrun

    shimrun.install()
    config = shimrun.require("./config.ts")
"""

from .host import install
from .host import require
from .host import uninstall

__version__ = "0.1.0"

__all__ = ["__version__", "install", "require", "uninstall"]
