"""Module resolution engine.

Maps an import specifier to a concrete file:
- specifiers: classification and the request/result types
- extensions: candidate extensions for specifiers that miss as written
- aliases: optional tsconfig-style path aliases, loaded once per process
- pipeline: the ordered fallback chain around a host resolver
"""

from .aliases import PathAliasMatcher
from .aliases import get_alias_matcher
from .aliases import load_alias_table
from .extensions import SOURCE_EXTENSIONS
from .extensions import ExtensionResolver
from .pipeline import ResolutionPipeline
from .specifiers import ModuleFormat
from .specifiers import ResolutionContext
from .specifiers import ResolutionResult
from .specifiers import SpecifierKind
from .specifiers import classify

__all__ = [
    "SOURCE_EXTENSIONS",
    "ExtensionResolver",
    "ModuleFormat",
    "PathAliasMatcher",
    "ResolutionContext",
    "ResolutionPipeline",
    "ResolutionResult",
    "SpecifierKind",
    "classify",
    "get_alias_matcher",
    "load_alias_table",
]
