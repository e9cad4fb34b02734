"""Resolution pipeline.

Resolution order (first match wins):
1. Native resolution of the specifier as written
2. Path aliases (bare specifiers only): each replacement as-is, with each
   source extension appended, then as a directory index
3. Mapped extensions (``util.js`` -> ``util.ts``, ``util.tsx``)
4. Source extensions appended (``util`` -> ``util.ts`` ...)
5. Directory index (``util`` -> ``util/index.ts`` ...)

Only a "not found" failure moves on to the next candidate. Any other error
raised while trying a candidate is the answer and propagates unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from collections.abc import Iterable

from ..errors import ResolutionError
from .aliases import PathAliasMatcher
from .extensions import ExtensionResolver
from .specifiers import ResolutionContext
from .specifiers import ResolutionResult
from .specifiers import SpecifierKind
from .specifiers import classify

logger = logging.getLogger(__name__)

NextResolve = Callable[[str, ResolutionContext], ResolutionResult]


def is_not_found(error: BaseException) -> bool:
    """The failure class that drives fallback search."""
    return isinstance(error, ModuleNotFoundError)


class ResolutionPipeline:
    """Ordered fallback chain around a host resolver.

    Holds only policy (extension table, alias matcher); every ``resolve`` call
    is independent.

    Args:
        extensions: Candidate generator for extension fallbacks
        aliases: Alias matcher, or None to skip aliasing
    """

    def __init__(self, extensions: ExtensionResolver | None = None, aliases: PathAliasMatcher | None = None):
        self.extensions = extensions or ExtensionResolver()
        self.aliases = aliases

    def resolve(self, specifier: str, context: ResolutionContext, next_resolve: NextResolve) -> ResolutionResult:
        """Resolve a specifier through the fallback chain.

        Args:
            specifier: Specifier as written by the importer
            context: Resolution context
            next_resolve: Host resolver; raises ModuleNotFoundError on a miss

        Returns:
            First successful resolution

        Raises:
            ResolutionError: Every candidate missed
        """
        kind = classify(specifier)

        try:
            return next_resolve(specifier, context)
        except Exception as e:
            if not is_not_found(e) or kind is SpecifierKind.BUILTIN:
                raise

        if kind is SpecifierKind.BARE and self.aliases is not None:
            for replacement in self.aliases.match(specifier):
                result = self._first(self.extensions.candidates_for_alias(replacement), context, next_resolve)
                if result is not None:
                    logger.debug(f"[resolve] {specifier} -> alias {replacement} -> {result.specifier}")
                    return result

        for candidates in (
            self.extensions.mapped_candidates(specifier),
            self.extensions.appended_candidates(specifier),
            self.extensions.index_candidates(specifier),
        ):
            result = self._first(candidates, context, next_resolve)
            if result is not None:
                logger.debug(f"[resolve] {specifier} -> {result.specifier}")
                return result

        raise ResolutionError(specifier, context.requesting_file)

    def _first(
        self, candidates: Iterable[str], context: ResolutionContext, next_resolve: NextResolve
    ) -> ResolutionResult | None:
        """Try candidates in order. Returns None when all of them are missing."""
        for candidate in candidates:
            try:
                return next_resolve(candidate, context)
            except Exception as e:
                if not is_not_found(e):
                    raise
        return None
