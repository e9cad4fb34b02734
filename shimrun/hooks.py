"""Loader hooks: the ``{resolve, load}`` strategy registered with the host.

Both hooks call through to the host's own resolver/loader first and only add
behaviour when it reports "not found" (resolve) or when the file needs the
transform (load).
"""

from __future__ import annotations

import logging
from pathlib import Path

from .loading.adapter import LoadAdapter
from .loading.adapter import LoadContext
from .loading.adapter import LoadResult
from .loading.adapter import NextLoad
from .loading.transform import create_transform_service
from .resolution.aliases import get_alias_matcher
from .resolution.extensions import ExtensionResolver
from .resolution.pipeline import NextResolve
from .resolution.pipeline import ResolutionPipeline
from .resolution.specifiers import ResolutionContext
from .resolution.specifiers import ResolutionResult
from .settings import LoaderSettings

logger = logging.getLogger(__name__)


class LoaderHooks:
    """Resolution pipeline and load adapter behind one interface.

    Args:
        pipeline: Fallback chain used by ``resolve``
        adapter: Transform gate used by ``load``
    """

    def __init__(self, pipeline: ResolutionPipeline, adapter: LoadAdapter):
        self.pipeline = pipeline
        self.adapter = adapter

    @classmethod
    def from_settings(cls, settings: LoaderSettings) -> LoaderHooks:
        """Build hooks for a process from its loader settings."""
        pipeline = ResolutionPipeline(ExtensionResolver(), get_alias_matcher(settings.alias_config))
        adapter = LoadAdapter(create_transform_service(settings), cache=not settings.disable_cache)
        logger.debug(f"Loader hooks ready (transform={adapter.transform!r}, cache={adapter.cache})")
        return cls(pipeline, adapter)

    def resolve(self, specifier: str, context: ResolutionContext, next_resolve: NextResolve) -> ResolutionResult:
        return self.pipeline.resolve(specifier, context, next_resolve)

    def load(self, path: Path, context: LoadContext, next_load: NextLoad) -> LoadResult:
        return self.adapter.load(path, context, next_load)
