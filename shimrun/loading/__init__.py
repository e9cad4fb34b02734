"""Loading: transform service backends, source maps and the load adapter."""

from .adapter import LoadAdapter
from .adapter import LoadContext
from .adapter import LoadResult
from .source_map import inline_source_map
from .transform import CallableTransform
from .transform import CommandTransform
from .transform import PassthroughTransform
from .transform import TransformOptions
from .transform import TransformOutput
from .transform import create_transform_service
from .transform import transform_code

__all__ = [
    "CallableTransform",
    "CommandTransform",
    "LoadAdapter",
    "LoadContext",
    "LoadResult",
    "PassthroughTransform",
    "TransformOptions",
    "TransformOutput",
    "create_transform_service",
    "inline_source_map",
    "transform_code",
]
