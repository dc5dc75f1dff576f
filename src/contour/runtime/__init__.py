"""Request-time support for synthesized contracts."""

from .transforms import (
    MutationOpTransformer,
    RequestTransform,
    TransformContext,
    TransformPhase,
    TransformPipeline,
    default_pipeline,
)

__all__ = [
    "MutationOpTransformer",
    "RequestTransform",
    "TransformContext",
    "TransformPhase",
    "TransformPipeline",
    "default_pipeline",
]
