"""
Request transforms.

Transforms rewrite an inbound request body at a fixed point of request
handling:
- Pre-validation: before the body is checked against the contract
- Post-validation: after the contract accepted it, before the storage layer

Transforms are pure: they return a new body and never mutate their input.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class TransformPhase(Enum):
    """When a transform runs."""

    PRE_VALIDATION = "pre_validation"
    POST_VALIDATION = "post_validation"


@dataclass
class TransformContext:
    """
    Request information available to transforms.

    Attributes:
        resource: Resource identifier handling the request
        action: Action name handling the request
        metadata: Free-form data set by the host framework
    """

    resource: str | None = None
    action: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class RequestTransform(ABC):
    """
    Base class for request transforms.

    Example:
        class StripBlankStrings(RequestTransform):
            name = "strip_blank_strings"
            phase = TransformPhase.PRE_VALIDATION

            def apply(self, body: Any, context: TransformContext) -> Any:
                ...
    """

    name: str = "unnamed_transform"
    description: str = "No description"
    phase: TransformPhase = TransformPhase.POST_VALIDATION
    enabled: bool = True

    @abstractmethod
    def apply(self, body: Any, context: TransformContext) -> Any:
        """
        Transform a request body.

        Args:
            body: Request body, as decoded JSON
            context: Request information

        Returns:
            The transformed body
        """

    def should_run(self, context: TransformContext) -> bool:
        return self.enabled

    def __str__(self) -> str:
        return f"{self.name} ({self.phase.value}): {self.description}"


class MutationOpTransformer(RequestTransform):
    """
    Rewrites nested-mutation operations into the storage delete convention.

    Every object carrying ``op_field`` loses that key; when its value was
    ``delete_tag`` the object gains ``delete_marker: True`` instead. Objects
    without ``op_field`` pass through unchanged.

    Example:
        {"comments_attributes": [{"_op": "delete", "id": 7}]}
        -> {"comments_attributes": [{"id": 7, "_destroy": True}]}
    """

    name = "mutation_op"
    description = "Replace nested _op discriminators with the storage delete marker"
    phase = TransformPhase.POST_VALIDATION

    def __init__(
        self,
        op_field: str = "_op",
        delete_marker: str = "_destroy",
        delete_tag: str = "delete",
    ):
        self.op_field = op_field
        self.delete_marker = delete_marker
        self.delete_tag = delete_tag

    def apply(self, body: Any, context: TransformContext | None = None) -> Any:
        return self._visit(body)

    def _visit(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self._rewrite(value)
        if isinstance(value, list):
            return [self._visit(item) for item in value]
        return value

    def _rewrite(self, obj: dict[str, Any]) -> dict[str, Any]:
        result = {key: self._visit(value) for key, value in obj.items() if key != self.op_field}
        if obj.get(self.op_field) == self.delete_tag:
            result[self.delete_marker] = True
        return result


class TransformPipeline:
    """
    Holds transforms by phase and runs them in registration order.

    Exceptions raised by a transform propagate to the caller; a request
    body is never handed on half-transformed.
    """

    def __init__(self):
        self._transforms: dict[TransformPhase, list[RequestTransform]] = {
            TransformPhase.PRE_VALIDATION: [],
            TransformPhase.POST_VALIDATION: [],
        }

    def register(self, transform: RequestTransform) -> None:
        """Register a transform for its phase."""
        self._transforms[transform.phase].append(transform)

    def register_many(self, transforms: list[RequestTransform]) -> None:
        for transform in transforms:
            self.register(transform)

    def transforms(self, phase: TransformPhase) -> list[RequestTransform]:
        return list(self._transforms[phase])

    def run_phase(
        self,
        phase: TransformPhase,
        body: Any,
        context: TransformContext | None = None,
    ) -> Any:
        """
        Run every transform registered for ``phase``.

        Args:
            phase: Which phase to run
            body: Request body
            context: Request information

        Returns:
            The body after all transforms of the phase
        """
        context = context or TransformContext()
        for transform in self._transforms[phase]:
            if not transform.should_run(context):
                continue
            logger.debug("Running %s on %s.%s", transform.name, context.resource, context.action)
            body = transform.apply(body, context)
        return body


def default_pipeline() -> TransformPipeline:
    """Pipeline with the mutation-op transform installed."""
    pipeline = TransformPipeline()
    pipeline.register(MutationOpTransformer())
    return pipeline
