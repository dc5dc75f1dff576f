"""
Component extraction.

Walks an API introspection tree and registers every extractable shape with
a ShapeFingerprintRegistry, children before parents. Only types reachable
from some action are extracted, so unreferenced registry entries never
reach a renderer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..core.errors import UnresolvableReferenceError
from ..core.ir.introspection import ActionSpec, ApiSpec, ResourceSpec
from ..core.ir.types import (
    ArrayType,
    ObjectType,
    PrimitiveType,
    ReferenceType,
    UnionType,
)
from ..core.naming import singularize
from ..core.type_registry import TypeRegistry
from .fingerprint import Component, ShapeFingerprintRegistry

logger = logging.getLogger(__name__)


@dataclass
class ActionComponents:
    """
    One action together with the components of its input and output.

    Attributes:
        resource: Resource owning the action
        parents: Enclosing resources, outermost first
        name: Action name
        action: Action specification
        kind: "action", "member" or "collection"
        input_name: Component of the wrapped input fields
        output_name: Component of the wrapped output fields
    """

    resource: ResourceSpec
    parents: list[ResourceSpec]
    name: str
    action: ActionSpec
    kind: str = "action"
    input_name: str | None = None
    output_name: str | None = None

    @property
    def path(self) -> str:
        """
        Path below the API mount point, with parent ids as parameters.

        Custom actions without an explicit path are mounted under their own
        name: `{id}/<name>` for members and `<name>` for collections.
        """
        segments = []
        for parent in self.parents:
            segments.extend([parent.path, "{" + f"{parent.singular}_id" + "}"])
        segments.append(self.resource.path)
        if self.action.path:
            segments.append(self.action.path)
        elif self.kind == "member":
            segments.extend(["{id}", self.name])
        elif self.kind == "collection":
            segments.append(self.name)
        return "/" + "/".join(segment.strip("/") for segment in segments if segment)

    @property
    def operation_id(self) -> str:
        scope = [parent.singular for parent in self.parents]
        return "_".join([self.name, *scope, self.resource.identifier])

    @property
    def qualified_name(self) -> str:
        """Unique snake_case name of the action, e.g. ``post_comment_index``."""
        scope = [parent.singular for parent in self.parents]
        return "_".join([*scope, self.resource.singular, self.name])

    @property
    def root_key(self) -> str:
        """Envelope data key: plural for collections, singular otherwise."""
        return self.resource.plural if self.action.collection else self.resource.singular


@dataclass
class ComponentSet:
    """
    Everything a renderer needs from one extraction run.

    Attributes:
        api: The extracted API
        shapes: Deduplicated components
        refs: Registry type name -> canonical component name
        actions: Actions in tree order
    """

    api: ApiSpec
    shapes: ShapeFingerprintRegistry
    refs: dict[str, str] = field(default_factory=dict)
    actions: list[ActionComponents] = field(default_factory=list)

    @property
    def components(self) -> list[Component]:
        return self.shapes.components

    def canonical(self, type_name: str) -> str:
        """
        Canonical component name of a registry type.

        Raises:
            UnresolvableReferenceError: If the type was never extracted
        """
        name = self.refs.get(type_name)
        if name is None:
            raise UnresolvableReferenceError(type_name, scope=self.api.path)
        return name

    def component_name(self, descriptor: Any) -> str | None:
        """
        Component standing for ``descriptor`` when it appears nested.

        References resolve to their canonical name; inline objects that were
        extracted resolve by shape. Anything else renders inline.
        """
        if isinstance(descriptor, ReferenceType):
            return self.canonical(descriptor.name)
        if isinstance(descriptor, ObjectType) and not descriptor.is_open:
            return self.shapes.find_by_shape(descriptor)
        return None

    def definition(self, canonical_name: str) -> Any:
        component = self.shapes.get(canonical_name)
        if component is None:
            raise UnresolvableReferenceError(canonical_name, scope=self.api.path)
        return component.definition


class ComponentExtractor:
    """
    Extracts components from an API tree.

    Inline objects are named after the field holding them (singular for
    array elements); registry types keep their registry name as suggestion.
    """

    def __init__(self, registry: TypeRegistry, shapes: ShapeFingerprintRegistry | None = None):
        self.registry = registry
        self.shapes = shapes if shapes is not None else ShapeFingerprintRegistry()
        self._refs: dict[str, str] = {}
        self._visiting: set[str] = set()

    def extract(self, api: ApiSpec) -> ComponentSet:
        """
        Register every shape reachable from the API's actions.

        Raises:
            UnresolvableReferenceError: If an action reaches an unknown type
        """
        result = ComponentSet(api=api, shapes=self.shapes, refs=self._refs)
        for parents, resource in api.walk():
            for kind, name, action in resource.all_actions():
                result.actions.append(self._extract_action(parents, resource, kind, name, action))
        logger.debug(
            "Extracted %d components from %d actions", len(self.shapes), len(result.actions)
        )
        return result

    def _extract_action(
        self,
        parents: list[ResourceSpec],
        resource: ResourceSpec,
        kind: str,
        name: str,
        action: ActionSpec,
    ) -> ActionComponents:
        record = ActionComponents(
            resource=resource, parents=parents, name=name, action=action, kind=kind
        )
        if action.input:
            record.input_name = self._extract_object(
                f"{name}_{resource.singular}_input", ObjectType(shape=action.input)
            )
        if action.output and not action.no_content:
            record.output_name = self._extract_object(
                f"{name}_{resource.singular}_output", ObjectType(shape=action.output)
            )
        if not action.input and not action.output and not action.no_content:
            logger.warning("%s.%s has neither input nor output", resource.identifier, name)
        return record

    def _extract_object(self, suggested_name: str, definition: ObjectType) -> str:
        for field_name, spec in definition.shape.items():
            self._extract_nested(spec.descriptor, field_name)
        return self.shapes.component_for(suggested_name, definition)

    def _extract_nested(self, descriptor: Any, hint: str) -> None:
        if isinstance(descriptor, ObjectType):
            if not descriptor.is_open:
                self._extract_object(hint, descriptor)
        elif isinstance(descriptor, ArrayType):
            self._extract_nested(descriptor.element, singularize(hint))
        elif isinstance(descriptor, UnionType):
            for variant in descriptor.variants:
                suffix = f"_{variant.tag}" if variant.tag else ""
                self._extract_nested(variant.descriptor, f"{hint}{suffix}")
        elif isinstance(descriptor, ReferenceType):
            self.extract_reference(descriptor.name)
        elif isinstance(descriptor, PrimitiveType) and descriptor.enum_ref:
            self.extract_reference(descriptor.enum_ref)

    def extract_reference(self, type_name: str) -> str | None:
        """
        Extract a registry type and everything it references.

        Returns:
            Canonical name, or None while the type is still being extracted
            further up a reference cycle
        """
        if type_name in self._refs:
            return self._refs[type_name]
        if type_name in self._visiting:
            return None

        definition = self.registry.resolve(type_name)
        self._visiting.add(type_name)
        try:
            if isinstance(definition, ObjectType):
                for field_name, spec in definition.shape.items():
                    self._extract_nested(spec.descriptor, field_name)
            else:
                self._extract_nested_children(definition, type_name)
        finally:
            self._visiting.discard(type_name)

        canonical = self.shapes.component_for(type_name, definition)
        self._refs[type_name] = canonical
        return canonical

    def _extract_nested_children(self, definition: Any, type_name: str) -> None:
        if isinstance(definition, ArrayType):
            self._extract_nested(definition.element, singularize(type_name))
        elif isinstance(definition, UnionType):
            for variant in definition.variants:
                suffix = f"_{variant.tag}" if variant.tag else ""
                self._extract_nested(variant.descriptor, f"{type_name}{suffix}")
        elif isinstance(definition, (ReferenceType, PrimitiveType)):
            self._extract_nested(definition, type_name)


def extract_components(api: ApiSpec, registry: TypeRegistry | None = None) -> ComponentSet:
    """Extract components with a fresh fingerprint registry."""
    if registry is None:
        registry = TypeRegistry.from_api(api)
    return ComponentExtractor(registry).extract(api)
