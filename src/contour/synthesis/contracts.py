"""
Contract building.

Turns a project declaration (entities plus the resources exposing them)
into an API introspection tree. Standard actions get their input and output
descriptors from payload synthesis and the entity read types; custom member
and collection actions are carried through as declared.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

from ..core.errors import make_configuration_error
from ..core.ir.entities import DataModel, Entity, Inheritance, MutationAction
from ..core.ir.introspection import ActionSpec, ApiSpec, HttpMethod, ResourceSpec
from ..core.ir.types import (
    ArrayType,
    EnumType,
    FieldDescriptor,
    ObjectType,
    PrimitiveKind,
    PrimitiveType,
    ReferenceType,
    UnionVariant,
)
from ..core.type_registry import TypeRegistry
from .payloads import DEFAULT_OP_FIELD, SynthesisContext

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE_MAX = 100


class StandardAction(str, Enum):
    INDEX = "index"
    SHOW = "show"
    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"


class ResourceDeclaration(BaseModel):
    """
    A resource exposing one entity.

    Attributes:
        entity: Qualified entity name
        identifier: Resource name, defaults to the entity's plural key
        path: Path segment, defaults to the identifier
        actions: Standard actions to expose
        members: Custom actions on one record
        collections: Custom actions on the collection
        resources: Nested resources
    """

    entity: str
    identifier: str | None = None
    path: str | None = None
    actions: list[StandardAction] = Field(default_factory=lambda: list(StandardAction))
    members: dict[str, ActionSpec] = Field(default_factory=dict)
    collections: dict[str, ActionSpec] = Field(default_factory=dict)
    resources: list[ResourceDeclaration] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class ApiInfo(BaseModel):
    path: str = "/api/v1"
    title: str = "API"
    version: str = "1.0.0"
    description: str | None = None

    model_config = ConfigDict(frozen=True)


class Project(BaseModel):
    """A project file: API metadata, data model and resources."""

    api: ApiInfo = Field(default_factory=ApiInfo)
    entities: list[Entity] = Field(default_factory=list)
    resources: list[ResourceDeclaration] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def model(self) -> DataModel:
        return DataModel(entities=self.entities)


ResourceDeclaration.model_rebuild()


class ContractBuilder:
    """
    Builds the introspection tree of one API.

    Owns the synthesis context, so one builder corresponds to one registry
    and one run.
    """

    def __init__(
        self,
        model: DataModel,
        registry: TypeRegistry | None = None,
        op_field: str = DEFAULT_OP_FIELD,
    ):
        self.model = model
        self.context = SynthesisContext.create(model, registry, op_field=op_field)
        self._reading: set[str] = set()

    @property
    def registry(self) -> TypeRegistry:
        return self.context.registry

    def build(
        self,
        resources: list[ResourceDeclaration],
        info: ApiInfo | None = None,
    ) -> ApiSpec:
        """
        Build the API tree.

        Raises:
            ConfigurationError: If the data model or a resource declaration is
                inconsistent; raised before any type is synthesized
            UnresolvableReferenceError: If a synthesized type references an
                unregistered name
        """
        info = info or ApiInfo()
        self.model.check_configuration()
        self._check_resources(resources)

        tree = {}
        for declaration in resources:
            resource = self._build_resource(declaration)
            tree[resource.identifier] = resource

        self.registry.check_references()
        logger.info(
            "Built contract for %s: %d resources, %d types",
            info.path,
            len(tree),
            len(self.registry),
        )
        return ApiSpec(
            path=info.path,
            title=info.title,
            version=info.version,
            description=info.description,
            resources=tree,
            types={name: self.registry.resolve(name) for name in self.registry},
        )

    def _check_resources(self, resources: list[ResourceDeclaration]) -> None:
        for declaration in resources:
            if not self.model.has_entity(declaration.entity):
                raise make_configuration_error(
                    f"Resource exposes unknown entity '{declaration.entity}'",
                    code="unknown_resource_entity",
                    entity=declaration.entity,
                )
            self._check_resources(declaration.resources)

    # =========================================================================
    # Resources and actions
    # =========================================================================

    def _build_resource(self, declaration: ResourceDeclaration) -> ResourceSpec:
        entity = self.model.get_entity(declaration.entity)
        if entity is None:
            raise make_configuration_error(
                f"Resource exposes unknown entity '{declaration.entity}'",
                code="unknown_resource_entity",
                entity=declaration.entity,
            )
        identifier = declaration.identifier or entity.plural_key
        read_type = self.build_read_type(entity)

        actions = {
            action.value: self._standard_action(entity, action, read_type)
            for action in declaration.actions
        }
        return ResourceSpec(
            identifier=identifier,
            path=declaration.path or identifier,
            singular=entity.singular_key,
            plural=entity.plural_key,
            actions=actions,
            members=dict(declaration.members),
            collections=dict(declaration.collections),
            resources={
                child.identifier: child
                for child in (self._build_resource(nested) for nested in declaration.resources)
            },
        )

    def _standard_action(
        self, entity: Entity, action: StandardAction, read_type: str
    ) -> ActionSpec:
        single = {entity.singular_key: FieldDescriptor(descriptor=ReferenceType(name=read_type))}

        if action == StandardAction.INDEX:
            return ActionSpec(
                method=HttpMethod.GET,
                input={
                    "page": FieldDescriptor(
                        descriptor=PrimitiveType(kind=PrimitiveKind.INTEGER), required=False, min=1
                    ),
                    "per_page": FieldDescriptor(
                        descriptor=PrimitiveType(kind=PrimitiveKind.INTEGER),
                        required=False,
                        min=1,
                        max=DEFAULT_PER_PAGE_MAX,
                    ),
                },
                output={
                    entity.plural_key: FieldDescriptor(
                        descriptor=ArrayType(element=ReferenceType(name=read_type))
                    )
                },
                collection=True,
                summary=f"List {entity.plural_key}",
            )
        if action == StandardAction.SHOW:
            return ActionSpec(
                method=HttpMethod.GET,
                path="{id}",
                output=single,
                summary=f"Show {entity.singular_key}",
            )
        if action == StandardAction.DESTROY:
            return ActionSpec(
                method=HttpMethod.DELETE,
                path="{id}",
                no_content=True,
                summary=f"Destroy {entity.singular_key}",
            )

        synthesizer = self.context.synthesizer_for(entity)
        if action == StandardAction.CREATE:
            payload = synthesizer.build_payload(MutationAction.CREATE)
            method, path = HttpMethod.POST, ""
        else:
            payload = synthesizer.build_payload(MutationAction.UPDATE)
            method, path = HttpMethod.PATCH, "{id}"
        return ActionSpec(
            method=method,
            path=path,
            input={entity.singular_key: FieldDescriptor(descriptor=ReferenceType(name=payload))},
            output=single,
            summary=f"{action.value.capitalize()} {entity.singular_key}",
        )

    # =========================================================================
    # Read types
    # =========================================================================

    def build_read_type(self, entity: Entity) -> str:
        """
        Register the response shape of an entity under its singular key.

        An inheritance root reads as a union of its subtypes' read types.
        """
        name = entity.singular_key
        if self.registry.has(name) or name in self._reading:
            return name

        self._reading.add(name)
        try:
            if entity.inheritance is not None and entity.is_sti_root:
                self._register_read_union(entity, entity.inheritance)
            else:
                self.registry.register(name, ObjectType(shape=self._read_shape(entity)))
        finally:
            self._reading.discard(name)
        return name

    def _register_read_union(self, entity: Entity, inheritance: Inheritance) -> None:
        variants = []
        for variant in inheritance.variants:
            subtype = self.model.get_entity(variant.entity)
            if subtype is None:
                raise make_configuration_error(
                    f"{entity.name} declares variant '{variant.tag}' "
                    f"for unknown entity '{variant.entity}'",
                    code="unknown_variant_entity",
                    entity=entity.qualified_name,
                    path=[inheritance.discriminator],
                )
            variants.append(
                UnionVariant(
                    tag=variant.tag,
                    descriptor=ReferenceType(name=self.build_read_type(subtype)),
                )
            )
        self.registry.scope().register_union(
            entity.singular_key, variants, discriminator=inheritance.discriminator
        )

    def _read_shape(self, entity: Entity) -> dict[str, FieldDescriptor]:
        synthesizer = self.context.synthesizer_for(entity)
        shape: dict[str, FieldDescriptor] = {
            "id": FieldDescriptor(descriptor=PrimitiveType(kind=entity.identifier))
        }

        literal = synthesizer.variant_literal(MutationAction.CREATE)
        if literal is not None:
            shape[literal[0]] = literal[1]

        for attribute in self.model.attributes_for(entity):
            if attribute.name not in shape:
                shape[attribute.name] = synthesizer.attribute_field(attribute, required=True)

        for association in self.model.associations_for(entity):
            if association.is_polymorphic:
                type_enum = synthesizer.registrar.register(
                    f"{association.name}_type",
                    EnumType(values=list(association.polymorphic)),
                )
                shape[f"{association.name}_type"] = FieldDescriptor(
                    descriptor=PrimitiveType(kind=PrimitiveKind.STRING, enum_ref=type_enum),
                    nullable=association.nullable,
                )
            target = self.context.resolver.resolve(entity, association)
            element: Any
            if target is None:
                element = ObjectType()
            else:
                element = ReferenceType(name=self.build_read_type(target))
            shape[association.name] = FieldDescriptor(
                descriptor=ArrayType(element=element) if association.collection else element,
                required=False,
                nullable=association.nullable,
                description=association.description,
            )

        if entity.timestamps:
            for stamp in ("created_at", "updated_at"):
                shape.setdefault(
                    stamp, FieldDescriptor(descriptor=PrimitiveType(kind=PrimitiveKind.DATETIME))
                )
        return shape


# =============================================================================
# Loading
# =============================================================================


def load_project(path: Path) -> Project:
    """Load a project declaration from YAML or JSON."""
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return Project.model_validate(data)


def build_api(project: Project, registry: TypeRegistry | None = None) -> ApiSpec:
    """Synthesize payloads and build the API tree of a project."""
    builder = ContractBuilder(project.model, registry=registry)
    return builder.build(project.resources, project.api)


def load_api(path: Path) -> ApiSpec:
    """
    Load an API tree from a file.

    A file with an ``entities`` section is a project declaration and is
    built; anything else is read as an already-built introspection tree.
    """
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if "entities" in data:
        return build_api(Project.model_validate(data))
    return ApiSpec.model_validate(data)
