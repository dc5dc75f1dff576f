"""
Payload type synthesis.

Builds the request payload types of an entity and registers them in the
entity's scope of a TypeRegistry:

- ``<key>_create_payload`` / ``<key>_update_payload``: writable attributes
  plus one ``<association>_attributes`` field per writable association
- for an inheritance root, the same names hold a union over the subtypes'
  own payloads, discriminated by the family's discriminator field
- ``<key>_nested_payload``: create/update/delete union used when the
  entity is written through another entity's association

Registration is idempotent: asking for a type that already exists returns
its name without rebuilding it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from ..core.ir.entities import (
    Association,
    Attribute,
    DataModel,
    Entity,
    MutationAction,
)
from ..core.ir.types import (
    ArrayType,
    FieldDescriptor,
    LiteralType,
    ObjectType,
    PrimitiveKind,
    PrimitiveType,
    ReferenceType,
    UnionVariant,
)
from ..core.type_registry import TypeRegistry
from .associations import AssociationResolver

logger = logging.getLogger(__name__)

DEFAULT_OP_FIELD = "_op"


class PayloadKind(str, Enum):
    """Payload kinds, used together with the entity as the cycle guard key."""

    CREATE = "create"
    UPDATE = "update"
    NESTED = "nested"


class NestedOp(str, Enum):
    """Client-facing tags of the nested-mutation union."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class SynthesisContext:
    """
    State shared by every synthesizer of one run.

    Attributes:
        model: Data model being synthesized
        registry: Registry receiving the payload types
        resolver: Association target resolver
        op_field: Discriminator field of nested-mutation unions
        in_flight: Types being built, keyed by (entity, payload kind)
    """

    model: DataModel
    registry: TypeRegistry
    resolver: AssociationResolver
    op_field: str = DEFAULT_OP_FIELD
    in_flight: dict[tuple[str, PayloadKind], str] = field(default_factory=dict)
    _synthesizers: dict[str, PayloadSynthesizer] = field(default_factory=dict, repr=False)

    @classmethod
    def create(
        cls,
        model: DataModel,
        registry: TypeRegistry | None = None,
        op_field: str = DEFAULT_OP_FIELD,
    ) -> SynthesisContext:
        return cls(
            model=model,
            registry=registry if registry is not None else TypeRegistry(),
            resolver=AssociationResolver(model),
            op_field=op_field,
        )

    def synthesizer_for(self, entity: Entity) -> PayloadSynthesizer:
        synthesizer = self._synthesizers.get(entity.qualified_name)
        if synthesizer is None:
            synthesizer = PayloadSynthesizer(entity, self)
            self._synthesizers[entity.qualified_name] = synthesizer
        return synthesizer


class PayloadSynthesizer:
    """Builds the payload types of one entity."""

    def __init__(self, entity: Entity, context: SynthesisContext):
        self.entity = entity
        self.context = context
        self.registrar = context.registry.scope(entity.singular_key)

    @property
    def model(self) -> DataModel:
        return self.context.model

    # =========================================================================
    # Public operations
    # =========================================================================

    def build_payload(self, action: MutationAction | str) -> str:
        """Build the create or update payload, returning its registered name."""
        action = MutationAction(action)
        if self.entity.is_sti_root:
            return self.build_sti_union(action)
        kind = PayloadKind(action.value)
        return self._synthesize(
            kind,
            f"{action.value}_payload",
            lambda local: self.registrar.register_object(local, self._standard_shape(action)),
        )

    def build_create_payload(self) -> str:
        return self.build_payload(MutationAction.CREATE)

    def build_update_payload(self) -> str:
        return self.build_payload(MutationAction.UPDATE)

    def build_sti_union(self, action: MutationAction | str) -> str:
        """
        Build the payload union of an inheritance family.

        Each variant references the subtype's own payload for ``action``,
        which carries the discriminator literal.

        Raises:
            ValueError: If the entity is not an inheritance root
        """
        action = MutationAction(action)
        inheritance = self.entity.inheritance
        if inheritance is None or not inheritance.variants:
            raise ValueError(f"{self.entity.name} is not the root of an inheritance family")

        def build(local: str) -> str:
            variants = []
            for variant in inheritance.variants:
                subtype = self.model.get_entity(variant.entity)
                if subtype is None:
                    raise ValueError(
                        f"{self.entity.name} variant '{variant.tag}' has no entity '{variant.entity}'"
                    )
                type_name = self.context.synthesizer_for(subtype).build_payload(action)
                variants.append(
                    UnionVariant(tag=variant.tag, descriptor=ReferenceType(name=type_name))
                )
            return self.registrar.register_union(
                local, variants, discriminator=inheritance.discriminator
            )

        return self._synthesize(PayloadKind(action.value), f"{action.value}_payload", build)

    def build_nested_mutation_union(self) -> str:
        """
        Build the create/update/delete union for writing this entity through
        another entity's association.
        """

        def build(local: str) -> str:
            create_shape = {"id": self._identifier_field(required=False)}
            create_shape.update(self._standard_shape(MutationAction.CREATE))
            update_shape = {"id": self._identifier_field(required=False)}
            update_shape.update(self._standard_shape(MutationAction.UPDATE))
            delete_shape = {"id": self._identifier_field(required=True)}

            variants = [
                UnionVariant(
                    tag=NestedOp.CREATE.value,
                    descriptor=self._register_object("nested_create_payload", create_shape),
                ),
                UnionVariant(
                    tag=NestedOp.UPDATE.value,
                    descriptor=self._register_object("nested_update_payload", update_shape),
                ),
                UnionVariant(
                    tag=NestedOp.DELETE.value,
                    descriptor=self._register_object("nested_delete_payload", delete_shape),
                ),
            ]
            return self.registrar.register_union(
                local, variants, discriminator=self.context.op_field
            )

        return self._synthesize(PayloadKind.NESTED, "nested_payload", build)

    def attribute_field(self, attribute: Attribute, required: bool) -> FieldDescriptor:
        """Describe one attribute, registering its enum when it has one."""
        if attribute.enum:
            enum_name = self.registrar.register_enum(
                attribute.name,
                list(attribute.enum),
                description=attribute.description,
                deprecated=attribute.deprecated,
            )
            descriptor = PrimitiveType(kind=PrimitiveKind.STRING, enum_ref=enum_name)
        else:
            descriptor = PrimitiveType(kind=attribute.kind, format=attribute.format)

        return FieldDescriptor(
            descriptor=descriptor,
            required=required,
            nullable=attribute.nullable,
            description=attribute.description,
            example=attribute.example,
            format=attribute.format,
            deprecated=attribute.deprecated,
            min=attribute.min,
            max=attribute.max,
            default=attribute.default,
        )

    # =========================================================================
    # Shapes
    # =========================================================================

    def _standard_shape(self, action: MutationAction) -> dict[str, FieldDescriptor]:
        shape: dict[str, FieldDescriptor] = {}
        partial = action == MutationAction.UPDATE

        discriminator = self.variant_literal(action)
        if discriminator is not None:
            shape[discriminator[0]] = discriminator[1]

        for attribute in self.model.attributes_for(self.entity):
            if not attribute.writable.allows(action) or attribute.name in shape:
                continue
            required = not (partial or attribute.optional)
            shape[attribute.name] = self.attribute_field(attribute, required=required)

        for association in self.model.associations_for(self.entity):
            if association.writable.allows(action):
                shape[association.nested_key] = self._association_field(association)

        return shape

    def variant_literal(self, action: MutationAction) -> tuple[str, FieldDescriptor] | None:
        """Discriminator literal of a subtype; optional on update."""
        parent = self.model.parent_of(self.entity)
        if parent is None or parent.inheritance is None:
            return None
        inheritance = parent.inheritance
        variant = inheritance.variant_for(self.entity.qualified_name)
        if variant is None:
            return None
        return inheritance.discriminator, FieldDescriptor(
            descriptor=LiteralType(value=variant.tag),
            required=action == MutationAction.CREATE,
            store_as=inheritance.stored_under,
            store_value=variant.store_value if variant.needs_transform else None,
        )

    def _association_field(self, association: Association) -> FieldDescriptor:
        target = self.context.resolver.resolve(self.entity, association)
        if target is None:
            logger.debug(
                "%s.%s: target unresolved, using an untyped field",
                self.entity.qualified_name,
                association.name,
            )
            element = ObjectType()
        else:
            element = ReferenceType(
                name=self.context.synthesizer_for(target).build_nested_mutation_union()
            )

        descriptor = ArrayType(element=element) if association.collection else element
        return FieldDescriptor(
            descriptor=descriptor,
            required=False,
            nullable=association.nullable,
            description=association.description,
        )

    def _identifier_field(self, required: bool) -> FieldDescriptor:
        return FieldDescriptor(
            descriptor=PrimitiveType(kind=self.entity.identifier), required=required
        )

    def _register_object(self, local: str, shape: dict[str, FieldDescriptor]) -> ReferenceType:
        return ReferenceType(name=self.registrar.register_object(local, shape))

    # =========================================================================
    # Memoization
    # =========================================================================

    def _synthesize(self, kind: PayloadKind, local: str, build: Callable[[str], str]) -> str:
        """
        Register ``local`` once.

        Re-entry for the same entity and payload kind returns the name
        being built instead of recursing.
        """
        name = self.registrar.scoped_name(local)
        if self.registrar.has(local):
            return name

        key = (self.entity.qualified_name, kind)
        in_flight = self.context.in_flight.get(key)
        if in_flight is not None:
            logger.debug("Cycle at %s (%s); reusing %s", key[0], kind.value, in_flight)
            return in_flight

        self.context.in_flight[key] = name
        try:
            build(local)
        finally:
            del self.context.in_flight[key]
        logger.debug("Synthesized %s", name)
        return name
