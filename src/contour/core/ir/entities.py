"""
Data model metadata consumed by payload synthesis.

These types describe what the storage layer knows about each entity:
attributes, associations, nested-mutation support and single-table
inheritance families. They are read, never computed, by the synthesizer.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import make_configuration_error
from ..naming import camel_to_snake, pluralize
from .types import PrimitiveKind


class MutationAction(str, Enum):
    """Inbound mutation actions that carry a payload."""

    CREATE = "create"
    UPDATE = "update"


class Writable(str, Enum):
    """Normalized writable-for set of an attribute or association."""

    OFF = "off"
    ON_CREATE = "create"
    ON_UPDATE = "update"
    ON_BOTH = "both"

    def allows(self, action: MutationAction | str) -> bool:
        action = MutationAction(action)
        if self == Writable.ON_BOTH:
            return True
        return self.value == action.value

    @property
    def actions(self) -> list[MutationAction]:
        return [action for action in MutationAction if self.allows(action)]

    @classmethod
    def from_actions(cls, actions: Iterable[MutationAction | str]) -> Writable:
        found = {MutationAction(action) for action in actions}
        if found == {MutationAction.CREATE, MutationAction.UPDATE}:
            return cls.ON_BOTH
        if found == {MutationAction.CREATE}:
            return cls.ON_CREATE
        if found == {MutationAction.UPDATE}:
            return cls.ON_UPDATE
        return cls.OFF

    @classmethod
    def normalize(cls, value: Any) -> Writable:
        """
        Normalize any accepted declaration form.

        Accepts a Writable, a bool, None, one of the value strings, a mapping
        like ``{"on": ["create"]}`` or an iterable of action names.

        Raises:
            ValueError: If the value has none of the accepted forms
        """
        if isinstance(value, cls):
            return value
        if value is None or value is False:
            return cls.OFF
        if value is True:
            return cls.ON_BOTH
        if isinstance(value, str):
            if value in ("none", "false"):
                return cls.OFF
            if value in ("true", "all"):
                return cls.ON_BOTH
            return cls(value)
        if isinstance(value, dict):
            if set(value) != {"on"}:
                raise ValueError(f"Unsupported writable options: {sorted(value)}")
            return cls.from_actions(value["on"])
        if isinstance(value, Iterable):
            return cls.from_actions(value)
        raise ValueError(f"Unsupported writable declaration: {value!r}")


class AssociationKind(str, Enum):
    HAS_MANY = "has_many"
    HAS_ONE = "has_one"
    BELONGS_TO = "belongs_to"


class Attribute(BaseModel):
    """
    A scalar attribute of an entity.

    Attributes:
        name: Attribute name (snake_case)
        kind: Scalar kind
        optional: Whether a create payload may omit it
        nullable: Whether null is accepted
        writable: Actions whose payload includes the attribute
        enum: Allowed values, registered as a named enum
        format: Format hint (email, uri, ...)
        min: Minimum value or length
        max: Maximum value or length
        default: Natural default used by builder functions
    """

    name: str
    kind: PrimitiveKind = PrimitiveKind.STRING
    optional: bool = False
    nullable: bool = False
    writable: Writable = Writable.OFF
    enum: list[str] | None = None
    format: str | None = None
    min: int | float | None = None
    max: int | float | None = None
    default: Any = None
    description: str | None = None
    example: Any = None
    deprecated: bool = False

    model_config = ConfigDict(frozen=True)

    @field_validator("writable", mode="before")
    @classmethod
    def normalize_writable(cls, v: Any) -> Writable:
        return Writable.normalize(v)


class Association(BaseModel):
    """
    A relationship to another entity.

    Attributes:
        name: Association name as seen in payloads
        kind: Cardinality of the relationship
        target: Explicit qualified target entity name
        model_target: Underlying model type name used for convention lookup
        polymorphic: Allowed public type tags of a polymorphic association
        nullable: Whether null is accepted
        writable: Actions that accept nested mutation of the association
    """

    name: str
    kind: AssociationKind = AssociationKind.BELONGS_TO
    target: str | None = None
    model_target: str | None = None
    polymorphic: list[str] = Field(default_factory=list)
    nullable: bool = False
    writable: Writable = Writable.OFF
    description: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("writable", mode="before")
    @classmethod
    def normalize_writable(cls, v: Any) -> Writable:
        return Writable.normalize(v)

    @property
    def collection(self) -> bool:
        return self.kind == AssociationKind.HAS_MANY

    @property
    def is_polymorphic(self) -> bool:
        return bool(self.polymorphic)

    @property
    def nested_key(self) -> str:
        """Payload key signalling nested mutation to the storage layer."""
        return f"{self.name}_attributes"


class NestedMutation(BaseModel):
    """Storage-layer support for nested mutation through one association."""

    association: str

    model_config = ConfigDict(frozen=True)


class InheritanceVariant(BaseModel):
    """
    One concrete subtype of an inheritance family.

    Attributes:
        tag: Public discriminator value
        entity: Qualified name of the subtype entity
        store_value: Value stored in the discriminator column, when it differs
    """

    tag: str
    entity: str
    store_value: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def needs_transform(self) -> bool:
        return self.store_value is not None and self.store_value != self.tag


class Inheritance(BaseModel):
    """
    Single-table inheritance family rooted at an entity.

    Attributes:
        discriminator: Public discriminator field name
        column: Underlying column, when it differs from the public name
        variants: Concrete subtypes
    """

    discriminator: str = "type"
    column: str | None = None
    variants: list[InheritanceVariant] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def stored_under(self) -> str | None:
        """Underlying field name when it differs from the discriminator."""
        if self.column and self.column != self.discriminator:
            return self.column
        return None

    @property
    def needs_transform(self) -> bool:
        return any(variant.needs_transform for variant in self.variants)

    def variant_for(self, entity: str) -> InheritanceVariant | None:
        for variant in self.variants:
            if variant.entity == entity:
                return variant
        return None


class Entity(BaseModel):
    """
    Specification for a data model entity.

    Attributes:
        name: Entity name (PascalCase)
        namespace: Dotted namespace used for convention lookup
        root_key: Singular payload root key, derived from the name by default
        identifier: Kind of the primary identifier
        timestamps: Whether created_at/updated_at are maintained
        attributes: Scalar attributes
        associations: Relationships
        nested_mutation: Associations accepting nested mutation
        parent: Qualified name of the inheritance root, for subtypes
        inheritance: Family metadata, for inheritance roots
    """

    name: str
    namespace: str = ""
    root_key: str | None = None
    description: str | None = None
    identifier: PrimitiveKind = PrimitiveKind.INTEGER
    timestamps: bool = True
    attributes: list[Attribute] = Field(default_factory=list)
    associations: list[Association] = Field(default_factory=list)
    nested_mutation: list[NestedMutation] = Field(default_factory=list)
    parent: str | None = None
    inheritance: Inheritance | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.name}" if self.namespace else self.name

    @property
    def singular_key(self) -> str:
        return self.root_key or camel_to_snake(self.name)

    @property
    def plural_key(self) -> str:
        return pluralize(self.singular_key)

    @property
    def is_sti_root(self) -> bool:
        return self.inheritance is not None and bool(self.inheritance.variants)

    def get_attribute(self, name: str) -> Attribute | None:
        for attribute in self.attributes:
            if attribute.name == name:
                return attribute
        return None

    def get_association(self, name: str) -> Association | None:
        for association in self.associations:
            if association.name == name:
                return association
        return None

    def nested_mutation_for(self, association: str) -> NestedMutation | None:
        for declaration in self.nested_mutation:
            if declaration.association == association:
                return declaration
        return None


class DataModel(BaseModel):
    """
    All entities known to one API.

    Subtypes inherit their parent's attributes, associations and
    nested-mutation declarations; the accessors below return the merged view.
    """

    entities: list[Entity] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def get_entity(self, name: str) -> Entity | None:
        """Get entity by qualified name."""
        for entity in self.entities:
            if entity.qualified_name == name:
                return entity
        return None

    def has_entity(self, name: str) -> bool:
        return self.get_entity(name) is not None

    def parent_of(self, entity: Entity) -> Entity | None:
        return self.get_entity(entity.parent) if entity.parent else None

    def attributes_for(self, entity: Entity) -> list[Attribute]:
        """Own attributes plus inherited ones, own declarations winning."""
        parent = self.parent_of(entity)
        if parent is None:
            return list(entity.attributes)
        merged = {attribute.name: attribute for attribute in self.attributes_for(parent)}
        merged.update({attribute.name: attribute for attribute in entity.attributes})
        return list(merged.values())

    def associations_for(self, entity: Entity) -> list[Association]:
        parent = self.parent_of(entity)
        if parent is None:
            return list(entity.associations)
        merged = {association.name: association for association in self.associations_for(parent)}
        merged.update({association.name: association for association in entity.associations})
        return list(merged.values())

    def nested_mutation_for(self, entity: Entity, association: str) -> NestedMutation | None:
        declaration = entity.nested_mutation_for(association)
        if declaration is None:
            parent = self.parent_of(entity)
            if parent is not None:
                return self.nested_mutation_for(parent, association)
        return declaration

    def check_configuration(self) -> None:
        """
        Check the declarations before any synthesis runs.

        Raises:
            ConfigurationError: With the declaration needed to fix the model
        """
        for entity in self.entities:
            if entity.parent and not self.has_entity(entity.parent):
                raise make_configuration_error(
                    f"{entity.name} inherits from unknown entity '{entity.parent}'",
                    code="unknown_parent",
                    entity=entity.qualified_name,
                )

            if entity.inheritance:
                for variant in entity.inheritance.variants:
                    if not self.has_entity(variant.entity):
                        raise make_configuration_error(
                            f"{entity.name} declares variant '{variant.tag}' "
                            f"for unknown entity '{variant.entity}'",
                            code="unknown_variant_entity",
                            entity=entity.qualified_name,
                            path=[entity.inheritance.discriminator],
                        )

            for association in self.associations_for(entity):
                if association.target and not self.has_entity(association.target):
                    raise make_configuration_error(
                        f"{entity.name} association '{association.name}' targets "
                        f"unknown entity '{association.target}'",
                        code="unknown_association_target",
                        entity=entity.qualified_name,
                        path=[association.name],
                    )
                if association.writable == Writable.OFF:
                    continue
                if self.nested_mutation_for(entity, association.name) is None:
                    raise make_configuration_error(
                        f"{entity.name} doesn't accept nested attributes for {association.name}",
                        code="missing_nested_attributes",
                        entity=entity.qualified_name,
                        path=[association.name],
                        remedy=f"nested_mutation: [{{association: {association.name}}}]",
                    )
