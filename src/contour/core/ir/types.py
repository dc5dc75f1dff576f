"""
Type descriptor IR for contour.

Every payload shape the synthesizer produces and every renderer consumes is
expressed with the descriptors in this module. Descriptors are frozen
pydantic models discriminated by their ``type`` tag, so a whole tree can be
dumped to a plain dict and loaded back with ``model_validate``.

Examples:
    - string: PrimitiveType(kind=PrimitiveKind.STRING)
    - {title: string}: ObjectType(shape={"title": FieldDescriptor(descriptor=...)})
    - list of comments: ArrayType(element=ReferenceType(name="comment"))
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PrimitiveKind(str, Enum):
    """Scalar kinds understood by every backend."""

    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    NUMBER = "number"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    UUID = "uuid"
    BINARY = "binary"
    JSON = "json"
    UNKNOWN = "unknown"


class PrimitiveType(BaseModel):
    """
    A scalar value.

    Attributes:
        kind: Scalar kind
        format: Optional format hint (email, uri, ...)
        enum_ref: Name of a registered enum restricting the value
    """

    type: Literal["primitive"] = "primitive"
    kind: PrimitiveKind
    format: str | None = None
    enum_ref: str | None = None

    model_config = ConfigDict(frozen=True)


class LiteralType(BaseModel):
    """A single fixed value, used for discriminator tags."""

    type: Literal["literal"] = "literal"
    value: str | int | bool

    model_config = ConfigDict(frozen=True)


class ObjectType(BaseModel):
    """
    A record with named fields.

    Field order is preserved for rendering. Required-ness lives on each
    FieldDescriptor, so ``required`` is always a subset of the shape keys.
    """

    type: Literal["object"] = "object"
    shape: dict[str, FieldDescriptor] = Field(default_factory=dict)
    description: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def required(self) -> list[str]:
        """Names of the required fields, in shape order."""
        return [name for name, spec in self.shape.items() if spec.required]

    @property
    def is_open(self) -> bool:
        """An object with no declared fields accepts any keys."""
        return not self.shape

    def get_field(self, name: str) -> FieldDescriptor | None:
        return self.shape.get(name)

    def with_field(self, name: str, spec: FieldDescriptor, first: bool = False) -> ObjectType:
        """Return a copy with ``name`` added or replaced."""
        shape = {name: spec} if first else {}
        for key, value in self.shape.items():
            if key != name:
                shape[key] = value
        if not first:
            shape[name] = spec
        return self.model_copy(update={"shape": shape})


class ArrayType(BaseModel):
    """A list whose items share one descriptor."""

    type: Literal["array"] = "array"
    element: TypeDescriptor

    model_config = ConfigDict(frozen=True)


class EnumType(BaseModel):
    """A closed set of string values."""

    type: Literal["enum"] = "enum"
    values: list[str]
    description: str | None = None
    example: str | None = None
    deprecated: bool = False

    model_config = ConfigDict(frozen=True)

    @field_validator("values")
    @classmethod
    def validate_values(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError(f"Enum values must be unique: {v}")
        return v


class UnionVariant(BaseModel):
    """One member of a union, tagged by its discriminator value."""

    tag: str | None = None
    descriptor: TypeDescriptor

    model_config = ConfigDict(frozen=True)


class UnionType(BaseModel):
    """
    A choice between variants.

    When ``discriminator`` is set every variant carries a unique tag and the
    field named by the discriminator selects the variant.
    """

    type: Literal["union"] = "union"
    discriminator: str | None = None
    variants: list[UnionVariant]
    description: str | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_tags(self) -> UnionType:
        if self.discriminator is None:
            return self
        tags = [variant.tag for variant in self.variants]
        if any(tag is None for tag in tags):
            raise ValueError(
                f"Every variant of a union discriminated by '{self.discriminator}' needs a tag"
            )
        if len(set(tags)) != len(tags):
            raise ValueError(f"Union variant tags must be unique: {tags}")
        return self

    @property
    def tags(self) -> list[str]:
        return [variant.tag for variant in self.variants if variant.tag is not None]


class ReferenceType(BaseModel):
    """A weak reference, by name, to a type held in a registry."""

    type: Literal["reference"] = "reference"
    name: str

    model_config = ConfigDict(frozen=True)


TypeDescriptor = Annotated[
    Union[
        PrimitiveType,
        LiteralType,
        ObjectType,
        ArrayType,
        EnumType,
        UnionType,
        ReferenceType,
    ],
    Field(discriminator="type"),
]


class FieldDescriptor(BaseModel):
    """
    A descriptor in the position of a named field.

    Attributes:
        descriptor: Type of the field value
        required: Whether the key must be present
        nullable: Whether null is accepted
        description: Human readable description
        example: Example value
        format: Format hint, overrides the primitive's format when set
        deprecated: Marks the field as deprecated
        min: Minimum value or length
        max: Maximum value or length
        default: Natural default used by builder functions
        store_as: Underlying name the value is stored under
        store_value: Stored value when it differs from a literal's public value
    """

    descriptor: TypeDescriptor
    required: bool = True
    nullable: bool = False
    description: str | None = None
    example: Any = None
    format: str | None = None
    deprecated: bool = False
    min: int | float | None = None
    max: int | float | None = None
    default: Any = None
    store_as: str | None = None
    store_value: str | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_bounds(self) -> FieldDescriptor:
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"min ({self.min}) is greater than max ({self.max})")
        return self

    @property
    def has_default(self) -> bool:
        return self.default is not None


# Rebuild models to resolve forward references
ObjectType.model_rebuild()
ArrayType.model_rebuild()
UnionVariant.model_rebuild()
UnionType.model_rebuild()
FieldDescriptor.model_rebuild()


def primitive(kind: PrimitiveKind | str, **kwargs: Any) -> PrimitiveType:
    """Shorthand for a PrimitiveType."""
    return PrimitiveType(kind=PrimitiveKind(kind), **kwargs)


def reference(name: str) -> ReferenceType:
    return ReferenceType(name=name)


def field(descriptor: Any, **kwargs: Any) -> FieldDescriptor:
    """Shorthand for a FieldDescriptor; accepts a PrimitiveKind for scalars."""
    if isinstance(descriptor, (PrimitiveKind, str)):
        descriptor = primitive(descriptor)
    return FieldDescriptor(descriptor=descriptor, **kwargs)


def children(descriptor: Any) -> list[Any]:
    """Direct child descriptors, in declaration order."""
    if isinstance(descriptor, ObjectType):
        return [spec.descriptor for spec in descriptor.shape.values()]
    if isinstance(descriptor, ArrayType):
        return [descriptor.element]
    if isinstance(descriptor, UnionType):
        return [variant.descriptor for variant in descriptor.variants]
    return []


def referenced_names(descriptor: Any) -> set[str]:
    """Registry names referenced anywhere inside ``descriptor``."""
    names: set[str] = set()
    stack = [descriptor]
    while stack:
        node = stack.pop()
        if isinstance(node, ReferenceType):
            names.add(node.name)
        elif isinstance(node, PrimitiveType) and node.enum_ref:
            names.add(node.enum_ref)
        stack.extend(children(node))
    return names
