"""
contour intermediate representation.

Type descriptors, data model metadata and the API introspection tree are
re-exported from this package.
"""

from .entities import (
    Association,
    AssociationKind,
    Attribute,
    DataModel,
    Entity,
    Inheritance,
    InheritanceVariant,
    MutationAction,
    NestedMutation,
    Writable,
)
from .introspection import ActionSpec, ApiSpec, HttpMethod, ResourceSpec
from .types import (
    ArrayType,
    EnumType,
    FieldDescriptor,
    LiteralType,
    ObjectType,
    PrimitiveKind,
    PrimitiveType,
    ReferenceType,
    TypeDescriptor,
    UnionType,
    UnionVariant,
    children,
    field,
    primitive,
    reference,
    referenced_names,
)

__all__ = [
    # Types
    "ArrayType",
    "EnumType",
    "FieldDescriptor",
    "LiteralType",
    "ObjectType",
    "PrimitiveKind",
    "PrimitiveType",
    "ReferenceType",
    "TypeDescriptor",
    "UnionType",
    "UnionVariant",
    "children",
    "field",
    "primitive",
    "reference",
    "referenced_names",
    # Entities
    "Association",
    "AssociationKind",
    "Attribute",
    "DataModel",
    "Entity",
    "Inheritance",
    "InheritanceVariant",
    "MutationAction",
    "NestedMutation",
    "Writable",
    # Introspection
    "ActionSpec",
    "ApiSpec",
    "HttpMethod",
    "ResourceSpec",
]
