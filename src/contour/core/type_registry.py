"""
Named type registry for one API.

Synthesis registers payload types here; export resolves ``ReferenceType``
names against it. A registry belongs to exactly one API and one run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from .errors import DuplicateTypeError, UnresolvableReferenceError
from .ir.introspection import ApiSpec
from .ir.types import (
    EnumType,
    FieldDescriptor,
    ObjectType,
    ReferenceType,
    UnionType,
    UnionVariant,
    referenced_names,
)

logger = logging.getLogger(__name__)


class TypeRegistry:
    """
    Registry of named type descriptors.

    Registering an equal definition under an existing name is a no-op, so
    synthesis steps can be repeated safely. Registered descriptors are
    never replaced.
    """

    def __init__(self, name: str = "api"):
        self.name = name
        self._types: dict[str, Any] = {}

    @classmethod
    def from_api(cls, api: ApiSpec) -> TypeRegistry:
        """Build a registry from the named types carried by an introspection tree."""
        registry = cls(name=api.path)
        for type_name, definition in api.types.items():
            registry.register(type_name, definition)
        return registry

    def register(self, name: str, definition: Any) -> str:
        """
        Register a named descriptor.

        Returns:
            The registered name

        Raises:
            DuplicateTypeError: If ``name`` holds a different definition
        """
        existing = self._types.get(name)
        if existing is not None:
            if existing != definition:
                raise DuplicateTypeError(name)
            return name
        logger.debug("Registered type %s (%s)", name, definition.type)
        self._types[name] = definition
        return name

    def has(self, name: str) -> bool:
        return name in self._types

    def get(self, name: str) -> Any | None:
        return self._types.get(name)

    def resolve(self, name: str) -> Any:
        """
        Look up a name that must exist.

        Raises:
            UnresolvableReferenceError: If nothing is registered under ``name``
        """
        definition = self._types.get(name)
        if definition is None:
            raise UnresolvableReferenceError(name, scope=self.name)
        return definition

    def check_references(self) -> None:
        """
        Verify that every reference inside every registered type resolves.

        Raises:
            UnresolvableReferenceError: For the first dangling reference
        """
        for owner, definition in self._types.items():
            for target in sorted(referenced_names(definition)):
                if target not in self._types:
                    raise UnresolvableReferenceError(target, scope=f"{self.name}:{owner}")

    @property
    def types(self) -> dict[str, Any]:
        """Registered non-enum types, in registration order."""
        return {n: d for n, d in self._types.items() if not isinstance(d, EnumType)}

    @property
    def enums(self) -> dict[str, EnumType]:
        return {n: d for n, d in self._types.items() if isinstance(d, EnumType)}

    def scope(self, prefix: str = "") -> ScopedRegistrar:
        return ScopedRegistrar(self, prefix)

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)


class ScopedRegistrar:
    """
    Registers types under a name prefix.

    An entity's registrar uses the entity's root key as prefix, so a local
    name ``create_payload`` becomes ``post_create_payload``. The API-level
    registrar has no prefix.
    """

    def __init__(self, registry: TypeRegistry, prefix: str = ""):
        self.registry = registry
        self.prefix = prefix

    def scoped_name(self, local: str) -> str:
        return f"{self.prefix}_{local}" if self.prefix else local

    def has(self, local: str) -> bool:
        return self.registry.has(self.scoped_name(local))

    def register(self, local: str, definition: Any) -> str:
        return self.registry.register(self.scoped_name(local), definition)

    def register_object(
        self,
        local: str,
        shape: dict[str, FieldDescriptor],
        description: str | None = None,
    ) -> str:
        return self.register(local, ObjectType(shape=shape, description=description))

    def register_union(
        self,
        local: str,
        variants: list[UnionVariant],
        discriminator: str | None = None,
        description: str | None = None,
    ) -> str:
        definition = UnionType(
            discriminator=discriminator, variants=variants, description=description
        )
        return self.register(local, definition)

    def register_enum(self, local: str, values: list[str], **kwargs: Any) -> str:
        return self.register(local, EnumType(values=values, **kwargs))

    def reference(self, local: str) -> ReferenceType:
        return ReferenceType(name=self.scoped_name(local))
