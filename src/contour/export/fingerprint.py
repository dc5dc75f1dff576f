"""
Structural deduplication of type descriptors.

A descriptor is normalized into an order-independent structure and hashed;
every descriptor with the same hash shares one canonically named component.
Descriptions and examples are not part of the fingerprint.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any

from ..core.ir.types import (
    ArrayType,
    EnumType,
    FieldDescriptor,
    LiteralType,
    ObjectType,
    PrimitiveType,
    ReferenceType,
    UnionType,
)
from ..core.naming import pascal_case

logger = logging.getLogger(__name__)


def _canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def normalize(descriptor: Any) -> dict[str, Any]:
    """
    Reduce a descriptor to a context-free, order-independent structure.

    Raises:
        TypeError: If ``descriptor`` is not a type descriptor
    """
    if isinstance(descriptor, PrimitiveType):
        result: dict[str, Any] = {"type": "primitive", "kind": descriptor.kind.value}
        if descriptor.format:
            result["format"] = descriptor.format
        if descriptor.enum_ref:
            result["enum"] = descriptor.enum_ref
        return result

    if isinstance(descriptor, LiteralType):
        return {"type": "literal", "value": descriptor.value}

    if isinstance(descriptor, ObjectType):
        return {
            "type": "object",
            "required": sorted(descriptor.required),
            "shape": {name: _normalize_field(descriptor.shape[name]) for name in sorted(descriptor.shape)},
        }

    if isinstance(descriptor, ArrayType):
        return {"type": "array", "of": normalize(descriptor.element)}

    if isinstance(descriptor, EnumType):
        return {"type": "enum", "values": sorted(descriptor.values)}

    if isinstance(descriptor, UnionType):
        variants = [
            {"tag": variant.tag, "descriptor": normalize(variant.descriptor)}
            for variant in descriptor.variants
        ]
        return {
            "type": "union",
            "discriminator": descriptor.discriminator,
            "variants": sorted(variants, key=_canonical_json),
        }

    if isinstance(descriptor, ReferenceType):
        return {"type": "reference", "name": descriptor.name}

    raise TypeError(f"Not a type descriptor: {type(descriptor).__name__}")


def _normalize_field(spec: FieldDescriptor) -> dict[str, Any]:
    result: dict[str, Any] = {"descriptor": normalize(spec.descriptor)}
    if spec.nullable:
        result["nullable"] = True
    for key in ("format", "min", "max", "default", "store_as", "store_value"):
        value = getattr(spec, key)
        if value is not None:
            result[key] = value
    return result


def fingerprint(descriptor: Any) -> str:
    """SHA-256 of the normalized descriptor."""
    return hashlib.sha256(_canonical_json(normalize(descriptor)).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Component:
    """
    A deduplicated, canonically named descriptor.

    Attributes:
        fingerprint: Hash of the normalized definition
        canonical_name: PascalCase name every equal shape resolves to
        definition: The first definition registered with this fingerprint
        suggested_name: Name it was first registered under
    """

    fingerprint: str
    canonical_name: str
    definition: Any
    suggested_name: str


class ShapeFingerprintRegistry:
    """
    Maps structurally equal descriptors to one component.

    The first suggested name for a shape wins. When a different shape asks
    for a name already taken, it gets the name with a numeric suffix
    (``Author``, ``Author2``, ``Author3``...), so both stay resolvable.

    One registry serves one export run of one API.
    """

    def __init__(self):
        self._by_fingerprint: dict[str, Component] = {}
        self._by_name: dict[str, Component] = {}

    def component_for(self, suggested_name: str, definition: Any) -> str:
        """
        Return the canonical name for ``definition``, creating a component on
        first sight of its shape.

        Args:
            suggested_name: Preferred name, converted to PascalCase
            definition: Type descriptor

        Returns:
            Canonical component name
        """
        digest = fingerprint(definition)
        existing = self._by_fingerprint.get(digest)
        if existing is not None:
            if existing.suggested_name != suggested_name:
                logger.debug(
                    "%s has the same shape as %s", suggested_name, existing.canonical_name
                )
            return existing.canonical_name

        name = self._unique_name(pascal_case(suggested_name))
        component = Component(
            fingerprint=digest,
            canonical_name=name,
            definition=definition,
            suggested_name=suggested_name,
        )
        self._by_fingerprint[digest] = component
        self._by_name[name] = component
        logger.debug("New component %s (%s)", name, digest[:12])
        return name

    register = component_for

    def find_by_shape(self, definition: Any) -> str | None:
        """Canonical name of an equal shape, if one is registered."""
        component = self._by_fingerprint.get(fingerprint(definition))
        return component.canonical_name if component else None

    def get(self, canonical_name: str) -> Component | None:
        return self._by_name.get(canonical_name)

    @property
    def components(self) -> list[Component]:
        """Components in registration order."""
        return list(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_fingerprint)

    def __contains__(self, canonical_name: object) -> bool:
        return canonical_name in self._by_name

    def _unique_name(self, base: str) -> str:
        if base not in self._by_name:
            return base
        suffix = 2
        while f"{base}{suffix}" in self._by_name:
            suffix += 1
        logger.debug("Component name %s taken; using %s%d", base, base, suffix)
        return f"{base}{suffix}"
