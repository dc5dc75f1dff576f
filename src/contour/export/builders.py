"""
Builder function emission for the zod and typescript backends.

A builder takes only the fields without a natural default and fills in the
rest: identifiers, timestamps, discriminator literals, declared defaults
and null for nullable fields.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from ..core.ir.types import FieldDescriptor, LiteralType, ObjectType, PrimitiveKind, PrimitiveType
from .typescript import TypeScriptMapper, property_key, ts_literal, ts_string

IDENTIFIER_FIELD = "id"
TIMESTAMP_FIELDS = ("created_at", "updated_at")

HELPERS: dict[str, str] = {
    "sequence": (
        "let sequenceCounter = 0;\n\n"
        "function sequence(): number {\n"
        "  sequenceCounter += 1;\n"
        "  return sequenceCounter;\n"
        "}"
    ),
    "uuid": "function uuid(): string {\n  return crypto.randomUUID();\n}",
    "datetime": "function datetime(): string {\n  return new Date().toISOString();\n}",
    "date": "function date(): string {\n  return new Date().toISOString().slice(0, 10);\n}",
}

PRETTY = "type Pretty<T> = { [K in keyof T]: T[K] } & {};"


class BuilderEmitter:
    """
    Emits ``build<Name>`` functions for object components.

    Args:
        components: Component set being rendered
        mapper: TypeScript mapper of the same run
        wrap: Turns (component name, object literal) into the returned
            expression; the zod backend validates through the schema
    """

    def __init__(
        self,
        components: Any,
        mapper: TypeScriptMapper,
        wrap: Callable[[str, str], str] | None = None,
    ):
        self.components = components
        self.mapper = mapper
        self.wrap = wrap or (lambda name, literal: literal)
        self._used: set[str] = set()

    def targets(self) -> list[tuple[str, ObjectType]]:
        """Object components other than the synthetic action wrappers."""
        wrappers = set()
        for record in self.components.actions:
            wrappers.update(name for name in (record.input_name, record.output_name) if name)
        return [
            (component.canonical_name, component.definition)
            for component in self.components.components
            if isinstance(component.definition, ObjectType)
            and not component.definition.is_open
            and component.canonical_name not in wrappers
        ]

    def default_expr(self, name: str, spec: FieldDescriptor) -> str | None:
        """TypeScript expression for a field's natural default, if it has one."""
        descriptor = spec.descriptor
        if isinstance(descriptor, PrimitiveType) and not descriptor.enum_ref:
            if name == IDENTIFIER_FIELD:
                if descriptor.kind in (PrimitiveKind.INTEGER, PrimitiveKind.NUMBER):
                    return self._helper("sequence")
                return self._helper("uuid")
            if name in TIMESTAMP_FIELDS:
                if descriptor.kind == PrimitiveKind.DATE:
                    return self._helper("date")
                return self._helper("datetime")
        if isinstance(descriptor, LiteralType):
            return ts_literal(descriptor.value)
        if spec.default is not None:
            return ts_literal(spec.default)
        if spec.nullable:
            return "null"
        return None

    def _helper(self, name: str) -> str:
        self._used.add(name)
        return f"{name}()"

    def builder(self, name: str, definition: ObjectType) -> str | None:
        defaults = {
            self.mapper.key(field_name): expr
            for field_name, spec in definition.shape.items()
            if spec.required and (expr := self.default_expr(field_name, spec)) is not None
        }
        if not defaults:
            return None

        keys = " | ".join(ts_string(key) for key in defaults)
        data_type = f"Build{name}Data"
        lines = [
            f"export type {data_type} = Pretty<Omit<{name}, {keys}> & Partial<Pick<{name}, {keys}>>>;",
            "",
            f"export function build{name}(data: {data_type}): {name} {{",
        ]
        body = ["{"]
        for key, expr in defaults.items():
            body.append(f"    {property_key(key)}: {expr},")
        body.append("    ...data,")
        body.append("  }")
        literal = "\n".join(body)
        lines.append(f"  return {self.wrap(name, literal)};")
        lines.append("}")
        return "\n".join(lines)

    def emit(self) -> list[str]:
        """Helper declarations followed by one builder per eligible component."""
        builders = [
            source
            for source in (self.builder(name, definition) for name, definition in self.targets())
            if source is not None
        ]
        if not builders:
            return []
        helpers = [HELPERS[name] for name in HELPERS if name in self._used]
        return [PRETTY, *helpers, *builders]
