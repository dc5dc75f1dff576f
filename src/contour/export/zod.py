"""
Zod schema generation.

Emits one ``<Name>Schema`` constant per component in dependency order.
Components that take part in a reference cycle are wrapped in ``z.lazy``
and typed through the TypeScript interfaces emitted in the same module.
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.ir.types import (
    ArrayType,
    EnumType,
    FieldDescriptor,
    LiteralType,
    ObjectType,
    PrimitiveKind,
    PrimitiveType,
    ReferenceType,
    UnionType,
)
from .base import Exporter, ExporterCapabilities, ExportOptions
from .builders import BuilderEmitter
from .components import ActionComponents, ComponentSet
from .type_analysis import cyclic_names, dependency_graph, topological_order
from .typescript import (
    ERROR_TYPE,
    ISSUE_TYPE,
    PAGINATION_TYPE,
    TypeScriptMapper,
    action_type_name,
    property_key,
    ts_literal,
    ts_string,
)

logger = logging.getLogger(__name__)

TYPE_MAPPING: dict[PrimitiveKind, str] = {
    PrimitiveKind.STRING: "z.string()",
    PrimitiveKind.TEXT: "z.string()",
    PrimitiveKind.INTEGER: "z.number().int()",
    PrimitiveKind.NUMBER: "z.number()",
    PrimitiveKind.DECIMAL: "z.number()",
    PrimitiveKind.BOOLEAN: "z.boolean()",
    PrimitiveKind.DATE: "z.iso.date()",
    PrimitiveKind.DATETIME: "z.iso.datetime()",
    PrimitiveKind.TIME: "z.iso.time()",
    PrimitiveKind.UUID: "z.uuid()",
    PrimitiveKind.BINARY: "z.string()",
    PrimitiveKind.JSON: "z.unknown()",
    PrimitiveKind.UNKNOWN: "z.unknown()",
}

FORMAT_MAPPING: dict[str, str] = {
    "email": "z.email()",
    "uuid": "z.uuid()",
    "url": "z.url()",
    "uri": "z.url()",
    "ipv4": "z.ipv4()",
    "ipv6": "z.ipv6()",
    "date": "z.iso.date()",
    "datetime": "z.iso.datetime()",
    "date-time": "z.iso.datetime()",
}

# Kinds accepting .min()/.max()
BOUNDABLE = {
    PrimitiveKind.STRING,
    PrimitiveKind.TEXT,
    PrimitiveKind.INTEGER,
    PrimitiveKind.NUMBER,
    PrimitiveKind.DECIMAL,
}

OPEN_RECORD = "z.record(z.string(), z.unknown())"


def schema_name(name: str) -> str:
    return f"{name}Schema"


class ZodMapper:
    """Maps descriptors of one component set to zod expressions."""

    def __init__(
        self,
        components: ComponentSet,
        options: ExportOptions,
        lazy: set[str] | None = None,
    ):
        self.components = components
        self.options = options
        self.lazy = lazy or set()
        self.types = TypeScriptMapper(components, options)

    def key(self, name: str) -> str:
        return property_key(self.options.key(name))

    def declaration(self, name: str, definition: Any) -> str:
        body = self.definition_expr(definition)
        if name in self.lazy:
            return f"export const {schema_name(name)}: z.ZodType<{name}> = z.lazy(() => {body});"
        return f"export const {schema_name(name)} = {body};"

    def definition_expr(self, definition: Any) -> str:
        """Expression of a component's own definition, never a self reference."""
        if isinstance(definition, ObjectType):
            return self.object_expr(definition, multiline=True)
        if isinstance(definition, UnionType):
            return self.union_expr(definition)
        if isinstance(definition, EnumType):
            return self.enum_expr(definition)
        if isinstance(definition, ArrayType):
            return f"z.array({self.expr(definition.element)})"
        return self.expr(definition)

    def expr(self, descriptor: Any) -> str:
        name = self.components.component_name(descriptor)
        if name is not None:
            return schema_name(name)

        if isinstance(descriptor, PrimitiveType):
            if descriptor.enum_ref:
                return schema_name(self.components.canonical(descriptor.enum_ref))
            if descriptor.format and descriptor.format in FORMAT_MAPPING:
                return FORMAT_MAPPING[descriptor.format]
            return TYPE_MAPPING[descriptor.kind]
        if isinstance(descriptor, LiteralType):
            return f"z.literal({ts_literal(descriptor.value)})"
        if isinstance(descriptor, ObjectType):
            return self.object_expr(descriptor)
        if isinstance(descriptor, ArrayType):
            return f"z.array({self.expr(descriptor.element)})"
        if isinstance(descriptor, EnumType):
            return self.enum_expr(descriptor)
        if isinstance(descriptor, UnionType):
            return self.union_expr(descriptor)
        if isinstance(descriptor, ReferenceType):
            return schema_name(self.components.canonical(descriptor.name))
        raise TypeError(f"Not a type descriptor: {type(descriptor).__name__}")

    def object_expr(self, descriptor: ObjectType, multiline: bool = False) -> str:
        if descriptor.is_open:
            return OPEN_RECORD
        fields = [
            f"{self.key(name)}: {self.field_expr(spec)}" for name, spec in descriptor.shape.items()
        ]
        if multiline:
            return "z.object({\n" + ",\n".join(f"  {line}" for line in fields) + "\n})"
        return "z.object({ " + ", ".join(fields) + " })"

    def enum_expr(self, descriptor: EnumType) -> str:
        values = ", ".join(ts_string(value) for value in descriptor.values)
        return f"z.enum([{values}])"

    def field_expr(self, spec: FieldDescriptor) -> str:
        descriptor = spec.descriptor
        expr = self.expr(descriptor)
        if spec.format and isinstance(descriptor, PrimitiveType) and not descriptor.format:
            expr = FORMAT_MAPPING.get(spec.format, expr)

        boundable = (
            isinstance(descriptor, PrimitiveType)
            and not descriptor.enum_ref
            and descriptor.kind in BOUNDABLE
        ) or isinstance(descriptor, ArrayType)
        if boundable:
            if spec.min is not None:
                expr += f".min({spec.min})"
            if spec.max is not None:
                expr += f".max({spec.max})"

        if spec.nullable:
            expr += ".nullable()"
        if not spec.required:
            expr += ".optional()"
        return expr

    def union_expr(self, descriptor: UnionType) -> str:
        if descriptor.discriminator is None:
            members = ", ".join(self.expr(variant.descriptor) for variant in descriptor.variants)
            return f"z.union([{members}])"

        discriminator = descriptor.discriminator
        tag_key = self.key(discriminator)
        discriminated = True
        members = []
        for variant in descriptor.variants:
            # Injected tags are optional, which z.discriminatedUnion rejects.
            literal = f"z.literal({ts_string(variant.tag)}).optional()"
            has_tag = self.types.has_field(variant.descriptor, discriminator)
            if not has_tag:
                discriminated = False
            name = self.components.component_name(variant.descriptor)

            if name is None:
                if isinstance(variant.descriptor, ObjectType):
                    inline = variant.descriptor
                    if not has_tag:
                        inline = inline.with_field(
                            discriminator,
                            FieldDescriptor(
                                descriptor=LiteralType(value=variant.tag), required=False
                            ),
                            first=True,
                        )
                    members.append(self.object_expr(inline))
                else:
                    discriminated = False
                    members.append(self.expr(variant.descriptor))
                continue

            is_object = isinstance(self.components.definition(name), ObjectType)
            if name in self.lazy or not is_object:
                discriminated = False
            if has_tag:
                members.append(schema_name(name))
            elif name in self.lazy or not is_object:
                members.append(
                    f"z.intersection({schema_name(name)}, z.object({{ {tag_key}: {literal} }}))"
                )
            else:
                members.append(f"{schema_name(name)}.extend({{ {tag_key}: {literal} }})")

        if discriminated:
            return f"z.discriminatedUnion({ts_string(self.options.key(discriminator))}, [{', '.join(members)}])"
        return f"z.union([{', '.join(members)}])"

    # =========================================================================
    # Envelopes
    # =========================================================================

    def envelope_declarations(self) -> list[str]:
        k = self.key
        return [
            f"export const {schema_name(ISSUE_TYPE)} = z.object({{\n"
            f"  {k('code')}: z.string(),\n"
            f"  {k('message')}: z.string(),\n"
            f"  {k('path')}: z.array(z.union([z.string(), z.number()]))\n"
            "});",
            f"export const {schema_name(ERROR_TYPE)} = z.object({{\n"
            f"  {k('ok')}: z.literal(false),\n"
            f"  {k('issues')}: z.array({schema_name(ISSUE_TYPE)})\n"
            "});",
            f"export const {schema_name(PAGINATION_TYPE)} = z.object({{\n"
            f"  {k('page')}: z.number().int(),\n"
            f"  {k('per_page')}: z.number().int(),\n"
            f"  {k('total')}: z.number().int()\n"
            "});",
        ]

    def action_declarations(self, record: ActionComponents) -> list[str]:
        declarations = []
        if record.input_name:
            suffix = "RequestQuery" if record.action.reads_query else "RequestBody"
            declarations.append(
                f"export const {schema_name(action_type_name(record, suffix))} = "
                f"{schema_name(record.input_name)};"
            )

        response = schema_name(action_type_name(record, "Response"))
        if record.output_name is None:
            declarations.append(f"export const {response} = z.never();")
            return declarations

        meta = schema_name(PAGINATION_TYPE) if record.action.collection else OPEN_RECORD
        extra = f"{{ {self.key('ok')}: z.literal(true), {self.key('meta')}: {meta}.optional() }}"
        output = schema_name(record.output_name)
        if record.output_name in self.lazy:
            success = f"z.intersection({output}, z.object({extra}))"
        else:
            success = f"{output}.extend({extra})"
        declarations.append(
            f"export const {response} = z.union([{success}, {schema_name(ERROR_TYPE)}]);"
        )
        return declarations

    def inferred_types(self, record: ActionComponents) -> list[str]:
        names = []
        if record.input_name:
            names.append(
                action_type_name(
                    record, "RequestQuery" if record.action.reads_query else "RequestBody"
                )
            )
        names.append(action_type_name(record, "Response"))
        return [f"export type {name} = z.infer<typeof {schema_name(name)}>;" for name in names]


def generate_zod(components: ComponentSet, options: ExportOptions | None = None) -> str:
    """
    Generate a zod module.

    Args:
        components: Extracted component set
        options: Run options (key format, builders)

    Returns:
        TypeScript source importing zod
    """
    options = options or ExportOptions()
    graph = dependency_graph(components)
    lazy = cyclic_names(graph)
    mapper = ZodMapper(components, options, lazy=lazy)
    if lazy:
        logger.debug("Lazy zod schemas: %s", sorted(lazy))

    sections: list[str] = ["import { z } from 'zod';"]
    for name in topological_order(graph):
        sections.append(mapper.declaration(name, components.definition(name)))
    sections.extend(mapper.envelope_declarations())
    for record in components.actions:
        sections.extend(mapper.action_declarations(record))

    sections.extend(mapper.types.declarations())
    sections.extend(mapper.types.envelope_declarations())
    for record in components.actions:
        sections.extend(mapper.inferred_types(record))

    if options.builders:
        emitter = BuilderEmitter(
            components,
            mapper.types,
            wrap=lambda name, literal: f"{schema_name(name)}.parse({literal})",
        )
        sections.extend(emitter.emit())

    return "\n\n".join(sections) + "\n"


class ZodExporter(Exporter):
    """Runtime validators for every component and action."""

    def render(self, components: ComponentSet, options: ExportOptions) -> str:
        return generate_zod(components, options)

    def get_capabilities(self) -> ExporterCapabilities:
        return ExporterCapabilities(
            name="zod",
            description="Zod schemas with request/response envelopes",
            output_formats=["ts"],
            supports_builders=True,
            file_name="schemas",
        )
