"""
TypeScript generation.

Emits one interface or type alias per component, the envelope types of
every action, optional builder functions, and a ``contract`` object listing
each endpoint's method, path, input type and output type.
"""

from __future__ import annotations

import json
import logging
import re
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
from ..core.naming import pascal_case
from .base import Exporter, ExporterCapabilities, ExportOptions
from .components import ActionComponents, ComponentSet

logger = logging.getLogger(__name__)

TYPE_MAPPING: dict[PrimitiveKind, str] = {
    PrimitiveKind.STRING: "string",
    PrimitiveKind.TEXT: "string",
    PrimitiveKind.INTEGER: "number",
    PrimitiveKind.NUMBER: "number",
    PrimitiveKind.DECIMAL: "number",
    PrimitiveKind.BOOLEAN: "boolean",
    PrimitiveKind.DATE: "string",
    PrimitiveKind.DATETIME: "string",
    PrimitiveKind.TIME: "string",
    PrimitiveKind.UUID: "string",
    PrimitiveKind.BINARY: "string",
    PrimitiveKind.JSON: "unknown",
    PrimitiveKind.UNKNOWN: "unknown",
}

# Envelope type names
ISSUE_TYPE = "Issue"
ERROR_TYPE = "ErrorResponse"
PAGINATION_TYPE = "PaginationMeta"

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def ts_string(value: str) -> str:
    """Single-quoted TypeScript string literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
    return f"'{escaped}'"


def ts_literal(value: Any) -> str:
    """TypeScript source for a JSON-compatible value."""
    if isinstance(value, str):
        return ts_string(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return json.dumps(value)


def property_key(name: str) -> str:
    return name if _IDENTIFIER.match(name) else ts_string(name)


def action_type_name(record: ActionComponents, suffix: str) -> str:
    """``post_comment_index`` + ``Response`` -> ``PostCommentIndexResponse``."""
    return pascal_case(record.qualified_name) + suffix


class TypeScriptMapper:
    """Maps descriptors of one component set to TypeScript type expressions."""

    def __init__(self, components: ComponentSet, options: ExportOptions):
        self.components = components
        self.options = options

    def key(self, name: str) -> str:
        return self.options.key(name)

    # =========================================================================
    # Declarations
    # =========================================================================

    def declarations(self) -> list[str]:
        return [
            self.declaration(component.canonical_name, component.definition)
            for component in self.components.components
        ]

    def declaration(self, name: str, definition: Any) -> str:
        if isinstance(definition, ObjectType) and not definition.is_open:
            return self._with_doc(definition.description, self.interface(name, definition))
        if isinstance(definition, UnionType):
            body = self.union_type(definition)
        elif isinstance(definition, EnumType):
            body = self.enum_type(definition)
        elif isinstance(definition, ObjectType):
            body = "Record<string, unknown>"
        elif isinstance(definition, ArrayType):
            body = self.array_type(definition.element)
        else:
            body = self.type_expr(definition)
        description = getattr(definition, "description", None)
        return self._with_doc(description, f"export type {name} = {body};")

    def interface(self, name: str, definition: ObjectType) -> str:
        lines = [f"export interface {name} {{"]
        for field_name, spec in definition.shape.items():
            if spec.description:
                lines.append(f"  /** {spec.description} */")
            lines.append(f"  {self.property(field_name, spec)};")
        lines.append("}")
        return "\n".join(lines)

    def _with_doc(self, description: str | None, source: str) -> str:
        return f"/** {description} */\n{source}" if description else source

    # =========================================================================
    # Expressions
    # =========================================================================

    def property(self, name: str, spec: FieldDescriptor) -> str:
        optional = "" if spec.required else "?"
        return f"{property_key(self.key(name))}{optional}: {self.field_type(spec)}"

    def field_type(self, spec: FieldDescriptor) -> str:
        expr = self.type_expr(spec.descriptor)
        if spec.nullable:
            return " | ".join(sorted([expr, "null"]))
        return expr

    def type_expr(self, descriptor: Any) -> str:
        name = self.components.component_name(descriptor)
        if name is not None:
            return name

        if isinstance(descriptor, PrimitiveType):
            if descriptor.enum_ref:
                return self.components.canonical(descriptor.enum_ref)
            return TYPE_MAPPING[descriptor.kind]
        if isinstance(descriptor, LiteralType):
            return ts_literal(descriptor.value)
        if isinstance(descriptor, ObjectType):
            if descriptor.is_open:
                return "Record<string, unknown>"
            members = "; ".join(
                self.property(field_name, spec) for field_name, spec in descriptor.shape.items()
            )
            return f"{{ {members} }}"
        if isinstance(descriptor, ArrayType):
            return self.array_type(descriptor.element)
        if isinstance(descriptor, EnumType):
            return self.enum_type(descriptor)
        if isinstance(descriptor, UnionType):
            return self.union_type(descriptor)
        if isinstance(descriptor, ReferenceType):
            return self.components.canonical(descriptor.name)
        raise TypeError(f"Not a type descriptor: {type(descriptor).__name__}")

    def array_type(self, element: Any) -> str:
        inner = self.type_expr(element)
        if " " in inner and not inner.startswith("{"):
            inner = f"({inner})"
        return f"{inner}[]"

    def enum_type(self, descriptor: EnumType) -> str:
        return " | ".join(ts_string(value) for value in descriptor.values)

    def union_type(self, descriptor: UnionType) -> str:
        members = []
        for variant in descriptor.variants:
            expr = self.type_expr(variant.descriptor)
            if descriptor.discriminator and not self.has_field(
                variant.descriptor, descriptor.discriminator
            ):
                key = property_key(self.key(descriptor.discriminator))
                tag = f"{{ {key}?: {ts_string(variant.tag)} }}"
                expr = f"({tag} & {expr})"
            members.append(expr)
        return " | ".join(sorted(members))

    def has_field(self, descriptor: Any, name: str) -> bool:
        """Whether ``descriptor`` (or the component it stands for) declares ``name``."""
        component = self.components.component_name(descriptor)
        definition = self.components.definition(component) if component else descriptor
        return isinstance(definition, ObjectType) and name in definition.shape

    # =========================================================================
    # Envelopes
    # =========================================================================

    def envelope_declarations(self) -> list[str]:
        k = self.key
        return [
            "\n".join(
                [
                    f"export interface {ISSUE_TYPE} {{",
                    f"  {property_key(k('code'))}: string;",
                    f"  {property_key(k('message'))}: string;",
                    f"  {property_key(k('path'))}: (number | string)[];",
                    "}",
                ]
            ),
            "\n".join(
                [
                    f"export interface {ERROR_TYPE} {{",
                    f"  {property_key(k('ok'))}: false;",
                    f"  {property_key(k('issues'))}: {ISSUE_TYPE}[];",
                    "}",
                ]
            ),
            "\n".join(
                [
                    f"export interface {PAGINATION_TYPE} {{",
                    f"  {property_key(k('page'))}: number;",
                    f"  {property_key(k('per_page'))}: number;",
                    f"  {property_key(k('total'))}: number;",
                    "}",
                ]
            ),
        ]

    def action_declarations(self, record: ActionComponents) -> list[str]:
        declarations = []
        if record.input_name:
            suffix = "RequestQuery" if record.action.reads_query else "RequestBody"
            declarations.append(
                f"export type {action_type_name(record, suffix)} = {record.input_name};"
            )

        response = action_type_name(record, "Response")
        if record.output_name is None:
            declarations.append(f"export type {response} = never;")
        else:
            meta = PAGINATION_TYPE if record.action.collection else "Record<string, unknown>"
            success = (
                f"{record.output_name} & {{ {property_key(self.key('ok'))}: true; "
                f"{property_key(self.key('meta'))}?: {meta} }}"
            )
            declarations.append(f"export type {response} = ({success}) | {ERROR_TYPE};")
        return declarations

    def contract_entries(self) -> list[str]:
        entries = []
        for record in self.components.actions:
            suffix = "RequestQuery" if record.action.reads_query else "RequestBody"
            input_type = action_type_name(record, suffix) if record.input_name else None
            fields = [
                f"method: {ts_string(record.action.method.value)}",
                f"path: {ts_string(self.components.api.path.rstrip('/') + record.path)}",
                f"input: {ts_string(input_type) if input_type else 'null'}",
                f"output: {ts_string(action_type_name(record, 'Response'))}",
            ]
            entries.append(f"  {property_key(self.key(record.qualified_name))}: {{ {', '.join(fields)} }},")
        return entries


def generate_typescript(components: ComponentSet, options: ExportOptions | None = None) -> str:
    """
    Generate a TypeScript module.

    Args:
        components: Extracted component set
        options: Run options (key format, builders)

    Returns:
        TypeScript source
    """
    options = options or ExportOptions()
    mapper = TypeScriptMapper(components, options)

    sections: list[str] = []
    sections.extend(mapper.declarations())
    sections.extend(mapper.envelope_declarations())
    for record in components.actions:
        sections.extend(mapper.action_declarations(record))

    if options.builders:
        from .builders import BuilderEmitter

        sections.extend(BuilderEmitter(components, mapper).emit())

    contract = ["export const contract = {", *mapper.contract_entries(), "} as const;"]
    sections.append("\n".join(contract))
    sections.append("export type Contract = typeof contract;")

    logger.debug("TypeScript module: %d declarations", len(sections))
    return "\n\n".join(sections) + "\n"


class TypeScriptExporter(Exporter):
    """Static types plus the contract object."""

    def render(self, components: ComponentSet, options: ExportOptions) -> str:
        return generate_typescript(components, options)

    def get_capabilities(self) -> ExporterCapabilities:
        return ExporterCapabilities(
            name="typescript",
            description="TypeScript interfaces, envelopes and contract object",
            output_formats=["ts"],
            supports_builders=True,
            file_name="contract",
        )
