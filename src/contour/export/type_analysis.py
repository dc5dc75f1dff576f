"""
Dependency analysis between components.

Used by backends that must declare a type before referring to it: the
components are ordered dependencies-first, and the members of reference
cycles are reported so the backend can defer their evaluation.
"""

from __future__ import annotations

from typing import Any

from ..core.ir.types import ArrayType, ObjectType, PrimitiveType, UnionType
from .components import ComponentSet


def _collect(descriptor: Any, components: ComponentSet, found: list[str]) -> None:
    name = components.component_name(descriptor)
    if name is not None:
        if name not in found:
            found.append(name)
        return
    if isinstance(descriptor, PrimitiveType):
        if descriptor.enum_ref:
            enum_name = components.canonical(descriptor.enum_ref)
            if enum_name not in found:
                found.append(enum_name)
    elif isinstance(descriptor, ObjectType):
        for spec in descriptor.shape.values():
            _collect(spec.descriptor, components, found)
    elif isinstance(descriptor, ArrayType):
        _collect(descriptor.element, components, found)
    elif isinstance(descriptor, UnionType):
        for variant in descriptor.variants:
            _collect(variant.descriptor, components, found)


def direct_dependencies(definition: Any, components: ComponentSet) -> list[str]:
    """Components a definition refers to, in first-use order."""
    found: list[str] = []
    if isinstance(definition, ObjectType):
        for spec in definition.shape.values():
            _collect(spec.descriptor, components, found)
    elif isinstance(definition, ArrayType):
        _collect(definition.element, components, found)
    elif isinstance(definition, UnionType):
        for variant in definition.variants:
            _collect(variant.descriptor, components, found)
    else:
        _collect(definition, components, found)
    return found


def dependency_graph(components: ComponentSet) -> dict[str, list[str]]:
    """Component name -> names of the components it refers to."""
    return {
        component.canonical_name: direct_dependencies(component.definition, components)
        for component in components.components
    }


def strongly_connected_components(graph: dict[str, list[str]]) -> list[list[str]]:
    """
    Tarjan's algorithm.

    Returns:
        Components in reverse topological order (dependencies first)
    """
    index_of: dict[str, int] = {}
    lowlink: dict[str, int] = {}
    stack: list[str] = []
    on_stack: set[str] = set()
    result: list[list[str]] = []
    counter = 0

    def visit(node: str) -> None:
        nonlocal counter
        index_of[node] = lowlink[node] = counter
        counter += 1
        stack.append(node)
        on_stack.add(node)

        for target in graph.get(node, []):
            if target not in index_of:
                visit(target)
                lowlink[node] = min(lowlink[node], lowlink[target])
            elif target in on_stack:
                lowlink[node] = min(lowlink[node], index_of[target])

        if lowlink[node] == index_of[node]:
            group = []
            while True:
                member = stack.pop()
                on_stack.discard(member)
                group.append(member)
                if member == node:
                    break
            result.append(group)

    for node in graph:
        if node not in index_of:
            visit(node)
    return result


def cyclic_names(graph: dict[str, list[str]]) -> set[str]:
    """Names taking part in a reference cycle, self-references included."""
    cyclic: set[str] = set()
    for group in strongly_connected_components(graph):
        if len(group) > 1 or group[0] in graph.get(group[0], []):
            cyclic.update(group)
    return cyclic


def topological_order(graph: dict[str, list[str]]) -> list[str]:
    """
    Names ordered so that dependencies come first.

    Members of one cycle keep their registration order relative to each
    other; such members must be declared lazily by the caller.
    """
    position = {name: i for i, name in enumerate(graph)}
    order: list[str] = []
    for group in strongly_connected_components(graph):
        order.extend(sorted(group, key=lambda name: position.get(name, len(position))))
    return order
