"""
API introspection tree.

The tree is what the export side consumes: resources own actions, and each
action owns its input and output field maps. Named types the actions refer
to travel with the tree in ``types``.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .types import FieldDescriptor, TypeDescriptor


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class ActionSpec(BaseModel):
    """
    One endpoint of a resource.

    Attributes:
        method: HTTP method
        path: Path relative to the resource
        input: Request fields (query fields for GET, body fields otherwise)
        output: Response fields, empty for no-content actions
        collection: Whether the response is a list of the resource
        no_content: Whether the action returns no body
    """

    method: HttpMethod = HttpMethod.GET
    path: str = ""
    input: dict[str, FieldDescriptor] = Field(default_factory=dict)
    output: dict[str, FieldDescriptor] = Field(default_factory=dict)
    collection: bool = False
    no_content: bool = False
    summary: str | None = None
    description: str | None = None
    deprecated: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def reads_query(self) -> bool:
        return self.method == HttpMethod.GET


class ResourceSpec(BaseModel):
    """
    A resource and its nested resources.

    Attributes:
        identifier: Resource name, unique among its siblings
        path: Path segment below the parent
        singular: Root key for single-record envelopes
        plural: Root key for collection envelopes
        actions: Standard CRUD actions
        members: Custom actions on one record
        collections: Custom actions on the collection
        resources: Nested resources
    """

    identifier: str
    path: str
    singular: str
    plural: str
    actions: dict[str, ActionSpec] = Field(default_factory=dict)
    members: dict[str, ActionSpec] = Field(default_factory=dict)
    collections: dict[str, ActionSpec] = Field(default_factory=dict)
    resources: dict[str, ResourceSpec] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def all_actions(self) -> Iterator[tuple[str, str, ActionSpec]]:
        """
        Standard actions, then member actions, then collection actions.

        Yields:
            (kind, name, action) with kind one of "action", "member" or
            "collection"
        """
        for kind, actions in (
            ("action", self.actions),
            ("member", self.members),
            ("collection", self.collections),
        ):
            for name, action in actions.items():
                yield kind, name, action


class ApiSpec(BaseModel):
    """
    Introspection of one API.

    Attributes:
        path: Mount path, e.g. /api/v1
        title: Document title
        version: API version string
        resources: Top-level resources
        types: Named types referenced from actions
    """

    path: str = "/"
    title: str = "API"
    version: str = "1.0.0"
    description: str | None = None
    resources: dict[str, ResourceSpec] = Field(default_factory=dict)
    types: dict[str, TypeDescriptor] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def walk(self) -> Iterator[tuple[list[ResourceSpec], ResourceSpec]]:
        """Yield every resource depth-first with its chain of parents."""

        def visit(
            resources: dict[str, ResourceSpec], parents: list[ResourceSpec]
        ) -> Iterator[tuple[list[ResourceSpec], ResourceSpec]]:
            for resource in resources.values():
                yield parents, resource
                yield from visit(resource.resources, [*parents, resource])

        yield from visit(self.resources, [])


ResourceSpec.model_rebuild()
