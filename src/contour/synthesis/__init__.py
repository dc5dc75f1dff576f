"""Payload synthesis: from data model metadata to registered payload types."""

from .associations import AssociationResolver
from .contracts import (
    ContractBuilder,
    Project,
    ResourceDeclaration,
    build_api,
    load_api,
    load_project,
)
from .payloads import PayloadKind, PayloadSynthesizer, SynthesisContext

__all__ = [
    "AssociationResolver",
    "ContractBuilder",
    "PayloadKind",
    "PayloadSynthesizer",
    "Project",
    "ResourceDeclaration",
    "SynthesisContext",
    "build_api",
    "load_api",
    "load_project",
]
