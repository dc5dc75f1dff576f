"""
contour - payload type synthesis and schema export.

Derives create/update/nested-mutation payload types from data model
metadata and renders the types reachable from an API as OpenAPI, zod and
TypeScript artifacts.
"""

from __future__ import annotations

import re
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _metadata_version
from pathlib import Path as _Path

# Re-export commonly used types for convenience
from .core import ir
from .core.errors import (
    BackendError,
    ConfigurationError,
    ContourError,
    DuplicateTypeError,
    GeneratorNotRegisteredError,
    UnresolvableReferenceError,
)


def _get_version() -> str:
    """Get version from pyproject.toml (editable) or importlib.metadata (installed)."""
    pyproject = _Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        content = pyproject.read_text()
        if match := re.search(r'^version\s*=\s*["\']([^"\']+)["\']', content, re.MULTILINE):
            return match.group(1)

    try:
        return _metadata_version("contour")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = _get_version()

__all__ = [
    "__version__",
    "ir",
    "ContourError",
    "ConfigurationError",
    "UnresolvableReferenceError",
    "DuplicateTypeError",
    "BackendError",
    "GeneratorNotRegisteredError",
]
