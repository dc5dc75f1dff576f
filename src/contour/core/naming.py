"""
Naming helpers shared by synthesis and the export backends.

Provides:
- Case conversion (snake_case, CamelCase, kebab-case)
- Simple English singular/plural inflection
- Key formatting for generated field names
- A file helper used when writing artifacts
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path


class KeyFormat(str, Enum):
    """Casing strategy applied to every generated field name in a run."""

    KEEP = "keep"
    CAMEL = "camel"
    KEBAB = "kebab"
    PASCAL = "pascal"
    UNDERSCORE = "underscore"


def camel_to_snake(name: str) -> str:
    """
    Convert CamelCase to snake_case.

    Args:
        name: CamelCase string

    Returns:
        snake_case string
    """
    name = name.replace("::", "_").replace(".", "_").replace("-", "_")
    # Insert underscore before uppercase letters
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    # Insert underscore before uppercase letters followed by lowercase
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def snake_to_camel(name: str, capitalize_first: bool = True) -> str:
    """
    Convert snake_case to CamelCase.

    Args:
        name: snake_case string
        capitalize_first: Whether to capitalize first letter

    Returns:
        CamelCase string
    """
    components = [part for part in re.split(r"[_\-\s]+", name) if part]
    if not components:
        return name
    words = [part[0].upper() + part[1:] for part in components]
    if not capitalize_first:
        words[0] = components[0][0].lower() + components[0][1:]
    return "".join(words)


def pascal_case(name: str) -> str:
    """Component-style name: ``post_create_payload`` -> ``PostCreatePayload``."""
    return snake_to_camel(camel_to_snake(name))


def pluralize(word: str) -> str:
    """
    Simple pluralization of English words.

    Args:
        word: Singular word

    Returns:
        Plural form (simple heuristic)
    """
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    if word.endswith("y") and word[-2:-1] not in ("a", "e", "i", "o", "u"):
        return word[:-1] + "ies"
    return word + "s"


def singularize(word: str) -> str:
    """
    Inverse of :func:`pluralize` for the same simple rules.

    Words that do not look plural are returned unchanged.
    """
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith(("ches", "shes", "sses", "xes", "zes")):
        return word[:-2]
    if word.endswith("s") and not word.endswith(("ss", "us", "is")):
        return word[:-1]
    return word


def format_key(key: str, key_format: KeyFormat | str) -> str:
    """
    Apply a key format to one field name.

    Leading underscores are preserved so protocol fields like ``_op`` and
    ``_destroy`` keep their prefix under every format.
    """
    key_format = KeyFormat(key_format)
    if key_format == KeyFormat.KEEP:
        return key

    stripped = key.lstrip("_")
    prefix = key[: len(key) - len(stripped)]
    if not stripped:
        return key

    if key_format == KeyFormat.CAMEL:
        body = snake_to_camel(camel_to_snake(stripped), capitalize_first=False)
    elif key_format == KeyFormat.PASCAL:
        body = snake_to_camel(camel_to_snake(stripped))
    elif key_format == KeyFormat.KEBAB:
        body = camel_to_snake(stripped).replace("_", "-")
    else:
        body = camel_to_snake(stripped)
    return prefix + body


def write_file(path: Path, content: str, create_dirs: bool = True) -> None:
    """
    Write content to a file.

    Args:
        path: File path to write to
        content: Content to write
        create_dirs: Whether to create parent directories if they don't exist
    """
    if create_dirs:
        path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
