"""GraphQL naming utilities shared across the projection steps."""

from __future__ import annotations

from decimal import Decimal
import re

# Keyword literals in GraphQL; cannot be used as names.
_GRAPHQL_RESERVED = frozenset({"true", "false", "null"})

_WORD_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+")


def sanitize_name(name: str, prefix: str = "") -> str:
    """Sanitize a string to a valid GraphQL name.

    Invalid characters become ``_``; names that do not start with a letter or
    underscore get ``<prefix>_`` in front; reserved literals are prefixed too.
    """
    name = name.replace("[]", "Array")
    name = re.sub(r"[^a-zA-Z0-9_]", "_", name)
    if not re.match(r"^[_a-zA-Z]", name):
        name = f"{prefix}_{name}"
    if name.lower() in _GRAPHQL_RESERVED:
        name = f"{prefix or '_'}{name}"
    return name


def to_type_name(name: str) -> str:
    """Convert a free-form name to a PascalCase GraphQL type name.

    Namespace qualifiers are dropped and all-caps words (acronyms such as
    ``API`` or ``HTTP``) are preserved.
    """
    sanitized = sanitize_name(name.strip().split(".")[-1])
    if re.fullmatch(r"[A-Z]+", sanitized):
        return sanitized
    words = _WORD_RE.findall(sanitized)
    if not words:
        return sanitized
    return "".join(w if w.isupper() else w[0].upper() + w[1:].lower() for w in words)


def numeric_enum_name(value: int | float) -> str:
    """Convert a numeric enum value to a GraphQL enum value name.

    ``0`` -> ``_0``, ``0.25`` -> ``_0_25``, ``-1`` -> ``_NEGATIVE_1``.
    """
    text = _format_number(abs(value)).replace(".", "_")
    if value < 0:
        return f"_NEGATIVE_{text}"
    return f"_{text}"


def _format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, float):
        return format(Decimal(repr(value)), "f")
    return str(value)
