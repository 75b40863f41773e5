"""Identifier validation and literal quoting for generated statements.

Object names and grantees cannot be bound as parameters in DDL/DCL, so every
name interpolated into a statement passes through these checks first.
"""

from __future__ import annotations

import re

from catalog_core.exceptions import InvalidPayloadError

_PART_RE = re.compile(r'[A-Za-z_][A-Za-z0-9_$]*|"(?:[^"]|"")+"')


def split_object_name(name: str, *, parts: int | None = None) -> list[str]:
    """Split a dotted object name into validated identifier parts.

    Quoted identifiers may contain dots; unquoted ones follow the standard
    identifier grammar.
    """
    result: list[str] = []
    pos = 0
    while True:
        match = _PART_RE.match(name, pos)
        if match is None:
            raise InvalidPayloadError(f"Invalid object name: {name!r}")
        result.append(match.group())
        pos = match.end()
        if pos == len(name):
            break
        if name[pos] != ".":
            raise InvalidPayloadError(f"Invalid object name: {name!r}")
        pos += 1

    if parts is not None and len(result) != parts:
        raise InvalidPayloadError(f"Expected a {parts}-part name, got {name!r}")
    return result


def validate_identifier(name: str) -> str:
    """Return ``name`` if it is a single valid identifier."""
    return split_object_name(name, parts=1)[0]


def validate_object_name(name: str, *, parts: int) -> str:
    """Return ``name`` if it is a dotted name with exactly ``parts`` identifiers."""
    return ".".join(split_object_name(name, parts=parts))


def quote_literal(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "''")
    return f"'{escaped}'"
