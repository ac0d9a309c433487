"""Parsers for the second-level (MCP) name tables.

``fields.csv`` and ``methods.csv`` share the header
``searge,name,side,desc``; ``params.csv`` uses ``param,name,side``.
"""

from __future__ import annotations

import csv
import io

from contract.errors import MappingFormatError
from mapping.model import (
    SEARGE_FIELD_PATTERN,
    SEARGE_METHOD_PATTERN,
    LocalNameMapping,
    SeargeNameMapping,
)

FIELDS_CSV = "fields.csv"
METHODS_CSV = "methods.csv"
PARAMS_CSV = "params.csv"


def _read_table(text: str, source: str, key_column: str) -> dict[str, str]:
    reader = csv.DictReader(io.StringIO(text))
    header = reader.fieldnames or []
    for column in (key_column, "name"):
        if column not in header:
            msg = f"missing column {column!r} in header {header!r}"
            raise MappingFormatError(source, 1, msg)

    table: dict[str, str] = {}
    for row in reader:
        key = (row.get(key_column) or "").strip()
        name = (row.get("name") or "").strip()
        if not key or not name:
            msg = f"row needs both {key_column!r} and 'name'"
            raise MappingFormatError(source, reader.line_num, msg)
        table[key] = name
    return table


def parse_fields_csv(text: str, source: str = FIELDS_CSV) -> SeargeNameMapping:
    return SeargeNameMapping(_read_table(text, source, "searge"), SEARGE_FIELD_PATTERN)


def parse_methods_csv(text: str, source: str = METHODS_CSV) -> SeargeNameMapping:
    return SeargeNameMapping(
        _read_table(text, source, "searge"), SEARGE_METHOD_PATTERN
    )


def parse_params_csv(text: str, source: str = PARAMS_CSV) -> LocalNameMapping:
    return LocalNameMapping(_read_table(text, source, "param"))


__all__ = [
    "FIELDS_CSV",
    "METHODS_CSV",
    "PARAMS_CSV",
    "parse_fields_csv",
    "parse_methods_csv",
    "parse_params_csv",
]
