"""Parser for ``exceptor.json``, the inner class table of the SRG archive.

The obfuscator drops ``InnerClasses`` and ``EnclosingMethod`` attributes;
the table restores them, keyed by the mapped class name. Access flags are
hexadecimal strings.
"""

from __future__ import annotations

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from contract.errors import MappingFormatError
from mapping.model import (
    EnclosingMethod,
    InnerClassInfo,
    InnerClassMapping,
    InnerClassRecord,
)

EXCEPTOR_JSON = "exceptor.json"


class _EnclosingMethodEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    owner: str
    name: str | None = None
    desc: str | None = None


class _InnerClassEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    inner_class: str
    outer_class: str | None = None
    inner_name: str | None = None
    access: int = Field(default=0, description="Access flags (hex in the file)")

    @field_validator("access", mode="before")
    @classmethod
    def parse_hex_access(cls, v: object) -> object:
        if isinstance(v, str):
            return int(v, 16)
        return v


class _ClassEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    enclosing_method: _EnclosingMethodEntry | None = Field(
        default=None, alias="enclosingMethod"
    )
    inner_classes: list[_InnerClassEntry] = Field(
        default_factory=list, alias="innerClasses"
    )


def parse_exceptor_json(
    data: bytes, source: str = EXCEPTOR_JSON
) -> InnerClassMapping:
    try:
        raw = orjson.loads(data)
    except orjson.JSONDecodeError as exc:
        msg = f"invalid JSON: {exc.msg}"
        raise MappingFormatError(source, exc.lineno, msg) from exc
    if not isinstance(raw, dict):
        msg = "expected a JSON object keyed by class name"
        raise MappingFormatError(source, 1, msg)

    classes: dict[str, InnerClassInfo] = {}
    for class_name, value in raw.items():
        try:
            entry = _ClassEntry.model_validate(value)
        except ValidationError as exc:
            msg = f"invalid entry for {class_name}: {exc}"
            raise MappingFormatError(source, 0, msg) from exc

        enclosing = None
        if entry.enclosing_method is not None:
            enclosing = EnclosingMethod(
                entry.enclosing_method.owner,
                entry.enclosing_method.name,
                entry.enclosing_method.desc,
            )
        records = tuple(
            InnerClassRecord(
                inner.inner_class, inner.outer_class, inner.inner_name, inner.access
            )
            for inner in entry.inner_classes
        )
        classes[class_name] = InnerClassInfo(enclosing, records)

    return InnerClassMapping(classes)


__all__ = ["EXCEPTOR_JSON", "parse_exceptor_json"]
