"""Name mapping tables.

A ``NameMapping`` is a plain bundle of optional sub-mappings. Each identifier
kind is resolved by trying the populated sub-mappings in a fixed order; the
first one that knows the identifier wins and an identifier nobody knows keeps
its original name.

Field and method lookups are always scoped: the owner must match, and the
descriptor must match wherever the source format records one. The only
exception are searge identifiers, which the first-level mapping made globally
unique, so the second-level tables can key on them directly.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

MemberRef = tuple[str, str, str]

SEARGE_FIELD_PATTERN = re.compile(r"field_\d+_[a-zA-Z_]+")
SEARGE_METHOD_PATTERN = re.compile(r"func_\d+_[a-zA-Z_]+")
SEARGE_PARAMETER_PATTERN = re.compile(r"p_i?\d+_\d+_")


@dataclass(frozen=True)
class ClassNameMapping:
    """Internal class name to internal class name."""

    names: dict[str, str] = field(default_factory=dict)

    def map_class(self, name: str) -> str | None:
        return self.names.get(name)

    def __len__(self) -> int:
        return len(self.names)


@dataclass(frozen=True)
class MemberNameMapping:
    """Owner-scoped field and method names.

    Field keys carry a ``None`` descriptor when the source format omits field
    types; such entries still only apply to the named owner.
    """

    fields: dict[tuple[str, str, str | None], str] = field(default_factory=dict)
    methods: dict[MemberRef, str] = field(default_factory=dict)

    def map_field(self, owner: str, name: str, descriptor: str) -> str | None:
        mapped = self.fields.get((owner, name, descriptor))
        if mapped is None:
            mapped = self.fields.get((owner, name, None))
        return mapped

    def map_method(self, owner: str, name: str, descriptor: str) -> str | None:
        return self.methods.get((owner, name, descriptor))

    def __len__(self) -> int:
        return len(self.fields) + len(self.methods)


@dataclass(frozen=True)
class SeargeNameMapping:
    """Second-level names keyed by searge identifier.

    Searge identifiers are produced by the first-level mapping and are unique
    across the whole archive, so the identifier already encodes owner and
    descriptor. Names that are not in searge form never match.
    """

    names: dict[str, str] = field(default_factory=dict)
    pattern: re.Pattern[str] = SEARGE_FIELD_PATTERN

    def map_name(self, name: str) -> str | None:
        if not self.pattern.fullmatch(name):
            return None
        return self.names.get(name)

    def __len__(self) -> int:
        return len(self.names)


@dataclass(frozen=True)
class ParameterNameMapping:
    """Ordered parameter names per method."""

    parameters: dict[MemberRef, tuple[str, ...]] = field(default_factory=dict)

    def parameter_names(
        self, owner: str, name: str, descriptor: str
    ) -> tuple[str, ...] | None:
        return self.parameters.get((owner, name, descriptor))

    def __len__(self) -> int:
        return len(self.parameters)


@dataclass(frozen=True)
class LocalNameMapping:
    """Searge parameter identifier to readable parameter name."""

    names: dict[str, str] = field(default_factory=dict)

    def map_local(self, name: str) -> str | None:
        if not SEARGE_PARAMETER_PATTERN.fullmatch(name):
            return None
        return self.names.get(name)

    def __len__(self) -> int:
        return len(self.names)


@dataclass(frozen=True)
class EnclosingMethod:
    owner: str
    name: str | None = None
    descriptor: str | None = None


@dataclass(frozen=True)
class InnerClassRecord:
    inner_class: str
    outer_class: str | None
    inner_name: str | None
    access_flags: int


@dataclass(frozen=True)
class InnerClassInfo:
    enclosing_method: EnclosingMethod | None = None
    inner_classes: tuple[InnerClassRecord, ...] = ()


@dataclass(frozen=True)
class InnerClassMapping:
    """Inner class structure lost by the obfuscator, per (mapped) class name."""

    classes: dict[str, InnerClassInfo] = field(default_factory=dict)

    def get(self, name: str) -> InnerClassInfo | None:
        return self.classes.get(name)

    def __len__(self) -> int:
        return len(self.classes)


@dataclass(frozen=True)
class NameMapping:
    """Composite of optional sub-mappings.

    Resolution order: ``members`` (owner and descriptor scoped) before the
    searge-keyed ``fields``/``methods`` tables.
    """

    classes: ClassNameMapping | None = None
    members: MemberNameMapping | None = None
    fields: SeargeNameMapping | None = None
    methods: SeargeNameMapping | None = None
    parameters: ParameterNameMapping | None = None
    locals: LocalNameMapping | None = None
    inner_classes: InnerClassMapping | None = None

    def map_class(self, name: str) -> str | None:
        if self.classes is not None:
            return self.classes.map_class(name)
        return None

    def map_field(self, owner: str, name: str, descriptor: str) -> str | None:
        if self.members is not None:
            mapped = self.members.map_field(owner, name, descriptor)
            if mapped is not None:
                return mapped
        if self.fields is not None:
            return self.fields.map_name(name)
        return None

    def map_method(self, owner: str, name: str, descriptor: str) -> str | None:
        if self.members is not None:
            mapped = self.members.map_method(owner, name, descriptor)
            if mapped is not None:
                return mapped
        if self.methods is not None:
            return self.methods.map_name(name)
        return None

    def parameter_names(
        self, owner: str, name: str, descriptor: str
    ) -> tuple[str, ...] | None:
        if self.parameters is not None:
            return self.parameters.parameter_names(owner, name, descriptor)
        return None

    def map_local(self, name: str) -> str | None:
        if self.locals is not None:
            return self.locals.map_local(name)
        return None


__all__ = [
    "SEARGE_FIELD_PATTERN",
    "SEARGE_METHOD_PATTERN",
    "SEARGE_PARAMETER_PATTERN",
    "ClassNameMapping",
    "EnclosingMethod",
    "InnerClassInfo",
    "InnerClassMapping",
    "InnerClassRecord",
    "LocalNameMapping",
    "MemberNameMapping",
    "NameMapping",
    "ParameterNameMapping",
    "SeargeNameMapping",
]
