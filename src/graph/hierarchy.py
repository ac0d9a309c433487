"""Class hierarchy of a single archive.

Member references in bytecode name the class the compiler saw, which is not
necessarily the class that declares the member. Renaming and access
correction both need to walk from the referenced owner up to the declaration.
Classes outside the archive (the JDK, bundled libraries) are opaque: a walk
simply stops when it leaves the archive.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from classfile.constants import (
    ACC_INTERFACE,
    ACC_PRIVATE,
    ACC_STATIC,
    CONSTANT_CLASS,
    CONSTANT_FIELDREF,
    MEMBER_REF_TAGS,
)
from classfile.descriptors import type_to_internal_name

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from classfile.model import ClassFile, MemberInfo

MemberKey = tuple[str, str]


@dataclass(frozen=True)
class MemberReference:
    owner: str
    name: str
    descriptor: str
    method: bool


def _member_access(
    classfile: ClassFile, members: list[MemberInfo]
) -> dict[MemberKey, int]:
    return {
        (classfile.member_name(m), classfile.member_descriptor(m)): m.access_flags
        for m in members
    }


def _member_references(classfile: ClassFile) -> Iterator[MemberReference]:
    pool = classfile.pool
    for index, constant in pool.iter_indexed():
        if constant.tag in MEMBER_REF_TAGS:
            owner, name, descriptor = pool.member_ref(index)
            method = constant.tag != CONSTANT_FIELDREF
            yield MemberReference(owner, name, descriptor, method)


def _type_references(classfile: ClassFile) -> Iterator[str]:
    """Classes named by class constants, with array element types unwrapped."""
    pool = classfile.pool
    for index, constant in pool.iter_indexed():
        if constant.tag != CONSTANT_CLASS:
            continue
        name = pool.class_name(index)
        if name.startswith("["):
            element = type_to_internal_name(name.lstrip("["))
            if element is not None:
                yield element
        else:
            yield name


@dataclass(frozen=True)
class ClassSummary:
    """What the hierarchy needs to know about one class."""

    name: str
    super_name: str | None
    interfaces: tuple[str, ...]
    access_flags: int
    fields: dict[MemberKey, int] = field(default_factory=dict)
    methods: dict[MemberKey, int] = field(default_factory=dict)
    member_references: frozenset[MemberReference] = frozenset()
    type_references: frozenset[str] = frozenset()

    @classmethod
    def of(cls, classfile: ClassFile) -> ClassSummary:
        return cls(
            name=classfile.name,
            super_name=classfile.super_name,
            interfaces=tuple(classfile.interface_names),
            access_flags=classfile.access_flags,
            fields=_member_access(classfile, classfile.fields),
            methods=_member_access(classfile, classfile.methods),
            member_references=frozenset(_member_references(classfile)),
            type_references=frozenset(_type_references(classfile)),
        )

    @property
    def is_interface(self) -> bool:
        return bool(self.access_flags & ACC_INTERFACE)


def package_of(internal_name: str) -> str:
    """Package part of an internal name (empty for the default package).

    Examples:
        >>> package_of("net/minecraft/server/MinecraftServer")
        'net/minecraft/server'
        >>> package_of("Foo")
        ''
    """
    slash = internal_name.rfind("/")
    return internal_name[:slash] if slash >= 0 else ""


def outer_class_name(internal_name: str) -> str | None:
    """Binary-name outer class of a nested class, if the name has one."""
    simple_start = internal_name.rfind("/") + 1
    dollar = internal_name.rfind("$")
    if dollar <= simple_start:
        return None
    return internal_name[:dollar]


class ArchiveView:
    """Read-only hierarchy over every class of an archive."""

    def __init__(self, summaries: Iterable[ClassSummary]) -> None:
        self._classes: dict[str, ClassSummary] = {s.name: s for s in summaries}

    @classmethod
    def from_classfiles(cls, classfiles: Iterable[ClassFile]) -> ArchiveView:
        return cls(ClassSummary.of(classfile) for classfile in classfiles)

    def __contains__(self, name: object) -> bool:
        return name in self._classes

    def __len__(self) -> int:
        return len(self._classes)

    def get(self, name: str) -> ClassSummary | None:
        return self._classes.get(name)

    def names(self) -> list[str]:
        return sorted(self._classes)

    def summaries(self) -> list[ClassSummary]:
        return [self._classes[name] for name in sorted(self._classes)]

    def lineage(self, name: str) -> Iterator[ClassSummary]:
        """Yield the class and its ancestors known to the archive.

        Depth-first: the superclass chain is visited before interfaces, each
        class at most once. Inheritance cycles in corrupt input terminate.
        """
        visited: set[str] = set()
        pending = [name]
        while pending:
            current = pending.pop()
            if current in visited:
                continue
            visited.add(current)
            summary = self._classes.get(current)
            if summary is None:
                continue
            yield summary
            # Stack order: superclass popped before the interfaces.
            pending.extend(reversed(summary.interfaces))
            if summary.super_name is not None:
                pending.append(summary.super_name)

    def ancestors(self, name: str) -> Iterator[ClassSummary]:
        for summary in self.lineage(name):
            if summary.name != name:
                yield summary

    def declaring_class(
        self, owner: str, name: str, descriptor: str | None, *, method: bool
    ) -> str | None:
        """Class of the archive that declares the referenced member.

        A field reference without descriptor matches on name alone within a
        single class; the owner still scopes the search.
        """
        for summary in self.lineage(owner):
            members = summary.methods if method else summary.fields
            if descriptor is not None:
                if (name, descriptor) in members:
                    return summary.name
            elif any(member_name == name for member_name, _ in members):
                return summary.name
        return None

    def member_access(
        self, owner: str, name: str, descriptor: str, *, method: bool
    ) -> int | None:
        summary = self._classes.get(owner)
        if summary is None:
            return None
        members = summary.methods if method else summary.fields
        return members.get((name, descriptor))

    def overridden_methods(
        self, owner: str, name: str, descriptor: str
    ) -> Iterator[tuple[str, int]]:
        """Ancestor declarations a method of ``owner`` overrides.

        Private and static declarations are not overridden.
        """
        for summary in self.ancestors(owner):
            access = summary.methods.get((name, descriptor))
            if access is None or access & (ACC_PRIVATE | ACC_STATIC):
                continue
            yield summary.name, access

    def is_subclass(self, child: str, ancestor: str) -> bool:
        """True if ``ancestor`` is a direct or indirect supertype of ``child``.

        Supertypes outside the archive are matched by name only.
        """
        return any(
            s.super_name == ancestor or ancestor in s.interfaces
            for s in self.lineage(child)
        )


__all__ = [
    "ArchiveView",
    "ClassSummary",
    "MemberReference",
    "outer_class_name",
    "package_of",
]
