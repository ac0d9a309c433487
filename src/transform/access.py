"""Visibility correction ahead of decompilation.

The obfuscator narrows visibility wherever the JVM lets it, which leaves
bytecode that is valid but cannot be expressed as Java source: a subclass
override that is less visible than the method it overrides, or a reference
to a package-private member from another package through an access path the
compiler would reject. This pass widens exactly the modifiers the source
form needs and never narrows anything, so behaviour is unchanged.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from classfile.attributes import inner_classes_to_bytes
from classfile.constants import (
    ACC_PRIVATE,
    ACC_PROTECTED,
    ACC_PUBLIC,
    ACC_STATIC,
    ATTR_INNER_CLASSES,
    VISIBILITY_MASK,
)
from graph.hierarchy import package_of
from transform.engine import BasePass
from transform.inner import read_inner_classes

if TYPE_CHECKING:
    from classfile.model import ClassFile, MemberInfo
    from graph.hierarchy import ArchiveView

logger = logging.getLogger(__name__)

PRIVATE, PACKAGE, PROTECTED, PUBLIC = range(4)

_LEVEL_FLAGS = {
    PRIVATE: ACC_PRIVATE,
    PACKAGE: 0,
    PROTECTED: ACC_PROTECTED,
    PUBLIC: ACC_PUBLIC,
}

# (declaring class, name, descriptor, is method)
MemberId = tuple[str, str, str, bool]


def access_level(flags: int) -> int:
    if flags & ACC_PUBLIC:
        return PUBLIC
    if flags & ACC_PROTECTED:
        return PROTECTED
    if flags & ACC_PRIVATE:
        return PRIVATE
    return PACKAGE


def with_access_level(flags: int, level: int) -> int:
    return (flags & ~VISIBILITY_MASK) | _LEVEL_FLAGS[level]


def _required_level(view: ArchiveView, referrer: str, declaring: str) -> int:
    if package_of(referrer) == package_of(declaring):
        return PACKAGE
    if view.is_subclass(referrer, declaring):
        return PROTECTED
    return PUBLIC


class AccessLevelCorrectionPass(BasePass):
    """Widen members and classes so the decompiled source compiles.

    * A member referenced from another class of the same package is at
      least package-private.
    * A member referenced from another package is at least protected when
      the referrer is a subclass of the declaring class, public otherwise.
    * An override is at least as visible as every method it overrides.
    * A class referenced from another package is public.
    """

    name = "correct-access"

    def __init__(self) -> None:
        self.members: dict[MemberId, int] = {}
        self.public_classes: set[str] = set()

    def prepare(self, view: ArchiveView) -> None:
        super().prepare(view)
        required: dict[MemberId, int] = {}
        public_classes: set[str] = set()

        def require(member: MemberId, level: int) -> None:
            if level > required.get(member, PRIVATE):
                required[member] = level

        for summary in view.summaries():
            referrer = summary.name
            for reference in summary.member_references:
                declaring = view.declaring_class(
                    reference.owner,
                    reference.name,
                    reference.descriptor,
                    method=reference.method,
                )
                if declaring is None or declaring == referrer:
                    continue
                member = (
                    declaring,
                    reference.name,
                    reference.descriptor,
                    reference.method,
                )
                require(member, _required_level(view, referrer, declaring))
            for type_name in summary.type_references:
                if type_name not in view:
                    continue
                if package_of(type_name) != package_of(referrer):
                    public_classes.add(type_name)

        self._widen_overrides(view, required)
        self.members = required
        self.public_classes = public_classes
        logger.debug(
            "event=access_requirements members=%d classes=%d",
            len(required),
            len(public_classes),
        )

    def _widen_overrides(
        self, view: ArchiveView, required: dict[MemberId, int]
    ) -> None:
        """Raise overrides to the (already widened) level of what they override.

        Widening an ancestor can require widening its overrides again, so the
        walk repeats until nothing changes; levels only grow, so it ends.
        """

        def level_of(owner: str, name: str, descriptor: str, flags: int) -> int:
            return max(
                access_level(flags), required.get((owner, name, descriptor, True), 0)
            )

        changed = True
        while changed:
            changed = False
            for summary in view.summaries():
                class_name = summary.name
                for (name, descriptor), flags in summary.methods.items():
                    if name.startswith("<") or flags & (ACC_PRIVATE | ACC_STATIC):
                        continue
                    current = level_of(class_name, name, descriptor, flags)
                    needed = current
                    for ancestor, ancestor_flags in view.overridden_methods(
                        class_name, name, descriptor
                    ):
                        inherited = level_of(ancestor, name, descriptor, ancestor_flags)
                        needed = max(needed, inherited)
                    if needed > current:
                        required[(class_name, name, descriptor, True)] = needed
                        changed = True

    def _widen_member(
        self, classfile: ClassFile, member: MemberInfo, *, method: bool
    ) -> None:
        key = (
            classfile.name,
            classfile.member_name(member),
            classfile.member_descriptor(member),
            method,
        )
        level = self.members.get(key)
        if level is not None and level > access_level(member.access_flags):
            member.access_flags = with_access_level(member.access_flags, level)

    def apply(self, classfile: ClassFile) -> None:
        for field_info in classfile.fields:
            self._widen_member(classfile, field_info, method=False)
        for method in classfile.methods:
            self._widen_member(classfile, method, method=True)

        if classfile.name in self.public_classes:
            classfile.access_flags |= ACC_PUBLIC
        self._widen_inner_class_entries(classfile)

    def _widen_inner_class_entries(self, classfile: ClassFile) -> None:
        # Nested class visibility lives in the InnerClasses table of every
        # class that lists the nested class.
        entries = read_inner_classes(classfile)
        changed = False
        for entry in entries:
            inner_name = classfile.pool.class_name(entry.inner_class_index)
            if inner_name not in self.public_classes:
                continue
            if not entry.access_flags & ACC_PUBLIC:
                entry.access_flags = with_access_level(entry.access_flags, PUBLIC)
                changed = True
        if changed:
            data = inner_classes_to_bytes(entries)
            classfile.set_attribute(ATTR_INNER_CLASSES, data)


__all__ = [
    "PACKAGE",
    "PRIVATE",
    "PROTECTED",
    "PUBLIC",
    "AccessLevelCorrectionPass",
    "access_level",
    "with_access_level",
]
