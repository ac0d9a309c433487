"""Renaming passes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from classfile.attributes import (
    CodeAttribute,
    local_variables_to_bytes,
    parse_local_variables,
)
from classfile.constants import (
    ACC_STATIC,
    ATTR_CODE,
    ATTR_LOCAL_VARIABLE_TABLE,
    CONSTRUCTOR_NAME,
)
from classfile.descriptors import argument_slots
from mapping.keywords import KeywordRemapper
from mapping.remapper import MappingRemapper, Remapper, remap_class
from transform.engine import BasePass

if TYPE_CHECKING:
    from classfile.model import ClassFile, MemberInfo
    from graph.hierarchy import ArchiveView
    from mapping.model import NameMapping


def _aligned_slots(
    slots: list[int], names: tuple[str, ...], *, constructor: bool
) -> list[tuple[int, str]]:
    """Pair parameter slots with mapped names.

    Constructors of inner classes and enums take synthetic leading
    parameters the mapping does not name, so short constructor lists are
    aligned to the trailing parameters.
    """
    if constructor and len(names) < len(slots):
        slots = slots[len(slots) - len(names) :]
    return list(zip(slots, names, strict=False))


def apply_parameter_names(
    classfile: ClassFile, method: MemberInfo, names: tuple[str, ...]
) -> bool:
    """Rename the variable table entries of a method's parameters."""
    attribute = classfile.find_attribute(ATTR_CODE, method.attributes)
    if attribute is None or not names:
        return False
    code = CodeAttribute.parse(attribute.data)
    table = classfile.find_attribute(ATTR_LOCAL_VARIABLE_TABLE, code.attributes)
    if table is None:
        return False

    slots = argument_slots(
        classfile.member_descriptor(method),
        static=bool(method.access_flags & ACC_STATIC),
    )
    constructor = classfile.member_name(method) == CONSTRUCTOR_NAME
    by_slot = dict(_aligned_slots(slots, names, constructor=constructor))

    entries = parse_local_variables(table.data)
    changed = False
    for entry in entries:
        name = by_slot.get(entry.index)
        if name is None or entry.start_pc != 0:
            continue
        entry.name_index = classfile.pool.add_utf8(name)
        changed = True
    if changed:
        table.data = local_variables_to_bytes(entries)
        attribute.data = code.to_bytes()
    return changed


class RemapperPass(BasePass):
    """Rewrite every class with a remapper built from the archive hierarchy."""

    name = "remap"

    def create_remapper(self, view: ArchiveView) -> Remapper:
        raise NotImplementedError

    def prepare(self, view: ArchiveView) -> None:
        super().prepare(view)
        self.remapper = self.create_remapper(view)

    def apply(self, classfile: ClassFile) -> None:
        remap_class(classfile, self.remapper)


class NameMappingPass(RemapperPass):
    """Rename classes and members, then name parameters from the mapping.

    Parameter names are keyed by the renamed method, so they are looked up
    after the class has been rewritten.
    """

    name = "rename"

    def __init__(self, mapping: NameMapping) -> None:
        self.mapping = mapping

    def create_remapper(self, view: ArchiveView) -> Remapper:
        return MappingRemapper(self.mapping, view)

    def apply(self, classfile: ClassFile) -> None:
        remap_class(classfile, self.remapper)
        if self.mapping.parameters is None:
            return
        owner = classfile.name
        for method in classfile.methods:
            names = self.mapping.parameter_names(
                owner,
                classfile.member_name(method),
                classfile.member_descriptor(method),
            )
            if names:
                apply_parameter_names(classfile, method, names)


class KeywordRemovalPass(RemapperPass):
    """Replace identifiers that are Java reserved words."""

    name = "remove-keywords"

    def create_remapper(self, view: ArchiveView) -> Remapper:
        return KeywordRemapper(view)


__all__ = [
    "KeywordRemovalPass",
    "NameMappingPass",
    "RemapperPass",
    "apply_parameter_names",
]
