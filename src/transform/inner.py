"""Restoration of nested class metadata."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from classfile.attributes import (
    CodeAttribute,
    InnerClassEntry,
    enclosing_method_to_bytes,
    inner_classes_to_bytes,
    local_variables_to_bytes,
    parse_inner_classes,
    parse_local_variables,
)
from classfile.constants import (
    ACC_FINAL,
    ACC_STATIC,
    ACC_SYNTHETIC,
    ATTR_CODE,
    ATTR_ENCLOSING_METHOD,
    ATTR_INNER_CLASSES,
    ATTR_LOCAL_VARIABLE_TABLE,
    CONSTRUCTOR_NAME,
)
from classfile.descriptors import argument_types
from transform.engine import BasePass

if TYPE_CHECKING:
    from classfile.model import ClassFile, MemberInfo
    from graph.hierarchy import ArchiveView
    from mapping.model import EnclosingMethod, InnerClassMapping, InnerClassRecord

OUTER_THIS_NAME = "this$0"


def read_inner_classes(classfile: ClassFile) -> list[InnerClassEntry]:
    attribute = classfile.find_attribute(ATTR_INNER_CLASSES)
    if attribute is None:
        return []
    return parse_inner_classes(attribute.data)


def self_entry(classfile: ClassFile) -> InnerClassEntry | None:
    """The InnerClasses entry describing the class itself, if it is nested."""
    for entry in read_inner_classes(classfile):
        if classfile.pool.class_name(entry.inner_class_index) == classfile.name:
            return entry
    return None


class InnerClassMappingPass(BasePass):
    """Restore ``InnerClasses`` and ``EnclosingMethod`` from the mapping.

    Each nested class gets its own table entries; the declaring class and the
    class of the enclosing method additionally list the nested class, as the
    class file format requires.
    """

    name = "inner-classes"

    def __init__(self, mapping: InnerClassMapping) -> None:
        self.mapping = mapping
        self._members: dict[str, list[InnerClassRecord]] = {}

    def prepare(self, view: ArchiveView) -> None:
        super().prepare(view)
        members: dict[str, list[InnerClassRecord]] = defaultdict(list)
        for class_name, info in self.mapping.classes.items():
            for record in info.inner_classes:
                if record.inner_class != class_name:
                    continue
                host = record.outer_class
                if host is None and info.enclosing_method is not None:
                    host = info.enclosing_method.owner
                if host is not None and host != class_name:
                    members[host].append(record)
        self._members = dict(members)

    def apply(self, classfile: ClassFile) -> None:
        info = self.mapping.get(classfile.name)
        records = list(info.inner_classes) if info is not None else []
        records.extend(self._members.get(classfile.name, ()))
        if info is not None and info.enclosing_method is not None:
            self._set_enclosing_method(classfile, info.enclosing_method)
        if records:
            self._merge_inner_classes(classfile, records)

    def _set_enclosing_method(
        self, classfile: ClassFile, enclosing: EnclosingMethod
    ) -> None:
        pool = classfile.pool
        method_index = 0
        if enclosing.name and enclosing.descriptor:
            method_index = pool.add_name_and_type(
                enclosing.name, enclosing.descriptor
            )
        classfile.set_attribute(
            ATTR_ENCLOSING_METHOD,
            enclosing_method_to_bytes(pool.add_class(enclosing.owner), method_index),
        )

    def _merge_inner_classes(
        self, classfile: ClassFile, records: list[InnerClassRecord]
    ) -> None:
        pool = classfile.pool
        entries = read_inner_classes(classfile)
        known = {pool.class_name(entry.inner_class_index) for entry in entries}
        for record in records:
            if record.inner_class in known:
                continue
            known.add(record.inner_class)
            entries.append(
                InnerClassEntry(
                    pool.add_class(record.inner_class),
                    pool.add_class(record.outer_class) if record.outer_class else 0,
                    pool.add_utf8(record.inner_name) if record.inner_name else 0,
                    record.access_flags,
                )
            )
        classfile.set_attribute(ATTR_INNER_CLASSES, inner_classes_to_bytes(entries))


class InnerClassConstructorPass(BasePass):
    """Mark the outer instance plumbing of inner classes as synthetic.

    A non-static inner class stores its outer instance in a final field and
    receives it as the first constructor parameter. The obfuscator strips
    the synthetic markers; without them the decompiler emits the outer
    reference as an explicit constructor argument.
    """

    name = "inner-constructors"

    def apply(self, classfile: ClassFile) -> None:
        entry = self_entry(classfile)
        if entry is None or entry.access_flags & ACC_STATIC:
            return
        if entry.outer_class_index == 0:
            return
        outer = classfile.pool.class_name(entry.outer_class_index)
        outer_descriptor = f"L{outer};"

        for field_info in classfile.fields:
            flags = field_info.access_flags
            if flags & ACC_STATIC or not flags & ACC_FINAL:
                continue
            if classfile.member_descriptor(field_info) == outer_descriptor:
                field_info.access_flags |= ACC_SYNTHETIC
                break

        for method in classfile.methods:
            if classfile.member_name(method) != CONSTRUCTOR_NAME:
                continue
            arguments = argument_types(classfile.member_descriptor(method))
            if arguments and arguments[0] == outer_descriptor:
                self._rename_outer_parameter(classfile, method)

    def _rename_outer_parameter(self, classfile: ClassFile, method: MemberInfo) -> None:
        attribute = classfile.find_attribute(ATTR_CODE, method.attributes)
        if attribute is None:
            return
        code = CodeAttribute.parse(attribute.data)
        table = classfile.find_attribute(ATTR_LOCAL_VARIABLE_TABLE, code.attributes)
        if table is None:
            return
        entries = parse_local_variables(table.data)
        for local in entries:
            if local.index == 1 and local.start_pc == 0:
                local.name_index = classfile.pool.add_utf8(OUTER_THIS_NAME)
        table.data = local_variables_to_bytes(entries)
        attribute.data = code.to_bytes()


__all__ = [
    "OUTER_THIS_NAME",
    "InnerClassConstructorPass",
    "InnerClassMappingPass",
    "read_inner_classes",
    "self_entry",
]
