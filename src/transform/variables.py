"""Reconstruction of local variable tables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from classfile.attributes import CodeAttribute, LocalVariable, local_variables_to_bytes
from classfile.constants import ACC_STATIC, ATTR_CODE, ATTR_LOCAL_VARIABLE_TABLE
from classfile.descriptors import argument_slots, argument_types
from transform.engine import BasePass

if TYPE_CHECKING:
    from classfile.model import ClassFile, MemberInfo

THIS_NAME = "this"
PARAMETER_PREFIX = "par"


def build_variable_table(
    classfile: ClassFile, method: MemberInfo, code_length: int
) -> list[LocalVariable]:
    """Entries for ``this`` and every parameter, spanning the whole body.

    Parameters are called ``par1``, ``par2``, ... until a mapping names them.
    """
    pool = classfile.pool
    descriptor = classfile.member_descriptor(method)
    static = bool(method.access_flags & ACC_STATIC)
    entries = []
    if not static:
        entries.append(
            LocalVariable(
                0,
                code_length,
                pool.add_utf8(THIS_NAME),
                pool.add_utf8(f"L{classfile.name};"),
                0,
            )
        )
    slots = argument_slots(descriptor, static=static)
    for position, (slot, argument) in enumerate(
        zip(slots, argument_types(descriptor), strict=True), 1
    ):
        entries.append(
            LocalVariable(
                0,
                code_length,
                pool.add_utf8(f"{PARAMETER_PREFIX}{position}"),
                pool.add_utf8(argument),
                slot,
            )
        )
    return entries


class VariableTableConstructionPass(BasePass):
    """Give every method body a variable table covering its parameters."""

    name = "construct-variables"

    def apply(self, classfile: ClassFile) -> None:
        for method in classfile.methods:
            attribute = classfile.find_attribute(ATTR_CODE, method.attributes)
            if attribute is None:
                continue
            code = CodeAttribute.parse(attribute.data)
            if classfile.find_attribute(ATTR_LOCAL_VARIABLE_TABLE, code.attributes):
                continue
            entries = build_variable_table(classfile, method, len(code.code))
            if not entries:
                continue
            classfile.set_attribute(
                ATTR_LOCAL_VARIABLE_TABLE,
                local_variables_to_bytes(entries),
                code.attributes,
            )
            attribute.data = code.to_bytes()


__all__ = ["PARAMETER_PREFIX", "THIS_NAME", "VariableTableConstructionPass"]
