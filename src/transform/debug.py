"""Removal of debug metadata."""

from __future__ import annotations

from typing import TYPE_CHECKING

from classfile.attributes import CodeAttribute
from classfile.constants import (
    ATTR_CODE,
    ATTR_LINE_NUMBER_TABLE,
    ATTR_LOCAL_VARIABLE_TABLE,
    ATTR_LOCAL_VARIABLE_TYPE_TABLE,
    ATTR_METHOD_PARAMETERS,
    ATTR_SOURCE_FILE,
)
from transform.engine import BasePass

if TYPE_CHECKING:
    from classfile.model import ClassFile

_SOURCE_DEBUG_EXTENSION = "SourceDebugExtension"


class DebugAttributeStripPass(BasePass):
    """Strip the selected kinds of debug attributes.

    Obfuscated archives ship variable tables with meaningless or misleading
    names; they are dropped and rebuilt before renaming.
    """

    name = "strip-debug"

    def __init__(
        self,
        *,
        local_variables: bool = True,
        parameters: bool = True,
        line_numbers: bool = False,
        source_file: bool = False,
    ) -> None:
        self.code_attributes: set[str] = set()
        if local_variables:
            self.code_attributes |= {
                ATTR_LOCAL_VARIABLE_TABLE,
                ATTR_LOCAL_VARIABLE_TYPE_TABLE,
            }
        if line_numbers:
            self.code_attributes.add(ATTR_LINE_NUMBER_TABLE)
        self.parameters = parameters
        self.source_file = source_file

    def apply(self, classfile: ClassFile) -> None:
        if self.source_file:
            classfile.remove_attributes({ATTR_SOURCE_FILE, _SOURCE_DEBUG_EXTENSION})
        for method in classfile.methods:
            if self.parameters:
                classfile.remove_attributes({ATTR_METHOD_PARAMETERS}, method.attributes)
            if not self.code_attributes:
                continue
            attribute = classfile.find_attribute(ATTR_CODE, method.attributes)
            if attribute is None:
                continue
            code = CodeAttribute.parse(attribute.data)
            if classfile.remove_attributes(self.code_attributes, code.attributes):
                attribute.data = code.to_bytes()


__all__ = ["DebugAttributeStripPass"]
