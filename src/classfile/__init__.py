"""Minimal class file reader and writer.

Only the structures renaming and the transformation passes touch are parsed;
everything else is preserved byte-for-byte.
"""

from classfile.model import Attribute, ClassFile, MemberInfo
from classfile.pool import Constant, ConstantPool

__all__ = ["Attribute", "ClassFile", "Constant", "ConstantPool", "MemberInfo"]
