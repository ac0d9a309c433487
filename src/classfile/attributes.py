"""Parsed views of the attributes renaming and passes need to touch.

Every view round-trips through ``parse``/``to_bytes``; attributes without a
view are carried as opaque bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from classfile.io import ByteReader, ByteWriter
from classfile.model import Attribute, read_attributes, write_attributes
from contract.errors import ClassFormatError

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass
class CodeAttribute:
    max_stack: int
    max_locals: int
    code: bytes
    exception_table: list[tuple[int, int, int, int]]
    attributes: list[Attribute] = field(default_factory=list)

    @classmethod
    def parse(cls, data: bytes) -> CodeAttribute:
        reader = ByteReader(data)
        max_stack = reader.u2()
        max_locals = reader.u2()
        code = reader.raw(reader.u4())
        exception_table = [
            (reader.u2(), reader.u2(), reader.u2(), reader.u2())
            for _ in range(reader.u2())
        ]
        attributes = read_attributes(reader)
        return cls(max_stack, max_locals, code, exception_table, attributes)

    def to_bytes(self) -> bytes:
        writer = ByteWriter()
        writer.u2(self.max_stack)
        writer.u2(self.max_locals)
        writer.u4(len(self.code))
        writer.raw(self.code)
        writer.u2(len(self.exception_table))
        for entry in self.exception_table:
            for value in entry:
                writer.u2(value)
        write_attributes(writer, self.attributes)
        return writer.getvalue()


@dataclass
class LocalVariable:
    """Entry of a LocalVariableTable or LocalVariableTypeTable.

    ``descriptor_index`` holds the signature index for type table entries.
    """

    start_pc: int
    length: int
    name_index: int
    descriptor_index: int
    index: int


def parse_local_variables(data: bytes) -> list[LocalVariable]:
    reader = ByteReader(data)
    return [
        LocalVariable(reader.u2(), reader.u2(), reader.u2(), reader.u2(), reader.u2())
        for _ in range(reader.u2())
    ]


def local_variables_to_bytes(entries: list[LocalVariable]) -> bytes:
    writer = ByteWriter()
    writer.u2(len(entries))
    for entry in entries:
        writer.u2(entry.start_pc)
        writer.u2(entry.length)
        writer.u2(entry.name_index)
        writer.u2(entry.descriptor_index)
        writer.u2(entry.index)
    return writer.getvalue()


@dataclass
class InnerClassEntry:
    inner_class_index: int
    outer_class_index: int
    inner_name_index: int
    access_flags: int


def parse_inner_classes(data: bytes) -> list[InnerClassEntry]:
    reader = ByteReader(data)
    return [
        InnerClassEntry(reader.u2(), reader.u2(), reader.u2(), reader.u2())
        for _ in range(reader.u2())
    ]


def inner_classes_to_bytes(entries: list[InnerClassEntry]) -> bytes:
    writer = ByteWriter()
    writer.u2(len(entries))
    for entry in entries:
        writer.u2(entry.inner_class_index)
        writer.u2(entry.outer_class_index)
        writer.u2(entry.inner_name_index)
        writer.u2(entry.access_flags)
    return writer.getvalue()


def parse_enclosing_method(data: bytes) -> tuple[int, int]:
    reader = ByteReader(data)
    return reader.u2(), reader.u2()


def enclosing_method_to_bytes(class_index: int, method_index: int) -> bytes:
    writer = ByteWriter()
    writer.u2(class_index)
    writer.u2(method_index)
    return writer.getvalue()


def parse_u2(data: bytes) -> int:
    """Parse single-index attributes such as Signature and SourceFile."""
    return ByteReader(data).u2()


def u2_to_bytes(value: int) -> bytes:
    writer = ByteWriter()
    writer.u2(value)
    return writer.getvalue()


def parse_method_parameters(data: bytes) -> list[tuple[int, int]]:
    reader = ByteReader(data)
    return [(reader.u2(), reader.u2()) for _ in range(reader.u1())]


def method_parameters_to_bytes(entries: list[tuple[int, int]]) -> bytes:
    writer = ByteWriter()
    writer.u1(len(entries))
    for name_index, access_flags in entries:
        writer.u2(name_index)
        writer.u2(access_flags)
    return writer.getvalue()


# ----------------------------------------------------------------------
# Annotations
# ----------------------------------------------------------------------

_CONST_VALUE_TAGS = frozenset(b"BCDFIJSZs")


def _copy_element_value(
    reader: ByteReader, writer: ByteWriter, remap: Callable[[int], int]
) -> None:
    tag = reader.u1()
    writer.u1(tag)
    if tag in _CONST_VALUE_TAGS:
        writer.u2(reader.u2())
    elif tag == ord("e"):
        writer.u2(remap(reader.u2()))
        writer.u2(reader.u2())
    elif tag == ord("c"):
        writer.u2(remap(reader.u2()))
    elif tag == ord("@"):
        _copy_annotation(reader, writer, remap)
    elif tag == ord("["):
        count = reader.u2()
        writer.u2(count)
        for _ in range(count):
            _copy_element_value(reader, writer, remap)
    else:
        msg = f"unknown annotation element tag {chr(tag)!r}"
        raise ClassFormatError(msg)


def _copy_annotation(
    reader: ByteReader, writer: ByteWriter, remap: Callable[[int], int]
) -> None:
    writer.u2(remap(reader.u2()))
    pairs = reader.u2()
    writer.u2(pairs)
    for _ in range(pairs):
        writer.u2(reader.u2())
        _copy_element_value(reader, writer, remap)


def remap_annotations(data: bytes, remap: Callable[[int], int]) -> bytes:
    """Rewrite the descriptor indices of a Runtime*Annotations attribute.

    ``remap`` receives the pool index of each type descriptor and returns the
    index to store instead.
    """
    reader = ByteReader(data)
    writer = ByteWriter()
    count = reader.u2()
    writer.u2(count)
    for _ in range(count):
        _copy_annotation(reader, writer, remap)
    return writer.getvalue()


def remap_parameter_annotations(data: bytes, remap: Callable[[int], int]) -> bytes:
    reader = ByteReader(data)
    writer = ByteWriter()
    parameters = reader.u1()
    writer.u1(parameters)
    for _ in range(parameters):
        count = reader.u2()
        writer.u2(count)
        for _ in range(count):
            _copy_annotation(reader, writer, remap)
    return writer.getvalue()


def remap_element_value(data: bytes, remap: Callable[[int], int]) -> bytes:
    """Rewrite an AnnotationDefault attribute."""
    reader = ByteReader(data)
    writer = ByteWriter()
    _copy_element_value(reader, writer, remap)
    return writer.getvalue()


__all__ = [
    "CodeAttribute",
    "InnerClassEntry",
    "LocalVariable",
    "enclosing_method_to_bytes",
    "inner_classes_to_bytes",
    "local_variables_to_bytes",
    "method_parameters_to_bytes",
    "parse_enclosing_method",
    "parse_inner_classes",
    "parse_local_variables",
    "parse_method_parameters",
    "parse_u2",
    "remap_annotations",
    "remap_element_value",
    "remap_parameter_annotations",
    "u2_to_bytes",
]
