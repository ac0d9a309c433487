"""In-memory model of a class file."""

from __future__ import annotations

from dataclasses import dataclass, field

from classfile.constants import ACC_INTERFACE, MAGIC
from classfile.io import ByteReader, ByteWriter
from classfile.pool import ConstantPool
from contract.errors import ClassFormatError


@dataclass
class Attribute:
    """A raw attribute; ``data`` excludes the name index and length."""

    name_index: int
    data: bytes


@dataclass
class MemberInfo:
    """A field or a method."""

    access_flags: int
    name_index: int
    descriptor_index: int
    attributes: list[Attribute] = field(default_factory=list)


def read_attributes(reader: ByteReader) -> list[Attribute]:
    attributes = []
    for _ in range(reader.u2()):
        name_index = reader.u2()
        length = reader.u4()
        attributes.append(Attribute(name_index, reader.raw(length)))
    return attributes


def write_attributes(writer: ByteWriter, attributes: list[Attribute]) -> None:
    writer.u2(len(attributes))
    for attribute in attributes:
        writer.u2(attribute.name_index)
        writer.u4(len(attribute.data))
        writer.raw(attribute.data)


def _read_members(reader: ByteReader) -> list[MemberInfo]:
    members = []
    for _ in range(reader.u2()):
        access_flags = reader.u2()
        name_index = reader.u2()
        descriptor_index = reader.u2()
        attributes = read_attributes(reader)
        members.append(
            MemberInfo(access_flags, name_index, descriptor_index, attributes)
        )
    return members


def _write_members(writer: ByteWriter, members: list[MemberInfo]) -> None:
    writer.u2(len(members))
    for member in members:
        writer.u2(member.access_flags)
        writer.u2(member.name_index)
        writer.u2(member.descriptor_index)
        write_attributes(writer, member.attributes)


@dataclass
class ClassFile:
    minor_version: int
    major_version: int
    pool: ConstantPool
    access_flags: int
    this_class: int
    super_class: int
    interfaces: list[int]
    fields: list[MemberInfo]
    methods: list[MemberInfo]
    attributes: list[Attribute]

    @classmethod
    def parse(cls, data: bytes) -> ClassFile:
        reader = ByteReader(data)
        if reader.u4() != MAGIC:
            msg = "not a class file (bad magic)"
            raise ClassFormatError(msg)
        minor_version = reader.u2()
        major_version = reader.u2()
        pool = ConstantPool.parse(reader)
        access_flags = reader.u2()
        this_class = reader.u2()
        super_class = reader.u2()
        interfaces = [reader.u2() for _ in range(reader.u2())]
        fields = _read_members(reader)
        methods = _read_members(reader)
        attributes = read_attributes(reader)
        if reader.remaining():
            msg = f"{reader.remaining()} trailing bytes after class file"
            raise ClassFormatError(msg)
        return cls(
            minor_version,
            major_version,
            pool,
            access_flags,
            this_class,
            super_class,
            interfaces,
            fields,
            methods,
            attributes,
        )

    def to_bytes(self) -> bytes:
        writer = ByteWriter()
        writer.u4(MAGIC)
        writer.u2(self.minor_version)
        writer.u2(self.major_version)
        self.pool.write(writer)
        writer.u2(self.access_flags)
        writer.u2(self.this_class)
        writer.u2(self.super_class)
        writer.u2(len(self.interfaces))
        for interface in self.interfaces:
            writer.u2(interface)
        _write_members(writer, self.fields)
        _write_members(writer, self.methods)
        write_attributes(writer, self.attributes)
        return writer.getvalue()

    @property
    def name(self) -> str:
        return self.pool.class_name(self.this_class)

    @property
    def super_name(self) -> str | None:
        if self.super_class == 0:
            return None
        return self.pool.class_name(self.super_class)

    @property
    def interface_names(self) -> list[str]:
        return [self.pool.class_name(index) for index in self.interfaces]

    @property
    def is_interface(self) -> bool:
        return bool(self.access_flags & ACC_INTERFACE)

    def member_name(self, member: MemberInfo) -> str:
        return self.pool.utf8(member.name_index)

    def member_descriptor(self, member: MemberInfo) -> str:
        return self.pool.utf8(member.descriptor_index)

    def attribute_name(self, attribute: Attribute) -> str:
        return self.pool.utf8(attribute.name_index)

    def find_attribute(
        self, name: str, attributes: list[Attribute] | None = None
    ) -> Attribute | None:
        for attribute in self.attributes if attributes is None else attributes:
            if self.attribute_name(attribute) == name:
                return attribute
        return None

    def set_attribute(
        self, name: str, data: bytes, attributes: list[Attribute] | None = None
    ) -> None:
        """Replace the named attribute or append it if absent."""
        target = self.attributes if attributes is None else attributes
        existing = self.find_attribute(name, target)
        if existing is not None:
            existing.data = data
        else:
            target.append(Attribute(self.pool.add_utf8(name), data))

    def remove_attributes(
        self,
        names: frozenset[str] | set[str],
        attributes: list[Attribute] | None = None,
    ) -> int:
        target = self.attributes if attributes is None else attributes
        kept = [a for a in target if self.attribute_name(a) not in names]
        removed = len(target) - len(kept)
        target[:] = kept
        return removed

    def find_method(self, name: str, descriptor: str) -> MemberInfo | None:
        for method in self.methods:
            if self.member_name(method) != name:
                continue
            if self.member_descriptor(method) == descriptor:
                return method
        return None

    def find_field(self, name: str, descriptor: str | None = None) -> MemberInfo | None:
        for field_info in self.fields:
            if self.member_name(field_info) != name:
                continue
            if descriptor is None or self.member_descriptor(field_info) == descriptor:
                return field_info
        return None


__all__ = [
    "Attribute",
    "ClassFile",
    "MemberInfo",
    "read_attributes",
    "write_attributes",
]
