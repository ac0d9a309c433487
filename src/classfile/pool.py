"""Constant pool with append-only interning.

Method bodies embed pool indices, so existing entries are never renumbered.
Renaming repoints structured entries (class, member reference, method type)
at freshly interned UTF-8 and name-and-type entries appended at the end of
the pool; UTF-8 entries are never edited in place because any of them may be
shared by unrelated users (a field name that is also a string literal, for
instance).
"""

from __future__ import annotations

from dataclasses import dataclass

from classfile import mutf8
from classfile.constants import (
    CONSTANT_CLASS,
    CONSTANT_DOUBLE,
    CONSTANT_DYNAMIC,
    CONSTANT_FIELDREF,
    CONSTANT_FLOAT,
    CONSTANT_INTEGER,
    CONSTANT_INTERFACE_METHODREF,
    CONSTANT_INVOKE_DYNAMIC,
    CONSTANT_LONG,
    CONSTANT_METHOD_HANDLE,
    CONSTANT_METHOD_TYPE,
    CONSTANT_METHODREF,
    CONSTANT_MODULE,
    CONSTANT_NAME_AND_TYPE,
    CONSTANT_PACKAGE,
    CONSTANT_STRING,
    CONSTANT_UTF8,
    WIDE_TAGS,
)
from classfile.io import ByteReader, ByteWriter
from contract.errors import ClassFormatError

MAX_POOL_SIZE = 0xFFFF


@dataclass
class Constant:
    """A single pool entry.

    ``value`` holds the decoded string of UTF-8 entries, the raw bytes of
    numeric entries, the reference kind of method handles and the bootstrap
    method index of dynamic entries. ``refs`` holds pool indices.
    """

    tag: int
    value: object = None
    refs: tuple[int, ...] = ()


_REF_LAYOUT: dict[int, int] = {
    CONSTANT_CLASS: 1,
    CONSTANT_STRING: 1,
    CONSTANT_METHOD_TYPE: 1,
    CONSTANT_MODULE: 1,
    CONSTANT_PACKAGE: 1,
    CONSTANT_FIELDREF: 2,
    CONSTANT_METHODREF: 2,
    CONSTANT_INTERFACE_METHODREF: 2,
    CONSTANT_NAME_AND_TYPE: 2,
}


class ConstantPool:
    def __init__(self, entries: list[Constant | None] | None = None) -> None:
        self.entries: list[Constant | None] = entries if entries is not None else [None]
        self._utf8_index: dict[str, int] | None = None
        self._interned: dict[tuple[int, tuple[int, ...]], int] | None = None

    def __len__(self) -> int:
        return len(self.entries)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, reader: ByteReader) -> ConstantPool:
        count = reader.u2()
        entries: list[Constant | None] = [None]
        index = 1
        while index < count:
            tag = reader.u1()
            if tag == CONSTANT_UTF8:
                length = reader.u2()
                try:
                    text = mutf8.decode(reader.raw(length))
                except ValueError as exc:
                    msg = f"constant #{index}: {exc}"
                    raise ClassFormatError(msg) from exc
                entries.append(Constant(tag, text))
            elif tag in (CONSTANT_INTEGER, CONSTANT_FLOAT):
                entries.append(Constant(tag, reader.raw(4)))
            elif tag in WIDE_TAGS:
                entries.append(Constant(tag, reader.raw(8)))
                entries.append(None)
                index += 1
            elif tag in _REF_LAYOUT:
                refs = tuple(reader.u2() for _ in range(_REF_LAYOUT[tag]))
                entries.append(Constant(tag, None, refs))
            elif tag == CONSTANT_METHOD_HANDLE:
                kind = reader.u1()
                entries.append(Constant(tag, kind, (reader.u2(),)))
            elif tag in (CONSTANT_DYNAMIC, CONSTANT_INVOKE_DYNAMIC):
                bootstrap = reader.u2()
                entries.append(Constant(tag, bootstrap, (reader.u2(),)))
            else:
                msg = f"constant #{index}: unknown tag {tag}"
                raise ClassFormatError(msg)
            index += 1
        return cls(entries)

    def entry(self, index: int, *tags: int) -> Constant:
        if index <= 0 or index >= len(self.entries):
            msg = f"constant pool index {index} out of range"
            raise ClassFormatError(msg)
        constant = self.entries[index]
        if constant is None or (tags and constant.tag not in tags):
            msg = f"constant #{index} has unexpected type"
            raise ClassFormatError(msg)
        return constant

    def utf8(self, index: int) -> str:
        return str(self.entry(index, CONSTANT_UTF8).value)

    def class_name(self, index: int) -> str:
        return self.utf8(self.entry(index, CONSTANT_CLASS).refs[0])

    def name_and_type(self, index: int) -> tuple[str, str]:
        name_index, desc_index = self.entry(index, CONSTANT_NAME_AND_TYPE).refs
        return self.utf8(name_index), self.utf8(desc_index)

    def member_ref(self, index: int) -> tuple[str, str, str]:
        """Return ``(owner, name, descriptor)`` of a field or method reference."""
        class_index, nat_index = self.entry(
            index, CONSTANT_FIELDREF, CONSTANT_METHODREF, CONSTANT_INTERFACE_METHODREF
        ).refs
        name, descriptor = self.name_and_type(nat_index)
        return self.class_name(class_index), name, descriptor

    def iter_indexed(self) -> list[tuple[int, Constant]]:
        return [(i, c) for i, c in enumerate(self.entries) if c is not None]

    # ------------------------------------------------------------------
    # Interning
    # ------------------------------------------------------------------

    def _append(self, constant: Constant) -> int:
        index = len(self.entries)
        if index >= MAX_POOL_SIZE:
            msg = "constant pool overflow"
            raise ClassFormatError(msg)
        self.entries.append(constant)
        return index

    def add_utf8(self, value: str) -> int:
        if self._utf8_index is None:
            self._utf8_index = {}
            for i, constant in self.iter_indexed():
                if constant.tag == CONSTANT_UTF8:
                    self._utf8_index.setdefault(str(constant.value), i)
        index = self._utf8_index.get(value)
        if index is None:
            index = self._append(Constant(CONSTANT_UTF8, value))
            self._utf8_index[value] = index
        return index

    def _add_structured(self, tag: int, refs: tuple[int, ...]) -> int:
        # Only entries appended by this pool are interned; original entries
        # may be repointed in place and are therefore not stable keys.
        if self._interned is None:
            self._interned = {}
        key = (tag, refs)
        index = self._interned.get(key)
        if index is None:
            index = self._append(Constant(tag, None, refs))
            self._interned[key] = index
        return index

    def add_class(self, name: str) -> int:
        return self._add_structured(CONSTANT_CLASS, (self.add_utf8(name),))

    def add_name_and_type(self, name: str, descriptor: str) -> int:
        return self._add_structured(
            CONSTANT_NAME_AND_TYPE, (self.add_utf8(name), self.add_utf8(descriptor))
        )

    def add_string(self, value: str) -> int:
        return self._add_structured(CONSTANT_STRING, (self.add_utf8(value),))

    def add_field_ref(self, owner: str, name: str, descriptor: str) -> int:
        return self._add_structured(
            CONSTANT_FIELDREF,
            (self.add_class(owner), self.add_name_and_type(name, descriptor)),
        )

    def add_method_ref(
        self, owner: str, name: str, descriptor: str, *, interface: bool = False
    ) -> int:
        tag = CONSTANT_INTERFACE_METHODREF if interface else CONSTANT_METHODREF
        return self._add_structured(
            tag, (self.add_class(owner), self.add_name_and_type(name, descriptor))
        )

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write(self, writer: ByteWriter) -> None:
        writer.u2(len(self.entries))
        for constant in self.entries[1:]:
            if constant is None:
                continue
            writer.u1(constant.tag)
            if constant.tag == CONSTANT_UTF8:
                encoded = mutf8.encode(str(constant.value))
                if len(encoded) > 0xFFFF:
                    msg = "UTF-8 constant too long"
                    raise ClassFormatError(msg)
                writer.u2(len(encoded))
                writer.raw(encoded)
            elif constant.tag in (CONSTANT_INTEGER, CONSTANT_FLOAT, *WIDE_TAGS):
                writer.raw(constant.value)  # type: ignore[arg-type]
            elif constant.tag == CONSTANT_METHOD_HANDLE:
                writer.u1(int(constant.value))  # type: ignore[call-overload]
                writer.u2(constant.refs[0])
            elif constant.tag in (CONSTANT_DYNAMIC, CONSTANT_INVOKE_DYNAMIC):
                writer.u2(int(constant.value))  # type: ignore[call-overload]
                writer.u2(constant.refs[0])
            else:
                for ref in constant.refs:
                    writer.u2(ref)


__all__ = ["MAX_POOL_SIZE", "Constant", "ConstantPool"]
