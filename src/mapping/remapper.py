"""Consistent renaming of a class file.

``remap_class`` rewrites every place a class, field or method name can
appear: the constant pool (class entries, member references, method types,
dynamic call sites), member declarations, generic signatures, local variable
tables, inner class tables, enclosing methods and annotations. Names are
always resolved against the pre-rename identity of the referenced element,
so all references to one element receive the same new name.

Pool entries are repointed rather than edited; see ``classfile.pool``.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from classfile.attributes import (
    CodeAttribute,
    enclosing_method_to_bytes,
    inner_classes_to_bytes,
    local_variables_to_bytes,
    parse_enclosing_method,
    parse_inner_classes,
    parse_local_variables,
    parse_u2,
    remap_annotations,
    remap_element_value,
    remap_parameter_annotations,
    u2_to_bytes,
)
from classfile.constants import (
    ANNOTATION_ATTRIBUTES,
    ATTR_ANNOTATION_DEFAULT,
    ATTR_BOOTSTRAP_METHODS,
    ATTR_CODE,
    ATTR_ENCLOSING_METHOD,
    ATTR_INNER_CLASSES,
    ATTR_LOCAL_VARIABLE_TABLE,
    ATTR_LOCAL_VARIABLE_TYPE_TABLE,
    ATTR_SIGNATURE,
    CONSTANT_CLASS,
    CONSTANT_DYNAMIC,
    CONSTANT_FIELDREF,
    CONSTANT_INVOKE_DYNAMIC,
    CONSTANT_METHOD_HANDLE,
    CONSTANT_METHOD_TYPE,
    MEMBER_REF_TAGS,
    PARAMETER_ANNOTATION_ATTRIBUTES,
)
from classfile.descriptors import return_type, type_to_internal_name
from classfile.io import ByteReader
from contract.errors import ClassFormatError
from graph.hierarchy import outer_class_name

if TYPE_CHECKING:
    from classfile.model import Attribute, ClassFile
    from graph.hierarchy import ArchiveView
    from mapping.model import NameMapping

_OBJECT_TYPE = re.compile(r"L([^;]+);")
_PRIMITIVE_SIGNATURE_CHARS = frozenset("BCDFIJSZV")
_LAMBDA_METAFACTORY = "java/lang/invoke/LambdaMetafactory"


class Remapper:
    """Identity naming hooks plus the derived descriptor and signature rules.

    Subclasses override ``map_type``, ``map_field_name``, ``map_method_name``
    and ``map_local_name``; everything else is derived from them.
    """

    def map_type(self, internal_name: str) -> str:
        return internal_name

    def map_field_name(self, owner: str, name: str, descriptor: str) -> str:
        return name

    def map_method_name(self, owner: str, name: str, descriptor: str) -> str:
        return name

    def map_local_name(self, name: str) -> str:
        return name

    def map_descriptor(self, descriptor: str) -> str:
        """Remap every object type of a field or method descriptor."""
        if "L" not in descriptor:
            return descriptor
        return _OBJECT_TYPE.sub(
            lambda match: f"L{self.map_type(match.group(1))};", descriptor
        )

    def map_class_entry(self, value: str) -> str:
        """Remap a class constant, which holds an array descriptor for arrays."""
        if value.startswith("["):
            return self.map_descriptor(value)
        return self.map_type(value)

    def map_signature(self, signature: str) -> str:
        return _SignatureRemapper(signature, self).remap()

    def map_inner_name(self, inner_class: str, inner_name: str) -> str:
        """Simple name of a nested class after renaming."""
        mapped = self.map_type(inner_class)
        if mapped == inner_class:
            return inner_name
        index = mapped.rfind("$")
        if index < 0:
            return mapped[mapped.rfind("/") + 1 :]
        index += 1
        # Local classes are named Outer$1Name; the simple name drops the digits.
        while index < len(mapped) and mapped[index].isdigit():
            index += 1
        return mapped[index:] or inner_name


class _SignatureRemapper:
    """Recursive descent over a generic signature (JVMS 4.7.9.1)."""

    def __init__(self, signature: str, remapper: Remapper) -> None:
        self.signature = signature
        self.remapper = remapper
        self.position = 0
        self.out: list[str] = []

    def remap(self) -> str:
        if "L" not in self.signature:
            return self.signature
        if self._peek() == "<":
            self._type_parameters()
        if self._peek() == "(":
            self._emit_char("(")
            while self._peek() != ")":
                self._java_type()
            self._emit_char(")")
            self._java_type()
            while not self._at_end() and self._peek() == "^":
                self._emit_char("^")
                self._reference_type()
        else:
            while not self._at_end():
                self._reference_type()
        return "".join(self.out)

    def _fail(self, reason: str) -> ClassFormatError:
        return ClassFormatError(
            f"invalid signature {self.signature!r} at {self.position}: {reason}"
        )

    def _at_end(self) -> bool:
        return self.position >= len(self.signature)

    def _peek(self) -> str:
        if self.position >= len(self.signature):
            raise self._fail("unexpected end")
        return self.signature[self.position]

    def _emit_char(self, expected: str) -> None:
        if self._peek() != expected:
            raise self._fail(f"expected {expected!r}")
        self.out.append(expected)
        self.position += 1

    def _read_until(self, stops: str) -> str:
        start = self.position
        while self._peek() not in stops:
            self.position += 1
        return self.signature[start : self.position]

    def _type_parameters(self) -> None:
        self._emit_char("<")
        while self._peek() != ">":
            self.out.append(self._read_until(":"))
            self._emit_char(":")
            # Class bound may be empty (interface-only bounds).
            if self._peek() != ":":
                self._reference_type()
            while self._peek() == ":":
                self._emit_char(":")
                self._reference_type()
        self._emit_char(">")

    def _java_type(self) -> None:
        char = self._peek()
        if char in _PRIMITIVE_SIGNATURE_CHARS:
            self._emit_char(char)
        else:
            self._reference_type()

    def _reference_type(self) -> None:
        char = self._peek()
        if char == "L":
            self._class_type()
        elif char == "T":
            self.out.append(self._read_until(";"))
            self._emit_char(";")
        elif char == "[":
            self._emit_char("[")
            self._java_type()
        else:
            raise self._fail(f"unexpected {char!r}")

    def _class_type(self) -> None:
        self._emit_char("L")
        name = self._read_until("<.;")
        mapped = self.remapper.map_type(name)
        self.out.append(mapped)
        while True:
            char = self._peek()
            if char == "<":
                self._type_arguments()
            elif char == ".":
                self._emit_char(".")
                inner = self._read_until("<.;")
                name = f"{name}${inner}"
                mapped_inner = self.remapper.map_type(name)
                prefix = mapped + "$"
                if mapped_inner.startswith(prefix):
                    self.out.append(mapped_inner[len(prefix) :])
                else:
                    self.out.append(mapped_inner[mapped_inner.rfind("$") + 1 :])
                mapped = mapped_inner
            else:
                self._emit_char(";")
                return

    def _type_arguments(self) -> None:
        self._emit_char("<")
        while self._peek() != ">":
            char = self._peek()
            if char == "*":
                self._emit_char("*")
                continue
            if char in "+-":
                self._emit_char(char)
            self._reference_type()
        self._emit_char(">")


class MappingRemapper(Remapper):
    """Names from a ``NameMapping``, resolved through the archive hierarchy.

    Member references are looked up at the classes of the referenced owner's
    lineage that declare the member, so a call through a subclass is renamed
    like the declaration. Unmapped names pass through unchanged. Nested
    classes without an entry of their own follow their outer class.
    """

    def __init__(self, mapping: NameMapping, view: ArchiveView) -> None:
        self.mapping = mapping
        self.view = view
        self._types: dict[str, str] = {}

    def map_type(self, internal_name: str) -> str:
        cached = self._types.get(internal_name)
        if cached is not None:
            return cached
        mapped = self.mapping.map_class(internal_name)
        if mapped is None:
            mapped = internal_name
            outer = outer_class_name(internal_name)
            if outer is not None:
                mapped_outer = self.map_type(outer)
                if mapped_outer != outer:
                    mapped = mapped_outer + internal_name[len(outer) :]
        self._types[internal_name] = mapped
        return mapped

    def map_field_name(self, owner: str, name: str, descriptor: str) -> str:
        for summary in self.view.lineage(owner):
            if (name, descriptor) in summary.fields:
                mapped = self.mapping.map_field(summary.name, name, descriptor)
                return mapped if mapped is not None else name
        mapped = self.mapping.map_field(owner, name, descriptor)
        return mapped if mapped is not None else name

    def map_method_name(self, owner: str, name: str, descriptor: str) -> str:
        if name.startswith("<"):
            return name
        for summary in self.view.lineage(owner):
            if (name, descriptor) not in summary.methods:
                continue
            mapped = self.mapping.map_method(summary.name, name, descriptor)
            if mapped is not None:
                return mapped
        mapped = self.mapping.map_method(owner, name, descriptor)
        return mapped if mapped is not None else name

    def map_local_name(self, name: str) -> str:
        mapped = self.mapping.map_local(name)
        return mapped if mapped is not None else name


# ----------------------------------------------------------------------
# Class rewriting
# ----------------------------------------------------------------------


def _lambda_interfaces(
    classfile: ClassFile, class_names: dict[int, str]
) -> dict[int, str]:
    """Bootstrap method index -> SAM descriptor for LambdaMetafactory sites."""
    attribute = classfile.find_attribute(ATTR_BOOTSTRAP_METHODS)
    if attribute is None:
        return {}
    pool = classfile.pool
    reader = ByteReader(attribute.data)
    sam_descriptors: dict[int, str] = {}
    for bootstrap_index in range(reader.u2()):
        handle_index = reader.u2()
        arguments = [reader.u2() for _ in range(reader.u2())]
        member_ref = pool.entry(handle_index, CONSTANT_METHOD_HANDLE).refs[0]
        owner_index = pool.entry(member_ref).refs[0]
        if class_names.get(owner_index) != _LAMBDA_METAFACTORY or not arguments:
            continue
        sam_type = pool.entries[arguments[0]]
        if sam_type is not None and sam_type.tag == CONSTANT_METHOD_TYPE:
            sam_descriptors[bootstrap_index] = pool.utf8(sam_type.refs[0])
    return sam_descriptors


class _ClassRewriter:
    def __init__(self, classfile: ClassFile, remapper: Remapper) -> None:
        self.classfile = classfile
        self.pool = classfile.pool
        self.remapper = remapper
        # Class entries are repointed in place; every lookup of an original
        # class name goes through this snapshot.
        self.class_names = {
            index: self.pool.utf8(constant.refs[0])
            for index, constant in self.pool.iter_indexed()
            if constant.tag == CONSTANT_CLASS
        }
        self.owner = self.class_names[classfile.this_class]

    def _utf8(self, index: int, mapped: str) -> int:
        if self.pool.utf8(index) == mapped:
            return index
        return self.pool.add_utf8(mapped)

    def _descriptor_index(self, index: int) -> int:
        return self._utf8(index, self.remapper.map_descriptor(self.pool.utf8(index)))

    def _signature_index(self, index: int) -> int:
        return self._utf8(index, self.remapper.map_signature(self.pool.utf8(index)))

    def rewrite(self) -> None:
        self._rewrite_pool()
        for member in self.classfile.fields:
            name = self.classfile.member_name(member)
            descriptor = self.classfile.member_descriptor(member)
            mapped = self.remapper.map_field_name(self.owner, name, descriptor)
            member.name_index = self._utf8(member.name_index, mapped)
            member.descriptor_index = self._descriptor_index(member.descriptor_index)
            self._rewrite_attributes(member.attributes)
        for member in self.classfile.methods:
            name = self.classfile.member_name(member)
            descriptor = self.classfile.member_descriptor(member)
            mapped = self.remapper.map_method_name(self.owner, name, descriptor)
            member.name_index = self._utf8(member.name_index, mapped)
            member.descriptor_index = self._descriptor_index(member.descriptor_index)
            self._rewrite_attributes(member.attributes)
        self._rewrite_attributes(self.classfile.attributes)

    def _rewrite_pool(self) -> None:
        pool = self.pool
        remapper = self.remapper
        # Member references are resolved before any class entry is repointed.
        member_refs = {}
        for index, constant in pool.iter_indexed():
            if constant.tag in MEMBER_REF_TAGS:
                class_index, nat_index = constant.refs
                name, descriptor = pool.name_and_type(nat_index)
                member_refs[index] = (self.class_names[class_index], name, descriptor)
        sam_descriptors = _lambda_interfaces(self.classfile, self.class_names)

        for index, (owner, name, descriptor) in member_refs.items():
            constant = pool.entry(index)
            if constant.tag == CONSTANT_FIELDREF:
                mapped = remapper.map_field_name(owner, name, descriptor)
            else:
                mapped = remapper.map_method_name(owner, name, descriptor)
            mapped_descriptor = remapper.map_descriptor(descriptor)
            if mapped != name or mapped_descriptor != descriptor:
                nat_index = pool.add_name_and_type(mapped, mapped_descriptor)
                constant.refs = (constant.refs[0], nat_index)

        for index, constant in pool.iter_indexed():
            if constant.tag == CONSTANT_CLASS:
                old = self.class_names[index]
                mapped = remapper.map_class_entry(old)
                if mapped != old:
                    constant.refs = (pool.add_utf8(mapped),)
            elif constant.tag == CONSTANT_METHOD_TYPE:
                constant.refs = (self._descriptor_index(constant.refs[0]),)
            elif constant.tag in (CONSTANT_INVOKE_DYNAMIC, CONSTANT_DYNAMIC):
                name, descriptor = pool.name_and_type(constant.refs[0])
                mapped = name
                sam = sam_descriptors.get(constant.value)  # type: ignore[arg-type]
                if constant.tag == CONSTANT_INVOKE_DYNAMIC and sam is not None:
                    interface = type_to_internal_name(return_type(descriptor))
                    if interface is not None:
                        mapped = remapper.map_method_name(interface, name, sam)
                mapped_descriptor = remapper.map_descriptor(descriptor)
                if mapped != name or mapped_descriptor != descriptor:
                    constant.refs = (pool.add_name_and_type(mapped, mapped_descriptor),)

    def _rewrite_attributes(self, attributes: list[Attribute]) -> None:
        for attribute in attributes:
            name = self.classfile.attribute_name(attribute)
            if name == ATTR_SIGNATURE:
                attribute.data = u2_to_bytes(
                    self._signature_index(parse_u2(attribute.data))
                )
            elif name == ATTR_CODE:
                self._rewrite_code(attribute)
            elif name == ATTR_INNER_CLASSES:
                self._rewrite_inner_classes(attribute)
            elif name == ATTR_ENCLOSING_METHOD:
                self._rewrite_enclosing_method(attribute)
            elif name in ANNOTATION_ATTRIBUTES:
                attribute.data = remap_annotations(
                    attribute.data, self._descriptor_index
                )
            elif name in PARAMETER_ANNOTATION_ATTRIBUTES:
                attribute.data = remap_parameter_annotations(
                    attribute.data, self._descriptor_index
                )
            elif name == ATTR_ANNOTATION_DEFAULT:
                attribute.data = remap_element_value(
                    attribute.data, self._descriptor_index
                )

    def _rewrite_code(self, attribute: Attribute) -> None:
        code = CodeAttribute.parse(attribute.data)
        changed = False
        for nested in code.attributes:
            nested_name = self.classfile.attribute_name(nested)
            if nested_name not in (
                ATTR_LOCAL_VARIABLE_TABLE,
                ATTR_LOCAL_VARIABLE_TYPE_TABLE,
            ):
                continue
            entries = parse_local_variables(nested.data)
            for entry in entries:
                local_name = self.pool.utf8(entry.name_index)
                entry.name_index = self._utf8(
                    entry.name_index, self.remapper.map_local_name(local_name)
                )
                if nested_name == ATTR_LOCAL_VARIABLE_TABLE:
                    entry.descriptor_index = self._descriptor_index(
                        entry.descriptor_index
                    )
                else:
                    entry.descriptor_index = self._signature_index(
                        entry.descriptor_index
                    )
            nested.data = local_variables_to_bytes(entries)
            changed = True
        if changed:
            attribute.data = code.to_bytes()

    def _rewrite_inner_classes(self, attribute: Attribute) -> None:
        entries = parse_inner_classes(attribute.data)
        for entry in entries:
            if entry.inner_name_index == 0:
                continue
            inner_class = self.class_names[entry.inner_class_index]
            inner_name = self.pool.utf8(entry.inner_name_index)
            mapped = self.remapper.map_inner_name(inner_class, inner_name)
            entry.inner_name_index = self._utf8(entry.inner_name_index, mapped)
        attribute.data = inner_classes_to_bytes(entries)

    def _rewrite_enclosing_method(self, attribute: Attribute) -> None:
        class_index, method_index = parse_enclosing_method(attribute.data)
        if method_index == 0:
            return
        name, descriptor = self.pool.name_and_type(method_index)
        owner = self.class_names[class_index]
        mapped = self.remapper.map_method_name(owner, name, descriptor)
        mapped_descriptor = self.remapper.map_descriptor(descriptor)
        if mapped != name or mapped_descriptor != descriptor:
            method_index = self.pool.add_name_and_type(mapped, mapped_descriptor)
            attribute.data = enclosing_method_to_bytes(class_index, method_index)


def remap_class(classfile: ClassFile, remapper: Remapper) -> None:
    """Rename every class, field and method reference of ``classfile`` in place."""
    _ClassRewriter(classfile, remapper).rewrite()


__all__ = ["MappingRemapper", "Remapper", "remap_class"]
