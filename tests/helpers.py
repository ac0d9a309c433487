"""Builders for small class files, archives and stand-in collaborators."""

from __future__ import annotations

import zipfile
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from classfile.attributes import (
    CodeAttribute,
    InnerClassEntry,
    inner_classes_to_bytes,
    parse_local_variables,
)
from classfile.constants import (
    ACC_PUBLIC,
    ACC_STATIC,
    ACC_SUPER,
    ATTR_CODE,
    ATTR_INNER_CLASSES,
    ATTR_LOCAL_VARIABLE_TABLE,
    CONSTANT_FIELDREF,
    MEMBER_REF_TAGS,
)
from classfile.descriptors import argument_types, slot_size
from classfile.model import Attribute, ClassFile, MemberInfo
from classfile.pool import ConstantPool
from decompile.bridge import top_level_classes
from launcher.download import Downloader, create_client
from transform.engine import CLASS_SUFFIX, iter_archive

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from pathlib import Path

    from decompile.sink import ResultSink

RETURN = b"\xb1"


@dataclass(frozen=True)
class MethodSpec:
    name: str
    descriptor: str = "()V"
    access: int = ACC_PUBLIC
    code: bytes | None = RETURN


def _max_locals(descriptor: str, *, static: bool) -> int:
    size = 0 if static else 1
    return size + sum(slot_size(t) for t in argument_types(descriptor))


def build_class(
    name: str,
    *,
    super_name: str | None = "java/lang/Object",
    interfaces: Sequence[str] = (),
    access: int = ACC_PUBLIC | ACC_SUPER,
    fields: Sequence[tuple[int, str, str]] = (),
    methods: Sequence[MethodSpec] = (),
    field_refs: Sequence[tuple[str, str, str]] = (),
    method_refs: Sequence[tuple[str, str, str]] = (),
    class_refs: Sequence[str] = (),
    inner_classes: Sequence[tuple[str, str | None, str | None, int]] = (),
) -> ClassFile:
    """Build a class whose method bodies are a bare ``return``.

    References are placed in the constant pool only; the hierarchy and the
    renaming code read them from there.
    """
    pool = ConstantPool()
    this_class = pool.add_class(name)
    super_class = pool.add_class(super_name) if super_name else 0
    interface_indices = [pool.add_class(interface) for interface in interfaces]

    field_infos = [
        MemberInfo(flags, pool.add_utf8(field_name), pool.add_utf8(descriptor))
        for flags, field_name, descriptor in fields
    ]
    method_infos = []
    for spec in methods:
        attributes = []
        if spec.code is not None:
            code = CodeAttribute(
                max_stack=2,
                max_locals=_max_locals(
                    spec.descriptor, static=bool(spec.access & ACC_STATIC)
                ),
                code=spec.code,
                exception_table=[],
            )
            attributes.append(Attribute(pool.add_utf8(ATTR_CODE), code.to_bytes()))
        method_infos.append(
            MemberInfo(
                spec.access,
                pool.add_utf8(spec.name),
                pool.add_utf8(spec.descriptor),
                attributes,
            )
        )

    for owner, member, descriptor in field_refs:
        pool.add_field_ref(owner, member, descriptor)
    for owner, member, descriptor in method_refs:
        pool.add_method_ref(owner, member, descriptor)
    for class_name in class_refs:
        pool.add_class(class_name)

    class_attributes = []
    if inner_classes:
        entries = [
            InnerClassEntry(
                pool.add_class(inner),
                pool.add_class(outer) if outer else 0,
                pool.add_utf8(simple) if simple else 0,
                flags,
            )
            for inner, outer, simple, flags in inner_classes
        ]
        class_attributes.append(
            Attribute(
                pool.add_utf8(ATTR_INNER_CLASSES), inner_classes_to_bytes(entries)
            )
        )

    return ClassFile(
        minor_version=0,
        major_version=52,
        pool=pool,
        access_flags=access,
        this_class=this_class,
        super_class=super_class,
        interfaces=interface_indices,
        fields=field_infos,
        methods=method_infos,
        attributes=class_attributes,
    )


def write_jar(
    path: Path,
    classes: Iterable[ClassFile],
    resources: Mapping[str, bytes] | None = None,
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        for classfile in classes:
            archive.writestr(classfile.name + CLASS_SUFFIX, classfile.to_bytes())
        for name, data in (resources or {}).items():
            archive.writestr(name, data)
    return path


def write_zip(path: Path, entries: Mapping[str, bytes | str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return path


def read_classes(path: Path) -> dict[str, ClassFile]:
    classes = {}
    for name, data in iter_archive(path):
        if name.endswith(CLASS_SUFFIX):
            classfile = ClassFile.parse(data)
            classes[classfile.name] = classfile
    return classes


def entry_names(path: Path) -> list[str]:
    with zipfile.ZipFile(path) as archive:
        return archive.namelist()


def field_names(classfile: ClassFile) -> list[str]:
    return [classfile.member_name(f) for f in classfile.fields]


def method_names(classfile: ClassFile) -> list[str]:
    return [classfile.member_name(m) for m in classfile.methods]


def find_method(classfile: ClassFile, name: str) -> MemberInfo:
    for method in classfile.methods:
        if classfile.member_name(method) == name:
            return method
    msg = f"{classfile.name} has no method {name}"
    raise AssertionError(msg)


def member_refs(classfile: ClassFile) -> set[tuple[str, str, str, bool]]:
    """Every (owner, name, descriptor, is_field) reference of the pool."""
    pool = classfile.pool
    return {
        (*pool.member_ref(index), constant.tag == CONSTANT_FIELDREF)
        for index, constant in pool.iter_indexed()
        if constant.tag in MEMBER_REF_TAGS
    }


def local_variables(classfile: ClassFile, method_name: str) -> list[tuple[str, int]]:
    """(name, slot) pairs of a method's LocalVariableTable, empty if absent."""
    method = find_method(classfile, method_name)
    attribute = classfile.find_attribute(ATTR_CODE, method.attributes)
    if attribute is None:
        return []
    code = CodeAttribute.parse(attribute.data)
    table = classfile.find_attribute(ATTR_LOCAL_VARIABLE_TABLE, code.attributes)
    if table is None:
        return []
    return [
        (classfile.pool.utf8(entry.name_index), entry.index)
        for entry in parse_local_variables(table.data)
    ]


def render_stub(classfile: ClassFile) -> str:
    package, _, simple = classfile.name.rpartition("/")
    lines = []
    if package:
        lines += [f"package {package.replace('/', '.')};", ""]
    lines.append(f"public class {simple} {{")
    lines += [f"    int {name};" for name in field_names(classfile)]
    lines += [
        f"    void {name}() {{}}"
        for name in method_names(classfile)
        if not name.startswith("<")
    ]
    lines += ["}", ""]
    return "\n".join(lines)


class StubDecompiler:
    """Decompiler stand-in emitting one stub source per top-level class.

    Classes in ``omit`` produce no result at all and classes in ``empty``
    produce an empty one.
    """

    def __init__(
        self, *, omit: Iterable[str] = (), empty: Iterable[str] = ()
    ) -> None:
        self.omit = frozenset(omit)
        self.empty = frozenset(empty)
        self.calls: list[tuple[Path, tuple[Path, ...]]] = []

    def decompile(
        self, archive: Path, classpath: Sequence[Path], sink: ResultSink
    ) -> None:
        self.calls.append((archive, tuple(classpath)))
        expected, _ = top_level_classes(archive)
        for name, data in iter_archive(archive):
            if not name.endswith(CLASS_SUFFIX):
                continue
            classfile = ClassFile.parse(data)
            if classfile.name not in expected or classfile.name in self.omit:
                continue
            content = "" if classfile.name in self.empty else render_stub(classfile)
            sink.on_class_result(classfile.name, classfile.name + ".java", content)


class Responder:
    """Serve fixed bodies by URL and record every request."""

    def __init__(self, routes: Mapping[str, bytes]) -> None:
        self.routes = dict(routes)
        self.requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url not in self.routes:
            return httpx.Response(404)
        return httpx.Response(200, content=self.routes[url])

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def downloader(self) -> Downloader:
        return Downloader(create_client(transport=self.transport()))
