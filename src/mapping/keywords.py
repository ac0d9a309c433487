"""Replacement of identifiers that are reserved words in Java source.

After the second-level rename some classes, fields or methods may be called
``if``, ``do`` or ``new``, which the decompiler cannot emit. Each such name is
replaced by ``<role>_<md5 hex>`` where the digest covers the fields that make
the element unique, separated by a NUL byte:

* class: the original internal name,
* field or method: declaring owner, name and descriptor.

The declaring owner is resolved through the class hierarchy, so a reference
made through a subclass and an override of an inherited method get the same
replacement as the declaration. Replacement names are never reserved, which
makes the resolver idempotent.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

from classfile.constants import ACC_PRIVATE
from mapping.remapper import Remapper

if TYPE_CHECKING:
    from graph.hierarchy import ArchiveView

JAVA_KEYWORDS = frozenset(
    {
        "abstract", "assert", "boolean", "break", "byte",
        "case", "catch", "char", "class", "const",
        "continue", "default", "do", "double", "else",
        "enum", "extends", "final", "finally", "float",
        "for", "goto", "if", "implements", "import",
        "instanceof", "int", "interface", "long", "native",
        "new", "package", "private", "protected", "public",
        "return", "short", "static", "strictfp", "super",
        "switch", "synchronized", "this", "throw", "throws",
        "transient", "try", "void", "volatile", "while",
    }
)  # fmt: skip

_SEPARATOR = b"\x00"


def is_reserved(identifier: str) -> bool:
    return identifier in JAVA_KEYWORDS


def digest_hex(*elements: str) -> str:
    """MD5 over the UTF-8 encoded elements joined by a NUL byte.

    A fresh digest object per call; no state is shared between calls.
    """
    digest = hashlib.md5(usedforsecurity=False)
    for position, element in enumerate(elements):
        if position:
            digest.update(_SEPARATOR)
        digest.update(element.encode("utf-8"))
    return digest.hexdigest()


def safe_class_name(internal_name: str) -> str:
    """Replace a reserved simple class name, keeping the package.

    Each nested class segment after a ``$`` is checked on its own.

    Examples:
        >>> safe_class_name("net/minecraft/Foo")
        'net/minecraft/Foo'
        >>> safe_class_name("do")
        'class_d4579b2688d675235f402f6b4b43bcbf'
    """
    dollar = internal_name.rfind("$")
    if dollar > internal_name.rfind("/"):
        # Nested class: the outer name and the member segment are checked apart.
        outer = safe_class_name(internal_name[:dollar])
        simple = internal_name[dollar + 1 :]
        if is_reserved(simple):
            simple = f"class_{digest_hex(internal_name)}"
        return f"{outer}${simple}"
    slash = internal_name.rfind("/")
    simple = internal_name[slash + 1 :]
    if not is_reserved(simple):
        return internal_name
    return f"{internal_name[: slash + 1]}class_{digest_hex(internal_name)}"


def safe_member_name(role: str, owner: str, name: str, descriptor: str) -> str:
    if not is_reserved(name):
        return name
    return f"{role}_{digest_hex(owner, name, descriptor)}"


class KeywordRemapper(Remapper):
    """Remapper renaming reserved identifiers and nothing else."""

    def __init__(self, view: ArchiveView) -> None:
        self.view = view

    def map_type(self, internal_name: str) -> str:
        return safe_class_name(internal_name)

    def _field_owner(self, owner: str, name: str, descriptor: str) -> str:
        declaring = self.view.declaring_class(owner, name, descriptor, method=False)
        return declaring if declaring is not None else owner

    def _method_owner(self, owner: str, name: str, descriptor: str) -> str:
        """Topmost class of the lineage declaring an overridable method.

        A private declaration only counts for references made directly
        through its own class.
        """
        resolved = owner
        for summary in self.view.lineage(owner):
            access = summary.methods.get((name, descriptor))
            if access is None:
                continue
            if access & ACC_PRIVATE and summary.name != owner:
                continue
            resolved = summary.name
        return resolved

    def map_field_name(self, owner: str, name: str, descriptor: str) -> str:
        if not is_reserved(name):
            return name
        declaring = self._field_owner(owner, name, descriptor)
        return safe_member_name("field", declaring, name, descriptor)

    def map_method_name(self, owner: str, name: str, descriptor: str) -> str:
        if not is_reserved(name):
            return name
        declaring = self._method_owner(owner, name, descriptor)
        return safe_member_name("method", declaring, name, descriptor)


__all__ = [
    "JAVA_KEYWORDS",
    "KeywordRemapper",
    "digest_hex",
    "is_reserved",
    "safe_class_name",
    "safe_member_name",
]
