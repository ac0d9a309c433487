"""Access transformations applied to decompiled sources.

A transformation file holds one rule per line::

    # widen a class
    public net.minecraft.server.Foo
    # widen and unfinal a field
    public-f net.minecraft.server.Foo someField
    # one method overload, all methods, all fields, a constructor
    protected net.minecraft.server.Foo doThing(ILjava/lang/String;)V
    public net.minecraft.server.Foo *()
    public net.minecraft.server.Foo *
    public net.minecraft.server.Foo$Inner <init>(I)V

Access levels are ``public``, ``protected``, ``default`` and ``private``;
``-f`` removes and ``+f`` adds ``final``. A rule only ever widens access.
Nested classes use ``$`` in the class name.

Rules are applied to the Java source with tree-sitter, so only the modifier
tokens of the targeted declarations change.
"""

from __future__ import annotations

import logging
import re
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tree_sitter import Language, Node, Parser
from tree_sitter_java import language as get_java_language

from classfile.descriptors import argument_types
from contract.errors import ClassFormatError, MappingFormatError
from transform.access import PACKAGE, PRIVATE, PROTECTED, PUBLIC

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)

WILDCARD = "*"
CONSTRUCTOR = "<init>"

_RULE_ACCESS = re.compile(r"^(public|protected|default|private)([-+]f)?$")
_ACCESS_LEVELS = {
    "private": PRIVATE,
    "default": PACKAGE,
    "protected": PROTECTED,
    "public": PUBLIC,
}
_ACCESS_KEYWORDS = {"public": PUBLIC, "protected": PROTECTED, "private": PRIVATE}
_KEYWORD_BY_LEVEL = {level: keyword for keyword, level in _ACCESS_KEYWORDS.items()}
_MODIFIER_ORDER = (
    "public",
    "protected",
    "private",
    "abstract",
    "default",
    "static",
    "sealed",
    "non-sealed",
    "final",
    "transient",
    "volatile",
    "synchronized",
    "native",
    "strictfp",
)
_TYPE_DECLARATIONS = frozenset(
    {
        "annotation_type_declaration",
        "class_declaration",
        "enum_declaration",
        "interface_declaration",
        "record_declaration",
    }
)
_ANNOTATIONS = frozenset({"annotation", "marker_annotation"})
_PRIMITIVES = {
    "B": "byte",
    "C": "char",
    "D": "double",
    "F": "float",
    "I": "int",
    "J": "long",
    "S": "short",
    "Z": "boolean",
}
_GENERIC_ARGUMENTS = re.compile(r"<[^<>]*>")

_LANGUAGE = Language(get_java_language())
# Parsers are not safe to share between threads.
_LOCAL = threading.local()


def _get_parser() -> Parser:
    parser = getattr(_LOCAL, "parser", None)
    if parser is None:
        parser = _LOCAL.parser = Parser(_LANGUAGE)
    return parser


@dataclass(frozen=True)
class AccessChange:
    level: int
    # True adds final, False removes it, None leaves it alone.
    final: bool | None = None


@dataclass(frozen=True)
class AccessRule:
    class_name: str
    member: str | None
    descriptor: str | None
    change: AccessChange

    def matches_field(self, name: str) -> bool:
        if self.descriptor is not None:
            return False
        return self.member in (WILDCARD, name)

    def matches_method(self, name: str, parameters: Sequence[str]) -> bool:
        if self.member == WILDCARD:
            return self.descriptor == "()" and name != CONSTRUCTOR
        if self.member != name:
            return False
        if self.descriptor is None:
            return True
        expected = [_descriptor_type_name(t) for t in argument_types(self.descriptor)]
        return expected == list(parameters)


def _descriptor_type_name(descriptor: str) -> str:
    """Simple source spelling of a field descriptor, e.g. ``String[]``."""
    dimensions = len(descriptor) - len(descriptor.lstrip("["))
    element = descriptor[dimensions:]
    if element in _PRIMITIVES:
        name = _PRIMITIVES[element]
    else:
        name = re.split(r"[/$]", element[1:-1])[-1]
    return name + "[]" * dimensions


def _source_type_name(text: str, extra_dimensions: int = 0) -> str:
    """Simple spelling of a source type: generics and qualifiers dropped."""
    previous = None
    while previous != text:
        previous, text = text, _GENERIC_ARGUMENTS.sub("", text)
    text = "".join(text.split())
    dimensions = text.count("[]") + extra_dimensions
    base = text.replace("[]", "").rsplit(".", 1)[-1]
    return base + "[]" * dimensions


def parse_rules(text: str, source: str) -> list[AccessRule]:
    rules = []
    for number, raw in enumerate(text.splitlines(), 1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        tokens = line.split()
        if len(tokens) not in (2, 3):
            msg = f"expected '<access> <class> [<member>]', got {line!r}"
            raise MappingFormatError(source, number, msg)
        match = _RULE_ACCESS.match(tokens[0])
        if match is None:
            msg = f"unknown access modifier {tokens[0]!r}"
            raise MappingFormatError(source, number, msg)
        final = None
        if match.group(2):
            final = match.group(2) == "+f"
        change = AccessChange(_ACCESS_LEVELS[match.group(1)], final)

        member = descriptor = None
        if len(tokens) == 3:
            member, paren, rest = tokens[2].partition("(")
            if paren:
                descriptor = paren + rest
                if member != WILDCARD:
                    try:
                        argument_types(descriptor)
                    except ClassFormatError as exc:
                        raise MappingFormatError(source, number, exc.message) from exc
                elif descriptor != "()":
                    msg = "method wildcard must be written '*()'"
                    raise MappingFormatError(source, number, msg)
            if not member:
                msg = "empty member name"
                raise MappingFormatError(source, number, msg)
        rules.append(AccessRule(tokens[1], member, descriptor, change))
    return rules


@dataclass(frozen=True)
class _Edit:
    start: int
    end: int
    text: bytes


class AccessTransformer:
    def __init__(self, rules: Sequence[AccessRule]) -> None:
        self.rules = list(rules)
        by_class: dict[str, list[AccessRule]] = defaultdict(list)
        for rule in self.rules:
            by_class[rule.class_name].append(rule)
        self._by_class = dict(by_class)

    @classmethod
    def load(cls, paths: Sequence[Path]) -> AccessTransformer:
        rules: list[AccessRule] = []
        for path in paths:
            rules.extend(parse_rules(path.read_text(encoding="utf-8"), str(path)))
        logger.info(
            "event=access_transformers_loaded files=%d rules=%d",
            len(paths),
            len(rules),
        )
        return cls(rules)

    def __len__(self) -> int:
        return len(self.rules)

    def transform(self, source: str) -> str:
        """Apply every rule targeting a class declared in ``source``."""
        if not self._by_class:
            return source
        data = source.encode("utf-8")
        tree = _get_parser().parse(data)
        edits = list(self._collect_edits(tree.root_node, data))
        if not edits:
            return source
        for edit in sorted(edits, key=lambda e: e.start, reverse=True):
            data = data[: edit.start] + edit.text + data[edit.end :]
        return data.decode("utf-8")

    def _collect_edits(self, root: Node, data: bytes) -> Iterator[_Edit]:
        package = ""
        for child in root.named_children:
            if child.type == "package_declaration":
                for part in child.named_children:
                    if part.type in ("identifier", "scoped_identifier"):
                        package = _text(part, data)
        prefix = f"{package}." if package else ""
        for child in root.named_children:
            if child.type in _TYPE_DECLARATIONS:
                yield from self._type_edits(child, data, prefix, nested=False)

    def _type_edits(
        self, node: Node, data: bytes, prefix: str, *, nested: bool
    ) -> Iterator[_Edit]:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        separator = "$" if nested else ""
        class_name = prefix + separator + _text(name_node, data)
        rules = self._by_class.get(class_name, [])

        changes = [rule.change for rule in rules if rule.member is None]
        edit = _modifier_edit(node, data, changes)
        if edit is not None:
            yield edit

        body = node.child_by_field_name("body")
        if body is None:
            return
        for member in _body_members(body):
            if member.type in _TYPE_DECLARATIONS:
                yield from self._type_edits(member, data, class_name, nested=True)
            elif rules:
                edit = _member_edit(member, data, rules)
                if edit is not None:
                    yield edit


def _text(node: Node, data: bytes) -> str:
    return data[node.start_byte : node.end_byte].decode("utf-8")


def _body_members(body: Node) -> Iterator[Node]:
    for child in body.named_children:
        if child.type == "enum_body_declarations":
            yield from child.named_children
        else:
            yield child


def _parameter_types(node: Node, data: bytes) -> list[str]:
    parameters = node.child_by_field_name("parameters")
    if parameters is None:
        return []
    names = []
    for parameter in parameters.named_children:
        if parameter.type == "formal_parameter":
            type_node = parameter.child_by_field_name("type")
            dimensions_node = parameter.child_by_field_name("dimensions")
            extra = 0
            if dimensions_node is not None:
                extra = _text(dimensions_node, data).count("[")
            if type_node is not None:
                names.append(_source_type_name(_text(type_node, data), extra))
        elif parameter.type == "spread_parameter":
            for part in parameter.named_children:
                if part.type not in ("modifiers", "variable_declarator"):
                    names.append(_source_type_name(_text(part, data), 1))
                    break
    return names


def _member_edit(member: Node, data: bytes, rules: list[AccessRule]) -> _Edit | None:
    if member.type == "field_declaration":
        names = [
            _text(name, data)
            for declarator in member.children_by_field_name("declarator")
            if (name := declarator.child_by_field_name("name")) is not None
        ]
        changes = [
            rule.change
            for rule in rules
            if rule.member is not None and any(rule.matches_field(n) for n in names)
        ]
    elif member.type in ("method_declaration", "constructor_declaration"):
        if member.type == "constructor_declaration":
            name = CONSTRUCTOR
        else:
            name_node = member.child_by_field_name("name")
            if name_node is None:
                return None
            name = _text(name_node, data)
        parameters = _parameter_types(member, data)
        changes = [
            rule.change
            for rule in rules
            if rule.member is not None and rule.matches_method(name, parameters)
        ]
    else:
        return None
    return _modifier_edit(member, data, changes)


def _modifier_edit(
    node: Node, data: bytes, changes: Sequence[AccessChange]
) -> _Edit | None:
    if not changes:
        return None
    modifiers = next((c for c in node.children if c.type == "modifiers"), None)
    annotations: list[str] = []
    keywords: list[str] = []
    if modifiers is not None:
        for child in modifiers.children:
            if child.type in _ANNOTATIONS:
                annotations.append(_text(child, data))
            else:
                keywords.append(_text(child, data))

    current = max(
        (_ACCESS_KEYWORDS[k] for k in keywords if k in _ACCESS_KEYWORDS),
        default=PACKAGE,
    )
    level = max([current, *(change.level for change in changes)])
    final = "final" in keywords
    for change in changes:
        if change.final is not None:
            final = change.final
    if level == current and final == ("final" in keywords):
        return None

    updated = [k for k in keywords if k not in _ACCESS_KEYWORDS and k != "final"]
    if level != PACKAGE:
        updated.append(_KEYWORD_BY_LEVEL[level])
    if final:
        updated.append("final")
    updated.sort(
        key=lambda k: _MODIFIER_ORDER.index(k)
        if k in _MODIFIER_ORDER
        else len(_MODIFIER_ORDER)
    )
    indent = "\n" + " " * node.start_point[1]
    text = indent.join([*annotations, " ".join(updated)] if updated else annotations)

    if modifiers is None:
        return _Edit(node.start_byte, node.start_byte, (text + " ").encode("utf-8"))
    if not text:
        following = modifiers.next_sibling
        end = following.start_byte if following is not None else modifiers.end_byte
        return _Edit(modifiers.start_byte, end, b"")
    return _Edit(modifiers.start_byte, modifiers.end_byte, text.encode("utf-8"))


__all__ = [
    "CONSTRUCTOR",
    "WILDCARD",
    "AccessChange",
    "AccessRule",
    "AccessTransformer",
    "parse_rules",
]
