"""Parsers for the first-level (SRG) mapping tables.

``joined.srg`` maps obfuscated names to searge names::

    PK: . net/minecraft/src
    CL: a net/minecraft/util/math/AxisAlignedBB
    FD: a/a net/minecraft/util/math/AxisAlignedBB/field_72340_a
    MD: a/a (DDD)La; net/minecraft/util/math/AxisAlignedBB/func_72317_d (DDD)L...;

Field lines carry either two tokens (no descriptors) or four (obfuscated and
mapped descriptor). ``joined.exc`` lists thrown exceptions and parameter
names per method, keyed by the already mapped method::

    net/minecraft/block/Block.func_149674_a(Lnet/...;)V=|p_149674_1_,p_149674_2_
"""

from __future__ import annotations

from contract.errors import MappingFormatError
from mapping.model import ClassNameMapping, MemberNameMapping, ParameterNameMapping

JOINED_SRG = "joined.srg"
JOINED_EXC = "joined.exc"


def _split_member(source: str, line: int, qualified: str) -> tuple[str, str]:
    owner, sep, name = qualified.rpartition("/")
    if not sep or not owner or not name:
        msg = f"expected owner/name, got {qualified!r}"
        raise MappingFormatError(source, line, msg)
    return owner, name


def parse_srg(
    text: str, source: str = JOINED_SRG
) -> tuple[ClassNameMapping, MemberNameMapping]:
    """Parse ``joined.srg`` into class and member tables keyed by obfuscated names.

    Package lines are accepted and ignored: every class carries its own
    ``CL`` line.
    """
    classes: dict[str, str] = {}
    fields: dict[tuple[str, str, str | None], str] = {}
    methods: dict[tuple[str, str, str], str] = {}

    for line_number, raw_line in enumerate(text.splitlines(), 1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        kind, _, rest = line.partition(":")
        tokens = rest.split()
        if kind == "PK":
            if len(tokens) != 2:
                msg = f"PK expects 2 tokens, got {len(tokens)}"
                raise MappingFormatError(source, line_number, msg)
        elif kind == "CL":
            if len(tokens) != 2:
                msg = f"CL expects 2 tokens, got {len(tokens)}"
                raise MappingFormatError(source, line_number, msg)
            classes[tokens[0]] = tokens[1]
        elif kind == "FD":
            if len(tokens) == 2:
                owner, name = _split_member(source, line_number, tokens[0])
                _, mapped = _split_member(source, line_number, tokens[1])
                fields[(owner, name, None)] = mapped
            elif len(tokens) == 4:
                owner, name = _split_member(source, line_number, tokens[0])
                _, mapped = _split_member(source, line_number, tokens[2])
                fields[(owner, name, tokens[1])] = mapped
            else:
                msg = f"FD expects 2 or 4 tokens, got {len(tokens)}"
                raise MappingFormatError(source, line_number, msg)
        elif kind == "MD":
            if len(tokens) != 4:
                msg = f"MD expects 4 tokens, got {len(tokens)}"
                raise MappingFormatError(source, line_number, msg)
            if not tokens[1].startswith("("):
                msg = f"invalid method descriptor {tokens[1]!r}"
                raise MappingFormatError(source, line_number, msg)
            owner, name = _split_member(source, line_number, tokens[0])
            _, mapped = _split_member(source, line_number, tokens[2])
            methods[(owner, name, tokens[1])] = mapped
        else:
            msg = f"unknown record type {kind!r}"
            raise MappingFormatError(source, line_number, msg)

    return ClassNameMapping(classes), MemberNameMapping(fields, methods)


def parse_exc(text: str, source: str = JOINED_EXC) -> ParameterNameMapping:
    """Parse the parameter names of ``joined.exc``.

    Metadata lines (``max_constructor_index=...``) and access overrides
    (``Owner.name(desc)V-Access=PUBLIC``) carry no parameter names and are
    skipped.
    """
    parameters: dict[tuple[str, str, str], tuple[str, ...]] = {}

    for line_number, raw_line in enumerate(text.splitlines(), 1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            msg = "expected key=value"
            raise MappingFormatError(source, line_number, msg)
        if "(" not in key or key.endswith("-Access"):
            continue

        paren = key.index("(")
        qualified, descriptor = key[:paren], key[paren:]
        owner, dot, name = qualified.rpartition(".")
        if not dot or not owner or not name or ")" not in descriptor:
            msg = f"expected Owner.name(descriptor), got {key!r}"
            raise MappingFormatError(source, line_number, msg)

        _, bar, names = value.partition("|")
        if not bar or not names:
            continue
        parameters[(owner, name, descriptor)] = tuple(
            part.strip() for part in names.split(",") if part.strip()
        )

    return ParameterNameMapping(parameters)


__all__ = ["JOINED_EXC", "JOINED_SRG", "parse_exc", "parse_srg"]
