from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from helpers import (
    MethodSpec,
    build_class,
    field_names,
    local_variables,
    member_refs,
    method_names,
    read_classes,
    write_jar,
)

from classfile.constants import ACC_PRIVATE
from graph.hierarchy import ArchiveView
from mapping.model import (
    SEARGE_FIELD_PATTERN,
    SEARGE_METHOD_PATTERN,
    ClassNameMapping,
    LocalNameMapping,
    MemberNameMapping,
    NameMapping,
    ParameterNameMapping,
    SeargeNameMapping,
)
from mapping.remapper import MappingRemapper
from transform.engine import ArchiveTransformer
from transform.rename import NameMappingPass
from transform.variables import VariableTableConstructionPass

if TYPE_CHECKING:
    from pathlib import Path

    from classfile.model import ClassFile

SRG = NameMapping(
    classes=ClassNameMapping({"a": "net/x/Foo", "b": "net/x/Bar"}),
    members=MemberNameMapping(
        fields={
            ("a", "a", "I"): "field_1_a",
            ("a", "a", "Ljava/lang/String;"): "field_2_a",
        },
        methods={("a", "b", "(La;)V"): "func_3_b"},
    ),
    parameters=ParameterNameMapping(
        {("net/x/Foo", "func_3_b", "(Lnet/x/Foo;)V"): ("p_3_1_",)}
    ),
)

MCP = NameMapping(
    fields=SeargeNameMapping({"field_1_a": "counter"}, SEARGE_FIELD_PATTERN),
    methods=SeargeNameMapping({"func_3_b": "tick"}, SEARGE_METHOD_PATTERN),
    locals=LocalNameMapping({"p_3_1_": "other"}),
)


def _obfuscated_classes() -> list[ClassFile]:
    return [
        build_class(
            "a",
            fields=((ACC_PRIVATE, "a", "I"), (ACC_PRIVATE, "a", "Ljava/lang/String;")),
            methods=(MethodSpec("b", "(La;)V"),),
        ),
        build_class(
            "b",
            super_name="a",
            field_refs=(("b", "a", "I"),),
            method_refs=(("b", "b", "(La;)V"),),
        ),
        build_class("c", fields=((0, "a", "I"),), field_refs=(("c", "a", "I"),)),
        build_class("a$1", class_refs=("a",)),
    ]


def _srg_jar(tmp_path: Path) -> Path:
    source = write_jar(tmp_path / "server.jar", _obfuscated_classes())
    target = tmp_path / "server-srg.jar"
    ArchiveTransformer(
        [VariableTableConstructionPass(), NameMappingPass(SRG)]
    ).transform(source, target)
    return target


def test_declarations_are_renamed_by_owner_and_descriptor(tmp_path: Path) -> None:
    classes = read_classes(_srg_jar(tmp_path))

    assert sorted(classes) == ["c", "net/x/Bar", "net/x/Foo", "net/x/Foo$1"]
    assert field_names(classes["net/x/Foo"]) == ["field_1_a", "field_2_a"]
    assert method_names(classes["net/x/Foo"]) == ["func_3_b"]
    # Same obfuscated name in an unrelated class is left alone.
    assert field_names(classes["c"]) == ["a"]
    assert ("c", "a", "I", True) in member_refs(classes["c"])


def test_references_through_a_subclass_follow_the_declaration(tmp_path: Path) -> None:
    bar = read_classes(_srg_jar(tmp_path))["net/x/Bar"]

    assert bar.super_name == "net/x/Foo"
    assert member_refs(bar) == {
        ("net/x/Bar", "field_1_a", "I", True),
        ("net/x/Bar", "func_3_b", "(Lnet/x/Foo;)V", False),
    }


def test_nested_classes_follow_their_outer_class(tmp_path: Path) -> None:
    classes = read_classes(_srg_jar(tmp_path))

    assert "net/x/Foo$1" in classes


def test_parameters_are_named_after_renaming(tmp_path: Path) -> None:
    foo = read_classes(_srg_jar(tmp_path))["net/x/Foo"]

    assert local_variables(foo, "func_3_b") == [("this", 0), ("p_3_1_", 1)]


def test_second_level_names_replace_searge_identifiers(tmp_path: Path) -> None:
    target = tmp_path / "server-mcp.jar"
    ArchiveTransformer([NameMappingPass(MCP)]).transform(_srg_jar(tmp_path), target)

    classes = read_classes(target)
    foo = classes["net/x/Foo"]
    assert field_names(foo) == ["counter", "field_2_a"]
    assert method_names(foo) == ["tick"]
    assert local_variables(foo, "tick") == [("this", 0), ("other", 1)]
    assert member_refs(classes["net/x/Bar"]) == {
        ("net/x/Bar", "counter", "I", True),
        ("net/x/Bar", "tick", "(Lnet/x/Foo;)V", False),
    }


def test_signatures_are_remapped() -> None:
    view = ArchiveView.from_classfiles(_obfuscated_classes())
    remapper = MappingRemapper(SRG, view)

    assert remapper.map_signature("Ljava/util/List<La;>;") == (
        "Ljava/util/List<Lnet/x/Foo;>;"
    )
    assert remapper.map_signature("<T:La;>(TT;Lb;)La<TT;>.c;") == (
        "<T:Lnet/x/Foo;>(TT;Lnet/x/Bar;)Lnet/x/Foo<TT;>.c;"
    )
    assert remapper.map_signature("I") == "I"


@pytest.mark.parametrize(
    ("signature", "expected"),
    [
        ("<T:Ljava/lang/Object;>(TT;)V", "<T:Ljava/lang/Object;>(TT;)V"),
        ("(Ljava/util/List<La;>;)V", "(Ljava/util/List<Lnet/x/Foo;>;)V"),
        ("()Ljava/util/List<La;>;", "()Ljava/util/List<Lnet/x/Foo;>;"),
        ("<E:La;>()V^TE;", "<E:Lnet/x/Foo;>()V^TE;"),
        (
            "(La;)V^Lb;^Ljava/io/IOException;",
            "(Lnet/x/Foo;)V^Lnet/x/Bar;^Ljava/io/IOException;",
        ),
    ],
)
def test_method_signatures_with_and_without_throws(
    signature: str, expected: str
) -> None:
    remapper = MappingRemapper(SRG, ArchiveView([]))

    assert remapper.map_signature(signature) == expected


def test_descriptors_and_array_class_entries_are_remapped() -> None:
    remapper = MappingRemapper(SRG, ArchiveView([]))

    assert remapper.map_descriptor("(La;[Lb;I)La;") == (
        "(Lnet/x/Foo;[Lnet/x/Bar;I)Lnet/x/Foo;"
    )
    assert remapper.map_class_entry("[[La;") == "[[Lnet/x/Foo;"
    assert remapper.map_class_entry("java/lang/Object") == "java/lang/Object"


def test_constructors_are_never_renamed() -> None:
    mapping = NameMapping(
        members=MemberNameMapping(methods={("a", "<init>", "()V"): "func_9_x"})
    )
    remapper = MappingRemapper(mapping, ArchiveView([]))

    assert remapper.map_method_name("a", "<init>", "()V") == "<init>"
