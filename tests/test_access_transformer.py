from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from contract.errors import MappingFormatError
from source.access_transformer import (
    AccessChange,
    AccessRule,
    AccessTransformer,
    parse_rules,
)
from transform.access import PACKAGE, PROTECTED, PUBLIC

if TYPE_CHECKING:
    from pathlib import Path

FOO_SOURCE = """\
package net.minecraft.server;

public class Foo {
    private int counter;
    private final int limit = 3;

    Foo(int value) {
    }

    private void tick(int amount) {
    }

    private void tick(String name) {
    }

    static class Inner {
        Inner(int value) {
        }
    }
}
"""

RULES = """\
# widen the nested class and its constructor
public net.minecraft.server.Foo$Inner
public net.minecraft.server.Foo$Inner <init>(I)V
public net.minecraft.server.Foo counter
public-f net.minecraft.server.Foo limit   # drop final as well
protected net.minecraft.server.Foo tick(Ljava/lang/String;)V
"""


def test_parse_rules_reads_every_form() -> None:
    rules = parse_rules(
        "public net.x.Foo\n"
        "\n"
        "protected+f net.x.Foo value\n"
        "default net.x.Foo run(I[J)V\n"
        "public net.x.Foo *()\n",
        "test.cfg",
    )

    assert rules == [
        AccessRule("net.x.Foo", None, None, AccessChange(PUBLIC)),
        AccessRule("net.x.Foo", "value", None, AccessChange(PROTECTED, final=True)),
        AccessRule("net.x.Foo", "run", "(I[J)V", AccessChange(PACKAGE)),
        AccessRule("net.x.Foo", "*", "()", AccessChange(PUBLIC)),
    ]


@pytest.mark.parametrize(
    ("text", "match"),
    [
        ("publik net.x.Foo\n", "unknown access modifier"),
        ("public\n", "expected"),
        ("public net.x.Foo run(Q)V\n", "invalid type"),
        ("public net.x.Foo *(I)\n", "wildcard"),
        ("public net.x.Foo (I)V\n", "empty member name"),
    ],
)
def test_parse_rules_rejects_malformed_lines(text: str, match: str) -> None:
    with pytest.raises(MappingFormatError, match=match) as excinfo:
        parse_rules("# header\n" + text, "test.cfg")

    assert excinfo.value.line == 2
    assert excinfo.value.source == "test.cfg"


@pytest.fixture
def transformed() -> str:
    return AccessTransformer(parse_rules(RULES, "test.cfg")).transform(FOO_SOURCE)


def test_class_rules_keep_other_modifiers(transformed: str) -> None:
    assert "    public static class Inner {" in transformed
    assert "public class Foo {" in transformed


def test_field_rules_widen_and_drop_final(transformed: str) -> None:
    assert "    public int counter;" in transformed
    assert "    public int limit = 3;" in transformed


def test_method_rules_match_one_overload(transformed: str) -> None:
    assert "    private void tick(int amount) {" in transformed
    assert "    protected void tick(String name) {" in transformed


def test_constructor_rules_target_the_nested_class(transformed: str) -> None:
    assert "        public Inner(int value) {" in transformed
    assert "\n    Foo(int value) {" in transformed


def test_method_wildcard_skips_constructors() -> None:
    source = "package net.x;\n\nclass Bar {\n    Bar() {}\n    void run() {}\n}\n"
    transformer = AccessTransformer(parse_rules("public net.x.Bar *()\n", "t.cfg"))

    result = transformer.transform(source)

    assert "    public void run() {}" in result
    assert "    Bar() {}" in result
    assert "\nclass Bar {" in result


def test_rules_never_narrow_access() -> None:
    rules = "private net.minecraft.server.Foo\nprivate net.minecraft.server.Foo *\n"

    assert AccessTransformer(parse_rules(rules, "t.cfg")).transform(FOO_SOURCE) == (
        FOO_SOURCE
    )


def test_sources_without_matching_classes_are_unchanged() -> None:
    transformer = AccessTransformer(parse_rules("public net.x.Other\n", "t.cfg"))

    assert transformer.transform(FOO_SOURCE) == FOO_SOURCE


def test_load_reads_every_file(tmp_path: Path) -> None:
    first = tmp_path / "first.cfg"
    first.write_text("public net.x.Foo\n", encoding="utf-8")
    second = tmp_path / "second.cfg"
    second.write_text("public net.x.Bar\npublic net.x.Bar *\n", encoding="utf-8")

    assert len(AccessTransformer.load([first, second])) == 3
