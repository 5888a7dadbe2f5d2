"""Tests for the tree-sitter front end."""

import pytest

from codegraph_ts.models import Position
from codegraph_ts.parser import Dialect, load_language, parse_source, pick_dialect, walk_preorder


@pytest.mark.parametrize(
    "file_name, language_id, expected",
    [
        ("a.ts", "", Dialect.TS),
        ("a.d.ts", "", Dialect.TS),
        ("a.tsx", "", Dialect.TSX),
        ("a.js", "", Dialect.JS),
        ("a.mjs", "", Dialect.JS),
        ("a.jsx", "", Dialect.JSX),
        ("Untitled-1", "typescriptreact", Dialect.TSX),
        ("Untitled-1", "javascript", Dialect.JS),
        ("notes.txt", "", Dialect.TS),
    ],
)
def test_pick_dialect(file_name, language_id, expected):
    assert pick_dialect(file_name, language_id) is expected


def test_load_language_is_cached():
    assert load_language(Dialect.TS) is load_language(Dialect.TS)


def test_parse_source_builds_tree():
    source = parse_source("/tmp/x.ts", "const x: number = 1;\n", Dialect.TS)

    assert source is not None
    assert source.root.type == "program"
    assert source.dialect is Dialect.TS
    assert not source.root.has_error


def test_tsx_dialect_parses_jsx():
    source = parse_source("/tmp/x.tsx", "const el = <div>{1}</div>;\n", Dialect.TSX)

    assert source is not None
    assert any(n.type == "jsx_element" for n in walk_preorder(source.root))


def test_positions_are_zero_based():
    text = "const a = 1;\nfunction f() {}\n"
    source = parse_source("/tmp/x.ts", text, Dialect.TS)
    func = next(n for n in walk_preorder(source.root) if n.type == "function_declaration")

    rng = source.node_range(func)
    assert rng.start == Position(1, 0)
    assert rng.end == Position(1, 15)
    assert source.char_offset(func.start_byte) == text.index("function")


def test_offsets_count_characters_not_bytes():
    text = 'const s = "héllo";\nf();\n'
    source = parse_source("/tmp/x.ts", text, Dialect.TS)
    call = next(n for n in walk_preorder(source.root) if n.type == "call_expression")

    assert source.char_offset(call.start_byte) == text.index("f();")
    string = next(n for n in walk_preorder(source.root) if n.type == "string")
    assert source.node_range(string).end == Position(0, len('const s = "héllo"'))
    assert source.node_text(string) == '"héllo"'


def test_astral_characters_count_as_two_units():
    text = "const s = '😀'; function f() {}\n// 😀😀\nf();\n"
    source = parse_source("/tmp/x.ts", text, Dialect.TS)
    func = next(n for n in walk_preorder(source.root) if n.type == "function_declaration")
    call = next(n for n in walk_preorder(source.root) if n.type == "call_expression")

    assert source.char_offset(func.start_byte) == 16
    assert source.node_range(func).start == Position(0, 16)
    assert source.node_range(func).end == Position(0, 31)
    assert source.char_offset(call.start_byte) == 32 + 8
    assert source.node_range(call).start == Position(2, 0)


def test_full_range_covers_text():
    text = "let a = 1;\nlet b = 2;"
    source = parse_source("/tmp/x.ts", text, Dialect.TS)

    assert source.full_range().start == Position(0, 0)
    assert source.full_range().end == Position(1, 10)


def test_parse_tolerates_syntax_errors():
    source = parse_source("/tmp/x.ts", "function broken( {\n", Dialect.TS)

    assert source is not None
    assert source.root.has_error


def test_walk_preorder_visits_parent_first():
    source = parse_source("/tmp/x.ts", "f(g());", Dialect.TS)
    calls = [source.node_text(n) for n in walk_preorder(source.root) if n.type == "call_expression"]

    assert calls == ["f(g())", "g()"]
