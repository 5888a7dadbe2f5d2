"""Tests for scope and symbol binding."""

from codegraph_ts.binder import DeclKind, bind_source
from codegraph_ts.parser import Dialect, parse_source


def _bind(text: str, name: str = "/tmp/mod.ts"):
    source = parse_source(name, text, Dialect.TS)
    assert source is not None
    return bind_source(source)


def test_module_scope_declarations():
    binding = _bind(
        "function f() {}\n"
        "class C {}\n"
        "interface I {}\n"
        "type T = number;\n"
        "enum E { A, B }\n"
        "const v = 1;\n"
        'import d from "d";\n'
    )
    symbols = binding.module_scope.symbols

    assert symbols["f"].declarations[0].kind is DeclKind.FUNCTION
    assert symbols["C"].declarations[0].kind is DeclKind.CLASS
    assert symbols["I"].declarations[0].kind is DeclKind.INTERFACE
    assert symbols["T"].declarations[0].kind is DeclKind.TYPE_ALIAS
    assert symbols["E"].declarations[0].kind is DeclKind.ENUM
    assert symbols["v"].declarations[0].kind is DeclKind.VARIABLE
    assert symbols["d"].is_alias
    assert set(symbols["E"].statics) == {"A", "B"}


def test_overloads_merge_into_one_symbol():
    binding = _bind(
        "function fmt(v: number): string;\n"
        "function fmt(v: string, pad?: number): string;\n"
        "function fmt(v: any, pad = 0): string { return String(v); }\n"
    )
    decls = binding.module_scope.symbols["fmt"].declarations

    assert [d.kind for d in decls] == [
        DeclKind.FUNCTION_SIGNATURE, DeclKind.FUNCTION_SIGNATURE, DeclKind.FUNCTION,
    ]
    assert [d.has_body for d in decls] == [False, False, True]


def test_class_members_and_statics():
    binding = _bind(
        "class Counter {\n"
        "  private value = 0;\n"
        "  static zero = 0;\n"
        "  constructor(public start: number) {}\n"
        "  inc(step = 1) { return this.value += step; }\n"
        "  get current() { return this.value; }\n"
        "  static create() { return new Counter(0); }\n"
        "}\n"
    )
    counter = binding.module_scope.symbols["Counter"]

    assert set(counter.members) == {"value", "start", "inc", "current"}
    assert set(counter.statics) == {"zero", "create"}
    assert counter.members["current"].declarations[0].accessor == "get"
    assert counter.members["inc"].parent is counter
    assert len(counter.construct_signatures) == 1
    ctor = counter.construct_signatures[0]
    assert ctor.kind is DeclKind.CONSTRUCTOR
    assert ctor.symbol is counter


def test_interface_members_and_type_parameters():
    binding = _bind(
        "interface Box<T> {\n"
        "  value: T;\n"
        "  map<U>(fn: (v: T) => U): Box<U>;\n"
        "  new (v: T): Box<T>;\n"
        "  (v: T): T;\n"
        "}\n"
    )
    box = binding.module_scope.symbols["Box"]

    assert box.type_parameters == ["T"]
    assert box.members["value"].declarations[0].kind is DeclKind.PROPERTY_SIGNATURE
    assert box.members["map"].declarations[0].kind is DeclKind.METHOD_SIGNATURE
    assert [d.kind for d in box.construct_signatures] == [DeclKind.CONSTRUCT_SIGNATURE]
    assert [d.kind for d in box.call_signatures] == [DeclKind.CALL_SIGNATURE]


def test_block_scoping_and_var_hoisting():
    binding = _bind(
        "function outer() {\n"
        "  if (true) {\n"
        "    let inner = 1;\n"
        "    var hoisted = 2;\n"
        "  }\n"
        "}\n"
    )
    outer = binding.module_scope.symbols["outer"].declarations[0]
    function_scope = binding.scope_for(outer.node.child_by_field_name("body"))

    assert "inner" not in binding.module_scope.symbols
    assert function_scope.lookup("hoisted") is not None
    assert function_scope.lookup("inner") is None


def test_parameters_bound_in_function_scope():
    binding = _bind("function pick({ id, name }: any, ...rest: number[]) {}\n")
    func = binding.module_scope.symbols["pick"].declarations[0]
    scope = binding.scope_for(func.node.child_by_field_name("body"))

    for name in ("id", "name", "rest"):
        symbol = scope.lookup(name)
        assert symbol is not None
        assert symbol.declarations[0].kind is DeclKind.PARAMETER


def test_named_imports_record_module_and_name():
    binding = _bind('import { a as b, c } from "./dep";\nimport * as ns from "./dep";\n')
    symbols = binding.module_scope.symbols

    assert symbols["b"].declarations[0].import_name == "a"
    assert symbols["b"].declarations[0].module_specifier == "./dep"
    assert symbols["c"].declarations[0].import_name == "c"
    assert symbols["ns"].declarations[0].import_name == "*"


def test_export_table():
    binding = _bind(
        "export function f() {}\n"
        "const x = 1;\n"
        "export { x as y };\n"
        'export { z } from "./z";\n'
        'export * from "./all";\n'
        "export default x;\n"
    )
    exports = binding.module_scope.exports

    assert exports["f"].local_name == "f"
    assert exports["y"].local_name == "x"
    assert exports["z"].module_specifier == "./z"
    assert exports["z"].imported_name == "z"
    assert exports["default"].local_name == "x"
    assert binding.module_scope.star_exports == ["./all"]


def test_ambient_module_declarations():
    binding = _bind('declare module "pkg" {\n  export function run(): void;\n}\n', "/tmp/types.d.ts")

    scope = binding.ambient_modules["pkg"]
    assert scope.symbols["run"].declarations[0].kind is DeclKind.FUNCTION_SIGNATURE


def test_namespace_members_are_statics():
    binding = _bind("namespace Util {\n  export function slug(s: string) { return s; }\n}\n")
    util = binding.module_scope.symbols["Util"]

    assert util.declarations[0].kind is DeclKind.NAMESPACE
    assert "slug" in util.statics


def test_declaration_lookup_by_name_node():
    binding = _bind("function greet() {}\n")
    decl = binding.module_scope.symbols["greet"].declarations[0]

    assert binding.declaration_for(decl.node) is decl
    assert binding.declaration_named_by(decl.name_node) is decl
