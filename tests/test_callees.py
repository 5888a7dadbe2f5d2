"""Tests for callee naming, target resolution and declaration locations."""

from codegraph_ts.callees import (
    is_external_file,
    locate_declaration,
    normalize_callee_name,
    normalize_constructor_name,
    resolve_call_target,
    resolve_construct_target,
)
from codegraph_ts.config import AMBIENT_LIB_FILE, Settings
from codegraph_ts.binder import DeclKind
from codegraph_ts.models import Position


def _callee(find_node, source, text):
    return find_node(source, "call_expression", text).child_by_field_name("function")


class TestNames:
    def test_identifier_and_member_names(self, checked, find_node):
        source, checker = checked(
            "class Counter { inc() { return 1; } }\n"
            "const c = new Counter();\n"
            "c.inc();\n"
            "console.log('x');\n"
            "go();\n"
        )

        assert normalize_callee_name(_callee(find_node, source, "c.inc()"), source, checker) == "Counter.inc"
        assert normalize_callee_name(_callee(find_node, source, "console.log('x')"), source, checker) == "Console.log"
        assert normalize_callee_name(_callee(find_node, source, "go()"), source, checker) == "go"

    def test_untyped_receiver_uses_receiver_text(self, checked, find_node):
        source, checker = checked("declare const lib: any;\nlib.run();\n")

        assert normalize_callee_name(_callee(find_node, source, "lib.run()"), source, checker) == "lib.run"

    def test_primitive_receiver_uses_type_text(self, checked, find_node):
        source, checker = checked("const s = 'a';\ns.trim();\n")

        assert normalize_callee_name(_callee(find_node, source, "s.trim()"), source, checker) == "string.trim"

    def test_element_access_and_parentheses(self, checked, find_node):
        source, checker = checked("const handlers: any = {};\nhandlers['x']();\n(go)();\n")

        assert normalize_callee_name(_callee(find_node, source, "handlers['x']()"), source, checker) == "handlers[...]"
        assert normalize_callee_name(_callee(find_node, source, "(go)()"), source, checker) == "go"

    def test_constructor_names(self, checked, find_node):
        source, checker = checked(
            "namespace shapes { export class Square {} }\n"
            "new shapes.Square();\n"
            "new Map();\n"
        )
        member = find_node(source, "new_expression", "new shapes.Square()").child_by_field_name("constructor")
        ident = find_node(source, "new_expression", "new Map()").child_by_field_name("constructor")

        assert normalize_constructor_name(member, source, checker) == "Square"
        assert normalize_constructor_name(ident, source, checker) == "Map"


class TestResolution:
    def test_call_resolves_to_function(self, checked, find_node):
        source, checker = checked("function add(a: number, b: number) { return a + b; }\nadd(2, 3);\n")

        decl, sig = resolve_call_target(find_node(source, "call_expression"), source, checker)
        assert decl.kind is DeclKind.FUNCTION
        assert decl.name == "add"
        assert [p.name for p in sig.parameters] == ["a", "b"]

    def test_unresolvable_call(self, checked, find_node):
        source, checker = checked("nowhere();\n")

        decl, sig = resolve_call_target(find_node(source, "call_expression"), source, checker)
        assert decl is None
        assert sig is None

    def test_construct_falls_back_to_class(self, checked, find_node):
        source, checker = checked("class Counter {}\nnew Counter();\n")

        decl, sig = resolve_construct_target(find_node(source, "new_expression"), source, checker)
        assert sig is None
        assert decl.kind is DeclKind.CLASS

    def test_construct_prefers_constructor(self, checked, find_node):
        source, checker = checked("class P { constructor(x: number) {} }\nnew P(1);\n")

        decl, sig = resolve_construct_target(find_node(source, "new_expression"), source, checker)
        assert decl.kind is DeclKind.CONSTRUCTOR
        assert sig is not None


class TestLocations:
    def test_exported_function_span_includes_export_keyword(self, checked):
        source, checker = checked("// header\nexport function f() {}\n")
        decl = checker.binding(source).module_scope.symbols["f"].declarations[0]

        loc = locate_declaration(decl)
        assert loc.file_name == source.file_name
        assert loc.pos == len("// header\n")
        assert loc.range.start == Position(1, 0)
        assert loc.range.end == Position(1, len("export function f() {}"))

    def test_method_span_is_method_itself(self, checked):
        source, checker = checked("class C {\n  run() {}\n}\n")
        method = checker.binding(source).module_scope.symbols["C"].members["run"].declarations[0]

        loc = locate_declaration(method)
        assert loc.range.start == Position(1, 2)

    def test_decorators_belong_to_the_span(self, checked):
        head = "function dec(...a: any[]) {}\n"
        source, checker = checked(head + "@dec\nclass C {\n  @dec\n  @dec\n  run() {}\n}\n")
        klass = checker.binding(source).module_scope.symbols["C"]
        method = klass.members["run"].declarations[0]

        class_loc = locate_declaration(klass.declarations[0])
        assert class_loc.pos == len(head)
        assert class_loc.range.start == Position(1, 0)
        method_loc = locate_declaration(method)
        assert method_loc.range.start == Position(3, 2)
        assert method_loc.range.end == Position(5, 10)

    def test_external_classification(self):
        settings = Settings()

        assert is_external_file("/proj/node_modules/lodash/index.d.ts", settings)
        assert is_external_file("C:\\proj\\node_modules\\x\\a.d.ts", settings)
        assert is_external_file("/usr/lib/node_modules/typescript/lib/lib.es5.d.ts", settings)
        assert is_external_file(str(AMBIENT_LIB_FILE), settings)
        assert not is_external_file("/proj/src/app.ts", settings)

    def test_custom_markers(self):
        settings = Settings(external_markers=("/vendor/",))

        assert is_external_file("/proj/vendor/lib.ts", settings)
        assert not is_external_file("/proj/node_modules/x.ts", settings)
