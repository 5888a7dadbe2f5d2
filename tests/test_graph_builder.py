"""Tests for declaration graph construction."""

from codegraph_ts.aggregator import aggregate_calls
from codegraph_ts.config import Settings
from codegraph_ts.graph_builder import build_graph, clamp_text, edge_key, node_id


def _graph(checked, text, settings=None, name="sample.ts"):
    source, checker = checked(text, name)
    return build_graph(source, checker, settings or Settings())


def _node(graph, kind, name):
    matches = [n for n in graph.nodes if n.kind == kind and n.name == name]
    assert len(matches) == 1, f"expected one {kind} node named {name}"
    return matches[0]


def _edges(graph, kind):
    return [e for e in graph.edges if e.kind == kind]


def test_helpers():
    assert node_id("function", "add", 12) == "function:add@12"
    assert edge_key("calls", "a", "b") == "calls:a->b@@@@"
    assert edge_key("dataflow", "a", "b", "x ← 1", "arg#0") == "dataflow:a->b@@x ← 1@@arg#0"
    assert clamp_text("a  \n  b", 10) == "a b"
    assert clamp_text("abcdef", 4) == "abc…"


def test_file_root_node_always_present(checked):
    graph = _graph(checked, "")

    assert [n.id for n in graph.nodes] == ["file:sample.ts@0"]
    assert graph.nodes[0].kind == "file"
    assert graph.edges == []


def test_scenario_function_call_with_dataflow(checked):
    graph = _graph(checked, "function add(a: number, b: number) { return a + b; }\nadd(2, 3);\n")
    root = graph.nodes[0]
    add = _node(graph, "function", "add")

    assert add.id == "function:add@0"
    assert add.signature == "(a: number, b: number): number"
    calls = _edges(graph, "calls")
    assert [(e.source, e.target) for e in calls] == [(root.id, add.id)]
    assert calls[0].label is None

    dataflow = _edges(graph, "dataflow")
    assert [e.label for e in dataflow] == ["a: number ← 2: number", "b: number ← 3: number"]
    assert all(e.source == root.id and e.target == add.id for e in dataflow)
    assert dataflow[0].id.endswith("@@arg#0")
    assert dataflow[1].id.endswith("@@arg#1")


def test_scenario_class_construct_and_method_call(checked):
    graph = _graph(
        checked,
        "class Counter {\n"
        "  inc(step = 1) { return step; }\n"
        "}\n"
        "const c = new Counter();\n"
        "c.inc(2);\n",
    )
    root = graph.nodes[0]
    counter = _node(graph, "class", "Counter")
    inc = _node(graph, "method", "Counter.inc")

    assert counter.signature is None
    assert inc.signature == "(step?: number): number"
    assert [(e.source, e.target) for e in _edges(graph, "constructs")] == [(root.id, counter.id)]
    assert [(e.source, e.target) for e in _edges(graph, "calls")] == [(root.id, inc.id)]
    assert [e.label for e in _edges(graph, "dataflow")] == ["step: number ← 2: number"]


def test_constructor_call_targets_class_node(checked):
    graph = _graph(
        checked,
        "class Point {\n"
        "  constructor(public x: number) {}\n"
        "}\n"
        "new Point(4);\n",
    )
    point = _node(graph, "class", "Point")

    assert [e.target for e in _edges(graph, "constructs")] == [point.id]
    assert [e.label for e in _edges(graph, "dataflow")] == ["x: number ← 4: number"]


def test_calls_inside_functions_use_enclosing_owner(checked):
    graph = _graph(
        checked,
        "function helper() { return 1; }\n"
        "function main() {\n"
        "  const run = () => helper();\n"
        "  return run();\n"
        "}\n",
    )
    helper = _node(graph, "function", "helper")
    main = _node(graph, "function", "main")

    assert [(e.source, e.target) for e in _edges(graph, "calls")] == [(main.id, helper.id)]


def test_methods_own_their_calls(checked):
    graph = _graph(
        checked,
        "function log(msg: string) {}\n"
        "class Service {\n"
        "  run() { log('run'); }\n"
        "}\n",
    )
    run = _node(graph, "method", "Service.run")
    log = _node(graph, "function", "log")

    calls = _edges(graph, "calls")
    assert [(e.source, e.target) for e in calls] == [(run.id, log.id)]
    assert [e.label for e in _edges(graph, "dataflow")] == ["msg: string ← 'run': string"]


def test_accessors_and_constructors_are_not_nodes(checked):
    graph = _graph(
        checked,
        "class Box {\n"
        "  constructor() {}\n"
        "  get size() { return 1; }\n"
        "  set size(v: number) {}\n"
        "  open() {}\n"
        "}\n",
    )

    assert sorted(n.name for n in graph.nodes if n.kind == "method") == ["Box.open"]


def test_anonymous_functions_are_not_nodes(checked):
    graph = _graph(checked, "const f = function () {};\nconst g = () => 1;\nexport default function () {}\n")

    assert [n.kind for n in graph.nodes] == ["file"]


def test_nested_named_functions_are_nodes(checked):
    graph = _graph(checked, "function outer() {\n  function inner() {}\n  inner();\n}\n")
    outer = _node(graph, "function", "outer")
    inner = _node(graph, "function", "inner")

    assert [(e.source, e.target) for e in _edges(graph, "calls")] == [(outer.id, inner.id)]


def test_exported_declarations_start_at_export_keyword(checked):
    first = "\nexport function f() {}\n"
    graph = _graph(checked, first + "export class K {}\n")

    assert _node(graph, "function", "f").id == "function:f@1"
    assert _node(graph, "class", "K").id == f"class:K@{len(first)}"


def test_decorated_method_starts_at_decorator(checked):
    head = "function dec(...a: any[]) {}\nclass A {\n  "
    graph = _graph(checked, head + "@dec m() { helper(); }\n}\nfunction helper() {}\n")
    method = _node(graph, "method", "A.m")
    helper = _node(graph, "function", "helper")

    assert method.id == f"method:A.m@{len(head)}"
    assert method.range.start.character == 2
    assert [(e.source, e.target) for e in _edges(graph, "calls")] == [(method.id, helper.id)]


def test_ids_count_astral_characters_as_two_units(checked):
    graph = _graph(checked, "const s = '😀'; function f() {} f();\n")
    f = _node(graph, "function", "f")

    assert f.id == "function:f@16"
    assert f.range.start.character == 16


def test_calls_in_parameter_defaults_make_no_edge(checked):
    source, checker = checked(
        "function foo(n: number) { return n; }\n"
        "function outer() {\n"
        "  function inner(q = foo(2)) {}\n"
        "  inner();\n"
        "}\n"
    )
    graph = build_graph(source, checker, Settings())
    foo = _node(graph, "function", "foo")

    assert all(e.target != foo.id for e in graph.edges)
    assert [(e.source, e.target) for e in _edges(graph, "calls")] == [
        (_node(graph, "function", "outer").id, _node(graph, "function", "inner").id),
    ]
    counts = {c.callee_name: c.count for c in aggregate_calls(source, checker, Settings())}
    assert counts["foo"] == 1


def test_repeated_calls_dedupe_edges(checked):
    graph = _graph(checked, "function f(x: number) {}\nf(1);\nf(1);\nf(2);\n")

    assert len(_edges(graph, "calls")) == 1
    assert sorted(e.label for e in _edges(graph, "dataflow")) == ["x: number ← 1: number", "x: number ← 2: number"]
    ids = [e.id for e in graph.edges]
    assert len(ids) == len(set(ids))


def test_external_and_unresolved_calls_make_no_edges(checked):
    graph = _graph(checked, "JSON.parse('{}');\nmissing();\nconsole.log(1);\n")

    assert graph.edges == []


def test_extra_arguments_are_dropped_and_missing_ones_skipped(checked):
    graph = _graph(checked, "function f(a: number, b?: number) {}\nf(1, 2, 3);\nf(4);\n")

    labels = sorted(e.label for e in _edges(graph, "dataflow"))
    assert labels == ["a: number ← 1: number", "a: number ← 4: number", "b: number ← 2: number"]


def test_dataflow_label_clamping(checked):
    long_arg = "'" + "x" * 100 + "'"
    graph = _graph(checked, f"function f(s: string) {{}}\nf({long_arg});\n")

    (edge,) = _edges(graph, "dataflow")
    arg_part = edge.label.split(" ← ", 1)[1]
    assert arg_part.startswith("'xxx")
    assert arg_part.endswith("…: string")
    assert len(arg_part) == 80 + len(": string")


def test_multiline_arguments_collapse_whitespace(checked):
    graph = _graph(checked, "function f(o: any) {}\nf({\n  a: 1,\n  b: 2\n});\n")

    (edge,) = _edges(graph, "dataflow")
    assert "\n" not in edge.label
    assert edge.label.startswith("o: any ← { a: 1, b: 2 }")


def test_graph_is_closed(checked, sample_project_path):
    text = (sample_project_path / "dataflow.ts").read_text(encoding="utf-8")
    graph = _graph(checked, text, name="dataflow.ts")

    ids = set(graph.node_ids())
    assert len(ids) == len(graph.nodes)
    for edge in graph.edges:
        assert edge.source in ids
        assert edge.target in ids


def test_tagged_template_makes_no_edge(checked):
    graph = _graph(checked, "function tag(s: any) {}\ntag`x`;\n")

    assert graph.edges == []
