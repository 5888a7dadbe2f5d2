"""Tests for import / export extraction."""

from codegraph_ts.linkage import extract_exports, extract_imports
from codegraph_ts.models import ExportRecord, ImportRecord
from codegraph_ts.parser import Dialect, parse_source


def _parse(text: str, name: str = "/tmp/mod.ts"):
    source = parse_source(name, text, Dialect.TS)
    assert source is not None
    return source


class TestImports:
    def test_import_kinds_in_source_order(self):
        source = _parse(
            'import "./polyfill";\n'
            'import fs from "fs";\n'
            'import * as path from "path";\n'
            'import { readFile, writeFile as write } from "fs/promises";\n'
            'import React, { useState } from "react";\n'
        )

        assert extract_imports(source) == [
            ImportRecord("./polyfill", [], "side-effect"),
            ImportRecord("fs", ["fs"], "default"),
            ImportRecord("path", ["path"], "namespace"),
            ImportRecord("fs/promises", ["readFile", "writeFile as write"], "named"),
            ImportRecord("react", ["React", "useState"], "named"),
        ]

    def test_default_plus_namespace_is_namespace(self):
        source = _parse('import def, * as ns from "lib";\n')

        assert extract_imports(source) == [ImportRecord("lib", ["def", "ns"], "namespace")]

    def test_type_only_named_import(self):
        source = _parse('import type { User } from "./types";\n')

        assert extract_imports(source) == [ImportRecord("./types", ["User"], "named")]

    def test_nested_imports_ignored(self):
        source = _parse('declare module "x" {\n  import { a } from "y";\n}\n')

        assert extract_imports(source) == []

    def test_dynamic_import_and_require_are_not_imports(self):
        source = _parse('const a = require("a");\nconst b = import("b");\n')

        assert extract_imports(source) == []


class TestExports:
    def test_declaration_exports(self):
        source = _parse(
            "export function f() {}\n"
            "export class C {}\n"
            "export type T = string;\n"
            "export interface I { x: number }\n"
            "export const a = 1, b = 2;\n"
            "export let c = 3;\n"
        )

        assert extract_exports(source) == [
            ExportRecord("f", "function"),
            ExportRecord("C", "class"),
            ExportRecord("T", "type"),
            ExportRecord("I", "interface"),
            ExportRecord("a", "const"),
            ExportRecord("b", "const"),
            ExportRecord("c", "const"),
        ]

    def test_export_clause_and_rename(self):
        source = _parse("const x = 1;\nconst y = 2;\nexport { x, y as z };\n")

        assert extract_exports(source) == [
            ExportRecord("x", "unknown"),
            ExportRecord("y as z", "unknown"),
        ]

    def test_star_reexport(self):
        source = _parse('export * from "./other";\n')

        assert extract_exports(source) == [ExportRecord("*", "unknown")]

    def test_default_expression(self):
        source = _parse("const x = 1;\nexport default x;\n")

        assert extract_exports(source) == [ExportRecord("default", "unknown")]

    def test_named_default_function(self):
        source = _parse("export default function run() {}\n")

        assert extract_exports(source) == [ExportRecord("run", "function")]

    def test_anonymous_default_class(self):
        source = _parse("export default class {}\n")

        assert extract_exports(source) == [ExportRecord("default", "class")]

    def test_export_assignment(self):
        source = _parse("const api = {};\nexport = api;\n")

        assert extract_exports(source) == [ExportRecord("default", "unknown")]

    def test_unexported_declarations_ignored(self):
        source = _parse("function f() {}\nclass C {}\nconst a = 1;\n")

        assert extract_exports(source) == []
