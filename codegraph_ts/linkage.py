"""Top-level import and export records of a source file.

Only statements at the top level of the file are considered; imports and
exports inside ``declare module`` blocks or namespaces are not part of
the file's own linkage.  Both lists keep source order.
"""

from __future__ import annotations

from typing import Any, List, Optional

from .binder import has_token, unquote
from .models import ExportRecord, ImportRecord
from .parser import SourceFile, iter_named

_DECLARATION_EXPORT_KINDS = {
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "function_signature": "function",
    "class_declaration": "class",
    "abstract_class_declaration": "class",
    "type_alias_declaration": "type",
    "interface_declaration": "interface",
    "lexical_declaration": "const",
    "variable_declaration": "const",
}
_ANONYMOUS_DEFAULTS = {
    "function_expression": "function",
    "function": "function",
    "generator_function": "function",
    "class": "class",
}


def _module_source(source: SourceFile, node: Any) -> str:
    spec = node.child_by_field_name("source")
    return unquote(source.node_text(spec)) if spec is not None else ""


def _import_record(source: SourceFile, statement: Any) -> Optional[ImportRecord]:
    clause = next((c for c in iter_named(statement) if c.type in ("import_clause", "import_require_clause")), None)
    if clause is not None and clause.type == "import_require_clause":
        return None
    spec = _module_source(source, statement)
    if clause is None:
        return ImportRecord(spec, [], "side-effect")

    specifiers: List[str] = []
    default_name = next((c for c in iter_named(clause) if c.type == "identifier"), None)
    if default_name is not None:
        specifiers.append(source.node_text(default_name))

    for part in iter_named(clause):
        if part.type == "namespace_import":
            ident = next((c for c in iter_named(part) if c.type == "identifier"), None)
            if ident is not None:
                specifiers.append(source.node_text(ident))
            return ImportRecord(spec, specifiers, "namespace")
        if part.type == "named_imports":
            for element in iter_named(part):
                if element.type != "import_specifier":
                    continue
                name_node = element.child_by_field_name("name")
                alias_node = element.child_by_field_name("alias")
                imported = unquote(source.node_text(name_node)) if name_node is not None else ""
                local = unquote(source.node_text(alias_node)) if alias_node is not None else imported
                specifiers.append(imported if imported == local else f"{imported} as {local}")
            return ImportRecord(spec, specifiers, "named")

    if default_name is not None:
        return ImportRecord(spec, specifiers, "default")
    return ImportRecord(spec, specifiers, "unknown")


def extract_imports(source: SourceFile) -> List[ImportRecord]:
    """One record per top-level ``import`` statement, in source order."""
    records: List[ImportRecord] = []
    for statement in iter_named(source.root):
        if statement.type != "import_statement":
            continue
        record = _import_record(source, statement)
        if record is not None:
            records.append(record)
    return records


def _declaration_names(source: SourceFile, declaration: Any) -> List[str]:
    if declaration.type in ("lexical_declaration", "variable_declaration"):
        names: List[str] = []
        for declarator in iter_named(declaration):
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            if name is not None:
                names.append(source.node_text(name))
        return names
    name = declaration.child_by_field_name("name")
    return [source.node_text(name)] if name is not None else []


def _exported_declaration(source: SourceFile, statement: Any, declaration: Any) -> List[ExportRecord]:
    if declaration.type == "ambient_declaration":
        inner = next((c for c in iter_named(declaration) if c.type in _DECLARATION_EXPORT_KINDS), None)
        if inner is None:
            return []
        declaration = inner
    kind = _DECLARATION_EXPORT_KINDS.get(declaration.type)
    if kind is None:
        return []
    names = _declaration_names(source, declaration)
    if not names and kind in ("function", "class") and has_token(statement, "default"):
        names = ["default"]
    return [ExportRecord(name, kind) for name in names if name]


def _export_records(source: SourceFile, statement: Any) -> List[ExportRecord]:
    declaration = statement.child_by_field_name("declaration")
    if declaration is not None:
        return _exported_declaration(source, statement, declaration)

    if has_token(statement, "default") or has_token(statement, "="):
        value = statement.child_by_field_name("value")
        if value is not None and value.type in _ANONYMOUS_DEFAULTS and has_token(statement, "default"):
            name_node = value.child_by_field_name("name")
            name = source.node_text(name_node) if name_node is not None else "default"
            return [ExportRecord(name, _ANONYMOUS_DEFAULTS[value.type])]
        return [ExportRecord("default", "unknown")]

    clause = next((c for c in iter_named(statement) if c.type == "export_clause"), None)
    if clause is not None:
        records: List[ExportRecord] = []
        for element in iter_named(clause):
            if element.type != "export_specifier":
                continue
            name_node = element.child_by_field_name("name")
            alias_node = element.child_by_field_name("alias")
            local = unquote(source.node_text(name_node)) if name_node is not None else ""
            exported = unquote(source.node_text(alias_node)) if alias_node is not None else local
            label = exported if exported == local else f"{local} as {exported}"
            if label:
                records.append(ExportRecord(label, "unknown"))
        return records

    if any(c.type == "namespace_export" for c in iter_named(statement)):
        return []
    if has_token(statement, "*"):
        return [ExportRecord("*", "unknown")]
    return []


def extract_exports(source: SourceFile) -> List[ExportRecord]:
    """Exported names of top-level statements, in source order."""
    records: List[ExportRecord] = []
    for statement in iter_named(source.root):
        if statement.type == "export_statement":
            records.extend(_export_records(source, statement))
    return records

