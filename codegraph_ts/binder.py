"""Scope and symbol binding over a tree-sitter JS/TS tree.

The binder walks a :class:`~codegraph_ts.parser.SourceFile` once and
records every declaration it can name: functions, classes, interfaces,
variables, parameters, imports, class/interface members and so on.  Each
declaration is classified into exactly one :class:`DeclKind` so that the
checker can branch on a closed set of variants instead of re-inspecting
syntax node types everywhere.

Binding is eager: once :func:`bind_source` returns, the resulting
:class:`FileBinding` is never mutated again.  This is what allows the
binding of the bundled ambient library to be shared between analyses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from .parser import SourceFile, iter_named, node_key

logger = logging.getLogger(__name__)


class DeclKind(Enum):
    FUNCTION = "function"
    FUNCTION_SIGNATURE = "function_signature"
    FUNCTION_EXPRESSION = "function_expression"
    METHOD = "method"
    METHOD_SIGNATURE = "method_signature"
    CONSTRUCTOR = "constructor"
    CONSTRUCT_SIGNATURE = "construct_signature"
    CALL_SIGNATURE = "call_signature"
    CLASS = "class"
    INTERFACE = "interface"
    TYPE_ALIAS = "type_alias"
    TYPE_PARAMETER = "type_parameter"
    ENUM = "enum"
    ENUM_MEMBER = "enum_member"
    VARIABLE = "variable"
    PARAMETER = "parameter"
    PROPERTY = "property"
    PROPERTY_SIGNATURE = "property_signature"
    IMPORT_ALIAS = "import_alias"
    NAMESPACE = "namespace"
    EXPORT_VALUE = "export_value"


VALUE_KINDS: FrozenSet[DeclKind] = frozenset({
    DeclKind.FUNCTION, DeclKind.FUNCTION_SIGNATURE, DeclKind.FUNCTION_EXPRESSION,
    DeclKind.CLASS, DeclKind.ENUM, DeclKind.VARIABLE, DeclKind.PARAMETER,
    DeclKind.IMPORT_ALIAS, DeclKind.NAMESPACE, DeclKind.EXPORT_VALUE,
    DeclKind.METHOD, DeclKind.METHOD_SIGNATURE, DeclKind.PROPERTY,
    DeclKind.PROPERTY_SIGNATURE, DeclKind.ENUM_MEMBER,
})

TYPE_KINDS: FrozenSet[DeclKind] = frozenset({
    DeclKind.CLASS, DeclKind.INTERFACE, DeclKind.TYPE_ALIAS, DeclKind.TYPE_PARAMETER,
    DeclKind.ENUM, DeclKind.IMPORT_ALIAS, DeclKind.NAMESPACE,
})

# Declarations that carry an implementation (or a full type body) and are
# preferred over bare overload signatures when a symbol has several.
IMPLEMENTATION_KINDS: FrozenSet[DeclKind] = frozenset({
    DeclKind.METHOD, DeclKind.FUNCTION, DeclKind.FUNCTION_EXPRESSION,
    DeclKind.CLASS, DeclKind.INTERFACE,
})

# Declarations with a parameter list.
CALLABLE_KINDS: FrozenSet[DeclKind] = frozenset({
    DeclKind.FUNCTION, DeclKind.FUNCTION_SIGNATURE, DeclKind.FUNCTION_EXPRESSION,
    DeclKind.METHOD, DeclKind.METHOD_SIGNATURE, DeclKind.CONSTRUCTOR,
    DeclKind.CONSTRUCT_SIGNATURE, DeclKind.CALL_SIGNATURE,
})

# ---------------------------------------------------------------------------
# Syntax node type groups (javascript + typescript grammars)
# ---------------------------------------------------------------------------
FUNCTION_DECLARATIONS = {"function_declaration", "generator_function_declaration"}
FUNCTION_EXPRESSIONS = {"function_expression", "function", "generator_function", "arrow_function"}
CLASS_DECLARATIONS = {"class_declaration", "abstract_class_declaration"}
FIELD_DEFINITIONS = {"public_field_definition", "field_definition"}
METHOD_SIGNATURES = {"method_signature", "abstract_method_signature"}
PARAMETER_NODES = {"required_parameter", "optional_parameter"}
_PARAMETER_PROPERTY_MODIFIERS = {"accessibility_modifier", "readonly", "override_modifier"}


@dataclass(eq=False)
class Declaration:
    """One syntactic declaration of a symbol."""

    kind: DeclKind
    name: str
    node: Any
    source: SourceFile
    name_node: Any = None
    symbol: Optional["Symbol"] = None
    is_static: bool = False
    accessor: Optional[str] = None
    module_specifier: Optional[str] = None
    import_name: Optional[str] = None

    @property
    def has_body(self) -> bool:
        return self.node.child_by_field_name("body") is not None

    @property
    def key(self) -> Tuple[str, int, int, str]:
        return (self.source.file_name,) + node_key(self.node)

    def __repr__(self) -> str:
        return f"Declaration({self.kind.value}, {self.name!r}, {self.source.file_name})"


class Symbol:
    """A named entity; merges every declaration sharing its name and scope."""

    def __init__(self, name: str, parent: Optional["Symbol"] = None) -> None:
        self.name = name
        self.parent = parent
        self.declarations: List[Declaration] = []
        self.members: Dict[str, Symbol] = {}
        self.statics: Dict[str, Symbol] = {}
        self.construct_signatures: List[Declaration] = []
        self.call_signatures: List[Declaration] = []
        self.type_parameters: List[str] = []

    def add(self, decl: Declaration) -> Declaration:
        decl.symbol = self
        self.declarations.append(decl)
        return decl

    def first(self, kinds: FrozenSet[DeclKind]) -> Optional[Declaration]:
        for decl in self.declarations:
            if decl.kind in kinds:
                return decl
        return None

    def has_kind(self, kinds: FrozenSet[DeclKind]) -> bool:
        return self.first(kinds) is not None

    @property
    def is_alias(self) -> bool:
        return bool(self.declarations) and self.declarations[0].kind is DeclKind.IMPORT_ALIAS

    def __repr__(self) -> str:
        return f"Symbol({self.name!r}, decls={len(self.declarations)})"


@dataclass
class ExportEntry:
    """How a module exposes one exported name."""

    local_name: Optional[str] = None
    symbol: Optional[Symbol] = None
    module_specifier: Optional[str] = None
    imported_name: Optional[str] = None


class Scope:
    def __init__(self, kind: str, node: Any, parent: Optional["Scope"], source: SourceFile) -> None:
        self.kind = kind
        self.node = node
        self.parent = parent
        self.source = source
        self.symbols: Dict[str, Symbol] = {}
        # module scopes only
        self.exports: Dict[str, ExportEntry] = {}
        self.star_exports: List[str] = []
        self.implicit_exports = False

    def declare(self, decl: Declaration) -> Symbol:
        symbol = self.symbols.get(decl.name)
        if symbol is None:
            symbol = Symbol(decl.name)
            self.symbols[decl.name] = symbol
        symbol.add(decl)
        return symbol

    def lookup(self, name: str, kinds: Optional[FrozenSet[DeclKind]] = None) -> Optional[Symbol]:
        scope: Optional[Scope] = self
        while scope is not None:
            symbol = scope.symbols.get(name)
            if symbol is not None and (kinds is None or symbol.has_kind(kinds)):
                return symbol
            scope = scope.parent
        return None

    def export_entry(self, name: str) -> Optional[ExportEntry]:
        entry = self.exports.get(name)
        if entry is None and self.implicit_exports and name in self.symbols:
            entry = ExportEntry(symbol=self.symbols[name])
        return entry

    def module_scope(self) -> "Scope":
        scope = self
        while scope.kind != "module" and scope.parent is not None:
            scope = scope.parent
        return scope


class FileBinding:
    """Binder output for one source file."""

    def __init__(self, source: SourceFile, module_scope: Scope) -> None:
        self.source = source
        self.module_scope = module_scope
        self.scopes: Dict[Tuple[int, int, str], Scope] = {}
        self.declarations: Dict[Tuple[int, int, str], Declaration] = {}
        self.name_declarations: Dict[Tuple[int, int, str], Declaration] = {}
        self.ambient_modules: Dict[str, Scope] = {}

    def scope_for(self, node: Any) -> Scope:
        current = node
        while current is not None:
            scope = self.scopes.get(node_key(current))
            if scope is not None:
                return scope
            current = current.parent
        return self.module_scope

    def declaration_for(self, node: Any) -> Optional[Declaration]:
        return self.declarations.get(node_key(node))

    def declaration_named_by(self, name_node: Any) -> Optional[Declaration]:
        return self.name_declarations.get(node_key(name_node))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"`":
        return text[1:-1]
    return text


def has_token(node: Any, token: str) -> bool:
    """True when *node* has an anonymous child token spelled *token*."""
    return any(not c.is_named and c.type == token for c in node.children)


def pattern_names(node: Any) -> List[Any]:
    """Identifier nodes bound by a (possibly destructuring) pattern."""
    if node is None:
        return []
    t = node.type
    if t in ("identifier", "shorthand_property_identifier_pattern"):
        return [node]
    if t in PARAMETER_NODES:
        return pattern_names(node.child_by_field_name("pattern"))
    if t in ("assignment_pattern", "object_assignment_pattern"):
        return pattern_names(node.child_by_field_name("left"))
    if t == "pair_pattern":
        return pattern_names(node.child_by_field_name("value"))
    if t in ("object_pattern", "array_pattern", "rest_pattern"):
        names: List[Any] = []
        for child in iter_named(node):
            names.extend(pattern_names(child))
        return names
    return []


def member_name(source: SourceFile, name_node: Any) -> str:
    if name_node is None:
        return ""
    return unquote(source.node_text(name_node))


# ---------------------------------------------------------------------------
# Binder
# ---------------------------------------------------------------------------

class _Binder:
    def __init__(self, source: SourceFile) -> None:
        self.source = source
        module_scope = Scope("module", source.root, None, source)
        self.binding = FileBinding(source, module_scope)
        self.binding.scopes[node_key(source.root)] = module_scope
        self._handlers = {
            "function_declaration": self._function_like,
            "generator_function_declaration": self._function_like,
            "function_signature": self._function_like,
            "function_expression": self._function_like,
            "function": self._function_like,
            "generator_function": self._function_like,
            "arrow_function": self._function_like,
            "method_definition": self._function_like,
            "class_declaration": self._class,
            "abstract_class_declaration": self._class,
            "class": self._class,
            "interface_declaration": self._interface,
            "type_alias_declaration": self._type_alias,
            "enum_declaration": self._enum,
            "lexical_declaration": self._variables,
            "variable_declaration": self._variables,
            "import_statement": self._import,
            "export_statement": self._export,
            "ambient_declaration": self._ambient,
            "module": self._module,
            "internal_module": self._module,
            "statement_block": self._block,
            "for_statement": self._block,
            "for_in_statement": self._for_in,
            "catch_clause": self._catch,
        }

    # -- bookkeeping ---------------------------------------------------

    def _new_scope(self, kind: str, node: Any, parent: Scope) -> Scope:
        scope = Scope(kind, node, parent, self.source)
        self.binding.scopes[node_key(node)] = scope
        return scope

    def _decl(self, kind: DeclKind, name: str, node: Any, name_node: Any = None, **extra: Any) -> Declaration:
        decl = Declaration(kind=kind, name=name, node=node, source=self.source, name_node=name_node, **extra)
        self.binding.declarations.setdefault(node_key(node), decl)
        if name_node is not None:
            self.binding.name_declarations.setdefault(node_key(name_node), decl)
        return decl

    def _declare(self, scope: Scope, kind: DeclKind, name: str, node: Any,
                 name_node: Any = None, **extra: Any) -> Symbol:
        return scope.declare(self._decl(kind, name, node, name_node, **extra))

    def _type_parameters(self, node: Any, scope: Scope, symbol: Optional[Symbol] = None) -> None:
        params = node.child_by_field_name("type_parameters")
        if params is None:
            return
        for param in iter_named(params):
            name_node = param.child_by_field_name("name")
            if name_node is None:
                continue
            name = self.source.node_text(name_node)
            self._declare(scope, DeclKind.TYPE_PARAMETER, name, param, name_node)
            if symbol is not None and name not in symbol.type_parameters:
                symbol.type_parameters.append(name)

    # -- traversal -----------------------------------------------------

    def bind(self) -> FileBinding:
        module_scope = self.binding.module_scope
        stack: List[Tuple[Any, Scope, Scope]] = [
            (child, module_scope, module_scope) for child in reversed(self.source.root.children)
        ]
        while stack:
            node, scope, fscope = stack.pop()
            handler = self._handlers.get(node.type) if node.is_named else None
            if handler is None:
                todo = [(child, scope, fscope) for child in node.children]
            else:
                todo = handler(node, scope, fscope)
            stack.extend(reversed(todo))
        return self.binding

    @staticmethod
    def _visit(nodes: List[Any], scope: Scope, fscope: Scope) -> List[Tuple[Any, Scope, Scope]]:
        return [(n, scope, fscope) for n in nodes if n is not None]

    # -- functions -----------------------------------------------------

    def _function_expression_name(self, node: Any) -> str:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            return self.source.node_text(name_node)
        parent = node.parent
        if parent is not None:
            if parent.type == "variable_declarator":
                return self.source.node_text(parent.child_by_field_name("name"))
            if parent.type == "pair":
                return member_name(self.source, parent.child_by_field_name("key"))
            if parent.type == "assignment_expression":
                return self.source.node_text(parent.child_by_field_name("left"))
        return ""

    def _function_like(self, node: Any, scope: Scope, fscope: Scope) -> List[Tuple[Any, Scope, Scope]]:
        name_node = node.child_by_field_name("name")
        t = node.type
        expression_decl: Optional[Declaration] = None
        if t in FUNCTION_DECLARATIONS or t == "function_signature":
            if name_node is not None:
                kind = DeclKind.FUNCTION if t != "function_signature" else DeclKind.FUNCTION_SIGNATURE
                self._declare(scope, kind, self.source.node_text(name_node), node, name_node)
        elif t in FUNCTION_EXPRESSIONS:
            expression_decl = self._decl(DeclKind.FUNCTION_EXPRESSION, self._function_expression_name(node),
                                         node, name_node)
        elif t == "method_definition" and node.parent is not None and node.parent.type == "object":
            self._decl(DeclKind.METHOD, member_name(self.source, name_node), node, name_node)

        inner = self._new_scope("function", node, scope)
        if expression_decl is not None and name_node is not None:
            inner.declare(expression_decl)
        self._type_parameters(node, inner)

        single = node.child_by_field_name("parameter")
        if single is not None:
            self._declare(inner, DeclKind.PARAMETER, self.source.node_text(single), single, single)
        params = node.child_by_field_name("parameters")
        todo: List[Any] = []
        if params is not None:
            for param in iter_named(params):
                for ident in pattern_names(param):
                    self._declare(inner, DeclKind.PARAMETER, self.source.node_text(ident), param, ident)
                todo.append(param)
        body = node.child_by_field_name("body")
        if body is not None:
            todo.append(body)
        return self._visit(todo, inner, inner)

    # -- classes -------------------------------------------------------

    def _class_name(self, node: Any) -> Tuple[str, Any]:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            return self.source.node_text(name_node), name_node
        parent = node.parent
        if parent is not None and parent.type == "variable_declarator":
            return self.source.node_text(parent.child_by_field_name("name")), None
        if parent is not None and parent.type == "export_statement":
            return "default", None
        return "(Anonymous class)", None

    def _class(self, node: Any, scope: Scope, fscope: Scope) -> List[Tuple[Any, Scope, Scope]]:
        name, name_node = self._class_name(node)
        if node.type in CLASS_DECLARATIONS and name_node is not None:
            symbol = self._declare(scope, DeclKind.CLASS, name, node, name_node)
        else:
            symbol = Symbol(name)
            symbol.add(self._decl(DeclKind.CLASS, name, node, name_node))
        inner = self._new_scope("class", node, scope)
        if node.type == "class" and name_node is not None:
            inner.symbols[name] = symbol
        self._type_parameters(node, inner, symbol)

        body = node.child_by_field_name("body")
        if body is not None:
            for member in iter_named(body):
                self._class_member(symbol, member)
        return self._visit([c for c in node.children if c.is_named and c is not name_node], inner, fscope)

    def _add_member(self, owner: Symbol, decl: Declaration) -> None:
        table = owner.statics if decl.is_static else owner.members
        member = table.get(decl.name)
        if member is None:
            member = Symbol(decl.name, parent=owner)
            table[decl.name] = member
        member.add(decl)

    def _class_member(self, owner: Symbol, member: Any) -> None:
        t = member.type
        if t == "method_definition" or t in METHOD_SIGNATURES:
            name_node = member.child_by_field_name("name")
            name = member_name(self.source, name_node)
            if not name:
                return
            is_static = has_token(member, "static")
            if name == "constructor" and not is_static:
                decl = self._decl(DeclKind.CONSTRUCTOR, name, member, name_node)
                decl.symbol = owner
                owner.construct_signatures.append(decl)
                self._parameter_properties(owner, member)
                return
            kind = DeclKind.METHOD if t == "method_definition" else DeclKind.METHOD_SIGNATURE
            accessor = "get" if has_token(member, "get") else ("set" if has_token(member, "set") else None)
            self._add_member(owner, self._decl(kind, name, member, name_node,
                                               is_static=is_static, accessor=accessor))
        elif t in FIELD_DEFINITIONS:
            name_node = member.child_by_field_name("name") or member.child_by_field_name("property")
            name = member_name(self.source, name_node)
            if name:
                self._add_member(owner, self._decl(DeclKind.PROPERTY, name, member, name_node,
                                                   is_static=has_token(member, "static")))

    def _parameter_properties(self, owner: Symbol, ctor: Any) -> None:
        params = ctor.child_by_field_name("parameters")
        if params is None:
            return
        for param in iter_named(params):
            if param.type not in PARAMETER_NODES:
                continue
            if not any(c.type in _PARAMETER_PROPERTY_MODIFIERS for c in param.children):
                continue
            pattern = param.child_by_field_name("pattern")
            if pattern is not None and pattern.type == "identifier":
                self._add_member(owner, self._decl(DeclKind.PROPERTY, self.source.node_text(pattern),
                                                   param, pattern))

    # -- type-level declarations ---------------------------------------

    def _object_type_members(self, owner: Symbol, body: Any, scope: Scope) -> None:
        for member in iter_named(body):
            t = member.type
            name_node = member.child_by_field_name("name")
            if t == "property_signature":
                self._add_member(owner, self._decl(DeclKind.PROPERTY_SIGNATURE,
                                                   member_name(self.source, name_node), member, name_node))
            elif t == "method_signature":
                self._add_member(owner, self._decl(DeclKind.METHOD_SIGNATURE,
                                                   member_name(self.source, name_node), member, name_node))
            elif t == "construct_signature":
                decl = self._decl(DeclKind.CONSTRUCT_SIGNATURE, "new", member)
                decl.symbol = owner
                owner.construct_signatures.append(decl)
            elif t == "call_signature":
                decl = self._decl(DeclKind.CALL_SIGNATURE, "call", member)
                decl.symbol = owner
                owner.call_signatures.append(decl)
            else:
                continue
            if member.child_by_field_name("type_parameters") is not None:
                self._type_parameters(member, self._new_scope("function", member, scope))

    def _interface(self, node: Any, scope: Scope, fscope: Scope) -> List[Tuple[Any, Scope, Scope]]:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return []
        symbol = self._declare(scope, DeclKind.INTERFACE, self.source.node_text(name_node), node, name_node)
        inner = self._new_scope("class", node, scope)
        self._type_parameters(node, inner, symbol)
        body = node.child_by_field_name("body")
        if body is not None:
            self._object_type_members(symbol, body, inner)
        return []

    def _type_alias(self, node: Any, scope: Scope, fscope: Scope) -> List[Tuple[Any, Scope, Scope]]:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return []
        symbol = self._declare(scope, DeclKind.TYPE_ALIAS, self.source.node_text(name_node), node, name_node)
        inner = self._new_scope("class", node, scope)
        self._type_parameters(node, inner, symbol)
        value = node.child_by_field_name("value")
        if value is not None and value.type == "object_type":
            self._object_type_members(symbol, value, inner)
        return []

    def _enum(self, node: Any, scope: Scope, fscope: Scope) -> List[Tuple[Any, Scope, Scope]]:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return []
        symbol = self._declare(scope, DeclKind.ENUM, self.source.node_text(name_node), node, name_node)
        body = node.child_by_field_name("body")
        if body is not None:
            for member in iter_named(body):
                member_node = member.child_by_field_name("name") if member.type == "enum_assignment" else member
                name = member_name(self.source, member_node)
                if name:
                    self._add_member(symbol, self._decl(DeclKind.ENUM_MEMBER, name, member, member_node,
                                                        is_static=True))
        return []

    # -- variables and blocks -------------------------------------------

    def _variables(self, node: Any, scope: Scope, fscope: Scope) -> List[Tuple[Any, Scope, Scope]]:
        target = fscope if node.type == "variable_declaration" or has_token(node, "var") else scope
        todo: List[Any] = []
        for declarator in iter_named(node):
            if declarator.type != "variable_declarator":
                continue
            for ident in pattern_names(declarator.child_by_field_name("name")):
                self._declare(target, DeclKind.VARIABLE, self.source.node_text(ident), declarator, ident)
            value = declarator.child_by_field_name("value")
            if value is not None:
                todo.append(value)
        return self._visit(todo, scope, fscope)

    def _block(self, node: Any, scope: Scope, fscope: Scope) -> List[Tuple[Any, Scope, Scope]]:
        inner = self._new_scope("block", node, scope)
        return self._visit(node.children, inner, fscope)

    def _for_in(self, node: Any, scope: Scope, fscope: Scope) -> List[Tuple[Any, Scope, Scope]]:
        inner = self._new_scope("block", node, scope)
        if node.child_by_field_name("kind") is not None:
            target = fscope if has_token(node, "var") else inner
            for ident in pattern_names(node.child_by_field_name("left")):
                self._declare(target, DeclKind.VARIABLE, self.source.node_text(ident), node, ident)
        return self._visit(
            [node.child_by_field_name("right"), node.child_by_field_name("body")], inner, fscope,
        )

    def _catch(self, node: Any, scope: Scope, fscope: Scope) -> List[Tuple[Any, Scope, Scope]]:
        inner = self._new_scope("block", node, scope)
        for ident in pattern_names(node.child_by_field_name("parameter")):
            self._declare(inner, DeclKind.VARIABLE, self.source.node_text(ident), node, ident)
        return self._visit([node.child_by_field_name("body")], inner, fscope)

    # -- modules ---------------------------------------------------------

    def _import(self, node: Any, scope: Scope, fscope: Scope) -> List[Tuple[Any, Scope, Scope]]:
        source_node = node.child_by_field_name("source")
        for child in iter_named(node):
            if child.type == "import_clause":
                spec = unquote(self.source.node_text(source_node)) if source_node is not None else ""
                self._import_clause(child, spec, scope)
            elif child.type == "import_require_clause":
                ident = next((c for c in iter_named(child) if c.type == "identifier"), None)
                req_source = child.child_by_field_name("source")
                if ident is not None and req_source is not None:
                    self._declare(scope, DeclKind.IMPORT_ALIAS, self.source.node_text(ident), child, ident,
                                  module_specifier=unquote(self.source.node_text(req_source)),
                                  import_name="export=")
        return []

    def _import_clause(self, clause: Any, spec: str, scope: Scope) -> None:
        for part in iter_named(clause):
            if part.type == "identifier":
                self._declare(scope, DeclKind.IMPORT_ALIAS, self.source.node_text(part), part, part,
                              module_specifier=spec, import_name="default")
            elif part.type == "namespace_import":
                ident = next((c for c in iter_named(part) if c.type == "identifier"), None)
                if ident is not None:
                    self._declare(scope, DeclKind.IMPORT_ALIAS, self.source.node_text(ident), part, ident,
                                  module_specifier=spec, import_name="*")
            elif part.type == "named_imports":
                for spec_node in iter_named(part):
                    if spec_node.type != "import_specifier":
                        continue
                    name_node = spec_node.child_by_field_name("name")
                    alias_node = spec_node.child_by_field_name("alias") or name_node
                    if name_node is None:
                        continue
                    self._declare(scope, DeclKind.IMPORT_ALIAS, unquote(self.source.node_text(alias_node)),
                                  spec_node, alias_node, module_specifier=spec,
                                  import_name=unquote(self.source.node_text(name_node)))

    def _declared_names(self, node: Any) -> List[str]:
        t = node.type
        if t in ("lexical_declaration", "variable_declaration"):
            names: List[str] = []
            for declarator in iter_named(node):
                if declarator.type == "variable_declarator":
                    names.extend(self.source.node_text(i) for i in pattern_names(declarator.child_by_field_name("name")))
            return names
        if t == "ambient_declaration":
            names = []
            for child in iter_named(node):
                names.extend(self._declared_names(child))
            return names
        name_node = node.child_by_field_name("name")
        if name_node is not None and name_node.type != "string":
            return [self.source.node_text(name_node)]
        return []

    def _export(self, node: Any, scope: Scope, fscope: Scope) -> List[Tuple[Any, Scope, Scope]]:
        module = scope.module_scope()
        source_node = node.child_by_field_name("source")
        spec = unquote(self.source.node_text(source_node)) if source_node is not None else None
        is_default = has_token(node, "default")
        declaration = node.child_by_field_name("declaration")
        value = node.child_by_field_name("value")
        todo: List[Any] = []

        if declaration is not None:
            names = self._declared_names(declaration)
            if is_default:
                if names:
                    module.exports["default"] = ExportEntry(local_name=names[0])
            else:
                for name in names:
                    module.exports[name] = ExportEntry(local_name=name)
            todo.append(declaration)
        elif is_default or has_token(node, "="):
            if value is None:
                value = next((c for c in reversed(node.named_children) if c.type != "comment"), None)
            if value is not None:
                key = "default" if is_default else "export="
                if value.type == "identifier":
                    module.exports[key] = ExportEntry(local_name=self.source.node_text(value))
                else:
                    symbol = Symbol(key)
                    symbol.add(self._decl(DeclKind.EXPORT_VALUE, key, value))
                    module.exports[key] = ExportEntry(symbol=symbol)
                todo.append(value)
        else:
            clause = next((c for c in iter_named(node) if c.type == "export_clause"), None)
            namespace = next((c for c in iter_named(node) if c.type == "namespace_export"), None)
            if clause is not None:
                for spec_node in iter_named(clause):
                    if spec_node.type != "export_specifier":
                        continue
                    name_node = spec_node.child_by_field_name("name")
                    if name_node is None:
                        continue
                    local = unquote(self.source.node_text(name_node))
                    alias_node = spec_node.child_by_field_name("alias")
                    exported = unquote(self.source.node_text(alias_node)) if alias_node is not None else local
                    if spec is not None:
                        module.exports[exported] = ExportEntry(module_specifier=spec, imported_name=local)
                    else:
                        module.exports[exported] = ExportEntry(local_name=local)
            elif namespace is not None and spec is not None:
                ident = next((c for c in iter_named(namespace)), None)
                if ident is not None:
                    module.exports[unquote(self.source.node_text(ident))] = ExportEntry(
                        module_specifier=spec, imported_name="*",
                    )
            elif spec is not None and has_token(node, "*"):
                module.star_exports.append(spec)
        return self._visit(todo, scope, fscope)

    def _ambient(self, node: Any, scope: Scope, fscope: Scope) -> List[Tuple[Any, Scope, Scope]]:
        if has_token(node, "global"):
            block = next((c for c in iter_named(node) if c.type == "statement_block"), None)
            module = scope.module_scope()
            return self._visit(block.children if block is not None else [], module, module)
        return self._visit(node.children, scope, fscope)

    def _module(self, node: Any, scope: Scope, fscope: Scope) -> List[Tuple[Any, Scope, Scope]]:
        name_node = node.child_by_field_name("name")
        body = node.child_by_field_name("body")
        if name_node is None:
            return []
        inner = self._new_scope("module", node, scope)
        if name_node.type == "string":
            inner.implicit_exports = True
            self.binding.ambient_modules.setdefault(unquote(self.source.node_text(name_node)), inner)
        else:
            symbol = self._declare(scope, DeclKind.NAMESPACE, self.source.node_text(name_node), node, name_node)
            # every block of a merged namespace shares one member table
            inner.symbols = symbol.statics
            inner.implicit_exports = True
        if body is None:
            return []
        return self._visit(body.children, inner, inner)


def bind_source(source: SourceFile) -> FileBinding:
    """Bind *source*; the returned binding is read-only from here on."""
    binding = _Binder(source).bind()
    logger.debug(
        "Bound %s: %d scopes, %d declarations",
        source.file_name, len(binding.scopes), len(binding.declarations),
    )
    return binding
