"""Type and symbol queries over a :class:`~codegraph_ts.program.Program`.

The checker answers the handful of questions call-graph extraction needs:

* what symbol does this expression / name refer to (:meth:`Checker.symbol_at`)
* what is the type of this expression (:meth:`Checker.type_of`)
* which signature does this call or ``new`` resolve to
  (:meth:`Checker.resolved_signature`, :meth:`Checker.resolved_construct_signature`)
* which declaration of a symbol is "the" one (:meth:`Checker.pick_best_declaration`)

It is deliberately shallow: inference follows annotations, initializers
and the first ``return``; generics are substituted only where type
arguments are explicit or come from array element types.  Anything it
cannot work out is ``any``.  Results are memoised per checker, and every
recursive query is guarded so that cyclic declarations degrade to ``any``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .binder import (
    CALLABLE_KINDS,
    CLASS_DECLARATIONS,
    FIELD_DEFINITIONS,
    FUNCTION_EXPRESSIONS,
    IMPLEMENTATION_KINDS,
    PARAMETER_NODES,
    TYPE_KINDS,
    VALUE_KINDS,
    Declaration,
    DeclKind,
    FileBinding,
    Symbol,
    has_token,
    member_name,
)
from .parser import SourceFile, iter_named, node_key
from .program import Program
from .typesys import (
    ANY,
    BOOLEAN,
    INTRINSICS,
    NULL,
    NUMBER,
    STRING,
    UNDEFINED,
    VOID,
    ArrayType,
    FunctionType,
    LiteralObjectType,
    ObjectType,
    Parameter,
    Signature,
    StaticType,
    TextType,
    TupleType,
    Type,
    TypeParameterType,
    UnionType,
    make_union,
    type_to_string,
)

logger = logging.getLogger(__name__)

_MAX_DEPTH = 8

_NAME_NODES = {
    "identifier", "shorthand_property_identifier", "type_identifier",
    "property_identifier", "private_property_identifier",
}
_NUMERIC_OPERATORS = {"-", "*", "/", "%", "**", "&", "|", "^", "<<", ">>", ">>>"}
_BOOLEAN_OPERATORS = {"==", "!=", "===", "!==", "<", ">", "<=", ">=", "instanceof", "in"}
_LOGICAL_OPERATORS = {"&&", "||", "??"}
_SCOPE_BARRIERS = FUNCTION_EXPRESSIONS | {
    "function_declaration", "generator_function_declaration", "method_definition",
    "class", "class_declaration", "abstract_class_declaration",
}
_WRAPPERS = {"parenthesized_expression", "non_null_expression"}
_ASSERTIONS = {"as_expression", "satisfies_expression"}

Key = Tuple[Any, ...]


def same_node(a: Any, b: Any) -> bool:
    return a is not None and b is not None and node_key(a) == node_key(b)


class Checker:
    """Lazily computed, memoised semantic queries for one program."""

    def __init__(self, program: Program) -> None:
        self.program = program
        self._types: Dict[Key, Type] = {}
        self._decl_types: Dict[Key, Type] = {}
        self._signatures: Dict[Key, Signature] = {}
        self._base_types: Dict[int, List[Type]] = {}
        self._in_progress: Set[Key] = set()

    # ------------------------------------------------------------------
    # Infrastructure
    # ------------------------------------------------------------------

    def binding(self, source: SourceFile) -> FileBinding:
        return self.program.binding_for(source)

    def _guarded(self, cache: Dict[Key, Type], key: Key, compute: Callable[[], Type]) -> Type:
        cached = cache.get(key)
        if cached is not None:
            return cached
        if key in self._in_progress:
            return ANY
        self._in_progress.add(key)
        try:
            result = compute()
        finally:
            self._in_progress.discard(key)
        cache[key] = result
        return result

    def _global_type_symbol(self, name: str) -> Optional[Symbol]:
        return self.program.global_symbol(name, TYPE_KINDS)

    def _array_symbol(self) -> Optional[Symbol]:
        return self._global_type_symbol("Array")

    def array_of(self, element: Type) -> ArrayType:
        return ArrayType(element, self._array_symbol())

    def _global_object(self, name: str, *args: Type) -> Type:
        symbol = self._global_type_symbol(name)
        if symbol is None:
            return TextType(name)
        return ObjectType(symbol, tuple(args))

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def resolve_name(self, node: Any, source: SourceFile, kinds=VALUE_KINDS) -> Optional[Symbol]:
        name = source.node_text(node)
        scope = self.binding(source).scope_for(node)
        symbol = scope.lookup(name, kinds)
        if symbol is None:
            symbol = self.program.global_symbol(name, kinds)
        return symbol

    def symbol_at(self, node: Any, source: SourceFile) -> Optional[Symbol]:
        """Symbol referenced (or declared) by *node*, if any."""
        t = node.type
        if t == "member_expression":
            return self.property_symbol(node, source)
        if t not in _NAME_NODES:
            return None
        parent = node.parent
        if parent is not None and parent.type == "member_expression" \
                and same_node(parent.child_by_field_name("property"), node):
            return self.property_symbol(parent, source)
        decl = self.binding(source).declaration_named_by(node)
        if decl is not None and decl.symbol is not None:
            return decl.symbol
        kinds = TYPE_KINDS if t == "type_identifier" else VALUE_KINDS
        return self.resolve_name(node, source, kinds)

    def property_symbol(self, member: Any, source: SourceFile) -> Optional[Symbol]:
        obj = member.child_by_field_name("object")
        prop = member.child_by_field_name("property")
        if obj is None or prop is None:
            return None
        return self.property_of(self.type_of(obj, source), source.node_text(prop))

    def resolve_alias(self, symbol: Optional[Symbol]) -> Optional[Symbol]:
        """Follow import aliases to the symbol they ultimately name."""
        hops = 0
        while symbol is not None and symbol.is_alias:
            if hops >= _MAX_DEPTH * 2:
                return None
            decl = symbol.declarations[0]
            module = self.program.resolve_module(decl.module_specifier, decl.source)
            if module is None:
                return None
            if decl.import_name == "*":
                symbol = self.program.module_symbol(module, decl.module_specifier or "")
            else:
                symbol = self.program.export_symbol(module, decl.import_name or "default")
            hops += 1
        return symbol

    def pick_best_declaration(self, symbol: Optional[Symbol]) -> Optional[Declaration]:
        """Implementation-bearing declaration when there is one, else the first."""
        target = self.resolve_alias(symbol)
        if target is None or not target.declarations:
            return None
        for decl in target.declarations:
            if decl.kind in IMPLEMENTATION_KINDS:
                return decl
        return target.declarations[0]

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def property_of(self, t: Type, name: str, depth: int = 0) -> Optional[Symbol]:
        """Member *name* of a value of type *t*."""
        if depth > _MAX_DEPTH:
            return None
        if isinstance(t, UnionType):
            for member in t.members:
                found = self.property_of(member, name, depth + 1)
                if found is not None:
                    return found
            return None
        if isinstance(t, ObjectType):
            return self._instance_member(t.symbol, name, depth)
        if isinstance(t, StaticType):
            return self._static_member(t.symbol, name, depth) or self._global_member("Function", name, depth)
        if isinstance(t, (ArrayType, TupleType)):
            return self._global_member("Array", name, depth)
        if isinstance(t, FunctionType):
            if t.symbol is not None and name in t.symbol.statics:
                return t.symbol.statics[name]
            return self._global_member("Function", name, depth)
        if isinstance(t, LiteralObjectType):
            return t.members.get(name) or self._global_member("Object", name, depth)
        if t is STRING:
            return self._global_member("String", name, depth)
        if t is NUMBER:
            return self._global_member("Number", name, depth)
        if t is BOOLEAN:
            return self._global_member("Boolean", name, depth)
        return None

    def _instance_member(self, symbol: Symbol, name: str, depth: int) -> Optional[Symbol]:
        member = symbol.members.get(name)
        if member is not None:
            return member
        for base in self.base_types(symbol):
            found = self.property_of(base, name, depth + 1)
            if found is not None:
                return found
        if symbol.has_kind(frozenset({DeclKind.ENUM})):
            return self._global_member("Number", name, depth)
        return None

    def _static_member(self, symbol: Symbol, name: str, depth: int) -> Optional[Symbol]:
        member = symbol.statics.get(name)
        if member is not None:
            return member
        if depth > _MAX_DEPTH:
            return None
        for base in self.base_types(symbol):
            if isinstance(base, ObjectType) and base.symbol.has_kind(frozenset({DeclKind.CLASS})):
                found = self._static_member(base.symbol, name, depth + 1)
                if found is not None:
                    return found
        return None

    def _global_member(self, interface: str, name: str, depth: int) -> Optional[Symbol]:
        symbol = self._global_type_symbol(interface)
        if symbol is None or depth > _MAX_DEPTH:
            return None
        return self._instance_member(symbol, name, depth + 1)

    def base_types(self, symbol: Symbol) -> List[Type]:
        """``extends`` targets of a class or interface symbol."""
        cached = self._base_types.get(id(symbol))
        if cached is not None:
            return cached
        self._base_types[id(symbol)] = []
        bases: List[Type] = []
        for decl in symbol.declarations:
            if decl.kind is DeclKind.CLASS:
                bases.extend(self._class_bases(decl))
            elif decl.kind is DeclKind.INTERFACE:
                for child in iter_named(decl.node):
                    if child.type == "extends_type_clause":
                        bases.extend(self.type_from_type_node(c, decl.source) for c in iter_named(child))
        self._base_types[id(symbol)] = bases
        return bases

    def _class_bases(self, decl: Declaration) -> List[Type]:
        heritage = next((c for c in iter_named(decl.node) if c.type == "class_heritage"), None)
        if heritage is None:
            return []
        bases: List[Type] = []
        for child in iter_named(heritage):
            if child.type == "implements_clause":
                continue
            if child.type == "extends_clause":
                value = child.child_by_field_name("value")
                args_node = child.child_by_field_name("type_arguments")
            else:
                value, args_node = child, None
            if value is None:
                continue
            static = self.type_of(value, decl.source)
            if isinstance(static, StaticType):
                args = self._type_arguments(args_node, decl.source)
                bases.append(ObjectType(static.symbol, args))
        return bases

    def _member_type(self, owner: Type, member: Symbol) -> Type:
        member_type = self.type_of_symbol(member)
        mapping: Dict[str, Type] = {}
        if isinstance(owner, ObjectType) and owner.type_args:
            mapping = owner.type_mapping()
        elif isinstance(owner, (ArrayType, TupleType)):
            array = self._array_symbol()
            if array is not None and array.type_parameters:
                element = owner.element if isinstance(owner, ArrayType) else make_union(owner.elements or [ANY])
                mapping = {array.type_parameters[0]: element}
        return member_type.substitute(mapping) if mapping else member_type

    # ------------------------------------------------------------------
    # Expression types
    # ------------------------------------------------------------------

    def type_of(self, node: Any, source: SourceFile) -> Type:
        """Type of the expression (or declaration) *node*."""
        key = (source.file_name,) + node_key(node)
        return self._guarded(self._types, key, lambda: self._compute_type(node, source))

    def _compute_type(self, node: Any, source: SourceFile) -> Type:
        t = node.type
        if t in ("identifier", "shorthand_property_identifier"):
            symbol = self.symbol_at(node, source)
            if symbol is None:
                return UNDEFINED if source.node_text(node) == "undefined" else ANY
            return self.type_of_symbol(symbol)
        if t in ("number",):
            return NUMBER
        if t in ("string", "template_string"):
            return STRING
        if t in ("true", "false"):
            return BOOLEAN
        if t == "null":
            return NULL
        if t == "undefined":
            return UNDEFINED
        if t == "regex":
            return self._global_object("RegExp")
        if t == "this":
            return self._this_type(node, source)
        if t == "super":
            return self._super_type(node, source)
        if t == "array":
            elements = [self.type_of(e, source) for e in iter_named(node) if e.type != "spread_element"]
            return self.array_of(make_union(elements) if elements else ANY)
        if t == "object":
            return self._object_literal_type(node, source)
        if t in FUNCTION_EXPRESSIONS:
            decl = self.binding(source).declaration_for(node)
            if decl is None:
                return ANY
            return FunctionType([self.signature_of(decl)], decl.symbol)
        if t == "class":
            decl = self.binding(source).declaration_for(node)
            return StaticType(decl.symbol) if decl is not None and decl.symbol is not None else ANY
        if t == "new_expression":
            return self._new_type(node, source)
        if t == "call_expression":
            sig = self.resolved_signature(node, source)
            return sig.return_type if sig is not None else ANY
        if t == "member_expression":
            obj = node.child_by_field_name("object")
            prop = node.child_by_field_name("property")
            if obj is None or prop is None:
                return ANY
            owner = self.type_of(obj, source)
            member = self.property_of(owner, source.node_text(prop))
            return self._member_type(owner, member) if member is not None else ANY
        if t == "subscript_expression":
            return self._element_type(node, source)
        if t in _WRAPPERS or t == "spread_element":
            inner = next(iter_named(node), None)
            return self.type_of(inner, source) if inner is not None else ANY
        if t in _ASSERTIONS:
            return self._assertion_type(node, source)
        if t == "type_assertion":
            named = list(iter_named(node))
            if named and named[0].type == "type_arguments":
                inner = next(iter_named(named[0]), None)
                if inner is not None:
                    return self.type_from_type_node(inner, source)
            return ANY
        if t == "await_expression":
            inner = next(iter_named(node), None)
            awaited = self.type_of(inner, source) if inner is not None else ANY
            if isinstance(awaited, ObjectType) and awaited.symbol.name == "Promise" and awaited.type_args:
                return awaited.type_args[0]
            return awaited
        if t == "binary_expression":
            return self._binary_type(node, source)
        if t == "unary_expression":
            op = node.child_by_field_name("operator")
            text = source.node_text(op) if op is not None else ""
            if text in ("!", "delete"):
                return BOOLEAN
            if text == "typeof":
                return STRING
            if text == "void":
                return UNDEFINED
            return NUMBER
        if t == "update_expression":
            return NUMBER
        if t == "ternary_expression":
            branches = [node.child_by_field_name("consequence"), node.child_by_field_name("alternative")]
            return make_union([self.type_of(b, source) for b in branches if b is not None])
        if t in ("assignment_expression", "augmented_assignment_expression"):
            right = node.child_by_field_name("right")
            return self.type_of(right, source) if right is not None else ANY
        if t == "sequence_expression":
            named = list(iter_named(node))
            return self.type_of(named[-1], source) if named else ANY
        if t in ("jsx_element", "jsx_self_closing_element", "jsx_fragment"):
            return TextType("JSX.Element")

        decl = self.binding(source).declaration_for(node)
        if decl is not None:
            return self.type_of_declaration(decl)
        return ANY

    def _this_type(self, node: Any, source: SourceFile) -> Type:
        current = node.parent
        in_static = False
        while current is not None:
            t = current.type
            if t in CLASS_DECLARATIONS or t == "class":
                decl = self.binding(source).declaration_for(current)
                if decl is None or decl.symbol is None:
                    return ANY
                return StaticType(decl.symbol) if in_static else ObjectType(decl.symbol)
            if t in ("function_declaration", "generator_function_declaration", "function_expression",
                     "function", "generator_function"):
                return ANY
            if t == "method_definition":
                if current.parent is not None and current.parent.type == "object":
                    return ANY
                in_static = has_token(current, "static")
            elif t in FIELD_DEFINITIONS:
                in_static = has_token(current, "static")
            current = current.parent
        return ANY

    def _super_type(self, node: Any, source: SourceFile) -> Type:
        this_type = self._this_type(node, source)
        if isinstance(this_type, (ObjectType, StaticType)):
            for base in self.base_types(this_type.symbol):
                if isinstance(base, ObjectType):
                    return base if isinstance(this_type, ObjectType) else StaticType(base.symbol)
        return ANY

    def _object_literal_type(self, node: Any, source: SourceFile) -> Type:
        owner = Symbol("__object")
        members: Dict[str, Symbol] = {}
        property_types: Dict[str, Type] = {}
        binding = self.binding(source)
        for child in iter_named(node):
            t = child.type
            if t == "pair":
                key = child.child_by_field_name("key")
                if key is None or key.type == "computed_property_name":
                    continue
                decl = Declaration(DeclKind.PROPERTY, member_name(source, key), child, source, key)
            elif t == "shorthand_property_identifier":
                decl = Declaration(DeclKind.PROPERTY, source.node_text(child), child, source, child)
            elif t == "method_definition":
                decl = binding.declaration_for(child)
                if decl is None or not decl.name:
                    continue
            else:
                continue
            symbol = members.get(decl.name)
            if symbol is None:
                symbol = Symbol(decl.name, parent=owner)
                members[decl.name] = symbol
            if decl.symbol is None:
                symbol.add(decl)
            else:
                symbol.declarations.append(decl)
            property_types[decl.name] = self.type_of_declaration(decl)
        owner.members = members
        return LiteralObjectType(members, property_types)

    def _new_type(self, node: Any, source: SourceFile) -> Type:
        ctor = node.child_by_field_name("constructor")
        if ctor is None:
            return ANY
        ctor_type = self.type_of(ctor, source)
        if isinstance(ctor_type, StaticType) and ctor_type.symbol.has_kind(frozenset({DeclKind.CLASS})):
            args = self._type_arguments(node.child_by_field_name("type_arguments"), source)
            return ObjectType(ctor_type.symbol, args)
        sig = self.resolved_construct_signature(node, source)
        return sig.return_type if sig is not None else ANY

    def _element_type(self, node: Any, source: SourceFile) -> Type:
        obj = node.child_by_field_name("object")
        owner = self.type_of(obj, source) if obj is not None else ANY
        if isinstance(owner, ArrayType):
            return owner.element
        if isinstance(owner, TupleType):
            index = node.child_by_field_name("index")
            if index is not None and index.type == "number":
                try:
                    position = int(source.node_text(index))
                except ValueError:
                    position = -1
                if 0 <= position < len(owner.elements):
                    return owner.elements[position]
            return make_union(owner.elements) if owner.elements else ANY
        if owner is STRING:
            return STRING
        return ANY

    def _assertion_type(self, node: Any, source: SourceFile) -> Type:
        named = list(iter_named(node))
        if len(named) < 2:
            return self.type_of(named[0], source) if named else ANY
        target = named[-1]
        if source.node_text(target) == "const":
            return self.type_of(named[0], source)
        return self.type_from_type_node(target, source)

    def _binary_type(self, node: Any, source: SourceFile) -> Type:
        op_node = node.child_by_field_name("operator")
        op = source.node_text(op_node) if op_node is not None else ""
        if op in _BOOLEAN_OPERATORS:
            return BOOLEAN
        if op in _NUMERIC_OPERATORS:
            return NUMBER
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        sides = [self.type_of(s, source) if s is not None else ANY for s in (left, right)]
        if op in _LOGICAL_OPERATORS:
            return make_union(sides)
        if op == "+":
            if STRING in sides:
                return STRING
            if all(s is NUMBER for s in sides):
                return NUMBER
            return ANY
        return ANY

    # ------------------------------------------------------------------
    # Declaration types
    # ------------------------------------------------------------------

    def type_of_symbol(self, symbol: Symbol) -> Type:
        target = self.resolve_alias(symbol)
        if target is None:
            return ANY
        decl = target.first(VALUE_KINDS)
        if decl is None:
            if target.statics:
                return StaticType(target)
            return ANY
        return self.type_of_declaration(decl)

    def type_of_declaration(self, decl: Declaration) -> Type:
        return self._guarded(self._decl_types, decl.key + (decl.name,), lambda: self._declaration_type(decl))

    def _declaration_type(self, decl: Declaration) -> Type:
        k = decl.kind
        symbol = decl.symbol
        if k in (DeclKind.FUNCTION, DeclKind.FUNCTION_SIGNATURE):
            signatures = self.signatures_of_symbol(symbol) if symbol is not None else [self.signature_of(decl)]
            return FunctionType(signatures, symbol)
        if k is DeclKind.FUNCTION_EXPRESSION:
            return FunctionType([self.signature_of(decl)], symbol)
        if k in (DeclKind.METHOD, DeclKind.METHOD_SIGNATURE):
            if decl.accessor == "get":
                return self.signature_of(decl).return_type
            if decl.accessor == "set":
                params = self.signature_of(decl).parameters
                return params[0].type if params else ANY
            if symbol is not None and symbol.parent is not None:
                return FunctionType(self.signatures_of_symbol(symbol), symbol)
            return FunctionType([self.signature_of(decl)], symbol)
        if k in (DeclKind.CLASS, DeclKind.ENUM, DeclKind.NAMESPACE):
            return StaticType(symbol) if symbol is not None else ANY
        if k is DeclKind.ENUM_MEMBER:
            return ObjectType(symbol.parent) if symbol is not None and symbol.parent is not None else NUMBER
        if k is DeclKind.VARIABLE:
            return self._variable_type(decl)
        if k is DeclKind.PARAMETER:
            return self._parameter_binding_type(decl)
        if k in (DeclKind.PROPERTY, DeclKind.PROPERTY_SIGNATURE):
            return self._property_type(decl)
        if k is DeclKind.EXPORT_VALUE:
            return self.type_of(decl.node, decl.source)
        return ANY

    def _variable_type(self, decl: Declaration) -> Type:
        node, source = decl.node, decl.source
        if node.type == "variable_declarator":
            name = node.child_by_field_name("name")
            annotation = node.child_by_field_name("type")
            value = node.child_by_field_name("value")
            if annotation is not None:
                declared = self.type_from_annotation(annotation, source)
            elif value is not None:
                declared = self.type_of(value, source)
            else:
                declared = ANY
            if name is not None and name.type == "identifier":
                return declared
            return self._destructured_type(declared, decl)
        if node.type == "for_in_statement":
            right = node.child_by_field_name("right")
            iterated = self.type_of(right, source) if right is not None else ANY
            if has_token(node, "in"):
                return STRING
            if isinstance(iterated, ArrayType):
                return iterated.element
            if isinstance(iterated, TupleType):
                return make_union(iterated.elements) if iterated.elements else ANY
            if iterated is STRING:
                return STRING
            return ANY
        return ANY

    def _destructured_type(self, declared: Type, decl: Declaration) -> Type:
        parent = decl.name_node.parent if decl.name_node is not None else None
        if parent is not None and parent.type in ("array_pattern",):
            if isinstance(declared, ArrayType):
                return declared.element
            return ANY
        member = self.property_of(declared, decl.name)
        return self._member_type(declared, member) if member is not None else ANY

    def parameter_declared_type(self, param: Any, source: SourceFile) -> Type:
        """Type of a whole parameter: annotation, default value or ``any``."""
        t = param.type
        if t in PARAMETER_NODES:
            annotation = param.child_by_field_name("type")
            if annotation is not None:
                return self.type_from_annotation(annotation, source)
            value = param.child_by_field_name("value")
            if value is not None:
                return self.type_of(value, source)
            pattern = param.child_by_field_name("pattern")
            if pattern is not None and pattern.type == "rest_pattern":
                return self.array_of(ANY)
            return ANY
        if t == "assignment_pattern":
            right = param.child_by_field_name("right")
            return self.type_of(right, source) if right is not None else ANY
        if t == "rest_pattern":
            return self.array_of(ANY)
        return ANY

    def _parameter_binding_type(self, decl: Declaration) -> Type:
        node, source = decl.node, decl.source
        declared = self.parameter_declared_type(node, source)
        if decl.name_node is None or node.type not in PARAMETER_NODES:
            return declared
        pattern = node.child_by_field_name("pattern")
        if same_node(pattern, decl.name_node):
            return declared
        if pattern is not None and pattern.type == "rest_pattern":
            return declared
        return self._destructured_type(declared, decl)

    def _property_type(self, decl: Declaration) -> Type:
        node, source = decl.node, decl.source
        t = node.type
        if t in FIELD_DEFINITIONS or t == "property_signature":
            annotation = node.child_by_field_name("type")
            if annotation is not None:
                return self.type_from_annotation(annotation, source)
            value = node.child_by_field_name("value")
            return self.type_of(value, source) if value is not None else ANY
        if t in PARAMETER_NODES:
            return self.parameter_declared_type(node, source)
        if t == "pair":
            value = node.child_by_field_name("value")
            return self.type_of(value, source) if value is not None else ANY
        if t == "shorthand_property_identifier":
            symbol = self.resolve_name(node, source)
            return self.type_of_symbol(symbol) if symbol is not None else ANY
        return ANY

    # ------------------------------------------------------------------
    # Type annotations
    # ------------------------------------------------------------------

    def type_from_annotation(self, annotation: Any, source: SourceFile) -> Type:
        t = annotation.type
        if t == "type_predicate_annotation":
            return BOOLEAN
        if t == "asserts_annotation":
            return VOID
        if t in ("type_annotation", "opting_type_annotation", "omitting_type_annotation"):
            inner = next(iter_named(annotation), None)
            return self.type_from_type_node(inner, source) if inner is not None else ANY
        return self.type_from_type_node(annotation, source)

    def _type_arguments(self, args_node: Any, source: SourceFile) -> Tuple[Type, ...]:
        if args_node is None:
            return ()
        return tuple(self.type_from_type_node(a, source) for a in iter_named(args_node))

    def type_from_type_node(self, node: Any, source: SourceFile) -> Type:
        """Semantic type denoted by a type-syntax node."""
        key = ("type", source.file_name) + node_key(node)
        return self._guarded(self._types, key, lambda: self._compute_type_node(node, source))

    def _compute_type_node(self, node: Any, source: SourceFile) -> Type:
        t = node.type
        if t == "predefined_type":
            text = source.node_text(node)
            return INTRINSICS.get(text, TextType(text))
        if t == "type_identifier":
            return self._named_type(node, source, ())
        if t == "generic_type":
            name = node.child_by_field_name("name")
            args = self._type_arguments(node.child_by_field_name("type_arguments"), source)
            if name is not None and name.type == "type_identifier":
                return self._named_type(name, source, args)
            return TextType(" ".join(source.node_text(node).split()))
        if t == "array_type":
            inner = next(iter_named(node), None)
            return self.array_of(self.type_from_type_node(inner, source) if inner is not None else ANY)
        if t == "tuple_type":
            return TupleType([self.type_from_type_node(e, source) for e in iter_named(node)], self._array_symbol())
        if t == "union_type":
            return make_union([self.type_from_type_node(m, source) for m in iter_named(node)])
        if t in ("parenthesized_type", "readonly_type", "optional_type", "type_annotation"):
            inner = next(iter_named(node), None)
            return self.type_from_type_node(inner, source) if inner is not None else ANY
        if t == "rest_type":
            inner = next(iter_named(node), None)
            return self.type_from_type_node(inner, source) if inner is not None else self.array_of(ANY)
        if t == "function_type":
            ret = node.child_by_field_name("return_type")
            params = self._parameters(node, source)
            return FunctionType([Signature(None, params,
                                           lambda: self.type_from_type_node(ret, source) if ret is not None else VOID)])
        if t == "object_type":
            return self._type_literal(node, source)
        if t == "literal_type":
            inner = next(iter_named(node), None)
            return self._literal_type(inner) if inner is not None else ANY
        if t == "type_query":
            inner = next(iter_named(node), None)
            return self.type_of(inner, source) if inner is not None else ANY
        if t == "this_type":
            return self._this_type(node, source)
        if t in ("type_predicate", "type_predicate_annotation"):
            return BOOLEAN
        return TextType(" ".join(source.node_text(node).split()))

    @staticmethod
    def _literal_type(node: Any) -> Type:
        t = node.type
        if t in ("number", "unary_expression"):
            return NUMBER
        if t in ("string", "template_string"):
            return STRING
        if t in ("true", "false"):
            return BOOLEAN
        if t == "null":
            return NULL
        if t == "undefined":
            return UNDEFINED
        return ANY

    def _type_literal(self, node: Any, source: SourceFile) -> Type:
        owner = Symbol("__type")
        members: Dict[str, Symbol] = {}
        property_types: Dict[str, Type] = {}
        for child in iter_named(node):
            if child.type not in ("property_signature", "method_signature"):
                continue
            name_node = child.child_by_field_name("name")
            name = member_name(source, name_node)
            if not name:
                continue
            kind = DeclKind.PROPERTY_SIGNATURE if child.type == "property_signature" else DeclKind.METHOD_SIGNATURE
            decl = Declaration(kind, name, child, source, name_node)
            symbol = members.setdefault(name, Symbol(name, parent=owner))
            symbol.add(decl)
            property_types[name] = self.type_of_declaration(decl)
        owner.members = members
        return LiteralObjectType(members, property_types)

    def _named_type(self, name_node: Any, source: SourceFile, args: Tuple[Type, ...]) -> Type:
        name = source.node_text(name_node)
        if name in ("Array", "ReadonlyArray") and len(args) == 1:
            return self.array_of(args[0])
        symbol = self.symbol_at(name_node, source)
        display = name
        if args:
            display = f"{name}<{', '.join(type_to_string(a) for a in args)}>"
        if symbol is None:
            return TextType(display)
        return self.type_for_type_symbol(symbol, args, display)

    def type_for_type_symbol(self, symbol: Symbol, args: Tuple[Type, ...] = (), display: str = "") -> Type:
        target = self.resolve_alias(symbol)
        if target is None:
            return TextType(display or symbol.name)
        decl = target.first(TYPE_KINDS - {DeclKind.IMPORT_ALIAS})
        if decl is None:
            return TextType(display or target.name)
        if decl.kind in (DeclKind.CLASS, DeclKind.INTERFACE, DeclKind.ENUM):
            return ObjectType(target, args)
        if decl.kind is DeclKind.TYPE_PARAMETER:
            return TypeParameterType(target.name)
        if decl.kind is DeclKind.TYPE_ALIAS:
            value = decl.node.child_by_field_name("value")
            if value is None:
                return ANY
            if value.type == "object_type":
                return ObjectType(target, args)
            aliased = self.type_from_type_node(value, decl.source)
            mapping = dict(zip(target.type_parameters, args))
            return aliased.substitute(mapping) if mapping else aliased
        return TextType(display or target.name)

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------

    def _parameters(self, node: Any, source: SourceFile) -> List[Parameter]:
        single = node.child_by_field_name("parameter")
        if single is not None:
            return [Parameter(source.node_text(single), single, ANY)]
        params_node = node.child_by_field_name("parameters")
        if params_node is None:
            return []
        params: List[Parameter] = []
        for p in iter_named(params_node):
            t = p.type
            if t in PARAMETER_NODES:
                pattern = p.child_by_field_name("pattern")
                if pattern is None or pattern.type == "this":
                    continue
                rest = pattern.type == "rest_pattern"
                name_node = next(iter_named(pattern), pattern) if rest else pattern
                optional = t == "optional_parameter" or p.child_by_field_name("value") is not None
                params.append(Parameter(source.node_text(name_node), p,
                                        self.parameter_declared_type(p, source), optional, rest))
            elif t == "identifier":
                params.append(Parameter(source.node_text(p), p, ANY))
            elif t == "assignment_pattern":
                left = p.child_by_field_name("left")
                params.append(Parameter(source.node_text(left) if left is not None else "", p,
                                        self.parameter_declared_type(p, source), optional=True))
            elif t == "rest_pattern":
                inner = next(iter_named(p), p)
                params.append(Parameter(source.node_text(inner), p, self.array_of(ANY), rest=True))
            elif t in ("object_pattern", "array_pattern"):
                params.append(Parameter(source.node_text(p), p, ANY))
        return params

    def signature_of(self, decl: Declaration) -> Signature:
        """Signature described by one callable declaration."""
        key = decl.key
        sig = self._signatures.get(key)
        if sig is None:
            sig = Signature(decl, self._parameters(decl.node, decl.source), lambda: self._return_type(decl))
            self._signatures[key] = sig
        return sig

    def _return_type(self, decl: Declaration) -> Type:
        key = ("return",) + decl.key
        return self._guarded(self._decl_types, key, lambda: self._compute_return_type(decl))

    def _compute_return_type(self, decl: Declaration) -> Type:
        node, source = decl.node, decl.source
        if decl.kind is DeclKind.CONSTRUCTOR:
            return ObjectType(decl.symbol) if decl.symbol is not None else ANY
        annotation = node.child_by_field_name("return_type")
        if annotation is None and decl.kind is DeclKind.CONSTRUCT_SIGNATURE:
            annotation = node.child_by_field_name("type")
        if annotation is not None:
            return self.type_from_annotation(annotation, source)
        body = node.child_by_field_name("body")
        if body is None:
            return ANY
        if has_token(node, "*"):
            return ANY
        if body.type != "statement_block":
            inferred = self.type_of(body, source)
        else:
            inferred = self._first_return_type(body, source)
        if has_token(node, "async"):
            return self._global_object("Promise", inferred)
        return inferred

    def _first_return_type(self, body: Any, source: SourceFile) -> Type:
        stack = list(reversed(body.named_children))
        while stack:
            current = stack.pop()
            if current.type in _SCOPE_BARRIERS:
                continue
            if current.type == "return_statement":
                value = next(iter_named(current), None)
                return self.type_of(value, source) if value is not None else VOID
            stack.extend(reversed(current.named_children))
        return VOID

    @staticmethod
    def _overload_set(decls: List[Declaration]) -> List[Declaration]:
        bodiless = [d for d in decls if not d.has_body]
        bodied = [d for d in decls if d.has_body]
        # an implementation behind overloads is not itself callable
        return bodiless if bodiless and bodied else decls

    def signatures_of_symbol(self, symbol: Symbol) -> List[Signature]:
        decls = [d for d in symbol.declarations if d.kind in CALLABLE_KINDS]
        return [self.signature_of(d) for d in self._overload_set(decls)]

    def call_signatures(self, t: Type) -> List[Signature]:
        if isinstance(t, FunctionType):
            return t.signatures
        if isinstance(t, ObjectType):
            decls = self._overload_set(t.symbol.call_signatures)
            mapping = t.type_mapping()
            return [self.signature_of(d).substitute(mapping) for d in decls]
        if isinstance(t, UnionType):
            for member in t.members:
                signatures = self.call_signatures(member)
                if signatures:
                    return signatures
        return []

    def construct_signatures(self, t: Type) -> List[Signature]:
        if isinstance(t, StaticType) and t.symbol.has_kind(frozenset({DeclKind.CLASS})):
            constructed = t.symbol
            current: Optional[Symbol] = constructed
            for _ in range(_MAX_DEPTH):
                if current is None:
                    break
                if current.construct_signatures:
                    signatures = [self.signature_of(d) for d in self._overload_set(current.construct_signatures)]
                    if current is constructed:
                        return signatures
                    return [Signature(s.declaration, s.parameters, lambda: ObjectType(constructed))
                            for s in signatures]
                base = next((b for b in self.base_types(current) if isinstance(b, ObjectType)), None)
                current = base.symbol if base is not None else None
            return []
        if isinstance(t, ObjectType):
            decls = self._overload_set(t.symbol.construct_signatures)
            mapping = t.type_mapping()
            return [self.signature_of(d).substitute(mapping) for d in decls]
        return []

    @staticmethod
    def call_arguments(node: Any) -> List[Any]:
        args = node.child_by_field_name("arguments")
        if args is None or args.type == "template_string":
            return []
        return list(iter_named(args))

    @staticmethod
    def choose_overload(signatures: List[Signature], arg_count: int) -> Optional[Signature]:
        for sig in signatures:
            if sig.accepts(arg_count):
                return sig
        return signatures[0] if signatures else None

    def resolved_signature(self, call: Any, source: SourceFile) -> Optional[Signature]:
        """Signature a call expression binds to, chosen by argument count."""
        callee = call.child_by_field_name("function")
        if callee is None:
            return None
        arg_count = len(self.call_arguments(call))
        if callee.type == "super":
            base = self._super_type(callee, source)
            if isinstance(base, ObjectType):
                return self.choose_overload(self.construct_signatures(StaticType(base.symbol)), arg_count)
            return None
        return self.choose_overload(self.call_signatures(self.type_of(callee, source)), arg_count)

    def resolved_construct_signature(self, new: Any, source: SourceFile) -> Optional[Signature]:
        """First construct signature of the constructed expression's type."""
        ctor = new.child_by_field_name("constructor")
        if ctor is None:
            return None
        signatures = self.construct_signatures(self.type_of(ctor, source))
        if not signatures:
            return None
        args = self._type_arguments(new.child_by_field_name("type_arguments"), source)
        first = signatures[0]
        decl = first.declaration
        if args and decl is not None and decl.symbol is not None and decl.kind is DeclKind.CONSTRUCTOR:
            return first.substitute(dict(zip(decl.symbol.type_parameters, args)))
        return first
