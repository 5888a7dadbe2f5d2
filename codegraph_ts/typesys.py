"""Semantic types understood by the checker, and their display forms.

Display strings follow the shapes TypeScript prints (``number[]``,
``typeof Counter``, ``(a: number) => number``, ``{ id: number; }``) so
that labels read the way developers expect.  Literal types are not
modelled: ``2`` is ``number`` and ``"x"`` is ``string``.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .binder import Declaration, Symbol

_MAX_DISPLAY_DEPTH = 4


class Type:
    symbol: Optional[Symbol] = None

    def substitute(self, mapping: Dict[str, "Type"]) -> "Type":
        return self


class IntrinsicType(Type):
    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"IntrinsicType({self.name})"


ANY = IntrinsicType("any")
UNKNOWN = IntrinsicType("unknown")
NUMBER = IntrinsicType("number")
STRING = IntrinsicType("string")
BOOLEAN = IntrinsicType("boolean")
VOID = IntrinsicType("void")
UNDEFINED = IntrinsicType("undefined")
NULL = IntrinsicType("null")
NEVER = IntrinsicType("never")
OBJECT = IntrinsicType("object")
SYMBOL = IntrinsicType("symbol")
BIGINT = IntrinsicType("bigint")

INTRINSICS: Dict[str, IntrinsicType] = {
    t.name: t for t in (ANY, UNKNOWN, NUMBER, STRING, BOOLEAN, VOID, UNDEFINED, NULL, NEVER, OBJECT, SYMBOL, BIGINT)
}


class ObjectType(Type):
    """Instance side of a class, interface, enum or object-shaped alias."""

    def __init__(self, symbol: Symbol, type_args: Tuple[Type, ...] = ()) -> None:
        self.symbol = symbol
        self.type_args = tuple(type_args)

    def type_mapping(self) -> Dict[str, Type]:
        return dict(zip(self.symbol.type_parameters, self.type_args)) if self.symbol else {}

    def substitute(self, mapping: Dict[str, Type]) -> Type:
        if not self.type_args:
            return self
        return ObjectType(self.symbol, tuple(a.substitute(mapping) for a in self.type_args))


class StaticType(Type):
    """Static side of a class, an enum object, a namespace or a module."""

    def __init__(self, symbol: Symbol) -> None:
        self.symbol = symbol


class ArrayType(Type):
    def __init__(self, element: Type, symbol: Optional[Symbol] = None) -> None:
        self.element = element
        self.symbol = symbol

    def substitute(self, mapping: Dict[str, Type]) -> Type:
        return ArrayType(self.element.substitute(mapping), self.symbol)


class TupleType(Type):
    def __init__(self, elements: Sequence[Type], symbol: Optional[Symbol] = None) -> None:
        self.elements = list(elements)
        self.symbol = symbol

    def substitute(self, mapping: Dict[str, Type]) -> Type:
        return TupleType([e.substitute(mapping) for e in self.elements], self.symbol)


class UnionType(Type):
    def __init__(self, members: Sequence[Type]) -> None:
        self.members = list(members)

    def substitute(self, mapping: Dict[str, Type]) -> Type:
        return make_union([m.substitute(mapping) for m in self.members])


class TypeParameterType(Type):
    def __init__(self, name: str) -> None:
        self.name = name

    def substitute(self, mapping: Dict[str, Type]) -> Type:
        return mapping.get(self.name, self)


class TextType(Type):
    """A type we could not model; displayed with its source spelling."""

    def __init__(self, text: str) -> None:
        self.text = text


class LiteralObjectType(Type):
    """Anonymous object shape from an object literal or a type literal."""

    def __init__(self, members: Dict[str, Symbol], property_types: Dict[str, Type]) -> None:
        self.members = members
        self.property_types = property_types

    def substitute(self, mapping: Dict[str, Type]) -> Type:
        return LiteralObjectType(self.members, {k: v.substitute(mapping) for k, v in self.property_types.items()})


class Parameter:
    def __init__(self, name: str, node: Any, type: Type, optional: bool = False, rest: bool = False) -> None:
        self.name = name
        self.node = node
        self.type = type
        self.optional = optional
        self.rest = rest

    def substitute(self, mapping: Dict[str, Type]) -> "Parameter":
        return Parameter(self.name, self.node, self.type.substitute(mapping), self.optional, self.rest)


class Signature:
    """A call or construct signature; the return type is computed on demand."""

    def __init__(
        self,
        declaration: Optional[Declaration],
        parameters: List[Parameter],
        return_type_fn: Callable[[], Type],
        mapping: Optional[Dict[str, Type]] = None,
    ) -> None:
        self.declaration = declaration
        self.parameters = parameters
        self._return_type_fn = return_type_fn
        self._mapping = mapping or {}
        self._return_type: Optional[Type] = None

    @property
    def return_type(self) -> Type:
        if self._return_type is None:
            result = self._return_type_fn()
            self._return_type = result.substitute(self._mapping) if self._mapping else result
        return self._return_type

    @property
    def min_arguments(self) -> int:
        return sum(1 for p in self.parameters if not p.optional and not p.rest)

    def accepts(self, count: int) -> bool:
        if count < self.min_arguments:
            return False
        return count <= len(self.parameters) or any(p.rest for p in self.parameters)

    def substitute(self, mapping: Dict[str, Type]) -> "Signature":
        if not mapping:
            return self
        merged = {**self._mapping, **mapping}
        return Signature(
            self.declaration,
            [p.substitute(mapping) for p in self.parameters],
            self._return_type_fn,
            merged,
        )


class FunctionType(Type):
    def __init__(self, signatures: List[Signature], symbol: Optional[Symbol] = None) -> None:
        self.signatures = signatures
        self.symbol = symbol

    def substitute(self, mapping: Dict[str, Type]) -> Type:
        if not mapping:
            return self
        return FunctionType([s.substitute(mapping) for s in self.signatures], self.symbol)


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------

def make_union(types: Sequence[Type]) -> Type:
    flat: List[Type] = []
    seen = set()
    for t in types:
        parts = t.members if isinstance(t, UnionType) else [t]
        for part in parts:
            if part is ANY:
                return ANY
            label = type_to_string(part)
            if label in seen:
                continue
            seen.add(label)
            flat.append(part)
    if not flat:
        return NEVER
    if len(flat) == 1:
        return flat[0]
    return UnionType(flat)


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

def _parameter_to_string(param: Parameter, depth: int) -> str:
    prefix = "..." if param.rest else ""
    marker = "?" if param.optional and not param.rest else ""
    return f"{prefix}{param.name}{marker}: {type_to_string(param.type, depth)}"


def _parameters_to_string(sig: Signature, depth: int) -> str:
    return ", ".join(_parameter_to_string(p, depth) for p in sig.parameters)


def type_to_string(t: Type, depth: int = 0) -> str:
    if depth > _MAX_DISPLAY_DEPTH:
        return "..."
    nested = depth + 1
    if isinstance(t, IntrinsicType):
        return t.name
    if isinstance(t, ObjectType):
        if t.type_args:
            return f"{t.symbol.name}<{', '.join(type_to_string(a, nested) for a in t.type_args)}>"
        return t.symbol.name
    if isinstance(t, StaticType):
        if t.symbol.name.startswith('"'):
            return f"typeof import({t.symbol.name})"
        return f"typeof {t.symbol.name}"
    if isinstance(t, ArrayType):
        inner = type_to_string(t.element, nested)
        if isinstance(t.element, (UnionType, FunctionType)):
            inner = f"({inner})"
        return f"{inner}[]"
    if isinstance(t, TupleType):
        return f"[{', '.join(type_to_string(e, nested) for e in t.elements)}]"
    if isinstance(t, UnionType):
        return " | ".join(type_to_string(m, nested) for m in t.members)
    if isinstance(t, FunctionType):
        if len(t.signatures) == 1:
            sig = t.signatures[0]
            return f"({_parameters_to_string(sig, nested)}) => {type_to_string(sig.return_type, nested)}"
        parts = [f"({_parameters_to_string(s, nested)}): {type_to_string(s.return_type, nested)};"
                 for s in t.signatures]
        return "{ " + " ".join(parts) + " }"
    if isinstance(t, LiteralObjectType):
        if not t.property_types:
            return "{}"
        parts = [f"{name}: {type_to_string(pt, nested)};" for name, pt in t.property_types.items()]
        return "{ " + " ".join(parts) + " }"
    if isinstance(t, TypeParameterType):
        return t.name
    if isinstance(t, TextType):
        return t.text
    return "any"


def signature_to_string(sig: Signature) -> str:
    """``(a: number, b: number): number``"""
    return f"({_parameters_to_string(sig, 1)}): {type_to_string(sig.return_type, 1)}"


def friendly_type_name(t: Type) -> str:
    """Name used to qualify member calls; empty when nothing useful exists."""
    if t is ANY or t is UNKNOWN:
        return ""
    symbol = t.symbol
    if symbol is not None and symbol.name and not symbol.name.startswith(("__", '"', "(")):
        return symbol.name
    if isinstance(t, (IntrinsicType, TextType)):
        return type_to_string(t)
    return ""
