"""Naming and resolving the targets of call and ``new`` expressions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Tuple

from .binder import Declaration, DeclKind
from .checker import Checker
from .config import TYPINGS_DIR, Settings
from .models import Range
from .parser import SourceFile
from .typesys import Signature, friendly_type_name

logger = logging.getLogger(__name__)

# Statement wrappers whose leading keywords belong to the declaration span
_DECLARATION_WRAPPERS = {"export_statement", "ambient_declaration"}
_WRAPPED_KINDS = {
    DeclKind.FUNCTION, DeclKind.FUNCTION_SIGNATURE, DeclKind.CLASS, DeclKind.INTERFACE,
    DeclKind.TYPE_ALIAS, DeclKind.ENUM, DeclKind.NAMESPACE,
}


@dataclass(frozen=True)
class DeclLocation:
    """Where a declaration lives: file, character offset and range."""

    file_name: str
    pos: int
    range: Range


def locate_declaration(decl: Declaration) -> DeclLocation:
    node = decl.node
    if decl.kind in _WRAPPED_KINDS:
        while node.parent is not None and node.parent.type in _DECLARATION_WRAPPERS:
            node = node.parent
    source = decl.source
    start = node
    # TS class bodies keep member decorators as preceding siblings
    while start.prev_named_sibling is not None and start.prev_named_sibling.type == "decorator":
        start = start.prev_named_sibling
    return DeclLocation(
        source.file_name,
        source.char_offset(start.start_byte),
        Range(source.position(start.start_byte), source.position(node.end_byte)),
    )


def is_external_file(file_name: str, settings: Settings) -> bool:
    """Dependency code, the standard library or the bundled typings."""
    norm = file_name.replace("\\", "/")
    if any(marker in norm for marker in settings.external_markers):
        return True
    try:
        return Path(file_name).resolve().is_relative_to(TYPINGS_DIR.resolve())
    except (OSError, ValueError):
        return False


# ---------------------------------------------------------------------------
# Display names
# ---------------------------------------------------------------------------

def normalize_callee_name(expr: Any, source: SourceFile, checker: Checker) -> str:
    """Readable name for the callee expression of a call."""
    t = expr.type
    if t == "identifier":
        return source.node_text(expr)
    if t == "member_expression":
        receiver = expr.child_by_field_name("object")
        prop = expr.child_by_field_name("property")
        method = source.node_text(prop) if prop is not None else ""
        type_name = friendly_type_name(checker.type_of(receiver, source)) if receiver is not None else ""
        if type_name:
            return f"{type_name}.{method}"
        return f"{source.node_text(receiver)}.{method}" if receiver is not None else method
    if t == "subscript_expression":
        obj = expr.child_by_field_name("object")
        return f"{source.node_text(obj)}[...]" if obj is not None else source.node_text(expr)
    if t == "parenthesized_expression":
        inner = next((c for c in expr.named_children if c.type != "comment"), None)
        if inner is not None:
            return normalize_callee_name(inner, source, checker)
    return source.node_text(expr)


def normalize_constructor_name(expr: Any, source: SourceFile, checker: Checker) -> str:
    """Readable name for the constructed expression of a ``new``."""
    if expr.type == "identifier":
        return source.node_text(expr)
    if expr.type == "member_expression":
        return friendly_type_name(checker.type_of(expr, source)) or source.node_text(expr)
    return source.node_text(expr)


# ---------------------------------------------------------------------------
# Declaration resolution
# ---------------------------------------------------------------------------

def resolve_call_target(call: Any, source: SourceFile,
                        checker: Checker) -> Tuple[Optional[Declaration], Optional[Signature]]:
    """Declaration a call binds to: resolved signature first, then the callee's symbol."""
    callee = call.child_by_field_name("function")
    signature = checker.resolved_signature(call, source)
    decl = signature.declaration if signature is not None else None
    if decl is None and callee is not None:
        decl = checker.pick_best_declaration(checker.symbol_at(callee, source))
    return decl, signature


def resolve_construct_target(new: Any, source: SourceFile,
                             checker: Checker) -> Tuple[Optional[Declaration], Optional[Signature]]:
    """Declaration a ``new`` binds to: first construct signature, then the symbol."""
    ctor = new.child_by_field_name("constructor")
    signature = checker.resolved_construct_signature(new, source)
    decl = signature.declaration if signature is not None else None
    if decl is None and ctor is not None:
        decl = checker.pick_best_declaration(checker.symbol_at(ctor, source))
    return decl, signature
