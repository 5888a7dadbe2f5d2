"""Declaration graph of one file: nodes for the file, its named functions,
classes and methods; ``calls`` / ``constructs`` / ``dataflow`` edges between
them.

Two passes over the tree:

1. *Nodes*: the file root, every named function declaration with a body,
   every named class and each of its plain named methods with a body.
   Node ids are ``"<kind>:<name>@<offset>"`` where ``offset`` is the
   character offset at which the declaration starts.
2. *Edges*: a walk that tracks the current owner (the enclosing function
   or method node, else the file root).  A call or ``new`` whose target
   resolves to a node of this file produces one edge from the owner, plus
   one ``dataflow`` edge per (parameter, argument) pair of the resolved
   signature.

Edges are deduplicated by ``kind:source->target@@label@@hint``; that key is
also the edge id.  Resolution failures for a single site are logged at
debug level and skipped.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, List, Optional, Set

from .binder import CLASS_DECLARATIONS, FUNCTION_DECLARATIONS, Declaration, DeclKind
from .callees import locate_declaration, resolve_call_target, resolve_construct_target
from .checker import Checker
from .config import Settings
from .models import DeclarationNode, EdgeKind, GraphEdge, GraphPayload, NodeKind
from .parser import SourceFile, iter_named
from .typesys import Parameter, Signature, signature_to_string, type_to_string

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def node_id(kind: str, name: str, pos: int) -> str:
    return f"{kind}:{name}@{pos}"


def edge_key(kind: str, source: str, target: str, label: Optional[str] = None, hint: Optional[str] = None) -> str:
    return f"{kind}:{source}->{target}@@{label or ''}@@{hint or ''}"


def file_root_node(source: SourceFile) -> DeclarationNode:
    base = os.path.basename(source.file_name) or source.file_name
    return DeclarationNode(node_id("file", base, 0), "file", base, source.file_name, source.full_range())


def clamp_text(text: str, limit: int) -> str:
    """Collapse whitespace runs and cut to *limit* characters with an ellipsis."""
    text = _WHITESPACE.sub(" ", text)
    return text if len(text) <= limit else text[: limit - 1] + "…"


def _is_plain_method(member: Any, source: SourceFile) -> bool:
    """Body-bearing method with an identifier name; no accessors or constructors."""
    if member.type != "method_definition" or member.child_by_field_name("body") is None:
        return False
    name = member.child_by_field_name("name")
    if name is None or name.type != "property_identifier":
        return False
    if any(not c.is_named and c.type in ("get", "set") for c in member.children):
        return False
    return source.node_text(name) != "constructor"


class GraphBuilder:
    def __init__(self, source: SourceFile, checker: Checker, settings: Settings) -> None:
        self.source = source
        self.checker = checker
        self.settings = settings
        self.binding = checker.binding(source)
        self.nodes: List[DeclarationNode] = []
        self.edges: List[GraphEdge] = []
        self._edge_keys: Set[str] = set()
        self._id_by_pos: Dict[int, str] = {}
        root = file_root_node(source)
        self.file_id = root.id
        self.nodes.append(root)

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def _signature_text(self, decl: Declaration) -> Optional[str]:
        if decl.kind not in (DeclKind.FUNCTION, DeclKind.METHOD):
            return None
        try:
            return signature_to_string(self.checker.signature_of(decl))
        except Exception as exc:
            logger.debug("No signature for %s: %s", decl.name, exc)
            return None

    def _push_node(self, node: Any, kind: NodeKind, name: str) -> None:
        decl = self.binding.declaration_for(node)
        if decl is None:
            return
        loc = locate_declaration(decl)
        nid = node_id(kind, name, loc.pos)
        if loc.pos in self._id_by_pos:
            return
        self._id_by_pos[loc.pos] = nid
        self.nodes.append(DeclarationNode(nid, kind, name, self.source.file_name, loc.range,
                                          self._signature_text(decl)))

    def collect_nodes(self) -> None:
        stack = [self.source.root]
        while stack:
            node = stack.pop()
            t = node.type
            name_node = node.child_by_field_name("name")
            if t in FUNCTION_DECLARATIONS and name_node is not None and node.child_by_field_name("body") is not None:
                self._push_node(node, "function", self.source.node_text(name_node))
            elif t in CLASS_DECLARATIONS and name_node is not None:
                class_name = self.source.node_text(name_node)
                self._push_node(node, "class", class_name)
                body = node.child_by_field_name("body")
                for member in iter_named(body) if body is not None else ():
                    if _is_plain_method(member, self.source):
                        method = self.source.node_text(member.child_by_field_name("name"))
                        self._push_node(member, "method", f"{class_name}.{method}")
            stack.extend(reversed(node.named_children))

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(self, kind: EdgeKind, source: str, target: str,
                 label: Optional[str] = None, hint: Optional[str] = None) -> None:
        key = edge_key(kind, source, target, label, hint)
        if key in self._edge_keys:
            return
        self._edge_keys.add(key)
        self.edges.append(GraphEdge(key, kind, source, target, label))

    def _target_id(self, decl: Optional[Declaration]) -> Optional[str]:
        if decl is None:
            return None
        loc = locate_declaration(decl)
        if loc.file_name != self.source.file_name:
            return None
        return self._id_by_pos.get(loc.pos)

    def _type_text(self, compute) -> str:
        try:
            return _WHITESPACE.sub(" ", type_to_string(compute()))
        except Exception as exc:
            logger.debug("Type display failed: %s", exc)
            return ""

    def dataflow_label(self, param: Parameter, arg: Any) -> str:
        param_name = clamp_text(param.name, self.settings.param_label_max)
        arg_text = clamp_text(self.source.node_text(arg), self.settings.arg_label_max)
        param_type = self._type_text(lambda: param.type)
        arg_type = self._type_text(lambda: self.checker.type_of(arg, self.source))
        left = f"{param_name}: {param_type}" if param_type else param_name
        right = f"{arg_text}: {arg_type}" if arg_type else arg_text
        return f"{left} ← {right}"

    def _dataflow(self, owner: str, target: str, signature: Optional[Signature], node: Any) -> None:
        if signature is None or signature.declaration is None:
            return
        args = self.checker.call_arguments(node)
        for i, (param, arg) in enumerate(zip(signature.parameters, args)):
            self.add_edge("dataflow", owner, target, self.dataflow_label(param, arg), f"arg#{i}")

    def _construct_graph_decl(self, decl: Declaration) -> Declaration:
        # a constructor stands for its class in the graph
        if decl.kind is DeclKind.CONSTRUCTOR and decl.symbol is not None:
            class_decl = decl.symbol.first(frozenset({DeclKind.CLASS}))
            if class_decl is not None:
                return class_decl
        return decl

    def _on_call(self, node: Any, owner: str) -> None:
        args = node.child_by_field_name("arguments")
        if args is not None and args.type == "template_string":
            return
        try:
            decl, signature = resolve_call_target(node, self.source, self.checker)
            target = self._target_id(decl)
            if target is None:
                return
            self.add_edge("calls", owner, target)
            self._dataflow(owner, target, signature, node)
        except Exception as exc:
            logger.debug("Skipping call at %s: %s", self.source.position(node.start_byte), exc)

    def _on_new(self, node: Any, owner: str) -> None:
        try:
            decl, signature = resolve_construct_target(node, self.source, self.checker)
            if decl is None:
                return
            target = self._target_id(self._construct_graph_decl(decl))
            if target is None:
                return
            self.add_edge("constructs", owner, target)
            self._dataflow(owner, target, signature, node)
        except Exception as exc:
            logger.debug("Skipping construction at %s: %s", self.source.position(node.start_byte), exc)

    def _owner_switch(self, node: Any) -> Optional[Any]:
        """Body to walk under a new owner, for named functions and plain methods."""
        t = node.type
        body = node.child_by_field_name("body")
        if body is None:
            return None
        if t in FUNCTION_DECLARATIONS and node.child_by_field_name("name") is not None:
            return body
        if _is_plain_method(node, self.source):
            return body
        return None

    def walk_edges(self) -> None:
        stack = [(self.source.root, self.file_id)]
        while stack:
            node, owner = stack.pop()
            body = self._owner_switch(node)
            if body is not None:
                decl = self.binding.declaration_for(node)
                next_owner = self._id_by_pos.get(locate_declaration(decl).pos, owner) if decl else owner
                stack.append((body, next_owner))
                continue
            if node.type == "call_expression":
                self._on_call(node, owner)
            elif node.type == "new_expression":
                self._on_new(node, owner)
            stack.extend((child, owner) for child in reversed(node.named_children))

    def build(self) -> GraphPayload:
        self.collect_nodes()
        self.walk_edges()
        logger.debug("Graph for %s: %d nodes, %d edges", self.source.file_name, len(self.nodes), len(self.edges))
        return GraphPayload(self.nodes, self.edges)


def build_graph(source: SourceFile, checker: Checker, settings: Settings) -> GraphPayload:
    return GraphBuilder(source, checker, settings).build()
