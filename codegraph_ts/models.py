"""Core data models produced by a single-file analysis run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

ImportKind = Literal["named", "default", "namespace", "side-effect", "unknown"]
ExportKind = Literal["function", "class", "type", "interface", "const", "unknown"]
NodeKind = Literal["file", "function", "method", "class", "external"]
EdgeKind = Literal["calls", "constructs", "dataflow"]


@dataclass(frozen=True)
class Position:
    """Zero-based line / character pair."""
    line: int
    character: int

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "character": self.character}


@dataclass(frozen=True)
class Range:
    start: Position
    end: Position

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}


@dataclass
class ImportRecord:
    source: str
    specifiers: List[str]
    kind: ImportKind

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "specifiers": list(self.specifiers), "kind": self.kind}


@dataclass
class ExportRecord:
    name: str
    kind: ExportKind

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "kind": self.kind}


@dataclass
class CallRecord:
    """One aggregated call/construct target and how often it occurs."""
    callee_name: str
    count: int
    decl_file: Optional[str] = None
    decl_range: Optional[Range] = None
    is_external: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "calleeName": self.callee_name,
            "count": self.count,
            "declFile": self.decl_file,
            "declRange": self.decl_range.to_dict() if self.decl_range else None,
            "isExternal": self.is_external,
        }


@dataclass
class DeclarationNode:
    id: str
    kind: NodeKind
    name: str
    file: str
    range: Range
    signature: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "file": self.file,
            "range": self.range.to_dict(),
        }
        if self.signature is not None:
            data["signature"] = self.signature
        return data


@dataclass
class GraphEdge:
    id: str
    kind: EdgeKind
    source: str
    target: str
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "kind": self.kind,
            "source": self.source,
            "target": self.target,
        }
        if self.label is not None:
            data["label"] = self.label
        return data


@dataclass
class GraphPayload:
    nodes: List[DeclarationNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)

    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


@dataclass
class AnalysisResult:
    imports: List[ImportRecord] = field(default_factory=list)
    exports: List[ExportRecord] = field(default_factory=list)
    calls: List[CallRecord] = field(default_factory=list)
    graph: GraphPayload = field(default_factory=GraphPayload)

    @classmethod
    def empty(cls) -> "AnalysisResult":
        """Outcome for input that produced no syntax tree."""
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imports": [i.to_dict() for i in self.imports],
            "exports": [e.to_dict() for e in self.exports],
            "calls": [c.to_dict() for c in self.calls],
            "graph": self.graph.to_dict(),
        }
