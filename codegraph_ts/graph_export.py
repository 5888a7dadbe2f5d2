"""Graph export helpers for DOT and JSON outputs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .models import DeclarationNode, GraphEdge, GraphPayload

EDGE_KINDS = ("calls", "constructs", "dataflow")

_EDGE_STYLES = {
    "calls": "solid",
    "constructs": "bold",
    "dataflow": "dashed",
}


def filter_graph(graph: GraphPayload, kinds: Optional[Iterable[str]] = None, focus: str = "") -> GraphPayload:
    """Keep only edges of *kinds*, then narrow to the neighbourhood of *focus*."""
    wanted = set(kinds) if kinds else set(EDGE_KINDS)
    edges = [e for e in graph.edges if e.kind in wanted]
    return _focused_subgraph(graph.nodes, edges, focus)


def render_dot(graph: GraphPayload) -> str:
    lines = ["digraph CodeGraph {"]
    lines.append("  rankdir=LR;")

    for node in graph.nodes:
        label = f"{_esc(node.kind)}\\n{_esc(node.name)}"
        shape = "folder" if node.kind == "file" else ("box" if node.kind == "class" else "ellipse")
        lines.append(f'  "{_esc(node.id)}" [label="{label}", shape={shape}];')

    known = {n.id for n in graph.nodes}
    for edge in graph.edges:
        if edge.source not in known or edge.target not in known:
            continue
        label = edge.label if edge.label is not None else edge.kind
        lines.append(
            f'  "{_esc(edge.source)}" -> "{_esc(edge.target)}" '
            f'[label="{_esc(label)}", style={_EDGE_STYLES.get(edge.kind, "solid")}];'
        )

    lines.append("}")
    return "\n".join(lines)


def render_json(graph: GraphPayload) -> str:
    return json.dumps(graph.to_dict(), indent=2, ensure_ascii=False)


def export_dot(graph: GraphPayload, output_file: Path) -> None:
    output_file.write_text(render_dot(graph), encoding="utf-8")


def export_json(graph: GraphPayload, output_file: Path) -> None:
    output_file.write_text(render_json(graph), encoding="utf-8")


def _focused_subgraph(nodes: List[DeclarationNode], edges: List[GraphEdge], focus: str) -> GraphPayload:
    if not focus:
        return GraphPayload(list(nodes), edges)

    focus_ids = {n.id for n in nodes if focus in n.id or focus in n.name}

    if not focus_ids:
        return GraphPayload(list(nodes), edges)

    edge_subset = [e for e in edges if e.source in focus_ids or e.target in focus_ids]
    node_subset = set(focus_ids)
    for e in edge_subset:
        node_subset.add(e.source)
        node_subset.add(e.target)
    by_id: Dict[str, DeclarationNode] = {n.id: n for n in nodes}
    return GraphPayload([by_id[i] for i in by_id if i in node_subset], edge_subset)


def _esc(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
