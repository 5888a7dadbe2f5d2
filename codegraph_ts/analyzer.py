"""Single-file analysis pipeline: parse, bind, extract, aggregate, graph.

:func:`analyze` never raises.  Each stage is isolated so that a failure
in one (say, the graph) still leaves the others in the result; the only
caller-visible degenerate outcome is an empty result when the text could
not be parsed at all.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Callable, Dict, Optional, TypeVar

from .aggregator import aggregate_calls
from .checker import Checker
from .config import Settings, load_settings
from .graph_builder import build_graph, file_root_node
from .linkage import extract_exports, extract_imports
from .models import AnalysisResult, GraphPayload
from .program import Program

logger = logging.getLogger(__name__)

T = TypeVar("T")

_LINE_BREAK = re.compile(r"\r?\n")


def _stage(name: str, file_name: str, fn: Callable[[], T], fallback: T) -> T:
    try:
        return fn()
    except Exception as exc:
        logger.warning("%s failed for %s: %s", name, file_name, exc)
        logger.debug("%s traceback", name, exc_info=True)
        return fallback


def analyze(text: str, file_name: str, language_id: str = "",
            settings: Optional[Settings] = None) -> AnalysisResult:
    """Analyze *text* as if it were the contents of *file_name*."""
    settings = settings or load_settings()
    try:
        program = Program(file_name, text, language_id, settings)
    except Exception as exc:
        logger.warning("Could not set up analysis for %s: %s", file_name, exc)
        return AnalysisResult.empty()
    source = program.root
    if source is None:
        logger.info("No syntax tree for %s; returning empty analysis", file_name)
        return AnalysisResult.empty()

    checker = Checker(program)
    result = AnalysisResult(
        imports=_stage("Import extraction", file_name, lambda: extract_imports(source), []),
        exports=_stage("Export extraction", file_name, lambda: extract_exports(source), []),
        calls=_stage("Call aggregation", file_name, lambda: aggregate_calls(source, checker, settings), []),
        graph=_stage(
            "Graph building", file_name,
            lambda: build_graph(source, checker, settings),
            GraphPayload(nodes=[file_root_node(source)]),
        ),
    )
    logger.info(
        "Analyzed %s: %d imports, %d exports, %d call targets, %d nodes, %d edges",
        file_name, len(result.imports), len(result.exports), len(result.calls),
        len(result.graph.nodes), len(result.graph.edges),
    )
    return result


def text_stats(text: str) -> Dict[str, int]:
    return {"chars": len(text), "lines": len(_LINE_BREAK.split(text))}


def analysis_envelope(text: str, file_name: str, language_id: str,
                      result: AnalysisResult) -> Dict[str, Any]:
    """The ``analysisResult`` message a front end consumes."""
    payload: Dict[str, Any] = {
        "fileName": os.path.basename(file_name) or file_name,
        "languageId": language_id,
        "stats": text_stats(text),
    }
    payload.update(result.to_dict())
    return {"type": "analysisResult", "payload": payload}
