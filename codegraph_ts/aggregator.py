"""Counting every call / ``new`` in a file, grouped by resolved target."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from .callees import (
    is_external_file,
    locate_declaration,
    normalize_callee_name,
    normalize_constructor_name,
    resolve_call_target,
    resolve_construct_target,
)
from .checker import Checker
from .config import Settings
from .models import CallRecord
from .parser import SourceFile, walk_preorder

logger = logging.getLogger(__name__)

CallKey = Tuple[str, str, str]


class CallAggregator:
    """Walks a source file and folds call sites into ranked :class:`CallRecord` s."""

    def __init__(self, source: SourceFile, checker: Checker, settings: Settings) -> None:
        self.source = source
        self.checker = checker
        self.settings = settings
        self._records: Dict[CallKey, CallRecord] = {}

    def _name(self, node: Any, target: Any, normalize: Callable[..., str]) -> str:
        if target is None:
            return self.source.node_text(node)
        try:
            return normalize(target, self.source, self.checker)
        except Exception as exc:
            logger.debug("Callee naming failed at %s: %s", self.source.position(node.start_byte), exc)
            return self.source.node_text(target)

    def _record(self, node: Any) -> Optional[Tuple[CallKey, CallRecord]]:
        if node.type == "call_expression":
            args = node.child_by_field_name("arguments")
            if args is not None and args.type == "template_string":
                return None  # tagged template
            name = self._name(node, node.child_by_field_name("function"), normalize_callee_name)
            resolve = resolve_call_target
        else:
            name = "new " + self._name(node, node.child_by_field_name("constructor"), normalize_constructor_name)
            resolve = resolve_construct_target

        record = CallRecord(callee_name=name, count=1)
        pos: Optional[int] = None
        try:
            decl, _ = resolve(node, self.source, self.checker)
            if decl is not None:
                loc = locate_declaration(decl)
                external = is_external_file(loc.file_name, self.settings)
                pos = loc.pos
                record.decl_file = loc.file_name
                record.decl_range = loc.range
                record.is_external = external
        except Exception as exc:
            logger.debug("Target resolution failed for %s: %s", name, exc)
        key = (name, record.decl_file or "null", str(pos) if pos is not None else "null")
        return key, record

    def add(self, node: Any) -> None:
        entry = self._record(node)
        if entry is None:
            return
        key, record = entry
        existing = self._records.get(key)
        if existing is not None:
            existing.count += 1
        else:
            self._records[key] = record

    def run(self) -> List[CallRecord]:
        for node in walk_preorder(self.source.root):
            if node.type in ("call_expression", "new_expression"):
                self.add(node)
        return self.ranked()

    def ranked(self) -> List[CallRecord]:
        """Most frequent first; ties keep first-seen order. Capped at ``max_calls``."""
        ordered = sorted(self._records.values(), key=lambda r: -r.count)
        return ordered[: self.settings.max_calls]


def aggregate_calls(source: SourceFile, checker: Checker, settings: Settings) -> List[CallRecord]:
    calls = CallAggregator(source, checker, settings).run()
    logger.debug("Aggregated %d call targets in %s", len(calls), source.file_name)
    return calls
