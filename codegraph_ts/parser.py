"""Tree-sitter front end for JavaScript / TypeScript sources.

Picks one of four syntax dialects (plain JS, JSX, TS, TSX) from the file
name and editor language id, loads the matching grammar from the
per-language ``tree-sitter-*`` packages and wraps the resulting tree in a
:class:`SourceFile` that knows how to turn tree-sitter byte offsets into
UTF-16 character offsets and zero-based ``{line, character}`` positions.
"""

from __future__ import annotations

import bisect
import importlib
import logging
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Iterator, List, Optional, Tuple

from tree_sitter import Language, Parser as TSParser

from .models import Position, Range

logger = logging.getLogger(__name__)


class Dialect(str, Enum):
    JS = "js"
    JSX = "jsx"
    TS = "ts"
    TSX = "tsx"

    @property
    def is_typed(self) -> bool:
        return self in (Dialect.TS, Dialect.TSX)


# Dialect -> (module providing the grammar, factory function in that module)
_GRAMMAR_MODULES: Dict[Dialect, Tuple[str, str]] = {
    Dialect.JS: ("tree_sitter_javascript", "language"),
    Dialect.JSX: ("tree_sitter_javascript", "language"),
    Dialect.TS: ("tree_sitter_typescript", "language_typescript"),
    Dialect.TSX: ("tree_sitter_typescript", "language_tsx"),
}

_JS_SUFFIXES = (".js", ".mjs", ".cjs")


def pick_dialect(file_name: str, language_id: str = "") -> Dialect:
    """Map a file name / language id to a dialect; unknown input gets TS."""
    lower = file_name.lower()
    if lower.endswith(".tsx") or language_id == "typescriptreact":
        return Dialect.TSX
    if lower.endswith(".jsx") or language_id == "javascriptreact":
        return Dialect.JSX
    if lower.endswith(_JS_SUFFIXES) or language_id == "javascript":
        return Dialect.JS
    return Dialect.TS


@lru_cache(maxsize=None)
def load_language(dialect: Dialect) -> Optional[Language]:
    """Load (once) the tree-sitter Language for *dialect*."""
    mod_name, factory = _GRAMMAR_MODULES[dialect]
    try:
        mod = importlib.import_module(mod_name)
        language = Language(getattr(mod, factory)())
        logger.debug("Loaded tree-sitter grammar %s.%s", mod_name, factory)
        return language
    except ImportError:
        logger.warning(
            "Grammar package '%s' not installed for dialect '%s'. Install with: pip install %s",
            mod_name, dialect.value, mod_name.replace("_", "-"),
        )
    except Exception as exc:
        logger.warning("Could not load tree-sitter grammar for %s: %s", dialect.value, exc)
    return None


def node_key(node: Any) -> Tuple[int, int, str]:
    """Identity of a syntax node that survives re-wrapping by tree-sitter."""
    return (node.start_byte, node.end_byte, node.type)


def iter_named(node: Any) -> Iterator[Any]:
    """Named children of *node*, comments excluded."""
    for child in node.named_children:
        if child.type != "comment":
            yield child


def _utf16_len(data: bytes) -> int:
    """Length of UTF-8 *data* in UTF-16 code units, the unit editors count in."""
    return len(data.decode("utf-8", errors="replace").encode("utf-16-le")) // 2


def walk_preorder(root: Any) -> Iterator[Any]:
    """Depth-first, parent-before-children traversal without recursion."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        children = node.children
        if children:
            stack.extend(reversed(children))


class SourceFile:
    """A parsed file plus the offset bookkeeping needed to report positions."""

    def __init__(self, file_name: str, text: str, dialect: Dialect, tree: Any) -> None:
        self.file_name = file_name
        self.text = text
        self.dialect = dialect
        self.tree = tree
        self.root = tree.root_node
        self._data = text.encode("utf-8")

        self._line_starts: List[int] = [0]
        idx = self._data.find(b"\n")
        while idx != -1:
            self._line_starts.append(idx + 1)
            idx = self._data.find(b"\n", idx + 1)

        self._line_char_starts: List[int] = []
        chars = 0
        for i, start in enumerate(self._line_starts):
            self._line_char_starts.append(chars)
            end = self._line_starts[i + 1] if i + 1 < len(self._line_starts) else len(self._data)
            chars += _utf16_len(self._data[start:end])

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def node_text(self, node: Any) -> str:
        return self._data[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    # ------------------------------------------------------------------
    # Offsets
    # ------------------------------------------------------------------

    def _line_of(self, byte_offset: int) -> int:
        return bisect.bisect_right(self._line_starts, byte_offset) - 1

    def position(self, byte_offset: int) -> Position:
        line = self._line_of(byte_offset)
        prefix = self._data[self._line_starts[line]:byte_offset]
        return Position(line, _utf16_len(prefix))

    def char_offset(self, byte_offset: int) -> int:
        pos = self.position(byte_offset)
        return self._line_char_starts[pos.line] + pos.character

    def node_range(self, node: Any) -> Range:
        return Range(self.position(node.start_byte), self.position(node.end_byte))

    def full_range(self) -> Range:
        return Range(Position(0, 0), self.position(len(self._data)))

    def __repr__(self) -> str:
        return f"SourceFile({self.file_name!r}, dialect={self.dialect.value})"


def parse_source(file_name: str, text: str, dialect: Dialect) -> Optional[SourceFile]:
    """Parse *text*; ``None`` when no tree can be produced."""
    language = load_language(dialect)
    if language is None:
        return None
    try:
        parser = TSParser(language)
        tree = parser.parse(text.encode("utf-8"))
    except Exception as exc:
        logger.warning("Failed to parse %s: %s", file_name, exc)
        return None
    if tree is None or tree.root_node is None:
        return None
    return SourceFile(file_name, text, dialect, tree)
