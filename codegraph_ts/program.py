"""One analysis run's view of the world: the in-memory file plus whatever
it pulls in.

The root file is always served from memory; every other path is read from
disk on demand (relative imports, ``node_modules`` packages and their
``@types`` companions).  A bundled ambient declaration file stands in for
the JavaScript standard library.  It is parsed and bound once per process
and only ever read afterwards, so concurrent analyses may share it.
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from .binder import DeclKind, ExportEntry, FileBinding, Scope, Symbol, bind_source
from .config import AMBIENT_LIB_FILE, Settings
from .parser import Dialect, SourceFile, parse_source, pick_dialect

logger = logging.getLogger(__name__)

_RESOLVE_EXTENSIONS = (".ts", ".tsx", ".d.ts", ".js", ".jsx", ".mjs", ".cjs")
_MAX_EXPORT_HOPS = 16


@lru_cache(maxsize=1)
def load_ambient_binding() -> Optional[FileBinding]:
    """Parse and bind the bundled standard-library declarations once."""
    try:
        text = AMBIENT_LIB_FILE.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("Ambient library %s unavailable: %s", AMBIENT_LIB_FILE, exc)
        return None
    source = parse_source(str(AMBIENT_LIB_FILE), text, Dialect.TS)
    if source is None:
        return None
    return bind_source(source)


def _same_path(a: str, b: str) -> bool:
    return os.path.normcase(os.path.abspath(a)) == os.path.normcase(os.path.abspath(b))


class Program:
    """Source files, bindings and module resolution for one analysis."""

    def __init__(self, file_name: str, text: str, language_id: str = "",
                 settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.file_name = file_name
        self.dialect = pick_dialect(file_name, language_id)
        self.root: Optional[SourceFile] = parse_source(file_name, text, self.dialect)
        self.ambient: Optional[FileBinding] = load_ambient_binding()
        self._bindings: Dict[str, FileBinding] = {}
        self._files: Dict[str, Optional[SourceFile]] = {}
        self._modules: Dict[Tuple[str, str], Optional[Scope]] = {}
        self._module_symbols: Dict[int, Symbol] = {}

    # ------------------------------------------------------------------
    # Files and bindings
    # ------------------------------------------------------------------

    def is_root(self, path: str) -> bool:
        return _same_path(path, self.file_name)

    def get_source_file(self, path: str) -> Optional[SourceFile]:
        """The in-memory root for its own path, otherwise a disk read."""
        if self.root is not None and self.is_root(path):
            return self.root
        key = os.path.abspath(path)
        if key in self._files:
            return self._files[key]
        source: Optional[SourceFile] = None
        try:
            text = Path(key).read_text(encoding="utf-8", errors="replace")
            source = parse_source(key, text, pick_dialect(key))
        except OSError as exc:
            logger.debug("Cannot read %s: %s", key, exc)
        self._files[key] = source
        return source

    def binding_for(self, source: SourceFile) -> FileBinding:
        if self.ambient is not None and source is self.ambient.source:
            return self.ambient
        binding = self._bindings.get(source.file_name)
        if binding is None:
            binding = bind_source(source)
            self._bindings[source.file_name] = binding
        return binding

    @property
    def globals(self) -> Optional[Scope]:
        return self.ambient.module_scope if self.ambient is not None else None

    def global_symbol(self, name: str, kinds=None) -> Optional[Symbol]:
        scope = self.globals
        if scope is None:
            return None
        symbol = scope.symbols.get(name)
        if symbol is not None and (kinds is None or symbol.has_kind(kinds)):
            return symbol
        return None

    # ------------------------------------------------------------------
    # Module resolution
    # ------------------------------------------------------------------

    def resolve_module(self, specifier: Optional[str], from_source: SourceFile) -> Optional[Scope]:
        """Module scope that *specifier* names when imported from *from_source*."""
        if not specifier:
            return None
        cache_key = (from_source.file_name, specifier)
        if cache_key in self._modules:
            return self._modules[cache_key]
        self._modules[cache_key] = None  # re-entrancy guard

        module = self._ambient_module(specifier)
        if module is None and self.settings.resolve_imports and from_source is not self._ambient_source():
            path = self._resolve_path(specifier, from_source.file_name)
            if path is not None:
                target = self.get_source_file(path)
                if target is not None:
                    module = self.binding_for(target).module_scope
                    logger.debug("Resolved module '%s' to %s", specifier, path)
        if module is None:
            logger.debug("Unresolved module '%s' from %s", specifier, from_source.file_name)
        self._modules[cache_key] = module
        return module

    def _ambient_source(self) -> Optional[SourceFile]:
        return self.ambient.source if self.ambient is not None else None

    def _ambient_module(self, specifier: str) -> Optional[Scope]:
        bindings: List[FileBinding] = []
        if self.root is not None:
            bindings.append(self.binding_for(self.root))
        if self.ambient is not None:
            bindings.append(self.ambient)
        bindings.extend(self._bindings.values())
        for binding in bindings:
            scope = binding.ambient_modules.get(specifier)
            if scope is not None:
                return scope
        return None

    def _resolve_path(self, specifier: str, from_file: str) -> Optional[str]:
        from_dir = os.path.dirname(os.path.abspath(from_file))
        if specifier.startswith((".", "/")):
            return self._resolve_file(os.path.join(from_dir, specifier))
        return self._resolve_package(specifier, from_dir)

    @staticmethod
    def _resolve_file(base: str) -> Optional[str]:
        candidates: List[str] = []
        if base.endswith(_RESOLVE_EXTENSIONS):
            candidates.append(base)
            stem, ext = os.path.splitext(base)
            # "./util.js" written in TypeScript sources refers to util.ts
            if ext in (".js", ".jsx", ".mjs", ".cjs"):
                candidates.extend(stem + e for e in (".ts", ".tsx", ".d.ts"))
        candidates.extend(base + ext for ext in _RESOLVE_EXTENSIONS)
        candidates.extend(os.path.join(base, "index" + ext) for ext in _RESOLVE_EXTENSIONS)
        for candidate in candidates:
            if os.path.isfile(candidate):
                return os.path.normpath(candidate)
        return None

    def _resolve_package(self, specifier: str, from_dir: str) -> Optional[str]:
        parts = specifier.split("/")
        count = 2 if specifier.startswith("@") and len(parts) > 1 else 1
        package, subpath = "/".join(parts[:count]), "/".join(parts[count:])
        types_name = package[1:].replace("/", "__") if package.startswith("@") else package

        current = from_dir
        while True:
            modules_dir = os.path.join(current, "node_modules")
            if os.path.isdir(modules_dir):
                found = self._resolve_in_package(os.path.join(modules_dir, package), subpath)
                if found is None:
                    found = self._resolve_in_package(os.path.join(modules_dir, "@types", types_name), subpath)
                if found is not None:
                    return found
            parent = os.path.dirname(current)
            if parent == current:
                return None
            current = parent

    def _resolve_in_package(self, package_dir: str, subpath: str) -> Optional[str]:
        if not os.path.isdir(package_dir):
            return None
        if subpath:
            return self._resolve_file(os.path.join(package_dir, subpath))
        manifest = os.path.join(package_dir, "package.json")
        if os.path.isfile(manifest):
            try:
                with open(manifest, "r", encoding="utf-8") as f:
                    meta = json.load(f)
            except (OSError, ValueError) as exc:
                logger.debug("Bad package manifest %s: %s", manifest, exc)
                meta = {}
            for field_name in ("types", "typings", "module", "main"):
                entry = meta.get(field_name) if isinstance(meta, dict) else None
                if isinstance(entry, str) and entry:
                    found = self._resolve_file(os.path.join(package_dir, entry))
                    if found is not None:
                        return found
        return self._resolve_file(os.path.join(package_dir, "index"))

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def export_symbol(self, module: Scope, name: str,
                      _seen: Optional[Set[Tuple[int, str]]] = None) -> Optional[Symbol]:
        """Symbol that *module* exports under *name*, following re-exports."""
        seen = _seen if _seen is not None else set()
        marker = (id(module), name)
        if marker in seen or len(seen) > _MAX_EXPORT_HOPS:
            return None
        seen.add(marker)

        entry = module.export_entry(name)
        if entry is not None:
            return self._entry_symbol(module, name, entry, seen)
        if name != "default":
            for spec in module.star_exports:
                target = self.resolve_module(spec, module.source)
                if target is None:
                    continue
                symbol = self.export_symbol(target, name, seen)
                if symbol is not None:
                    return symbol
        if name == "default" and "export=" in module.exports:
            return self.export_symbol(module, "export=", seen)
        return None

    def _entry_symbol(self, module: Scope, name: str, entry: ExportEntry,
                      seen: Set[Tuple[int, str]]) -> Optional[Symbol]:
        if entry.symbol is not None:
            return entry.symbol
        if entry.local_name is not None:
            return module.lookup(entry.local_name)
        if entry.module_specifier is not None:
            target = self.resolve_module(entry.module_specifier, module.source)
            if target is None:
                return None
            if entry.imported_name == "*":
                return self.module_symbol(target, entry.module_specifier)
            return self.export_symbol(target, entry.imported_name or name, seen)
        return None

    def exported_names(self, module: Scope, _seen: Optional[Set[int]] = None) -> List[str]:
        seen = _seen if _seen is not None else set()
        if id(module) in seen:
            return []
        seen.add(id(module))
        names = list(module.exports)
        if module.implicit_exports:
            names.extend(n for n in module.symbols if n not in module.exports)
        for spec in module.star_exports:
            target = self.resolve_module(spec, module.source)
            if target is not None:
                names.extend(n for n in self.exported_names(target, seen)
                             if n != "default" and n not in names)
        return names

    def module_symbol(self, module: Scope, specifier: str = "") -> Symbol:
        """Namespace object for ``import * as ns``: exports become statics."""
        symbol = self._module_symbols.get(id(module))
        if symbol is not None:
            return symbol
        symbol = Symbol(f'"{specifier or module.source.file_name}"')
        self._module_symbols[id(module)] = symbol
        for name in self.exported_names(module):
            if name == "export=":
                continue
            target = self.export_symbol(module, name)
            if target is not None:
                symbol.statics[name] = target
        # `import * as x from "cjs"` exposes the `export =` value's members
        if "export=" in module.exports:
            target = self.export_symbol(module, "export=")
            if target is not None:
                for decl in target.declarations:
                    if decl.kind in (DeclKind.NAMESPACE, DeclKind.CLASS, DeclKind.FUNCTION):
                        for key, value in target.statics.items():
                            symbol.statics.setdefault(key, value)
        return symbol
