"""Analysis settings, loaded from ``~/.codegraph-ts/config.toml`` when present."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Tuple

import toml

logger = logging.getLogger(__name__)

BASE_DIR = Path(os.environ.get("CODEGRAPH_TS_HOME", str(Path.home() / ".codegraph-ts"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

# Bundled ambient declarations (standard library surface for the resolver)
TYPINGS_DIR = Path(__file__).parent / "typings"
AMBIENT_LIB_FILE = TYPINGS_DIR / "lib.ambient.d.ts"

DEFAULT_MAX_CALLS = 60
DEFAULT_PARAM_LABEL_MAX = 60
DEFAULT_ARG_LABEL_MAX = 80
DEFAULT_EXTERNAL_MARKERS: Tuple[str, ...] = ("/node_modules/", "/typescript/lib/")


@dataclass(frozen=True)
class Settings:
    """Knobs for one analysis run."""

    max_calls: int = DEFAULT_MAX_CALLS
    param_label_max: int = DEFAULT_PARAM_LABEL_MAX
    arg_label_max: int = DEFAULT_ARG_LABEL_MAX
    resolve_imports: bool = True
    external_markers: Tuple[str, ...] = field(default=DEFAULT_EXTERNAL_MARKERS)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["external_markers"] = list(self.external_markers)
        return data


def load_config_table() -> Dict[str, Any]:
    """Return the ``[analysis]`` table of the TOML config, or ``{}``."""
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            data = toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Could not read %s: %s", CONFIG_FILE, exc)
        return {}
    table = data.get("analysis", {})
    return table if isinstance(table, dict) else {}


def load_settings(**overrides: Any) -> Settings:
    """Build settings from defaults, the config file, then *overrides*."""
    known = {f.name for f in fields(Settings)}
    values: Dict[str, Any] = {}
    for key, value in load_config_table().items():
        if key not in known:
            logger.warning("Ignoring unknown config key '%s'", key)
            continue
        values[key] = value
    values.update({k: v for k, v in overrides.items() if v is not None})
    if "external_markers" in values:
        values["external_markers"] = tuple(values["external_markers"])
    return Settings(**values)
