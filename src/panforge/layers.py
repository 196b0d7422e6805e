"""Document front matter, default configuration, and layered lookup.

The document's YAML front matter and an optional default config file
(``<data_dir>/<name>.yaml``) are loaded as plain mappings and stacked in a
``ConfigLayers``. Every lookup walks the layers in order and returns the first
value present, so a lower layer only fills keys that all higher layers lack.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from .errors import ConfigError

log = logger.bind(stage="config")

# Keys with a fixed meaning; everything else at the top level is "generic".
OUTPUTS_KEY = "outputs"
OUTPUT_MAP_KEY = "output"
RESERVED_KEYS: frozenset[str] = frozenset(
    {"title", "author", OUTPUTS_KEY, OUTPUT_MAP_KEY, "filename-template", "slugify-filename"}
)


def read_front_matter(text: str) -> str | None:
    """Return the raw YAML between a leading ``---`` and the closing fence.

    Returns None when the document does not open with a front matter block.
    """
    lines = text.lstrip("\ufeff").splitlines()
    if not lines or lines[0].rstrip() != "---":
        return None
    for idx in range(1, len(lines)):
        if lines[idx].rstrip() in ("---", "..."):
            return "\n".join(lines[1:idx])
    return None


def _parse_yaml(raw: str, source: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"error parsing YAML in '{source}': {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"error parsing YAML in '{source}': expected a mapping, "
            f"got {type(data).__name__}"
        )
    return {str(k): v for k, v in data.items()}


def load_document_config(path: Path) -> dict[str, Any]:
    """Parse the front matter of the Markdown document at ``path``."""
    log.debug(f"load_document_config(path={path})")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc

    raw = read_front_matter(text)
    if raw is None:
        log.debug(f"No front matter in {path.name}")
        return {}
    return _parse_yaml(raw, path)


def load_config_file(path: Path) -> dict[str, Any]:
    """Parse a standalone YAML configuration file."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    return _parse_yaml(text, path)


def _is_path_name(name: str) -> bool:
    return any(ch in name for ch in "./\\")


def find_default_config(name: str, data_dir: Path) -> Path | None:
    """Locate the default configuration file without loading it."""
    name = name or "default"
    if _is_path_name(name):
        path = Path(name).expanduser()
        return path.resolve() if path.is_file() else None
    path = data_dir / f"{name}.yaml"
    return path if path.is_file() else None


def load_default_config(
    name: str, data_dir: Path
) -> tuple[Path | None, dict[str, Any]]:
    """Load the default configuration by name or path.

    A ``name`` containing ``.``, ``/`` or ``\\`` is treated as a file path and
    must exist. Otherwise ``<data_dir>/<name>.yaml`` is used if present.
    """
    name = name or "default"
    path = find_default_config(name, data_dir)
    if path is None:
        if _is_path_name(name):
            raise ConfigError(f"could not find file {name}")
        return None, {}

    log.debug(f"Loading default config from {path}")
    return path, load_config_file(path)


class ConfigLayers:
    """Ordered configuration sources with first-present-wins lookup."""

    def __init__(self, *sources: Mapping[str, Any] | None) -> None:
        self.sources: tuple[Mapping[str, Any], ...] = tuple(
            source for source in sources if source is not None
        )

    def first(self, key: str, default: Any = None) -> Any:
        for source in self.sources:
            if key in source:
                return source[key]
        return default

    @property
    def title(self) -> str:
        return _as_str(self.first("title"))

    @property
    def author(self) -> str:
        return _as_str(self.first("author"))

    @property
    def filename_template(self) -> str:
        return _as_str(self.first("filename-template"))

    @property
    def slugify_filename(self) -> bool | None:
        value = self.first("slugify-filename")
        return value if isinstance(value, bool) else None

    def outputs(self) -> list[str]:
        """The document layer's ``outputs`` list (string items only).

        Lower layers never contribute a target list; they only add ``output``
        map keys.
        """
        if not self.sources:
            return []
        value = self.sources[0].get(OUTPUTS_KEY)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]

    def output_keys(self) -> list[str]:
        """Sorted union of the ``output`` map keys across all layers."""
        keys: set[str] = set()
        for source in self.sources:
            value = source.get(OUTPUT_MAP_KEY)
            if isinstance(value, Mapping):
                keys.update(str(k) for k in value)
        return sorted(keys)

    def target_entry(self, target: str) -> tuple[bool, Any]:
        """Find the configuration entry for ``target``.

        Within each layer the detailed ``output`` map is checked before the
        generic top-level keys; the first layer naming the target wins.
        Returns ``(is_detailed, entry)`` or ``(False, None)`` when unmatched.
        """
        for source in self.sources:
            output_map = source.get(OUTPUT_MAP_KEY)
            if isinstance(output_map, Mapping) and target in output_map:
                return True, output_map[target]
            if target not in RESERVED_KEYS and target in source:
                return False, source[target]
        return False, None


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
