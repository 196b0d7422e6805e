"""Target → pandoc format resolution and format → extension mapping."""

from __future__ import annotations

import re
import subprocess
from collections.abc import Mapping, Sequence

from loguru import logger

from .layers import ConfigLayers
from .models import OptionBag, option_bag

log = logger.bind(stage="formats")

DEFAULT_TARGET = "html"

_EXTENSIONS: dict[str, str] = {
    "html": "html",
    "html5": "html",
    "epub": "epub",
    "epub3": "epub",
    "docx": "docx",
    "markdown": "md",
    "md": "md",
    "latex": "tex",
    "tex": "tex",
    "pdf": "pdf",
    "beamer": "pdf",
}

_EXTENSION_DELIMS = re.compile(r"[+-]")


def normalize_format(target: str) -> str:
    """Strip ``+ext``/``-ext`` modifiers: ``markdown+emoji-native_divs`` → ``markdown``."""
    for part in _EXTENSION_DELIMS.split(target):
        if part:
            return part
    return ""


def ext_for_format(fmt: str) -> str:
    """File extension for a pandoc output format; unknown formats map to themselves."""
    fmt = fmt.lower()
    return _EXTENSIONS.get(fmt, fmt)


def resolve_format(target: str, layers: ConfigLayers) -> tuple[str, OptionBag]:
    """Map ``target`` to a pandoc format and its private option bag.

    A detailed ``output:`` entry may override the format with ``to``; a
    generic top-level entry only contributes options. Missing or malformed
    entries degrade to the target name and an empty bag.
    """
    fmt = normalize_format(target)
    detailed, entry = layers.target_entry(target)

    if not isinstance(entry, Mapping):
        return fmt, {}

    if detailed:
        override = entry.get("to")
        if isinstance(override, str) and override:
            fmt = override

    return fmt, option_bag(entry)


def determine_targets(cli_targets: Sequence[str], layers: ConfigLayers) -> list[str]:
    """Pick the targets to build.

    CLI targets > document ``outputs`` list > sorted ``output`` map keys
    (all layers) > ``html``.
    """
    if cli_targets:
        return list(cli_targets)

    outputs = layers.outputs()
    if outputs:
        return outputs

    keys = layers.output_keys()
    if keys:
        return keys

    return [DEFAULT_TARGET]


def get_supported_formats(pandoc_bin: str = "pandoc") -> list[str]:
    """Ask pandoc for its output formats; empty when pandoc is unavailable."""
    try:
        result = subprocess.run(
            [pandoc_bin, "--list-output-formats"],
            capture_output=True,
            text=True,
        )
    except OSError as exc:
        log.debug(f"{pandoc_bin} --list-output-formats failed: {exc}")
        return []
    if result.returncode != 0:
        return []
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]
