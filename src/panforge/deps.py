"""Tool presence checks for ``panforge check``."""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from .config import PanforgeSettings
from .errors import ConfigError
from .formats import determine_targets, resolve_format
from .layers import ConfigLayers, load_default_config, load_document_config
from .models import bag_str

log = logger.bind(stage="deps")

KNOWN_TOOLS: tuple[str, ...] = (
    "pandoc",
    "typst",
    "pdflatex",
    "xelatex",
    "lualatex",
    "tectonic",
    "wkhtmltopdf",
    "pandoc-crossref",
    "rsvg-convert",
)

DEFAULT_PDF_ENGINE = "pdflatex"
PDF_FORMATS: frozenset[str] = frozenset({"pdf", "latex", "beamer", "context"})

_VERSION_FLAGS = ("--version", "-version", "version")


@dataclass(frozen=True)
class CheckResult:
    """Status of one external tool."""

    name: str
    found: bool
    path: str = ""
    version: str = ""
    error: str = ""


def _first_line(output: str) -> str:
    output = output.strip()
    return output.splitlines()[0].strip() if output else ""


def check_tool(name: str, version_flag: str = "") -> CheckResult:
    """Locate ``name`` on PATH and read its version line."""
    path = shutil.which(name)
    if path is None:
        return CheckResult(name=name, found=False, error=f"{name} not found in PATH")

    flags = (version_flag,) if version_flag else _VERSION_FLAGS
    for flag in flags:
        try:
            result = subprocess.run(
                [path, flag], capture_output=True, text=True, timeout=10
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            log.debug(f"{name} {flag} failed: {exc}")
            continue
        if result.returncode == 0:
            version = _first_line(result.stdout)
            if version:
                return CheckResult(name=name, found=True, path=path, version=version)

    return CheckResult(name=name, found=True, path=path)


def required_tools(input_file: Path | None, settings: PanforgeSettings) -> list[str]:
    """Tools needed to build ``input_file``'s targets (pandoc plus engines)."""
    required = ["pandoc"]
    if input_file is None:
        return required

    try:
        document = load_document_config(input_file)
        _, defaults = load_default_config(
            settings.default_config, settings.default_config_dir
        )
    except ConfigError as exc:
        log.debug(f"Cannot analyze {input_file}: {exc}")
        return required

    layers = ConfigLayers(document, defaults)
    global_engine = layers.first("pdf-engine")

    for target in determine_targets(settings.targets, layers):
        fmt, options = resolve_format(target, layers)
        tool = ""
        if fmt == "typst":
            tool = "typst"
        elif fmt in PDF_FORMATS:
            tool = bag_str(options, "pdf-engine") or ""
            if not tool and isinstance(global_engine, str):
                tool = global_engine
            tool = tool or DEFAULT_PDF_ENGINE
        if tool and tool not in required:
            required.append(tool)

    return required
