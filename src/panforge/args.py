"""Option bag → pandoc argument vector.

The CLI's own flags (``CLI_FLAGS``) are reserved: an option whose name
collides with one of them is never forwarded to pandoc, whatever its value.
"""

from __future__ import annotations

import shlex
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from loguru import logger

from .models import Entries, Flag, Items, OptionValue, Scalar, option_value

log = logger.bind(stage="args")

# (long, short) pairs for every flag the panforge command defines.
CLI_FLAGS: tuple[tuple[str, str], ...] = (
    ("to", "t"),
    ("output", "o"),
    ("force", "f"),
    ("dry-run", "n"),
    ("verbose", "v"),
    ("quiet", "q"),
    ("log", "l"),
    ("all", "a"),
    ("watch", "w"),
    ("concurrency", "c"),
    ("help", "h"),
)


def _reserved_flags(pairs: Sequence[tuple[str, str]]) -> frozenset[str]:
    reserved: set[str] = set()
    for long_name, short_name in pairs:
        if long_name:
            reserved.add(f"--{long_name}")
        if short_name:
            reserved.add(f"-{short_name}")
    return frozenset(reserved)


RESERVED_FLAGS: frozenset[str] = _reserved_flags(CLI_FLAGS)

# Handled by the scheduler itself, never forwarded generically.
EXCLUDED_KEYS: frozenset[str] = frozenset({"to", "t", "output", "from"})

PASSTHROUGH_KEY = "pandoc_args"


def format_value(value: Any) -> str:
    """String form of a YAML scalar as pandoc expects it on the command line."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _flag_for(name: str) -> str:
    return f"--{name}" if len(name) > 1 else f"-{name}"


def _emit(flag: str, value: OptionValue) -> list[str]:
    if isinstance(value, Flag):
        return [flag] if value.enabled else []
    if isinstance(value, Items):
        args: list[str] = []
        for item in value.values:
            args += [flag, format_value(item)]
        return args
    if isinstance(value, Entries):
        args = []
        for key, sub in sorted(value.values, key=lambda kv: kv[0]):
            args += [flag, f"{key}={format_value(sub)}"]
        return args
    if isinstance(value, Scalar):
        if value.value is None:
            return []
        return [flag, format_value(value.value)]
    raise TypeError(f"unsupported option value: {value!r}")


def build_args(options: Mapping[str, Any]) -> list[str]:
    """Convert an option bag into pandoc arguments.

    Keys are emitted in sorted order; ``pandoc_args`` items are appended
    verbatim at the end.
    """
    passthrough: list[str] = []
    raw_passthrough = options.get(PASSTHROUGH_KEY)
    if raw_passthrough is not None:
        extra = option_value(raw_passthrough)
        if isinstance(extra, Items):
            passthrough = [format_value(item) for item in extra.values]
        else:
            log.warning(f"Ignoring {PASSTHROUGH_KEY}: expected a list, got {extra!r}")

    args: list[str] = []
    for key in sorted(options):
        if key == PASSTHROUGH_KEY or key in EXCLUDED_KEYS:
            continue

        name = key.replace("_", "-")
        if _flag_for(name) in RESERVED_FLAGS:
            log.debug(f"Dropping reserved option '{key}'")
            continue

        args += _emit(f"--{name}", option_value(options[key]))

    return args + passthrough


def normalize_post_args(post_args: Sequence[str]) -> list[str]:
    """Rewrite ``-t`` to ``--to`` in pass-through arguments."""
    return ["--to" if arg == "-t" else arg for arg in post_args]


def build_command(
    input_file: Path,
    fmt: str,
    output_path: Path,
    options: Mapping[str, Any],
    post_args: Sequence[str] = (),
) -> list[str]:
    """Full pandoc argv (without the program name) for one job."""
    return [
        str(input_file),
        "--to",
        fmt,
        "--output",
        str(output_path),
        *build_args(options),
        *normalize_post_args(post_args),
    ]


def render_command(tool: str, args: Sequence[str]) -> str:
    """Shell-quoted command line for logging."""
    return shlex.join([tool, *args])
