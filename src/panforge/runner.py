"""Pipeline runner: input handling, configuration layering, and one run."""

from __future__ import annotations

import os
import shutil
import tempfile
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from loguru import logger

from .config import PanforgeSettings
from .errors import ConfigError, PanforgeError
from .executor import CommandExecutor
from .formats import determine_targets
from .layers import ConfigLayers, load_default_config, load_document_config
from .models import RunResult
from .overwrite import ask_for_confirmation
from .planner import JobPlanner
from .scheduler import Confirm, ConvertScheduler

log = logger.bind(stage="runner")

STDIN_ARG = "-"


def parse_args(args: Sequence[str]) -> tuple[str, list[str]]:
    """Split positional arguments into the input file and pandoc pass-through.

    The first argument that is ``-`` or does not start with ``-`` is the
    input; everything after it is forwarded to pandoc.
    """
    for i, arg in enumerate(args):
        if arg == STDIN_ARG or not arg.startswith("-"):
            return arg, list(args[i + 1 :])
    return "", []


def load_layers(input_file: Path, settings: PanforgeSettings) -> ConfigLayers:
    """Stack document front matter over the default configuration."""
    try:
        document = load_document_config(input_file)
    except ConfigError as exc:
        # Without CLI targets there is nothing to build
        if not settings.targets:
            raise ConfigError(
                "input file has no valid YAML header and no target format "
                f"specified: {exc}"
            ) from exc
        log.warning(f"Ignoring front matter of {input_file.name}: {exc}")
        document = {}

    _, defaults = load_default_config(
        settings.default_config, settings.default_config_dir
    )
    return ConfigLayers(document, defaults)


def process(
    input_file: Path,
    post_args: Sequence[str],
    settings: PanforgeSettings,
    executor: CommandExecutor,
    *,
    cancel: threading.Event | None = None,
    confirm: Confirm = ask_for_confirmation,
) -> RunResult:
    """Build every requested target of ``input_file`` once.

    Raises the first job error after all jobs have finished.
    """
    layers = load_layers(input_file, settings)
    targets = determine_targets(settings.targets, layers)
    log.info(f"Building {input_file.name}: {', '.join(targets)}")

    planner = JobPlanner(
        input_file,
        layers,
        output_override=settings.output,
        post_args=post_args,
    )
    scheduler = ConvertScheduler(
        planner,
        executor,
        concurrency=settings.concurrency,
        force=settings.force,
        watch=settings.watch,
        command_log=settings.log_file,
        confirm=confirm,
        tool=settings.pandoc_bin,
    )
    result = scheduler.run(targets, cancel)
    result.raise_for_error()
    return result


def _spool_stdin(stdin: TextIO) -> Path:
    fd, name = tempfile.mkstemp(prefix="panforge-stdin-", suffix=".md")
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        shutil.copyfileobj(stdin, fh)
    return Path(name)


def run(
    args: Sequence[str],
    settings: PanforgeSettings,
    executor: CommandExecutor,
    *,
    cancel: threading.Event | None = None,
    stdin: TextIO | None = None,
    confirm: Confirm = ask_for_confirmation,
) -> RunResult | None:
    """Resolve the input (file or ``-`` for stdin) and run once or watch.

    Returns the RunResult of a single run, or None after watch mode ends.
    """
    input_arg, post_args = parse_args(args)
    if not input_arg:
        raise PanforgeError("no input file found")

    spooled: Path | None = None
    if input_arg == STDIN_ARG:
        if stdin is None:
            raise PanforgeError("no stdin available for input '-'")
        spooled = _spool_stdin(stdin)
        input_file = spooled
        log.debug(f"Spooled stdin to {spooled}")
    else:
        input_file = Path(os.path.abspath(input_arg))

    try:
        if settings.watch:
            from .watch import run_watch

            run_watch(
                input_file,
                post_args,
                settings,
                executor,
                cancel=cancel,
                confirm=confirm,
            )
            return None

        return process(
            input_file,
            post_args,
            settings,
            executor,
            cancel=cancel,
            confirm=confirm,
        )
    finally:
        if spooled is not None:
            spooled.unlink(missing_ok=True)
