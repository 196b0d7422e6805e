"""Execution port: how the scheduler invokes the external conversion tool."""

from __future__ import annotations

import subprocess
import threading
from collections.abc import Sequence
from typing import Protocol, TextIO

from loguru import logger

from .errors import ExternalToolError, RunCancelled

log = logger.bind(stage="executor")

_POLL_INTERVAL = 0.1


class CommandExecutor(Protocol):
    """Runs one external command.

    Returns None on success; raises ExternalToolError on failure and
    RunCancelled when ``cancel`` is set before the command finishes.
    """

    def run(
        self,
        cancel: threading.Event,
        name: str,
        args: Sequence[str],
        stdout: TextIO,
        stderr: TextIO,
    ) -> None: ...


class SubprocessExecutor:
    """CommandExecutor backed by ``subprocess``.

    In dry-run mode commands are only logged by the caller, never started.
    """

    def __init__(self, dry_run: bool = False, verbose: bool = False) -> None:
        self.dry_run = dry_run
        self.verbose = verbose

    def run(
        self,
        cancel: threading.Event,
        name: str,
        args: Sequence[str],
        stdout: TextIO,
        stderr: TextIO,
    ) -> None:
        if self.dry_run:
            return
        if cancel.is_set():
            raise RunCancelled(f"{name} not started: run cancelled")

        try:
            proc = subprocess.Popen(
                [name, *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as exc:
            raise ExternalToolError(name, 127, str(exc)) from exc

        while True:
            try:
                out, err = proc.communicate(timeout=_POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                if cancel.is_set():
                    log.warning(f"Cancelling {name} (pid={proc.pid})")
                    proc.kill()
                    proc.communicate()
                    raise RunCancelled(f"{name} cancelled")

        if out:
            stdout.write(out)
        if err and (self.verbose or proc.returncode != 0):
            stderr.write(err)

        if proc.returncode != 0:
            raise ExternalToolError(name, proc.returncode, (err or "").strip()[-500:])
