"""Bounded parallel execution of conversion jobs.

One worker task runs per target. All tasks share a counting semaphore sized
to the concurrency cap, a lock that serializes overwrite prompts, and (with
``--log``) a command-log file sink. A failing job never stops its siblings;
the first failure becomes the run's error.
"""

from __future__ import annotations

import os
import sys
import threading
import uuid
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

import psutil
from loguru import logger

from .args import render_command
from .errors import PanforgeError, RunCancelled
from .executor import CommandExecutor
from .models import JobOutcome, JobStatus, ResolvedJob, RunResult
from .overwrite import ask_for_confirmation
from .planner import JobPlanner

log = logger.bind(stage="scheduler")

_POLL_INTERVAL = 0.1

Confirm = Callable[[Path], bool]


@dataclass
class _RunState:
    """Resources shared by the jobs of a single run."""

    slots: threading.BoundedSemaphore
    cancel: threading.Event
    log_token: str | None = None
    prompt_lock: threading.Lock = field(default_factory=threading.Lock)
    error_lock: threading.Lock = field(default_factory=threading.Lock)
    first_error: BaseException | None = None

    def record_error(self, exc: BaseException) -> None:
        with self.error_lock:
            if self.first_error is None:
                self.first_error = exc


def available_parallelism() -> int:
    """CPUs this process may run on."""
    try:
        return len(psutil.Process().cpu_affinity()) or 1
    except (AttributeError, psutil.Error):
        # cpu_affinity() is not available on macOS
        return psutil.cpu_count(logical=True) or os.cpu_count() or 1


class ConvertScheduler:
    """Runs one conversion job per target under a global concurrency cap.

    Attributes:
        planner: Resolves targets to jobs and builds their argv
        executor: Execution port used to invoke the external tool
    """

    def __init__(
        self,
        planner: JobPlanner,
        executor: CommandExecutor,
        *,
        concurrency: int = 0,
        force: bool = False,
        watch: bool = False,
        command_log: Path | None = None,
        confirm: Confirm = ask_for_confirmation,
        tool: str = "pandoc",
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        self.planner = planner
        self.executor = executor
        self.concurrency = concurrency
        self.force = force
        self.watch = watch
        self.command_log = command_log
        self.confirm = confirm
        self.tool = tool
        self.stdout = stdout
        self.stderr = stderr

    def run(
        self, targets: Sequence[str], cancel: threading.Event | None = None
    ) -> RunResult:
        """Schedule every target and wait for all of them to finish.

        Args:
            targets: Target names, at most one job each
            cancel: Optional event; once set, waiting jobs give up and
                running ones are asked to stop

        Returns:
            RunResult with every job's outcome and the first error, if any
        """
        outcomes = [JobOutcome(target=t) for t in dict.fromkeys(targets)]
        if not outcomes:
            log.warning("No targets to build")
            return RunResult()

        limit = self._calculate_max_workers()
        state = _RunState(
            slots=threading.BoundedSemaphore(limit),
            cancel=cancel or threading.Event(),
        )
        log.info(f"Starting {len(outcomes)} job(s), concurrency={limit}")

        sink_id = self._open_command_log(state)
        try:
            with ThreadPoolExecutor(
                max_workers=len(outcomes), thread_name_prefix="panforge-job"
            ) as pool:
                futures = [
                    pool.submit(self._run_job_safe, outcome, state)
                    for outcome in outcomes
                ]
                try:
                    wait(futures)
                except KeyboardInterrupt:
                    log.warning("Interrupted, cancelling remaining jobs")
                    state.cancel.set()
                    raise
        finally:
            if sink_id is not None:
                logger.remove(sink_id)

        result = RunResult(outcomes=outcomes, error=state.first_error)
        log.info(
            f"Run complete: {result.succeeded} succeeded, "
            f"{result.failed} failed, {result.skipped} skipped"
        )
        return result

    def _run_job_safe(self, outcome: JobOutcome, state: _RunState) -> None:
        """Wrapper for _run_job that turns any exception into a failed outcome."""
        try:
            self._run_job(outcome, state)
        except Exception as e:
            outcome.status = JobStatus.FAILED
            outcome.error = e
            state.record_error(e)
            if isinstance(e, RunCancelled):
                log.warning(f"Cancelled: {outcome.target}")
            elif isinstance(e, PanforgeError):
                log.error(f"Failed: {outcome.target}: {e}")
            else:
                log.exception(f"Unexpected error building {outcome.target}")

    def _run_job(self, outcome: JobOutcome, state: _RunState) -> None:
        outcome.status = JobStatus.ACQUIRING
        self._acquire(state)
        try:
            job = self.planner.resolve(outcome.target)
            outcome.output_path = job.output_path

            if not self._may_write(job, state):
                outcome.status = JobStatus.SKIPPED
                log.warning(
                    f"Skipping {job.output_path}: file already exists "
                    f"and overwrite was declined"
                )
                return

            args = self.planner.command(job)
            outcome.command = [self.tool, *args]
            command_line = render_command(self.tool, args)
            log.bind(command_log=state.log_token).info(
                f"panforge calling: {command_line}"
            )

            outcome.status = JobStatus.RUNNING
            self.executor.run(
                state.cancel,
                self.tool,
                args,
                self.stdout or sys.stdout,
                self.stderr or sys.stderr,
            )
            outcome.status = JobStatus.SUCCEEDED
            log.info(f"Completed: {outcome.target} -> {job.output_path.name}")
        finally:
            state.slots.release()

    def _acquire(self, state: _RunState) -> None:
        """Block for a slot; give up if the run is cancelled first."""
        while not state.slots.acquire(timeout=_POLL_INTERVAL):
            if state.cancel.is_set():
                raise RunCancelled("run cancelled while waiting for a slot")
        if state.cancel.is_set():
            state.slots.release()
            raise RunCancelled("run cancelled before job start")

    def _may_write(self, job: ResolvedJob, state: _RunState) -> bool:
        """Overwrite check; prompts are serialized across jobs."""
        if not job.output_path.exists():
            return True
        if self.force or self.watch or self.planner.overwrite_allowed(job):
            return True
        with state.prompt_lock:
            return self.confirm(job.output_path)

    def _open_command_log(self, state: _RunState) -> int | None:
        """Attach the ``--log`` file sink for this run's command lines."""
        if self.command_log is None:
            return None

        token = uuid.uuid4().hex
        state.log_token = token
        try:
            return logger.add(
                str(self.command_log),
                format="{message}",
                level="INFO",
                mode="a",
                encoding="utf-8",
                filter=lambda record: record["extra"].get("command_log") == token,
            )
        except OSError as exc:
            raise PanforgeError(f"failed to open log file: {exc}") from exc

    def _calculate_max_workers(self) -> int:
        """Configured cap when positive, otherwise the available CPU count."""
        if self.concurrency > 0:
            log.debug(f"Using configured concurrency: {self.concurrency}")
            return self.concurrency
        workers = available_parallelism()
        log.debug(f"Auto-calculated concurrency: {workers}")
        return workers
