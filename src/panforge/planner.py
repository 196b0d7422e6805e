"""Per-target job resolution: format, options, output path, and argv."""

from __future__ import annotations

import os
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from loguru import logger

from .args import build_command
from .errors import PathResolutionError
from .formats import resolve_format
from .layers import ConfigLayers
from .models import ResolvedJob
from .naming import generate_output_filename
from .overwrite import is_overwrite_allowed

log = logger.bind(stage="planner")


def resolve_output_path(output: str) -> Path:
    """Make ``output`` absolute relative to the working directory."""
    try:
        return Path(os.path.abspath(output))
    except (OSError, ValueError) as exc:
        raise PathResolutionError(output, str(exc)) from exc


class JobPlanner:
    """Turns targets into ResolvedJobs for one input document.

    ``now`` is captured once so every target of a run shares the same
    ``{date}``/``{time}`` stamp.
    """

    def __init__(
        self,
        input_file: Path,
        layers: ConfigLayers,
        *,
        output_override: str = "",
        post_args: Sequence[str] = (),
        now: datetime | None = None,
        platform: str | None = None,
    ) -> None:
        self.input_file = input_file
        self.layers = layers
        self.output_override = output_override
        self.post_args = tuple(post_args)
        self.now = now or datetime.now()
        self.platform = platform

    def resolve(self, target: str) -> ResolvedJob:
        fmt, options = resolve_format(target, self.layers)

        output = self.output_override
        if not output:
            output = generate_output_filename(
                self.input_file,
                self.layers,
                options,
                fmt,
                now=self.now,
                platform=self.platform,
            )

        job = ResolvedJob(
            target=target,
            format=fmt,
            options=options,
            output_path=resolve_output_path(output),
        )
        log.debug(f"Resolved {target!r}: format={fmt} output={job.output_path}")
        return job

    def overwrite_allowed(self, job: ResolvedJob) -> bool:
        return is_overwrite_allowed(self.layers, job.options)

    def command(self, job: ResolvedJob) -> list[str]:
        return build_command(
            self.input_file,
            job.format,
            job.output_path,
            job.options,
            self.post_args,
        )
