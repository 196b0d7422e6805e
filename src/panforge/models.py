"""Core enums, option-value variants, and job records for panforge.

Enums:
    JobStatus  -- Per-target job state (pending through succeeded/failed/skipped).

Option values:
    Flag, Scalar, Items, Entries -- the closed set of shapes a per-target option
    can take. ``option_value()`` converts a raw YAML value into one of them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any


class JobStatus(StrEnum):
    PENDING = "pending"
    ACQUIRING = "acquiring-slot"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL_STATUSES: frozenset[JobStatus] = frozenset(
    {JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.SKIPPED}
)


@dataclass(frozen=True)
class Flag:
    """Boolean option: ``--name`` when true, nothing when false."""

    enabled: bool


@dataclass(frozen=True)
class Scalar:
    """Single value option: ``--name value``."""

    value: Any


@dataclass(frozen=True)
class Items:
    """List option: ``--name item`` repeated per item."""

    values: tuple[Any, ...]


@dataclass(frozen=True)
class Entries:
    """Mapping option: ``--name key=value`` repeated per entry."""

    values: tuple[tuple[str, Any], ...]


OptionValue = Flag | Scalar | Items | Entries
OptionBag = dict[str, OptionValue]


def option_value(raw: Any) -> OptionValue:
    """Wrap a raw configuration value in its option variant."""
    if isinstance(raw, OptionValue):
        return raw
    if isinstance(raw, bool):
        return Flag(raw)
    if isinstance(raw, (list, tuple)):
        return Items(tuple(raw))
    if isinstance(raw, Mapping):
        return Entries(tuple((str(k), v) for k, v in raw.items()))
    return Scalar(raw)


def option_bag(raw: Mapping[str, Any] | None) -> OptionBag:
    """Build a private option bag from a raw per-target mapping."""
    if not raw:
        return {}
    return {str(key): option_value(value) for key, value in raw.items()}


def bag_bool(options: Mapping[str, OptionValue], key: str) -> bool | None:
    """Return the boolean stored under ``key``, or None if absent/non-boolean."""
    value = options.get(key)
    if isinstance(value, Flag):
        return value.enabled
    return None


def bag_str(options: Mapping[str, OptionValue], key: str) -> str | None:
    """Return the string stored under ``key``, or None if absent/non-string."""
    value = options.get(key)
    if isinstance(value, Scalar) and isinstance(value.value, str):
        return value.value
    return None


@dataclass(frozen=True)
class ResolvedJob:
    """One target resolved to a format, options, and an absolute output path."""

    target: str
    format: str
    options: OptionBag
    output_path: Path


@dataclass
class JobOutcome:
    """Terminal record for one scheduled target."""

    target: str
    status: JobStatus = JobStatus.PENDING
    output_path: Path | None = None
    command: list[str] = field(default_factory=list)
    error: BaseException | None = None


@dataclass
class RunResult:
    """Aggregate outcome of one pipeline invocation."""

    outcomes: list[JobOutcome] = field(default_factory=list)
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.status == JobStatus.SUCCEEDED)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.status == JobStatus.FAILED)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.status == JobStatus.SKIPPED)

    def raise_for_error(self) -> None:
        """Re-raise the first job error, if any."""
        if self.error is not None:
            raise self.error
