"""Shared fixtures: isolated settings and a recording execution port."""

import os
import threading
import time
from pathlib import Path

import pytest

from panforge.config import PanforgeSettings
from panforge.errors import ExternalToolError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Drop PANFORGE_* and APPDATA so settings see their defaults."""
    for var in list(os.environ):
        if var.startswith("PANFORGE_"):
            monkeypatch.delenv(var, raising=False)
    monkeypatch.delenv("APPDATA", raising=False)


class RecordingExecutor:
    """Execution port stub that records calls and tracks parallelism."""

    def __init__(self, fail_formats=(), delay=0.0, on_call=None):
        self.fail_formats = set(fail_formats)
        self.delay = delay
        self.on_call = on_call
        self.calls: list[tuple[str, list[str]]] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def run(self, cancel, name, args, stdout, stderr):
        with self._lock:
            self.calls.append((name, list(args)))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.on_call is not None:
                self.on_call(cancel, args)
            if self.delay:
                time.sleep(self.delay)
            fmt = args[args.index("--to") + 1]
            if fmt in self.fail_formats:
                raise ExternalToolError(name, 1, f"cannot write {fmt}")
        finally:
            with self._lock:
                self.active -= 1

    def formats(self) -> list[str]:
        return sorted(args[args.index("--to") + 1] for _, args in self.calls)


@pytest.fixture
def executor():
    return RecordingExecutor()


@pytest.fixture
def make_settings(tmp_path):
    """PanforgeSettings isolated from .env files and ~/.panforge."""

    def _make(**kwargs):
        kwargs.setdefault("data_dir", tmp_path / "data")
        return PanforgeSettings(_env_file=None, **kwargs)

    return _make


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run in tmp_path so relative output names land there."""
    monkeypatch.chdir(tmp_path)
    return Path.cwd()


@pytest.fixture
def write_doc(workdir):
    """Write a Markdown document with optional YAML front matter."""

    def _write(front_matter: str | None = None, body: str = "Body text.\n", name: str = "doc.md"):
        path = workdir / name
        text = body
        if front_matter is not None:
            text = f"---\n{front_matter.strip()}\n---\n\n{body}"
        path.write_text(text)
        return path

    return _write
