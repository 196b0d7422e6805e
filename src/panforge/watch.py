"""Watch mode: rebuild when the input document or default config changes."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

from loguru import logger
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .config import PanforgeSettings
from .errors import PanforgeError
from .executor import CommandExecutor
from .layers import find_default_config
from .overwrite import ask_for_confirmation
from .scheduler import Confirm

log = logger.bind(stage="watch")

DEBOUNCE_SECONDS = 0.1

_RELEVANT_EVENTS = frozenset({EVENT_TYPE_MODIFIED, EVENT_TYPE_CREATED, EVENT_TYPE_MOVED})


class Debouncer:
    """Runs ``action`` once, ``delay`` seconds after the last trigger."""

    def __init__(self, delay: float, action: Callable[[], None]) -> None:
        self.delay = delay
        self.action = action
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    def trigger(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self.action)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class RebuildEventHandler(FileSystemEventHandler):
    """Triggers a rebuild when one of the watched files changes.

    Parent directories are observed (editors often save by rename), so
    events are filtered down to the watched paths here.
    """

    def __init__(self, watched: Iterable[Path], on_change: Callable[[], None]) -> None:
        self.watched = {p.resolve() for p in watched}
        self.on_change = on_change

    def _touches_watched(self, event: Any) -> bool:
        for raw in (event.src_path, getattr(event, "dest_path", "")):
            if raw and Path(str(raw)).resolve() in self.watched:
                return True
        return False

    def on_any_event(self, event: Any) -> None:
        if event.is_directory or event.event_type not in _RELEVANT_EVENTS:
            return
        if self._touches_watched(event):
            log.debug(f"{event.event_type}: {event.src_path}")
            self.on_change()


def run_watch(
    input_file: Path,
    post_args: Sequence[str],
    settings: PanforgeSettings,
    executor: CommandExecutor,
    *,
    cancel: threading.Event | None = None,
    confirm: Confirm = ask_for_confirmation,
    debounce: float = DEBOUNCE_SECONDS,
) -> None:
    """Build once, then rebuild on every change until interrupted or cancelled."""
    from .runner import process

    cancel = cancel or threading.Event()
    settings = settings.model_copy(update={"watch": True})

    watched = [input_file]
    config_file = find_default_config(settings.default_config, settings.default_config_dir)
    if config_file is not None:
        watched.append(config_file)
        log.info(f"Watching config file: {config_file}")

    build_lock = threading.Lock()

    def build() -> None:
        with build_lock:
            try:
                process(
                    input_file,
                    post_args,
                    settings,
                    executor,
                    cancel=cancel,
                    confirm=confirm,
                )
            except PanforgeError as exc:
                log.error(f"Processing failed: {exc}")
            else:
                log.info("Done.")

    def rebuild() -> None:
        log.info("File changed, re-running...")
        build()

    debouncer = Debouncer(debounce, rebuild)
    handler = RebuildEventHandler(watched, debouncer.trigger)

    observer = Observer()
    for directory in sorted({p.resolve().parent for p in watched}):
        observer.schedule(handler, str(directory), recursive=False)

    log.info(f"Watching {input_file} for changes (Press Ctrl+C to stop)")
    # Observe before the first build so edits saved during it still trigger.
    observer.start()
    try:
        build()
        while not cancel.wait(0.5):
            pass
    except KeyboardInterrupt:
        log.info("Stopping watch mode")
        cancel.set()
    finally:
        debouncer.cancel()
        observer.stop()
        observer.join()
