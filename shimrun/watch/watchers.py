"""Recursive directory watches backed by watchdog."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

# Called from the observer thread with (changed_path, watched_root)
ChangeCallback = Callable[[Path, Path], None]


class ChangeHandler(FileSystemEventHandler):
    """Reports file (not directory) changes under one root."""

    def __init__(self, root: Path, callback: ChangeCallback):
        super().__init__()
        self.root = root
        self.callback = callback

    def _report(self, path: str | bytes) -> None:
        if isinstance(path, bytes):
            path = path.decode("utf-8", errors="replace")
        self.callback(Path(path), self.root)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._report(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._report(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._report(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._report(event.src_path)
        if event.dest_path:
            self._report(event.dest_path)


class DirectoryWatch:
    """One recursive watch. ``close()`` may be called any number of times."""

    def __init__(self, directory: Path, callback: ChangeCallback):
        self.directory = Path(directory)
        self.callback = callback
        self._observer: Observer | None = None
        self.closed = False

    def start(self) -> None:
        if self._observer is not None or self.closed:
            return
        observer = Observer()
        observer.daemon = True
        observer.schedule(ChangeHandler(self.directory, self.callback), str(self.directory), recursive=True)
        observer.start()
        self._observer = observer
        logger.debug(f"Watching {self.directory}")

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join(timeout=1.0)
