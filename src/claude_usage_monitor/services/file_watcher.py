"""Project log directory watcher with debounced change signals."""

import logging
import os

from PySide6.QtCore import QObject, Signal, QFileSystemWatcher, QTimer

logger = logging.getLogger(__name__)

DEBOUNCE_MS = 100


class FileWatcher(QObject):
    """Watches one project log directory and its .jsonl files.

    Nothing outside that directory is ever watched, so activity in other
    projects never triggers a refresh.
    """

    logs_changed = Signal(str)  # path that changed

    def __init__(self, parent=None, debounce_ms: int = DEBOUNCE_MS):
        super().__init__(parent)
        self._watcher = QFileSystemWatcher(self)
        self._debounce_ms = debounce_ms
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._emit_changed)
        self._pending_path = ""
        self._directory = ""

        self._watcher.fileChanged.connect(self._on_file_changed)
        self._watcher.directoryChanged.connect(self._on_directory_changed)

    @property
    def directory(self) -> str:
        return self._directory

    def start(self, directory: str):
        """Watch directory (replacing any previous one)."""
        self.stop()
        if not directory or not os.path.isdir(directory):
            logger.debug("Not watching missing directory %s", directory)
            return
        self._directory = directory
        self._watcher.addPath(directory)
        self._sync_files()

    def stop(self):
        """Stop all file watching."""
        if self._watcher.files():
            self._watcher.removePaths(self._watcher.files())
        if self._watcher.directories():
            self._watcher.removePaths(self._watcher.directories())
        self._timer.stop()
        self._directory = ""

    def watched_files(self) -> list[str]:
        return list(self._watcher.files())

    def _sync_files(self):
        """Pick up log files created since the last scan."""
        try:
            names = os.listdir(self._directory)
        except OSError as e:
            logger.debug("Cannot list %s: %s", self._directory, e)
            return
        watched = set(self._watcher.files())
        for name in names:
            if name.endswith(".jsonl"):
                path = os.path.join(self._directory, name)
                if path not in watched:
                    self._watcher.addPath(path)

    def _on_file_changed(self, path: str):
        # Qt drops some files from the watcher after fileChanged; re-add it
        if os.path.exists(path) and path not in self._watcher.files():
            self._watcher.addPath(path)
        self._debounce(path)

    def _on_directory_changed(self, path: str):
        self._sync_files()
        self._debounce(path)

    def _debounce(self, path: str):
        self._pending_path = path
        self._timer.start(self._debounce_ms)

    def _emit_changed(self):
        self.logs_changed.emit(self._pending_path)
